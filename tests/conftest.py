"""
Pytest configuration and shared fixtures
"""

import pytest
from eth_account import Account

from tests.factories import FakeFacilitator, FakeSigner, make_payment, make_requirement

TEST_PRIVATE_KEY = "0x1234567890abcdef1234567890abcdef1234567890abcdef1234567890abcdef"


@pytest.fixture
def test_account():
    """Deterministic payer account"""
    return Account.from_key(TEST_PRIVATE_KEY)


@pytest.fixture
def requirement():
    """Single N1 offer for 1000 atomic units"""
    return make_requirement()


@pytest.fixture
def payment():
    """Payment payload matching the default requirement"""
    return make_payment()


@pytest.fixture
def facilitator():
    """Facilitator that accepts and settles everything"""
    return FakeFacilitator()


@pytest.fixture
def signer():
    return FakeSigner()
