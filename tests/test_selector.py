"""
Unit tests for the default payment selector
"""

import pytest

from x402_paygate.core.errors import (
    AmountExceeded,
    NoPaymentRequirements,
    NoValidSigner,
    SigningFailed,
)
from x402_paygate.core.selector import DefaultPaymentSelector
from x402_paygate.core.types import TokenConfig

from tests.factories import ASSET_N1, ASSET_N2, FakeSigner, make_requirement


@pytest.fixture
def selector():
    return DefaultPaymentSelector()


class TestSelection:
    def test_requirement_order_outranks_signer_priority(self, selector):
        """The server's first offer wins even if a preferred signer only matches the second"""
        n1_signer = FakeSigner("n1", network="n1", priority=5)
        n2_signer = FakeSigner("n2", network="n2", priority=0)
        requirements = [make_requirement(network="n1"), make_requirement(network="n2")]

        payment = selector.select_and_sign(requirements, [n2_signer, n1_signer])

        assert payment.network == "n1"
        assert payment.payload["signer"] == "n1"
        assert n2_signer.signed == []

    def test_lower_priority_number_wins(self, selector, requirement):
        slow = FakeSigner("slow", priority=2)
        fast = FakeSigner("fast", priority=1)
        payment = selector.select_and_sign([requirement], [slow, fast])
        assert payment.payload["signer"] == "fast"

    def test_token_priority_breaks_signer_ties(self, selector, requirement):
        backup = FakeSigner("backup", tokens=[TokenConfig(ASSET_N1, "USDC", 6, priority=9)])
        primary = FakeSigner("primary", tokens=[TokenConfig(ASSET_N1, "USDC", 6, priority=1)])
        payment = selector.select_and_sign([requirement], [backup, primary])
        assert payment.payload["signer"] == "primary"

    def test_configuration_order_breaks_full_ties(self, selector, requirement):
        first = FakeSigner("first")
        second = FakeSigner("second")
        for _ in range(3):
            assert selector.select_and_sign([requirement], [first, second]).payload["signer"] == "first"
            assert selector.select_and_sign([requirement], [second, first]).payload["signer"] == "second"

    def test_signer_over_ceiling_is_skipped(self, selector, requirement):
        capped = FakeSigner("capped", priority=0, max_amount=10)
        open_ended = FakeSigner("open", priority=1)
        payment = selector.select_and_sign([requirement], [capped, open_ended])
        assert payment.payload["signer"] == "open"
        assert capped.signed == []

    def test_falls_through_to_later_offer(self, selector):
        signer = FakeSigner(tokens=[TokenConfig(ASSET_N2, "USDC", 6)])
        requirements = [make_requirement(asset=ASSET_N1), make_requirement(asset=ASSET_N2, amount="7")]
        payment = selector.select_and_sign(requirements, [signer])
        assert payment.payload["asset"] == ASSET_N2
        assert payment.payload["value"] == "7"


class TestNoMatch:
    def test_no_match_signs_nothing(self, selector):
        signer = FakeSigner(network="n3")
        requirements = [make_requirement(network="n1"), make_requirement(network="n2")]
        with pytest.raises(NoValidSigner) as excinfo:
            selector.select_and_sign(requirements, [signer])
        assert signer.signed == []
        assert "n1:" in excinfo.value.details["options"]
        assert "n2:" in excinfo.value.details["options"]

    def test_ceiling_everywhere_is_no_valid_signer(self, selector, requirement):
        signer = FakeSigner(max_amount=999)
        with pytest.raises(NoValidSigner):
            selector.select_and_sign([requirement], [signer])

    def test_no_signers(self, selector, requirement):
        with pytest.raises(NoValidSigner):
            selector.select_and_sign([requirement], [])

    def test_no_requirements(self, selector, signer):
        with pytest.raises(NoPaymentRequirements):
            selector.select_and_sign([], [signer])


class TestSignFailures:
    def test_payment_errors_propagate_unchanged(self, selector, requirement):
        class Lying(FakeSigner):
            def can_sign(self, requirement):
                return True

        signer = Lying(max_amount=1)
        with pytest.raises(AmountExceeded):
            selector.select_and_sign([requirement], [signer])

    def test_foreign_errors_become_signing_failed(self, selector, requirement):
        class Broken(FakeSigner):
            def sign(self, requirement):
                raise KeyError("nonce")

        with pytest.raises(SigningFailed):
            selector.select_and_sign([requirement], [Broken()])
