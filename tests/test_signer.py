"""
Unit tests for signer eligibility and EIP-3009 signing
"""

import pytest
from eth_account import Account

from x402_paygate.core.chains import BASE_SEPOLIA, usdc_token_config
from x402_paygate.core.errors import AmountExceeded, NoValidSigner, SigningFailed
from x402_paygate.core.evm import EVMSigner, normalize_private_key
from x402_paygate.core.payloads import (
    CLOCK_SKEW_SECONDS,
    build_authorization_payload,
    recover_authorization_signer,
)
from x402_paygate.core.types import TokenConfig

from tests.conftest import TEST_PRIVATE_KEY
from tests.factories import ASSET_N1, ASSET_N2, PAY_TO, ExplodingSigner, FakeSigner, make_requirement


class TestBaseSigner:
    def test_construction_requires_network_and_tokens(self):
        with pytest.raises(ValueError):
            FakeSigner(network="")
        with pytest.raises(ValueError):
            FakeSigner(tokens=[])
        with pytest.raises(ValueError):
            FakeSigner(max_amount=-1)

    def test_can_sign_matching_requirement(self, signer, requirement):
        assert signer.can_sign(requirement)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"network": "base"},
            {"scheme": "upto"},
            {"asset": ASSET_N2},
            {"amount": "1.5"},
        ],
    )
    def test_cannot_sign_mismatched_requirement(self, signer, overrides):
        assert not signer.can_sign(make_requirement(**overrides))

    def test_asset_match_is_case_insensitive(self, signer):
        assert signer.can_sign(make_requirement(asset=ASSET_N1.lower()))

    def test_can_sign_is_side_effect_free(self, signer, requirement):
        signer.can_sign(requirement)
        assert signer.signed == []

    def test_sign_produces_payload(self, signer, requirement):
        payment = signer.sign(requirement)
        assert payment.x402_version == 1
        assert payment.scheme == "exact"
        assert payment.network == "base-sepolia"
        assert payment.payload["value"] == "1000"

    def test_amount_at_ceiling_is_allowed(self, requirement):
        signer = FakeSigner(max_amount=1000)
        assert signer.can_sign(requirement)
        assert signer.sign(requirement).payload["value"] == "1000"

    def test_amount_above_ceiling(self, requirement):
        signer = FakeSigner(max_amount=999)
        assert not signer.can_sign(requirement)
        with pytest.raises(AmountExceeded) as excinfo:
            signer.sign(requirement)
        assert excinfo.value.details == {"amount": 1000, "max_amount": 999}
        assert signer.signed == []

    def test_sign_unsupported_requirement(self, signer):
        with pytest.raises(NoValidSigner):
            signer.sign(make_requirement(network="base"))

    def test_unexpected_failure_becomes_signing_failed(self, requirement):
        signer = ExplodingSigner()
        with pytest.raises(SigningFailed, match="hardware wallet unplugged") as excinfo:
            signer.sign(requirement)
        assert isinstance(excinfo.value.__cause__, RuntimeError)

    def test_token_for(self):
        token = TokenConfig(address=ASSET_N1, symbol="USDC", decimals=6, priority=2)
        signer = FakeSigner(tokens=[token])
        assert signer.token_for(ASSET_N1.upper().replace("0X", "0x")) == token
        assert signer.token_for(ASSET_N2) is None


class TestPrivateKeys:
    def test_adds_prefix(self):
        assert normalize_private_key(TEST_PRIVATE_KEY[2:]) == TEST_PRIVATE_KEY

    @pytest.mark.parametrize("raw", ["", "   ", "0x1234"])
    def test_rejects_bad_keys(self, raw):
        with pytest.raises(ValueError):
            normalize_private_key(raw)


class TestAuthorizationPayload:
    def test_payload_shape_and_window(self, test_account):
        payload = build_authorization_payload(
            private_key=TEST_PRIVATE_KEY,
            pay_to=PAY_TO,
            amount=1000,
            asset_address=BASE_SEPOLIA.usdc_address,
            chain_id=84532,
            token_name="USDC",
            token_version="2",
            max_timeout_seconds=300,
            now=1_700_000_000,
            nonce=b"\x01" * 32,
        )
        authorization = payload["authorization"]
        assert authorization["from"] == test_account.address
        assert authorization["to"] == PAY_TO
        assert authorization["value"] == "1000"
        assert authorization["validAfter"] == str(1_700_000_000 - CLOCK_SKEW_SECONDS)
        assert authorization["validBefore"] == str(1_700_000_300)
        assert authorization["nonce"] == "0x" + "01" * 32
        assert payload["signature"].startswith("0x")
        assert len(payload["signature"]) == 132

    def test_signature_recovers_payer(self, test_account):
        payload = build_authorization_payload(
            private_key=TEST_PRIVATE_KEY,
            pay_to=PAY_TO,
            amount=5,
            asset_address=BASE_SEPOLIA.usdc_address,
            chain_id=84532,
            token_name="USDC",
            token_version="2",
            max_timeout_seconds=60,
        )
        signer = recover_authorization_signer(
            payload,
            asset_address=BASE_SEPOLIA.usdc_address,
            chain_id=84532,
            token_name="USDC",
            token_version="2",
        )
        assert signer == test_account.address

    def test_nonces_are_random(self):
        kwargs = dict(
            private_key=TEST_PRIVATE_KEY,
            pay_to=PAY_TO,
            amount=5,
            asset_address=BASE_SEPOLIA.usdc_address,
            chain_id=84532,
            token_name="USDC",
            token_version="2",
            max_timeout_seconds=60,
        )
        first = build_authorization_payload(**kwargs)
        second = build_authorization_payload(**kwargs)
        assert first["authorization"]["nonce"] != second["authorization"]["nonce"]

    def test_rejects_short_nonce(self):
        with pytest.raises(ValueError):
            build_authorization_payload(
                private_key=TEST_PRIVATE_KEY,
                pay_to=PAY_TO,
                amount=5,
                asset_address=BASE_SEPOLIA.usdc_address,
                chain_id=84532,
                token_name="USDC",
                token_version="2",
                max_timeout_seconds=60,
                nonce=b"\x00" * 8,
            )


class TestEVMSigner:
    @pytest.fixture
    def evm_signer(self):
        return EVMSigner(
            TEST_PRIVATE_KEY,
            "base-sepolia",
            [usdc_token_config(BASE_SEPOLIA)],
            max_amount=10_000,
        )

    def test_derives_address_and_chain(self, evm_signer, test_account):
        assert evm_signer.address == test_account.address
        assert evm_signer.chain_id == 84532
        assert evm_signer.scheme() == "exact"

    def test_signs_recoverable_authorization(self, evm_signer, test_account):
        payment = evm_signer.sign(make_requirement(asset=BASE_SEPOLIA.usdc_address))
        assert payment.network == "base-sepolia"
        recovered = recover_authorization_signer(
            payment.payload,
            asset_address=BASE_SEPOLIA.usdc_address,
            chain_id=84532,
            token_name="USDC",
            token_version="2",
        )
        assert recovered == test_account.address
        assert payment.payload["authorization"]["value"] == "1000"

    def test_requires_eip712_domain(self, evm_signer):
        requirement = make_requirement(asset=BASE_SEPOLIA.usdc_address, extra=None)
        with pytest.raises(SigningFailed, match="name"):
            evm_signer.sign(requirement)

    def test_unknown_chain_cannot_sign(self):
        signer = EVMSigner(
            TEST_PRIVATE_KEY,
            "my-appchain",
            [TokenConfig(address=ASSET_N1, symbol="USDC", decimals=6)],
        )
        with pytest.raises(SigningFailed, match="chain id"):
            signer.sign(make_requirement(network="my-appchain"))

    def test_explicit_chain_id(self):
        signer = EVMSigner(
            TEST_PRIVATE_KEY,
            "my-appchain",
            [TokenConfig(address=ASSET_N1, symbol="USDC", decimals=6)],
            chain_id=424242,
        )
        payment = signer.sign(make_requirement(network="my-appchain"))
        recovered = recover_authorization_signer(
            payment.payload,
            asset_address=ASSET_N1,
            chain_id=424242,
            token_name="USDC",
            token_version="2",
        )
        assert recovered == Account.from_key(TEST_PRIVATE_KEY).address

    def test_ceiling_applies(self, evm_signer):
        with pytest.raises(AmountExceeded):
            evm_signer.sign(make_requirement(asset=BASE_SEPOLIA.usdc_address, amount="10001"))
