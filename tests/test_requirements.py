"""
Unit tests for payment requirements, amounts and known chains
"""

from decimal import Decimal

import pytest
from eth_utils import to_checksum_address

from x402_paygate.core.chains import (
    BASE,
    BASE_SEPOLIA,
    BSC,
    SOLANA,
    NetworkType,
    chain_id_for,
    usdc_extra,
    usdc_token_config,
    validate_network,
)
from x402_paygate.core.errors import InvalidRequirements
from x402_paygate.core.requirements import (
    RequirementConfig,
    build_requirement,
    to_base_units,
    usdc_requirement,
)
from x402_paygate.core.types import PaymentRequirement, parse_atomic_amount

from tests.factories import PAY_TO, make_payment, make_requirement


class TestAmounts:
    @pytest.mark.parametrize(
        "amount, decimals, expected",
        [
            ("0.001", 6, 1000),
            ("1", 6, 1_000_000),
            (Decimal("0.1"), 18, 100_000_000_000_000_000),
            (2, 0, 2),
            ("0", 6, 0),
        ],
    )
    def test_to_base_units(self, amount, decimals, expected):
        assert to_base_units(amount, decimals) == expected

    def test_large_amounts_keep_precision(self):
        assert to_base_units("123456789012345678.123456789012345678", 18) == int(
            "123456789012345678123456789012345678"
        )

    @pytest.mark.parametrize("amount", ["-1", "abc", "NaN", "Infinity", 0.5])
    def test_rejects_unusable_amounts(self, amount):
        with pytest.raises(InvalidRequirements):
            to_base_units(amount, 6)

    def test_rejects_sub_precision_amounts(self):
        with pytest.raises(InvalidRequirements, match="cannot be represented"):
            to_base_units("0.0000001", 6)

    @pytest.mark.parametrize("raw", ["", "-5", "1.5", "1e3", " 10", "+1", "١٢"])
    def test_parse_atomic_amount_is_strict(self, raw):
        with pytest.raises(InvalidRequirements):
            parse_atomic_amount(raw)

    def test_parse_atomic_amount(self):
        assert parse_atomic_amount("1000") == 1000


class TestPaymentRequirement:
    def test_validate_accepts_complete_offer(self, requirement):
        requirement.validate()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"scheme": ""},
            {"network": ""},
            {"amount": "ten"},
            {"asset": ""},
            {"pay_to": ""},
            {"max_timeout_seconds": 0},
        ],
    )
    def test_validate_rejects_incomplete_offer(self, overrides):
        with pytest.raises(InvalidRequirements):
            make_requirement(**overrides).validate()

    def test_matches_on_network_and_scheme(self, requirement):
        assert requirement.matches(make_payment())
        assert not requirement.matches(make_payment(network="base"))
        assert not requirement.matches(make_payment(scheme="upto"))

    def test_with_resource_keeps_configured_description(self):
        requirement = make_requirement(description="Premium weather")
        filled = requirement.with_resource("https://api.example.com/weather", "fallback")
        assert filled.resource == "https://api.example.com/weather"
        assert filled.description == "Premium weather"
        assert requirement.resource == ""

    def test_wire_shape(self, requirement):
        body = requirement.to_dict()
        assert body["maxAmountRequired"] == "1000"
        assert body["payTo"] == PAY_TO
        assert body["maxTimeoutSeconds"] == 300
        assert body["outputSchema"] is None
        assert PaymentRequirement.from_dict(body) == requirement

    def test_from_dict_rejects_numeric_amount(self, requirement):
        body = requirement.to_dict()
        body["maxAmountRequired"] = 1000
        with pytest.raises(ValueError):
            PaymentRequirement.from_dict(body)


class TestBuildRequirement:
    def test_evm_addresses_are_checksummed(self):
        requirement = build_requirement(
            RequirementConfig(
                network="base-sepolia",
                asset=BASE_SEPOLIA.usdc_address.lower(),
                pay_to=PAY_TO.lower(),
                amount="0.001",
                decimals=6,
            )
        )
        assert requirement.asset == to_checksum_address(BASE_SEPOLIA.usdc_address)
        assert requirement.pay_to == to_checksum_address(PAY_TO)
        assert requirement.max_amount_required == "1000"
        assert requirement.scheme == "exact"
        assert requirement.mime_type == "application/json"

    def test_invalid_evm_address(self):
        with pytest.raises(InvalidRequirements, match="payTo"):
            build_requirement(
                RequirementConfig(
                    network="base",
                    asset=BASE.usdc_address,
                    pay_to="0x1234",
                    amount="1",
                    decimals=6,
                )
            )

    def test_unknown_network_is_accepted_with_warning(self, caplog):
        requirement = build_requirement(
            RequirementConfig(
                network="my-appchain",
                asset="native",
                pay_to="recipient-1",
                amount="3",
                decimals=0,
            )
        )
        assert requirement.network == "my-appchain"
        assert requirement.pay_to == "recipient-1"
        assert "unrecognised network" in caplog.text

    def test_solana_addresses_are_not_checksummed(self):
        requirement = usdc_requirement(SOLANA, "0.5", "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin")
        assert requirement.asset == SOLANA.usdc_address
        assert requirement.max_amount_required == "500000"
        assert requirement.extra is None

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(InvalidRequirements):
            build_requirement(
                RequirementConfig(
                    network="base",
                    asset=BASE.usdc_address,
                    pay_to=PAY_TO,
                    amount="1",
                    decimals=6,
                    max_timeout_seconds=0,
                )
            )

    def test_usdc_requirement_carries_eip712_domain(self):
        requirement = usdc_requirement(BSC, "0.1", PAY_TO, description="Report")
        assert requirement.network == "bsc"
        assert requirement.max_amount_required == str(10**17)
        assert requirement.extra == {"name": "Wrapped USDC", "version": "2"}
        assert requirement.description == "Report"


class TestChains:
    @pytest.mark.parametrize(
        "network, expected",
        [
            ("base", NetworkType.EVM),
            ("bsc", NetworkType.EVM),
            ("sepolia", NetworkType.EVM),
            ("solana-devnet", NetworkType.SVM),
            ("unheard-of", NetworkType.UNKNOWN),
        ],
    )
    def test_validate_network(self, network, expected):
        assert validate_network(network) is expected

    def test_validate_network_rejects_empty(self):
        with pytest.raises(ValueError):
            validate_network("")

    def test_chain_ids(self):
        assert chain_id_for("base") == 8453
        assert chain_id_for("bsc") == 56
        assert chain_id_for("ethereum") == 1
        assert chain_id_for("solana") is None
        assert chain_id_for("unheard-of") is None

    def test_usdc_token_config(self):
        token = usdc_token_config(BASE, priority=3)
        assert token.address == BASE.usdc_address
        assert token.decimals == 6
        assert token.priority == 3
        assert token.symbol == "USDC"

    def test_usdc_extra(self):
        assert usdc_extra(BASE) == {"name": "USD Coin", "version": "2"}
        assert usdc_extra(SOLANA) is None
