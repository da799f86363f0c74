"""
Construction and validation of server-side payment offers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any, Dict, Optional, Union

from eth_utils import is_hex_address, to_checksum_address

from .chains import ChainConfig, NetworkType, usdc_extra, validate_network
from .errors import InvalidRequirements
from .types import PaymentRequirement

__all__ = [
    "DEFAULT_MAX_TIMEOUT_SECONDS",
    "DEFAULT_MIME_TYPE",
    "DEFAULT_SCHEME",
    "RequirementConfig",
    "build_requirement",
    "to_base_units",
    "usdc_requirement",
]

logger = logging.getLogger(__name__)

DEFAULT_SCHEME = "exact"
DEFAULT_MAX_TIMEOUT_SECONDS = 300
DEFAULT_MIME_TYPE = "application/json"


def to_base_units(amount: Union[Decimal, str, int], decimals: int) -> int:
    """
    Convert a human amount (``"1.5"``) into atomic units for ``decimals``.

    Zero is allowed for free-with-signature flows; negative amounts and
    amounts finer than the asset's precision are rejected.
    """
    if isinstance(amount, float):
        raise InvalidRequirements("amount must not be a float; pass a string or Decimal")
    if decimals < 0:
        raise InvalidRequirements(f"decimals must be non-negative, got {decimals}")
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as exc:
        raise InvalidRequirements(f"amount must be a valid decimal number, got '{amount}'") from exc
    if not value.is_finite():
        raise InvalidRequirements(f"amount must be finite, got '{amount}'")
    if value < 0:
        raise InvalidRequirements("amount must be non-negative")

    with localcontext() as ctx:
        ctx.prec = 200
        scaled = value * (Decimal(10) ** decimals)
        integral = scaled.to_integral_value()
    if integral != scaled:
        raise InvalidRequirements(
            f"Amount {amount} cannot be represented with {decimals} decimals"
        )
    return int(integral)


def _normalize_address(raw_address: str, field_name: str, network_type: NetworkType) -> str:
    value = (raw_address or "").strip()
    if not value:
        raise InvalidRequirements(f"{field_name} must not be empty")
    if network_type is not NetworkType.EVM:
        return value
    if not value.startswith("0x"):
        value = "0x" + value
    if not is_hex_address(value):
        raise InvalidRequirements(f"{field_name} is not a valid EVM address")
    return to_checksum_address(value)


@dataclass(frozen=True)
class RequirementConfig:
    """
    Inputs for :func:`build_requirement`.

    ``amount`` is expressed in whole tokens (``"0.25"``) and converted using
    ``decimals``.
    """

    network: str
    asset: str
    pay_to: str
    amount: Union[Decimal, str, int]
    decimals: int
    scheme: str = DEFAULT_SCHEME
    max_timeout_seconds: int = DEFAULT_MAX_TIMEOUT_SECONDS
    resource: str = ""
    description: str = ""
    mime_type: str = DEFAULT_MIME_TYPE
    output_schema: Optional[Dict[str, Any]] = None
    extra: Optional[Dict[str, Any]] = None


def build_requirement(config: RequirementConfig) -> PaymentRequirement:
    if not config.network:
        raise InvalidRequirements("network must not be empty")
    network_type = validate_network(config.network)
    if network_type is NetworkType.UNKNOWN:
        logger.warning(
            "Building requirement for unrecognised network %s; addresses are not checked",
            config.network,
        )
    if not config.scheme:
        raise InvalidRequirements("scheme must not be empty")
    if config.max_timeout_seconds <= 0:
        raise InvalidRequirements("max_timeout_seconds must be positive")

    atomic = to_base_units(config.amount, config.decimals)
    return PaymentRequirement(
        scheme=config.scheme,
        network=config.network,
        max_amount_required=str(atomic),
        asset=_normalize_address(config.asset, "asset", network_type),
        pay_to=_normalize_address(config.pay_to, "payTo", network_type),
        max_timeout_seconds=config.max_timeout_seconds,
        resource=config.resource,
        description=config.description,
        mime_type=config.mime_type,
        output_schema=dict(config.output_schema) if config.output_schema else None,
        extra=dict(config.extra) if config.extra else None,
    )


def usdc_requirement(
    chain: ChainConfig,
    amount: Union[Decimal, str, int],
    recipient: str,
    *,
    description: str = "",
    scheme: str = DEFAULT_SCHEME,
    max_timeout_seconds: int = DEFAULT_MAX_TIMEOUT_SECONDS,
    mime_type: str = DEFAULT_MIME_TYPE,
) -> PaymentRequirement:
    """USDC offer on ``chain``, with the EIP-3009 domain in ``extra`` for EVM chains."""
    return build_requirement(
        RequirementConfig(
            network=chain.network_id,
            asset=chain.usdc_address,
            pay_to=recipient,
            amount=amount,
            decimals=chain.decimals,
            scheme=scheme,
            max_timeout_seconds=max_timeout_seconds,
            description=description,
            mime_type=mime_type,
            extra=usdc_extra(chain),
        )
    )
