"""
Protocol messages exchanged between clients, resource servers and facilitators.

Every message is an immutable dataclass that converts to and from the
camelCase JSON shape used on the wire. ``from_dict`` is strict: missing
required fields or wrongly typed values raise :class:`ValueError`, which the
envelope codec and the facilitator client translate into their own error
kinds.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, Union

from .errors import InvalidRequirements

__all__ = [
    "DEFAULT_X402_VERSION",
    "PaymentPayload",
    "PaymentRequirement",
    "PaymentRequirementsResponse",
    "SettlementResponse",
    "SupportedKind",
    "SupportedResponse",
    "TokenConfig",
    "VerifyResponse",
    "parse_atomic_amount",
]

DEFAULT_X402_VERSION = 1

_MISSING = object()


def _get(
    data: Mapping[str, Any],
    key: str,
    kind: Union[Type[Any], Tuple[Type[Any], ...]],
    default: Any = _MISSING,
) -> Any:
    value = data.get(key)
    if value is None:
        if default is _MISSING:
            raise ValueError(f"missing required field '{key}'")
        return default
    # bool is a subclass of int; a JSON true must not pass as a number
    if isinstance(value, bool) and kind is int:
        raise ValueError(f"field '{key}' must be an integer")
    if not isinstance(value, kind):
        raise ValueError(f"field '{key}' has unexpected type {type(value).__name__}")
    return value


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return data


def parse_atomic_amount(amount: str) -> int:
    """
    Parse a base-10 atomic amount string such as ``"1000"``.

    Signs, whitespace, decimal points and exponents are rejected so that a
    float can never sneak in as an amount.
    """
    if not isinstance(amount, str) or not amount:
        raise InvalidRequirements(f"amount must be a non-empty string, got {amount!r}")
    if not amount.isascii() or not amount.isdigit():
        raise InvalidRequirements(
            f"amount must be a non-negative base-10 integer, got {amount!r}"
        )
    return int(amount)


@dataclass(frozen=True)
class TokenConfig:
    """A token a signer is willing to pay with. Lower ``priority`` wins."""

    address: str
    symbol: str
    decimals: int
    priority: int = 0


@dataclass(frozen=True)
class PaymentRequirement:
    scheme: str
    network: str
    max_amount_required: str
    asset: str
    pay_to: str
    max_timeout_seconds: int
    resource: str = ""
    description: str = ""
    mime_type: str = ""
    output_schema: Optional[Dict[str, Any]] = None
    extra: Optional[Dict[str, Any]] = None

    @property
    def amount(self) -> int:
        return parse_atomic_amount(self.max_amount_required)

    def validate(self) -> None:
        """Raise :class:`InvalidRequirements` if the offer is unusable."""
        if not self.scheme:
            raise InvalidRequirements("scheme is required")
        if not self.network:
            raise InvalidRequirements("network is required")
        parse_atomic_amount(self.max_amount_required)
        if not self.asset:
            raise InvalidRequirements("asset is required")
        if not self.pay_to:
            raise InvalidRequirements("payTo is required")
        if self.max_timeout_seconds <= 0:
            raise InvalidRequirements("maxTimeoutSeconds must be positive")

    def matches(self, payment: "PaymentPayload") -> bool:
        return self.scheme == payment.scheme and self.network == payment.network

    def with_resource(self, resource: str, description: str) -> "PaymentRequirement":
        return replace(
            self,
            resource=resource,
            description=self.description or description,
        )

    def with_extra(self, extra: Mapping[str, Any]) -> "PaymentRequirement":
        return replace(self, extra=dict(extra))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scheme": self.scheme,
            "network": self.network,
            "maxAmountRequired": self.max_amount_required,
            "asset": self.asset,
            "payTo": self.pay_to,
            "resource": self.resource,
            "description": self.description,
            "mimeType": self.mime_type,
            "outputSchema": self.output_schema,
            "maxTimeoutSeconds": self.max_timeout_seconds,
            "extra": self.extra,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "PaymentRequirement":
        data = _require_mapping(data, "payment requirement")
        output_schema = _get(data, "outputSchema", dict, None)
        extra = _get(data, "extra", dict, None)
        return cls(
            scheme=_get(data, "scheme", str),
            network=_get(data, "network", str),
            max_amount_required=_get(data, "maxAmountRequired", str),
            asset=_get(data, "asset", str),
            pay_to=_get(data, "payTo", str),
            max_timeout_seconds=_get(data, "maxTimeoutSeconds", int),
            resource=_get(data, "resource", str, ""),
            description=_get(data, "description", str, ""),
            mime_type=_get(data, "mimeType", str, ""),
            output_schema=dict(output_schema) if output_schema is not None else None,
            extra=dict(extra) if extra is not None else None,
        )


@dataclass(frozen=True)
class PaymentPayload:
    """The signed payment authorization a client attaches as ``X-PAYMENT``."""

    x402_version: int
    scheme: str
    network: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x402Version": self.x402_version,
            "scheme": self.scheme,
            "network": self.network,
            "payload": self.payload,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "PaymentPayload":
        data = _require_mapping(data, "payment payload")
        return cls(
            x402_version=_get(data, "x402Version", int),
            scheme=_get(data, "scheme", str),
            network=_get(data, "network", str),
            payload=dict(_get(data, "payload", dict)),
        )


@dataclass(frozen=True)
class VerifyResponse:
    is_valid: bool
    payer: str = ""
    invalid_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"isValid": self.is_valid, "payer": self.payer}
        if self.invalid_reason is not None:
            body["invalidReason"] = self.invalid_reason
        return body

    @classmethod
    def from_dict(cls, data: Any) -> "VerifyResponse":
        data = _require_mapping(data, "verify response")
        return cls(
            is_valid=_get(data, "isValid", bool),
            payer=_get(data, "payer", str, ""),
            invalid_reason=_get(data, "invalidReason", str, None),
        )


@dataclass(frozen=True)
class SettlementResponse:
    success: bool
    transaction: str = ""
    network: str = ""
    payer: str = ""
    error_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": self.success,
            "transaction": self.transaction,
            "network": self.network,
            "payer": self.payer,
        }
        if self.error_reason is not None:
            body["errorReason"] = self.error_reason
        return body

    @classmethod
    def from_dict(cls, data: Any) -> "SettlementResponse":
        data = _require_mapping(data, "settlement response")
        return cls(
            success=_get(data, "success", bool),
            transaction=_get(data, "transaction", str, ""),
            network=_get(data, "network", str, ""),
            payer=_get(data, "payer", str, ""),
            error_reason=_get(data, "errorReason", str, None),
        )


@dataclass(frozen=True)
class PaymentRequirementsResponse:
    """Body of a 402 answer: the ordered offer set."""

    x402_version: int
    error: str
    accepts: List[PaymentRequirement] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x402Version": self.x402_version,
            "error": self.error,
            "accepts": [requirement.to_dict() for requirement in self.accepts],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "PaymentRequirementsResponse":
        data = _require_mapping(data, "payment requirements response")
        return cls(
            x402_version=_get(data, "x402Version", int),
            error=_get(data, "error", str, ""),
            accepts=[
                PaymentRequirement.from_dict(item)
                for item in _get(data, "accepts", list)
            ],
        )


@dataclass(frozen=True)
class SupportedKind:
    x402_version: int
    scheme: str
    network: str
    extra: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Any) -> "SupportedKind":
        data = _require_mapping(data, "supported kind")
        extra = _get(data, "extra", dict, None)
        return cls(
            x402_version=_get(data, "x402Version", int, DEFAULT_X402_VERSION),
            scheme=_get(data, "scheme", str),
            network=_get(data, "network", str),
            extra=dict(extra) if extra is not None else None,
        )


@dataclass(frozen=True)
class SupportedResponse:
    kinds: List[SupportedKind] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "SupportedResponse":
        data = _require_mapping(data, "supported response")
        return cls(
            kinds=[SupportedKind.from_dict(item) for item in _get(data, "kinds", list, [])]
        )
