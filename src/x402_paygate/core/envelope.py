"""
Transport encoding for x402 messages carried in HTTP headers.

A message is serialised to compact JSON and then base64 encoded. Decoding
is strict and fails closed: anything that is not valid base64, valid JSON
or a structurally complete message raises :class:`MalformedEnvelope`.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Callable, Dict, TypeVar

from .errors import MalformedEnvelope
from .types import PaymentPayload, PaymentRequirementsResponse, SettlementResponse

__all__ = [
    "PAYMENT_HEADER",
    "PAYMENT_RESPONSE_HEADER",
    "decode_json",
    "decode_payment",
    "decode_requirements",
    "decode_settlement",
    "encode_json",
    "encode_payment",
    "encode_requirements",
    "encode_settlement",
]

T = TypeVar("T")

PAYMENT_HEADER = "X-PAYMENT"
PAYMENT_RESPONSE_HEADER = "X-PAYMENT-RESPONSE"


def encode_json(body: Dict[str, Any]) -> str:
    serialized = json.dumps(body, separators=(",", ":"), sort_keys=True)
    return base64.b64encode(serialized.encode("utf-8")).decode("ascii")


def decode_json(encoded: str) -> Any:
    if not isinstance(encoded, str) or not encoded.strip():
        raise MalformedEnvelope("envelope is empty")
    try:
        raw = base64.b64decode(encoded.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedEnvelope("invalid base64 encoding") from exc
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedEnvelope("invalid JSON") from exc


def _decode(encoded: str, parse: Callable[[Any], T], what: str) -> T:
    data = decode_json(encoded)
    try:
        return parse(data)
    except (TypeError, ValueError) as exc:
        raise MalformedEnvelope(f"invalid {what}: {exc}") from exc


def encode_payment(payment: PaymentPayload) -> str:
    return encode_json(payment.to_dict())


def decode_payment(encoded: str) -> PaymentPayload:
    return _decode(encoded, PaymentPayload.from_dict, "payment payload")


def encode_settlement(settlement: SettlementResponse) -> str:
    return encode_json(settlement.to_dict())


def decode_settlement(encoded: str) -> SettlementResponse:
    return _decode(encoded, SettlementResponse.from_dict, "settlement response")


def encode_requirements(requirements: PaymentRequirementsResponse) -> str:
    return encode_json(requirements.to_dict())


def decode_requirements(encoded: str) -> PaymentRequirementsResponse:
    return _decode(encoded, PaymentRequirementsResponse.from_dict, "payment requirements")
