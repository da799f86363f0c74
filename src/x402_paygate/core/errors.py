"""
Error taxonomy for the x402 payment lifecycle.

Every component raises one of the kinds below instead of a bare failure;
only :class:`x402_paygate.core.gate.PaymentGate` turns a kind into an
outward HTTP status.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "AmountExceeded",
    "FacilitatorUnavailable",
    "InvalidRequirements",
    "MalformedEnvelope",
    "MalformedHeader",
    "NoPaymentRequirements",
    "NoValidSigner",
    "PaymentError",
    "PaymentRequired",
    "SettlementFailed",
    "SettlementTimeout",
    "SigningFailed",
    "UnsupportedVersion",
    "VerificationFailed",
    "VerificationTimeout",
]


class PaymentError(Exception):
    """Base class for every payment error kind."""

    code = "PAYMENT_ERROR"
    default_message = "x402: payment error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.details: Dict[str, Any] = dict(details or {})
        super().__init__(self.message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        rendered = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({rendered})"


class PaymentRequired(PaymentError):
    code = "PAYMENT_REQUIRED"
    default_message = "x402: payment required"


class MalformedEnvelope(PaymentError):
    """Raised when an envelope cannot be transport-decoded or parsed."""

    code = "MALFORMED_ENVELOPE"
    default_message = "x402: malformed envelope"


class MalformedHeader(MalformedEnvelope):
    """A malformed envelope received in the ``X-PAYMENT`` header."""

    code = "MALFORMED_HEADER"
    default_message = "x402: malformed payment header"


class UnsupportedVersion(PaymentError):
    code = "UNSUPPORTED_VERSION"
    default_message = "x402: unsupported protocol version"


class InvalidRequirements(PaymentError):
    code = "INVALID_REQUIREMENTS"
    default_message = "x402: invalid payment requirements"


class NoPaymentRequirements(InvalidRequirements):
    code = "NO_PAYMENT_REQUIREMENTS"
    default_message = "x402: no payment requirements offered"


class NoValidSigner(PaymentError):
    code = "NO_VALID_SIGNER"
    default_message = "x402: no signer can satisfy payment requirements"


class AmountExceeded(PaymentError):
    code = "AMOUNT_EXCEEDED"
    default_message = "x402: payment amount exceeds per-call limit"


class SigningFailed(PaymentError):
    code = "SIGNING_FAILED"
    default_message = "x402: payment signing failed"


class VerificationFailed(PaymentError):
    code = "VERIFICATION_FAILED"
    default_message = "x402: payment verification failed"


class SettlementFailed(PaymentError):
    code = "SETTLEMENT_FAILED"
    default_message = "x402: payment settlement failed"


class FacilitatorUnavailable(PaymentError):
    code = "FACILITATOR_UNAVAILABLE"
    default_message = "x402: facilitator service unavailable"


class VerificationTimeout(FacilitatorUnavailable):
    code = "VERIFICATION_TIMEOUT"
    default_message = "x402: payment verification timed out"


class SettlementTimeout(FacilitatorUnavailable):
    code = "SETTLEMENT_TIMEOUT"
    default_message = "x402: payment settlement timed out"
