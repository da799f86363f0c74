"""
Server-side payment gate.

:class:`PaymentGate` decides, for one incoming request, whether the
protected operation may run. Each request gets its own :class:`GateRun`
which walks the states below and ends in either ``GRANTED`` or
``REJECTED``::

    NO_AUTHORIZATION -> AUTHORIZATION_PARSED -> VERIFY_PENDING
        -> VERIFY_SKIPPED -> GRANTED                 (verify_only)
        -> SETTLE_PENDING -> SETTLED -> GRANTED
    any non-terminal state -> REJECTED

The gate is also the only place where an error kind becomes an HTTP status.
Framework adapters translate their request into a :class:`GateRequest` and
the resulting :class:`GateResponse` back into their own response type.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from .config import GateConfig
from .envelope import (
    PAYMENT_HEADER,
    PAYMENT_RESPONSE_HEADER,
    decode_payment,
    encode_settlement,
)
from .errors import (
    FacilitatorUnavailable,
    InvalidRequirements,
    MalformedEnvelope,
    MalformedHeader,
    NoPaymentRequirements,
    PaymentError,
    PaymentRequired,
    SettlementFailed,
    UnsupportedVersion,
    VerificationFailed,
)
from .facilitator import Facilitator, enrich_requirements
from .types import (
    DEFAULT_X402_VERSION,
    PaymentPayload,
    PaymentRequirement,
    PaymentRequirementsResponse,
    SettlementResponse,
    VerifyResponse,
)

__all__ = [
    "GateOutcome",
    "GateRequest",
    "GateResponse",
    "GateRun",
    "GateState",
    "PaymentContext",
    "PaymentGate",
]

logger = logging.getLogger(__name__)


class GateState(enum.Enum):
    NO_AUTHORIZATION = "no_authorization"
    AUTHORIZATION_PARSED = "authorization_parsed"
    VERIFY_PENDING = "verify_pending"
    VERIFY_SKIPPED = "verify_skipped"
    SETTLE_PENDING = "settle_pending"
    SETTLED = "settled"
    GRANTED = "granted"
    REJECTED = "rejected"


_TERMINAL = frozenset({GateState.GRANTED, GateState.REJECTED})

_TRANSITIONS = {
    GateState.NO_AUTHORIZATION: {GateState.AUTHORIZATION_PARSED},
    GateState.AUTHORIZATION_PARSED: {GateState.VERIFY_PENDING},
    GateState.VERIFY_PENDING: {GateState.VERIFY_SKIPPED, GateState.SETTLE_PENDING},
    GateState.VERIFY_SKIPPED: {GateState.GRANTED},
    GateState.SETTLE_PENDING: {GateState.SETTLED},
    GateState.SETTLED: {GateState.GRANTED},
}

# kind -> (status, re-emit the offer set)
_STATUS_BY_KIND: Dict[Type[PaymentError], Tuple[int, bool]] = {
    PaymentRequired: (402, True),
    MalformedEnvelope: (400, False),
    UnsupportedVersion: (400, False),
    InvalidRequirements: (402, True),
    VerificationFailed: (402, True),
    SettlementFailed: (503, False),
    FacilitatorUnavailable: (503, False),
}


def _status_for(error: PaymentError) -> Tuple[int, bool]:
    for kind in type(error).__mro__:
        if kind in _STATUS_BY_KIND:
            return _STATUS_BY_KIND[kind]
    return 500, False


@dataclass(frozen=True)
class GateRequest:
    """The parts of an HTTP request the gate looks at."""

    url: str
    path: str = "/"
    headers: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


@dataclass
class GateResponse:
    status_code: int
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentContext:
    """Payment facts handed to the protected operation for one request."""

    requirement: PaymentRequirement
    payment: PaymentPayload
    verification: VerifyResponse
    settlement: Optional[SettlementResponse] = None

    @property
    def payer(self) -> str:
        return self.verification.payer


@dataclass(frozen=True)
class GateOutcome:
    state: GateState
    history: Tuple[GateState, ...]
    context: Optional[PaymentContext] = None
    error: Optional[PaymentError] = None
    response: Optional[GateResponse] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def granted(self) -> bool:
        return self.state is GateState.GRANTED


class GateRun:
    """State machine for a single request; never shared between requests."""

    def __init__(self) -> None:
        self.state = GateState.NO_AUTHORIZATION
        self.history: List[GateState] = [self.state]

    def advance(self, state: GateState) -> None:
        if self.state in _TERMINAL:
            raise RuntimeError(f"gate run already finished in {self.state.value}")
        if state is not GateState.REJECTED and state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)


class PaymentGate:
    def __init__(
        self,
        requirements: Sequence[PaymentRequirement],
        facilitator: Facilitator,
        *,
        verify_only: bool = False,
        protocol_version: int = DEFAULT_X402_VERSION,
    ) -> None:
        if not requirements:
            raise NoPaymentRequirements("a payment gate needs at least one requirement")
        for requirement in requirements:
            requirement.validate()
        self.requirements: Tuple[PaymentRequirement, ...] = tuple(requirements)
        self.facilitator = facilitator
        self.verify_only = verify_only
        self.protocol_version = protocol_version

    @classmethod
    def from_config(
        cls,
        config: GateConfig,
        *,
        facilitator: Optional[Facilitator] = None,
    ) -> "PaymentGate":
        if facilitator is None:
            facilitator = config.build_facilitator()
        requirements: Sequence[PaymentRequirement] = config.requirements
        if config.enrich_requirements:
            try:
                requirements = enrich_requirements(requirements, facilitator.supported().kinds)
                logger.info("Payment requirements enriched from facilitator (%d)", len(requirements))
            except PaymentError as exc:
                logger.warning("Failed to enrich payment requirements from facilitator: %s", exc)
        return cls(
            requirements,
            facilitator,
            verify_only=config.verify_only,
            protocol_version=config.protocol_version,
        )

    def offers_for(self, request: GateRequest) -> List[PaymentRequirement]:
        """The offer set for ``request``, with ``resource`` pointing at it."""
        description = f"Payment required for {request.path}"
        return [
            requirement.with_resource(requirement.resource or request.url, description)
            for requirement in self.requirements
        ]

    def payment_required_body(
        self, offers: Sequence[PaymentRequirement], message: str
    ) -> Dict[str, Any]:
        return PaymentRequirementsResponse(
            x402_version=self.protocol_version,
            error=message,
            accepts=list(offers),
        ).to_dict()

    def _reject(
        self,
        run: GateRun,
        error: PaymentError,
        offers: Sequence[PaymentRequirement],
    ) -> GateOutcome:
        run.advance(GateState.REJECTED)
        status, emit_offers = _status_for(error)
        if emit_offers:
            body = self.payment_required_body(offers, error.message)
        else:
            body = {"x402Version": self.protocol_version, "error": error.message}
        return GateOutcome(
            state=run.state,
            history=tuple(run.history),
            error=error,
            response=GateResponse(
                status_code=status,
                body=body,
                headers={"Content-Type": "application/json"},
            ),
        )

    def _parse(self, header: str) -> PaymentPayload:
        try:
            payment = decode_payment(header)
        except MalformedEnvelope as exc:
            raise MalformedHeader(f"x402: malformed payment header: {exc.message}") from exc
        if payment.x402_version != self.protocol_version:
            raise UnsupportedVersion(
                details={"received": payment.x402_version, "expected": self.protocol_version}
            )
        return payment

    def process(self, request: GateRequest) -> GateOutcome:
        run = GateRun()
        offers = self.offers_for(request)

        header = (request.header(PAYMENT_HEADER) or "").strip()
        if not header:
            logger.info("No payment header provided for %s", request.path)
            return self._reject(
                run, PaymentRequired("Payment required for this resource"), offers
            )

        run.advance(GateState.AUTHORIZATION_PARSED)
        try:
            payment = self._parse(header)
        except (MalformedHeader, UnsupportedVersion) as exc:
            logger.warning("Invalid payment header for %s: %s", request.path, exc)
            return self._reject(run, exc, offers)

        requirement = next((offer for offer in offers if offer.matches(payment)), None)
        if requirement is None:
            logger.warning(
                "No requirement matches scheme=%s network=%s", payment.scheme, payment.network
            )
            return self._reject(
                run,
                InvalidRequirements(
                    "No offered requirement matches the submitted payment",
                    details={"scheme": payment.scheme, "network": payment.network},
                ),
                offers,
            )

        run.advance(GateState.VERIFY_PENDING)
        logger.info("Verifying payment scheme=%s network=%s", payment.scheme, payment.network)
        try:
            verification = self.facilitator.verify(requirement, payment)
        except PaymentError as exc:
            logger.error("Facilitator verification failed: %s", exc)
            return self._reject(run, exc, offers)
        if not verification.is_valid:
            logger.warning("Payment verification failed: %s", verification.invalid_reason)
            return self._reject(
                run,
                VerificationFailed(
                    verification.invalid_reason or VerificationFailed.default_message,
                    details={"payer": verification.payer},
                ),
                offers,
            )
        logger.info("Payment verified for payer %s", verification.payer)

        if self.verify_only:
            run.advance(GateState.VERIFY_SKIPPED)
            run.advance(GateState.GRANTED)
            return GateOutcome(
                state=run.state,
                history=tuple(run.history),
                context=PaymentContext(requirement, payment, verification),
            )

        run.advance(GateState.SETTLE_PENDING)
        try:
            settlement = self.facilitator.settle(requirement, payment)
        except PaymentError as exc:
            logger.error("Settlement failed: %s", exc)
            return self._reject(run, exc, offers)
        if not settlement.success:
            logger.warning("Settlement unsuccessful: %s", settlement.error_reason)
            return self._reject(
                run,
                SettlementFailed(
                    settlement.error_reason or SettlementFailed.default_message,
                    details={"payer": settlement.payer or verification.payer},
                ),
                offers,
            )

        run.advance(GateState.SETTLED)
        logger.info(
            "Payment settled on %s. Transaction hash: %s",
            settlement.network,
            settlement.transaction,
        )
        run.advance(GateState.GRANTED)
        return GateOutcome(
            state=run.state,
            history=tuple(run.history),
            context=PaymentContext(requirement, payment, verification, settlement),
            headers={PAYMENT_RESPONSE_HEADER: encode_settlement(settlement)},
        )

    def handle(
        self,
        request: GateRequest,
        operation: Callable[[GateRequest, PaymentContext], GateResponse],
    ) -> GateResponse:
        """Run the gate and, only when granted, the protected ``operation``."""
        outcome = self.process(request)
        if not outcome.granted:
            return outcome.response
        response = operation(request, outcome.context)
        response.headers.update(outcome.headers)
        return response
