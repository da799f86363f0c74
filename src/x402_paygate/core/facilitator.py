"""
HTTP client for x402 facilitators (``/verify``, ``/settle``, ``/supported``).
"""

from __future__ import annotations

import abc
import logging
import math
import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

import requests

from .errors import (
    FacilitatorUnavailable,
    PaymentError,
    SettlementFailed,
    SettlementTimeout,
    VerificationFailed,
    VerificationTimeout,
)
from .types import (
    PaymentPayload,
    PaymentRequirement,
    SettlementResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
)

__all__ = [
    "AuthorizationProvider",
    "Facilitator",
    "FacilitatorClient",
    "FacilitatorEndpoint",
    "TimeoutConfig",
    "enrich_requirements",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")

AuthorizationProvider = Callable[[], str]


@dataclass(frozen=True)
class TimeoutConfig:
    """Deadlines, in seconds, for facilitator calls."""

    verify_timeout: float = 5.0
    settle_timeout: float = 60.0

    def validate(self) -> None:
        if not (math.isfinite(self.verify_timeout) and math.isfinite(self.settle_timeout)):
            raise ValueError("timeouts must be finite numbers")
        if self.verify_timeout <= 0:
            raise ValueError("verify_timeout must be positive")
        if self.settle_timeout <= 0:
            raise ValueError("settle_timeout must be positive")
        if self.settle_timeout < self.verify_timeout:
            raise ValueError("settle_timeout must not be shorter than verify_timeout")


class Facilitator(abc.ABC):
    """What the payment gate needs from a verification/settlement service."""

    @abc.abstractmethod
    def verify(
        self, requirement: PaymentRequirement, payment: PaymentPayload
    ) -> VerifyResponse:
        ...

    @abc.abstractmethod
    def settle(
        self, requirement: PaymentRequirement, payment: PaymentPayload
    ) -> SettlementResponse:
        ...

    @abc.abstractmethod
    def supported(self) -> SupportedResponse:
        ...


@dataclass(frozen=True)
class FacilitatorEndpoint:
    url: str
    authorization: Optional[str] = None
    authorization_provider: Optional[AuthorizationProvider] = None

    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = (
            self.authorization_provider()
            if self.authorization_provider is not None
            else self.authorization
        )
        if token:
            headers["Authorization"] = token
        return headers


def _request_body(
    requirement: PaymentRequirement, payment: PaymentPayload
) -> Dict[str, Any]:
    return {
        "x402Version": payment.x402_version,
        "paymentPayload": payment.to_dict(),
        "paymentRequirements": requirement.to_dict(),
    }


def _call_with_deadline(func: Callable[[], T], timeout: float) -> T:
    """
    Run ``func`` on a daemon thread and wait at most ``timeout`` seconds.

    ``requests`` timeouts bound each socket operation, not the whole
    exchange, so a peer that trickles its body can outlast them. On expiry
    the worker is abandoned and ``requests.Timeout`` is raised.
    """
    outcome: "queue.Queue[Tuple[bool, Any]]" = queue.Queue(maxsize=1)

    def run() -> None:
        try:
            outcome.put((True, func()))
        except Exception as exc:
            outcome.put((False, exc))

    worker = threading.Thread(target=run, name="x402-facilitator-call", daemon=True)
    worker.start()
    try:
        succeeded, value = outcome.get(timeout=timeout)
    except queue.Empty:
        raise requests.Timeout(f"no complete response within {timeout:.3f}s") from None
    if not succeeded:
        raise value
    return value


def enrich_requirements(
    requirements: Sequence[PaymentRequirement],
    kinds: Sequence[SupportedKind],
) -> List[PaymentRequirement]:
    """
    Merge each supported kind's ``extra`` into the matching requirements.

    Keys the server already set win over the facilitator's values.
    """
    by_key = {(kind.network, kind.scheme): kind for kind in kinds}
    enriched: List[PaymentRequirement] = []
    for requirement in requirements:
        kind = by_key.get((requirement.network, requirement.scheme))
        if kind is None or not kind.extra:
            enriched.append(requirement)
            continue
        merged = dict(kind.extra)
        merged.update(requirement.extra or {})
        enriched.append(requirement.with_extra(merged))
    return enriched


class FacilitatorClient(Facilitator):
    """
    Talks to a primary facilitator and, optionally, one fallback.

    A call that fails in transport (connection error, timeout, 5xx or an
    unreadable body) is repeated once against the fallback. Settlement is
    not guaranteed to be idempotent on the facilitator side, so there is
    never more than that single extra attempt.
    """

    def __init__(
        self,
        url: str,
        *,
        fallback_url: Optional[str] = None,
        timeouts: Optional[TimeoutConfig] = None,
        session: Optional[requests.Session] = None,
        authorization: Optional[str] = None,
        authorization_provider: Optional[AuthorizationProvider] = None,
        fallback_authorization: Optional[str] = None,
        fallback_authorization_provider: Optional[AuthorizationProvider] = None,
    ) -> None:
        if not url:
            raise ValueError("facilitator url must not be empty")
        self.timeouts = timeouts or TimeoutConfig()
        self.timeouts.validate()
        self.session = session or requests.Session()
        self.primary = FacilitatorEndpoint(
            url=url.rstrip("/"),
            authorization=authorization,
            authorization_provider=authorization_provider,
        )
        self.fallback: Optional[FacilitatorEndpoint] = None
        if fallback_url:
            self.fallback = FacilitatorEndpoint(
                url=fallback_url.rstrip("/"),
                authorization=fallback_authorization,
                authorization_provider=fallback_authorization_provider,
            )

    def _send(
        self,
        endpoint: FacilitatorEndpoint,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]],
        deadline: float,
        timeout_error: Type[FacilitatorUnavailable],
        rejected_error: Type[PaymentError],
    ) -> Any:
        url = f"{endpoint.url}{path}"
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise timeout_error(details={"url": url})
        try:
            headers = endpoint.headers()
        except Exception as exc:
            raise FacilitatorUnavailable(
                f"x402: facilitator authorization failed: {exc}", details={"url": url}
            ) from exc
        try:
            response = _call_with_deadline(
                lambda: self.session.request(
                    method,
                    url,
                    json=body,
                    headers=headers,
                    timeout=remaining,
                ),
                remaining,
            )
        except requests.Timeout as exc:
            raise timeout_error(details={"url": url, "timeout": round(remaining, 3)}) from exc
        except requests.RequestException as exc:
            raise FacilitatorUnavailable(
                f"x402: facilitator service unavailable: {exc}", details={"url": url}
            ) from exc

        if response.status_code >= 500:
            raise FacilitatorUnavailable(
                f"Facilitator responded with {response.status_code}: {response.text}",
                details={"url": url},
            )
        if response.status_code >= 400:
            raise rejected_error(
                f"Facilitator responded with {response.status_code}: {response.text}",
                details={"url": url},
            )
        try:
            return response.json()
        except ValueError as exc:
            raise FacilitatorUnavailable(
                f"Failed to parse JSON from facilitator at {url}: {response.text}"
            ) from exc

    def _attempt(
        self,
        endpoint: FacilitatorEndpoint,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]],
        parse: Callable[[Any], T],
        deadline: float,
        timeout_error: Type[FacilitatorUnavailable],
        rejected_error: Type[PaymentError],
    ) -> T:
        data = self._send(endpoint, method, path, body, deadline, timeout_error, rejected_error)
        try:
            return parse(data)
        except (TypeError, ValueError) as exc:
            raise FacilitatorUnavailable(
                f"Unexpected response from facilitator at {endpoint.url}{path}: {exc}"
            ) from exc

    def _call(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]],
        parse: Callable[[Any], T],
        timeout: float,
        timeout_error: Type[FacilitatorUnavailable],
        rejected_error: Type[PaymentError],
    ) -> T:
        # one budget covers the primary attempt and the fallback
        deadline = time.monotonic() + timeout
        try:
            return self._attempt(
                self.primary, method, path, body, parse, deadline, timeout_error, rejected_error
            )
        except FacilitatorUnavailable as exc:
            if self.fallback is None:
                raise
            logger.warning(
                "Primary facilitator %s failed on %s (%s); trying fallback %s",
                self.primary.url,
                path,
                exc,
                self.fallback.url,
            )
        return self._attempt(
            self.fallback, method, path, body, parse, deadline, timeout_error, rejected_error
        )

    def verify(
        self, requirement: PaymentRequirement, payment: PaymentPayload
    ) -> VerifyResponse:
        logger.info(
            "Submitting payment for verification to %s (network %s)",
            self.primary.url,
            payment.network,
        )
        return self._call(
            "POST",
            "/verify",
            _request_body(requirement, payment),
            VerifyResponse.from_dict,
            self.timeouts.verify_timeout,
            VerificationTimeout,
            VerificationFailed,
        )

    def settle(
        self, requirement: PaymentRequirement, payment: PaymentPayload
    ) -> SettlementResponse:
        logger.info(
            "Submitting payment for settlement to %s (network %s)",
            self.primary.url,
            payment.network,
        )
        return self._call(
            "POST",
            "/settle",
            _request_body(requirement, payment),
            SettlementResponse.from_dict,
            self.timeouts.settle_timeout,
            SettlementTimeout,
            SettlementFailed,
        )

    def supported(self) -> SupportedResponse:
        return self._call(
            "GET",
            "/supported",
            None,
            SupportedResponse.from_dict,
            self.timeouts.verify_timeout,
            FacilitatorUnavailable,
            FacilitatorUnavailable,
        )

    def enrich_requirements(
        self, requirements: Sequence[PaymentRequirement]
    ) -> List[PaymentRequirement]:
        return enrich_requirements(requirements, self.supported().kinds)
