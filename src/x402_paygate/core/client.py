"""
HTTP client that pays for x402-protected resources.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

import requests

from .envelope import (
    PAYMENT_HEADER,
    PAYMENT_RESPONSE_HEADER,
    decode_settlement,
    encode_payment,
)
from .errors import InvalidRequirements, NoPaymentRequirements, PaymentError, PaymentRequired
from .selector import DefaultPaymentSelector, PaymentSelector
from .signer import Signer
from .types import PaymentRequirement, PaymentRequirementsResponse, SettlementResponse

__all__ = [
    "PaymentCallback",
    "PaymentClient",
    "PaymentEvent",
    "PaymentEventType",
    "get_settlement",
    "parse_payment_required",
]

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 120.0


class PaymentEventType(enum.Enum):
    ATTEMPT = "attempt"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class PaymentEvent:
    type: PaymentEventType
    url: str
    network: str = ""
    scheme: str = ""
    error: Optional[PaymentError] = None
    settlement: Optional[SettlementResponse] = None


PaymentCallback = Callable[[PaymentEvent], None]


def get_settlement(response: requests.Response) -> Optional[SettlementResponse]:
    """
    Decode the ``X-PAYMENT-RESPONSE`` header of ``response``.

    Returns ``None`` when the header is absent; raises
    :class:`MalformedEnvelope` when it cannot be decoded.
    """
    header = response.headers.get(PAYMENT_RESPONSE_HEADER)
    if not header:
        return None
    return decode_settlement(header)


def parse_payment_required(response: requests.Response) -> List[PaymentRequirement]:
    """The offer set of a 402 response, in the server's order."""
    try:
        body = PaymentRequirementsResponse.from_dict(response.json())
    except (TypeError, ValueError) as exc:
        raise InvalidRequirements(
            f"x402: invalid payment requirements: {exc}",
            details={"url": response.url},
        ) from exc
    if not body.accepts:
        raise NoPaymentRequirements(details={"url": response.url})
    for requirement in body.accepts:
        requirement.validate()
    return body.accepts


class PaymentClient:
    """
    Wraps a :class:`requests.Session` and answers 402 responses once.

    A request that comes back with ``402 Payment Required`` is signed by the
    selector against the returned offers and repeated a single time with an
    ``X-PAYMENT`` header. Any other status is returned untouched.
    """

    def __init__(
        self,
        signers: Sequence[Signer],
        *,
        selector: Optional[PaymentSelector] = None,
        session: Optional[requests.Session] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        on_payment_attempt: Optional[PaymentCallback] = None,
        on_payment_success: Optional[PaymentCallback] = None,
        on_payment_failure: Optional[PaymentCallback] = None,
    ) -> None:
        if request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        self.signers: List[Signer] = list(signers)
        self.selector = selector or DefaultPaymentSelector()
        self.session = session or requests.Session()
        self.request_timeout = request_timeout
        self.on_payment_attempt = on_payment_attempt
        self.on_payment_success = on_payment_success
        self.on_payment_failure = on_payment_failure

    def _emit(self, callback: Optional[PaymentCallback], event: PaymentEvent) -> None:
        if callback is not None:
            callback(event)

    def _fail(self, url: str, error: PaymentError, network: str = "", scheme: str = "") -> None:
        logger.warning("Payment for %s failed: %s", url, error)
        self._emit(
            self.on_payment_failure,
            PaymentEvent(
                type=PaymentEventType.FAILURE,
                url=url,
                network=network,
                scheme=scheme,
                error=error,
            ),
        )

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", self.request_timeout)
        headers = dict(kwargs.pop("headers", None) or {})

        response = self.session.request(method, url, headers=headers, **kwargs)
        if response.status_code != 402:
            return response

        logger.info("Payment required for %s", url)
        try:
            requirements = parse_payment_required(response)
            payment = self.selector.select_and_sign(requirements, self.signers)
        except PaymentError as exc:
            self._fail(url, exc)
            raise

        self._emit(
            self.on_payment_attempt,
            PaymentEvent(
                type=PaymentEventType.ATTEMPT,
                url=url,
                network=payment.network,
                scheme=payment.scheme,
            ),
        )
        paid_headers = dict(headers)
        paid_headers[PAYMENT_HEADER] = encode_payment(payment)
        paid = self.session.request(method, url, headers=paid_headers, **kwargs)

        if paid.status_code >= 400:
            error_kind = PaymentRequired if paid.status_code == 402 else PaymentError
            self._fail(
                url,
                error_kind(
                    f"x402: paid request answered {paid.status_code}",
                    details={"url": url},
                ),
                payment.network,
                payment.scheme,
            )
            return paid

        try:
            settlement = get_settlement(paid)
        except PaymentError as exc:
            self._fail(url, exc, payment.network, payment.scheme)
            raise

        if settlement is not None:
            logger.info(
                "Payment settled on %s. Transaction hash: %s",
                settlement.network,
                settlement.transaction,
            )
        self._emit(
            self.on_payment_success,
            PaymentEvent(
                type=PaymentEventType.SUCCESS,
                url=url,
                network=payment.network,
                scheme=payment.scheme,
                settlement=settlement,
            ),
        )
        return paid

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", url, **kwargs)

    def close(self) -> None:
        self.session.close()
