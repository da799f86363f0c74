"""
The signer capability: anything that can turn a payment requirement into a
signed :class:`PaymentPayload` for one network and scheme.
"""

from __future__ import annotations

import abc
import logging
from typing import Any, Dict, Iterable, List, Optional

from .errors import AmountExceeded, InvalidRequirements, NoValidSigner, PaymentError, SigningFailed
from .types import PaymentPayload, PaymentRequirement, TokenConfig, parse_atomic_amount

__all__ = ["BaseSigner", "Signer"]

logger = logging.getLogger(__name__)


class Signer(abc.ABC):
    """Interface the selector and payment client rely on."""

    @abc.abstractmethod
    def network(self) -> str:
        ...

    @abc.abstractmethod
    def scheme(self) -> str:
        ...

    @abc.abstractmethod
    def can_sign(self, requirement: PaymentRequirement) -> bool:
        """Side-effect free check that :meth:`sign` would accept ``requirement``."""

    @abc.abstractmethod
    def sign(self, requirement: PaymentRequirement) -> PaymentPayload:
        ...

    @abc.abstractmethod
    def priority(self) -> int:
        """Lower numbers are preferred."""

    @abc.abstractmethod
    def tokens(self) -> List[TokenConfig]:
        ...

    @abc.abstractmethod
    def max_amount(self) -> Optional[int]:
        """Per-call ceiling in atomic units, or ``None`` for no limit."""

    def token_for(self, asset: str) -> Optional[TokenConfig]:
        """The configured token for ``asset`` (case-insensitive), if any."""
        wanted = asset.lower()
        for token in self.tokens():
            if token.address.lower() == wanted:
                return token
        return None


class BaseSigner(Signer):
    """
    Shared eligibility rules for concrete signers.

    Subclasses supply :meth:`_build_payload`; ``can_sign`` and ``sign``
    enforce network, scheme, token and amount-ceiling checks before any
    chain specific work happens.
    """

    def __init__(
        self,
        *,
        network: str,
        tokens: Iterable[TokenConfig],
        scheme: str = "exact",
        priority: int = 0,
        max_amount: Optional[int] = None,
        x402_version: int = 1,
    ) -> None:
        token_list = list(tokens)
        if not network:
            raise ValueError("network must not be empty")
        if not token_list:
            raise ValueError("at least one token must be configured")
        if max_amount is not None and max_amount < 0:
            raise ValueError("max_amount must be non-negative")
        self._network = network
        self._scheme = scheme
        self._tokens = token_list
        self._priority = priority
        self._max_amount = max_amount
        self.x402_version = x402_version

    def network(self) -> str:
        return self._network

    def scheme(self) -> str:
        return self._scheme

    def priority(self) -> int:
        return self._priority

    def tokens(self) -> List[TokenConfig]:
        return list(self._tokens)

    def max_amount(self) -> Optional[int]:
        return self._max_amount

    def _supports(self, requirement: PaymentRequirement) -> bool:
        return (
            requirement.network == self._network
            and requirement.scheme == self._scheme
            and self.token_for(requirement.asset) is not None
        )

    def _within_limit(self, amount: int) -> bool:
        return self._max_amount is None or amount <= self._max_amount

    def can_sign(self, requirement: PaymentRequirement) -> bool:
        if not self._supports(requirement):
            return False
        try:
            amount = requirement.amount
        except InvalidRequirements:
            return False
        return self._within_limit(amount)

    def sign(self, requirement: PaymentRequirement) -> PaymentPayload:
        if not self._supports(requirement):
            raise NoValidSigner(
                "signer cannot satisfy requirement",
                details={"network": requirement.network, "asset": requirement.asset},
            )
        try:
            amount = parse_atomic_amount(requirement.max_amount_required)
        except InvalidRequirements as exc:
            raise NoValidSigner(str(exc)) from exc
        if not self._within_limit(amount):
            raise AmountExceeded(
                details={"amount": amount, "max_amount": self._max_amount}
            )

        token = self.token_for(requirement.asset)
        try:
            payload = self._build_payload(requirement, token, amount)
        except PaymentError:
            raise
        except Exception as exc:
            logger.error(
                "Failed to build %s payload on %s: %s", self._scheme, self._network, exc
            )
            raise SigningFailed(f"x402: payment signing failed: {exc}") from exc

        return PaymentPayload(
            x402_version=self.x402_version,
            scheme=self._scheme,
            network=self._network,
            payload=payload,
        )

    @abc.abstractmethod
    def _build_payload(
        self,
        requirement: PaymentRequirement,
        token: TokenConfig,
        amount: int,
    ) -> Dict[str, Any]:
        """Produce the scheme specific ``payload`` mapping."""
