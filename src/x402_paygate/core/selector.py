"""
Choosing which signer pays for which offer.
"""

from __future__ import annotations

import abc
import logging
from typing import List, Sequence, Tuple

from .errors import NoPaymentRequirements, NoValidSigner, PaymentError, SigningFailed
from .signer import Signer
from .types import PaymentPayload, PaymentRequirement

__all__ = ["DefaultPaymentSelector", "PaymentSelector"]

logger = logging.getLogger(__name__)


class PaymentSelector(abc.ABC):
    """Pluggable strategy used by :class:`x402_paygate.core.client.PaymentClient`."""

    @abc.abstractmethod
    def select_and_sign(
        self,
        requirements: Sequence[PaymentRequirement],
        signers: Sequence[Signer],
    ) -> PaymentPayload:
        ...


def _ranked(requirement: PaymentRequirement, signers: Sequence[Signer]) -> List[Signer]:
    def rank(signer: Signer) -> Tuple[int, int]:
        token = signer.token_for(requirement.asset)
        return signer.priority(), token.priority if token is not None else 0

    # sorted() is stable, so equal ranks keep configuration order
    return sorted(signers, key=rank)


class DefaultPaymentSelector(PaymentSelector):
    """
    Requirement-major, signer-minor search.

    Offers are tried in the order the server listed them. For each offer the
    signers are tried by ascending priority (then by the priority of the
    matching token, then configuration order). The first signer whose
    ``can_sign`` accepts an offer signs it, and whatever that returns or
    raises is final: the server's preference always outranks the client's.
    """

    def select_and_sign(
        self,
        requirements: Sequence[PaymentRequirement],
        signers: Sequence[Signer],
    ) -> PaymentPayload:
        if not signers:
            raise NoValidSigner("no signers configured")
        if not requirements:
            raise NoPaymentRequirements("no payment requirements provided")

        for requirement in requirements:
            for signer in _ranked(requirement, signers):
                if not signer.can_sign(requirement):
                    continue
                logger.info(
                    "Selected %s signer on %s for asset %s (amount %s)",
                    signer.scheme(),
                    signer.network(),
                    requirement.asset,
                    requirement.max_amount_required,
                )
                try:
                    return signer.sign(requirement)
                except PaymentError:
                    raise
                except Exception as exc:
                    raise SigningFailed(f"x402: payment signing failed: {exc}") from exc

        options = ", ".join(f"{req.network}:{req.asset}" for req in requirements)
        logger.warning("No signer can satisfy any offered requirement: %s", options)
        raise NoValidSigner(
            "no signer can satisfy any payment requirement",
            details={"options": options},
        )
