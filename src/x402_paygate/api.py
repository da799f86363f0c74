"""
Public, high-level helpers for protecting resources and paying for them.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence

import requests

from .core.chains import KNOWN_CHAINS, usdc_token_config
from .core.client import PaymentCallback, PaymentClient
from .core.config import GateConfig, load_gate_config
from .core.evm import EVMSigner
from .core.facilitator import Facilitator
from .core.gate import PaymentGate
from .core.selector import PaymentSelector
from .core.signer import Signer
from .core.types import TokenConfig

__all__ = ["create_evm_signer", "create_gate", "create_payment_client"]


def create_gate(
    *,
    config: Optional[GateConfig] = None,
    facilitator: Optional[Facilitator] = None,
    session: Optional[requests.Session] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    **parameters: Any,
) -> PaymentGate:
    """
    Construct a :class:`PaymentGate`.

    Callers can either supply a ready-made :class:`GateConfig` or let the
    helper assemble one from environment data. ``facilitator`` defaults to a
    :class:`FacilitatorClient` built from the configuration and ``session``.
    """
    if config is not None:
        extras = (overrides, base, *parameters.values())
        if any(item is not None and item != {} for item in extras):
            raise ValueError(
                "Provide either a pre-built GateConfig or individual parameters, not both."
            )
        cfg = config
        cfg.validate()
    else:
        cfg = load_gate_config(env_file=env_file, overrides=overrides, base=base, **parameters)

    if facilitator is None:
        facilitator = cfg.build_facilitator(session=session)
    return PaymentGate.from_config(cfg, facilitator=facilitator)


def create_evm_signer(
    private_key: str,
    network: str = "bsc",
    *,
    tokens: Optional[Iterable[TokenConfig]] = None,
    priority: int = 0,
    max_amount: Optional[int] = None,
) -> EVMSigner:
    """
    Build an :class:`EVMSigner`, defaulting ``tokens`` to the network's USDC.
    """
    if tokens is None:
        chain = KNOWN_CHAINS.get(network)
        if chain is None:
            raise ValueError(f"no default token for network '{network}'; pass tokens explicitly")
        tokens = [usdc_token_config(chain)]
    return EVMSigner(
        private_key,
        network,
        tokens,
        priority=priority,
        max_amount=max_amount,
    )


def create_payment_client(
    signers: Sequence[Signer],
    *,
    selector: Optional[PaymentSelector] = None,
    session: Optional[requests.Session] = None,
    request_timeout: float = 120.0,
    on_payment_attempt: Optional[PaymentCallback] = None,
    on_payment_success: Optional[PaymentCallback] = None,
    on_payment_failure: Optional[PaymentCallback] = None,
) -> PaymentClient:
    if not signers:
        raise ValueError("at least one signer is required")
    return PaymentClient(
        signers,
        selector=selector,
        session=session,
        request_timeout=request_timeout,
        on_payment_attempt=on_payment_attempt,
        on_payment_success=on_payment_success,
        on_payment_failure=on_payment_failure,
    )
