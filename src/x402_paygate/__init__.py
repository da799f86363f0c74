"""
Public facade for the x402 payment gate package.

The module re-exports the most useful pieces for integrators so they can
``from x402_paygate import ...`` without navigating the package.
"""

from .api import create_evm_signer, create_gate, create_payment_client
from .core import (
    BaseSigner,
    ConfigError,
    DefaultPaymentSelector,
    EVMSigner,
    FacilitatorClient,
    GateConfig,
    GateRequest,
    GateResponse,
    GateState,
    PaymentClient,
    PaymentContext,
    PaymentError,
    PaymentGate,
    PaymentPayload,
    PaymentRequirement,
    SettlementResponse,
    Signer,
    TimeoutConfig,
    TokenConfig,
    VerifyResponse,
    get_settlement,
    load_gate_config,
)

__all__ = (
    "BaseSigner",
    "ConfigError",
    "DefaultPaymentSelector",
    "EVMSigner",
    "FacilitatorClient",
    "GateConfig",
    "GateRequest",
    "GateResponse",
    "GateState",
    "PaymentClient",
    "PaymentContext",
    "PaymentError",
    "PaymentGate",
    "PaymentPayload",
    "PaymentRequirement",
    "SettlementResponse",
    "Signer",
    "TimeoutConfig",
    "TokenConfig",
    "VerifyResponse",
    "create_evm_signer",
    "create_gate",
    "create_payment_client",
    "get_settlement",
    "load_gate_config",
)
