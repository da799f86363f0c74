"""
Core primitives that implement the x402 payment lifecycle.
"""

from .chains import (
    AVALANCHE,
    AVALANCHE_FUJI,
    BASE,
    BASE_SEPOLIA,
    BSC,
    KNOWN_CHAINS,
    POLYGON,
    POLYGON_AMOY,
    SOLANA,
    SOLANA_DEVNET,
    ChainConfig,
    NetworkType,
    chain_id_for,
    usdc_token_config,
    validate_network,
)
from .client import PaymentClient, PaymentEvent, PaymentEventType, get_settlement
from .config import ConfigError, GateConfig, load_gate_config
from .envelope import (
    PAYMENT_HEADER,
    PAYMENT_RESPONSE_HEADER,
    decode_payment,
    decode_requirements,
    decode_settlement,
    encode_payment,
    encode_requirements,
    encode_settlement,
)
from .environment import GateEnvironment, build_environment
from .errors import (
    AmountExceeded,
    FacilitatorUnavailable,
    InvalidRequirements,
    MalformedEnvelope,
    MalformedHeader,
    NoPaymentRequirements,
    NoValidSigner,
    PaymentError,
    PaymentRequired,
    SettlementFailed,
    SettlementTimeout,
    SigningFailed,
    UnsupportedVersion,
    VerificationFailed,
    VerificationTimeout,
)
from .evm import EVMSigner
from .facilitator import Facilitator, FacilitatorClient, TimeoutConfig
from .gate import GateOutcome, GateRequest, GateResponse, GateState, PaymentContext, PaymentGate
from .requirements import RequirementConfig, build_requirement, to_base_units, usdc_requirement
from .selector import DefaultPaymentSelector, PaymentSelector
from .signer import BaseSigner, Signer
from .types import (
    PaymentPayload,
    PaymentRequirement,
    PaymentRequirementsResponse,
    SettlementResponse,
    SupportedKind,
    SupportedResponse,
    TokenConfig,
    VerifyResponse,
)

__all__ = [
    "AVALANCHE",
    "AVALANCHE_FUJI",
    "AmountExceeded",
    "BASE",
    "BASE_SEPOLIA",
    "BSC",
    "BaseSigner",
    "ChainConfig",
    "ConfigError",
    "DefaultPaymentSelector",
    "EVMSigner",
    "Facilitator",
    "FacilitatorClient",
    "FacilitatorUnavailable",
    "GateConfig",
    "GateEnvironment",
    "GateOutcome",
    "GateRequest",
    "GateResponse",
    "GateState",
    "InvalidRequirements",
    "KNOWN_CHAINS",
    "MalformedEnvelope",
    "MalformedHeader",
    "NetworkType",
    "NoPaymentRequirements",
    "NoValidSigner",
    "PAYMENT_HEADER",
    "PAYMENT_RESPONSE_HEADER",
    "POLYGON",
    "POLYGON_AMOY",
    "PaymentClient",
    "PaymentContext",
    "PaymentError",
    "PaymentEvent",
    "PaymentEventType",
    "PaymentGate",
    "PaymentPayload",
    "PaymentRequired",
    "PaymentRequirement",
    "PaymentRequirementsResponse",
    "PaymentSelector",
    "RequirementConfig",
    "SOLANA",
    "SOLANA_DEVNET",
    "SettlementFailed",
    "SettlementResponse",
    "SettlementTimeout",
    "Signer",
    "SigningFailed",
    "SupportedKind",
    "SupportedResponse",
    "TimeoutConfig",
    "TokenConfig",
    "UnsupportedVersion",
    "VerificationFailed",
    "VerificationTimeout",
    "VerifyResponse",
    "build_environment",
    "build_requirement",
    "chain_id_for",
    "decode_payment",
    "decode_requirements",
    "decode_settlement",
    "encode_payment",
    "encode_requirements",
    "encode_settlement",
    "get_settlement",
    "load_gate_config",
    "to_base_units",
    "usdc_requirement",
    "usdc_token_config",
    "validate_network",
]
