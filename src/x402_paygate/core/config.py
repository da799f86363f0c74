"""
Configuration objects and helpers for payment gates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

import requests

from .chains import BSC, KNOWN_CHAINS
from .environment import GateEnvironment, build_environment
from .errors import InvalidRequirements
from .facilitator import FacilitatorClient, TimeoutConfig
from .requirements import (
    DEFAULT_MIME_TYPE,
    DEFAULT_SCHEME,
    RequirementConfig,
    build_requirement,
)
from .types import DEFAULT_X402_VERSION, PaymentRequirement

__all__ = [
    "ConfigError",
    "DEFAULT_FACILITATOR_URL",
    "GateConfig",
    "load_gate_config",
]

DEFAULT_FACILITATOR_URL = "https://api.x402.unibase.com"

_PARAMETER_TO_ENV_KEY = {
    "facilitator_url": "X402_FACILITATOR_URL",
    "fallback_facilitator_url": "X402_FALLBACK_FACILITATOR_URL",
    "facilitator_authorization": "X402_FACILITATOR_AUTHORIZATION",
    "verify_only": "X402_VERIFY_ONLY",
    "enrich_requirements": "X402_ENRICH_REQUIREMENTS",
    "verify_timeout": "X402_VERIFY_TIMEOUT_SECONDS",
    "settle_timeout": "X402_SETTLE_TIMEOUT_SECONDS",
    "receiver_address": "X402_RECEIVER_ADDRESS",
    "amount": "X402_PAYMENT_AMOUNT",
    "token_decimals": "X402_PAYMENT_TOKEN_DECIMALS",
    "asset_address": "X402_PAYMENT_ASSET_ADDRESS",
    "network": "X402_PAYMENT_NETWORK",
    "scheme": "X402_PAYMENT_SCHEME",
    "timeout_seconds": "X402_PAYMENT_TIMEOUT_SECONDS",
    "resource": "X402_PAYMENT_RESOURCE",
    "description": "X402_PAYMENT_DESCRIPTION",
    "mime_type": "X402_PAYMENT_MIME_TYPE",
    "token_name": "X402_PAYMENT_TOKEN_NAME",
    "token_version": "X402_PAYMENT_TOKEN_VERSION",
}


class ConfigError(Exception):
    """Raised when the supplied configuration is invalid."""


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _collect_parameter_overrides(parameters: Mapping[str, Any]) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for key, value in parameters.items():
        if value is None:
            continue
        try:
            env_key = _PARAMETER_TO_ENV_KEY[key]
        except KeyError as exc:
            raise TypeError(f"Unknown gate parameter '{key}'") from exc
        overrides[env_key] = _stringify(value)
    return overrides


def _int_value(env: GateEnvironment, key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got '{raw}'") from exc


def _float_value(env: GateEnvironment, key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got '{raw}'") from exc


@dataclass(frozen=True)
class GateConfig:
    requirements: Tuple[PaymentRequirement, ...]
    facilitator_url: str = DEFAULT_FACILITATOR_URL
    fallback_facilitator_url: Optional[str] = None
    facilitator_authorization: Optional[str] = None
    verify_only: bool = False
    enrich_requirements: bool = False
    protocol_version: int = DEFAULT_X402_VERSION
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)

    def validate(self) -> None:
        if not self.facilitator_url:
            raise ConfigError("facilitator_url must not be empty")
        if not self.requirements:
            raise ConfigError("at least one payment requirement must be configured")
        try:
            self.timeouts.validate()
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

    def build_facilitator(
        self, *, session: Optional[requests.Session] = None
    ) -> FacilitatorClient:
        return FacilitatorClient(
            self.facilitator_url,
            fallback_url=self.fallback_facilitator_url,
            timeouts=self.timeouts,
            session=session,
            authorization=self.facilitator_authorization,
        )

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "GateConfig":
        env = values if isinstance(values, GateEnvironment) else GateEnvironment(dict(values))

        facilitator_url = (env.get("X402_FACILITATOR_URL") or DEFAULT_FACILITATOR_URL).rstrip("/")
        fallback_url = env.get("X402_FALLBACK_FACILITATOR_URL") or None

        receiver = env.get("X402_RECEIVER_ADDRESS")
        if receiver is None:
            raise ConfigError("X402_RECEIVER_ADDRESS must be provided")

        network = env.get("X402_PAYMENT_NETWORK") or BSC.network_id
        # asset and EIP-712 domain default to the network's USDC deployment;
        # unknown networks have no defaults
        chain = KNOWN_CHAINS.get(network)
        if chain is None:
            missing = [
                key
                for key in ("X402_PAYMENT_ASSET_ADDRESS", "X402_PAYMENT_TOKEN_DECIMALS")
                if not (env.get(key) or "").strip()
            ]
            if missing:
                raise ConfigError(
                    f"{', '.join(missing)} must be provided for unknown network '{network}'"
                )
        default_asset = chain.usdc_address if chain else None
        default_decimals = chain.decimals if chain else 0
        extra = None
        token_name = env.get("X402_PAYMENT_TOKEN_NAME", chain.eip3009_name if chain else None)
        token_version = env.get(
            "X402_PAYMENT_TOKEN_VERSION", chain.eip3009_version if chain else None
        )
        if token_name and token_version:
            extra = {"name": token_name, "version": token_version}

        timeouts = TimeoutConfig(
            verify_timeout=_float_value(env, "X402_VERIFY_TIMEOUT_SECONDS", 5.0),
            settle_timeout=_float_value(env, "X402_SETTLE_TIMEOUT_SECONDS", 60.0),
        )

        try:
            requirement = build_requirement(
                RequirementConfig(
                    network=network,
                    asset=env.get("X402_PAYMENT_ASSET_ADDRESS", default_asset),
                    pay_to=receiver,
                    amount=env.get("X402_PAYMENT_AMOUNT", "0.1"),
                    decimals=_int_value(env, "X402_PAYMENT_TOKEN_DECIMALS", default_decimals),
                    scheme=env.get("X402_PAYMENT_SCHEME") or DEFAULT_SCHEME,
                    max_timeout_seconds=_int_value(env, "X402_PAYMENT_TIMEOUT_SECONDS", 600),
                    resource=env.get("X402_PAYMENT_RESOURCE", ""),
                    description=env.get("X402_PAYMENT_DESCRIPTION", ""),
                    mime_type=env.get("X402_PAYMENT_MIME_TYPE", DEFAULT_MIME_TYPE),
                    extra=extra,
                )
            )
        except InvalidRequirements as exc:
            raise ConfigError(str(exc)) from exc

        config = cls(
            requirements=(requirement,),
            facilitator_url=facilitator_url,
            fallback_facilitator_url=fallback_url.rstrip("/") if fallback_url else None,
            facilitator_authorization=env.get("X402_FACILITATOR_AUTHORIZATION") or None,
            verify_only=env.flag("X402_VERIFY_ONLY"),
            enrich_requirements=env.flag("X402_ENRICH_REQUIREMENTS"),
            timeouts=timeouts,
        )
        config.validate()
        return config

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        **parameters: Any,
    ) -> "GateConfig":
        """
        Build a single-offer gate configuration from ``X402_*`` variables.

        Keyword ``parameters`` (``receiver_address="0x..."``, ``amount="0.5"``)
        take precedence over ``overrides``, which take precedence over the
        ``.env`` file and ``base``.
        """
        merged_overrides = dict(overrides or {})
        merged_overrides.update(_collect_parameter_overrides(parameters))

        environment = build_environment(
            env_file=env_file,
            base=base,
            overrides=merged_overrides,
        )
        return cls.from_mapping(environment)


def load_gate_config(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    **parameters: Any,
) -> GateConfig:
    """Convenience wrapper that mirrors :meth:`GateConfig.from_env`."""
    return GateConfig.from_env(
        env_file=env_file,
        overrides=overrides,
        base=base,
        **parameters,
    )
