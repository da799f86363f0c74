"""
Reference signer for the EVM ``exact`` scheme (EIP-3009 authorizations).
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from eth_account import Account

from .chains import chain_id_for
from .errors import SigningFailed
from .payloads import build_authorization_payload
from .signer import BaseSigner
from .types import PaymentRequirement, TokenConfig

__all__ = ["EVMSigner", "normalize_private_key"]


def normalize_private_key(raw_key: str) -> str:
    key = raw_key.strip()
    if not key:
        raise ValueError("private key must not be empty")
    if not key.startswith("0x"):
        key = "0x" + key
    if len(key) != 66:
        raise ValueError("private key must be 32 bytes (64 hex chars)")
    return key


class EVMSigner(BaseSigner):
    """
    Signs ``exact`` payments on an EVM network.

    The EIP-712 domain name and version are read from the requirement's
    ``extra`` (``name`` / ``version``), which is where resource servers put
    them for EIP-3009 tokens.
    """

    def __init__(
        self,
        private_key: str,
        network: str,
        tokens: Iterable[TokenConfig],
        *,
        priority: int = 0,
        max_amount: Optional[int] = None,
        chain_id: Optional[int] = None,
    ) -> None:
        super().__init__(
            network=network,
            tokens=tokens,
            scheme="exact",
            priority=priority,
            max_amount=max_amount,
        )
        self._private_key = normalize_private_key(private_key)
        self.address = Account.from_key(self._private_key).address
        self.chain_id = chain_id if chain_id is not None else chain_id_for(network)

    def _build_payload(
        self,
        requirement: PaymentRequirement,
        token: TokenConfig,
        amount: int,
    ) -> Dict[str, Any]:
        if self.chain_id is None:
            raise SigningFailed(f"unknown chain id for network '{self.network()}'")
        extra = requirement.extra or {}
        token_name = extra.get("name")
        token_version = extra.get("version")
        if not token_name or not token_version:
            raise SigningFailed("requirement extra must carry EIP-712 'name' and 'version'")

        return build_authorization_payload(
            private_key=self._private_key,
            pay_to=requirement.pay_to,
            amount=amount,
            asset_address=token.address,
            chain_id=self.chain_id,
            token_name=str(token_name),
            token_version=str(token_version),
            max_timeout_seconds=requirement.max_timeout_seconds,
        )
