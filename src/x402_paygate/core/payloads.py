"""
EIP-3009 ``TransferWithAuthorization`` payloads for the EVM ``exact`` scheme.
"""

from __future__ import annotations

import secrets
import time
from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.messages import encode_typed_data
from hexbytes import HexBytes

__all__ = [
    "CLOCK_SKEW_SECONDS",
    "build_authorization_payload",
    "build_typed_data",
    "recover_authorization_signer",
]

# validAfter is backdated so a client clock running slightly ahead of the
# facilitator's does not produce a not-yet-valid authorization.
CLOCK_SKEW_SECONDS = 10


def build_typed_data(
    *,
    token_name: str,
    token_version: str,
    chain_id: int,
    asset_address: str,
    message: Dict[str, Any],
) -> Dict[str, Any]:
    return {
        "types": {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            "TransferWithAuthorization": [
                {"name": "from", "type": "address"},
                {"name": "to", "type": "address"},
                {"name": "value", "type": "uint256"},
                {"name": "validAfter", "type": "uint256"},
                {"name": "validBefore", "type": "uint256"},
                {"name": "nonce", "type": "bytes32"},
            ],
        },
        "primaryType": "TransferWithAuthorization",
        "domain": {
            "name": token_name,
            "version": token_version,
            "chainId": chain_id,
            "verifyingContract": asset_address,
        },
        "message": message,
    }


def build_authorization_payload(
    *,
    private_key: str,
    pay_to: str,
    amount: int,
    asset_address: str,
    chain_id: int,
    token_name: str,
    token_version: str,
    max_timeout_seconds: int,
    now: Optional[int] = None,
    nonce: Optional[bytes] = None,
) -> Dict[str, Any]:
    """
    Construct and sign the ERC-3009 TransferWithAuthorization payload.

    Returns the ``{"signature": ..., "authorization": {...}}`` mapping used
    as :attr:`PaymentPayload.payload`.
    """
    now = int(time.time()) if now is None else now
    nonce_bytes = nonce if nonce is not None else secrets.token_bytes(32)
    if len(nonce_bytes) != 32:
        raise ValueError("nonce must be exactly 32 bytes")
    valid_after = now - CLOCK_SKEW_SECONDS
    valid_before = now + max_timeout_seconds

    account = Account.from_key(private_key)
    message = {
        "from": account.address,
        "to": pay_to,
        "value": amount,
        "validAfter": valid_after,
        "validBefore": valid_before,
        "nonce": HexBytes(nonce_bytes),
    }
    typed_data = build_typed_data(
        token_name=token_name,
        token_version=token_version,
        chain_id=chain_id,
        asset_address=asset_address,
        message=message,
    )

    signable = encode_typed_data(full_message=typed_data)
    signature = account.sign_message(signable).signature

    return {
        "signature": "0x" + HexBytes(signature).hex().removeprefix("0x"),
        "authorization": {
            "from": account.address,
            "to": pay_to,
            "value": str(amount),
            "validAfter": str(valid_after),
            "validBefore": str(valid_before),
            "nonce": "0x" + nonce_bytes.hex(),
        },
    }


def recover_authorization_signer(
    payload: Dict[str, Any],
    *,
    asset_address: str,
    chain_id: int,
    token_name: str,
    token_version: str,
) -> str:
    """Recover the address that signed an authorization payload."""
    authorization = payload["authorization"]
    message = {
        "from": authorization["from"],
        "to": authorization["to"],
        "value": int(authorization["value"]),
        "validAfter": int(authorization["validAfter"]),
        "validBefore": int(authorization["validBefore"]),
        "nonce": HexBytes(authorization["nonce"]),
    }
    typed_data = build_typed_data(
        token_name=token_name,
        token_version=token_version,
        chain_id=chain_id,
        asset_address=asset_address,
        message=message,
    )
    signable = encode_typed_data(full_message=typed_data)
    return Account.recover_message(signable, signature=payload["signature"])
