"""
Known networks and their USDC deployments.

The protocol is multi-chain and open ended: the identifiers below are the
ones this package knows how to describe, not the only ones it accepts.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Optional

from .types import TokenConfig

__all__ = [
    "AVALANCHE",
    "AVALANCHE_FUJI",
    "BASE",
    "BASE_SEPOLIA",
    "BSC",
    "ChainConfig",
    "KNOWN_CHAINS",
    "NetworkType",
    "POLYGON",
    "POLYGON_AMOY",
    "SOLANA",
    "SOLANA_DEVNET",
    "chain_id_for",
    "usdc_extra",
    "usdc_token_config",
    "validate_network",
]


class NetworkType(enum.Enum):
    UNKNOWN = "unknown"
    EVM = "evm"
    SVM = "svm"


@dataclass(frozen=True)
class ChainConfig:
    network_id: str
    usdc_address: str
    decimals: int
    network_type: NetworkType
    chain_id: Optional[int] = None
    eip3009_name: str = ""
    eip3009_version: str = ""


BASE = ChainConfig(
    network_id="base",
    usdc_address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    decimals=6,
    network_type=NetworkType.EVM,
    chain_id=8453,
    eip3009_name="USD Coin",
    eip3009_version="2",
)
BASE_SEPOLIA = ChainConfig(
    network_id="base-sepolia",
    usdc_address="0x036CbD53842c5426634e7929541eC2318f3dCF7e",
    decimals=6,
    network_type=NetworkType.EVM,
    chain_id=84532,
    eip3009_name="USDC",
    eip3009_version="2",
)
POLYGON = ChainConfig(
    network_id="polygon",
    usdc_address="0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359",
    decimals=6,
    network_type=NetworkType.EVM,
    chain_id=137,
    eip3009_name="USD Coin",
    eip3009_version="2",
)
POLYGON_AMOY = ChainConfig(
    network_id="polygon-amoy",
    usdc_address="0x41E94Eb019C0762f9Bfcf9Fb1E58725BfB0e7582",
    decimals=6,
    network_type=NetworkType.EVM,
    chain_id=80002,
    eip3009_name="USDC",
    eip3009_version="2",
)
AVALANCHE = ChainConfig(
    network_id="avalanche",
    usdc_address="0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E",
    decimals=6,
    network_type=NetworkType.EVM,
    chain_id=43114,
    eip3009_name="USD Coin",
    eip3009_version="2",
)
AVALANCHE_FUJI = ChainConfig(
    network_id="avalanche-fuji",
    usdc_address="0x5425890298aed601595a70AB815c96711a31Bc65",
    decimals=6,
    network_type=NetworkType.EVM,
    chain_id=43113,
    eip3009_name="USD Coin",
    eip3009_version="2",
)
# Wrapped USDC on BNB Smart Chain uses 18 decimals.
BSC = ChainConfig(
    network_id="bsc",
    usdc_address="0xf3A3E4D9c163251124229Da6DC9C98D889647804",
    decimals=18,
    network_type=NetworkType.EVM,
    chain_id=56,
    eip3009_name="Wrapped USDC",
    eip3009_version="2",
)
SOLANA = ChainConfig(
    network_id="solana",
    usdc_address="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    decimals=6,
    network_type=NetworkType.SVM,
)
SOLANA_DEVNET = ChainConfig(
    network_id="solana-devnet",
    usdc_address="4zMMC9srt5Ri5X14GAgXhaHii3GnPAEERYPJgZJDncDU",
    decimals=6,
    network_type=NetworkType.SVM,
)

KNOWN_CHAINS: Dict[str, ChainConfig] = {
    chain.network_id: chain
    for chain in (
        BASE,
        BASE_SEPOLIA,
        POLYGON,
        POLYGON_AMOY,
        AVALANCHE,
        AVALANCHE_FUJI,
        BSC,
        SOLANA,
        SOLANA_DEVNET,
    )
}

_EXTRA_CHAIN_IDS = {
    "ethereum": 1,
    "sepolia": 11155111,
}


def validate_network(network_id: str) -> NetworkType:
    """
    Return the virtual machine family of ``network_id``.

    Unknown identifiers are reported as :attr:`NetworkType.UNKNOWN` rather
    than rejected; only an empty identifier is an error.
    """
    if not network_id:
        raise ValueError("network_id must not be empty")
    chain = KNOWN_CHAINS.get(network_id)
    if chain is not None:
        return chain.network_type
    if network_id in _EXTRA_CHAIN_IDS:
        return NetworkType.EVM
    return NetworkType.UNKNOWN


def chain_id_for(network_id: str) -> Optional[int]:
    chain = KNOWN_CHAINS.get(network_id)
    if chain is not None:
        return chain.chain_id
    return _EXTRA_CHAIN_IDS.get(network_id)


def usdc_token_config(chain: ChainConfig, priority: int = 0) -> TokenConfig:
    return TokenConfig(
        address=chain.usdc_address,
        symbol="USDC",
        decimals=chain.decimals,
        priority=priority,
    )


def usdc_extra(chain: ChainConfig) -> Optional[Dict[str, str]]:
    if not chain.eip3009_name:
        return None
    return {"name": chain.eip3009_name, "version": chain.eip3009_version}
