"""
Configuration for blockchain adapters.
"""

import logging
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types import BackendId, NetworkType

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Library-wide settings, overridable through MULTICHAIN_* env vars"""

    default_network: NetworkType = NetworkType.TESTNET

    # Deadlines (seconds)
    initialize_timeout: float = 30.0
    request_timeout: float = 15.0
    receipt_timeout: float = 120.0

    # EVM gas tiers relative to the node's gas price
    evm_gas_multiplier_fast: float = 1.25
    evm_gas_multiplier_instant: float = 1.5

    model_config = SettingsConfigDict(env_prefix="MULTICHAIN_", case_sensitive=False)


class ChainCredentials(BaseModel):
    """Unified credential bag; each adapter picks what it needs.

    Keys live only in memory for the lifetime of the adapter session.
    """

    # Hedera
    account_id: Optional[str] = None
    private_key: Optional[str] = Field(None, repr=False)

    # Ethereum / Base
    private_key_evm: Optional[str] = Field(None, repr=False)
    infura_key: Optional[str] = Field(None, repr=False)
    alchemy_key: Optional[str] = Field(None, repr=False)

    # Solana
    keypair_path: Optional[str] = None
    private_key_solana: Optional[str] = Field(None, repr=False)

    mnemonic: Optional[str] = Field(None, repr=False)
    wallet_provider: Optional[str] = None


class BlockchainConfiguration(BaseModel):
    """Configuration handed to an adapter's initialize()"""

    backend: BackendId
    network: NetworkType = NetworkType.TESTNET
    credentials: ChainCredentials = Field(default_factory=ChainCredentials)
    rpc_url: Optional[str] = None
    mirror_node_url: Optional[str] = None
    custom_config: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("backend", "network", mode="before")
    @classmethod
    def _lowercase(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("rpc_url", "mirror_node_url")
    @classmethod
    def _strip_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


def resolve_rpc_url(config: BlockchainConfiguration, default: Optional[str] = None) -> Optional[str]:
    """
    Resolve the RPC endpoint for a configuration.

    Priority: explicit rpc_url, then custom_config["rpc_url"], then the
    backend/network default supplied by the caller.
    """
    if config.rpc_url:
        return config.rpc_url

    custom = config.custom_config.get("rpc_url") or config.custom_config.get("rpcUrl")
    if custom:
        return str(custom)

    return default
