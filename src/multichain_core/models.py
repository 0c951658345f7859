"""
Backend-neutral data models for adapter operations.

Amounts are integers in the backend's smallest unit (wei, lamports,
tinybars, or token base units).
"""

from typing import Optional, Dict, Any, List, Union
from dataclasses import dataclass, field
from datetime import datetime

from .types import (
    BackendId, WalletProvider, FeeOperation, TransactionState, GasUnit
)


Amount = Union[int, str]


def to_int_amount(amount: Amount) -> int:
    """Normalize an amount given as int or decimal string"""
    if isinstance(amount, bool):
        raise ValueError("Amount must be an integer, not a boolean")
    value = int(amount)
    if value < 0:
        raise ValueError(f"Amount must not be negative: {amount}")
    return value


@dataclass
class TokenMetadata:
    """Token metadata compatible with ERC-20, HTS and SPL conventions"""
    description: Optional[str] = None
    image: Optional[str] = None
    external_url: Optional[str] = None
    attributes: List[Dict[str, Any]] = field(default_factory=list)
    custom_fields: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NFTMetadata:
    """NFT metadata compatible with ERC-721, ERC-1155 and Metaplex"""
    name: str
    image: str
    description: Optional[str] = None
    animation_url: Optional[str] = None
    external_url: Optional[str] = None
    attributes: List[Dict[str, Any]] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def token_uri(self) -> str:
        """URI handed to mint calls"""
        return self.properties.get("token_uri") or self.external_url or self.image


@dataclass
class CreateTokenParams:
    name: str
    symbol: str
    decimals: int = 18
    initial_supply: Amount = 0
    mintable: bool = True
    burnable: bool = True
    pausable: bool = False
    freezable: bool = False
    metadata: Optional[TokenMetadata] = None
    custom_config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CreateNFTParams:
    name: str
    symbol: str
    metadata: NFTMetadata
    collection_size: Optional[int] = None
    royalty_percentage: Optional[float] = None
    royalty_recipient: Optional[str] = None
    custom_config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class MintNFTParams:
    collection_id: str
    to: str
    metadata: NFTMetadata
    amount: int = 1


@dataclass
class TransferParams:
    """Token transfer; without token_id the native currency is moved"""
    to: str
    amount: Amount
    token_id: Optional[str] = None
    memo: Optional[str] = None


@dataclass
class TransferNFTParams:
    to: str
    token_id: str
    nft_id: Union[int, str]
    memo: Optional[str] = None


@dataclass
class BalanceParams:
    address: str
    token_id: Optional[str] = None


@dataclass
class DeployContractParams:
    contract_code: Union[str, bytes]
    abi: List[Dict[str, Any]] = field(default_factory=list)
    constructor_args: List[Any] = field(default_factory=list)
    gas: Optional[int] = None
    gas_price: Optional[int] = None
    value: int = 0
    custom_config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CallContractParams:
    contract_address: str
    method_name: str
    args: List[Any] = field(default_factory=list)
    abi: List[Dict[str, Any]] = field(default_factory=list)
    gas: Optional[int] = None
    value: int = 0


@dataclass
class EstimateFeeParams:
    operation: FeeOperation = FeeOperation.TRANSFER
    amount: Optional[Amount] = None
    contract_size: Optional[int] = None
    complexity: str = "simple"  # simple | medium | complex


@dataclass
class Transaction:
    """Transaction to sign"""
    to: str
    from_address: Optional[str] = None
    value: int = 0
    data: Optional[str] = None
    gas: Optional[int] = None
    gas_price: Optional[int] = None
    nonce: Optional[int] = None
    chain_id: Optional[Union[int, str]] = None


@dataclass
class SignedTransaction:
    raw_transaction: str
    transaction_hash: str
    signature: Optional[str] = None


@dataclass
class TransactionResult:
    """Result of a submitted transaction"""
    transaction_id: str
    transaction_hash: str
    status: TransactionState
    explorer_url: str
    timestamp: datetime = field(default_factory=datetime.utcnow)
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    gas_price: Optional[int] = None
    cost_usd: Optional[float] = None
    custom_data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "transactionId": self.transaction_id,
            "transactionHash": self.transaction_hash,
            "status": self.status.value,
            "explorerUrl": self.explorer_url,
            "timestamp": self.timestamp.isoformat(),
            "blockNumber": self.block_number,
            "gasUsed": self.gas_used,
            "gasPrice": self.gas_price,
            "costUSD": self.cost_usd,
            "customData": self.custom_data,
        }


@dataclass
class TokenResult:
    token_id: str
    transaction: TransactionResult
    token_address: Optional[str] = None
    metadata: Optional[TokenMetadata] = None


@dataclass
class NFTResult:
    collection_id: str
    transaction: TransactionResult
    collection_address: Optional[str] = None
    metadata: Optional[NFTMetadata] = None


@dataclass
class ContractResult:
    contract_id: str
    transaction: TransactionResult
    contract_address: Optional[str] = None
    abi: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class TransactionStatusInfo:
    status: TransactionState
    confirmations: int = 0
    block_number: Optional[int] = None
    timestamp: Optional[datetime] = None
    error: Optional[str] = None


@dataclass
class GasPrice:
    """Chain-agnostic gas price tiers"""
    standard: int
    fast: int
    instant: int
    unit: GasUnit


@dataclass
class FeeEstimate:
    estimated_cost: int
    estimated_cost_usd: float
    currency: str
    breakdown: Dict[str, int] = field(default_factory=dict)


@dataclass
class WalletConnection:
    address: str
    provider: WalletProvider
    backend: BackendId
    public_key: Optional[str] = None
    chain_id: Optional[str] = None
    is_connected: bool = True
