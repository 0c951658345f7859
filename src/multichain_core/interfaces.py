"""
Interfaces (protocols) for blockchain operations.
Using Python's Protocol for structural subtyping.
"""

from typing import Protocol, Dict, Any, Optional
from abc import abstractmethod

from .types import BackendId, NetworkType, WalletProvider
from .config import BlockchainConfiguration
from .capabilities import ChainCapabilities
from .models import (
    CreateTokenParams, TokenResult, TransferParams, TransactionResult,
    BalanceParams, CreateNFTParams, NFTResult, MintNFTParams, TransferNFTParams,
    DeployContractParams, ContractResult, CallContractParams, WalletConnection,
    Transaction, SignedTransaction, GasPrice, EstimateFeeParams, FeeEstimate,
    TransactionStatusInfo
)


class IBlockchainAdapter(Protocol):
    """Uniform operation set every backend adapter implements"""

    backend: BackendId
    name: str
    capabilities: ChainCapabilities
    network: NetworkType

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    # Lifecycle

    @abstractmethod
    async def initialize(self, config: BlockchainConfiguration) -> None:
        """Open a session with the backend"""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the session; safe to call repeatedly"""
        ...

    # Tokens

    @abstractmethod
    async def create_token(self, params: CreateTokenParams) -> TokenResult:
        ...

    @abstractmethod
    async def transfer_token(self, params: TransferParams) -> TransactionResult:
        ...

    @abstractmethod
    async def get_token_balance(self, params: BalanceParams) -> int:
        ...

    # NFTs

    @abstractmethod
    async def create_nft(self, params: CreateNFTParams) -> NFTResult:
        ...

    @abstractmethod
    async def mint_nft(self, params: MintNFTParams) -> TransactionResult:
        ...

    @abstractmethod
    async def transfer_nft(self, params: TransferNFTParams) -> TransactionResult:
        ...

    # Contracts

    @abstractmethod
    async def deploy_contract(self, params: DeployContractParams) -> ContractResult:
        ...

    @abstractmethod
    async def call_contract(self, params: CallContractParams) -> Any:
        """Read-only methods return the decoded value, others a TransactionResult"""
        ...

    # Wallets and accounts

    @abstractmethod
    async def connect_wallet(self, provider: WalletProvider) -> WalletConnection:
        ...

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        """Native balance in the smallest unit"""
        ...

    @abstractmethod
    async def sign_transaction(self, transaction: Transaction) -> SignedTransaction:
        ...

    # Fees and status

    @abstractmethod
    async def get_gas_price(self) -> GasPrice:
        ...

    @abstractmethod
    async def estimate_fees(self, params: EstimateFeeParams) -> FeeEstimate:
        ...

    @abstractmethod
    async def get_transaction_status(self, transaction_id: str) -> TransactionStatusInfo:
        ...

    @abstractmethod
    def get_explorer_url(self, transaction_id: str) -> str:
        """Explorer link for the adapter's current network"""
        ...

    @abstractmethod
    async def execute_backend_specific_operation(
        self, operation: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Escape hatch for features without a cross-backend equivalent"""
        ...
