"""
Multichain Core Library

Unified adapter interface, capability tables, registry, feature mapping and
ranking for Hedera, Ethereum, Solana and Base.
"""

from .types import (
    BackendId,
    NetworkType,
    IntegrationCategory,
    UseCase,
    ChainStatus,
    Fit,
    AccountModel,
    ContractLanguage,
    WalletProvider,
    FeeOperation,
    TransactionState,
    GasUnit,
    ErrorCode,
    BlockchainError,
    InsufficientBalanceError,
    InvalidAddressError,
    TransactionFailedError,
    NetworkError,
    RequestTimeoutError,
    InvalidCredentialsError,
    UnsupportedOperationError,
    ContractError,
    NotInitializedError,
    MissingDependencyError,
    AdapterLoadError,
    ChainNotSupportedError
)

from .models import (
    TokenMetadata,
    NFTMetadata,
    CreateTokenParams,
    CreateNFTParams,
    MintNFTParams,
    TransferParams,
    TransferNFTParams,
    BalanceParams,
    DeployContractParams,
    CallContractParams,
    EstimateFeeParams,
    Transaction,
    SignedTransaction,
    TransactionResult,
    TokenResult,
    NFTResult,
    ContractResult,
    TransactionStatusInfo,
    GasPrice,
    FeeEstimate,
    WalletConnection
)

from .config import (
    Settings,
    ChainCredentials,
    BlockchainConfiguration
)

from .capabilities import (
    ChainCapabilities,
    ChainMetadata,
    PerformanceSnapshot,
    CHAIN_CAPABILITIES,
    CHAIN_METADATA,
    get_capabilities,
    get_metadata,
    has_capability,
    find_backends_by_capability,
    compare_performance,
    get_fastest_backend,
    get_fastest_finality,
    get_capability_description
)

from .utils import (
    validate_address,
    normalize_address,
    format_wei
)

from .interfaces import IBlockchainAdapter
from .adapters import BaseAdapter
from .adapter_factory import AdapterFactory, ImportLoader, Loader
from .feature_mapper import (
    FeatureEquivalent,
    FeatureMapping,
    ImplementationComparison,
    FeatureMapper
)
from .registry import (
    ChainInfo,
    ChainComparison,
    ChainRecommendation,
    ChainRegistry
)
from .ranking import (
    ProjectContext,
    ChainRanking,
    ChainRankingEngine
)

__all__ = [
    # Types
    "BackendId",
    "NetworkType",
    "IntegrationCategory",
    "UseCase",
    "ChainStatus",
    "Fit",
    "AccountModel",
    "ContractLanguage",
    "WalletProvider",
    "FeeOperation",
    "TransactionState",
    "GasUnit",
    "ErrorCode",

    # Errors
    "BlockchainError",
    "InsufficientBalanceError",
    "InvalidAddressError",
    "TransactionFailedError",
    "NetworkError",
    "RequestTimeoutError",
    "InvalidCredentialsError",
    "UnsupportedOperationError",
    "ContractError",
    "NotInitializedError",
    "MissingDependencyError",
    "AdapterLoadError",
    "ChainNotSupportedError",

    # Models
    "TokenMetadata",
    "NFTMetadata",
    "CreateTokenParams",
    "CreateNFTParams",
    "MintNFTParams",
    "TransferParams",
    "TransferNFTParams",
    "BalanceParams",
    "DeployContractParams",
    "CallContractParams",
    "EstimateFeeParams",
    "Transaction",
    "SignedTransaction",
    "TransactionResult",
    "TokenResult",
    "NFTResult",
    "ContractResult",
    "TransactionStatusInfo",
    "GasPrice",
    "FeeEstimate",
    "WalletConnection",

    # Configuration
    "Settings",
    "ChainCredentials",
    "BlockchainConfiguration",

    # Capabilities
    "ChainCapabilities",
    "ChainMetadata",
    "PerformanceSnapshot",
    "CHAIN_CAPABILITIES",
    "CHAIN_METADATA",
    "get_capabilities",
    "get_metadata",
    "has_capability",
    "find_backends_by_capability",
    "compare_performance",
    "get_fastest_backend",
    "get_fastest_finality",
    "get_capability_description",

    # Utils
    "validate_address",
    "normalize_address",
    "format_wei",

    # Adapters & Factory
    "IBlockchainAdapter",
    "BaseAdapter",
    "AdapterFactory",
    "ImportLoader",
    "Loader",

    # Feature mapping, registry, ranking
    "FeatureEquivalent",
    "FeatureMapping",
    "ImplementationComparison",
    "FeatureMapper",
    "ChainInfo",
    "ChainComparison",
    "ChainRecommendation",
    "ChainRegistry",
    "ProjectContext",
    "ChainRanking",
    "ChainRankingEngine"
]

__version__ = "1.0.0"
