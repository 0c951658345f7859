"""
Core types, enums and errors shared by every part of the abstraction layer.
"""

from enum import Enum
from typing import Optional, Dict, Any, Type


class _ValueEnum(str, Enum):
    """String enum that renders as its value"""

    def __str__(self) -> str:
        return str(self.value)


class BackendId(_ValueEnum):
    """Supported blockchain backends.

    Declaration order is the enumeration order used to break ties.
    """
    HEDERA = "hedera"
    ETHEREUM = "ethereum"
    SOLANA = "solana"
    BASE = "base"


class NetworkType(_ValueEnum):
    """Network environments"""
    MAINNET = "mainnet"
    TESTNET = "testnet"
    DEVNET = "devnet"
    LOCALNET = "localnet"


class IntegrationCategory(_ValueEnum):
    """Backend-neutral integration categories"""
    TOKEN = "token"
    NFT = "nft"
    SMART_CONTRACT = "smart-contract"
    WALLET = "wallet"
    CONSENSUS = "consensus"
    DEFI = "defi"


class UseCase(_ValueEnum):
    """Use case categories driving the ranking engine"""
    TOKENS = "tokens"
    NFTS = "nfts"
    PAYMENTS = "payments"
    DEFI = "defi"
    ENTERPRISE = "enterprise"
    GAMING = "gaming"
    SOCIAL = "social"
    OTHER = "other"


class ChainStatus(_ValueEnum):
    """Integration maturity of a backend"""
    STABLE = "stable"
    BETA = "beta"
    ALPHA = "alpha"
    PLANNED = "planned"


class Fit(_ValueEnum):
    """Ranking fit buckets"""
    EXCELLENT = "excellent"
    GOOD = "good"
    POSSIBLE = "possible"
    NOT_RECOMMENDED = "not-recommended"


class AccountModel(_ValueEnum):
    ACCOUNT_BASED = "account-based"
    UTXO = "utxo"
    CUSTOM = "custom"


class ContractLanguage(_ValueEnum):
    SOLIDITY = "solidity"
    RUST = "rust"
    VYPER = "vyper"
    CUSTOM = "custom"


class WalletProvider(_ValueEnum):
    """Wallet providers across all backends"""
    # Hedera
    HASHPACK = "hashpack"
    BLADE = "blade"
    # Ethereum/Base
    METAMASK = "metamask"
    WALLETCONNECT = "walletconnect"
    COINBASE_WALLET = "coinbase-wallet"
    # Solana
    PHANTOM = "phantom"
    SOLFLARE = "solflare"
    # In-memory session key
    CUSTOM = "custom"


class FeeOperation(_ValueEnum):
    """Operations a fee estimate can be requested for"""
    TRANSFER = "transfer"
    DEPLOY = "deploy"
    MINT = "mint"
    BURN = "burn"
    CUSTOM = "custom"


class TransactionState(_ValueEnum):
    """Transaction status states"""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    UNKNOWN = "unknown"


class GasUnit(_ValueEnum):
    GWEI = "gwei"
    WEI = "wei"
    LAMPORTS = "lamports"
    TINYBARS = "tinybars"


class ErrorCode(_ValueEnum):
    """Closed set of error kinds surfaced to callers"""
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    CONTRACT_ERROR = "CONTRACT_ERROR"
    UNKNOWN = "UNKNOWN"


class BlockchainError(Exception):
    """Base exception for blockchain operations"""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str, code: Optional[ErrorCode] = None,
                 backend: Optional[str] = None, operation: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        if code is not None:
            self.code = ErrorCode(code)
        self.backend = str(backend) if backend else None
        self.operation = operation
        self.details = details or {}
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self)

    @classmethod
    def from_code(cls, code: ErrorCode, message: str, **kwargs) -> "BlockchainError":
        """Build the exception subclass matching an error code"""
        error_class = _ERRORS_BY_CODE.get(ErrorCode(code), BlockchainError)
        return error_class(message, code=code, **kwargs)

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(code={self.code.value!r}, backend={self.backend!r}, "
                f"operation={self.operation!r}, message={str(self)!r})")


class InsufficientBalanceError(BlockchainError):
    """Account balance too low for the operation"""
    code = ErrorCode.INSUFFICIENT_BALANCE


class InvalidAddressError(BlockchainError):
    """Malformed or unknown address / identifier"""
    code = ErrorCode.INVALID_ADDRESS


class TransactionFailedError(BlockchainError):
    """Transaction was rejected or reverted"""
    code = ErrorCode.TRANSACTION_FAILED


class NetworkError(BlockchainError):
    """Backend unreachable or returned a transport-level failure"""
    code = ErrorCode.NETWORK_ERROR


class RequestTimeoutError(BlockchainError):
    """Backend round trip exceeded its deadline"""
    code = ErrorCode.TIMEOUT


class InvalidCredentialsError(BlockchainError):
    """Credentials missing or malformed"""
    code = ErrorCode.INVALID_CREDENTIALS


class UnsupportedOperationError(BlockchainError):
    """Capability mismatch or operation not implemented for a backend"""
    code = ErrorCode.UNSUPPORTED_OPERATION


class ContractError(BlockchainError):
    """Smart contract execution failure"""
    code = ErrorCode.CONTRACT_ERROR


class NotInitializedError(NetworkError):
    """Adapter operation called before initialize() succeeded"""
    pass


class MissingDependencyError(InvalidCredentialsError):
    """Backend client library is not installed"""

    @property
    def install_command(self) -> Optional[str]:
        return self.details.get("install_command")


class AdapterLoadError(BlockchainError):
    """Adapter could not be loaded for a reason other than a missing library"""
    code = ErrorCode.UNKNOWN


class ChainNotSupportedError(BlockchainError):
    """Backend not present in the registry"""
    code = ErrorCode.UNSUPPORTED_OPERATION


_ERRORS_BY_CODE: Dict[ErrorCode, Type[BlockchainError]] = {
    ErrorCode.INSUFFICIENT_BALANCE: InsufficientBalanceError,
    ErrorCode.INVALID_ADDRESS: InvalidAddressError,
    ErrorCode.TRANSACTION_FAILED: TransactionFailedError,
    ErrorCode.NETWORK_ERROR: NetworkError,
    ErrorCode.TIMEOUT: RequestTimeoutError,
    ErrorCode.INVALID_CREDENTIALS: InvalidCredentialsError,
    ErrorCode.UNSUPPORTED_OPERATION: UnsupportedOperationError,
    ErrorCode.CONTRACT_ERROR: ContractError,
    ErrorCode.UNKNOWN: BlockchainError,
}
