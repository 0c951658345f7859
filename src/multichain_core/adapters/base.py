"""
Base adapter implementation with common functionality.
"""

import asyncio
import functools
import logging
from typing import Optional, Dict, Any, Callable, Awaitable
from abc import ABC, abstractmethod

import httpx

from ..types import (
    BackendId, NetworkType, ErrorCode, WalletProvider, TransactionState,
    BlockchainError, NotInitializedError, InvalidCredentialsError,
    UnsupportedOperationError
)
from ..config import BlockchainConfiguration, Settings
from ..capabilities import ChainCapabilities, ChainMetadata, get_capabilities, get_metadata
from ..interfaces import IBlockchainAdapter
from ..models import TransactionResult, WalletConnection
from ..utils import join_explorer_url

logger = logging.getLogger(__name__)


BackendOperation = Callable[[Dict[str, Any]], Awaitable[Any]]


def translate_exception(error: Exception, backend: BackendId, operation: str,
                        default_code: ErrorCode = ErrorCode.UNKNOWN,
                        address_errors: bool = False) -> BlockchainError:
    """Map a backend/library exception onto the closed error set"""
    if isinstance(error, BlockchainError):
        return error

    if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
        code = ErrorCode.TIMEOUT
    elif isinstance(error, (httpx.HTTPError, ConnectionError, OSError)):
        code = ErrorCode.NETWORK_ERROR
    elif address_errors and isinstance(error, ValueError):
        code = ErrorCode.INVALID_ADDRESS
    else:
        code = default_code

    detail = str(error) or type(error).__name__
    return BlockchainError.from_code(
        code,
        f"{backend.value} {operation} failed: {detail}",
        backend=backend,
        operation=operation,
        details={"original_error": detail},
    )


def adapter_operation(default_code: ErrorCode = ErrorCode.UNKNOWN, address_errors: bool = False):
    """
    Decorate an adapter coroutine.

    Rejects calls before initialize() and translates whatever the backend
    client raises into a BlockchainError of the matching kind.

    Args:
        default_code: Kind used for failures that are not transport errors
        address_errors: Treat ValueError as a malformed address/identifier
    """
    def decorator(func):
        operation = func.__name__

        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            self._ensure_initialized(operation)
            try:
                return await func(self, *args, **kwargs)
            except BlockchainError:
                raise
            except Exception as e:
                error = translate_exception(e, self.backend, operation, default_code, address_errors)
                logger.error(f"{self.name} {operation} failed: {error}")
                raise error from e

        return wrapper
    return decorator


class BaseAdapter(IBlockchainAdapter, ABC):
    """Base adapter with common lifecycle, capability and error handling"""

    backend: BackendId
    name: str = "BaseAdapter"
    explorer_path: str = "tx"

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.capabilities: ChainCapabilities = get_capabilities(self.backend)
        self.metadata: ChainMetadata = get_metadata(self.backend)
        self.network: NetworkType = self.settings.default_network
        self.config: Optional[BlockchainConfiguration] = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def initialize(self, config: BlockchainConfiguration) -> None:
        """
        Open a session with the backend.

        A live session is torn down first. The backend-specific connect runs
        under Settings.initialize_timeout.
        """
        if self._connected:
            await self.disconnect()

        if BackendId(config.backend) != self.backend:
            raise InvalidCredentialsError(
                f"{self.name} cannot be initialized with a {config.backend.value} configuration",
                backend=self.backend,
                operation="initialize",
            )

        self.network = config.network
        self.config = config

        try:
            await asyncio.wait_for(self._connect(config), timeout=self.settings.initialize_timeout)
        except Exception as e:
            await self._abort_connect()
            error = translate_exception(e, self.backend, "initialize", ErrorCode.NETWORK_ERROR)
            logger.error(f"Failed to initialize {self.name} on {self.network.value}: {error}")
            if error is e:
                raise
            raise error from e

        self._connected = True
        logger.info(f"{self.name} connected to {self.network.value}")

    async def disconnect(self) -> None:
        """Close the session; no-op when not connected"""
        if not self._connected:
            return
        self._connected = False
        try:
            await self._close()
        except Exception as e:
            error = translate_exception(e, self.backend, "disconnect", ErrorCode.NETWORK_ERROR)
            logger.error(f"{self.name} failed to close cleanly: {error}")
            if error is e:
                raise
            raise error from e
        logger.info(f"{self.name} disconnected from {self.network.value}")

    async def _abort_connect(self) -> None:
        try:
            await self._close()
        except Exception as close_error:
            logger.warning(f"{self.name} cleanup after failed initialize raised: {close_error}")

    @abstractmethod
    async def _connect(self, config: BlockchainConfiguration) -> None:
        """Create clients, load credentials and verify the backend is reachable"""
        ...

    @abstractmethod
    async def _close(self) -> None:
        """Release clients and forget credentials"""
        ...

    def _ensure_initialized(self, operation: str) -> None:
        if not self._connected:
            raise NotInitializedError(
                f"{self.name} is not initialized; call initialize() before {operation}",
                backend=self.backend,
                operation=operation,
            )

    def _ensure_capability(self, flag: str, operation: str) -> None:
        if not getattr(self.capabilities, flag):
            raise UnsupportedOperationError(
                f"{operation} is not supported on {self.metadata.display_name} (missing capability: {flag})",
                backend=self.backend,
                operation=operation,
                details={"capability": flag},
            )

    def _unsupported(self, operation: str, reason: str) -> UnsupportedOperationError:
        return UnsupportedOperationError(
            f"{operation} is not supported by {self.name}: {reason}",
            backend=self.backend,
            operation=operation,
        )

    def get_explorer_url(self, transaction_id: str) -> str:
        return join_explorer_url(self.metadata.explorer_url(self.network), self.explorer_path, transaction_id)

    def _transaction_result(self, transaction_hash: str, status: TransactionState = TransactionState.PENDING,
                            transaction_id: Optional[str] = None, **kwargs) -> TransactionResult:
        transaction_id = transaction_id or transaction_hash
        return TransactionResult(
            transaction_id=transaction_id,
            transaction_hash=transaction_hash,
            status=status,
            explorer_url=self.get_explorer_url(transaction_id),
            **kwargs
        )

    # Wallets

    async def connect_wallet(self, provider: WalletProvider) -> WalletConnection:
        """Connect the in-memory session key; browser wallets need a frontend"""
        self._ensure_initialized("connect_wallet")
        provider = WalletProvider(provider)
        if provider != WalletProvider.CUSTOM:
            raise self._unsupported(
                "connect_wallet",
                f"{provider.value} requires a browser connection flow; use '{WalletProvider.CUSTOM.value}'"
            )

        address = self._session_address()
        if not address:
            raise InvalidCredentialsError(
                f"{self.name} has no session key configured",
                backend=self.backend,
                operation="connect_wallet",
            )

        chain_id = self.metadata.chain_id(self.network)
        return WalletConnection(
            address=address,
            provider=provider,
            backend=self.backend,
            public_key=self._session_public_key(),
            chain_id=str(chain_id) if chain_id is not None else None,
        )

    def _session_address(self) -> Optional[str]:
        return None

    def _session_public_key(self) -> Optional[str]:
        return None

    # Backend-specific operations

    def _backend_operations(self) -> Dict[str, BackendOperation]:
        """Named operations without a cross-backend equivalent"""
        return {}

    async def execute_backend_specific_operation(
        self, operation: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        self._ensure_initialized(operation)
        handler = self._backend_operations().get(operation)
        if handler is None:
            raise UnsupportedOperationError(
                f"Unknown {self.backend.value} operation: {operation}",
                backend=self.backend,
                operation=operation,
                details={"available": sorted(self._backend_operations())},
            )
        return await handler(params or {})

    def __repr__(self) -> str:
        state = "connected" if self._connected else "disconnected"
        return f"<{type(self).__name__} {self.network.value} {state}>"
