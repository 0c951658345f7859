"""
Blockchain adapter factory.

Adapters are imported lazily, so a backend's client library is only needed
once that backend is actually requested. Connected adapters are cached per
backend.
"""

import asyncio
import importlib
import logging
from typing import Any, Callable, Dict, List, Optional, Type, Union

from .adapters.base import BaseAdapter
from .config import BlockchainConfiguration, Settings
from .registry import ChainRegistry
from .types import (
    BackendId,
    BlockchainError,
    ChainNotSupportedError,
    MissingDependencyError,
    AdapterLoadError,
)

logger = logging.getLogger(__name__)


Loader = Callable[[], Type[BaseAdapter]]
BackendKey = Union[BackendId, str]


class ImportLoader:
    """Imports an adapter class on first use"""

    def __init__(self, module_path: str, class_name: str):
        self.module_path = module_path
        self.class_name = class_name

    def __call__(self) -> Type[BaseAdapter]:
        module = importlib.import_module(self.module_path)
        return getattr(module, self.class_name)

    def __repr__(self) -> str:
        return f"ImportLoader({self.module_path}:{self.class_name})"


DEFAULT_LOADERS: Dict[BackendId, Loader] = {
    BackendId.HEDERA: ImportLoader("multichain_core.adapters.hedera", "HederaAdapter"),
    BackendId.ETHEREUM: ImportLoader("multichain_core.adapters.evm", "EthereumAdapter"),
    BackendId.SOLANA: ImportLoader("multichain_core.adapters.solana", "SolanaAdapter"),
    BackendId.BASE: ImportLoader("multichain_core.adapters.evm", "BaseL2Adapter"),
}

# Shown for backends with neither a registered command nor a registry entry
UNKNOWN_INSTALL_COMMAND = "pip install <{backend} client library>"


def _backend_key(backend: BackendKey) -> BackendKey:
    name = str(backend).lower()
    try:
        return BackendId(name)
    except ValueError:
        return name


class AdapterFactory:
    """Factory for creating and caching blockchain adapters"""

    def __init__(self, loaders: Optional[Dict[BackendKey, Loader]] = None,
                 registry: Optional[ChainRegistry] = None,
                 settings: Optional[Settings] = None):
        self.registry = registry or ChainRegistry()
        self.settings = settings or Settings()
        self._loaders: Dict[BackendKey, Loader] = {}
        self._install_commands: Dict[BackendKey, str] = {}
        self._adapters: Dict[BackendKey, BaseAdapter] = {}
        self._locks: Dict[BackendKey, asyncio.Lock] = {}

        for backend, loader in (DEFAULT_LOADERS if loaders is None else loaders).items():
            self._loaders[_backend_key(backend)] = loader

    async def create_adapter(self, backend: BackendKey,
                             config: Optional[BlockchainConfiguration] = None) -> BaseAdapter:
        """
        Create or retrieve the adapter for a backend.

        A cached adapter that is still connected is returned as is. Otherwise
        the adapter class is loaded, instantiated and, when a configuration
        is given, initialized before it replaces the cache entry.

        Args:
            backend: Backend identifier
            config: Configuration used to initialize a fresh adapter

        Returns:
            Adapter instance

        Raises:
            MissingDependencyError: client library not installed or no loader registered
            AdapterLoadError: adapter could not be loaded for another reason
            BlockchainError: initialization failed
        """
        key = _backend_key(backend)
        lock = self._locks.setdefault(key, asyncio.Lock())

        async with lock:
            existing = self._adapters.get(key)
            if existing is not None and existing.is_connected:
                logger.debug(f"Reusing cached adapter for {key}")
                return existing

            adapter = self._load_adapter(key)

            if config is not None:
                try:
                    await adapter.initialize(config)
                except Exception:
                    await self._safe_disconnect(adapter)
                    raise

            if existing is not None:
                await self._safe_disconnect(existing)

            self._adapters[key] = adapter
            logger.info(f"Created {type(adapter).__name__} for {key}")
            return adapter

    def _load_adapter(self, key: BackendKey) -> BaseAdapter:
        loader = self._loaders.get(key)
        install_command = self.get_install_command(key)
        if loader is None:
            install_command = install_command or UNKNOWN_INSTALL_COMMAND.format(backend=key)
            raise MissingDependencyError(
                f"No adapter registered for '{key}'.\n\n"
                f"To use {key}, install its client library:\n\n  {install_command}\n\n"
                f"then register the adapter with AdapterFactory.register_loader('{key}', loader).",
                backend=str(key),
                operation="create_adapter",
                details={"install_command": install_command},
            )

        try:
            adapter_class = loader()
            return adapter_class(settings=self.settings)
        except BlockchainError:
            raise
        except ModuleNotFoundError as e:
            message = f"{str(key).capitalize()} client library not installed ({e.name})."
            if install_command:
                message += f"\n\nTo use {key}, install it with:\n\n  {install_command}\n"
            raise MissingDependencyError(
                message,
                backend=str(key),
                operation="create_adapter",
                details={
                    "install_command": install_command,
                    "missing_module": e.name,
                    "original_error": str(e),
                },
            ) from e
        except Exception as e:
            raise AdapterLoadError(
                f"Failed to load {key} adapter: {e}",
                backend=str(key),
                operation="create_adapter",
                details={"original_error": str(e)},
            ) from e

    async def _safe_disconnect(self, adapter: BaseAdapter) -> None:
        try:
            await adapter.disconnect()
        except Exception as e:
            logger.warning(f"Error disconnecting {type(adapter).__name__}: {e}")

    def get_cached_adapter(self, backend: BackendKey) -> Optional[BaseAdapter]:
        return self._adapters.get(_backend_key(backend))

    async def clear_cache(self, backend: Optional[BackendKey] = None) -> None:
        """Disconnect and forget one cached adapter, or all of them"""
        if backend is not None:
            adapter = self._adapters.pop(_backend_key(backend), None)
            if adapter is not None:
                await self._safe_disconnect(adapter)
            return

        adapters = list(self._adapters.values())
        self._adapters.clear()
        for adapter in adapters:
            await self._safe_disconnect(adapter)

    def _is_installed(self, key: BackendKey) -> bool:
        # Import only: no instantiation, cache untouched
        loader = self._loaders.get(key)
        if loader is None:
            return False
        try:
            loader()
        except Exception as e:
            logger.debug(f"Adapter for {key} unavailable: {e}")
            return False
        return True

    def get_available_backends(self) -> List[BackendKey]:
        """Backends whose adapter class can be loaded"""
        return [key for key in self._loaders if self._is_installed(key)]

    def register_loader(self, backend: BackendKey, loader: Loader,
                        install_command: Optional[str] = None) -> None:
        """Register or replace the loader for a backend"""
        key = _backend_key(backend)
        self._loaders[key] = loader
        if install_command:
            self._install_commands[key] = install_command
        logger.info(f"Registered adapter loader {loader!r} for {key}")

    def get_install_command(self, backend: BackendKey) -> Optional[str]:
        key = _backend_key(backend)
        if key in self._install_commands:
            return self._install_commands[key]
        try:
            packages = self.registry.get_chain(key).sdk_packages
        except ChainNotSupportedError:
            return None
        return f"pip install {' '.join(packages)}"

    def get_adapter_metadata(self, backend: BackendKey) -> Dict[str, Any]:
        """Capabilities and metadata without creating an adapter"""
        info = self.registry.get_chain(backend)
        return {
            "backend": info.backend,
            "capabilities": info.capabilities,
            "metadata": info.metadata,
            "is_installed": self._is_installed(info.backend),
        }

    def get_install_instructions(self, backend: BackendKey) -> Dict[str, Any]:
        key = _backend_key(backend)
        try:
            description = self.registry.get_chain(key).metadata.description
        except ChainNotSupportedError:
            description = None
        return {
            "backend": key,
            "is_installed": self._is_installed(key),
            "install_command": self.get_install_command(key),
            "description": description,
        }
