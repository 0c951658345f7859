"""
Chain registry.

Central source of truth for backend information: metadata, capabilities,
integration status, client packages and indicative costs.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Dict, List, Tuple, Union, Any, Iterable

from .types import BackendId, NetworkType, ChainStatus, ChainNotSupportedError
from .capabilities import (
    ChainCapabilities, ChainMetadata, CHAIN_CAPABILITIES, CHAIN_METADATA,
    ensure_total, _check_flag
)
from .utils import join_explorer_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainInfo:
    """Extended backend information including status and client packages"""
    backend: BackendId
    metadata: ChainMetadata
    capabilities: ChainCapabilities
    status: ChainStatus
    sdk_packages: Tuple[str, ...]
    estimated_cost_usd: float
    estimated_cost_native: str


@dataclass(frozen=True)
class ChainComparison:
    backend: BackendId
    display_name: str
    tps: int
    finality: float
    cost_usd: float
    status: ChainStatus


@dataclass(frozen=True)
class ChainRecommendation:
    backend: BackendId
    reason: str


# status, pip packages the adapter imports, indicative cost per transaction
_REGISTRY_TABLE: Dict[BackendId, Tuple[ChainStatus, Tuple[str, ...], float, str]] = {
    BackendId.HEDERA: (ChainStatus.STABLE, ("hiero-sdk-python", "httpx"), 0.0001, "0.001 HBAR"),
    BackendId.ETHEREUM: (ChainStatus.BETA, ("web3", "eth-account"), 3.5, "0.0015 ETH"),
    BackendId.SOLANA: (ChainStatus.BETA, ("solana", "solders"), 0.00025, "0.000005 SOL"),
    BackendId.BASE: (ChainStatus.BETA, ("web3", "eth-account"), 0.02, "0.00001 ETH"),
}

# Ordered keyword rules; first match wins
_RECOMMENDATION_RULES: Tuple[Tuple[Tuple[str, ...], BackendId, str], ...] = (
    (("game", "gaming", "high-frequency"), BackendId.SOLANA,
     "High TPS (3,000) and fast finality (400ms) ideal for gaming"),
    (("enterprise", "compliance", "supply chain"), BackendId.HEDERA,
     "Enterprise governance, predictable fees, and regulatory compliance"),
    (("defi", "swap", "lending"), BackendId.ETHEREUM,
     "Largest DeFi ecosystem with maximum liquidity"),
    (("payment", "consumer", "wallet"), BackendId.BASE,
     "Low fees, Coinbase integration, and easy fiat on-ramps"),
    (("nft", "collectible"), BackendId.SOLANA,
     "Low minting costs and strong NFT ecosystem (Metaplex)"),
)
_DEFAULT_RECOMMENDATION = ChainRecommendation(
    BackendId.HEDERA, "Balanced performance, low fees, and enterprise features"
)


class ChainRegistry:
    """Registry of every supported backend"""

    def __init__(self):
        self._chains: Dict[BackendId, ChainInfo] = {}
        for backend, (status, packages, cost_usd, cost_native) in ensure_total(_REGISTRY_TABLE, "registry").items():
            self._register(ChainInfo(
                backend=backend,
                metadata=CHAIN_METADATA[backend],
                capabilities=CHAIN_CAPABILITIES[backend],
                status=status,
                sdk_packages=packages,
                estimated_cost_usd=cost_usd,
                estimated_cost_native=cost_native,
            ))

    def _register(self, info: ChainInfo) -> None:
        self._chains[info.backend] = info

    def get_chain(self, backend: Union[BackendId, str]) -> ChainInfo:
        """
        Get information about a backend.

        Raises:
            ChainNotSupportedError: backend is not registered
        """
        try:
            key = BackendId(backend)
        except ValueError:
            key = None
        info = self._chains.get(key)
        if info is None:
            raise ChainNotSupportedError(
                f"Chain '{backend}' not found in registry",
                backend=str(backend),
                operation="get_chain",
            )
        return info

    def get_all_chains(self) -> List[ChainInfo]:
        return list(self._chains.values())

    def get_chains_by_status(self, status: Union[ChainStatus, str]) -> List[ChainInfo]:
        status = ChainStatus(status)
        return [info for info in self._chains.values() if info.status == status]

    def get_stable_chains(self) -> List[ChainInfo]:
        """Production-ready backends"""
        return self.get_chains_by_status(ChainStatus.STABLE)

    def get_chains_by_capability(self, flag: str, value: Any = True) -> List[ChainInfo]:
        _check_flag(flag)
        return [info for info in self._chains.values() if getattr(info.capabilities, flag) == value]

    # URLs and identifiers

    def get_explorer_url(self, backend: Union[BackendId, str], tx_hash: str,
                         network: Union[NetworkType, str] = NetworkType.TESTNET) -> str:
        """Explorer link for a transaction; devnet/localnet use testnet's explorer"""
        info = self.get_chain(backend)
        return join_explorer_url(info.metadata.explorer_url(network), "tx", tx_hash)

    def get_rpc_url(self, backend: Union[BackendId, str],
                    network: Union[NetworkType, str] = NetworkType.TESTNET) -> str:
        """First RPC candidate for the network"""
        return self.get_chain(backend).metadata.rpc_url_candidates(network)[0]

    def get_chain_id(self, backend: Union[BackendId, str],
                     network: Union[NetworkType, str] = NetworkType.TESTNET) -> Optional[Union[int, str]]:
        return self.get_chain(backend).metadata.chain_id(network)

    # Comparison and recommendation

    def compare_chains(self, backends: Iterable[Union[BackendId, str]]) -> List[ChainComparison]:
        comparisons = []
        for backend in backends:
            info = self.get_chain(backend)
            comparisons.append(ChainComparison(
                backend=info.backend,
                display_name=info.metadata.display_name,
                tps=info.capabilities.average_tps,
                finality=info.capabilities.average_finality_seconds,
                cost_usd=info.estimated_cost_usd,
                status=info.status,
            ))
        return comparisons

    def get_recommended_chain(self, use_case: str) -> ChainRecommendation:
        """Keyword-based recommendation for a free-text use case"""
        text = use_case.lower()
        for keywords, backend, reason in _RECOMMENDATION_RULES:
            if any(keyword in text for keyword in keywords):
                return ChainRecommendation(backend, reason)
        return _DEFAULT_RECOMMENDATION

    def get_fastest_chain(self) -> BackendId:
        """Highest TPS; first registered wins ties"""
        return max(self._chains.values(), key=lambda info: info.capabilities.average_tps).backend

    def get_cheapest_chain(self) -> BackendId:
        return min(self._chains.values(), key=lambda info: info.estimated_cost_usd).backend

    def get_fastest_finality_chain(self) -> BackendId:
        return min(self._chains.values(), key=lambda info: info.capabilities.average_finality_seconds).backend

    def get_comparison_table(self) -> List[Dict[str, Any]]:
        """Rows for a human-readable comparison table"""
        rows = []
        for info in self._chains.values():
            caps = info.capabilities
            if caps.has_native_tokens:
                tokens = "✅ Native"
            elif caps.has_erc20:
                tokens = "✅ ERC-20"
            else:
                tokens = "❌"
            rows.append({
                "chain": info.metadata.display_name,
                "status": "✅ Stable" if info.status == ChainStatus.STABLE else "🚧 Beta",
                "avg_fee": f"${info.estimated_cost_usd}",
                "tps": caps.average_tps,
                "finality": f"{caps.average_finality_seconds}s",
                "contracts": f"✅ {caps.contract_language.value}" if caps.has_smart_contracts else "❌",
                "tokens": tokens,
            })
        return rows
