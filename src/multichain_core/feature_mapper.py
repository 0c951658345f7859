"""
Feature mapper.

Maps integration categories across backends to find equivalents, e.g.
Hedera HTS -> Ethereum ERC-20 -> Solana SPL Token. When a feature does not
exist on a backend, the closest alternative can be suggested.
"""

from dataclasses import dataclass
from typing import Optional, Dict, List, Mapping, Tuple, Union

from .types import BackendId, IntegrationCategory
from .capabilities import ensure_total

# Suggestion tiers (similarity thresholds)
EQUIVALENT_THRESHOLD = 0.9
SIMILAR_THRESHOLD = 0.7


@dataclass(frozen=True)
class FeatureEquivalent:
    """How one backend realizes an integration category"""
    backend: BackendId
    feature: str
    similarity: float  # 1.0 = native, identical semantics
    notes: str
    implementation: str
    standard: Optional[str] = None
    advantages: Tuple[str, ...] = ()
    limitations: Tuple[str, ...] = ()

    def __post_init__(self):
        if not 0.0 <= self.similarity <= 1.0:
            raise ValueError(f"similarity must be within [0, 1], got {self.similarity}")


@dataclass(frozen=True)
class FeatureMapping:
    category: IntegrationCategory
    description: str
    implementations: Mapping[BackendId, FeatureEquivalent]

    def __post_init__(self):
        # Every mapping covers every backend
        object.__setattr__(
            self, "implementations",
            ensure_total(self.implementations, f"{self.category.value} mapping"),
        )


@dataclass(frozen=True)
class ImplementationComparison:
    backend: BackendId
    feature: str
    similarity: float
    pros: Tuple[str, ...]
    cons: Tuple[str, ...]


def _equivalent(backend: BackendId, feature: str, similarity: float, notes: str,
                implementation: str, standard: Optional[str] = None,
                advantages: Tuple[str, ...] = (), limitations: Tuple[str, ...] = ()) -> FeatureEquivalent:
    return FeatureEquivalent(
        backend=backend,
        feature=feature,
        similarity=similarity,
        notes=notes,
        implementation=implementation,
        standard=standard,
        advantages=advantages,
        limitations=limitations,
    )


DEFAULT_MAPPINGS: Tuple[FeatureMapping, ...] = (
    FeatureMapping(
        category=IntegrationCategory.TOKEN,
        description="Fungible token creation and management",
        implementations={
            BackendId.HEDERA: _equivalent(
                BackendId.HEDERA, "Hedera Token Service (HTS)", 1.0,
                "Native token service with fixed fees and built-in compliance features",
                "TokenCreateTransaction",
                standard="HTS",
                advantages=(
                    "Native to the platform (no smart contract needed)",
                    "Predictable fees ($0.0001 per transfer)",
                    "Built-in KYC and freeze capabilities",
                    "Atomic swaps supported",
                ),
            ),
            BackendId.ETHEREUM: _equivalent(
                BackendId.ETHEREUM, "ERC-20 Token Standard", 0.9,
                "Smart contract-based fungible token standard",
                "Deploy ERC-20 contract via ethers.js",
                standard="ERC-20",
                limitations=(
                    "Requires smart contract deployment",
                    "Variable gas fees ($1-50 per transaction)",
                    "KYC/freeze requires custom implementation",
                ),
                advantages=(
                    "Most widely adopted standard",
                    "Extensive tooling and wallets",
                    "Maximum composability with DeFi",
                ),
            ),
            BackendId.SOLANA: _equivalent(
                BackendId.SOLANA, "SPL Token Program", 0.95,
                "Native token program with low fees",
                "spl-token create-token command",
                standard="SPL Token",
                advantages=(
                    "Native token program (minimal deployment cost)",
                    "Extremely low fees ($0.00025 per transfer)",
                    "High throughput (3,000 TPS)",
                    "Token accounts for security",
                ),
                limitations=(
                    "Requires token account creation",
                    "Different model than Ethereum",
                ),
            ),
            BackendId.BASE: _equivalent(
                BackendId.BASE, "ERC-20 Token Standard (L2)", 0.9,
                "Same as Ethereum but on Layer 2 with lower fees",
                "Deploy ERC-20 contract on Base L2",
                standard="ERC-20",
                advantages=(
                    "Ethereum-compatible",
                    "Much lower fees than Ethereum L1 ($0.01-0.05)",
                    "Coinbase wallet integration",
                    "Easy bridging to/from Ethereum",
                ),
                limitations=(
                    "Still requires smart contract deployment",
                    "Slightly higher fees than Solana/Hedera",
                ),
            ),
        },
    ),
    FeatureMapping(
        category=IntegrationCategory.NFT,
        description="Non-fungible token (NFT) creation and management",
        implementations={
            BackendId.HEDERA: _equivalent(
                BackendId.HEDERA, "Hedera NFT (HTS Non-Fungible)", 1.0,
                "Native NFT support via HTS with serial numbers",
                "TokenCreateTransaction with TokenType.NON_FUNGIBLE_UNIQUE",
                standard="HTS NFT",
                advantages=(
                    "Native to the platform",
                    "Predictable fees",
                    "Built-in royalty support",
                ),
            ),
            BackendId.ETHEREUM: _equivalent(
                BackendId.ETHEREUM, "ERC-721 NFT Standard", 0.9,
                "Standard NFT contract on Ethereum",
                "Deploy ERC-721 contract",
                standard="ERC-721",
                advantages=(
                    "Most widely adopted NFT standard",
                    "Rich ecosystem and marketplaces (OpenSea, Rarible)",
                    "Royalty support via ERC-2981",
                ),
                limitations=(
                    "High minting costs ($50-200 per NFT on mainnet)",
                    "Gas fees for transfers",
                ),
            ),
            BackendId.SOLANA: _equivalent(
                BackendId.SOLANA, "Metaplex NFT Standard", 0.85,
                "Metaplex protocol for NFTs on Solana",
                "Metaplex SDK or Candy Machine",
                standard="Metaplex",
                advantages=(
                    "Extremely low minting cost ($0.01 per NFT)",
                    "High throughput for mass minting",
                    "Candy Machine for drops",
                    "Built-in royalty enforcement",
                ),
                limitations=(
                    "Different metadata standard than Ethereum",
                    "Smaller marketplace ecosystem",
                ),
            ),
            BackendId.BASE: _equivalent(
                BackendId.BASE, "ERC-721 NFT Standard (L2)", 0.9,
                "Same as Ethereum but on Layer 2",
                "Deploy ERC-721 contract on Base",
                standard="ERC-721",
                advantages=(
                    "Ethereum-compatible",
                    "Much lower minting costs ($1-5 per NFT)",
                    "Bridgeable to Ethereum L1",
                ),
            ),
        },
    ),
    FeatureMapping(
        category=IntegrationCategory.SMART_CONTRACT,
        description="Programmable smart contracts",
        implementations={
            BackendId.HEDERA: _equivalent(
                BackendId.HEDERA, "Hedera Smart Contract Service", 1.0,
                "EVM-compatible smart contracts with predictable fees",
                "FileCreateTransaction + ContractCreateTransaction",
                standard="Solidity",
                advantages=(
                    "EVM-compatible (Solidity)",
                    "Predictable deployment and execution fees",
                    "Same tooling as Ethereum (Hardhat, Foundry)",
                ),
            ),
            BackendId.ETHEREUM: _equivalent(
                BackendId.ETHEREUM, "Ethereum Smart Contracts", 1.0,
                "Original smart contract platform",
                "Deploy contract via ethers.js or Hardhat",
                standard="Solidity",
                advantages=(
                    "Most mature ecosystem",
                    "Extensive auditing tools",
                    "Maximum composability",
                ),
                limitations=(
                    "High deployment costs ($100-1000s)",
                    "Variable execution costs",
                ),
            ),
            BackendId.SOLANA: _equivalent(
                BackendId.SOLANA, "Solana Programs", 0.6,
                "Rust-based programs with different execution model",
                "Anchor framework or native Rust",
                standard="Rust",
                advantages=(
                    "High performance",
                    "Low execution costs",
                    "Parallel transaction processing",
                ),
                limitations=(
                    "Different language (Rust)",
                    "Different programming model (account-based)",
                    "Steeper learning curve",
                ),
            ),
            BackendId.BASE: _equivalent(
                BackendId.BASE, "Base Smart Contracts", 1.0,
                "Same as Ethereum, fully EVM-compatible",
                "Deploy contract on Base L2",
                standard="Solidity",
                advantages=(
                    "Identical to Ethereum",
                    "Much lower deployment and execution costs",
                    "Same tooling",
                ),
            ),
        },
    ),
    FeatureMapping(
        category=IntegrationCategory.CONSENSUS,
        description="Consensus/messaging services for decentralized communication",
        implementations={
            BackendId.HEDERA: _equivalent(
                BackendId.HEDERA, "Hedera Consensus Service (HCS)", 1.0,
                "Native consensus service for immutable messaging and audit logs",
                "TopicCreateTransaction + TopicMessageSubmitTransaction",
                standard="HCS",
                advantages=(
                    "Native to the platform",
                    "Ordered, timestamped messages",
                    "Perfect for audit logs",
                    "Fixed fees per message",
                ),
            ),
            BackendId.ETHEREUM: _equivalent(
                BackendId.ETHEREUM, "Smart Contract Events", 0.6,
                "Smart contract event logs can be used for pub/sub patterns",
                "Emit events from smart contracts",
                standard="Event Logs",
                advantages=(
                    "Native to smart contracts",
                    "Indexable via The Graph",
                    "Can trigger off-chain actions",
                ),
                limitations=(
                    "Not a true messaging service",
                    "Requires smart contract",
                    "Gas costs for emitting events",
                    "Not ordered across contracts",
                ),
            ),
            BackendId.SOLANA: _equivalent(
                BackendId.SOLANA, "Account Data Subscriptions", 0.5,
                "Subscribe to account data changes for pub/sub patterns",
                "WebSocket account subscriptions",
                standard="WebSocket Subscriptions",
                advantages=(
                    "Real-time updates",
                    "Low latency",
                ),
                limitations=(
                    "Not a true consensus service",
                    "Requires active subscription",
                    "No built-in ordering guarantees",
                ),
            ),
            BackendId.BASE: _equivalent(
                BackendId.BASE, "Smart Contract Events (L2)", 0.6,
                "Same as Ethereum with lower costs",
                "Emit events from smart contracts",
                standard="Event Logs",
                advantages=(
                    "Lower gas costs than Ethereum L1",
                    "Same tooling as Ethereum",
                ),
                limitations=(
                    "Still not a true messaging service",
                    "Requires smart contract",
                ),
            ),
        },
    ),
    FeatureMapping(
        category=IntegrationCategory.WALLET,
        description="Wallet connectivity and transaction signing",
        implementations={
            BackendId.HEDERA: _equivalent(
                BackendId.HEDERA, "Hedera Wallets", 1.0,
                "HashPack, Blade, WalletConnect, MetaMask Snap",
                "WalletConnect protocol or wallet-specific SDKs",
            ),
            BackendId.ETHEREUM: _equivalent(
                BackendId.ETHEREUM, "Ethereum Wallets", 1.0,
                "MetaMask, Coinbase Wallet, WalletConnect, Ledger",
                "ethers.js BrowserProvider or WalletConnect",
            ),
            BackendId.SOLANA: _equivalent(
                BackendId.SOLANA, "Solana Wallets", 1.0,
                "Phantom, Solflare, WalletConnect",
                "@solana/wallet-adapter",
            ),
            BackendId.BASE: _equivalent(
                BackendId.BASE, "Base Wallets (Ethereum-compatible)", 1.0,
                "Same as Ethereum (MetaMask, Coinbase Wallet, etc.)",
                "ethers.js BrowserProvider",
            ),
        },
    ),
)


class FeatureMapper:
    """Cross-backend feature mapping and equivalence detection"""

    def __init__(self, mappings: Optional[Tuple[FeatureMapping, ...]] = None):
        self._mappings: Dict[IntegrationCategory, FeatureMapping] = {}
        for mapping in DEFAULT_MAPPINGS if mappings is None else mappings:
            self._mappings[mapping.category] = mapping

    def _mapping(self, category: Union[IntegrationCategory, str]) -> Optional[FeatureMapping]:
        return self._mappings.get(IntegrationCategory(category))

    def get_implementation(self, category: Union[IntegrationCategory, str],
                           backend: Union[BackendId, str]) -> Optional[FeatureEquivalent]:
        """The backend's realization of a category, or None when unmapped"""
        mapping = self._mapping(category)
        if mapping is None:
            return None
        return mapping.implementations.get(BackendId(backend))

    def get_equivalent(self, source: Union[BackendId, str], target: Union[BackendId, str],
                       category: Union[IntegrationCategory, str]) -> Optional[FeatureEquivalent]:
        """Equivalent on the target; similarity is stored per target, so source does not matter"""
        return self.get_implementation(category, target)

    def get_all_implementations(
        self, category: Union[IntegrationCategory, str]
    ) -> Optional[Mapping[BackendId, FeatureEquivalent]]:
        mapping = self._mapping(category)
        return mapping.implementations if mapping is not None else None

    def get_description(self, category: Union[IntegrationCategory, str]) -> Optional[str]:
        mapping = self._mapping(category)
        return mapping.description if mapping is not None else None

    def compare_implementations(
        self, category: Union[IntegrationCategory, str]
    ) -> Optional[List[ImplementationComparison]]:
        """Flattened comparison in enumeration order (not sorted by similarity)"""
        mapping = self._mapping(category)
        if mapping is None:
            return None
        return [
            ImplementationComparison(
                backend=backend,
                feature=implementation.feature,
                similarity=implementation.similarity,
                pros=implementation.advantages,
                cons=implementation.limitations,
            )
            for backend, implementation in mapping.implementations.items()
        ]

    def get_suggestion(self, source: Union[BackendId, str], target: Union[BackendId, str],
                       category: Union[IntegrationCategory, str]) -> str:
        """Human-readable message for moving a feature from source to target"""
        category = IntegrationCategory(category)
        target = BackendId(target)
        source_impl = self.get_implementation(category, source)
        target_impl = self.get_implementation(category, target)

        if source_impl is None or target_impl is None:
            return f"{category.value} feature not available on {target.value}"

        if target_impl.similarity >= EQUIVALENT_THRESHOLD:
            return (f"✅ {target_impl.feature} on {target.value} is functionally equivalent "
                    f"to {source_impl.feature}")
        elif target_impl.similarity >= SIMILAR_THRESHOLD:
            difference = target_impl.limitations[0] if target_impl.limitations else target_impl.notes
            return (f"⚠️ {target_impl.feature} on {target.value} is similar but has some differences. "
                    f"{difference}")
        return f"❌ {target_impl.feature} on {target.value} is significantly different. {target_impl.notes}"

    def is_supported(self, backend: Union[BackendId, str], category: Union[IntegrationCategory, str]) -> bool:
        return self.get_implementation(category, backend) is not None
