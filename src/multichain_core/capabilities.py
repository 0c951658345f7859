"""
Declarative capability and metadata model for every supported backend.

Used to detect which operations a backend supports, to produce helpful
errors when a feature is missing, and to drive recommendations.
"""

from dataclasses import dataclass, fields
from types import MappingProxyType
from typing import Optional, Dict, List, Tuple, Iterable, Mapping, Any, Union

from .types import BackendId, NetworkType, AccountModel, ContractLanguage


@dataclass(frozen=True)
class ChainCapabilities:
    """Capability flags for one backend"""
    # Token standards
    has_native_tokens: bool
    has_erc20: bool
    has_erc721: bool
    has_erc1155: bool

    # Smart contracts
    has_smart_contracts: bool
    contract_language: Optional[ContractLanguage]

    # Messaging
    has_consensus_service: bool
    has_event_logs: bool

    account_model: AccountModel

    # Performance
    average_tps: int
    average_finality_seconds: float

    has_staking: bool
    has_governance: bool
    has_multisig: bool

    # Token features
    has_token_freeze: bool
    has_token_pause: bool
    has_token_burn: bool
    has_token_mint: bool

    # Fees
    has_predictable_fees: bool
    has_variable_gas: bool

    # Accounts
    has_account_creation: bool
    has_account_association: bool

    def __post_init__(self):
        if self.contract_language is not None and not self.has_smart_contracts:
            raise ValueError("contract_language requires has_smart_contracts")
        if self.has_predictable_fees and self.has_variable_gas:
            raise ValueError("has_predictable_fees and has_variable_gas are mutually exclusive")


@dataclass(frozen=True)
class ChainMetadata:
    """Display and connection metadata for one backend"""
    backend: BackendId
    name: str
    display_name: str
    description: str
    native_token: str
    explorer_urls: Mapping[str, str]
    rpc_urls: Mapping[str, Tuple[str, ...]]
    documentation: str
    chain_ids: Optional[Mapping[str, Union[int, str]]] = None

    def explorer_url(self, network: Union[NetworkType, str] = NetworkType.TESTNET) -> str:
        return self.explorer_urls[normalize_network(network).value]

    def rpc_url_candidates(self, network: Union[NetworkType, str] = NetworkType.TESTNET) -> Tuple[str, ...]:
        return self.rpc_urls[normalize_network(network).value]

    def chain_id(self, network: Union[NetworkType, str] = NetworkType.TESTNET) -> Optional[Union[int, str]]:
        if self.chain_ids is None:
            return None
        return self.chain_ids[normalize_network(network).value]


@dataclass(frozen=True)
class PerformanceSnapshot:
    backend: BackendId
    tps: int
    finality: float


CAPABILITY_FLAGS: Tuple[str, ...] = tuple(f.name for f in fields(ChainCapabilities))


def normalize_network(network: Union[NetworkType, str]) -> NetworkType:
    """Map devnet/localnet onto testnet; metadata only knows mainnet/testnet."""
    network = NetworkType(network)
    if network in (NetworkType.DEVNET, NetworkType.LOCALNET):
        return NetworkType.TESTNET
    return network


def ensure_total(table: Mapping[Any, Any], name: str) -> Mapping[BackendId, Any]:
    """Check a per-backend table covers every BackendId and freeze it"""
    keyed = {BackendId(key): value for key, value in table.items()}
    missing = [backend.value for backend in BackendId if backend not in keyed]
    if missing:
        raise ValueError(f"{name} is missing entries for: {', '.join(missing)}")
    return MappingProxyType({backend: keyed[backend] for backend in BackendId})


def _networks(mainnet, testnet) -> Mapping[str, Any]:
    return MappingProxyType({NetworkType.MAINNET.value: mainnet, NetworkType.TESTNET.value: testnet})


CHAIN_CAPABILITIES: Mapping[BackendId, ChainCapabilities] = ensure_total({
    BackendId.HEDERA: ChainCapabilities(
        has_native_tokens=True,
        has_erc20=False,
        has_erc721=False,
        has_erc1155=False,
        has_smart_contracts=True,
        contract_language=ContractLanguage.SOLIDITY,
        has_consensus_service=True,
        has_event_logs=False,
        account_model=AccountModel.ACCOUNT_BASED,
        average_tps=10000,
        average_finality_seconds=3,
        has_staking=True,
        has_governance=False,
        has_multisig=True,
        has_token_freeze=True,
        has_token_pause=True,
        has_token_burn=True,
        has_token_mint=True,
        has_predictable_fees=True,
        has_variable_gas=False,
        has_account_creation=True,
        has_account_association=True,
    ),
    BackendId.ETHEREUM: ChainCapabilities(
        has_native_tokens=False,
        has_erc20=True,
        has_erc721=True,
        has_erc1155=True,
        has_smart_contracts=True,
        contract_language=ContractLanguage.SOLIDITY,
        has_consensus_service=False,
        has_event_logs=True,
        account_model=AccountModel.ACCOUNT_BASED,
        average_tps=15,
        average_finality_seconds=180,  # ~12-15 confirmations
        has_staking=True,
        has_governance=True,
        has_multisig=True,
        has_token_freeze=False,
        has_token_pause=False,  # contract-dependent
        has_token_burn=True,
        has_token_mint=True,
        has_predictable_fees=False,
        has_variable_gas=True,
        has_account_creation=False,  # EOAs derive from the key
        has_account_association=False,
    ),
    BackendId.SOLANA: ChainCapabilities(
        has_native_tokens=True,  # SPL
        has_erc20=False,
        has_erc721=False,
        has_erc1155=False,
        has_smart_contracts=True,
        contract_language=ContractLanguage.RUST,
        has_consensus_service=False,
        has_event_logs=False,  # account data subscriptions instead
        account_model=AccountModel.ACCOUNT_BASED,
        average_tps=3000,
        average_finality_seconds=0.4,
        has_staking=True,
        has_governance=True,
        has_multisig=True,
        has_token_freeze=True,
        has_token_pause=False,
        has_token_burn=True,
        has_token_mint=True,
        has_predictable_fees=False,
        has_variable_gas=True,  # priority fees
        has_account_creation=True,
        has_account_association=False,
    ),
    BackendId.BASE: ChainCapabilities(
        has_native_tokens=False,
        has_erc20=True,
        has_erc721=True,
        has_erc1155=True,
        has_smart_contracts=True,
        contract_language=ContractLanguage.SOLIDITY,
        has_consensus_service=False,
        has_event_logs=True,
        account_model=AccountModel.ACCOUNT_BASED,
        average_tps=1000,
        average_finality_seconds=2,
        has_staking=False,
        has_governance=True,
        has_multisig=True,
        has_token_freeze=False,
        has_token_pause=False,
        has_token_burn=True,
        has_token_mint=True,
        has_predictable_fees=False,
        has_variable_gas=True,
        has_account_creation=False,
        has_account_association=False,
    ),
}, "CHAIN_CAPABILITIES")


CHAIN_METADATA: Mapping[BackendId, ChainMetadata] = ensure_total({
    BackendId.HEDERA: ChainMetadata(
        backend=BackendId.HEDERA,
        name="hedera",
        display_name="Hedera",
        description="Enterprise-grade public blockchain with predictable fees and ABFT consensus",
        native_token="HBAR",
        explorer_urls=_networks("https://hashscan.io/mainnet", "https://hashscan.io/testnet"),
        rpc_urls=_networks(
            ("https://mainnet-public.mirrornode.hedera.com",),
            ("https://testnet.mirrornode.hedera.com",),
        ),
        chain_ids=_networks("295", "296"),
        documentation="https://docs.hedera.com",
    ),
    BackendId.ETHEREUM: ChainMetadata(
        backend=BackendId.ETHEREUM,
        name="ethereum",
        display_name="Ethereum",
        description="The most established smart contract platform with maximum decentralization",
        native_token="ETH",
        explorer_urls=_networks("https://etherscan.io", "https://sepolia.etherscan.io"),
        rpc_urls=_networks(
            ("https://eth-mainnet.g.alchemy.com/v2/", "https://mainnet.infura.io/v3/"),
            ("https://eth-sepolia.g.alchemy.com/v2/", "https://sepolia.infura.io/v3/"),
        ),
        chain_ids=_networks(1, 11155111),  # Sepolia
        documentation="https://ethereum.org/developers",
    ),
    BackendId.SOLANA: ChainMetadata(
        backend=BackendId.SOLANA,
        name="solana",
        display_name="Solana",
        description="High-performance blockchain optimized for speed and low fees",
        native_token="SOL",
        explorer_urls=_networks("https://explorer.solana.com", "https://explorer.solana.com?cluster=devnet"),
        rpc_urls=_networks(
            ("https://api.mainnet-beta.solana.com",),
            ("https://api.devnet.solana.com",),
        ),
        documentation="https://docs.solana.com",
    ),
    BackendId.BASE: ChainMetadata(
        backend=BackendId.BASE,
        name="base",
        display_name="Base",
        description="Ethereum L2 by Coinbase with low fees and easy fiat on-ramps",
        native_token="ETH",
        explorer_urls=_networks("https://basescan.org", "https://sepolia.basescan.org"),
        rpc_urls=_networks(
            ("https://mainnet.base.org",),
            ("https://sepolia.base.org",),
        ),
        chain_ids=_networks(8453, 84532),  # Base Sepolia
        documentation="https://docs.base.org",
    ),
}, "CHAIN_METADATA")


_CAPABILITY_DESCRIPTIONS: Dict[str, str] = {
    "has_native_tokens": "Native token service (e.g., HTS, SPL)",
    "has_erc20": "ERC-20 fungible token standard",
    "has_erc721": "ERC-721 NFT standard",
    "has_erc1155": "ERC-1155 multi-token standard",
    "has_smart_contracts": "Smart contract deployment",
    "has_consensus_service": "Consensus/messaging service (Hedera HCS)",
    "has_event_logs": "Event logs for pub/sub patterns",
    "has_staking": "Native staking functionality",
    "has_governance": "On-chain governance",
    "has_multisig": "Multi-signature wallets",
    "has_token_freeze": "Ability to freeze token accounts",
    "has_token_pause": "Ability to pause token operations",
    "has_predictable_fees": "Fixed, predictable transaction fees",
    "has_variable_gas": "Variable gas fees based on network demand",
}


def _check_flag(flag: str) -> str:
    if flag not in CAPABILITY_FLAGS:
        raise ValueError(f"Unknown capability flag: {flag}")
    return flag


def get_capabilities(backend: Union[BackendId, str]) -> ChainCapabilities:
    """Get capabilities for a backend"""
    return CHAIN_CAPABILITIES[BackendId(backend)]


def get_metadata(backend: Union[BackendId, str]) -> ChainMetadata:
    """Get metadata for a backend"""
    return CHAIN_METADATA[BackendId(backend)]


def has_capability(backend: Union[BackendId, str], flag: str) -> bool:
    """Check if a backend supports a capability flag"""
    return bool(getattr(get_capabilities(backend), _check_flag(flag)))


def find_backends_by_capability(flag: str, value: Any = True) -> List[BackendId]:
    """Backends whose flag equals value, in enumeration order"""
    _check_flag(flag)
    return [
        backend for backend, caps in CHAIN_CAPABILITIES.items()
        if getattr(caps, flag) == value
    ]


def compare_performance(backends: Iterable[Union[BackendId, str]]) -> List[PerformanceSnapshot]:
    snapshots = []
    for backend in backends:
        caps = get_capabilities(backend)
        snapshots.append(PerformanceSnapshot(
            backend=BackendId(backend),
            tps=caps.average_tps,
            finality=caps.average_finality_seconds,
        ))
    return snapshots


def get_fastest_backend(backends: Optional[Iterable[Union[BackendId, str]]] = None) -> BackendId:
    """
    Backend with the highest TPS.

    Ties go to the first backend in the supplied order (enumeration order
    when none is supplied).
    """
    candidates = [BackendId(b) for b in backends] if backends is not None else list(BackendId)
    if not candidates:
        raise ValueError("No backends to compare")
    # max() keeps the first maximal element
    return max(candidates, key=lambda b: CHAIN_CAPABILITIES[b].average_tps)


def get_fastest_finality(backends: Optional[Iterable[Union[BackendId, str]]] = None) -> BackendId:
    """Backend with the lowest finality time; ties as in get_fastest_backend"""
    candidates = [BackendId(b) for b in backends] if backends is not None else list(BackendId)
    if not candidates:
        raise ValueError("No backends to compare")
    return min(candidates, key=lambda b: CHAIN_CAPABILITIES[b].average_finality_seconds)


def get_capability_description(flag: str) -> str:
    """Human-readable description of a capability flag"""
    return _CAPABILITY_DESCRIPTIONS.get(flag, flag)
