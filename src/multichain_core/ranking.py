"""
Chain ranking engine.

Ranks backends for a use case and personalizes the ranking with the
project's framework, language and dependencies.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Mapping, Tuple, Union

from .types import BackendId, UseCase, Fit
from .capabilities import ensure_total
from .registry import ChainRegistry

logger = logging.getLogger(__name__)


# Default score for a framework/language the SDK table does not list
DEFAULT_SDK_SCORE = 5


@dataclass
class ProjectContext:
    """What is known about the caller's project"""
    framework: Optional[str] = None  # react, next, node, vue, ...
    language: Optional[str] = None  # typescript, python, ...
    dependencies: List[str] = field(default_factory=list)


@dataclass
class ChainRanking:
    backend: BackendId
    rank: int
    base_score: int
    context_bonus: int
    score: int  # final, within [0, 100]
    fit: Fit
    headline: str
    reasons: List[str]
    considerations: List[str]
    estimated_cost: str
    context_reasons: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class UseCaseDetails:
    headline: str
    reasons: Tuple[str, ...]
    considerations: Tuple[str, ...]
    cost_estimate: str


@dataclass(frozen=True)
class SdkSupport:
    frameworks: Mapping[str, int]
    languages: Mapping[str, int]
    related_dependencies: Mapping[str, Tuple[int, str]]  # name -> (bonus, reason)


def _scores(tokens, nfts, payments, defi, enterprise, gaming, social, other) -> Dict[UseCase, int]:
    return {
        UseCase.TOKENS: tokens,
        UseCase.NFTS: nfts,
        UseCase.PAYMENTS: payments,
        UseCase.DEFI: defi,
        UseCase.ENTERPRISE: enterprise,
        UseCase.GAMING: gaming,
        UseCase.SOCIAL: social,
        UseCase.OTHER: other,
    }


USE_CASE_SCORES: Mapping[BackendId, Dict[UseCase, int]] = ensure_total({
    BackendId.HEDERA: _scores(95, 70, 85, 50, 98, 75, 80, 85),
    BackendId.ETHEREUM: _scores(90, 85, 60, 98, 80, 50, 60, 80),
    BackendId.SOLANA: _scores(85, 95, 90, 80, 55, 98, 90, 80),
    BackendId.BASE: _scores(85, 80, 95, 75, 70, 80, 85, 80),
}, "USE_CASE_SCORES")


USE_CASE_DETAILS: Mapping[BackendId, Dict[UseCase, UseCaseDetails]] = ensure_total({
    BackendId.HEDERA: {
        UseCase.TOKENS: UseCaseDetails(
            "Native token service with lowest fees",
            (
                "Native HTS (Hedera Token Service) - no smart contracts needed",
                "Fixed $0.0001 per transaction - predictable costs",
                "Built-in compliance features (KYC, freeze, clawback)",
                "Enterprise governance (Google, IBM, Boeing)",
            ),
            (
                "Smaller DeFi ecosystem for token liquidity",
                "Less wallet support than Ethereum",
            ),
            "Token creation: ~$1 | Transfers: $0.0001",
        ),
        UseCase.NFTS: UseCaseDetails(
            "Low-cost NFTs with enterprise features",
            (
                "Native NFT support via HTS",
                "Lowest minting costs ($0.05 per NFT)",
                "Built-in royalty enforcement",
            ),
            (
                "Smaller NFT marketplace ecosystem",
                "Less collector base than Ethereum/Solana",
                "Fewer NFT tools and platforms",
            ),
            "Mint: ~$0.05 | Transfer: $0.0001",
        ),
        UseCase.PAYMENTS: UseCaseDetails(
            "Enterprise-grade payments with predictable fees",
            (
                "Fixed $0.0001 transaction fee",
                "3-5 second finality",
                "Carbon-negative network",
                "Regulatory-friendly design",
            ),
            (
                "Fewer payment gateway integrations",
                "Less mainstream wallet support",
            ),
            "Per payment: $0.0001 (fixed)",
        ),
        UseCase.DEFI: UseCaseDetails(
            "Emerging DeFi with enterprise focus",
            (
                "Lower fees than Ethereum mainnet",
                "SaucerSwap and other DEXes available",
            ),
            (
                "Much smaller DeFi ecosystem",
                "Limited liquidity compared to Ethereum",
                "Fewer DeFi protocols available",
            ),
            "Swap: ~$0.01 | Liquidity: ~$0.05",
        ),
        UseCase.ENTERPRISE: UseCaseDetails(
            "Built for enterprise from the ground up",
            (
                "Governed by Fortune 500 companies",
                "ABFT consensus (bank-grade security)",
                "Predictable, fixed transaction fees",
                "Built-in compliance (SOC2, GDPR ready)",
                "Hedera Consensus Service for audit trails",
            ),
            (
                "Requires enterprise mindset shift to DLT",
            ),
            "Audit log entry: $0.0001 | Smart contract: ~$1",
        ),
        UseCase.GAMING: UseCaseDetails(
            "Fast and cheap for in-game assets",
            (
                "3-5 second finality",
                "Predictable low costs for items",
                "Native token support for currencies",
            ),
            (
                "Smaller gaming ecosystem",
                "Fewer game SDKs available",
            ),
            "Item mint: ~$0.05 | Transfer: $0.0001",
        ),
        UseCase.SOCIAL: UseCaseDetails(
            "Affordable micro-transactions",
            (
                "$0.0001 per transaction enables tipping",
                "Hedera Consensus Service for social feeds",
            ),
            (
                "Less social app ecosystem",
                "Fewer integrations",
            ),
            "Tip/Like: $0.0001",
        ),
        UseCase.OTHER: UseCaseDetails(
            "Versatile enterprise blockchain",
            (
                "Good all-around performance",
                "Lowest transaction fees",
                "Enterprise-ready",
            ),
            (
                "Evaluate based on specific needs",
            ),
            "Varies by use case",
        ),
    },
    BackendId.ETHEREUM: {
        UseCase.TOKENS: UseCaseDetails(
            "The gold standard for tokens (ERC-20)",
            (
                "ERC-20 is the most widely accepted token standard",
                "Maximum liquidity and exchange listings",
                "Most wallets support Ethereum tokens",
                "Largest developer ecosystem",
            ),
            (
                "High gas fees ($1-10 per transfer)",
                "Variable costs make budgeting hard",
                "Consider L2s (Base, Arbitrum) for lower fees",
            ),
            "Token creation: $50-200 | Transfer: $1-10",
        ),
        UseCase.NFTS: UseCaseDetails(
            "Largest NFT marketplace ecosystem",
            (
                "OpenSea, Blur, and major marketplaces",
                "Largest collector base",
                "ERC-721 is the standard",
                "Most established provenance",
            ),
            (
                "High minting costs ($5-50 per NFT)",
                "Gas fees can spike during demand",
                "Consider L2s for cheaper minting",
            ),
            "Mint: $5-50 | Transfer: $2-10",
        ),
        UseCase.PAYMENTS: UseCaseDetails(
            "Most widely accepted, but expensive",
            (
                "Accepted by most crypto payment processors",
                "Highest trust and recognition",
                "Most wallet options",
            ),
            (
                "High fees make small payments impractical",
                "12-15 second finality",
                "Better for large transactions",
            ),
            "Per payment: $1-10 (variable)",
        ),
        UseCase.DEFI: UseCaseDetails(
            "The home of DeFi - maximum liquidity",
            (
                "Uniswap, Aave, Compound - all major protocols",
                "Deepest liquidity pools",
                "Most battle-tested smart contracts",
                "Widest protocol integrations",
            ),
            (
                "High gas fees for transactions",
                "MEV (front-running) concerns",
                "Complex for beginners",
            ),
            "Swap: $5-30 | Lending: $10-50",
        ),
        UseCase.ENTERPRISE: UseCaseDetails(
            "Proven track record, premium cost",
            (
                "Most audited and battle-tested",
                "Largest talent pool",
                "Regulatory clarity in many jurisdictions",
                "Enterprise Ethereum Alliance support",
            ),
            (
                "High operational costs",
                "Scalability limitations on mainnet",
                "Consider L2s or private chains",
            ),
            "Smart contract deploy: $100-500",
        ),
        UseCase.GAMING: UseCaseDetails(
            "Not ideal for gaming (slow, expensive)",
            (
                "Immutable X L2 available for gaming",
                "Strong NFT infrastructure",
            ),
            (
                "Too slow for real-time gaming (12s blocks)",
                "Too expensive for frequent transactions",
                "Use L2s like Immutable X instead",
            ),
            "Not recommended for direct use",
        ),
        UseCase.SOCIAL: UseCaseDetails(
            "Lens Protocol, but high fees",
            (
                "Lens Protocol for decentralized social",
                "Strong identity solutions",
            ),
            (
                "Fees too high for micro-transactions",
                "Better suited for high-value social actions",
            ),
            "Post: $1-5 (impractical for most)",
        ),
        UseCase.OTHER: UseCaseDetails(
            "Most established, highest fees",
            (
                "Largest ecosystem",
                "Most developer resources",
                "Widest adoption",
            ),
            (
                "High costs",
                "Consider L2s for better economics",
            ),
            "Varies, generally $1-50 per tx",
        ),
    },
    BackendId.SOLANA: {
        UseCase.TOKENS: UseCaseDetails(
            "Fast SPL tokens with low fees",
            (
                "SPL token standard - fast and cheap",
                "Growing DeFi ecosystem for liquidity",
                "400ms finality for quick confirmations",
            ),
            (
                "Less wallet support than Ethereum",
                "Past network stability issues (improving)",
                "Different tooling than EVM chains",
            ),
            "Token creation: ~$0.01 | Transfer: $0.00025",
        ),
        UseCase.NFTS: UseCaseDetails(
            "The best choice for NFTs - cheapest minting",
            (
                "Metaplex standard - industry proven",
                "Minting costs under $0.01",
                "Magic Eden, Tensor marketplaces",
                "Compressed NFTs for even lower costs",
                "Strong creator community",
            ),
            (
                "Smaller collector base than Ethereum",
                "Less mainstream recognition",
            ),
            "Mint: $0.01-0.05 | Compressed: $0.0001",
        ),
        UseCase.PAYMENTS: UseCaseDetails(
            "Lightning fast, nearly free payments",
            (
                "400ms finality - near instant",
                "$0.00025 per transaction",
                "Solana Pay for merchant integration",
                "Great for high-volume, low-value payments",
            ),
            (
                "Less mainstream merchant adoption",
                "Fewer fiat on-ramps than Base",
            ),
            "Per payment: $0.00025",
        ),
        UseCase.DEFI: UseCaseDetails(
            "Fast-growing DeFi ecosystem",
            (
                "Raydium, Orca, Jupiter aggregator",
                "Fast execution for trading",
                "Low fees enable more strategies",
            ),
            (
                "Less liquidity than Ethereum",
                "Fewer established protocols",
                "Past exploit incidents",
            ),
            "Swap: $0.001 | Liquidity: $0.01",
        ),
        UseCase.ENTERPRISE: UseCaseDetails(
            "Speed-focused, less enterprise features",
            (
                "High throughput for data-heavy apps",
                "Low costs for high-volume operations",
            ),
            (
                "Less enterprise governance",
                "Past network outages raise concerns",
                "Fewer compliance tools",
                "Less regulatory clarity",
            ),
            "Transaction: $0.00025",
        ),
        UseCase.GAMING: UseCaseDetails(
            "Perfect for gaming - fastest and cheapest",
            (
                "400ms finality - real-time viable",
                "3,000+ TPS capacity",
                "Cheapest in-game transactions",
                "Growing gaming ecosystem",
                "Star Atlas, Aurory and more",
            ),
            (
                "Need to handle network congestion",
                "Different development paradigm",
            ),
            "In-game action: $0.00025",
        ),
        UseCase.SOCIAL: UseCaseDetails(
            "Ideal for social - fast, cheap micro-tx",
            (
                "Perfect for likes, tips, reactions",
                "Sub-second confirmation",
                "Negligible costs per action",
            ),
            (
                "Less social protocol infrastructure",
                "Building from scratch more likely",
            ),
            "Social action: $0.00025",
        ),
        UseCase.OTHER: UseCaseDetails(
            "High performance, low cost",
            (
                "Best raw performance",
                "Lowest fees for high volume",
                "Active developer community",
            ),
            (
                "Different from EVM ecosystem",
                "Learning curve for Rust",
            ),
            "$0.00025 per transaction",
        ),
    },
    BackendId.BASE: {
        UseCase.TOKENS: UseCaseDetails(
            "ERC-20 compatible with Coinbase integration",
            (
                "Full ERC-20 compatibility",
                "Much lower fees than Ethereum mainnet",
                "Easy Coinbase wallet onboarding",
                "Ethereum security via L2",
            ),
            (
                "Newer chain, smaller ecosystem",
                "Less liquidity than mainnet",
            ),
            "Token creation: $1-5 | Transfer: $0.01-0.05",
        ),
        UseCase.NFTS: UseCaseDetails(
            "Affordable NFTs with Coinbase reach",
            (
                "Low minting costs ($0.10-0.50)",
                "Coinbase wallet integration",
                "Access to Coinbase user base",
                "ERC-721 compatible",
            ),
            (
                "Smaller marketplace ecosystem",
                "Less established than Ethereum/Solana",
            ),
            "Mint: $0.10-0.50 | Transfer: $0.01",
        ),
        UseCase.PAYMENTS: UseCaseDetails(
            "Best for payments - Coinbase + fiat on-ramp",
            (
                "Direct Coinbase integration",
                "Easy fiat on/off ramps",
                "Low fees ($0.01-0.05)",
                "Familiar Ethereum tooling",
                "USDC native support",
            ),
            (
                "Centralization concerns (Coinbase)",
                "Newer ecosystem",
            ),
            "Per payment: $0.01-0.05",
        ),
        UseCase.DEFI: UseCaseDetails(
            "Growing DeFi with Ethereum compatibility",
            (
                "Uniswap, Aave deploying on Base",
                "Lower fees than mainnet",
                "Familiar EVM tooling",
            ),
            (
                "Less liquidity than mainnet",
                "Fewer protocols (but growing fast)",
            ),
            "Swap: $0.05-0.20",
        ),
        UseCase.ENTERPRISE: UseCaseDetails(
            "Coinbase backing adds credibility",
            (
                "Coinbase is publicly traded, regulated",
                "Familiar Ethereum tooling",
                "Lower costs than mainnet",
            ),
            (
                "Centralization around Coinbase",
                "Less battle-tested than mainnet",
                "Newer regulatory landscape",
            ),
            "Contract deploy: $5-20",
        ),
        UseCase.GAMING: UseCaseDetails(
            "Good balance for casual gaming",
            (
                "Low enough fees for gaming",
                "2-3 second finality",
                "Easy onboarding via Coinbase",
            ),
            (
                "Not as fast as Solana",
                "Smaller gaming ecosystem",
            ),
            "In-game action: $0.01-0.05",
        ),
        UseCase.SOCIAL: UseCaseDetails(
            "Social with easy onboarding",
            (
                "Coinbase wallet = easy user onboarding",
                "Low fees for social actions",
                "Farcaster integration",
            ),
            (
                "Still building social infrastructure",
            ),
            "Social action: $0.01-0.05",
        ),
        UseCase.OTHER: UseCaseDetails(
            "Ethereum L2 with Coinbase backing",
            (
                "Best of Ethereum with lower fees",
                "Strong institutional backing",
                "Easy mainstream onboarding",
            ),
            (
                "Relatively new",
                "Dependent on Coinbase",
            ),
            "$0.01-0.05 per transaction",
        ),
    },
}, "USE_CASE_DETAILS")


# 10 = excellent native support, 5 = good, 0 = basic/community
SDK_SUPPORT: Mapping[BackendId, SdkSupport] = ensure_total({
    BackendId.ETHEREUM: SdkSupport(
        frameworks={"react": 10, "next": 10, "vue": 8, "node": 10, "express": 10, "python": 8},
        languages={"typescript": 10, "javascript": 10, "python": 8},
        related_dependencies={
            "ethers": (15, "Already using ethers.js - perfect for Ethereum/Base"),
            "web3": (15, "Already using web3.js - perfect for Ethereum/Base"),
            "wagmi": (15, "Already using wagmi - perfect for Ethereum/Base"),
            "@stripe/stripe-js": (5, "Stripe integration pairs well with Base for fiat on-ramp"),
            "viem": (15, "Already using viem - perfect for Ethereum/Base"),
        },
    ),
    BackendId.BASE: SdkSupport(
        frameworks={"react": 10, "next": 10, "vue": 8, "node": 10, "express": 10, "python": 8},
        languages={"typescript": 10, "javascript": 10, "python": 8},
        related_dependencies={
            "ethers": (15, "Already using ethers.js - works seamlessly with Base"),
            "web3": (15, "Already using web3.js - works seamlessly with Base"),
            "wagmi": (15, "Already using wagmi - works seamlessly with Base"),
            "@stripe/stripe-js": (10, "Stripe + Base = great payment experience with fiat on-ramp"),
            "@stripe/react-stripe-js": (10, "Stripe + Base = seamless payments with Coinbase integration"),
            "viem": (15, "Already using viem - works seamlessly with Base"),
        },
    ),
    BackendId.SOLANA: SdkSupport(
        frameworks={"react": 8, "next": 8, "vue": 5, "node": 8, "express": 8, "python": 6},
        languages={"typescript": 8, "javascript": 8, "python": 5, "rust": 10},
        related_dependencies={
            "@solana/web3.js": (20, "Already using Solana SDK - perfect match!"),
            "@solana/wallet-adapter-react": (20, "Already using Solana wallet adapter"),
            "@metaplex-foundation/js": (15, "Already using Metaplex - great for NFTs"),
        },
    ),
    BackendId.HEDERA: SdkSupport(
        frameworks={"react": 6, "next": 6, "vue": 4, "node": 8, "express": 8, "python": 5, "java": 10},
        languages={"typescript": 7, "javascript": 7, "python": 5, "java": 10},
        related_dependencies={
            "@hashgraph/sdk": (20, "Already using Hedera SDK - perfect match!"),
            "hashconnect": (15, "Already using HashConnect - great for Hedera"),
        },
    ),
}, "SDK_SUPPORT")


_RANK_BADGES = {1: "🥇", 2: "🥈", 3: "🥉"}
_FIT_COLORS = {
    Fit.EXCELLENT: "green",
    Fit.GOOD: "cyan",
    Fit.POSSIBLE: "yellow",
    Fit.NOT_RECOMMENDED: "gray",
}
_FIT_LABELS = {
    Fit.EXCELLENT: "Excellent fit",
    Fit.GOOD: "Good fit",
    Fit.POSSIBLE: "Possible",
    Fit.NOT_RECOMMENDED: "Not recommended",
}


def score_to_fit(score: int) -> Fit:
    if score >= 90:
        return Fit.EXCELLENT
    if score >= 75:
        return Fit.GOOD
    if score >= 60:
        return Fit.POSSIBLE
    return Fit.NOT_RECOMMENDED


def calculate_context_bonus(backend: BackendId, context: ProjectContext) -> Tuple[int, List[str]]:
    """Bonus or penalty from the project's framework, language and dependencies"""
    bonus = 0
    reasons: List[str] = []
    support = SDK_SUPPORT[backend]

    if context.framework:
        framework_score = support.frameworks.get(context.framework.lower(), DEFAULT_SDK_SCORE)
        if framework_score >= 10:
            bonus += 5
            reasons.append(f"Excellent {context.framework} SDK support")
        elif framework_score >= 8:
            bonus += 3
            reasons.append(f"Good {context.framework} SDK available")
        elif framework_score <= 4:
            bonus -= 5
            reasons.append(f"Limited {context.framework} SDK support")

    if context.language:
        language_score = support.languages.get(context.language.lower(), DEFAULT_SDK_SCORE)
        if language_score >= 10:
            bonus += 3
            reasons.append(f"Full {context.language} type definitions")
        elif language_score <= 4:
            bonus -= 3

    # Dependencies are the strongest signal
    for dependency in context.dependencies or ():
        related = support.related_dependencies.get(dependency)
        if related is not None:
            dependency_bonus, reason = related
            bonus += dependency_bonus
            reasons.append(reason)

    return bonus, reasons


class ChainRankingEngine:
    """Ranks registered backends for a use case"""

    def __init__(self, registry: Optional[ChainRegistry] = None):
        self.registry = registry or ChainRegistry()

    def rank_backends_for_use_case(self, use_case: Union[UseCase, str],
                                   context: Optional[ProjectContext] = None) -> List[ChainRanking]:
        """
        Rank every registered backend for a use case.

        The final score is base score plus context bonus, clamped to
        [0, 100]. Sorting is stable, so equal scores keep enumeration order.
        """
        use_case = UseCase(use_case)
        rankings = []
        for info in self.registry.get_all_chains():
            backend = info.backend
            base_score = USE_CASE_SCORES[backend][use_case]
            details = USE_CASE_DETAILS[backend][use_case]
            context_bonus, context_reasons = calculate_context_bonus(backend, context) if context else (0, [])
            score = max(0, min(100, base_score + context_bonus))

            rankings.append(ChainRanking(
                backend=backend,
                rank=0,
                base_score=base_score,
                context_bonus=context_bonus,
                score=score,
                fit=score_to_fit(score),
                headline=details.headline,
                reasons=list(details.reasons) + context_reasons,
                considerations=list(details.considerations),
                estimated_cost=details.cost_estimate,
                context_reasons=context_reasons,
            ))

        rankings.sort(key=lambda ranking: ranking.score, reverse=True)
        for position, ranking in enumerate(rankings, start=1):
            ranking.rank = position

        logger.debug(f"Ranked {len(rankings)} backends for {use_case.value}: "
                     f"{[r.backend.value for r in rankings]}")
        return rankings

    def get_best_backend_for_use_case(self, use_case: Union[UseCase, str],
                                      context: Optional[ProjectContext] = None) -> ChainRanking:
        return self.rank_backends_for_use_case(use_case, context)[0]

    @staticmethod
    def get_rank_badge(rank: int) -> str:
        """Medal for the top three ranks"""
        return _RANK_BADGES.get(rank, "  ")

    @staticmethod
    def get_fit_color(fit: Union[Fit, str]) -> str:
        return _FIT_COLORS[Fit(fit)]

    @staticmethod
    def get_fit_label(fit: Union[Fit, str]) -> str:
        return _FIT_LABELS[Fit(fit)]
