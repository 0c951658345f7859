"""
Tests for cross-backend feature mapping
"""

import pytest

from multichain_core.types import BackendId, IntegrationCategory
from multichain_core.feature_mapper import (
    FeatureMapper, FeatureMapping, FeatureEquivalent,
    DEFAULT_MAPPINGS
)


@pytest.fixture
def mapper():
    return FeatureMapper()


class TestFeatureMappings:
    """Test the mapping tables"""

    def test_every_mapping_is_total(self):
        """Test every mapped category covers every backend"""
        for mapping in DEFAULT_MAPPINGS:
            assert list(mapping.implementations) == list(BackendId)
            for backend, implementation in mapping.implementations.items():
                assert implementation.backend == backend
                assert 0.0 <= implementation.similarity <= 1.0

    def test_partial_mapping_rejected(self):
        """Test a mapping missing a backend fails at construction"""
        equivalent = FeatureEquivalent(BackendId.HEDERA, "HTS", 1.0, "notes", "impl")
        with pytest.raises(ValueError):
            FeatureMapping(
                category=IntegrationCategory.TOKEN,
                description="partial",
                implementations={BackendId.HEDERA: equivalent},
            )

    def test_similarity_bounds(self):
        """Test similarity must stay within [0, 1]"""
        with pytest.raises(ValueError):
            FeatureEquivalent(BackendId.HEDERA, "HTS", 1.5, "notes", "impl")

    def test_defi_has_no_mapping(self, mapper):
        """Test defi is declared but unmapped"""
        assert mapper.get_all_implementations(IntegrationCategory.DEFI) is None
        assert mapper.get_implementation("defi", BackendId.ETHEREUM) is None
        assert mapper.compare_implementations("defi") is None
        assert mapper.is_supported(BackendId.ETHEREUM, "defi") is False


class TestFeatureMapper:
    """Test mapper lookups"""

    def test_get_implementation(self, mapper):
        """Test per-backend implementation lookup"""
        hts = mapper.get_implementation(IntegrationCategory.TOKEN, BackendId.HEDERA)
        assert hts.feature == "Hedera Token Service (HTS)"
        assert hts.similarity == 1.0

        spl = mapper.get_implementation("token", "solana")
        assert spl.standard == "SPL Token"
        assert spl.similarity == 0.95

    def test_get_equivalent_uses_target(self, mapper):
        """Test equivalents depend on the target only"""
        from_hedera = mapper.get_equivalent(BackendId.HEDERA, BackendId.ETHEREUM, "nft")
        from_solana = mapper.get_equivalent(BackendId.SOLANA, BackendId.ETHEREUM, "nft")
        assert from_hedera == from_solana
        assert from_hedera.standard == "ERC-721"

    def test_get_description(self, mapper):
        """Test category descriptions"""
        assert mapper.get_description("wallet") == "Wallet connectivity and transaction signing"
        assert mapper.get_description("defi") is None

    def test_compare_implementations_order(self, mapper):
        """Test comparisons follow enumeration order, not similarity"""
        comparisons = mapper.compare_implementations(IntegrationCategory.SMART_CONTRACT)
        assert [c.backend for c in comparisons] == list(BackendId)
        assert [c.similarity for c in comparisons] == [1.0, 1.0, 0.6, 1.0]

        solana = comparisons[2]
        assert solana.feature == "Solana Programs"
        assert "Different language (Rust)" in solana.cons
        assert "High performance" in solana.pros

    def test_unknown_category(self, mapper):
        """Test unknown categories raise"""
        with pytest.raises(ValueError):
            mapper.get_implementation("oracle", BackendId.HEDERA)


class TestSuggestions:
    """Test suggestion tiers"""

    def test_equivalent_tier(self, mapper):
        """Test similarity >= 0.9 is reported as equivalent"""
        suggestion = mapper.get_suggestion(BackendId.HEDERA, BackendId.ETHEREUM, "token")
        assert suggestion.startswith("✅")
        assert "ERC-20 Token Standard on ethereum is functionally equivalent" in suggestion
        assert "Hedera Token Service (HTS)" in suggestion

    def test_similar_tier_uses_first_limitation(self, mapper):
        """Test 0.7 <= similarity < 0.9 reports the first limitation"""
        suggestion = mapper.get_suggestion(BackendId.ETHEREUM, BackendId.SOLANA, "nft")
        assert suggestion.startswith("⚠️")
        assert "Metaplex NFT Standard on solana is similar" in suggestion
        assert suggestion.endswith("Different metadata standard than Ethereum")

    def test_different_tier(self, mapper):
        """Test similarity < 0.7 is reported as different"""
        suggestion = mapper.get_suggestion(BackendId.HEDERA, BackendId.SOLANA, "consensus")
        assert suggestion.startswith("❌")
        assert "Account Data Subscriptions on solana is significantly different" in suggestion

    def test_unavailable_category(self, mapper):
        """Test unmapped categories produce the unavailable message"""
        assert mapper.get_suggestion("ethereum", "base", "defi") == "defi feature not available on base"

    def test_custom_mappings(self):
        """Test a mapper restricted to custom mappings"""
        token_only = tuple(m for m in DEFAULT_MAPPINGS if m.category == IntegrationCategory.TOKEN)
        mapper = FeatureMapper(mappings=token_only)
        assert mapper.is_supported(BackendId.BASE, "token") is True
        assert mapper.is_supported(BackendId.BASE, "nft") is False


def _boundary_mapper():
    def equivalent(backend, similarity):
        return FeatureEquivalent(
            backend=backend,
            feature=f"{backend.value} lending pool",
            similarity=similarity,
            notes=f"Pool contract at similarity {similarity}",
            implementation="Pool contract",
            limitations=(f"Limitation at {similarity}",),
        )

    mapping = FeatureMapping(
        category=IntegrationCategory.DEFI,
        description="Lending pools",
        implementations={
            BackendId.HEDERA: equivalent(BackendId.HEDERA, 1.0),
            BackendId.ETHEREUM: equivalent(BackendId.ETHEREUM, 0.9),
            BackendId.SOLANA: equivalent(BackendId.SOLANA, 0.89),
            BackendId.BASE: equivalent(BackendId.BASE, 0.69),
        },
    )
    return FeatureMapper(mappings=(mapping,))


class TestSuggestionBoundaries:
    """Test tier thresholds are inclusive at 0.9 and 0.7"""

    @pytest.mark.parametrize("target,prefix,tail", [
        (BackendId.ETHEREUM, "✅", "is functionally equivalent to hedera lending pool"),
        (BackendId.SOLANA, "⚠️", "Limitation at 0.89"),
        (BackendId.BASE, "❌", "Pool contract at similarity 0.69"),
    ])
    def test_tier_at_threshold(self, target, prefix, tail):
        suggestion = _boundary_mapper().get_suggestion(BackendId.HEDERA, target, IntegrationCategory.DEFI)
        assert suggestion.startswith(prefix)
        assert suggestion.endswith(tail)
