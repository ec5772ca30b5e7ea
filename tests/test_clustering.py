"""Tests for greedy sentence clustering and small-cluster absorption."""

import numpy as np
import pytest

from chunking.clustering import (
    MERGE_RELAXATION,
    Cluster,
    build_clusters,
    mean_similarity,
    merge_small_clusters,
    seed_clusters,
)
from shared.errors import ConfigurationError


def _indices(clusters):
    return [c.indices for c in clusters]


class TestCluster:
    """Test the Cluster record."""

    def test_indices_are_sorted(self) -> None:
        assert Cluster([4, 1, 3]).indices == [1, 3, 4]

    def test_absorb_moves_indices(self) -> None:
        target = Cluster([5, 2])
        source = Cluster([3])

        target.absorb(source)

        assert target.indices == [2, 3, 5]
        assert source.size == 0


class TestSeedClusters:
    """Test phase 1 seeding."""

    def test_empty_matrix(self) -> None:
        assert seed_clusters(np.zeros((0, 0)), 0.9) == []

    def test_all_similar_forms_one_cluster(self, make_similarity) -> None:
        sims = make_similarity(5, default=0.95)
        assert _indices(seed_clusters(sims, 0.9)) == [[0, 1, 2, 3, 4]]

    def test_threshold_is_inclusive(self, make_similarity) -> None:
        sims = make_similarity(2, default=0.9)
        assert _indices(seed_clusters(sims, 0.9)) == [[0, 1]]

    def test_not_transitive(self, make_similarity) -> None:
        """A follower of seed 0 never seeds, even if similar to others."""
        sims = make_similarity(3, default=0.1, pairs={(0, 1): 0.95, (1, 2): 0.95})
        assert _indices(seed_clusters(sims, 0.9)) == [[0, 1], [2]]

    def test_seed_pulls_non_adjacent_followers(self, make_similarity) -> None:
        sims = make_similarity(4, default=0.1, pairs={(0, 3): 0.92})
        assert _indices(seed_clusters(sims, 0.9)) == [[0, 3], [1], [2]]


class TestMergeSmallClusters:
    """Test phase 2 absorption."""

    def test_mean_similarity(self, make_similarity) -> None:
        sims = make_similarity(3, pairs={(0, 2): 0.8, (1, 2): 0.4})
        assert mean_similarity(Cluster([0, 1]), Cluster([2]), sims) == pytest.approx(0.6)

    def test_input_clusters_not_modified(self, make_similarity) -> None:
        sims = make_similarity(2, default=0.85)
        clusters = [Cluster([0]), Cluster([1])]

        merge_small_clusters(clusters, sims, 0.9, 3)

        assert _indices(clusters) == [[0], [1]]

    def test_merges_above_relaxed_threshold(self, make_similarity) -> None:
        """Mean similarity above threshold * 0.8 should merge."""
        sims = make_similarity(2, default=0.75)
        merged = merge_small_clusters([Cluster([0]), Cluster([1])], sims, 0.9, 2)
        assert _indices(merged) == [[0, 1]]

    def test_relaxed_threshold_is_strict(self, make_similarity) -> None:
        """Mean similarity equal to threshold * 0.8 should not merge."""
        floor = 0.9 * MERGE_RELAXATION
        sims = make_similarity(2, default=floor)
        merged = merge_small_clusters([Cluster([0]), Cluster([1])], sims, 0.9, 2)
        assert _indices(merged) == [[0], [1]]

    def test_picks_most_similar_candidate(self, make_similarity) -> None:
        """Should merge into the candidate with the highest mean similarity."""
        sims = make_similarity(3, default=0.0, pairs={(0, 1): 0.75, (0, 2): 0.85})
        clusters = [Cluster([0]), Cluster([1]), Cluster([2])]

        merged = merge_small_clusters(clusters, sims, 0.9, 2)

        assert sorted(_indices(merged)) == [[0, 2], [1]]

    def test_pair_joins_larger_cluster(self, make_similarity) -> None:
        sims = make_similarity(
            5,
            default=0.0,
            pairs={
                (0, 1): 0.95, (0, 2): 0.95, (1, 2): 0.95,
                (3, 4): 0.95,
                (0, 3): 0.76, (1, 3): 0.76, (2, 3): 0.76,
                (0, 4): 0.76, (1, 4): 0.76, (2, 4): 0.76,
            },
        )
        clusters = seed_clusters(sims, 0.9)
        assert _indices(clusters) == [[0, 1, 2], [3, 4]]

        merged = merge_small_clusters(clusters, sims, 0.9, 3)

        assert _indices(merged) == [[0, 1, 2, 3, 4]]

    def test_min_cluster_size_one_never_merges(self, make_similarity) -> None:
        sims = make_similarity(3, default=0.85)
        clusters = [Cluster([0]), Cluster([1]), Cluster([2])]
        assert _indices(merge_small_clusters(clusters, sims, 0.9, 1)) == [[0], [1], [2]]

    def test_lone_small_cluster_stays(self, make_similarity) -> None:
        sims = make_similarity(1)
        assert _indices(merge_small_clusters([Cluster([0])], sims, 0.9, 3)) == [[0]]

    def test_terminates_when_everything_merges(self, make_similarity) -> None:
        """Chains of merges should end with one cluster, within the iteration cap."""
        sims = make_similarity(6, default=0.8)
        clusters = [Cluster([i]) for i in range(6)]

        merged = merge_small_clusters(clusters, sims, 0.9, 10)

        assert _indices(merged) == [[0, 1, 2, 3, 4, 5]]


class TestBuildClusters:
    """Test both phases together and the ordering postcondition."""

    def test_all_similar_sentences(self, make_similarity) -> None:
        """5 sentences at 0.95, threshold 0.9, min size 3 -> one cluster."""
        sims = make_similarity(5, default=0.95)
        assert _indices(build_clusters(sims, 0.9, 3)) == [[0, 1, 2, 3, 4]]

    def test_unrelated_pairs_and_singletons_stay_apart(self, make_similarity) -> None:
        """Tight pairs and unrelated singletons with no qualifying target remain."""
        sims = make_similarity(6, default=0.1, pairs={(0, 1): 0.95, (2, 3): 0.95})

        clusters = build_clusters(sims, 0.9, 3)

        assert _indices(clusters) == [[0, 1], [2, 3], [4], [5]]

    def test_related_pairs_merge(self, make_similarity) -> None:
        """Pairs with mean cross-similarity above 0.72 should combine."""
        pairs = {(0, 1): 0.95, (2, 3): 0.95}
        for i in (0, 1):
            for j in (2, 3):
                pairs[(i, j)] = 0.8
        sims = make_similarity(6, default=0.1, pairs=pairs)

        clusters = build_clusters(sims, 0.9, 3)

        assert _indices(clusters) == [[0, 1, 2, 3], [4], [5]]

    def test_sorted_by_first_index(self, make_similarity) -> None:
        """Clusters should come back in document order of their first sentence."""
        pairs = {(1, 4): 0.95, (1, 5): 0.95, (4, 5): 0.95, (0, 2): 0.95, (2, 3): 0.95}
        pairs.update({(0, 3): 0.95})
        sims = make_similarity(6, default=0.0, pairs=pairs)

        clusters = build_clusters(sims, 0.9, 3)

        firsts = [c.first_index for c in clusters]
        assert firsts == sorted(firsts)
        for cluster in clusters:
            assert cluster.indices == sorted(cluster.indices)

    def test_partition_property(self) -> None:
        """Every index appears in exactly one cluster."""
        rng = np.random.default_rng(42)
        for _ in range(20):
            n = int(rng.integers(1, 30))
            raw = rng.uniform(-1, 1, size=(n, n))
            sims = (raw + raw.T) / 2
            np.fill_diagonal(sims, 1.0)

            clusters = build_clusters(sims, float(rng.uniform(0.1, 0.9)), int(rng.integers(1, 5)))

            flat = [i for c in clusters for i in c.indices]
            assert sorted(flat) == list(range(n))

    def test_deterministic(self) -> None:
        """Repeated runs on the same matrix give identical clusters."""
        rng = np.random.default_rng(3)
        raw = rng.uniform(0, 1, size=(25, 25))
        sims = (raw + raw.T) / 2
        np.fill_diagonal(sims, 1.0)

        first = _indices(build_clusters(sims, 0.7, 3))
        second = _indices(build_clusters(sims, 0.7, 3))

        assert first == second

    def test_rejects_min_cluster_size_below_one(self, make_similarity) -> None:
        with pytest.raises(ConfigurationError):
            build_clusters(make_similarity(2), 0.9, 0)
