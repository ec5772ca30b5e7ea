"""
Sentence clustering over a similarity matrix.

Two phases:
1. Seeding: a single greedy pass in document order. Each unassigned sentence
   seeds a cluster and pulls in every other unassigned sentence whose
   similarity to the seed is at least the threshold. This is not a
   transitive closure; a sentence taken as a follower never seeds.
2. Absorption: clusters smaller than min_cluster_size are merged into the
   cluster with the highest mean cross-similarity, provided that mean
   exceeds threshold * MERGE_RELAXATION. One merge per iteration, at most
   N iterations.

Clusters always partition 0..N-1 and come back sorted by first index.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np

from shared.errors import ConfigurationError

logger = logging.getLogger(__name__)

MERGE_RELAXATION = 0.8


@dataclass
class Cluster:
    """A group of sentence indices, kept in ascending order."""

    indices: List[int] = field(default_factory=list)

    def __post_init__(self):
        self.indices = sorted(self.indices)

    @property
    def size(self) -> int:
        return len(self.indices)

    @property
    def first_index(self) -> int:
        return self.indices[0]

    def absorb(self, other: "Cluster") -> None:
        """Move all of other's indices into this cluster."""
        self.indices = sorted(self.indices + other.indices)
        other.indices = []


def mean_similarity(a: Cluster, b: Cluster, similarity: np.ndarray) -> float:
    """Mean pairwise similarity between all index pairs across two clusters."""
    if not a.indices or not b.indices:
        return 0.0
    return float(similarity[np.ix_(a.indices, b.indices)].mean())


def seed_clusters(similarity: np.ndarray, threshold: float) -> List[Cluster]:
    """
    Phase 1: greedy single-pass clustering in document order.

    Args:
        similarity: N x N similarity matrix
        threshold: Minimum similarity to the seed for joining its cluster

    Returns:
        Clusters in seed order
    """
    n = len(similarity)
    visited = set()
    clusters = []

    for i in range(n):
        if i in visited:
            continue

        members = [i]
        visited.add(i)

        for j in range(n):
            if j in visited:
                continue
            if similarity[i][j] >= threshold:
                members.append(j)
                visited.add(j)

        clusters.append(Cluster(members))

    return clusters


def merge_small_clusters(
    clusters: Sequence[Cluster],
    similarity: np.ndarray,
    threshold: float,
    min_cluster_size: int,
) -> List[Cluster]:
    """
    Phase 2: absorb undersized clusters into their best-matching neighbour.

    Small clusters with no neighbour above threshold * MERGE_RELAXATION are
    left as they are.

    Args:
        clusters: Clusters from phase 1 (not modified)
        similarity: N x N similarity matrix
        threshold: Similarity threshold used for seeding
        min_cluster_size: Clusters below this size try to merge

    Returns:
        New list of clusters; targets keep their position, absorbed
        clusters are removed
    """
    arena = [Cluster(list(c.indices)) for c in clusters]
    merge_floor = threshold * MERGE_RELAXATION
    max_iterations = max(len(similarity), 1)

    for _ in range(max_iterations):
        small = [pos for pos, c in enumerate(arena) if c.size < min_cluster_size]
        if not small:
            break

        merged = False
        for pos in small:
            source = arena[pos]
            best_pos = -1
            best_sim = 0.0

            for cand_pos, candidate in enumerate(arena):
                if cand_pos == pos or candidate.size == 0:
                    continue
                sim = mean_similarity(source, candidate, similarity)
                if sim > best_sim:
                    best_sim = sim
                    best_pos = cand_pos

            if best_pos >= 0 and best_sim > merge_floor:
                logger.debug(
                    f"Merging cluster at {source.first_index} (size {source.size}) "
                    f"into cluster at {arena[best_pos].first_index}, "
                    f"mean similarity {best_sim:.3f}"
                )
                arena[best_pos].absorb(source)
                del arena[pos]
                merged = True
                break

        if not merged:
            break
    else:
        logger.warning(f"Cluster merging stopped after {max_iterations} iterations")

    return arena


def build_clusters(
    similarity: np.ndarray,
    similarity_threshold: float,
    min_cluster_size: int,
) -> List[Cluster]:
    """
    Group sentence indices into semantically related clusters.

    Args:
        similarity: N x N similarity matrix
        similarity_threshold: Seeding threshold in (0, 1)
        min_cluster_size: Minimum preferred cluster size (>= 1)

    Returns:
        Clusters partitioning 0..N-1, sorted by first index
    """
    if min_cluster_size < 1:
        raise ConfigurationError(f"min_cluster_size must be >= 1, got {min_cluster_size}")

    seeded = seed_clusters(similarity, similarity_threshold)
    merged = merge_small_clusters(
        seeded, similarity, similarity_threshold, min_cluster_size
    )
    merged.sort(key=lambda c: c.first_index)

    logger.debug(
        f"Built {len(merged)} clusters from {len(seeded)} seeds "
        f"over {len(similarity)} sentences"
    )
    return merged
