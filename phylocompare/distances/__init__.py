"""Metric implementations for comparing phylogenetic trees."""

from .distances import (
    branch_score,
    normalized_robinson_foulds,
    require_same_leaves,
    robinson_foulds,
)
from .pairwise import pairwise_distances, pearson_correlation
from .branch_sets import branch_set_difference
from .results import (
    BranchLengthResult,
    BranchSetResult,
    CommonBranch,
    ExclusiveBranch,
    LeafPairDistance,
    MetricKind,
    MetricResult,
    PairwiseDistanceResult,
    TopologyResult,
)

__all__ = [
    "branch_score",
    "normalized_robinson_foulds",
    "require_same_leaves",
    "robinson_foulds",
    "pairwise_distances",
    "pearson_correlation",
    "branch_set_difference",
    "BranchLengthResult",
    "BranchSetResult",
    "CommonBranch",
    "ExclusiveBranch",
    "LeafPairDistance",
    "MetricKind",
    "MetricResult",
    "PairwiseDistanceResult",
    "TopologyResult",
]
