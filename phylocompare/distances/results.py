"""Result records produced by the tree comparison metrics."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

from phylocompare.elements.encoding import LeafEncoding
from phylocompare.elements.partition import Partition


class MetricKind(Enum):
    TOPOLOGY = "topology"
    BRANCH_LENGTH = "branch_length"
    PAIRWISE_DISTANCE = "distances"
    BRANCH_SET = "branches"


@dataclass(frozen=True)
class TopologyResult:
    """Robinson-Foulds distance over non-trivial bipartitions."""

    rf: int
    """Number of bipartitions present in exactly one of the trees."""

    norm_rf: float
    """``rf / (2 * (n_leaves - 3))``, the maximum for binary unrooted trees."""

    n_leaves: int

    kind = MetricKind.TOPOLOGY


@dataclass(frozen=True)
class BranchLengthResult:
    """Branch-length weighted distances over the union of bipartitions."""

    kf_score: float
    """Kuhner-Felsenstein branch score: sqrt of summed squared length differences."""

    weighted_rf: float
    """Sum of absolute length differences."""

    include_tips: bool

    kind = MetricKind.BRANCH_LENGTH


@dataclass(frozen=True)
class LeafPairDistance:
    leaf_a: str
    leaf_b: str
    reference: float
    candidate: float

    @property
    def difference(self) -> float:
        return self.candidate - self.reference


@dataclass(frozen=True)
class PairwiseDistanceResult:
    """Patristic distances of every shared leaf pair in both trees."""

    pairs: Tuple[LeafPairDistance, ...]
    mean_abs_diff: float
    max_abs_diff: float
    correlation: float
    """Pearson correlation of the two distance vectors, ``nan`` when undefined."""

    kind = MetricKind.PAIRWISE_DISTANCE

    @property
    def n_pairs(self) -> int:
        return len(self.pairs)


@dataclass(frozen=True)
class CommonBranch:
    partition: Partition
    reference_length: Optional[float]
    candidate_length: Optional[float]
    size: int


@dataclass(frozen=True)
class ExclusiveBranch:
    partition: Partition
    length: Optional[float]
    size: int


@dataclass(frozen=True)
class BranchSetResult:
    """Branches classified by whether their bipartition exists in the other tree."""

    common: Tuple[CommonBranch, ...]
    only_reference: Tuple[ExclusiveBranch, ...]
    only_candidate: Tuple[ExclusiveBranch, ...]
    include_tips: bool
    leaf_mask: int
    """Leaf universe both trees share, needed to print each split."""

    encoding: LeafEncoding = field(compare=False, repr=False)
    """Shared leaf ordering the partitions refer to."""

    kind = MetricKind.BRANCH_SET


MetricResult = Union[
    TopologyResult, BranchLengthResult, PairwiseDistanceResult, BranchSetResult
]
