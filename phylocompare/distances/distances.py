import math
from typing import Dict

from phylocompare.bipartition_index import BipartitionIndex, MissingLengthPolicy
from phylocompare.distances.results import BranchLengthResult, TopologyResult
from phylocompare.elements.partition import Partition
from phylocompare.exceptions import InsufficientLeaves, LeafUniverseMismatch


def require_same_leaves(reference: BipartitionIndex, candidate: BipartitionIndex) -> None:
    """Raise `LeafUniverseMismatch` unless both trees have the same leaf set."""
    if reference.encoding is not candidate.encoding:
        raise ValueError("Bipartition indices were built against different encodings")
    if reference.leaf_mask != candidate.leaf_mask:
        LeafUniverseMismatch.compare(reference.leaf_labels, candidate.leaf_labels)


def normalized_robinson_foulds(rf: int, n_leaves: int) -> float:
    """
    Normalise a raw Robinson-Foulds distance by its maximum ``2 * (n - 3)``.

    Raises:
        InsufficientLeaves: for fewer than 4 leaves, where no non-trivial
            split exists and the maximum is zero.
    """
    if n_leaves < 4:
        raise InsufficientLeaves(n_leaves)
    return rf / (2 * (n_leaves - 3))


def robinson_foulds(
    reference: BipartitionIndex, candidate: BipartitionIndex
) -> TopologyResult:
    """
    Count the non-trivial bipartitions found in exactly one of the two trees.

    Args:
        reference: Bipartition index of the reference tree
        candidate: Bipartition index of the compared tree

    Returns:
        TopologyResult with the raw and normalised distance.
    """
    require_same_leaves(reference, candidate)
    splits1 = reference.splits()
    splits2 = candidate.splits()
    rf = len(splits1 ^ splits2)
    n_leaves = reference.n_leaves
    return TopologyResult(
        rf=rf,
        norm_rf=normalized_robinson_foulds(rf, n_leaves),
        n_leaves=n_leaves,
    )


def branch_score(
    reference: BipartitionIndex,
    candidate: BipartitionIndex,
    include_tips: bool = False,
    missing_length: MissingLengthPolicy = MissingLengthPolicy.ZERO,
) -> BranchLengthResult:
    """
    Calculate the Kuhner-Felsenstein branch score and the weighted RF distance.

    A bipartition absent from one tree contributes its full length from the
    other. Terminal branches only take part when ``include_tips`` is set.

    Args:
        reference: Bipartition index of the reference tree
        candidate: Bipartition index of the compared tree
        include_tips: Include trivial (single-leaf) bipartitions
        missing_length: Treatment of edges without a length

    Returns:
        BranchLengthResult with ``kf_score = sqrt(sum (la - lb)^2)`` and
        ``weighted_rf = sum |la - lb|``.
    """
    require_same_leaves(reference, candidate)
    splits1: Dict[Partition, float] = reference.lengths(include_tips, missing_length)
    splits2: Dict[Partition, float] = candidate.lengths(include_tips, missing_length)

    all_splits = set(splits1) | set(splits2)
    differences = [
        splits1.get(split, 0.0) - splits2.get(split, 0.0) for split in all_splits
    ]

    return BranchLengthResult(
        kf_score=math.sqrt(math.fsum(d * d for d in differences)),
        weighted_rf=math.fsum(abs(d) for d in differences),
        include_tips=include_tips,
    )
