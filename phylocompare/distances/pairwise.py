"""Comparison of patristic (leaf-to-leaf path length) distances."""

from __future__ import annotations

import math
from typing import List

import numpy as np
from numpy.typing import NDArray

from phylocompare.distances.results import LeafPairDistance, PairwiseDistanceResult
from phylocompare.elements.encoding import LeafEncoding
from phylocompare.exceptions import LeafUniverseMismatch
from phylocompare.tree import Tree


def shared_labels(tree1: Tree, tree2: Tree, encoding: LeafEncoding) -> List[str]:
    """Labels present in both trees, in shared encoding order."""
    common = tree1.leaf_labels & tree2.leaf_labels
    return [label for label in encoding.order if label in common]


def pearson_correlation(x: NDArray[np.float64], y: NDArray[np.float64]) -> float:
    if len(x) < 2:
        return math.nan
    x_centered = x - x.mean()
    y_centered = y - y.mean()
    denominator = math.sqrt(
        float(np.dot(x_centered, x_centered)) * float(np.dot(y_centered, y_centered))
    )
    if denominator == 0.0:
        return math.nan
    return float(np.dot(x_centered, y_centered)) / denominator


def pairwise_distances(
    reference: Tree, candidate: Tree, encoding: LeafEncoding
) -> PairwiseDistanceResult:
    """
    Compare patristic distances of every unordered pair of shared leaves.

    Leaves present in only one tree are ignored; at least two shared leaves
    are required. Unknown branch lengths count as zero on a path.

    Args:
        reference: The reference tree
        candidate: The compared tree
        encoding: Shared leaf ordering that fixes the pair order

    Returns:
        PairwiseDistanceResult with one record per leaf pair plus summary
        statistics (mean and max absolute difference, Pearson correlation).
    """
    labels = shared_labels(reference, candidate, encoding)
    if len(labels) < 2:
        raise LeafUniverseMismatch(
            f"Pairwise distances need at least 2 shared leaves, got {len(labels)}",
            missing_in_reference=candidate.leaf_labels - reference.leaf_labels,
            missing_in_candidate=reference.leaf_labels - candidate.leaf_labels,
        )

    ref_matrix = reference.distance_matrix(labels)
    cmp_matrix = candidate.distance_matrix(labels)
    rows, cols = np.triu_indices(len(labels), k=1)
    ref_dists: NDArray[np.float64] = ref_matrix[rows, cols]
    cmp_dists: NDArray[np.float64] = cmp_matrix[rows, cols]

    pairs = tuple(
        LeafPairDistance(
            leaf_a=labels[i],
            leaf_b=labels[j],
            reference=float(ref_dists[k]),
            candidate=float(cmp_dists[k]),
        )
        for k, (i, j) in enumerate(zip(rows.tolist(), cols.tolist()))
    )
    abs_diff = np.abs(cmp_dists - ref_dists)

    return PairwiseDistanceResult(
        pairs=pairs,
        mean_abs_diff=float(abs_diff.mean()),
        max_abs_diff=float(abs_diff.max()),
        correlation=pearson_correlation(ref_dists, cmp_dists),
    )
