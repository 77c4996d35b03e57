"""Flat output rows for each result category, with a fixed column order."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from phylocompare.comparison.types import DistanceGranularity, JobResult
from phylocompare.distances.results import (
    BranchLengthResult,
    BranchSetResult,
    MetricKind,
    PairwiseDistanceResult,
    TopologyResult,
)

Row = Dict[str, Any]

KEY_COLUMNS = ("reference", "candidate", "marker")

COLUMNS: Dict[str, tuple[str, ...]] = {
    "topology": KEY_COLUMNS + ("n_tips", "rf", "norm_rf"),
    "branch_length": KEY_COLUMNS + ("include_tips", "kf_score", "weighted_rf"),
    "distances": KEY_COLUMNS + ("leaf_a", "leaf_b", "ref", "comp", "diff"),
    "distance_summary": KEY_COLUMNS
    + ("n_pairs", "mean_abs_diff", "max_abs_diff", "correlation"),
    "branches": KEY_COLUMNS
    + ("type", "bipartition", "size", "ref_len", "comp_len"),
}


def _key(result: JobResult) -> Row:
    job = result.job
    return {
        "reference": job.reference_id,
        "candidate": job.candidate_id,
        "marker": job.marker,
    }


def topology_rows(result: JobResult) -> List[Row]:
    metric = result.get(MetricKind.TOPOLOGY)
    if not isinstance(metric, TopologyResult):
        return []
    return [
        {**_key(result), "n_tips": metric.n_leaves, "rf": metric.rf, "norm_rf": metric.norm_rf}
    ]


def branch_length_rows(result: JobResult) -> List[Row]:
    metric = result.get(MetricKind.BRANCH_LENGTH)
    if not isinstance(metric, BranchLengthResult):
        return []
    return [
        {
            **_key(result),
            "include_tips": metric.include_tips,
            "kf_score": metric.kf_score,
            "weighted_rf": metric.weighted_rf,
        }
    ]


def distance_rows(result: JobResult) -> List[Row]:
    metric = result.get(MetricKind.PAIRWISE_DISTANCE)
    if not isinstance(metric, PairwiseDistanceResult):
        return []
    key = _key(result)
    return [
        {
            **key,
            "leaf_a": pair.leaf_a,
            "leaf_b": pair.leaf_b,
            "ref": pair.reference,
            "comp": pair.candidate,
            "diff": pair.difference,
        }
        for pair in metric.pairs
    ]


def distance_summary_rows(result: JobResult) -> List[Row]:
    metric = result.get(MetricKind.PAIRWISE_DISTANCE)
    if not isinstance(metric, PairwiseDistanceResult):
        return []
    return [
        {
            **_key(result),
            "n_pairs": metric.n_pairs,
            "mean_abs_diff": metric.mean_abs_diff,
            "max_abs_diff": metric.max_abs_diff,
            "correlation": metric.correlation,
        }
    ]


def branch_rows(result: JobResult) -> List[Row]:
    metric = result.get(MetricKind.BRANCH_SET)
    if not isinstance(metric, BranchSetResult):
        return []
    key = _key(result)
    rows: List[Row] = []
    for branch in metric.common:
        rows.append(
            {
                **key,
                "type": "common",
                "bipartition": metric.encoding.bipartition(
                    branch.partition.bitmask, metric.leaf_mask
                ),
                "size": branch.size,
                "ref_len": branch.reference_length,
                "comp_len": branch.candidate_length,
            }
        )
    for side, branches in (
        ("reference", metric.only_reference),
        ("candidate", metric.only_candidate),
    ):
        for exclusive in branches:
            rows.append(
                {
                    **key,
                    "type": side,
                    "bipartition": metric.encoding.bipartition(
                        exclusive.partition.bitmask, metric.leaf_mask
                    ),
                    "size": exclusive.size,
                    "ref_len": exclusive.length if side == "reference" else None,
                    "comp_len": exclusive.length if side == "candidate" else None,
                }
            )
    return rows


def category_rows(
    results: Iterable[JobResult],
    granularity: DistanceGranularity = DistanceGranularity.PAIRS,
) -> Dict[str, List[Row]]:
    """
    Flatten job results into rows per output category, in job order.

    Categories without any row are left out.
    """
    builders = {
        "topology": topology_rows,
        "branch_length": branch_length_rows,
        "distances": distance_rows
        if granularity is DistanceGranularity.PAIRS
        else distance_summary_rows,
        "branches": branch_rows,
    }
    rows: Dict[str, List[Row]] = {category: [] for category in builders}
    for result in results:
        for category, build in builders.items():
            rows[category].extend(build(result))
    return {category: values for category, values in rows.items() if values}


def columns_for(category: str, granularity: Optional[DistanceGranularity] = None) -> tuple[str, ...]:
    if category == "distances" and granularity is DistanceGranularity.SUMMARY:
        return COLUMNS["distance_summary"]
    return COLUMNS[category]
