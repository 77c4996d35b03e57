"""Pairing of reference trees with candidate trees by identity."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from phylocompare.comparison.types import ComparisonJob, MetricRequest, UnmatchedTree

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    jobs: List[ComparisonJob]
    unmatched: List[UnmatchedTree]


def match_jobs(
    reference_ids: Iterable[str],
    candidate_sets: Sequence[Iterable[str]],
    requests: Optional[Sequence[MetricRequest]] = None,
    markers: Optional[Sequence[Optional[str]]] = None,
) -> MatchResult:
    """
    Build the ordered job list for every reference/candidate identity match.

    Identities match exactly (case-sensitive). Jobs are sorted by reference
    identity, then candidate set index, then candidate identity, then request
    index, and numbered in that order so output order never depends on
    scheduling. Trees without a counterpart are reported as `UnmatchedTree`:
    references per candidate set they are missing from, candidates per set.

    Args:
        reference_ids: Identities of the reference trees
        candidate_sets: Identities of each candidate set
        requests: Metric bundles; one job is produced per pair and bundle
        markers: Optional output marker per candidate set

    Returns:
        MatchResult with the jobs and the unmatched trees.
    """
    requests = list(requests) if requests is not None else [MetricRequest()]
    if not requests:
        raise ValueError("At least one metric request is required")
    if markers is not None and len(markers) != len(candidate_sets):
        raise ValueError(
            f"Got {len(markers)} markers for {len(candidate_sets)} candidate sets"
        )

    references = sorted(set(reference_ids))
    reference_set = set(references)
    unmatched: List[UnmatchedTree] = []
    pairs: List[tuple[str, int, str]] = []

    for set_index, identities in enumerate(candidate_sets):
        candidates = set(identities)
        for identity in references:
            if identity in candidates:
                pairs.append((identity, set_index, identity))
            else:
                unmatched.append(UnmatchedTree(identity, "reference", set_index))
        for identity in sorted(candidates - reference_set):
            unmatched.append(UnmatchedTree(identity, "candidate", set_index))

    pairs.sort()
    jobs: List[ComparisonJob] = []
    for reference_id, set_index, candidate_id in pairs:
        for request in requests:
            jobs.append(
                ComparisonJob(
                    job_index=len(jobs),
                    reference_id=reference_id,
                    candidate_id=candidate_id,
                    candidate_set=set_index,
                    request=request,
                    marker=markers[set_index] if markers is not None else None,
                )
            )

    unmatched.sort(key=lambda u: (u.candidate_set, u.side != "reference", u.identity))
    logger.debug(
        f"Matched {len(jobs)} jobs from {len(references)} references and "
        f"{len(candidate_sets)} candidate sets ({len(unmatched)} unmatched)"
    )
    return MatchResult(jobs=jobs, unmatched=unmatched)
