from typing import List

from phylocompare.bipartition_index import BipartitionIndex
from phylocompare.distances.distances import require_same_leaves
from phylocompare.distances.results import (
    BranchSetResult,
    CommonBranch,
    ExclusiveBranch,
)


def branch_set_difference(
    reference: BipartitionIndex,
    candidate: BipartitionIndex,
    include_tips: bool = False,
) -> BranchSetResult:
    """
    Split the branches of two trees into common and tree-exclusive groups.

    Every branch of either tree lands in exactly one group, so
    ``len(common) + len(only_reference)`` equals the branch count of the
    reference and likewise for the candidate. Groups are sorted by
    bipartition.
    """
    require_same_leaves(reference, candidate)
    common: List[CommonBranch] = []
    only_reference: List[ExclusiveBranch] = []
    only_candidate: List[ExclusiveBranch] = []

    for branch in reference.branches(include_tips):
        other = candidate.get(branch.partition)
        if other is None:
            only_reference.append(
                ExclusiveBranch(branch.partition, branch.length, branch.size)
            )
        else:
            common.append(
                CommonBranch(branch.partition, branch.length, other.length, branch.size)
            )

    for branch in candidate.branches(include_tips):
        if branch.partition not in reference:
            only_candidate.append(
                ExclusiveBranch(branch.partition, branch.length, branch.size)
            )

    return BranchSetResult(
        common=tuple(sorted(common, key=lambda b: b.partition)),
        only_reference=tuple(sorted(only_reference, key=lambda b: b.partition)),
        only_candidate=tuple(sorted(only_candidate, key=lambda b: b.partition)),
        include_tips=include_tips,
        leaf_mask=reference.leaf_mask,
        encoding=reference.encoding,
    )
