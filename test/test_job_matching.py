import pytest

from phylocompare.comparison import MetricRequest, UnmatchedTree, match_jobs
from phylocompare.distances import MetricKind


def test_match_by_identity():
    match = match_jobs(["a", "b", "c"], [["a", "c", "d"]])
    assert [(j.reference_id, j.candidate_id) for j in match.jobs] == [("a", "a"), ("c", "c")]
    assert [j.job_index for j in match.jobs] == [0, 1]
    assert match.unmatched == [
        UnmatchedTree("b", "reference", 0),
        UnmatchedTree("d", "candidate", 0),
    ]


def test_match_is_case_sensitive():
    match = match_jobs(["Tree1"], [["tree1"]])
    assert match.jobs == []
    assert {u.side for u in match.unmatched} == {"reference", "candidate"}


def test_job_order():
    requests = [
        MetricRequest(frozenset({MetricKind.TOPOLOGY})),
        MetricRequest(frozenset({MetricKind.BRANCH_LENGTH}), include_tips=True),
    ]
    match = match_jobs(
        ["y", "x"],
        [["y", "x"], ["x"]],
        requests,
        markers=["first", "second"],
    )
    assert [
        (j.reference_id, j.candidate_set, j.request is requests[1]) for j in match.jobs
    ] == [
        ("x", 0, False),
        ("x", 0, True),
        ("x", 1, False),
        ("x", 1, True),
        ("y", 0, False),
        ("y", 0, True),
    ]
    assert [j.job_index for j in match.jobs] == list(range(6))
    assert [j.marker for j in match.jobs[:4]] == ["first", "first", "second", "second"]
    assert match.unmatched == [UnmatchedTree("y", "reference", 1)]


def test_matching_is_deterministic():
    first = match_jobs(["c", "a", "b"], [["b", "a", "c"]])
    second = match_jobs(["b", "c", "a"], [["c", "b", "a"]])
    assert first.jobs == second.jobs


def test_no_candidates():
    match = match_jobs(["a"], [])
    assert match.jobs == []
    assert match.unmatched == []


def test_marker_count_mismatch():
    with pytest.raises(ValueError):
        match_jobs(["a"], [["a"], ["a"]], markers=["only-one"])


def test_empty_request_list():
    with pytest.raises(ValueError):
        match_jobs(["a"], [["a"]], requests=[])


def test_request_needs_metrics():
    with pytest.raises(ValueError):
        MetricRequest(frozenset())
