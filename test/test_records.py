import math

import pytest

from phylocompare.comparison import (
    CandidateSet,
    ComparisonConfig,
    ComparisonOrchestrator,
    DistanceGranularity,
    TreeSource,
)
from phylocompare.comparison.records import COLUMNS, category_rows, columns_for
from phylocompare.distances import MetricKind
from phylocompare.elements.partition import Partition

REFERENCE = "((A:1,B:1):1,(C:1,D:1):1);"
CANDIDATE = "((A:1,C:1):1,(B:1,D:2):1);"


@pytest.fixture
def report():
    orchestrator = ComparisonOrchestrator(ComparisonConfig(workers=1, show_progress=False))
    return orchestrator.run(
        [TreeSource("t1", text=REFERENCE)],
        [CandidateSet.of([TreeSource("t1", text=CANDIDATE)], "m1")],
    )


def test_rows_follow_column_order(report):
    rows = category_rows(report.results)
    assert set(rows) == {"topology", "branch_length", "distances", "branches"}
    for category, category_rows_ in rows.items():
        for row in category_rows_:
            assert tuple(row) == COLUMNS[category]


def test_topology_row(report):
    (row,) = category_rows(report.results)["topology"]
    assert row == {
        "reference": "t1",
        "candidate": "t1",
        "marker": "m1",
        "n_tips": 4,
        "rf": 2,
        "norm_rf": 1.0,
    }


def test_distance_rows(report):
    rows = category_rows(report.results)["distances"]
    assert len(rows) == 6
    bd = next(r for r in rows if (r["leaf_a"], r["leaf_b"]) == ("B", "D"))
    assert bd["ref"] == pytest.approx(4.0)
    assert bd["comp"] == pytest.approx(3.0)
    assert bd["diff"] == pytest.approx(-1.0)


def test_distance_summary_rows(report):
    rows = category_rows(report.results, DistanceGranularity.SUMMARY)["distances"]
    (row,) = rows
    assert tuple(row) == columns_for("distances", DistanceGranularity.SUMMARY)
    assert row["n_pairs"] == 6
    assert not math.isnan(row["correlation"])


def test_branch_rows(report):
    rows = category_rows(report.results)["branches"]
    assert [(r["type"], r["bipartition"]) for r in rows] == [
        ("reference", "A, B | C, D"),
        ("candidate", "A, C | B, D"),
    ]
    assert rows[0]["ref_len"] == pytest.approx(2.0)
    assert rows[0]["comp_len"] is None
    assert rows[1]["ref_len"] is None
    assert rows[1]["comp_len"] == pytest.approx(2.0)
    assert all(r["size"] == 2 for r in rows)


def test_empty_categories_are_dropped():
    assert category_rows([]) == {}


def caterpillar(n):
    text = "L0:1"
    for i in range(1, n):
        text = f"({text},L{i}:1):1"
    return text + ";"


def test_branch_rows_share_one_leaf_encoding():
    newick = caterpillar(300)
    orchestrator = ComparisonOrchestrator(ComparisonConfig(workers=1, show_progress=False))
    report = orchestrator.run(
        [TreeSource("big", text=newick)],
        [CandidateSet.of([TreeSource("big", text=newick)])],
    )
    rows = category_rows(report.results)["branches"]
    assert len(rows) == 297

    metric = report.results[0][MetricKind.BRANCH_SET]
    partitions = [branch.partition for branch in metric.common]
    assert len(partitions) == 297
    assert all(p.encoding is metric.encoding for p in partitions)
    # Rendering must not leave label lookups behind on the partitions
    for p in partitions:
        assert not hasattr(p, "__dict__")
        assert not any(isinstance(getattr(p, slot), dict) for slot in Partition.__slots__)
