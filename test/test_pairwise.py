import math

import numpy as np
import pytest

from phylocompare.distances import pairwise_distances, pearson_correlation
from phylocompare.distances.pairwise import shared_labels
from phylocompare.elements.encoding import LeafEncoding
from phylocompare.exceptions import LeafUniverseMismatch
from phylocompare.parser import parse_newick


def parse_with_encoding(*newicks):
    trees = [parse_newick(s) for s in newicks]
    encoding = LeafEncoding.from_label_sets(t.leaf_labels for t in trees)
    return trees, encoding


def test_identical_trees():
    s = "((A:1,B:2):1,(C:1,D:1):1);"
    (t1, t2), encoding = parse_with_encoding(s, s)
    result = pairwise_distances(t1, t2, encoding)
    assert result.n_pairs == 6
    assert result.mean_abs_diff == 0.0
    assert result.max_abs_diff == 0.0
    assert result.correlation == pytest.approx(1.0)
    assert all(pair.difference == 0.0 for pair in result.pairs)


def test_pairs_in_encoding_order():
    (t1, t2), encoding = parse_with_encoding(
        "((C:1,A:2):1,(B:1,D:1):1);", "((A:1,B:1):1,(C:1,D:1):1);"
    )
    result = pairwise_distances(t1, t2, encoding)
    assert [(p.leaf_a, p.leaf_b) for p in result.pairs] == [
        ("A", "B"),
        ("A", "C"),
        ("A", "D"),
        ("B", "C"),
        ("B", "D"),
        ("C", "D"),
    ]


def test_only_shared_leaves_are_compared():
    (t1, t2), encoding = parse_with_encoding(
        "((A:1,B:2):1,(C:1,D:1):1);",
        "((A:1,B:2):1,(C:1,(D:1,E:1):1):1);",
    )
    assert shared_labels(t1, t2, encoding) == ["A", "B", "C", "D"]
    result = pairwise_distances(t1, t2, encoding)
    assert result.n_pairs == 6
    by_pair = {(p.leaf_a, p.leaf_b): p for p in result.pairs}
    cd = by_pair[("C", "D")]
    assert cd.reference == pytest.approx(2.0)
    assert cd.candidate == pytest.approx(3.0)
    assert cd.difference == pytest.approx(1.0)
    assert result.max_abs_diff == pytest.approx(1.0)


def test_summary_statistics():
    (t1, t2), encoding = parse_with_encoding(
        "((A:1,B:1):1,(C:1,D:1):1);",
        "((A:2,B:2):2,(C:2,D:2):2);",
    )
    result = pairwise_distances(t1, t2, encoding)
    # Every distance doubles, so the vectors are perfectly correlated
    differences = [p.candidate - p.reference for p in result.pairs]
    assert result.mean_abs_diff == pytest.approx(np.mean(np.abs(differences)))
    assert result.max_abs_diff == pytest.approx(4.0)
    assert result.correlation == pytest.approx(1.0)


def test_correlation_undefined_without_variance():
    (t1, t2), encoding = parse_with_encoding("(A,B,C);", "(A:1,B:1,C:1);")
    result = pairwise_distances(t1, t2, encoding)
    assert math.isnan(result.correlation)


def test_fewer_than_two_shared_leaves():
    (t1, t2), encoding = parse_with_encoding("(A:1,B:1);", "(A:1,C:1);")
    with pytest.raises(LeafUniverseMismatch):
        pairwise_distances(t1, t2, encoding)


@pytest.mark.parametrize(
    "x, y",
    [
        ([1.0, 2.0, 3.0], [2.0, 4.0, 7.0]),
        ([0.5, 0.1, 0.9, 0.3], [0.4, 0.3, 0.8, 0.2]),
    ],
)
def test_pearson_correlation_matches_numpy(x, y):
    x, y = np.array(x), np.array(y)
    assert pearson_correlation(x, y) == pytest.approx(np.corrcoef(x, y)[0, 1])


def test_pearson_correlation_single_value():
    assert math.isnan(pearson_correlation(np.array([1.0]), np.array([2.0])))
