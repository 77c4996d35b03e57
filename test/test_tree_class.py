import numpy as np
import pytest

from phylocompare.exceptions import InvalidTree
from phylocompare.parser import parse_newick
from phylocompare.tree import Node, Tree


def test_leaf_labels():
    tree = parse_newick("((A:1,B:2):1,(C:1,D:1):1);")
    assert tree.leaf_labels == frozenset("ABCD")
    assert tree.n_leaves == 4
    assert len(tree) == 7


def test_postorder_visits_children_first():
    tree = parse_newick("((A:1,B:2)X:1,(C:1,D:1)Y:1)R;")
    seen = set()
    for node, children, length in tree.postorder():
        assert all(child.index in seen for child in children)
        assert length == node.length
        seen.add(node.index)
    assert len(seen) == len(tree)


@pytest.mark.parametrize(
    "pair, expected",
    [
        (("A", "B"), 3.0),
        (("A", "C"), 4.0),
        (("B", "D"), 5.0),
        (("C", "D"), 2.0),
        (("A", "A"), 0.0),
    ],
)
def test_patristic_distance(pair, expected):
    tree = parse_newick("((A:1,B:2):1,(C:1,D:1):1);")
    assert tree.patristic_distance(*pair) == pytest.approx(expected)


def test_patristic_distance_is_symmetric():
    tree = parse_newick("(((A:0.5,B:1.5):2,C:1):0.25,(D:3,(E:1,F:2):1):4);")
    labels = sorted(tree.leaf_labels)
    for a in labels:
        for b in labels:
            assert tree.patristic_distance(a, b) == pytest.approx(
                tree.patristic_distance(b, a)
            )


def test_patristic_distance_unknown_lengths_count_as_zero():
    tree = parse_newick("((A:1,B):1,(C:1,D:1));")
    assert tree.patristic_distance("A", "B") == pytest.approx(1.0)
    assert tree.patristic_distance("A", "C") == pytest.approx(3.0)


def test_deep_caterpillar_tree():
    # Deep enough to overflow a recursive traversal
    n = 3000
    text = "A0"
    for i in range(1, n):
        text = f"({text}:1,A{i}:1)"
    tree = parse_newick(text + ";")
    assert tree.n_leaves == n
    assert tree.patristic_distance("A0", "A1") == pytest.approx(2.0)
    assert tree.patristic_distance("A0", f"A{n - 1}") == pytest.approx(n)


def test_distance_matrix():
    tree = parse_newick("((A:1,B:2):1,(C:1,D:1):1);")
    matrix = tree.distance_matrix()
    expected = np.array(
        [
            [0.0, 3.0, 4.0, 4.0],
            [3.0, 0.0, 5.0, 5.0],
            [4.0, 5.0, 0.0, 2.0],
            [4.0, 5.0, 2.0, 0.0],
        ]
    )
    np.testing.assert_allclose(matrix, expected)


def test_distance_matrix_label_order():
    tree = parse_newick("((A:1,B:2):1,(C:1,D:1):1);")
    matrix = tree.distance_matrix(["D", "A"])
    np.testing.assert_allclose(matrix, [[0.0, 4.0], [4.0, 0.0]])


def test_distance_matrix_matches_patristic_distance():
    tree = parse_newick("(((A:1,B:2):0.5,C:3):1,(D:1,(E,F:4):2):1);")
    labels = ["F", "A", "E", "C", "B", "D"]
    matrix = tree.distance_matrix(labels)
    for i, a in enumerate(labels):
        for j, b in enumerate(labels):
            expected = tree.patristic_distance(a, b) if i != j else 0.0
            assert matrix[i, j] == pytest.approx(expected)
    assert matrix[2, 0] == pytest.approx(4.0)


def test_unknown_leaf():
    tree = parse_newick("(A,B);")
    with pytest.raises(KeyError):
        tree.leaf("C")


def test_from_parents():
    tree = Tree.from_parents(
        [None, 0, 0, 2, 2],
        ["", "A", "", "B", "C"],
        [None, 1.0, 0.5, 1.0, 2.0],
    )
    assert tree.leaf_labels == frozenset("ABC")
    assert tree.patristic_distance("A", "C") == pytest.approx(3.5)


def test_from_parents_rejects_two_roots():
    with pytest.raises(InvalidTree):
        Tree.from_parents([None, None], ["A", "B"], [None, None])


def test_rejects_broken_links():
    nodes = [Node(0, children=[1, 2]), Node(1, parent=0, name="A"), Node(2, parent=1, name="B")]
    with pytest.raises(InvalidTree):
        Tree(nodes)


def test_rejects_empty_tree():
    with pytest.raises(InvalidTree):
        Tree([])
