import pandas as pd
import pytest

from phylocompare.__main__ import (
    EXIT_ABORTED,
    EXIT_ERRORS,
    EXIT_OK,
    main,
    setup_argument_parser,
)

REFERENCE = "((A:1,B:1):1,(C:1,(D:1,E:1):1):1);"
CANDIDATE = "((A:1,C:1):1,(B:1,(D:1,E:1):1):1);"


@pytest.fixture
def tree_dirs(tmp_path):
    ref_dir = tmp_path / "ref"
    cmp_dir = tmp_path / "cmp"
    ref_dir.mkdir()
    cmp_dir.mkdir()
    for name in ("g1", "g2", "g3"):
        (ref_dir / f"{name}.nwk").write_text(REFERENCE)
    for name in ("g1", "g2", "g4"):
        (cmp_dir / f"{name}.raxml.newick").write_text(CANDIDATE)
    return ref_dir, cmp_dir


def run_cli(*args):
    return main([*map(str, args), "--no-progress"])


def test_defaults():
    args = setup_argument_parser().parse_args(["ref", "cmp", "-o", "out"])
    assert args.threads == 0
    assert not args.strict
    assert args.missing_lengths == "zero"
    assert set(args.metrics) == {"topology", "branch_length", "distances", "branches"}


def test_negative_threads():
    with pytest.raises(SystemExit) as excinfo:
        setup_argument_parser().parse_args(["ref", "cmp", "-o", "out", "-t", "-2"])
    assert excinfo.value.code == 2


def test_successful_run(tree_dirs, tmp_path):
    ref_dir, cmp_dir = tree_dirs
    output = tmp_path / "out" / "result"
    assert run_cli(ref_dir, cmp_dir, "-o", output, "-t", 2) == EXIT_OK
    topology = pd.read_csv(tmp_path / "out" / "result.topology.csv.gz")
    assert topology["reference"].tolist() == ["g1", "g2"]
    assert topology["rf"].tolist() == [2, 2]


def test_markers_and_selected_metrics(tree_dirs, tmp_path):
    ref_dir, cmp_dir = tree_dirs
    output = tmp_path / "result"
    code = run_cli(
        ref_dir,
        cmp_dir,
        cmp_dir,
        "-o",
        output,
        "--markers",
        "first",
        "second",
        "--metrics",
        "branch_length",
        "--no-compress",
    )
    assert code == EXIT_OK
    scores = pd.read_csv(tmp_path / "result.branch_length.csv")
    assert scores["marker"].tolist() == ["first", "second", "first", "second"]
    assert not (tmp_path / "result.topology.csv").exists()


def test_marker_count_mismatch(tree_dirs, tmp_path):
    ref_dir, cmp_dir = tree_dirs
    with pytest.raises(SystemExit) as excinfo:
        run_cli(ref_dir, cmp_dir, "-o", tmp_path / "out", "--markers", "a", "b")
    assert excinfo.value.code == 2


def test_collect_errors_exit_code(tree_dirs, tmp_path):
    ref_dir, cmp_dir = tree_dirs
    (cmp_dir / "g2.raxml.newick").write_text("((A,B),(C,D);")
    assert run_cli(ref_dir, cmp_dir, "-o", tmp_path / "out") == EXIT_ERRORS
    topology = pd.read_csv(tmp_path / "out.topology.csv.gz")
    assert topology["reference"].tolist() == ["g1"]


def test_strict_abort_exit_code(tree_dirs, tmp_path):
    ref_dir, cmp_dir = tree_dirs
    (cmp_dir / "g2.raxml.newick").write_text("((A,B),(C,D);")
    assert run_cli(ref_dir, cmp_dir, "-o", tmp_path / "out", "--strict") == EXIT_ABORTED
    assert not (tmp_path / "out.topology.csv.gz").exists()


def test_missing_directory(tmp_path):
    assert run_cli(tmp_path / "nope", tmp_path, "-o", tmp_path / "out") == EXIT_ABORTED


def test_log_file(tree_dirs, tmp_path):
    ref_dir, cmp_dir = tree_dirs
    log_file = tmp_path / "logs" / "run.log"
    run_cli(ref_dir, cmp_dir, "-o", tmp_path / "out", "--log-file", log_file, "-v")
    assert "Reference trees found: 3" in log_file.read_text()
