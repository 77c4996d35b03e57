import argparse

import pytest

from phylocompare.validators import MinimumIntegerAction


@pytest.fixture
def parser():
    parser = argparse.ArgumentParser()
    parser.add_argument("--count", type=int, default=2, action=MinimumIntegerAction, minimum=2)
    return parser


@pytest.mark.parametrize("value", ["2", "7"])
def test_accepts_minimum_and_above(parser, value):
    assert parser.parse_args(["--count", value]).count == int(value)


@pytest.mark.parametrize("value", ["1", "0", "-3"])
def test_rejects_below_minimum(parser, value, capsys):
    with pytest.raises(SystemExit) as excinfo:
        parser.parse_args(["--count", value])
    assert excinfo.value.code == 2
    assert "Minimum value for --count is 2" in capsys.readouterr().err


def test_default_minimum_is_zero():
    parser = argparse.ArgumentParser()
    parser.add_argument("-t", type=int, action=MinimumIntegerAction)
    assert parser.parse_args(["-t", "0"]).t == 0
    with pytest.raises(SystemExit):
        parser.parse_args(["-t", "-1"])
