"""
tests/test_cli.py
=================
Command-line front end, driven through typer's CliRunner.
"""

import os
import sys

import pytest
from typer.testing import CliRunner

_TREES_DIR = os.path.join(os.path.dirname(__file__), "trees")

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from wastrid import __version__
from wastrid.cli import app, parse_bounds

runner = CliRunner()


def tree_file(name):
    return os.path.join(_TREES_DIR, name)


class TestRun:
    def test_tree_to_file(self, tmp_path):
        out = tmp_path / "species.tre"
        result = runner.invoke(
            app, ["-i", tree_file("missing_5taxa.tre"), "-o", str(out), "-m", "internode"]
        )
        assert result.exit_code == 0, result.output
        text = out.read_text()
        assert text.endswith(";\n")
        for name in "ABCDE":
            assert name in text

    def test_tree_to_stdout(self):
        result = runner.invoke(
            app, ["-i", tree_file("quartet_4leaf.tre"), "--mode", "internode", "-q"]
        )
        assert result.exit_code == 0, result.output
        assert ";" in result.output

    def test_matrix_output(self, tmp_path):
        out = tmp_path / "dist.phy"
        result = runner.invoke(
            app,
            ["-i", tree_file("quartet_4leaf.tre"), "-o", str(out), "--matrix", "-m", "internode"],
        )
        assert result.exit_code == 0, result.output
        lines = out.read_text().splitlines()
        assert lines[0] == "4"
        assert lines[1] == "A 0 2 3 3"

    def test_support_bounds_and_threads(self, tmp_path):
        out = tmp_path / "species.tre"
        result = runner.invoke(
            app,
            [
                "-i", tree_file("genes_8taxa.tre"),
                "-o", str(out),
                "-b", "0 1",
                "-t", "2",
                "--backend", "python",
            ],
        )
        assert result.exit_code == 0, result.output
        assert out.read_text().count(",") == 7

    def test_nlength_impute(self, tmp_path):
        out = tmp_path / "species.tre"
        result = runner.invoke(
            app,
            [
                "-i", tree_file("missing_5taxa.tre"),
                "-o", str(out),
                "-m", "internode",
                "--impute", "nlength",
            ],
        )
        assert result.exit_code == 0, result.output


class TestErrors:
    def test_missing_input_file(self, tmp_path):
        result = runner.invoke(app, ["-i", str(tmp_path / "nope.tre")])
        assert result.exit_code == 1

    def test_malformed_newick(self, tmp_path):
        bad = tmp_path / "bad.tre"
        bad.write_text("((A,B),(C,D);\n")
        result = runner.invoke(app, ["-i", str(bad)])
        assert result.exit_code == 1
        assert "line 1" in result.output

    def test_inverted_bounds(self):
        result = runner.invoke(app, ["-i", tree_file("quartet_4leaf.tre"), "-b", "1 0"])
        assert result.exit_code == 2

    def test_support_impute_rejected(self):
        result = runner.invoke(
            app, ["-i", tree_file("quartet_4leaf.tre"), "--impute", "support"]
        )
        assert result.exit_code == 1

    def test_unknown_backend(self):
        result = runner.invoke(
            app, ["-i", tree_file("quartet_4leaf.tre"), "--backend", "gpu"]
        )
        assert result.exit_code == 1

    def test_bad_mode(self):
        result = runner.invoke(app, ["-i", tree_file("quartet_4leaf.tre"), "-m", "nope"])
        assert result.exit_code == 2

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestParseBounds:
    def test_ok(self):
        assert parse_bounds("0 100") == (0.0, 100.0)

    @pytest.mark.parametrize("text", ["1", "a b", "5 5", "1 0"])
    def test_rejected(self, text):
        import typer

        with pytest.raises(typer.BadParameter):
            parse_bounds(text)
