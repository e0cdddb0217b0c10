"""Integration tests for CLI commands."""

from pathlib import Path

import toml
from typer.testing import CliRunner

from cqrsgraph_cli import __version__, config, parser
from cqrsgraph_cli.cli import app


runner = CliRunner()


class TestAnalyzeCommand:
    """Tests for 'cqrs-graph analyze'."""

    def test_analyze_sample_project(self, sample_project_path: Path, tmp_path: Path):
        out = tmp_path / "out"
        result = runner.invoke(app, [
            "analyze", "--src", str(sample_project_path / "src"), "--out", str(out), "--json",
        ])

        assert result.exit_code == 0
        assert "Analysis Summary" in result.stdout
        assert "Classes" in result.stdout
        assert "Issues by severity" in result.stdout
        assert (out / config.REPORT_FILE_NAME).exists()
        assert (out / config.JSON_FILE_NAME).exists()
        assert (out / "cqrs-diagram.mmd").exists()

    def test_analyze_without_report(self, sample_project_path: Path, tmp_path: Path):
        out = tmp_path / "out"
        result = runner.invoke(app, [
            "analyze", "-s", str(sample_project_path / "src"), "-o", str(out),
            "--no-report", "--formats", "dot",
        ])

        assert result.exit_code == 0
        assert not (out / config.REPORT_FILE_NAME).exists()
        assert (out / "cqrs-diagram.dot").exists()

    def test_unknown_format_fails(self, sample_project_path: Path, tmp_path: Path):
        result = runner.invoke(app, [
            "analyze", "--src", str(sample_project_path / "src"), "--out", str(tmp_path / "out"),
            "--formats", "visio",
        ])

        assert result.exit_code == 1
        assert "Error running analysis" in result.stdout

    def test_missing_source_fails(self, tmp_path: Path):
        result = runner.invoke(app, ["analyze", "--src", str(tmp_path / "missing")])

        assert result.exit_code == 1

    def test_config_file_is_used(self, sample_project_path: Path, tmp_path: Path):
        out = tmp_path / "from-config"
        cfg = tmp_path / "c.toml"
        cfg.write_text(toml.dumps({"analyzer": {
            "src_dir": str(sample_project_path / "src"),
            "out_dir": str(out),
            "formats": [],
        }}))

        result = runner.invoke(app, ["analyze", "--config", str(cfg)])

        assert result.exit_code == 0
        assert (out / config.REPORT_FILE_NAME).exists()

    def test_invalid_config_value_is_rejected(self, tmp_path: Path):
        result = runner.invoke(app, ["analyze", "--max-edges", "-3"])

        assert result.exit_code != 0

    def test_mistyped_config_value_is_reported(self, tmp_path: Path):
        cfg = tmp_path / "c.toml"
        cfg.write_text(toml.dumps({"analyzer": {"max_edges": "10"}}))

        result = runner.invoke(app, ["analyze", "--config", str(cfg)])

        assert result.exit_code == 2
        assert not isinstance(result.exception, TypeError)

    def test_missing_grammar_fails_the_run(self, sample_project_path: Path, tmp_path: Path, monkeypatch):
        monkeypatch.setitem(parser._GRAMMAR_MODULES, "typescript", ("no_such_grammar_module", "language"))

        result = runner.invoke(app, [
            "analyze", "--src", str(sample_project_path / "src"), "--out", str(tmp_path / "out"),
        ])

        assert result.exit_code == 1
        assert "Error running analysis" in result.stdout
        assert not (tmp_path / "out" / config.REPORT_FILE_NAME).exists()


class TestEdgesCommand:
    """Tests for 'cqrs-graph edges'."""

    def test_lists_usages_and_handlers(self, sample_project_path: Path):
        result = runner.invoke(app, ["edges", "--src", str(sample_project_path / "src")])

        assert result.exit_code == 0
        assert "Bus usages (4)" in result.stdout
        assert "Handler declarations (4)" in result.stdout

    def test_empty_tree(self, tmp_path: Path):
        result = runner.invoke(app, ["edges", "--src", str(tmp_path)])

        assert result.exit_code == 0
        assert "No bus usages or handler declarations found." in result.stdout


class TestInitCommand:
    """Tests for 'cqrs-graph init'."""

    def test_writes_default_config(self, tmp_path: Path):
        path = tmp_path / config.CONFIG_FILE_NAME
        result = runner.invoke(app, ["init", "--path", str(path)])

        assert result.exit_code == 0
        assert "Wrote default configuration" in result.stdout
        assert toml.load(path)["analyzer"]["src_dir"] == config.DEFAULT_SRC_DIR

    def test_refuses_to_overwrite(self, tmp_path: Path):
        path = tmp_path / config.CONFIG_FILE_NAME
        runner.invoke(app, ["init", "--path", str(path)])

        result = runner.invoke(app, ["init", "--path", str(path)])
        assert result.exit_code == 1
        assert "already exists" in result.stdout

        assert runner.invoke(app, ["init", "--path", str(path), "--force"]).exit_code == 0


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"CQRS Graph v{__version__}" in result.stdout
