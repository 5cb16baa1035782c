"""Tests for the verifier command line."""

import json
import shutil
import subprocess

import pytest

from verifier.cli import build_parser, main
from verifier.config import Config


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Initialized project directory with storage under tmp_path."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
    monkeypatch.setattr(Config, "SESSIONS_DIR", str(tmp_path / ".verifier" / "sessions"))
    monkeypatch.setattr(Config, "METRICS_DIR", str(tmp_path / ".verifier" / "metrics"))
    config_path = tmp_path / "config.yaml"
    config_path.write_text("budgets:\n  daily_tokens: 1000\n")
    (tmp_path / "app.py").write_text("a = 1\nb = 2\n")
    return config_path


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_agents_lists_builtins(capsys):
    assert main(["--log-level", "ERROR", "agents"]) == 0
    assert "file-summary" in capsys.readouterr().out


def test_run_without_config(tmp_path, capsys):
    """A missing config.yaml is reported and exits 1."""
    code = main(["--log-level", "ERROR", "--config", str(tmp_path / "nope.yaml"), "run", "file-summary"])

    assert code == 1


def test_run_unknown_agent(project):
    assert main(["--log-level", "ERROR", "--config", str(project), "run", "ghost"]) == 1


def test_run_json(project, capsys):
    code = main(
        ["--log-level", "ERROR", "--config", str(project), "run", "file-summary", "--files", "app.py", "--json"]
    )

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["agent_id"] == "file-summary"
    assert out["status"] == "success"
    assert out["data"]["total_lines"] == 2


def test_token_usage_after_run(project, capsys):
    main(["--log-level", "ERROR", "--config", str(project), "run", "file-summary", "--files", "app.py"])
    capsys.readouterr()

    code = main(["--log-level", "ERROR", "--config", str(project), "token-usage", "--format", "json"])

    assert code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["period"] == "daily"
    assert report["by_agent"]["file-summary"]["calls"] == 1
    assert report["budget_tokens"] == 1000.0
    assert report["budget_used_pct"] == 0


def test_token_usage_table(project, capsys):
    code = main(["--log-level", "ERROR", "--config", str(project), "token-usage", "--period", "weekly"])

    assert code == 0
    out = capsys.readouterr().out
    assert "Token Usage Report (weekly)" in out
    assert "Budget Used: 0.0%" in out


def test_parser_demo_flag():
    args = build_parser().parse_args(["run", "file-summary", "--demo"])

    assert args.demo is True


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_run_uses_changed_files(project, capsys):
    """Without --files the run targets the files git reports as changed."""
    subprocess.run(["git", "init", "-q"], cwd=project.parent, check=True)

    code = main(["--log-level", "ERROR", "--config", str(project), "run", "file-summary", "--json"])

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["status"] == "success"
    summarized = {entry["file"] for entry in out["data"]["files"]}
    assert {"app.py", "config.yaml"} <= summarized
