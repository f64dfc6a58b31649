#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tests for the verdict command line."""

import json

import pytest
from conftest import FakeAgent, discovery_json, verification_json

from verdict import main as cli
from verdict.capabilities.cache import CapabilityCache

QUIET_PROJECT = discovery_json(test={"available": False}, lint={"available": False})


def _agent(verdict="pass"):
    def answer(prompt):
        if prompt.startswith("You are analyzing a software project"):
            return QUIET_PROJECT
        return verification_json(verdict, [{"index": 0, "satisfied": verdict == "pass",
                                            "reasoning": "Checked", "confidence": 0.9}])
    return FakeAgent(handler=answer)


@pytest.fixture
def feature_file(project):
    path = project / "feature.yaml"
    path.write_text("id: cli-demo\ndescription: CLI demo\nacceptance:\n  - It works\n", encoding="utf-8")
    return path


@pytest.fixture
def use_agent(monkeypatch):
    def install(agent):
        monkeypatch.setattr(cli, "create_agent", lambda kind: agent)
        return agent
    monkeypatch.setattr(cli, "get_default_cache", CapabilityCache)
    return install


def _run(*argv):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(list(argv))
    return excinfo.value.code


@pytest.mark.parametrize("verdict, code", [("pass", 0), ("fail", 1), ("needs_review", 2)])
def test_verify_exit_code_follows_verdict(project, feature_file, use_agent, verdict, code):
    use_agent(_agent(verdict))
    assert _run("--cwd", str(project), "verify", str(feature_file)) == code


def test_verify_json_output(project, feature_file, use_agent, capsys):
    use_agent(_agent("pass"))

    code = _run("--cwd", str(project), "verify", str(feature_file), "--json", "--no-save")

    data = json.loads(capsys.readouterr().out)
    assert code == 0
    assert data["featureId"] == "cli-demo"
    assert data["verdict"] == "pass"
    assert data["criteriaResults"][0]["criterion"] == "It works"
    assert not (project / "ai" / "verification").exists()


def test_verify_human_output(project, feature_file, use_agent, capsys):
    use_agent(_agent("fail"))

    _run("--cwd", str(project), "verify", str(feature_file))

    out = capsys.readouterr().out
    assert "✗ cli-demo: FAIL (verified by fake)" in out
    assert "Acceptance criteria:" in out


def test_missing_feature_file(project, use_agent, capsys):
    use_agent(_agent())
    assert _run("--cwd", str(project), "verify", str(project / "nope.yaml")) == 1
    assert "Could not load feature" in capsys.readouterr().out


def test_detect_prints_capabilities(project, use_agent, capsys):
    use_agent(_agent())

    assert _run("--cwd", str(project), "detect") == 0

    data = json.loads(capsys.readouterr().out)
    assert data["languages"] == ["python"]
    assert data["test"]["available"] is False


def test_history(project, feature_file, use_agent, capsys):
    use_agent(_agent("pass"))
    _run("--cwd", str(project), "verify", str(feature_file))
    _run("--cwd", str(project), "verify", str(feature_file))
    capsys.readouterr()

    assert _run("--cwd", str(project), "history", "cli-demo") == 0

    out = capsys.readouterr().out
    assert "cli-demo: 2 runs, 2 passed, 0 failed" in out
    assert "#002" in out


def test_history_without_runs(project, capsys):
    assert _run("--cwd", str(project), "history", "unknown") == 1
    assert "No verification history for unknown" in capsys.readouterr().out


def test_subcommand_is_required():
    assert _run() == 2
