#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tests for the command and script strategies."""

import os

import pytest
from conftest import RecordingRunner, make_context

from verdict.models.strategies import CommandStrategy, ScriptStrategy, parse_strategy
from verdict.strategies.command import CommandStrategyExecutor
from verdict.strategies.script import ScriptStrategyExecutor, build_script_command

pytestmark = pytest.mark.skipif(os.name != "posix", reason="shell commands assume a POSIX shell")


class TestCommandStrategy:
    executor = CommandStrategyExecutor()

    def test_passing_command(self, project):
        strategy = parse_strategy({"type": "command", "command": "echo hello", "expectedOutputPattern": "hel+o"})

        result = self.executor.execute(strategy, make_context(project))

        assert result.success
        assert result.output.startswith("Exit code: 0")
        assert "STDOUT:\nhello" in result.output
        assert result.details["exit_code_match"] is True

    def test_exit_code_mismatch(self, project):
        result = self.executor.execute(CommandStrategy(command="exit 4"), make_context(project))

        assert not result.success
        assert "Exit code did not match expected value" in result.output
        assert result.details["exit_code"] == 4

    def test_exit_code_list(self, project):
        strategy = CommandStrategy(command="exit 1", expected_exit_code=[0, 1])
        assert self.executor.execute(strategy, make_context(project)).success

    def test_stderr_pattern(self, project):
        strategy = CommandStrategy(command="echo warning >&2", stderr_pattern="warn")
        result = self.executor.execute(strategy, make_context(project))
        assert result.success
        assert "STDERR:\nwarning" in result.output

    def test_negative_assertion(self, project):
        strategy = CommandStrategy(command="echo 'ERROR: disk full'", not_patterns=["ERROR"])

        result = self.executor.execute(strategy, make_context(project))

        assert not result.success
        assert "Negative assertion failed: pattern 'ERROR' was found" in result.output

    def test_args_are_quoted(self, project):
        runner = RecordingRunner()
        strategy = CommandStrategy(command="echo", args=["two words", "$HOME"])

        result = self.executor.execute(strategy, make_context(project, runner=runner))

        assert runner.commands == ["echo 'two words' '$HOME'"]
        assert "two words $HOME" in result.output

    def test_dangerous_command_never_runs(self, project):
        runner = RecordingRunner()

        result = self.executor.execute(CommandStrategy(command="rm -rf /"), make_context(project, runner=runner))

        assert not result.success
        assert result.output.startswith("Command contains dangerous pattern")
        assert result.details["reason"] == "security-violation"
        assert runner.commands == []

    def test_working_directory_must_stay_inside_project(self, project):
        result = self.executor.execute(CommandStrategy(command="ls", cwd=".."), make_context(project))
        assert not result.success
        assert "Working directory must be within project root" in result.output

    def test_runs_in_subdirectory(self, project):
        (project / "pkg").mkdir()
        (project / "pkg" / "here.txt").write_text("", encoding="utf-8")
        result = self.executor.execute(CommandStrategy(command="ls", cwd="pkg"), make_context(project))
        assert "here.txt" in result.output

    def test_timeout(self, project):
        result = self.executor.execute(CommandStrategy(command="sleep 5", timeout_ms=200), make_context(project))

        assert not result.success
        assert result.output == "Command execution timed out after 200ms"

    def test_ci_env_is_set(self, project):
        result = self.executor.execute(CommandStrategy(command="echo $CI", expected_output_pattern="^true"),
                                       make_context(project))
        assert result.success

    def test_long_output_is_clipped(self, project, monkeypatch):
        monkeypatch.setattr("verdict.config.COMMAND_OUTPUT_LIMIT", 20)
        result = self.executor.execute(CommandStrategy(command="printf 'x%.0s' $(seq 1 100)"),
                                       make_context(project))
        assert "x" * 20 + "..." in result.output
        assert "x" * 21 not in result.output


class TestScriptStrategy:
    executor = ScriptStrategyExecutor()

    def _script(self, project, body, name="verify.sh", executable=False):
        path = project / name
        path.write_text(body, encoding="utf-8")
        if executable:
            path.chmod(0o755)
        return path

    def test_runs_non_executable_script_with_sh(self, project):
        script = self._script(project, "echo verified\n")

        result = self.executor.execute(ScriptStrategy(path="verify.sh"), make_context(project))

        assert result.success
        assert result.output.strip() == "verified"
        assert result.details["command"].startswith("sh ")
        assert build_script_command(script, []).startswith("sh ")

    def test_runs_executable_script_directly(self, project):
        self._script(project, "#!/bin/sh\necho direct\n", executable=True)

        result = self.executor.execute(ScriptStrategy(path="./verify.sh"), make_context(project))

        assert result.success
        assert not result.details["command"].startswith("sh ")

    def test_args_reach_script_intact(self, project):
        self._script(project, 'echo "[$1]"\n')
        result = self.executor.execute(ScriptStrategy(path="verify.sh", args=["a b"]), make_context(project))
        assert result.output.strip() == "[a b]"

    def test_expected_exit_code_and_pattern(self, project):
        self._script(project, "echo 'migrations: 3 pending'\nexit 3\n")

        ok = self.executor.execute(
            ScriptStrategy(path="verify.sh", expected_exit_code=3, output_pattern=r"\d+ pending"),
            make_context(project),
        )
        wrong_pattern = self.executor.execute(
            ScriptStrategy(path="verify.sh", expected_exit_code=3, output_pattern="all applied"),
            make_context(project),
        )

        assert ok.success
        assert not wrong_pattern.success
        assert wrong_pattern.details["pattern_match"] is False

    def test_stderr_is_appended_to_output(self, project):
        self._script(project, "echo out\necho err >&2\n")
        result = self.executor.execute(ScriptStrategy(path="verify.sh"), make_context(project))
        assert result.output == "out\n\nerr\n"

    def test_script_outside_project_is_rejected(self, project):
        outside = project.parent / "evil.sh"
        outside.write_text("echo pwned\n", encoding="utf-8")

        result = self.executor.execute(ScriptStrategy(path="../evil.sh"), make_context(project))

        assert not result.success
        assert "Script path must be within project root" in result.output

    def test_missing_script(self, project):
        result = self.executor.execute(ScriptStrategy(path="missing.sh"), make_context(project))
        assert not result.success
        assert "Script file not found or not readable" in result.output

    @pytest.mark.parametrize("arg", ["$(whoami)", "`id`", "x; rm -rf b"])
    def test_injected_args_are_rejected(self, project, arg):
        self._script(project, "echo hi\n")
        runner = RecordingRunner()

        result = self.executor.execute(ScriptStrategy(path="verify.sh", args=[arg]),
                                       make_context(project, runner=runner))

        assert not result.success
        assert result.details["reason"] == "security-violation"
        assert runner.commands == []

    def test_timeout(self, project):
        self._script(project, "echo started\nsleep 5\n")
        result = self.executor.execute(ScriptStrategy(path="verify.sh", timeout_ms=300), make_context(project))
        assert not result.success
        assert result.output.startswith("Script execution timed out after 300ms")
