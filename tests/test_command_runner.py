#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tests for subprocess execution with temp-file output capture."""

import os
import time

import pytest

from verdict.debug_logger import DebugLogger
from verdict.tools.command_runner import CommandRunner, run_command, start_command

pytestmark = pytest.mark.skipif(os.name != "posix", reason="shell commands assume a POSIX shell")


class TestRunCommand:
    def test_captures_stdout_and_exit_code(self, tmp_path):
        result = run_command("echo hello", cwd=tmp_path)

        assert result.success
        assert result.exit_code == 0
        assert result.stdout.strip() == "hello"
        assert result.timed_out is False

    def test_nonzero_exit_is_a_result_not_an_exception(self, tmp_path):
        result = run_command("echo oops >&2; exit 3", cwd=tmp_path)

        assert not result.success
        assert result.exit_code == 3
        assert "oops" in result.stderr

    def test_runs_in_requested_directory(self, tmp_path):
        (tmp_path / "marker.txt").write_text("x", encoding="utf-8")
        result = run_command("ls", cwd=tmp_path)
        assert "marker.txt" in result.stdout

    def test_env_is_layered_over_os_environ(self, tmp_path):
        result = run_command('echo "$VERDICT_TEST_VALUE:$PATH"', cwd=tmp_path, env={"VERDICT_TEST_VALUE": "set"})
        value, path = result.stdout.strip().split(":", 1)
        assert value == "set"
        assert path

    def test_argv_list_runs_without_shell(self, tmp_path):
        result = run_command(["echo", "$HOME"], cwd=tmp_path)
        assert result.stdout.strip() == "$HOME"

    def test_input_text_is_fed_to_stdin(self, tmp_path):
        result = run_command("cat", cwd=tmp_path, input_text="prompt body")
        assert result.stdout == "prompt body"

    def test_missing_executable_reports_error(self, tmp_path):
        result = run_command(["definitely-not-a-real-binary-xyz"], cwd=tmp_path)

        assert not result.success
        assert result.exit_code == -1
        assert result.error.startswith("Failed to start command")

    def test_large_output_does_not_block(self, tmp_path):
        result = run_command("yes verdict | head -n 200000", cwd=tmp_path, timeout_ms=20000)
        assert result.success
        assert result.stdout.count("verdict") == 200000


class TestTimeouts:
    def test_timeout_kills_process(self, tmp_path):
        started = time.monotonic()
        result = run_command("sleep 5", cwd=tmp_path, timeout_ms=200)

        assert result.timed_out
        assert not result.success
        assert result.exit_code == -1
        assert time.monotonic() - started < 4

    def test_timeout_kills_child_processes(self, tmp_path):
        result = run_command("sleep 5 & sleep 5; wait", cwd=tmp_path, timeout_ms=200)
        assert result.timed_out


class TestStartedCommands:
    def test_handles_can_be_collected_in_any_order(self, tmp_path):
        slow = start_command("sleep 0.3; echo slow", cwd=tmp_path)
        fast = start_command("echo fast", cwd=tmp_path)

        assert fast.wait().stdout.strip() == "fast"
        assert slow.wait().stdout.strip() == "slow"

    def test_wait_is_idempotent(self, tmp_path):
        handle = start_command("echo once", cwd=tmp_path)
        assert handle.wait() is handle.wait()

    def test_runner_delegates(self, tmp_path):
        runner = CommandRunner()
        assert runner.run("echo via-runner", cwd=tmp_path).stdout.strip() == "via-runner"
        assert runner.start("echo started", cwd=tmp_path).wait().success

    def test_cancel_kills_and_cleans_up(self, tmp_path):
        handle = start_command("sleep 5", cwd=tmp_path)
        output_file = handle._stdout_file.name

        handle.cancel()

        assert handle.poll()
        assert not os.path.exists(output_file)


class TestDebugSession:
    def test_commands_are_logged_when_debugging(self, tmp_path):
        logger = DebugLogger.initialize(enabled=True, log_dir=tmp_path / "logs")

        result = run_command("exit 3", cwd=tmp_path)
        logger.close()

        assert result.exit_code == 3
        content = logger.log_file_path.read_text()
        assert "[COMMAND]" in content
        assert '"exit_code": 3' in content
