"""
Subprocess execution for verification checks.

Commands here are project-defined (``npm test``, ``pytest -q && ruff .``) so
string commands run through the platform shell. Strategy executors that accept
user-supplied commands validate them against a denylist before they reach this
module.

Execution design:
- Output is streamed to temporary files, never to pipes, so a child that
  writes a lot cannot stall while the caller waits on a sibling process
- ``start_command`` launches without blocking; ``RunningCommand.wait`` enforces
  the deadline measured from launch, which lets callers start several
  processes and then collect them in any order
- On timeout the whole process group is killed and ``timed_out`` is set
- Non-zero exits and spawn failures are normal results, never exceptions
"""

import os
import signal
import subprocess
import tempfile
import time
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from verdict import config
from verdict.debug_logger import get_logger

Command = Union[str, List[str]]

_IS_POSIX = os.name == "posix"


@dataclass
class CommandResult:
    """Outcome of one subprocess invocation."""
    command: str
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int
    timed_out: bool = False
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and self.error is None

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        return self.stdout + self.stderr

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _describe(command: Command) -> str:
    return command if isinstance(command, str) else " ".join(command)


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


class RunningCommand:
    """Handle to a launched process whose output lands in temporary files."""

    def __init__(
        self,
        command: Command,
        *,
        cwd: Optional[Path] = None,
        timeout_ms: Optional[int] = None,
        env: Optional[Dict[str, str]] = None,
        input_text: Optional[str] = None,
    ):
        self.command = command
        self.cwd = Path(cwd) if cwd is not None else config.ROOT
        self.timeout_ms = timeout_ms if timeout_ms is not None else config.CHECK_TIMEOUT_MS
        self.started_at = time.monotonic()
        self._result: Optional[CommandResult] = None
        self._proc: Optional[subprocess.Popen] = None

        self._stdout_file = tempfile.NamedTemporaryFile(mode="w+b", delete=False)
        self._stderr_file = tempfile.NamedTemporaryFile(mode="w+b", delete=False)
        self._stdin_file = None

        merged_env = dict(os.environ)
        if env:
            merged_env.update({k: str(v) for k, v in env.items()})

        try:
            stdin = subprocess.DEVNULL
            if input_text is not None:
                self._stdin_file = tempfile.TemporaryFile(mode="w+b")
                self._stdin_file.write(input_text.encode("utf-8"))
                self._stdin_file.seek(0)
                stdin = self._stdin_file

            self._proc = subprocess.Popen(
                command,
                shell=isinstance(command, str),
                cwd=str(self.cwd),
                env=merged_env,
                stdin=stdin,
                stdout=self._stdout_file,
                stderr=self._stderr_file,
                start_new_session=_IS_POSIX,
            )
        except (OSError, ValueError) as e:
            self._result = CommandResult(
                command=_describe(command),
                exit_code=-1,
                stdout="",
                stderr=str(e),
                duration_ms=self._elapsed_ms(),
                error=f"Failed to start command: {e}",
            )
            self._cleanup()

    def _elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)

    def _kill(self) -> None:
        proc = self._proc
        if proc is None:
            return
        try:
            if _IS_POSIX:
                os.killpg(proc.pid, signal.SIGKILL)
            else:
                proc.kill()
        except (ProcessLookupError, PermissionError, OSError):
            proc.kill()
        proc.wait()

    def _cleanup(self) -> None:
        for handle in (self._stdout_file, self._stderr_file):
            try:
                handle.close()
                os.unlink(handle.name)
            except OSError:
                continue
        if self._stdin_file is not None:
            self._stdin_file.close()

    def poll(self) -> bool:
        """Return True once the process has exited (or never started)."""
        if self._result is not None:
            return True
        return self._proc.poll() is not None

    def cancel(self) -> None:
        """Kill the process if it is still running and drop its output files."""
        if self._result is not None:
            return
        self._kill()
        self._cleanup()

    def wait(self) -> CommandResult:
        """Block until the process exits or its deadline passes."""
        if self._result is not None:
            return self._result

        remaining_s = max(0.0, self.timeout_ms / 1000 - (time.monotonic() - self.started_at))
        timed_out = False
        try:
            self._proc.wait(timeout=remaining_s)
        except subprocess.TimeoutExpired:
            timed_out = True
            self._kill()

        duration_ms = self._elapsed_ms()
        self._stdout_file.flush()
        self._stderr_file.flush()
        stdout = _read_text(self._stdout_file.name)
        stderr = _read_text(self._stderr_file.name)
        self._cleanup()

        self._result = CommandResult(
            command=_describe(self.command),
            exit_code=self._proc.returncode if not timed_out else -1,
            stdout=stdout,
            stderr=stderr,
            duration_ms=duration_ms,
            timed_out=timed_out,
        )
        get_logger().log_command("runner", self._result.to_dict())
        return self._result


def start_command(
    command: Command,
    *,
    cwd: Optional[Path] = None,
    timeout_ms: Optional[int] = None,
    env: Optional[Dict[str, str]] = None,
    input_text: Optional[str] = None,
) -> RunningCommand:
    """Launch a command without waiting for it."""
    return RunningCommand(command, cwd=cwd, timeout_ms=timeout_ms, env=env, input_text=input_text)


def run_command(
    command: Command,
    *,
    cwd: Optional[Path] = None,
    timeout_ms: Optional[int] = None,
    env: Optional[Dict[str, str]] = None,
    input_text: Optional[str] = None,
) -> CommandResult:
    """Run a command to completion.

    Args:
        command: Shell string, or an argv list executed without a shell
        cwd: Working directory (defaults to config.ROOT)
        timeout_ms: Deadline in milliseconds (defaults to config.CHECK_TIMEOUT_MS)
        env: Extra environment variables layered over os.environ
        input_text: Text fed to the process on stdin

    Returns:
        CommandResult; a timeout sets ``timed_out`` and kills the process group
    """
    return start_command(
        command, cwd=cwd, timeout_ms=timeout_ms, env=env, input_text=input_text
    ).wait()


class CommandRunner:
    """Injectable runner used by strategy executors and the check executor."""

    def run(self, command: Command, **kwargs: Any) -> CommandResult:
        return run_command(command, **kwargs)

    def start(self, command: Command, **kwargs: Any) -> RunningCommand:
        return start_command(command, **kwargs)
