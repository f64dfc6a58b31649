"""
Safety checks applied before a strategy touches the filesystem or a shell.

Strategy records come from task definitions, which an agent may have
written. Anything that could escape the project root or run a destructive
command is rejected before execution.
"""

import os
import re
import shlex
from pathlib import Path
from typing import List, Optional, Sequence, Union

# Destructive shell idioms that are never run, whatever the expected exit code
DANGEROUS_PATTERNS = [
    re.compile(r"rm\s+(?:-rf?|-fr|--recursive)\s+[/~]", re.IGNORECASE),
    re.compile(r"rm\s+(?:-rf?|-fr|--recursive)\s+\.\.", re.IGNORECASE),
    re.compile(r">\s*/dev/sd[a-z]", re.IGNORECASE),
    re.compile(r"mkfs\.", re.IGNORECASE),
    re.compile(r"dd\s+.*of\s*=\s*/dev", re.IGNORECASE),
    re.compile(r":\s*\(\)\s*\{\s*:\s*\|\s*:", re.IGNORECASE),  # fork bomb
    re.compile(r"wget\s+.*\|\s*(?:bash|sh|zsh)", re.IGNORECASE),
    re.compile(r"curl\s+.*\|\s*(?:bash|sh|zsh)", re.IGNORECASE),
    re.compile(r"eval\s+\$\(", re.IGNORECASE),
    re.compile(r"chmod\s+777\s+/", re.IGNORECASE),
    re.compile(r"chown\s+(?:-\w*R\w*|--recursive)\s+.*\s/", re.IGNORECASE),
]

# Injection idioms checked in each individual script argument
SHELL_INJECTION_PATTERNS = [
    re.compile(r"\|\s*(?:bash|sh|zsh|ksh|csh)", re.IGNORECASE),
    re.compile(r";\s*(?:rm|chmod|chown|mkfs|dd)", re.IGNORECASE),
    re.compile(r"`[^`]*`"),
    re.compile(r"\$\([^)]+\)"),
]

_SEGMENT_RE = re.compile(r"[/\\]")


def has_unsafe_traversal(path_pattern: str) -> bool:
    """True if following ``..`` segments ever climbs above the starting directory.

    ``"src/../lib"`` stays inside; ``"a/../../b"`` escapes.
    """
    depth = 0
    for segment in _SEGMENT_RE.split(path_pattern):
        if segment == "..":
            depth -= 1
            if depth < 0:
                return True
        elif segment and segment != ".":
            depth += 1
    return False


def is_within_root(root: Union[str, Path], path: Union[str, Path]) -> bool:
    """True when ``path`` resolves to ``root`` or somewhere beneath it."""
    root_resolved = Path(root).resolve()
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = root_resolved / candidate
    try:
        candidate.resolve().relative_to(root_resolved)
        return True
    except ValueError:
        return False


def find_dangerous_pattern(command: str) -> Optional[str]:
    """Return the source of the first denylisted pattern in ``command``, if any."""
    for pattern in DANGEROUS_PATTERNS:
        if pattern.search(command):
            return pattern.pattern
    return None


def validate_args(args: Sequence[str]) -> Optional[str]:
    """Error message for unsafe script arguments, or None when they are fine."""
    joined = " ".join(args)
    danger = find_dangerous_pattern(joined)
    if danger:
        return f"Arguments contain dangerous pattern: {danger}"
    for arg in args:
        for pattern in SHELL_INJECTION_PATTERNS:
            if pattern.search(arg):
                return f"Argument contains dangerous pattern: {arg}"
    return None


def quote_command(command: str, args: Sequence[str] = ()) -> str:
    """Append shell-quoted ``args`` to a command string."""
    if not args:
        return command
    return f"{command} {' '.join(shlex.quote(a) for a in args)}"


def exit_code_matches(actual: int, expected: Union[int, List[int]]) -> bool:
    if isinstance(expected, list):
        return actual in expected
    return actual == expected


def is_readable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK)
