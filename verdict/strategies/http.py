#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""HTTP strategy: call an endpoint and assert on status and body.

Only hosts on an allowlist may be contacted (localhost by default), and
private address ranges need an explicit entry, so a task definition cannot
turn the verifier into a proxy for the internal network.
"""

import ipaddress
import json
import os
import re
import time
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

import requests

from verdict import config
from verdict.models.results import StrategyResult
from verdict.models.strategies import HttpStrategy, JsonAssertion, StrategyType
from verdict.strategies.base import StrategyContext, StrategyExecutor, elapsed_ms
from verdict.strategies.safety import exit_code_matches

_VAR_RE = re.compile(r"\$\{([^}]+)\}")
_JSON_PATH_SPLIT_RE = re.compile(r"\.|\[|\]")


def substitute_env_vars(value: Any, env: Dict[str, str]) -> Any:
    """Replace ``${VAR}`` in strings (recursively in dicts and lists).

    Unknown variables are left as written.
    """
    if isinstance(value, str):
        return _VAR_RE.sub(lambda m: env.get(m.group(1), m.group(0)), value)
    if isinstance(value, dict):
        return {k: substitute_env_vars(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_env_vars(v, env) for v in value]
    return value


def _host_allowed(hostname: str, allowed_hosts: List[str]) -> bool:
    for allowed in allowed_hosts:
        allowed = allowed.lower()
        if allowed.startswith("*."):
            if hostname.endswith(allowed[1:]) or hostname == allowed[2:]:
                return True
        elif hostname == allowed:
            return True
    return False


def is_private_ip(hostname: str) -> bool:
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return address.is_private or address.is_link_local


def validate_url(url: str, allowed_hosts: Optional[List[str]] = None) -> Optional[str]:
    """Error message when ``url`` may not be requested, else None."""
    hosts = allowed_hosts if allowed_hosts is not None else config.DEFAULT_ALLOWED_HOSTS
    try:
        parts = urlsplit(url)
        hostname = (parts.hostname or "").lower()
    except ValueError as e:
        return f"Invalid URL: {e}"
    if parts.scheme not in ("http", "https") or not hostname:
        return f"Invalid URL: {url}"

    if not _host_allowed(hostname, hosts):
        return f"Host '{hostname}' is not in allowed hosts list. Allowed: {', '.join(hosts)}"

    explicitly_allowed = any(h.lower() == hostname for h in hosts)
    if not explicitly_allowed and is_private_ip(hostname):
        return f"Private IP addresses are not allowed: {hostname}"
    return None


def get_json_path(data: Any, path: str) -> Any:
    """Resolve ``a.b[0].c`` style paths; ``*`` returns the list it is applied to."""
    current = data
    for part in (p for p in _JSON_PATH_SPLIT_RE.split(path) if p):
        if current is None:
            return None
        if part == "*" and isinstance(current, list):
            return current
        if isinstance(current, list):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return None
        elif isinstance(current, dict):
            current = current.get(part)
        else:
            return None
    return current


def deep_equal(a: Any, b: Any) -> bool:
    # bool is an int subclass in Python; JSON true must not equal 1
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(deep_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(deep_equal(a[k], b[k]) for k in a)
    return a == b


def check_json_assertions(body: str, assertions: List[JsonAssertion]) -> List[str]:
    try:
        data = json.loads(body)
    except ValueError as e:
        return [f"Failed to parse response as JSON: {e}"]
    errors = []
    for assertion in assertions:
        actual = get_json_path(data, assertion.path)
        if not deep_equal(actual, assertion.expected):
            errors.append(
                f"JSONPath '{assertion.path}': expected {json.dumps(assertion.expected)}, "
                f"got {json.dumps(actual)}"
            )
    return errors


def format_output(status: int, body: str, failures: List[str], json_errors: List[str]) -> str:
    limit = config.HTTP_BODY_LIMIT
    lines = [f"HTTP Status: {status}", *failures]
    if json_errors:
        lines.append("JSON assertion failures:")
        lines.extend(f"  - {err}" for err in json_errors)
    lines += ["", "Response body:", body[:limit] + "..." if len(body) > limit else body]
    return "\n".join(lines)


def _request_kwargs(strategy: HttpStrategy, env: Dict[str, str]) -> Tuple[str, Dict[str, Any]]:
    url = substitute_env_vars(strategy.url, env)
    kwargs: Dict[str, Any] = {
        "headers": {"User-Agent": config.HTTP_USER_AGENT, **substitute_env_vars(strategy.headers, env)},
        "allow_redirects": False,
    }
    if strategy.body is not None:
        body = substitute_env_vars(strategy.body, env)
        if isinstance(body, (dict, list)):
            kwargs["json"] = body
        else:
            kwargs["data"] = str(body)
    return url, kwargs


class HttpStrategyExecutor(StrategyExecutor):
    """Issues one HTTP request with ``requests``."""

    strategy_type = StrategyType.HTTP

    def execute(self, strategy: HttpStrategy, context: StrategyContext) -> StrategyResult:
        started = time.monotonic()
        timeout_ms = strategy.timeout_ms or config.HTTP_TIMEOUT_MS
        env = {**os.environ, **strategy.env}
        url, kwargs = _request_kwargs(strategy, env)

        url_error = validate_url(url, strategy.allowed_hosts)
        if url_error:
            return StrategyResult(False, url_error, elapsed_ms(started),
                                  {"reason": "security-violation", "url": url})

        try:
            response = requests.request(strategy.method, url, timeout=timeout_ms / 1000, **kwargs)
        except requests.exceptions.Timeout:
            return StrategyResult(False, f"HTTP request timed out after {timeout_ms}ms",
                                  elapsed_ms(started), {"reason": "timeout", "timeout_ms": timeout_ms})
        except requests.exceptions.RequestException as e:
            return StrategyResult(False, f"HTTP request failed: {e}", elapsed_ms(started),
                                  {"reason": "error", "error": str(e)})

        body = response.text
        failures: List[str] = []
        status_ok = exit_code_matches(response.status_code, strategy.expected_status)
        if not status_ok:
            failures.append("Status code did not match expected value")

        if strategy.expected_body_pattern:
            try:
                if not re.search(strategy.expected_body_pattern, body):
                    failures.append("Response body did not match expected pattern")
            except re.error as e:
                failures.append(f"Invalid body pattern: {e}")

        json_errors = check_json_assertions(body, strategy.json_assertions) if strategy.json_assertions else []

        return StrategyResult(
            success=not failures and not json_errors,
            output=format_output(response.status_code, body, failures, json_errors),
            duration_ms=elapsed_ms(started),
            details={
                "url": url,
                "method": strategy.method,
                "status": response.status_code,
                "expected_status": strategy.expected_status,
                "json_errors": json_errors,
            },
        )
