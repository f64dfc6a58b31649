"""Centralized version constant for verdict."""

# Note: VERDICT_GIT_COMMIT is stamped at build time so wheels/sdists carry
# the commit even when git metadata is unavailable at runtime.
VERDICT_VERSION = "0.4.0"
VERDICT_GIT_COMMIT = "unknown"

__all__ = ["VERDICT_VERSION", "VERDICT_GIT_COMMIT"]
