"""Persistent verification history."""

from verdict.store.verification_store import (
    format_run_number,
    get_feature_summary,
    get_latest_result,
    get_run_history,
    load_index,
    load_run,
    render_report,
    save_verification_result,
    verification_dir,
)

__all__ = [
    "format_run_number",
    "get_feature_summary",
    "get_latest_result",
    "get_run_history",
    "load_index",
    "load_run",
    "render_report",
    "save_verification_result",
    "verification_dir",
]
