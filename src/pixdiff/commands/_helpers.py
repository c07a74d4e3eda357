"""Shared CLI command helpers."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from pixdiff.compare import ComparisonFailure
from pixdiff.options import DEFAULT_HARD_LIMIT, DEFAULT_SOFT_LIMIT

__all__ = [
    "_json_mode",
    "err_exit",
    "failure_exit",
    "write_bytes",
    "soft_limit_option",
    "hard_limit_option",
]


def _json_mode() -> bool:
    """Return True if the current Click context has a JSON output flag set."""
    ctx = click.get_current_context(silent=True)
    if ctx is None:
        return False
    return bool(ctx.params.get("use_json"))


def err_exit(msg: str, *, kind: str | None = None, stage: str | None = None) -> None:
    """Print error (JSON or plain text based on context) and exit(2)."""
    if _json_mode():
        payload: dict[str, str | None] = {"message": msg}
        if kind is not None:
            payload["kind"] = kind
            payload["stage"] = stage
        click.echo(json.dumps({"error": payload}), err=True)
    else:
        click.echo(f"error: {msg}", err=True)
    sys.exit(2)


def failure_exit(failure: ComparisonFailure) -> None:
    err_exit(failure.message, kind=failure.kind, stage=failure.stage.value)


def write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path``, creating parent directories."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as exc:
        err_exit(f"cannot write {path}: {exc}")


soft_limit_option = click.option(
    "--soft-limit",
    default=DEFAULT_SOFT_LIMIT,
    show_default=True,
    envvar="PIXDIFF_SOFT_LIMIT",
    type=click.IntRange(min=1),
    help="Bytes above which images are compressed.",
)

hard_limit_option = click.option(
    "--hard-limit",
    default=DEFAULT_HARD_LIMIT,
    show_default=True,
    envvar="PIXDIFF_HARD_LIMIT",
    type=click.IntRange(min=1),
    help="Bytes above which the result is rejected.",
)
