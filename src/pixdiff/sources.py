"""Turn image references (data URIs, file paths) into bytes."""

from __future__ import annotations

import base64
import binascii
import re
from pathlib import Path

from pixdiff.errors import InvalidInputError

_DATA_URI_RE = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^;,]*)*?),(?P<data>.*)$", re.S
)


def parse_data_uri(uri: str, *, label: str = "input") -> bytes:
    """Decode a ``data:`` URI; only base64 payloads are accepted."""
    match = _DATA_URI_RE.match(uri)
    if match is None:
        raise InvalidInputError(f"Invalid data URI format for {label} image", image=label)
    if ";base64" not in match.group("params"):
        msg = f"Invalid data URI for {label} image: payload must be base64"
        raise InvalidInputError(msg, image=label)
    payload = re.sub(r"\s", "", match.group("data"))
    if not payload:
        msg = f"Invalid data URI format for {label} image: missing base64 data"
        raise InvalidInputError(msg, image=label)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        msg = f"Invalid base64 data in {label} image data URI: {exc}"
        raise InvalidInputError(msg, image=label) from exc


def to_data_uri(data: bytes, fmt: str) -> str:
    return f"data:image/{fmt};base64,{base64.b64encode(data).decode('ascii')}"


def load_source(ref: str | Path, *, label: str = "input") -> bytes:
    """Read image bytes from a data URI or a local file path.

    Remote URLs are not fetched here; callers download them first.
    """
    if isinstance(ref, str):
        if not ref.strip():
            raise InvalidInputError(f"{label} image source is required", image=label)
        if ref.startswith("data:"):
            return parse_data_uri(ref, label=label)
        if re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", ref):
            raise InvalidInputError(
                f"{label} image source {ref!r} is a remote URL; download it first", image=label
            )
    path = Path(ref)
    try:
        return path.read_bytes()
    except FileNotFoundError:
        raise InvalidInputError(f"{label} image not found: {path}", image=label) from None
    except OSError as exc:
        raise InvalidInputError(f"cannot read {label} image {path}: {exc}", image=label) from exc
