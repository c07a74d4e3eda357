"""JSON output for comparison outcomes and command reports."""

from __future__ import annotations

import json
import sys
from enum import Enum
from pathlib import PurePath
from typing import Any, TextIO


def _jsonable(obj: Any) -> Any:
    # outcomes, bounds and image info all expose their wire shape
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, PurePath):
        return str(obj)
    raise TypeError(f"cannot serialize {type(obj).__name__} as JSON")


def write_json(data: Any, *, out: TextIO | None = None, indent: int | None = 2) -> None:
    """Write ``data`` as JSON, expanding pixdiff result objects via ``to_dict``."""
    dest = out or sys.stdout
    dest.write(json.dumps(data, default=_jsonable, indent=indent) + "\n")
