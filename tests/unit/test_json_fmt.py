"""Tests for JSON output formatting."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from pixdiff.bounds import BoundingBox
from pixdiff.compare import ComparisonFailure, Stage
from pixdiff.formatters.json_fmt import write_json


def _dump(data: object, **kwargs: object) -> str:
    buf = io.StringIO()
    write_json(data, out=buf, **kwargs)  # type: ignore[arg-type]
    return buf.getvalue()


def test_plain_dict() -> None:
    assert json.loads(_dump({"a": 1})) == {"a": 1}


def test_trailing_newline_and_compact() -> None:
    text = _dump([1, 2], indent=None)
    assert text == "[1, 2]\n"


def test_result_objects_expanded() -> None:
    failure = ComparisonFailure("DecodeError", "bad", Stage.DECODING)
    data = json.loads(_dump(failure))
    assert data == {"error": {"kind": "DecodeError", "message": "bad", "stage": "decoding"}}


def test_nested_values() -> None:
    data = json.loads(
        _dump({"box": BoundingBox(1, 2, 3, 4), "stage": Stage.DONE, "path": Path("a/b.png")})
    )
    assert data["box"]["width"] == 3
    assert data["stage"] == "done"
    assert data["path"] == str(Path("a/b.png"))


def test_unserializable_rejected() -> None:
    with pytest.raises(TypeError, match="object"):
        _dump({"x": object()})
