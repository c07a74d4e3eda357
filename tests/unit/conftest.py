"""Shared helpers for unit tests."""

from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any

import numpy as np
import pytest
from PIL import Image

from pixdiff.codec import DecodedImage


def image_bytes(img: Image.Image, fmt: str = "PNG", **save: Any) -> bytes:
    """Encode a Pillow image to bytes."""
    buf = io.BytesIO()
    img.save(buf, format=fmt, **save)
    return buf.getvalue()


def solid_bytes(
    color: tuple[int, ...],
    size: tuple[int, int] = (4, 4),
    mode: str = "RGBA",
    fmt: str = "PNG",
) -> bytes:
    """Encoded solid-color image."""
    return image_bytes(Image.new(mode, size, color), fmt)


def solid(
    tmp_path: Path,
    name: str,
    color: tuple[int, ...],
    size: tuple[int, int] = (4, 4),
) -> Path:
    """Create a solid-color image file and return its path."""
    p = tmp_path / name
    Image.new("RGBA", size, color).save(p)
    return p


def decoded(color: tuple[int, int, int, int], size: tuple[int, int] = (4, 4)) -> DecodedImage:
    """Solid DecodedImage of ``size`` (width, height)."""
    w, h = size
    pixels = np.empty((h, w, 4), dtype=np.uint8)
    pixels[...] = color
    return DecodedImage(pixels, w, h)


def with_pixel(
    image: DecodedImage,
    x: int,
    y: int,
    color: tuple[int, int, int, int],
) -> DecodedImage:
    """Copy of ``image`` with one pixel replaced."""
    pixels = image.pixels.copy()
    pixels[y, x] = color
    return DecodedImage(pixels, image.width, image.height, image.format)


def noise(size: tuple[int, int], seed: int = 0, opaque: bool = True) -> DecodedImage:
    """Random RGBA image; fully opaque unless ``opaque`` is False."""
    w, h = size
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(h, w, 4), dtype=np.uint8)
    if opaque:
        pixels[..., 3] = 255
    return DecodedImage(pixels, w, h)


def aa_edge_pair() -> tuple[DecodedImage, DecodedImage]:
    """10x10 black|white halves; ``actual`` softens the edge with a gray column.

    The gray column is the only difference and reads as anti-aliasing.
    """
    base = np.zeros((10, 10, 4), dtype=np.uint8)
    base[..., 3] = 255
    base[:, 5:, :3] = 255
    actual = base.copy()
    actual[:, 5, :3] = 128
    return DecodedImage(base, 10, 10), DecodedImage(actual, 10, 10)


def cairosvg_or_skip() -> Any:
    """Return the cairosvg module, or skip when it or libcairo is missing."""
    try:
        import cairosvg
    except (ImportError, OSError) as exc:
        pytest.skip(f"cairosvg unavailable: {exc}")
    return cairosvg


def assert_json_output(result: Any, exit_code: int = 0) -> dict[str, Any]:
    """Assert CLI result exit code and return parsed JSON output.

    Args:
        result: ``click.testing.Result`` from ``CliRunner().invoke()``.
        exit_code: Expected exit code.

    Returns:
        Parsed JSON dict.
    """
    assert result.exit_code == exit_code, result.output
    data: dict[str, Any] = json.loads(result.output)
    return data
