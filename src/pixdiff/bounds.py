"""Bounding box of the true-mismatch pixels of a diff."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    """Inclusive pixel rectangle."""

    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left + 1

    @property
    def height(self) -> int:
        return self.bottom - self.top + 1

    def contains(self, x: int, y: int) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom

    def to_dict(self) -> dict[str, int]:
        return {
            "left": self.left,
            "top": self.top,
            "right": self.right,
            "bottom": self.bottom,
            "width": self.width,
            "height": self.height,
        }


def diff_bounds(mismatch_mask: np.ndarray | None) -> BoundingBox | None:
    """Smallest rectangle holding every true-mismatch pixel.

    ``mismatch_mask`` is the engine's ``(height, width)`` boolean mask of
    pixels classified as true mismatches. Anti-aliased and unchanged
    pixels never count, whatever color they were painted in the diff
    buffer. Returns None when no pixel qualifies.
    """
    if mismatch_mask is None:
        return None
    rows = np.flatnonzero(mismatch_mask.any(axis=1))
    if rows.size == 0:
        return None
    cols = np.flatnonzero(mismatch_mask.any(axis=0))
    return BoundingBox(
        left=int(cols[0]),
        top=int(rows[0]),
        right=int(cols[-1]),
        bottom=int(rows[-1]),
    )
