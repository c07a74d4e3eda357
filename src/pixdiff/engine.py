"""Perceptual pixel-by-pixel comparison with anti-aliasing detection.

Color distance is measured in the YIQ NTSC space (Kotsarenko & Ramos,
"Measuring perceived color difference using YIQ NTSC transmission color
space in mobile applications"). Semi-transparent pixels are blended onto
white before measuring.

A raw mismatch is dropped as anti-aliasing when, in either image, the
pixel sits between a darker and a brighter neighbour, has at most two
neighbours of equal brightness, and the darkest or brightest neighbour
lies inside a flat region (3+ identical neighbours) in both images.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from pixdiff.bounds import BoundingBox
from pixdiff.codec import DecodedImage
from pixdiff.errors import DimensionMismatchError, InvalidImageError
from pixdiff.options import DiffOptions, Region

log = logging.getLogger(__name__)

# Largest possible squared YIQ delta between two colors.
MAX_YIQ_DELTA = 35215.0

DEFAULT_BAND_HEIGHT = 256

# Rows of context a band needs on each side: one for the 3x3 window,
# one more for the sibling check around the darkest/brightest neighbour.
_HALO = 2

# 3x3 window minus the centre, column-major like the reference scan.
_NEIGHBOURS = tuple(
    (dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)
)

UNCHANGED = 0
ANTIALIASED = 1
MISMATCH = 2


@dataclass(frozen=True, eq=False)
class PixelDiff:
    """Raw engine output before it is wrapped into a DiffResult.

    ``mismatch_mask`` is True exactly where a pixel was classified as a
    true mismatch. Both it and ``buffer`` are None for identical inputs.
    """

    mismatch_count: int
    antialiased_count: int
    buffer: DecodedImage | None
    mismatch_mask: np.ndarray | None = None


@dataclass(frozen=True, eq=False)
class DiffResult:
    """Outcome of diffing two equal-sized images."""

    mismatch_count: int
    antialiased_count: int
    total_pixels: int
    diff_buffer: DecodedImage | None
    mismatch_mask: np.ndarray | None
    bounding_box: BoundingBox | None
    processing_ms: float

    @property
    def difference_percentage(self) -> float:
        return difference_percentage(self.mismatch_count, self.total_pixels)


def difference_percentage(mismatch_count: int, total_pixels: int) -> float:
    """Share of mismatching pixels in percent, unrounded."""
    return mismatch_count / total_pixels * 100.0


def _packed(pixels: np.ndarray) -> np.ndarray:
    """View RGBA rows as one uint32 per pixel for exact equality tests."""
    h, w = pixels.shape[:2]
    return np.ascontiguousarray(pixels).view(np.uint32).reshape(h, w)


def _yiq(pixels: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    px = pixels.astype(np.float64)
    alpha = px[..., 3] / 255.0
    r = 255.0 + (px[..., 0] - 255.0) * alpha
    g = 255.0 + (px[..., 1] - 255.0) * alpha
    b = 255.0 + (px[..., 2] - 255.0) * alpha
    y = r * 0.29889531 + g * 0.58662247 + b * 0.11448223
    i = r * 0.59597799 - g * 0.27417610 - b * 0.32180189
    q = r * 0.21147017 - g * 0.52261711 + b * 0.31114694
    return y, i, q


def _squared_delta(
    yiq_a: tuple[np.ndarray, np.ndarray, np.ndarray],
    yiq_b: tuple[np.ndarray, np.ndarray, np.ndarray],
) -> np.ndarray:
    dy = yiq_a[0] - yiq_b[0]
    di = yiq_a[1] - yiq_b[1]
    dq = yiq_a[2] - yiq_b[2]
    return 0.5053 * dy * dy + 0.299 * di * di + 0.1957 * dq * dq


def color_delta(pixels_a: np.ndarray, pixels_b: np.ndarray) -> np.ndarray:
    """Signed squared YIQ distance per pixel.

    Positive where the second pixel is lighter than the first, negative
    where it is darker. Identical pixels give exactly zero.
    """
    yiq_a = _yiq(pixels_a)
    yiq_b = _yiq(pixels_b)
    delta = _squared_delta(yiq_a, yiq_b)
    return np.where(yiq_b[0] > yiq_a[0], delta, -delta)


def _many_siblings(pixels: np.ndarray) -> np.ndarray:
    """True where a pixel has 3+ identical neighbours (image edges count as one)."""
    packed = _packed(pixels)
    h, w = packed.shape
    count = np.zeros((h, w), dtype=np.int32)
    count[0, :] = 1
    count[-1, :] = 1
    count[:, 0] = 1
    count[:, -1] = 1
    for dx, dy in _NEIGHBOURS:
        dst_y = slice(max(0, -dy), h - max(0, dy))
        dst_x = slice(max(0, -dx), w - max(0, dx))
        src_y = slice(max(0, dy), h - max(0, -dy))
        src_x = slice(max(0, dx), w - max(0, -dx))
        count[dst_y, dst_x] += packed[dst_y, dst_x] == packed[src_y, src_x]
    return count > 2


def _antialiased(
    brightness: np.ndarray,
    siblings: np.ndarray,
    other_siblings: np.ndarray,
    ys: np.ndarray,
    xs: np.ndarray,
) -> np.ndarray:
    """Classify candidate pixels of one image as anti-aliasing."""
    h, w = brightness.shape
    n = ys.size
    zeroes = ((xs == 0) | (xs == w - 1) | (ys == 0) | (ys == h - 1)).astype(np.int32)
    centre = brightness[ys, xs]
    darkest = np.zeros(n)
    brightest = np.zeros(n)
    min_y = ys.copy()
    min_x = xs.copy()
    max_y = ys.copy()
    max_x = xs.copy()

    for dx, dy in _NEIGHBOURS:
        nx = xs + dx
        ny = ys + dy
        inside = (nx >= 0) & (nx < w) & (ny >= 0) & (ny < h)
        nxc = np.clip(nx, 0, w - 1)
        nyc = np.clip(ny, 0, h - 1)
        delta = centre - brightness[nyc, nxc]

        zeroes += inside & (delta == 0)
        darker = inside & (delta < darkest)
        darkest = np.where(darker, delta, darkest)
        min_x = np.where(darker, nxc, min_x)
        min_y = np.where(darker, nyc, min_y)
        brighter = inside & (delta > brightest)
        brightest = np.where(brighter, delta, brightest)
        max_x = np.where(brighter, nxc, max_x)
        max_y = np.where(brighter, nyc, max_y)

    candidate = (zeroes <= 2) & (darkest < 0) & (brightest > 0)
    flat_dark = siblings[min_y, min_x] & other_siblings[min_y, min_x]
    flat_bright = siblings[max_y, max_x] & other_siblings[max_y, max_x]
    return candidate & (flat_dark | flat_bright)


def _classify(
    pixels_a: np.ndarray,
    pixels_b: np.ndarray,
    options: DiffOptions,
) -> tuple[np.ndarray, np.ndarray]:
    """Return per-pixel class codes and a lighter-in-second-image mask."""
    yiq_a = _yiq(pixels_a)
    yiq_b = _yiq(pixels_b)
    ya, yb = yiq_a[0], yiq_b[0]
    delta = _squared_delta(yiq_a, yiq_b)
    max_delta = MAX_YIQ_DELTA * options.color_threshold * options.color_threshold

    codes = np.zeros(delta.shape, dtype=np.uint8)
    lighter = yb > ya
    raw = delta > max_delta
    if not raw.any():
        return codes, lighter
    if options.include_antialiasing:
        codes[raw] = MISMATCH
        return codes, lighter

    ys, xs = np.nonzero(raw)
    sib_a = _many_siblings(pixels_a)
    sib_b = _many_siblings(pixels_b)
    aa = _antialiased(ya, sib_a, sib_b, ys, xs) | _antialiased(yb, sib_b, sib_a, ys, xs)
    codes[ys[aa], xs[aa]] = ANTIALIASED
    codes[ys[~aa], xs[~aa]] = MISMATCH
    return codes, lighter


def _composite(
    out: np.ndarray,
    base: np.ndarray,
    codes: np.ndarray,
    lighter: np.ndarray,
    options: DiffOptions,
) -> None:
    """Paint one band of the diff buffer in place."""
    if not options.diff_mask_only:
        px = base.astype(np.float64)
        luma = px[..., 0] * 0.29889531 + px[..., 1] * 0.58662247 + px[..., 2] * 0.11448223
        blend = options.unchanged_alpha * px[..., 3] / 255.0
        gray = np.clip(255.0 + (luma - 255.0) * blend, 0, 255).astype(np.uint8)
        out[..., 0] = gray
        out[..., 1] = gray
        out[..., 2] = gray
        out[..., 3] = 255
        out[codes == ANTIALIASED] = (*options.antialias_color, 255)

    mismatch = codes == MISMATCH
    out[mismatch] = (*options.diff_color, 255)
    if options.alternate_diff_color is not None:
        out[mismatch & lighter] = (*options.alternate_diff_color, 255)


def _diff_band(
    pixels_a: np.ndarray,
    pixels_b: np.ndarray,
    out: np.ndarray,
    mask: np.ndarray,
    y0: int,
    y1: int,
    options: DiffOptions,
) -> tuple[int, int]:
    """Diff rows ``[y0, y1)`` and write them into ``out`` and ``mask``.

    The band is classified with ``_HALO`` rows of context on each side so
    every pixel sees the same neighbourhood as in a whole-image pass.
    """
    top = max(0, y0 - _HALO)
    bottom = min(pixels_a.shape[0], y1 + _HALO)
    codes, lighter = _classify(pixels_a[top:bottom], pixels_b[top:bottom], options)
    rows = slice(y0 - top, y1 - top)
    codes = codes[rows]
    _composite(out[y0:y1], pixels_a[y0:y1], codes, lighter[rows], options)
    mismatch = codes == MISMATCH
    mask[y0:y1] = mismatch
    return int(np.count_nonzero(mismatch)), int(np.count_nonzero(codes == ANTIALIASED))


def _check_pair(base: DecodedImage, actual: DecodedImage) -> None:
    for label, image in (("base", base), ("actual", actual)):
        if image.width == 0 or image.height == 0:
            raise InvalidImageError(
                f"{label} image has zero area ({image.width}x{image.height})", image=label
            )
    if base.size != actual.size:
        raise DimensionMismatchError(
            f"Image dimensions don't match: base {base.width}x{base.height} "
            f"vs actual {actual.width}x{actual.height}"
        )


def diff_pixels(
    base: DecodedImage,
    actual: DecodedImage,
    options: DiffOptions | None = None,
    *,
    workers: int = 1,
    band_height: int = DEFAULT_BAND_HEIGHT,
) -> PixelDiff:
    """Compare two equal-sized images pixel by pixel.

    Rows are processed in bands; with ``workers > 1`` the bands run on a
    thread pool. Each band writes only its own rows of the output and
    returns partial counts that are summed afterwards.

    Returns:
        PixelDiff with the true-mismatch count (anti-aliasing excluded),
        the anti-aliasing count, and the diff buffer. Identical inputs
        short-circuit with no buffer.
    """
    options = options or DiffOptions()
    _check_pair(base, actual)
    pixels_a = base.pixels
    pixels_b = actual.pixels
    if np.array_equal(pixels_a, pixels_b):
        return PixelDiff(0, 0, None)

    height, width = pixels_a.shape[:2]
    out = np.zeros((height, width, 4), dtype=np.uint8)
    mask = np.zeros((height, width), dtype=bool)
    step = max(1, band_height)
    bands = [(y0, min(y0 + step, height)) for y0 in range(0, height, step)]

    if workers > 1 and len(bands) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            counts = list(
                pool.map(
                    lambda band: _diff_band(pixels_a, pixels_b, out, mask, *band, options),
                    bands,
                )
            )
    else:
        counts = [_diff_band(pixels_a, pixels_b, out, mask, y0, y1, options) for y0, y1 in bands]

    mismatches = sum(c[0] for c in counts)
    antialiased = sum(c[1] for c in counts)
    log.debug(
        "diffed %dx%d in %d band(s): %d mismatch, %d anti-aliased",
        width,
        height,
        len(bands),
        mismatches,
        antialiased,
    )
    return PixelDiff(mismatches, antialiased, DecodedImage(out, width, height), mask)


def mask_regions(
    base: DecodedImage,
    actual: DecodedImage,
    regions: Sequence[Region],
) -> DecodedImage:
    """Copy base pixels into ``actual`` inside each region so they compare equal."""
    if not regions:
        return actual
    pixels = actual.pixels.copy()
    for region in regions:
        x1 = min(region.x + region.width, actual.width)
        y1 = min(region.y + region.height, actual.height)
        if region.x >= x1 or region.y >= y1:
            continue
        pixels[region.y : y1, region.x : x1] = base.pixels[region.y : y1, region.x : x1]
    return DecodedImage(pixels, actual.width, actual.height, actual.format)


def diff_images(
    base: DecodedImage,
    actual: DecodedImage,
    options: DiffOptions | None = None,
    *,
    workers: int = 1,
) -> DiffResult:
    """Diff two images and package the counts, buffer and mismatch mask.

    The diff buffer and mask are ``None`` when no pixel is a true
    mismatch, even if some pixels were classified as anti-aliasing.
    ``bounding_box`` is left unset; pass ``mismatch_mask`` to
    ``bounds.diff_bounds`` to compute it.
    """
    options = options or DiffOptions()
    started = time.perf_counter()
    raw = diff_pixels(base, actual, options, workers=workers)
    changed = raw.mismatch_count > 0
    return DiffResult(
        mismatch_count=raw.mismatch_count,
        antialiased_count=raw.antialiased_count,
        total_pixels=base.pixel_count,
        diff_buffer=raw.buffer if changed else None,
        mismatch_mask=raw.mismatch_mask if changed else None,
        bounding_box=None,
        processing_ms=(time.perf_counter() - started) * 1000.0,
    )
