"""Comparison orchestrator: bytes in, verdict and diff image out."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from pixdiff.bounds import BoundingBox, diff_bounds
from pixdiff.codec import DecodedImage, decode, encode, to_grayscale
from pixdiff.compress import enforce_hard_limit, fit_to_budget
from pixdiff.engine import DiffResult, diff_images, mask_regions
from pixdiff.errors import CompareError, InvalidInputError
from pixdiff.options import CompareOptions
from pixdiff.resize import reconcile
from pixdiff.sources import to_data_uri

log = logging.getLogger(__name__)

ALGORITHM = "pixelmatch"


class Stage(str, Enum):
    VALIDATING = "validating"
    DECODING = "decoding"
    RECONCILING = "reconciling"
    DIFFING = "diffing"
    BOUNDING = "bounding"
    ENCODING = "encoding"
    DONE = "done"
    FAILED = "failed"


class Status(str, Enum):
    PASSED = "Passed"
    FAILED = "Failed"


@dataclass(frozen=True)
class ComparisonVerdict:
    """Pass/fail decision. Equality with the threshold passes."""

    difference_percentage: float
    status: Status

    @classmethod
    def judge(cls, difference_percentage: float, threshold: float) -> ComparisonVerdict:
        failed = difference_percentage > threshold
        return cls(difference_percentage, Status.FAILED if failed else Status.PASSED)


@dataclass(frozen=True)
class ImageInfo:
    width: int
    height: int
    format: str | None
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "format": self.format.lower() if self.format else None,
            "size": self.size,
        }


@dataclass(frozen=True)
class ComparisonSuccess:
    """Completed comparison.

    ``diff_image`` holds the encoded diff in ``diff_format`` and is None
    exactly when no pixel was a true mismatch. ``metadata`` and
    ``originals`` are only populated when requested.
    """

    difference_percentage: float
    status: Status
    diff_image: bytes | None = None
    diff_format: str | None = None
    bounding_box: BoundingBox | None = None
    metadata: dict[str, Any] | None = None
    originals: dict[str, str] | None = None

    @property
    def passed(self) -> bool:
        return self.status is Status.PASSED

    def diff_image_data_uri(self) -> str | None:
        if self.diff_image is None:
            return None
        return to_data_uri(self.diff_image, self.diff_format or "png")

    def to_dict(self) -> dict[str, Any]:
        """Wire shape with camelCase keys; optional sections only when present."""
        out: dict[str, Any] = {
            "differencePercentage": self.difference_percentage,
            "status": self.status.value,
            "diffImageUrl": self.diff_image_data_uri(),
            "error": None,
        }
        if self.bounding_box is not None:
            out["diffBounds"] = self.bounding_box.to_dict()
        if self.metadata is not None:
            out["metadata"] = self.metadata
        if self.originals is not None:
            out["processedImages"] = self.originals
        return out


@dataclass(frozen=True)
class ComparisonFailure:
    kind: str
    message: str
    stage: Stage

    @classmethod
    def from_error(cls, exc: CompareError) -> ComparisonFailure:
        return cls(exc.kind, exc.message, Stage(exc.stage or Stage.FAILED))

    def to_dict(self) -> dict[str, Any]:
        return {"error": {"kind": self.kind, "message": self.message, "stage": self.stage.value}}


ComparisonOutcome = ComparisonSuccess | ComparisonFailure


class _Tracker:
    """Current pipeline stage, stamped onto errors raised while it is active."""

    def __init__(self) -> None:
        self.stage = Stage.VALIDATING
        log.debug("stage: %s", self.stage.value)

    def enter(self, stage: Stage) -> None:
        log.debug("stage: %s -> %s", self.stage.value, stage.value)
        self.stage = stage


def _mime_subtype(fmt: str | None) -> str:
    if fmt is None:
        return "png"
    name = fmt.lower()
    return "svg+xml" if name == "svg" else name


def _check_input(data: bytes | None, label: str) -> bytes:
    if data is None:
        raise InvalidInputError(f"{label} image is required", image=label)
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise InvalidInputError(
            f"{label} image must be bytes, got {type(data).__name__}", image=label
        )
    if len(data) == 0:
        raise InvalidInputError(f"{label} image is empty", image=label)
    return bytes(data)


def _metadata(
    base_info: ImageInfo,
    actual_info: ImageInfo,
    diff: DiffResult,
    started: float,
) -> dict[str, Any]:
    return {
        "baseImage": base_info.to_dict(),
        "actualImage": actual_info.to_dict(),
        "comparison": {
            "totalPixels": diff.total_pixels,
            "diffPixels": diff.mismatch_count,
            "antialiasedPixels": diff.antialiased_count,
            "processingTime": round((time.perf_counter() - started) * 1000.0, 3),
            "algorithm": ALGORITHM,
        },
    }


def compare_images(
    base: bytes,
    actual: bytes,
    options: CompareOptions | None = None,
) -> ComparisonSuccess:
    """Compare two encoded images.

    Args:
        base: Encoded reference image.
        actual: Encoded image under test.
        options: Comparison settings; defaults when omitted.

    Returns:
        ComparisonSuccess with the verdict and, when any pixel differs,
        the encoded diff image.

    Raises:
        CompareError: Any subclass, with ``stage`` naming where it failed.
    """
    tracker = _Tracker()
    try:
        return _run(tracker, base, actual, options)
    except CompareError as exc:
        if exc.stage is None:
            exc.stage = tracker.stage
        log.debug("comparison failed at %s: %s", tracker.stage.value, exc)
        raise


def _run(
    tracker: _Tracker,
    base: bytes,
    actual: bytes,
    options: CompareOptions | None,
) -> ComparisonSuccess:
    started = time.perf_counter()
    options = options or CompareOptions()
    base = _check_input(base, "base")
    actual = _check_input(actual, "actual")
    limits = options.limits

    tracker.enter(Stage.DECODING)
    if limits.compress_inputs:
        base = fit_to_budget(base, limits.soft_limit, label="base").data
        actual = fit_to_budget(actual, limits.soft_limit, label="actual").data
    base_img = decode(base, label="base", svg_size=options.svg_size)
    actual_img = decode(actual, label="actual", svg_size=options.svg_size)
    base_info = ImageInfo(base_img.width, base_img.height, base_img.format, len(base))
    actual_info = ImageInfo(actual_img.width, actual_img.height, actual_img.format, len(actual))
    if options.grayscale:
        base_img = to_grayscale(base_img)
        actual_img = to_grayscale(actual_img)

    tracker.enter(Stage.RECONCILING)
    base_img, actual_img = reconcile(base_img, actual_img, options.resize)

    tracker.enter(Stage.DIFFING)
    actual_img = mask_regions(base_img, actual_img, options.ignore_regions)
    diff = diff_images(base_img, actual_img, options.diff, workers=options.workers)
    if options.output.include_bounds and diff.mismatch_mask is not None:
        tracker.enter(Stage.BOUNDING)
        box = diff_bounds(diff.mismatch_mask)
        diff = replace(diff, bounding_box=box)

    diff_image, diff_format = None, None
    if diff.diff_buffer is not None:
        tracker.enter(Stage.ENCODING)
        diff_image, diff_format = _encode_diff(diff.diff_buffer, options)

    originals = None
    if options.output.include_originals:
        originals = {
            "baseImageUrl": to_data_uri(base, _mime_subtype(base_info.format)),
            "actualImageUrl": to_data_uri(actual, _mime_subtype(actual_info.format)),
        }
    payload = len(to_data_uri(diff_image, diff_format)) if diff_image is not None else 0
    if originals is not None:
        payload += sum(len(uri) for uri in originals.values())
    enforce_hard_limit(payload, limits.hard_limit, "comparison payload")

    verdict = ComparisonVerdict.judge(diff.difference_percentage, options.threshold)
    metadata = None
    if options.output.include_metadata:
        metadata = _metadata(base_info, actual_info, diff, started)
    tracker.enter(Stage.DONE)
    log.debug(
        "%s: %d/%d pixels differ (%.4f%%, threshold %.4f%%)",
        verdict.status.value,
        diff.mismatch_count,
        diff.total_pixels,
        verdict.difference_percentage,
        options.threshold,
    )
    return ComparisonSuccess(
        difference_percentage=verdict.difference_percentage,
        status=verdict.status,
        diff_image=diff_image,
        diff_format=diff_format,
        bounding_box=diff.bounding_box,
        metadata=metadata,
        originals=originals,
    )


def _encode_diff(buffer: DecodedImage, options: CompareOptions) -> tuple[bytes, str]:
    out = options.output
    data = encode(buffer, out.format, out.quality)
    if len(data) <= options.limits.soft_limit:
        return data, out.format
    result = fit_to_budget(data, options.limits.soft_limit, label="diff")
    log.warning(
        "diff image compressed from %d to %d bytes (stage %d)",
        result.original_size,
        result.size,
        result.stage,
    )
    return result.data, result.format or out.format


def compare(
    base: bytes,
    actual: bytes,
    options: CompareOptions | None = None,
) -> ComparisonOutcome:
    """Like ``compare_images`` but returns a ComparisonFailure instead of raising."""
    try:
        return compare_images(base, actual, options)
    except CompareError as exc:
        return ComparisonFailure.from_error(exc)
