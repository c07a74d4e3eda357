"""Bounded compression ladder that keeps encoded images under a byte budget."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pixdiff.codec import DecodedImage, decode, detect_format, encode
from pixdiff.errors import PayloadTooLargeError
from pixdiff.resize import cap_dimensions

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompressionStage:
    max_dimension: int | None
    quality: int


# Fixed ladder; there is never a fourth attempt.
STAGES: tuple[CompressionStage, ...] = (
    CompressionStage(max_dimension=None, quality=70),
    CompressionStage(max_dimension=2048, quality=55),
    CompressionStage(max_dimension=1024, quality=40),
)

# Formats re-encoded as themselves; anything else becomes lossy WebP.
_NATIVE_FORMATS = {"PNG": "png", "JPEG": "jpeg", "WEBP": "webp"}
_FALLBACK_FORMAT = "webp"


@dataclass(frozen=True)
class CompressionResult:
    """Output of ``fit_to_budget``. ``stage`` 0 means the input was kept."""

    data: bytes
    format: str | None
    stage: int
    original_size: int

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def compressed(self) -> bool:
        return self.stage > 0


def _encode_stage(image: DecodedImage, fmt: str, stage: CompressionStage) -> bytes:
    if fmt == "png":
        return encode(image, "png", 9, palette=True)
    return encode(image, fmt, stage.quality)


def fit_to_budget(data: bytes, soft_limit: int, *, label: str = "image") -> CompressionResult:
    """Shrink ``data`` until it fits in ``soft_limit`` bytes or the ladder ends.

    Stage 1 re-encodes at reduced quality in the detected format (PNG is
    palette-quantized). Stages 2 and 3 also downscale to 2048 and 1024
    pixels on the longest side. Each stage starts from the decoded
    original; a stage that does not beat the smallest result so far is
    discarded, so the output is never larger than the input.

    Raises:
        DecodeError: ``data`` is over budget and cannot be decoded.
        EncodeError: A stage failed to encode.
    """
    detected = detect_format(data)
    original_size = len(data)
    if original_size <= soft_limit:
        return CompressionResult(data, detected.lower() if detected else None, 0, original_size)

    image = decode(data, label=label)
    fmt = _NATIVE_FORMATS.get(image.format or "", _FALLBACK_FORMAT)
    best, best_stage = data, 0
    for number, stage in enumerate(STAGES, start=1):
        candidate = image
        if stage.max_dimension is not None:
            candidate = cap_dimensions(image, stage.max_dimension, label=label)
        encoded = _encode_stage(candidate, fmt, stage)
        log.info(
            "%s compression stage %d: %d -> %d bytes (%s %dx%d)",
            label,
            number,
            original_size,
            len(encoded),
            fmt,
            candidate.width,
            candidate.height,
        )
        if len(encoded) < len(best):
            best, best_stage = encoded, number
        if len(best) <= soft_limit:
            break

    if len(best) > soft_limit:
        log.warning(
            "%s still %d bytes after %d compression stages (soft limit %d)",
            label,
            len(best),
            len(STAGES),
            soft_limit,
        )
    result_format = fmt if best_stage else (detected.lower() if detected else None)
    return CompressionResult(best, result_format, best_stage, original_size)


def enforce_hard_limit(size: int, hard_limit: int, what: str) -> None:
    """Raise PayloadTooLargeError when ``size`` exceeds ``hard_limit``."""
    if size > hard_limit:
        raise PayloadTooLargeError(
            f"{what} is {size} bytes after compression, exceeding the {hard_limit} byte limit"
        )
