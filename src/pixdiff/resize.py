"""Bring two decoded images to identical dimensions."""

from __future__ import annotations

import logging

from PIL import Image, ImageOps

from pixdiff.codec import DecodedImage
from pixdiff.errors import DimensionMismatchError, ResizeError
from pixdiff.options import ResizeSpec, ResizeStrategy

log = logging.getLogger(__name__)

_RESAMPLE = Image.Resampling.LANCZOS


def _dims(image: DecodedImage) -> str:
    return f"{image.width}x{image.height}"


def resize_image(
    image: DecodedImage,
    width: int,
    height: int,
    strategy: ResizeStrategy = ResizeStrategy.FILL,
    *,
    label: str = "image",
) -> DecodedImage:
    """Resize to exactly ``width`` x ``height``.

    fill stretches non-uniformly; cover scales to cover and crops the
    centre; contain scales to fit and pads with transparency; fit is
    contain without upscaling.
    """
    if image.size == (width, height):
        return image
    src = image.to_pil()
    try:
        if strategy is ResizeStrategy.FILL:
            out = src.resize((width, height), _RESAMPLE)
        elif strategy is ResizeStrategy.COVER:
            out = ImageOps.fit(src, (width, height), method=_RESAMPLE)
        else:
            if strategy is ResizeStrategy.FIT and image.width <= width and image.height <= height:
                inner = src
            else:
                inner = ImageOps.contain(src, (width, height), method=_RESAMPLE)
            out = Image.new("RGBA", (width, height), (0, 0, 0, 0))
            out.paste(inner, ((width - inner.width) // 2, (height - inner.height) // 2))
    except (OSError, ValueError, MemoryError) as exc:
        raise ResizeError(
            f"Failed to resize {label} image from {_dims(image)} to {width}x{height}: {exc}",
            image=label,
        ) from exc
    return DecodedImage.from_pil(out, image.format)


def scaled_size(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Largest size within ``max_dimension`` keeping aspect ratio, never upscaling."""
    longest = max(width, height)
    if longest <= max_dimension:
        return width, height
    scale = max_dimension / longest
    return max(1, round(width * scale)), max(1, round(height * scale))


def cap_dimensions(
    image: DecodedImage, max_dimension: int, *, label: str = "image"
) -> DecodedImage:
    """Downscale so neither side exceeds ``max_dimension``."""
    size = scaled_size(image.width, image.height, max_dimension)
    if size == image.size:
        return image
    log.debug("capping %s image %s to %dx%d", label, _dims(image), *size)
    return resize_image(image, *size, label=label)


def reconcile(
    base: DecodedImage,
    actual: DecodedImage,
    spec: ResizeSpec | None = None,
) -> tuple[DecodedImage, DecodedImage]:
    """Return ``(base, actual)`` with identical dimensions.

    Raises:
        DimensionMismatchError: Sizes differ and resizing is disabled.
        ResizeError: The resize itself failed.
    """
    spec = spec or ResizeSpec()
    if not spec.enabled:
        if base.size != actual.size:
            raise DimensionMismatchError(
                f"Image dimensions don't match: base {_dims(base)} vs actual {_dims(actual)}. "
                "Enable resize option to auto-resize."
            )
    else:
        width = spec.target_width or max(base.width, actual.width)
        height = spec.target_height or max(base.height, actual.height)
        if base.size != (width, height) or actual.size != (width, height):
            log.warning(
                "dimension mismatch: base %s vs actual %s, resizing to %dx%d (%s)",
                _dims(base),
                _dims(actual),
                width,
                height,
                spec.strategy.value,
            )
            base = resize_image(base, width, height, spec.strategy, label="base")
            actual = resize_image(actual, width, height, spec.strategy, label="actual")

    if spec.max_dimension is not None:
        size = scaled_size(base.width, base.height, spec.max_dimension)
        if size != base.size:
            log.debug("capping compared size %s to %dx%d", _dims(base), *size)
            base = resize_image(base, *size, label="base")
            actual = resize_image(actual, *size, label="actual")
    return base, actual
