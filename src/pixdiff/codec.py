"""Decode encoded images to RGBA pixel grids and encode them back."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image, UnidentifiedImageError

from pixdiff.errors import DecodeError, EncodeError, InvalidInputError
from pixdiff.options import resolve_quality

log = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("PNG", "JPEG", "WEBP", "GIF", "BMP", "TIFF", "AVIF", "SVG")


@dataclass(frozen=True, eq=False)
class DecodedImage:
    """Interleaved RGBA pixels, one byte per channel, row-major.

    ``pixels`` has shape ``(height, width, 4)`` and dtype ``uint8``.
    """

    pixels: np.ndarray
    width: int
    height: int
    format: str | None = None

    def __post_init__(self) -> None:
        if self.pixels.dtype != np.uint8 or self.pixels.shape != (self.height, self.width, 4):
            raise InvalidInputError(
                f"pixel buffer of shape {self.pixels.shape} ({self.pixels.dtype}) "
                f"does not match {self.width}x{self.height} RGBA"
            )

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @classmethod
    def from_buffer(
        cls, buffer: bytes, width: int, height: int, format: str | None = None
    ) -> DecodedImage:
        """Wrap a raw interleaved RGBA buffer."""
        expected = width * height * 4
        if len(buffer) != expected:
            raise InvalidInputError(
                f"raw buffer holds {len(buffer)} bytes, "
                f"expected {expected} for {width}x{height} RGBA"
            )
        pixels = np.frombuffer(buffer, dtype=np.uint8).reshape(height, width, 4).copy()
        return cls(pixels, width, height, format)

    @classmethod
    def from_pil(cls, img: Image.Image, format: str | None = None) -> DecodedImage:
        rgba = img if img.mode == "RGBA" else img.convert("RGBA")
        pixels = np.array(rgba, dtype=np.uint8)
        return cls(pixels, rgba.width, rgba.height, format)

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()


def detect_format(data: bytes) -> str | None:
    """Sniff the container format from magic bytes."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "PNG"
    if data.startswith(b"\xff\xd8\xff"):
        return "JPEG"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "GIF"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "WEBP"
    if data.startswith(b"BM"):
        return "BMP"
    if data[:4] in (b"II*\x00", b"MM\x00*"):
        return "TIFF"
    if data[4:12] in (b"ftypavif", b"ftypavis"):
        return "AVIF"
    head = data[:1024].lstrip(b"\xef\xbb\xbf \t\r\n")
    if head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in head):
        return "SVG"
    return None


def decode(
    data: bytes,
    *,
    label: str = "image",
    svg_size: tuple[int, int] | None = None,
) -> DecodedImage:
    """Decode encoded image bytes to RGBA.

    Args:
        data: Encoded image bytes.
        label: Name used in error messages ("base", "actual", ...).
        svg_size: Force SVG rasterization to (width, height).

    Raises:
        DecodeError: Empty, truncated, corrupt or unrecognized input.
    """
    if not data:
        raise DecodeError(f"Failed to decode {label} image: no data received", image=label)
    fmt = detect_format(data)
    if fmt == "SVG":
        return _decode_svg(data, label, svg_size)

    expected = fmt or "unrecognized format"
    try:
        with Image.open(io.BytesIO(data)) as img:
            detected = img.format or fmt
            img.seek(0)
            img.load()
            decoded = DecodedImage.from_pil(img, detected)
    except Image.DecompressionBombError as exc:
        msg = f"Failed to decode {label} image ({expected}): {exc}"
        raise DecodeError(msg, image=label) from exc
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError, EOFError) as exc:
        raise DecodeError(
            f"Failed to decode {label} image ({expected}): {exc}. "
            f"Supported formats: {', '.join(SUPPORTED_FORMATS)}.",
            image=label,
        ) from exc

    if decoded.width == 0 or decoded.height == 0:
        raise DecodeError(f"Failed to decode {label} image ({expected}): empty raster", image=label)
    log.debug("decoded %s image: %s %dx%d", label, decoded.format, decoded.width, decoded.height)
    return decoded


def _decode_svg(data: bytes, label: str, svg_size: tuple[int, int] | None) -> DecodedImage:
    try:
        import cairosvg  # noqa: PLC0415
    except (ImportError, OSError) as exc:
        msg = f"Failed to decode {label} image (SVG): rasterizer unavailable: {exc}"
        raise DecodeError(msg, image=label) from exc

    kwargs: dict[str, int] = {}
    if svg_size is not None:
        kwargs["output_width"], kwargs["output_height"] = svg_size
    try:
        png = cairosvg.svg2png(bytestring=data, **kwargs)
    except Exception as exc:  # noqa: BLE001
        raise DecodeError(f"Failed to decode {label} image (SVG): {exc}", image=label) from exc

    with Image.open(io.BytesIO(png)) as img:
        img.load()
        decoded = DecodedImage.from_pil(img, "SVG")
    log.debug("rasterized %s SVG at %dx%d", label, decoded.width, decoded.height)
    return decoded


def encode(
    image: DecodedImage,
    fmt: str = "png",
    quality: int | None = None,
    *,
    palette: bool = False,
) -> bytes:
    """Encode RGBA pixels.

    PNG takes a compression level (0-9); JPEG and WebP take a quality
    percentage (1-100). JPEG output drops the alpha channel. With
    ``palette`` set, PNG output is quantized to 256 colors.
    """
    name, level = resolve_quality(fmt, quality)
    img = image.to_pil()
    buf = io.BytesIO()
    try:
        if name == "png":
            if palette:
                img = img.quantize(256, method=Image.Quantize.FASTOCTREE)
            img.save(buf, format="PNG", compress_level=level)
        elif name == "jpeg":
            img.convert("RGB").save(buf, format="JPEG", quality=level)
        else:
            img.save(buf, format="WEBP", quality=level)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(
            f"failed to encode {image.width}x{image.height} image as {name}: {exc}"
        ) from exc
    return buf.getvalue()


def to_grayscale(image: DecodedImage) -> DecodedImage:
    """Replace color with luminance, keeping alpha."""
    gray = image.to_pil().convert("LA").convert("RGBA")
    return DecodedImage.from_pil(gray, image.format)
