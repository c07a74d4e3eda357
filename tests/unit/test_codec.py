"""Tests for the image codec adapter."""

from __future__ import annotations

import io

import numpy as np
import pytest
from conftest import cairosvg_or_skip, decoded, image_bytes, solid_bytes
from PIL import Image

from pixdiff.codec import (
    SUPPORTED_FORMATS,
    DecodedImage,
    decode,
    detect_format,
    encode,
    to_grayscale,
)
from pixdiff.errors import DecodeError, InvalidInputError

_SVG = (
    b'<svg xmlns="http://www.w3.org/2000/svg" width="10" height="6">'
    b'<rect width="10" height="6" fill="#00ff00"/></svg>'
)


class TestDetectFormat:
    @pytest.mark.parametrize("fmt", ["PNG", "JPEG", "GIF", "WEBP", "BMP", "TIFF"])
    def test_raster(self, fmt: str) -> None:
        data = solid_bytes((10, 20, 30), mode="RGB", fmt=fmt)
        assert detect_format(data) == fmt

    def test_svg(self) -> None:
        assert detect_format(_SVG) == "SVG"

    def test_svg_with_xml_prolog(self) -> None:
        assert detect_format(b'<?xml version="1.0"?>\n' + _SVG) == "SVG"

    def test_unknown(self) -> None:
        assert detect_format(b"hello world") is None

    def test_avif_brand(self) -> None:
        data = b"\x00\x00\x00\x1cftypavif" + b"\x00" * 16
        assert detect_format(data) == "AVIF"
        assert "AVIF" in SUPPORTED_FORMATS


class TestDecode:
    def test_png_rgba(self) -> None:
        img = decode(solid_bytes((1, 2, 3, 4), size=(5, 3)))
        assert img.size == (5, 3)
        assert img.format == "PNG"
        assert img.pixels.shape == (3, 5, 4)
        assert tuple(img.pixels[0, 0]) == (1, 2, 3, 4)

    def test_rgb_gets_opaque_alpha(self) -> None:
        img = decode(solid_bytes((9, 9, 9), mode="RGB"))
        assert (img.pixels[..., 3] == 255).all()

    def test_grayscale_source(self) -> None:
        img = decode(image_bytes(Image.new("L", (4, 4), 77)))
        assert tuple(img.pixels[1, 1]) == (77, 77, 77, 255)

    def test_jpeg(self) -> None:
        img = decode(solid_bytes((200, 10, 10), size=(8, 8), mode="RGB", fmt="JPEG"))
        assert img.format == "JPEG"
        assert img.size == (8, 8)

    def test_animated_gif_uses_first_frame(self) -> None:
        frames = [Image.new("RGB", (3, 3), c) for c in ((255, 0, 0), (0, 0, 255))]
        data = image_bytes(frames[0], "GIF", save_all=True, append_images=frames[1:])
        img = decode(data)
        r, g, b, _ = img.pixels[0, 0]
        assert r > 200 and b < 50

    def test_empty(self) -> None:
        with pytest.raises(DecodeError, match="no data received"):
            decode(b"", label="base")

    def test_garbage_names_image_and_formats(self) -> None:
        with pytest.raises(DecodeError, match="actual") as info:
            decode(b"not an image at all", label="actual")
        assert "Supported formats" in info.value.message
        assert info.value.image == "actual"
        assert info.value.kind == "DecodeError"

    def test_truncated_png(self) -> None:
        data = image_bytes(Image.new("RGB", (64, 64), (1, 2, 3)))
        with pytest.raises(DecodeError, match="PNG"):
            decode(data[: len(data) // 2], label="base")


class TestSvg:
    def test_rasterizes(self) -> None:
        cairosvg_or_skip()
        img = decode(_SVG)
        assert img.size == (10, 6)
        assert img.format == "SVG"
        assert tuple(img.pixels[3, 3]) == (0, 255, 0, 255)

    def test_forced_size(self) -> None:
        cairosvg_or_skip()
        img = decode(_SVG, svg_size=(20, 12))
        assert img.size == (20, 12)

    def test_broken_svg(self) -> None:
        cairosvg_or_skip()
        with pytest.raises(DecodeError, match="SVG"):
            decode(b"<svg><rect", label="base")


class TestDecodedImage:
    def test_shape_checked(self) -> None:
        with pytest.raises(InvalidInputError, match="does not match"):
            DecodedImage(np.zeros((2, 2, 4), dtype=np.uint8), 3, 2)

    def test_dtype_checked(self) -> None:
        with pytest.raises(InvalidInputError):
            DecodedImage(np.zeros((2, 2, 4), dtype=np.int32), 2, 2)

    def test_from_buffer(self) -> None:
        img = DecodedImage.from_buffer(bytes(range(16)), 2, 2)
        assert tuple(img.pixels[1, 1]) == (12, 13, 14, 15)
        assert img.tobytes() == bytes(range(16))

    def test_from_buffer_length(self) -> None:
        with pytest.raises(InvalidInputError, match="expected 16"):
            DecodedImage.from_buffer(b"\x00" * 15, 2, 2)


class TestEncode:
    def test_png_lossless(self) -> None:
        src = decoded((10, 20, 30, 128), size=(3, 2))
        back = decode(encode(src, "png"))
        assert np.array_equal(back.pixels, src.pixels)

    def test_jpeg_drops_alpha(self) -> None:
        data = encode(decoded((255, 255, 255, 0)), "jpeg", 80)
        assert detect_format(data) == "JPEG"
        with Image.open(io.BytesIO(data)) as img:
            assert img.mode == "RGB"

    def test_webp(self) -> None:
        assert detect_format(encode(decoded((1, 2, 3, 255)), "webp")) == "WEBP"

    def test_deterministic(self) -> None:
        src = decoded((40, 50, 60, 255), size=(16, 16))
        assert encode(src, "png") == encode(src, "png")

    def test_palette_png(self) -> None:
        data = encode(decoded((40, 50, 60, 255), size=(16, 16)), "png", 9, palette=True)
        with Image.open(io.BytesIO(data)) as img:
            assert img.mode == "P"

    def test_bad_quality(self) -> None:
        with pytest.raises(InvalidInputError):
            encode(decoded((0, 0, 0, 255)), "webp", 0)


class TestGrayscale:
    def test_equal_channels_keep_alpha(self) -> None:
        gray = to_grayscale(decoded((255, 0, 0, 100)))
        r, g, b, a = gray.pixels[0, 0]
        assert r == g == b
        assert a == 100
