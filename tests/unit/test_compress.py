"""Tests for the size-budget compressor."""

from __future__ import annotations

import logging

import pytest
from conftest import image_bytes, noise, solid_bytes

from pixdiff.codec import decode, encode
from pixdiff.compress import STAGES, enforce_hard_limit, fit_to_budget
from pixdiff.errors import DecodeError, PayloadTooLargeError


class TestUnderBudget:
    def test_returned_unchanged(self) -> None:
        data = solid_bytes((1, 2, 3, 255), size=(16, 16))
        result = fit_to_budget(data, len(data))
        assert result.data is data
        assert result.stage == 0
        assert result.compressed is False
        assert result.format == "png"

    def test_idempotent(self) -> None:
        data = encode(noise((64, 64)), "png")
        once = fit_to_budget(data, len(data) // 2)
        twice = fit_to_budget(once.data, max(once.size, len(data) // 2))
        assert twice.data == once.data
        assert twice.stage == 0


class TestLadder:
    def test_shrinks_noisy_png(self) -> None:
        data = encode(noise((128, 128), seed=3), "png")
        result = fit_to_budget(data, len(data) // 2)
        assert 1 <= result.stage <= len(STAGES)
        assert result.size < len(data)
        assert result.original_size == len(data)
        assert decode(result.data).format == "PNG"

    def test_jpeg_stays_jpeg(self) -> None:
        data = image_bytes(noise((256, 256), seed=4).to_pil().convert("RGB"), "JPEG", quality=100)
        result = fit_to_budget(data, len(data) // 2)
        assert result.format == "jpeg"
        assert result.size < len(data)
        assert decode(result.data).size == (256, 256)

    def test_bmp_falls_back_to_webp(self) -> None:
        data = image_bytes(noise((64, 64), seed=5).to_pil().convert("RGB"), "BMP")
        result = fit_to_budget(data, len(data) // 2)
        assert result.format == "webp"
        assert decode(result.data).format == "WEBP"

    def test_downscales_at_last_stage(self) -> None:
        data = encode(noise((1500, 12), seed=6), "png")
        result = fit_to_budget(data, 100, label="diff")
        assert result.stage == 3
        assert decode(result.data).size[0] <= 1024

    def test_never_larger(self) -> None:
        data = solid_bytes((9, 9, 9, 255), size=(32, 32))
        result = fit_to_budget(data, 1)
        assert result.size <= len(data)

    def test_warns_when_still_over(self, caplog: pytest.LogCaptureFixture) -> None:
        data = encode(noise((64, 64), seed=7), "png")
        with caplog.at_level(logging.WARNING, logger="pixdiff.compress"):
            fit_to_budget(data, 10, label="base")
        assert any("after 3 compression stages" in r.getMessage() for r in caplog.records)

    def test_undecodable_over_budget(self) -> None:
        with pytest.raises(DecodeError):
            fit_to_budget(b"x" * 64, 10)


class TestHardLimit:
    def test_within(self) -> None:
        enforce_hard_limit(10, 10, "payload")

    def test_over(self) -> None:
        with pytest.raises(PayloadTooLargeError, match="11 bytes") as info:
            enforce_hard_limit(11, 10, "payload")
        assert info.value.kind == "PayloadTooLarge"
