"""Comparison options with defaults applied at construction."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

from pixdiff.errors import InvalidInputError

RGB = tuple[int, int, int]

MIB = 1024 * 1024
DEFAULT_SOFT_LIMIT = 3 * MIB
DEFAULT_HARD_LIMIT = 6 * MIB

OUTPUT_FORMATS = ("png", "jpeg", "webp")

# format -> (default, minimum, maximum)
QUALITY_RANGES: dict[str, tuple[int, int, int]] = {
    "png": (6, 0, 9),
    "jpeg": (90, 1, 100),
    "webp": (80, 1, 100),
}


class ResizeStrategy(str, Enum):
    """How an image is brought to the target dimensions."""

    FIT = "fit"
    FILL = "fill"
    COVER = "cover"
    CONTAIN = "contain"


def _check_unit(name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        raise InvalidInputError(f"{name} must be a number between 0 and 1, got {value!r}")
    if not 0.0 <= value <= 1.0:
        raise InvalidInputError(f"{name} must be between 0 and 1, got {value}")


def _check_rgb(name: str, value: object) -> RGB:
    if not isinstance(value, (tuple, list)) or len(value) != 3:
        raise InvalidInputError(f"{name} must be an RGB triple, got {value!r}")
    for channel in value:
        if isinstance(channel, bool) or not isinstance(channel, int) or not 0 <= channel <= 255:
            raise InvalidInputError(f"{name} channels must be integers 0-255, got {value!r}")
    return (int(value[0]), int(value[1]), int(value[2]))


def parse_rgb(text: str) -> RGB:
    """Parse ``"R,G,B"`` or ``"#rrggbb"`` into an RGB triple."""
    raw = text.strip()
    try:
        if raw.startswith("#") and len(raw) == 7:
            parts = [int(raw[i : i + 2], 16) for i in (1, 3, 5)]
        else:
            parts = [int(p) for p in raw.split(",")]
    except ValueError:
        raise InvalidInputError(f"invalid color {text!r}; use R,G,B or #rrggbb") from None
    return _check_rgb("color", parts)


def parse_size(text: str) -> tuple[int, int]:
    """Parse ``"WIDTHxHEIGHT"`` into positive integers."""
    try:
        w, h = (int(p) for p in text.lower().split("x"))
    except ValueError:
        raise InvalidInputError(f"invalid size {text!r}; use WIDTHxHEIGHT") from None
    return _check_size("size", (w, h))


def _check_size(name: str, value: object) -> tuple[int, int]:
    if not isinstance(value, (tuple, list)) or len(value) != 2:
        raise InvalidInputError(f"{name} must be a (width, height) pair, got {value!r}")
    for side in value:
        if isinstance(side, bool) or not isinstance(side, int) or side <= 0:
            raise InvalidInputError(f"{name} must be positive integers, got {value!r}")
    return (int(value[0]), int(value[1]))


def resolve_quality(fmt: str, quality: int | None) -> tuple[str, int]:
    """Normalize an output format name and apply its default quality."""
    name = fmt.lower()
    if name == "jpg":
        name = "jpeg"
    if name not in QUALITY_RANGES:
        raise InvalidInputError(
            f"unsupported output format {fmt!r}; expected one of {', '.join(OUTPUT_FORMATS)}"
        )
    default, low, high = QUALITY_RANGES[name]
    if quality is None:
        return name, default
    if isinstance(quality, bool) or not low <= quality <= high:
        raise InvalidInputError(f"{name} quality must be {low}-{high}, got {quality!r}")
    return name, quality


@dataclass(frozen=True)
class Region:
    """Rectangle in pixel coordinates, excluded from comparison."""

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.x < 0 or self.y < 0:
            raise InvalidInputError(f"ignore region origin must be non-negative: {self}")
        if self.width <= 0 or self.height <= 0:
            raise InvalidInputError(f"ignore region must have positive size: {self}")

    @classmethod
    def parse(cls, text: str) -> Region:
        """Parse ``"X,Y,W,H"``."""
        try:
            x, y, w, h = (int(p) for p in text.split(","))
        except ValueError:
            raise InvalidInputError(f"invalid region {text!r}; use X,Y,WIDTH,HEIGHT") from None
        return cls(x, y, w, h)


@dataclass(frozen=True)
class DiffOptions:
    """Pixel diff engine settings."""

    color_threshold: float = 0.1
    include_antialiasing: bool = False
    unchanged_alpha: float = 0.1
    antialias_color: RGB = (255, 255, 0)
    diff_color: RGB = (255, 0, 0)
    alternate_diff_color: RGB | None = None
    diff_mask_only: bool = False

    def __post_init__(self) -> None:
        _check_unit("color_threshold", self.color_threshold)
        _check_unit("unchanged_alpha", self.unchanged_alpha)
        for name in ("antialias_color", "diff_color", "alternate_diff_color"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, _check_rgb(name, value))
        if self.diff_color is None or self.antialias_color is None:
            raise InvalidInputError("diff_color and antialias_color are required")


@dataclass(frozen=True)
class ResizeSpec:
    """Dimension reconciliation settings."""

    enabled: bool = True
    target_width: int | None = None
    target_height: int | None = None
    strategy: ResizeStrategy = ResizeStrategy.FILL
    max_dimension: int | None = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "strategy", ResizeStrategy(self.strategy))
        except ValueError:
            choices = ", ".join(s.value for s in ResizeStrategy)
            raise InvalidInputError(
                f"unknown resize strategy {self.strategy!r}; expected one of {choices}"
            ) from None
        for name in ("target_width", "target_height", "max_dimension"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or value <= 0):
                raise InvalidInputError(f"{name} must be a positive integer, got {value!r}")


@dataclass(frozen=True)
class OutputSpec:
    """Diff image encoding and which optional sections to report."""

    format: str = "png"
    quality: int | None = None
    include_bounds: bool = False
    include_metadata: bool = False
    include_originals: bool = False

    def __post_init__(self) -> None:
        fmt, quality = resolve_quality(self.format, self.quality)
        object.__setattr__(self, "format", fmt)
        object.__setattr__(self, "quality", quality)


@dataclass(frozen=True)
class SizeLimits:
    """Byte ceilings injected by the calling layer."""

    soft_limit: int = DEFAULT_SOFT_LIMIT
    hard_limit: int = DEFAULT_HARD_LIMIT
    compress_inputs: bool = False

    def __post_init__(self) -> None:
        if self.soft_limit <= 0 or self.hard_limit <= 0:
            raise InvalidInputError("size limits must be positive")
        if self.soft_limit > self.hard_limit:
            raise InvalidInputError(
                f"soft limit ({self.soft_limit} bytes) exceeds hard limit ({self.hard_limit} bytes)"
            )


@dataclass(frozen=True)
class CompareOptions:
    """Everything one comparison needs, fully enumerated."""

    threshold: float = 0.0
    diff: DiffOptions = field(default_factory=DiffOptions)
    resize: ResizeSpec = field(default_factory=ResizeSpec)
    output: OutputSpec = field(default_factory=OutputSpec)
    limits: SizeLimits = field(default_factory=SizeLimits)
    grayscale: bool = False
    ignore_regions: tuple[Region, ...] = ()
    workers: int = 1
    svg_size: tuple[int, int] | None = None

    def __post_init__(self) -> None:
        t = self.threshold
        if isinstance(t, bool) or not isinstance(t, (int, float)) or math.isnan(t):
            raise InvalidInputError(
                f"Invalid threshold value {t!r}. Must be a number between 0 and 100."
            )
        if not 0.0 <= t <= 100.0:
            raise InvalidInputError(
                f"Invalid threshold value {t}. Must be a number between 0 and 100."
            )
        object.__setattr__(self, "threshold", float(t))
        object.__setattr__(self, "ignore_regions", tuple(self.ignore_regions))
        if self.workers < 1:
            raise InvalidInputError(f"workers must be at least 1, got {self.workers}")
        if self.svg_size is not None:
            object.__setattr__(self, "svg_size", _check_size("svg_size", self.svg_size))
