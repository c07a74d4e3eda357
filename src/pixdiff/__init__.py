"""pixdiff package."""

from importlib.metadata import PackageNotFoundError, version

from pixdiff.compare import (
    ComparisonFailure,
    ComparisonOutcome,
    ComparisonSuccess,
    Stage,
    Status,
    compare,
    compare_images,
)
from pixdiff.options import CompareOptions, DiffOptions, OutputSpec, ResizeSpec, SizeLimits

__all__ = [
    "__version__",
    "CompareOptions",
    "ComparisonFailure",
    "ComparisonOutcome",
    "ComparisonSuccess",
    "DiffOptions",
    "OutputSpec",
    "ResizeSpec",
    "SizeLimits",
    "Stage",
    "Status",
    "compare",
    "compare_images",
]

try:
    __version__ = version("pixdiff")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
