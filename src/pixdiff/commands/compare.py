"""pixdiff compare command -- perceptual image comparison."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import click

from pixdiff.commands._helpers import (
    failure_exit,
    hard_limit_option,
    soft_limit_option,
    write_bytes,
)
from pixdiff.compare import ComparisonFailure, ComparisonSuccess, Stage, compare
from pixdiff.errors import CompareError
from pixdiff.formatters.json_fmt import write_json
from pixdiff.options import (
    CompareOptions,
    DiffOptions,
    OutputSpec,
    Region,
    ResizeSpec,
    ResizeStrategy,
    SizeLimits,
    parse_rgb,
    parse_size,
)
from pixdiff.sources import load_source


def _build_options(p: dict[str, Any]) -> CompareOptions:
    """Map parsed click parameters onto CompareOptions."""
    alt = p["alt_diff_color"]
    diff = DiffOptions(
        color_threshold=p["color_threshold"],
        include_antialiasing=p["include_aa"],
        unchanged_alpha=p["alpha"],
        antialias_color=parse_rgb(p["aa_color"]),
        diff_color=parse_rgb(p["diff_color"]),
        alternate_diff_color=parse_rgb(alt) if alt else None,
        diff_mask_only=p["diff_mask"],
    )
    resize = ResizeSpec(
        enabled=not p["no_resize"],
        target_width=p["width"],
        target_height=p["height"],
        strategy=ResizeStrategy(p["strategy"]),
        max_dimension=p["max_dimension"],
    )
    output = OutputSpec(
        format=p["fmt"],
        quality=p["quality"],
        include_bounds=p["bounds"],
        include_metadata=p["metadata"],
        include_originals=p["originals"],
    )
    return CompareOptions(
        threshold=p["threshold"],
        diff=diff,
        resize=resize,
        output=output,
        limits=SizeLimits(soft_limit=p["soft_limit"], hard_limit=p["hard_limit"]),
        grayscale=p["grayscale"],
        ignore_regions=tuple(Region.parse(r) for r in p["ignore"]),
        workers=p["workers"],
        svg_size=parse_size(p["svg_size"]) if p["svg_size"] else None,
    )


def _summary(result: ComparisonSuccess) -> str:
    line = f"{result.status.value}: {result.difference_percentage:.4f}% different"
    if result.bounding_box is not None:
        b = result.bounding_box
        line += f" in ({b.left},{b.top})-({b.right},{b.bottom})"
    return line


@click.command("compare")
@click.argument("base")
@click.argument("actual")
@click.option(
    "--threshold",
    default=0.0,
    type=float,
    help="Maximum difference (%) that still passes.",
)
@click.option(
    "--color-threshold",
    default=0.1,
    show_default=True,
    type=float,
    help="Per-pixel color sensitivity, 0-1 (smaller is stricter).",
)
@click.option("--include-aa", is_flag=True, help="Count anti-aliased pixels as differences.")
@click.option(
    "--alpha",
    default=0.1,
    show_default=True,
    type=float,
    help="Opacity of unchanged pixels in the diff image.",
)
@click.option("--diff-color", default="255,0,0", show_default=True, help="R,G,B or #rrggbb.")
@click.option("--alt-diff-color", default=None, help="Color for pixels lighter in ACTUAL.")
@click.option("--aa-color", default="255,255,0", show_default=True, help="Anti-aliasing color.")
@click.option("--diff-mask", is_flag=True, help="Transparent background, differences only.")
@click.option("--no-resize", is_flag=True, help="Fail instead of resizing mismatched sizes.")
@click.option(
    "--strategy",
    type=click.Choice([s.value for s in ResizeStrategy]),
    default=ResizeStrategy.FILL.value,
    show_default=True,
    help="Resize strategy.",
)
@click.option("--width", type=click.IntRange(min=1), default=None, help="Target width.")
@click.option("--height", type=click.IntRange(min=1), default=None, help="Target height.")
@click.option(
    "--max-dimension",
    type=click.IntRange(min=1),
    default=None,
    help="Downscale both images so no side exceeds this.",
)
@click.option("--grayscale", is_flag=True, help="Compare luminance only.")
@click.option(
    "--svg-size",
    default=None,
    metavar="WxH",
    help="Rasterize SVG inputs at this size instead of their intrinsic one.",
)
@click.option(
    "--ignore",
    multiple=True,
    metavar="X,Y,W,H",
    help="Region excluded from comparison (repeatable).",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["png", "jpeg", "jpg", "webp"], case_sensitive=False),
    default="png",
    show_default=True,
    help="Diff image format.",
)
@click.option("--quality", type=int, default=None, help="PNG level 0-9 or JPEG/WebP 1-100.")
@click.option("--bounds", is_flag=True, help="Report the bounding box of differences.")
@click.option("--metadata", is_flag=True, help="Report image and timing metadata.")
@click.option("--originals", is_flag=True, help="Embed the inputs as data URIs.")
@click.option(
    "--diff-output",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the diff image here.",
)
@click.option("--workers", type=click.IntRange(min=1), default=1, show_default=True)
@soft_limit_option
@hard_limit_option
@click.option("--json", "use_json", is_flag=True, help="JSON output.")
def compare_cmd(
    base: str,
    actual: str,
    diff_output: Path | None,
    use_json: bool,
    **params: Any,
) -> None:
    """Compare BASE and ACTUAL (file paths or data: URIs).

    Exit 0 if the difference is within --threshold, exit 1 if it is
    not, exit 2 on error (unreadable image, size mismatch, bad option).
    """
    try:
        options = _build_options(params)
        base_bytes = load_source(base, label="base")
        actual_bytes = load_source(actual, label="actual")
    except CompareError as exc:
        exc.stage = exc.stage or Stage.VALIDATING
        failure_exit(ComparisonFailure.from_error(exc))
        return

    outcome = compare(base_bytes, actual_bytes, options)
    if isinstance(outcome, ComparisonFailure):
        failure_exit(outcome)
        return

    if diff_output is not None and outcome.diff_image is not None:
        write_bytes(diff_output, outcome.diff_image)

    if use_json:
        write_json(outcome)
    else:
        click.echo(_summary(outcome))
        if diff_output is not None and outcome.diff_image is not None:
            click.echo(f"diff written to {diff_output}")

    sys.exit(0 if outcome.passed else 1)

