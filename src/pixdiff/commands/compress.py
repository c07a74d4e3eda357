"""pixdiff compress command -- shrink an image to fit a byte budget."""

from __future__ import annotations

from pathlib import Path

import click

from pixdiff.commands._helpers import (
    err_exit,
    hard_limit_option,
    soft_limit_option,
    write_bytes,
)
from pixdiff.compress import enforce_hard_limit, fit_to_budget
from pixdiff.errors import CompareError
from pixdiff.formatters.json_fmt import write_json


@click.command("compress")
@click.argument(
    "input_path",
    metavar="INPUT",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o",
    "--output",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Where to write the compressed image.",
)
@soft_limit_option
@hard_limit_option
@click.option("--json", "use_json", is_flag=True, help="JSON output.")
def compress_cmd(
    input_path: Path,
    output: Path,
    soft_limit: int,
    hard_limit: int,
    use_json: bool,
) -> None:
    """Run the compression ladder on INPUT and write the result.

    Exit 2 if the image cannot be decoded or is still over --hard-limit.
    """
    try:
        result = fit_to_budget(input_path.read_bytes(), soft_limit, label=input_path.name)
        enforce_hard_limit(result.size, hard_limit, input_path.name)
    except CompareError as exc:
        err_exit(exc.message, kind=exc.kind)
        return
    except OSError as exc:
        err_exit(f"cannot read {input_path}: {exc}")
        return

    write_bytes(output, result.data)
    if use_json:
        write_json(
            {
                "input": input_path,
                "output": output,
                "original_size": result.original_size,
                "size": result.size,
                "format": result.format,
                "stage": result.stage,
            }
        )
    elif result.compressed:
        click.echo(
            f"compressed: {result.original_size} -> {result.size} bytes "
            f"({result.format}, stage {result.stage})"
        )
    else:
        click.echo(f"unchanged: {result.size} bytes within {soft_limit}")
