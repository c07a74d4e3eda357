"""pixdiff command-line entry point."""

from __future__ import annotations

import logging

import click

from pixdiff import __version__
from pixdiff.commands.compare import compare_cmd
from pixdiff.commands.compress import compress_cmd


def _set_verbose(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Route library debug logging to stderr when --verbose is given."""
    if not value:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="pixdiff")
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=_set_verbose,
    help="Log pipeline stages to stderr.",
)
def main() -> None:
    """pixdiff: perceptual pixel-level image comparison."""


main.add_command(compare_cmd, name="compare")
main.add_command(compress_cmd, name="compress")


if __name__ == "__main__":
    main()
