"""CLI interface for si2wf."""

import click
from pathlib import Path
from typing import List, Optional
import sys
import logging
from loguru import logger as core_logger

from si2wf.errors import InvalidParameterError
from si2wf.io import iter_raw_volumes, save_pwf
from si2wf.models import DEFAULT_ANGLES, DEFAULT_PHASES, GroupParameters, RasterVolume
from si2wf.reduce import pseudo_widefield


# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

STACK_SIZE_ERROR = "Error: stack size not consistent with phases/angles."


def check_divisible(volume, params):
    # type: (RasterVolume, GroupParameters) -> Optional[str]
    """Return a user-facing message if the stack cannot be split into P*A groups."""
    group_size = params.group_size
    if len(volume) != volume.channels * volume.slices * volume.frames:
        return STACK_SIZE_ERROR
    if len(volume) % group_size != 0 or volume.slices % group_size != 0:
        return STACK_SIZE_ERROR
    return None


def _configure_verbosity(verbose):
    # type: (bool) -> None
    level = "DEBUG" if verbose else "INFO"
    logging.getLogger().setLevel(level)
    core_logger.remove()
    core_logger.add(sys.stderr, level=level)


def _process_file(input_path, params, output_dir):
    # type: (Path, GroupParameters, Optional[Path]) -> List[Path]
    """Reduce every scene of one raw SI file and save the results."""
    if output_dir is None:
        output_dir = input_path.parent

    saved = []
    for volume in iter_raw_volumes(input_path):
        message = check_divisible(volume, params)
        if message:
            raise click.ClickException(
                f"{message} ({len(volume)} planes, phases={params.phases}, "
                f"angles={params.angles})"
            )

        result = pseudo_widefield(volume, params.phases, params.angles)
        output_path = save_pwf(result, output_dir / f"{result.title}.tif")
        position = result.default_position
        logger.info(
            f"{volume.name}: C={result.channels}, Z={result.z_planes}, "
            f"T={result.frames}, view c={position.channel} z={position.z} "
            f"t={position.frame}"
        )
        saved.append(output_path)
    return saved


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """SI2WF - Raw structured illumination data to pseudo-wide-field."""
    _configure_verbosity(verbose)


@cli.command()
@click.argument("input", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--phases",
    "-p",
    default=DEFAULT_PHASES,
    type=int,
    help=f"Number of phases (default: {DEFAULT_PHASES})",
)
@click.option(
    "--angles",
    "-a",
    default=DEFAULT_ANGLES,
    type=int,
    help=f"Number of angles (default: {DEFAULT_ANGLES})",
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(path_type=Path),
    help="Directory to save PWF images (default: next to the input)",
)
@click.option(
    "--interactive",
    "-i",
    is_flag=True,
    help="Prompt for angles and phases and confirm before processing",
)
def pwf(input, phases, angles, output_dir, interactive):
    """
    Convert raw SI data to pseudo-wide-field by averaging phases and angles.

    Requires SI raw data in API OMX (CPZAT) order. If INPUT is a directory,
    every file in it is converted (non-recursive).
    """
    input_path = Path(input)

    if interactive:
        click.echo("Requires SI raw data in API OMX (CPZAT) order.")
        angles = click.prompt("Angles", default=angles, type=int)
        phases = click.prompt("Phases", default=phases, type=int)
        if not click.confirm(
            f"Average {phases} phases x {angles} angles?", default=True
        ):
            click.echo("Cancelled")
            return

    params = GroupParameters(phases=phases, angles=angles)
    try:
        params.validate()
    except InvalidParameterError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    if input_path.is_file():
        try:
            logger.info(f"Processing file: {input_path}")
            saved = _process_file(input_path, params, output_dir)
            for output_path in saved:
                click.echo(f"✓ PWF saved: {output_path}")
        except click.ClickException as e:
            click.echo(f"✗ {input_path.name}: {e.message}", err=True)
            sys.exit(1)
        except Exception as e:
            click.echo(f"✗ Error processing {input_path}: {e}", err=True)
            sys.exit(1)

    elif input_path.is_dir():
        files = [f for f in sorted(input_path.iterdir()) if f.is_file()]

        if not files:
            click.echo(f"No files found in directory: {input_path}")
            sys.exit(1)

        logger.info(f"Processing {len(files)} files in directory: {input_path}")
        success_count = 0
        error_count = 0

        for file_path in files:
            # Skip results of earlier runs
            if file_path.stem.endswith("_PWF"):
                logger.debug(f"Skipping PWF file: {file_path.name}")
                continue

            try:
                logger.info(f"Processing file: {file_path.name}")
                saved = _process_file(file_path, params, output_dir)
                for output_path in saved:
                    click.echo(f"✓ {file_path.name} -> {output_path.name}")
                success_count += 1
            except click.ClickException as e:
                logger.error(f"Failed to process {file_path.name}: {e.message}")
                click.echo(f"✗ {file_path.name}: {e.message}", err=True)
                error_count += 1
            except Exception as e:
                logger.error(f"Failed to process {file_path.name}: {e}")
                click.echo(f"✗ {file_path.name}: {e}", err=True)
                error_count += 1

        click.echo(f"\nCompleted: {success_count} successful, {error_count} failed")

        if error_count > 0:
            sys.exit(1)
    else:
        click.echo(f"Error: {input_path} is neither a file nor a directory", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
