"""notewave CLI entry point."""

import logging
import sys

import click

from notewave import __version__
from notewave.errors import ScoreError
from notewave.interpreter import render_file
from notewave.score_models import RenderSettings

DEFAULT_INPUT = "input.txt"
DEFAULT_OUTPUT = "output.wav"
MAX_VOICES = 64


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="notewave")
@click.argument("input_path", default=DEFAULT_INPUT, required=False, metavar="[INPUT]")
@click.argument("output_path", default=DEFAULT_OUTPUT, required=False, metavar="[OUTPUT]")
@click.option(
    "--rate",
    type=click.IntRange(1000, 192_000),
    default=RenderSettings.sample_rate,
    show_default=True,
    envvar="NOTEWAVE_RATE",
    help="Output sample rate in Hz.",
)
@click.option(
    "--voices",
    type=click.IntRange(1, MAX_VOICES),
    default=RenderSettings.max_voices,
    show_default=True,
    envvar="NOTEWAVE_VOICES",
    help=(
        "Simultaneous voices that fit under full scale. "
        "Each note peaks at 32767 / VOICES; louder mixes saturate."
    ),
)
@click.option("--verbose", "-v", is_flag=True, help="Log parsing and rendering details.")
def main(input_path: str, output_path: str, rate: int, voices: int, verbose: bool) -> None:
    """
    Render a plain-text note transcript to a mono 16-bit WAV file.

    INPUT defaults to input.txt and OUTPUT to output.wav.

    \b
    Examples:
      notewave
      notewave song.txt
      notewave song.txt song.wav --rate 44100 --voices 4
    """
    _configure_logging(verbose)
    settings = RenderSettings(sample_rate=rate, max_voices=voices)

    click.echo(f"notewave v{__version__}")
    click.echo(f"  Input  : {input_path}")
    click.echo(f"  Output : {output_path}")
    click.echo(f"  Rate   : {rate} Hz  |  Voices: {voices}")
    click.echo()

    try:
        frames = render_file(input_path, output_path, settings)
    except ScoreError as exc:
        click.echo(f"  ERROR: Could not parse '{input_path}' — {exc}", err=True)
        sys.exit(1)
    except UnicodeDecodeError as exc:
        click.echo(f"  ERROR: '{input_path}' is not valid UTF-8 — {exc}", err=True)
        sys.exit(1)
    except OSError as exc:
        click.echo(f"  ERROR: Could not render — {exc}", err=True)
        sys.exit(1)

    click.echo(f"Done!  Wrote {frames} frames ({frames / rate:.2f} s) to '{output_path}'.")


if __name__ == "__main__":
    main()
