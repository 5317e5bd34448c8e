"""
Command-line front end.

    sound-declicker [-v] [--config FILE] <audio-file> <command> [options]

Reports go to stdout; log records and errors go to stderr.  Any failure
exits with status 2.
"""

import argparse
import logging
import math
import sys
from typing import Callable, Dict, List, Optional

import numpy as np

from . import __version__
from .audio_clip import AudioClip, describe_file, read_sample_bytes
from .config import DB_FLOOR, Settings, load_settings_file
from .declicker import Declicker
from .errors import SoundEditError, UnknownCommand
from .plotting import plot_spectrum
from .spectrum import BinnedSpectrum, PowerSpectrum

logger = logging.getLogger(__name__)

# CLI option name -> (Settings.update keyword, name shown in log messages)
_ANALYSIS_OPTIONS = {
    "loud_db": ("loudness_threshold_db", "loud_dB"),
    "close_s": ("closeness_threshold_s", "close_s"),
    "duration_s": ("min_duration_s", "duration_s"),
    "max_click_s": ("max_click_duration_s", "maxClick_s"),
    "window_size": ("window_size", "windowSize"),
}


# ----------------------------------------------------------------------
# Argument parsing
# ----------------------------------------------------------------------


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {text!r}")
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative, got {value}")
    return value


def _add_window_option(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--window-size", dest="window_size", type=int, default=None,
        help="FFT window size, a power of two (default: 1024).",
    )


def _add_analysis_options(parser: argparse.ArgumentParser, use_spectrum: bool):
    parser.add_argument(
        "--loud-db", dest="loud_db", type=float, default=None,
        help="Frames louder than this anchor a sound (default: -40).",
    )
    parser.add_argument(
        "--close-s", dest="close_s", type=float, default=None,
        help="Loud frames this close (seconds) belong to one sound (default: 0.2).",
    )
    parser.add_argument(
        "--duration-s", dest="duration_s", type=float, default=None,
        help="Sounds shorter than this are discarded (default: 0.09).",
    )
    parser.add_argument(
        "--max-click-s", dest="max_click_s", type=float, default=None,
        help="Sounds at least this long are always kept (default: 0.2).",
    )
    parser.add_argument(
        "--spectrum", dest="spectrum", action=argparse.BooleanOptionalAction,
        default=use_spectrum,
        help=(
            "Use the spectral click heuristic for borderline-short sounds "
            f"(default: {'on' if use_spectrum else 'off'})."
        ),
    )
    _add_window_option(parser)


def _add_max_option(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--max", dest="max", type=_non_negative_int, default=10,
        help="Maximum number of items to print (default: 10).",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sound-declicker",
        description="Find discrete sounds in an audio file and silence the clicks between them.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Log progress to stderr (-v for info, -vv for debug).",
    )
    parser.add_argument(
        "-c", "--config", dest="config_file", default=None,
        help="JSON settings file with analysis parameters.",
    )
    parser.add_argument("file", help="Input audio file.")

    commands = parser.add_subparsers(dest="command", metavar="command", required=True)

    commands.add_parser("info", help="Print details about the file format.")
    _add_max_option(commands.add_parser("samples", help="Print decoded samples."))
    _add_max_option(commands.add_parser("bytes", help="Print raw sample bytes."))

    copy = commands.add_parser("copy", help="Decode then re-encode the file.")
    copy.add_argument("out", help="Output file.")

    sounds = commands.add_parser("sounds", help="Report the discrete sounds that would be kept.")
    _add_analysis_options(sounds, use_spectrum=False)
    sounds.add_argument(
        "--all", dest="show_all", action="store_true",
        help="Also report discarded sounds.",
    )

    declick = commands.add_parser("declick", help="Silence everything that is not a kept sound.")
    declick.add_argument("out", help="Output file.")
    _add_analysis_options(declick, use_spectrum=True)

    freq = commands.add_parser("freq", help="Print the power spectrum.")
    _add_window_option(freq)
    freq.add_argument("--plot", dest="plot", default=None, help="Also save the spectrum as an image.")

    _add_window_option(
        commands.add_parser("freqBins", help="Print the spectrum binned at 10x logarithmic intervals.")
    )

    return parser


def resolve_settings(args: argparse.Namespace) -> Settings:
    """Defaults, overridden by the settings file, overridden by command-line options."""
    if args.config_file:
        settings, from_file = load_settings_file(args.config_file)
    else:
        settings, from_file = Settings(), frozenset()

    overrides = {}
    for option, (keyword, display) in _ANALYSIS_OPTIONS.items():
        value = getattr(args, option, None)
        if value is not None:
            overrides[keyword] = value
        elif hasattr(args, option) and keyword not in from_file:
            logger.info("using default %s", display)
    return settings.update(**overrides)


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------


def print_info(args: argparse.Namespace, settings: Settings):
    for key, value in describe_file(args.file).items():
        print(f"{key}: {value}")


def print_samples(args: argparse.Namespace, settings: Settings):
    clip = AudioClip.load(args.file)
    print(f"read {clip.num_samples} samples:")
    for i in range(min(args.max, clip.num_samples)):
        value = clip.get_interleaved_sample(i)
        decibels = clip.get_decibels(*divmod(i, clip.num_channels))
        print(f"  sample {i}: {value}  \t{decibels} dB")


def print_bytes(args: argparse.Namespace, settings: Settings):
    data = read_sample_bytes(args.file, args.max)
    print(f"read {len(data)} bytes:")
    for i, byte in enumerate(np.frombuffer(data, dtype=np.int8)):
        print(f"  byte {i}: {int(byte)}")


def copy_file(args: argparse.Namespace, settings: Settings):
    clip = AudioClip.load(args.file)
    clip.save(args.out)
    print(f"wrote {args.out}")


def print_sounds(args: argparse.Namespace, settings: Settings):
    declicker = Declicker.from_settings(settings, use_spectrum=args.spectrum)
    clip = declicker.load_audio(args.file)
    decisions = declicker.classify(declicker.find_sounds())
    for sound, retained in decisions:
        if not (retained or args.show_all):
            continue
        lines = sound.describe(clip.frame_rate)
        if args.show_all:
            lines[0] = f"{'keep' if retained else 'drop'} {lines[0]}"
        for line in lines:
            print(line)


def declick_file(args: argparse.Namespace, settings: Settings):
    declicker = Declicker.from_settings(settings, use_spectrum=args.spectrum)
    declicker.load_audio(args.file)
    retained = declicker.process()
    declicker.save(args.out)
    print(f"retained {len(retained)} sounds")
    print(f"wrote {args.out}")


def _stars(decibels: float) -> str:
    """One star per 10 dB above the floor: <= -100 dB is none, (-100,-90] is one."""
    count = int(math.floor((decibels - DB_FLOOR + 10.0) / 10.0))
    return "  " + "*" * count if count > 0 else ""


def print_frequencies(args: argparse.Namespace, settings: Settings):
    clip = AudioClip.load(args.file)
    spectrum = PowerSpectrum.of_clip(clip, settings.window_size)

    print("  freq       dB  dB stars")
    print("------  -------  ----------")
    for i in range(spectrum.num_elements):
        decibels = spectrum.get_decibels(i)
        print(f"{spectrum.frequency(i):6.0f}  {decibels:7.2f}{_stars(decibels)}")

    if args.plot:
        plot_spectrum(spectrum, args.plot, title=f"{args.file} (window {settings.window_size})")
        print(f"wrote {args.plot}")


def print_frequency_bins(args: argparse.Namespace, settings: Settings):
    clip = AudioClip.load(args.file)
    binned = BinnedSpectrum.from_power_spectrum(PowerSpectrum.of_clip(clip, settings.window_size))
    print("binned frequency distribution:")
    for row in binned.format_rows():
        print(f"  {row}")
    print(f"excessLow: {binned.excess_low_db:.3f} dB")
    print(f"likelyClick: {str(binned.likely_click).lower()}")


COMMANDS: Dict[str, Callable[[argparse.Namespace, Settings], None]] = {
    "info": print_info,
    "samples": print_samples,
    "bytes": print_bytes,
    "copy": copy_file,
    "sounds": print_sounds,
    "declick": declick_file,
    "freq": print_frequencies,
    "freqBins": print_frequency_bins,
}


def run_command(args: argparse.Namespace):
    """Run the command named by `args.command`."""
    handler = COMMANDS.get(args.command)
    if handler is None:
        raise UnknownCommand(f'Unknown command: "{args.command}"')
    handler(args, resolve_settings(args))


def _configure_logging(verbosity: int):
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit status."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        run_command(args)
    except SoundEditError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        logger.debug("unexpected failure", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
