"""
bibo: fast, local neural text-to-speech from the command line.

Speaks text (or a Markdown / text file) with an installed voice, or
writes the audio to a WAV file.  Voices and the sherpa-onnx engine are
downloaded on demand.

Usage::

    bibo "Hello world"
    bibo "Hello" -s fast
    bibo -i README.md -o readme.wav
    bibo -d list
    bibo -d amy
    bibo -l
"""

import argparse
import logging
import sys
from typing import List, Optional

from bibo import __version__
from bibo.audio import AudioPlayer
from bibo.config import ENGINES, BiboConfig, Speed, effective_speed
from bibo.download import VoiceInstaller
from bibo.errors import BiboError
from bibo.text import resolve_text
from bibo.tts import VoiceCatalog, create_engine

logger = logging.getLogger("bibo")


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser."""
    p = argparse.ArgumentParser(
        prog="bibo",
        description="Fast, local neural text-to-speech.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            '  bibo "Hello world"              Just works\n'
            '  bibo "Hello" -s fast            Fast speech\n'
            "  bibo -i doc.md                  Read from file\n"
            "  bibo -d list                    Show available voices\n"
            "  bibo -d amy                     Download voice\n"
            "  bibo -l                         List installed voices\n"
            "\n"
            "environment variables:\n"
            "  BIBO_VOICE          Default voice (default: melo)\n"
            "  BIBO_SPEED          Default speed (default: normal)\n"
            "  BIBO_ENGINE         sherpa or piper (default: sherpa)\n"
            "  BIBO_DATA_DIR       Data directory (default: ~/.local/share/bibo)\n"
            "  BIBO_SHERPA_PATH    Explicit sherpa-onnx-offline-tts binary\n"
            "  BIBO_PYTHON         Interpreter for the piper engine\n"
            "  BIBO_HF_MIRROR      HuggingFace mirror host\n"
            "  BIBO_GITHUB_MIRROR  Prefix for GitHub release downloads\n"
        ),
    )

    p.add_argument("text", nargs="?", default=None, metavar="TEXT", help="Text to speak")

    # -- Voice -------------------------------------------------------------
    voice = p.add_argument_group("voice")
    voice.add_argument("-v", "--voice", default=None, help="Voice model to use")
    voice.add_argument(
        "-s",
        "--speed",
        choices=[s.value for s in Speed],
        default=None,
        help="Speech speed (default: normal)",
    )
    voice.add_argument(
        "-f", "--fast", action="store_true", help="Fast mode (shortcut for -s fast)"
    )
    voice.add_argument(
        "--engine",
        choices=list(ENGINES),
        default=None,
        help="Synthesis engine (default: sherpa)",
    )

    # -- Input / output ----------------------------------------------------
    io = p.add_argument_group("input & output")
    io.add_argument("-i", "--input", metavar="FILE", help="Input file (.md or .txt)")
    io.add_argument(
        "-o", "--output", metavar="FILE", help="Output WAV file (plays if not specified)"
    )

    # -- Voice management --------------------------------------------------
    manage = p.add_argument_group("voice management")
    manage.add_argument("-l", "--list", action="store_true", help="List installed voices")
    manage.add_argument(
        "-d",
        "--download",
        metavar="SPEC",
        help='Download voice: id, "list", "all", or "1,3,5"',
    )

    # -- Output control ----------------------------------------------------
    p.add_argument("-q", "--quiet", action="store_true", help="Quiet mode (no output)")
    p.add_argument("--debug", action="store_true", help="Verbose debug logging")
    p.add_argument("-V", "--version", action="version", version=f"bibo {__version__}")

    return p


# ------------------------------------------------------------------
# Logging setup
# ------------------------------------------------------------------


def _configure_logging(quiet: bool, debug: bool) -> None:
    """
    Set up the ``bibo`` logger.

    Quiet mode keeps warnings and errors only; ``--debug`` adds
    timestamps and module names.
    """
    if debug:
        level = logging.DEBUG
        fmt = "%(asctime)s %(name)s %(levelname)s: %(message)s"
        datefmt = "%H:%M:%S"
    elif quiet:
        level = logging.WARNING
        fmt = "%(levelname)s: %(message)s"
        datefmt = None
    else:
        level = logging.INFO
        fmt = "%(message)s"
        datefmt = None

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger("bibo")
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in ("urllib3", "pydub"):
        logging.getLogger(name).setLevel(logging.WARNING)


def report_error(error: BiboError) -> None:
    """Log *error* with its remediation hints."""
    lines = [str(error)]
    hints = error.hints()
    if hints:
        lines.append("")
        lines.append("How to fix:")
        lines.extend(f"   → {hint}" for hint in hints)
    logger.error("\n".join(lines))


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


def _build_config(args: argparse.Namespace) -> BiboConfig:
    """Environment defaults, overridden by explicit flags."""
    config = BiboConfig.from_env()
    if args.voice:
        config.voice = args.voice
    if args.speed:
        config.speed = Speed.parse(args.speed)
    if args.engine:
        config.engine = args.engine
    config.quiet = args.quiet
    return config


# ------------------------------------------------------------------
# Sub-commands
# ------------------------------------------------------------------


def _cmd_list_installed(catalog: VoiceCatalog, current_voice: str) -> None:
    """Print locally installed voices, marking the selected one."""
    voices = catalog.installed()
    if not voices:
        logger.info("No voices installed")
        logger.info("Download: bibo -d list")
        return

    voice = catalog.find(current_voice)
    current = catalog.installed_name(voice) if voice else None
    logger.info("Installed voices:")
    for name in voices:
        prefix = "→" if name == current else " "
        logger.info("  %s %s", prefix, name)
    logger.info("")
    logger.info("Download more: bibo -d list")


def _cmd_speak(args: argparse.Namespace, config: BiboConfig, catalog: VoiceCatalog) -> None:
    """Resolve text, synthesise it, then save or play."""
    text = resolve_text(args.input, args.text, quiet=config.quiet)
    speed = effective_speed(config.speed, args.fast)

    engine = create_engine(config, catalog, quiet=config.quiet)
    logger.info("%s @ %s", config.voice, speed.value)
    logger.debug("Engine: %r", engine)

    if args.output:
        engine.synthesize_to_file(text, speed.length_scale, args.output)
        logger.info("Saved: %s", args.output)
        return

    samples, rate = engine.synthesize(text, speed.length_scale)
    logger.info("Playing...")
    AudioPlayer.play_samples(samples, rate)


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


def run(args: argparse.Namespace) -> int:
    """Dispatch: download → list → speak."""
    config = _build_config(args)
    catalog = VoiceCatalog(config.engine, config.models_dir)

    if args.download:
        VoiceInstaller(catalog, config).install_spec(args.download, quiet=config.quiet)
        return 0

    if args.list:
        _cmd_list_installed(catalog, config.voice)
        return 0

    _cmd_speak(args, config, catalog)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, configure logging, and run."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Logging must be configured before any logger calls
    _configure_logging(args.quiet, args.debug)

    try:
        return run(args)
    except BiboError as e:
        report_error(e)
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
