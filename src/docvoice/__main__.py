"""docvoice entry point.

Usage:
    python -m docvoice [OPTIONS] [TEXT]

Options:
    --config PATH    Path to YAML config file
    --profile NAME   Profile name (dev, test)
    --voice ID       Voice to speak with
    --output FILE    Write WAV instead of playing
    --help           Show this help message
    --version        Show version
"""

# Load .env file before anything else
try:
    from pathlib import Path as _Path

    from dotenv import load_dotenv

    # Try to find .env in project root (parent of src/)
    _project_root = _Path(__file__).parent.parent.parent
    _env_file = _project_root / ".env"
    if _env_file.exists():
        load_dotenv(_env_file)
    else:
        load_dotenv()  # Fall back to current directory
except ImportError:
    pass  # python-dotenv not installed, skip

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

from . import __version__
from .config import DocvoiceConfig
from .config.loader import detect_profile, load_config
from .config.settings import parse_rate
from .errors import DocvoiceError
from .tts import create_speech_engine, list_voices
from .tts.cache import open_audio_cache


def setup_logging(level: str) -> None:
    """Configure logging based on config."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="docvoice",
        description="docvoice - Offline speech for chat responses",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m docvoice "Hello world."               # Speak with default voice
  python -m docvoice --voice onyx "Hello."        # Speak with another voice
  python -m docvoice --output out.wav "Hello."    # Write WAV file
  python -m docvoice --list-voices                # Show voice catalog
  python -m docvoice --stats                      # Show cache usage

Environment:
  DOCVOICE_PROFILE    Set profile (dev, test)
""",
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--config",
        type=Path,
        help="Path to YAML config file",
        metavar="PATH",
    )
    source.add_argument(
        "--profile",
        help="Configuration profile to use",
    )

    parser.add_argument("--voice", help="Voice id (see --list-voices)")
    parser.add_argument("--rate", help="Speech rate multiplier (0.5-2.0)")
    parser.add_argument(
        "--output",
        type=Path,
        metavar="FILE",
        help="Write synthesized WAV to FILE instead of playing it",
    )
    parser.add_argument("--list-voices", action="store_true", help="List voices and exit")
    parser.add_argument("--stats", action="store_true", help="Show cache usage statistics")
    parser.add_argument("--clear-cache", action="store_true", help="Delete all cached audio")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Load config and exit (for testing)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"docvoice v{__version__}",
    )
    parser.add_argument("text", nargs="?", help="Text to speak (markdown allowed)")

    return parser.parse_args(argv)


def apply_overrides(config: DocvoiceConfig, args: argparse.Namespace) -> DocvoiceConfig:
    """Apply --voice and --rate to the tts section."""
    tts = config.tts
    if args.voice:
        tts = replace(tts, voice=args.voice)
    if args.rate is not None:
        tts = replace(tts, speed=parse_rate(args.rate))
    return replace(config, tts=tts)


def print_voices() -> None:
    """Print the voice catalog."""
    for profile in list_voices():
        name = f"{profile.id:<8} {profile.display_name:<8}"
        print(f"  {name} {profile.gender:<7} {profile.description}")


def handle_cache_command(config: DocvoiceConfig, args: argparse.Namespace) -> int:
    """Handle --stats and --clear-cache."""
    cache = open_audio_cache(config.cache)
    if cache is None:
        print("Audio cache is disabled or unavailable.", file=sys.stderr)
        return 1

    with cache:
        if args.clear_cache:
            cache.clear()
            print("Audio cache cleared.")
        if args.stats:
            summary = cache.usage_summary()
            print(f"  Entries:    {cache.entry_count()}")
            print(f"  Requests:   {summary.total}")
            print(f"  Generated:  {summary.generated}")
            print(f"  Cached:     {summary.cached} ({summary.hit_rate:.1f}%)")
            print(f"  Characters: {summary.characters}")
            for voice, count in sorted(summary.by_voice.items()):
                print(f"    {voice}: {count}")
    return 0


async def run_text(config: DocvoiceConfig, text: str, output: Path | None) -> int:
    """Speak text, or write it to a WAV file when output is given."""
    logger = logging.getLogger("docvoice")
    engine = create_speech_engine(config)
    try:
        if output is not None:
            audio = await engine.render(text)
            output.write_bytes(audio)
            print(f"Wrote {len(audio)} bytes to {output}")
            return 0

        await engine.speak(text)
        await engine.wait_until_idle()
        if engine.error:
            logger.error(engine.error)
            return 1
        return 0
    finally:
        await engine.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for docvoice.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    args = parse_args(argv)

    # Load configuration
    try:
        if args.config:
            config = load_config(path=args.config)
        else:
            config = load_config(profile=args.profile)
    except FileNotFoundError as e:
        print(f"Error: Config file not found: {e}", file=sys.stderr)
        return 1
    except DocvoiceError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    config = apply_overrides(config, args)

    # Setup logging
    setup_logging(config.logging.level)
    logger = logging.getLogger("docvoice")

    logger.info(f"docvoice v{__version__}")
    logger.info(f"Profile: {args.profile or detect_profile()}")

    if args.dry_run:
        logger.info("Dry run mode - exiting after config load")
        logger.info(f"TTS voice: {config.tts.voice} at {config.tts.speed}x")
        logger.info(f"Cache: {config.cache.path if config.cache.enabled else 'disabled'}")
        logger.info(f"Native engine: {config.tts.native_engine}")
        return 0

    if args.list_voices:
        print_voices()
        return 0

    if args.stats or args.clear_cache:
        try:
            return handle_cache_command(config, args)
        except DocvoiceError as e:
            logger.error(f"Cache command failed: {e}")
            return 1

    if not args.text:
        print("Error: no text given (see --help)", file=sys.stderr)
        return 2

    try:
        return asyncio.run(run_text(config, args.text, args.output))
    except DocvoiceError as e:
        logger.error(f"Speech failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
