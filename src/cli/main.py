"""Main CLI entry point for mangatl."""

import argparse
import logging
import sys

from .commands.assistant import setup_assistant_commands
from .commands.ingest import setup_ingest_commands
from .commands.translate import setup_translate_commands
from src.utils.config import ConfigError
from src.utils.logger import set_log_level


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="mangatl", description="Manga page ingestion and bulk translation"
    )
    parser.add_argument("--config", help="Path to config JSON (default: data/config.json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Setup commands
    setup_ingest_commands(subparsers)
    setup_translate_commands(subparsers)
    setup_assistant_commands(subparsers)

    args = parser.parse_args(argv)

    if args.verbose:
        set_log_level(logging.DEBUG)

    if not args.command:
        parser.print_help()
        return 1

    # Execute command
    if hasattr(args, "func"):
        try:
            return args.func(args)
        except ConfigError as e:
            print(f"Error: {e}")
            return 1
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
