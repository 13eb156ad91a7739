#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Riffbox - Main Entry Point

This module serves as the entry point for the Riffbox command line.
It initializes logging and settings, parses command-line arguments and hands
the selected sub-command to the CLI.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from riffbox import __version__
from riffbox.core.settings import load_settings
from riffbox.ui.cli import CLI
from riffbox.utils.logger import setup_logger
from riffbox.utils.paths import get_log_file


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="riffbox",
        description="Riffbox - download music and manage local playlists"
    )
    parser.add_argument(
        "-v", "--version", action="version", version=f"Riffbox v{__version__}"
    )
    parser.add_argument(
        "-d", "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "-c", "--config", type=str, help="Path to custom config file"
    )
    parser.add_argument(
        "-o", "--output", type=str, help="Output directory for downloads"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("download", help="Search YouTube for a track and download it")
    p.add_argument("id", help="Catalog track id")
    p.add_argument("title", help="Track title")
    p.add_argument("artist", help="Artist name(s)")

    p = sub.add_parser("import", help="Download audio from a YouTube URL")
    p.add_argument("url")

    sub.add_parser("downloads", help="List downloaded tracks")

    p = sub.add_parser("delete", help="Delete a downloaded track")
    p.add_argument("track_id")

    sub.add_parser("playlists", help="List playlists")

    p = sub.add_parser("show", help="Show the tracks of a playlist")
    p.add_argument("playlist_id")

    p = sub.add_parser("create", help="Create a playlist")
    p.add_argument("name")

    p = sub.add_parser("drop", help="Delete a playlist")
    p.add_argument("playlist_id")

    p = sub.add_parser("add", help="Add a known track to a playlist")
    p.add_argument("playlist_id")
    p.add_argument("track_id")

    p = sub.add_parser("remove", help="Remove a track from a playlist")
    p.add_argument("playlist_id")
    p.add_argument("track_id")

    p = sub.add_parser("like", help="Like or unlike a known track")
    p.add_argument("track_id")

    p = sub.add_parser("cover", help="Set a playlist cover image")
    p.add_argument("playlist_id")
    p.add_argument("image")

    return parser


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    return build_parser().parse_args(argv)


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    args = parse_arguments(argv)

    log_level = logging.DEBUG if args.debug else logging.WARNING
    # yt-dlp warnings would break up the progress display; --debug shows everything
    tool_level = logging.DEBUG if args.debug else logging.ERROR
    setup_logger(log_level, get_log_file(), tool_level=tool_level)
    logger = logging.getLogger(__name__)

    logger.info("Starting Riffbox")
    logger.debug(f"Python version: {sys.version}")
    logger.debug(f"Application version: {__version__}")

    settings = load_settings(args.config)
    if args.output:
        settings.download_path = Path(args.output)
        logger.debug(f"Override download path: {settings.download_path}")
    logger.debug(f"Loaded settings: {settings}")

    cli = CLI(settings)
    return await cli.run(args)


def main_cli() -> None:
    """
    Entry point for the command-line interface.

    This function is used as the console_scripts entry point. It wraps the
    async main function and handles exceptions.
    """
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        sys.exit(1)
    except Exception as e:
        logging.getLogger(__name__).exception("Unhandled exception")
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main_cli()
