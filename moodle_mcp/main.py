#!/usr/bin/env python3
"""
Moodle Assignment MCP Server - Main Entry Point

Serves Moodle assignment tools to an MCP client over stdio.

Usage:
    python -m moodle_mcp.main              # Run the server
    python -m moodle_mcp.main --verbose    # Enable debug logging

Environment Variables Required:
    MOODLE_TOKEN            - Moodle web-service token

Optional:
    MOODLE_BASE_URL         - Moodle site URL (HTTPS)
    MOODLE_LANG             - Language tag for web-service settings
    MOODLE_TIMEZONE         - Time zone used when showing dates
    MCP_SERVER_NAME         - Name announced to the MCP client
    LOG_LEVEL               - Logging level (default INFO)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from config.settings import load_settings, ConfigurationError

from .moodle.client import RemoteError
from .server import create_server
from .tools.handlers import ToolHandlers
from .tools.session import open_session


def setup_logging(verbose: bool = False, level: str = "INFO") -> None:
    """
    Configure logging for the application.

    Logs go to stderr; stdout carries the MCP protocol.

    Args:
        verbose: If True, enable DEBUG level logging
        level: Level name used when not verbose
    """
    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
        force=True,
    )

    # Reduce noise from external libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("mcp").setLevel(logging.WARNING)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="MCP server for Moodle assignments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    moodle-assign-mcp                     # Run over stdio
    moodle-assign-mcp --verbose           # Debug output on stderr
    moodle-assign-mcp --env .env.local    # Use custom env file
        """,
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )

    parser.add_argument(
        "--env",
        type=Path,
        help="Path to .env file (default: .env in current directory)",
    )

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    logger = logging.getLogger(__name__)

    try:
        settings = load_settings(env_file=args.env)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        logger.error("Please check your .env file or environment variables")
        return 1

    if not args.verbose:
        setup_logging(level=settings.log_level)

    # The identity is fetched once; failure here is the only fatal remote error
    try:
        session = open_session(settings)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except RemoteError as e:
        logger.error(f"Failed to fetch user information: {e}")
        return 1

    try:
        server = create_server(ToolHandlers(session), name=settings.server.name)
        logger.info("Serving Moodle tools over stdio")
        server.run()
        return 0

    except KeyboardInterrupt:
        logger.info("Server interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1
    finally:
        # Runs after the transport closed and in-flight calls returned
        session.close()


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
