"""
Entry point for the Doxygen symbol search MCP server.
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import logging
import os
import signal
import time
from types import FrameType
from typing import Any

from .config import (
    DEFAULT_MATCH_MODE,
    DEFAULT_MAX_RESULTS,
    DEFAULT_SERVER_PORT,
    ENV_INDEX_LOCATION,
    ENV_MATCH_MODE,
    ENV_MAX_RESULTS,
    ENV_SECTION,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("mcp_doxysearch")

# Global variables to track MCP instance
mcp_instance = None
server_module = None
# Flag to track if the server is shutting down
is_shutting_down = False
# Timestamp of the last interrupt signal
last_interrupt_time: float = 0.0


def signal_handler(sig: int, _frame: FrameType | None) -> None:
    """Handle process interruption signals like SIGINT (Ctrl+C)."""
    global is_shutting_down, last_interrupt_time

    current_time = time.time()

    match sig:
        case signal.SIGINT:
            # A second Ctrl+C within a second forces the exit
            if is_shutting_down or (
                current_time - last_interrupt_time < 1.0 and last_interrupt_time > 0
            ):
                logger.info("Forced server shutdown (double Ctrl+C)")
                os._exit(1)
            else:
                logger.info("Graceful shutdown initiated (Ctrl+C)")
        case signal.SIGTERM:
            logger.info("Termination signal received")
        case _:
            logger.info(f"Unhandled signal: {sig}")

    is_shutting_down = True
    last_interrupt_time = current_time
    raise KeyboardInterrupt


def initialize_mcp() -> Any:
    """Initialize MCP server and register components."""
    global server_module
    server_module = importlib.import_module(".server", package="mcp_doxysearch")
    mcp = server_module.mcp

    # Importing the tools registers them on the server
    importlib.import_module(".tools", package="mcp_doxysearch")

    return mcp


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Symbol search over a Doxygen HTML search index, served over MCP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--index",
        default=os.environ.get(ENV_INDEX_LOCATION),
        help="Path or URL of the Doxygen html/search directory",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_SERVER_PORT,
        help=f"Port for the SSE transport (default: {DEFAULT_SERVER_PORT})",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="MCP transport (default: stdio)",
    )
    parser.add_argument(
        "--max-results",
        type=int,
        default=None,
        help=f"Maximum rows per query (default: {DEFAULT_MAX_RESULTS})",
    )
    parser.add_argument(
        "--match-mode",
        choices=["prefix", "substring"],
        default=None,
        help=f"Key matching mode (default: {DEFAULT_MATCH_MODE})",
    )
    parser.add_argument(
        "--section",
        default=None,
        help="Default index section (default: first section of the index)",
    )
    return parser.parse_args(argv)


def apply_args(args: argparse.Namespace) -> None:
    """Export parsed options for the server lifespan."""
    os.environ["MCP_PORT"] = str(args.port)
    if args.index:
        os.environ[ENV_INDEX_LOCATION] = args.index
    if args.max_results is not None:
        os.environ[ENV_MAX_RESULTS] = str(args.max_results)
    if args.match_mode is not None:
        os.environ[ENV_MATCH_MODE] = args.match_mode
    if args.section is not None:
        os.environ[ENV_SECTION] = args.section


def main() -> None:
    """Run the MCP server."""
    global mcp_instance, is_shutting_down

    signal.signal(signal.SIGINT, signal_handler)

    try:
        args = parse_args()
        apply_args(args)

        mcp_instance = initialize_mcp()

        mcp_instance.settings.port = args.port
        if args.transport == "sse":
            logger.info("Starting Doxygen symbol search MCP server on port %s", args.port)
        else:
            logger.info("Starting Doxygen symbol search MCP server on stdio")
        logger.info("Index: %s", args.index or "(none configured)")
        logger.info("- Tool: search_symbols")
        logger.info("- Tool: search_as_you_type")
        logger.info("- Tool: lookup_symbol")
        logger.info("- Tool: list_index_sections")
        logger.info("- Tool: health_check")
        logger.info("- Tool: index_audit")

        mcp_instance.run(transport=args.transport)
    except KeyboardInterrupt:
        is_shutting_down = True
        logger.info("Server shutdown requested by user")

        if server_module and hasattr(server_module, "close_http_client"):
            try:
                asyncio.run(server_module.close_http_client())
            except RuntimeError as e:
                logger.info(f"Cannot close HTTP client cleanly: {e}")
    except Exception as e:
        logger.error("Error starting server: %s", e, exc_info=True)
        raise


if __name__ == "__main__":
    main()
