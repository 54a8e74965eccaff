"""
SentinelOne agent helper MCP server - main entry point.

Exposes the package catalog, package selection and agent install as MCP
tools over stdio.
"""

import logging
import sys

from mcp.server.fastmcp import FastMCP

from . import __version__

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("s1-agent-helper-mcp")

mcp = FastMCP("s1-agent-helper")


def main() -> None:
    """Main entry point."""
    # Importing the tool modules registers them on the server
    from . import tools  # noqa: F401

    logger.info(f"Starting SentinelOne agent helper MCP server v{__version__}")
    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
        sys.exit(1)

