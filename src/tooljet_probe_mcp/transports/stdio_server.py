# ToolJet API Probe MCP Server
# File: transports/stdio_server.py
# Version: v1

"""STDIO entrypoint for the ToolJet API probe MCP server.

This is the script behind the ``tooljet-probe-mcp`` console command.

It:

- configures stderr logging (stdout carries the MCP protocol),
- creates a FastMCP server,
- registers the probe / sample / generate tools, and
- runs the built-in stdio transport.
"""

from __future__ import annotations

import logging
import os

from mcp.server.fastmcp import FastMCP

from ..tools import tasks


def _log_level() -> int:
    """Resolve TOOLJET_PROBE_LOG_LEVEL, falling back to WARNING for unknown names."""
    name = os.getenv("TOOLJET_PROBE_LOG_LEVEL", "WARNING").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def main() -> None:
    """Synchronous entrypoint for console_scripts."""
    logging.basicConfig(
        level=_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    mcp = FastMCP("tooljet-probe-mcp")

    tasks.register_tools(mcp)

    # Let FastMCP handle stdio + event loop setup.
    mcp.run()


if __name__ == "__main__":
    main()
