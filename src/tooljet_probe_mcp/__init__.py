# ToolJet API Probe MCP Server
# File: __init__.py
# Version: v1

"""Top-level package for the ToolJet API Probe MCP Server."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

__all__ = ["__version__"]


def _resolve_version() -> str:
    """Resolve installed distribution version.

    Falls back to a reasonable default when running from source without an
    installed distribution.
    """
    try:
        return version("mcp-tooljet-probe-server")
    except PackageNotFoundError:
        return "0.1.0"


__version__ = _resolve_version()
