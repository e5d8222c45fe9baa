# ToolJet API Probe MCP Server
# File: tools/__init__.py
# Version: v1

"""MCP tool definitions for the ToolJet API probe."""

from __future__ import annotations

from . import tasks

__all__ = ["tasks"]
