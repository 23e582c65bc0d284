"""MCP server for the Bike outliner."""

__version__ = "0.3.0"
