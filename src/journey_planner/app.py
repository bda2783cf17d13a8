"""MCP application instance.

This module exists to avoid circular import issues when running with `python -m`.
All tool modules should import `mcp` from here, not from server.py.
"""

from mcp.server.fastmcp import FastMCP

# Initialize the MCP server
mcp = FastMCP(
    "Cape Town Transit",
    instructions=(
        "Cape Town journey planning across Metrorail trains, MyCiTi and Golden Arrow buses, "
        "with walking transfers between nearby stops"
    ),
)
