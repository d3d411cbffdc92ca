"""
MCP Server entry point.

Usage:
    python -m mcp_server

Or:
    python -m mcp_server.server
"""
from mcp_server.server import main

if __name__ == "__main__":
    main()
