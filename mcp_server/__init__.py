"""
Course Inbox MCP Server

Exposes the course Q&A engine (knowledge base, decision engine,
email categorization, review queue) as MCP tools for Cursor AI and
other MCP-compatible clients.

Architecture:
    Cursor → MCP Server → course_inbox core → storage backend
"""
# Tool client (can be used standalone for testing)
from mcp_server.course_tools import CourseToolsClient

# Lazy import server functions (requires MCP SDK)
def create_server():
    """Create the MCP server (requires mcp package)."""
    from mcp_server.server import create_server as _create_server
    return _create_server()

def run_server():
    """Run the MCP server (requires mcp package)."""
    from mcp_server.server import run_server as _run_server
    return _run_server()

__all__ = ['CourseToolsClient', 'create_server', 'run_server']
