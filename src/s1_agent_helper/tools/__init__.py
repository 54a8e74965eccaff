"""MCP tools for agent package discovery and installation.

Tools are registered via @mcp.tool() decorators when modules are imported.
"""

# Import tool modules to trigger registration via decorators
from . import packages
from . import install

__all__ = [
    "packages",
    "install",
]
