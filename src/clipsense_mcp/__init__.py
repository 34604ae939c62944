"""ClipSense MCP server: AI analysis of mobile-app bug recordings."""

__version__ = "0.1.2"
