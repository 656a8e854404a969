"""Client and MCP server for the Sonic search channel protocol."""

__version__ = "0.1.0"
