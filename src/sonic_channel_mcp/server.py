"""MCP server entry point for a Sonic search backend.

Exposes search and ingest operations as tools via the Model Context
Protocol using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .channel import ChannelError, SonicChannel
from .config import ChannelSettings
from .protocol.commands import Mode
from .protocol.errors import FrameError

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "sonic-channel",
    instructions="MCP server for querying and indexing a Sonic search backend",
)

# Global channel state, one channel per mode
_settings: ChannelSettings | None = None
_channels: dict[Mode, SonicChannel] = {}


def _get_settings() -> ChannelSettings:
    global _settings
    if _settings is None:
        _settings = ChannelSettings.from_env()
    return _settings


def _get_channel(mode: Mode) -> SonicChannel:
    """Get the started channel for ``mode``, raising if not connected."""
    channel = _channels.get(mode)
    if channel is None or not channel.started:
        raise RuntimeError(
            f"No {mode.value} channel. Use the 'connect' tool with mode='{mode.value}' first."
        )
    return channel


def _parse_mode(mode: str) -> Mode | None:
    return Mode.from_token(mode.strip().lower())


def _error(e: Exception) -> dict[str, Any]:
    return {"error": str(e)}


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(mode: str = "search") -> dict[str, Any]:
    """Open a channel to the Sonic server.

    Connection details come from SONIC_HOST, SONIC_PORT and SONIC_PASSWORD
    (environment or .env file).

    Args:
        mode: Channel mode, "search" or "ingest".
    """
    channel_mode = _parse_mode(mode)
    if channel_mode is None:
        return {"error": f"Unknown mode '{mode}'. Valid: {[m.value for m in Mode]}"}

    existing = _channels.get(channel_mode)
    if existing is not None and existing.started:
        return {
            "connected": True,
            "message": "Already connected",
            "mode": channel_mode.value,
            "server_version": existing.server_version,
        }
    if existing is not None:
        # Dead channel: drop it before reconnecting
        logger.info("Replacing dead %s channel", channel_mode.value)
        _channels.pop(channel_mode)
        existing.close()

    channel = SonicChannel.open(_get_settings(), channel_mode)
    _channels[channel_mode] = channel
    return {
        "connected": True,
        "mode": channel_mode.value,
        "server_version": channel.server_version,
        "buffer_size": channel.buffer_size,
    }


@mcp.tool()
def disconnect(mode: str | None = None) -> dict[str, Any]:
    """Close one channel, or all channels when no mode is given.

    Args:
        mode: Optional channel mode to close ("search" or "ingest").
    """
    if mode is None:
        modes = list(_channels)
    else:
        channel_mode = _parse_mode(mode)
        if channel_mode is None:
            return {"error": f"Unknown mode '{mode}'"}
        modes = [channel_mode]

    closed = []
    for channel_mode in modes:
        channel = _channels.pop(channel_mode, None)
        if channel is None:
            continue
        if channel.started:
            try:
                channel.quit()
            except (OSError, FrameError, ChannelError) as e:
                logger.warning("Error quitting %s channel: %s", channel_mode.value, e)
        channel.close()
        closed.append(channel_mode.value)
    return {"disconnected": True, "closed": closed}


@mcp.tool()
def ping(mode: str = "search") -> dict[str, Any]:
    """Check that a channel is alive.

    Args:
        mode: Channel to ping ("search" or "ingest").
    """
    channel_mode = _parse_mode(mode)
    if channel_mode is None:
        return {"error": f"Unknown mode '{mode}'"}
    _get_channel(channel_mode).ping()
    return {"pong": True}


# ─── SEARCH TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def query(
    collection: str,
    bucket: str,
    terms: str,
    limit: int | None = None,
    offset: int | None = None,
) -> dict[str, Any]:
    """Search a collection bucket and return matching object keys.

    Args:
        collection: Collection name, e.g. "messages".
        bucket: Bucket within the collection, e.g. "user:0dcde3a6".
        terms: Free-text search terms.
        limit: Optional maximum number of keys.
        offset: Optional number of keys to skip (requires limit).
    """
    channel = _get_channel(Mode.SEARCH)
    try:
        keys = channel.query(collection, bucket, terms, limit, offset)
    except (ValueError, ChannelError) as e:
        return _error(e)
    return {"keys": keys, "count": len(keys)}


@mcp.tool()
def suggest(
    collection: str,
    bucket: str,
    word: str,
    limit: int | None = None,
) -> dict[str, Any]:
    """Suggest completions for a partial word.

    Args:
        collection: Collection name.
        bucket: Bucket within the collection.
        word: Word prefix to complete.
        limit: Optional maximum number of suggestions.
    """
    channel = _get_channel(Mode.SEARCH)
    try:
        words = channel.suggest(collection, bucket, word, limit)
    except (ValueError, ChannelError) as e:
        return _error(e)
    return {"suggestions": words}


# ─── INGEST TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def push(
    collection: str,
    bucket: str,
    object: str,
    text: str,
    lang: str | None = None,
) -> dict[str, Any]:
    """Index text for an object.

    Args:
        collection: Collection name.
        bucket: Bucket within the collection.
        object: Object key the text belongs to, e.g. "conversation:71f3d63c".
        text: Text to index. Must not contain double quotes or line breaks.
        lang: Optional ISO 639-3 language code.
    """
    if '"' in text or "\r" in text or "\n" in text:
        return {"error": "Text must not contain double quotes or line breaks"}

    channel = _get_channel(Mode.INGEST)
    try:
        channel.push(collection, bucket, object, text, lang)
    except ChannelError as e:
        return _error(e)
    return {"pushed": True, "object": object}


@mcp.tool()
def count(
    collection: str,
    bucket: str | None = None,
    object: str | None = None,
) -> dict[str, Any]:
    """Count indexed items in a collection, bucket or object.

    Args:
        collection: Collection name.
        bucket: Optional bucket.
        object: Optional object (requires bucket).
    """
    channel = _get_channel(Mode.INGEST)
    try:
        total = channel.count(collection, bucket, object)
    except (ValueError, ChannelError) as e:
        return _error(e)
    return {"count": total}


# ─── RESOURCES ───────────────────────────────────────────────────────

@mcp.resource("sonic://channel/status")
def resource_channel_status() -> str:
    """Current channel status."""
    settings = _get_settings()
    status: dict[str, Any] = {
        "host": settings.host,
        "port": settings.port,
        "channels": {
            mode.value: {
                "started": channel.started,
                "server_version": channel.server_version,
                "buffer_size": channel.buffer_size,
            }
            for mode, channel in _channels.items()
        },
    }
    return json.dumps(status, indent=2)


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    settings = _get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
