"""FastMCP server exposing living-world settings and lorebooks as MCP tools.

Tools:
  - get_settings()                 — the full settings record
  - update_settings(patch)         — shallow update, returns the new record
  - list_lorebooks()               — lorebook names
  - list_lorebook_entries(name)    — entries (id, label) of one lorebook

The services are replaced via set_services() for tests, or built from the
environment when run as __main__.

Usage:
    uv run python -m living_world.mcp_server
"""

from typing import Any

from mcp.server.fastmcp import FastMCP

from living_world.app import Services

mcp = FastMCP("living-world")

_services: Services | None = None


def set_services(services: Services) -> None:
    """Replace the active services (used in tests)."""
    global _services
    _services = services


def _active() -> Services:
    assert _services is not None, "Call set_services() before serving"
    return _services


@mcp.tool()
def get_settings() -> dict[str, Any]:
    """Return the living-world settings record."""
    return _active().settings.get().to_record()


@mcp.tool()
def update_settings(patch: dict[str, Any]) -> dict[str, Any]:
    """Apply a partial settings update and return the full record."""
    return _active().settings.set(patch).to_record()


@mcp.tool()
async def list_lorebooks() -> list[str]:
    """List the names of available lorebooks."""
    return await _active().lorebooks.list_resources()


@mcp.tool()
async def list_lorebook_entries(name: str) -> list[dict[str, str]]:
    """List the selectable entries of a lorebook."""
    entries = await _active().lorebooks.load_resource(name)
    return [{"id": e.id, "label": e.label} for e in entries.values()]


if __name__ == "__main__":
    from living_world.app import build_services
    from living_world.config import load_config
    from living_world.debounce import ThreadingScheduler

    services = build_services(load_config(), scheduler=ThreadingScheduler())
    set_services(services)
    try:
        mcp.run()
    finally:
        services.settings.close()
