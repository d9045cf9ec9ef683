"""Host collaborators — lorebooks and connection profiles.

Two knowledge-base implementations share one shape:

    async def list_resources(self) -> list[str]: ...
    async def load_resource(self, name: str) -> dict[str, LorebookEntry]: ...

    HostClient     — talks to the chat host over HTTP:
                       POST /api/settings/get   → {"world_names": [...], "settings": "<json>"}
                       POST /api/worldinfo/get  {"name": ...} → {"entries": {uid: {...}}}
    LocalLorebooks — reads <dir>/<name>.json files in the host's world-info format.

Connection profiles come from the host settings
(extension_settings.connectionManager.profiles), either through HostClient
or from the storage collaborator (StoredConnectionProfiles).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

import httpx

from living_world.models import ConnectionProfile, LorebookEntry
from living_world.storage import Storage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------

class KnowledgeBase(Protocol):
    async def list_resources(self) -> list[str]: ...

    async def load_resource(self, name: str) -> dict[str, LorebookEntry]: ...


class ConnectionProfileSource(Protocol):
    async def list_connection_profiles(self) -> list[ConnectionProfile]: ...


# ---------------------------------------------------------------------------
# Parsing helpers (host world-info / settings formats)
# ---------------------------------------------------------------------------

def parse_entries(data: Any) -> dict[str, LorebookEntry]:
    """Turn a world-info document into {uid: LorebookEntry}.

    Entries are labelled by their comment, or "Entry <uid>" without one.
    A document without entries yields an empty mapping.
    """
    if not isinstance(data, dict) or not isinstance(data.get("entries"), dict):
        return {}
    result: dict[str, LorebookEntry] = {}
    for key, entry in data["entries"].items():
        if not isinstance(entry, dict):
            continue
        uid = str(entry.get("uid", key))
        result[uid] = LorebookEntry(
            id=uid,
            label=entry.get("comment") or f"Entry {uid}",
            content=entry.get("content") or "",
        )
    return result


def parse_profiles(profiles: Any) -> list[ConnectionProfile]:
    if not isinstance(profiles, list):
        return []
    return [
        ConnectionProfile(id=str(p["id"]), name=p.get("name") or str(p["id"]))
        for p in profiles
        if isinstance(p, dict) and p.get("id")
    ]


# ---------------------------------------------------------------------------
# HostClient — HTTP connection to the chat host
# ---------------------------------------------------------------------------

class HostClient:
    """Async HTTP client for the chat host's settings and world-info API.

    Args:
        host_url: Base URL of the host, e.g. "http://localhost:8000".
        api_key:  Bearer token, or empty string if not required.
        headers:  Extra request headers (e.g. a CSRF token).
        timeout:  HTTP timeout in seconds. Defaults to 10.
    """

    def __init__(
        self,
        host_url: str,
        api_key: str = "",
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._base_url = host_url.rstrip("/")
        self._api_key = api_key
        self._extra_headers = dict(headers or {})
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        headers.update(self._extra_headers)
        return headers

    async def _post(self, path: str, body: dict) -> Any:
        url = f"{self._base_url}{path}"
        logger.debug("host call url=%s", url)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise HostError(f"Cannot connect to host at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise HostError(f"Host returned HTTP {e.response.status_code} for {path}") from e
        except httpx.TimeoutException as e:
            raise HostError(f"Host timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise HostError(f"Host request to {path} failed: {e!r}") from e

        try:
            return resp.json()
        except ValueError as e:
            raise HostError(f"Unexpected response format from {path}") from e

    async def _host_settings(self) -> dict[str, Any]:
        data = await self._post("/api/settings/get", {})
        if not isinstance(data, dict):
            raise HostError("Unexpected response format from /api/settings/get")
        return data

    async def list_resources(self) -> list[str]:
        data = await self._host_settings()
        names = data.get("world_names") or []
        if not isinstance(names, list):
            raise HostError("Unexpected world_names format from /api/settings/get")
        logger.debug("host lists %d lorebooks", len(names))
        return [str(n) for n in names]

    async def load_resource(self, name: str) -> dict[str, LorebookEntry]:
        data = await self._post("/api/worldinfo/get", {"name": name})
        entries = parse_entries(data)
        if not entries:
            logger.debug("No entries found in lorebook %r", name)
        return entries

    async def list_connection_profiles(self) -> list[ConnectionProfile]:
        data = await self._host_settings()
        raw = data.get("settings") or "{}"
        try:
            settings = json.loads(raw) if isinstance(raw, str) else raw
        except json.JSONDecodeError as e:
            raise HostError("Host settings are not valid JSON") from e
        if not isinstance(settings, dict):
            raise HostError("Unexpected response format for host settings")
        extensions = settings.get("extension_settings") or {}
        if not isinstance(extensions, dict):
            raise HostError("Unexpected extension_settings format in host settings")
        manager = extensions.get("connectionManager") or {}
        if not isinstance(manager, dict):
            raise HostError("Unexpected connectionManager format in host settings")
        return parse_profiles(manager.get("profiles"))


# ---------------------------------------------------------------------------
# Local implementations
# ---------------------------------------------------------------------------

class LocalLorebooks:
    """Lorebooks read from a directory of world-info JSON files."""

    def __init__(self, worlds_dir: Path) -> None:
        self._dir = worlds_dir

    async def list_resources(self) -> list[str]:
        if not self._dir.is_dir():
            return []
        return sorted(p.stem for p in self._dir.glob("*.json"))

    async def load_resource(self, name: str) -> dict[str, LorebookEntry]:
        path = self._dir / f"{name}.json"
        if path.parent != self._dir:
            raise HostError(f"Invalid lorebook name: {name!r}")
        if not path.is_file():
            raise HostError(f"Lorebook not found: {name}")
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise HostError(f"Lorebook {name} is not valid JSON") from e
        return parse_entries(data)


class StoredConnectionProfiles:
    """Connection profiles read from the storage collaborator's connectionManager record."""

    def __init__(self, storage: Storage, key: str = "connectionManager") -> None:
        self._storage = storage
        self._key = key

    async def list_connection_profiles(self) -> list[ConnectionProfile]:
        record = self._storage.read(self._key) or {}
        return parse_profiles(record.get("profiles"))


# ---------------------------------------------------------------------------
# HostError — raised for all collaborator connection and format failures
# ---------------------------------------------------------------------------

class HostError(RuntimeError):
    """Raised when the host (or a local lorebook) cannot be read."""
