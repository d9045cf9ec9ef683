"""World-state building.

How relevant each character is, and what the world looks like right now, is
decided by a pluggable provider matching:

    async def __call__(self, history, characters, config) -> str: ...

The returned text is what gets injected into the prompt; an empty string
means "nothing to add". NullWorldStateProvider is the shipped default.

WorldBuilder does the surrounding work: it reads the character list from
the selected lorebook entry (one character per line, capped at
characterQuantity), calls the provider, and runs manual generation with
user notifications.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from living_world.host import KnowledgeBase
from living_world.models import Configuration
from living_world.notify import Notifier
from living_world.settings import SettingsStore

logger = logging.getLogger(__name__)

_BULLETS = "-*• \t"


class WorldStateProvider(Protocol):
    async def __call__(
        self,
        history: Sequence[dict[str, Any]],
        characters: list[str],
        config: Configuration,
    ) -> str: ...


class NullWorldStateProvider:
    """Produces no world state, so nothing is ever injected."""

    async def __call__(
        self,
        history: Sequence[dict[str, Any]],
        characters: list[str],
        config: Configuration,
    ) -> str:
        logger.debug(
            "NullWorldStateProvider history=%d characters=%d", len(history), len(characters)
        )
        return ""


def parse_character_list(content: str, limit: int) -> list[str]:
    """One character per non-empty line; list bullets are stripped."""
    names = [line.strip().lstrip(_BULLETS).strip() for line in content.splitlines()]
    return [n for n in names if n][:limit]


class WorldBuilder:
    def __init__(
        self,
        settings: SettingsStore,
        knowledge_base: KnowledgeBase,
        provider: WorldStateProvider | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._settings = settings
        self._kb = knowledge_base
        self._provider = provider or NullWorldStateProvider()
        self._notifier = notifier or Notifier()

    async def load_characters(self, config: Configuration) -> list[str]:
        """Return the character names from the selected character-list entry."""
        if not config.selected_lorebook or not config.selected_character_list_entry:
            return []
        entries = await self._kb.load_resource(config.selected_lorebook)
        entry = entries.get(config.selected_character_list_entry)
        if entry is None:
            logger.warning(
                "Character list entry %r not found in lorebook %r",
                config.selected_character_list_entry, config.selected_lorebook,
            )
            return []
        return parse_character_list(entry.content, config.character_quantity)

    async def build(self, history: Sequence[dict[str, Any]], config: Configuration) -> str:
        """Compute the injectable world-state text for this history."""
        characters = await self.load_characters(config)
        text = await self._provider(history, characters, config)
        return (text or "").strip()

    async def generate(
        self, history: Sequence[dict[str, Any]] = (), manual: bool = False
    ) -> str | None:
        """Run a generation outside the interceptor.

        Returns None when the feature is disabled and the request is not
        manual. Failures are reported to the user and yield None.
        """
        config = self._settings.get()
        if not config.enabled and not manual:
            return None

        logger.debug("Generating living world state (manual=%s)", manual)
        self._notifier.info("Generating living world state...")
        try:
            text = await self.build(history, config)
        except Exception:
            logger.exception("Generation error")
            self._notifier.error("Failed to generate living world")
            return None
        self._notifier.success("Living world generated!")
        return text
