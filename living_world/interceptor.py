"""Pre-generation interceptor.

The host awaits the hook before every generation request:

    await gate(chat, context_size, abort, kind)

Decision, in order (first match wins):
  1. disabled                          → skip
  2. autoTrigger off and not manual    → skip
  3. kind is "quiet" or "dry-run"      → skip
  4. otherwise                         → run

When running, the WorldBuilder is asked for world-state text and non-empty
text is inserted into the chat per the injection strategy. The hook fails
open: any error is logged and the turn proceeds without augmentation. The
abort handle is never called.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from living_world.models import (
    SILENT_KINDS,
    Configuration,
    GenerationContext,
    InjectionStrategy,
)
from living_world.settings import SettingsStore
from living_world.world import WorldBuilder

logger = logging.getLogger(__name__)

INJECTED_NAME = "Living World"


def should_run(context: GenerationContext, config: Configuration) -> bool:
    if not config.enabled:
        return False
    if not config.auto_trigger and not context.manual:
        return False
    if context.kind in SILENT_KINDS:
        return False
    return True


def inject_world_state(
    chat: list[dict[str, Any]], text: str, strategy: InjectionStrategy
) -> int:
    """Insert `text` into `chat` in place. Returns the index it landed at.

    "depth" counts back from the end of the chat (0 = after the last
    message, clamped to the start); "top" puts it before everything.
    """
    message = {
        "name": INJECTED_NAME,
        "is_user": strategy.role == "user",
        "is_system": strategy.role == "system",
        "mes": text,
        "extra": {"living_world": True, "role": strategy.role},
    }
    if strategy.type == "top":
        index = 0
    else:
        index = max(0, len(chat) - strategy.depth)
    chat.insert(index, message)
    return index


class InterceptorGate:
    def __init__(self, settings: SettingsStore, builder: WorldBuilder) -> None:
        self._settings = settings
        self._builder = builder

    def should_run(self, context: GenerationContext) -> bool:
        return should_run(context, self._settings.get())

    async def run(self, context: GenerationContext) -> bool:
        """Augment the context's chat if the gate allows. True if text was injected."""
        try:
            config = self._settings.get()
            if not should_run(context, config):
                return False

            logger.debug(
                "Interceptor triggered type=%s context_size=%s chat_length=%d",
                context.kind, context.context_size, len(context.messages),
            )
            text = await self._builder.build(context.messages, config)
            if not text:
                logger.debug("Interception complete, no world state produced")
                return False

            index = inject_world_state(context.messages, text, config.injection_strategy)
            logger.debug("Injected world state at index %d", index)
            return True
        except Exception:
            # Errors never abort the main generation
            logger.exception("Interceptor error")
            return False

    async def __call__(
        self,
        chat: list[dict[str, Any]],
        context_size: int,
        abort: Callable[..., Any] | None,
        kind: str,
    ) -> None:
        await self.run(GenerationContext(
            messages=chat, context_size=context_size, abort=abort, kind=kind,
        ))
