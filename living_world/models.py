"""Core domain models.

The configuration record is stored with the camelCase keys the host's
extension settings use; Python code reads the snake_case attributes.
Pydantic is used for validation and serialisation of stored and host data;
the per-generation context is a plain dataclass.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field

InjectionType = Literal["depth", "top"]
InjectionRole = Literal["system", "user", "assistant"]

# "normal", "swipe", "regenerate", "continue", "impersonate", "quiet", "dry-run", ...
GenerationKind = str

# Internal generations that are never shown to the user
SILENT_KINDS: frozenset[str] = frozenset({"quiet", "dry-run"})


class InjectionStrategy(BaseModel):
    """Where and under which role world-state text enters the prompt."""

    type: InjectionType = "depth"
    depth: int = Field(default=1, ge=0)
    role: InjectionRole = "system"


class Configuration(BaseModel):
    """The single living-world settings record."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    enabled: bool = False
    selected_lorebook: str = Field(default="", alias="selectedLorebook")
    selected_character_list_entry: str = Field(default="", alias="selectedCharacterListEntry")
    connection_profile: str = Field(default="", alias="connectionProfile")
    preset: str = "current"  # "current" = use the host's active preset
    character_quantity: int = Field(default=20, ge=1, alias="characterQuantity")
    injection_strategy: InjectionStrategy = Field(
        default_factory=InjectionStrategy, alias="injectionStrategy"
    )
    auto_trigger: bool = Field(default=True, alias="autoTrigger")
    debug_mode: bool = Field(default=False, alias="debugMode")

    def to_record(self) -> dict[str, Any]:
        """Dump in storage form (camelCase keys, unknown keys kept)."""
        return self.model_dump(by_alias=True)


class LorebookEntry(BaseModel):
    """One selectable entry of a lorebook."""

    id: str
    label: str
    content: str = ""


class ConnectionProfile(BaseModel):
    id: str
    name: str


@dataclass
class GenerationContext:
    """What the host hands the interceptor before a generation starts.

    A plain dataclass: `messages` must stay the host's own list so that
    injected entries are visible to the caller.
    """

    messages: list[dict[str, Any]]
    context_size: int = 0
    abort: Callable[..., Any] | None = None
    kind: GenerationKind = "normal"
    manual: bool = False  # user pressed "generate" rather than an automatic trigger
