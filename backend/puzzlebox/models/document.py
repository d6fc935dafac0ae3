"""
Experience document schema - Pydantic models for experience JSON/YAML files

The document is the static, author-owned description of an experience:
rooms with nested items, triggers, keys and completion criteria. Runtime
state is never reconstructed from anything but a document (see
puzzlebox.engine.snapshot).
"""

from __future__ import annotations

from typing import Any, Iterator

from pydantic import Field

from puzzlebox.models.entities import (
    ItemCategory,
    Key,
    PuzzleModel,
    RoomConnection,
    Trigger,
)


TRIGGER_ACTIVATED = "trigger_activated"


class ItemDefinition(PuzzleModel):
    """An item as written in a document, with nested children"""

    id: str
    name: str = ""
    description: str = ""
    category: ItemCategory = ItemCategory.DECORATIVE
    type: str | None = None

    is_visible: bool = True
    is_hidden: bool = False
    is_interactive: bool = False
    is_examinable: bool = True
    is_portable: bool = False
    is_locked: bool = False

    lock_trigger_id: str | None = None
    examine_trigger: str | None = None
    key_id: str | None = None
    leads_to: str | None = None  # DOOR items: room this door opens onto

    contained_items: list[ItemDefinition] = Field(default_factory=list)
    surface_items: list[ItemDefinition] = Field(default_factory=list)

    def walk(self) -> Iterator[ItemDefinition]:
        """Yield this item and every nested item, depth first"""
        yield self
        for child in (*self.contained_items, *self.surface_items):
            yield from child.walk()


class RoomDefinition(PuzzleModel):
    """A room as written in a document"""

    id: str
    name: str = ""
    short_description: str = ""
    long_description: str = ""
    is_locked: bool = False
    is_hidden: bool = False
    items: list[ItemDefinition] = Field(default_factory=list)
    connected_rooms: list[RoomConnection] = Field(default_factory=list)

    def walk_items(self) -> Iterator[ItemDefinition]:
        for item in self.items:
            yield from item.walk()


class CompletionCriterion(PuzzleModel):
    """A single completion requirement; only trigger activation is checked"""

    type: str = TRIGGER_ACTIVATED
    trigger_id: str | None = None
    room_id: str | None = None
    description: str = ""


class ExperienceDocument(PuzzleModel):
    """Complete experience definition loaded from a document.

    ``id`` and ``name`` default to empty strings so that a document missing
    them still parses and the validator can report the omission.
    """

    id: str = ""
    name: str = ""
    theme: str = ""
    difficulty: str = "BEGINNER"
    estimated_duration: int | None = None
    story_intro: str = ""
    story_outro: str = ""
    starting_room_id: str = ""
    final_room_id: str | None = None
    rooms: list[RoomDefinition] = Field(default_factory=list)
    triggers: list[Trigger] = Field(default_factory=list)
    keys: list[Key] = Field(default_factory=list)
    completion_criteria: list[CompletionCriterion] = Field(default_factory=list)

    @classmethod
    def parse(cls, data: dict[str, Any]) -> ExperienceDocument:
        """Validate raw document data, unwrapping an ``experience`` envelope"""
        if isinstance(data, dict) and isinstance(data.get("experience"), dict):
            data = data["experience"]
        return cls.model_validate(data)

    def walk_items(self) -> Iterator[tuple[RoomDefinition, ItemDefinition]]:
        """Yield (room, item) for every item in every room, nested included"""
        for room in self.rooms:
            for item in room.walk_items():
                yield room, item

    def get_trigger(self, trigger_id: str) -> Trigger | None:
        for trigger in self.triggers:
            if trigger.id == trigger_id:
                return trigger
        return None

    def get_key(self, key_id: str) -> Key | None:
        for key in self.keys:
            if key.id == key_id:
                return key
        return None
