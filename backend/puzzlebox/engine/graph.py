"""
Dependency graph - a flat, analysis-only view of an experience

The graph is built either from a document (static structure) or from a live
Experience (current flags and progress copied, never aliased). Nodes are
plain dataclasses indexed by id; edges are derived on demand.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterator

from puzzlebox.models.document import (
    TRIGGER_ACTIVATED,
    ExperienceDocument,
    ItemDefinition,
)
from puzzlebox.models.entities import (
    AccessReward,
    ClueKey,
    ItemCategory,
    KeypadLock,
    PadLock,
    ExaminationTrigger,
    Reward,
    RoomConnection,
    Trigger,
    TriggerType,
)

if TYPE_CHECKING:
    from puzzlebox.models.entities import Key
    from puzzlebox.models.experience import Experience


ROOM_LOCATION = "room"


class EdgeKind(str, Enum):
    CONTAINS = "contains"
    LOCKED_BY = "locked_by"
    UNLOCKS = "unlocks"
    ACTIVATES = "activates"
    CONNECTS = "connects"


@dataclass(frozen=True)
class Edge:
    """A typed dependency between two graph nodes"""

    kind: EdgeKind
    source: str
    target: str
    data: tuple[tuple[str, Any], ...] = ()


@dataclass
class ItemNode:
    id: str
    name: str
    category: ItemCategory
    room_id: str | None
    parent_id: str | None = None
    is_portable: bool = False
    is_locked: bool = False
    is_visible: bool = True
    is_hidden: bool = False
    is_examinable: bool = True
    lock_trigger_id: str | None = None
    examine_trigger: str | None = None
    key_id: str | None = None
    leads_to: str | None = None
    contained_item_ids: list[str] = field(default_factory=list)
    surface_item_ids: list[str] = field(default_factory=list)

    @property
    def location(self) -> str:
        """Parent container id, or ``"room"`` for top-level items"""
        return self.parent_id or ROOM_LOCATION

    @property
    def child_ids(self) -> list[str]:
        return [*self.contained_item_ids, *self.surface_item_ids]

    @property
    def is_door(self) -> bool:
        return self.category == ItemCategory.DOOR and bool(self.leads_to)

    @property
    def is_open(self) -> bool:
        """Unlocked, visible and not hidden"""
        return not self.is_locked and self.is_visible and not self.is_hidden


@dataclass
class TriggerNode:
    id: str
    type: TriggerType
    rewards: list[Reward] = field(default_factory=list)
    required_key: str | None = None
    code: str | None = None
    object_id: str | None = None
    is_activated: bool = False

    @property
    def unlocks(self) -> list[str]:
        """Ids unlocked by this trigger's access rewards"""
        return [
            reward.unlocks_door
            for reward in self.rewards
            if isinstance(reward, AccessReward) and reward.unlocks_door
        ]


@dataclass
class KeyNode:
    id: str
    name: str
    type: str
    associated_trigger_id: str | None = None
    related_puzzle: str | None = None
    acquired_from: str | None = None
    room_id: str | None = None
    is_acquired: bool = False

    @property
    def clue_for(self) -> set[str]:
        """Trigger ids this key is a clue or key for"""
        return {t for t in (self.associated_trigger_id, self.related_puzzle) if t}

    def can_activate(self, trigger_id: str) -> bool:
        """Whether this key fits the trigger; a clue's related puzzle wins"""
        return (self.related_puzzle or self.associated_trigger_id) == trigger_id


@dataclass
class RoomNode:
    id: str
    name: str
    is_locked: bool = False
    is_hidden: bool = False
    is_visited: bool = False
    connections: list[RoomConnection] = field(default_factory=list)


@dataclass
class DependencyGraph:
    """Four id-indexed node sets plus the start/goal of the experience.

    ``acquired_key_ids``, ``activated_trigger_ids``, ``taken_item_ids`` and
    ``visited_room_ids`` are only populated by ``from_experience``.
    """

    experience_id: str = ""
    starting_room_id: str = ""
    final_room_id: str | None = None
    items: dict[str, ItemNode] = field(default_factory=dict)
    triggers: dict[str, TriggerNode] = field(default_factory=dict)
    keys: dict[str, KeyNode] = field(default_factory=dict)
    rooms: dict[str, RoomNode] = field(default_factory=dict)
    completion_trigger_ids: list[str] = field(default_factory=list)

    acquired_key_ids: set[str] = field(default_factory=set)
    activated_trigger_ids: set[str] = field(default_factory=set)
    taken_item_ids: set[str] = field(default_factory=set)
    visited_room_ids: set[str] = field(default_factory=set)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_document(cls, document: ExperienceDocument) -> DependencyGraph:
        """Flatten a document into a graph. No simulation happens here."""
        graph = cls(
            experience_id=document.id,
            starting_room_id=document.starting_room_id
            or (document.rooms[0].id if document.rooms else ""),
            final_room_id=document.final_room_id,
            completion_trigger_ids=[
                criterion.trigger_id
                for criterion in document.completion_criteria
                if criterion.type == TRIGGER_ACTIVATED and criterion.trigger_id
            ],
        )

        for room in document.rooms:
            if room.id in graph.rooms:
                continue
            graph.rooms[room.id] = RoomNode(
                id=room.id,
                name=room.name,
                is_locked=room.is_locked,
                is_hidden=room.is_hidden,
                connections=[c.model_copy() for c in room.connected_rooms],
            )
            for item in room.items:
                graph._add_definition(item, room.id, None)

        for trigger in document.triggers:
            graph.triggers.setdefault(trigger.id, _trigger_node(trigger))
        for key in document.keys:
            graph.keys.setdefault(key.id, _key_node(key))
        return graph

    def _add_definition(
        self, definition: ItemDefinition, room_id: str, parent_id: str | None
    ) -> None:
        if definition.id in self.items:
            return
        self.items[definition.id] = ItemNode(
            id=definition.id,
            name=definition.name,
            category=definition.category,
            room_id=room_id,
            parent_id=parent_id,
            is_portable=definition.is_portable,
            is_locked=definition.is_locked,
            is_visible=definition.is_visible,
            is_hidden=definition.is_hidden,
            is_examinable=definition.is_examinable,
            lock_trigger_id=definition.lock_trigger_id,
            examine_trigger=definition.examine_trigger,
            key_id=definition.key_id,
            leads_to=definition.leads_to,
            contained_item_ids=[c.id for c in definition.contained_items],
            surface_item_ids=[c.id for c in definition.surface_items],
        )
        for child in (*definition.contained_items, *definition.surface_items):
            self._add_definition(child, room_id, definition.id)

    @classmethod
    def from_experience(cls, experience: "Experience") -> DependencyGraph:
        """Snapshot a live experience's current state into a fresh graph.

        Every node is a copy; analysing the graph never touches the live
        entities.
        """
        progress = experience.progress
        graph = cls(
            experience_id=experience.id,
            starting_room_id=progress.current_room_id or experience.starting_room_id,
            final_room_id=experience.final_room_id,
            completion_trigger_ids=[
                criterion.trigger_id
                for criterion in experience.completion_criteria
                if criterion.type == TRIGGER_ACTIVATED and criterion.trigger_id
            ],
            acquired_key_ids={k.id for k in experience.keys.values() if k.is_acquired},
            activated_trigger_ids=set(progress.triggers_activated),
            taken_item_ids=set(progress.items_taken),
            visited_room_ids={r.id for r in experience.rooms.values() if r.is_visited},
        )

        for room in experience.rooms.values():
            graph.rooms[room.id] = RoomNode(
                id=room.id,
                name=room.name,
                is_locked=room.is_locked,
                is_hidden=room.is_hidden,
                is_visited=room.is_visited,
                connections=[c.model_copy() for c in room.connected_rooms],
            )
        for item in experience.items.values():
            graph.items[item.id] = ItemNode(
                id=item.id,
                name=item.name,
                category=item.category,
                room_id=item.room_id,
                parent_id=item.parent_id,
                is_portable=item.is_portable,
                is_locked=item.is_locked,
                is_visible=item.is_visible,
                is_hidden=item.is_hidden,
                is_examinable=item.is_examinable,
                lock_trigger_id=item.lock_trigger_id,
                examine_trigger=item.examine_trigger,
                key_id=item.key_id,
                leads_to=item.leads_to,
                contained_item_ids=list(item.contained_item_ids),
                surface_item_ids=list(item.surface_item_ids),
            )
        for trigger in experience.triggers.values():
            graph.triggers[trigger.id] = _trigger_node(trigger)
        for key in experience.keys.values():
            graph.keys[key.id] = _key_node(key)
        return graph

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def keys_for_trigger(self, trigger_id: str) -> list[KeyNode]:
        """Keys and clues bound to a trigger"""
        return [key for key in self.keys.values() if trigger_id in key.clue_for]

    def keys_for_item(self, item: ItemNode) -> list[KeyNode]:
        """Keys an item represents when picked up"""
        return [
            key
            for key in self.keys.values()
            if key.id == item.id
            or key.id == item.key_id
            or key.acquired_from == item.id
        ]

    def unlock_targets(self) -> set[str]:
        return {target for trigger in self.triggers.values() for target in trigger.unlocks}

    def pass_bound(self) -> int:
        """Passes that always suffice: each productive pass adds a fact.

        Facts are reachable items, unlocked targets, reachable triggers,
        known clues, available keys and accessible rooms.
        """
        return (
            len(self.items)
            + len(self.unlock_targets())
            + 2 * len(self.triggers)
            + len(self.keys)
            + len(self.rooms)
            + 1
        )

    def edges(self) -> Iterator[Edge]:
        """All typed edges, grouped by kind"""
        for item in self.items.values():
            for child_id in item.child_ids:
                yield Edge(EdgeKind.CONTAINS, item.id, child_id)
            if item.lock_trigger_id:
                yield Edge(EdgeKind.LOCKED_BY, item.id, item.lock_trigger_id)
        for trigger in self.triggers.values():
            for target in trigger.unlocks:
                yield Edge(EdgeKind.UNLOCKS, trigger.id, target)
        for key in self.keys.values():
            for trigger_id in sorted(key.clue_for):
                yield Edge(EdgeKind.ACTIVATES, key.id, trigger_id)
        for room in self.rooms.values():
            for connection in room.connections:
                yield Edge(
                    EdgeKind.CONNECTS,
                    room.id,
                    connection.connected_room_id,
                    (
                        ("isLocked", connection.is_locked),
                        ("isHidden", connection.is_hidden),
                        ("requiredTrigger", connection.required_trigger),
                    ),
                )


def _trigger_node(trigger: Trigger) -> TriggerNode:
    node = TriggerNode(
        id=trigger.id,
        type=TriggerType(trigger.type),
        rewards=[reward.model_copy(deep=True) for reward in trigger.rewards],
        is_activated=trigger.is_activated,
    )
    if isinstance(trigger, PadLock):
        node.required_key = trigger.required_key
    elif isinstance(trigger, KeypadLock):
        node.code = trigger.code
    elif isinstance(trigger, ExaminationTrigger):
        node.object_id = trigger.object_id
    return node


def _key_node(key: "Key") -> KeyNode:
    return KeyNode(
        id=key.id,
        name=key.name,
        type=key.type,
        associated_trigger_id=key.associated_trigger_id,
        related_puzzle=key.related_puzzle if isinstance(key, ClueKey) else None,
        acquired_from=key.acquired_from,
        room_id=key.room_id,
        is_acquired=key.is_acquired,
    )
