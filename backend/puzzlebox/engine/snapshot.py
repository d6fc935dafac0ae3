"""
Snapshots - serializable progress and per-entity state of an Experience

A snapshot only holds state a player can change. Static structure (names,
descriptions, containment as authored) belongs to the document, so restoring
always starts from an Experience rebuilt from that same document.

Example:
    >>> data = take_snapshot(experience).model_dump_json(by_alias=True)
    >>> restore_snapshot(
    ...     Experience.from_document(document),
    ...     ExperienceSnapshot.model_validate_json(data),
    ... )
"""

from __future__ import annotations

import logging

from pydantic import Field

from puzzlebox.models.entities import PuzzleModel
from puzzlebox.models.experience import Experience
from puzzlebox.models.progress import ProgressState

logger = logging.getLogger(__name__)


class SnapshotMismatchError(ValueError):
    """Snapshot was taken from a different experience"""


class ItemState(PuzzleModel):
    id: str
    is_visible: bool
    is_hidden: bool
    is_locked: bool
    contained_items: list[ItemState] = Field(default_factory=list)
    surface_items: list[ItemState] = Field(default_factory=list)

    def walk(self):
        yield self
        for child in (*self.contained_items, *self.surface_items):
            yield from child.walk()


class ConnectionState(PuzzleModel):
    is_locked: bool
    is_hidden: bool


class RoomState(PuzzleModel):
    is_visited: bool
    is_locked: bool
    is_hidden: bool
    turn_entered: int | None = None
    items: list[ItemState] = Field(default_factory=list)
    connections: dict[str, ConnectionState] = Field(default_factory=dict)


class TriggerState(PuzzleModel):
    is_activated: bool
    is_visible: bool


class KeyState(PuzzleModel):
    is_acquired: bool
    is_hidden: bool
    is_consumed: bool
    acquired_from: str | None = None
    acquired_turn: int | None = None


class ExperienceSnapshot(PuzzleModel):
    """Everything needed to resume a session on a freshly loaded Experience"""

    experience_id: str
    progress: ProgressState
    rooms: dict[str, RoomState] = Field(default_factory=dict)
    inventory: list[ItemState] = Field(default_factory=list)
    triggers: dict[str, TriggerState] = Field(default_factory=dict)
    keys: dict[str, KeyState] = Field(default_factory=dict)


def _item_state(experience: Experience, item_id: str) -> ItemState:
    item = experience.items[item_id]
    return ItemState(
        id=item.id,
        is_visible=item.is_visible,
        is_hidden=item.is_hidden,
        is_locked=item.is_locked,
        contained_items=[_item_state(experience, i) for i in item.contained_item_ids],
        surface_items=[_item_state(experience, i) for i in item.surface_item_ids],
    )


def take_snapshot(experience: Experience) -> ExperienceSnapshot:
    """Capture the current state of an experience"""
    rooms = {
        room.id: RoomState(
            is_visited=room.is_visited,
            is_locked=room.is_locked,
            is_hidden=room.is_hidden,
            turn_entered=room.turn_entered,
            items=[_item_state(experience, item_id) for item_id in room.item_ids],
            connections={
                connection.id: ConnectionState(
                    is_locked=connection.is_locked, is_hidden=connection.is_hidden
                )
                for connection in room.connected_rooms
                if connection.id
            },
        )
        for room in experience.rooms.values()
    }

    return ExperienceSnapshot(
        experience_id=experience.id,
        progress=experience.progress.model_copy(deep=True),
        rooms=rooms,
        inventory=[
            _item_state(experience, item_id)
            for item_id in experience.progress.items_taken
            if item_id in experience.items
        ],
        triggers={
            trigger.id: TriggerState(
                is_activated=trigger.is_activated, is_visible=trigger.is_visible
            )
            for trigger in experience.triggers.values()
        },
        keys={
            key.id: KeyState(
                is_acquired=key.is_acquired,
                is_hidden=key.is_hidden,
                is_consumed=key.is_consumed,
                acquired_from=key.acquired_from,
                acquired_turn=key.acquired_turn,
            )
            for key in experience.keys.values()
        },
    )


def restore_snapshot(experience: Experience, snapshot: ExperienceSnapshot) -> Experience:
    """
    Replay a snapshot onto an Experience built from the same document.

    The experience is reset to its document state first, so any earlier
    progress on it is discarded.

    Raises:
        SnapshotMismatchError: If the snapshot belongs to another experience
    """
    if snapshot.experience_id != experience.id:
        raise SnapshotMismatchError(
            f"Snapshot is for experience '{snapshot.experience_id}', "
            f"not '{experience.id}'"
        )

    experience.reset()

    for item_id in snapshot.progress.items_taken:
        if experience.detach_item(item_id) is None:
            logger.warning(f"Snapshot references unknown item '{item_id}'")

    item_states = [
        state
        for room_state in snapshot.rooms.values()
        for top in room_state.items
        for state in top.walk()
    ]
    item_states.extend(state for top in snapshot.inventory for state in top.walk())
    for state in item_states:
        item = experience.items.get(state.id)
        if item is None:
            continue
        item.is_visible = state.is_visible
        item.is_hidden = state.is_hidden
        item.is_locked = state.is_locked

    for room_id, room_state in snapshot.rooms.items():
        room = experience.rooms.get(room_id)
        if room is None:
            continue
        room.is_visited = room_state.is_visited
        room.is_locked = room_state.is_locked
        room.is_hidden = room_state.is_hidden
        room.turn_entered = room_state.turn_entered
        for connection in room.connected_rooms:
            connection_state = room_state.connections.get(connection.id or "")
            if connection_state is not None:
                connection.is_locked = connection_state.is_locked
                connection.is_hidden = connection_state.is_hidden

    for trigger_id, trigger_state in snapshot.triggers.items():
        trigger = experience.triggers.get(trigger_id)
        if trigger is not None:
            trigger.is_activated = trigger_state.is_activated
            trigger.is_visible = trigger_state.is_visible

    for key_id, key_state in snapshot.keys.items():
        key = experience.keys.get(key_id)
        if key is not None:
            key.is_acquired = key_state.is_acquired
            key.is_hidden = key_state.is_hidden
            key.is_consumed = key_state.is_consumed
            key.acquired_from = key_state.acquired_from
            key.acquired_turn = key_state.acquired_turn

    experience.progress = snapshot.progress.model_copy(deep=True)
    return experience
