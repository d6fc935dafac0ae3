"""
Experience - the aggregate root owning rooms, items, triggers, keys and progress

Items live in a flat arena keyed by id. Nesting from the document is kept as
id references (``parent_id``, ``contained_item_ids``, ``surface_item_ids``),
so lookups and reward application by id never walk a tree.
"""

from __future__ import annotations

import logging
import time

from puzzlebox.models.document import (
    TRIGGER_ACTIVATED,
    CompletionCriterion,
    ExperienceDocument,
    ItemDefinition,
)
from puzzlebox.models.entities import (
    Item,
    ItemPlacement,
    Key,
    Room,
    Trigger,
)
from puzzlebox.models.progress import ProgressState

logger = logging.getLogger(__name__)


class Experience:
    """A live, mutable experience instantiated from a document.

    Attributes:
        document: The document this instance was built from (never mutated)
        rooms: Rooms by id, in document order
        items: Every item in the experience by id
        triggers: Triggers by id (deep copies of the document's)
        keys: Keys by id (deep copies of the document's)
        completion_criteria: Declared completion requirements
        progress: The single global progress record

    Example:
        >>> experience = Experience.from_document(document)
        >>> experience.start_game()
        >>> experience.get_current_room().id
        'basement'
    """

    def __init__(self, document: ExperienceDocument):
        self.document = document
        self._build()

    @classmethod
    def from_document(cls, document: ExperienceDocument) -> Experience:
        return cls(document)

    def _build(self) -> None:
        document = self.document
        self.id = document.id
        self.name = document.name
        self.theme = document.theme
        self.starting_room_id = document.starting_room_id
        self.final_room_id = document.final_room_id

        self.rooms: dict[str, Room] = {}
        self.items: dict[str, Item] = {}
        self.triggers: dict[str, Trigger] = {}
        self.keys: dict[str, Key] = {}
        self.completion_criteria: list[CompletionCriterion] = [
            criterion.model_copy() for criterion in document.completion_criteria
        ]

        for room_def in document.rooms:
            if room_def.id in self.rooms:
                raise ValueError(f"Duplicate room id '{room_def.id}'")
            room = Room(
                id=room_def.id,
                name=room_def.name,
                short_description=room_def.short_description,
                long_description=room_def.long_description,
                is_locked=room_def.is_locked,
                is_hidden=room_def.is_hidden,
                connected_rooms=[c.model_copy() for c in room_def.connected_rooms],
            )
            self.rooms[room.id] = room
            for item_def in room_def.items:
                room.item_ids.append(
                    self._add_item(item_def, room.id, None, ItemPlacement.ROOM)
                )

        for trigger in document.triggers:
            if trigger.id in self.triggers:
                raise ValueError(f"Duplicate trigger id '{trigger.id}'")
            self.triggers[trigger.id] = trigger.model_copy(deep=True)

        for key in document.keys:
            if key.id in self.keys:
                raise ValueError(f"Duplicate key id '{key.id}'")
            self.keys[key.id] = key.model_copy(deep=True)

        self.progress = ProgressState(current_room_id=self.starting_room_id)

    def _add_item(
        self,
        definition: ItemDefinition,
        room_id: str,
        parent_id: str | None,
        placement: ItemPlacement,
    ) -> str:
        if definition.id in self.items:
            raise ValueError(f"Duplicate item id '{definition.id}'")

        item = Item(
            id=definition.id,
            name=definition.name,
            description=definition.description,
            category=definition.category,
            type=definition.type,
            is_visible=definition.is_visible,
            is_hidden=definition.is_hidden,
            is_interactive=definition.is_interactive,
            is_examinable=definition.is_examinable,
            is_portable=definition.is_portable,
            is_locked=definition.is_locked,
            lock_trigger_id=definition.lock_trigger_id,
            examine_trigger=definition.examine_trigger,
            key_id=definition.key_id,
            leads_to=definition.leads_to,
            room_id=room_id,
            parent_id=parent_id,
            placement=placement,
        )
        self.items[item.id] = item

        for child in definition.contained_items:
            item.contained_item_ids.append(
                self._add_item(child, room_id, item.id, ItemPlacement.CONTAINED)
            )
        for child in definition.surface_items:
            item.surface_item_ids.append(
                self._add_item(child, room_id, item.id, ItemPlacement.SURFACE)
            )
        return item.id

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_room(self, room_id: str) -> Room | None:
        return self.rooms.get(room_id)

    def get_current_room(self) -> Room | None:
        return self.rooms.get(self.progress.current_room_id)

    def get_item(self, item_id: str) -> Item | None:
        return self.items.get(item_id)

    def get_trigger(self, trigger_id: str) -> Trigger | None:
        return self.triggers.get(trigger_id)

    def get_key(self, key_id: str) -> Key | None:
        return self.keys.get(key_id)

    def find_item_in_room(self, item_id: str, room_id: str) -> Item | None:
        """Find an item anywhere inside a room (nested items included)"""
        item = self.items.get(item_id)
        if item is None or item.room_id != room_id:
            return None
        return item

    def get_acquired_keys(self) -> list[Key]:
        return [key for key in self.keys.values() if key.is_acquired]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def detach_item(self, item_id: str) -> Item | None:
        """Remove an item (and its subtree) from wherever it currently sits"""
        item = self.items.get(item_id)
        if item is None or item.placement == ItemPlacement.INVENTORY:
            return None

        if item.parent_id is not None:
            parent = self.items[item.parent_id]
            if item.id in parent.contained_item_ids:
                parent.contained_item_ids.remove(item.id)
            if item.id in parent.surface_item_ids:
                parent.surface_item_ids.remove(item.id)
        elif item.room_id is not None:
            room = self.rooms.get(item.room_id)
            if room and item.id in room.item_ids:
                room.item_ids.remove(item.id)

        item.parent_id = None
        item.placement = ItemPlacement.INVENTORY
        for child_id in self._subtree(item.id):
            self.items[child_id].room_id = None
        return item

    def _subtree(self, item_id: str) -> list[str]:
        ids = [item_id]
        for child_id in self.items[item_id].child_ids:
            ids.extend(self._subtree(child_id))
        return ids

    def acquire_key(self, key_id: str, source: str) -> bool:
        """Acquire a key; returns False if unknown, already held or consumed"""
        key = self.keys.get(key_id)
        if key is None or key.is_acquired or key.is_consumed:
            return False
        key.acquire(source, self.progress.turn_count)
        if key_id not in self.progress.keys_acquired:
            self.progress.keys_acquired.append(key_id)
        logger.debug(f"Key '{key_id}' acquired from {source}")
        return True

    def examine_item(self, item_id: str) -> None:
        if item_id not in self.progress.items_examined:
            self.progress.items_examined.append(item_id)

    def increment_turn(self) -> None:
        self.progress.turn_count += 1

    def change_room(self, room_id: str) -> bool:
        room = self.rooms.get(room_id)
        if room is None or room.is_locked:
            return False
        self.progress.current_room_id = room_id
        room.enter(self.progress.turn_count)
        return True

    # -------------------------------------------------------------------------
    # Reward sink (used by puzzlebox.engine.triggers.apply_rewards)
    # -------------------------------------------------------------------------

    def unlock_door(self, door_id: str) -> None:
        """Unlock a door item and matching connection in the current room"""
        room = self.get_current_room()
        if room is None:
            return
        door = self.find_item_in_room(door_id, room.id)
        if door is not None:
            door.unlock()
        if not room.unlock_connection(door_id) and door is None:
            logger.debug(f"Door '{door_id}' not found in room '{room.id}'")

    def reveal_room(self, room_id: str) -> None:
        room = self.rooms.get(room_id)
        if room is not None:
            room.is_hidden = False

    def show_trigger(self, trigger_id: str) -> None:
        trigger = self.triggers.get(trigger_id)
        if trigger is not None:
            trigger.is_visible = True

    def grant_key(self, key_id: str, source: str) -> None:
        self.acquire_key(key_id, source)

    def reveal_item(self, item_id: str) -> None:
        item = self.items.get(item_id)
        if item is not None:
            item.is_visible = True
            item.is_hidden = False

    def hide_item(self, item_id: str) -> None:
        item = self.items.get(item_id)
        if item is not None:
            item.is_visible = False

    # -------------------------------------------------------------------------
    # Game lifecycle
    # -------------------------------------------------------------------------

    def start_game(self) -> None:
        self.progress.game_start_time = time.time()
        self.progress.current_room_id = self.starting_room_id
        start_room = self.rooms.get(self.starting_room_id)
        if start_room is not None:
            start_room.enter(0)

    def check_completion(self) -> bool:
        """True iff every trigger-activated criterion has been met. Pure."""
        for criterion in self.completion_criteria:
            if criterion.type != TRIGGER_ACTIVATED or not criterion.trigger_id:
                continue
            if criterion.trigger_id not in self.progress.triggers_activated:
                return False
        return True

    def complete_game(self) -> None:
        self.progress.is_completed = True
        self.progress.game_end_time = time.time()

    def get_play_time(self) -> int:
        """Seconds played so far (or in total, once completed)"""
        if self.progress.game_start_time is None:
            return 0
        end_time = self.progress.game_end_time or time.time()
        return int(end_time - self.progress.game_start_time)

    def reset(self) -> None:
        """Discard all progress and entity state, back to the document"""
        self._build()
