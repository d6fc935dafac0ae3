"""
Experience runtime - the live, turn-sequenced consumer of an Experience

Each player action validates first and mutates second, so a failed action
leaves entity state untouched. Successful actions advance the turn counter
exactly once and publish a StateChange to subscribers.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections import deque
from typing import Any, Callable

from puzzlebox.config import get_history_size
from puzzlebox.engine.triggers import TriggerEngine
from puzzlebox.models.actions import ActionResult, ActionType, StateChange
from puzzlebox.models.document import TRIGGER_ACTIVATED
from puzzlebox.models.entities import Item, Key, KeypadLock, Room, Trigger
from puzzlebox.models.experience import Experience

logger = logging.getLogger(__name__)

StateListener = Callable[[StateChange], None]


class ExperienceRuntime:
    """Player action API over a single Experience.

    Not thread-safe: callers serialize access per instance.

    Example:
        >>> runtime = ExperienceRuntime(Experience.from_document(document))
        >>> runtime.examine_item("poster").success
        True
        >>> runtime.enter_code("exit_keypad", "4217").success
        True
    """

    def __init__(self, experience: Experience, history_size: int | None = None):
        """Initialize the runtime.

        Args:
            experience: The live experience to drive
            history_size: Max state changes kept (default from config)
        """
        self.experience = experience
        self.engine = TriggerEngine(experience)
        self._listeners: list[StateListener] = []
        self._history: deque[StateChange] = deque(
            maxlen=history_size or get_history_size()
        )

        if experience.progress.game_start_time is None:
            experience.start_game()

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    def subscribe(self, callback: StateListener) -> Callable[[], None]:
        """Register a state-change listener; returns an unsubscribe function"""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def get_history(self, limit: int | None = None) -> list[StateChange]:
        history = list(self._history)
        if limit is not None:
            return history[-limit:] if limit > 0 else []
        return history

    def _emit(
        self, action: ActionType, description: str, data: dict[str, Any]
    ) -> StateChange:
        change = StateChange(
            id=f"{action.value.lower()}_{uuid.uuid4().hex[:8]}",
            turn=self.experience.progress.turn_count,
            action=action,
            description=description,
            timestamp=time.time(),
            data=data,
        )
        self._history.append(change)
        for listener in list(self._listeners):
            listener(change)
        return change

    def _succeed(
        self,
        result: ActionResult,
        description: str,
        data: dict[str, Any],
    ) -> ActionResult:
        """Record a successful action: one turn, then one notification.

        Notifications carry the turn the action completed on.
        """
        self.experience.increment_turn()
        self._emit(result.action, description, data)
        logger.debug(
            f"[{self.experience.id}] {result.action.value} succeeded, "
            f"turn={self.experience.progress.turn_count}"
        )

        if not self.experience.progress.is_completed and self.check_completion():
            self.experience.complete_game()
            self._emit(
                ActionType.EXPERIENCE_COMPLETED,
                f"Completed {self.experience.name or self.experience.id}",
                {"playTime": self.experience.get_play_time()},
            )
            result.completed = True
        return result

    @staticmethod
    def _fail(action: ActionType, message: str) -> ActionResult:
        logger.debug(f"{action.value} failed: {message}")
        return ActionResult(success=False, action=action, message=message)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def _visible_item_here(self, item_id: str) -> Item | None:
        room = self.experience.get_current_room()
        if room is None:
            return None
        item = self.experience.find_item_in_room(item_id, room.id)
        if item is None or not item.is_visible or item.is_hidden:
            return None
        parent_id = item.parent_id
        while parent_id is not None:
            parent = self.experience.items[parent_id]
            if parent.is_locked or not parent.is_visible or parent.is_hidden:
                return None
            parent_id = parent.parent_id
        return item

    def get_current_room(self) -> Room | None:
        return self.experience.get_current_room()

    def get_trigger(self, trigger_id: str) -> Trigger | None:
        return self.experience.get_trigger(trigger_id)

    def get_key(self, key_id: str) -> Key | None:
        return self.experience.get_key(key_id)

    def get_acquired_keys(self) -> list[Key]:
        return self.experience.get_acquired_keys()

    def check_completion(self) -> bool:
        return self.experience.check_completion()

    def get_statistics(self) -> dict[str, Any]:
        """Summary numbers for progress displays"""
        progress = self.experience.progress
        required = [
            criterion.trigger_id
            for criterion in self.experience.completion_criteria
            if criterion.type == TRIGGER_ACTIVATED and criterion.trigger_id
        ]
        met = [t for t in required if t in progress.triggers_activated]
        percentage = 100 if not required else round(100 * len(met) / len(required))

        return {
            "turns": progress.turn_count,
            "hintsUsed": progress.hints_used,
            "itemsExamined": len(progress.items_examined),
            "itemsTaken": len(progress.items_taken),
            "triggersActivated": len(progress.triggers_activated),
            "keysAcquired": len(progress.keys_acquired),
            "roomsVisited": sum(
                1 for room in self.experience.rooms.values() if room.is_visited
            ),
            "playTime": self.experience.get_play_time(),
            "completionPercentage": percentage,
            "isCompleted": progress.is_completed,
        }

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def examine_item(self, item_id: str) -> ActionResult:
        """Examine a visible item in the current room.

        Records the examination once and fires the item's examine trigger
        (with the item id as input) if it has one.
        """
        action = ActionType.EXAMINE_ITEM
        item = self._visible_item_here(item_id)
        if item is None:
            return self._fail(action, "You don't see that here")
        if not item.is_examinable:
            return self._fail(action, f"There's nothing more to see on the {item.name}")

        self.experience.examine_item(item_id)

        result = ActionResult(
            success=True,
            action=action,
            message=f"You examine the {item.name}",
            description=item.description,
        )
        if item.examine_trigger:
            activation = self.engine.activate(item.examine_trigger, item_id)
            if activation.success:
                result.messages = activation.messages
                result.rewards = [r.model_dump(by_alias=True) for r in activation.rewards]

        return self._succeed(
            result,
            f"Examined {item.name}",
            {"itemId": item_id, "triggerId": item.examine_trigger},
        )

    def open_container(self, container_id: str) -> ActionResult:
        """Look inside an unlocked container without removing anything"""
        action = ActionType.OPEN_CONTAINER
        container = self._visible_item_here(container_id)
        if container is None:
            return self._fail(action, "Container not found")
        if container.is_locked:
            return self._fail(action, f"The {container.name} is locked")

        items = [
            self.experience.items[child_id].summary()
            for child_id in container.contained_item_ids
            if self.experience.items[child_id].is_visible
        ]
        message = (
            f"Found {len(items)} item(s) inside"
            if items
            else f"The {container.name} is empty"
        )
        result = ActionResult(success=True, action=action, message=message, items=items)
        return self._succeed(
            result,
            f"Opened {container.name}",
            {"containerId": container_id, "itemCount": len(items)},
        )

    def take_item(self, item_id: str, container_id: str | None = None) -> ActionResult:
        """Pick up a portable item from the room floor or a container.

        Args:
            item_id: The item to take
            container_id: The unlocked container (or surface) holding it;
                None for items resting directly in the room
        """
        action = ActionType.TAKE_ITEM
        room = self.experience.get_current_room()
        if room is None:
            return self._fail(action, "No current room")

        if container_id is None:
            if item_id not in room.item_ids:
                return self._fail(action, "Item not found")
            source = "room"
        else:
            container = self._visible_item_here(container_id)
            if container is None:
                return self._fail(action, "Container not found")
            if item_id not in container.child_ids:
                return self._fail(action, "Item not found")
            if container.is_locked:
                return self._fail(action, f"The {container.name} is locked")
            source = container_id

        item = self.experience.items[item_id]
        if not item.is_visible or item.is_hidden:
            return self._fail(action, "Item not found")
        if not item.is_portable:
            return self._fail(action, f"You can't take the {item.name}")

        self.experience.detach_item(item_id)
        self.experience.progress.items_taken.append(item_id)

        result = ActionResult(success=True, action=action, message=f"Took {item.name}")
        if item.key_id and self.experience.acquire_key(item.key_id, source):
            key = self.experience.keys[item.key_id]
            result.key = key.model_dump(by_alias=True)

        return self._succeed(
            result,
            f"Took {item.name}",
            {"itemId": item_id, "containerId": container_id, "keyId": item.key_id},
        )

    def use_key(self, key_id: str, trigger_id: str) -> ActionResult:
        """Use an acquired key on a trigger; consumable keys are used up"""
        action = ActionType.USE_KEY
        key = self.experience.get_key(key_id)
        if key is None:
            return self._fail(action, "Key not found")
        if not key.is_acquired:
            return self._fail(action, "You don't have that key")
        trigger = self.experience.get_trigger(trigger_id)
        if trigger is None:
            return self._fail(action, "Trigger not found")

        activation = self.engine.activate(trigger_id, key)
        if not activation.success:
            return self._fail(action, activation.message or "Nothing happens")

        if key.is_consumable:
            key.consume()

        result = ActionResult(
            success=True,
            action=action,
            message=activation.message or f"Used {key.name} on {trigger.name}",
            messages=activation.messages,
            rewards=[r.model_dump(by_alias=True) for r in activation.rewards],
        )
        return self._succeed(
            result,
            f"Used {key.name or key_id} on {trigger.name or trigger_id}",
            {"keyId": key_id, "triggerId": trigger_id},
        )

    def enter_code(self, trigger_id: str, code: str) -> ActionResult:
        """Enter a code on a keypad; every attempt counts against its limit"""
        action = ActionType.ENTER_CODE
        if not isinstance(self.experience.get_trigger(trigger_id), KeypadLock):
            return self._fail(action, "There's no keypad like that here")
        activation = self.engine.activate(trigger_id, code)
        if not activation.success:
            return self._fail(action, activation.message or "Incorrect code")

        result = ActionResult(
            success=True,
            action=action,
            message=activation.message or "Correct code",
            messages=activation.messages,
            rewards=[r.model_dump(by_alias=True) for r in activation.rewards],
        )
        return self._succeed(
            result, "Entered correct code", {"triggerId": trigger_id}
        )

    def change_room(self, room_id: str) -> ActionResult:
        """Move to another room; locked and unknown rooms are refused"""
        action = ActionType.CHANGE_ROOM
        if not self.experience.change_room(room_id):
            return self._fail(action, "Cannot enter that room")

        room = self.experience.rooms[room_id]
        result = ActionResult(
            success=True,
            action=action,
            message=room.long_description or f"Entered {room.name or room_id}",
        )
        return self._succeed(result, f"Entered {room.name or room_id}", {"roomId": room_id})
