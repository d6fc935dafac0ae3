"""
Reachability analysis - fixed-point forward simulation over a DependencyGraph

Starting from the starting room, each pass derives new facts (reachable
items and triggers, available keys, known clues, unlocked doors, accessible
rooms) from the facts already known, until a pass adds nothing. Facts are
only ever added, so the loop terminates within ``graph.pass_bound()`` passes.

Triggers reached during a pass fire their rewards at the end of that pass,
in id order, through the same ``apply_rewards`` the live engine uses.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field

from puzzlebox.config import get_max_passes
from puzzlebox.engine.graph import DependencyGraph, ItemNode, TriggerNode
from puzzlebox.engine.triggers import apply_rewards
from puzzlebox.models.entities import RoomConnection, TriggerType

logger = logging.getLogger(__name__)


@dataclass
class ReachabilityState:
    """Simulated progress for static analysis; never shared with a runtime.

    Implements the RewardSink protocol: rewards record facts instead of
    mutating entities, and hiding an item never removes reachability.
    """

    reachable_items: set[str] = field(default_factory=set)
    reachable_triggers: set[str] = field(default_factory=set)
    available_keys: set[str] = field(default_factory=set)
    known_clues: set[str] = field(default_factory=set)
    accessible_rooms: set[str] = field(default_factory=set)
    unlocked_items: set[str] = field(default_factory=set)
    revealed_rooms: set[str] = field(default_factory=set)
    visible_triggers: set[str] = field(default_factory=set)
    fired_triggers: set[str] = field(default_factory=set)
    access_paths: dict[str, list[str]] = field(default_factory=dict)
    passes: int = 0
    converged: bool = True
    _firing: str | None = field(default=None, repr=False, compare=False)

    def signature(self) -> tuple[int, ...]:
        """Fact counts; sets only grow, so equal counts mean no change"""
        return (
            len(self.reachable_items),
            len(self.reachable_triggers),
            len(self.available_keys),
            len(self.known_clues),
            len(self.accessible_rooms),
            len(self.unlocked_items),
        )

    def reach_item(self, item_id: str, path: list[str]) -> bool:
        if item_id in self.reachable_items:
            return False
        self.reachable_items.add(item_id)
        self.access_paths[item_id] = path
        return True

    def fire(self, trigger: TriggerNode) -> None:
        """Apply a trigger's rewards at most once"""
        if trigger.id in self.fired_triggers:
            return
        self.fired_triggers.add(trigger.id)
        self._firing = trigger.id
        try:
            apply_rewards(trigger.rewards, self, trigger.id)
        finally:
            self._firing = None

    # RewardSink ---------------------------------------------------------------

    def unlock_door(self, door_id: str) -> None:
        self.unlocked_items.add(door_id)

    def reveal_room(self, room_id: str) -> None:
        self.revealed_rooms.add(room_id)

    def show_trigger(self, trigger_id: str) -> None:
        self.visible_triggers.add(trigger_id)

    def grant_key(self, key_id: str, source: str) -> None:
        self.available_keys.add(key_id)

    def reveal_item(self, item_id: str) -> None:
        self.reach_item(item_id, [self._firing or "reward", f"[reveals {item_id}]"])

    def hide_item(self, item_id: str) -> None:
        return None


class ReachabilityAnalyzer:
    """Computes the maximal reachable set of a dependency graph.

    Example:
        >>> state = ReachabilityAnalyzer(graph).analyze()
        >>> "brass_key" in state.available_keys
        True
    """

    def __init__(self, graph: DependencyGraph, max_passes: int | None = None):
        """Initialize the analyzer.

        Args:
            graph: The graph to analyse (only read, never mutated)
            max_passes: Optional lower cap on passes; the graph-derived
                bound is used when None and PUZZLEBOX_MAX_PASSES is unset
        """
        self.graph = graph
        bound = graph.pass_bound()
        override = max_passes or get_max_passes()
        self.max_passes = min(bound, override) if override else bound

    def analyze(self, seed: ReachabilityState | None = None) -> ReachabilityState:
        """Run passes until nothing new is derived.

        Args:
            seed: A previous result to resume from; analysing a converged
                result again yields the same sets

        Returns:
            The final state; ``converged`` is False if the pass cap was hit
            while facts were still being added
        """
        state = copy.deepcopy(seed) if seed is not None else ReachabilityState()
        state.passes = 0
        state.converged = True
        self._seed(state)

        while True:
            before = state.signature()
            self._run_pass(state)
            state.passes += 1
            changed = state.signature() != before
            logger.debug(
                f"[{self.graph.experience_id}] pass {state.passes}: "
                f"items={len(state.reachable_items)} "
                f"triggers={len(state.reachable_triggers)} "
                f"rooms={len(state.accessible_rooms)}"
            )
            if not changed:
                break
            if state.passes >= self.max_passes:
                state.converged = False
                logger.warning(
                    f"[{self.graph.experience_id}] reachability did not converge "
                    f"after {state.passes} passes"
                )
                break
        return state

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    def _seed(self, state: ReachabilityState) -> None:
        graph = self.graph
        if graph.starting_room_id in graph.rooms:
            state.accessible_rooms.add(graph.starting_room_id)
        state.accessible_rooms.update(graph.visited_room_ids)
        state.available_keys.update(graph.acquired_key_ids & graph.keys.keys())

        for trigger_id in graph.activated_trigger_ids & graph.triggers.keys():
            state.reachable_triggers.add(trigger_id)
            state.fired_triggers.add(trigger_id)
        for item_id in sorted(graph.taken_item_ids & graph.items.keys()):
            state.reach_item(item_id, ["inventory", item_id])

        self._seed_room_items(state)

    def _seed_room_items(self, state: ReachabilityState) -> None:
        """Open top-level items in accessible rooms are reachable"""
        for item in self._sorted_items():
            if (
                item.parent_id is None
                and item.room_id in state.accessible_rooms
                and item.is_open
            ):
                state.reach_item(item.id, [item.room_id, item.id])

    # -------------------------------------------------------------------------
    # One pass
    # -------------------------------------------------------------------------

    def _run_pass(self, state: ReachabilityState) -> None:
        self._process_reachable_items(state)
        self._derive_clues(state)
        self._rescan_locked_items(state)
        rooms_before = len(state.accessible_rooms)
        self._open_doors(state)
        self._follow_connections(state)
        if len(state.accessible_rooms) > rooms_before:
            self._seed_room_items(state)
        self._check_keypads(state)
        self._check_pad_locks(state)
        self._fire_pending(state)

    def _process_reachable_items(self, state: ReachabilityState) -> None:
        """Keys from portable items, examine triggers, container contents"""
        graph = self.graph
        for item_id in sorted(state.reachable_items):
            item = graph.items.get(item_id)
            if item is None:
                continue

            if item.is_portable:
                for key in graph.keys_for_item(item):
                    state.available_keys.add(key.id)

            trigger = graph.triggers.get(item.examine_trigger or "")
            if trigger is not None and self._examine_fires(item, trigger):
                state.reachable_triggers.add(trigger.id)
                state.known_clues.add(trigger.id)

            if item.id in graph.taken_item_ids:
                continue
            for child_id in item.child_ids:
                child = graph.items.get(child_id)
                if child is None or child.id in state.reachable_items:
                    continue
                if not child.is_visible or child.is_hidden:
                    continue
                if not child.is_locked:
                    state.reach_item(child_id, [*self._path(state, item_id), child_id])
                elif self._can_unlock(state, child):
                    state.reach_item(
                        child_id,
                        [*self._path(state, item_id), self._unlock_step(child), child_id],
                    )

    def _derive_clues(self, state: ReachabilityState) -> None:
        """An available key makes its bound trigger's clue known"""
        for key_id in sorted(state.available_keys):
            key = self.graph.keys.get(key_id)
            if key is None:
                continue
            state.known_clues.update(key.clue_for & self.graph.triggers.keys())

    def _rescan_locked_items(self, state: ReachabilityState) -> None:
        """Second look at every locked item whose location is reachable.

        A single forward sweep misses locks whose key became available later
        in the same pass.
        """
        for item in self._sorted_items():
            if item.id in state.reachable_items or not item.is_locked:
                continue
            if not item.is_visible or item.is_hidden:
                continue
            if item.parent_id is None:
                if item.room_id not in state.accessible_rooms:
                    continue
                parent_path = [item.room_id]
            elif item.parent_id in state.reachable_items:
                parent_path = self._path(state, item.parent_id)
            else:
                continue
            if self._can_unlock(state, item):
                state.reach_item(
                    item.id, [*parent_path, self._unlock_step(item), item.id]
                )

    def _open_doors(self, state: ReachabilityState) -> None:
        """Doors in accessible rooms open their target room when passable"""
        graph = self.graph
        for item in self._sorted_items():
            if not item.is_door or item.room_id not in state.accessible_rooms:
                continue
            target = graph.rooms.get(item.leads_to)
            if target is None or target.id in state.accessible_rooms or target.is_locked:
                continue
            if not item.is_locked or self._can_unlock(state, item):
                state.accessible_rooms.add(target.id)

    def _follow_connections(self, state: ReachabilityState) -> None:
        """Room connection records not expressed as door items"""
        graph = self.graph
        for room_id in sorted(state.accessible_rooms):
            room = graph.rooms.get(room_id)
            if room is None:
                continue
            for connection in room.connections:
                target = graph.rooms.get(connection.connected_room_id)
                if target is None or target.id in state.accessible_rooms:
                    continue
                if target.is_locked:
                    continue
                if self._connection_passable(state, connection):
                    state.accessible_rooms.add(target.id)

    def _connection_passable(
        self, state: ReachabilityState, connection: RoomConnection
    ) -> bool:
        if not connection.is_locked:
            return True
        if connection.id and connection.id in state.unlocked_items:
            return True
        if connection.required_trigger:
            return connection.required_trigger in state.reachable_triggers
        # A locked connection with nothing able to unlock it is treated as
        # decorative, as older documents use isLocked purely for display.
        return connection.id is None

    def _check_keypads(self, state: ReachabilityState) -> None:
        """A keypad is reachable once any clue for its code is obtainable"""
        graph = self.graph
        for trigger in self._sorted_triggers():
            if trigger.type != TriggerType.KEYPAD_LOCK:
                continue
            if trigger.id in state.reachable_triggers:
                continue
            if trigger.id in state.known_clues or any(
                self._clue_obtainable(state, key.id)
                for key in graph.keys_for_trigger(trigger.id)
            ):
                state.reachable_triggers.add(trigger.id)

    def _check_pad_locks(self, state: ReachabilityState) -> None:
        """A key is used from anywhere, so a fitting key reaches its pad lock"""
        for trigger in self._sorted_triggers():
            if trigger.type != TriggerType.PAD_LOCK:
                continue
            if trigger.id in state.reachable_triggers:
                continue
            if self._key_fits(state, trigger):
                state.reachable_triggers.add(trigger.id)

    def _clue_obtainable(self, state: ReachabilityState, key_id: str) -> bool:
        if key_id in state.available_keys or key_id in state.reachable_items:
            return True
        return any(
            item.is_portable and item.key_id == key_id
            for item in self.graph.items.values()
            if item.id in state.reachable_items
        )

    def _fire_pending(self, state: ReachabilityState) -> None:
        """Fire rewards of triggers reached this pass, in id order"""
        for trigger_id in sorted(state.reachable_triggers - state.fired_triggers):
            trigger = self.graph.triggers.get(trigger_id)
            if trigger is None:
                continue
            state.fire(trigger)
        state.reachable_items &= self.graph.items.keys()
        state.available_keys &= self.graph.keys.keys()
        for stale in set(state.access_paths) - state.reachable_items:
            del state.access_paths[stale]

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _can_unlock(self, state: ReachabilityState, item: ItemNode) -> bool:
        """Whether a locked item can be opened with what is known so far.

        Marks the guarding trigger reachable when it is the way in.
        """
        if item.id in state.unlocked_items:
            return True
        trigger = self.graph.triggers.get(item.lock_trigger_id or "")
        if trigger is None:
            return False

        satisfiable = trigger.id in state.reachable_triggers
        if trigger.type == TriggerType.PAD_LOCK:
            satisfiable = satisfiable or self._key_fits(state, trigger)
        elif trigger.type == TriggerType.KEYPAD_LOCK:
            satisfiable = satisfiable or trigger.id in state.known_clues

        if satisfiable:
            state.reachable_triggers.add(trigger.id)
        return satisfiable

    def _key_fits(self, state: ReachabilityState, trigger: TriggerNode) -> bool:
        """The pad lock's required key is available and bound to it"""
        key = self.graph.keys.get(trigger.required_key or "")
        return (
            key is not None
            and key.id in state.available_keys
            and key.can_activate(trigger.id)
        )

    @staticmethod
    def _examine_fires(item: ItemNode, trigger: TriggerNode) -> bool:
        """Examining the item activates the trigger at play time"""
        return (
            item.is_examinable
            and trigger.type == TriggerType.EXAMINATION
            and trigger.object_id == item.id
        )

    def _unlock_step(self, item: ItemNode) -> str:
        trigger = self.graph.triggers.get(item.lock_trigger_id or "")
        if trigger is not None and trigger.required_key:
            return f"[unlock with {trigger.required_key}]"
        if trigger is not None:
            return f"[unlock via {trigger.id}]"
        return "[unlocked by reward]"

    @staticmethod
    def _path(state: ReachabilityState, item_id: str) -> list[str]:
        return state.access_paths.get(item_id, [item_id])

    def _sorted_items(self) -> list[ItemNode]:
        return [self.graph.items[i] for i in sorted(self.graph.items)]

    def _sorted_triggers(self) -> list[TriggerNode]:
        return [self.graph.triggers[t] for t in sorted(self.graph.triggers)]
