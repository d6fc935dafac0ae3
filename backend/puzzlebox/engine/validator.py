"""
Experience Validator - Proves an experience document can be completed

Checks:
- Structure: required fields present, ids unique
- References: items, keys, triggers, rewards, connections and completion
  criteria only name things that exist
- Reachability: completion triggers and the final room can be reached from
  the starting room (fixed-point simulation, see reachability.py)
- Circular dependencies: no key is locked inside a container that needs it
- Puzzle clues: every keypad code has at least one clue
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from puzzlebox.config import get_log_level
from puzzlebox.engine.graph import DependencyGraph
from puzzlebox.engine.loader import ExperienceLoader, read_document_file
from puzzlebox.engine.reachability import ReachabilityAnalyzer, ReachabilityState
from puzzlebox.models.document import TRIGGER_ACTIVATED, ExperienceDocument
from puzzlebox.models.entities import (
    AccessReward,
    ExaminationTrigger,
    ItemReward,
    KeypadLock,
    KeyReward,
    PadLock,
)
from puzzlebox.models.validation import ValidationReport

logger = logging.getLogger(__name__)


class ExperienceValidator:
    """Validates an experience document"""

    def __init__(self, document: ExperienceDocument, max_passes: int | None = None):
        self.document = document
        self.max_passes = max_passes
        self.report = ValidationReport(experience_id=document.id)

        self.room_ids = {room.id for room in document.rooms}
        self.item_ids = {item.id for _, item in document.walk_items()}
        self.trigger_ids = {trigger.id for trigger in document.triggers}
        self.key_ids = {key.id for key in document.keys}
        self.connection_ids = {
            connection.id
            for room in document.rooms
            for connection in room.connected_rooms
            if connection.id
        }

    def validate(self) -> ValidationReport:
        """Run all validation checks"""
        self._validate_structure()
        self._validate_unique_ids()
        self._validate_item_references()
        self._validate_room_references()
        self._validate_key_references()
        self._validate_trigger_references()
        self._validate_completion_criteria()

        if self.document.rooms:
            graph = DependencyGraph.from_document(self.document)
            state = ReachabilityAnalyzer(graph, self.max_passes).analyze()
            self._record_reachability(graph, state)
            self._validate_reachability(state)
            self._check_circular_dependencies(graph)
            self._validate_puzzle_clues(graph)

        logger.debug(
            f"[{self.report.experience_id}] {len(self.report.errors)} error(s), "
            f"{len(self.report.warnings)} warning(s)"
        )
        return self.report

    # -------------------------------------------------------------------------
    # Structure
    # -------------------------------------------------------------------------

    def _validate_structure(self):
        document = self.document
        if not document.id:
            self.report.add_error("structure", "Experience missing required field: id")
        if not document.name:
            self.report.add_error("structure", "Experience missing required field: name")
        if not document.rooms:
            self.report.add_error("structure", "Experience has no rooms defined")
        if not document.starting_room_id:
            self.report.add_error("structure", "Experience missing startingRoomId")
        elif document.starting_room_id not in self.room_ids:
            self.report.add_error(
                "references",
                f"Starting room '{document.starting_room_id}' does not exist",
            )

        if document.final_room_id and document.final_room_id not in self.room_ids:
            self.report.add_error(
                "references", f"Final room '{document.final_room_id}' does not exist"
            )

        self.report.add_info("structure", f"Experience has {len(document.rooms)} room(s)")

    def _validate_unique_ids(self):
        groups = {
            "room": [room.id for room in self.document.rooms],
            "item": [item.id for _, item in self.document.walk_items()],
            "trigger": [trigger.id for trigger in self.document.triggers],
            "key": [key.id for key in self.document.keys],
        }
        for kind, ids in groups.items():
            for entity_id, count in sorted(Counter(ids).items()):
                if count > 1:
                    self.report.add_error(
                        "structure", f"Duplicate {kind} id '{entity_id}' ({count} times)"
                    )

    # -------------------------------------------------------------------------
    # References
    # -------------------------------------------------------------------------

    def _unlockable_by_reward(self) -> set[str]:
        return {
            reward.unlocks_door
            for trigger in self.document.triggers
            for reward in trigger.rewards
            if isinstance(reward, AccessReward) and reward.unlocks_door
        }

    def _validate_item_references(self):
        unlock_targets = self._unlockable_by_reward()

        for room, item in self.document.walk_items():
            if item.lock_trigger_id and item.lock_trigger_id not in self.trigger_ids:
                self.report.add_error(
                    "references",
                    f"Item '{item.id}' references non-existent trigger: {item.lock_trigger_id}",
                )
            if item.examine_trigger and item.examine_trigger not in self.trigger_ids:
                self.report.add_error(
                    "references",
                    f"Item '{item.id}' references non-existent examination trigger: "
                    f"{item.examine_trigger}",
                )
            if item.key_id and item.key_id not in self.key_ids:
                self.report.add_error(
                    "references",
                    f"Item '{item.id}' references non-existent key: {item.key_id}",
                )
            if item.leads_to and item.leads_to not in self.room_ids:
                self.report.add_error(
                    "references",
                    f"Door '{item.id}' in room '{room.id}' leads to non-existent room: "
                    f"{item.leads_to}",
                )

            if item.lock_trigger_id and not item.is_locked:
                self.report.add_error(
                    "configuration",
                    f"Item '{item.id}' has lockTriggerId '{item.lock_trigger_id}' "
                    f"but isLocked is not true",
                )
            if item.is_locked and not item.lock_trigger_id and item.id not in unlock_targets:
                self.report.add_error(
                    "configuration",
                    f"Item '{item.id}' is locked but no trigger guards or unlocks it",
                )

    def _validate_room_references(self):
        for room in self.document.rooms:
            for connection in room.connected_rooms:
                if connection.connected_room_id not in self.room_ids:
                    self.report.add_error(
                        "references",
                        f"Room '{room.id}' connects to non-existent room: "
                        f"{connection.connected_room_id}",
                    )
                if (
                    connection.required_trigger
                    and connection.required_trigger not in self.trigger_ids
                ):
                    self.report.add_error(
                        "references",
                        f"Room '{room.id}' connection requires non-existent trigger: "
                        f"{connection.required_trigger}",
                    )

    def _validate_key_references(self):
        for key in self.document.keys:
            if key.associated_trigger_id and key.associated_trigger_id not in self.trigger_ids:
                self.report.add_error(
                    "references",
                    f"Key '{key.id}' references non-existent trigger: "
                    f"{key.associated_trigger_id}",
                )
            if key.room_id and key.room_id not in self.room_ids:
                self.report.add_warning(
                    "references",
                    f"Key '{key.id}' is assigned to non-existent room: {key.room_id}",
                )

    def _validate_trigger_references(self):
        valid_unlock_targets = self.item_ids | self.connection_ids
        keys = {key.id: key for key in self.document.keys}

        for trigger in self.document.triggers:
            if isinstance(trigger, PadLock) and trigger.required_key not in keys:
                self.report.add_error(
                    "references",
                    f"Trigger '{trigger.id}' requires non-existent key: {trigger.required_key}",
                )
            elif isinstance(trigger, PadLock) and not keys[
                trigger.required_key
            ].can_activate_trigger(trigger.id):
                self.report.add_error(
                    "references",
                    f"Trigger '{trigger.id}' requires key '{trigger.required_key}' "
                    f"which is not bound to it",
                    {"keyId": trigger.required_key, "triggerId": trigger.id},
                )
            if isinstance(trigger, ExaminationTrigger) and trigger.object_id not in self.item_ids:
                self.report.add_warning(
                    "references",
                    f"Trigger '{trigger.id}' is bound to non-existent object: "
                    f"{trigger.object_id}",
                )

            for reward in trigger.rewards:
                for kind, target, valid in self._reward_targets(reward, valid_unlock_targets):
                    if target not in valid:
                        self.report.add_error(
                            "references",
                            f"Trigger '{trigger.id}' reward references non-existent "
                            f"{kind}: {target}",
                        )

    def _reward_targets(self, reward, valid_unlock_targets: set[str]):
        """(kind, id, valid ids) for every id a reward names"""
        if isinstance(reward, AccessReward):
            if reward.unlocks_door:
                yield "door", reward.unlocks_door, valid_unlock_targets
            if reward.reveals_room:
                yield "room", reward.reveals_room, self.room_ids
            for trigger_id in reward.activates_triggers:
                yield "trigger", trigger_id, self.trigger_ids
        elif isinstance(reward, KeyReward):
            yield "key", reward.key_id, self.key_ids
        elif isinstance(reward, ItemReward):
            for item_id in (reward.item_id, reward.hide_item_id):
                if item_id:
                    yield "item", item_id, self.item_ids

    def _validate_completion_criteria(self):
        criteria = self.document.completion_criteria
        if not criteria:
            self.report.add_warning("completion", "No completion criteria defined")
            return

        for criterion in criteria:
            if criterion.type != TRIGGER_ACTIVATED:
                continue
            if criterion.trigger_id not in self.trigger_ids:
                self.report.add_error(
                    "completion",
                    f"Completion criteria references non-existent trigger: "
                    f"{criterion.trigger_id}",
                )

    # -------------------------------------------------------------------------
    # Reachability
    # -------------------------------------------------------------------------

    def _record_reachability(self, graph: DependencyGraph, state: ReachabilityState):
        report = self.report
        report.reachable_items = sorted(state.reachable_items)
        report.unreachable_items = sorted(graph.items.keys() - state.reachable_items)
        report.reachable_triggers = sorted(state.reachable_triggers)
        report.unreachable_triggers = sorted(
            graph.triggers.keys() - state.reachable_triggers
        )
        report.accessible_rooms = sorted(state.accessible_rooms)
        report.access_paths = {
            item_id: list(path) for item_id, path in sorted(state.access_paths.items())
        }
        report.passes = state.passes

        if not state.converged:
            report.add_error(
                "non_convergence",
                f"Reachability analysis did not converge after {state.passes} passes",
                {"passes": state.passes},
            )

    def _validate_reachability(self, state: ReachabilityState):
        document = self.document

        if document.final_room_id and document.final_room_id in self.room_ids:
            if document.final_room_id not in state.accessible_rooms:
                self.report.add_error(
                    "reachability",
                    f"Final room '{document.final_room_id}' is not reachable from "
                    f"starting room '{document.starting_room_id}'",
                    {
                        "finalRoomId": document.final_room_id,
                        "startingRoomId": document.starting_room_id,
                        "accessibleRooms": sorted(state.accessible_rooms),
                    },
                )

        for criterion in document.completion_criteria:
            if criterion.type != TRIGGER_ACTIVATED:
                continue
            if criterion.trigger_id not in self.trigger_ids:
                continue
            if criterion.trigger_id not in state.reachable_triggers:
                self.report.add_error(
                    "reachability",
                    f"Completion requires trigger '{criterion.trigger_id}' "
                    f"but it is not reachable",
                    {"triggerId": criterion.trigger_id},
                )

        for item_id in self.report.unreachable_items:
            self.report.add_warning(
                "reachability",
                f"Item '{item_id}' is unreachable "
                f"(may be locked or in inaccessible container)",
            )

    def _check_circular_dependencies(self, graph: DependencyGraph):
        """A key locked inside a container that needs that same key"""
        seen: set[tuple[str, str, str]] = set()

        for key_id, key in sorted(graph.keys.items()):
            locations = set()
            if key.acquired_from and key.acquired_from in graph.items:
                locations.add(key.acquired_from)
            for item in graph.items.values():
                if item.key_id == key_id and item.parent_id:
                    locations.add(item.parent_id)

            for container_id in sorted(locations):
                container = graph.items[container_id]
                if not container.is_locked or not container.lock_trigger_id:
                    continue
                trigger = graph.triggers.get(container.lock_trigger_id)
                if trigger is None or trigger.required_key != key_id:
                    continue
                triple = (key_id, container_id, trigger.id)
                if triple in seen:
                    continue
                seen.add(triple)
                self.report.add_error(
                    "circular_dependency",
                    f"Circular dependency: Key '{key_id}' is locked in container "
                    f"'{container_id}' that requires the same key",
                    {"keyId": key_id, "containerId": container_id, "triggerId": trigger.id},
                )

    def _validate_puzzle_clues(self, graph: DependencyGraph):
        for trigger in self.document.triggers:
            if not isinstance(trigger, KeypadLock) or not trigger.code:
                continue
            clues = graph.keys_for_trigger(trigger.id)
            if not clues:
                self.report.add_warning(
                    "puzzle_clues",
                    f"Keypad lock '{trigger.id}' has code '{trigger.code}' "
                    f"but no clues/keys found",
                )
            else:
                self.report.add_info(
                    "puzzle_clues", f"Keypad lock '{trigger.id}' has {len(clues)} clue(s)"
                )


def validate_document(
    data: dict[str, Any], max_passes: int | None = None
) -> ValidationReport:
    """
    Validate raw document data.

    Schema errors are reported as structural errors instead of raised, and
    no reachability analysis is attempted for such documents.
    """
    try:
        document = ExperienceDocument.parse(data)
    except ValidationError as e:
        envelope = data.get("experience", data) if isinstance(data, dict) else {}
        report = ValidationReport(experience_id=str(envelope.get("id") or ""))
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            report.add_error("structure", f"{location}: {error['msg']}")
        return report

    return ExperienceValidator(document, max_passes).validate()


def validate_experience(
    experience_id: str, experiences_dir: str | Path | None = None
) -> ValidationReport:
    """
    Validate an experience by id.

    Args:
        experience_id: The experience identifier (folder name)
        experiences_dir: Optional path to experiences directory

    Returns:
        ValidationReport with errors, warnings and reachability results
    """
    loader = ExperienceLoader(experiences_dir)
    return validate_document(loader.read_raw(experience_id))


def print_report(report: ValidationReport, verbose: bool = False):
    print(f"\n{'='*60}")
    print(f"Experience Validation: {report.experience_id}")
    print(f"{'='*60}\n")

    if report.errors:
        print(f"ERRORS ({len(report.errors)}):")
        for error in report.errors:
            print(f"  ❌ [{error.category}] {error.message}")
            if error.details and verbose:
                print(f"     Details: {error.details}")
        print()

    if report.warnings:
        print(f"WARNINGS ({len(report.warnings)}):")
        for warning in report.warnings:
            print(f"  ⚠️  [{warning.category}] {warning.message}")
        print()

    if report.info:
        print(f"INFO ({len(report.info)}):")
        for info in report.info:
            print(f"  ℹ️  [{info.category}] {info.message}")
        print()

    print("REACHABILITY:")
    print(f"  Reachable items: {len(report.reachable_items)}")
    print(f"  Unreachable items: {len(report.unreachable_items)}")
    print(f"  Reachable triggers: {len(report.reachable_triggers)}")
    print(f"  Accessible rooms: {len(report.accessible_rooms)}")
    print(f"  Passes: {report.passes}")
    if verbose:
        print(f"  Reachable items: {', '.join(report.reachable_items)}")
        print(f"  Unreachable items: {', '.join(report.unreachable_items)}")
        print(f"  Reachable triggers: {', '.join(report.reachable_triggers)}")
        print(f"  Accessible rooms: {', '.join(report.accessible_rooms)}")
    print()

    if report.is_valid:
        print("✅ Experience is completable!")
        if report.warnings:
            print(f"   (but has {len(report.warnings)} warning(s))")
    else:
        print(f"❌ Experience has {len(report.errors)} error(s)")


def main(argv: list[str] | None = None):
    """CLI entry point for experience validation"""
    parser = argparse.ArgumentParser(
        description="Validate that an experience can be completed",
        epilog="Example: puzzlebox-validate training_basement",
    )
    parser.add_argument("experience_id", nargs="?", help="Experience folder name")
    parser.add_argument("--file", type=Path, help="Validate a document file instead")
    parser.add_argument("--dir", type=Path, help="Experiences directory")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show detailed reachability"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level="DEBUG" if args.verbose else get_log_level(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.experience_id and not args.file:
        parser.print_usage()
        sys.exit(1)

    try:
        if args.file:
            report = validate_document(read_document_file(args.file))
        else:
            report = validate_experience(args.experience_id, args.dir)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.json:
        print(report.to_json())
    else:
        print_report(report, verbose=args.verbose)

    sys.exit(0 if report.is_valid else 1)


if __name__ == "__main__":
    main()
