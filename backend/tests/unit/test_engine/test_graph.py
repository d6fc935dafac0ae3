"""Unit tests for the dependency graph builder."""

from puzzlebox.engine.graph import DependencyGraph, EdgeKind
from puzzlebox.engine.runtime import ExperienceRuntime
from puzzlebox.models.document import ExperienceDocument
from puzzlebox.models.entities import TriggerType


class TestFromDocument:
    """Tests for DependencyGraph.from_document."""

    def test_node_sets(self, basement_document) -> None:
        graph = DependencyGraph.from_document(basement_document)

        assert graph.starting_room_id == "basement"
        assert graph.final_room_id == "stairwell"
        assert set(graph.rooms) == {"basement", "stairwell"}
        assert len(graph.items) == 8
        assert set(graph.triggers) == {"desk_lock", "poster_exam", "exit_keypad"}
        assert set(graph.keys) == {"brass_key", "exit_code_clue"}
        assert graph.completion_trigger_ids == ["exit_keypad"]

    def test_item_locations(self, basement_document) -> None:
        """Nested items record their parent; top-level items say 'room'."""
        graph = DependencyGraph.from_document(basement_document)

        assert graph.items["brass_key"].location == "drawer"
        assert graph.items["drawer"].location == "room"
        assert graph.items["flashlight"].room_id == "basement"

    def test_trigger_nodes(self, basement_document) -> None:
        graph = DependencyGraph.from_document(basement_document)

        assert graph.triggers["desk_lock"].type == TriggerType.PAD_LOCK
        assert graph.triggers["desk_lock"].required_key == "brass_key"
        assert graph.triggers["exit_keypad"].code == "4217"
        assert graph.triggers["poster_exam"].object_id == "poster"
        assert graph.triggers["exit_keypad"].unlocks == ["exit_door"]

    def test_door_detection(self, basement_document) -> None:
        graph = DependencyGraph.from_document(basement_document)

        assert graph.items["exit_door"].is_door is True
        assert graph.items["desk"].is_door is False

    def test_first_duplicate_wins(self, basement_data) -> None:
        """Duplicate ids do not crash graph construction."""
        basement_data["rooms"][1]["items"].append({"id": "drawer", "name": "Other"})
        graph = DependencyGraph.from_document(ExperienceDocument.parse(basement_data))

        assert graph.items["drawer"].name == "Old Drawer"

    def test_missing_start_falls_back_to_first_room(self, basement_data) -> None:
        basement_data["startingRoomId"] = ""
        graph = DependencyGraph.from_document(ExperienceDocument.parse(basement_data))

        assert graph.starting_room_id == "basement"


class TestQueries:
    """Tests for graph queries."""

    def test_keys_for_trigger(self, basement_document) -> None:
        graph = DependencyGraph.from_document(basement_document)

        assert [k.id for k in graph.keys_for_trigger("exit_keypad")] == ["exit_code_clue"]

    def test_keys_for_item(self, basement_document) -> None:
        """An item carries a key by matching id or keyId."""
        graph = DependencyGraph.from_document(basement_document)

        keys = graph.keys_for_item(graph.items["brass_key"])

        assert [k.id for k in keys] == ["brass_key"]
        assert graph.keys_for_item(graph.items["flashlight"]) == []

    def test_pass_bound_counts_facts(self, basement_document) -> None:
        graph = DependencyGraph.from_document(basement_document)

        # 8 items + 2 unlock targets + 2*3 triggers + 2 keys + 2 rooms + 1
        assert graph.pass_bound() == 21

    def test_edges(self, basement_document) -> None:
        graph = DependencyGraph.from_document(basement_document)

        edges = {(e.kind, e.source, e.target) for e in graph.edges()}

        assert (EdgeKind.CONTAINS, "drawer", "brass_key") in edges
        assert (EdgeKind.LOCKED_BY, "desk", "desk_lock") in edges
        assert (EdgeKind.UNLOCKS, "exit_keypad", "exit_door") in edges
        assert (EdgeKind.ACTIVATES, "brass_key", "desk_lock") in edges


class TestFromExperience:
    """Tests for DependencyGraph.from_experience."""

    def test_copies_progress(self, runtime) -> None:
        runtime.take_item("brass_key", "drawer")
        runtime.examine_item("poster")

        graph = DependencyGraph.from_experience(runtime.experience)

        assert graph.acquired_key_ids == {"brass_key", "exit_code_clue"}
        assert graph.activated_trigger_ids == {"poster_exam"}
        assert graph.taken_item_ids == {"brass_key"}
        assert graph.visited_room_ids == {"basement"}
        assert graph.items["brass_key"].parent_id is None

    def test_starts_from_current_room(self, runtime) -> None:
        runtime.change_room("stairwell")

        graph = DependencyGraph.from_experience(runtime.experience)

        assert graph.starting_room_id == "stairwell"

    def test_nodes_are_copies(self, experience) -> None:
        """Editing graph nodes never touches live entities."""
        ExperienceRuntime(experience)
        graph = DependencyGraph.from_experience(experience)

        graph.items["desk"].is_locked = False
        graph.triggers["exit_keypad"].rewards.clear()

        assert experience.get_item("desk").is_locked is True
        assert len(experience.get_trigger("exit_keypad").rewards) == 1
