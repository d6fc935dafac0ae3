"""Unit tests for experience snapshots."""

import pytest

from puzzlebox.engine.runtime import ExperienceRuntime
from puzzlebox.engine.snapshot import (
    ExperienceSnapshot,
    SnapshotMismatchError,
    restore_snapshot,
    take_snapshot,
)
from puzzlebox.models.entities import ItemPlacement
from puzzlebox.models.experience import Experience


@pytest.fixture
def played(runtime) -> ExperienceRuntime:
    """Runtime after taking the brass key and opening the desk"""
    runtime.take_item("brass_key", "drawer")
    runtime.use_key("brass_key", "desk_lock")
    runtime.take_item("flashlight", "desk")
    return runtime


class TestTakeSnapshot:
    """Tests for take_snapshot."""

    def test_captures_progress(self, played) -> None:
        snapshot = take_snapshot(played.experience)

        assert snapshot.experience_id == "test_basement"
        assert snapshot.progress.turn_count == 3
        assert snapshot.progress.items_taken == ["brass_key", "flashlight"]
        assert snapshot.triggers["desk_lock"].is_activated is True
        assert snapshot.keys["brass_key"].acquired_from == "drawer"

    def test_inventory_separate_from_rooms(self, played) -> None:
        snapshot = take_snapshot(played.experience)

        assert [item.id for item in snapshot.inventory] == ["brass_key", "flashlight"]
        room_items = [
            state.id for top in snapshot.rooms["basement"].items for state in top.walk()
        ]
        assert "flashlight" not in room_items
        assert "scratch_marks" in room_items

    def test_json_uses_camel_case(self, played) -> None:
        data = take_snapshot(played.experience).model_dump(by_alias=True)

        assert data["experienceId"] == "test_basement"
        assert data["progress"]["itemsTaken"] == ["brass_key", "flashlight"]
        assert data["rooms"]["basement"]["isVisited"] is True


class TestRestoreSnapshot:
    """Tests for restore_snapshot."""

    def test_round_trip_through_json(self, played, basement_document, snapshot_json) -> None:
        """A restored experience snapshots identically."""
        data = snapshot_json(played.experience)
        fresh = Experience.from_document(basement_document)

        restore_snapshot(fresh, ExperienceSnapshot.model_validate_json(data))

        assert snapshot_json(fresh) == data

    def test_restored_arena_matches(self, played, basement_document) -> None:
        fresh = Experience.from_document(basement_document)

        restore_snapshot(fresh, take_snapshot(played.experience))

        flashlight = fresh.get_item("flashlight")
        assert flashlight.placement == ItemPlacement.INVENTORY
        assert "flashlight" not in fresh.get_item("desk").contained_item_ids
        assert fresh.get_item("desk").is_locked is False
        assert fresh.get_item("scratch_marks").is_visible is True
        assert fresh.get_key("brass_key").is_acquired is True

    def test_restored_game_continues(self, played, basement_document) -> None:
        """Play resumes where the snapshot left off."""
        fresh = Experience.from_document(basement_document)
        restore_snapshot(fresh, take_snapshot(played.experience))
        runtime = ExperienceRuntime(fresh)

        runtime.examine_item("poster")
        result = runtime.enter_code("exit_keypad", "4217")

        assert result.completed is True
        assert fresh.progress.turn_count == 5

    def test_restore_discards_prior_progress(self, played, basement_document) -> None:
        early = take_snapshot(Experience.from_document(basement_document))

        restore_snapshot(played.experience, early)

        assert played.experience.progress.items_taken == []
        assert "brass_key" in played.experience.get_item("drawer").contained_item_ids

    def test_mismatched_experience(self, played, basement_data) -> None:
        snapshot = take_snapshot(played.experience)
        snapshot.experience_id = "other"

        with pytest.raises(SnapshotMismatchError):
            restore_snapshot(played.experience, snapshot)
