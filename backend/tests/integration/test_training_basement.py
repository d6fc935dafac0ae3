"""
Integration tests: validation and play-through of complete experiences.

These run the validator and the runtime over the same documents and check
that what the validator proves reachable can actually be done in play.
"""

import pytest

from puzzlebox.engine.graph import DependencyGraph
from puzzlebox.engine.loader import ExperienceLoader
from puzzlebox.engine.reachability import ReachabilityAnalyzer
from puzzlebox.engine.runtime import ExperienceRuntime
from puzzlebox.engine.validator import ExperienceValidator
from puzzlebox.models.document import ExperienceDocument
from puzzlebox.models.experience import Experience

pytestmark = pytest.mark.integration


@pytest.fixture
def bundled() -> Experience:
    """The bundled training experience, validated on load"""
    return ExperienceLoader().load_experience("training_basement")


class TestBundledExperience:
    """The experience shipped in experiences/."""

    def test_play_through(self, bundled) -> None:
        runtime = ExperienceRuntime(bundled)

        steps = [
            runtime.open_container("drawer"),
            runtime.take_item("brass_key", "drawer"),
            runtime.use_key("brass_key", "desk_lock"),
            runtime.take_item("flashlight", "desk"),
            runtime.take_item("coffee_mug", "desk"),
            runtime.examine_item("poster"),
            runtime.enter_code("exit_keypad", "4217"),
            runtime.change_room("stairwell"),
        ]

        assert [step.success for step in steps] == [True] * len(steps)
        assert steps[6].completed is True
        assert bundled.progress.is_completed is True
        assert bundled.progress.turn_count == len(steps)

    def test_validator_agrees_with_live_analysis(self, bundled) -> None:
        """Analysing the fresh live experience gives the validator's result."""
        report = ExperienceValidator(bundled.document).validate()
        bundled.start_game()

        state = ReachabilityAnalyzer(DependencyGraph.from_experience(bundled)).analyze()

        assert sorted(state.reachable_items) == report.reachable_items
        assert sorted(state.accessible_rooms) == report.accessible_rooms


class TestBrassKeyScenario:
    """Drawer key opens the desk in the same room."""

    def test_reachability(self, basement_document) -> None:
        report = ExperienceValidator(basement_document).validate()

        assert "brass_key" in report.reachable_items
        assert "desk_lock" in report.reachable_triggers
        assert "flashlight" in report.reachable_items
        assert "scratch_marks" in report.reachable_items

    def test_runtime(self, runtime) -> None:
        runtime.take_item("brass_key", "drawer")
        result = runtime.use_key("brass_key", "desk_lock")

        assert result.success is True
        assert runtime.experience.get_item("desk").is_locked is False

    def test_use_key_is_idempotent(self, runtime, snapshot_json) -> None:
        """A second activation fails and changes nothing."""
        runtime.take_item("brass_key", "drawer")
        runtime.use_key("brass_key", "desk_lock")
        before = snapshot_json(runtime.experience)

        result = runtime.use_key("brass_key", "desk_lock")

        assert result.success is False
        assert snapshot_json(runtime.experience) == before
        assert runtime.experience.progress.triggers_activated.count("desk_lock") == 1


class TestPosterKeypadScenario:
    """Examining the poster yields the clue for the exit keypad."""

    def test_reachability(self, basement_document) -> None:
        report = ExperienceValidator(basement_document).validate()

        assert "poster_exam" in report.reachable_triggers
        assert "exit_keypad" in report.reachable_triggers
        assert "stairwell" in report.accessible_rooms
        assert report.is_valid is True

    def test_wrong_code(self, runtime) -> None:
        """A wrong code counts an attempt and nothing else."""
        result = runtime.enter_code("exit_keypad", "0000")

        trigger = runtime.get_trigger("exit_keypad")
        assert result.success is False
        assert trigger.is_activated is False
        assert trigger.attempt_count == 1
        assert runtime.experience.progress.turn_count == 0

    def test_clue_then_code(self, runtime) -> None:
        runtime.examine_item("poster")
        result = runtime.enter_code("exit_keypad", "4217")

        assert result.success is True
        assert result.completed is True
        assert runtime.experience.get_item("exit_door").is_locked is False


class TestBrokenLayouts:
    """Validator errors for layouts a player could not finish."""

    def test_unreachable_final_room(self, basement_data) -> None:
        """Removing the door leaves exactly one reachability error."""
        basement_data["rooms"][0]["items"].pop(3)
        basement_data["triggers"][2]["rewards"] = []
        basement_data["completionCriteria"] = []

        report = ExperienceValidator(ExperienceDocument.parse(basement_data)).validate()

        assert len(report.errors_in("reachability")) == 1
        assert report.errors_in("reachability")[0].details["finalRoomId"] == "stairwell"

    def test_circular_key(self, basement_data) -> None:
        room = basement_data["rooms"][0]
        room["items"][1]["containedItems"].append(room["items"][0]["containedItems"].pop())

        report = ExperienceValidator(ExperienceDocument.parse(basement_data)).validate()

        assert len(report.errors_in("circular_dependency")) == 1
        assert report.is_valid is False


class TestInvariants:
    """Cross-cutting runtime and analysis properties."""

    def test_turns_never_decrease(self, runtime) -> None:
        actions = [
            lambda: runtime.examine_item("drawer"),
            lambda: runtime.take_item("poster"),
            lambda: runtime.take_item("brass_key", "drawer"),
            lambda: runtime.use_key("brass_key", "exit_keypad"),
            lambda: runtime.use_key("brass_key", "desk_lock"),
            lambda: runtime.change_room("attic"),
            lambda: runtime.change_room("stairwell"),
        ]
        turns = [runtime.experience.progress.turn_count]

        for action in actions:
            result = action()
            expected = turns[-1] + (1 if result.success else 0)
            turns.append(runtime.experience.progress.turn_count)
            assert turns[-1] == expected

        assert turns == sorted(turns)

    def test_fixed_point_is_stable(self, basement_document) -> None:
        analyzer = ReachabilityAnalyzer(DependencyGraph.from_document(basement_document))
        state = analyzer.analyze()

        again = analyzer.analyze(seed=state)

        assert again.reachable_items == state.reachable_items
        assert again.reachable_triggers == state.reachable_triggers
        assert again.accessible_rooms == state.accessible_rooms
        assert again.available_keys == state.available_keys
