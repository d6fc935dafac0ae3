"""
Shared pytest fixtures for puzzlebox backend tests.

This module provides:
- basement_data: Raw document dict for a two-room experience
- basement_document / experience / runtime: Parsed and live versions of it
- snapshot_json: Serialized state, for no-partial-mutation checks
- experiences_dir: A temporary experiences directory holding the basement
- Custom markers for test categorization
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable

import pytest

# Add backend to path for imports
backend_path = Path(__file__).parent.parent
if str(backend_path) not in sys.path:
    sys.path.insert(0, str(backend_path))

from puzzlebox.engine.runtime import ExperienceRuntime  # noqa: E402
from puzzlebox.engine.snapshot import take_snapshot  # noqa: E402
from puzzlebox.models.document import ExperienceDocument  # noqa: E402
from puzzlebox.models.experience import Experience  # noqa: E402


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


# =============================================================================
# Document Fixtures
# =============================================================================


def make_basement_data() -> dict[str, Any]:
    """Build a fresh two-room experience document.

    Layout:
        [basement] --(exit_door, keypad 4217)--> [stairwell] (final room)

    Puzzles:
        drawer (open) holds brass_key -> opens desk (desk_lock)
        desk_lock also reveals scratch_marks on the desk
        examining poster grants exit_code_clue -> exit_keypad unlocks exit_door
    """
    return {
        "id": "test_basement",
        "name": "Test Basement",
        "theme": "test",
        "startingRoomId": "basement",
        "finalRoomId": "stairwell",
        "rooms": [
            {
                "id": "basement",
                "name": "Basement",
                "longDescription": "A dim basement.",
                "items": [
                    {
                        "id": "drawer",
                        "name": "Old Drawer",
                        "description": "A wobbly drawer unit.",
                        "category": "CONTAINER",
                        "containedItems": [
                            {
                                "id": "brass_key",
                                "name": "Brass Key",
                                "description": "A small brass key.",
                                "category": "TOOL",
                                "isPortable": True,
                                "keyId": "brass_key",
                            }
                        ],
                    },
                    {
                        "id": "desk",
                        "name": "Heavy Desk",
                        "description": "A heavy oak desk.",
                        "category": "FURNITURE",
                        "isLocked": True,
                        "lockTriggerId": "desk_lock",
                        "containedItems": [
                            {
                                "id": "flashlight",
                                "name": "Flashlight",
                                "description": "A sturdy flashlight.",
                                "category": "TOOL",
                                "isPortable": True,
                            }
                        ],
                        "surfaceItems": [
                            {
                                "id": "scratch_marks",
                                "name": "Scratch Marks",
                                "description": "Fresh scratches in the wood.",
                                "category": "DECORATIVE",
                                "isVisible": False,
                                "isHidden": True,
                            }
                        ],
                    },
                    {
                        "id": "poster",
                        "name": "Faded Poster",
                        "description": "Four numbers are circled: 4, 2, 1, 7.",
                        "category": "DECORATIVE",
                        "examineTrigger": "poster_exam",
                    },
                    {
                        "id": "exit_door",
                        "name": "Steel Door",
                        "description": "A steel door with a keypad.",
                        "category": "DOOR",
                        "isLocked": True,
                        "lockTriggerId": "exit_keypad",
                        "leadsTo": "stairwell",
                    },
                ],
            },
            {
                "id": "stairwell",
                "name": "Stairwell",
                "longDescription": "Stairs climb toward daylight.",
                "items": [
                    {
                        "id": "exit_sign",
                        "name": "Exit Sign",
                        "category": "ELECTRICAL",
                    }
                ],
            },
        ],
        "triggers": [
            {
                "id": "desk_lock",
                "name": "Desk Lock",
                "type": "PadLock",
                "requiredKey": "brass_key",
                "successMessage": "The desk drawer slides open.",
                "failureMessage": "That key doesn't fit.",
                "rewards": [
                    {"type": "AccessReward", "unlocksDoor": "desk"},
                    {"type": "ItemReward", "itemId": "scratch_marks"},
                    {"type": "InformationReward", "message": "Something was dragged here."},
                ],
            },
            {
                "id": "poster_exam",
                "name": "Poster Examination",
                "type": "ExaminationTrigger",
                "objectId": "poster",
                "rewards": [{"type": "KeyReward", "keyId": "exit_code_clue"}],
            },
            {
                "id": "exit_keypad",
                "name": "Exit Keypad",
                "type": "KeypadLock",
                "code": "4217",
                "codeLength": 4,
                "successMessage": "The door unlocks.",
                "failureMessage": "Wrong code.",
                "rewards": [{"type": "AccessReward", "unlocksDoor": "exit_door"}],
            },
        ],
        "keys": [
            {
                "id": "brass_key",
                "name": "Brass Key",
                "type": "PHYSICAL_KEY",
                "roomId": "basement",
                "associatedTriggerId": "desk_lock",
            },
            {
                "id": "exit_code_clue",
                "name": "Circled Numbers",
                "type": "CLUE",
                "roomId": "basement",
                "associatedTriggerId": "exit_keypad",
                "clueText": "4217",
            },
        ],
        "completionCriteria": [
            {"type": "trigger_activated", "triggerId": "exit_keypad"},
        ],
    }


@pytest.fixture
def basement_data() -> dict[str, Any]:
    """Raw camelCase document dict (fresh copy per test)."""
    return make_basement_data()


@pytest.fixture
def basement_document(basement_data: dict[str, Any]) -> ExperienceDocument:
    """Parsed basement document."""
    return ExperienceDocument.parse(basement_data)


@pytest.fixture
def experience(basement_document: ExperienceDocument) -> Experience:
    """Live basement experience, game not started."""
    return Experience.from_document(basement_document)


@pytest.fixture
def runtime(experience: Experience) -> ExperienceRuntime:
    """Runtime over the live basement experience."""
    return ExperienceRuntime(experience)


@pytest.fixture
def snapshot_json() -> Callable[[Experience], str]:
    """Serialize the player-changeable state of an experience."""

    def _dump(exp: Experience) -> str:
        return take_snapshot(exp).model_dump_json(by_alias=True)

    return _dump


# =============================================================================
# Filesystem Fixtures
# =============================================================================


@pytest.fixture
def experiences_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary experiences directory containing test_basement.

    PUZZLEBOX_EXPERIENCES_DIR points at it for the duration of the test.
    """
    experience_path = tmp_path / "test_basement"
    experience_path.mkdir()
    with open(experience_path / "experience.json", "w") as f:
        json.dump({"experience": make_basement_data()}, f)

    monkeypatch.setenv("PUZZLEBOX_EXPERIENCES_DIR", str(tmp_path))
    return tmp_path
