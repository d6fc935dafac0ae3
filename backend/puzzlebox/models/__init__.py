"""
Pydantic models for experience documents, live entities and reports
"""

from puzzlebox.models.actions import ActionResult, ActionType, StateChange
from puzzlebox.models.document import (
    CompletionCriterion,
    ExperienceDocument,
    ItemDefinition,
    RoomDefinition,
)
from puzzlebox.models.entities import (
    AccessReward,
    ClueKey,
    CodeKey,
    ExaminationTrigger,
    InformationReward,
    Item,
    ItemCategory,
    ItemPlacement,
    ItemReward,
    Key,
    KeypadLock,
    KeyReward,
    PadLock,
    PhysicalKey,
    Reward,
    Room,
    RoomConnection,
    Trigger,
    TriggerType,
)
from puzzlebox.models.experience import Experience
from puzzlebox.models.progress import ProgressState
from puzzlebox.models.validation import ValidationIssue, ValidationReport

__all__ = [
    "AccessReward",
    "ActionResult",
    "ActionType",
    "ClueKey",
    "CodeKey",
    "CompletionCriterion",
    "ExaminationTrigger",
    "Experience",
    "ExperienceDocument",
    "InformationReward",
    "Item",
    "ItemCategory",
    "ItemDefinition",
    "ItemPlacement",
    "ItemReward",
    "Key",
    "KeypadLock",
    "KeyReward",
    "PadLock",
    "PhysicalKey",
    "ProgressState",
    "Reward",
    "Room",
    "RoomConnection",
    "RoomDefinition",
    "StateChange",
    "Trigger",
    "TriggerType",
    "ValidationIssue",
    "ValidationReport",
]
