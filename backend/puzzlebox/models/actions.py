"""
Action models - results of player actions and the notifications they emit

ActionResult is what every runtime action returns. StateChange is the
notification published to subscribers after a successful, mutating action;
it is the seam a presentation layer listens on and carries no behavior.

Example:
    >>> result = ActionResult(
    ...     success=False,
    ...     action=ActionType.TAKE_ITEM,
    ...     message="You can't take the Heavy Desk",
    ... )
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field

from puzzlebox.models.entities import PuzzleModel


class ActionType(str, Enum):
    """Kinds of state change the runtime reports"""

    EXAMINE_ITEM = "EXAMINE_ITEM"
    OPEN_CONTAINER = "OPEN_CONTAINER"
    TAKE_ITEM = "TAKE_ITEM"
    USE_KEY = "USE_KEY"
    ENTER_CODE = "ENTER_CODE"
    CHANGE_ROOM = "CHANGE_ROOM"
    EXPERIENCE_COMPLETED = "EXPERIENCE_COMPLETED"


class ActionResult(PuzzleModel):
    """Outcome of a runtime action.

    Attributes:
        success: Whether the action happened
        action: Which action produced this result
        message: Human-readable outcome (reason on failure)
        description: Item description for examine results
        messages: Reward-derived messages (trigger success text, information)
        items: Item summaries for open-container results
        key: The key acquired by a take, if any
        rewards: Rewards applied by a trigger activation
        completed: True when this action completed the experience
    """

    success: bool
    action: ActionType
    message: str | None = None
    description: str | None = None
    messages: list[str] = Field(default_factory=list)
    items: list[dict[str, Any]] = Field(default_factory=list)
    key: dict[str, Any] | None = None
    rewards: list[dict[str, Any]] = Field(default_factory=list)
    completed: bool = False


class StateChange(PuzzleModel):
    """Notification for one successful mutating action"""

    id: str
    turn: int
    action: ActionType
    description: str
    timestamp: float
    data: dict[str, Any] = Field(default_factory=dict)
