"""
Progress state - the single mutable progress record owned by an Experience
"""

from pydantic import Field

from puzzlebox.models.entities import PuzzleModel


class ProgressState(PuzzleModel):
    """Global progress for one play session"""

    turn_count: int = 0
    hints_used: int = 0
    items_examined: list[str] = Field(default_factory=list)
    triggers_activated: list[str] = Field(default_factory=list)
    keys_acquired: list[str] = Field(default_factory=list)
    items_taken: list[str] = Field(default_factory=list)
    current_room_id: str = ""
    game_start_time: float | None = None  # epoch seconds
    game_end_time: float | None = None
    is_completed: bool = False
