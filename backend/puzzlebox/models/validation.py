"""
Validation report models - what the experience validator produces

The report serializes with camelCase keys so CI tooling and the HTTP API
see the same shape (``experienceId``, ``isValid``, ``reachableItems``...).
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, computed_field

from puzzlebox.models.entities import PuzzleModel


class ValidationIssue(PuzzleModel):
    """A single error, warning or info entry"""

    level: Literal["error", "warning", "info"]
    category: str
    message: str
    details: dict[str, Any] | None = None


class ValidationReport(PuzzleModel):
    """Result of experience validation"""

    experience_id: str
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    info: list[ValidationIssue] = Field(default_factory=list)

    reachable_items: list[str] = Field(default_factory=list)
    unreachable_items: list[str] = Field(default_factory=list)
    reachable_triggers: list[str] = Field(default_factory=list)
    unreachable_triggers: list[str] = Field(default_factory=list)
    accessible_rooms: list[str] = Field(default_factory=list)
    access_paths: dict[str, list[str]] = Field(default_factory=dict)
    passes: int = 0

    @computed_field
    @property
    def is_valid(self) -> bool:
        """Experience is valid if there are no errors (warnings are OK)"""
        return len(self.errors) == 0

    def add_error(
        self, category: str, message: str, details: dict[str, Any] | None = None
    ):
        self.errors.append(
            ValidationIssue(
                level="error", category=category, message=message, details=details
            )
        )

    def add_warning(
        self, category: str, message: str, details: dict[str, Any] | None = None
    ):
        self.warnings.append(
            ValidationIssue(
                level="warning", category=category, message=message, details=details
            )
        )

    def add_info(self, category: str, message: str):
        self.info.append(ValidationIssue(level="info", category=category, message=message))

    def errors_in(self, category: str) -> list[ValidationIssue]:
        return [error for error in self.errors if error.category == category]

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
