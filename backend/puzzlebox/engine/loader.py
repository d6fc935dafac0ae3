"""
Experience loader - Load experience documents from JSON or YAML files
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from puzzlebox.config import get_experiences_dir
from puzzlebox.models.document import ExperienceDocument
from puzzlebox.models.experience import Experience

logger = logging.getLogger(__name__)

DOCUMENT_NAMES = ("experience.json", "experience.yaml", "experience.yml")


def read_document_file(path: str | Path) -> dict[str, Any]:
    """Read raw document data from a .json, .yaml or .yml file"""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Experience file not found: {path}")

    with open(path, encoding="utf-8") as f:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Experience file {path} does not contain a mapping")
    return data


class ExperienceLoader:
    """Loads experiences from ``<experiences_dir>/<id>/experience.json``"""

    def __init__(self, experiences_dir: str | Path | None = None):
        """Initialize with experiences directory path"""
        if experiences_dir is None:
            experiences_dir = get_experiences_dir()
        self.experiences_dir = Path(experiences_dir)

    def find_document(self, experience_id: str) -> Path:
        experience_path = self.experiences_dir / experience_id
        for name in DOCUMENT_NAMES:
            candidate = experience_path / name
            if candidate.exists():
                return candidate
        raise FileNotFoundError(
            f"Experience '{experience_id}' not found at {experience_path}"
        )

    def list_experiences(self) -> list[dict]:
        """List available experiences with metadata"""
        experiences = []

        if not self.experiences_dir.exists():
            return experiences

        for experience_path in sorted(self.experiences_dir.iterdir()):
            if not experience_path.is_dir():
                continue
            try:
                data = read_document_file(self.find_document(experience_path.name))
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.warning(f"Skipping experience '{experience_path.name}': {e}")
                continue

            data = data.get("experience", data)
            experiences.append(
                {
                    "id": experience_path.name,
                    "name": data.get("name", experience_path.name),
                    "theme": data.get("theme", ""),
                    "difficulty": data.get("difficulty", ""),
                    "estimatedDuration": data.get("estimatedDuration"),
                }
            )

        return experiences

    def read_raw(self, experience_id: str) -> dict[str, Any]:
        """Raw document data, unparsed"""
        return read_document_file(self.find_document(experience_id))

    def load_document(self, experience_id: str) -> ExperienceDocument:
        """
        Load and parse an experience document.

        Raises:
            FileNotFoundError: If the experience doesn't exist
            pydantic.ValidationError: If the document doesn't match the schema
        """
        return ExperienceDocument.parse(self.read_raw(experience_id))

    def load_file(self, path: str | Path) -> ExperienceDocument:
        return ExperienceDocument.parse(read_document_file(path))

    def load_experience(self, experience_id: str, validate: bool = True) -> Experience:
        """
        Load a playable experience.

        Args:
            experience_id: The experience identifier (folder name)
            validate: Whether to validate the experience on load (default True)

        Returns:
            A fresh Experience instance

        Raises:
            FileNotFoundError: If experience doesn't exist
            ValueError: If validation fails and validate=True
        """
        document = self.load_document(experience_id)

        if validate:
            from puzzlebox.engine.validator import ExperienceValidator

            report = ExperienceValidator(document).validate()
            if not report.is_valid:
                error_list = "\n  - ".join(error.message for error in report.errors)
                raise ValueError(
                    f"Experience '{experience_id}' validation failed with "
                    f"{len(report.errors)} error(s):\n  - {error_list}"
                )
            for warning in report.warnings:
                logger.warning(f"[{experience_id}] {warning.message}")

        return Experience.from_document(document)
