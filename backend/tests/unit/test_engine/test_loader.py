"""Unit tests for ExperienceLoader and document file reading."""

import json

import pytest
import yaml
from pydantic import ValidationError

from puzzlebox.engine.loader import ExperienceLoader, read_document_file
from puzzlebox.models.experience import Experience


class TestReadDocumentFile:
    """Tests for read_document_file."""

    def test_reads_json(self, tmp_path, basement_data) -> None:
        path = tmp_path / "doc.json"
        path.write_text(json.dumps(basement_data))

        assert read_document_file(path)["id"] == "test_basement"

    def test_reads_yaml(self, tmp_path, basement_data) -> None:
        path = tmp_path / "doc.yaml"
        path.write_text(yaml.safe_dump({"experience": basement_data}))

        data = read_document_file(path)

        assert data["experience"]["startingRoomId"] == "basement"

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            read_document_file(tmp_path / "missing.json")

    def test_non_mapping(self, tmp_path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")

        with pytest.raises(ValueError, match="does not contain a mapping"):
            read_document_file(path)


class TestExperienceLoader:
    """Tests for ExperienceLoader."""

    def test_uses_configured_directory(self, experiences_dir) -> None:
        assert ExperienceLoader().experiences_dir == experiences_dir

    def test_list_experiences(self, experiences_dir) -> None:
        (experiences_dir / "notes.txt").write_text("not an experience")

        experiences = ExperienceLoader().list_experiences()

        assert experiences == [
            {
                "id": "test_basement",
                "name": "Test Basement",
                "theme": "test",
                "difficulty": "",
                "estimatedDuration": None,
            }
        ]

    def test_list_skips_broken(self, experiences_dir) -> None:
        broken = experiences_dir / "broken"
        broken.mkdir()
        (broken / "experience.json").write_text("{not json")

        ids = [e["id"] for e in ExperienceLoader().list_experiences()]

        assert ids == ["test_basement"]

    def test_list_missing_directory(self, tmp_path) -> None:
        assert ExperienceLoader(tmp_path / "nope").list_experiences() == []

    def test_yaml_document_found(self, tmp_path, basement_data) -> None:
        folder = tmp_path / "yaml_room"
        folder.mkdir()
        (folder / "experience.yaml").write_text(yaml.safe_dump(basement_data))

        document = ExperienceLoader(tmp_path).load_document("yaml_room")

        assert document.id == "test_basement"

    def test_load_experience(self, experiences_dir) -> None:
        experience = ExperienceLoader().load_experience("test_basement")

        assert isinstance(experience, Experience)
        assert experience.get_current_room().id == "basement"

    def test_load_missing(self, experiences_dir) -> None:
        with pytest.raises(FileNotFoundError):
            ExperienceLoader().load_experience("nowhere")

    def test_schema_error(self, tmp_path, basement_data) -> None:
        basement_data["triggers"][0].pop("requiredKey")
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(basement_data))

        with pytest.raises(ValidationError):
            ExperienceLoader(tmp_path).load_file(path)

    def test_validation_failure(self, tmp_path, basement_data) -> None:
        """Invalid experiences refuse to load unless validation is skipped."""
        basement_data["rooms"][0]["items"][3]["leadsTo"] = None
        folder = tmp_path / "dead_end"
        folder.mkdir()
        (folder / "experience.json").write_text(json.dumps(basement_data))
        loader = ExperienceLoader(tmp_path)

        with pytest.raises(ValueError, match="validation failed with 1 error"):
            loader.load_experience("dead_end")

        assert loader.load_experience("dead_end", validate=False).id == "test_basement"
