"""
Session API endpoints - Drive experience runtimes over HTTP
"""

import logging
import uuid
from typing import Any, NamedTuple

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ValidationError

from puzzlebox.engine.loader import ExperienceLoader
from puzzlebox.engine.runtime import ExperienceRuntime
from puzzlebox.engine.snapshot import ExperienceSnapshot, take_snapshot
from puzzlebox.engine.validator import validate_document
from puzzlebox.models.actions import ActionResult
from puzzlebox.models.validation import ValidationReport

logger = logging.getLogger(__name__)

router = APIRouter()


class Session(NamedTuple):
    experience_id: str
    runtime: ExperienceRuntime


# In-memory sessions (one runtime per session, never shared)
sessions: dict[str, Session] = {}


def get_loader() -> ExperienceLoader:
    return ExperienceLoader()


class NewSessionRequest(BaseModel):
    experience_id: str = "training_basement"
    validate_first: bool = True


class NewSessionResponse(BaseModel):
    session_id: str
    experience_id: str
    state: dict[str, Any]


class ItemRequest(BaseModel):
    item_id: str


class TakeRequest(BaseModel):
    item_id: str
    container_id: str | None = None


class UseKeyRequest(BaseModel):
    key_id: str
    trigger_id: str


class EnterCodeRequest(BaseModel):
    trigger_id: str
    code: str


class ChangeRoomRequest(BaseModel):
    room_id: str


def _get_runtime(session_id: str) -> ExperienceRuntime:
    if session_id not in sessions:
        raise HTTPException(status_code=404, detail="Session not found")
    return sessions[session_id].runtime


def _state(runtime: ExperienceRuntime) -> dict[str, Any]:
    experience = runtime.experience
    room = runtime.get_current_room()
    return {
        "experienceId": experience.id,
        "currentRoom": {
            "id": room.id,
            "name": room.name,
            "description": room.long_description or room.short_description,
            "items": [experience.items[item_id].summary() for item_id in room.item_ids],
        }
        if room
        else None,
        "inventory": [
            experience.items[item_id].summary()
            for item_id in experience.progress.items_taken
        ],
        "keys": [key.id for key in runtime.get_acquired_keys()],
        "progress": experience.progress.model_dump(by_alias=True),
        "statistics": runtime.get_statistics(),
    }


@router.post("/new", response_model=NewSessionResponse)
async def new_session(request: NewSessionRequest):
    """Start a new session on an experience"""
    try:
        experience = get_loader().load_experience(
            request.experience_id, validate=request.validate_first
        )
    except FileNotFoundError:
        raise HTTPException(
            status_code=404, detail=f"Experience '{request.experience_id}' not found"
        )
    except (ValueError, ValidationError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    runtime = ExperienceRuntime(experience)
    session_id = uuid.uuid4().hex[:12]
    sessions[session_id] = Session(experience_id=request.experience_id, runtime=runtime)
    logger.info(f"Session {session_id} started on '{request.experience_id}'")

    return NewSessionResponse(
        session_id=session_id,
        experience_id=request.experience_id,
        state=_state(runtime),
    )


@router.get("/validate/{experience_id}", response_model=ValidationReport)
async def validate(experience_id: str):
    """Validate an experience document without starting a session"""
    try:
        data = get_loader().read_raw(experience_id)
    except FileNotFoundError:
        raise HTTPException(
            status_code=404, detail=f"Experience '{experience_id}' not found"
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return validate_document(data)


@router.post("/{session_id}/examine", response_model=ActionResult)
async def examine(session_id: str, request: ItemRequest):
    return _get_runtime(session_id).examine_item(request.item_id)


@router.post("/{session_id}/open", response_model=ActionResult)
async def open_container(session_id: str, request: ItemRequest):
    return _get_runtime(session_id).open_container(request.item_id)


@router.post("/{session_id}/take", response_model=ActionResult)
async def take(session_id: str, request: TakeRequest):
    return _get_runtime(session_id).take_item(request.item_id, request.container_id)


@router.post("/{session_id}/use-key", response_model=ActionResult)
async def use_key(session_id: str, request: UseKeyRequest):
    return _get_runtime(session_id).use_key(request.key_id, request.trigger_id)


@router.post("/{session_id}/enter-code", response_model=ActionResult)
async def enter_code(session_id: str, request: EnterCodeRequest):
    return _get_runtime(session_id).enter_code(request.trigger_id, request.code)


@router.post("/{session_id}/change-room", response_model=ActionResult)
async def change_room(session_id: str, request: ChangeRoomRequest):
    return _get_runtime(session_id).change_room(request.room_id)


@router.get("/{session_id}/state")
async def get_state(session_id: str):
    """Get current session state"""
    return {"state": _state(_get_runtime(session_id))}


@router.get("/{session_id}/snapshot", response_model=ExperienceSnapshot)
async def get_snapshot(session_id: str):
    """Serializable snapshot for an external save system"""
    return take_snapshot(_get_runtime(session_id).experience)
