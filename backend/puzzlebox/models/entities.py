"""
Entity models - Pydantic records for items, rooms, keys, triggers and rewards

Keys, triggers and rewards are closed tagged unions discriminated on their
``type`` field, matching the ``type`` strings used in experience documents.
Items and rooms are arena records: containment is expressed through id
references so any entity can be looked up by id without walking a tree.

Example:
    >>> lock = TriggerAdapter.validate_python(
    ...     {"id": "desk_lock", "type": "PadLock", "requiredKey": "brass_key"}
    ... )
    >>> lock.required_key
    'brass_key'
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


class PuzzleModel(BaseModel):
    """Base model accepting both camelCase document keys and snake_case names"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Enumerations
# =============================================================================


class ItemCategory(str, Enum):
    """Closed set of item categories"""

    FURNITURE = "FURNITURE"
    CONTAINER = "CONTAINER"
    DEVICE = "DEVICE"
    LOCK_MECHANISM = "LOCK_MECHANISM"
    DOOR = "DOOR"
    DECORATIVE = "DECORATIVE"
    TOOL = "TOOL"
    DOCUMENT = "DOCUMENT"
    MEDIA = "MEDIA"
    ELECTRICAL = "ELECTRICAL"
    SECURITY = "SECURITY"


class ItemPlacement(str, Enum):
    """Where an item currently sits relative to its owner"""

    ROOM = "room"
    CONTAINED = "contained"
    SURFACE = "surface"
    INVENTORY = "inventory"


class TriggerType(str, Enum):
    """Trigger variants understood by the engine"""

    KEYPAD_LOCK = "KeypadLock"
    PAD_LOCK = "PadLock"
    EXAMINATION = "ExaminationTrigger"


class RewardType(str, Enum):
    """Reward variants applied when a trigger succeeds"""

    ACCESS = "AccessReward"
    KEY = "KeyReward"
    ITEM = "ItemReward"
    INFORMATION = "InformationReward"


class KeyType(str, Enum):
    """Key variants; grouped below into physical, code and clue families"""

    PHYSICAL_KEY = "PHYSICAL_KEY"
    MAGNETIC_CARD = "MAGNETIC_CARD"
    TOOL = "TOOL"
    NUMERIC_CODE = "NUMERIC_CODE"
    WORD_CODE = "WORD_CODE"
    PATTERN = "PATTERN"
    COMMAND_SEQUENCE = "COMMAND_SEQUENCE"
    CLUE = "CLUE"
    MAP = "MAP"
    DOCUMENT = "DOCUMENT"
    MEDIA_ITEM = "MEDIA_ITEM"
    AUDIO_RECORDING = "AUDIO_RECORDING"
    PERMISSION = "PERMISSION"
    KNOWLEDGE = "KNOWLEDGE"
    SEQUENCE_STEP = "SEQUENCE_STEP"


class KeyCategory(str, Enum):
    PHYSICAL = "PHYSICAL"
    DIGITAL = "DIGITAL"
    INFORMATION = "INFORMATION"
    MEDIA = "MEDIA"
    ABSTRACT = "ABSTRACT"


# =============================================================================
# Rewards
# =============================================================================


class AccessReward(PuzzleModel):
    """Unlocks a door, reveals a room and/or makes other triggers visible"""

    type: Literal["AccessReward"] = "AccessReward"
    unlocks_door: str | None = None
    reveals_room: str | None = None
    activates_triggers: list[str] = Field(default_factory=list)


class KeyReward(PuzzleModel):
    """Grants a key or clue by id"""

    type: Literal["KeyReward"] = "KeyReward"
    key_id: str


class ItemReward(PuzzleModel):
    """Reveals one item and optionally hides another"""

    type: Literal["ItemReward"] = "ItemReward"
    item_id: str | None = None
    hide_item_id: str | None = None


class InformationReward(PuzzleModel):
    """Opaque payload for display; ignored by the engine and validator"""

    type: Literal["InformationReward"] = "InformationReward"
    message: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


Reward = Annotated[
    Union[AccessReward, KeyReward, ItemReward, InformationReward],
    Field(discriminator="type"),
]


# =============================================================================
# Keys
# =============================================================================


class KeyBase(PuzzleModel):
    """Fields and state shared by every key variant"""

    id: str
    name: str = ""
    description: str = ""
    category: KeyCategory = KeyCategory.PHYSICAL
    room_id: str | None = None
    associated_trigger_id: str | None = None

    # State
    is_acquired: bool = False
    is_hidden: bool = False
    is_consumed: bool = False
    is_red_herring: bool = False
    is_consumable: bool = False
    acquired_from: str | None = None
    acquired_turn: int | None = None

    @field_validator("associated_trigger_id")
    @classmethod
    def normalize_none_trigger(cls, value: str | None) -> str | None:
        """Documents use the literal string 'none' for unbound keys."""
        if value in ("", "none"):
            return None
        return value

    def can_activate_trigger(self, trigger_id: str) -> bool:
        return self.associated_trigger_id == trigger_id

    def acquire(self, source: str, turn: int) -> None:
        self.is_acquired = True
        self.acquired_from = source
        self.acquired_turn = turn
        self.is_hidden = False

    def consume(self) -> None:
        self.is_consumed = True
        self.is_acquired = False


class PhysicalKey(KeyBase):
    """A key, card or tool; reusable"""

    type: Literal["PHYSICAL_KEY", "MAGNETIC_CARD", "TOOL"] = "PHYSICAL_KEY"
    key_material: str = "brass"

    @model_validator(mode="after")
    def never_consumable(self) -> "PhysicalKey":
        self.is_consumable = False
        return self


class CodeKey(KeyBase):
    """A code the player learns; reusable"""

    type: Literal["NUMERIC_CODE", "WORD_CODE", "PATTERN", "COMMAND_SEQUENCE"] = (
        "NUMERIC_CODE"
    )
    category: KeyCategory = KeyCategory.DIGITAL
    code: str = ""
    code_hint: str | None = None
    is_partial: bool = False

    @model_validator(mode="after")
    def never_consumable(self) -> "CodeKey":
        self.is_consumable = False
        return self


class ClueKey(KeyBase):
    """Narrative information pointing at a puzzle"""

    type: Literal[
        "CLUE",
        "MAP",
        "DOCUMENT",
        "MEDIA_ITEM",
        "AUDIO_RECORDING",
        "PERMISSION",
        "KNOWLEDGE",
        "SEQUENCE_STEP",
    ] = "CLUE"
    category: KeyCategory = KeyCategory.INFORMATION
    clue_text: str = ""
    clue_type: str = ""
    related_puzzle: str | None = None

    def can_activate_trigger(self, trigger_id: str) -> bool:
        target = self.related_puzzle or self.associated_trigger_id
        return target == trigger_id


Key = Annotated[Union[PhysicalKey, CodeKey, ClueKey], Field(discriminator="type")]

KeyAdapter: TypeAdapter[Key] = TypeAdapter(Key)


# =============================================================================
# Triggers
# =============================================================================


class TriggerBase(PuzzleModel):
    """Fields and state shared by every trigger variant"""

    id: str
    name: str = ""
    description: str = ""
    is_activated: bool = False
    is_visible: bool = True
    rewards: list[Reward] = Field(default_factory=list)
    success_message: str | None = None
    failure_message: str | None = None

    def reset(self) -> None:
        self.is_activated = False


class KeypadLock(TriggerBase):
    type: Literal["KeypadLock"] = "KeypadLock"
    code: str
    code_length: int | None = None
    allowed_attempts: int | None = None
    hints_on_failure: bool = False
    input_type: Literal["numbers", "letters"] = "numbers"
    attempt_count: int = 0

    def remaining_attempts(self) -> int | None:
        if self.allowed_attempts is None:
            return None
        return max(0, self.allowed_attempts - self.attempt_count)

    def reset(self) -> None:
        super().reset()
        self.attempt_count = 0


class PadLock(TriggerBase):
    type: Literal["PadLock"] = "PadLock"
    required_key: str
    key_type: str = "standard"


class ExaminationTrigger(TriggerBase):
    type: Literal["ExaminationTrigger"] = "ExaminationTrigger"
    object_id: str
    required_perception: int = 0
    reveals_information: bool = False
    once_only: bool = True


Trigger = Annotated[
    Union[KeypadLock, PadLock, ExaminationTrigger], Field(discriminator="type")
]

TriggerAdapter: TypeAdapter[Trigger] = TypeAdapter(Trigger)


# =============================================================================
# Rooms and items (arena records)
# =============================================================================


class RoomConnection(PuzzleModel):
    """A typed link from one room to another"""

    id: str | None = None
    connected_room_id: str
    direction: str = ""
    name: str = ""
    description: str = ""
    is_locked: bool = False
    is_hidden: bool = False
    required_trigger: str | None = None


class Item(PuzzleModel):
    """An item in the experience arena.

    Children are referenced by id; ``parent_id`` is None for items resting
    directly in a room and for items taken into the inventory.
    """

    id: str
    name: str = ""
    description: str = ""
    category: ItemCategory = ItemCategory.DECORATIVE
    type: str | None = None

    is_visible: bool = True
    is_hidden: bool = False
    is_interactive: bool = False
    is_examinable: bool = True
    is_portable: bool = False
    is_locked: bool = False

    lock_trigger_id: str | None = None
    examine_trigger: str | None = None
    key_id: str | None = None
    leads_to: str | None = None

    room_id: str | None = None
    parent_id: str | None = None
    placement: ItemPlacement = ItemPlacement.ROOM
    contained_item_ids: list[str] = Field(default_factory=list)
    surface_item_ids: list[str] = Field(default_factory=list)

    @property
    def child_ids(self) -> list[str]:
        return [*self.contained_item_ids, *self.surface_item_ids]

    def unlock(self) -> None:
        self.is_locked = False

    def summary(self) -> dict[str, Any]:
        """Small view of the item for action results"""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "isPortable": self.is_portable,
            "isLocked": self.is_locked,
        }


class Room(PuzzleModel):
    """A room in the experience arena; ``item_ids`` lists top-level items only"""

    id: str
    name: str = ""
    short_description: str = ""
    long_description: str = ""
    is_locked: bool = False
    is_hidden: bool = False
    is_visited: bool = False
    turn_entered: int | None = None
    item_ids: list[str] = Field(default_factory=list)
    connected_rooms: list[RoomConnection] = Field(default_factory=list)

    def enter(self, turn: int) -> None:
        self.is_visited = True
        self.turn_entered = turn

    def unlock_connection(self, connection_id: str) -> bool:
        for connection in self.connected_rooms:
            if connection.id == connection_id:
                connection.is_locked = False
                return True
        return False

    def reveal_connection(self, connection_id: str) -> bool:
        for connection in self.connected_rooms:
            if connection.id == connection_id:
                connection.is_hidden = False
                return True
        return False
