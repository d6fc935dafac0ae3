"""
Trigger/reward engine - condition checks and reward application

Condition checks are looked up by trigger type in a dispatch table, and
rewards are applied through the RewardSink protocol. The live Experience and
the validator's ReachabilityState both implement the sink, so a reward has
the same effect in play and in static analysis.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Protocol, runtime_checkable

from puzzlebox.models.entities import (
    AccessReward,
    CodeKey,
    ExaminationTrigger,
    InformationReward,
    ItemReward,
    KeyBase,
    KeypadLock,
    KeyReward,
    PadLock,
    Reward,
    RewardType,
    Trigger,
    TriggerType,
)

if TYPE_CHECKING:
    from puzzlebox.models.experience import Experience

logger = logging.getLogger(__name__)


@runtime_checkable
class RewardSink(Protocol):
    """Anything rewards can be applied to.

    Implementations decide what each effect means for them: the live
    Experience mutates entities, the reachability state records facts.
    """

    def unlock_door(self, door_id: str) -> None: ...

    def reveal_room(self, room_id: str) -> None: ...

    def show_trigger(self, trigger_id: str) -> None: ...

    def grant_key(self, key_id: str, source: str) -> None: ...

    def reveal_item(self, item_id: str) -> None: ...

    def hide_item(self, item_id: str) -> None: ...


# =============================================================================
# Rewards
# =============================================================================


def _apply_access(reward: AccessReward, sink: RewardSink, source: str) -> None:
    if reward.unlocks_door:
        sink.unlock_door(reward.unlocks_door)
    if reward.reveals_room:
        sink.reveal_room(reward.reveals_room)
    for trigger_id in reward.activates_triggers:
        sink.show_trigger(trigger_id)


def _apply_key(reward: KeyReward, sink: RewardSink, source: str) -> None:
    sink.grant_key(reward.key_id, source)


def _apply_item(reward: ItemReward, sink: RewardSink, source: str) -> None:
    if reward.item_id:
        sink.reveal_item(reward.item_id)
    if reward.hide_item_id:
        sink.hide_item(reward.hide_item_id)


def _apply_information(
    reward: InformationReward, sink: RewardSink, source: str
) -> None:
    return None


REWARD_APPLIERS: dict[RewardType, Callable[[Any, RewardSink, str], None]] = {
    RewardType.ACCESS: _apply_access,
    RewardType.KEY: _apply_key,
    RewardType.ITEM: _apply_item,
    RewardType.INFORMATION: _apply_information,
}


def apply_rewards(rewards: list[Reward], sink: RewardSink, source: str) -> None:
    """Apply rewards to a sink in declaration order.

    Args:
        rewards: The rewards of a single trigger
        sink: Live experience or simulated reachability state
        source: Recorded as ``acquired_from`` for granted keys
    """
    for reward in rewards:
        REWARD_APPLIERS[RewardType(reward.type)](reward, sink, source)


def reward_messages(rewards: list[Reward]) -> list[str]:
    """Display text carried by information rewards"""
    return [
        reward.message
        for reward in rewards
        if isinstance(reward, InformationReward) and reward.message
    ]


# =============================================================================
# Conditions
# =============================================================================


def _check_keypad(trigger: KeypadLock, value: Any) -> bool:
    trigger.attempt_count += 1
    if (
        trigger.allowed_attempts is not None
        and trigger.attempt_count > trigger.allowed_attempts
    ):
        return False
    if isinstance(value, CodeKey):
        value = value.code
    return isinstance(value, str) and value == trigger.code


def _check_pad_lock(trigger: PadLock, value: Any) -> bool:
    if not isinstance(value, KeyBase):
        return False
    return value.id == trigger.required_key and value.can_activate_trigger(
        trigger.id
    )


def _check_examination(trigger: ExaminationTrigger, value: Any) -> bool:
    if trigger.once_only and trigger.is_activated:
        return False
    return value == trigger.object_id


CONDITION_CHECKS: dict[TriggerType, Callable[[Any, Any], bool]] = {
    TriggerType.KEYPAD_LOCK: _check_keypad,
    TriggerType.PAD_LOCK: _check_pad_lock,
    TriggerType.EXAMINATION: _check_examination,
}


def check_condition(trigger: Trigger, value: Any) -> bool:
    """Evaluate a trigger's unlock condition against player input.

    Keypad checks count an attempt on every call, matched or not.
    """
    return CONDITION_CHECKS[TriggerType(trigger.type)](trigger, value)


# =============================================================================
# Engine
# =============================================================================


@dataclass
class ActivationResult:
    """Outcome of a trigger activation attempt"""

    success: bool
    rewards: list[Reward] = field(default_factory=list)
    message: str | None = None

    @property
    def messages(self) -> list[str]:
        """Success text followed by information reward text"""
        messages = [self.message] if self.success and self.message else []
        return messages + reward_messages(self.rewards)


class TriggerEngine:
    """Activates triggers on a live Experience"""

    def __init__(self, experience: "Experience"):
        self.experience = experience

    def activate(self, trigger_id: str, value: Any) -> ActivationResult:
        """Try to activate a trigger with the given input.

        Args:
            trigger_id: The trigger to activate
            value: Code string, Key, or examined object id

        Returns:
            ActivationResult; unknown and already-activated triggers fail
            with no rewards
        """
        trigger = self.experience.get_trigger(trigger_id)
        if trigger is None:
            return ActivationResult(
                success=False, message=f"Unknown trigger '{trigger_id}'"
            )
        if trigger.is_activated:
            return ActivationResult(success=False, message="Already activated")

        if not check_condition(trigger, value):
            logger.debug(f"Trigger '{trigger_id}' condition not met")
            return ActivationResult(success=False, message=trigger.failure_message)

        trigger.is_activated = True
        progress = self.experience.progress
        if trigger_id not in progress.triggers_activated:
            progress.triggers_activated.append(trigger_id)

        apply_rewards(trigger.rewards, self.experience, trigger_id)
        logger.debug(
            f"Trigger '{trigger_id}' activated with {len(trigger.rewards)} reward(s)"
        )

        return ActivationResult(
            success=True,
            rewards=list(trigger.rewards),
            message=trigger.success_message,
        )
