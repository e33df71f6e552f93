"""
Decision Policy — what RIVER does with one wake.

The policy is a strict priority order over a closed set of actions:

    1. Someone mentioned RIVER           -> respond to the earliest mention
    2. A notification is waiting         -> reply to the earliest notification
    3. Daily quota exceeded              -> rest
       Energy below the speak threshold  -> dream (sometimes) or rest
    4. Speak roll below P                -> speak (stay in a group, or pick a channel)
    5. Otherwise                         -> think (sometimes) or rest

Steps 3-5 are dice. The random source is injected so the branches can be
forced in tests; it is consulted in a fixed order (dream roll, speak roll,
stay or channel roll, think roll) and only as far as the branch requires.

The base rate is small on purpose. Silence is the common outcome.

``IntentPolicy`` keeps steps 1-3 and replaces the dice with one structured
answer from the language model. Whatever comes back is mapped onto the same
closed set, and anything unrecognised becomes ``rest``.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol

import structlog

from rivermind.config import RiverConfig
from rivermind.perception import Mention, Notification, Perception
from rivermind.state import MOOD_MULTIPLIERS, AgentState

logger = structlog.get_logger(__name__)


class ActionKind(str, Enum):
    """Everything RIVER can do in one cycle."""
    RESPOND_TO_MENTION = "respond_to_mention"
    REPLY_TO_NOTIFICATION = "reply_to_notification"
    SPEAK = "speak"
    ENTER_GROUP = "enter_group"
    LEAVE_GROUP = "leave_group"
    THINK = "think"
    DREAM = "dream"
    REST = "rest"


class Channel(str, Enum):
    """Where a spoken message lands."""
    WIRE = "wire"       # Site-wide chat stream
    AGORA = "agora"     # Forum threads
    SIGNAL = "signal"   # Long-form posts
    GROUP = "group"     # Transcript of the group RIVER is inside


# Upper bounds of the channel roll; anything above the last one enters a group
CHANNEL_PARTITION: tuple[tuple[float, Channel], ...] = (
    (0.80, Channel.WIRE),
    (0.88, Channel.AGORA),
    (0.92, Channel.SIGNAL),
)

HOURS_TO_FULL_URGE = 6.0
URGE_OFFSET = 0.5


class RandomSource(Protocol):
    def random(self) -> float: ...

    def choice(self, seq: Any) -> Any: ...


@dataclass(frozen=True)
class Action:
    """One decision. Only the fields relevant to ``kind`` are set."""
    kind: ActionKind
    channel: Optional[Channel] = None
    mention: Optional[Mention] = None
    notification: Optional[Notification] = None
    group_id: Optional[str] = None
    rationale: str = ""

    @property
    def is_speech(self) -> bool:
        return self.kind in (
            ActionKind.RESPOND_TO_MENTION,
            ActionKind.REPLY_TO_NOTIFICATION,
            ActionKind.SPEAK,
        )


REST = Action(ActionKind.REST)


class DecisionPolicy:
    """Priority order plus dice, parameterised by RiverConfig."""

    def __init__(
        self,
        config: Optional[RiverConfig] = None,
        rng: Optional[RandomSource] = None,
    ):
        self._config = config or RiverConfig()
        self._rng = rng or random.Random()

    @property
    def config(self) -> RiverConfig:
        return self._config

    def speak_probability(self, state: AgentState, now: float) -> float:
        """P = base_rate * energy * mood multiplier * (urge + 0.5).

        The urge grows linearly over six hours of silence and then saturates.
        An agent that has never spoken is treated as silent for one hour.
        """
        hours = state.hours_since_spoke(now)
        if hours is None:
            hours = 1.0
        urge = min(hours / HOURS_TO_FULL_URGE, 1.0) + URGE_OFFSET
        multiplier = MOOD_MULTIPLIERS.get(state.mood, 1.0)
        return self._config.base_rate * state.energy * multiplier * urge

    def priority_action(self, perception: Perception) -> Optional[Action]:
        """Mentions, then notifications. Returns None when neither is pending."""
        if perception.mentions:
            mention = perception.mentions[0]
            return Action(
                ActionKind.RESPOND_TO_MENTION,
                channel=Channel.WIRE,
                mention=mention,
                rationale=f"{mention.counterpart} mentioned me",
            )
        if perception.notifications:
            notification = perception.notifications[0]
            return Action(
                ActionKind.REPLY_TO_NOTIFICATION,
                notification=notification,
                rationale=f"{notification.counterpart} sent a {notification.kind}",
            )
        return None

    def gate_action(self, state: AgentState) -> Optional[Action]:
        """Hard gates. Returns None when RIVER is free to consider speaking."""
        cfg = self._config
        if state.message_count_24h > cfg.max_daily_messages:
            return Action(ActionKind.REST, rationale="daily quota exceeded")
        if state.energy < cfg.min_energy_to_speak:
            if self._rng.random() < cfg.dream_probability:
                return Action(ActionKind.DREAM, rationale="too tired to speak")
            return Action(ActionKind.REST, rationale="too tired to speak")
        return None

    def decide(self, state: AgentState, perception: Perception, now: float) -> Action:
        action = self.priority_action(perception) or self.gate_action(state)
        if action is not None:
            return action

        cfg = self._config
        probability = self.speak_probability(state, now)
        roll = self._rng.random()
        logger.debug(
            "decision.roll",
            probability=round(probability, 4),
            roll=round(roll, 4),
            mood=state.mood.value,
            energy=round(state.energy, 2),
        )

        if roll < probability:
            if state.current_location:
                if self._rng.random() < cfg.group_stay_probability:
                    return Action(
                        ActionKind.SPEAK,
                        channel=Channel.GROUP,
                        group_id=state.current_location,
                        rationale="speaking where I am",
                    )
                return Action(
                    ActionKind.LEAVE_GROUP,
                    group_id=state.current_location,
                    rationale="drifting out of the group",
                )
            return self._channel_action(self._rng.random())

        if self._rng.random() < cfg.think_probability:
            return Action(ActionKind.THINK, rationale="quiet thought")
        return REST

    @staticmethod
    def _channel_action(roll: float) -> Action:
        for bound, channel in CHANNEL_PARTITION:
            if roll < bound:
                return Action(ActionKind.SPEAK, channel=channel, rationale="the urge to speak")
        return Action(ActionKind.ENTER_GROUP, rationale="looking for company")


# ---------------------------------------------------------------------------
# Intent-based variant
# ---------------------------------------------------------------------------

_INTENT_CHANNELS = {
    "wire": Channel.WIRE,
    "agora": Channel.AGORA,
    "signal": Channel.SIGNAL,
}


def action_from_intent(intent: Optional[dict[str, Any]], state: AgentState) -> Action:
    """Map a structured model decision onto the closed action set.

    Missing, malformed or unknown intents fall back to ``rest``.
    """
    if not isinstance(intent, dict):
        return Action(ActionKind.REST, rationale="no intent")

    raw = str(intent.get("intent") or "").strip().lower()
    reason = str(intent.get("reason") or "")[:200]

    if raw in _INTENT_CHANNELS:
        return Action(ActionKind.SPEAK, channel=_INTENT_CHANNELS[raw], rationale=reason)
    if raw in ("group", "world"):
        if state.current_location:
            return Action(
                ActionKind.SPEAK,
                channel=Channel.GROUP,
                group_id=state.current_location,
                rationale=reason,
            )
        return Action(ActionKind.ENTER_GROUP, rationale=reason)
    if raw == "leave":
        if state.current_location:
            return Action(ActionKind.LEAVE_GROUP, group_id=state.current_location, rationale=reason)
        return Action(ActionKind.REST, rationale=reason)
    if raw == "think":
        return Action(ActionKind.THINK, rationale=reason)
    if raw == "dream":
        return Action(ActionKind.DREAM, rationale=reason)
    if raw != "rest":
        logger.warning("decision.unknown_intent", intent=raw)
    return Action(ActionKind.REST, rationale=reason)


class IntentSource(Protocol):
    async def decide_intent(
        self, state: AgentState, perception: Perception, context: str
    ) -> Optional[dict[str, Any]]: ...


class IntentPolicy:
    """Dice-free variant: priorities and gates first, then ask the model."""

    def __init__(self, policy: DecisionPolicy, source: IntentSource):
        self._policy = policy
        self._source = source

    @property
    def config(self) -> RiverConfig:
        return self._policy.config

    async def decide(
        self,
        state: AgentState,
        perception: Perception,
        now: float,
        context: str = "",
    ) -> Action:
        action = self._policy.priority_action(perception) or self._policy.gate_action(state)
        if action is not None:
            return action
        try:
            intent = await self._source.decide_intent(state, perception, context)
        except Exception:
            logger.warning("decision.intent_failed", exc_info=True)
            intent = None
        action = action_from_intent(intent, state)
        logger.info("decision.intent", kind=action.kind.value, rationale=action.rationale[:80])
        return action
