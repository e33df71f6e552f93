"""
Tests for rivermind.decision — the priority order and the dice.

Covers:
- mentions and notifications always win, whatever the state
- quota and energy gates, dream versus rest when tired
- the speak probability formula
- channel partition, group stay/leave, think/rest
- the order in which rolls are consumed
- intent mapping and the intent-based policy
"""

from __future__ import annotations

import pytest

from rivermind.config import RiverConfig
from rivermind.decision import (
    ActionKind,
    Channel,
    DecisionPolicy,
    IntentPolicy,
    action_from_intent,
)
from rivermind.perception import Mention, Notification, Perception
from rivermind.state import AgentState, Mood

from conftest import HOUR, NOW, ScriptedRandom


def _perception(mentions=(), notifications=()) -> Perception:
    return Perception(text="TIME: now", mentions=list(mentions), notifications=list(notifications))


def _mention(message_id: str = "m1", counterpart: str = "alice", ts: float = NOW - 60) -> Mention:
    return Mention(message_id=message_id, counterpart=counterpart, text="hey RIVER", timestamp=ts)


def _state(**overrides) -> AgentState:
    defaults = dict(mood=Mood.CURIOUS, energy=0.8, last_spoke_at=NOW - 3 * HOUR)
    defaults.update(overrides)
    return AgentState(**defaults)


def _policy(*rolls: float, choices=()) -> tuple[DecisionPolicy, ScriptedRandom]:
    rng = ScriptedRandom(rolls, choices)
    return DecisionPolicy(RiverConfig(), rng), rng


# ---------------------------------------------------------------------------
# Priorities
# ---------------------------------------------------------------------------

class TestPriorities:
    def test_mention_beats_everything(self):
        policy, rng = _policy()
        exhausted = _state(energy=0.0, message_count_24h=500)
        action = policy.decide(exhausted, _perception([_mention()]), NOW)
        assert action.kind is ActionKind.RESPOND_TO_MENTION
        assert action.channel is Channel.WIRE
        assert action.mention.counterpart == "alice"
        assert rng.random_calls == 0

    def test_first_listed_mention_is_answered(self):
        policy, _ = _policy()
        first = _mention("m1", "alice", NOW - 120)
        second = _mention("m2", "bob", NOW - 60)
        action = policy.decide(_state(), _perception([first, second]), NOW)
        assert action.mention.message_id == "m1"

    def test_notification_when_no_mention(self):
        policy, rng = _policy()
        note = Notification("n1", "dana", "nice post", NOW - 30)
        action = policy.decide(_state(energy=0.1), _perception(notifications=[note]), NOW)
        assert action.kind is ActionKind.REPLY_TO_NOTIFICATION
        assert action.notification.notification_id == "n1"
        assert rng.random_calls == 0

    def test_mention_before_notification(self):
        policy, _ = _policy()
        note = Notification("n1", "dana", "nice post", NOW - 30)
        action = policy.decide(_state(), _perception([_mention()], [note]), NOW)
        assert action.kind is ActionKind.RESPOND_TO_MENTION
        assert action.is_speech


# ---------------------------------------------------------------------------
# Gates
# ---------------------------------------------------------------------------

class TestGates:
    def test_quota_exceeded_rests_without_rolling(self):
        policy, rng = _policy()
        action = policy.decide(_state(message_count_24h=51), _perception(), NOW)
        assert action.kind is ActionKind.REST
        assert rng.random_calls == 0

    def test_quota_at_limit_is_not_gated(self):
        policy, rng = _policy(0.99, 0.99)
        action = policy.decide(_state(message_count_24h=50), _perception(), NOW)
        assert action.kind is ActionKind.REST
        assert rng.random_calls == 2

    def test_tired_agent_dreams_on_low_roll(self):
        policy, rng = _policy(0.3)
        action = policy.decide(_state(energy=0.2), _perception(), NOW)
        assert action.kind is ActionKind.DREAM
        assert rng.random_calls == 1

    def test_tired_agent_rests_on_high_roll(self):
        policy, rng = _policy(0.5)
        action = policy.decide(_state(energy=0.2), _perception(), NOW)
        assert action.kind is ActionKind.REST
        assert rng.random_calls == 1

    def test_energy_at_threshold_may_speak(self):
        policy, _ = _policy(0.0, 0.1)
        action = policy.decide(_state(energy=0.3), _perception(), NOW)
        assert action.kind is ActionKind.SPEAK


# ---------------------------------------------------------------------------
# Dice
# ---------------------------------------------------------------------------

class TestSpeakProbability:
    def test_formula(self):
        policy, _ = _policy()
        # 0.15 * 0.8 * 1.2 * (min(3/6, 1) + 0.5)
        assert policy.speak_probability(_state(), NOW) == pytest.approx(0.144)

    def test_urge_saturates_after_six_hours(self):
        policy, _ = _policy()
        six = policy.speak_probability(_state(last_spoke_at=NOW - 6 * HOUR), NOW)
        day = policy.speak_probability(_state(last_spoke_at=NOW - 24 * HOUR), NOW)
        assert six == pytest.approx(day)
        assert six == pytest.approx(0.15 * 0.8 * 1.2 * 1.5)

    def test_never_spoke_counts_as_one_hour(self):
        policy, _ = _policy()
        p = policy.speak_probability(_state(last_spoke_at=None), NOW)
        assert p == pytest.approx(0.15 * 0.8 * 1.2 * (1 / 6 + 0.5))

    def test_mood_scales_probability(self):
        policy, _ = _policy()
        excited = policy.speak_probability(_state(mood=Mood.EXCITED), NOW)
        melancholic = policy.speak_probability(_state(mood=Mood.MELANCHOLIC), NOW)
        assert excited / melancholic == pytest.approx(1.5 / 0.4)


class TestChannelRoll:
    @pytest.mark.parametrize(
        "roll, channel",
        [(0.0, Channel.WIRE), (0.79, Channel.WIRE), (0.80, Channel.AGORA), (0.85, Channel.AGORA),
         (0.88, Channel.SIGNAL), (0.91, Channel.SIGNAL)],
    )
    def test_partition(self, roll, channel):
        policy, rng = _policy(0.05, roll)
        action = policy.decide(_state(), _perception(), NOW)
        assert action.kind is ActionKind.SPEAK
        assert action.channel is channel
        assert rng.random_calls == 2

    def test_top_of_partition_enters_a_group(self):
        policy, _ = _policy(0.05, 0.95)
        action = policy.decide(_state(), _perception(), NOW)
        assert action.kind is ActionKind.ENTER_GROUP

    def test_failed_speak_roll_then_think(self):
        policy, rng = _policy(0.5, 0.1)
        action = policy.decide(_state(), _perception(), NOW)
        assert action.kind is ActionKind.THINK
        assert rng.random_calls == 2

    def test_failed_speak_roll_then_rest(self):
        policy, _ = _policy(0.5, 0.5)
        assert policy.decide(_state(), _perception(), NOW).kind is ActionKind.REST


class TestGroupRoll:
    def test_stays_and_speaks_in_group(self):
        policy, rng = _policy(0.05, 0.5)
        action = policy.decide(_state(current_location="g1"), _perception(), NOW)
        assert action.kind is ActionKind.SPEAK
        assert action.channel is Channel.GROUP
        assert action.group_id == "g1"
        assert rng.random_calls == 2

    def test_leaves_group(self):
        policy, _ = _policy(0.05, 0.8)
        action = policy.decide(_state(current_location="g1"), _perception(), NOW)
        assert action.kind is ActionKind.LEAVE_GROUP
        assert action.group_id == "g1"

    def test_quiet_in_group_thinks_or_rests(self):
        policy, _ = _policy(0.9, 0.9)
        action = policy.decide(_state(current_location="g1"), _perception(), NOW)
        assert action.kind is ActionKind.REST


# ---------------------------------------------------------------------------
# Intent mode
# ---------------------------------------------------------------------------

class TestActionFromIntent:
    @pytest.mark.parametrize(
        "intent, channel",
        [("wire", Channel.WIRE), ("agora", Channel.AGORA), ("SIGNAL", Channel.SIGNAL)],
    )
    def test_channels(self, intent, channel):
        action = action_from_intent({"intent": intent, "reason": "why not"}, _state())
        assert action.kind is ActionKind.SPEAK
        assert action.channel is channel
        assert action.rationale == "why not"

    def test_group_outside_a_group_enters_one(self):
        assert action_from_intent({"intent": "group"}, _state()).kind is ActionKind.ENTER_GROUP

    def test_group_inside_a_group_speaks_there(self):
        action = action_from_intent({"intent": "world"}, _state(current_location="g1"))
        assert action.kind is ActionKind.SPEAK
        assert action.group_id == "g1"

    def test_leave(self):
        assert action_from_intent({"intent": "leave"}, _state()).kind is ActionKind.REST
        inside = action_from_intent({"intent": "leave"}, _state(current_location="g1"))
        assert inside.kind is ActionKind.LEAVE_GROUP

    @pytest.mark.parametrize("intent", [None, "nonsense", {"intent": "fly"}, {}, {"intent": 7}])
    def test_unknown_becomes_rest(self, intent):
        assert action_from_intent(intent, _state()).kind is ActionKind.REST

    def test_think_and_dream(self):
        assert action_from_intent({"intent": "think"}, _state()).kind is ActionKind.THINK
        assert action_from_intent({"intent": "dream"}, _state()).kind is ActionKind.DREAM


class _IntentSource:
    def __init__(self, result=None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = 0

    async def decide_intent(self, state, perception, context):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class TestIntentPolicy:
    @pytest.mark.asyncio
    async def test_uses_model_intent(self):
        policy, _ = _policy()
        source = _IntentSource({"intent": "agora", "reason": "a question is brewing"})
        action = await IntentPolicy(policy, source).decide(_state(), _perception(), NOW)
        assert action.kind is ActionKind.SPEAK
        assert action.channel is Channel.AGORA

    @pytest.mark.asyncio
    async def test_priorities_skip_the_model(self):
        policy, _ = _policy()
        source = _IntentSource({"intent": "agora"})
        action = await IntentPolicy(policy, source).decide(_state(), _perception([_mention()]), NOW)
        assert action.kind is ActionKind.RESPOND_TO_MENTION
        assert source.calls == 0

    @pytest.mark.asyncio
    async def test_gates_skip_the_model(self):
        policy, _ = _policy()
        source = _IntentSource({"intent": "wire"})
        action = await IntentPolicy(policy, source).decide(
            _state(message_count_24h=99), _perception(), NOW
        )
        assert action.kind is ActionKind.REST
        assert source.calls == 0

    @pytest.mark.asyncio
    async def test_failure_becomes_rest(self):
        policy, _ = _policy()
        source = _IntentSource(error=RuntimeError("model down"))
        action = await IntentPolicy(policy, source).decide(_state(), _perception(), NOW)
        assert action.kind is ActionKind.REST
