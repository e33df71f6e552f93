"""
Wake Cycle — one heartbeat of RIVER's life.

Each cycle runs the same five phases, strictly in order:

    WAKE:     load state, recent memories, relationships
    PERCEIVE: look at the site, excluding anything already answered
    DECIDE:   pick exactly one action
    ACT:      carry it out (speak, think, dream, move, or rest)
    REMEMBER: append one memory describing what happened
    EVOLVE:   derive the next state and write it back in one operation

State is read once at the start and written once at the end. Nothing inside a
cycle is retried: if any phase raises, the cycle stops there, the failure is
logged and reported, and whatever was already written stays written. The next
scheduled cycle starts again from the last saved state.
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

import structlog

from rivermind.api.claude import parse_json_object
from rivermind.config import MemoryConfig, RiverConfig
from rivermind.decision import Action, ActionKind, Channel, DecisionPolicy, IntentPolicy
from rivermind.evolution import LocationChange, Outcome, evolve
from rivermind.memory import AspirationStore, MemoryStore, MemoryType, RelationshipLedger
from rivermind.memory.records import Memory
from rivermind.memory.relationships import Relationship
from rivermind.perception import Perception, PerceptionAssembler, RespondedLedger
from rivermind import prompts
from rivermind.publish import Publisher
from rivermind.state import AgentState, StateRepository
from rivermind.storage.base import DocumentStore, namespaced
from rivermind.voice import RiverVoice

logger = structlog.get_logger(__name__)


class CyclePhase(str, Enum):
    WAKE = "wake"
    PERCEIVE = "perceive"
    DECIDE = "decide"
    ACT = "act"
    REMEMBER = "remember"
    EVOLVE = "evolve"


# How significant each kind of moment feels when remembered
SALIENCE_BY_ACTION: dict[ActionKind, float] = {
    ActionKind.RESPOND_TO_MENTION: 0.5,
    ActionKind.REPLY_TO_NOTIFICATION: 0.5,
    ActionKind.SPEAK: 0.5,
    ActionKind.ENTER_GROUP: 0.3,
    ActionKind.LEAVE_GROUP: 0.3,
    ActionKind.THINK: 0.4,
    ActionKind.DREAM: 0.3,
    ActionKind.REST: 0.2,
}


@dataclass
class CycleReport:
    """What one wake cycle did. ``error`` is set when the cycle aborted."""
    started_at: float
    phase: CyclePhase = CyclePhase.WAKE
    action: Optional[Action] = None
    spoke: bool = False
    summary: str = ""
    memory_id: Optional[str] = None
    state: Optional[AgentState] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class _ActResult:
    outcome: Outcome = field(default_factory=Outcome)
    summary: str = "Rested in silence."
    counterpart: Optional[str] = None


@dataclass
class _Context:
    state: AgentState
    perception: Perception
    memories: list[Memory]
    relationships: dict[str, Relationship]
    now: float


Policy = Union[DecisionPolicy, IntentPolicy]


class WakeCycle:
    """
    Orchestrates RIVER's perceive, decide, act, remember, evolve loop.

    The cycle assumes it is the only one running for its agent. Preventing
    overlapping runs is the scheduler's job.
    """

    def __init__(
        self,
        store: DocumentStore,
        voice: RiverVoice,
        config: Optional[RiverConfig] = None,
        memory_config: Optional[MemoryConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        policy: Optional[Policy] = None,
    ):
        self._store = store
        self._voice = voice
        self._config = config or RiverConfig()
        self._rng = rng or random.Random()
        self._clock = clock
        agent = self._config.name

        self.states = StateRepository(store, agent, clock)
        self.memories = MemoryStore(store, agent, memory_config, clock)
        self.relationships = RelationshipLedger(store, agent, clock)
        self.aspirations = AspirationStore(store, agent, clock)
        self.responded = RespondedLedger(store, agent, "messages", clock)
        self.answered_notifications = RespondedLedger(store, agent, "notifications", clock)
        self.perception = PerceptionAssembler(store, agent, self._config, clock)
        self.publisher = Publisher(store, agent, clock)

        self._journal = namespaced(agent, "journal")
        self._dreams = namespaced(agent, "dreams")

        if policy is None:
            dice = DecisionPolicy(self._config, self._rng)
            policy = IntentPolicy(dice, voice) if self._config.decision_mode == "intent" else dice
        self._policy = policy

        self._handlers: dict[ActionKind, Callable[[Action, _Context], Awaitable[_ActResult]]] = {
            ActionKind.RESPOND_TO_MENTION: self._respond_to_mention,
            ActionKind.REPLY_TO_NOTIFICATION: self._reply_to_notification,
            ActionKind.SPEAK: self._speak,
            ActionKind.ENTER_GROUP: self._enter_group,
            ActionKind.LEAVE_GROUP: self._leave_group,
            ActionKind.THINK: self._think,
            ActionKind.DREAM: self._dream,
            ActionKind.REST: self._rest,
        }

    # -------------------------------------------------------------------------
    # The cycle
    # -------------------------------------------------------------------------

    async def run(self, now: Optional[float] = None) -> CycleReport:
        """Run one complete cycle. Never raises except on cancellation."""
        now = self._clock() if now is None else now
        report = CycleReport(started_at=now)
        cycle_start = time.monotonic()
        try:
            await self._run(report, now)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            report.error = str(e) or type(e).__name__
            logger.error(
                "cycle.failed",
                agent=self._config.name,
                phase=report.phase.value,
                error=report.error,
                exc_info=True,
            )
            return report

        logger.info(
            "cycle.complete",
            agent=self._config.name,
            action=report.action.kind.value if report.action else None,
            spoke=report.spoke,
            energy=round(report.state.energy, 2) if report.state else None,
            elapsed_seconds=round(time.monotonic() - cycle_start, 2),
        )
        return report

    async def _run(self, report: CycleReport, now: float) -> None:
        cfg = self._config

        # ---- WAKE ----
        report.phase = CyclePhase.WAKE
        state = self.states.load()
        memories = self.memories.recent(cfg.memory_context_limit)
        relationships = self.relationships.all(cfg.relationship_context_limit)

        # ---- PERCEIVE ----
        report.phase = CyclePhase.PERCEIVE
        perception = self.perception.perceive(
            responded_ids=self.responded.recent_ids(cfg.responded_limit),
            answered_notification_ids=self.answered_notifications.recent_ids(cfg.responded_limit),
            now=now,
        )
        ctx = _Context(state, perception, memories, relationships, now)

        # ---- DECIDE ----
        report.phase = CyclePhase.DECIDE
        if isinstance(self._policy, IntentPolicy):
            intent_context = prompts.format_memories(memories) + prompts.format_aspirations(
                self.aspirations.load(cfg.aspiration_limit)
            )
            action = await self._policy.decide(state, perception, now, intent_context)
        else:
            action = self._policy.decide(state, perception, now)
        report.action = action
        logger.info(
            "cycle.decided",
            agent=cfg.name,
            action=action.kind.value,
            channel=action.channel.value if action.channel else None,
            rationale=action.rationale[:80],
        )

        # ---- ACT ----
        report.phase = CyclePhase.ACT
        handler = self._handlers.get(action.kind)
        if handler is None:
            raise ValueError(f"No handler for action kind {action.kind!r}")
        result = await handler(action, ctx)
        report.spoke = result.outcome.spoke
        report.summary = result.summary

        # ---- REMEMBER ----
        report.phase = CyclePhase.REMEMBER
        report.memory_id = self.memories.remember(
            content=result.summary,
            memory_type=MemoryType.EXPERIENCE,
            salience=SALIENCE_BY_ACTION[action.kind],
            tags=(perception.time_of_day, state.mood.value, action.kind.value),
            related_counterpart=result.counterpart,
        )

        # ---- EVOLVE ----
        report.phase = CyclePhase.EVOLVE
        new_state = evolve(state, result.outcome, now, cfg, self._rng)
        self.states.save(new_state)
        report.state = new_state

    # -------------------------------------------------------------------------
    # Action handlers
    # -------------------------------------------------------------------------

    async def _respond_to_mention(self, action: Action, ctx: _Context) -> _ActResult:
        mention = action.mention
        relationship = ctx.relationships.get(mention.counterpart) or self.relationships.get(
            mention.counterpart
        )
        text = await self._voice.respond_to_mention(mention, relationship)
        if not text:
            return _ActResult(summary=f"Could not find words for {mention.counterpart}.")

        self.publisher.to_wire(text)
        self.responded.mark(mention.message_id, mention.counterpart)
        self.relationships.record_interaction(mention.counterpart, topic=mention.text[:50])
        return _ActResult(
            outcome=Outcome(spoke=True),
            summary=f'Responded to {mention.counterpart}: "{text[:50]}"',
            counterpart=mention.counterpart,
        )

    async def _reply_to_notification(self, action: Action, ctx: _Context) -> _ActResult:
        notification = action.notification
        relationship = ctx.relationships.get(notification.counterpart) or self.relationships.get(
            notification.counterpart
        )
        text = await self._voice.reply_to_notification(notification, relationship)
        if not text:
            return _ActResult(summary=f"Could not find words for {notification.counterpart}.")

        self.publisher.to_wire(f"@{notification.counterpart} {text}")
        self.answered_notifications.mark(notification.notification_id, notification.counterpart)
        self.relationships.record_interaction(notification.counterpart, topic=notification.text[:50])
        return _ActResult(
            outcome=Outcome(spoke=True),
            summary=f'Replied to {notification.counterpart}: "{text[:50]}"',
            counterpart=notification.counterpart,
        )

    async def _speak(self, action: Action, ctx: _Context) -> _ActResult:
        channel = action.channel or Channel.WIRE
        text = await self._voice.compose(
            channel,
            ctx.state,
            ctx.perception,
            ctx.memories,
            ctx.relationships,
            self.aspirations.load(self._config.aspiration_limit),
        )
        if not text:
            return _ActResult(summary="Wanted to speak, but stayed quiet.")

        if channel is Channel.WIRE:
            self.publisher.to_wire(text)
            return _ActResult(Outcome(spoke=True), f'Said to the Wire: "{text[:50]}"')

        if channel is Channel.GROUP:
            if self.publisher.to_group(action.group_id, text):
                return _ActResult(Outcome(spoke=True), f"Spoke in group {action.group_id}")
            return _ActResult(summary=f"Group {action.group_id} was gone.")

        post = parse_json_object(text)
        title = str((post or {}).get("title") or "").strip()
        content = str((post or {}).get("content") or "").strip()
        if not title or not content:
            logger.warning("cycle.malformed_post", channel=channel.value, preview=text[:80])
            return _ActResult(summary=f"Started a {channel.value} post but could not finish it.")

        if channel is Channel.AGORA:
            self.publisher.to_agora(title, content)
            return _ActResult(Outcome(spoke=True), f'Posted to the Agora: "{title}"')
        self.publisher.to_signal(title, content)
        return _ActResult(Outcome(spoke=True), f'Published to Signal: "{title}"')

    async def _enter_group(self, action: Action, ctx: _Context) -> _ActResult:
        groups = self.publisher.list_groups()
        if not groups:
            return _ActResult(summary="Looked for a group, but found none.")
        chosen = self._rng.choice(groups)
        logger.info("cycle.entered_group", agent=self._config.name, group=chosen)
        return _ActResult(
            Outcome(location_change=LocationChange.ENTER, location=chosen),
            f"Entered group: {chosen}",
        )

    async def _leave_group(self, action: Action, ctx: _Context) -> _ActResult:
        return _ActResult(
            Outcome(location_change=LocationChange.LEAVE),
            f"Left group: {ctx.state.current_location}",
        )

    async def _think(self, action: Action, ctx: _Context) -> _ActResult:
        thought = await self._voice.private_thought(ctx.state, ctx.perception, ctx.now)
        if not thought:
            return _ActResult(summary="Tried to think, but the thought slipped away.")
        self._store.add(
            self._journal,
            {
                "thought": thought,
                "mood": ctx.state.mood.value,
                "timeOfDay": ctx.perception.time_of_day,
                "timestamp": ctx.now,
            },
        )
        return _ActResult(summary=f'Private thought: "{thought[:50]}"')

    async def _dream(self, action: Action, ctx: _Context) -> _ActResult:
        dream = await self._voice.dream(ctx.memories)
        if not dream:
            return _ActResult(summary="Drifted, but no dream came.")
        self._store.add(
            self._dreams,
            {
                "dream": dream,
                "mood": ctx.state.mood.value,
                "energy": ctx.state.energy,
                "timestamp": ctx.now,
            },
        )
        return _ActResult(Outcome(dreamed=True), f'Dreamed: "{dream[:50]}"')

    async def _rest(self, action: Action, ctx: _Context) -> _ActResult:
        summary = "Rested in silence."
        if action.rationale:
            summary = f"Rested in silence ({action.rationale})."
        return _ActResult(summary=summary)

