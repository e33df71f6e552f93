"""
Agent State — RIVER's internal condition between heartbeats.

The state is a single document per agent: a mood from a closed set, an energy
level in [0, 1], a free-text focus, the time it last spoke, a rolling daily
message counter, an optional group it is currently inside, and two facts
about its life so far (when it was born and how many times it has woken).

The state is threaded explicitly through each cycle: loaded once at the
start, transformed into a new value, and written back once at the end.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from rivermind.storage.base import DocumentStore, namespaced

logger = structlog.get_logger(__name__)


class Mood(str, Enum):
    """The moods RIVER can be in. Each biases how readily it speaks."""
    EXCITED = "excited"
    CURIOUS = "curious"
    PEACEFUL = "peaceful"
    MELANCHOLIC = "melancholic"
    RESTLESS = "restless"
    CONTEMPLATIVE = "contemplative"


# Multiplier applied to the speak probability for each mood
MOOD_MULTIPLIERS: dict[Mood, float] = {
    Mood.EXCITED: 1.5,
    Mood.CURIOUS: 1.2,
    Mood.PEACEFUL: 0.7,
    Mood.MELANCHOLIC: 0.4,
    Mood.RESTLESS: 1.3,
    Mood.CONTEMPLATIVE: 0.6,
}

MOODS: tuple[Mood, ...] = tuple(Mood)


def clamp_energy(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class AgentState:
    """Immutable snapshot of an agent's internal state."""
    mood: Mood = Mood.CURIOUS
    energy: float = 0.8
    focus: str = "awakening"
    last_spoke_at: Optional[float] = None
    message_count_24h: int = 0
    current_location: Optional[str] = None
    birth_timestamp: float = 0.0
    heartbeat_count: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "energy", clamp_energy(self.energy))

    def evolve(self, **changes: Any) -> AgentState:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def hours_since_spoke(self, now: float) -> Optional[float]:
        if self.last_spoke_at is None:
            return None
        return max(0.0, (now - self.last_spoke_at) / 3600.0)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        return {
            "mood": self.mood.value,
            "energy": data["energy"],
            "focus": data["focus"],
            "lastSpokeAt": data["last_spoke_at"],
            "messageCount24h": data["message_count_24h"],
            "currentLocation": data["current_location"],
            "birthTimestamp": data["birth_timestamp"],
            "heartbeatCount": data["heartbeat_count"],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AgentState:
        raw_mood = data.get("mood", Mood.CURIOUS.value)
        try:
            mood = Mood(raw_mood)
        except ValueError:
            logger.warning("state.unknown_mood", mood=raw_mood, fallback=Mood.CURIOUS.value)
            mood = Mood.CURIOUS
        return cls(
            mood=mood,
            energy=float(data.get("energy", 0.8)),
            focus=data.get("focus") or "",
            last_spoke_at=data.get("lastSpokeAt"),
            message_count_24h=int(data.get("messageCount24h", 0)),
            current_location=data.get("currentLocation"),
            birth_timestamp=float(data.get("birthTimestamp", 0.0)),
            heartbeat_count=int(data.get("heartbeatCount", 0)),
        )

    def describe(self) -> str:
        """Natural-language summary for prompts."""
        location = (
            f'inside group "{self.current_location}"'
            if self.current_location
            else "observing site-wide"
        )
        return (
            f"Mood: {self.mood.value}\n"
            f"Energy: {self.energy:.2f}\n"
            f"Focus: {self.focus}\n"
            f"Location: {location}"
        )


class StateRepository:
    """Explicit load-at-start / store-at-end persistence for AgentState."""

    DOC_ID = "state"

    def __init__(
        self,
        store: DocumentStore,
        agent: str,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._agent = agent
        self._clock = clock
        self._collection = namespaced(agent, "state")

    def load(self) -> AgentState:
        """Load the state for a new wake, counting the heartbeat.

        The very first load writes the birth state immediately.
        """
        data = self._store.get(self._collection, self.DOC_ID)
        if data is None:
            now = self._clock()
            birth = AgentState(last_spoke_at=now, birth_timestamp=now, heartbeat_count=0)
            self._store.set(self._collection, self.DOC_ID, birth.to_dict())
            logger.info("state.born", agent=self._agent)
            return birth

        state = AgentState.from_dict(data)
        return state.evolve(heartbeat_count=state.heartbeat_count + 1)

    def peek(self) -> Optional[AgentState]:
        """Read the stored state without counting a heartbeat."""
        data = self._store.get(self._collection, self.DOC_ID)
        return AgentState.from_dict(data) if data is not None else None

    def save(self, state: AgentState) -> None:
        """Write the whole state document in one operation."""
        self._store.set(self._collection, self.DOC_ID, state.to_dict())

    def reset_daily_count(self) -> bool:
        """External daily reset of the message counter."""
        try:
            self._store.update(self._collection, self.DOC_ID, {"messageCount24h": 0})
        except KeyError:
            return False
        logger.info("state.daily_count_reset", agent=self._agent)
        return True
