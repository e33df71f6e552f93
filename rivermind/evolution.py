"""
State Evolution — how one cycle's outcome changes RIVER.

``evolve`` is a pure function from (state, outcome) to a new state. Speaking
costs energy and counts against the daily quota; everything else restores a
little energy, and a completed dream restores more. Independently of what
happened, the mood occasionally drifts to a random new one.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from rivermind.config import RiverConfig
from rivermind.decision import RandomSource
from rivermind.state import MOODS, AgentState, clamp_energy

logger = structlog.get_logger(__name__)


class LocationChange(str, Enum):
    NONE = "none"
    ENTER = "enter"
    LEAVE = "leave"


@dataclass(frozen=True)
class Outcome:
    """What acting actually produced this cycle."""
    spoke: bool = False
    location_change: LocationChange = LocationChange.NONE
    location: Optional[str] = None
    new_focus: Optional[str] = None
    dreamed: bool = False


def evolve(
    state: AgentState,
    outcome: Outcome,
    now: float,
    config: Optional[RiverConfig] = None,
    rng: Optional[RandomSource] = None,
) -> AgentState:
    config = config or RiverConfig()
    rng = rng or random.Random()

    if outcome.spoke:
        energy = clamp_energy(state.energy - config.speak_energy_cost)
        last_spoke_at = now
        count = state.message_count_24h + 1
    else:
        recovery = config.dream_recovery if outcome.dreamed else config.rest_recovery
        energy = clamp_energy(state.energy + recovery)
        last_spoke_at = state.last_spoke_at
        count = state.message_count_24h

    location = state.current_location
    if outcome.location_change is LocationChange.ENTER:
        location = outcome.location
    elif outcome.location_change is LocationChange.LEAVE:
        location = None

    mood = state.mood
    if rng.random() < config.mood_drift_probability:
        mood = rng.choice(MOODS)
        if mood is not state.mood:
            logger.info("evolution.mood_drift", old=state.mood.value, new=mood.value)

    focus = outcome.new_focus if outcome.new_focus is not None else state.focus

    return state.evolve(
        energy=energy,
        last_spoke_at=last_spoke_at,
        message_count_24h=count,
        current_location=location,
        mood=mood,
        focus=focus,
    )
