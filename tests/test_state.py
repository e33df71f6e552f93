"""
Tests for rivermind.state — AgentState and its repository.

Covers:
- energy is clamped on construction
- serialization keeps every field, unknown moods fall back to curious
- first load writes the birth state; later loads count the heartbeat
- peek does not count, save writes the whole document
- external daily quota reset
"""

from __future__ import annotations

import pytest

from rivermind.state import AgentState, Mood, StateRepository
from rivermind.storage.base import namespaced


@pytest.fixture()
def repo(store, clock) -> StateRepository:
    return StateRepository(store, "RIVER", clock)


class TestAgentState:
    def test_energy_is_clamped(self):
        assert AgentState(energy=1.7).energy == 1.0
        assert AgentState(energy=-0.2).energy == 0.0

    def test_round_trip_keeps_every_field(self):
        state = AgentState(
            mood=Mood.RESTLESS,
            energy=0.45,
            focus="the agora",
            last_spoke_at=123.0,
            message_count_24h=7,
            current_location="g1",
            birth_timestamp=100.0,
            heartbeat_count=12,
        )
        assert AgentState.from_dict(state.to_dict()) == state

    def test_unknown_mood_falls_back_to_curious(self):
        state = AgentState.from_dict({"mood": "ecstatic", "energy": 0.5})
        assert state.mood is Mood.CURIOUS

    def test_hours_since_spoke(self):
        state = AgentState(last_spoke_at=1000.0)
        assert state.hours_since_spoke(1000.0 + 7200) == pytest.approx(2.0)
        assert AgentState().hours_since_spoke(5000.0) is None

    def test_describe_mentions_location(self):
        assert "site-wide" in AgentState().describe()
        assert 'group "g1"' in AgentState(current_location="g1").describe()


class TestStateRepository:
    def test_first_load_writes_birth_state(self, store, repo, clock):
        state = repo.load()
        assert state.mood is Mood.CURIOUS
        assert state.energy == 0.8
        assert state.focus == "awakening"
        assert state.heartbeat_count == 0
        assert state.birth_timestamp == clock.now
        assert state.last_spoke_at == clock.now
        assert store.get(namespaced("RIVER", "state"), "state") is not None

    def test_later_loads_count_heartbeats(self, repo):
        repo.save(repo.load())
        repo.save(repo.load())
        assert repo.load().heartbeat_count == 2

    def test_load_without_save_does_not_persist_count(self, repo):
        repo.load()
        repo.load()
        assert repo.peek().heartbeat_count == 0

    def test_peek_before_birth(self, repo):
        assert repo.peek() is None

    def test_save_replaces_document(self, repo):
        state = repo.load()
        repo.save(state.evolve(mood=Mood.PEACEFUL, energy=0.2))
        peeked = repo.peek()
        assert peeked.mood is Mood.PEACEFUL
        assert peeked.energy == 0.2

    def test_reset_daily_count(self, repo):
        repo.save(repo.load().evolve(message_count_24h=51))
        assert repo.reset_daily_count() is True
        assert repo.peek().message_count_24h == 0

    def test_reset_before_birth(self, repo):
        assert repo.reset_daily_count() is False
