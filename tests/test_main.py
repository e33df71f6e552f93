from __future__ import annotations

import random

import pytest

from rivermind.config import RivermindConfig
from rivermind.main import _redact_sensitive_fields, build_entity, build_river, build_scheduler

from conftest import StubGenerator


@pytest.fixture()
def config(monkeypatch, tmp_path) -> RivermindConfig:
    monkeypatch.setenv("RIVERMIND_DATA_DIR", str(tmp_path))
    return RivermindConfig()


def test_redact_sensitive_fields():
    event = _redact_sensitive_fields(
        None,
        "info",
        {"event": "x", "api_key": "sk-secret", "content": "y" * 200, "count": 3},
    )
    assert event["api_key"] == "[REDACTED]"
    assert event["content"].endswith("... [truncated]")
    assert len(event["content"]) < 200
    assert event["count"] == 3


def test_scheduler_jobs(config, store):
    generator = StubGenerator()
    river = build_river(config, store, generator, random.Random(0))
    entity = build_entity(config, store, generator)

    jobs = build_scheduler(config, river, entity).jobs

    assert set(jobs) == {
        "river.heartbeat",
        "river.memory_sweep",
        "entity.memory_sweep",
        "entity.pending_reflections",
        "entity.daily_reflection",
    }
    assert jobs["entity.daily_reflection"].run_immediately is False


def test_river_only_scheduler(config, store):
    river = build_river(config, store, StubGenerator(), random.Random(0))
    assert set(build_scheduler(config, river).jobs) == {"river.heartbeat", "river.memory_sweep"}


@pytest.mark.asyncio
async def test_heartbeat_job_runs_a_cycle(config, store):
    river = build_river(config, store, StubGenerator(), random.Random(0))
    scheduler = build_scheduler(config, river)

    assert await scheduler.run_once("river.heartbeat") is True
    assert river.states.peek() is not None


@pytest.mark.asyncio
async def test_pending_reflections_job(config, store):
    generator = StubGenerator(['{"memoriesToKeep": ["a good talk"]}'])
    river = build_river(config, store, generator, random.Random(0))
    entity = build_entity(config, store, generator)
    entity.stores.birth()
    session_id = entity.stores.sessions.start("alice")
    entity.stores.sessions.add_message(session_id, "counterpart", "hi")
    entity.stores.sessions.add_message(session_id, "agent", "hello")
    entity.stores.sessions.end(session_id)

    assert await build_scheduler(config, river, entity).run_once("entity.pending_reflections")
    assert entity.stores.sessions.get(session_id).reflected
    assert entity.stores.sessions.unreflected() == []
