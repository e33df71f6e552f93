"""
Shared fixtures for the rivermind test suite.

Provides document stores, a controllable clock, a scripted random source and
a scripted text generator so individual test modules can focus on behavior
rather than setup.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

import pytest

from rivermind.storage.memory import InMemoryDocumentStore
from rivermind.storage.sqlite import SQLiteDocumentStore

# Monday 2 March 2026, 09:30 local time
NOW = datetime(2026, 3, 2, 9, 30).timestamp()
HOUR = 3600.0
DAY = 86400.0


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------

class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class ScriptedRandom:
    """Random source that replays fixed rolls.

    ``random()`` pops the next value; once the script runs out it returns
    ``default`` (or fails the test when no default was given). ``choice()``
    pops the next scripted choice, or takes the first element.
    """

    def __init__(
        self,
        values: Sequence[float] = (),
        choices: Sequence[Any] = (),
        default: Optional[float] = None,
    ):
        self.values = list(values)
        self.choices = list(choices)
        self.default = default
        self.random_calls = 0

    def random(self) -> float:
        self.random_calls += 1
        if self.values:
            return self.values.pop(0)
        if self.default is None:
            raise AssertionError("ScriptedRandom ran out of rolls")
        return self.default

    def choice(self, seq: Any) -> Any:
        if self.choices:
            return self.choices.pop(0)
        return seq[0]

    def shuffle(self, seq: list) -> None:
        pass


class StubGenerator:
    """TextGenerator that replays queued responses and records every call.

    A queued exception is raised instead of returned. Once the queue is empty
    every call returns None, like a generator that has gone silent.
    """

    def __init__(self, responses: Sequence[Any] = ()):
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def generate(
        self,
        system_prompt: str,
        prompt: str,
        *,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Optional[str]:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "prompt": prompt,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if not self.responses:
            return None
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def sqlite_store(tmp_path):
    db = SQLiteDocumentStore(tmp_path / "rivermind.db")
    db.initialize()
    yield db
    db.close()


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path):
    """Every DocumentStore adapter, so contract tests run against both."""
    if request.param == "memory":
        yield InMemoryDocumentStore()
        return
    db = SQLiteDocumentStore(tmp_path / "contract.db")
    db.initialize()
    yield db
    db.close()
