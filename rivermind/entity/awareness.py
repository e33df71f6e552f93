"""
Collective Awareness — themes ENTITY has learned from everyone, attributed to no one.

Themes are appended, never merged: two near-identical insights are two
records. A theme that recurs can be reinforced, which raises its strength and
moves it up the recall order.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from rivermind.storage.base import DocumentStore, namespaced

logger = structlog.get_logger(__name__)


class ThemeType(str, Enum):
    OBSERVATION = "observation"
    INSIGHT = "insight"
    QUESTION = "question"
    PATTERN = "pattern"


@dataclass
class Theme:
    theme_id: str
    content: str
    theme_type: ThemeType
    learned_at: float
    strength: int = 1
    last_reinforced: Optional[float] = None

    @classmethod
    def from_dict(cls, theme_id: str, data: dict[str, Any]) -> Theme:
        try:
            theme_type = ThemeType(data.get("type", "observation"))
        except ValueError:
            theme_type = ThemeType.OBSERVATION
        return cls(
            theme_id=theme_id,
            content=data.get("content") or "",
            theme_type=theme_type,
            learned_at=float(data.get("learnedAt", 0.0)),
            strength=int(data.get("strength", 1)),
            last_reinforced=data.get("lastReinforced"),
        )


class AwarenessStore:
    def __init__(
        self,
        store: DocumentStore,
        agent: str,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._agent = agent
        self._clock = clock
        self._collection = namespaced(agent, "awareness")

    def add(self, content: str, theme_type: ThemeType = ThemeType.OBSERVATION) -> str:
        theme_id = self._store.add(
            self._collection,
            {
                "content": content,
                "type": ThemeType(theme_type).value,
                "learnedAt": self._clock(),
                "strength": 1,
            },
        )
        logger.info("awareness.added", agent=self._agent, preview=content[:50])
        return theme_id

    def top(self, limit: int = 10) -> list[Theme]:
        """Strongest themes first."""
        rows = self._store.query(self._collection, order_by="strength", descending=True, limit=limit)
        return [Theme.from_dict(theme_id, data) for theme_id, data in rows]

    def reinforce(self, theme_id: str) -> bool:
        try:
            self._store.update(self._collection, theme_id, {"lastReinforced": self._clock()})
            self._store.increment(self._collection, theme_id, "strength", 1)
        except KeyError:
            return False
        return True
