"""Aspirations — the goals and wonderings an agent carries between cycles."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

import structlog

from rivermind.storage.base import DocumentStore, Filter, namespaced

logger = structlog.get_logger(__name__)

GOAL_ACTIVE = "active"
GOAL_RESOLVED = "resolved"


@dataclass
class Aspirations:
    """Decision context: a few open goals and questions."""
    goals: list[str] = field(default_factory=list)
    wonderings: list[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.goals and not self.wonderings


class AspirationStore:
    """Goals and wonderings, authored explicitly and never auto-pruned."""

    def __init__(
        self,
        store: DocumentStore,
        agent: str,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._agent = agent
        self._clock = clock
        self._goals = namespaced(agent, "goals")
        self._wonderings = namespaced(agent, "wonderings")

    def add_goal(self, description: str) -> str:
        goal_id = self._store.add(
            self._goals,
            {"description": description, "createdAt": self._clock(), "status": GOAL_ACTIVE},
        )
        logger.info("aspiration.goal_added", agent=self._agent, goal=description[:80])
        return goal_id

    def add_wondering(self, question: str) -> str:
        wondering_id = self._store.add(
            self._wonderings, {"question": question, "createdAt": self._clock()}
        )
        logger.info("aspiration.wondering_added", agent=self._agent, question=question[:80])
        return wondering_id

    def resolve_goal(self, goal_id: str) -> bool:
        try:
            self._store.update(self._goals, goal_id, {"status": GOAL_RESOLVED})
        except KeyError:
            return False
        return True

    def load(self, limit: int = 5) -> Aspirations:
        """Up to ``limit`` active goals and ``limit`` wonderings, newest first."""
        goals = self._store.query(
            self._goals,
            where=[Filter("status", "==", GOAL_ACTIVE)],
            order_by="createdAt",
            descending=True,
            limit=limit,
        )
        wonderings = self._store.query(
            self._wonderings, order_by="createdAt", descending=True, limit=limit
        )
        return Aspirations(
            goals=[data["description"] for _, data in goals],
            wonderings=[data["question"] for _, data in wonderings],
        )
