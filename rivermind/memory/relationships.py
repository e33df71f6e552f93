"""
Relationship Ledger — who the agent has met, and what it knows about them.

Relationships are created on first interaction and never deleted. Every later
interaction bumps the counter and last-seen time; the recent topic is
last-write-wins. The richer summary fields (shared history, what matters to
them, how the agent feels about them) are only ever overwritten wholesale by a
reflection.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog

from rivermind.storage.base import DocumentStore, namespaced

logger = structlog.get_logger(__name__)


@dataclass
class Relationship:
    """The agent's memory of one counterpart."""
    counterpart: str
    first_seen: float
    last_seen: float
    interaction_count: int = 0
    recent_topic: Optional[str] = None
    shared_history: str = ""
    what_matters_to_them: str = ""
    how_i_feel_about_them: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "firstSeen": self.first_seen,
            "lastSeen": self.last_seen,
            "interactionCount": self.interaction_count,
            "recentTopic": self.recent_topic,
            "sharedHistory": self.shared_history,
            "whatMattersToThem": self.what_matters_to_them,
            "howIFeelAboutThem": self.how_i_feel_about_them,
        }

    @classmethod
    def from_dict(cls, counterpart: str, data: dict[str, Any]) -> Relationship:
        return cls(
            counterpart=counterpart,
            first_seen=float(data.get("firstSeen", 0.0)),
            last_seen=float(data.get("lastSeen", 0.0)),
            interaction_count=int(data.get("interactionCount", 0)),
            recent_topic=data.get("recentTopic"),
            shared_history=data.get("sharedHistory") or "",
            what_matters_to_them=data.get("whatMattersToThem") or "",
            how_i_feel_about_them=data.get("howIFeelAboutThem") or "",
        )


class RelationshipLedger:
    """Per-counterpart interaction history for one agent."""

    def __init__(
        self,
        store: DocumentStore,
        agent: str,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._agent = agent
        self._clock = clock
        self._collection = namespaced(agent, "relationships")

    def get(self, counterpart: str) -> Optional[Relationship]:
        data = self._store.get(self._collection, counterpart)
        return Relationship.from_dict(counterpart, data) if data is not None else None

    def all(self, limit: int = 50) -> dict[str, Relationship]:
        """Known counterparts, most recently seen first."""
        rows = self._store.query(
            self._collection, order_by="lastSeen", descending=True, limit=limit
        )
        return {name: Relationship.from_dict(name, data) for name, data in rows}

    def record_interaction(self, counterpart: str, topic: Optional[str] = None) -> Relationship:
        """Count one interaction, creating the relationship on first contact."""
        now = self._clock()
        existing = self.get(counterpart)
        if existing is None:
            relationship = Relationship(
                counterpart=counterpart,
                first_seen=now,
                last_seen=now,
                interaction_count=1,
                recent_topic=topic,
            )
            self._store.set(self._collection, counterpart, relationship.to_dict())
            logger.info("relationship.created", agent=self._agent, counterpart=counterpart)
            return relationship

        fields: dict[str, Any] = {"lastSeen": now}
        if topic:
            fields["recentTopic"] = topic
        self._store.update(self._collection, counterpart, fields)
        self._store.increment(self._collection, counterpart, "interactionCount", 1)
        logger.debug("relationship.interaction", agent=self._agent, counterpart=counterpart)
        return self.get(counterpart)

    def overwrite_summary(
        self,
        counterpart: str,
        shared_history: str = "",
        what_matters_to_them: str = "",
        how_i_feel_about_them: str = "",
    ) -> Relationship:
        """Replace the reflective summary fields wholesale.

        This is not an interaction: the counter is left alone.
        """
        summary = {
            "sharedHistory": shared_history or "",
            "whatMattersToThem": what_matters_to_them or "",
            "howIFeelAboutThem": how_i_feel_about_them or "",
        }
        if self.get(counterpart) is None:
            now = self._clock()
            relationship = Relationship(counterpart=counterpart, first_seen=now, last_seen=now)
            self._store.set(self._collection, counterpart, {**relationship.to_dict(), **summary})
        else:
            self._store.update(self._collection, counterpart, summary)
        logger.info("relationship.summary_updated", agent=self._agent, counterpart=counterpart)
        return self.get(counterpart)
