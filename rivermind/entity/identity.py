"""
Identity — ENTITY's self-written description of who it is.

ENTITY is born blank: a version-0 identity with no content. It writes its
first self-understanding on awakening, and may rewrite it after reflecting on
a conversation or at the end of a day. Every write bumps the version and
appends an immutable history entry, so the evolution of the self can be read
back later. Prior versions are never deleted.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog

from rivermind.storage.base import DocumentStore, namespaced

logger = structlog.get_logger(__name__)


@dataclass
class Identity:
    content: str
    version: int
    last_updated: float
    update_reason: Optional[str] = None
    birth_timestamp: Optional[float] = None

    @property
    def blank(self) -> bool:
        return not self.content.strip()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Identity:
        return cls(
            content=data.get("content") or "",
            version=int(data.get("version", 0)),
            last_updated=float(data.get("lastUpdated", 0.0)),
            update_reason=data.get("updateReason"),
            birth_timestamp=data.get("birthTimestamp"),
        )


@dataclass
class IdentityRevision:
    content: str
    version: int
    timestamp: float
    reason: str


class IdentityStore:
    """Current identity plus its append-only revision history."""

    DOC_ID = "identity"

    def __init__(
        self,
        store: DocumentStore,
        agent: str,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._agent = agent
        self._clock = clock
        self._collection = namespaced(agent, "identity")
        self._history = namespaced(agent, "identity_history")

    def get(self) -> Optional[Identity]:
        """None before birth."""
        data = self._store.get(self._collection, self.DOC_ID)
        return Identity.from_dict(data) if data is not None else None

    def birth(self) -> bool:
        """Create the blank version-0 identity. A second birth is refused."""
        if self._store.get(self._collection, self.DOC_ID) is not None:
            logger.info("identity.already_born", agent=self._agent)
            return False
        now = self._clock()
        self._store.set(
            self._collection,
            self.DOC_ID,
            {"content": "", "version": 0, "lastUpdated": now, "birthTimestamp": now},
        )
        logger.info("identity.born", agent=self._agent)
        return True

    def update(self, content: str, reason: str = "reflection") -> int:
        """Replace the identity wholesale and record the revision.

        Returns the new version number.
        """
        now = self._clock()
        current = self._store.get(self._collection, self.DOC_ID)
        version = int(current.get("version", 0)) + 1 if current is not None else 1
        birth_timestamp = current.get("birthTimestamp") if current is not None else None

        self._store.set(
            self._collection,
            self.DOC_ID,
            {
                "content": content,
                "version": version,
                "lastUpdated": now,
                "updateReason": reason,
                "birthTimestamp": birth_timestamp,
            },
        )
        self._store.add(
            self._history,
            {"content": content, "version": version, "timestamp": now, "reason": reason},
        )
        logger.info("identity.updated", agent=self._agent, version=version, reason=reason)
        return version

    def history(self, limit: int = 20) -> list[IdentityRevision]:
        """Revisions, newest first."""
        rows = self._store.query(self._history, order_by="version", descending=True, limit=limit)
        return [
            IdentityRevision(
                content=data.get("content") or "",
                version=int(data.get("version", 0)),
                timestamp=float(data.get("timestamp", 0.0)),
                reason=data.get("reason") or "",
            )
            for _, data in rows
        ]


class EntityStateStore:
    """ENTITY's small bookkeeping document: activity and conversation counts."""

    DOC_ID = "state"

    def __init__(
        self,
        store: DocumentStore,
        agent: str,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._clock = clock
        self._collection = namespaced(agent, "state")

    def get(self) -> Optional[dict[str, Any]]:
        return self._store.get(self._collection, self.DOC_ID)

    def initialize(self) -> None:
        now = self._clock()
        self._store.set(
            self._collection,
            self.DOC_ID,
            {
                "birthTimestamp": now,
                "conversationCount": 0,
                "lastActive": now,
                "currentSession": None,
            },
        )

    def touch(self, **fields: Any) -> None:
        """Record activity, creating the document if it is missing."""
        fields["lastActive"] = self._clock()
        if self.get() is None:
            self.initialize()
        self._store.update(self._collection, self.DOC_ID, fields)

    def count_conversation(self) -> None:
        if self.get() is None:
            self.initialize()
        self._store.increment(self._collection, self.DOC_ID, "conversationCount", 1)
