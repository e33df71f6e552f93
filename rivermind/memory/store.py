"""
Memory Store — Append-Only Experience With Selective Forgetting.

Memories are appended on every meaningful event and never pruned for capacity.
Recall is ordered by vividness, which is recency of *access*: revisiting an old
memory brings it back to the top, ahead of newer memories nobody has touched.

Forgetting is deliberately rare. A memory only becomes a candidate when all
three conditions hold at once:

    - it has not been revisited for longer than the fade age (30 days)
    - its salience is below the fade threshold (0.3)
    - it has never been revisited at all

Forgotten memories are moved verbatim into an archive partition; they leave
the active set but are never destroyed.
"""

from __future__ import annotations

import time
from typing import Callable, Iterable, Optional

import structlog

from rivermind.config import MemoryConfig
from rivermind.memory.records import Memory, MemoryType, clamp01
from rivermind.storage.base import DocumentStore, Filter, namespaced

logger = structlog.get_logger(__name__)


class MemoryStore:
    """One agent's active memories plus its forgotten archive."""

    def __init__(
        self,
        store: DocumentStore,
        agent: str,
        config: Optional[MemoryConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._agent = agent
        self._config = config or MemoryConfig()
        self._clock = clock
        self._active = namespaced(agent, "memories")
        self._archive = namespaced(agent, "forgotten")

    # -------------------------------------------------------------------------
    # Creation and recall
    # -------------------------------------------------------------------------

    def remember(
        self,
        content: str,
        memory_type: MemoryType = MemoryType.EXPERIENCE,
        salience: float = 0.5,
        tags: Iterable[str] = (),
        related_counterpart: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> str:
        """Append a new memory and return its id.

        Store failures propagate to the caller; nothing is retried here.
        """
        now = self._clock()
        memory = Memory(
            content=content,
            memory_type=MemoryType(memory_type),
            salience=clamp01(salience),
            created_at=now,
            last_revisited_at=now,
            revisit_count=0,
            related_counterpart=related_counterpart,
            session_id=session_id,
            tags=list(tags),
        )
        memory_id = self._store.add(self._active, memory.to_dict())
        logger.info(
            "memory.remembered",
            agent=self._agent,
            memory_id=memory_id,
            type=memory.memory_type.value,
            salience=round(memory.salience, 2),
            preview=content[:50],
        )
        return memory_id

    def get(self, memory_id: str) -> Optional[Memory]:
        data = self._store.get(self._active, memory_id)
        return Memory.from_dict(data, memory_id) if data is not None else None

    def recent_vivid(self, limit: int = 20) -> list[Memory]:
        """Most recently revisited memories first."""
        rows = self._store.query(
            self._active, order_by="lastRevisitedAt", descending=True, limit=limit
        )
        return [Memory.from_dict(data, memory_id) for memory_id, data in rows]

    def recent(self, limit: int = 10) -> list[Memory]:
        """Most recently created memories first."""
        rows = self._store.query(
            self._active, order_by="createdAt", descending=True, limit=limit
        )
        return [Memory.from_dict(data, memory_id) for memory_id, data in rows]

    def revisit(self, memory_id: str) -> bool:
        """Bump a memory's vividness. Every call counts.

        Returns False when the memory is not in the active set.
        """
        try:
            self._store.update(self._active, memory_id, {"lastRevisitedAt": self._clock()})
            self._store.increment(self._active, memory_id, "revisitCount", 1)
        except KeyError:
            logger.debug("memory.revisit_missing", agent=self._agent, memory_id=memory_id)
            return False
        return True

    # -------------------------------------------------------------------------
    # Forgetting
    # -------------------------------------------------------------------------

    def is_fading(self, memory: Memory, now: Optional[float] = None) -> bool:
        """The triple conjunction: old, faint, and never revisited."""
        now = self._clock() if now is None else now
        return (
            (now - memory.last_revisited_at) > self._config.fade_after_seconds
            and memory.salience < self._config.fade_salience
            and memory.revisit_count == 0
        )

    def fading_sweep_candidate(self, memory_id: str, now: Optional[float] = None) -> bool:
        memory = self.get(memory_id)
        if memory is None:
            return False
        return self.is_fading(memory, now)

    def forget(self, memory_id: str, reason: str = "no longer needed") -> bool:
        """Move a memory verbatim into the archive.

        Forgetting an id that is no longer active is a no-op and returns False.
        The archive document reuses the memory id, so the copy is written once.
        """
        data = self._store.get(self._active, memory_id)
        if data is None:
            return False

        archived = dict(data)
        archived["forgottenAt"] = self._clock()
        archived["forgottenReason"] = reason
        self._store.set(self._archive, memory_id, archived)
        self._store.delete(self._active, memory_id)

        logger.info("memory.forgotten", agent=self._agent, memory_id=memory_id, reason=reason)
        return True

    def sweep(self, now: Optional[float] = None, batch_size: Optional[int] = None) -> list[str]:
        """Forget every stale memory that satisfies the fading policy.

        The whole fading policy is part of the query, so each pass reads at
        most ``batch_size`` actual candidates, least recently revisited first.
        Salient or revisited memories never occupy the batch.
        """
        now = self._clock() if now is None else now
        batch_size = batch_size or self._config.sweep_batch_size
        cutoff = now - self._config.fade_after_seconds
        rows = self._store.query(
            self._active,
            where=[
                Filter("lastRevisitedAt", "<", cutoff),
                Filter("salience", "<", self._config.fade_salience),
                Filter("revisitCount", "==", 0),
            ],
            order_by="lastRevisitedAt",
            limit=batch_size,
        )
        forgotten: list[str] = []
        for memory_id, data in rows:
            if self.is_fading(Memory.from_dict(data, memory_id), now):
                if self.forget(memory_id, reason="faded"):
                    forgotten.append(memory_id)

        logger.info(
            "memory.sweep_complete",
            agent=self._agent,
            scanned=len(rows),
            forgotten=len(forgotten),
        )
        return forgotten

    def forgotten(self, limit: int = 20) -> list[Memory]:
        """Read back archived memories, most recently forgotten first."""
        rows = self._store.query(
            self._archive, order_by="forgottenAt", descending=True, limit=limit
        )
        return [Memory.from_dict(data, memory_id) for memory_id, data in rows]
