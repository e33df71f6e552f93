"""
Memory Records — the atoms of an agent's continuity.

A memory is written once and never edited: its content is immutable. The only
fields that move after creation are the revisit bookkeeping
(``last_revisited_at`` and ``revisit_count``), which model how vivid the
memory still is.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class MemoryType(str, Enum):
    """What kind of experience a memory records."""
    EXPERIENCE = "experience"
    REFLECTION = "reflection"
    INSIGHT = "insight"
    FEELING = "feeling"


def clamp01(value: Any, default: float = 0.5) -> float:
    """Clamp potentially noisy scores into [0, 1]."""
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(numeric):
        return default
    return max(0.0, min(1.0, numeric))


@dataclass
class Memory:
    """A single remembered experience."""
    content: str
    memory_type: MemoryType = MemoryType.EXPERIENCE

    # Subjective significance, independent of recency
    salience: float = 0.5

    created_at: float = field(default_factory=time.time)
    last_revisited_at: float = field(default_factory=time.time)
    revisit_count: int = 0

    related_counterpart: Optional[str] = None
    session_id: Optional[str] = None
    tags: list[str] = field(default_factory=list)

    # Assigned by the store
    memory_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for document storage (the id is the document key)."""
        return {
            "content": self.content,
            "type": self.memory_type.value,
            "salience": self.salience,
            "createdAt": self.created_at,
            "lastRevisitedAt": self.last_revisited_at,
            "revisitCount": self.revisit_count,
            "relatedCounterpart": self.related_counterpart,
            "sessionId": self.session_id,
            "tags": sorted(set(self.tags)),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], memory_id: Optional[str] = None) -> Memory:
        try:
            memory_type = MemoryType(data.get("type", "experience"))
        except ValueError:
            memory_type = MemoryType.EXPERIENCE
        return cls(
            content=data.get("content", ""),
            memory_type=memory_type,
            salience=clamp01(data.get("salience", 0.5)),
            created_at=float(data.get("createdAt", 0.0)),
            last_revisited_at=float(data.get("lastRevisitedAt", data.get("createdAt", 0.0))),
            revisit_count=int(data.get("revisitCount", 0)),
            related_counterpart=data.get("relatedCounterpart"),
            session_id=data.get("sessionId"),
            tags=list(data.get("tags") or []),
            memory_id=memory_id,
        )
