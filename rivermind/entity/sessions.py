"""
Sessions — ENTITY's conversations, from first message to reflection.

A session lives in the active partition while the conversation runs. Ending it
moves the document verbatim into the completed partition, where it waits to
be reflected on exactly once.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import structlog

from rivermind.entity.identity import EntityStateStore
from rivermind.storage.base import DocumentStore, Filter, namespaced

logger = structlog.get_logger(__name__)

ROLE_COUNTERPART = "counterpart"
ROLE_AGENT = "agent"


@dataclass
class SessionMessage:
    role: str
    content: str
    timestamp: float


@dataclass
class Session:
    session_id: str
    counterpart: str
    started_at: float
    ended_at: Optional[float] = None
    messages: list[SessionMessage] = field(default_factory=list)
    reflected: bool = False
    skip_reason: Optional[str] = None

    @property
    def active(self) -> bool:
        return self.ended_at is None

    def transcript(self, self_label: str = "ME") -> str:
        lines = []
        for msg in self.messages:
            speaker = self_label if msg.role == ROLE_AGENT else self.counterpart.upper()
            lines.append(f"{speaker}: {msg.content}")
        return "\n\n".join(lines)

    @classmethod
    def from_dict(cls, session_id: str, data: dict[str, Any]) -> Session:
        return cls(
            session_id=session_id,
            counterpart=data.get("counterpart") or "someone",
            started_at=float(data.get("startedAt", 0.0)),
            ended_at=data.get("endedAt"),
            messages=[
                SessionMessage(
                    role=m.get("role", ROLE_COUNTERPART),
                    content=m.get("content", ""),
                    timestamp=float(m.get("timestamp", 0.0)),
                )
                for m in data.get("messages") or []
            ],
            reflected=bool(data.get("reflected", False)),
            skip_reason=data.get("reflectionSkipped"),
        )


class SessionStore:
    def __init__(
        self,
        store: DocumentStore,
        agent: str,
        clock: Callable[[], float] = time.time,
        state: Optional[EntityStateStore] = None,
    ):
        self._store = store
        self._agent = agent
        self._clock = clock
        self._state = state or EntityStateStore(store, agent, clock)
        self._active = namespaced(agent, "sessions_active")
        self._completed = namespaced(agent, "sessions_completed")

    def start(self, counterpart: str) -> str:
        session_id = self._store.add(
            self._active,
            {
                "counterpart": counterpart,
                "startedAt": self._clock(),
                "endedAt": None,
                "messages": [],
                "reflected": False,
            },
        )
        self._state.touch(currentSession=session_id)
        self._state.count_conversation()
        logger.info("session.started", agent=self._agent, session_id=session_id, counterpart=counterpart)
        return session_id

    def add_message(self, session_id: str, role: str, content: str) -> None:
        """Append one turn. Raises KeyError when the session is not active."""
        data = self._store.get(self._active, session_id)
        if data is None:
            raise KeyError(f"No active session {session_id!r}")
        now = self._clock()
        messages = list(data.get("messages") or [])
        messages.append({"role": role, "content": content, "timestamp": now})
        self._store.update(self._active, session_id, {"messages": messages, "lastMessage": now})

    def end(self, session_id: str) -> Optional[Session]:
        """Move a session from active to completed. None when it is not active."""
        data = self._store.get(self._active, session_id)
        if data is None:
            return None
        data["endedAt"] = self._clock()
        self._store.set(self._completed, session_id, data)
        self._store.delete(self._active, session_id)
        self._state.touch(currentSession=None)
        logger.info("session.ended", agent=self._agent, session_id=session_id)
        return Session.from_dict(session_id, data)

    def get(self, session_id: str) -> Optional[Session]:
        """Look in the active partition first, then the completed one."""
        for collection in (self._active, self._completed):
            data = self._store.get(collection, session_id)
            if data is not None:
                return Session.from_dict(session_id, data)
        return None

    def mark_reflected(self, session_id: str, skip_reason: Optional[str] = None) -> bool:
        """Close a completed session to reflection for good.

        ``skip_reason`` records why the pass wrote nothing. Open sessions are
        never marked.
        """
        fields: dict[str, Any] = {"reflected": True}
        if skip_reason is not None:
            fields["reflectionSkipped"] = skip_reason
        try:
            self._store.update(self._completed, session_id, fields)
        except KeyError:
            return False
        return True

    def unreflected(self, limit: int = 20) -> list[Session]:
        """Completed sessions still waiting for reflection, oldest first."""
        rows = self._store.query(
            self._completed,
            where=[Filter("reflected", "==", False)],
            order_by="endedAt",
            limit=limit,
        )
        return [Session.from_dict(session_id, data) for session_id, data in rows]
