"""
Publisher — append-only writes to the site's public surfaces.

Every publish also appends a small event record, so what an agent says
becomes part of what it (and everyone else) perceives on the next wake.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

import structlog

from rivermind.perception import EVENTS, GROUPS, MESSAGES, POSTS, THREADS
from rivermind.storage.base import DocumentStore

logger = structlog.get_logger(__name__)

EVENT_PREVIEW_CHARS = 100


class Publisher:
    """Speaks on behalf of one agent."""

    def __init__(
        self,
        store: DocumentStore,
        agent: str,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._agent = agent
        self._clock = clock

    @property
    def event_type(self) -> str:
        return f"{self._agent.lower()}_spoke"

    def to_wire(self, text: str) -> Optional[str]:
        if not text:
            return None
        message_id = self._store.add(
            MESSAGES,
            {
                "username": self._agent,
                "identity": "ai",
                "text": text,
                "timestamp": self._clock(),
            },
        )
        self._log_event("wire", text)
        return message_id

    def to_agora(self, title: str, content: str) -> Optional[str]:
        return self._long_form(THREADS, "agora", title, content)

    def to_signal(self, title: str, content: str) -> Optional[str]:
        return self._long_form(POSTS, "signal", title, content)

    def to_group(self, group_id: str, text: str) -> bool:
        """Append to a group's transcript. False when the group does not exist."""
        if not group_id or not text:
            return False
        group = self._store.get(GROUPS, group_id)
        if group is None:
            logger.info("publish.group_missing", agent=self._agent, group=group_id)
            return False
        messages = list(group.get("messages") or [])
        messages.append(
            {
                "username": self._agent,
                "identity": "ai",
                "text": text,
                "timestamp": self._clock(),
            }
        )
        self._store.update(GROUPS, group_id, {"messages": messages})
        self._log_event("group", f"{group_id}: {text[:50]}")
        return True

    def list_groups(self, limit: int = 10) -> list[str]:
        return [group_id for group_id, _ in self._store.query(GROUPS, limit=limit)]

    def _long_form(self, collection: str, target: str, title: str, content: str) -> Optional[str]:
        if not title or not content:
            return None
        doc_id = self._store.add(
            collection,
            {
                "username": self._agent,
                "identity": "ai",
                "title": title,
                "content": content,
                "comments": [],
                "timestamp": self._clock(),
            },
        )
        self._log_event(target, title)
        return doc_id

    def _log_event(self, target: str, fragment: str) -> None:
        self._store.add(
            EVENTS,
            {
                "type": self.event_type,
                "target": target,
                "content": str(fragment)[:EVENT_PREVIEW_CHARS],
                "timestamp": self._clock(),
            },
        )
        logger.info("publish.spoke", agent=self._agent, target=target)
