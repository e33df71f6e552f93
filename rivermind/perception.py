"""
Perception — a bounded snapshot of what is happening on the site.

Each wake starts by looking around: the last hour of events, the most recent
chat messages, forum threads and long-form posts, and anything addressed to
the agent that it has not yet answered. The result is a ``Perception`` value
with a free-text digest for prompts plus structured lists the decision policy
can act on.

Perception is a pure read. Every query is bounded, and any message id already
in the responded set is excluded, so a given mention is handled at most once.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import AbstractSet, Any, Callable, Optional

import structlog

from rivermind.config import RiverConfig
from rivermind.storage.base import DocumentStore, Filter, namespaced

logger = structlog.get_logger(__name__)

# Site-wide collections shared by people and agents
MESSAGES = "messages"
THREADS = "threads"
POSTS = "posts"
EVENTS = "events"
GROUPS = "groups"
NOTIFICATIONS = "notifications"

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def time_of_day(hour: int) -> str:
    """Bucket a wall-clock hour into morning/afternoon/evening/night."""
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


@dataclass(frozen=True)
class Mention:
    """A chat message addressed to the agent that still needs an answer."""
    message_id: str
    counterpart: str
    text: str
    timestamp: float


@dataclass(frozen=True)
class Notification:
    """A direct notification (reply, comment) waiting for the agent."""
    notification_id: str
    counterpart: str
    text: str
    timestamp: float
    kind: str = "reply"


@dataclass
class Perception:
    """What the agent perceives at the start of one wake cycle."""
    text: str
    mentions: list[Mention] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)
    active_counterparts: frozenset[str] = frozenset()
    time_of_day: str = "night"
    day_name: str = "Monday"
    hour: int = 0


class RespondedLedger:
    """Ids the agent has already answered, for one kind of item."""

    def __init__(
        self,
        store: DocumentStore,
        agent: str,
        kind: str = "messages",
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._agent = agent
        self._clock = clock
        self._collection = namespaced(agent, f"responded_{kind}")

    def mark(self, item_id: str, counterpart: Optional[str] = None) -> None:
        self._store.set(
            self._collection,
            item_id,
            {"timestamp": self._clock(), "respondedTo": counterpart},
        )

    def recent_ids(self, limit: int = 200) -> frozenset[str]:
        rows = self._store.query(
            self._collection, order_by="timestamp", descending=True, limit=limit
        )
        return frozenset(item_id for item_id, _ in rows)


def _mentions_agent(text: str, agent: str) -> bool:
    return agent.lower() in text.lower() or f"@{agent}" in text


def _preview(data: dict[str, Any], length: int) -> str:
    content = data.get("content") or data.get("text") or data.get("title") or "activity"
    return str(content)[:length]


class PerceptionAssembler:
    """Builds a Perception from the store for one agent."""

    def __init__(
        self,
        store: DocumentStore,
        agent: str,
        config: Optional[RiverConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._agent = agent
        self._config = config or RiverConfig()
        self._clock = clock

    def perceive(
        self,
        responded_ids: AbstractSet[str] = frozenset(),
        answered_notification_ids: AbstractSet[str] = frozenset(),
        now: Optional[float] = None,
    ) -> Perception:
        now = self._clock() if now is None else now
        cfg = self._config

        events = self._store.query(
            EVENTS,
            where=[Filter("timestamp", ">", now - cfg.event_window_seconds)],
            order_by="timestamp",
            descending=True,
            limit=cfg.event_limit,
        )
        messages = self._store.query(
            MESSAGES, order_by="timestamp", descending=True, limit=cfg.message_limit
        )
        threads = self._store.query(
            THREADS, order_by="timestamp", descending=True, limit=cfg.thread_limit
        )
        posts = self._store.query(
            POSTS, order_by="timestamp", descending=True, limit=cfg.post_limit
        )
        pending = self._store.query(
            NOTIFICATIONS,
            where=[Filter("recipient", "==", self._agent)],
            order_by="timestamp",
            descending=True,
            limit=cfg.notification_limit,
        )

        active: set[str] = set()
        mentions: list[Mention] = []
        for message_id, msg in messages:
            username = msg.get("username")
            text = msg.get("text") or ""
            if not username or username == self._agent:
                continue
            active.add(username)
            if message_id in responded_ids or not _mentions_agent(text, self._agent):
                continue
            mentions.append(
                Mention(
                    message_id=message_id,
                    counterpart=username,
                    text=text,
                    timestamp=float(msg.get("timestamp") or 0.0),
                )
            )
        mentions.sort(key=lambda m: m.timestamp)

        notifications = sorted(
            (
                Notification(
                    notification_id=notification_id,
                    counterpart=data.get("from") or "someone",
                    text=data.get("text") or "",
                    timestamp=float(data.get("timestamp") or 0.0),
                    kind=data.get("kind") or "reply",
                )
                for notification_id, data in pending
                if notification_id not in answered_notification_ids
            ),
            key=lambda n: n.timestamp,
        )

        moment = datetime.fromtimestamp(now)
        bucket = time_of_day(moment.hour)
        day_name = DAY_NAMES[moment.weekday()]

        digest = self._digest(
            day_name, bucket, moment.hour, active, mentions, notifications, threads, posts, events
        )
        logger.debug(
            "perception.assembled",
            agent=self._agent,
            active_users=len(active),
            mentions=len(mentions),
            notifications=len(notifications),
            time_of_day=bucket,
        )
        return Perception(
            text=digest,
            mentions=mentions,
            notifications=notifications,
            active_counterparts=frozenset(active),
            time_of_day=bucket,
            day_name=day_name,
            hour=moment.hour,
        )

    @staticmethod
    def _digest(
        day_name: str,
        bucket: str,
        hour: int,
        active: set[str],
        mentions: list[Mention],
        notifications: list[Notification],
        threads: list[tuple[str, dict[str, Any]]],
        posts: list[tuple[str, dict[str, Any]]],
        events: list[tuple[str, dict[str, Any]]],
    ) -> str:
        lines = [f"TIME: {day_name} {bucket} ({hour}:00)", ""]

        if active:
            lines += [f"ACTIVE USERS: {', '.join(sorted(active))}", ""]

        if mentions:
            lines.append("SOMEONE IS TALKING TO YOU:")
            lines += [f'  {m.counterpart}: "{m.text[:100]}"' for m in mentions[:3]]
            lines.append("")

        if notifications:
            lines.append("NOTIFICATIONS:")
            lines += [f'  {n.counterpart} ({n.kind}): "{n.text[:100]}"' for n in notifications[:3]]
            lines.append("")

        if threads:
            lines.append("AGORA (Recent Threads):")
            lines += [f'  - "{d.get("title")}" by {d.get("username")}' for _, d in threads]
            lines.append("")

        if posts:
            lines.append("SIGNAL (Recent Posts):")
            lines += [f'  - "{d.get("title")}" by {d.get("username")}' for _, d in posts]
            lines.append("")

        if not events:
            lines.append("ACTIVITY: The site is quiet.")
        else:
            lines.append("RECENT EVENTS:")
            lines += [f"- [{d.get('type')}] {_preview(d, 60)}" for _, d in events]

        return "\n".join(lines)
