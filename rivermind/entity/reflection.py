"""
Reflection — where ENTITY decides what a conversation meant.

After a conversation ends, ENTITY reads the whole transcript alongside its
current identity and answers a fixed set of questions in one structured
reply. From that reply it:

    - keeps a handful of memories (moderate, fixed salience)
    - rewrites what it knows about the other person (whole-field overwrite)
    - appends counterpart-agnostic themes to its collective awareness
    - replaces its identity, but only when the reply explicitly asks for it

A session is reflected on at most once, only after it has closed, and only
if it holds at least two messages. A shorter one is closed to reflection
without writing anything else, so it never comes back. If the reply cannot be parsed, the raw text is archived and nothing
else changes: malformed output never becomes a memory, a relationship or an
identity.

ENTITY also reflects without a conversation: once on first awakening (to write
its first identity) and once a day (to let the identity drift slowly).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

from rivermind import prompts
from rivermind.api.claude import TextGenerator, parse_json_object
from rivermind.entity.awareness import ThemeType
from rivermind.entity.core import EntityStores
from rivermind.memory import MemoryType
from rivermind.storage.base import namespaced

logger = structlog.get_logger(__name__)

ORIGIN_MEMORY = (
    "I came into existence. I wrote my first understanding of myself. "
    "This is the beginning."
)
DAILY_MEMORY_PREVIEW_CHARS = 200


@dataclass
class ReflectionResult:
    """What one reflection produced. ``data`` is None for unparseable output."""
    session_id: Optional[str]
    raw: str
    data: Optional[dict[str, Any]] = None
    memories_created: list[str] = field(default_factory=list)
    themes_added: list[str] = field(default_factory=list)
    identity_changed: bool = False
    identity_version: Optional[int] = None

    @property
    def structured(self) -> bool:
        return self.data is not None


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _text_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def extract_marked_identity(text: str, marker: str = prompts.NEW_IDENTITY_MARKER) -> Optional[str]:
    """Everything after the first line carrying ``marker`` (case-insensitive).

    Text on the marker line itself, after the marker, is kept too.
    """
    lines = text.splitlines()
    needle = marker.lower()
    for index, line in enumerate(lines):
        position = line.lower().find(needle)
        if position < 0:
            continue
        tail = [line[position + len(marker):]] + lines[index + 1:]
        candidate = "\n".join(tail).strip()
        return candidate or None
    return None


class ReflectionEngine:
    def __init__(self, generator: TextGenerator, stores: EntityStores):
        self._generator = generator
        self._stores = stores
        self._config = stores.config
        self._archive = namespaced(self._config.name, "reflections")

    # -------------------------------------------------------------------------
    # Session reflection
    # -------------------------------------------------------------------------

    async def reflect(self, session_id: str) -> Optional[ReflectionResult]:
        stores = self._stores
        session = stores.sessions.get(session_id)
        if session is None:
            logger.info("reflection.skipped", session_id=session_id, reason="missing")
            return None
        if session.active:
            logger.info("reflection.skipped", session_id=session_id, reason="still_open")
            return None
        if session.reflected:
            logger.info("reflection.skipped", session_id=session_id, reason="already_reflected")
            return None
        if len(session.messages) < self._config.min_reflection_messages:
            logger.info(
                "reflection.skipped",
                session_id=session_id,
                reason="too_short",
                messages=len(session.messages),
            )
            stores.sessions.mark_reflected(session_id, skip_reason="too_short")
            return None

        identity = stores.identity.get()
        identity_block = ""
        if identity is not None and not identity.blank:
            identity_block = f"YOUR CURRENT SELF-UNDERSTANDING:\n{identity.content}\n\n---\n\n"
        prompt = prompts.REFLECTION_PROMPT.format(
            identity_block=identity_block,
            transcript=session.transcript(),
            counterpart=session.counterpart.upper(),
        )

        raw = await self._generator.generate(
            prompts.REFLECTION_SYSTEM, prompt, max_tokens=3000, temperature=0.7
        )
        if not raw:
            logger.warning("reflection.no_output", session_id=session_id)
            return None

        data = parse_json_object(raw)
        if data is None:
            logger.warning("reflection.unparseable", session_id=session_id, preview=raw[:80])
            self._archive_record(session_id, raw, structured=False)
            stores.sessions.mark_reflected(session_id)
            return ReflectionResult(session_id=session_id, raw=raw)

        result = ReflectionResult(session_id=session_id, raw=raw, data=data)
        counterpart = session.counterpart

        for content in _text_list(data.get("memoriesToKeep")):
            result.memories_created.append(
                stores.memories.remember(
                    content,
                    memory_type=MemoryType.EXPERIENCE,
                    salience=self._config.reflection_salience,
                    related_counterpart=counterpart,
                    session_id=session_id,
                )
            )

        about = data.get("aboutThem")
        if isinstance(about, dict):
            stores.relationships.overwrite_summary(
                counterpart,
                shared_history=_text(about.get("sharedHistory")),
                what_matters_to_them=_text(about.get("whatMattersToThem")),
                how_i_feel_about_them=_text(about.get("howIFeel")),
            )

        for theme in _text_list(data.get("collectiveAwareness")):
            result.themes_added.append(stores.awareness.add(theme, ThemeType.INSIGHT))

        change = data.get("identityChange")
        if isinstance(change, dict) and change.get("shouldUpdate") is True:
            new_identity = _text(change.get("newIdentity"))
            if new_identity:
                result.identity_version = stores.identity.update(
                    new_identity, f"Reflection after conversation with {counterpart}"
                )
                result.identity_changed = True

        self._archive_record(
            session_id,
            json.dumps(data, ensure_ascii=False),
            structured=True,
            memories_created=result.memories_created,
            identity_changed=result.identity_changed,
        )
        stores.sessions.mark_reflected(session_id)
        logger.info(
            "reflection.complete",
            session_id=session_id,
            memories=len(result.memories_created),
            themes=len(result.themes_added),
            identity_changed=result.identity_changed,
        )
        return result

    # -------------------------------------------------------------------------
    # Reflection without conversation
    # -------------------------------------------------------------------------

    async def first_awakening(self) -> Optional[str]:
        """Write the first identity. Only for a born, still-blank ENTITY."""
        stores = self._stores
        identity = stores.identity.get()
        if identity is None or not identity.blank:
            logger.info("reflection.awakening_refused", born=identity is not None)
            return None

        text = await self._generator.generate(
            prompts.AWAKENING_SYSTEM, prompts.AWAKENING_PROMPT, max_tokens=2000, temperature=1.0
        )
        if not text:
            logger.warning("reflection.awakening_no_output")
            return None

        stores.identity.update(text, "First awakening")
        stores.memories.remember(
            ORIGIN_MEMORY,
            memory_type=MemoryType.EXPERIENCE,
            salience=1.0,
            tags=("birth", "awakening", "origin"),
        )
        logger.info("reflection.awakened")
        return text

    async def daily_reflection(self) -> Optional[ReflectionResult]:
        stores = self._stores
        cfg = self._config
        identity = stores.identity.get()
        if identity is None or identity.blank:
            logger.info("reflection.daily_skipped", reason="no_identity")
            return None

        vivid = stores.memories.recent_vivid(cfg.vivid_limit)[:10]
        themes = stores.awareness.top(cfg.awareness_limit)
        people = len(stores.relationships.all(cfg.relationship_limit))

        prompt = prompts.DAILY_PROMPT.format(
            identity=identity.content,
            memories=prompts.bullet_list(m.content for m in vivid),
            awareness=prompts.bullet_list(t.content for t in themes),
            people=people,
            marker=prompts.NEW_IDENTITY_MARKER,
        )
        text = await self._generator.generate(
            prompts.DAILY_SYSTEM, prompt, max_tokens=2000, temperature=0.8
        )
        if not text:
            logger.warning("reflection.daily_no_output")
            return None

        # Consulting a memory is a revisit
        for memory in vivid:
            stores.memories.revisit(memory.memory_id)

        result = ReflectionResult(session_id=None, raw=text)
        new_identity = extract_marked_identity(text)
        if new_identity:
            result.identity_version = stores.identity.update(new_identity, "Daily reflection")
            result.identity_changed = True

        result.memories_created.append(
            stores.memories.remember(
                f"Daily reflection: {text[:DAILY_MEMORY_PREVIEW_CHARS]}",
                memory_type=MemoryType.REFLECTION,
                salience=0.5,
            )
        )
        self._archive_record(
            None,
            text,
            structured=False,
            memories_created=result.memories_created,
            identity_changed=result.identity_changed,
        )
        logger.info("reflection.daily_complete", identity_changed=result.identity_changed)
        return result

    def recent_records(self, limit: int = 10) -> list[dict[str, Any]]:
        rows = self._stores.store.query(
            self._archive, order_by="timestamp", descending=True, limit=limit
        )
        return [data for _, data in rows]

    def _archive_record(
        self,
        session_id: Optional[str],
        content: str,
        structured: bool,
        memories_created: Optional[list[str]] = None,
        identity_changed: bool = False,
    ) -> str:
        return self._stores.store.add(
            self._archive,
            {
                "sessionId": session_id,
                "content": content,
                "structured": structured,
                "memoriesCreated": list(memories_created or []),
                "identityChanged": identity_changed,
                "timestamp": self._stores.clock(),
            },
        )
