"""
rivermind — entry-point wiring.

Builds the document store, the text generator and both agents from a
``RivermindConfig``, and owns logging configuration. The CLI calls into the
builders here; nothing below this module knows about environment variables
or the command line.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass
from typing import Any, Optional

import structlog

from rivermind.api.claude import AnthropicTextGenerator, TextGenerator
from rivermind.config import RivermindConfig
from rivermind.cycle import WakeCycle
from rivermind.entity.core import EntityStores
from rivermind.entity.reflection import ReflectionEngine
from rivermind.entity.voice import EntityVoice
from rivermind.publish import Publisher
from rivermind.scheduler import PeriodicJob, Scheduler
from rivermind.storage.base import DocumentStore
from rivermind.storage.sqlite import SQLiteDocumentStore
from rivermind.voice import RiverVoice

_SECRET_KEY_RE = re.compile(r"(api_key|token|secret|password)", re.IGNORECASE)
_TRUNCATED_KEYS = {"content", "preview", "thought", "text"}
_MAX_DISPLAY_LEN = 80


def _redact_sensitive_fields(logger, method_name, event_dict):
    """
    Structlog processor that hides secrets and shortens free text.

    Secret-looking keys are replaced outright; long generated text is cut to a
    short preview so whole messages never land in the logs.
    """
    for key in list(event_dict):
        if key == "event":
            continue
        val = event_dict[key]
        if _SECRET_KEY_RE.search(key) and val:
            event_dict[key] = "[REDACTED]"
        elif key in _TRUNCATED_KEYS and isinstance(val, str) and len(val) > _MAX_DISPLAY_LEN:
            event_dict[key] = val[:_MAX_DISPLAY_LEN] + "... [truncated]"
    return event_dict


_logging_configured = False


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog over standard-library logging.

    Safe to call more than once; subsequent calls are no-ops.
    """
    global _logging_configured  # noqa: PLW0603
    if _logging_configured:
        return
    _logging_configured = True

    logging.basicConfig(format="%(message)s", level=level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _redact_sensitive_fields,
            structlog.dev.ConsoleRenderer(colors=True),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


logger = structlog.get_logger(__name__)


def build_store(config: RivermindConfig) -> DocumentStore:
    """Open (and create if needed) the SQLite document store."""
    config.store.data_dir.mkdir(parents=True, exist_ok=True)
    store = SQLiteDocumentStore(config.store.db_path)
    store.initialize()
    return store


def build_generator(config: RivermindConfig) -> TextGenerator:
    return AnthropicTextGenerator(config.engine)


@dataclass
class EntityRuntime:
    stores: EntityStores
    reflection: ReflectionEngine
    voice: EntityVoice
    publisher: Publisher


def build_river(
    config: RivermindConfig,
    store: DocumentStore,
    generator: TextGenerator,
    rng: Optional[random.Random] = None,
) -> WakeCycle:
    rng = rng or random.Random()
    voice = RiverVoice(generator, name=config.river.name, rng=rng)
    return WakeCycle(store, voice, config.river, config.memory, rng=rng)


def build_entity(
    config: RivermindConfig,
    store: DocumentStore,
    generator: TextGenerator,
) -> EntityRuntime:
    stores = EntityStores.build(store, config.entity, config.memory)
    return EntityRuntime(
        stores=stores,
        reflection=ReflectionEngine(generator, stores),
        voice=EntityVoice(generator, stores),
        publisher=Publisher(store, config.entity.name),
    )


def build_scheduler(
    config: RivermindConfig,
    river: WakeCycle,
    entity: Optional[EntityRuntime] = None,
) -> Scheduler:
    """The daemon's jobs: RIVER's heartbeat, the fading sweeps, ENTITY's day."""

    async def heartbeat() -> Any:
        return await river.run()

    async def sweep_river() -> Any:
        return river.memories.sweep()

    jobs = [
        PeriodicJob("river.heartbeat", config.river.heartbeat_interval, heartbeat),
        PeriodicJob("river.memory_sweep", config.memory.sweep_interval, sweep_river),
    ]

    if entity is not None:

        async def sweep_entity() -> Any:
            return entity.stores.memories.sweep()

        async def reflect_pending() -> Any:
            for session in entity.stores.sessions.unreflected():
                await entity.reflection.reflect(session.session_id)

        async def daily() -> Any:
            return await entity.reflection.daily_reflection()

        jobs += [
            PeriodicJob("entity.memory_sweep", config.memory.sweep_interval, sweep_entity),
            PeriodicJob("entity.pending_reflections", config.river.heartbeat_interval, reflect_pending),
            PeriodicJob(
                "entity.daily_reflection",
                config.entity.daily_reflection_interval,
                daily,
                run_immediately=False,
            ),
        ]
    return Scheduler(jobs)


async def run_daemon(config: Optional[RivermindConfig] = None, with_entity: bool = True) -> None:
    """Run every scheduled job in the foreground until cancelled."""
    configure_logging()
    config = config or RivermindConfig()
    logger.info("rivermind.starting", config=repr(config))
    store = build_store(config)
    try:
        generator = build_generator(config)
        river = build_river(config, store, generator)
        entity = build_entity(config, store, generator) if with_entity else None
        await build_scheduler(config, river, entity).run_forever()
    finally:
        store.close()
        logger.info("rivermind.stopped")
