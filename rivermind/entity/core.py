"""ENTITY's persistent faculties, wired to one document store."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from rivermind.config import EntityConfig, MemoryConfig
from rivermind.entity.awareness import AwarenessStore
from rivermind.entity.identity import EntityStateStore, IdentityStore
from rivermind.entity.sessions import SessionStore
from rivermind.memory import MemoryStore, RelationshipLedger
from rivermind.storage.base import DocumentStore


@dataclass
class EntityStores:
    store: DocumentStore
    config: EntityConfig
    identity: IdentityStore
    state: EntityStateStore
    memories: MemoryStore
    relationships: RelationshipLedger
    awareness: AwarenessStore
    sessions: SessionStore
    clock: Callable[[], float] = time.time

    @classmethod
    def build(
        cls,
        store: DocumentStore,
        config: Optional[EntityConfig] = None,
        memory_config: Optional[MemoryConfig] = None,
        clock: Callable[[], float] = time.time,
    ) -> EntityStores:
        config = config or EntityConfig()
        agent = config.name
        state = EntityStateStore(store, agent, clock)
        return cls(
            store=store,
            config=config,
            identity=IdentityStore(store, agent, clock),
            state=state,
            memories=MemoryStore(store, agent, memory_config, clock),
            relationships=RelationshipLedger(store, agent, clock),
            awareness=AwarenessStore(store, agent, clock),
            sessions=SessionStore(store, agent, clock, state),
            clock=clock,
        )

    def birth(self) -> bool:
        """Create the blank identity and the bookkeeping document."""
        if not self.identity.birth():
            return False
        self.state.initialize()
        return True
