from rivermind.memory.aspirations import Aspirations, AspirationStore
from rivermind.memory.records import Memory, MemoryType
from rivermind.memory.relationships import Relationship, RelationshipLedger
from rivermind.memory.store import MemoryStore

__all__ = [
    "Aspirations",
    "AspirationStore",
    "Memory",
    "MemoryStore",
    "MemoryType",
    "Relationship",
    "RelationshipLedger",
]
