"""
Document Store Interface — the single persistence capability.

Every agent abstraction (state, memories, relationships, aspirations,
identity, sessions) is built on keyed collections of JSON-like documents with
ordered, limited, filtered range queries. Adapters implement this interface;
nothing above this layer knows which one is in use.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Sequence

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

OPERATORS = ("==", "!=", "<", "<=", ">", ">=")


def validate_field(name: str) -> str:
    """Reject field names that cannot be used safely as a JSON path."""
    if not isinstance(name, str) or not _FIELD_RE.match(name):
        raise ValueError(f"Invalid document field name: {name!r}")
    return name


def namespaced(agent: str, name: str) -> str:
    """Collection name for one agent's data, e.g. ``river/memories``."""
    return f"{agent.strip().lower()}/{name}"


@dataclass(frozen=True)
class Filter:
    """An equality or range predicate on one top-level document field.

    A missing field compares as None; None only supports ``==`` and ``!=``.
    """

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        validate_field(self.field)
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op!r}")
        if self.value is None and self.op not in ("==", "!="):
            raise ValueError("Only == and != may compare against None")


class DocumentStore(ABC):
    """Keyed document/collection access.

    Collections are plain strings such as ``"river/memories"``. Documents are
    dicts of JSON-serializable values. Queries always carry an explicit limit.
    """

    def initialize(self) -> None:
        """Prepare the backing storage. Default: nothing to do."""

    def close(self) -> None:
        """Release the backing storage. Default: nothing to do."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        """Return a copy of the document, or None when it does not exist."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or replace a whole document in a single write."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge top-level fields into an existing document.

        Raises KeyError when the document does not exist.
        """

    @abstractmethod
    def add(self, collection: str, data: dict[str, Any]) -> str:
        """Append a new document with a generated id and return the id."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> bool:
        """Remove a document. Returns False when nothing was there."""

    @abstractmethod
    def increment(self, collection: str, doc_id: str, field: str, amount: float = 1) -> None:
        """Add ``amount`` to a numeric field of an existing document.

        Raises KeyError when the document does not exist.
        """

    @abstractmethod
    def query(
        self,
        collection: str,
        *,
        where: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: int,
        offset: int = 0,
    ) -> list[tuple[str, dict[str, Any]]]:
        """Return ``(doc_id, document)`` pairs matching every filter."""
