"""In-process document store used by tests and dry runs."""

from __future__ import annotations

import copy
import operator
import uuid
from typing import Any, Optional, Sequence

from rivermind.storage.base import DocumentStore, Filter, validate_field

_OPS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def _matches(doc: dict[str, Any], flt: Filter) -> bool:
    value = doc.get(flt.field)
    if flt.value is None:
        return (value is None) == (flt.op == "==")
    if value is None:
        return False
    try:
        return bool(_OPS[flt.op](value, flt.value))
    except TypeError:
        return False


class InMemoryDocumentStore(DocumentStore):
    """Dict-of-dicts store with the same query semantics as the SQLite adapter.

    Documents are deep-copied on the way in and out so callers can never
    mutate stored state by accident. Insertion order breaks ordering ties.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        doc = self._collection(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        docs = self._collection(collection)
        docs.pop(doc_id, None)
        docs[doc_id] = copy.deepcopy(data)

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise KeyError(f"{collection}/{doc_id}")
        for name in fields:
            validate_field(name)
        docs[doc_id].update(copy.deepcopy(fields))

    def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        self._collection(collection)[doc_id] = copy.deepcopy(data)
        return doc_id

    def delete(self, collection: str, doc_id: str) -> bool:
        return self._collection(collection).pop(doc_id, None) is not None

    def increment(self, collection: str, doc_id: str, field: str, amount: float = 1) -> None:
        validate_field(field)
        docs = self._collection(collection)
        if doc_id not in docs:
            raise KeyError(f"{collection}/{doc_id}")
        docs[doc_id][field] = (docs[doc_id].get(field) or 0) + amount

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
        rows = [
            (doc_id, doc)
            for doc_id, doc in self._collection(collection).items()
            if all(_matches(doc, flt) for flt in where)
        ]
        if order_by is not None:
            validate_field(order_by)
            # Missing values sort first ascending, last descending (SQLite NULL order).
            present = [r for r in rows if r[1].get(order_by) is not None]
            missing = [r for r in rows if r[1].get(order_by) is None]
            present.sort(key=lambda r: r[1][order_by], reverse=descending)
            rows = present + missing if descending else missing + present
        window = rows[max(0, offset): max(0, offset) + max(0, limit)]
        return [(doc_id, copy.deepcopy(doc)) for doc_id, doc in window]
