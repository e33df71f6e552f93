"""Durable document storage shared by every agent subsystem."""

from rivermind.storage.base import DocumentStore, Filter, namespaced
from rivermind.storage.memory import InMemoryDocumentStore
from rivermind.storage.sqlite import SQLiteDocumentStore

__all__ = ["DocumentStore", "Filter", "InMemoryDocumentStore", "SQLiteDocumentStore", "namespaced"]
