"""Exception types shared across rivermind subsystems."""

from __future__ import annotations


class RivermindError(Exception):
    """Base class for errors raised by rivermind itself."""


class StoreError(RivermindError):
    """Raised when the durable store cannot complete an operation."""


class StoreNotInitializedError(StoreError):
    """Raised when a store is used before ``initialize()`` was called."""


class EngineInitError(RivermindError):
    """Raised when the text generation client cannot be constructed safely."""
