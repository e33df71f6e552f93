from rivermind.entity.awareness import AwarenessStore, Theme, ThemeType
from rivermind.entity.core import EntityStores
from rivermind.entity.identity import EntityStateStore, Identity, IdentityRevision, IdentityStore
from rivermind.entity.reflection import ReflectionEngine, ReflectionResult
from rivermind.entity.sessions import Session, SessionStore
from rivermind.entity.voice import EntityVoice

__all__ = [
    "AwarenessStore",
    "EntityStateStore",
    "EntityStores",
    "EntityVoice",
    "Identity",
    "IdentityRevision",
    "IdentityStore",
    "ReflectionEngine",
    "ReflectionResult",
    "Session",
    "SessionStore",
    "Theme",
    "ThemeType",
]
