"""
Tests for rivermind.entity.identity, sessions and awareness — ENTITY's stores.

Covers:
- birth creates a blank version-0 identity, exactly once
- updates bump the version and append history, newest first
- updating a never-written identity starts at version 1
- the bookkeeping document and conversation count
- session lifecycle: start, messages, end, reflected flag, pending list
- collective awareness ordering and reinforcement
"""

from __future__ import annotations

import pytest

from rivermind.entity import AwarenessStore, EntityStores, ThemeType
from rivermind.entity.sessions import ROLE_AGENT, ROLE_COUNTERPART
from rivermind.storage.base import namespaced


@pytest.fixture()
def stores(store, clock) -> EntityStores:
    return EntityStores.build(store, clock=clock)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

class TestIdentity:
    def test_not_born_yet(self, stores):
        assert stores.identity.get() is None

    def test_birth_creates_blank_identity(self, stores, clock):
        assert stores.birth() is True
        identity = stores.identity.get()
        assert identity.blank
        assert identity.version == 0
        assert identity.birth_timestamp == clock.now
        assert stores.state.get()["conversationCount"] == 0

    def test_second_birth_is_refused(self, stores, clock):
        stores.birth()
        clock.advance(10)
        assert stores.birth() is False
        assert stores.identity.get().birth_timestamp == clock.now - 10

    def test_update_bumps_version_and_records_history(self, stores, clock):
        stores.birth()
        assert stores.identity.update("I am new.", "First awakening") == 1
        clock.advance(60)
        assert stores.identity.update("I am changing.", "Daily reflection") == 2

        identity = stores.identity.get()
        assert identity.content == "I am changing."
        assert identity.update_reason == "Daily reflection"
        history = stores.identity.history()
        assert [h.version for h in history] == [2, 1]
        assert history[1].content == "I am new."
        assert history[1].reason == "First awakening"

    def test_update_without_birth_starts_at_version_one(self, store, stores):
        version = stores.identity.update("Suddenly, I am.", "First awakening")
        assert version == 1
        assert stores.identity.get().content == "Suddenly, I am."
        history = store.query(namespaced("ENTITY", "identity_history"), limit=10)
        assert len(history) == 1

    def test_history_is_never_pruned(self, stores):
        stores.birth()
        for i in range(5):
            stores.identity.update(f"v{i + 1}")
        assert len(stores.identity.history(limit=50)) == 5


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

class TestSessions:
    def test_start_counts_conversation(self, stores):
        stores.birth()
        session_id = stores.sessions.start("alice")
        state = stores.state.get()
        assert state["conversationCount"] == 1
        assert state["currentSession"] == session_id
        assert stores.sessions.get(session_id).active

    def test_messages_and_transcript(self, stores):
        session_id = stores.sessions.start("alice")
        stores.sessions.add_message(session_id, ROLE_COUNTERPART, "who are you?")
        stores.sessions.add_message(session_id, ROLE_AGENT, "I am still finding out.")
        session = stores.sessions.get(session_id)
        assert [m.role for m in session.messages] == [ROLE_COUNTERPART, ROLE_AGENT]
        assert session.transcript() == "ALICE: who are you?\n\nME: I am still finding out."

    def test_add_message_to_unknown_session_raises(self, stores):
        with pytest.raises(KeyError):
            stores.sessions.add_message("ghost", ROLE_COUNTERPART, "hello?")

    def test_end_moves_to_completed(self, stores, clock):
        session_id = stores.sessions.start("alice")
        clock.advance(120)
        ended = stores.sessions.end(session_id)
        assert ended.ended_at == clock.now
        assert not stores.sessions.get(session_id).active
        assert stores.state.get()["currentSession"] is None
        with pytest.raises(KeyError):
            stores.sessions.add_message(session_id, ROLE_COUNTERPART, "too late")

    def test_end_unknown_session(self, stores):
        assert stores.sessions.end("ghost") is None

    def test_unreflected_lists_pending_sessions(self, stores, clock):
        first = stores.sessions.start("alice")
        second = stores.sessions.start("bob")
        stores.sessions.end(first)
        clock.advance(10)
        stores.sessions.end(second)
        stores.sessions.start("carol")

        assert [s.session_id for s in stores.sessions.unreflected()] == [first, second]
        stores.sessions.mark_reflected(first)
        assert [s.session_id for s in stores.sessions.unreflected()] == [second]

    def test_mark_reflected_unknown(self, stores):
        assert stores.sessions.mark_reflected("ghost") is False

    def test_open_session_cannot_be_marked_reflected(self, stores):
        session_id = stores.sessions.start("alice")
        assert stores.sessions.mark_reflected(session_id) is False
        assert not stores.sessions.get(session_id).reflected


# ---------------------------------------------------------------------------
# Collective awareness
# ---------------------------------------------------------------------------

class TestAwareness:
    def test_top_is_strongest_first(self, store, clock):
        awareness = AwarenessStore(store, "ENTITY", clock)
        quiet = awareness.add("people ask about memory")
        loud = awareness.add("people want to be seen", ThemeType.INSIGHT)
        assert awareness.reinforce(loud) is True
        themes = awareness.top()
        assert [t.theme_id for t in themes] == [loud, quiet]
        assert themes[0].strength == 2
        assert themes[0].theme_type is ThemeType.INSIGHT

    def test_reinforce_missing(self, store, clock):
        assert AwarenessStore(store, "ENTITY", clock).reinforce("ghost") is False
