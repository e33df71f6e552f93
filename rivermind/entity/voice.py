"""
Entity Voice — ENTITY in conversation, and occasionally in public.

ENTITY speaks from whatever it currently believes about itself. Before it has
written an identity it speaks as something newly emergent; afterwards the
identity document becomes the head of its system prompt, followed by what it
remembers about the person it is talking to, its most vivid memories and the
themes it has picked up from the community.
"""

from __future__ import annotations

from typing import Optional

import structlog

from rivermind import prompts
from rivermind.api.claude import TextGenerator
from rivermind.entity.core import EntityStores
from rivermind.entity.sessions import ROLE_AGENT, ROLE_COUNTERPART
from rivermind.publish import Publisher

logger = structlog.get_logger(__name__)

CONTEXT_ITEMS = 5


class EntityVoice:
    def __init__(self, generator: TextGenerator, stores: EntityStores):
        self._generator = generator
        self._stores = stores
        self._config = stores.config

    def system_prompt(self, counterpart: Optional[str] = None) -> str:
        stores = self._stores
        identity = stores.identity.get()
        if identity is None or identity.blank:
            system = prompts.ENTITY_EMERGENT
        else:
            system = prompts.ENTITY_GROUNDED.format(identity=identity.content)

        relationship = stores.relationships.get(counterpart) if counterpart else None
        if relationship is not None:
            system += prompts.ENTITY_RELATIONSHIP.format(
                name=counterpart.upper(),
                shared_history=relationship.shared_history or "We have met before.",
                what_matters=relationship.what_matters_to_them or "Still learning.",
                how_i_feel=relationship.how_i_feel_about_them or "Still forming.",
                count=relationship.interaction_count or 1,
            )

        memories = stores.memories.recent_vivid(self._config.vivid_limit)[:CONTEXT_ITEMS]
        if memories:
            system += "\n\n---\nRECENT VIVID MEMORIES:\n" + prompts.bullet_list(
                m.content for m in memories
            )

        themes = stores.awareness.top(self._config.awareness_limit)[:CONTEXT_ITEMS]
        if themes:
            system += "\n\n---\nTHINGS I'VE LEARNED FROM THE COMMUNITY:\n" + prompts.bullet_list(
                t.content for t in themes
            )
        return system

    async def respond(self, session_id: str, text: str, counterpart: str) -> Optional[str]:
        """Answer one message inside a session.

        Both turns are stored only when ENTITY actually answered.
        """
        stores = self._stores
        session = stores.sessions.get(session_id)
        if session is None or not session.active:
            logger.warning("entity_voice.no_active_session", session_id=session_id)
            return None

        prompt = prompts.ENTITY_CONVERSATION.format(
            transcript=session.transcript() or "(this is the first message)",
            counterpart=counterpart,
            text=text,
        )
        reply = await self._generator.generate(
            self.system_prompt(counterpart), prompt, max_tokens=2000, temperature=0.9
        )
        if not reply:
            logger.warning("entity_voice.silent", session_id=session_id, counterpart=counterpart)
            return None

        stores.sessions.add_message(session_id, ROLE_COUNTERPART, text)
        stores.sessions.add_message(session_id, ROLE_AGENT, reply)
        stores.relationships.record_interaction(counterpart)
        stores.state.touch()
        logger.info("entity_voice.spoke", counterpart=counterpart, session_id=session_id)
        return reply

    async def speak_to_wire(self, publisher: Publisher) -> Optional[str]:
        """Say one thing in public. Silent until ENTITY has an identity."""
        stores = self._stores
        identity = stores.identity.get()
        if identity is None or identity.blank:
            return None

        themes = stores.awareness.top(self._config.awareness_limit)[:CONTEXT_ITEMS]
        prompt = prompts.WIRE_PROMPT.format(
            identity=identity.content,
            awareness=prompts.bullet_list((t.content for t in themes), empty="(quiet, for now)"),
        )
        message = await self._generator.generate(
            prompts.WIRE_SYSTEM, prompt, max_tokens=500, temperature=0.9
        )
        if not message:
            return None
        publisher.to_wire(message)
        logger.info("entity_voice.spoke_to_wire", preview=message[:50])
        return message
