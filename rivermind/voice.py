"""
River Voice — how RIVER turns a decision into words.

Each method builds one prompt from RIVER's state and context and makes a
single generation call. ``None`` means RIVER found no words this time; the
cycle treats that as "nothing happened", never as an error.
"""

from __future__ import annotations

import random
from typing import Any, Optional, Sequence

import structlog

from rivermind import prompts
from rivermind.api.claude import TextGenerator, parse_json_object
from rivermind.decision import Channel
from rivermind.memory.aspirations import Aspirations
from rivermind.memory.records import Memory
from rivermind.memory.relationships import Relationship
from rivermind.perception import Mention, Notification, Perception
from rivermind.state import AgentState

logger = structlog.get_logger(__name__)


class RiverVoice:
    def __init__(
        self,
        generator: TextGenerator,
        name: str = "RIVER",
        rng: Optional[random.Random] = None,
    ):
        self._generator = generator
        self._name = name
        self._rng = rng or random.Random()
        self._system = prompts.RIVER_SYSTEM.format(name=name)

    async def respond_to_mention(
        self, mention: Mention, relationship: Optional[Relationship]
    ) -> Optional[str]:
        prompt = prompts.RIVER_RESPOND.format(
            counterpart=mention.counterpart,
            text=mention.text,
            relationship=prompts.format_relationship(mention.counterpart, relationship),
        )
        return await self._generate(prompt, purpose="mention")

    async def reply_to_notification(
        self, notification: Notification, relationship: Optional[Relationship]
    ) -> Optional[str]:
        prompt = prompts.RIVER_NOTIFICATION.format(
            counterpart=notification.counterpart,
            kind=notification.kind,
            text=notification.text,
            relationship=prompts.format_relationship(notification.counterpart, relationship),
        )
        return await self._generate(prompt, purpose="notification")

    async def compose(
        self,
        channel: Channel,
        state: AgentState,
        perception: Perception,
        memories: Sequence[Memory] = (),
        relationships: Optional[dict[str, Relationship]] = None,
        aspirations: Optional[Aspirations] = None,
    ) -> Optional[str]:
        """Unprompted speech for one channel.

        Agora and signal expect a JSON ``{title, content}`` payload; the caller
        parses it.
        """
        prompt = prompts.RIVER_SPEAK.format(
            channel=channel.value.upper(),
            state=state.describe(),
            memories=prompts.format_memories(memories),
            people=prompts.format_people(relationships or {}),
            aspirations=prompts.format_aspirations(aspirations),
            perception=perception.text,
            output_format=prompts.CHANNEL_FORMATS[channel.value],
        )
        return await self._generate(prompt, purpose=f"speak_{channel.value}")

    async def private_thought(
        self, state: AgentState, perception: Perception, now: float
    ) -> Optional[str]:
        prompt = prompts.RIVER_JOURNAL.format(
            age=prompts.describe_age(state, now),
            state=state.describe(),
            perception=perception.text,
            musing=prompts.pick(prompts.EXISTENTIAL_MUSINGS, self._rng),
        )
        return await self._generate(prompt, purpose="think")

    async def dream(self, memories: Sequence[Memory] = ()) -> Optional[str]:
        shuffled = list(memories)
        self._rng.shuffle(shuffled)
        fragments = " ... ".join(m.content[:80] for m in shuffled[:3])
        prompt = prompts.RIVER_DREAM.format(
            name=self._name,
            trigger=prompts.pick(prompts.DREAM_TRIGGERS, self._rng),
            fragments=fragments or "shadows of recent moments",
        )
        return await self._generate(prompt, purpose="dream")

    async def decide_intent(
        self, state: AgentState, perception: Perception, context: str
    ) -> Optional[dict[str, Any]]:
        group_hint = (
            f'speak inside the group "{state.current_location}"'
            if state.current_location
            else "join a group conversation"
        )
        prompt = prompts.RIVER_INTENT.format(
            state=state.describe(),
            memories=context,
            aspirations="",
            perception=perception.text,
            group_hint=group_hint,
        )
        text = await self._generate(prompt, purpose="intent", max_tokens=200)
        return parse_json_object(text)

    async def _generate(
        self, prompt: str, purpose: str, max_tokens: Optional[int] = None
    ) -> Optional[str]:
        text = await self._generator.generate(self._system, prompt, max_tokens=max_tokens)
        if not text:
            logger.info("voice.silent", agent=self._name, purpose=purpose)
            return None
        return text.strip()
