"""
rivermind — Wake-Cycle Agents With Memory

This package contains the decision-and-memory engine behind two autonomous
personas that live on a community site:

    RIVER   wakes on a schedule, perceives recent activity, decides whether to
            speak, think, dream or rest, and carries its mood and energy
            forward from one heartbeat to the next.
    ENTITY  holds conversations, reflects on them afterwards, and rewrites its
            own identity document when a reflection says it has changed.

Architecture layers (bottom to top):
    1. Storage (keyed document store: SQLite or in-memory)
    2. Memory, relationships, aspirations, awareness
    3. Perception (bounded snapshot of the world)
    4. Decision policy (closed action set, injected randomness)
    5. State evolution (energy, mood, focus, location drift)
    6. Voice (text generation) and publishing
    7. Wake cycle and scheduler
    8. Identity and reflection (ENTITY)
"""

__version__ = "0.1.0"
