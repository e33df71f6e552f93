# rivermind/config.py
"""
Configuration for the rivermind agents.

All configuration flows through this module. Values are loaded from environment
variables (via an optional .env file) and validated with Pydantic. The policy
constants live here too, so that a deployment can retune how often RIVER
speaks without touching the decision code.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

logger = structlog.get_logger(__name__)

# Resolve .env relative to the project root (one level above the package),
# so the config works regardless of the current working directory.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


class EngineConfig(BaseSettings):
    """Connection settings for the text generation service."""

    api_key: Optional[str] = Field(None, alias="ANTHROPIC_API_KEY")
    model: str = Field("claude-sonnet-4-5-20250929", alias="RIVERMIND_MODEL")
    max_tokens: int = Field(2000, alias="RIVERMIND_MAX_TOKENS")
    temperature: float = Field(0.9, alias="RIVERMIND_TEMPERATURE")
    request_timeout_seconds: float = Field(60.0, alias="RIVERMIND_REQUEST_TIMEOUT_SECONDS")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def normalize_limits(self) -> "EngineConfig":
        self.max_tokens = max(1, int(self.max_tokens))
        self.temperature = max(0.0, min(1.0, float(self.temperature)))
        self.request_timeout_seconds = max(1.0, float(self.request_timeout_seconds))
        if isinstance(self.api_key, str):
            self.api_key = self.api_key.strip() or None
        return self


class StoreConfig(BaseSettings):
    """Where the document store keeps its data."""

    data_dir: Path = Field(Path("./rivermind_data"), alias="RIVERMIND_DATA_DIR")
    db_path: Optional[Path] = Field(None, alias="RIVERMIND_DB_PATH")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def derive_paths_from_data_dir(self) -> "StoreConfig":
        if self.db_path is None:
            self.db_path = self.data_dir / "rivermind.db"
        return self


class RiverConfig(BaseSettings):
    """Policy constants for the RIVER wake cycle."""

    name: str = Field("RIVER", alias="RIVER_NAME")

    # Hard gates
    max_daily_messages: int = Field(50, alias="RIVER_MAX_DAILY_MESSAGES")
    min_energy_to_speak: float = Field(0.3, alias="RIVER_MIN_ENERGY_TO_SPEAK")

    # Dice
    base_rate: float = Field(0.15, alias="RIVER_BASE_RATE")
    dream_probability: float = Field(0.4, alias="RIVER_DREAM_PROBABILITY")
    think_probability: float = Field(0.3, alias="RIVER_THINK_PROBABILITY")
    group_stay_probability: float = Field(0.7, alias="RIVER_GROUP_STAY_PROBABILITY")
    mood_drift_probability: float = Field(0.05, alias="RIVER_MOOD_DRIFT_PROBABILITY")

    # Energy bookkeeping
    speak_energy_cost: float = Field(0.1, alias="RIVER_SPEAK_ENERGY_COST")
    rest_recovery: float = Field(0.02, alias="RIVER_REST_RECOVERY")
    dream_recovery: float = Field(0.1, alias="RIVER_DREAM_RECOVERY")

    # Scheduling and decision mode
    heartbeat_interval: float = Field(300.0, alias="RIVER_HEARTBEAT_INTERVAL")
    decision_mode: Literal["dice", "intent"] = Field("dice", alias="RIVER_DECISION_MODE")

    # Perception window
    event_window_seconds: float = Field(3600.0, alias="RIVER_EVENT_WINDOW_SECONDS")
    event_limit: int = Field(20, alias="RIVER_EVENT_LIMIT")
    message_limit: int = Field(30, alias="RIVER_MESSAGE_LIMIT")
    thread_limit: int = Field(5, alias="RIVER_THREAD_LIMIT")
    post_limit: int = Field(3, alias="RIVER_POST_LIMIT")
    notification_limit: int = Field(20, alias="RIVER_NOTIFICATION_LIMIT")
    responded_limit: int = Field(200, alias="RIVER_RESPONDED_LIMIT")

    # Context handed to the voice each cycle
    memory_context_limit: int = Field(10, alias="RIVER_MEMORY_CONTEXT_LIMIT")
    relationship_context_limit: int = Field(50, alias="RIVER_RELATIONSHIP_CONTEXT_LIMIT")
    aspiration_limit: int = Field(5, alias="RIVER_ASPIRATION_LIMIT")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def normalize_limits(self) -> "RiverConfig":
        self.name = self.name.strip() or "RIVER"
        self.max_daily_messages = max(0, int(self.max_daily_messages))
        self.min_energy_to_speak = _clamp01(self.min_energy_to_speak)
        self.base_rate = _clamp01(self.base_rate)
        self.dream_probability = _clamp01(self.dream_probability)
        self.think_probability = _clamp01(self.think_probability)
        self.group_stay_probability = _clamp01(self.group_stay_probability)
        self.mood_drift_probability = _clamp01(self.mood_drift_probability)
        self.speak_energy_cost = _clamp01(self.speak_energy_cost)
        self.rest_recovery = _clamp01(self.rest_recovery)
        self.dream_recovery = _clamp01(self.dream_recovery)
        self.heartbeat_interval = max(1.0, float(self.heartbeat_interval))
        self.event_window_seconds = max(1.0, float(self.event_window_seconds))
        for name in (
            "event_limit",
            "message_limit",
            "thread_limit",
            "post_limit",
            "notification_limit",
            "responded_limit",
            "memory_context_limit",
            "relationship_context_limit",
            "aspiration_limit",
        ):
            setattr(self, name, max(1, int(getattr(self, name))))
        return self


class MemoryConfig(BaseSettings):
    """Forgetting policy and recall limits shared by both agents."""

    fade_after_days: float = Field(30.0, alias="RIVERMIND_FADE_AFTER_DAYS")
    fade_salience: float = Field(0.3, alias="RIVERMIND_FADE_SALIENCE")
    sweep_batch_size: int = Field(500, alias="RIVERMIND_SWEEP_BATCH_SIZE")
    sweep_interval: float = Field(86400.0, alias="RIVERMIND_SWEEP_INTERVAL")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def normalize_limits(self) -> "MemoryConfig":
        self.fade_after_days = max(0.0, float(self.fade_after_days))
        self.fade_salience = _clamp01(self.fade_salience)
        self.sweep_batch_size = max(1, int(self.sweep_batch_size))
        self.sweep_interval = max(60.0, float(self.sweep_interval))
        return self

    @property
    def fade_after_seconds(self) -> float:
        return self.fade_after_days * 86400.0


class EntityConfig(BaseSettings):
    """Settings for the ENTITY conversation and reflection agent."""

    name: str = Field("ENTITY", alias="ENTITY_NAME")
    reflection_salience: float = Field(0.7, alias="ENTITY_REFLECTION_SALIENCE")
    min_reflection_messages: int = Field(2, alias="ENTITY_MIN_REFLECTION_MESSAGES")
    daily_reflection_interval: float = Field(86400.0, alias="ENTITY_DAILY_REFLECTION_INTERVAL")
    vivid_limit: int = Field(15, alias="ENTITY_VIVID_LIMIT")
    awareness_limit: int = Field(10, alias="ENTITY_AWARENESS_LIMIT")
    relationship_limit: int = Field(500, alias="ENTITY_RELATIONSHIP_LIMIT")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def normalize_limits(self) -> "EntityConfig":
        self.name = self.name.strip() or "ENTITY"
        self.reflection_salience = _clamp01(self.reflection_salience)
        self.min_reflection_messages = max(1, int(self.min_reflection_messages))
        self.daily_reflection_interval = max(60.0, float(self.daily_reflection_interval))
        self.vivid_limit = max(1, int(self.vivid_limit))
        self.awareness_limit = max(1, int(self.awareness_limit))
        self.relationship_limit = max(1, int(self.relationship_limit))
        return self


class RivermindConfig:
    """
    Master configuration that composes all subsystem configs.

    Every component receives its config from here. No global state, no hidden
    settings.
    """

    def __init__(self):
        self.engine = EngineConfig()
        self.store = StoreConfig()
        self.river = RiverConfig()
        self.memory = MemoryConfig()
        self.entity = EntityConfig()
        self._resolve_paths()

    def _resolve_paths(self) -> None:
        """Resolve relative paths against the project root, not the CWD."""
        def _resolve(p: Path) -> Path:
            if p.is_absolute():
                return p
            return (_PROJECT_ROOT / p).resolve()

        self.store.data_dir = _resolve(self.store.data_dir)
        self.store.db_path = _resolve(self.store.db_path)

    def __repr__(self) -> str:
        return (
            f"RivermindConfig(model={self.engine.model}, "
            f"heartbeat={self.river.heartbeat_interval}s, "
            f"decision_mode={self.river.decision_mode}, "
            f"db={self.store.db_path})"
        )
