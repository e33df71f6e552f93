from __future__ import annotations

from pathlib import Path

from rivermind.config import EngineConfig, EntityConfig, MemoryConfig, RiverConfig, StoreConfig


def test_river_defaults(monkeypatch):
    monkeypatch.delenv("RIVER_BASE_RATE", raising=False)
    cfg = RiverConfig(_env_file=None)
    assert cfg.name == "RIVER"
    assert cfg.base_rate == 0.15
    assert cfg.max_daily_messages == 50
    assert cfg.min_energy_to_speak == 0.3
    assert cfg.dream_probability == 0.4
    assert cfg.think_probability == 0.3
    assert cfg.group_stay_probability == 0.7
    assert cfg.decision_mode == "dice"


def test_river_reads_env_aliases(monkeypatch):
    monkeypatch.setenv("RIVER_BASE_RATE", "0.5")
    monkeypatch.setenv("RIVER_MAX_DAILY_MESSAGES", "10")
    monkeypatch.setenv("RIVER_DECISION_MODE", "intent")
    cfg = RiverConfig(_env_file=None)
    assert cfg.base_rate == 0.5
    assert cfg.max_daily_messages == 10
    assert cfg.decision_mode == "intent"


def test_river_probabilities_are_clamped(monkeypatch):
    monkeypatch.setenv("RIVER_BASE_RATE", "3.0")
    monkeypatch.setenv("RIVER_DREAM_PROBABILITY", "-1")
    monkeypatch.setenv("RIVER_HEARTBEAT_INTERVAL", "0")
    cfg = RiverConfig(_env_file=None)
    assert cfg.base_rate == 1.0
    assert cfg.dream_probability == 0.0
    assert cfg.heartbeat_interval == 1.0


def test_blank_name_falls_back(monkeypatch):
    monkeypatch.setenv("RIVER_NAME", "   ")
    assert RiverConfig(_env_file=None).name == "RIVER"


def test_memory_fade_policy(monkeypatch):
    monkeypatch.setenv("RIVERMIND_FADE_AFTER_DAYS", "2")
    cfg = MemoryConfig(_env_file=None)
    assert cfg.fade_after_seconds == 2 * 86400.0
    assert cfg.fade_salience == 0.3


def test_entity_defaults():
    cfg = EntityConfig(_env_file=None)
    assert cfg.reflection_salience == 0.7
    assert cfg.min_reflection_messages == 2


def test_engine_blank_api_key_is_none(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "   ")
    cfg = EngineConfig(_env_file=None)
    assert cfg.api_key is None


def test_engine_limits_are_normalized(monkeypatch):
    monkeypatch.setenv("RIVERMIND_TEMPERATURE", "4")
    monkeypatch.setenv("RIVERMIND_MAX_TOKENS", "0")
    cfg = EngineConfig(_env_file=None)
    assert cfg.temperature == 1.0
    assert cfg.max_tokens == 1


def test_store_db_path_derives_from_data_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("RIVERMIND_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("RIVERMIND_DB_PATH", raising=False)
    cfg = StoreConfig(_env_file=None)
    assert cfg.db_path == Path(tmp_path) / "rivermind.db"
