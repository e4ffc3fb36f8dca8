"""Unit tests for ConfigManager: defaults, YAML layering and overrides."""

import pytest

from src.core.config.manager import ConfigInitializationError, ConfigManager


@pytest.fixture
def fresh_config():
    ConfigManager.reset()
    yield ConfigManager
    ConfigManager.reset()


@pytest.mark.unit
class TestConfigManager:
    def test_builtin_defaults_without_directory(self, fresh_config, tmp_path):
        fresh_config.initialize(config_dir=tmp_path / "missing")

        assert fresh_config.get("trade.expiry_minutes") == 30
        assert fresh_config.get("economy.max_gold") == 999_999_999
        assert fresh_config.get("auction.settlement_interval_seconds") == 10

    def test_missing_key_returns_default(self, fresh_config, tmp_path):
        fresh_config.initialize(config_dir=tmp_path)

        assert fresh_config.get("auction.nope") is None
        assert fresh_config.get("auction.nope", 7) == 7
        assert fresh_config.get("trade.expiry_minutes.deeper", "x") == "x"

    def test_yaml_overrides_defaults(self, fresh_config, tmp_path):
        (tmp_path / "economy.yaml").write_text(
            "trade:\n  expiry_minutes: 5\nauction:\n  max_bid: 500\n", encoding="utf-8"
        )

        fresh_config.initialize(config_dir=tmp_path)

        assert fresh_config.get("trade.expiry_minutes") == 5
        assert fresh_config.get("auction.max_bid") == 500
        # untouched siblings keep their defaults
        assert fresh_config.get("auction.min_bid") == 1

    def test_invalid_yaml_raises(self, fresh_config, tmp_path):
        (tmp_path / "broken.yaml").write_text("trade: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigInitializationError):
            fresh_config.initialize(config_dir=tmp_path)

    def test_runtime_override_and_clear(self, fresh_config, tmp_path):
        fresh_config.initialize(config_dir=tmp_path)

        fresh_config.set("trade.expiry_minutes", 1)
        assert fresh_config.get("trade.expiry_minutes") == 1

        fresh_config.clear_overrides()
        assert fresh_config.get("trade.expiry_minutes") == 30

    def test_project_config_matches_builtin_defaults(self, config_manager):
        assert config_manager.get("character.starting_gold") == 100
        assert config_manager.get("auction.default_duration_minutes") == 60
        assert "auction" in config_manager.get_all_keys()
