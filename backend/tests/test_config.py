"""
Configuration Manager Tests
"""

import json
import logging

import pytest

from fleetcast.config import CONFIG_DIR_ENV, ConfigManager
from fleetcast.logging_config import configure_logging


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(CONFIG_DIR_ENV, raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "system.yaml").write_text(
        "store:\n"
        "  backend: sql\n"
        "  predictionRetentionDays: 3\n",
        encoding="utf-8"
    )
    (tmp_path / "broadcast.json").write_text(json.dumps({"outboxSize": 5}), encoding="utf-8")
    return tmp_path


class TestConfigManager:

    def test_loads_yaml_and_json(self, config_dir):
        config = ConfigManager(str(config_dir))

        assert config.get('system.store.backend') == 'sql'
        assert config.get('system.store.predictionRetentionDays') == 3
        assert config.get('broadcast.outboxSize') == 5
        assert config.get_broadcast_config() == {"outboxSize": 5}

    def test_missing_key_default(self, config_dir):
        config = ConfigManager(str(config_dir))
        assert config.get('simulation.interval', 5) == 5
        assert config.get('system.store.backend.nested', 'x') == 'x'
        assert config.get_simulation_config() == {}

    def test_invalid_file_skipped(self, config_dir):
        (config_dir / "prediction.yaml").write_text("generation: [unclosed\n", encoding="utf-8")

        config = ConfigManager(str(config_dir))

        assert config.get('prediction') is None
        assert config.get('system.store.backend') == 'sql'

    def test_missing_directory(self, tmp_path):
        config = ConfigManager(str(tmp_path / "absent"))
        assert config.configs == {}

    def test_directory_from_environment(self, config_dir, monkeypatch):
        monkeypatch.setenv(CONFIG_DIR_ENV, str(config_dir))
        assert ConfigManager().get('system.store.backend') == 'sql'

    def test_database_url_override(self, config_dir, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://fleet@db/fleet")
        config = ConfigManager(str(config_dir))

        assert config.get('system.store.databaseUrl') == "postgresql://fleet@db/fleet"
        assert config.get('system.store.backend') == 'sql'

    def test_set_and_reload(self, config_dir):
        config = ConfigManager(str(config_dir))

        config.set('simulation.interval', 1)
        config.set('system.store.backend', 'memory')
        assert config.get('simulation.interval') == 1
        assert config.get('system.store.backend') == 'memory'

        config.reload()
        assert config.get('simulation.interval') is None
        assert config.get('system.store.backend') == 'sql'

    def test_from_dict(self):
        config = ConfigManager.from_dict({'prediction': {'generation': {'horizons': [15]}}})
        assert config.get('prediction.generation.horizons') == [15]
        assert config.get_prediction_config() == {'generation': {'horizons': [15]}}


class TestShippedConfiguration:

    def test_defaults(self):
        config = ConfigManager()

        assert config.get('prediction.generation.interval') == 300
        assert config.get('prediction.generation.horizons') == [15, 30, 60, 120]
        assert config.get('prediction.validation.interval') == 60
        assert config.get('simulation.interval') == 5
        assert config.get('system.store.backend') == 'memory'
        assert config.get('system.store.predictionRetentionDays') == 7
        assert config.get('broadcast.overflowPolicy') == 'drop_oldest'


class TestLoggingSetup:

    def test_quiets_socketio_loggers(self):
        configure_logging("debug")
        assert logging.getLogger("socketio").level == logging.WARNING
        assert logging.getLogger("engineio").level == logging.WARNING
