"""Unit tests for configuration management."""

import os
from pathlib import Path

import pytest
import yaml

from tokenminter.utils.config import (
    DEFAULT_EVENT_HISTORY,
    NULL_ACCOUNT,
    Config,
    MinterSettings,
    load_config,
    load_minter_settings,
)
from tokenminter.utils.exceptions import ConfigurationError

MINTER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

ENV_VARS = [
    "TOKENMINTER_MINTER",
    "TOKENMINTER_STORAGE",
    "TOKENMINTER_DB_PATH",
    "TOKENMINTER_VERIFYING_CONTRACT",
    "TOKENMINTER_BASE_TOKEN_URI",
    "TOKENMINTER_LOG_LEVEL",
    "TOKENMINTER_EVENT_LOG_DIR",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove TOKENMINTER_* variables so tests see only their own overrides."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestConfig:
    """Test cases for Config class."""

    def test_from_file_valid_yaml(self, tmp_path: Path) -> None:
        """Test loading valid YAML configuration file."""
        config_file = tmp_path / "test_config.yaml"
        config_data = {
            "minter": MINTER,
            "storage": {"backend": "sqlite", "db_path": "ledger.db"},
        }
        config_file.write_text(yaml.dump(config_data))

        config = Config.from_file(config_file)
        assert config.get("minter") == MINTER
        assert config.get("storage.backend") == "sqlite"

    def test_from_file_empty_yaml(self, tmp_path: Path) -> None:
        """Test loading empty YAML file."""
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        config = Config.from_file(config_file)
        assert config.to_dict() == {}

    def test_from_file_not_found(self) -> None:
        """Test loading non-existent file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            Config.from_file("nonexistent.yaml")

    def test_get_missing_key_returns_default(self) -> None:
        """Test missing keys fall back to the default."""
        config = Config({"domain": {"name": "ERC721o"}})

        assert config.get("domain.version") is None
        assert config.get("domain.version", "1") == "1"
        assert config.get("domain.name.extra", "x") == "x"

    def test_getitem_missing_key(self) -> None:
        """Test dict-style access raises KeyError for missing keys."""
        config = Config({})

        with pytest.raises(KeyError, match="Configuration key not found"):
            config["storage.backend"]

    def test_default_config_file(self) -> None:
        """Test the bundled default configuration loads."""
        config = load_config()

        assert config.get("storage.backend") == "memory"
        assert config.get("domain.name") == "ERC721o"
        assert config.get("metadata.base_token_uri") == "https://explorer.opium.nework/erc721xo/"
        assert config.get("events.history_size") == DEFAULT_EVENT_HISTORY


class TestMinterSettings:
    """Test cases for MinterSettings."""

    def test_defaults(self) -> None:
        """Test default settings values."""
        settings = MinterSettings(minter=MINTER)

        assert settings.storage_backend == "memory"
        assert settings.domain_name == "ERC721o"
        assert settings.domain_version == "1"
        assert settings.verifying_contract == NULL_ACCOUNT
        assert settings.event_log_dir is None
        assert settings.event_history == DEFAULT_EVENT_HISTORY

    def test_missing_minter_rejected(self) -> None:
        """Test an empty or null minter is a configuration error."""
        with pytest.raises(ConfigurationError, match="minter"):
            MinterSettings(minter="")
        with pytest.raises(ConfigurationError, match="minter"):
            MinterSettings(minter=NULL_ACCOUNT)

    def test_unknown_backend_rejected(self) -> None:
        """Test an unknown storage backend is a configuration error."""
        with pytest.raises(ConfigurationError, match="storage backend"):
            MinterSettings(minter=MINTER, storage_backend="postgres")

    @pytest.mark.parametrize("history", [0, -1, "100", True])
    def test_invalid_event_history_rejected(self, history: object) -> None:
        """Test the event history size must be a positive integer."""
        with pytest.raises(ConfigurationError, match="event history"):
            MinterSettings(minter=MINTER, event_history=history)

    def test_unbounded_event_history(self) -> None:
        """Test None disables the event history bound."""
        assert MinterSettings(minter=MINTER, event_history=None).event_history is None

    def test_from_config(self) -> None:
        """Test building settings from nested config keys."""
        config = Config(
            {
                "minter": MINTER,
                "storage": {"backend": "sqlite", "db_path": "/tmp/x.db"},
                "domain": {"name": "Ledger", "version": 2, "verifying_contract": "0x01"},
                "metadata": {"base_token_uri": "https://example.org/"},
                "logging": {"level": "DEBUG"},
                "events": {"log_dir": "logs", "history_size": 50},
            }
        )

        settings = MinterSettings.from_config(config)

        assert settings.storage_backend == "sqlite"
        assert settings.db_path == "/tmp/x.db"
        assert settings.domain_name == "Ledger"
        assert settings.domain_version == "2"
        assert settings.verifying_contract == "0x01"
        assert settings.base_token_uri == "https://example.org/"
        assert settings.log_level == "DEBUG"
        assert settings.event_log_dir == "logs"
        assert settings.event_history == 50

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test TOKENMINTER_* variables override file values."""
        monkeypatch.setenv("TOKENMINTER_STORAGE", "sqlite")
        monkeypatch.setenv("TOKENMINTER_LOG_LEVEL", "ERROR")

        settings = MinterSettings(minter=MINTER).with_env_overrides()

        assert settings.storage_backend == "sqlite"
        assert settings.log_level == "ERROR"
        assert settings.minter == MINTER

    def test_env_overrides_noop(self) -> None:
        """Test settings are returned unchanged with no overrides."""
        settings = MinterSettings(minter=MINTER)
        assert settings.with_env_overrides() is settings


class TestLoadMinterSettings:
    """Test cases for load_minter_settings."""

    def test_loads_yaml(self, tmp_path: Path) -> None:
        """Test loading settings from a YAML file."""
        config_file = tmp_path / "ledger.yaml"
        config_file.write_text(yaml.dump({"minter": MINTER, "storage": {"backend": "memory"}}))

        settings = load_minter_settings(config_file=config_file)

        assert settings.minter == MINTER
        assert settings.storage_backend == "memory"

    def test_minter_from_env_file(self, tmp_path: Path) -> None:
        """Test the minter can come from a .env file alone."""
        config_file = tmp_path / "ledger.yaml"
        config_file.write_text(yaml.dump({"storage": {"backend": "memory"}}))
        env_file = tmp_path / ".env"
        env_file.write_text(f"TOKENMINTER_MINTER={MINTER}\n")

        try:
            settings = load_minter_settings(config_file=config_file, env_file=env_file)
        finally:
            # load_dotenv writes straight to os.environ
            os.environ.pop("TOKENMINTER_MINTER", None)

        assert settings.minter == MINTER

    def test_missing_env_file(self, tmp_path: Path) -> None:
        """Test a missing .env file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match=".env file not found"):
            load_minter_settings(env_file=tmp_path / "missing.env")

    def test_missing_minter(self, tmp_path: Path) -> None:
        """Test settings without a minter are rejected."""
        config_file = tmp_path / "ledger.yaml"
        config_file.write_text(yaml.dump({"storage": {"backend": "memory"}}))

        with pytest.raises(ConfigurationError):
            load_minter_settings(config_file=config_file)
