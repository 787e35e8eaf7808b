"""Configuration management for TokenMinter.

This module provides YAML configuration loading plus environment overrides
for the ledger settings.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from tokenminter.utils.exceptions import ConfigurationError

NULL_ACCOUNT = "0x0000000000000000000000000000000000000000"

STORAGE_BACKENDS = ("memory", "sqlite")

ENV_PREFIX = "TOKENMINTER_"

DEFAULT_EVENT_HISTORY = 1000


class Config:
    """Simple configuration loader and accessor.

    Loads YAML configuration files and provides dict-like access to settings.

    Example:
        >>> config = Config.from_file("config/default.yaml")
        >>> backend = config.get("storage.backend", "memory")
    """

    def __init__(self, config_dict: dict[str, Any]) -> None:
        """Initialize with configuration dictionary.

        Args:
            config_dict: Configuration data as nested dictionary
        """
        self._config = config_dict

    @classmethod
    def from_file(cls, filepath: str | Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            filepath: Path to YAML configuration file

        Returns:
            Config instance with loaded configuration

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {filepath}")

        with open(path, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)

        if config_dict is None:
            config_dict = {}

        return cls(config_dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            key: Configuration key (supports dot notation for nested keys)
            default: Default value if key not found

        Returns:
            Configuration value or default

        Example:
            >>> config.get("domain.name")
            'ERC721o'
        """
        value = self._config

        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def __getitem__(self, key: str) -> Any:
        value = self.get(key)
        if value is None:
            raise KeyError(f"Configuration key not found: {key}")
        return value

    def to_dict(self) -> dict[str, Any]:
        """Get the full configuration as dictionary."""
        return self._config.copy()


@dataclass(frozen=True)
class MinterSettings:
    """Runtime settings for a ledger instance.

    Attributes:
        minter: Account holding the mint role
        storage_backend: "memory" or "sqlite"
        db_path: SQLite file path (ignored for the memory backend)
        domain_name: EIP-712 domain name used for permits
        domain_version: EIP-712 domain version used for permits
        verifying_contract: Ledger address bound into permit signatures
        base_token_uri: Prefix for token_uri()
        log_level: Root logging level
        event_log_dir: Directory for the JSON event log, or None to disable it
        event_history: Number of recent events kept in memory, or None for no limit
    """

    minter: str
    storage_backend: str = "memory"
    db_path: str = "data/ledger.db"
    domain_name: str = "ERC721o"
    domain_version: str = "1"
    verifying_contract: str = NULL_ACCOUNT
    base_token_uri: str = ""
    log_level: str = "INFO"
    event_log_dir: Optional[str] = None
    event_history: Optional[int] = DEFAULT_EVENT_HISTORY

    def __post_init__(self):
        """Validate settings."""
        if not self.minter or self.minter == NULL_ACCOUNT:
            raise ConfigurationError("minter account must be configured")
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ConfigurationError(
                f"storage backend must be one of {STORAGE_BACKENDS}, "
                f"got {self.storage_backend!r}"
            )
        if self.event_history is not None and (
            isinstance(self.event_history, bool)
            or not isinstance(self.event_history, int)
            or self.event_history <= 0
        ):
            raise ConfigurationError(
                f"event history must be a positive integer, got {self.event_history!r}"
            )

    @classmethod
    def from_config(cls, config: Config) -> "MinterSettings":
        """Build settings from a loaded Config."""
        return cls(
            minter=config.get("minter", ""),
            storage_backend=config.get("storage.backend", "memory"),
            db_path=str(config.get("storage.db_path", "data/ledger.db")),
            domain_name=config.get("domain.name", "ERC721o"),
            domain_version=str(config.get("domain.version", "1")),
            verifying_contract=config.get("domain.verifying_contract", NULL_ACCOUNT),
            base_token_uri=config.get("metadata.base_token_uri", ""),
            log_level=config.get("logging.level", "INFO"),
            event_log_dir=config.get("events.log_dir"),
            event_history=config.get("events.history_size", DEFAULT_EVENT_HISTORY),
        )

    def with_env_overrides(self) -> "MinterSettings":
        """Apply TOKENMINTER_* environment variables on top of these settings."""
        overrides: dict[str, Any] = {}
        env_fields = {
            "MINTER": "minter",
            "STORAGE": "storage_backend",
            "DB_PATH": "db_path",
            "VERIFYING_CONTRACT": "verifying_contract",
            "BASE_TOKEN_URI": "base_token_uri",
            "LOG_LEVEL": "log_level",
            "EVENT_LOG_DIR": "event_log_dir",
        }
        for env_name, field_name in env_fields.items():
            value = os.getenv(ENV_PREFIX + env_name)
            if value:
                overrides[field_name] = value

        if not overrides:
            return self
        return replace(self, **overrides)


def load_config(filepath: str | Path = None) -> Config:
    """Load the YAML configuration.

    Args:
        filepath: Path to YAML configuration file. If None, uses default path.

    Returns:
        Config instance
    """
    if filepath is None:
        root_dir = Path(__file__).parent.parent.parent
        filepath = root_dir / "config" / "default.yaml"
    return Config.from_file(filepath)


def load_minter_settings(
    config_file: str | Path = None,
    env_file: str | Path = None,
) -> MinterSettings:
    """Load ledger settings from YAML and environment variables.

    Precedence is environment > YAML > defaults. If ``env_file`` is given the
    variables in it are loaded first (existing environment wins).

    Args:
        config_file: Path to the YAML file. If None, uses config/default.yaml.
        env_file: Optional .env file with TOKENMINTER_* variables.

    Returns:
        MinterSettings

    Raises:
        FileNotFoundError: If config_file or env_file is missing
        ConfigurationError: If the resulting settings are invalid
    """
    if env_file is not None:
        env_path = Path(env_file)
        if not env_path.exists():
            raise FileNotFoundError(f".env file not found at {env_path}")
        load_dotenv(env_path)

    config = load_config(config_file)

    if not config.get("minter") and os.getenv(ENV_PREFIX + "MINTER"):
        config = Config({**config.to_dict(), "minter": os.getenv(ENV_PREFIX + "MINTER")})

    return MinterSettings.from_config(config).with_env_overrides()
