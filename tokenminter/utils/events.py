"""Ledger events with rotating structured JSON output.

Committed ledger mutations are described by LedgerEvent records. The API
keeps them in memory and can mirror them to a rotating JSON log file via
LedgerEventLogger for offline audit.
"""

import json
import logging
import logging.handlers
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional


class LedgerEventType(Enum):
    """Types of ledger events."""

    # Balance movements
    TRANSFER_SINGLE = "transfer_single"
    TRANSFER_BATCH = "transfer_batch"

    # Approvals
    APPROVAL_FOR_ALL = "approval_for_all"
    APPROVAL = "approval"

    # Portfolio events
    COMPOSED = "composed"
    DECOMPOSED = "decomposed"
    RECOMPOSED = "recomposed"


@dataclass
class LedgerEvent:
    """A committed ledger event.

    Attributes:
        event_type: Kind of event
        data: Event payload (accounts, asset ids, quantities)
        timestamp: When the event was recorded
    """

    event_type: LedgerEventType
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict.

        Asset ids and quantities are 256-bit integers, so they are rendered
        as decimal strings to survive JSON consumers with 64-bit numbers.
        """
        return {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            **{key: _jsonable(value) for key, value in self.data.items()},
        }


EventSink = Callable[[LedgerEvent], None]


def discard_event(event: LedgerEvent) -> None:
    """Event sink that drops events."""
    return None


def _jsonable(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class LedgerEventLogger:
    """Rotating JSON logger for committed ledger events.

    Example:
        >>> event_logger = LedgerEventLogger(log_dir="logs", enable_console=False)
        >>> event_logger.log_event(event)
    """

    def __init__(
        self,
        log_dir: str | Path = "logs",
        max_bytes: int = 10 * 1024 * 1024,  # 10 MB
        backup_count: int = 30,
        enable_console: bool = False,
    ):
        """Initialize the event logger.

        Args:
            log_dir: Directory for log files
            max_bytes: Maximum size per log file (default 10 MB)
            backup_count: Number of backup files to keep (default 30)
            enable_console: Also log to console (default False)
        """
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.max_bytes = max_bytes
        self.backup_count = backup_count
        self.enable_console = enable_console

        self.event_logger = self._create_rotating_logger("ledger")

    def _create_rotating_logger(
        self,
        name: str,
        level: int = logging.INFO,
    ) -> logging.Logger:
        """Create a rotating file logger.

        Args:
            name: Logger name and file prefix
            level: Logging level

        Returns:
            Configured logger
        """
        logger = logging.getLogger(f"tokenminter.events.{name}")
        logger.setLevel(level)
        logger.propagate = False

        for handler in list(logger.handlers):
            handler.close()
        logger.handlers = []

        log_file = self.log_dir / f"{name}.log"
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=self.max_bytes,
            backupCount=self.backup_count,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(file_handler)

        if self.enable_console:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(level)
            console_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            logger.addHandler(console_handler)

        return logger

    def log_event(self, event: LedgerEvent) -> None:
        """Write one event as a JSON line."""
        self.event_logger.info(json.dumps(event.to_dict(), sort_keys=True))

    def close(self) -> None:
        """Flush and close file handlers."""
        for handler in list(self.event_logger.handlers):
            handler.flush()
            handler.close()
        self.event_logger.handlers = []


_event_logger: Optional[LedgerEventLogger] = None


def get_event_logger(log_dir: str | Path = "logs") -> LedgerEventLogger:
    """Get or create the global event logger instance.

    Args:
        log_dir: Directory for log files

    Returns:
        LedgerEventLogger instance
    """
    global _event_logger

    if _event_logger is None:
        _event_logger = LedgerEventLogger(log_dir=log_dir)

    return _event_logger
