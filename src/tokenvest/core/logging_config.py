"""
tokenvest - Structured Logging Configuration

Configures structured JSON logging:
- JSON format for easy parsing and aggregation
- Log rotation to prevent disk space issues
- Per-category default levels so noisy areas stay quiet

Usage:
    from tokenvest.core.logging_config import setup_logging

    logger = setup_logging(
        name="tokenvest",
        log_file="/var/log/tokenvest/ledger.json",
        level="INFO"
    )
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any

from pythonjsonlogger import jsonlogger

# Module-level log level standards
LOG_LEVELS: dict[str, str] = {
    # Ledger state transitions - INFO for every grant/unlock/revoke
    "vesting": "INFO",
    "vesting_ledger": "INFO",
    "grant_store": "INFO",

    # Contracts - INFO for ownership and mint, DEBUG for transfers
    "contracts": "INFO",
    "erc20": "INFO",
    "ownable": "INFO",

    # Storage and persistence - WARNING to reduce I/O logging
    "state_storage": "WARNING",

    # Configuration
    "config": "WARNING",

    # CLI and user interfaces - INFO for user feedback
    "cli": "INFO",
}

DEFAULT_LOG_LEVEL = "INFO"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that adds timestamp, environment, service and source fields.
    """

    def __init__(
        self,
        fmt: str = "%(timestamp)s %(level)s %(name)s %(message)s",
        timestamp: bool = True,
        environment: Optional[str] = None,
        service_name: str = "tokenvest",
    ):
        super().__init__(fmt=fmt)
        self.timestamp = timestamp
        self.environment = environment or "production"
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if self.timestamp and not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        log_record["environment"] = self.environment
        log_record["service"] = self.service_name

        if not log_record.get("level"):
            log_record["level"] = record.levelname.lower()

        log_record["source"] = {
            "function": record.funcName,
            "module": record.module,
            "line": record.lineno,
        }


def get_module_category(module_name: str) -> str | None:
    """
    Determine the category for a module name.

    Args:
        module_name: Full module path (e.g., 'tokenvest.vesting.vesting_ledger')

    Returns:
        Category name or None if no match
    """
    for part in reversed(module_name.split(".")):
        if part in LOG_LEVELS:
            return part
    return None


def get_log_level(module_name: str, override: str | None = None) -> str:
    if override:
        return override.upper()
    category = get_module_category(module_name)
    if category:
        return LOG_LEVELS[category]
    return DEFAULT_LOG_LEVEL


def configure_module_logging(
    module_name: str,
    category: str | None = None,
    override_level: str | None = None,
) -> logging.Logger:
    """
    Configure and return a logger for a module with standardized settings.

    Example:
        logger = configure_module_logging(__name__, 'vesting')
    """
    logger = logging.getLogger(module_name)

    if category:
        level_str = LOG_LEVELS.get(category, DEFAULT_LOG_LEVEL)
    else:
        level_str = get_log_level(module_name, override_level)

    logger.setLevel(getattr(logging, level_str, logging.INFO))
    return logger


def setup_logging(
    name: str = "tokenvest",
    log_file: Optional[str] = None,
    level: str = "INFO",
    environment: str = "production",
    json_format: bool = True,
    enable_console: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Setup logging for a logger tree.

    Args:
        name: Logger name (typically the package name)
        log_file: Path to JSON log file (optional)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: Environment identifier (dev, staging, prod)
        json_format: Emit JSON records instead of plain text
        enable_console: Whether to log to stderr
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    if json_format:
        formatter: logging.Formatter = CustomJsonFormatter(
            environment=environment,
            service_name=name.split(".")[0],
        )
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, level.upper()))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setLevel(getattr(logging, level.upper()))
        # Files are always JSON so they can be shipped as-is
        file_handler.setFormatter(
            formatter if json_format else CustomJsonFormatter(environment=environment)
        )
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger

