"""
tokenvest Configuration

Values come from environment variables, optionally overlaid by a YAML file
passed to the CLI. Explicit CLI options win over the file, and the file wins
over the environment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from tokenvest.core.constants import DEFAULT_TOKEN_DECIMALS

logger = logging.getLogger(__name__)


class NetworkType(Enum):
    TESTNET = "testnet"
    MAINNET = "mainnet"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _get_int(env_var: str, default: int) -> int:
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} must be an integer, got {raw!r}") from exc


NETWORK = os.getenv("TOKENVEST_NETWORK", "testnet")  # Default to testnet for safety
LOG_LEVEL = os.getenv("TOKENVEST_LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("TOKENVEST_LOG_FILE", "").strip() or None
LOG_JSON = os.getenv("TOKENVEST_LOG_JSON", "0").strip() == "1"
STATE_FILE = os.getenv(
    "TOKENVEST_STATE_FILE",
    os.path.join(os.getcwd(), "data", "vesting_state.json"),
)
CONFIG_FILE = os.getenv("TOKENVEST_CONFIG_FILE", "").strip() or None
TOKEN_DECIMALS = _get_int("TOKENVEST_TOKEN_DECIMALS", DEFAULT_TOKEN_DECIMALS)


@dataclass
class CLIConfig:
    """Resolved settings used by the command-line interface."""

    network: str = NETWORK
    state_file: str = STATE_FILE
    log_level: str = LOG_LEVEL
    log_file: str | None = LOG_FILE
    log_json: bool = LOG_JSON
    token_decimals: int = TOKEN_DECIMALS

    def __post_init__(self) -> None:
        try:
            NetworkType(self.network.lower())
        except ValueError as exc:
            raise ConfigurationError(
                f"Unknown network {self.network!r}; expected one of "
                f"{[n.value for n in NetworkType]}"
            ) from exc
        self.network = self.network.lower()
        self.log_level = str(self.log_level).upper()
        if self.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ConfigurationError(f"Invalid log level: {self.log_level}")
        if not 0 <= int(self.token_decimals) <= 18:
            raise ConfigurationError("token_decimals must be between 0 and 18")


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load a YAML config file into a dict; a missing file yields ``{}``."""
    config_path = Path(path)
    if not config_path.exists():
        return {}
    with config_path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Config file {config_path} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping.")
    return data


def resolve_config(
    config_file: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> CLIConfig:
    """
    Build a CLIConfig from environment defaults, a YAML file and explicit overrides.

    Unknown keys in the file are ignored with a warning; ``None`` overrides
    leave the lower layer untouched.
    """
    known = {f.name for f in fields(CLIConfig)}
    merged: dict[str, Any] = {}

    path = config_file or CONFIG_FILE
    if path:
        for key, value in load_config_file(path).items():
            if key in known:
                merged[key] = value
            else:
                logger.warning(
                    "Ignoring unknown config key %s",
                    key,
                    extra={"event": "config.unknown_key", "key": key},
                )

    for key, value in (overrides or {}).items():
        if value is not None and key in known:
            merged[key] = value

    return CLIConfig(**merged)
