"""Configuration loader for st24-bridge."""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import constants


@dataclass(slots=True)
class SerialConfig:
    device: Optional[str] = None  # Opened at startup when set
    baudrate: int = constants.DEFAULT_BAUDRATE
    device_pattern: str = constants.DEFAULT_DEVICE_PATTERN


@dataclass(slots=True)
class SequencerConfig:
    response_timeout_seconds: float = constants.DEFAULT_RESPONSE_TIMEOUT_SECONDS
    settle_delay_seconds: float = constants.DEFAULT_SETTLE_DELAY_SECONDS


@dataclass(slots=True)
class ApiConfig:
    enabled: bool = True
    host: str = constants.DEFAULT_API_HOST
    port: int = constants.DEFAULT_API_PORT


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = None
    log_traffic: bool = False


@dataclass(slots=True)
class BridgeConfig:
    serial: SerialConfig
    sequencer: SequencerConfig
    api: ApiConfig
    logging: LoggingConfig
    raw: ConfigParser
    path: Path


def _get_float(parser: ConfigParser, section: str, option: str, default: float) -> float:
    try:
        return parser.getfloat(section, option, fallback=default)
    except ValueError:
        return default


def _get_int(parser: ConfigParser, section: str, option: str, default: int) -> int:
    try:
        return parser.getint(section, option, fallback=default)
    except ValueError:
        return default


def _get_bool(parser: ConfigParser, section: str, option: str, default: bool) -> bool:
    try:
        return parser.getboolean(section, option, fallback=default)
    except ValueError:
        return default


def _optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_config(path: Optional[Path] = None) -> BridgeConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = ConfigParser(interpolation=None)
    parser.read_dict(
        {
            "serial": {
                "device": "",
                "baudrate": str(constants.DEFAULT_BAUDRATE),
                "device_pattern": constants.DEFAULT_DEVICE_PATTERN,
            },
            "sequencer": {
                "response_timeout_seconds": str(
                    constants.DEFAULT_RESPONSE_TIMEOUT_SECONDS
                ),
                "settle_delay_seconds": str(constants.DEFAULT_SETTLE_DELAY_SECONDS),
            },
            "api": {
                "enabled": "true",
                "host": constants.DEFAULT_API_HOST,
                "port": str(constants.DEFAULT_API_PORT),
            },
            "logging": {
                "level": "INFO",
                "path": "",
                "log_traffic": "false",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    serial = SerialConfig(
        device=_optional(parser.get("serial", "device", fallback=None)),
        baudrate=max(
            1,
            _get_int(parser, "serial", "baudrate", constants.DEFAULT_BAUDRATE),
        ),
        device_pattern=parser.get("serial", "device_pattern").strip()
        or constants.DEFAULT_DEVICE_PATTERN,
    )

    sequencer = SequencerConfig(
        response_timeout_seconds=max(
            0.01,
            _get_float(
                parser,
                "sequencer",
                "response_timeout_seconds",
                constants.DEFAULT_RESPONSE_TIMEOUT_SECONDS,
            ),
        ),
        settle_delay_seconds=max(
            0.0,
            _get_float(
                parser,
                "sequencer",
                "settle_delay_seconds",
                constants.DEFAULT_SETTLE_DELAY_SECONDS,
            ),
        ),
    )

    api = ApiConfig(
        enabled=_get_bool(parser, "api", "enabled", True),
        host=parser.get("api", "host", fallback=constants.DEFAULT_API_HOST),
        port=_get_int(parser, "api", "port", constants.DEFAULT_API_PORT),
    )

    log_path_value = _optional(parser.get("logging", "path", fallback=None))
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(log_path_value).expanduser() if log_path_value else None,
        log_traffic=_get_bool(parser, "logging", "log_traffic", False),
    )

    return BridgeConfig(
        serial=serial,
        sequencer=sequencer,
        api=api,
        logging=logging_config,
        raw=parser,
        path=config_path,
    )


def save_config(config: BridgeConfig) -> None:
    """Persist the current configuration to disk."""

    config_path = config.path
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as stream:
        config.raw.write(stream)
