"""Constants used across the st24-bridge package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "st24-bridge"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / APP_NAME / DEFAULT_CONFIG_FILENAME

DEFAULT_BAUDRATE = 9600
DEFAULT_DEVICE_PATTERN = r"(ttyUSB|ttyS|ttyACM|COM\d+)"
LINE_TERMINATOR = b"\r"

DEFAULT_RESPONSE_TIMEOUT_SECONDS = 1.0
DEFAULT_SETTLE_DELAY_SECONDS = 0.15

DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 3400
