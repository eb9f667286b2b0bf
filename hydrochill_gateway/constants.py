"""Constants used across the hydrochill-gateway package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "hydrochill-gateway"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / APP_NAME / DEFAULT_CONFIG_FILENAME

DEFAULT_HTTP_HOST = "0.0.0.0"
DEFAULT_HTTP_PORT = 3000
DEFAULT_DASHBOARD_PATH = Path(__file__).resolve().parent / "static" / "index.html"

DEFAULT_BROKER_HOST = "broker.hivemq.com"
DEFAULT_BROKER_PORT = 1883
DEFAULT_COMMAND_TOPIC = "hydrochill/command"

DEFAULT_DATABASE_URL = "https://smartwatercooler-ed8ae-default-rtdb.firebaseio.com"
DEFAULT_RECORD_PATH = "cooler_status"

SERVER_TIMESTAMP_FIELD = "serverTimestamp"
