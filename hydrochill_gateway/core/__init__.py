"""Core primitives for hydrochill-gateway."""

from .clock import ServerClock
from .models import (
    Command,
    CommandTypes,
    InvalidTelemetryError,
    SetTemperature,
    TelemetryReport,
    ToggleMode,
    UnknownCommand,
    parse_command,
    render_value,
)
from .protocols import CommandPublisher, DocumentStore

__all__ = [
    "Command",
    "CommandPublisher",
    "CommandTypes",
    "DocumentStore",
    "InvalidTelemetryError",
    "ServerClock",
    "SetTemperature",
    "TelemetryReport",
    "ToggleMode",
    "UnknownCommand",
    "parse_command",
    "render_value",
]
