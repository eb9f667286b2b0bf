"""Domain models for telemetry reports and cooler commands."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Union

from .. import constants


class CommandTypes:
    """Recognised ``type`` values of a dashboard command request."""

    SET_TEMP = "SET_TEMP"
    """Set the cooling setpoint; requires ``value``."""

    TOGGLE_MODE = "TOGGLE_MODE"
    """Flip the cooler between its operating modes."""


class InvalidTelemetryError(ValueError):
    """Raised when a telemetry body is not a JSON object."""


_MISSING = object()


@dataclass(frozen=True, slots=True)
class TelemetryReport:
    fields: Mapping[str, Any]

    @classmethod
    def from_body(cls, body: Any) -> "TelemetryReport":
        if not isinstance(body, dict):
            raise InvalidTelemetryError(
                f"telemetry must be a JSON object, got {type(body).__name__}"
            )
        return cls(fields=dict(body))

    def stamped(self, server_timestamp: int) -> Dict[str, Any]:
        """Return the record update: every reported field plus the receipt time."""

        record = dict(self.fields)
        record[constants.SERVER_TIMESTAMP_FIELD] = server_timestamp
        return record

    @property
    def water_temp(self) -> Any:
        return self.fields.get("waterTemp")

    @property
    def room_temp(self) -> Any:
        return self.fields.get("roomTemp")


@dataclass(frozen=True, slots=True)
class SetTemperature:
    value: Any = _MISSING

    def to_message(self) -> str:
        return f"SET:{render_value(self.value)}"


@dataclass(frozen=True, slots=True)
class ToggleMode:
    def to_message(self) -> str:
        return "MODE:TOGGLE"


@dataclass(frozen=True, slots=True)
class UnknownCommand:
    type: Optional[Any] = None

    def to_message(self) -> None:
        return None


Command = Union[SetTemperature, ToggleMode, UnknownCommand]


def parse_command(body: Any) -> Command:
    """Map a request body onto a command variant.

    Matching on ``type`` is exact and case-sensitive. The ``value`` of
    ``SET_TEMP`` is carried through unvalidated.
    """

    if not isinstance(body, dict):
        return UnknownCommand()

    command_type = body.get("type")
    if command_type == CommandTypes.SET_TEMP:
        return SetTemperature(body.get("value", _MISSING))
    if command_type == CommandTypes.TOGGLE_MODE:
        return ToggleMode()
    return UnknownCommand(command_type)


def render_value(value: Any) -> str:
    """Render a JSON value the way a string template on the dashboard side would."""

    if value is _MISSING:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _render_number(value)
    if isinstance(value, list):
        return ",".join("" if item is None else render_value(item) for item in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def _render_number(value: Union[int, float]) -> str:
    # Number-to-string rules of ECMAScript: positional notation while the
    # decimal point sits within 21 digits, exponent notation otherwise.
    # Integers are doubles on the dashboard side, so they round the same way.
    try:
        value = float(value)
    except OverflowError:
        value = math.inf if value > 0 else -math.inf
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    # repr() yields the shortest round-tripping digits.
    parsed = Decimal(repr(abs(value)))
    digits = "".join(str(d) for d in parsed.as_tuple().digits).rstrip("0")
    point = parsed.adjusted() + 1
    count = len(digits)

    if count <= point <= 21:
        return sign + digits + "0" * (point - count)
    if 0 < point <= 21:
        return sign + digits[:point] + "." + digits[point:]
    if -6 < point <= 0:
        return sign + "0." + "0" * -point + digits

    exponent = point - 1
    mantissa = digits[0] + ("." + digits[1:] if count > 1 else "")
    return f"{sign}{mantissa}e{'+' if exponent >= 0 else '-'}{abs(exponent)}"
