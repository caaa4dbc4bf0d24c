"""Typed theme setting values.

Setting values are stored as text. They are turned into one of the value
types below when they enter the system (admin input) or leave storage, and
nowhere else.
"""

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class SettingValueError(ValueError):
    """Raised when a value does not fit the declared setting type."""

    pass


@dataclass(frozen=True)
class BoolValue:
    value: bool

    def to_storage(self) -> str:
        return "true" if self.value else "false"

    def unwrap(self) -> bool:
        return self.value


@dataclass(frozen=True)
class NumberValue:
    value: Union[int, float]

    def to_storage(self) -> str:
        number = self.unwrap()
        if isinstance(number, int):
            return str(number)
        return repr(number)

    def unwrap(self) -> Union[int, float]:
        if isinstance(self.value, float) and self.value.is_integer():
            return int(self.value)
        return self.value


@dataclass(frozen=True)
class TextValue:
    value: str

    def to_storage(self) -> str:
        return self.value

    def unwrap(self) -> str:
        return self.value


@dataclass(frozen=True)
class ListValue:
    value: list

    def to_storage(self) -> str:
        return json.dumps(self.value)

    def unwrap(self) -> list:
        return self.value


@dataclass(frozen=True)
class ObjectValue:
    value: dict

    def to_storage(self) -> str:
        return json.dumps(self.value)

    def unwrap(self) -> dict:
        return self.value


SettingValue = Union[BoolValue, NumberValue, TextValue, ListValue, ObjectValue]


def _parse_number(text: str) -> Union[int, float]:
    """Parse text as an int when it is one, so large integers stay exact."""
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError as e:
        raise SettingValueError(f"expected a number, got {text!r}") from e


def _to_number(raw: Any) -> NumberValue:
    if isinstance(raw, bool):
        raise SettingValueError("expected a number, got a boolean")
    if isinstance(raw, (int, float)):
        number = raw
    elif isinstance(raw, str):
        number = _parse_number(raw)
    else:
        raise SettingValueError(f"expected a number, got {type(raw).__name__}")

    if isinstance(number, float) and not math.isfinite(number):
        raise SettingValueError("number must be finite")
    return NumberValue(number)


def _to_json(raw: Any, expected: type) -> Any:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SettingValueError(f"invalid JSON: {e}") from e
    if not isinstance(raw, expected):
        raise SettingValueError(f"expected {expected.__name__}, got {type(raw).__name__}")
    return raw


def coerce_input(setting_type: str, raw: Any, options: Optional[list[Any]] = None) -> SettingValue:
    """Convert an admin-supplied value to the setting's declared type.

    Args:
        setting_type: Type declared in the manifest
        raw: Value from the request body
        options: Allowed values for ``select`` settings

    Raises:
        SettingValueError: If the value does not fit the type
    """
    if setting_type == "boolean":
        if isinstance(raw, bool):
            return BoolValue(raw)
        if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
            return BoolValue(raw.strip().lower() == "true")
        raise SettingValueError(f"expected a boolean, got {raw!r}")

    if setting_type == "number":
        return _to_number(raw)

    if setting_type == "array":
        return ListValue(_to_json(raw, list))

    if setting_type == "object":
        return ObjectValue(_to_json(raw, dict))

    if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        raise SettingValueError(f"expected text, got {type(raw).__name__}")
    text = raw if isinstance(raw, str) else str(raw)

    if setting_type == "select" and options:
        allowed = [str(option) for option in options]
        if text not in allowed:
            raise SettingValueError(f"{text!r} is not one of {allowed}")

    return TextValue(text)


def decode_stored(setting_type: str, raw: str, default: Any) -> Any:
    """Decode stored text into a plain value, or ``default`` if it can't be.

    Booleans are true only for the exact text ``"true"``.
    """
    try:
        if setting_type == "boolean":
            return BoolValue(raw == "true").unwrap()
        if setting_type == "number":
            return _to_number(raw).unwrap()
        if setting_type == "array":
            return ListValue(_to_json(raw, list)).unwrap()
        if setting_type == "object":
            return ObjectValue(_to_json(raw, dict)).unwrap()
    except SettingValueError as e:
        logger.warning(f"Stored {setting_type} setting value {raw!r} is unusable ({e}), using default")
        return default

    return TextValue(raw).unwrap()
