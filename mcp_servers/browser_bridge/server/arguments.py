"""Typed access to the loosely-typed ``arguments`` object of a tool call."""

from __future__ import annotations

import math
from typing import Any


class ArgumentError(ValueError):
    pass


_TRUE = {"1", "t", "true", "yes", "on"}
_FALSE = {"0", "f", "false", "no", "off"}


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _to_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    return None


class ToolArguments:
    """``require_*`` raise ``ArgumentError``; ``get_*`` fall back to the default
    when the argument is absent or has the wrong type."""

    def __init__(self, raw: dict[str, Any] | None) -> None:
        self.raw: dict[str, Any] = dict(raw) if isinstance(raw, dict) else {}

    def __contains__(self, name: str) -> bool:
        return name in self.raw

    def _require(self, name: str) -> Any:
        if name not in self.raw or self.raw[name] is None:
            raise ArgumentError(f'required argument "{name}" not found')
        return self.raw[name]

    def require_str(self, name: str) -> str:
        value = self._require(name)
        if not isinstance(value, str):
            raise ArgumentError(f'argument "{name}" is not a string')
        return value

    def require_int(self, name: str) -> int:
        value = _to_int(self._require(name))
        if value is None:
            raise ArgumentError(f'argument "{name}" is not an int')
        return value

    def get_str(self, name: str, default: str = "") -> str:
        value = self.raw.get(name)
        return value if isinstance(value, str) else default

    def get_int(self, name: str, default: int = 0) -> int:
        value = _to_int(self.raw.get(name))
        return default if value is None else value

    def get_float(self, name: str, default: float = 0.0) -> float:
        value = _to_float(self.raw.get(name))
        return default if value is None else value

    def get_bool(self, name: str, default: bool = False) -> bool:
        value = _to_bool(self.raw.get(name))
        return default if value is None else value

    def get_list(self, name: str) -> list[Any] | None:
        value = self.raw.get(name)
        return value if isinstance(value, list) else None

    def get_bool_map(self, name: str) -> dict[str, bool]:
        value = self.raw.get(name)
        if not isinstance(value, dict):
            return {}
        return {str(k): bool(_to_bool(v)) for k, v in value.items()}
