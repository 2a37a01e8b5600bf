from __future__ import annotations

import json
import os
from typing import Any, Iterable, Optional

_TRUE = {"1", "true", "yes", "y", "on"}
_FALSE = {"0", "false", "no", "n", "off"}


def _raw(name: str) -> Optional[str]:
    # deployment dashboards often leave a variable defined but empty
    value = os.environ.get(name)
    if value is None or not value.strip():
        return None
    return value


def env_str(name: str, default: str, *, strip: bool = True) -> str:
    value = _raw(name)
    if value is None:
        return default
    return value.strip() if strip else value


def env_optional_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = _raw(name)
    return value.strip() if value is not None else default


def env_bool(name: str, default: bool) -> bool:
    value = (_raw(name) or "").strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return default


def env_int(name: str, default: int, *, minimum: Optional[int] = None) -> int:
    value = _raw(name)
    try:
        number = int(value.strip()) if value is not None else default
    except ValueError:
        number = default
    if minimum is not None:
        number = max(minimum, number)
    return number


def env_choice(name: str, choices: Iterable[str], default: str) -> str:
    """Case-insensitive pick from ``choices``; anything else gives ``default``."""
    value = env_str(name, default).lower()
    return value if value in set(choices) else default


def env_json(name: str, default: Any) -> Any:
    """Parse a JSON document from an env var, falling back on bad input."""
    value = _raw(name)
    if value is None:
        return default
    try:
        return json.loads(value)
    except ValueError:
        return default
