from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any


def require_float(value: Any, field: str) -> float:
    """Parse a provider number, accepting strings such as "1.25%"."""
    if value is None or isinstance(value, bool):
        raise ValueError(f"missing {field}")
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
        if not value:
            raise ValueError(f"missing {field}")
    try:
        casted = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"unparsable {field}: {value!r}") from exc
    if math.isnan(casted) or math.isinf(casted):
        raise ValueError(f"non-finite {field}")
    return casted


def require_int(value: Any, field: str) -> int:
    return int(require_float(value, field))


def optional_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return require_int(value, "value")
    except ValueError:
        return None


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
