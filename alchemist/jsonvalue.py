from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

from pydantic import JsonValue

__all__ = ["JsonResult", "JsonValue", "parse_json"]


@dataclass(frozen=True)
class JsonResult:
    ok: bool
    value: JsonValue = None
    error: Optional[str] = None


def _reject_constant(name: str) -> None:
    raise ValueError(f"non-standard JSON constant: {name}")


def parse_json(text: str) -> JsonResult:
    """
    Parse strict JSON text without raising.

    NaN and Infinity are rejected; only strict JSON is accepted.
    """
    try:
        value = json.loads(text, parse_constant=_reject_constant)
    except (ValueError, TypeError, RecursionError) as exc:
        return JsonResult(ok=False, error=str(exc))
    return JsonResult(ok=True, value=value)
