"""JSON response helpers shared by the tool implementations."""

from __future__ import annotations

import json
from typing import Any


def ok_response(**data: Any) -> str:
    return json.dumps({"ok": True, **data}, default=str)


def fail_response(error: str, *, code: str) -> str:
    return json.dumps({"ok": False, "error": error, "code": code})
