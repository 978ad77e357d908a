"""Shared canonical normalization functions for dealer, vehicle and lead input.

Single source of truth: imported by the record codec (cell decoding) and by the
repositories (input cleaning before a write).
"""

from __future__ import annotations

import re
from typing import Any

from storefront_mcp.constants import HTTP_URL_RE

_NON_DIGITS_RE = re.compile(r"\D+")


def clean_numeric_string(raw: str) -> str:
    """Keep only digits, ``'.'``, and ``'-'``."""
    return "".join(c for c in raw if c.isdigit() or c in {".", "-"})


def parse_price(value: Any) -> float | None:
    """Best-effort price parsing.  Returns ``None`` for unparseable input."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        cleaned = clean_numeric_string(stripped)
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def parse_int(value: Any) -> int | None:
    """Best-effort integer parsing.  Returns ``None`` for unparseable input."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        parsed = parse_price(stripped)
        if parsed is None:
            return None
        return int(parsed)
    return None


def format_number(value: int | float | None) -> str:
    """Render a number for a cell; integral floats lose their ``.0``."""
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def digits_only(value: Any) -> str:
    return _NON_DIGITS_RE.sub("", clean_text(value))


def is_http_url(value: Any) -> bool:
    return isinstance(value, str) and bool(HTTP_URL_RE.match(value.strip()))


def clean_http_url(value: Any) -> str:
    """Return the trimmed URL when it is http(s), otherwise ``""``."""
    text = clean_text(value)
    return text if HTTP_URL_RE.match(text) else ""


def filter_http_urls(values: Any, *, limit: int | None = None) -> list[str]:
    """Keep http(s) strings from an iterable, in order, up to ``limit``."""
    if not isinstance(values, (list, tuple)):
        return []
    urls = [u for u in (clean_http_url(v) for v in values if isinstance(v, str)) if u]
    return urls[:limit] if limit is not None else urls
