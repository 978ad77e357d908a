"""A1-notation helpers: column letters, quoted tab references, range parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass

from storefront_mcp.errors import StoreError

_CELL_RE = re.compile(r"^([A-Z]*)(\d*)$")


def column_letter(index: int) -> str:
    """1 -> ``A``, 26 -> ``Z``, 27 -> ``AA``."""
    if index < 1:
        raise ValueError(f"column index must be >= 1, got {index}")
    letters = ""
    while index:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def column_index(letters: str) -> int:
    """``A`` -> 1, ``AA`` -> 27."""
    letters = letters.strip().upper()
    if not letters or not letters.isalpha():
        raise ValueError(f"invalid column letters {letters!r}")
    index = 0
    for ch in letters:
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index


def quote_tab(title: str) -> str:
    return "'" + title.replace("'", "''") + "'"


def a1_range(
    title: str,
    start_col: str,
    start_row: int | None,
    end_col: str,
    end_row: int | None = None,
) -> str:
    """Build ``'Tab'!A2:L`` style references; ``None`` rows leave the side open."""
    start = f"{start_col}{start_row or ''}"
    end = f"{end_col}{end_row or ''}"
    return f"{quote_tab(title)}!{start}:{end}"


@dataclass(frozen=True)
class GridRange:
    """A parsed A1 range.  Row bounds are ``None`` when the range is open."""

    title: str
    start_col: int
    end_col: int
    start_row: int | None
    end_row: int | None


def _split_tab(spec: str) -> tuple[str, str]:
    if spec.startswith("'"):
        idx = 1
        chars: list[str] = []
        while idx < len(spec):
            ch = spec[idx]
            if ch == "'":
                if spec[idx + 1:idx + 2] == "'":
                    chars.append("'")
                    idx += 2
                    continue
                break
            chars.append(ch)
            idx += 1
        rest = spec[idx + 1:]
        if not rest.startswith("!"):
            raise StoreError(f"Unable to parse range: {spec}", code="BAD_RANGE")
        return "".join(chars), rest[1:]
    title, sep, cells = spec.partition("!")
    if not sep:
        raise StoreError(f"Unable to parse range: {spec}", code="BAD_RANGE")
    return title, cells


def parse_a1_range(spec: str) -> GridRange:
    title, cells = _split_tab(spec)
    start_text, _, end_text = cells.upper().partition(":")
    end_text = end_text or start_text
    start_match = _CELL_RE.match(start_text)
    end_match = _CELL_RE.match(end_text)
    if not start_match or not end_match or not start_match.group(1) or not end_match.group(1):
        raise StoreError(f"Unable to parse range: {spec}", code="BAD_RANGE")
    start_row = int(start_match.group(2)) if start_match.group(2) else None
    end_row = int(end_match.group(2)) if end_match.group(2) else None
    return GridRange(
        title=title,
        start_col=column_index(start_match.group(1)),
        end_col=column_index(end_match.group(1)),
        start_row=start_row,
        end_row=end_row,
    )
