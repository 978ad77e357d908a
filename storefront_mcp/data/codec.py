"""Row codec: ordered field lists <-> raw sheet rows.

Decoding never raises on bad cell data.  Malformed JSON lists become ``[]``,
non-numeric numbers become the field default, and rows written under an older
column layout are recognised through the schema's legacy table so that later
fields are not shifted into the wrong attribute.

Decoding also normalizes: text cells are stripped of surrounding whitespace
and a blank cell takes the field default (a blank lead ``status`` reads as
``"new"``).  ``decode(encode(r)) == r`` therefore holds for records whose text
is already trimmed and whose defaulted fields are non-blank, which is what the
repositories write; hand-edited cells come back normalized.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Sequence, TypeVar

from storefront_mcp.data.ranges import column_letter
from storefront_mcp.normalization import format_number, parse_int, parse_price

logger = logging.getLogger(__name__)

R = TypeVar("R")


class FieldKind(str, Enum):
    TEXT = "text"
    LOWER_TEXT = "lower_text"
    INT = "int"
    NUMBER = "number"
    JSON_LIST = "json_list"


@dataclass(frozen=True)
class FieldSpec:
    header: str
    attr: str
    kind: FieldKind = FieldKind.TEXT
    default: Any = ""


@dataclass(frozen=True)
class LegacyLayout:
    """An older column order still present in historical rows.

    ``matches`` receives the raw (trailing-trimmed) row and decides whether it
    was written under this layout.
    """
    version: int
    headers: tuple[str, ...]
    matches: Callable[[Sequence[str]], bool]


def _cell(row: Sequence[Any], idx: int) -> str:
    if idx >= len(row) or row[idx] is None:
        return ""
    return str(row[idx])


def _decode_json_list(raw: str, spec: FieldSpec) -> list[Any]:
    text = raw.strip()
    if not text:
        return []
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        logger.warning("Ignoring malformed JSON list in %s: %.40r", spec.header, text)
        return []
    if not isinstance(parsed, list):
        logger.warning("Ignoring non-list JSON in %s: %.40r", spec.header, text)
        return []
    return [item for item in parsed if isinstance(item, str)]


def decode_cell(spec: FieldSpec, raw: str) -> Any:
    if spec.kind is FieldKind.JSON_LIST:
        return _decode_json_list(raw, spec)
    if spec.kind in (FieldKind.INT, FieldKind.NUMBER):
        if not raw.strip():
            return spec.default
        parsed = parse_int(raw) if spec.kind is FieldKind.INT else parse_price(raw)
        if parsed is None:
            logger.warning("Non-numeric %s cell %.40r, using %r", spec.header, raw, spec.default)
            return spec.default
        return parsed
    text = raw.strip()
    if not text:
        return spec.default
    return text.lower() if spec.kind is FieldKind.LOWER_TEXT else text


def encode_cell(spec: FieldSpec, value: Any) -> str:
    if spec.kind is FieldKind.JSON_LIST:
        return json.dumps(list(value or []), separators=(",", ":"))
    if spec.kind in (FieldKind.INT, FieldKind.NUMBER):
        if spec.kind is FieldKind.NUMBER and not value:
            # zero prices are stored as blank cells
            return ""
        return format_number(value)
    return "" if value is None else str(value)


class RowSchema(Generic[R]):
    """Column layout of one logical table plus the record type it maps to."""

    def __init__(
        self,
        name: str,
        record_type: type[R],
        fields: Sequence[FieldSpec],
        *,
        key_attr: str,
        version: int = 1,
        legacy: Sequence[LegacyLayout] = (),
    ) -> None:
        self.name = name
        self.record_type = record_type
        self.fields = tuple(fields)
        self.key_attr = key_attr
        self.version = version
        self.legacy = tuple(legacy)
        self._by_attr = {f.attr: f for f in self.fields}
        self._by_header = {f.header: f for f in self.fields}
        if key_attr not in self._by_attr:
            raise ValueError(f"{name}: key {key_attr!r} is not a field")
        for layout in self.legacy:
            unknown = [h for h in layout.headers if h not in self._by_header]
            if unknown:
                raise ValueError(f"{name} v{layout.version}: unknown headers {unknown}")

    @property
    def headers(self) -> list[str]:
        return [f.header for f in self.fields]

    @property
    def width(self) -> int:
        return len(self.fields)

    @property
    def last_column(self) -> str:
        return column_letter(self.width)

    def has_field(self, attr: str) -> bool:
        return attr in self._by_attr

    def column_of(self, attr: str) -> str:
        try:
            spec = self._by_attr[attr]
        except KeyError:
            raise ValueError(f"{self.name} has no field {attr!r}") from None
        return column_letter(self.fields.index(spec) + 1)

    def layout_for(self, row: Sequence[str], schema_version: int | None = None) -> tuple[FieldSpec, ...]:
        """Pick the field order a row was written with."""
        if schema_version is not None and schema_version != self.version:
            for layout in self.legacy:
                if layout.version == schema_version:
                    return tuple(self._by_header[h] for h in layout.headers)
            raise ValueError(f"{self.name} has no layout version {schema_version}")
        if schema_version is None:
            for layout in self.legacy:
                if layout.matches(row):
                    return tuple(self._by_header[h] for h in layout.headers)
        return self.fields

    def decode(self, row: Sequence[Any], schema_version: int | None = None) -> R:
        cells = [_cell(row, i) for i in range(len(row))]
        layout = self.layout_for(cells, schema_version)
        values = {spec.attr: decode_cell(spec, "") for spec in self.fields}
        for idx, spec in enumerate(layout):
            values[spec.attr] = decode_cell(spec, _cell(cells, idx))
        return self.record_type(**values)

    def encode(self, record: R) -> list[str]:
        return [encode_cell(spec, getattr(record, spec.attr)) for spec in self.fields]

    def key_of(self, record: R) -> str:
        return str(getattr(record, self.key_attr) or "").strip()
