"""
Record <-> CSV text conversion.

Responsibilities:
- quote-aware row splitting and field tokenizing (shared by every reader)
- records -> CSV text, with schema resolution and value coercion
- CSV text -> records
- ragged text -> rectangular grid

Everything here is a pure function of its inputs. Values are not
type-preserving: numbers and booleans come back from a round-trip as text.
"""

from __future__ import annotations

import csv
import enum
import io
import json
import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Optional

from .rules import DELIMITER, LINE_SEPARATOR, QUOTE_CHAR

logger = logging.getLogger(__name__)

Grid = List[List[str]]


class CodecError(Exception):
    """Base class for codec failures."""


class InvalidInputType(CodecError, TypeError):
    """Serialization was handed something that is not a record or a record sequence."""


class CellKind(str, enum.Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"
    NESTED = "nested"


class Quoting(str, enum.Enum):
    ALL = "all"
    MINIMAL = "minimal"


class HeaderMode(str, enum.Enum):
    FIRST = "first"
    UNION = "union"


_CSV_QUOTING = {
    Quoting.ALL: csv.QUOTE_ALL,
    Quoting.MINIMAL: csv.QUOTE_MINIMAL,
}


def classify_cell(value: Any) -> CellKind:
    if value is None:
        return CellKind.NULL
    # bool is an int subclass, test it first
    if isinstance(value, bool):
        return CellKind.BOOLEAN
    if isinstance(value, (int, float)):
        return CellKind.NUMBER
    if isinstance(value, str):
        return CellKind.TEXT
    if isinstance(value, (Mapping, list, tuple)):
        return CellKind.NESTED
    return CellKind.TEXT


def _format_number(value: Any) -> str:
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def stringify_cell(value: Any) -> str:
    """
    Render one cell value as text.

    - null -> ""
    - boolean -> "true" / "false"
    - number -> decimal text, integral floats without a trailing ".0"
    - nested mapping / list -> compact JSON
    - anything else -> str(value)
    """
    kind = classify_cell(value)
    if kind is CellKind.NULL:
        return ""
    if kind is CellKind.BOOLEAN:
        return "true" if value else "false"
    if kind is CellKind.NUMBER:
        return _format_number(value)
    if kind is CellKind.NESTED:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return str(value)


def split_rows(text: str) -> List[str]:
    """
    Split CSV text into rows on line separators.

    A separator inside a quoted field (one opened by a quote at the start of
    the field) does not end the row. A quote in the middle of a field, such
    as an inch mark, opens nothing. If the text ends while a quoted field is
    still open, the row where it opened and everything after it fall back to
    a plain split on the separator.

    Always returns at least one row; "" gives [""].
    """
    rows: List[str] = []
    in_quoted_field = False
    field_start = True
    start = 0
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if in_quoted_field:
            if ch == QUOTE_CHAR:
                if i + 1 < n and text[i + 1] == QUOTE_CHAR:
                    i += 2
                    continue
                in_quoted_field = False
        elif ch == QUOTE_CHAR and field_start:
            in_quoted_field = True
            field_start = False
        elif ch == DELIMITER:
            field_start = True
        elif ch == LINE_SEPARATOR:
            rows.append(text[start:i])
            start = i + 1
            field_start = True
        else:
            field_start = False
        i += 1

    if in_quoted_field:
        logger.debug("unterminated quoted field at offset %d, splitting plainly", start)
        rows.extend(text[start:].split(LINE_SEPARATOR))
    else:
        rows.append(text[start:])
    return rows


def tokenize_row(row: str) -> List[str]:
    """
    Quote-aware scan of one CSV row into its fields.

    Structural quotes are consumed by the scan and never reach a field, so
    no boundary-quote trimming is applied afterwards.
    """
    fields: List[str] = []
    buf: List[str] = []
    in_quotes = False
    i = 0
    n = len(row)
    while i < n:
        ch = row[i]
        if ch == QUOTE_CHAR:
            if in_quotes and i + 1 < n and row[i + 1] == QUOTE_CHAR:
                buf.append(QUOTE_CHAR)
                i += 2
                continue
            in_quotes = not in_quotes
        elif ch == DELIMITER and not in_quotes:
            fields.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
        i += 1
    fields.append("".join(buf))
    return fields


def detect_schema(records: Sequence[Mapping[str, Any]]) -> Optional[List[str]]:
    """Every key across all records, in first-seen order."""
    if not records:
        return None
    seen: Dict[str, None] = {}
    for record in records:
        for key in record:
            seen.setdefault(str(key), None)
    return list(seen)


def _as_records(data: Any) -> tuple[List[Mapping[str, Any]], bool]:
    if isinstance(data, Mapping):
        return [data], True
    if isinstance(data, Sequence) and not isinstance(data, (str, bytes, bytearray)):
        for index, item in enumerate(data):
            if not isinstance(item, Mapping):
                raise InvalidInputType(
                    f"record {index} is {type(item).__name__}, expected a mapping"
                )
        return list(data), False
    raise InvalidInputType(
        f"expected a record or a sequence of records, got {type(data).__name__}"
    )


def resolve_headers(
    records: Sequence[Mapping[str, Any]],
    columns: Optional[Sequence[str]] = None,
    fallback: Optional[Sequence[str]] = None,
    header_mode: HeaderMode = HeaderMode.FIRST,
) -> List[str]:
    """
    Pick the header row.

    Precedence: explicit columns, then the records' own keys (first record,
    or the union of all records in UNION mode), then the fallback list.
    """
    header_mode = HeaderMode(header_mode)
    if columns is not None:
        return [str(c) for c in columns]

    if header_mode is HeaderMode.UNION:
        natural = detect_schema(records) or []
    else:
        natural = [str(k) for k in records[0]] if records else []

    if natural:
        return natural
    if fallback is not None:
        return [str(c) for c in fallback]
    return []


def records_to_csv(
    data: Any,
    columns: Optional[Sequence[str]] = None,
    fallback: Optional[Sequence[str]] = None,
    header_mode: HeaderMode = HeaderMode.FIRST,
    quoting: Quoting = Quoting.ALL,
) -> str:
    """
    Serialize a record or a sequence of records to CSV text.

    An empty sequence yields "". A single record, even an empty one, always
    gets a header row. Keys a record lacks become empty cells.
    """
    records, single = _as_records(data)
    quoting = Quoting(quoting)
    if not records and not single:
        return ""

    headers = resolve_headers(records, columns, fallback, header_mode)

    outp = io.StringIO(newline="")
    writer = csv.writer(
        outp,
        delimiter=DELIMITER,
        quotechar=QUOTE_CHAR,
        quoting=_CSV_QUOTING[quoting],
        lineterminator=LINE_SEPARATOR,
    )

    writer.writerow(headers)
    for record in records:
        # headers are text; match them against keys of any type
        by_name = {str(k): v for k, v in record.items()}
        writer.writerow([stringify_cell(by_name.get(h)) for h in headers])

    text = outp.getvalue()
    if text.endswith(LINE_SEPARATOR):
        text = text[: -len(LINE_SEPARATOR)]

    logger.debug("serialized %d records x %d columns", len(records), len(headers))
    return text


def csv_to_records(text: str) -> List[Dict[str, str]]:
    """
    Parse CSV text into records keyed by the header row.

    Never raises on irregular input. Blank rows are skipped, short rows are
    filled with "", and fields beyond the header are dropped.
    """
    if not text:
        return []

    rows = split_rows(text)
    if len(rows) < 2:
        return []

    headers = tokenize_row(rows[0])
    records: List[Dict[str, str]] = []
    dropped = 0

    for row in rows[1:]:
        if not row.strip():
            continue
        values = tokenize_row(row)
        if len(values) > len(headers):
            dropped += 1
        records.append(
            {h: (values[i] if i < len(values) else "") for i, h in enumerate(headers)}
        )

    if dropped:
        logger.debug("dropped extra fields on %d rows", dropped)
    return records


def normalize_grid(text: str) -> Grid:
    """
    Tokenize every row and right-pad to the widest row.

    Rows are never truncated. "" gives [[""]].
    """
    return pad_rows(tokenize_rows(text))


def tokenize_rows(text: str) -> Grid:
    return [tokenize_row(row) for row in split_rows(text)]


def pad_rows(rows: Grid) -> Grid:
    """Right-pad already tokenized rows to the widest one. Returns new lists."""
    max_cols = max((len(row) for row in rows), default=0)
    return [row + [""] * (max_cols - len(row)) for row in rows]
