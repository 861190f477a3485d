"""
Import-side normalization for pasted or uploaded CSV text.

Responsibilities:
- encoding detection + decoding of uploaded bytes
- newline normalization
- ragged rows -> rectangular grid, with a padding report
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from charset_normalizer import from_bytes

from .codec import Grid, pad_rows, tokenize_rows
from .rules import TARGET_ENCODING

logger = logging.getLogger(__name__)


def decode_text(raw: bytes) -> Tuple[str, Dict[str, Any]]:
    """
    Decode uploaded bytes to text with LF line endings.

    Rules:
    - Detect encoding best-effort via charset-normalizer.
    - A UTF-8 BOM is stripped rather than kept as a leading character.
    - If decode fails, fall back to UTF-8, then to replacement characters, and report it.
    - CRLF and lone CR become LF.
    """
    detected = None

    match = from_bytes(raw).best()
    if match is not None:
        detected = match.encoding

    decode_used = detected or TARGET_ENCODING
    if raw.startswith(b"\xef\xbb\xbf") and (decode_used.lower().replace("-", "_") in ("utf_8", "utf8")):
        decode_used = "utf-8-sig"

    decode_fallback = False

    try:
        text = raw.decode(decode_used)
    except (UnicodeDecodeError, LookupError):
        try:
            text = raw.decode(TARGET_ENCODING)
            decode_used = TARGET_ENCODING
        except UnicodeDecodeError:
            text = raw.decode(TARGET_ENCODING, errors="replace")
            decode_used = TARGET_ENCODING
        decode_fallback = True
        logger.warning("decode with %s failed, fell back to %s", detected, decode_used)

    nl_before = {
        "crlf": text.count("\r\n"),
        "cr": text.count("\r") - text.count("\r\n"),
        "lf": text.count("\n"),
    }

    text = text.replace("\r\n", "\n").replace("\r", "\n")

    report = {
        "encoding": {
            "detected": detected,
            "decode_used": decode_used,
            "decode_fallback": decode_fallback,
        },
        "newlines": {
            "policy": "lf",
            "before": nl_before,
            "changed": (nl_before["crlf"] > 0) or (nl_before["cr"] > 0),
        },
    }
    return text, report


def grid_report(text: str) -> Tuple[Grid, Dict[str, Any], List[dict]]:
    """
    Normalize text to a grid and describe what padding was applied.

    Returns the grid, a summary dict and one warning per padded row.
    """
    rows = tokenize_rows(text)
    widths = [len(row) for row in rows]
    grid = pad_rows(rows)
    max_cols = len(grid[0])

    warnings: List[dict] = []
    for i, width in enumerate(widths):
        if width < max_cols:
            warnings.append({
                "row": i + 1,
                "column": None,
                "issue": "row_too_short",
                "value": str(width),
                "action": f"padded_to_{max_cols}",
            })

    summary = {
        "rows": len(grid),
        "columns": max_cols,
        "short_rows_padded": len(warnings),
    }
    return grid, summary, warnings


def import_csv_bytes(raw: bytes) -> Dict[str, Any]:
    """
    Decode an uploaded file and normalize it to a grid.
    Returns a dict matching the import endpoint's response envelope.
    """
    text, decode_report = decode_text(raw)
    grid, summary, warnings = grid_report(text)
    logger.info(
        "imported %d rows x %d columns (%d padded)",
        summary["rows"], summary["columns"], summary["short_rows_padded"],
    )
    return {
        "cells": grid,
        "report": {
            "summary": summary,
            "normalizations": decode_report,
            "warnings": warnings,
        },
    }
