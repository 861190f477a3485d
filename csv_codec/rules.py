"""
Codec rules and runtime settings.

This file exists to make the CSV dialect explicit and enforceable.
"""

import os

DELIMITER = ","
QUOTE_CHAR = '"'
LINE_SEPARATOR = "\n"

TARGET_ENCODING = "utf-8"
EXPORT_MEDIA_TYPE = "text/csv"

# Stock export columns, used as the last-resort header list
DEFAULT_SCHEMA = (
    "id",
    "name",
    "type",
    "size",
    "uploadDate",
    "status",
    "metadata",
    "content",
)

MAX_UPLOAD_BYTES = int(os.environ.get("CSV_CODEC_MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))
LOG_LEVEL = os.environ.get("CSV_CODEC_LOG_LEVEL", "INFO").upper()
