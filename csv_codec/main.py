import logging
from datetime import date

from fastapi import FastAPI, UploadFile, File, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from .codec import InvalidInputType, csv_to_records, records_to_csv, resolve_headers
from .models import (
    ExportRequest,
    GridRequest,
    GridResponse,
    HealthResponse,
    ParseRequest,
    ParseResponse,
    SerializeRequest,
    SerializeResponse,
)
from .normalize import grid_report, import_csv_bytes
from .rules import EXPORT_MEDIA_TYPE, LOG_LEVEL, MAX_UPLOAD_BYTES, TARGET_ENCODING

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="csv-codec",
    description="Record <-> CSV conversion and ragged CSV import",
    version="0.1.0",
)


@app.exception_handler(InvalidInputType)
async def invalid_input_handler(request: Request, exc: InvalidInputType):
    logger.warning("rejected %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc)},
    )


def _serialize(body: SerializeRequest) -> SerializeResponse:
    text = records_to_csv(
        body.data,
        columns=body.columns,
        fallback=body.fallback_columns,
        header_mode=body.header_mode,
        quoting=body.quoting,
    )
    records = body.data if isinstance(body.data, list) else [body.data]
    headers = resolve_headers(records, body.columns, body.fallback_columns, body.header_mode)
    return SerializeResponse(csv=text, rows=len(records), columns=headers if text else [])


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.post("/serialize", response_model=SerializeResponse)
def serialize(body: SerializeRequest):
    return _serialize(body)


@app.post("/export")
def export(body: ExportRequest):
    result = _serialize(body)
    filename = body.filename or f"data-export-{date.today().isoformat()}.csv"
    logger.info("exporting %d rows as %s", result.rows, filename)
    return Response(
        content=result.csv.encode(TARGET_ENCODING),
        media_type=f"{EXPORT_MEDIA_TYPE}; charset={TARGET_ENCODING}",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/parse", response_model=ParseResponse)
def parse(body: ParseRequest):
    records = csv_to_records(body.csv)
    return {"records": records, "count": len(records)}


@app.post("/grid", response_model=GridResponse)
def grid(body: GridRequest):
    cells, summary, warnings = grid_report(body.text)
    return {
        "cells": cells,
        "report": {"summary": summary, "warnings": warnings},
    }


@app.post("/import", response_model=GridResponse)
async def import_csv(file: UploadFile = File(...)):
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=422, detail="Only CSV files are supported")

    if file.size is not None and file.size > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File exceeds the {MAX_UPLOAD_BYTES} byte limit",
        )

    # one byte past the limit is enough to tell it was exceeded
    raw = await file.read(MAX_UPLOAD_BYTES + 1)
    if len(raw) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File exceeds the {MAX_UPLOAD_BYTES} byte limit",
        )
    return import_csv_bytes(raw)
