from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from .codec import HeaderMode, Quoting


class SerializeRequest(BaseModel):
    # validated by the codec so a bad shape surfaces as InvalidInputType
    data: Any = Field(examples=[[{"name": "Alice", "age": 30}]])
    columns: Optional[List[str]] = None
    fallback_columns: Optional[List[str]] = None
    header_mode: HeaderMode = HeaderMode.FIRST
    quoting: Quoting = Quoting.ALL


class ExportRequest(SerializeRequest):
    filename: Optional[str] = None


class SerializeResponse(BaseModel):
    csv: str
    rows: int
    columns: List[str]


class ParseRequest(BaseModel):
    csv: str = ""


class ParseResponse(BaseModel):
    records: List[Dict[str, str]] = Field(default_factory=list)
    count: int = 0


class GridRequest(BaseModel):
    text: str = ""


class ReportItem(BaseModel):
    row: Optional[int] = None
    column: Optional[str] = None
    issue: str
    value: Optional[str] = None
    action: str


class GridSummary(BaseModel):
    rows: int
    columns: int
    short_rows_padded: int = 0


class GridReport(BaseModel):
    summary: GridSummary
    normalizations: Dict[str, Any] = Field(default_factory=dict)
    warnings: List[ReportItem] = Field(default_factory=list)


class GridResponse(BaseModel):
    cells: List[List[str]]
    report: GridReport


class HealthResponse(BaseModel):
    ok: bool = True
