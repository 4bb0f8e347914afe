from __future__ import annotations

from typing import Any, List, Optional
from pydantic import BaseModel, Field, model_validator


class RecordSubmission(BaseModel):
    """Raw form fields exactly as the client sent them; the validator coerces."""

    year: Any = None
    value: Any = None
    country: Any = None


class GdpRecordInput(BaseModel):
    year: int
    value: float
    country: str


class GdpRecord(GdpRecordInput):
    id: str


class RecordValueUpdate(BaseModel):
    value: Any = Field(default=None, description="New GDP value; must be a positive number")


class RecordCreated(BaseModel):
    message: str
    record: GdpRecord


class RecordPage(BaseModel):
    items: List[GdpRecord]
    page: int
    page_size: int
    total: int
    total_pages: int
    sort: str
    direction: str
    revision: int


class AnalysisPoint(BaseModel):
    year: int
    value: float


class AnalysisRequest(BaseModel):
    points: Optional[List[AnalysisPoint]] = Field(
        default=None,
        description="Ordered (year, value) pairs; omit to analyse the stored collection",
    )


class AnalysisResult(BaseModel):
    summary: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "AnalysisResult":
        if (self.summary is None) == (self.error is None):
            raise ValueError("AnalysisResult must carry exactly one of summary or error")
        return self

    @property
    def ok(self) -> bool:
        return self.summary is not None
