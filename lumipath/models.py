from typing import Any

from pydantic import BaseModel

from lumipath.analysis.models import Biomarker, ColumnStats


class StatisticsRequest(BaseModel):
    values: list[Any]


class StatisticsResponse(BaseModel):
    stats: ColumnStats | None = None


class CorrelationRequest(BaseModel):
    columns: dict[str, list[Any]]  # row-aligned, null for missing


class CorrelationResponse(BaseModel):
    matrix: dict[str, dict[str, float]]
    p_values: dict[str, dict[str, float | None]]


class ClassifyRequest(BaseModel):
    headers: list[str]
    rows: list[list[Any]] = []


class ClassifyResponse(BaseModel):
    biomarkers: dict[str, list[Biomarker]]


class TextProcessingRequest(BaseModel):
    clinical_text: str
    extraction_type: str = "comprehensive"


class PatternAnalysisRequest(BaseModel):
    data_set: Any
    analysis_type: str = "correlation"


class SetModelRequest(BaseModel):
    model: str
