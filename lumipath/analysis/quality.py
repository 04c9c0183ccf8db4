"""Data quality, column typing and worksheet summaries."""

import math
from typing import Any

from lumipath.analysis.correlation import correlation_matrix, correlation_p_values
from lumipath.analysis.descriptive import calculate_basic_stats
from lumipath.analysis.models import (
    Biomarker,
    CategoricalColumn,
    ColumnAnalysis,
    DataQuality,
    OverallSummary,
    StatisticalAnalysis,
    WorksheetAnalysis,
    WorksheetSummary,
)
from lumipath.config import settings
from lumipath.workbook import is_empty, parse_float

COMPLETENESS_TARGET = 80.0


def _round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def calculate_quality_score(empty_cells: int, total_cells: int, duplicate_rows: int, total_rows: int) -> int:
    """0-100 score: 70% completeness, 30% row uniqueness."""
    if total_cells == 0 or total_rows == 0:
        return 0
    completeness = (total_cells - empty_cells) / total_cells * 70
    uniqueness = (total_rows - duplicate_rows) / total_rows * 30
    return _round_half_up(completeness + uniqueness)


def analyze_data_quality(headers: list[str], rows: list[list[Any]]) -> DataQuality:
    total_cells = len(headers) * len(rows)
    empty_cells = 0
    duplicate_rows = 0
    seen: set[tuple] = set()
    for row in rows:
        empty_cells += sum(1 for cell in row if is_empty(cell))
        key = tuple(row)
        if key in seen:
            duplicate_rows += 1
        else:
            seen.add(key)

    if total_cells:
        empty_pct = round(empty_cells / total_cells * 100, 2)
        completeness = round((total_cells - empty_cells) / total_cells * 100, 2)
    else:
        empty_pct = completeness = 0.0
    return DataQuality(
        total_cells=total_cells,
        empty_cells=empty_cells,
        empty_percentage=empty_pct,
        duplicate_rows=duplicate_rows,
        data_completeness=completeness,
        quality_score=calculate_quality_score(empty_cells, total_cells, duplicate_rows, len(rows)),
    )


def is_numerical_column(values: list[Any]) -> bool:
    data = [v for v in values if not is_empty(v)]
    if not data:
        return False
    numeric = sum(1 for v in data if parse_float(v) is not None)
    return numeric / len(data) > settings.analysis.numeric_ratio


def analyze_columns(headers: list[str], rows: list[list[Any]]) -> ColumnAnalysis:
    numerical: dict[str, list[float | None]] = {}
    categorical: dict[str, CategoricalColumn] = {}
    for index, header in enumerate(headers):
        column = [row[index] if index < len(row) else None for row in rows]
        if is_numerical_column(column):
            numerical[header] = [parse_float(v) for v in column]
        else:
            unique = list(dict.fromkeys(v for v in column if not is_empty(v)))
            categorical[header] = CategoricalColumn(
                data=column, unique_values=unique, unique_count=len(unique)
            )
    return ColumnAnalysis(numerical=numerical, categorical=categorical)


def perform_statistical_analysis(numerical: dict[str, list[float | None]]) -> StatisticalAnalysis:
    analysis = StatisticalAnalysis(
        columns={name: calculate_basic_stats(values) for name, values in numerical.items()}
    )
    if len(numerical) > 1:
        analysis.correlations = correlation_matrix(numerical)
        analysis.correlation_p_values = correlation_p_values(numerical)
    return analysis


def _fda_biomarkers(biomarkers: dict[str, list[Biomarker]]) -> list[Biomarker]:
    return [b for group in biomarkers.values() for b in group if b.fda_relevant]


def generate_recommendations(
    quality: DataQuality,
    columns: ColumnAnalysis,
    biomarkers: dict[str, list[Biomarker]],
) -> list[str]:
    recs = []
    if quality.data_completeness < COMPLETENESS_TARGET:
        recs.append("Consider data cleaning to address missing values before protocol use.")
    if quality.duplicate_rows > 0:
        recs.append("Remove duplicate records to ensure data integrity.")
    fda = _fda_biomarkers(biomarkers)
    if fda:
        recs.append(f"{len(fda)} FDA-relevant biomarkers suitable for regulatory submissions.")
    if len(columns.numerical) > 5:
        recs.append("Consider correlation analysis to identify redundant biomarkers.")
    return recs


def generate_summary(
    sheet_name: str,
    headers: list[str],
    rows: list[list[Any]],
    quality: DataQuality,
    columns: ColumnAnalysis,
    biomarkers: dict[str, list[Biomarker]],
) -> WorksheetSummary:
    total = sum(len(group) for group in biomarkers.values())
    fda = len(_fda_biomarkers(biomarkers))
    return WorksheetSummary(
        overview=f"Analysis of {sheet_name} containing {len(rows)} records with {len(headers)} variables.",
        data_quality=(
            f"Data completeness: {quality.data_completeness:.2f}% "
            f"(Quality Score: {quality.quality_score}/100)"
        ),
        column_breakdown=(
            f"{len(columns.numerical)} numerical and {len(columns.categorical)} "
            "categorical variables identified."
        ),
        biomarker_summary=f"{total} potential biomarkers identified, {fda} FDA-relevant markers found.",
        recommendations=generate_recommendations(quality, columns, biomarkers),
    )


def generate_overall_summary(worksheets: dict[str, WorksheetAnalysis]) -> OverallSummary:
    sheets = list(worksheets.values())
    biomarkers = [b for ws in sheets for b in ws.all_biomarkers()]
    avg_quality = (
        _round_half_up(sum(ws.data_quality.quality_score for ws in sheets) / len(sheets))
        if sheets
        else 0
    )
    return OverallSummary(
        total_worksheets=len(sheets),
        total_records=sum(ws.total_rows for ws in sheets),
        total_variables=sum(ws.total_columns for ws in sheets),
        total_biomarkers=len(biomarkers),
        fda_compliant_biomarkers=sum(1 for b in biomarkers if b.fda_relevant),
        average_data_quality=avg_quality,
    )
