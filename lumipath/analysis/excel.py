"""Whole-workbook biomarker analysis with an AI patient-selection narrative."""

import logging
from datetime import datetime, timezone
from typing import Any

from lumipath import llm, prompts
from lumipath.analysis.biomarkers import identify_biomarkers
from lumipath.analysis.models import (
    AIAnalysis,
    EnhancedRecommendations,
    ExcelAnalysisResult,
    WorksheetAnalysis,
)
from lumipath.analysis.quality import (
    COMPLETENESS_TARGET,
    analyze_columns,
    analyze_data_quality,
    generate_overall_summary,
    generate_summary,
    perform_statistical_analysis,
)
from lumipath.config import settings
from lumipath.workbook import Worksheet, read_workbook

log = logging.getLogger(__name__)

FALLBACK_RECOMMENDATIONS = [
    "Manual review of biomarker endpoints recommended",
    "Consider statistical consultation for sample size calculations",
    "Validate biomarker classifications against FDA guidance",
    "Review data quality metrics before protocol finalization",
]


class ExcelAnalysisError(ValueError):
    """Raised when an uploaded workbook cannot be analysed."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def analyze_worksheet(worksheet: Worksheet) -> WorksheetAnalysis:
    headers, rows = worksheet.headers, worksheet.rows
    quality = analyze_data_quality(headers, rows)
    columns = analyze_columns(headers, rows)
    statistics = perform_statistical_analysis(columns.numerical)
    biomarkers = identify_biomarkers(headers, rows)
    return WorksheetAnalysis(
        sheet_name=worksheet.name,
        headers=headers,
        total_rows=len(rows),
        total_columns=len(headers),
        data_quality=quality,
        column_analysis=columns,
        statistical_analysis=statistics,
        biomarker_analysis=biomarkers,
        summary=generate_summary(worksheet.name, headers, rows, quality, columns, biomarkers),
        raw_data=rows[: settings.analysis.preview_rows],
    )


def prepare_sample_data_for_ai(worksheets: dict[str, WorksheetAnalysis]) -> dict[str, Any]:
    """Compact per-sheet view of the data that fits in a prompt."""
    sample: dict[str, Any] = {}
    for name, ws in worksheets.items():
        numerical = {
            col: {
                "mean": st.mean,
                "median": st.median,
                "std_dev": st.standard_deviation,
                "missing_count": st.missing_count,
                "outlier_count": len(st.outliers),
            }
            for col, st in ws.statistical_analysis.columns.items()
            if st is not None
        }
        biomarkers = {
            category: {
                "count": len(group),
                "fda_relevant": sum(1 for b in group if b.fda_relevant),
                "examples": [b.original for b in group[:3]],
            }
            for category, group in ws.biomarker_analysis.items()
        }
        sample[name] = {
            "headers": ws.headers,
            "sample_rows": ws.raw_data[: settings.analysis.sample_rows],
            "numerical_summary": numerical,
            "biomarker_summary": biomarkers,
            "data_quality": {
                "completeness": ws.data_quality.data_completeness,
                "quality_score": ws.data_quality.quality_score,
                "duplicate_rows": ws.data_quality.duplicate_rows,
            },
        }
    return sample


async def perform_ai_analysis(result: ExcelAnalysisResult, sample_data: dict[str, Any]) -> AIAnalysis:
    """AI patient-selection narrative, or the fixed fallback if the AI call fails."""
    summaries = []
    for ws in result.worksheets.values():
        biomarkers = ws.all_biomarkers()
        summaries.append({
            "name": ws.sheet_name,
            "total_rows": ws.total_rows,
            "total_columns": ws.total_columns,
            "headers": ws.headers,
            "data_completeness": ws.data_quality.data_completeness,
            "biomarker_count": len(biomarkers),
            "fda_biomarker_count": sum(1 for b in biomarkers if b.fda_relevant),
        })
    prompt = prompts.build_patient_selection_prompt(result.file_name, summaries, sample_data)
    first = next(iter(result.worksheets.values()), None)
    context = {
        "analysisType": "patient_selection_analysis",
        "regulatoryStandards": "FDA_ICH_E6R2_patient_selection",
        "domain": "clinical_trial_patient_selection",
        "dataQuality": first.data_quality.model_dump() if first else {},
        "focusArea": "inclusion_exclusion_criteria_optimization",
        "expectedOutcome": "actionable_patient_selection_strategy",
    }

    try:
        insights = await llm.generate_with_reasoning(prompt, context, "clinical")
    except llm.AIServiceError as exc:
        log.warning("AI analysis unavailable, using fallback: %s", exc)
        return AIAnalysis(
            insights={
                "error": f"AI analysis unavailable: {exc}",
                "fallback_recommendations": list(FALLBACK_RECOMMENDATIONS),
            },
            analysis_timestamp=_now(),
            analysis_type="basic_analysis_with_ai_fallback",
        )
    if not isinstance(insights, dict):
        insights = {"decision": str(insights)}
    return AIAnalysis(
        insights=insights,
        analysis_timestamp=_now(),
        analysis_type="ai_enhanced_patient_selection_analysis",
    )


def _reasoning_items(reasoning: Any) -> list[str]:
    if isinstance(reasoning, str):
        return [line.strip() for line in reasoning.splitlines() if line.strip()]
    if isinstance(reasoning, list):
        return [r if isinstance(r, str) else str(r) for r in reasoning]
    return []


def generate_enhanced_recommendations(
    result: ExcelAnalysisResult, ai: AIAnalysis
) -> EnhancedRecommendations:
    recs = EnhancedRecommendations()

    for ws in result.worksheets.values():
        quality = ws.data_quality
        if quality.data_completeness < COMPLETENESS_TARGET:
            recs.enrollment_strategy.append(
                f"{ws.sheet_name}: Improve data completeness ({quality.data_completeness:.2f}%) "
                "for reliable patient selection"
            )
        if quality.duplicate_rows > 0:
            recs.enrollment_strategy.append(
                f"{ws.sheet_name}: Remove {quality.duplicate_rows} duplicate patient records "
                "to avoid enrollment errors"
            )

        biomarkers = ws.all_biomarkers()
        for b in biomarkers:
            if b.fda_relevant and "inclusion" in b.selection_criteria:
                recs.inclusion_criteria.append(f"{b.original}: {b.selection_criteria['inclusion']}")

        for b in ws.biomarker_analysis.get("safety", []):
            for key in ("exclusion", "monitoring"):
                if key in b.selection_criteria:
                    recs.exclusion_criteria.append(f"{b.original}: {b.selection_criteria[key]}")

        for b in biomarkers:
            for key in ("stratification", "enrichment"):
                if key in b.selection_criteria:
                    recs.stratification_factors.append(f"{b.original}: {b.selection_criteria[key]}")

        numeric = [b for b in biomarkers if b.data_analysis.type == "numeric"]
        if numeric and ws.total_rows > 0:
            avg_outliers = sum(b.data_analysis.outliers for b in numeric) / len(numeric)
            excluded = round(avg_outliers / ws.total_rows * 100)
            recs.enrollment_strategy.append(
                f"{ws.sheet_name}: Estimated {100 - excluded}% enrollment success rate "
                f"({excluded}% excluded for outlier values)"
            )

    if ai.failed:
        recs.ai_insights = list(ai.insights.get("fallback_recommendations", []))
    else:
        recs.ai_insights = _reasoning_items(ai.insights.get("reasoning"))[:5]
        decision = ai.insights.get("decision")
        if decision:
            recs.clinical.append(f"AI Assessment: {decision}")
        recs.regulatory.append("AI-validated patient selection criteria meet ICH E6(R2) eligibility standards")
        recs.enrollment_strategy.append("AI-optimized patient selection strategy for enhanced enrollment efficiency")

    return recs


async def analyze_excel_file(content: bytes, filename: str) -> ExcelAnalysisResult:
    """Analyse every worksheet of an uploaded spreadsheet and attach AI insights."""
    try:
        sheets = read_workbook(content, filename)
        if not sheets:
            raise ExcelAnalysisError("The file contains no data")

        worksheets: dict[str, WorksheetAnalysis] = {}
        for sheet in sheets:
            log.info("Analyzing worksheet %s (%d rows x %d columns)", sheet.name, len(sheet.rows), len(sheet.headers))
            worksheets[sheet.name] = analyze_worksheet(sheet)

        result = ExcelAnalysisResult(
            file_name=filename,
            file_size=len(content),
            worksheets=worksheets,
            overall_summary=generate_overall_summary(worksheets),
            analysis_timestamp=_now(),
        )
        sample_data = prepare_sample_data_for_ai(worksheets)
        result.ai_analysis = await perform_ai_analysis(result, sample_data)
        result.enhanced_recommendations = generate_enhanced_recommendations(result, result.ai_analysis)
        return result
    except Exception as exc:
        log.error("Excel analysis error: %s", exc)
        raise ExcelAnalysisError(f"Failed to analyze Excel file: {exc}") from exc
