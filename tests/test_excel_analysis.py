"""Tests for whole-workbook analysis and recommendations."""

import pytest

from lumipath.analysis.excel import (
    FALLBACK_RECOMMENDATIONS,
    ExcelAnalysisError,
    analyze_excel_file,
    analyze_worksheet,
    prepare_sample_data_for_ai,
)
from lumipath.workbook import Worksheet


def test_analyze_worksheet(clinical_table):
    headers, rows = clinical_table

    ws = analyze_worksheet(Worksheet(name="Baseline", headers=headers, rows=rows))

    assert ws.total_rows == 10
    assert ws.total_columns == 6
    assert ws.data_quality.empty_cells == 1
    assert ws.statistical_analysis.columns["Hemoglobin (g/dL)"].outliers == [25.0]
    assert ws.statistical_analysis.correlations["Age"]["Age"] == 1.0
    assert "Sex" in ws.column_analysis.categorical
    assert len(ws.all_biomarkers()) == 6


def test_sample_data_for_ai(clinical_table):
    headers, rows = clinical_table
    ws = analyze_worksheet(Worksheet(name="Baseline", headers=headers, rows=rows))

    sample = prepare_sample_data_for_ai({"Baseline": ws})

    entry = sample["Baseline"]
    assert len(entry["sample_rows"]) == 5
    assert entry["numerical_summary"]["Hemoglobin (g/dL)"]["outlier_count"] == 1
    assert entry["biomarker_summary"]["safety"] == {
        "count": 1,
        "fda_relevant": 1,
        "examples": ["Hemoglobin (g/dL)"],
    }
    assert entry["data_quality"]["duplicate_rows"] == 0


@pytest.mark.asyncio
async def test_analyze_excel_file_with_ai(clinical_xlsx, fake_reasoning):
    result = await analyze_excel_file(clinical_xlsx, "psoriasis_trial.xlsx")

    assert list(result.worksheets) == ["Baseline"]
    assert result.file_size == len(clinical_xlsx)
    assert result.overall_summary.total_records == 10
    assert result.overall_summary.fda_compliant_biomarkers == 1

    assert result.ai_analysis.analysis_type == "ai_enhanced_patient_selection_analysis"
    assert len(fake_reasoning) == 1
    call = fake_reasoning[0]
    assert call["decision_type"] == "clinical"
    assert call["context"]["analysisType"] == "patient_selection_analysis"
    assert "psoriasis_trial.xlsx" in call["prompt"]
    assert "Hemoglobin (g/dL)" in call["prompt"]

    recs = result.enhanced_recommendations
    assert recs.ai_insights == [f"Recommendation {i}" for i in range(1, 6)]
    assert recs.clinical == ["AI Assessment: Enroll adults with moderate-to-severe disease"]
    assert recs.regulatory
    assert any(r.startswith("Hemoglobin (g/dL): Hemoglobin (g/dL) within normal range") for r in recs.inclusion_criteria)
    assert any("Monitor patients with" in r for r in recs.exclusion_criteria)
    assert any(r.startswith("PASI Score: Stratify by PASI Score") for r in recs.stratification_factors)
    assert any("enrollment success rate" in r for r in recs.enrollment_strategy)


@pytest.mark.asyncio
async def test_ai_failure_falls_back(clinical_csv, failing_reasoning):
    result = await analyze_excel_file(clinical_csv, "baseline.csv")

    ai = result.ai_analysis
    assert ai.failed
    assert ai.analysis_type == "basic_analysis_with_ai_fallback"
    assert ai.insights["error"] == "AI analysis unavailable: Authentication required. Please log in."
    assert result.enhanced_recommendations.ai_insights == FALLBACK_RECOMMENDATIONS
    assert result.enhanced_recommendations.clinical == []
    # the statistics are still there
    assert result.worksheets["baseline"].statistical_analysis.columns["Age"].count == 10


@pytest.mark.asyncio
async def test_duplicates_reported_in_enrollment_strategy(xlsx_factory, fake_reasoning):
    content = xlsx_factory({"Labs": [["ALT (U/L)", "Arm"], [20, "A"], [20, "A"], [35, "B"], [None, None]]})

    result = await analyze_excel_file(content, "labs.xlsx")

    strategy = result.enhanced_recommendations.enrollment_strategy
    assert "Labs: Remove 1 duplicate patient records to avoid enrollment errors" in strategy


@pytest.mark.asyncio
async def test_unsupported_file_raises(fake_reasoning):
    with pytest.raises(ExcelAnalysisError, match="^Failed to analyze Excel file"):
        await analyze_excel_file(b"plain text", "notes.txt")


@pytest.mark.asyncio
async def test_empty_workbook_raises(xlsx_factory, fake_reasoning):
    content = xlsx_factory({"Empty": []})

    with pytest.raises(ExcelAnalysisError, match="no data"):
        await analyze_excel_file(content, "empty.xlsx")
    assert fake_reasoning == []
