import json
from typing import Any

# System prompts for the direct Azure OpenAI provider. The backend provider
# owns its own prompts, so these only mirror the response shapes it returns.

REASONING_INSTRUCTIONS = """\
You are a clinical development expert supporting clinical-trial design and
regulatory submissions (IND, NDA, BLA, CTA, MAA). You will receive a request
and a JSON context describing the analysis. Make a decision and show your work.

Return **JSON only** (no markdown fences) with these keys:
  - "decision": one or two sentences stating your overall assessment
  - "reasoning": list of short, specific recommendation strings, most important first
  - "confidence": number between 0 and 1
  - "alternatives": list of alternative approaches worth considering
  - "risks": list of risks or caveats
"""

TEXT_PROCESSING_INSTRUCTIONS = """\
You extract structured clinical information from free text (protocol excerpts,
clinical notes, eligibility criteria). Return **JSON only** with these keys:
  - "entities": list of {"text", "type"} objects (conditions, drugs, lab tests,
    procedures, demographics, dosages)
  - "criteria": list of inclusion/exclusion statements found in the text
  - "summary": a short plain-language summary
"""

PATTERN_ANALYSIS_INSTRUCTIONS = """\
You identify patterns in clinical datasets. You will receive a dataset (or a
statistical summary of one) and the kind of analysis requested. Return **JSON
only** with these keys:
  - "patterns": list of {"description", "evidence", "strength"} objects
  - "anomalies": list of notable outliers or data quality issues
  - "recommendations": list of follow-up analyses
"""


def build_user_message(prompt: str, context: dict[str, Any]) -> str:
    return f"{prompt.strip()}\n\n## Context\n{json.dumps(context, indent=2, default=str)}"


def build_patient_selection_prompt(
    file_name: str,
    worksheet_summaries: list[dict[str, Any]],
    sample_data: dict[str, Any],
) -> str:
    """Prompt asking for concrete patient-selection criteria from the dataset."""
    total_rows = sum(ws["total_rows"] for ws in worksheet_summaries)
    cohorts = []
    for ws in worksheet_summaries:
        headers = ws["headers"]
        key_vars = ", ".join(headers[:10]) + ("..." if len(headers) > 10 else "")
        cohorts.append(
            f"Cohort: {ws['name']}\n"
            f"- Patient Count: {ws['total_rows']}, Variables: {ws['total_columns']}\n"
            f"- Data Completeness: {ws['data_completeness']:.2f}% (Critical for Selection Criteria)\n"
            f"- Selection Biomarkers: {ws['biomarker_count']} ({ws['fda_biomarker_count']} FDA-validated)\n"
            f"- Key Variables: {key_vars}"
        )

    return f"""\
Analyze this patient dataset for CLINICAL TRIAL PATIENT SELECTION strategies:

Patient Population Overview:
- Dataset: {file_name}
- Total Worksheets: {len(worksheet_summaries)}
- Patient Records: {total_rows}

Population Characteristics:
{chr(10).join(cohorts)}

Sample Patient Data (Use for specific threshold recommendations):
{json.dumps(sample_data, indent=2, default=str)}

IMPORTANT: Base all recommendations on the actual data values shown above. Provide specific numerical thresholds, not generic guidance.

CRITICAL FOCUS: Provide SPECIFIC, ACTIONABLE patient selection recommendations based on the actual data provided:

1. CONCRETE INCLUSION CRITERIA:
   - Specific numerical thresholds for each biomarker (e.g., "Hemoglobin ≥ 10 g/dL")
   - Evidence-based rationale for each threshold
   - Population percentages that would qualify

2. EVIDENCE-BASED EXCLUSION CRITERIA:
   - Safety exclusion thresholds with clinical justification
   - Specific values that indicate contraindications
   - Risk-benefit assessment for borderline cases

3. STRATIFICATION WITH EXACT VALUES:
   - Precise cut-points for biomarker stratification
   - Sample size implications for each stratum
   - Statistical power considerations

4. ENROLLMENT PROJECTIONS:
   - Calculate specific screening success rates based on data
   - Identify bottleneck criteria that limit enrollment
   - Recommend criteria modifications to improve feasibility

5. PROTOCOL-READY RECOMMENDATIONS:
   - Draft inclusion/exclusion criteria text
   - Specific monitoring parameters and frequencies
   - Risk mitigation strategies for each criterion

6. DATA QUALITY ASSESSMENT:
   - Missing data impact on patient selection
   - Biomarker reliability for selection decisions
   - Recommendations for additional data collection

RETURN SPECIFIC, PROTOCOL-READY CRITERIA WITH EXACT NUMBERS, NOT GENERAL GUIDANCE.
"""
