"""Biomarker classification and patient-selection criteria.

Columns are classified by keyword match on their header, then profiled
from their data: numeric columns get percentile-based cut points, categorical
columns get prevalence-based preferred/excluded categories. Both are rendered
as suggested inclusion, exclusion and stratification text.
"""

import logging
import re
from collections import Counter
from collections.abc import Sequence
from typing import Any

import numpy as np

from lumipath.analysis.descriptive import (
    calculate_basic_stats,
    calculate_normal_range,
    percentile,
)
from lumipath.analysis.models import (
    Biomarker,
    CategoricalCriteria,
    ColumnProfile,
    SelectionThresholds,
)
from lumipath.config import settings
from lumipath.workbook import is_empty, parse_float

log = logging.getLogger(__name__)

# Checked in this order; the first category with a keyword hit wins.
BIOMARKER_CATEGORIES: dict[str, list[str]] = {
    # Inclusion: primary eligibility markers
    "EFFICACY": [
        "pasi", "severity", "response", "improvement", "reduction", "efficacy",
        "outcome", "endpoint", "score", "index", "scale", "assessment", "baseline",
        "target", "expression", "level", "positive", "measurable", "detectable",
    ],
    # Exclusion: safety and contraindication markers
    "SAFETY": [
        "adverse", "side_effect", "toxicity", "safety", "tolerance", "reaction",
        "liver", "kidney", "cardiac", "hemoglobin", "platelet", "white_blood_cell",
        "contraindication", "risk", "elevated", "abnormal", "dysfunction",
    ],
    # Stratification: population enrichment markers
    "LABORATORY": [
        "blood", "serum", "plasma", "urine", "biomarker", "protein", "gene",
        "cytokine", "enzyme", "hormone", "antibody", "antigen", "metabolite",
        "mutation", "variant", "polymorphism", "allele", "genotype",
    ],
    "DEMOGRAPHIC": [
        "age", "gender", "sex", "race", "ethnicity", "weight", "height", "bmi",
        "baseline", "demographic", "population", "subject", "patient", "cohort",
        "subgroup", "stratum", "category", "classification",
    ],
    "DISEASE_SPECIFIC": [
        "tumor", "cancer", "lesion", "inflammation", "infection", "disease",
        "condition", "diagnosis", "stage", "grade", "progression", "metastasis",
        "severity", "duration", "history", "status", "type", "subtype",
    ],
    # Dosing / exposure
    "PK_PD": [
        "concentration", "dose", "exposure", "clearance", "half_life", "bioavailability",
        "pharmacokinetic", "pharmacodynamic", "pk", "pd", "auc", "cmax", "tmax",
        "metabolism", "transporter", "interaction", "sensitivity",
    ],
}

OTHER = "OTHER"

FDA_KEYWORDS = [
    "efficacy", "safety", "adverse", "endpoint", "outcome", "biomarker",
    "toxicity", "dose", "concentration", "response", "progression",
    "hemoglobin", "creatinine", "ast", "alt", "bilirubin", "platelets",
]

_PERCENTILES = {"p5": 0.05, "p10": 0.10, "p25": 0.25, "p50": 0.50, "p75": 0.75, "p90": 0.90, "p95": 0.95}


def category_key(category: str) -> str:
    """EFFICACY -> efficacy, DISEASE_SPECIFIC -> disease_specific."""
    return category.lower()


def empty_biomarker_groups() -> dict[str, list[Biomarker]]:
    groups = {category_key(c): [] for c in BIOMARKER_CATEGORIES}
    groups[category_key(OTHER)] = []
    return groups


def normalize_header(header: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", str(header).lower())


def classify_header(header: str) -> str:
    normalized = normalize_header(header)
    for category, keywords in BIOMARKER_CATEGORIES.items():
        if any(k in normalized for k in keywords):
            return category
    return OTHER


def is_fda_relevant(normalized_header: str) -> bool:
    return any(k in normalized_header for k in FDA_KEYWORDS)


def _fmt(value: float) -> str:
    """Render a number the way it reads in criteria text (45, 45.5, 0.00001)."""
    return np.format_float_positional(float(value), trim="-")


# ── Thresholds ──


def suggest_selection_thresholds(values: Sequence[float]) -> SelectionThresholds:
    s = sorted(values)
    p = {name: f"{percentile(s, q):.2f}" for name, q in _PERCENTILES.items()}
    return SelectionThresholds(
        lower_normal=p["p10"],
        upper_normal=p["p90"],
        lower_exclusion=p["p5"],
        upper_exclusion=p["p95"],
        upper_watch=p["p75"],
        efficacy_threshold=p["p50"],
        enrichment_threshold=p["p75"],
        lower_tertile=p["p25"],
        upper_tertile=p["p75"],
        study_min=p["p10"],
        study_max=p["p90"],
    )


def suggest_categorical_criteria(top_categories: list[tuple[str, int]]) -> CategoricalCriteria:
    """Preferred/balanced are >5% prevalence, excluded is <2%."""
    total = sum(count for _, count in top_categories)
    if total == 0:
        return CategoricalCriteria()
    major = [cat for cat, count in top_categories if count / total > 0.05]
    rare = [cat for cat, count in top_categories if count / total < 0.02]
    return CategoricalCriteria(preferred=major[:3], excluded=rare, balanced=major[:4])


# ── Column profiling ──


def profile_column(values: Sequence[Any], header: str) -> ColumnProfile:
    """Numeric or categorical profile of one column for patient selection."""
    data = [v for v in values if not is_empty(v)]
    if not data:
        return ColumnProfile(type="empty", insights="No data available for analysis")

    numeric = [f for f in map(parse_float, data) if f is not None]
    if numeric and len(numeric) > len(data) * settings.analysis.numeric_ratio:
        stats = calculate_basic_stats(numeric)
        return ColumnProfile(
            type="numeric",
            count=len(numeric),
            mean=stats.mean,
            median=stats.median,
            std_dev=stats.standard_deviation,
            min=stats.min,
            max=stats.max,
            outliers=len(stats.outliers),
            normal_range=calculate_normal_range(numeric),
            selection_thresholds=suggest_selection_thresholds(numeric),
        )

    counts = Counter(str(v).lower().strip() for v in data)
    # most_common keeps first-seen order for ties
    top = counts.most_common(settings.analysis.top_categories)
    return ColumnProfile(
        type="categorical",
        count=len(data),
        unique_values=len(counts),
        top_categories=top,
        distribution=dict(counts),
        selection_categories=suggest_categorical_criteria(top),
    )


def generate_selection_criteria(header: str, profile: ColumnProfile, category: str) -> dict[str, str]:
    if profile.type == "numeric":
        t = profile.selection_thresholds
        category = category.upper()
        if category == "SAFETY":
            return {
                "inclusion": f"{header} within normal range ({t.lower_normal} - {t.upper_normal})",
                "exclusion": f"{header} > {t.upper_exclusion} or < {t.lower_exclusion}",
                "monitoring": f"Monitor patients with {header} > {t.upper_watch}",
            }
        if category == "EFFICACY":
            return {
                "inclusion": f"{header} ≥ {t.efficacy_threshold} for enhanced response probability",
                "stratification": (
                    f"Stratify by {header}: Low (< {t.lower_tertile}), "
                    f"Medium ({t.lower_tertile}-{t.upper_tertile}), High (> {t.upper_tertile})"
                ),
                "enrichment": f"Consider enriching population with {header} > {t.enrichment_threshold}",
            }
        if category == "DEMOGRAPHIC":
            return {
                "inclusion": f"{header} within study population range ({t.study_min} - {t.study_max})",
                "stratification": f"Balance randomization by {header} quartiles",
                "subgroup": (
                    f"Pre-planned subgroup analysis for {header} above/below median "
                    f"({_fmt(profile.median)})"
                ),
            }
        return {
            "reference": f"{header} reference range: {t.lower_normal} - {t.upper_normal}",
            "consideration": f"Evaluate {header} impact on primary endpoint",
        }

    if profile.type == "categorical":
        crit = profile.selection_categories
        major = ", ".join(f"{cat} (n={n})" for cat, n in profile.top_categories[:3])
        return {
            "inclusion": f"Include patients with {header}: {', '.join(crit.preferred)}",
            "exclusion": f"Exclude patients with {header}: {', '.join(crit.excluded)}",
            "stratification": f"Stratify by {header} major categories: {major}",
        }

    return {"note": f"{header} requires manual clinical evaluation for selection criteria"}


def identify_biomarkers(headers: list[str], rows: list[list[Any]]) -> dict[str, list[Biomarker]]:
    """Classify every column into exactly one biomarker group."""
    groups = empty_biomarker_groups()
    for index, header in enumerate(headers):
        column = [row[index] if index < len(row) else None for row in rows]
        profile = profile_column(column, header)
        category = classify_header(header)
        normalized = normalize_header(header)
        groups[category_key(category)].append(
            Biomarker(
                original=header,
                normalized=normalized,
                category=category,
                fda_relevant=category != OTHER and is_fda_relevant(normalized),
                data_analysis=profile,
                selection_criteria=generate_selection_criteria(header, profile, category),
            )
        )
    log.debug(
        "Classified %d columns: %s",
        len(headers),
        {k: len(v) for k, v in groups.items() if v},
    )
    return groups
