"""Tests for biomarker classification and selection criteria."""

import pytest

from lumipath.analysis.biomarkers import (
    BIOMARKER_CATEGORIES,
    _fmt,
    classify_header,
    generate_selection_criteria,
    identify_biomarkers,
    is_fda_relevant,
    normalize_header,
    profile_column,
    suggest_categorical_criteria,
    suggest_selection_thresholds,
)


@pytest.mark.parametrize(
    "header,category",
    [
        ("PASI Score", "EFFICACY"),
        ("Hemoglobin (g/dL)", "SAFETY"),
        ("Serum IL-17", "LABORATORY"),
        ("Age", "DEMOGRAPHIC"),
        ("Tumor Size (mm)", "DISEASE_SPECIFIC"),
        ("Cmax (ng/mL)", "PK_PD"),
        ("Site Number", "OTHER"),
    ],
)
def test_classify_header(header, category):
    assert classify_header(header) == category


def test_first_matching_category_wins():
    # "severity" appears in both EFFICACY and DISEASE_SPECIFIC
    assert "severity" in BIOMARKER_CATEGORIES["DISEASE_SPECIFIC"]
    assert classify_header("Disease Severity") == "EFFICACY"


def test_normalize_header():
    assert normalize_header("ALT (U/L)") == "alt__u_l_"


def test_fda_relevance():
    assert is_fda_relevant(normalize_header("Hemoglobin"))
    assert is_fda_relevant(normalize_header("Creatinine clearance"))
    assert not is_fda_relevant(normalize_header("Site Number"))


def test_thresholds_use_index_percentiles():
    t = suggest_selection_thresholds(list(range(10, 0, -1)))

    assert t.lower_exclusion == "1.00"
    assert t.lower_normal == "2.00"
    assert t.lower_tertile == "3.00"
    assert t.efficacy_threshold == "6.00"
    assert t.upper_watch == "8.00"
    assert t.upper_normal == "10.00"
    assert t.upper_exclusion == "10.00"
    assert t.study_min == t.lower_normal
    assert t.study_max == t.upper_normal


def test_profile_numeric_column():
    profile = profile_column([1, 2, 3, 4, None, "", 5], "Dose")

    assert profile.type == "numeric"
    assert profile.count == 5
    assert profile.mean == 3
    assert profile.median == 3
    assert profile.selection_thresholds is not None


def test_profile_numeric_needs_more_than_70_percent():
    assert profile_column(["1", "2", "3", "x"], "Lab").type == "numeric"
    assert profile_column(["1", "2", "x", "y"], "Lab").type == "categorical"


def test_profile_categorical_column():
    values = ["Male", "female", "Female ", "male", "FEMALE", "Other"]

    profile = profile_column(values, "Sex")

    assert profile.type == "categorical"
    assert profile.unique_values == 3
    assert profile.top_categories[0] == ("female", 3)
    assert profile.distribution["male"] == 2


def test_profile_empty_column():
    profile = profile_column([None, "", "  "], "Notes")

    assert profile.type == "empty"
    assert generate_selection_criteria("Notes", profile, "OTHER") == {
        "note": "Notes requires manual clinical evaluation for selection criteria"
    }


def test_categorical_criteria_by_prevalence():
    crit = suggest_categorical_criteria([("a", 50), ("b", 45), ("c", 4), ("d", 1)])

    assert crit.preferred == ["a", "b"]
    assert crit.balanced == ["a", "b"]
    assert crit.excluded == ["d"]


def test_safety_criteria_text():
    values = [float(v) for v in range(1, 11)]
    profile = profile_column(values, "Hemoglobin")

    crit = generate_selection_criteria("Hemoglobin", profile, "SAFETY")

    assert crit["inclusion"] == "Hemoglobin within normal range (2.00 - 10.00)"
    assert crit["exclusion"] == "Hemoglobin > 10.00 or < 1.00"
    assert crit["monitoring"] == "Monitor patients with Hemoglobin > 8.00"


def test_efficacy_criteria_text():
    profile = profile_column(list(range(1, 11)), "PASI")

    crit = generate_selection_criteria("PASI", profile, "EFFICACY")

    assert crit["inclusion"] == "PASI ≥ 6.00 for enhanced response probability"
    assert crit["stratification"] == "Stratify by PASI: Low (< 3.00), Medium (3.00-8.00), High (> 8.00)"
    assert crit["enrichment"] == "Consider enriching population with PASI > 8.00"


def test_demographic_subgroup_uses_median():
    profile = profile_column([30, 40, 50, 60], "Age")

    crit = generate_selection_criteria("Age", profile, "DEMOGRAPHIC")

    assert crit["subgroup"] == "Pre-planned subgroup analysis for Age above/below median (45)"
    assert crit["stratification"] == "Balance randomization by Age quartiles"


def test_other_numeric_criteria_text():
    profile = profile_column(list(range(1, 11)), "Site")

    crit = generate_selection_criteria("Site", profile, "OTHER")

    assert set(crit) == {"reference", "consideration"}


def test_categorical_criteria_text():
    values = ["F"] * 6 + ["M"] * 4
    profile = profile_column(values, "Sex")

    crit = generate_selection_criteria("Sex", profile, "DEMOGRAPHIC")

    assert crit["inclusion"] == "Include patients with Sex: f, m"
    assert crit["stratification"] == "Stratify by Sex major categories: f (n=6), m (n=4)"


def test_identify_biomarkers_assigns_each_column_once(clinical_table):
    headers, rows = clinical_table

    groups = identify_biomarkers(headers, rows)

    assert set(groups) == {
        "efficacy", "safety", "laboratory", "demographic",
        "disease_specific", "pk_pd", "other",
    }
    names = [b.original for group in groups.values() for b in group]
    assert sorted(names) == sorted(headers)
    assert [b.original for b in groups["safety"]] == ["Hemoglobin (g/dL)"]
    assert [b.original for b in groups["disease_specific"]] == ["Tumor Size (mm)"]


def test_identify_biomarkers_marks_fda_relevance(clinical_table):
    headers, rows = clinical_table

    groups = identify_biomarkers(headers, rows)

    hgb = groups["safety"][0]
    assert hgb.fda_relevant
    assert hgb.category == "SAFETY"
    assert hgb.data_analysis.type == "numeric"
    assert "exclusion" in hgb.selection_criteria


@pytest.mark.parametrize(
    "value,expected",
    [(45.0, "45"), (45.5, "45.5"), (0.00001, "0.00001"), (2.5e7, "25000000")],
)
def test_criteria_numbers_are_fixed_point(value, expected):
    assert _fmt(value) == expected


def test_demographic_subgroup_small_median_not_in_exponent_form():
    profile = profile_column([0.00001, 0.00001, 0.00002], "Body weight ratio")

    crit = generate_selection_criteria("Body weight ratio", profile, "DEMOGRAPHIC")

    assert crit["subgroup"].endswith("above/below median (0.00001)")
