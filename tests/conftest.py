"""Pytest configuration and fixtures."""

import io

import pytest
from openpyxl import Workbook

from lumipath import llm

HEADERS = ["Patient ID", "Age", "Sex", "Hemoglobin (g/dL)", "PASI Score", "Tumor Size (mm)"]

ROWS = [
    [1, 34, "M", 13.5, 12.0, 21],
    [2, 45, "F", 12.1, 18.5, 35],
    [3, 52, "F", 11.8, 22.0, 40],
    [4, 61, "M", 14.2, 9.5, None],
    [5, 29, "F", 12.9, 15.0, 18],
    [6, 70, "M", 25.0, 30.0, 52],
    [7, 38, "F", 13.1, 11.0, 27],
    [8, 47, "M", 12.4, 16.5, 33],
    [9, 55, "F", 11.5, 19.0, 44],
    [10, 42, "M", 13.8, 14.0, 25],
]


@pytest.fixture
def clinical_table():
    """Headers and rows of a small psoriasis/oncology style dataset."""
    return list(HEADERS), [list(r) for r in ROWS]


def make_xlsx(sheets: dict[str, list[list]]) -> bytes:
    wb = Workbook()
    wb.remove(wb.active)
    for title, table in sheets.items():
        ws = wb.create_sheet(title)
        for row in table:
            ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def clinical_xlsx(clinical_table):
    headers, rows = clinical_table
    return make_xlsx({"Baseline": [headers] + rows, "Notes": []})


@pytest.fixture
def clinical_csv(clinical_table):
    headers, rows = clinical_table
    lines = [",".join(headers)]
    for row in rows:
        lines.append(",".join("" if v is None else str(v) for v in row))
    return ("\n".join(lines) + "\n").encode()


@pytest.fixture
def fake_reasoning(monkeypatch):
    """Replace the AI reasoning call; returns the list of captured calls."""
    calls = []

    async def fake(prompt, context, decision_type="clinical"):
        calls.append({"prompt": prompt, "context": context, "decision_type": decision_type})
        return {
            "decision": "Enroll adults with moderate-to-severe disease",
            "reasoning": [f"Recommendation {i}" for i in range(1, 8)],
        }

    monkeypatch.setattr(llm, "generate_with_reasoning", fake)
    return calls


@pytest.fixture
def failing_reasoning(monkeypatch):
    async def fake(prompt, context, decision_type="clinical"):
        raise llm.AIServiceError("Authentication required. Please log in.")

    monkeypatch.setattr(llm, "generate_with_reasoning", fake)


@pytest.fixture
def xlsx_factory():
    return make_xlsx
