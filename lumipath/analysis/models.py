from typing import Any, Literal

from pydantic import BaseModel


class ColumnStats(BaseModel):
    count: int
    mean: float
    median: float
    min: float
    max: float
    standard_deviation: float
    variance: float  # population variance (divide by n)
    missing_count: int
    outliers: list[float] = []


class NormalRange(BaseModel):
    q1: float
    q3: float
    iqr: float
    lower_fence: float
    upper_fence: float


class SelectionThresholds(BaseModel):
    # Two-decimal strings: these only ever end up in criteria text.
    lower_normal: str
    upper_normal: str
    lower_exclusion: str
    upper_exclusion: str
    upper_watch: str
    efficacy_threshold: str
    enrichment_threshold: str
    lower_tertile: str
    upper_tertile: str
    study_min: str
    study_max: str


class CategoricalCriteria(BaseModel):
    preferred: list[str] = []
    excluded: list[str] = []
    balanced: list[str] = []


class ColumnProfile(BaseModel):
    type: Literal["numeric", "categorical", "empty"]
    count: int = 0
    insights: str = ""
    # numeric
    mean: float | None = None
    median: float | None = None
    std_dev: float | None = None
    min: float | None = None
    max: float | None = None
    outliers: int = 0
    normal_range: NormalRange | None = None
    selection_thresholds: SelectionThresholds | None = None
    # categorical
    unique_values: int = 0
    top_categories: list[tuple[str, int]] = []
    distribution: dict[str, int] = {}
    selection_categories: CategoricalCriteria | None = None


class Biomarker(BaseModel):
    original: str
    normalized: str
    category: str
    fda_relevant: bool
    data_analysis: ColumnProfile
    selection_criteria: dict[str, str]


class DataQuality(BaseModel):
    total_cells: int
    empty_cells: int
    empty_percentage: float
    duplicate_rows: int
    data_completeness: float
    quality_score: int


class CategoricalColumn(BaseModel):
    data: list[Any]
    unique_values: list[Any]
    unique_count: int


class ColumnAnalysis(BaseModel):
    numerical: dict[str, list[float | None]]  # row-aligned, None = not numeric
    categorical: dict[str, CategoricalColumn]


class StatisticalAnalysis(BaseModel):
    columns: dict[str, ColumnStats | None]
    correlations: dict[str, dict[str, float]] | None = None
    correlation_p_values: dict[str, dict[str, float | None]] | None = None


class WorksheetSummary(BaseModel):
    overview: str
    data_quality: str
    column_breakdown: str
    biomarker_summary: str
    recommendations: list[str]


class WorksheetAnalysis(BaseModel):
    sheet_name: str
    headers: list[str]
    total_rows: int
    total_columns: int
    data_quality: DataQuality
    column_analysis: ColumnAnalysis
    statistical_analysis: StatisticalAnalysis
    biomarker_analysis: dict[str, list[Biomarker]]
    summary: WorksheetSummary
    raw_data: list[list[Any]]  # preview rows

    def all_biomarkers(self) -> list[Biomarker]:
        return [b for group in self.biomarker_analysis.values() for b in group]


class OverallSummary(BaseModel):
    total_worksheets: int
    total_records: int
    total_variables: int
    total_biomarkers: int
    fda_compliant_biomarkers: int
    average_data_quality: int


class AIAnalysis(BaseModel):
    insights: dict[str, Any]
    analysis_timestamp: str
    analysis_type: str

    @property
    def failed(self) -> bool:
        return bool(self.insights.get("error"))


class EnhancedRecommendations(BaseModel):
    inclusion_criteria: list[str] = []
    exclusion_criteria: list[str] = []
    stratification_factors: list[str] = []
    enrollment_strategy: list[str] = []
    regulatory: list[str] = []
    clinical: list[str] = []
    ai_insights: list[str] = []


class ExcelAnalysisResult(BaseModel):
    file_name: str
    file_size: int
    worksheets: dict[str, WorksheetAnalysis]
    overall_summary: OverallSummary
    analysis_timestamp: str
    ai_analysis: AIAnalysis | None = None
    enhanced_recommendations: EnhancedRecommendations | None = None
