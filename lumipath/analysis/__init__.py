from lumipath.analysis.biomarkers import classify_header, identify_biomarkers
from lumipath.analysis.correlation import correlation_matrix, pearson_correlation
from lumipath.analysis.descriptive import calculate_basic_stats, detect_outliers
from lumipath.analysis.excel import ExcelAnalysisError, analyze_excel_file, analyze_worksheet

__all__ = [
    "ExcelAnalysisError",
    "analyze_excel_file",
    "analyze_worksheet",
    "calculate_basic_stats",
    "classify_header",
    "correlation_matrix",
    "detect_outliers",
    "identify_biomarkers",
    "pearson_correlation",
]
