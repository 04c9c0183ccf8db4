import logging

from fastapi import FastAPI, File, HTTPException, UploadFile

from lumipath import llm
from lumipath.analysis import (
    ExcelAnalysisError,
    analyze_excel_file,
    calculate_basic_stats,
    correlation_matrix,
    identify_biomarkers,
)
from lumipath.analysis.correlation import correlation_p_values
from lumipath.analysis.models import ExcelAnalysisResult
from lumipath.config import settings
from lumipath.models import (
    ClassifyRequest,
    ClassifyResponse,
    CorrelationRequest,
    CorrelationResponse,
    PatternAnalysisRequest,
    SetModelRequest,
    StatisticsRequest,
    StatisticsResponse,
    TextProcessingRequest,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

app = FastAPI(title="lumipath", version="0.1.0")


@app.get("/api/health")
async def health():
    return {"status": "ok", "ai_provider": settings.ai.provider}


@app.post("/api/excel-analysis", response_model=ExcelAnalysisResult)
async def excel_analysis(file: UploadFile = File(...)):
    content = await file.read()
    if len(content) > settings.analysis.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File exceeds the {settings.analysis.max_upload_mb} MB upload limit",
        )
    log.info("Excel analysis requested: %s (%d bytes)", file.filename, len(content))
    try:
        return await analyze_excel_file(content, file.filename or "")
    except ExcelAnalysisError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@app.post("/api/statistics", response_model=StatisticsResponse)
async def statistics(req: StatisticsRequest):
    return StatisticsResponse(stats=calculate_basic_stats(req.values))


@app.post("/api/correlations", response_model=CorrelationResponse)
async def correlations(req: CorrelationRequest):
    lengths = {len(v) for v in req.columns.values()}
    if len(lengths) > 1:
        raise HTTPException(status_code=422, detail="All columns must have the same number of rows")
    return CorrelationResponse(
        matrix=correlation_matrix(req.columns),
        p_values=correlation_p_values(req.columns),
    )


@app.post("/api/biomarkers/classify", response_model=ClassifyResponse)
async def classify_biomarkers(req: ClassifyRequest):
    return ClassifyResponse(biomarkers=identify_biomarkers(req.headers, req.rows))


# ── AI passthrough ──


@app.post("/api/text-processing")
async def text_processing(req: TextProcessingRequest):
    try:
        return await llm.enhanced_text_processing(req.clinical_text, req.extraction_type)
    except llm.AIServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc))


@app.post("/api/pattern-analysis")
async def pattern_analysis(req: PatternAnalysisRequest):
    try:
        return await llm.analyze_patterns(req.data_set, req.analysis_type)
    except llm.AIServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc))


@app.get("/api/settings")
async def get_settings():
    return {
        "ai_provider": settings.ai.provider,
        "current_model": llm.get_deployment(),
        "available_models": llm.AVAILABLE_MODELS,
    }


@app.put("/api/settings/model")
async def set_model(req: SetModelRequest):
    if req.model not in llm.AVAILABLE_MODELS:
        raise HTTPException(status_code=400, detail=f"Unknown model: {req.model}")
    llm.set_deployment(req.model)
    return {"current_model": llm.get_deployment()}
