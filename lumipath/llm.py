"""AI text generation: backend /claude/* routes or Azure OpenAI directly.

All three operations return the parsed JSON body as a dict and raise
AIServiceError on any failure, so callers only ever handle one exception.
"""

import json
import logging
import re
from typing import Any

import httpx
from openai import AsyncAzureOpenAI, OpenAIError

from lumipath import credentials, prompts
from lumipath.config import settings

log = logging.getLogger(__name__)

_client: AsyncAzureOpenAI | None = None
_deployment: str = settings.azure_openai.deployment

# Deployments provisioned on the Azure OpenAI endpoint.
AVAILABLE_MODELS = [
    "gpt-4o-mini",
    "gpt-4.1-mini",
    "gpt-5-mini",
    "model-router",
]

# Models that require max_completion_tokens instead of max_tokens.
_USES_MAX_COMPLETION_TOKENS = {"gpt-5", "gpt-5-mini", "gpt-5-nano", "gpt-5.1", "gpt-5.2",
                                "o1", "o1-mini", "o3", "o3-mini", "o4-mini", "model-router"}

TEXT_PROCESSING_PATH = "/claude/text-processing"
PATTERN_ANALYSIS_PATH = "/claude/pattern-analysis"
REASONING_PATH = "/claude/reasoning-generation"


class AIServiceError(RuntimeError):
    """The AI collaborator could not produce a response."""


def _needs_max_completion_tokens(deployment: str) -> bool:
    d = deployment.lower()
    return any(d == p or d.startswith(p + "-") for p in _USES_MAX_COMPLETION_TOKENS)


def get_client() -> AsyncAzureOpenAI:
    global _client
    if _client is None:
        cfg = settings.azure_openai
        if not cfg.endpoint or not cfg.api_key:
            raise AIServiceError("Azure OpenAI is not configured (LUMIPATH_AZURE_OPENAI__ENDPOINT/API_KEY)")
        _client = AsyncAzureOpenAI(
            azure_endpoint=cfg.endpoint,
            api_key=cfg.api_key,
            api_version=cfg.api_version,
        )
    return _client


def get_deployment() -> str:
    return _deployment


def set_deployment(name: str) -> None:
    global _deployment
    _deployment = name
    log.info("Deployment changed to: %s", name)


def parse_llm_json(text: str) -> dict[str, Any]:
    """Leniently parse a JSON object from model output."""
    text = text.strip()
    candidates = [text]
    m = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", text, re.DOTALL)
    if m:
        candidates.append(m.group(1).strip())
    m = re.search(r"\{.*\}", text, re.DOTALL)
    if m:
        candidates.append(m.group())
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    raise ValueError(f"Could not parse JSON from LLM output: {text[:200]}")


# ── Azure OpenAI ──


async def chat(system_prompt: str, user_message: str) -> tuple[str, str]:
    """Send a chat completion request. Returns (text, finish_reason)."""
    client = get_client()
    limit = settings.azure_openai.max_tokens
    kwargs: dict = {
        "model": _deployment,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ],
    }
    if _needs_max_completion_tokens(_deployment):
        kwargs["max_completion_tokens"] = limit
    else:
        kwargs["max_tokens"] = limit
        kwargs["temperature"] = 0.0

    resp = await client.chat.completions.create(**kwargs)
    if not resp.choices:
        raise AIServiceError(f"Model {_deployment} returned no choices")
    choice = resp.choices[0]
    return choice.message.content or "", choice.finish_reason or "stop"


async def _azure_json(operation: str, system_prompt: str, prompt: str, context: dict[str, Any]) -> dict[str, Any]:
    try:
        text, finish = await chat(system_prompt, prompts.build_user_message(prompt, context))
        if finish == "length":
            log.warning("%s response truncated by token limit", operation)
        return parse_llm_json(text)
    except (OpenAIError, ValueError) as exc:
        raise AIServiceError(f"{operation} failed: {exc}") from exc


# ── Backend ──


def _backend_client() -> httpx.AsyncClient:
    headers = {"Content-Type": "application/json"}
    token = credentials.load_token()
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(
        base_url=settings.ai.backend_url,
        headers=headers,
        timeout=settings.ai.timeout_s,
    )


def _error_detail(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if isinstance(body, dict):
        return body.get("error") or body.get("detail")
    return None


async def _post_backend(operation: str, path: str, payload: dict[str, Any]) -> dict[str, Any]:
    try:
        async with _backend_client() as client:
            response = await client.post(path, json=payload)
            response.raise_for_status()
            return response.json()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        detail = _error_detail(exc.response)
        log.error("%s error: HTTP %d %s", operation, status, detail)
        if status == 401:
            raise AIServiceError("Authentication required. Please log in.") from exc
        if status == 500:
            raise AIServiceError(f"Backend error: {detail or 'Internal server error'}") from exc
        raise AIServiceError(f"{operation} failed: {detail or exc}") from exc
    except (httpx.HTTPError, ValueError) as exc:
        log.error("%s error: %s", operation, exc)
        raise AIServiceError(f"{operation} failed: {exc}") from exc


# ── Public operations ──


async def enhanced_text_processing(clinical_text: str, extraction_type: str = "comprehensive") -> dict[str, Any]:
    if settings.ai.provider == "azure":
        return await _azure_json(
            "Text processing",
            prompts.TEXT_PROCESSING_INSTRUCTIONS,
            clinical_text,
            {"extractionType": extraction_type},
        )
    return await _post_backend(
        "Text processing",
        TEXT_PROCESSING_PATH,
        {"clinicalText": clinical_text, "extractionType": extraction_type},
    )


async def analyze_patterns(data_set: Any, analysis_type: str = "correlation") -> dict[str, Any]:
    if settings.ai.provider == "azure":
        return await _azure_json(
            "Pattern analysis",
            prompts.PATTERN_ANALYSIS_INSTRUCTIONS,
            f"Analysis type: {analysis_type}",
            {"dataSet": data_set},
        )
    return await _post_backend(
        "Pattern analysis",
        PATTERN_ANALYSIS_PATH,
        {"dataSet": data_set, "analysisType": analysis_type},
    )


async def generate_with_reasoning(
    prompt: str, context: dict[str, Any], decision_type: str = "clinical"
) -> dict[str, Any]:
    """Ask for a decision plus the reasoning behind it."""
    if settings.ai.provider == "azure":
        return await _azure_json(
            "Decision reasoning",
            prompts.REASONING_INSTRUCTIONS,
            prompt,
            {**context, "decisionType": decision_type},
        )
    return await _post_backend(
        "Decision reasoning",
        REASONING_PATH,
        {"prompt": prompt, "context": context, "decisionType": decision_type},
    )
