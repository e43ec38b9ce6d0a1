"""Vision-analysis collaborators that turn a photo into an ImageAnalysis."""
import json, logging
from typing import Any, Dict, Optional, Protocol

import httpx

from .errors import AnalysisError, QuotaExhaustedError, RateLimitedError
from .models import ImageAnalysis
from .prompts import ANALYSIS_INSTRUCTIONS
from .settings import ANALYZE_IMAGE_URL, OPENAI_BASE_URL, OPENAI_VISION_MODEL

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait a moment and try again."
QUOTA_MESSAGE = "AI credits exhausted. Please add credits to continue using this feature."

ANALYSIS_DEFAULTS = {
    "age_range": "adult",
    "body_type": "average",
    "sexy_level": "elegant",
}


class ImageAnalyzer(Protocol):
    async def analyze(self, image_data: str) -> ImageAnalysis:
        ...


def normalize_analysis(raw: Dict[str, Any]) -> ImageAnalysis:
    """Build an ImageAnalysis from a model response, filling the gateway defaults."""
    if not isinstance(raw, dict):
        raise AnalysisError("AI returned an unexpected analysis format")
    data = dict(raw)
    if data.get("style_level"):
        data["sexy_level"] = data["style_level"]
    for field, default in ANALYSIS_DEFAULTS.items():
        if not data.get(field):
            data[field] = default
    return ImageAnalysis.model_validate(data)


def _error_for_status(status_code: int, message: str) -> AnalysisError:
    if status_code == 429:
        return RateLimitedError(RATE_LIMIT_MESSAGE, status_code=status_code)
    if status_code == 402:
        return QuotaExhaustedError(QUOTA_MESSAGE, status_code=status_code)
    return AnalysisError(message or "Failed to analyze image", status_code=status_code)


class EdgeFunctionAnalyzer:
    """Calls the hosted analyze-image function with ``{"imageData": <data URI>}``."""

    def __init__(self, url: str = ANALYZE_IMAGE_URL, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 60):
        if not url:
            raise ValueError("ANALYZE_IMAGE_URL is not set; please configure your .env")
        self.url = url
        self._transport = transport
        self._timeout = timeout

    async def analyze(self, image_data: str) -> ImageAnalysis:
        logger.info("Requesting image analysis from analyze-image function")
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                r = await client.post(self.url, json={"imageData": image_data})
            except httpx.HTTPError as e:
                logger.error(f"Image analysis request failed: {e}")
                raise AnalysisError(f"Failed to analyze image: {e}") from e

        if r.status_code >= 400:
            try:
                payload = r.json()
            except ValueError:
                payload = None
            message = payload.get("error", "") if isinstance(payload, dict) else r.text
            logger.error(f"Image analysis failed {r.status_code}: {message}")
            raise _error_for_status(r.status_code, message)

        try:
            body = r.json()
        except ValueError as e:
            raise AnalysisError("Analysis returned invalid JSON format") from e
        logger.info("Image analysis received")
        return normalize_analysis(body)


class OpenAIVisionAnalyzer:
    """Asks an OpenAI-compatible vision model for the analysis directly."""

    def __init__(self, api_key: str, model: str = OPENAI_VISION_MODEL, base_url: Optional[str] = OPENAI_BASE_URL, client=None):
        self._api_key = api_key
        self._model = model
        self._base_url = base_url
        self._client = client

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            if not self._api_key:
                raise AnalysisError("OpenAI API key is not set; please configure your credentials")
            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        return self._client

    async def analyze(self, image_data: str) -> ImageAnalysis:
        import openai

        logger.info(f"Calling {self._model} for image analysis")
        client = self._get_client()
        try:
            resp = await client.chat.completions.create(
                model=self._model,
                messages=[{
                    "role": "user",
                    "content": [
                        {"type": "text", "text": ANALYSIS_INSTRUCTIONS},
                        {"type": "image_url", "image_url": {"url": image_data}},
                    ],
                }],
                response_format={"type": "json_object"},
            )
        except openai.APIStatusError as e:
            logger.error(f"OpenAI analysis failed {e.status_code}: {e.message}")
            raise _error_for_status(e.status_code, e.message) from e
        except openai.APIError as e:
            logger.error(f"OpenAI analysis request failed: {e}")
            raise AnalysisError(f"Failed to analyze image: {e}") from e

        content = resp.choices[0].message.content
        try:
            raw = json.loads(content or "")
        except ValueError as e:
            logger.error(f"Failed to parse AI response: {content}")
            raise AnalysisError("AI returned invalid JSON format") from e
        logger.info("Successfully received analysis from OpenAI")
        return normalize_analysis(raw)
