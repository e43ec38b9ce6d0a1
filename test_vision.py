"""
Tests for the vision-analysis collaborators.
"""
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from dance_video.errors import AnalysisError, QuotaExhaustedError, RateLimitedError
from dance_video.vision import EdgeFunctionAnalyzer, OpenAIVisionAnalyzer, normalize_analysis

IMAGE = "data:image/png;base64,AAAA"


def edge_analyzer(handler):
    return EdgeFunctionAnalyzer("https://fn.test/functions/v1/analyze-image", transport=httpx.MockTransport(handler))


def openai_reply(content):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai_client(reply=None, error=None):
    create = AsyncMock(return_value=reply, side_effect=error)
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


class TestNormalizeAnalysis:
    def test_applies_defaults(self):
        analysis = normalize_analysis({"detailed_prompt": "a dancer"})
        assert analysis.age_range == "adult"
        assert analysis.body_type == "average"
        assert analysis.sexy_level == "elegant"
        assert analysis.hair == ""

    def test_style_level_alias(self):
        assert normalize_analysis({"style_level": "chic"}).sexy_level == "chic"

    def test_rejects_non_mapping(self):
        with pytest.raises(AnalysisError):
            normalize_analysis(["not", "a", "dict"])


class TestEdgeFunctionAnalyzer:
    @pytest.mark.asyncio
    async def test_posts_image_data(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"detailed_prompt": "a dancer", "hair": "bob", "style_level": "bold"})

        analysis = await edge_analyzer(handler).analyze(IMAGE)
        assert seen == [{"imageData": IMAGE}]
        assert analysis.hair == "bob"
        assert analysis.sexy_level == "bold"

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        analyzer = edge_analyzer(lambda request: httpx.Response(429, json={"error": "slow down"}))
        with pytest.raises(RateLimitedError) as excinfo:
            await analyzer.analyze(IMAGE)
        assert excinfo.value.status_code == 429

    @pytest.mark.asyncio
    async def test_quota_exhausted(self):
        analyzer = edge_analyzer(lambda request: httpx.Response(402, json={"error": "no credits"}))
        with pytest.raises(QuotaExhaustedError):
            await analyzer.analyze(IMAGE)

    @pytest.mark.asyncio
    async def test_other_errors_carry_collaborator_text(self):
        analyzer = edge_analyzer(lambda request: httpx.Response(500, json={"error": "model overloaded"}))
        with pytest.raises(AnalysisError, match="model overloaded"):
            await analyzer.analyze(IMAGE)

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        with pytest.raises(AnalysisError):
            await edge_analyzer(handler).analyze(IMAGE)

    def test_requires_url(self):
        with pytest.raises(ValueError):
            EdgeFunctionAnalyzer("")


class TestOpenAIVisionAnalyzer:
    @pytest.mark.asyncio
    async def test_parses_json_reply(self):
        client = fake_openai_client(openai_reply('{"detailed_prompt": "a dancer", "clothing": "jeans"}'))
        analysis = await OpenAIVisionAnalyzer("k", model="vision-model", client=client).analyze(IMAGE)
        assert analysis.clothing == "jeans"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "vision-model"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0]["content"][1]["image_url"]["url"] == IMAGE

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        client = fake_openai_client(openai_reply("I cannot help with that"))
        with pytest.raises(AnalysisError, match="invalid JSON"):
            await OpenAIVisionAnalyzer("k", client=client).analyze(IMAGE)

    @pytest.mark.asyncio
    async def test_status_errors_are_mapped(self):
        response = httpx.Response(402, request=httpx.Request("POST", "https://api.openai.test/v1/chat/completions"))
        error = openai.APIStatusError("payment required", response=response, body=None)
        client = fake_openai_client(error=error)
        with pytest.raises(QuotaExhaustedError):
            await OpenAIVisionAnalyzer("k", client=client).analyze(IMAGE)

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(AnalysisError):
            await OpenAIVisionAnalyzer("").analyze(IMAGE)
