"""
Tests for promptmotion.services.infrastructure.llm.gemini.client

Backend selection from the environment, thinking_config fallback, and
streaming through the SDK's async client.
"""

import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from promptmotion.services.infrastructure.llm.gemini.client import (
    GeminiModels,
    GenerationConfig,
    UnifiedGeminiClient,
    create_client,
)


class TestGenerationConfig:
    def test_defaults(self):
        config = GenerationConfig()
        assert config.temperature == 1.0
        assert config.thinking_config is None


class TestBackendSelection:
    def test_gemini_api(self):
        with patch.dict(os.environ, {"USE_VERTEX_AI": "false", "GEMINI_API_KEY": "test-key"}):
            with patch("google.genai.Client") as mock_client:
                client = create_client()

        mock_client.assert_called_once_with(api_key="test-key")
        assert client.use_vertex_ai is False
        assert isinstance(client.models, GeminiModels)

    def test_explicit_key_wins(self):
        with patch.dict(os.environ, {"USE_VERTEX_AI": "false", "GEMINI_API_KEY": "env-key"}):
            with patch("google.genai.Client") as mock_client:
                UnifiedGeminiClient(api_key="arg-key")

        mock_client.assert_called_once_with(api_key="arg-key")

    def test_vertex_ai(self):
        env = {"USE_VERTEX_AI": "true", "GCP_PROJECT_ID": "p1", "GCP_LOCATION": "l1"}
        with patch.dict(os.environ, env):
            with patch("google.genai.Client") as mock_client:
                client = UnifiedGeminiClient()

        mock_client.assert_called_once_with(vertexai=True, project="p1", location="l1")
        assert client.use_vertex_ai is True

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with patch("google.genai.Client"):
            with pytest.raises(ValueError, match="GEMINI_API_KEY"):
                UnifiedGeminiClient()

    def test_missing_project(self, monkeypatch):
        monkeypatch.setenv("USE_VERTEX_AI", "true")
        monkeypatch.delenv("GCP_PROJECT_ID", raising=False)
        with patch("google.genai.Client"):
            with pytest.raises(ValueError, match="GCP_PROJECT_ID"):
                UnifiedGeminiClient()


def make_models():
    backend = MagicMock()
    types_module = MagicMock()
    return GeminiModels(backend, types_module), backend, types_module


class TestGenerateContent:
    def test_passes_config_to_backend(self):
        models, backend, types_module = make_models()
        backend.models.generate_content.return_value = MagicMock(text="ok")
        config = GenerationConfig(temperature=0.2, response_mime_type="application/json")

        response = models.generate_content("model-1", "Prompt", config=config)

        assert response is backend.models.generate_content.return_value
        config_kwargs = types_module.GenerateContentConfig.call_args.kwargs
        assert config_kwargs["temperature"] == 0.2
        assert config_kwargs["response_mime_type"] == "application/json"
        assert "thinking_config" not in config_kwargs
        assert backend.models.generate_content.call_args.kwargs["model"] == "model-1"

    def test_retries_without_rejected_thinking_config(self):
        models, backend, types_module = make_models()
        backend.models.generate_content.side_effect = [
            Exception("thinking_level is not supported for this model"),
            "response",
        ]
        config = GenerationConfig(thinking_config={"thinking_level": "HIGH"})

        assert models.generate_content("model-1", "Prompt", config=config) == "response"

        first, second = types_module.GenerateContentConfig.call_args_list
        assert first.kwargs["thinking_config"] == {"thinking_level": "HIGH"}
        assert "thinking_config" not in second.kwargs

    def test_other_errors_propagate(self):
        models, backend, _ = make_models()
        backend.models.generate_content.side_effect = RuntimeError("503 Service Unavailable")

        with pytest.raises(RuntimeError, match="503"):
            models.generate_content("model-1", "Prompt")
        assert backend.models.generate_content.call_count == 1


class TestGenerateContentStream:
    @pytest.mark.asyncio
    async def test_yields_chunks_and_requests_thoughts(self):
        models, backend, types_module = make_models()

        async def chunks():
            for text in ("def Ball", "(ctx):"):
                yield MagicMock(text=text)

        backend.aio.models.generate_content_stream = AsyncMock(return_value=chunks())
        config = GenerationConfig(thinking_config={"thinking_level": "LOW"})

        received = [c.text async for c in models.generate_content_stream("model-1", "Prompt", config=config)]

        assert received == ["def Ball", "(ctx):"]
        thinking = types_module.GenerateContentConfig.call_args.kwargs["thinking_config"]
        assert thinking == {"thinking_level": "LOW", "include_thoughts": True}

    @pytest.mark.asyncio
    async def test_stream_error_propagates(self):
        models, backend, _ = make_models()

        async def broken():
            yield MagicMock(text="def")
            raise RuntimeError("connection reset")

        backend.aio.models.generate_content_stream = AsyncMock(return_value=broken())

        with pytest.raises(RuntimeError, match="connection reset"):
            async for _ in models.generate_content_stream("model-1", "Prompt"):
                pass
