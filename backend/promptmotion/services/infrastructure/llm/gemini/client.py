"""
Unified Gemini Client - Works with both Gemini API and Vertex AI

Both backends go through the `google-genai` SDK; the backend is picked from
environment variables:

    USE_VERTEX_AI: Set to 'true' to use Vertex AI instead of Gemini API
    GEMINI_API_KEY: API key for Gemini API (when USE_VERTEX_AI=false)
    GCP_PROJECT_ID: GCP project ID (when USE_VERTEX_AI=true)
    GCP_LOCATION: GCP region (default: us-central1, when USE_VERTEX_AI=true)

Usage:
    client = UnifiedGeminiClient()
    response = client.models.generate_content(
        model="gemini-3-flash-preview",
        contents="Hello!",
        config=GenerationConfig(temperature=0.7),
    )
    async for chunk in client.models.generate_content_stream(model=..., contents=...):
        ...
"""

import asyncio
import os
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from promptmotion.core import get_logger
from promptmotion.core.llm_logger import get_llm_logger

logger = get_logger(__name__, component="gemini_client")


@dataclass
class GenerationConfig:
    """Configuration for content generation"""
    temperature: float = 1.0
    top_p: float = 0.95
    top_k: int = 40
    max_output_tokens: int = 8192
    thinking_config: Optional[Dict[str, Any]] = None
    response_mime_type: Optional[str] = None
    response_schema: Optional[Any] = None
    system_instruction: Optional[Any] = None


def _is_thinking_unsupported(error: Exception) -> bool:
    message = str(error).lower()
    return "thinking_level is not supported" in message or "thinking" in message


class UnifiedGeminiClient:
    """Client that works with both the Gemini API and Vertex AI."""

    def __init__(self, api_key: Optional[str] = None):
        self.use_vertex_ai = os.getenv("USE_VERTEX_AI", "false").lower() == "true"
        self.backend = None
        self.models = None
        self._types_module = None

        try:
            from google import genai
            from google.genai import types
        except ImportError:
            raise ImportError(
                "google-genai package not found. Install it with: pip install google-genai"
            )

        if self.use_vertex_ai:
            project_id = os.getenv("GCP_PROJECT_ID")
            location = os.getenv("GCP_LOCATION", "us-central1")
            if not project_id:
                raise ValueError("GCP_PROJECT_ID environment variable is required when USE_VERTEX_AI=true")
            self.backend = genai.Client(vertexai=True, project=project_id, location=location)
        else:
            api_key = api_key or os.getenv("GEMINI_API_KEY")
            if not api_key:
                raise ValueError("GEMINI_API_KEY environment variable is required when USE_VERTEX_AI=false")
            self.backend = genai.Client(api_key=api_key)

        self._types_module = types
        self.models = GeminiModels(self.backend, types)


class GeminiModels:
    """Models interface wrapping `google.genai` with request/response logging."""

    def __init__(self, client, types_module):
        self.client = client
        self.types = types_module
        self.llm_logger = get_llm_logger()

    def _config_dict(self, config: GenerationConfig, include_thoughts: bool = False) -> Dict[str, Any]:
        gen_config_dict: Dict[str, Any] = {
            "temperature": config.temperature,
            "top_p": config.top_p,
            "top_k": config.top_k,
            "max_output_tokens": config.max_output_tokens,
        }
        if config.thinking_config:
            thinking = dict(config.thinking_config)
            if include_thoughts:
                thinking["include_thoughts"] = True
            gen_config_dict["thinking_config"] = thinking
        if config.response_mime_type:
            gen_config_dict["response_mime_type"] = config.response_mime_type
        if config.response_schema is not None:
            gen_config_dict["response_schema"] = config.response_schema
        if config.system_instruction:
            gen_config_dict["system_instruction"] = config.system_instruction
        return gen_config_dict

    def generate_content(
        self,
        model: str,
        contents: Union[str, List[Any]],
        config: Optional[GenerationConfig] = None,
    ):
        """
        Blocking, non-streaming generation.

        Returns:
            Response object with .text and .usage_metadata
        """
        config = config or GenerationConfig()
        gen_config_dict = self._config_dict(config)

        request_id = self.llm_logger.log_request(
            model=model,
            contents=contents,
            config=gen_config_dict,
            system_instruction=config.system_instruction,
        )

        try:
            response = self.client.models.generate_content(
                model=model,
                contents=contents,
                config=self.types.GenerateContentConfig(**gen_config_dict),
            )
        except Exception as e:
            if not (config.thinking_config and _is_thinking_unsupported(e)):
                self.llm_logger.log_error(request_id, e)
                raise
            logger.warning(f"Model {model} rejected thinking_config, retrying without it")
            gen_config_dict.pop("thinking_config", None)
            try:
                response = self.client.models.generate_content(
                    model=model,
                    contents=contents,
                    config=self.types.GenerateContentConfig(**gen_config_dict),
                )
            except Exception as retry_error:
                self.llm_logger.log_error(request_id, retry_error)
                raise
            self.llm_logger.log_response(
                request_id, response, metadata={"retry": "removed_thinking_config"}
            )
            return response

        self.llm_logger.log_response(request_id, response)
        return response

    async def generate_content_stream(
        self,
        model: str,
        contents: Union[str, List[Any]],
        config: Optional[GenerationConfig] = None,
    ) -> AsyncIterator[Any]:
        """
        Streaming generation on the SDK's native async client.

        Yields raw response chunks. Closing this generator (e.g. when the
        consuming task is cancelled) closes the underlying HTTP stream.
        """
        config = config or GenerationConfig()
        gen_config_dict = self._config_dict(config, include_thoughts=True)

        request_id = self.llm_logger.log_request(
            model=model,
            contents=contents,
            config=gen_config_dict,
            system_instruction=config.system_instruction,
            streaming=True,
        )

        collected: List[str] = []
        try:
            stream = await self.client.aio.models.generate_content_stream(
                model=model,
                contents=contents,
                config=self.types.GenerateContentConfig(**gen_config_dict),
            )
            async for chunk in stream:
                text = getattr(chunk, "text", None)
                if isinstance(text, str):
                    collected.append(text)
                yield chunk
        except asyncio.CancelledError:
            self.llm_logger.log_response(request_id, None, success=False, error="cancelled")
            raise
        except Exception as e:
            self.llm_logger.log_error(request_id, e)
            raise
        else:
            self.llm_logger.log_response(request_id, "".join(collected), metadata={"streamed": True})


def create_client(api_key: Optional[str] = None) -> UnifiedGeminiClient:
    """Create a unified Gemini client for either the Gemini API or Vertex AI."""
    return UnifiedGeminiClient(api_key=api_key)
