"""
Base Prompting Engine

Provides core LLM interaction functionality with unified client handling,
response parsing, retries, streaming, and cost tracking.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional, Union

from promptmotion.config.models import ModelConfig, get_thinking_config, resolve_model_config
from promptmotion.core import get_logger
from promptmotion.services.infrastructure.llm.cost_tracker import CostTracker
from promptmotion.services.infrastructure.llm.gemini.client import (
    create_client,
    GenerationConfig as UnifiedGenerationConfig,
)
from promptmotion.services.infrastructure.parsing import looks_truncated_json, parse_json_response

logger = get_logger(__name__, component="prompting_engine")


@dataclass
class PromptConfig:
    """Configuration for a prompt execution"""
    model_name: Optional[str] = None  # If None, uses the step's model
    temperature: float = 1.0
    max_output_tokens: Optional[int] = None
    max_retries: int = 3
    timeout: Optional[float] = None
    enable_thinking: bool = False
    response_format: str = "text"  # "text" or "json"
    system_instruction: Optional[str] = None
    response_schema: Optional[Any] = None


@dataclass(frozen=True)
class StreamChunk:
    """A streamed piece of model output. `thought` marks reasoning parts."""
    text: str
    thought: bool = False


def _iter_parts(chunk: Any) -> Iterator[Any]:
    candidates = getattr(chunk, "candidates", None) or []
    if not candidates:
        return
    content = getattr(candidates[0], "content", None)
    for part in getattr(content, "parts", None) or []:
        yield part


class PromptingEngine:
    """
    Centralized engine for all LLM interactions.

    Responsibilities:
    - Unified Gemini client management
    - Retry logic with exponential backoff
    - Streaming with reasoning/text separation
    - Cost tracking integration
    - Response parsing (text, JSON)
    """

    def __init__(
        self,
        config_key: str = "code_generation",
        cost_tracker: Optional[CostTracker] = None,
        client: Optional[Any] = None,
        retry_delay: float = 1.0,
    ):
        """Initialize the prompting engine.

        Args:
            config_key: Pipeline step in model config (e.g. "prompt_validation", "code_edit")
            cost_tracker: Optional cost tracker instance
            client: Optional pre-built client; a UnifiedGeminiClient is created otherwise
            retry_delay: Base delay for exponential backoff, in seconds
        """
        self.config_key = config_key
        self.client = client if client is not None else create_client()
        self.types = getattr(self.client, "_types_module", None)
        self.cost_tracker = cost_tracker or CostTracker()
        self.retry_delay = retry_delay

    def _get_config(self, model: Optional[str] = None) -> ModelConfig:
        """Resolve the step's model config, honouring a client-selected model id."""
        return resolve_model_config(self.config_key, model)

    def _get_generation_config(
        self,
        prompt_config: PromptConfig,
        model_config: ModelConfig,
    ) -> UnifiedGenerationConfig:
        """Build generation config from prompt config"""
        kwargs: Dict[str, Any] = {"temperature": prompt_config.temperature}

        if prompt_config.max_output_tokens is not None:
            kwargs["max_output_tokens"] = prompt_config.max_output_tokens

        if prompt_config.enable_thinking:
            thinking_config = get_thinking_config(model_config)
            if thinking_config:
                kwargs["thinking_config"] = thinking_config

        if prompt_config.response_format == "json":
            kwargs["response_mime_type"] = "application/json"

        if prompt_config.response_schema is not None:
            kwargs["response_schema"] = prompt_config.response_schema

        if prompt_config.system_instruction:
            kwargs["system_instruction"] = prompt_config.system_instruction

        return UnifiedGenerationConfig(**kwargs)

    async def generate(
        self,
        prompt: str,
        config: Optional[PromptConfig] = None,
        context: Optional[Dict[str, Any]] = None,
        system_instruction: Optional[str] = None,
        response_schema: Optional[Any] = None,
        model: Optional[str] = None,
        contents: Optional[Union[str, List[Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Generate a response from the LLM.

        Args:
            prompt: The prompt text
            config: Optional prompt configuration
            context: Optional context for error messages/logging
            system_instruction: Overrides config.system_instruction
            response_schema: Overrides config.response_schema
            model: Client-selected model id (may carry a ":low"-style suffix)
            contents: Multimodal contents to send instead of the prompt text

        Returns:
            Dict containing:
                - success: bool
                - response: str (text response)
                - parsed_json: Any (if response_format is "json" and it parsed)
                - usage: Dict (token usage info)
                - error / error_type: str (if failed)
        """
        config = config or PromptConfig()
        if system_instruction:
            config.system_instruction = system_instruction
        if response_schema is not None:
            config.response_schema = response_schema
        model_config = self._get_config(model)
        model_name = config.model_name or model_config.model_name
        payload = contents if contents is not None else prompt
        gen_config = self._get_generation_config(config, model_config)

        last_error: Optional[BaseException] = None
        for attempt in range(config.max_retries):
            try:
                call = asyncio.to_thread(
                    self.client.models.generate_content,
                    model=model_name,
                    contents=payload,
                    config=gen_config,
                )
                if config.timeout:
                    response = await asyncio.wait_for(call, timeout=config.timeout)
                else:
                    response = await call
            except asyncio.TimeoutError as e:
                last_error = e
                logger.warning(
                    f"LLM call timed out (attempt {attempt + 1}/{config.max_retries})",
                    extra={"step": self.config_key, "model": model_name},
                )
            except Exception as e:
                last_error = e
                logger.warning(
                    f"LLM call failed (attempt {attempt + 1}/{config.max_retries}): {e}",
                    extra={"step": self.config_key, "model": model_name},
                )
            else:
                return self._build_result(response, model_name, config)

            if attempt < config.max_retries - 1:
                await asyncio.sleep(self.retry_delay * 2 ** attempt)

        if isinstance(last_error, asyncio.TimeoutError):
            return {
                "success": False,
                "error": "Request timed out",
                "error_type": "TimeoutError",
                "context": context,
            }
        return {
            "success": False,
            "error": str(last_error) if last_error else f"Failed after {config.max_retries} retries",
            "error_type": type(last_error).__name__ if last_error else None,
            "context": context,
        }

    def _build_result(self, response: Any, model_name: str, config: PromptConfig) -> Dict[str, Any]:
        usage_metadata = getattr(response, "usage_metadata", None)
        usage: Dict[str, Any] = {}
        if usage_metadata is not None:
            usage = {
                "input_tokens": getattr(usage_metadata, "prompt_token_count", 0) or 0,
                "output_tokens": getattr(usage_metadata, "candidates_token_count", 0) or 0,
                "total_tokens": getattr(usage_metadata, "total_token_count", 0) or 0,
            }
            self.cost_tracker.track_usage(usage_metadata, model_name)

        text_response = getattr(response, "text", None) or ""
        result: Dict[str, Any] = {
            "success": True,
            "response": text_response,
            "usage": usage,
            "raw_response": response,
        }
        if config.response_format == "json" and text_response:
            parsed = parse_json_response(text_response)
            if parsed is None and looks_truncated_json(text_response):
                result["json_parse_error"] = "Response JSON is truncated"
                logger.warning(
                    "JSON response ends mid-value; output was likely cut off",
                    extra={"step": self.config_key, "model": model_name, "response_length": len(text_response)},
                )
            elif parsed is None:
                result["json_parse_error"] = "Response is not valid JSON"
            else:
                result["parsed_json"] = parsed
        return result

    async def stream(
        self,
        prompt: str,
        config: Optional[PromptConfig] = None,
        system_instruction: Optional[str] = None,
        model: Optional[str] = None,
        contents: Optional[Union[str, List[Any]]] = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Stream a response, separating reasoning parts from answer text.

        No retries: deltas already delivered cannot be taken back. Provider
        errors propagate to the caller.
        """
        config = config or PromptConfig()
        if system_instruction:
            config.system_instruction = system_instruction
        model_config = self._get_config(model)
        model_name = config.model_name or model_config.model_name
        payload = contents if contents is not None else prompt
        gen_config = self._get_generation_config(config, model_config)

        usage_metadata = None
        async for chunk in self.client.models.generate_content_stream(
            model=model_name,
            contents=payload,
            config=gen_config,
        ):
            usage_metadata = getattr(chunk, "usage_metadata", None) or usage_metadata
            for part in _iter_parts(chunk):
                text = getattr(part, "text", None)
                if not isinstance(text, str) or not text:
                    continue
                yield StreamChunk(text=text, thought=bool(getattr(part, "thought", False)))

        self.cost_tracker.track_usage(usage_metadata, model_name)
