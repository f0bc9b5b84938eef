"""
LLM Request/Response Logger

Logs every interaction with the text-generation provider:
- Shortened request data (prompt, config, image count)
- Response text (optionally truncated), duration, success
- Optional full JSONL records for a scoped conversation turn

Usage:
    llm_logger = get_llm_logger()
    request_id = llm_logger.log_request(model="gemini-3-flash-preview", contents=prompt)
    ...
    llm_logger.log_response(request_id, response)
"""

import logging
import json
import os
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .logging import get_logger, StructuredFormatter


@dataclass
class LLMRequest:
    """Represents an LLM request"""
    request_id: str
    timestamp: str
    model: str
    prompt: str  # Shortened version
    prompt_length: int
    config: Dict[str, Any]
    streaming: bool = False
    image_count: int = 0
    system_instruction: Optional[str] = None


@dataclass
class LLMResponse:
    """Represents an LLM response"""
    request_id: str
    timestamp: str
    response_text: str
    duration_seconds: float
    success: bool
    error: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


# Full-record JSONL log for the current turn
llm_turn_log_path_var: ContextVar[Optional[Path]] = ContextVar("llm_turn_log_path", default=None)
llm_turn_context_var: ContextVar[Optional[Dict[str, Any]]] = ContextVar("llm_turn_context", default=None)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class LLMLogger:
    """Logger for LLM API requests and responses with request/response correlation."""

    def __init__(
        self,
        max_prompt_length: Optional[int] = 500,
        max_response_length: Optional[int] = None,
        log_file: Optional[Path] = None,
        console_logging: bool = True
    ):
        self.max_prompt_length = max_prompt_length
        self.max_response_length = max_response_length
        self.console_logging = console_logging
        self.logger = get_logger(__name__, component="llm_logger")

        if log_file:
            log_file = Path(log_file)
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(StructuredFormatter())
            logging.getLogger(__name__).addHandler(file_handler)

        self._active_requests: Dict[str, float] = {}

    @staticmethod
    def _count_images(contents: Union[str, List[Any]]) -> int:
        if not isinstance(contents, list):
            return 0
        count = 0
        for item in contents:
            parts = getattr(item, "parts", None) or [item]
            for part in parts:
                inline = getattr(part, "inline_data", None)
                mime_type = getattr(inline, "mime_type", None) if inline is not None else None
                if isinstance(mime_type, str) and mime_type.startswith("image/"):
                    count += 1
        return count

    @staticmethod
    def _truncate_text(text: Optional[str], max_length: Optional[int]) -> str:
        if text is None:
            return ""
        if max_length is None or len(text) <= max_length:
            return text
        return text[:max_length] + f"... [truncated, total: {len(text)} chars]"

    @staticmethod
    def _extract_prompt_text(contents: Union[str, List[Any]]) -> str:
        if isinstance(contents, str):
            return contents
        if isinstance(contents, list):
            parts: List[str] = []
            for item in contents:
                if isinstance(item, str):
                    parts.append(item)
                    continue
                text = getattr(item, "text", None)
                if isinstance(text, str):
                    parts.append(text)
                    continue
                for part in getattr(item, "parts", None) or []:
                    part_text = getattr(part, "text", None)
                    if isinstance(part_text, str):
                        parts.append(part_text)
            return "\n".join(parts)
        return str(contents)

    def log_request(
        self,
        model: str,
        contents: Union[str, List[Any]],
        config: Optional[Dict[str, Any]] = None,
        system_instruction: Optional[str] = None,
        streaming: bool = False,
        context: Optional[Dict[str, Any]] = None
    ) -> str:
        """Log an LLM request and return its correlation id."""
        request_id = str(uuid.uuid4())
        timestamp = _now()
        full_prompt = self._extract_prompt_text(contents)

        request = LLMRequest(
            request_id=request_id,
            timestamp=timestamp,
            model=model,
            prompt=self._truncate_text(full_prompt, self.max_prompt_length),
            prompt_length=len(full_prompt),
            config={k: v for k, v in (config or {}).items() if k != "response_schema"},
            streaming=streaming,
            image_count=self._count_images(contents),
            system_instruction=self._truncate_text(system_instruction, 200) if system_instruction else None,
        )
        self._active_requests[request_id] = time.time()

        log_data = {"event": "llm_request", **asdict(request), **(context or {})}
        mode = "stream" if streaming else "call"
        if self.console_logging:
            self.logger.info(
                f"LLM Request ({mode}) | Model: {model} | Prompt: {len(full_prompt)} chars",
                extra={"extra_data": log_data}
            )
        else:
            logging.getLogger(__name__).info(f"LLM Request | Model: {model}", extra={"extra_data": log_data})

        _append_turn_log({
            "event": "llm_request",
            "request_id": request_id,
            "timestamp": timestamp,
            "model": model,
            "prompt": full_prompt,
            "system_instruction": system_instruction,
            "streaming": streaming,
        })
        return request_id

    def log_response(
        self,
        request_id: str,
        response: Any,
        success: bool = True,
        error: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log an LLM response (text, response object, or None on failure)."""
        timestamp = _now()
        started = self._active_requests.pop(request_id, None)
        duration = time.time() - started if started is not None else 0.0

        response_text = ""
        if success and response is not None:
            if isinstance(response, str):
                response_text = response
            else:
                try:
                    response_text = getattr(response, "text", None) or ""
                except Exception:
                    response_text = str(response)

        record = LLMResponse(
            request_id=request_id,
            timestamp=timestamp,
            response_text=self._truncate_text(response_text, self.max_response_length),
            duration_seconds=round(duration, 3),
            success=success,
            error=error,
            metadata=metadata,
        )
        log_data = {"event": "llm_response", **asdict(record)}

        if self.console_logging:
            if success:
                self.logger.info(
                    f"LLM Response | Duration: {duration:.2f}s | Length: {len(response_text)} chars",
                    extra={"extra_data": log_data}
                )
            else:
                self.logger.error(
                    f"LLM Error | Duration: {duration:.2f}s | Error: {error}",
                    extra={"extra_data": log_data}
                )
        else:
            logging.getLogger(__name__).log(
                logging.INFO if success else logging.ERROR,
                f"LLM Response | Success: {success}",
                extra={"extra_data": log_data}
            )

        _append_turn_log({
            "event": "llm_response",
            "request_id": request_id,
            "timestamp": timestamp,
            "response_text": response_text,
            "duration_seconds": round(duration, 3),
            "success": success,
            "error": error,
            "metadata": metadata,
        })

    def log_error(self, request_id: str, error: BaseException) -> None:
        """Log a failed LLM request."""
        self.log_response(request_id=request_id, response=None, success=False, error=str(error))


def _append_turn_log(data: Dict[str, Any]) -> None:
    """Append a JSONL record to the current turn log, if one is active."""
    log_path = llm_turn_log_path_var.get()
    if not log_path:
        return
    record = {**data, "turn_context": llm_turn_context_var.get() or {}}
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, default=str) + "\n")
    except OSError as e:
        logging.getLogger(__name__).warning(f"Could not write turn log {log_path}: {e}")


@contextmanager
def llm_turn_log(path: Path, context: Optional[Dict[str, Any]] = None) -> Iterator[None]:
    """Scope full-record LLM logging to one conversation turn."""
    path_token = llm_turn_log_path_var.set(Path(path))
    context_token = llm_turn_context_var.set(context or {})
    try:
        yield
    finally:
        llm_turn_log_path_var.reset(path_token)
        llm_turn_context_var.reset(context_token)


_default_logger: Optional[LLMLogger] = None


def get_llm_logger() -> LLMLogger:
    """
    Get the process-wide LLM logger.

    Environment:
    - LLM_LOG_MAX_PROMPT_LENGTH: Max prompt chars to log (default: 500)
    - LLM_LOG_MAX_RESPONSE_LENGTH: Max response chars to log (default: unlimited)
    - LLM_LOG_FILE: Dedicated LLM log file (default: none)
    - LLM_LOG_CONSOLE: Log through the console logger (default: true)
    """
    global _default_logger

    if _default_logger is None:
        max_response = os.getenv("LLM_LOG_MAX_RESPONSE_LENGTH")
        log_file = os.getenv("LLM_LOG_FILE")
        _default_logger = LLMLogger(
            max_prompt_length=int(os.getenv("LLM_LOG_MAX_PROMPT_LENGTH", "500")),
            max_response_length=int(max_response) if max_response else None,
            log_file=Path(log_file) if log_file else None,
            console_logging=os.getenv("LLM_LOG_CONSOLE", "true").lower() == "true",
        )

    return _default_logger
