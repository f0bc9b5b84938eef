import json
from typing import Any, Dict, Iterable, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from promptmotion.services.infrastructure.llm import StreamChunk


@pytest.fixture(autouse=True)
def mock_cloud_env(monkeypatch):
    """Automatically mock cloud environment variables for all tests"""
    monkeypatch.setenv("GEMINI_API_KEY", "mock-key")
    monkeypatch.setenv("USE_VERTEX_AI", "false")
    monkeypatch.delenv("TURN_LOG_DIR", raising=False)


def json_result(payload: Any) -> Dict[str, Any]:
    """Successful PromptingEngine.generate() result carrying `payload` as JSON."""
    return {
        "success": True,
        "response": json.dumps(payload),
        "parsed_json": payload,
        "usage": {},
    }


def failed_result(error: str = "503 Service Unavailable") -> Dict[str, Any]:
    return {"success": False, "error": error, "error_type": "ServerError"}


def stream_of(*texts: str, thoughts: Iterable[str] = ()):
    """Factory for PromptingEngine.stream() replacements."""
    async def _stream(*_args, **_kwargs):
        for thought in thoughts:
            yield StreamChunk(text=thought, thought=True)
        for text in texts:
            yield StreamChunk(text=text)

    return _stream


def make_engine(results: Optional[List[Dict[str, Any]]] = None, streams: Optional[List[Any]] = None) -> MagicMock:
    """PromptingEngine stand-in. `results` feed generate(), `streams` feed stream()."""
    engine = MagicMock()
    engine.types = MagicMock()
    engine.generate = AsyncMock(side_effect=list(results or []))
    if streams is not None:
        pending = list(streams)
        engine.stream = MagicMock(side_effect=lambda *a, **kw: pending.pop(0)(*a, **kw))
    return engine


def make_session(asset_dir, validator=(), selector=(), streams=(), edits=()):
    """ConversationSession over fake engines and a real asset store in `asset_dir`."""
    from promptmotion.services.assets import MediaAssetStore
    from promptmotion.services.pipeline.generation import (
        ConversationSession,
        GenerationOrchestrator,
        PromptValidator,
        SkillSelector,
        SourceGenerator,
        load_skill_catalog,
    )

    catalog = load_skill_catalog()
    orchestrator = GenerationOrchestrator(
        validator=PromptValidator(make_engine(results=list(validator))),
        selector=SkillSelector(catalog, make_engine(results=list(selector))),
        generator=SourceGenerator(
            catalog,
            stream_engine=make_engine(streams=list(streams)),
            edit_engine=make_engine(results=list(edits)),
        ),
        asset_store=MediaAssetStore(asset_dir),
        turn_log_dir=None,
    )
    return ConversationSession(orchestrator)


@pytest.fixture
def helpers():
    """Result builders shared across test modules."""
    class _Helpers:
        json_result = staticmethod(json_result)
        failed_result = staticmethod(failed_result)
        stream_of = staticmethod(stream_of)
        make_engine = staticmethod(make_engine)
        make_session = staticmethod(make_session)

    return _Helpers
