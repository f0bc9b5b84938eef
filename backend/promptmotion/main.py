"""
PromptMotion Backend API
FastAPI application for generating animations through conversation

This is the main entry point that wires together all routes and services.
"""

import os
import uuid
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import (
    API_DESCRIPTION,
    API_TITLE,
    API_VERSION,
    CORS_ORIGINS,
)
from .core import (
    clear_context,
    get_logger,
    parse_bool_env,
    set_request_id,
    setup_logging,
)
from .routes import assets_router, generation_router
from .services.pipeline.generation import ConversationSession

# Initialize logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE")
use_json_logs = parse_bool_env(os.getenv("JSON_LOGS"))
pipeline_log_file = os.getenv("PIPELINE_LOG_FILE")

setup_logging(
    level=log_level,
    log_file=Path(log_file) if log_file else None,
    use_json=use_json_logs,
    pipeline_log_file=Path(pipeline_log_file) if pipeline_log_file else None,
)

logger = get_logger(__name__, service="api")


def create_app(session: Optional[ConversationSession] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        session: Conversation session to serve; created from configuration
            on first request when omitted
    """
    app = FastAPI(title=API_TITLE, description=API_DESCRIPTION, version=API_VERSION)
    app.state.session = session

    @app.middleware("http")
    async def add_request_correlation(request: Request, call_next):
        """Add correlation ID to every request and response."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        set_request_id(request_id)
        logger.info(f"{request.method} {request.url.path}", extra={
            "method": request.method,
            "path": request.url.path,
        })
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            response.headers.setdefault("X-Content-Type-Options", "nosniff")
            logger.info(f"Response: {response.status_code}", extra={
                "status_code": response.status_code,
                "path": request.url.path,
            })
            return response
        finally:
            clear_context()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(generation_router)
    app.include_router(assets_router)

    @app.get("/")
    async def root():
        """Root endpoint - API info"""
        return {
            "message": "PromptMotion API - Generate animations through conversation",
            "version": API_VERSION,
        }

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.

        Validates that LLM backend credentials are configured
        (Gemini API key OR Vertex AI project). Returns 503 otherwise.
        """
        checks = {"status": "healthy", "checks": {}}

        use_vertex_ai = parse_bool_env(os.getenv("USE_VERTEX_AI"))
        checks["checks"]["llm_backend"] = {
            "use_vertex_ai": use_vertex_ai,
            "backend": "vertex_ai" if use_vertex_ai else "gemini_api",
        }
        if use_vertex_ai:
            configured = bool(os.getenv("GCP_PROJECT_ID"))
            checks["checks"]["vertex_ai"] = {
                "project_id_configured": configured,
                "location": os.getenv("GCP_LOCATION", "us-central1"),
            }
        else:
            configured = bool(os.getenv("GEMINI_API_KEY"))
            checks["checks"]["gemini_api_key"] = {"configured": configured}

        current = app.state.session
        checks["checks"]["session"] = {
            "initialized": current is not None,
            "busy": current.is_busy if current is not None else False,
        }

        if not configured:
            logger.warning("Health check: LLM backend credentials not configured")
            checks["status"] = "unhealthy"
            raise HTTPException(status_code=503, detail=checks)
        return checks

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "promptmotion.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        reload_excludes=["assets/*", "turn_logs/*", "*.pyc", "__pycache__/*"]
    )
