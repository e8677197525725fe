"""HTTP chat endpoint.

POST /api/chat
    Request:  {"message": "What vitamins are fat soluble?"}
    Response: {"answer": "... [1] ...", "sources": [{"id", "content", "metadata", "similarity"}]}
    Failure:  5xx {"error": "Internal server error", "details": "..."}

Missing credentials fail the request, not the service: the pipeline is built
lazily on the first request that has a complete configuration.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .rag_pipeline import RAGPipeline
from .schemas import ChatRequest, ChatResponseModel, ErrorResponse

logger = logging.getLogger(__name__)

PipelineFactory = Callable[[Settings], RAGPipeline]


def _error(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


def create_app(
    settings: Optional[Settings] = None,
    pipeline_factory: PipelineFactory = RAGPipeline.from_settings,
) -> FastAPI:
    settings = settings or Settings()
    app = FastAPI(
        title="RAG chat endpoint",
        description="Embeds the question, searches the document store and returns a cited answer.",
        version="0.1.0",
    )
    pipeline_lock = threading.Lock()
    app.state.pipeline = None

    def get_pipeline() -> RAGPipeline:
        with pipeline_lock:
            if app.state.pipeline is None:
                settings.require_backend_settings()
                app.state.pipeline = pipeline_factory(settings)
            return app.state.pipeline

    @app.exception_handler(RequestValidationError)
    async def invalid_request(_: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, "Invalid request", "; ".join(str(item.get("msg", "")) for item in exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "missing_settings": settings.missing_backend_settings()}

    @app.post("/api/chat", response_model=ChatResponseModel, response_model_exclude_none=True)
    def chat(request: ChatRequest):
        try:
            pipeline = get_pipeline()
            return pipeline.answer_question(request.message)
        except Exception as exc:
            logger.exception("Chat API error")
            return _error(500, "Internal server error", str(exc) or exc.__class__.__name__)

    return app
