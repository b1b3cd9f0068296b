# Path: api/app.py
# Purpose: Expose a FastAPI application for live captioning and memory retrieval.
# Layer: api.
# Details: Provides health/status checks, capture controls, note storage, and a retrieval endpoint.

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.errors import EmbeddingError, LoadError
from core.models.domain import RetrievalResult
from core.service import LiveCaptionService
from gui.view_models import CaptioningViewModel


class PromptUpdate(BaseModel):
    prompt: str = Field(min_length=1, description="Instruction used for subsequent captions.")
    rebind: bool = Field(default=False, description="Start a fresh capture session bound to this prompt.")


class NoteCreate(BaseModel):
    text: str = Field(min_length=1, description="Free-text note to remember.")


class RetrieveRequest(BaseModel):
    query: str = Field(description="Transcribed spoken question.")
    k: Optional[int] = Field(default=None, ge=1, description="Number of memories to retrieve.")


def serialize_retrieval(result: RetrievalResult) -> Dict[str, Any]:
    matches: List[Dict[str, Any]] = [
        {"rank": match.rank, "score": match.score, "text": match.record.text} for match in result.matches
    ]
    return {
        "query": result.query,
        "no_matches": result.no_matches,
        "matches": matches,
        "context": result.context,
        "summary": result.summary,
        "summary_error": result.summary_error,
    }


def create_app(
    service: Optional[LiveCaptionService] = None,
    view_model: Optional[CaptioningViewModel] = None,
    note_timeout: float = 30.0,
):  # type: ignore[override]
    """Create a FastAPI app instance configured with the provided service."""

    from fastapi import FastAPI, HTTPException, status

    app = FastAPI(title="Live Caption Memory API", version="0.1.0")

    def _service() -> LiveCaptionService:
        if service is None:
            raise HTTPException(status_code=500, detail="Caption service is not configured.")
        return service

    def _clear_error() -> None:
        if view_model is not None:
            view_model.clear_error()

    @app.get("/health")
    def health() -> Dict[str, str]:
        """Return a simple health status payload."""

        return {"status": "ok"}

    @app.get("/status")
    def get_status() -> Dict[str, Any]:
        payload = _service().status()
        if view_model is not None:
            payload.update(view_model.snapshot())
        return payload

    @app.post("/model/load")
    def load_model(wait: bool = False) -> Dict[str, Any]:
        """Start loading the model; with ``wait`` block until it is ready."""

        svc = _service()
        if not wait:
            svc.load_model_in_background()
            return {"engine_state": svc.engine.state.value}
        try:
            svc.load_model()
        except LoadError as exc:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
        return {"engine_state": svc.engine.state.value}

    @app.post("/capture/start")
    def start_capture() -> Dict[str, Any]:
        svc = _service()
        session = svc.scheduler.start()
        _clear_error()
        return {"running": True, "session_id": session.session_id}

    @app.post("/capture/stop")
    def stop_capture() -> Dict[str, Any]:
        _service().scheduler.stop()
        _clear_error()
        return {"running": False}

    @app.post("/capture/toggle")
    def toggle_capture() -> Dict[str, Any]:
        running = _service().scheduler.toggle()
        _clear_error()
        return {"running": running}

    @app.put("/capture/prompt")
    def update_prompt(update: PromptUpdate) -> Dict[str, Any]:
        scheduler = _service().scheduler
        if update.rebind:
            session = scheduler.rebind(update.prompt)
            session_id: Optional[int] = session.session_id
        else:
            scheduler.set_prompt(update.prompt)
            session_id = scheduler.session.session_id if scheduler.session is not None else None
        _clear_error()
        return {"prompt": scheduler.prompt, "session_id": session_id}

    @app.get("/caption")
    def get_caption() -> Dict[str, Any]:
        if view_model is None:
            raise HTTPException(status_code=404, detail="No caption view is attached.")
        return view_model.snapshot()

    @app.post("/memories", status_code=status.HTTP_201_CREATED)
    def add_memory(note: NoteCreate) -> Dict[str, Any]:
        record = _service().add_note(note.text).result(timeout=note_timeout)
        if record is None:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not embed note.")
        return {"id": record.id, "text": record.text}

    @app.post("/retrieve")
    def retrieve(request: RetrieveRequest) -> Dict[str, Any]:
        """Run a memory query using the configured retrieval coordinator."""

        try:
            result = _service().ask(request.query, k=request.k)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
        except EmbeddingError as exc:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
        return serialize_retrieval(result)

    return app
