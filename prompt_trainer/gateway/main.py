"""
Prompt Trainer Gateway - FastAPI application

Exposes prompt analysis, completion requests and session state (history,
templates, favorites, draft, export/import) to a presentation layer.
One process serves one session.
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from prompt_trainer.analysis.analyzer import PromptAnalyzer
from prompt_trainer.config.settings import Settings
from prompt_trainer.errors import (
    HistoryEntryNotFoundError,
    ImportFormatError,
    PersistenceError,
    PromptTrainerError,
    TemplateNotFoundError,
    ValidationError,
)
from prompt_trainer.gateway.models import (
    CompletionRequest,
    CompletionResponse,
    DraftRequest,
    DraftResponse,
    FavoriteState,
    PromptRequest,
    TemplateCreated,
    TemplateView,
)
from prompt_trainer.models.analysis import PromptAnalysis
from prompt_trainer.observability.log_config import configure_logging
from prompt_trainer.observability.tracer import LangFuseTracer
from prompt_trainer.orchestrator.request_orchestrator import RequestOrchestrator
from prompt_trainer.session.session_store import SessionStore
from prompt_trainer.storage.persistence import build_persistence

VERSION = "0.1.0"


def status_for(error: PromptTrainerError) -> int:
    """HTTP status for each error class"""
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, (TemplateNotFoundError, HistoryEntryNotFoundError)):
        return 404
    if isinstance(error, ImportFormatError):
        return 422
    if isinstance(error, PersistenceError):
        return 500
    return 502


def create_app(
    settings: Optional[Settings] = None,
    session_store: Optional[SessionStore] = None,
    orchestrator: Optional[RequestOrchestrator] = None,
    tracer: Optional[LangFuseTracer] = None,
) -> FastAPI:
    """Wire components into an app; anything not passed in is built from settings"""
    settings = settings or Settings.from_env()

    if tracer is None:
        tracer = LangFuseTracer(
            secret_key=settings.langfuse_secret_key,
            public_key=settings.langfuse_public_key,
            host=settings.langfuse_host,
        )
    if session_store is None:
        session_store = SessionStore(
            build_persistence(settings),
            max_history=settings.max_history,
            autosave_delay_seconds=settings.autosave_delay_seconds,
        )
    if orchestrator is None:
        orchestrator = RequestOrchestrator.from_settings(settings, session_store, tracer=tracer)

    store = session_store

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events"""
        # Startup
        await store.persistence.connect()
        await store.load()
        await tracer.initialize()
        yield
        # Shutdown
        await store.flush_draft()
        await store.close()
        await orchestrator.close()
        await store.persistence.disconnect()
        tracer.shutdown()

    app = FastAPI(
        title="Prompt Trainer",
        description="Prompt analysis, completion requests and prompt library",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_store = store
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PromptTrainerError)
    async def prompt_trainer_error_handler(request: Request, exc: PromptTrainerError):
        return JSONResponse(status_code=status_for(exc), content={"detail": exc.message})

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "orchestrator": orchestrator.state.value,
            "version": VERSION,
        }

    @app.post("/v1/analyze", response_model=PromptAnalysis)
    async def analyze_prompt(request: PromptRequest):
        """Score a prompt's clarity, specificity and structure"""
        try:
            return PromptAnalyzer.analyze(request.prompt)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.post("/v1/completions", response_model=CompletionResponse)
    async def create_completion(request: CompletionRequest):
        """Send a prompt to the completion service and record it in history"""
        result = await orchestrator.submit(
            request.prompt,
            system_prompt=request.system_prompt,
            params=request.parameters,
        )
        return CompletionResponse(
            id=result.history_entry.id,
            model=result.model,
            content=result.content,
            latency_ms=result.latency_ms,
            token_count=result.token_count,
        )

    # History endpoints
    @app.get("/v1/history")
    async def list_history():
        return [entry.to_json_dict() for entry in store.history]

    @app.post("/v1/history/{entry_id}/reuse", response_model=PromptRequest)
    async def reuse_history(entry_id: str):
        """Prompt of a past exchange, to load back into the editor"""
        return PromptRequest(prompt=store.reuse_history_prompt(entry_id))

    # Template endpoints
    def template_view(template) -> TemplateView:
        return TemplateView(
            id=template.id,
            name=template.name,
            prompt=template.prompt,
            category=template.category,
            created_at=template.created_at.isoformat(),
            is_favorite=store.is_favorite(template.id),
        )

    @app.get("/v1/templates", response_model=List[TemplateView])
    async def list_templates(favorites_only: bool = False):
        return [template_view(t) for t in store.list_templates(favorites_only=favorites_only)]

    @app.post("/v1/templates", response_model=TemplateCreated)
    async def create_template(request: PromptRequest):
        """Save a prompt as a template"""
        template_id = await store.save_template(request.prompt)
        template = store.get_template(template_id)
        return TemplateCreated(id=template.id, name=template.name)

    @app.get("/v1/templates/{template_id}", response_model=TemplateView)
    async def get_template(template_id: str):
        return template_view(store.get_template(template_id))

    @app.delete("/v1/templates/{template_id}", status_code=204)
    async def delete_template(template_id: str):
        await store.delete_template(template_id)

    @app.post("/v1/templates/{template_id}/favorite", response_model=FavoriteState)
    async def toggle_favorite(template_id: str):
        is_favorite = await store.toggle_favorite(template_id)
        return FavoriteState(id=template_id, is_favorite=is_favorite)

    # Draft endpoints
    @app.get("/v1/draft", response_model=DraftResponse)
    async def get_draft():
        return DraftResponse(
            prompt=await store.load_draft(),
            autosave_enabled=store.autosave_enabled,
        )

    @app.put("/v1/draft", status_code=202)
    async def update_draft(request: DraftRequest):
        """Schedule a debounced save of the editor contents"""
        if request.autosave_enabled is not None:
            store.autosave_enabled = request.autosave_enabled
        store.update_draft(request.prompt)
        return {"scheduled": store.autosaver.pending is not None}

    @app.post("/v1/draft/flush", status_code=204)
    async def flush_draft():
        await store.flush_draft()

    # Export / import
    @app.get("/v1/export")
    async def export_data():
        snapshot = store.export_snapshot()
        filename = store.export_filename(snapshot.export_date)
        return JSONResponse(
            content=snapshot.to_json_dict(),
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post("/v1/import")
    async def import_data(request: Request):
        """Replace whichever collections the uploaded export document contains"""
        await store.import_snapshot(await request.body())
        return {
            "history": len(store.history),
            "templates": len(store.templates),
            "favorites": len(store.favorites),
        }

    @app.delete("/v1/data", status_code=204)
    async def clear_all_data():
        await store.remove_all_data()

    return app


def main():
    import uvicorn

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    logger.info(f"Starting Prompt Trainer gateway on {settings.gateway_host}:{settings.gateway_port}")
    uvicorn.run(
        create_app(settings),
        host=settings.gateway_host,
        port=settings.gateway_port,
    )


if __name__ == "__main__":
    main()
