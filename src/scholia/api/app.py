"""
Core API backend for Scholia.

This module exposes the orchestration core to UI collaborators over HTTP:
- **GET /health**          - liveness probe for health checks.
- **GET /providers**       - registered providers, whether each has a key, and its models.
- **POST /ask**            - answer a question about a document (answer + progress trail).
- **POST /ask/stream**     - same, streamed as newline-delimited JSON events.
- **POST /tasks/...**      - one-shot document tasks (summary, questions, metadata, explain).

No state is kept between requests: callers send the document and conversation history each time.
"""

import asyncio
import json
import logging
from functools import lru_cache
from typing import (
    Any,
    AsyncIterator,
    Dict,
    Optional,
)

from fastapi import (
    Depends,
    FastAPI,
    HTTPException,
    Request,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import (
    JSONResponse,
    StreamingResponse,
)

from scholia.agent.orchestrator import Orchestrator
from scholia.agent.tasks import DocumentTasks
from scholia.api.models import (
    AskRequest,
    AskResponse,
    DocumentRequest,
    MetadataResponse,
    ModelSelection,
    ProviderInfo,
    ProvidersResponse,
    QuestionsResponse,
    SelectionRequest,
    TextResponse,
)
from scholia.common import (
    AnsiColors,
    colored_print,
)
from scholia.config import settings
from scholia.core.errors import (
    MissingCredentialError,
    ProviderError,
    SafetyBlockError,
    ScholiaError,
    UnknownProviderError,
)
from scholia.core.schema import (
    AgentThought,
    PaperSummary,
)
from scholia.providers import registered_providers

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Scholia API", version="0.1.0", description="Ask questions about long documents"
)

# Add CORS middleware to allow requests from the reader UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Dependencies / helpers
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_orchestrator() -> Orchestrator:
    """Build the process-wide orchestrator from settings (read-only after construction)."""
    return Orchestrator.from_settings(settings)


def get_tasks(selection: ModelSelection, orchestrator: Orchestrator) -> DocumentTasks:
    """Document tasks bound to the provider/model chosen for this request."""
    orchestrator.client.adapter(selection.provider or orchestrator.provider)
    try:
        provider, model_id = orchestrator.resolve_target(selection.provider, selection.model_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return DocumentTasks(orchestrator.client, provider, model_id, orchestrator.language)


def _event(kind: str, payload: Dict[str, Any]) -> str:
    return json.dumps({"type": kind, **payload}) + "\n"


@app.exception_handler(MissingCredentialError)
async def missing_credential_handler(_: Request, exc: MissingCredentialError) -> JSONResponse:
    """Let the caller prompt for configuration instead of failing opaquely."""
    return JSONResponse(status_code=412, content={"detail": str(exc), "provider": exc.provider})


@app.exception_handler(UnknownProviderError)
async def unknown_provider_handler(_: Request, exc: UnknownProviderError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc), "provider": exc.provider})


@app.exception_handler(ProviderError)
async def provider_error_handler(_: Request, exc: ProviderError) -> JSONResponse:
    """The upstream vendor failed; report it as a bad gateway with the vendor named."""
    content: Dict[str, Any] = {"detail": str(exc), "provider": exc.provider, "message": exc.message}
    if isinstance(exc, SafetyBlockError):
        content["block_reason"] = exc.block_reason
    return JSONResponse(status_code=502, content=content)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.get("/providers", response_model=ProvidersResponse, summary="List providers")
async def list_providers(
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> ProvidersResponse:
    """List registered providers and whether a key is configured for each."""
    client = orchestrator.client
    return ProvidersResponse(
        default_provider=orchestrator.provider,
        providers=[
            ProviderInfo(
                name=name, configured=client.has_credential(name), models=client.models_for(name)
            )
            for name in registered_providers()
        ],
    )


@app.post("/ask", response_model=AskResponse, summary="Ask a question about a document")
async def ask(
    req: AskRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> AskResponse:
    """Route, answer and return the answer with its progress trail."""
    try:
        result = await orchestrator.run(
            req.query,
            req.document,
            req.history,
            provider=req.provider,
            model_id=req.model_id,
            selection=req.selection,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return AskResponse(**result.model_dump())


@app.post("/ask/stream", summary="Ask a question and stream progress")
async def ask_stream(
    req: AskRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> StreamingResponse:
    """
    Stream newline-delimited JSON events: one ``thought`` per progress snapshot, then one
    ``answer`` (or ``error``) event.
    """
    # Configuration errors become a proper HTTP status before the stream starts.
    orchestrator.client.adapter(req.provider or orchestrator.provider)

    queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()

    async def on_progress(thought: AgentThought) -> None:
        await queue.put(_event("thought", thought.model_dump(mode="json")))

    async def produce() -> None:
        try:
            result = await orchestrator.run(
                req.query,
                req.document,
                req.history,
                on_progress,
                provider=req.provider,
                model_id=req.model_id,
                selection=req.selection,
            )
            await queue.put(
                _event(
                    "answer",
                    {
                        "answer": result.answer,
                        "intent": result.intent.value,
                        "state": result.state.value,
                    },
                )
            )
        except (ScholiaError, ValueError) as exc:
            logger.warning("Streaming request failed: %s", exc)
            await queue.put(_event("error", {"detail": str(exc)}))
        finally:
            await queue.put(None)

    async def events() -> AsyncIterator[str]:
        task = asyncio.create_task(produce())
        try:
            while True:
                item = await queue.get()
                if item is None:
                    break
                yield item
        finally:
            await task

    return StreamingResponse(events(), media_type="application/x-ndjson")


@app.post("/tasks/summary", response_model=PaperSummary, summary="Structured summary")
async def summary_task(
    req: DocumentRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> PaperSummary:
    """Takeaway / objective / methodology / results / limitations."""
    return await get_tasks(req, orchestrator).summarize_paper(req.document)


@app.post("/tasks/questions", response_model=QuestionsResponse, summary="Suggest questions")
async def questions_task(
    req: DocumentRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> QuestionsResponse:
    """Up to four questions worth asking about the document."""
    questions = await get_tasks(req, orchestrator).suggest_questions(req.document)
    return QuestionsResponse(questions=questions)


@app.post("/tasks/metadata", response_model=MetadataResponse, summary="Title and authors")
async def metadata_task(
    req: DocumentRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> MetadataResponse:
    metadata = await get_tasks(req, orchestrator).extract_metadata(req.document)
    return MetadataResponse(metadata=metadata)


@app.post("/tasks/explain", response_model=TextResponse, summary="Explain a passage")
async def explain_task(
    req: SelectionRequest, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> TextResponse:
    text = await get_tasks(req, orchestrator).explain_selection(req.selection, req.context)
    return TextResponse(text=text)


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in development).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn an optional dependency at pkg‑import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:  # Use the default from settings if not provided
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting Scholia API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )
    configured = get_orchestrator().client.configured_providers()
    if not configured:
        logger.warning("No provider API keys configured; every /ask call will return 412.")

    colored_print(f"📚 Scholia API is running at http://localhost:{port}.", AnsiColors.GREEN)
    colored_print(
        f"Visit http://localhost:{port}/docs for API documentation.", AnsiColors.BLUE
    )
    uvicorn.run(
        "scholia.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m scholia.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
