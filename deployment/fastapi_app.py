"""
FastAPI application for the semantic chunking service.

Endpoints:
- POST /chunk: chunk one document given its extracted page texts
- GET /health: liveness and configured embedding backend
"""

import asyncio
import logging
import threading
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Callable, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from chunking.semantic_chunker import SemanticChunker
from chunking.tokenizer import TokenCountFn
from embeddings.embedder import EmbeddingClient, get_embedding_client
from ingestion.ingest_pipeline import ChunkingPipeline
from shared.config import settings
from shared.errors import ConfigurationError, PipelineCancelledError, ProviderError
from shared.schemas import ChunkInfo, ChunkRequest, ChunkResponse, HealthResponse

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

__version__ = "1.0.0"

# Seconds between client-disconnect checks while a document is chunked
DISCONNECT_POLL_INTERVAL = 0.5

# Credentials and connection pool only; safe to share across requests
_embedding_client: Optional[EmbeddingClient] = None


def get_shared_embedding_client() -> EmbeddingClient:
    """Get or create the process-wide embedding client."""
    global _embedding_client
    if _embedding_client is None:
        _embedding_client = get_embedding_client(settings.embedding)
    return _embedding_client


def get_count_tokens() -> Optional[TokenCountFn]:
    """
    Token counter for chunking.

    Returns None so each run opens its own tiktoken counter. Exists as a
    dependency so tests can inject a deterministic counter through
    app.dependency_overrides.
    """
    return None


async def run_until_disconnect(
    request: Request,
    func: Callable,
    *args,
    poll_interval: float = DISCONNECT_POLL_INTERVAL,
):
    """
    Run a blocking chunking call in the threadpool, cancelling it if the
    client goes away.

    func must accept a cancel_event keyword; it is set on disconnect and
    whenever this coroutine exits early.
    """
    cancel_event = threading.Event()
    work = asyncio.ensure_future(
        run_in_threadpool(func, *args, cancel_event=cancel_event)
    )
    try:
        while True:
            done, _ = await asyncio.wait({work}, timeout=poll_interval)
            if done:
                return work.result()
            if not cancel_event.is_set() and await request.is_disconnected():
                logger.warning("Client disconnected, cancelling chunking run")
                cancel_event.set()
    finally:
        cancel_event.set()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting semantic chunking service v{__version__}")
    logger.info(
        f"Embedding backend: {settings.embedding.provider}/{settings.embedding.model_name}"
    )
    yield
    logger.info("Shutting down semantic chunking service")


app = FastAPI(
    title="Semantic Chunking Service",
    description="Splits documents into bounded, semantically coherent chunks",
    version=__version__,
    lifespan=lifespan,
    debug=settings.DEBUG,
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID for tracing."""
    request_id = str(uuid.uuid4())[:8]
    request.state.request_id = request_id

    start_time = time.time()
    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        f"[{request_id}] {request.method} {request.url.path} "
        f"- {response.status_code} - {duration_ms:.1f}ms"
    )

    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Invalid chunking parameters."""
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid chunking configuration", "detail": str(exc)},
    )


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError):
    """Embedding or tokenizer backend failure. The whole document may be retried."""
    logger.error(f"Provider failure: {exc}")
    return JSONResponse(
        status_code=502,
        content={"error": "Embedding provider failure", "detail": str(exc)},
    )


@app.exception_handler(PipelineCancelledError)
async def cancelled_handler(request: Request, exc: PipelineCancelledError):
    return JSONResponse(
        status_code=503,
        content={"error": "Chunking cancelled", "detail": str(exc)},
    )


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        embedding_provider=settings.embedding.provider,
        embedding_model=settings.embedding.model_name,
    )


@app.post("/chunk", response_model=ChunkResponse)
async def chunk_endpoint(
    body: ChunkRequest,
    request: Request,
    embedding_client: EmbeddingClient = Depends(get_shared_embedding_client),
    count_tokens: Optional[TokenCountFn] = Depends(get_count_tokens),
):
    """
    Chunk one document.

    Flow:
    1. Normalize pages (optional)
    2. Join pages into one text body
    3. Segment, embed, cluster and assemble
    """
    request_id = getattr(request.state, "request_id", "unknown")
    doc_id = body.doc_id or f"doc_{request_id}"

    overrides = {
        name: getattr(body, name)
        for name in (
            "token_limit",
            "batch_token_limit",
            "similarity_threshold",
            "min_cluster_size",
        )
        if getattr(body, name) is not None
    }
    config = replace(settings.chunking, **overrides)
    config.validate()

    pipeline = ChunkingPipeline(
        config=config,
        chunker=SemanticChunker(
            config=config,
            embedding_client=embedding_client,
            count_tokens=count_tokens,
        ),
        count_tokens=count_tokens,
    )
    chunks = await run_until_disconnect(
        request,
        pipeline.process_pages,
        body.pages,
        doc_id,
        body.metadata,
        body.normalize,
        body.mode.value,
    )

    return ChunkResponse(
        doc_id=doc_id,
        mode=body.mode,
        chunks=[
            ChunkInfo(id=c["id"], chunk_index=c["chunk_index"], text=c["text"])
            for c in chunks
        ],
        chunk_count=len(chunks),
    )
