import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from visualrag.config.settings import AppSettings, settings
from visualrag.core.embed.embedder import build_embedder
from visualrag.core.pipeline.ingestion import IngestionPipeline
from visualrag.core.pipeline.retrieval import RetrievalPipeline
from visualrag.core.exceptions import ConfigurationError
from visualrag.storage.base import DocumentStore
from visualrag.storage.file_store import LocalDocumentStore
from visualrag.storage.memory_store import InMemoryDocumentStore

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

def build_document_store(config: AppSettings) -> DocumentStore:
    if config.storage.backend == "memory":
        return InMemoryDocumentStore()
    if config.storage.backend == "local":
        return LocalDocumentStore(config.storage.documents_path)
    raise ConfigurationError(f"Unknown storage backend: {config.storage.backend}")

def create_app(config: AppSettings = settings) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # --- Startup: build the collection and the pipelines once ---
        logger.info("Initializing document store and pipelines...")

        document_store = build_document_store(config)
        # Chunks and queries must be embedded by the same provider
        embedder = build_embedder(config.embedding)

        app.state.config = config
        app.state.document_store = document_store
        app.state.ingestion_pipeline = IngestionPipeline(config, embedder, document_store)
        app.state.retrieval_pipeline = RetrievalPipeline(document_store, config, embedder)

        # In-memory job store for ingestion status tracking
        app.state.jobs_db = {}

        logger.info("Initialization complete. All systems ready.")

        yield

        # --- Shutdown ---
        logger.info("Shutting down retrieval service...")

    app = FastAPI(
        title="VisualRAG API",
        description="Layout-aware document chunking and hybrid keyword/semantic retrieval",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "ok"}

    from visualrag.api.routes import ingest, query, documents

    app.include_router(ingest.router, prefix="/api", tags=["Ingestion"])
    app.include_router(query.router, prefix="/api", tags=["Retrieval"])
    app.include_router(documents.router, prefix="/api", tags=["Documents"])

    return app

app = create_app()
