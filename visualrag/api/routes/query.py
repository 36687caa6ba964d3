import logging
from fastapi import APIRouter, Depends, Request, HTTPException

from visualrag.models.query import ContextResponse, RAGQuery, RAGResult
from visualrag.core.pipeline.retrieval import RetrievalPipeline

router = APIRouter()
logger = logging.getLogger(__name__)

# Dependency to get RetrievalPipeline from app state
def get_retrieval_pipeline(request: Request) -> RetrievalPipeline:
    return request.app.state.retrieval_pipeline

@router.post("/search", response_model=RAGResult, summary="Rank document chunks against a query")
def search_documents(
    query: RAGQuery,
    pipeline: RetrievalPipeline = Depends(get_retrieval_pipeline)
):
    """
    Synchronous def: scoring is CPU-bound, FastAPI runs it in a worker thread.
    No matches is a normal, empty result.
    """
    try:
        return pipeline.search(query)
    except Exception as e:
        logger.exception("Search failed.")
        raise HTTPException(status_code=500, detail=str(e))

@router.post("/context", response_model=ContextResponse, summary="Search and render the grounding context for a chat prompt")
def build_context(
    query: RAGQuery,
    pipeline: RetrievalPipeline = Depends(get_retrieval_pipeline)
):
    try:
        return pipeline.build_context(query)
    except Exception as e:
        logger.exception("Context assembly failed.")
        raise HTTPException(status_code=500, detail=str(e))
