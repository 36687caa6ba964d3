from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field
from visualrag.models.chunk import ChunkType, DocumentChunk

class RankingStrategy(str, Enum):
    semantic = "semantic"
    keyword = "keyword"
    hybrid = "hybrid"

class DateRange(BaseModel):
    start: datetime | None = None
    end: datetime | None = None

class QueryFilters(BaseModel):
    document_ids: list[str] | None = None    # None = search all documents
    chunk_types: list[ChunkType] | None = None
    keywords: list[str] | None = None
    date_range: DateRange | None = None

class QueryOptions(BaseModel):
    max_chunks: int = Field(default=5, ge=0)
    similarity_threshold: float = 0.3
    include_context: bool = False           # attach before/after neighbours
    ranking_strategy: RankingStrategy = RankingStrategy.hybrid

class RAGQuery(BaseModel):
    query: str
    filters: QueryFilters | None = None
    options: QueryOptions = QueryOptions()

class ScoredChunk(DocumentChunk):
    relevance_score: float
    document_id: str
    document_title: str
    context_chunks: list[DocumentChunk] = []

class SearchContext(BaseModel):
    document_title: str
    total_matches: int
    search_strategy: RankingStrategy
    processing_time_ms: float

class RAGResult(BaseModel):
    chunks: list[ScoredChunk] = []
    context: SearchContext

class ContextResponse(BaseModel):
    context: str
    result: RAGResult
