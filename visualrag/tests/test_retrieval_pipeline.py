from unittest.mock import MagicMock

from visualrag.core.pipeline.ingestion import IngestionPipeline
from visualrag.core.pipeline.retrieval import RetrievalPipeline
from visualrag.core.retrieve.context_builder import ContextBuilder
from visualrag.core.embed.embedder import HashEmbedder
from visualrag.storage.memory_store import InMemoryDocumentStore
from visualrag.config.settings import AppSettings, SearchConfig
from visualrag.models.chunk import ChunkMetadata, ChunkType, DocumentChunk
from visualrag.models.query import (
    QueryFilters, QueryOptions, RAGQuery, RAGResult, RankingStrategy, ScoredChunk, SearchContext
)
from visualrag.models.document import UploadedFile

GEOGRAPHY = """# Geography

The capital of France is Paris.

## Rivers

The Seine flows through Paris.
"""

def build_collection():
    config = AppSettings()
    embedder = HashEmbedder()
    store = InMemoryDocumentStore()
    ingestion = IngestionPipeline(config, embedder, store)
    document = ingestion.run(UploadedFile(name="geo.md", content_type="text/markdown", data=GEOGRAPHY.encode()))
    return RetrievalPipeline(store, config, embedder), document

def test_retrieval_pipeline_search():
    print("Testing RetrievalPipeline.search...")
    pipeline, document = build_collection()
    query = pipeline.default_query("capital France")
    query.options.ranking_strategy = RankingStrategy.keyword

    result = pipeline.search(query)
    assert result.chunks[0].content == "The capital of France is Paris."
    assert result.chunks[0].document_id == document.id
    assert result.context.document_title == "geo.md"
    print("RetrievalPipeline search tests PASSED")

def test_default_query_uses_config():
    pipeline, _ = build_collection()
    query = pipeline.default_query("anything")
    assert query.options.max_chunks == 5
    assert query.options.similarity_threshold == 0.3
    assert query.options.ranking_strategy == RankingStrategy.hybrid
    assert query.options.include_context is False

def test_build_context():
    print("Testing grounding context assembly...")
    pipeline, _ = build_collection()
    query = RAGQuery(query="Paris", options=QueryOptions(ranking_strategy=RankingStrategy.keyword,
                                                           include_context=True))
    response = pipeline.build_context(query)

    assert response.context.startswith("## Document Context")
    assert "[SOURCE: geo.md | Page 1 |" in response.context
    assert "The capital of France is Paris." in response.context
    assert response.context.rstrip().endswith("Reference the context when relevant.")
    assert len(response.result.chunks) >= 1
    print("Context assembly tests PASSED")

def test_empty_collection_gives_empty_context():
    pipeline = RetrievalPipeline(InMemoryDocumentStore(), AppSettings(), HashEmbedder())
    response = pipeline.build_context(RAGQuery(query="Paris"))
    assert response.context == ""
    assert response.result.chunks == []

def test_search_loads_only_filtered_documents():
    store = MagicMock()
    store.load_many.return_value = []
    pipeline = RetrievalPipeline(store, AppSettings(), HashEmbedder())

    pipeline.search(RAGQuery(query="Paris", filters=QueryFilters(document_ids=["doc_1"])))
    store.load_many.assert_called_with(["doc_1"])

    pipeline.search(RAGQuery(query="Paris"))
    store.load_many.assert_called_with(None)

def make_scored(chunk_id: str, content: str, score: float) -> ScoredChunk:
    return ScoredChunk(
        id=chunk_id,
        content=content,
        type=ChunkType.text,
        metadata=ChunkMetadata(page=3),
        relevance_score=score,
        document_id="doc_1",
        document_title="Handbook"
    )

def test_context_builder_budget():
    result = RAGResult(
        chunks=[make_scored("a", "a" * 400, 0.9), make_scored("b", "b" * 400, 0.8)],
        context=SearchContext(document_title="Handbook", total_matches=2,
                              search_strategy=RankingStrategy.hybrid, processing_time_ms=1.0)
    )

    full = ContextBuilder(SearchConfig()).build(result)
    assert "[SOURCE: Handbook | Page 3 | text | score 0.90]" in full
    assert "[SOURCE: Handbook | Page 3 | text | score 0.80]" in full
    assert full.index("score 0.90") < full.index("score 0.80")

    # A tight budget keeps the best chunk only
    tight = ContextBuilder(SearchConfig(max_context_tokens=150)).build(result)
    assert "a" * 400 in tight
    assert "b" * 400 not in tight

def test_context_builder_includes_neighbours():
    chunk = make_scored("mid", "Middle paragraph.", 0.7)
    chunk.relationships.before = "prev"
    chunk.relationships.after = "next"
    chunk.context_chunks = [
        DocumentChunk(id="prev", content="Previous paragraph.", type=ChunkType.text, metadata=ChunkMetadata()),
        DocumentChunk(id="next", content="Next paragraph.", type=ChunkType.text, metadata=ChunkMetadata()),
    ]
    result = RAGResult(chunks=[chunk], context=SearchContext(
        document_title="Handbook", total_matches=1, search_strategy=RankingStrategy.hybrid, processing_time_ms=0.5))

    context = ContextBuilder().build(result)
    assert context.index("Previous paragraph.") < context.index("Middle paragraph.") < context.index("Next paragraph.")
