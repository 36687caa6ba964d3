import logging
from typing import Optional
from visualrag.models.query import ContextResponse, QueryFilters, QueryOptions, RAGQuery, RAGResult
from visualrag.core.retrieve.searcher import DocumentSearcher
from visualrag.core.retrieve.scorer import RelevanceScorer
from visualrag.core.retrieve.context_builder import ContextBuilder
from visualrag.core.embed.embedder import EmbeddingProvider, build_embedder
from visualrag.storage.base import DocumentStore
from visualrag.config.settings import AppSettings, settings

logger = logging.getLogger(__name__)

class RetrievalPipeline:
    """
    Search over a document collection, and rendering of the results into
    grounding context for the chat layer.
    Sequence: load documents -> search -> build_context
    """

    def __init__(self,
                 document_store: DocumentStore,
                 config: Optional[AppSettings] = None,
                 embedder: Optional[EmbeddingProvider] = None):
        self.config = config or settings
        self.document_store = document_store
        embedder = embedder or build_embedder(self.config.embedding)
        self.searcher = DocumentSearcher(RelevanceScorer(embedder, self.config.scoring))
        self.context_builder = ContextBuilder(self.config.search)

    def default_query(self, text: str) -> RAGQuery:
        search = self.config.search
        return RAGQuery(
            query=text,
            options=QueryOptions(
                max_chunks=search.max_chunks,
                similarity_threshold=search.similarity_threshold,
                include_context=search.include_context,
                ranking_strategy=search.ranking_strategy
            )
        )

    def search(self, query: RAGQuery) -> RAGResult:
        filters = query.filters or QueryFilters()
        documents = self.document_store.load_many(filters.document_ids)
        logger.info(f"Searching {len(documents)} document(s) for: '{query.query}'")
        return self.searcher.search(documents, query)

    def build_context(self, query: RAGQuery) -> ContextResponse:
        result = self.search(query)
        return ContextResponse(context=self.context_builder.build(result), result=result)
