import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional
from visualrag.models.chunk import DocumentChunk
from visualrag.models.document import DocumentStructure
from visualrag.models.query import (
    DateRange, QueryFilters, RAGQuery, RAGResult, RankingStrategy, ScoredChunk, SearchContext
)
from visualrag.core.retrieve.scorer import RelevanceScorer

logger = logging.getLogger(__name__)

class DocumentSearcher:
    """
    Ranks chunks of processed documents against a query.
    Pure with respect to its inputs: documents are only read, so one instance
    can serve concurrent requests.
    """

    def __init__(self, scorer: Optional[RelevanceScorer] = None):
        self.scorer = scorer or RelevanceScorer()

    def search(self, documents: List[DocumentStructure], query: RAGQuery) -> RAGResult:
        """
        collect candidates -> score -> threshold -> sort -> truncate.
        An empty document set or blank query yields an empty result.
        """
        start = time.perf_counter()
        options = query.options
        filters = query.filters or QueryFilters()

        if not documents or not query.query.strip():
            return self._result([], 0, documents, query, start)

        candidates = self._collect_candidates(documents, filters)

        # Embed the query once for every candidate
        query_embedding = None
        if options.ranking_strategy != RankingStrategy.keyword:
            query_embedding = self.scorer.embedder.embed_query(query.query)

        scored = []
        for document, chunk in candidates:
            score = self.scorer.score(query.query, chunk, options.ranking_strategy, query_embedding)
            if score >= options.similarity_threshold:
                scored.append(ScoredChunk(
                    **chunk.model_dump(),
                    relevance_score=score,
                    document_id=document.id,
                    document_title=document.display_title
                ))

        # Stable sort keeps document order among equal scores
        scored.sort(key=lambda c: c.relevance_score, reverse=True)
        total_matches = len(scored)
        results = scored[:options.max_chunks]

        if options.include_context:
            self._attach_context(results, documents)

        logger.info(f"Search '{query.query}': {len(candidates)} candidates, "
                    f"{total_matches} above threshold, {len(results)} returned")
        return self._result(results, total_matches, documents, query, start)

    def _collect_candidates(self, documents: List[DocumentStructure], filters: QueryFilters) -> List[tuple]:
        candidates = []
        keyword_filter = {k.lower() for k in filters.keywords} if filters.keywords else None

        for document in documents:
            if filters.document_ids is not None and document.id not in filters.document_ids:
                continue
            if filters.date_range is not None and not self._in_date_range(document, filters.date_range):
                continue
            for chunk in document.chunks:
                if filters.chunk_types is not None and chunk.type not in filters.chunk_types:
                    continue
                if keyword_filter is not None and not keyword_filter.intersection(chunk.metadata.keywords):
                    continue
                candidates.append((document, chunk))

        return candidates

    def _in_date_range(self, document: DocumentStructure, date_range: DateRange) -> bool:
        processed = _as_utc(datetime.fromisoformat(document.metadata.processing_timestamp))
        if date_range.start is not None and processed < _as_utc(date_range.start):
            return False
        if date_range.end is not None and processed > _as_utc(date_range.end):
            return False
        return True

    def _attach_context(self, results: List[ScoredChunk], documents: List[DocumentStructure]):
        """Adds the before/after neighbours of every result chunk."""
        by_id: Dict[tuple, DocumentChunk] = {
            (d.id, c.id): c for d in documents for c in d.chunks
        }
        for result in results:
            for neighbour_id in (result.relationships.before, result.relationships.after):
                neighbour = by_id.get((result.document_id, neighbour_id)) if neighbour_id else None
                if neighbour is not None:
                    result.context_chunks.append(neighbour)

    def _result(self,
                chunks: List[ScoredChunk],
                total_matches: int,
                documents: List[DocumentStructure],
                query: RAGQuery,
                start: float) -> RAGResult:
        if len(documents) == 1:
            title = documents[0].display_title
        else:
            title = f"{len(documents)} documents"

        return RAGResult(
            chunks=chunks,
            context=SearchContext(
                document_title=title,
                total_matches=total_matches,
                search_strategy=query.options.ranking_strategy,
                processing_time_ms=(time.perf_counter() - start) * 1000
            )
        )

def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
