import logging
from typing import List, Optional
from visualrag.models.query import RAGResult, ScoredChunk
from visualrag.core.chunk.text_analysis import TokenEstimator
from visualrag.config.settings import SearchConfig, settings

logger = logging.getLogger(__name__)

CONTEXT_HEADER = """## Document Context

The following excerpts from uploaded documents are provided as grounding for your response:
"""

CONTEXT_FOOTER = ("Please consider this context when responding, but focus primarily on the "
                  "user's question. Reference the context when relevant.")

class ContextBuilder:
    """
    Renders search results into the grounding block that the chat layer
    places in front of the user's question.
    """

    def __init__(self, config: Optional[SearchConfig] = None, estimator: Optional[TokenEstimator] = None):
        self.config = config or settings.search
        self.estimator = estimator or TokenEstimator()

    def build(self, result: RAGResult) -> str:
        """
        One section per ranked chunk, highest score first.
        Stops adding sections once max_context_tokens would be exceeded.
        Returns "" when there is nothing to ground on.
        """
        if not result.chunks:
            return ""

        parts: List[str] = []
        used_tokens = self.estimator.count(CONTEXT_HEADER) + self.estimator.count(CONTEXT_FOOTER)

        for chunk in result.chunks:
            section = self._format_chunk(chunk)
            cost = self.estimator.count(section)
            if parts and used_tokens + cost > self.config.max_context_tokens:
                logger.debug(f"Context budget reached after {len(parts)} of {len(result.chunks)} chunks")
                break
            parts.append(section)
            used_tokens += cost

        return "\n".join([CONTEXT_HEADER, "\n\n".join(parts), "", CONTEXT_FOOTER])

    def _format_chunk(self, chunk: ScoredChunk) -> str:
        page = f"Page {chunk.metadata.page}" if chunk.metadata.page else "Page ?"
        header = f"[SOURCE: {chunk.document_title} | {page} | {chunk.type.value} | score {chunk.relevance_score:.2f}]"

        if not chunk.context_chunks:
            return f"{header}\n{chunk.content}"

        before = [c.content for c in chunk.context_chunks if c.id == chunk.relationships.before]
        after = [c.content for c in chunk.context_chunks if c.id == chunk.relationships.after]
        return "\n".join([header, *before, chunk.content, *after])
