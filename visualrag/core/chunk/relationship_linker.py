from typing import List, Optional
from visualrag.models.chunk import ChunkRelationships, DocumentChunk
from visualrag.config.settings import SearchConfig, settings

class RelationshipLinker:
    """
    Populates chunk relationships.
    - before/after: the sequential neighbours, forming one chain in extraction order.
    - contextually_related: other chunks sharing enough keywords, in document order.
    """

    def __init__(self, config: Optional[SearchConfig] = None):
        config = config or settings.search
        self.max_related = config.max_related_chunks
        self.min_shared = config.min_shared_keywords

    def link(self, chunks: List[DocumentChunk]) -> List[DocumentChunk]:
        keyword_sets = [set(c.metadata.keywords) for c in chunks]
        total = len(chunks)

        for i, chunk in enumerate(chunks):
            chunk.relationships = ChunkRelationships(
                before=chunks[i - 1].id if i > 0 else None,
                after=chunks[i + 1].id if i < total - 1 else None,
                contextually_related=self._find_related(i, chunks, keyword_sets)
            )

        return chunks

    def _find_related(self, index: int, chunks: List[DocumentChunk], keyword_sets: List[set]) -> List[str]:
        related = []
        target = keyword_sets[index]
        for j, other in enumerate(chunks):
            if len(related) >= self.max_related:
                break
            if j == index or other.id == chunks[index].id:
                continue
            if len(target & keyword_sets[j]) >= self.min_shared:
                related.append(other.id)
        return related
