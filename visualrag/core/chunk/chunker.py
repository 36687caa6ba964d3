import hashlib
import logging
from typing import List, Optional
from visualrag.models.chunk import (
    ChunkMetadata, ChunkType, DocumentChunk, HeadingElement, LayoutElement, Position
)
from visualrag.models.document import ChunkingOptions, ChunkingStrategy, ExtractedContent
from visualrag.core.chunk.text_analysis import (
    TokenEstimator, extract_keywords, generate_summary, normalise_whitespace
)
from visualrag.core.parse.text_parser import heading_level
from visualrag.config.settings import ChunkingConfig, settings

logger = logging.getLogger(__name__)

class _ChunkBuffer:
    """Elements accumulated for the chunk currently being built."""

    def __init__(self, first: LayoutElement):
        self.elements: List[LayoutElement] = []
        self.content = ""
        self.position: Position = first.position

    @property
    def first(self) -> LayoutElement:
        return self.elements[0]

    def add(self, element: LayoutElement):
        self.elements.append(element)
        self.content += element.content + "\n"
        self.position = self.position.union(element.position)

class Chunker:
    """
    Layout-aware chunking.
    - Walks layout elements in order, accumulating them into the current chunk.
    - A heading always opens a new chunk; so does a chunk that already exceeds max_chunk_size tokens.
    - The chunking strategy decides whether a heading keeps the body that follows it:
      layout = always, semantic = never, hybrid = only below the title level.
    """

    def __init__(self, config: Optional[ChunkingConfig] = None):
        self.config = config or settings.chunking
        self.estimator = TokenEstimator(self.config.token_estimator)

    def chunk(self,
              extracted: ExtractedContent,
              options: Optional[ChunkingOptions] = None,
              document_id: str = "") -> List[DocumentChunk]:
        """
        Main entry point for chunking a document's layout elements.
        An empty element list yields an empty chunk list.
        """
        options = options or ChunkingOptions()
        chunks: List[DocumentChunk] = []
        current: Optional[_ChunkBuffer] = None

        for element in extracted.layout_elements:
            if current is not None and self._starts_new_chunk(current, element, options):
                chunks.append(self._finalize_chunk(current, len(chunks), document_id, options))
                current = None

            if current is None:
                current = _ChunkBuffer(element)
            current.add(element)

        if current is not None:
            chunks.append(self._finalize_chunk(current, len(chunks), document_id, options))

        logger.debug(f"Built {len(chunks)} chunks from {len(extracted.layout_elements)} elements "
                     f"({options.chunking_strategy.value} strategy)")
        return chunks

    def _starts_new_chunk(self, current: _ChunkBuffer, element: LayoutElement, options: ChunkingOptions) -> bool:
        if element.type == "heading":
            return True
        if self.estimator.count(current.content) > options.max_chunk_size:
            return True
        if isinstance(current.first, HeadingElement):
            return self._heading_stands_alone(current, options.chunking_strategy)
        return False

    def _heading_stands_alone(self, current: _ChunkBuffer, strategy: ChunkingStrategy) -> bool:
        if strategy == ChunkingStrategy.semantic:
            return True
        if strategy == ChunkingStrategy.layout:
            return False
        # hybrid: a document title is not merged with the first paragraph
        return self._heading_level(current) == 1

    def _heading_level(self, current: _ChunkBuffer) -> int:
        first = current.first
        level = heading_level(first.content)
        if level is None and isinstance(first, HeadingElement):
            level = first.level
        return level or 1

    def _finalize_chunk(self,
                        current: _ChunkBuffer,
                        index: int,
                        document_id: str,
                        options: ChunkingOptions) -> DocumentChunk:
        content = normalise_whitespace(current.content, options.preserve_formatting)
        first = current.first
        chunk_type = ChunkType(first.type)

        chunk_id = hashlib.sha256(f"{document_id}:{index}:{content}".encode()).hexdigest()[:16]

        metadata = ChunkMetadata(
            page=first.page,
            position=current.position,
            font_size=first.style.font_size,
            font_weight=first.style.font_weight,
            hierarchy=self._heading_level(current) if chunk_type == ChunkType.heading else None,
            confidence=self.config.confidence,
            keywords=extract_keywords(content, self.config.max_keywords, self.config.min_keyword_length),
            summary=generate_summary(content)
        )

        return DocumentChunk(
            id=chunk_id,
            content=content,
            type=chunk_type,
            metadata=metadata
        )
