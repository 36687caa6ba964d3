import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional
from visualrag.core.parse.content_extractor import ContentExtractor
from visualrag.core.chunk.chunker import Chunker
from visualrag.core.chunk.hierarchy_builder import HierarchyBuilder
from visualrag.core.chunk.relationship_linker import RelationshipLinker
from visualrag.core.chunk.text_analysis import global_keywords
from visualrag.core.embed.embedder import EmbeddingProvider, build_embedder
from visualrag.core.exceptions import ProcessingCancelledError
from visualrag.models.document import (
    ChunkingOptions, DocumentMetadata, DocumentStructure, DocumentType, UploadedFile
)
from visualrag.storage.base import DocumentStore
from visualrag.config.settings import AppSettings, settings

logger = logging.getLogger(__name__)

EXTENSION_TYPES = {
    "pdf": DocumentType.pdf,
    "docx": DocumentType.docx,
    "doc": DocumentType.docx,
    "md": DocumentType.md,
    "markdown": DocumentType.md,
    "html": DocumentType.html,
    "htm": DocumentType.html,
}

def document_type_for(filename: str) -> DocumentType:
    ext = os.path.splitext(filename)[1].lower().lstrip(".")
    return EXTENSION_TYPES.get(ext, DocumentType.txt)

class IngestionPipeline:
    """
    Orchestrates document processing:
    extract -> chunk -> build_hierarchy -> embed -> link -> assemble (-> store)
    Each stage is a separate object that can be swapped or tested on its own.
    """

    def __init__(self,
                 config: Optional[AppSettings] = None,
                 embedder: Optional[EmbeddingProvider] = None,
                 document_store: Optional[DocumentStore] = None):
        self.config = config or settings
        self.document_store = document_store

        # Initialize components
        self.extractor = ContentExtractor(self.config.extraction)
        self.chunker = Chunker(self.config.chunking)
        self.hierarchy_builder = HierarchyBuilder()
        self.embedder = embedder or build_embedder(self.config.embedding)
        self.linker = RelationshipLinker(self.config.search)

    def default_options(self) -> ChunkingOptions:
        chunking = self.config.chunking
        return ChunkingOptions(
            chunking_strategy=chunking.chunking_strategy,
            max_chunk_size=chunking.max_chunk_size,
            preserve_formatting=chunking.preserve_formatting,
            extract_images=chunking.extract_images
        )

    def run(self,
            file: UploadedFile,
            options: Optional[ChunkingOptions] = None,
            progress_callback: Optional[Callable[[int, str], None]] = None,
            cancel_event: Optional[threading.Event] = None) -> DocumentStructure:
        """
        Runs the full processing pipeline for a single file.
        """
        options = options or self.default_options()
        doc_id = f"doc_{uuid.uuid4().hex[:16]}"

        def update_progress(progress: int, message: str):
            if progress_callback:
                progress_callback(progress, message)
            logger.info(f"[{doc_id}] {progress}%: {message}")

        def check_cancelled(stage: str):
            if cancel_event is not None and cancel_event.is_set():
                raise ProcessingCancelledError(file.name, stage)

        try:
            update_progress(5, f"Starting processing of {file.name}")

            # 1. Extraction
            update_progress(10, "Extracting content and layout")
            extracted = self.extractor.extract(file, options.extract_images, cancel_event)
            update_progress(30, f"Extracted {len(extracted.layout_elements)} layout elements")
            check_cancelled("chunking")

            # 2. Chunking
            update_progress(35, f"Chunking ({options.chunking_strategy.value})")
            chunks = self.chunker.chunk(extracted, options, doc_id)
            update_progress(50, f"Generated {len(chunks)} chunks")
            check_cancelled("hierarchy")

            # 3. Hierarchy
            hierarchy = self.hierarchy_builder.build(chunks)
            update_progress(55, f"Built hierarchy with {len(hierarchy)} top-level sections")
            check_cancelled("embedding")

            # 4. Embedding
            update_progress(60, "Generating embeddings")
            chunks = self.embedder.embed_chunks(chunks)
            update_progress(80, "Embedding complete")
            check_cancelled("linking")

            # 5. Relationships
            chunks = self.linker.link(chunks)
            update_progress(90, "Chunk relationships established")

            document = DocumentStructure(
                id=doc_id,
                filename=file.name,
                total_pages=extracted.total_pages,
                chunks=chunks,
                hierarchy=hierarchy,
                metadata=DocumentMetadata(
                    title=extracted.metadata.title,
                    author=extracted.metadata.author,
                    subject=extracted.metadata.subject,
                    keywords=global_keywords(c.metadata.keywords for c in chunks),
                    document_type=document_type_for(file.name),
                    processing_timestamp=datetime.now(timezone.utc).isoformat(),
                    chunking_strategy=options.chunking_strategy.value,
                    total_tokens=sum(self.chunker.estimator.count(c.content) for c in chunks)
                )
            )

            # 6. Storage
            if self.document_store is not None:
                self.document_store.save(document)
                update_progress(95, "Document saved to collection")

            update_progress(100, "Processing completed successfully")
            return document

        except Exception as e:
            logger.exception(f"Processing failed for {file.name}")
            if progress_callback:
                progress_callback(-1, str(e))  # -1 indicates failure
            raise
