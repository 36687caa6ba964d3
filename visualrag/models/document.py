import mimetypes
import os
from enum import Enum
from pydantic import BaseModel, Field
from visualrag.models.chunk import DocumentChunk, LayoutElement

class UploadedFile(BaseModel):
    """A file handed to the ingestion pipeline: name, MIME type and raw bytes."""
    name: str
    content_type: str = ""
    data: bytes = b""

    def read(self) -> bytes:
        return self.data

    @property
    def extension(self) -> str:
        return os.path.splitext(self.name)[1].lower()

    @classmethod
    def from_path(cls, path: str, content_type: str | None = None) -> "UploadedFile":
        with open(path, "rb") as f:
            data = f.read()
        guessed, _ = mimetypes.guess_type(path)
        return cls(
            name=os.path.basename(path),
            content_type=content_type or guessed or "",
            data=data
        )

class ChunkingStrategy(str, Enum):
    semantic = "semantic"
    layout = "layout"
    hybrid = "hybrid"

class ChunkingOptions(BaseModel):
    chunking_strategy: ChunkingStrategy = ChunkingStrategy.hybrid
    max_chunk_size: int = Field(default=1000, gt=0)    # tokens
    preserve_formatting: bool = True
    extract_images: bool = True

class ExtractedMetadata(BaseModel):
    title: str | None = None
    author: str | None = None
    subject: str | None = None

class ExtractedContent(BaseModel):
    content: str
    total_pages: int
    layout_elements: list[LayoutElement]
    metadata: ExtractedMetadata = ExtractedMetadata()

class DocumentHierarchy(BaseModel):
    id: str
    level: int = Field(ge=1, le=6)
    title: str
    chunk_ids: list[str] = []
    children: list["DocumentHierarchy"] = []

class DocumentType(str, Enum):
    pdf = "pdf"
    docx = "docx"
    txt = "txt"
    md = "md"
    html = "html"

class DocumentMetadata(BaseModel):
    title: str | None = None
    author: str | None = None
    subject: str | None = None
    keywords: list[str] = []                 # top 20 across chunks
    language: str = "en"
    document_type: DocumentType = DocumentType.txt
    processing_timestamp: str                # ISO 8601 UTC
    chunking_strategy: str
    total_tokens: int = 0

class DocumentStructure(BaseModel):
    id: str
    filename: str
    total_pages: int
    chunks: list[DocumentChunk] = []
    hierarchy: list[DocumentHierarchy] = []
    metadata: DocumentMetadata

    @property
    def display_title(self) -> str:
        return self.metadata.title or self.filename

class DocumentRecord(BaseModel):
    id: str
    filename: str
    title: str | None = None
    document_type: DocumentType
    total_pages: int
    total_chunks: int
    total_tokens: int
    processing_timestamp: str

    @classmethod
    def from_structure(cls, document: DocumentStructure) -> "DocumentRecord":
        return cls(
            id=document.id,
            filename=document.filename,
            title=document.metadata.title,
            document_type=document.metadata.document_type,
            total_pages=document.total_pages,
            total_chunks=len(document.chunks),
            total_tokens=document.metadata.total_tokens,
            processing_timestamp=document.metadata.processing_timestamp
        )

class IngestionStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"

class IngestionJob(BaseModel):
    job_id: str
    document_id: str | None = None          # set once processing completes
    filename: str
    status: IngestionStatus
    progress: int                           # 0–100
    message: str
    created_at: str
    completed_at: str | None = None
