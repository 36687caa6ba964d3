from enum import Enum
from typing import Annotated, Literal, Union
from pydantic import BaseModel, Field

class ChunkType(str, Enum):
    text = "text"
    heading = "heading"
    list = "list"
    code = "code"
    table = "table"
    image = "image"

class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def union(self, other: "Position") -> "Position":
        """Smallest box enclosing both boxes."""
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return Position(
            x=x,
            y=y,
            width=max(self.x + self.width, other.x + other.width) - x,
            height=max(self.y + self.height, other.y + other.height) - y
        )

class ElementStyle(BaseModel):
    font_size: float | None = None
    font_weight: str | None = None          # "bold" | "normal"

# --- Layout elements produced by the content extractor ---
# One variant per chunk type, discriminated on `type`.

class _ElementBase(BaseModel):
    content: str
    page: int = 1
    position: Position = Position()
    style: ElementStyle = ElementStyle()

class TextElement(_ElementBase):
    type: Literal["text"] = "text"

class HeadingElement(_ElementBase):
    type: Literal["heading"] = "heading"
    level: int = Field(default=1, ge=1, le=6)

class ListElement(_ElementBase):
    type: Literal["list"] = "list"

class CodeElement(_ElementBase):
    type: Literal["code"] = "code"

class TableElement(_ElementBase):
    type: Literal["table"] = "table"
    rows: int = 0
    columns: int = 0

class ImageElement(_ElementBase):
    type: Literal["image"] = "image"
    width_px: int = 0
    height_px: int = 0

LayoutElement = Annotated[
    Union[TextElement, HeadingElement, ListElement, CodeElement, TableElement, ImageElement],
    Field(discriminator="type")
]

# --- Chunks ---

class ChunkMetadata(BaseModel):
    page: int | None = None
    position: Position = Position()
    font_size: float | None = None
    font_weight: str | None = None
    hierarchy: int | None = None            # 1-6, headings only
    confidence: float = Field(default=0.95, ge=0.0, le=1.0)
    keywords: list[str] = []                # most frequent first
    summary: str = ""
    embedding: list[float] | None = None    # None before the embedding stage

class ChunkRelationships(BaseModel):
    before: str | None = None               # None only for the first chunk
    after: str | None = None                # None only for the last chunk
    contextually_related: list[str] = []    # at most 5, never the chunk itself

class DocumentChunk(BaseModel):
    id: str
    content: str
    type: ChunkType
    metadata: ChunkMetadata
    parent: str | None = None
    children: list[str] = []
    relationships: ChunkRelationships = ChunkRelationships()
