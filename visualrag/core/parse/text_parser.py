import math
import re
from typing import List, Optional
from visualrag.models.chunk import (
    CodeElement, ElementStyle, HeadingElement, LayoutElement, ListElement, Position, TextElement
)
from visualrag.config.settings import ExtractionConfig, settings

HEADING_PATTERN = re.compile(r'^(#+)\s*')
LIST_PATTERN = re.compile(r'^([-*+]\s|\d+\.\s)')
CODE_PATTERN = re.compile(r'`|^(def|class|function|import|return)\b|^\s*[{}]|[{};]\s*$')

def heading_level(text: str) -> Optional[int]:
    """Number of leading '#' markers, clamped to 1-6; None when there are none."""
    match = HEADING_PATTERN.match(text.strip())
    if not match:
        return None
    return min(len(match.group(1)), 6)

def detect_content_type(text: str) -> str:
    """Classifies a single line by its leading markers."""
    trimmed = text.strip()
    if HEADING_PATTERN.match(trimmed):
        return "heading"
    if LIST_PATTERN.match(trimmed):
        return "list"
    if CODE_PATTERN.search(trimmed):
        return "code"
    return "text"

class TextParser:
    """
    Builds synthetic layout elements for plain-text and markdown input.
    Each non-empty line becomes one element; y grows with the line's font size
    and pages are estimated from the line index.
    """

    X_POSITION = 50.0
    LINE_WIDTH = 500.0

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self.config = config or settings.extraction

    def estimate_pages(self, text: str) -> int:
        lines = text.split("\n")
        return max(1, math.ceil(len(lines) / self.config.lines_per_page))

    def parse(self, text: str) -> List[LayoutElement]:
        elements: List[LayoutElement] = []
        y_position = 0.0

        for index, line in enumerate(text.split("\n")):
            trimmed = line.strip()
            if not trimmed:
                continue

            content_type = detect_content_type(trimmed)
            font_size = self.config.default_font_size
            font_weight = "normal"
            level = None

            if content_type == "heading":
                level = heading_level(trimmed)
                font_size = 18 - level * 2
                font_weight = "bold"
            elif content_type == "code":
                font_size = 10

            common = dict(
                content=trimmed,
                page=index // self.config.lines_per_page + 1,
                position=Position(x=self.X_POSITION, y=y_position, width=self.LINE_WIDTH, height=font_size + 4),
                style=ElementStyle(font_size=font_size, font_weight=font_weight)
            )

            if content_type == "heading":
                elements.append(HeadingElement(level=level, **common))
            elif content_type == "list":
                elements.append(ListElement(**common))
            elif content_type == "code":
                elements.append(CodeElement(**common))
            else:
                elements.append(TextElement(**common))

            y_position += font_size + 8

        return elements
