import io
import logging
import threading
import fitz  # PyMuPDF
import pdfplumber
import pandas as pd
from typing import List, Dict, Any, Tuple, Optional
from collections import Counter
from visualrag.models.chunk import (
    CodeElement, ElementStyle, HeadingElement, ImageElement, LayoutElement,
    ListElement, Position, TableElement, TextElement
)
from visualrag.models.document import ExtractedContent, ExtractedMetadata
from visualrag.core.parse.text_parser import detect_content_type, heading_level
from visualrag.core.exceptions import ProcessingCancelledError
from visualrag.config.settings import ExtractionConfig, settings

logger = logging.getLogger(__name__)

BOLD_MARKERS = ("Bold", "Black", "Heavy")
BOLD_FLAG = 16

class PDFParser:
    """
    Two-pass PDF Parser:
    Pass 1 (PyMuPDF): Extract text lines with position and font metrics, image blocks,
    and detect repetitive headers/footers.
    Pass 2 (pdfplumber): Detect tables and extract them as markdown.
    """

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self.config = config or settings.extraction

    def parse(self,
              data: bytes,
              filename: str = "",
              extract_images: bool = True,
              cancel_event: Optional[threading.Event] = None) -> ExtractedContent:
        """
        Main entry point for parsing a PDF held in memory.
        Raises whatever PyMuPDF raises on malformed input; table detection failures are only logged.
        """
        # Pass 1: Extract lines and metrics using PyMuPDF
        doc = fitz.open(stream=data, filetype="pdf")
        try:
            total_pages = doc.page_count
            if total_pages == 0:
                raise ValueError("PDF contains no pages")
            raw_lines, images, font_stats = self._extract_raw_lines(doc, filename, extract_images, cancel_event)
            properties = doc.metadata or {}
        finally:
            doc.close()

        # Identify headers/footers to suppress
        suppress_hashes = self._identify_repetitive_lines(raw_lines)

        # Pass 2: Extract tables using pdfplumber
        tables_per_page = self._extract_tables(data, filename, cancel_event)

        # Merge and refine
        elements = self._merge_elements(raw_lines, images, tables_per_page, suppress_hashes, font_stats)
        logger.debug(f"{filename}: {len(raw_lines)} lines, {len(images)} images, "
                     f"{sum(len(t) for t in tables_per_page.values())} tables, "
                     f"{len(suppress_hashes)} header/footer patterns suppressed")

        return ExtractedContent(
            content=" ".join(e.content for e in elements),
            total_pages=total_pages,
            layout_elements=elements,
            metadata=ExtractedMetadata(
                title=properties.get("title") or None,
                author=properties.get("author") or None,
                subject=properties.get("subject") or None
            )
        )

    def _check_cancelled(self, cancel_event: Optional[threading.Event], filename: str):
        if cancel_event is not None and cancel_event.is_set():
            raise ProcessingCancelledError(filename, "extraction")

    def _extract_raw_lines(self,
                           doc: "fitz.Document",
                           filename: str,
                           extract_images: bool,
                           cancel_event: Optional[threading.Event]) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]], Dict[str, Any]]:
        """
        Extracts all text lines with font info and page numbers.
        Also computes global font statistics for heading detection.
        """
        lines = []
        images = []
        all_font_sizes = []

        for page_num, page in enumerate(doc):
            self._check_cancelled(cancel_event, filename)
            page_dict = page.get_text("dict")
            for b in page_dict["blocks"]:
                if b["type"] == 1:  # Image block
                    if extract_images:
                        images.append({
                            "page_number": page_num + 1,
                            "bbox": list(b["bbox"]),
                            "width": b.get("width", 0),
                            "height": b.get("height", 0)
                        })
                    continue

                for line in b.get("lines", []):
                    spans = [s for s in line["spans"] if s["text"].strip()]
                    if not spans:
                        continue
                    text = "".join(s["text"] for s in line["spans"]).strip()
                    sizes = [s["size"] for s in spans]
                    all_font_sizes.extend(sizes)
                    is_bold = any(
                        any(m in s["font"] for m in BOLD_MARKERS) or s.get("flags", 0) & BOLD_FLAG
                        for s in spans
                    )
                    lines.append({
                        "text": text,
                        "page_number": page_num + 1,
                        "bbox": list(line["bbox"]),  # [x0, y0, x1, y1]
                        "font_size": max(sizes),
                        "font_weight": "bold" if is_bold else "normal"
                    })

        font_stats = {
            "median_size": pd.Series(all_font_sizes).median() if all_font_sizes else 0
        }

        return lines, images, font_stats

    def _identify_repetitive_lines(self, lines: List[Dict[str, Any]]) -> set:
        """
        Detects text that appears at the same Y-position on multiple pages.
        Used to filter out running headers and footers.
        """
        pos_text_counts = Counter()
        for line in lines:
            pos_hash = (round(line["bbox"][1], 0), line["text"])
            pos_text_counts[pos_hash] += 1

        return {pos_hash for pos_hash, count in pos_text_counts.items()
                if count >= self.config.header_footer_threshold}

    def _extract_tables(self,
                        data: bytes,
                        filename: str,
                        cancel_event: Optional[threading.Event]) -> Dict[int, List[Dict[str, Any]]]:
        """
        Uses pdfplumber to detect and extract tables as markdown.
        Returns a dict mapping page_number -> list of table dicts.
        Best-effort: a page pdfplumber cannot handle contributes no tables.
        """
        tables_per_page = {}
        try:
            pdf = pdfplumber.open(io.BytesIO(data))
        except Exception as e:
            logger.warning(f"Table detection skipped for {filename}: {e}")
            return tables_per_page

        with pdf:
            for i, page in enumerate(pdf.pages):
                self._check_cancelled(cancel_event, filename)
                try:
                    tables_per_page[i + 1] = self._page_tables(page)
                except Exception as e:
                    logger.warning(f"Table detection failed on page {i + 1} of {filename}: {e}")
                    tables_per_page[i + 1] = []
        return tables_per_page

    def _page_tables(self, page) -> List[Dict[str, Any]]:
        page_tables = []
        for table in page.find_tables():
            table_data = table.extract()
            if not table_data or len(table_data) < 2:
                continue
            header = [str(c) if c is not None else "" for c in table_data[0]]
            df = pd.DataFrame(table_data[1:], columns=header)
            page_tables.append({
                "text": df.fillna("").to_markdown(index=False),
                "bbox": list(table.bbox),  # [x0, top, x1, bottom]
                "rows": len(df.index),
                "columns": len(df.columns)
            })
        return page_tables

    def _merge_elements(self,
                        raw_lines: List[Dict[str, Any]],
                        images: List[Dict[str, Any]],
                        tables_per_page: Dict[int, List[Dict[str, Any]]],
                        suppress_hashes: set,
                        font_stats: Dict[str, Any]) -> List[LayoutElement]:
        """
        Merges text lines, tables and images, suppresses headers/footers, and assigns element types.
        """
        elements: List[LayoutElement] = []

        for page_num, page_tables in tables_per_page.items():
            for t in page_tables:
                elements.append(TableElement(
                    content=t["text"],
                    page=page_num,
                    position=self._to_position(t["bbox"]),
                    rows=t["rows"],
                    columns=t["columns"]
                ))

        for img in images:
            w, h = int(img["width"]), int(img["height"])
            elements.append(ImageElement(
                content=f"[Image {w}x{h} on page {img['page_number']}]",
                page=img["page_number"],
                position=self._to_position(img["bbox"]),
                width_px=w,
                height_px=h
            ))

        median_size = font_stats["median_size"]
        for line in raw_lines:
            if (round(line["bbox"][1], 0), line["text"]) in suppress_hashes:
                continue

            page_tables = tables_per_page.get(line["page_number"], [])
            if any(self._is_overlap(line["bbox"], t["bbox"]) for t in page_tables):
                continue

            common = dict(
                content=line["text"],
                page=line["page_number"],
                position=self._to_position(line["bbox"]),
                style=ElementStyle(font_size=line["font_size"], font_weight=line["font_weight"])
            )

            content_type = detect_content_type(line["text"])
            level = heading_level(line["text"]) if content_type == "heading" else None

            # Larger than body text -> heading; larger is higher
            if content_type == "text" and median_size and line["font_size"] > median_size * self.config.heading_size_ratio:
                content_type = "heading"
                if line["font_size"] > median_size * 1.5:
                    level = 1
                elif line["font_size"] > median_size * 1.3:
                    level = 2
                else:
                    level = 3

            if content_type == "heading":
                elements.append(HeadingElement(level=level or 1, **common))
            elif content_type == "list":
                elements.append(ListElement(**common))
            elif content_type == "code":
                elements.append(CodeElement(**common))
            else:
                elements.append(TextElement(**common))

        # Sort by page then Y-position
        elements.sort(key=lambda e: (e.page, e.position.y))
        return elements

    def _to_position(self, bbox: List[float]) -> Position:
        x0, y0, x1, y1 = bbox
        return Position(x=x0, y=y0, width=x1 - x0, height=y1 - y0)

    def _is_overlap(self, bbox1: List[float], bbox2: List[float]) -> bool:
        """
        Check if two bounding boxes overlap.
        fitz (x0, y0, x1, y1) and pdfplumber (x0, top, x1, bottom) share the same orientation.
        """
        return not (bbox1[2] < bbox2[0] or
                    bbox1[0] > bbox2[2] or
                    bbox1[3] < bbox2[1] or
                    bbox1[1] > bbox2[3])
