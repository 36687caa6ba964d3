import logging
import os
import threading
from typing import Optional
from visualrag.models.document import ExtractedContent, ExtractedMetadata, UploadedFile
from visualrag.core.parse.pdf_parser import PDFParser
from visualrag.core.parse.text_parser import TextParser
from visualrag.core.exceptions import AppError, ExtractionError, UnsupportedFileTypeError
from visualrag.config.settings import ExtractionConfig, settings

logger = logging.getLogger(__name__)

PDF_TYPES = {"application/pdf", "application/x-pdf"}
TEXT_EXTENSIONS = {".txt", ".md", ".markdown"}

class ContentExtractor:
    """
    Turns an uploaded file into raw text plus positional layout elements.
    PDFs go through PDFParser; plain text and markdown through TextParser.
    A PDF that cannot be parsed is retried once as UTF-8 text.
    """

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self.config = config or settings.extraction
        self.pdf_parser = PDFParser(self.config)
        self.text_parser = TextParser(self.config)

    @staticmethod
    def is_pdf(file: UploadedFile) -> bool:
        return file.content_type in PDF_TYPES or file.extension == ".pdf"

    @staticmethod
    def is_text(file: UploadedFile) -> bool:
        return file.content_type.startswith("text/") or file.extension in TEXT_EXTENSIONS

    def check_supported(self, file: UploadedFile) -> None:
        """Raises UnsupportedFileTypeError before any bytes are parsed."""
        if not (self.is_pdf(file) or self.is_text(file)):
            raise UnsupportedFileTypeError(file.name, file.content_type)

    def extract(self,
                file: UploadedFile,
                extract_images: bool = True,
                cancel_event: Optional[threading.Event] = None) -> ExtractedContent:
        self.check_supported(file)

        try:
            data = file.read()
        except Exception as e:
            raise ExtractionError(f"Could not read {file.name}: {e}", file.name) from e

        if self.is_pdf(file):
            extracted = self._extract_pdf(file, data, extract_images, cancel_event)
        else:
            extracted = self._extract_text(file, self._decode(file, data))

        logger.info(f"Extracted {len(extracted.layout_elements)} layout elements "
                    f"across {extracted.total_pages} page(s) from {file.name}")
        return extracted

    def _extract_pdf(self,
                     file: UploadedFile,
                     data: bytes,
                     extract_images: bool,
                     cancel_event: Optional[threading.Event]) -> ExtractedContent:
        try:
            extracted = self.pdf_parser.parse(data, file.name, extract_images, cancel_event)
        except AppError:
            raise
        except Exception as pdf_error:
            logger.warning(f"PDF parsing failed for {file.name}, retrying as plain text: {pdf_error}")
            try:
                text = data.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ExtractionError(f"Could not extract text from {file.name}: {pdf_error}", file.name) from e
            extracted = self._extract_text(file, text)
            extracted.total_pages = 1
            extracted.metadata.title = self._stem(file.name)
            return extracted

        extracted.metadata = ExtractedMetadata(
            title=extracted.metadata.title or self._stem(file.name),
            author=extracted.metadata.author or "Unknown",
            subject=extracted.metadata.subject or "Document"
        )
        return extracted

    def _extract_text(self, file: UploadedFile, text: str) -> ExtractedContent:
        return ExtractedContent(
            content=text,
            total_pages=self.text_parser.estimate_pages(text),
            layout_elements=self.text_parser.parse(text),
            metadata=ExtractedMetadata(title=file.name, author="Unknown")
        )

    def _decode(self, file: UploadedFile, data: bytes) -> str:
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ExtractionError(f"{file.name} is not valid UTF-8 text", file.name) from e

    @staticmethod
    def _stem(filename: str) -> str:
        return os.path.splitext(filename)[0]
