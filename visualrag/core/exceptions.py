"""Exception hierarchy for the retrieval engine."""

from typing import Any


class AppError(Exception):
    """Base exception; carries a machine-readable code for API responses."""

    status_code = 500

    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class ExtractionError(AppError):
    """File could not be read or parsed into text."""

    status_code = 422

    def __init__(self, message: str, filename: str):
        self.filename = filename
        super().__init__(message, code="EXTRACTION_ERROR")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["error"]["details"] = {"filename": self.filename}
        return result


class UnsupportedFileTypeError(ExtractionError):
    """File type is not one of the supported formats."""

    status_code = 400

    def __init__(self, filename: str, content_type: str):
        self.content_type = content_type
        super().__init__(f"Unsupported file type: {content_type or 'unknown'} ({filename})", filename)
        self.code = "UNSUPPORTED_FILE_TYPE"

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["error"]["details"]["content_type"] = self.content_type
        return result


class ProcessingCancelledError(AppError):
    """Processing was abandoned because its cancellation event was set."""

    status_code = 408

    def __init__(self, filename: str, stage: str):
        self.filename = filename
        self.stage = stage
        super().__init__(f"Processing of {filename} cancelled during {stage}", code="PROCESSING_CANCELLED")


class DocumentNotFoundError(AppError):
    """No document with the given id in the collection."""

    status_code = 404

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document not found: {document_id}", code="DOCUMENT_NOT_FOUND")


class ConfigurationError(AppError):
    """Invalid or unsupported configuration value."""

    def __init__(self, message: str):
        super().__init__(message, code="CONFIG_ERROR")
