"""
Exceptions raised by the extraction pipeline.

Only ``MalformedDocument`` ever reaches callers of ``extract_document``.
The page- and OCR-level errors are raised by the individual components and
absorbed by the orchestrator, which degrades the affected page instead.
"""

from typing import Optional


class PitchTextError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown extraction error occurred."


class MalformedDocument(PitchTextError):
    """Raised when the byte stream cannot be opened as a PDF."""

    @property
    def default_message(self) -> str:
        return "Invalid, corrupted or encrypted PDF document."


class PageRenderError(PitchTextError):
    """Raised when a single page cannot be rasterized."""

    def __init__(self, message: str = "", page_number: Optional[int] = None) -> None:
        super().__init__(message)
        self.page_number = page_number

    @property
    def default_message(self) -> str:
        return "Page could not be rendered."


class OCRError(PitchTextError):
    """Base class for OCR engine failures."""

    @property
    def default_message(self) -> str:
        return "OCR engine failure."


class OCRInitError(OCRError):
    """Raised when the OCR engine cannot be started."""

    @property
    def default_message(self) -> str:
        return "OCR engine could not be initialized."


class OCRRecognitionError(OCRError):
    """Raised when the OCR engine fails while recognizing a bitmap."""

    @property
    def default_message(self) -> str:
        return "OCR recognition failed."
