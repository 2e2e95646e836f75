"""
pitchtext - page-indexed text extraction for PDF pitch decks.

Native text layers are read with pypdf; pages without one are rasterized
with pdf2image and run through OCR (Tesseract by default).

Quick Start:
    >>> from pitchtext import extract_document_sync
    >>> result = extract_document_sync(open("deck.pdf", "rb").read())
    >>> result.stats.pages_with_ocr
"""

from pitchtext.config import ExtractionConfig
from pitchtext.exceptions import (
    MalformedDocument,
    OCRError,
    OCRInitError,
    OCRRecognitionError,
    PageRenderError,
    PitchTextError,
)
from pitchtext.extraction import DocumentExtractor, extract_document, extract_document_sync
from pitchtext.models import (
    DocumentMetadata,
    DocumentResult,
    ExtractionMethod,
    ExtractionStats,
    PageResult,
)

__version__ = "0.1.0"

__all__ = [
    "DocumentExtractor",
    "extract_document",
    "extract_document_sync",
    "ExtractionConfig",
    "DocumentMetadata",
    "DocumentResult",
    "ExtractionMethod",
    "ExtractionStats",
    "PageResult",
    "PitchTextError",
    "MalformedDocument",
    "PageRenderError",
    "OCRError",
    "OCRInitError",
    "OCRRecognitionError",
    "__version__",
]
