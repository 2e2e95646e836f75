"""
Page renderer: opens PDF bytes with pypdf and rasterizes pages with pdf2image.

The ``PdfDocument`` handle owns both the raw bytes (poppler re-reads them for
every rasterization) and the pypdf reader used for native text extraction.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import Optional

from PIL import Image
from pdf2image import convert_from_bytes
from pdf2image.exceptions import (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFPopplerTimeoutError,
    PDFSyntaxError,
)
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from pitchtext.exceptions import MalformedDocument, PageRenderError
from pitchtext.models import DocumentMetadata

logger = logging.getLogger(__name__)

PDF_HEADER = b"%PDF-"
# Some producers prepend junk before the header; PDF readers tolerate up to 1 KiB.
HEADER_SEARCH_WINDOW = 1024
DEFAULT_SCALE = 2.0

_POPPLER_ERRORS = (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFPopplerTimeoutError,
    PDFSyntaxError,
)


@dataclass
class PdfDocument:
    """An opened PDF, exclusively owned by one extraction call."""

    reader: PdfReader
    raw_bytes: bytes
    page_count: int
    password: Optional[str] = None
    closed: bool = field(default=False, init=False)

    @property
    def byte_length(self) -> int:
        return len(self.raw_bytes)

    def metadata(self) -> DocumentMetadata:
        try:
            info = self.reader.metadata
        except PyPdfError as exc:
            logger.warning("Unreadable document info dictionary: %s", exc)
            return DocumentMetadata()
        if not info:
            return DocumentMetadata()
        return DocumentMetadata(
            title=_clean(info.title),
            author=_clean(info.author),
            subject=_clean(info.subject),
            creator=_clean(info.creator),
            producer=_clean(info.producer),
        )

    def close(self) -> None:
        if not self.closed:
            self.reader.stream.close()
            self.closed = True

    def __enter__(self) -> "PdfDocument":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def scale_to_dpi(scale: float) -> int:
    """Rasterization resolution; PDF user space is 72 units per inch."""
    return max(1, round(72 * scale))


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class PageRenderer:
    """Opens documents, reports page counts and rasterizes pages."""

    def open(self, data: bytes, password: Optional[str] = None) -> PdfDocument:
        if not data:
            raise MalformedDocument("Empty byte stream.")
        if PDF_HEADER not in data[:HEADER_SEARCH_WINDOW]:
            raise MalformedDocument("Missing %PDF- header.")

        try:
            reader = PdfReader(io.BytesIO(data))
        except PyPdfError as exc:
            raise MalformedDocument(f"Corrupted or invalid PDF: {exc}") from exc
        except Exception as exc:
            raise MalformedDocument(f"Unexpected error reading PDF: {exc}") from exc

        if reader.is_encrypted:
            if not password:
                raise MalformedDocument("PDF is encrypted. Supply a password to process this file.")
            try:
                decrypted = reader.decrypt(password)
            except (PyPdfError, NotImplementedError) as exc:
                raise MalformedDocument(f"Unable to decrypt PDF: {exc}") from exc
            if not decrypted:
                raise MalformedDocument("Failed to decrypt PDF with supplied password.")

        try:
            page_count = len(reader.pages)
        except (PyPdfError, KeyError, ValueError) as exc:
            raise MalformedDocument(f"Unreadable page tree: {exc}") from exc
        if page_count == 0:
            raise MalformedDocument("PDF has no pages.")

        logger.info("Opened PDF: %d pages, %d bytes", page_count, len(data))
        return PdfDocument(reader=reader, raw_bytes=data, page_count=page_count, password=password)

    def page_count(self, document: PdfDocument) -> int:
        return document.page_count

    def rasterize(self, document: PdfDocument, page_number: int, scale: float = DEFAULT_SCALE) -> Image.Image:
        """Render one 1-indexed page to an RGB bitmap at ``scale`` x 72 dpi."""
        if not 1 <= page_number <= document.page_count:
            raise PageRenderError(
                f"Page {page_number} out of range 1..{document.page_count}",
                page_number=page_number,
            )
        if scale <= 0:
            raise PageRenderError(f"Invalid raster scale {scale}", page_number=page_number)

        dpi = scale_to_dpi(scale)
        try:
            images = convert_from_bytes(
                document.raw_bytes,
                dpi=dpi,
                first_page=page_number,
                last_page=page_number,
                userpw=document.password,
            )
        except _POPPLER_ERRORS as exc:
            raise PageRenderError(f"Page {page_number}: {exc}", page_number=page_number) from exc
        except (OSError, ValueError, Image.DecompressionBombError, MemoryError) as exc:
            raise PageRenderError(f"Page {page_number}: {exc}", page_number=page_number) from exc

        if not images:
            raise PageRenderError(f"Page {page_number}: renderer returned no image", page_number=page_number)
        image = images[0]
        logger.debug("Rasterized page %d at %d dpi (%dx%d)", page_number, dpi, *image.size)
        return image.convert("RGB") if image.mode != "RGB" else image
