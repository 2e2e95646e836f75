"""
Extraction orchestrator.

Each page walks ``Pending -> NativeAttempted -> Done(Native)``, or on to
``OCRAttempted -> Done(OCR) | Done(None)`` when the page has no text layer.
Rendering and OCR failures end the page in ``Done(None)``; only an
unreadable document aborts the call.
"""

import asyncio
import logging
import time
from typing import Optional

from pitchtext.config import ExtractionConfig
from pitchtext.exceptions import OCRError, PageRenderError
from pitchtext.models import DocumentResult, ExtractionMethod, PageResult
from pitchtext.native import NativeTextExtractor
from pitchtext.ocr.adapter import OCREngineAdapter
from pitchtext.ocr.factory import EngineFactory, get_engine_factory
from pitchtext.rendering import PageRenderer, PdfDocument

logger = logging.getLogger(__name__)


def _no_text(page_number: int) -> PageResult:
    return PageResult(page_number=page_number, method=ExtractionMethod.NONE)


class DocumentExtractor:
    """Turns PDF bytes into a page-indexed ``DocumentResult``."""

    def __init__(
        self,
        config: Optional[ExtractionConfig] = None,
        renderer: Optional[PageRenderer] = None,
        native: Optional[NativeTextExtractor] = None,
        engine_factory: Optional[EngineFactory] = None,
    ):
        self.config = config or ExtractionConfig()
        self.renderer = renderer or PageRenderer()
        self.native = native or NativeTextExtractor()
        self.engine_factory = engine_factory or get_engine_factory(self.config.ocr_engine)

    async def extract(self, data: bytes, file_name: Optional[str] = None) -> DocumentResult:
        """
        Extract the text of every page.

        Raises:
            MalformedDocument: The bytes cannot be opened as a PDF. No OCR
                session is started in that case.
        """
        start = time.time()
        label = file_name or "<bytes>"
        logger.info("Extracting %s (%d bytes)", label, len(data))

        document = await asyncio.to_thread(self.renderer.open, data, self.config.password)
        with document:
            source_pages = self.renderer.page_count(document)
            last_page = min(source_pages, self.config.max_pages or source_pages)
            if last_page < source_pages:
                logger.info("Processing first %d of %d pages", last_page, source_pages)

            limiter = asyncio.Semaphore(self.config.concurrency)
            ocr = OCREngineAdapter(
                self.engine_factory,
                language=self.config.ocr_language,
                min_confidence=self.config.min_ocr_confidence,
            )
            async with ocr:
                pages = await self._process_pages(document, last_page, ocr, limiter)
            metadata = document.metadata()

        result = DocumentResult.build(
            pages,
            source_page_count=source_pages,
            metadata=metadata,
            file_name=file_name,
            extraction_time=round(time.time() - start, 2),
        )
        logger.info(
            "Extracted %d characters from %d pages of %s in %.2fs (OCR pages: %d, empty pages: %d)",
            result.stats.total_characters,
            result.page_count,
            label,
            result.extraction_time,
            result.stats.pages_with_ocr,
            result.stats.pages_with_no_text,
        )
        return result

    async def _process_pages(self, document, last_page, ocr, limiter) -> list[PageResult]:
        tasks = [
            asyncio.ensure_future(self._process_page(document, number, ocr, limiter))
            for number in range(1, last_page + 1)
        ]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _process_page(
        self,
        document: PdfDocument,
        page_number: int,
        ocr: OCREngineAdapter,
        limiter: asyncio.Semaphore,
    ) -> PageResult:
        async with limiter:
            try:
                result = self._attempt_native(document, page_number)
                if result is None:
                    result = await self._attempt_ocr(document, page_number, ocr)
            except Exception as exc:
                # Page-level boundary; CancelledError is not an Exception and still propagates.
                logger.warning("Page %d failed unexpectedly: %r", page_number, exc, exc_info=True)
                result = _no_text(page_number)
        logger.info(
            "Page %d/%d: %s (%d characters)",
            page_number,
            document.page_count,
            result.method.value,
            result.character_count,
        )
        return result

    def _attempt_native(self, document: PdfDocument, page_number: int) -> Optional[PageResult]:
        text = self.native.extract_text(document, page_number).strip()
        if not text:
            logger.debug("No native text on page %d, falling back to OCR", page_number)
            return None
        return PageResult(page_number=page_number, text=text, method=ExtractionMethod.NATIVE)

    async def _attempt_ocr(self, document: PdfDocument, page_number: int, ocr: OCREngineAdapter) -> PageResult:
        try:
            image = await asyncio.to_thread(
                self.renderer.rasterize, document, page_number, self.config.raster_scale
            )
        except PageRenderError as exc:
            logger.warning("Page %d could not be rendered: %s", page_number, exc)
            return _no_text(page_number)

        try:
            recognition = await ocr.recognize(image)
        except OCRError as exc:
            logger.warning("OCR failed on page %d: %s", page_number, exc)
            return _no_text(page_number)
        finally:
            image.close()

        text = recognition.text.strip()
        if not text:
            return _no_text(page_number)
        logger.debug("Page %d: OCR confidence %.2f", page_number, recognition.confidence)
        return PageResult(
            page_number=page_number,
            text=text,
            method=ExtractionMethod.OCR,
            confidence=round(recognition.confidence, 4),
        )


async def extract_document(
    data: bytes,
    config: Optional[ExtractionConfig] = None,
    file_name: Optional[str] = None,
    **collaborators,
) -> DocumentResult:
    """Extract ``data`` with a fresh ``DocumentExtractor``."""
    return await DocumentExtractor(config, **collaborators).extract(data, file_name=file_name)


def extract_document_sync(
    data: bytes,
    config: Optional[ExtractionConfig] = None,
    file_name: Optional[str] = None,
    **collaborators,
) -> DocumentResult:
    return asyncio.run(extract_document(data, config, file_name, **collaborators))
