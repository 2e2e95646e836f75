"""Native text extraction from the page content stream."""

import logging

from pypdf.errors import PyPdfError

from pitchtext.rendering import PdfDocument

logger = logging.getLogger(__name__)


def join_runs(runs) -> str:
    """
    Join glyph runs in content-stream order.

    A single space is inserted between two runs unless one of them already
    provides whitespace at the seam.
    """
    parts: list[str] = []
    for run in runs:
        if not run:
            continue
        if parts and not parts[-1][-1].isspace() and not run[0].isspace():
            parts.append(" ")
        parts.append(run)
    return "".join(parts).strip()


class NativeTextExtractor:
    """
    Pulls the text layer of a page through pypdf's text-showing operator walk.

    Runs are kept in the order the content stream shows them; no spatial
    re-layout is attempted, so multi-column slides may come out interleaved.
    """

    def extract_text(self, document: PdfDocument, page_number: int) -> str:
        runs: list[str] = []

        def visitor(text, _cm, _tm, _font_dict, _font_size):
            runs.append(text)

        try:
            page = document.reader.pages[page_number - 1]
            page.extract_text(visitor_text=visitor)
        except (PyPdfError, KeyError, ValueError, TypeError, AttributeError) as exc:
            # A broken content stream leaves the page to the OCR path.
            logger.warning("Native extraction failed on page %d: %s", page_number, exc)
            return ""

        text = join_runs(runs)
        logger.debug("Page %d: %d native characters from %d runs", page_number, len(text), len(runs))
        return text
