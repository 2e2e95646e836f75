from __future__ import annotations

import io
import shutil
import threading
import time
from typing import Optional, Sequence

import pytest
from PIL import Image, ImageDraw, ImageFont
from pypdf import PdfWriter
from pypdf.generic import DecodedStreamObject, DictionaryObject, NameObject

from pitchtext.exceptions import OCRInitError, OCRRecognitionError, PageRenderError
from pitchtext.ocr.base import OCREngine, Recognition
from pitchtext.rendering import PageRenderer

HAS_TESSERACT = shutil.which("tesseract") is not None
HAS_POPPLER = shutil.which("pdftoppm") is not None and shutil.which("pdfinfo") is not None

requires_poppler = pytest.mark.skipif(not HAS_POPPLER, reason="poppler-utils not installed")
requires_ocr_binaries = pytest.mark.skipif(
    not (HAS_TESSERACT and HAS_POPPLER), reason="tesseract and poppler-utils required"
)


def build_pdf(
    pages: Sequence[Optional[str]],
    *,
    title: Optional[str] = None,
    author: Optional[str] = None,
    password: Optional[str] = None,
) -> bytes:
    """
    Build a PDF where each entry is one page.

    A string becomes a Helvetica text layer; ``None`` leaves the page blank
    (no text-showing operators), which forces the OCR path.
    """
    writer = PdfWriter()
    font_dict = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Font"),
            NameObject("/Subtype"): NameObject("/Type1"),
            NameObject("/BaseFont"): NameObject("/Helvetica"),
        }
    )
    font_ref = writer._add_object(font_dict)

    for text in pages:
        page = writer.add_blank_page(width=612, height=792)
        if text is None:
            continue
        page[NameObject("/Resources")] = DictionaryObject(
            {NameObject("/Font"): DictionaryObject({NameObject("/F1"): font_ref})}
        )
        stream = DecodedStreamObject()
        stream.set_data(f"BT /F1 24 Tf 72 700 Td ({text}) Tj ET".encode("latin-1"))
        page[NameObject("/Contents")] = writer._add_object(stream)

    metadata = {}
    if title:
        metadata["/Title"] = title
    if author:
        metadata["/Author"] = author
    if metadata:
        writer.add_metadata(metadata)
    if password:
        writer.encrypt(password)

    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def build_image_pdf(text: str) -> bytes:
    """A single page that is only a raster image of ``text``."""
    image = Image.new("RGB", (1200, 400), "white")
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default(size=120)
    draw.text((80, 120), text, fill="black", font=font)
    buffer = io.BytesIO()
    image.save(buffer, format="PDF", resolution=150)
    return buffer.getvalue()


class FakeEngine(OCREngine):
    name = "fake"

    def __init__(self, language: str, owner: "FakeEngineFactory"):
        super().__init__(language)
        self.owner = owner
        self.closed = False
        self._active = 0
        self._guard = threading.Lock()

    def recognize(self, image: Image.Image) -> Recognition:
        with self._guard:
            self._active += 1
            self.owner.max_active = max(self.owner.max_active, self._active)
        try:
            self.owner.calls += 1
            if self.owner.block:
                self.owner.release.wait(timeout=5)
            else:
                time.sleep(self.owner.delay)
            if self.owner.fail:
                raise OCRRecognitionError("engine exploded")
            return Recognition(text=self.owner.text, confidence=self.owner.confidence)
        finally:
            with self._guard:
                self._active -= 1

    def close(self) -> None:
        self.closed = True
        self.owner.closed += 1
        self.owner.release.set()


class FakeEngineFactory:
    """Stands in for an engine class; counts starts, calls and closes."""

    def __init__(
        self,
        text: str = "Scanned slide text",
        confidence: float = 0.92,
        *,
        fail: bool = False,
        fail_init: bool = False,
        block: bool = False,
        delay: float = 0.0,
    ):
        self.text = text
        self.confidence = confidence
        self.fail = fail
        self.fail_init = fail_init
        self.block = block
        self.delay = delay
        self.release = threading.Event()
        self.started = 0
        self.calls = 0
        self.closed = 0
        self.max_active = 0
        self.languages: list[str] = []

    def __call__(self, language: str) -> FakeEngine:
        self.started += 1
        self.languages.append(language)
        if self.fail_init:
            raise OCRInitError("missing language data")
        return FakeEngine(language, self)


class FakeRenderer(PageRenderer):
    """Real ``open`` with a rasterizer that needs no poppler."""

    def __init__(self, failing_pages=(), delays=None):
        self.failing_pages = set(failing_pages)
        self.delays = delays or {}
        self.rasterized: list[int] = []
        self.scales: list[float] = []

    def rasterize(self, document, page_number, scale=2.0):
        time.sleep(self.delays.get(page_number, 0))
        self.rasterized.append(page_number)
        self.scales.append(scale)
        if page_number in self.failing_pages:
            raise PageRenderError(f"cannot render page {page_number}", page_number=page_number)
        return Image.new("RGB", (20, 20), "white")


@pytest.fixture()
def hello_pdf() -> bytes:
    return build_pdf(["Hello World"], title="Seed Deck", author="Founders")


@pytest.fixture()
def mixed_pdf() -> bytes:
    """Pages 1, 3, 5 carry text; pages 2 and 4 are blank."""
    return build_pdf(["Problem", None, "Solution", None, "Team"])


@pytest.fixture()
def blank_pdf() -> bytes:
    return build_pdf([None, None])


@pytest.fixture()
def engine_factory() -> FakeEngineFactory:
    return FakeEngineFactory()


@pytest.fixture()
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()
