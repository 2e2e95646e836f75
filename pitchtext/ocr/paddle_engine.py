import logging

from PIL import Image

from ..exceptions import OCRInitError, OCRRecognitionError
from .base import OCREngine, Recognition

logger = logging.getLogger(__name__)

# Tesseract-style codes used in the config mapped to PaddleOCR's names.
PADDLE_LANGUAGES = {
    "eng": "en",
    "deu": "german",
    "fra": "french",
    "spa": "es",
    "chi_sim": "ch",
}


class PaddleEngine(OCREngine):
    """
    OCR engine using PaddleOCR.

    The PaddleOCR instance loads its detection and recognition models once
    (downloading them on first run) and is reused for every page.
    """

    name = "paddle"

    def __init__(self, language: str):
        super().__init__(language)
        lang = PADDLE_LANGUAGES.get(language, language)
        try:
            import numpy as np
            from paddleocr import PaddleOCR
        except ImportError as exc:
            raise OCRInitError(
                "PaddleOCR is not installed; install the 'paddle' extra"
            ) from exc

        self._np = np
        try:
            self.ocr = PaddleOCR(use_angle_cls=True, lang=lang, show_log=False)
        except (AssertionError, ValueError, RuntimeError, OSError) as exc:
            raise OCRInitError(f"PaddleOCR failed to start (lang={lang}): {exc}") from exc
        logger.info("PaddleOCR ready (lang=%s)", lang)

    def recognize(self, image: Image.Image) -> Recognition:
        if self.ocr is None:
            raise OCRRecognitionError("PaddleOCR session already closed")

        img_array = self._np.array(image)
        try:
            result = self.ocr.ocr(img_array)
        except (RuntimeError, ValueError, MemoryError) as exc:
            raise OCRRecognitionError(f"PaddleOCR recognition failed: {exc}") from exc

        page_lines: list[str] = []
        scores: list[float] = []
        if result and result[0]:
            for line in result[0]:
                text, score = line[1]  # (text, confidence)
                if text and text.strip():
                    page_lines.append(text.strip())
                    scores.append(float(score))

        if not page_lines:
            return Recognition.empty()
        return Recognition(text="\n".join(page_lines), confidence=sum(scores) / len(scores))

    def close(self) -> None:
        self.ocr = None
