import logging

import pytesseract
from PIL import Image
from pytesseract import Output, TesseractError, TesseractNotFoundError

from ..exceptions import OCRInitError, OCRRecognitionError
from .base import OCREngine, Recognition

logger = logging.getLogger(__name__)


class TesseractEngine(OCREngine):
    """
    OCR engine using Tesseract (local binary via pytesseract).

    Uses --psm 4 (single column of variable-size text) so that slide text
    is read row by row instead of column by column.

    Tesseract runs as one subprocess per call, so the "session" is the
    verified binary plus language data rather than a resident worker.
    """

    name = "tesseract"
    DEFAULT_CONFIG = r"--psm 4"

    def __init__(self, language: str, config: str = DEFAULT_CONFIG, timeout: float = 0):
        super().__init__(language)
        self.config = config
        self.timeout = timeout

        try:
            self.version = pytesseract.get_tesseract_version()
            installed = set(pytesseract.get_languages(config=""))
        except TesseractNotFoundError as exc:
            raise OCRInitError(f"Tesseract binary not found: {exc}") from exc
        except (TesseractError, OSError) as exc:
            raise OCRInitError(f"Tesseract failed to start: {exc}") from exc

        missing = [lang for lang in language.split("+") if lang not in installed]
        if missing:
            raise OCRInitError(
                f"Missing Tesseract language data: {', '.join(missing)}. "
                f"Installed: {', '.join(sorted(installed)) or 'none'}"
            )
        logger.info("Tesseract %s ready (lang=%s)", self.version, language)

    def recognize(self, image: Image.Image) -> Recognition:
        try:
            data = pytesseract.image_to_data(
                image,
                lang=self.language,
                config=self.config,
                timeout=self.timeout,
                output_type=Output.DICT,
            )
        except (TesseractError, TesseractNotFoundError, RuntimeError) as exc:
            raise OCRRecognitionError(f"Tesseract recognition failed: {exc}") from exc
        return words_to_recognition(data)


def words_to_recognition(data: dict) -> Recognition:
    """
    Rebuild line-ordered text from ``image_to_data`` output.

    Words sharing (block, paragraph, line) are joined with spaces; lines are
    joined with newlines. Confidence is the mean word confidence scaled to 0..1.
    """
    lines: dict[tuple, list[str]] = {}
    confidences: list[float] = []

    for i, word in enumerate(data.get("text", [])):
        word = (word or "").strip()
        conf = float(data["conf"][i])
        if not word or conf < 0:
            continue
        key = (data["page_num"][i], data["block_num"][i], data["par_num"][i], data["line_num"][i])
        lines.setdefault(key, []).append(word)
        confidences.append(conf)

    if not confidences:
        return Recognition.empty()

    text = "\n".join(" ".join(words) for words in lines.values())
    return Recognition(text=text, confidence=sum(confidences) / len(confidences) / 100.0)
