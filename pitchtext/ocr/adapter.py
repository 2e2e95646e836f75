import asyncio
import logging
from typing import Optional

from PIL import Image

from ..exceptions import OCRError, OCRInitError, OCRRecognitionError
from .base import OCREngine, Recognition
from .factory import EngineFactory

logger = logging.getLogger(__name__)


def _close_late_engine(task: "asyncio.Future[OCREngine]") -> None:
    # Startup finished after the caller was cancelled; nobody owns the engine.
    if task.cancelled() or task.exception() is not None:
        return
    task.result().close()


class OCREngineAdapter:
    """
    Owns the OCR session of one extraction call.

    The engine is started lazily on the first OCR request and reused for
    every later page. Recognition calls are serialized because an engine
    handles one bitmap at a time. Use it as an async context manager so
    that ``terminate`` runs on every exit path, cancellation included::

        async with OCREngineAdapter(TesseractEngine, "eng") as ocr:
            recognition = await ocr.recognize(image)
    """

    def __init__(self, engine_factory: EngineFactory, language: str = "eng", min_confidence: float = 0.0):
        self.engine_factory = engine_factory
        self.language = language
        self.min_confidence = min_confidence
        self._engine: Optional[OCREngine] = None
        self._init_error: Optional[OCRInitError] = None
        self._lock = asyncio.Lock()
        self._terminated = False
        self.calls = 0

    @property
    def started(self) -> bool:
        return self._engine is not None

    async def ensure_session(self) -> OCREngine:
        """Start the engine on first use; later calls return the same engine."""
        async with self._lock:
            return await self._ensure_locked()

    async def _ensure_locked(self) -> OCREngine:
        if self._terminated:
            raise OCRInitError("OCR session already terminated")
        if self._engine is not None:
            return self._engine
        if self._init_error is not None:
            # Startup failures are final for the whole document.
            raise self._init_error

        logger.info("Starting OCR session (lang=%s)", self.language)
        task = asyncio.ensure_future(asyncio.to_thread(self.engine_factory, self.language))
        try:
            self._engine = await asyncio.shield(task)
        except asyncio.CancelledError:
            task.add_done_callback(_close_late_engine)
            raise
        except OCRInitError as exc:
            self._init_error = exc
            logger.warning("OCR session unavailable: %s", exc)
            raise
        except Exception as exc:
            self._init_error = OCRInitError(f"OCR engine failed to start: {exc}")
            logger.warning("OCR session unavailable: %s", exc)
            raise self._init_error from exc
        return self._engine

    async def recognize(self, image: Image.Image) -> Recognition:
        """
        Recognize one page bitmap.

        Results that are empty or below ``min_confidence`` come back as
        ``Recognition.empty()``.

        Raises:
            OCRInitError: The engine could not be started.
            OCRRecognitionError: The engine failed on this bitmap.
        """
        async with self._lock:
            engine = await self._ensure_locked()
            self.calls += 1
            try:
                recognition = await asyncio.to_thread(engine.recognize, image)
            except OCRError:
                raise
            except Exception as exc:
                raise OCRRecognitionError(f"OCR engine error: {exc}") from exc

        if not recognition.text.strip():
            return Recognition.empty()
        if recognition.confidence < self.min_confidence:
            logger.debug(
                "Discarding OCR text with confidence %.2f < %.2f",
                recognition.confidence,
                self.min_confidence,
            )
            return Recognition(text="", confidence=recognition.confidence)
        return recognition

    def terminate(self) -> None:
        """Release the engine. A no-op when no session was ever started."""
        self._terminated = True
        engine, self._engine = self._engine, None
        if engine is None:
            return
        logger.info("Terminating OCR session after %d recognition calls", self.calls)
        engine.close()

    async def __aenter__(self) -> "OCREngineAdapter":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.terminate()
