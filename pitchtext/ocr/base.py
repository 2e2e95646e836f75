from abc import ABC, abstractmethod
from dataclasses import dataclass

from PIL import Image


@dataclass(frozen=True)
class Recognition:
    """Text recognized on one bitmap and the engine's confidence (0..1)."""

    text: str
    confidence: float

    @classmethod
    def empty(cls) -> "Recognition":
        return cls(text="", confidence=0.0)


class OCREngine(ABC):
    """
    A started recognition engine.

    Constructing an engine pays its startup cost (loading models, checking
    language data) and raises ``OCRInitError`` when that fails. One instance
    serves every OCR page of a single document and is not safe for
    concurrent ``recognize`` calls.
    """

    name = "base"

    def __init__(self, language: str):
        self.language = language

    @abstractmethod
    def recognize(self, image: Image.Image) -> Recognition:
        """
        Run recognition on a page bitmap.

        Returns:
            The recognized text and mean confidence. An empty page yields
            ``Recognition.empty()``, not an error.

        Raises:
            OCRRecognitionError: The engine failed internally.
        """
        ...

    def close(self) -> None:
        """Release engine resources. Safe to call more than once."""
