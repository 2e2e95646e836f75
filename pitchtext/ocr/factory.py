from typing import Callable

from .base import OCREngine
from .paddle_engine import PaddleEngine
from .tesseract_engine import TesseractEngine

EngineFactory = Callable[[str], OCREngine]

ENGINES: dict[str, EngineFactory] = {
    "tesseract": TesseractEngine,
    "paddle": PaddleEngine,
}


def available_engines() -> list[str]:
    return sorted(ENGINES)


def get_engine_factory(engine_name: str) -> EngineFactory:
    """
    Return the constructor for the requested OCR engine.

    Args:
        engine_name: One of 'tesseract', 'paddle'.

    Returns:
        A callable taking the OCR language and returning a started engine.

    Raises:
        ValueError: If the engine name is not recognized.
    """
    if engine_name not in ENGINES:
        raise ValueError(
            f"Unknown engine: '{engine_name}'. "
            f"Supported engines: {', '.join(ENGINES.keys())}"
        )

    return ENGINES[engine_name]
