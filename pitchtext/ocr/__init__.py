from .adapter import OCREngineAdapter
from .base import OCREngine, Recognition
from .factory import available_engines, get_engine_factory

__all__ = [
    "OCREngineAdapter",
    "OCREngine",
    "Recognition",
    "available_engines",
    "get_engine_factory",
]
