import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_PREFIX = "PITCHTEXT_"


class ExtractionConfig(BaseModel):
    """
    Options for one extraction call.

    Field aliases follow the camelCase names used by upstream callers
    (``rasterScale``, ``ocrLanguage``, ``maxPages`` ...); snake_case names
    are accepted as well.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    raster_scale: float = Field(default=2.0, gt=0, le=8, alias="rasterScale")
    ocr_language: str = Field(default="eng", min_length=1, alias="ocrLanguage")
    max_pages: Optional[int] = Field(default=None, ge=1, alias="maxPages")
    concurrency: int = Field(default=4, ge=1)
    ocr_engine: str = Field(default="tesseract", min_length=1, alias="ocrEngine")
    min_ocr_confidence: float = Field(default=0.25, ge=0, le=1, alias="minOcrConfidence")
    password: Optional[str] = None

    @field_validator("ocr_language", "ocr_engine")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @classmethod
    def from_env(cls, **overrides) -> "ExtractionConfig":
        """
        Build a config from ``PITCHTEXT_*`` environment variables.

        Keyword overrides win over the environment; ``None`` overrides are
        ignored so optional form fields can be passed straight through.
        """
        values = {}
        for name in (
            "raster_scale",
            "ocr_language",
            "max_pages",
            "concurrency",
            "ocr_engine",
            "min_ocr_confidence",
        ):
            raw = os.getenv(ENV_PREFIX + name.upper())
            if raw not in (None, ""):
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
