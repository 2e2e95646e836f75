from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel


class ExtractionMethod(str, Enum):
    """How the text of a page was obtained."""

    NATIVE = "Native"
    OCR = "OCR"
    NONE = "None"


class _Frozen(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class PageResult(_Frozen):
    page_number: int = Field(ge=1)
    text: str = ""
    method: ExtractionMethod = ExtractionMethod.NONE
    confidence: Optional[float] = None

    @computed_field(alias="characterCount")
    @property
    def character_count(self) -> int:
        return len(self.text)

    @property
    def used_ocr(self) -> bool:
        return self.method is ExtractionMethod.OCR

    @model_validator(mode="after")
    def _check_method(self) -> "PageResult":
        if self.method is ExtractionMethod.NONE and self.text:
            raise ValueError("pages without an extraction method carry no text")
        if self.method is not ExtractionMethod.NONE and not self.text.strip():
            raise ValueError(f"{self.method.value} pages must carry text")
        return self


class ExtractionStats(_Frozen):
    total_characters: int = 0
    total_words: int = 0
    pages_with_ocr: int = Field(default=0, alias="pagesWithOCR")
    pages_with_no_text: int = 0

    @classmethod
    def from_pages(cls, pages) -> "ExtractionStats":
        return cls(
            total_characters=sum(p.character_count for p in pages),
            # str.split() without arguments yields maximal non-whitespace runs
            total_words=sum(len(p.text.split()) for p in pages),
            pages_with_ocr=sum(1 for p in pages if p.method is ExtractionMethod.OCR),
            pages_with_no_text=sum(1 for p in pages if p.method is ExtractionMethod.NONE),
        )


class DocumentMetadata(_Frozen):
    title: Optional[str] = None
    author: Optional[str] = None
    subject: Optional[str] = None
    creator: Optional[str] = None
    producer: Optional[str] = None


def page_marker(page: PageResult) -> str:
    suffix = " (OCR)" if page.used_ocr else ""
    return f"--- Page {page.page_number}{suffix} ---"


def join_pages(pages) -> str:
    """Concatenate page texts, each block headed by its page marker."""
    blocks = [f"{page_marker(p)}\n{p.text}" for p in pages if p.method is not ExtractionMethod.NONE]
    return "\n\n".join(blocks)


class DocumentResult(_Frozen):
    """
    Page-indexed text of one PDF.

    Pages are always stored in ascending order and numbered 1..page_count
    without gaps; ``stats`` is derived from them. Use :meth:`build` rather
    than the constructor so that the derived fields stay consistent.
    """

    page_count: int = Field(ge=1)
    pages: tuple[PageResult, ...]
    full_text: str
    stats: ExtractionStats
    source_page_count: int = Field(ge=1)
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    file_name: Optional[str] = None
    extracted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    extraction_time: float = 0.0

    @model_validator(mode="after")
    def _check_consistency(self) -> "DocumentResult":
        if self.page_count != len(self.pages):
            raise ValueError(f"page_count={self.page_count} but {len(self.pages)} pages given")
        numbers = [p.page_number for p in self.pages]
        if numbers != list(range(1, self.page_count + 1)):
            raise ValueError(f"page numbers must run 1..{self.page_count} in order, got {numbers}")
        if self.source_page_count < self.page_count:
            raise ValueError("source_page_count cannot be smaller than page_count")
        if self.stats.total_characters != sum(p.character_count for p in self.pages):
            raise ValueError("stats.total_characters does not match the pages")
        return self

    @classmethod
    def build(cls, pages, *, source_page_count: Optional[int] = None, **extra) -> "DocumentResult":
        ordered = tuple(sorted(pages, key=lambda p: p.page_number))
        return cls(
            page_count=len(ordered),
            pages=ordered,
            full_text=join_pages(ordered),
            stats=ExtractionStats.from_pages(ordered),
            source_page_count=source_page_count or len(ordered),
            **extra,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready record for the persistence layer."""
        return self.model_dump(mode="json", by_alias=True)
