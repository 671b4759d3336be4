"""
Data Models
===========
Pydantic models for structured DOCX question output.
All output models are serializable to the JSON contract consumed by
the question import UI.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ─── Enums ────────────────────────────────────────────────────────────────────


class QuestionType(str, Enum):
    """Question format, decided by the number of choices found."""
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    FREE_RESPONSE = "FREE_RESPONSE"


class DiagnosticReason(str, Enum):
    """Reasons a block was parsed with low confidence."""
    DUPLICATE_NUMBER = "duplicate-number"
    MISSING_NUMBER = "missing-number"
    NO_NUMBER = "no-number"
    EMPTY_STEM = "empty-stem"
    INCOMPLETE_CHOICES = "incomplete-choices"
    TOO_MANY_CHOICES = "too-many-choices"


# ─── Source Models ────────────────────────────────────────────────────────────


class Line(BaseModel):
    """
    One paragraph-level unit of the document.
    ``markup`` keeps inline formatting, ``plain_text`` is used for matching.
    """
    model_config = ConfigDict(frozen=True)

    markup: str
    plain_text: str


class Block(BaseModel):
    """A contiguous run of lines belonging to one question."""
    declared_number: Optional[int] = None
    lines: list[Line] = Field(default_factory=list)

    @property
    def first_text(self) -> str:
        return self.lines[0].plain_text if self.lines else ""


# ─── Question Models ──────────────────────────────────────────────────────────


class Choice(BaseModel):
    """A labeled candidate answer."""
    key: str = Field(pattern=r"^[A-H]$")
    text: str = ""


class Media(BaseModel):
    """Media reference synthesized from the question index."""
    type: str = "image"
    url: str
    alt: str = ""


class Question(BaseModel):
    """A structured question record, one per block."""
    id: str
    index: int
    type: QuestionType
    category: str
    stem: str
    media: Media
    choices: list[Choice] = Field(default_factory=list)
    answer: str = ""


# ─── Diagnostics ──────────────────────────────────────────────────────────────


class DiagnosticEntry(BaseModel):
    """A note about content parsed with low confidence."""
    index: Optional[int] = None
    reason: DiagnosticReason
    sample: Optional[str] = None
    note: Optional[str] = None

    def model_dump(self, **kwargs):
        data = super().model_dump(**kwargs)
        # index is always reported, even when null
        for key in ("sample", "note"):
            if data.get(key) is None:
                data.pop(key, None)
        return data


class ConversionStats(BaseModel):
    """Per-document counts."""
    model_config = ConfigDict(populate_by_name=True)

    total_blocks: int = Field(default=0, alias="totalBlocks")
    parsed: int = 0
    unparsed: int = 0
    categories: Optional[dict[str, int]] = None

    def model_dump(self, **kwargs):
        kwargs.setdefault("by_alias", True)
        data = super().model_dump(**kwargs)
        if data.get("categories") is None:
            data.pop("categories", None)
        return data


class ConversionResult(BaseModel):
    """
    Complete output of one conversion.
    ``to_payload`` produces the JSON structure returned to callers.
    """
    questions: list[Question] = Field(default_factory=list)
    unparsed: list[DiagnosticEntry] = Field(default_factory=list)
    stats: ConversionStats = Field(default_factory=ConversionStats)

    def to_payload(self, with_diagnostics: bool = True):
        """Full record when diagnostics are requested, else the bare list."""
        questions = [q.model_dump(mode="json") for q in self.questions]
        if not with_diagnostics:
            return questions
        return {
            "questions": questions,
            "unparsed": [d.model_dump(mode="json") for d in self.unparsed],
            "stats": self.stats.model_dump(mode="json"),
        }
