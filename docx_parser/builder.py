"""
Question Builder
================
Assembles the output Question for a classified block and flags blocks
that look malformed.
"""

from __future__ import annotations

import logging

from .models import (
    Block,
    DiagnosticEntry,
    DiagnosticReason,
    Media,
    Question,
    QuestionType,
)
from .state_machine import BlockClassification

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_MEDIA_URL_TEMPLATE = "/images/2018/B/q{index}.png"

# Fixed policy thresholds
MIN_STEM_CHARS = 3
MAX_CHOICES = 8

NO_NUMBER_SAMPLE_CHARS = 120
EMPTY_STEM_SAMPLE_CHARS = 140
CHOICE_SAMPLE_CHARS = 100


class QuestionBuilder:
    """
    Builds one Question per block.

    The extracted answer is deliberately not copied to the output record;
    ``answer`` is always the empty string.
    """

    def __init__(
        self,
        category: str = DEFAULT_CATEGORY,
        media_url_template: str = DEFAULT_MEDIA_URL_TEMPLATE,
    ):
        self.category = category
        self.media_url_template = media_url_template

    def build(
        self,
        block: Block,
        position: int,
        classification: BlockClassification,
    ) -> tuple[Question, list[DiagnosticEntry]]:
        """
        Args:
            block: The source block.
            position: 0-based position of the block in the document.
            classification: Classifier output for the block.

        Returns:
            The Question and the diagnostics raised for this block.
        """
        choices = classification.choices
        index = (
            block.declared_number
            if block.declared_number is not None
            else position + 1
        )
        question_type = (
            QuestionType.MULTIPLE_CHOICE
            if len(choices) >= 2
            else QuestionType.FREE_RESPONSE
        )

        question = Question(
            id=f"Q{index}",
            index=index,
            type=question_type,
            category=self.category,
            stem=classification.stem,
            media=Media(
                type="image",
                url=self.media_url_template.format(index=index),
                alt="",
            ),
            choices=list(choices),
            answer="",
        )

        diagnostics = self._diagnose(block, index, classification)
        return question, diagnostics

    def _diagnose(
        self,
        block: Block,
        index: int,
        classification: BlockClassification,
    ) -> list[DiagnosticEntry]:
        entries: list[DiagnosticEntry] = []
        choices = classification.choices

        if block.declared_number is None:
            entries.append(DiagnosticEntry(
                index=None,
                reason=DiagnosticReason.NO_NUMBER,
                sample=block.first_text[:NO_NUMBER_SAMPLE_CHARS],
            ))

        if len("".join(classification.stem.split())) < MIN_STEM_CHARS:
            entries.append(DiagnosticEntry(
                index=index,
                reason=DiagnosticReason.EMPTY_STEM,
                sample=" ".join(
                    line.plain_text for line in block.lines
                )[:EMPTY_STEM_SAMPLE_CHARS],
            ))

        if len(choices) == 1:
            entries.append(DiagnosticEntry(
                index=index,
                reason=DiagnosticReason.INCOMPLETE_CHOICES,
                note="found 1 choice",
                sample=choices[0].text[:CHOICE_SAMPLE_CHARS],
            ))

        if len(choices) > MAX_CHOICES:
            entries.append(DiagnosticEntry(
                index=index,
                reason=DiagnosticReason.TOO_MANY_CHOICES,
                note=str(len(choices)),
            ))

        for entry in entries:
            logger.debug(f"Q{index}: {entry.reason.value}")

        if classification.answer is None and len(choices) >= 2:
            logger.debug(f"Q{index}: no answer key found")

        return entries
