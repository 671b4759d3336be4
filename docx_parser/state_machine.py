"""
Block Classifier
================
Deterministic state machine that splits one question block into a stem,
labeled choices and an optional answer key.

The state is an immutable ClassifierState value; ``transition`` maps
(state, line, position) to the next state. Line dispatch is tested in
priority order: choice > answer > first line > continuation.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from .markup import (
    clean_choice_markup,
    join_stem_parts,
    strip_leading_prefix,
    to_plain_text,
)
from .models import Block, Choice, Line
from .segmenter import NUMBER_PREFIX_PATTERN

logger = logging.getLogger(__name__)

# ─── Anchor Patterns ──────────────────────────────────────────────────────────

# Matches "A. foo", "B) bar", "C . baz"
CHOICE_PATTERN = re.compile(r"^\s*([A-H])\s*[.)]\s+(.*)$")
CHOICE_PREFIX_PATTERN = re.compile(r"^\s*[A-H]\s*[.)]\s+")

# Matches "Answer: B", "Ans - 12", "Correct Answer: C"
ANSWER_PATTERN = re.compile(
    r"^\s*(?:Answer|Ans|Correct Answer)\s*[:\-]\s*(.+)\s*$", re.IGNORECASE
)

ANSWER_LETTER_PATTERN = re.compile(r"^[A-H]\b", re.IGNORECASE)


class LineKind(Enum):
    """How a line is consumed by the classifier."""
    CHOICE = "CHOICE"
    ANSWER = "ANSWER"
    FIRST = "FIRST"
    CONTINUATION = "CONTINUATION"


@dataclass(frozen=True)
class ClassifierState:
    """
    Accumulated classification of a block.
    ``active_choice`` indexes the choice receiving continuation text;
    None means continuation text goes to the stem.
    """
    stem_parts: tuple[str, ...] = ()
    choices: tuple[Choice, ...] = ()
    answer: Optional[str] = None
    active_choice: Optional[int] = None


@dataclass
class BlockClassification:
    """Final classifier output for one block."""
    stem: str
    stem_markup: str
    choices: list[Choice] = field(default_factory=list)
    answer: Optional[str] = None


def normalize_answer(raw: str) -> str:
    """A leading choice letter wins; otherwise the collapsed remainder."""
    text = raw.strip()
    match = ANSWER_LETTER_PATTERN.match(text)
    if match:
        return match.group(0).upper()
    return re.sub(r"\s+", " ", text)


def classify_line(line: Line, position: int) -> LineKind:
    text = line.plain_text.strip()
    if CHOICE_PATTERN.match(text):
        return LineKind.CHOICE
    if ANSWER_PATTERN.match(text):
        return LineKind.ANSWER
    if position == 0:
        return LineKind.FIRST
    return LineKind.CONTINUATION


def transition(state: ClassifierState, line: Line, position: int) -> ClassifierState:
    kind = classify_line(line, position)
    text = line.plain_text.strip()

    if kind is LineKind.CHOICE:
        key = CHOICE_PATTERN.match(text).group(1).upper()
        markup = strip_leading_prefix(line.markup, CHOICE_PREFIX_PATTERN)
        choice = Choice(key=key, text=clean_choice_markup(markup))
        return replace(
            state,
            choices=state.choices + (choice,),
            active_choice=len(state.choices),
        )

    if kind is LineKind.ANSWER:
        raw = ANSWER_PATTERN.match(text).group(1)
        return replace(state, answer=normalize_answer(raw), active_choice=None)

    if kind is LineKind.FIRST:
        markup = strip_leading_prefix(line.markup, NUMBER_PREFIX_PATTERN)
        return replace(
            state,
            stem_parts=state.stem_parts + (markup,),
            active_choice=None,
        )

    if state.active_choice is not None:
        current = state.choices[state.active_choice]
        updated = current.model_copy(
            update={"text": f"{current.text} {line.markup}".strip()}
        )
        choices = list(state.choices)
        choices[state.active_choice] = updated
        return replace(state, choices=tuple(choices))

    return replace(state, stem_parts=state.stem_parts + (line.markup,))


class BlockClassifier:
    """Runs the transition function over every line of a block."""

    def classify(self, block: Block) -> BlockClassification:
        state = ClassifierState()
        for position, line in enumerate(block.lines):
            state = transition(state, line, position)

        stem_markup = join_stem_parts(list(state.stem_parts))
        stem = to_plain_text(stem_markup, break_text="")

        logger.debug(
            f"Block {block.declared_number}: {len(state.choices)} choice(s), "
            f"answer={state.answer!r}"
        )

        return BlockClassification(
            stem=stem,
            stem_markup=stem_markup,
            choices=list(state.choices),
            answer=state.answer,
        )
