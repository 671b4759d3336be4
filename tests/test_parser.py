"""
Test Suite for DOCX Question Parser
===================================
Unit and integration tests for the conversion pipeline components.
"""

from __future__ import annotations

import json

import pytest

from docx_parser.auditor import NumberingAuditor
from docx_parser.builder import QuestionBuilder
from docx_parser.engine import ConversionEngine, ConverterConfig
from docx_parser.line_extractor import LineExtractor
from docx_parser.markup import (
    clean_choice_markup,
    join_stem_parts,
    strip_leading_prefix,
    to_plain_text,
)
from docx_parser.models import (
    Block,
    Choice,
    ConversionStats,
    DiagnosticEntry,
    DiagnosticReason,
    Line,
    QuestionType,
)
from docx_parser.segmenter import (
    NUMBER_PREFIX_PATTERN,
    BlockSegmenter,
    match_block_marker,
)
from docx_parser.state_machine import (
    ANSWER_PATTERN,
    CHOICE_PATTERN,
    CHOICE_PREFIX_PATTERN,
    BlockClassifier,
    ClassifierState,
    LineKind,
    classify_line,
    normalize_answer,
    transition,
)
from docx_parser.validator import DiagnosticsAggregator


def _line(text: str, markup: str | None = None) -> Line:
    return Line(markup=text if markup is None else markup, plain_text=text)


def _block(texts: list[str], number: int | None = None) -> Block:
    return Block(declared_number=number, lines=[_line(t) for t in texts])


@pytest.fixture
def engine():
    return ConversionEngine(ConverterConfig(log_level="WARNING"))


# ═══════════════════════════════════════════════════════════════════════════════
# MARKUP TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestMarkup:
    """Test markup helpers."""

    def test_plain_text_detags_and_collapses(self):
        assert to_plain_text("x<sup>2</sup>\t\t+  <em>y</em>") == "x2 + y"

    def test_plain_text_breaks_become_spaces(self):
        assert to_plain_text("first<br/>second<br />third") == "first second third"

    def test_plain_text_empty(self):
        assert to_plain_text("") == ""
        assert to_plain_text("<br />") == ""

    def test_clean_choice_flattens_bold_and_breaks(self):
        assert clean_choice_markup("<strong>Paris</strong><br/>France") == "Paris France"

    def test_clean_choice_flattens_table_row(self):
        markup = "<table><tr><td>42</td></tr></table>"
        assert clean_choice_markup(markup) == "42"

    def test_clean_choice_nested_wrappers(self):
        markup = "<strong><em>H</em><sub>2</sub>O</strong>"
        assert clean_choice_markup(markup) == "H2O"

    def test_strip_prefix_from_raw_markup(self):
        assert strip_leading_prefix("12) What <em>is</em> it?", NUMBER_PREFIX_PATTERN) == (
            "What <em>is</em> it?"
        )

    def test_strip_prefix_hidden_in_tags(self):
        markup = "<strong>1.</strong> What <em>is</em> it?"
        assert strip_leading_prefix(markup, NUMBER_PREFIX_PATTERN) == (
            "What <em>is</em> it?"
        )

    def test_strip_prefix_followed_by_break(self):
        assert strip_leading_prefix("A.<br />red", CHOICE_PREFIX_PATTERN) == "red"
        assert strip_leading_prefix("1.<br />What is it?", NUMBER_PREFIX_PATTERN) == (
            "What is it?"
        )

    def test_plain_text_breaks_dropped(self):
        assert to_plain_text("Essay question.<br/>Write", break_text="") == (
            "Essay question.Write"
        )

    def test_strip_prefix_no_match_leaves_markup(self):
        markup = "No number <em>here</em>"
        assert strip_leading_prefix(markup, NUMBER_PREFIX_PATTERN) == markup

    def test_join_stem_collapses_excess_breaks(self):
        joined = join_stem_parts(["a", "", "", "", "b"])
        assert joined == "a<br/><br/>b"

    def test_join_stem_keeps_double_break(self):
        assert join_stem_parts(["a", "", "b"]) == "a<br/><br/>b"


# ═══════════════════════════════════════════════════════════════════════════════
# LINE EXTRACTOR TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestLineExtractor:
    """Test line extraction from paragraph fragments."""

    def test_preserves_order_and_markup(self):
        lines = LineExtractor().extract(["1. x<sup>2</sup>", "A. <em>two</em>"])
        assert [ln.markup for ln in lines] == ["1. x<sup>2</sup>", "A. <em>two</em>"]
        assert [ln.plain_text for ln in lines] == ["1. x2", "A. two"]

    def test_drops_fully_empty_paragraphs(self):
        lines = LineExtractor().extract(["1. Q", "", "   ", None, "A. a"])
        assert [ln.plain_text for ln in lines] == ["1. Q", "A. a"]

    def test_keeps_markup_only_paragraph(self):
        lines = LineExtractor().extract(["<br />"])
        assert len(lines) == 1
        assert lines[0].plain_text == ""

    def test_extract_text_escapes(self):
        lines = LineExtractor().extract_text(["1. Is 2 < 3?"])
        assert lines[0].markup == "1. Is 2 &lt; 3?"
        assert lines[0].plain_text == "1. Is 2 < 3?"

    def test_line_is_frozen(self):
        line = _line("text")
        with pytest.raises(Exception):
            line.markup = "changed"


# ═══════════════════════════════════════════════════════════════════════════════
# REGEX PATTERN TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestAnchorPatterns:
    """Test regex patterns for structural anchors."""

    def test_block_marker(self):
        assert match_block_marker("1. What?") == (True, 1)
        assert match_block_marker("12) What?") == (True, 12)
        assert match_block_marker("  7 . Spaced") == (True, 7)
        assert match_block_marker("007. Padded").number == 7

        assert not match_block_marker("1234. Too long").is_new_block
        assert not match_block_marker("12.5 apples").is_new_block
        assert not match_block_marker("1.").is_new_block
        assert not match_block_marker("A. choice").is_new_block
        assert match_block_marker("Plain text").number is None

    def test_choice_patterns(self):
        assert CHOICE_PATTERN.match("A. foo")
        assert CHOICE_PATTERN.match("H) bar")
        assert CHOICE_PATTERN.match("C . baz")

        assert not CHOICE_PATTERN.match("I. out of range")
        assert not CHOICE_PATTERN.match("a. lowercase")
        assert not CHOICE_PATTERN.match("A.no space")

    def test_answer_patterns(self):
        assert ANSWER_PATTERN.match("Answer: B")
        assert ANSWER_PATTERN.match("answer - 12")
        assert ANSWER_PATTERN.match("Ans:C")
        assert ANSWER_PATTERN.match("CORRECT ANSWER: D")

        assert not ANSWER_PATTERN.match("Answer:")
        assert not ANSWER_PATTERN.match("Answer B")
        assert not ANSWER_PATTERN.match("The answer: B")


# ═══════════════════════════════════════════════════════════════════════════════
# BLOCK SEGMENTER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestBlockSegmenter:
    """Test block segmentation."""

    def test_splits_on_numbering(self):
        lines = [_line(t) for t in ["1. One", "A. a", "2. Two", "more"]]
        blocks = BlockSegmenter().segment(lines)
        assert [b.declared_number for b in blocks] == [1, 2]
        assert [len(b.lines) for b in blocks] == [2, 2]

    def test_preamble_discarded(self):
        lines = [_line(t) for t in ["Exam Title", "Instructions", "1. First"]]
        blocks = BlockSegmenter().segment(lines)
        assert len(blocks) == 1
        assert blocks[0].first_text == "1. First"

    def test_trailing_blank_lines_stripped(self):
        lines = [
            _line("1. One"),
            _line("", markup="<br />"),
            _line("", markup="<br />"),
            _line("2. Two"),
        ]
        blocks = BlockSegmenter().segment(lines)
        assert len(blocks[0].lines) == 1

    def test_inner_blank_lines_kept(self):
        lines = [_line("1. One"), _line("", markup="<br />"), _line("tail")]
        blocks = BlockSegmenter().segment(lines)
        assert len(blocks[0].lines) == 3

    def test_fallback_wraps_unnumbered_document(self):
        lines = [_line(t) for t in ["Describe photosynthesis.", "Use diagrams."]]
        blocks = BlockSegmenter().segment(lines)
        assert len(blocks) == 1
        assert blocks[0].declared_number is None
        assert blocks[0].lines == lines

    def test_empty_input(self):
        assert BlockSegmenter().segment([]) == []

    def test_segmenter_reusable(self):
        segmenter = BlockSegmenter()
        segmenter.segment([_line("1. One")])
        blocks = segmenter.segment([_line("2. Two")])
        assert [b.declared_number for b in blocks] == [2]


# ═══════════════════════════════════════════════════════════════════════════════
# NUMBERING AUDITOR TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestNumberingAuditor:
    """Test duplicate and gap detection."""

    def test_clean_sequence(self):
        blocks = [_block(["q"], n) for n in (1, 2, 3)]
        assert NumberingAuditor().audit(blocks) == []

    def test_gap_detection(self):
        blocks = [_block(["q"], n) for n in (1, 3)]
        entries = NumberingAuditor().audit(blocks)
        assert len(entries) == 1
        assert entries[0].reason == DiagnosticReason.MISSING_NUMBER
        assert entries[0].index == 2

    def test_multiple_gaps_ascending(self):
        blocks = [_block(["q"], n) for n in (6, 2)]
        entries = NumberingAuditor().audit(blocks)
        assert [e.index for e in entries] == [3, 4, 5]

    def test_duplicate_detection(self):
        blocks = [_block(["q"], n) for n in (5, 5, 5)]
        entries = NumberingAuditor().audit(blocks)
        assert len(entries) == 1
        assert entries[0].reason == DiagnosticReason.DUPLICATE_NUMBER
        assert entries[0].index == 5

    def test_duplicates_before_gaps(self):
        blocks = [_block(["q"], n) for n in (1, 4, 4)]
        entries = NumberingAuditor().audit(blocks)
        assert [(e.reason, e.index) for e in entries] == [
            (DiagnosticReason.DUPLICATE_NUMBER, 4),
            (DiagnosticReason.MISSING_NUMBER, 2),
            (DiagnosticReason.MISSING_NUMBER, 3),
        ]

    def test_unnumbered_blocks_ignored(self):
        assert NumberingAuditor().audit([_block(["q"], None)]) == []


# ═══════════════════════════════════════════════════════════════════════════════
# BLOCK CLASSIFIER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestClassifierTransitions:
    """Test line dispatch order and state transitions."""

    def test_dispatch_priority(self):
        assert classify_line(_line("A. foo"), 0) == LineKind.CHOICE
        assert classify_line(_line("Answer: B"), 0) == LineKind.ANSWER
        assert classify_line(_line("1. Stem"), 0) == LineKind.FIRST
        assert classify_line(_line("more stem"), 3) == LineKind.CONTINUATION

    def test_choice_sets_active(self):
        state = transition(ClassifierState(), _line("B) bar"), 1)
        assert state.choices == (Choice(key="B", text="bar"),)
        assert state.active_choice == 0

    def test_choice_strips_markup_prefix(self):
        line = _line("A. Paris France", markup="<strong>A.</strong> Paris<br/>France")
        state = transition(ClassifierState(), line, 1)
        assert state.choices[0].text == "Paris France"

    def test_continuation_goes_to_active_choice(self):
        state = transition(ClassifierState(), _line("A. red"), 1)
        state = transition(state, _line("and <em>blue</em>"), 2)
        assert state.choices[0].text == "red and <em>blue</em>"
        assert state.stem_parts == ()

    def test_answer_clears_active_choice(self):
        state = transition(ClassifierState(), _line("A. red"), 1)
        state = transition(state, _line("Answer: a"), 2)
        assert state.answer == "A"
        assert state.active_choice is None
        state = transition(state, _line("trailing note"), 3)
        assert state.stem_parts == ("trailing note",)

    def test_first_line_strips_number(self):
        state = transition(ClassifierState(), _line("3) Name <em>it</em>"), 0)
        assert state.stem_parts == ("Name <em>it</em>",)

    def test_transition_does_not_mutate(self):
        start = ClassifierState()
        transition(start, _line("A. x"), 1)
        assert start.choices == ()

    def test_normalize_answer(self):
        assert normalize_answer("b) because") == "B"
        assert normalize_answer("C") == "C"
        assert normalize_answer("Because it is") == "Because it is"
        assert normalize_answer("  12   apples ") == "12 apples"


class TestBlockClassifier:
    """Test whole-block classification."""

    def test_multiple_choice_block(self):
        block = _block(["1. What is 2+2?", "A. 3", "B. 4", "Answer: B"], 1)
        result = BlockClassifier().classify(block)
        assert result.stem == "What is 2+2?"
        assert [c.key for c in result.choices] == ["A", "B"]
        assert [c.text for c in result.choices] == ["3", "4"]
        assert result.answer == "B"

    def test_multiline_stem(self):
        block = _block(["1. Essay question.", "Write 500 words."], 1)
        result = BlockClassifier().classify(block)
        assert result.stem == "Essay question.Write 500 words."
        assert result.stem_markup == "Essay question.<br/>Write 500 words."
        assert result.choices == []

    def test_duplicate_and_unordered_keys(self):
        block = _block(["1. Pick", "C. c", "A. a", "A. again"], 1)
        result = BlockClassifier().classify(block)
        assert [c.key for c in result.choices] == ["C", "A", "A"]

    def test_first_line_choice_in_unnumbered_block(self):
        result = BlockClassifier().classify(_block(["A. only one"]))
        assert result.stem == ""
        assert [c.key for c in result.choices] == ["A"]


# ═══════════════════════════════════════════════════════════════════════════════
# QUESTION BUILDER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestQuestionBuilder:
    """Test output records and per-block diagnostics."""

    def _build(self, texts, number=None, position=0, **kwargs):
        block = _block(texts, number)
        classification = BlockClassifier().classify(block)
        return QuestionBuilder(**kwargs).build(block, position, classification)

    def test_record_fields(self):
        question, entries = self._build(
            ["7. What is 2+2?", "A. 3", "B. 4", "Answer: B"], number=7
        )
        assert question.id == "Q7"
        assert question.index == 7
        assert question.type == QuestionType.MULTIPLE_CHOICE
        assert question.category == "Uncategorized"
        assert question.media.url == "/images/2018/B/q7.png"
        assert question.media.alt == ""
        assert question.answer == ""
        assert entries == []

    def test_positional_index_without_number(self):
        question, entries = self._build(["Describe the water cycle."], position=2)
        assert question.index == 3
        assert question.id == "Q3"
        assert [e.reason for e in entries] == [DiagnosticReason.NO_NUMBER]
        assert entries[0].index is None
        assert entries[0].sample == "Describe the water cycle."

    def test_no_number_sample_truncated(self):
        _, entries = self._build(["x" * 300])
        assert len(entries[0].sample) == 120

    def test_empty_stem(self):
        question, entries = self._build(["4. Hi", "A. a", "B. b"], number=4)
        assert question.stem == "Hi"
        assert [e.reason for e in entries] == [DiagnosticReason.EMPTY_STEM]
        assert entries[0].index == 4
        assert entries[0].sample == "4. Hi A. a B. b"

    def test_incomplete_choices(self):
        question, entries = self._build(["2. Pick one", "A. only one"], number=2)
        assert question.type == QuestionType.FREE_RESPONSE
        assert len(question.choices) == 1
        assert [e.reason for e in entries] == [DiagnosticReason.INCOMPLETE_CHOICES]
        assert entries[0].note == "found 1 choice"
        assert entries[0].sample == "only one"

    def test_too_many_choices(self):
        texts = ["1. Pick"] + [f"{k}. opt" for k in "ABCDEFGHA"]
        question, entries = self._build(texts, number=1)
        assert question.type == QuestionType.MULTIPLE_CHOICE
        assert [e.reason for e in entries] == [DiagnosticReason.TOO_MANY_CHOICES]
        assert entries[0].note == "9"

    def test_diagnostics_are_additive(self):
        _, entries = self._build(["A. only one"])
        assert [e.reason for e in entries] == [
            DiagnosticReason.NO_NUMBER,
            DiagnosticReason.EMPTY_STEM,
            DiagnosticReason.INCOMPLETE_CHOICES,
        ]

    def test_custom_category_and_media(self):
        question, _ = self._build(
            ["9. Define entropy."],
            number=9,
            category="Physics",
            media_url_template="/media/{index}.jpg",
        )
        assert question.category == "Physics"
        assert question.media.url == "/media/9.jpg"


# ═══════════════════════════════════════════════════════════════════════════════
# DIAGNOSTICS AGGREGATOR TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestDiagnosticsAggregator:
    """Test stats aggregation."""

    def test_counts_entries_not_blocks(self):
        blocks = [_block(["A. only one"])]
        classification = BlockClassifier().classify(blocks[0])
        question, entries = QuestionBuilder().build(blocks[0], 0, classification)
        result = DiagnosticsAggregator().aggregate(blocks, [question], entries)
        assert result.stats.total_blocks == 1
        assert result.stats.parsed == 1
        assert result.stats.unparsed == 3
        assert result.stats.categories is None

    def test_category_stats(self):
        blocks = [_block(["1. Define entropy."], 1)]
        classification = BlockClassifier().classify(blocks[0])
        question, _ = QuestionBuilder().build(blocks[0], 0, classification)
        result = DiagnosticsAggregator(category_stats=True).aggregate(
            blocks, [question], []
        )
        assert result.stats.categories == {"Uncategorized": 1}

    def test_stats_serialization(self):
        stats = ConversionStats(total_blocks=2, parsed=2, unparsed=1)
        assert stats.model_dump() == {"totalBlocks": 2, "parsed": 2, "unparsed": 1}

    def test_entry_serialization(self):
        entry = DiagnosticEntry(index=None, reason=DiagnosticReason.NO_NUMBER)
        assert entry.model_dump(mode="json") == {"index": None, "reason": "no-number"}


# ═══════════════════════════════════════════════════════════════════════════════
# END-TO-END ENGINE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestConversionEngine:
    """Test the full pipeline over text lines."""

    def test_multiple_choice_example(self, engine):
        result = engine.convert_text(["1. What is 2+2?", "A. 3", "B. 4", "Answer: B"])
        assert len(result.questions) == 1
        q = result.questions[0]
        assert q.index == 1
        assert q.type == QuestionType.MULTIPLE_CHOICE
        assert q.stem == "What is 2+2?"
        assert [c.key for c in q.choices] == ["A", "B"]
        assert q.answer == ""
        assert result.unparsed == []

    def test_free_response_example(self, engine):
        result = engine.convert_text(["1. Essay question.", "Write 500 words."])
        assert len(result.questions) == 1
        assert result.questions[0].type == QuestionType.FREE_RESPONSE
        assert result.questions[0].choices == []
        assert result.unparsed == []

    def test_free_response_stem_joins_lines(self, engine):
        result = engine.convert_text(["1. Essay question.", "Write 500 words."])
        assert result.questions[0].stem == "Essay question.Write 500 words."

    def test_markers_followed_by_line_break(self, engine):
        lines = LineExtractor().extract(
            ["1.<br />What is it?", "A.<br />red", "B. blue"]
        )
        q = engine.convert_lines(lines).questions[0]
        assert q.stem == "What is it?"
        assert [(c.key, c.text) for c in q.choices] == [("A", "red"), ("B", "blue")]

    def test_missing_number(self, engine):
        result = engine.convert_text(["1. First question", "3. Third question"])
        assert [(d.reason, d.index) for d in result.unparsed] == [
            (DiagnosticReason.MISSING_NUMBER, 2)
        ]

    def test_duplicate_number(self, engine):
        result = engine.convert_text(["5. First question", "5. Second question"])
        assert [q.index for q in result.questions] == [5, 5]
        assert [(d.reason, d.index) for d in result.unparsed] == [
            (DiagnosticReason.DUPLICATE_NUMBER, 5)
        ]

    def test_single_choice_is_free_response(self, engine):
        result = engine.convert_text(["1. Choose wisely", "A. only one"])
        assert result.questions[0].type == QuestionType.FREE_RESPONSE
        assert [d.reason for d in result.unparsed] == [
            DiagnosticReason.INCOMPLETE_CHOICES
        ]

    def test_unnumbered_document_yields_one_question(self, engine):
        result = engine.convert_text(["Title", "Some free text"])
        assert len(result.questions) == 1
        assert result.questions[0].index == 1
        assert result.unparsed[0].reason == DiagnosticReason.NO_NUMBER

    def test_empty_document(self, engine):
        result = engine.convert_text([])
        assert result.questions == []
        assert result.stats.total_blocks == 0

    def test_audit_entries_precede_block_entries(self, engine):
        result = engine.convert_text(["1. Hi", "3. Third question"])
        assert [d.reason for d in result.unparsed] == [
            DiagnosticReason.MISSING_NUMBER,
            DiagnosticReason.EMPTY_STEM,
        ]

    def test_parsed_equals_total_blocks(self, engine):
        result = engine.convert_text(
            ["Preamble", "1. One question", "A. a", "2. Hi", "4. Four question"]
        )
        assert result.stats.parsed == result.stats.total_blocks == 3
        assert result.stats.unparsed == len(result.unparsed)

    def test_idempotent(self, engine):
        texts = ["1. What is 2+2?", "A. 3", "B. 4", "3. Hi", "Answer: C"]
        first = json.dumps(engine.convert_text(texts).to_payload())
        second = json.dumps(engine.convert_text(texts).to_payload())
        assert first == second

    def test_payload_shapes(self, engine):
        result = engine.convert_text(["1. What is 2+2?", "A. 3", "B. 4"])
        bare = result.to_payload(with_diagnostics=False)
        assert isinstance(bare, list)
        assert bare[0] == {
            "id": "Q1",
            "index": 1,
            "type": "MULTIPLE_CHOICE",
            "category": "Uncategorized",
            "stem": "What is 2+2?",
            "media": {"type": "image", "url": "/images/2018/B/q1.png", "alt": ""},
            "choices": [{"key": "A", "text": "3"}, {"key": "B", "text": "4"}],
            "answer": "",
        }

        full = result.to_payload(with_diagnostics=True)
        assert set(full) == {"questions", "unparsed", "stats"}
        assert full["stats"] == {"totalBlocks": 1, "parsed": 1, "unparsed": 0}

    def test_save_writes_json(self, tmp_path):
        engine = ConversionEngine(
            ConverterConfig(output_dir=str(tmp_path), log_level="WARNING")
        )
        result = engine.convert_text(["1. Define entropy."])

        bare = engine.save(result, "exam")
        full = engine.save(result, "exam", with_diagnostics=True)

        assert bare.name == "exam.json"
        assert full.name == "exam.full.json"
        assert json.loads(bare.read_text(encoding="utf-8"))[0]["id"] == "Q1"
        assert json.loads(full.read_text(encoding="utf-8"))["stats"]["parsed"] == 1
