"""
DOCX Question Engine
====================
Main orchestrator that combines line extraction, block segmentation,
numbering audit, classification, question building and diagnostics
aggregation into a complete conversion pipeline.

Usage:
    engine = ConversionEngine(config)
    result = engine.convert_file("path/to/exam.docx")
    payload = result.to_payload(with_diagnostics=True)

Architecture:
    DOCX → LineExtractor → Lines → BlockSegmenter → Blocks →
    NumberingAuditor + BlockClassifier → QuestionBuilder →
    DiagnosticsAggregator → ConversionResult (JSON)
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .auditor import NumberingAuditor
from .builder import DEFAULT_CATEGORY, DEFAULT_MEDIA_URL_TEMPLATE, QuestionBuilder
from .exceptions import (
    ConversionError,
    DocumentDecodeError,
    InputRejectedError,
)
from .line_extractor import DocumentSource, LineExtractor
from .models import ConversionResult, Line
from .segmenter import BlockSegmenter
from .state_machine import BlockClassifier
from .validator import DiagnosticsAggregator

__all__ = [
    "ConversionEngine",
    "ConversionError",
    "ConverterConfig",
    "DocumentDecodeError",
    "InputRejectedError",
]

logger = logging.getLogger(__name__)

DOCX_SUFFIX = ".docx"
LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


@dataclass
class ConverterConfig:
    """Configuration for the conversion engine."""

    # Output record
    category: str = DEFAULT_CATEGORY
    media_url_template: str = DEFAULT_MEDIA_URL_TEMPLATE
    category_stats: bool = False

    # Output settings
    output_dir: str = "output"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class ConversionEngine:
    """
    Main DOCX conversion engine.

    Orchestrates the full pipeline:
        1. Line extraction
        2. Block segmentation
        3. Numbering audit
        4. Block classification
        5. Question building
        6. Diagnostics aggregation

    Holds no per-document state, so one engine can serve concurrent calls.
    """

    def __init__(self, config: Optional[ConverterConfig] = None):
        self.config = config or ConverterConfig()
        self.extractor = LineExtractor()
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        package_logger = logging.getLogger("docx_parser")
        package_logger.setLevel(log_level)

        # Console handler
        if not package_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
            package_logger.addHandler(console)
        else:
            for handler in package_logger.handlers:
                handler.setLevel(log_level)

        # File handler
        if self.config.log_file:
            log_path = Path(self.config.log_file).resolve()
            already_attached = any(
                isinstance(h, logging.FileHandler)
                and Path(h.baseFilename) == log_path
                for h in package_logger.handlers
            )
            if not already_attached:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(log_path, encoding="utf-8")
                file_handler.setLevel(log_level)
                file_handler.setFormatter(
                    logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
                )
                package_logger.addHandler(file_handler)

    # ─── Entry Points ─────────────────────────────────────────────────────

    def convert_file(self, docx_path: str) -> ConversionResult:
        """
        Convert a .docx file on disk.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            InputRejectedError: If it is not a non-empty .docx file.
            DocumentDecodeError: If the document cannot be decoded.
        """
        docx_path = os.path.abspath(docx_path)

        if not os.path.exists(docx_path):
            raise FileNotFoundError(f"Document not found: {docx_path}")
        if not docx_path.lower().endswith(DOCX_SUFFIX):
            raise InputRejectedError("Please upload a .docx file")
        if os.path.getsize(docx_path) == 0:
            raise InputRejectedError("Uploaded file is empty")

        logger.info(f"Starting conversion of: {docx_path}")
        return self.convert_document(docx_path)

    def convert_document(self, source: DocumentSource) -> ConversionResult:
        """Convert a .docx given as a path, bytes or binary stream."""
        if isinstance(source, (bytes, bytearray)) and not source:
            raise InputRejectedError("Uploaded file is empty")

        logger.info("Phase 1: Line extraction")
        lines = self.extractor.extract_document(source)
        return self.convert_lines(lines)

    def convert_text(self, texts: Iterable[str]) -> ConversionResult:
        """Convert plain text lines (no inline formatting)."""
        return self.convert_lines(self.extractor.extract_text(texts))

    def convert_lines(self, lines: list[Line]) -> ConversionResult:
        """Run segmentation through aggregation over extracted lines."""
        start_time = time.time()

        logger.info(f"Phase 2: Segmentation ({len(lines)} lines)")
        blocks = BlockSegmenter().segment(lines)

        logger.info(f"Phase 3: Numbering audit ({len(blocks)} blocks)")
        diagnostics = NumberingAuditor().audit(blocks)

        logger.info("Phase 4: Classification")
        classifier = BlockClassifier()
        builder = QuestionBuilder(
            category=self.config.category,
            media_url_template=self.config.media_url_template,
        )
        questions = []
        for position, block in enumerate(blocks):
            classification = classifier.classify(block)
            question, entries = builder.build(block, position, classification)
            questions.append(question)
            diagnostics.extend(entries)

        aggregator = DiagnosticsAggregator(
            category_stats=self.config.category_stats
        )
        result = aggregator.aggregate(blocks, questions, diagnostics)

        elapsed = time.time() - start_time
        logger.info(
            f"Conversion complete in {elapsed:.2f}s, "
            f"{len(questions)} questions extracted"
        )
        return result

    # ─── Output ───────────────────────────────────────────────────────────

    def save(
        self,
        result: ConversionResult,
        name: str,
        with_diagnostics: bool = False,
    ) -> Path:
        """
        Write the payload to the output directory.

        The bare question list goes to ``<name>.json``; the full record
        with diagnostics goes to ``<name>.full.json``.
        """
        output_dir = Path(self.config.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        suffix = ".full.json" if with_diagnostics else ".json"
        filepath = output_dir / f"{name}{suffix}"

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(
                result.to_payload(with_diagnostics=with_diagnostics),
                f,
                indent=2,
                ensure_ascii=False,
            )
        logger.info(f"Saved JSON output: {filepath}")
        return filepath
