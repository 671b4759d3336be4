"""
Diagnostics Aggregator
======================
Post-conversion statistics and reporting.

After converting each document, produces:
    - Total Blocks
    - Parsed Questions (always equal to Total Blocks)
    - Diagnostic entry count (not a block count)
    - Optional per-category question counts

The diagnostics list is passed through verbatim.
"""

from __future__ import annotations

import logging
from collections import Counter

from .models import (
    Block,
    ConversionResult,
    ConversionStats,
    DiagnosticEntry,
    Question,
)

logger = logging.getLogger(__name__)


class DiagnosticsAggregator:
    """
    Collects per-document statistics alongside the question list.
    """

    def __init__(self, category_stats: bool = False):
        self.category_stats = category_stats

    def aggregate(
        self,
        blocks: list[Block],
        questions: list[Question],
        diagnostics: list[DiagnosticEntry],
    ) -> ConversionResult:
        """
        Args:
            blocks: Blocks emitted by the segmenter.
            questions: One question per block.
            diagnostics: Audit and per-block entries, in emission order.

        Returns:
            ConversionResult with questions, diagnostics and stats.
        """
        stats = ConversionStats(
            total_blocks=len(blocks),
            parsed=len(questions),
            unparsed=len(diagnostics),
        )
        if self.category_stats:
            stats.categories = dict(Counter(q.category for q in questions))

        self._log_summary(stats, diagnostics)

        return ConversionResult(
            questions=questions,
            unparsed=diagnostics,
            stats=stats,
        )

    def _log_summary(
        self,
        stats: ConversionStats,
        diagnostics: list[DiagnosticEntry],
    ):
        logger.info("=" * 60)
        logger.info("CONVERSION REPORT")
        logger.info("=" * 60)
        logger.info(f"Total Blocks: {stats.total_blocks}")
        logger.info(f"Parsed Questions: {stats.parsed}")
        logger.info(f"Diagnostic Entries: {stats.unparsed}")

        if diagnostics:
            breakdown = Counter(d.reason.value for d in diagnostics)
            logger.info("Diagnostic Breakdown:")
            for reason, count in sorted(breakdown.items()):
                logger.info(f"  • {reason}: {count}")

        logger.info("=" * 60)
