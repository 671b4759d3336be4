"""
Numbering Auditor
=================
Checks declared block numbers for duplicates and gaps.

Runs once per document, before classification, so that upload or OCR
gaps are surfaced even when every present block parses cleanly.
"""

from __future__ import annotations

import logging

from .models import Block, DiagnosticEntry, DiagnosticReason

logger = logging.getLogger(__name__)


class NumberingAuditor:
    """Emits duplicate-number and missing-number diagnostics."""

    def audit(self, blocks: list[Block]) -> list[DiagnosticEntry]:
        present: set[int] = set()
        duplicates: list[int] = []

        for block in blocks:
            number = block.declared_number
            if number is None:
                continue
            if number in present:
                if number not in duplicates:
                    duplicates.append(number)
            else:
                present.add(number)

        entries = [
            DiagnosticEntry(index=n, reason=DiagnosticReason.DUPLICATE_NUMBER)
            for n in duplicates
        ]

        if present:
            expected = range(min(present), max(present) + 1)
            entries.extend(
                DiagnosticEntry(index=n, reason=DiagnosticReason.MISSING_NUMBER)
                for n in expected
                if n not in present
            )

        if entries:
            logger.info(
                f"Numbering audit: {len(duplicates)} duplicate(s), "
                f"{len(entries) - len(duplicates)} missing"
            )
        return entries
