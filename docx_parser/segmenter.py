"""
Block Segmenter
===============
Partitions the ordered line sequence into question blocks using the
numbering-prefix heuristic ("12." / "12)" at the start of a line).
"""

from __future__ import annotations

import logging
import re
from typing import NamedTuple, Optional

from .models import Block, Line

logger = logging.getLogger(__name__)

# ─── Anchor Patterns ──────────────────────────────────────────────────────────

# Matches "1. ", "12) ", "  3 . " at start of line
NUMBER_PREFIX_PATTERN = re.compile(r"^\s*(\d{1,3})\s*[.)]\s+")


class MarkerMatch(NamedTuple):
    """Result of testing a line for a new-block marker."""
    is_new_block: bool
    number: Optional[int] = None


NO_MARKER = MarkerMatch(is_new_block=False)


def match_block_marker(plain_text: str) -> MarkerMatch:
    """Decide whether a line opens a new block and which number it declares."""
    match = NUMBER_PREFIX_PATTERN.match(plain_text)
    if not match:
        return NO_MARKER
    return MarkerMatch(is_new_block=True, number=int(match.group(1), 10))


class BlockSegmenter:
    """
    Groups lines into blocks. Lines before the first marker are preamble
    and are discarded; a document with no markers at all becomes a single
    unnumbered block.
    """

    def __init__(self):
        self.current_block: Optional[Block] = None
        self.blocks: list[Block] = []

    def segment(self, lines: list[Line]) -> list[Block]:
        self.current_block = None
        self.blocks = []

        for line in lines:
            marker = match_block_marker(line.plain_text)
            if marker.is_new_block:
                self._close_block()
                self.current_block = Block(
                    declared_number=marker.number,
                    lines=[line],
                )
            elif self.current_block is not None:
                self.current_block.lines.append(line)
            else:
                logger.debug(f"Skipping preamble line: {line.plain_text[:60]!r}")

        self._close_block()

        if not self.blocks and lines:
            logger.info("No numbered questions found, treating document as one block")
            self.blocks.append(Block(declared_number=None, lines=list(lines)))

        return self.blocks

    def _close_block(self):
        """Strip trailing blank lines and emit the open block if anything is left."""
        block = self.current_block
        self.current_block = None
        if block is None:
            return

        while block.lines and not block.lines[-1].plain_text.strip():
            block.lines.pop()

        if block.lines:
            self.blocks.append(block)
        else:
            logger.debug(f"Discarding empty block {block.declared_number}")
