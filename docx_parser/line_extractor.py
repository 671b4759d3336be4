"""
Line Extractor
==============
Turns a Word document into the ordered sequence of Lines consumed by the
segmenter.

Decoding uses python-docx. Each paragraph (including paragraphs inside
table cells) is rendered to an inline markup fragment that keeps bold,
italic, superscript, subscript and line breaks. Images are dropped.
"""

from __future__ import annotations

import html
import io
import logging
from itertools import groupby
from pathlib import Path
from typing import IO, Iterable, Iterator, Optional, Union

from docx import Document
from docx.document import Document as _Document
from docx.oxml.table import CT_Tbl
from docx.oxml.text.paragraph import CT_P
from docx.table import Table, _Cell
from docx.text.hyperlink import Hyperlink
from docx.text.paragraph import Paragraph
from docx.text.run import Run

from .exceptions import DocumentDecodeError
from .markup import to_plain_text
from .models import Line

logger = logging.getLogger(__name__)

DocumentSource = Union[str, Path, bytes, IO[bytes]]


class DocxDecoder:
    """
    Decodes a .docx package into paragraph markup fragments in reading order.
    """

    def decode(self, source: DocumentSource) -> list[str]:
        """
        Args:
            source: Path, raw bytes or a binary stream of a .docx file.

        Returns:
            One markup fragment per paragraph, in document order.

        Raises:
            DocumentDecodeError: If the package cannot be opened or read.
        """
        if isinstance(source, (bytes, bytearray)):
            source = io.BytesIO(source)
        elif isinstance(source, Path):
            source = str(source)

        try:
            document = Document(source)
            fragments = [
                self.render_paragraph(p)
                for p in self._iter_paragraphs(document)
            ]
        except Exception as e:
            raise DocumentDecodeError(f"Could not read document: {e}") from e

        logger.debug(f"Decoded {len(fragments)} paragraphs")
        return fragments

    def _iter_paragraphs(self, parent) -> Iterator[Paragraph]:
        """Yield paragraphs of a document or cell, descending into tables."""
        if isinstance(parent, _Document):
            parent_elm = parent.element.body
        elif isinstance(parent, _Cell):
            parent_elm = parent._tc
        else:
            raise ValueError(f"Unsupported container: {type(parent).__name__}")

        for child in parent_elm.iterchildren():
            if isinstance(child, CT_P):
                yield Paragraph(child, parent)
            elif isinstance(child, CT_Tbl):
                yield from self._iter_table(Table(child, parent))

    def _iter_table(self, table: Table) -> Iterator[Paragraph]:
        seen = set()
        for row in table.rows:
            for cell in row.cells:
                # Merged cells repeat across the grid
                if cell._tc in seen:
                    continue
                seen.add(cell._tc)
                yield from self._iter_paragraphs(cell)

    def render_paragraph(self, paragraph: Paragraph) -> str:
        """Render a paragraph's runs as inline markup."""
        runs: list[Run] = []
        for item in paragraph.iter_inner_content():
            if isinstance(item, Hyperlink):
                runs.extend(item.runs)
            else:
                runs.append(item)

        parts = []
        for style, group in groupby(runs, key=self._run_style):
            text = "".join(run.text for run in group)
            if text:
                parts.append(self._wrap(text, style))
        return "".join(parts)

    @staticmethod
    def _run_style(run: Run) -> tuple[bool, bool, bool, bool]:
        font = run.font
        return (
            bool(run.bold),
            bool(run.italic),
            bool(font.superscript),
            bool(font.subscript),
        )

    @staticmethod
    def _wrap(text: str, style: tuple[bool, bool, bool, bool]) -> str:
        bold, italic, superscript, subscript = style
        out = html.escape(text, quote=False).replace("\n", "<br />")
        if superscript:
            out = f"<sup>{out}</sup>"
        elif subscript:
            out = f"<sub>{out}</sub>"
        if italic:
            out = f"<em>{out}</em>"
        if bold:
            out = f"<strong>{out}</strong>"
        return out


class LineExtractor:
    """
    Builds Lines from paragraph fragments.
    Fully empty paragraphs are dropped; order is preserved.
    """

    def __init__(self, decoder: Optional[DocxDecoder] = None):
        self.decoder = decoder or DocxDecoder()

    def extract(self, fragments: Iterable[str]) -> list[Line]:
        lines = []
        for fragment in fragments:
            markup = (fragment or "").strip()
            plain_text = to_plain_text(markup)
            if not markup and not plain_text:
                continue
            lines.append(Line(markup=markup, plain_text=plain_text))
        return lines

    def extract_document(self, source: DocumentSource) -> list[Line]:
        """Decode a .docx source and extract its lines."""
        return self.extract(self.decoder.decode(source))

    def extract_text(self, texts: Iterable[str]) -> list[Line]:
        """Extract lines from plain strings, escaping them as markup."""
        return self.extract(html.escape(t, quote=False) for t in texts)
