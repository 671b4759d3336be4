"""
Markup Helpers
==============
Pure functions over paragraph-level inline markup fragments.

Fragments are small HTML snippets (``<strong>``, ``<em>``, ``<sup>``,
``<sub>``, ``<br />``) produced by the document decoder. Everything here
walks a parsed fragment tree (BeautifulSoup) instead of matching tags with
regular expressions, so nested wrappers are handled in document order.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

BREAK_MARKER = "<br/>"

_TABS = re.compile(r"\t+")
_WHITESPACE = re.compile(r"\s+")
_EXCESS_BREAKS = re.compile(r"(?:<br/>\s*){3,}")

# Wrappers flattened to their text content inside a choice
_FLATTENED_TAGS = ["strong", "b", "tr"]


def _fragment(markup: str) -> Tag:
    """Parse a fragment and return the wrapping container element."""
    soup = BeautifulSoup(f"<div>{markup}</div>", "html.parser")
    return soup.div


def _inner_markup(container: Tag) -> str:
    return "".join(str(child) for child in container.contents)


def collapse_whitespace(text: str) -> str:
    """Collapse tab and whitespace runs to a single space and trim."""
    return _WHITESPACE.sub(" ", _TABS.sub(" ", text)).strip()


def _text_nodes(container: Tag) -> list:
    """Text nodes and line breaks of a fragment, in document order."""
    return [
        node for node in container.descendants
        if (isinstance(node, NavigableString) and not isinstance(node, Comment))
        or (isinstance(node, Tag) and node.name == "br")
    ]


def _node_text(node, break_text: str) -> str:
    return break_text if isinstance(node, Tag) else str(node)


def to_plain_text(markup: str, break_text: str = " ") -> str:
    """
    Detag a fragment into plain text.

    Each line break becomes ``break_text``, tabs and whitespace runs
    collapse to a single space, and the result is trimmed.
    """
    if not markup:
        return ""
    nodes = _text_nodes(_fragment(markup))
    return collapse_whitespace("".join(_node_text(n, break_text) for n in nodes))


def clean_choice_markup(markup: str) -> str:
    """
    Sanitize a choice fragment to plain inline text.

    Bold and table-row wrappers are flattened to their content, ``<br>``
    collapses to one space and whitespace is normalized.
    """
    container = _fragment(markup)
    for tag in container.find_all(_FLATTENED_TAGS):
        tag.unwrap()
    for br in container.find_all("br"):
        br.replace_with(" ")
    return collapse_whitespace(container.get_text())


def strip_leading_prefix(markup: str, pattern: re.Pattern) -> str:
    """
    Remove a leading textual marker (``"1. "``, ``"A) "``) from a fragment.

    The marker is matched against the raw markup first. When it is hidden
    behind inline tags (``<strong>1.</strong> Text``) or followed by a line
    break (``A.<br />red``), the fragment is read the way ``to_plain_text``
    reads it, one space per break, and the matched characters are consumed
    from its text nodes and breaks, leaving the surrounding tags in place.
    """
    if pattern.match(markup):
        return pattern.sub("", markup, count=1)

    container = _fragment(markup)
    nodes = _text_nodes(container)
    match = pattern.match("".join(_node_text(n, " ") for n in nodes))
    if not match:
        return markup

    remaining = match.end()
    for node in nodes:
        if remaining <= 0:
            break
        text = _node_text(node, " ")
        if len(text) <= remaining:
            remaining -= len(text)
            if isinstance(node, Tag):
                node.decompose()
            else:
                node.replace_with("")
        else:
            node.replace_with(text[remaining:])
            remaining = 0

    for tag in reversed(container.find_all(True)):
        if tag.name != "br" and not tag.get_text() and not tag.find("br"):
            tag.decompose()

    return _inner_markup(container)


def join_stem_parts(parts: list[str]) -> str:
    """Join stem fragments with break markers, keeping at most two in a row."""
    joined = BREAK_MARKER.join(parts)
    return _EXCESS_BREAKS.sub(BREAK_MARKER * 2, joined).strip()
