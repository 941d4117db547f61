"""
Pure text transformation utilities for rendering marked (HTML-highlighted)
lyric lines and for turning marked text back into plain text.
"""

import re
import unicodedata
from typing import List, Optional

import structlog
from lxml import etree
from lxml import html as lxml_html

from lyricdiff.diff import diff_text
from lyricdiff.models import DELETION_MARKER, Granularity, WordChange

logger = structlog.get_logger(__name__)

HIGHLIGHT_CLASS = "text-red-600"

_MARKER_TOKEN_RE = re.compile(f"({DELETION_MARKER})([.,!?;:]*)")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([,;:!?.])")
_MULTI_SPACE_RE = re.compile(r"\s{2,}")
_NON_SPACE_RE = re.compile(r"(\S+)")


def highlight(text: str) -> str:
    return f'<span class="{HIGHLIGHT_CLASS}">{text}</span>'


def escape_angle_brackets(text: str) -> str:
    return text.replace("<", "&lt;").replace(">", "&gt;")


def is_punctuation_only(text: str) -> bool:
    """True for non-empty text made only of whitespace and Unicode punctuation."""
    if not text:
        return False
    return all(ch.isspace() or unicodedata.category(ch).startswith("P") for ch in text)


def generate_marked_text(
    original: str,
    modified: str,
    word_changes: List[WordChange],
    granularity: Optional[Granularity] = None,
) -> str:
    """
    Renders modified text as HTML with changed words wrapped in a highlight span.

    CJK lines are returned as plain modified text: per-character highlighting
    is too noisy to read. When the changes contain a deletion, the output is
    built from the change records so each deletion shows a marker glyph;
    otherwise the added runs of a fresh diff are highlighted in place.
    """
    if granularity is None:
        granularity = Granularity.for_text(original)

    if granularity is Granularity.CHAR:
        return modified

    if any(change.is_deletion and not change.is_substitution for change in word_changes):
        rendered = " ".join(_render_change(change) for change in word_changes)
        return _SPACE_BEFORE_PUNCT_RE.sub(r"\1", rendered)

    parts = []
    for run in diff_text(original, modified, granularity):
        escaped = escape_angle_brackets(run.value)
        if run.added:
            if is_punctuation_only(run.value):
                parts.append(escaped)
            else:
                parts.append(_NON_SPACE_RE.sub(lambda m: highlight(m.group(1)), escaped))
        elif not run.removed:
            parts.append(escaped)

    return _MULTI_SPACE_RE.sub(" ", "".join(parts)).strip()


def _render_change(change: WordChange) -> str:
    # Substitutions first, so they never turn into deletion markers.
    if change.is_substitution:
        return highlight(escape_angle_brackets(change.new_word))
    if change.is_deletion:
        match = _MARKER_TOKEN_RE.search(change.new_word)
        if match:
            return highlight(match.group(1)) + match.group(2)
        return highlight(DELETION_MARKER)
    if change.is_addition:
        return highlight(escape_angle_brackets(change.new_word))
    return escape_angle_brackets(change.new_word)


def render_explicit_deletions(count: int) -> str:
    return " ".join(highlight(DELETION_MARKER) for _ in range(count))


def strip_html_and_symbols(text: str) -> str:
    """
    Returns the plain text of an HTML fragment: tags dropped, entities decoded,
    deletion markers removed and whitespace collapsed.
    """
    if not text or not text.strip():
        return ""

    plain = text
    if "<" in text or "&" in text:
        try:
            fragment = lxml_html.fragment_fromstring(text, create_parent="div")
            plain = fragment.text_content()
        except (etree.ParserError, ValueError) as e:
            logger.warning(f"Could not parse markup, keeping raw text: {e}")

    plain = plain.replace(DELETION_MARKER, " ")
    return _MULTI_SPACE_RE.sub(" ", plain).strip()
