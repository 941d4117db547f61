import re
from typing import Iterable, List, Tuple

import structlog

from lyricdiff.diff import merge_adjacent_deletions, strip_sentence_punctuation
from lyricdiff.markup import strip_html_and_symbols
from lyricdiff.models import DELETION_MARKER, Granularity, LyricLine, WordChange

logger = structlog.get_logger(__name__)

# (minimum distinct words, price in USD), highest threshold first.
PRICE_TIERS: Tuple[Tuple[int, int], ...] = (
    (21, 165),
    (11, 125),
    (4, 85),
    (1, 45),
)

_PUNCT_TOKEN_RE = re.compile(r"^[.,!?;:]+$")
_EDGE_CHARS = re.escape(".,!?;:\"'[]{}()-—_")
# The marker only ever leads a deleted word.
_NORMALIZE_RE = re.compile(f"^[{_EDGE_CHARS}{DELETION_MARKER}]+|[{_EDGE_CHARS}]+$")


def _content_tokens(text: str) -> List[str]:
    return [token for token in text.split() if not _PUNCT_TOKEN_RE.match(token)]


def _changes_for_counting(line: LyricLine) -> List[WordChange]:
    if Granularity.for_text(line.original) is Granularity.CHAR:
        return line.word_changes
    return merge_adjacent_deletions(line.word_changes)


def count_changed_words(line: LyricLine) -> int:
    """
    Number of words changed on one line, measured against its original text.

    CJK lines have no word boundaries, so they count changed characters.
    Other lines count substituted/added words, and one per deletion event no
    matter how many adjacent words it removed.
    """
    if not line.word_changes:
        return 0

    total = 0
    if Granularity.for_text(line.original) is Granularity.CHAR:
        for change in line.word_changes:
            if not change.has_changed:
                continue
            if change.is_substitution:
                total += max(len(change.original_word), len(change.new_word))
            elif change.is_deletion:
                total += len(change.original_word)
            elif change.is_addition:
                total += len(change.new_word)
        return total

    for change in _changes_for_counting(line):
        if not change.has_changed:
            continue
        if change.is_substitution:
            orig_stripped = strip_sentence_punctuation(change.original_word).strip()
            new_stripped = strip_sentence_punctuation(change.new_word).strip()
            if orig_stripped == new_stripped:
                continue
            total += max(len(_content_tokens(change.original_word)) or 1, len(_content_tokens(change.new_word)) or 1)
        elif change.is_addition:
            total += len(_content_tokens(change.new_word)) or 1
        else:
            # Deletions, and any unclassified change, count once.
            total += 1
    return total


def normalize_word(word: str) -> str:
    return _NORMALIZE_RE.sub("", word).lower()


def distinct_changed_words(document: Iterable[LyricLine]) -> List[str]:
    """
    The case-insensitive set of words changed across the whole document, in
    first-seen order. Its length drives pricing.

    Words that were only ever deleted are reported with the deletion marker
    prefixed. A word that was deleted somewhere but added elsewhere counts
    once, as an addition.
    """
    additions = {}
    deletions = {}

    for line in document:
        for change in _changes_for_counting(line):
            if not change.has_changed:
                continue
            if change.is_deletion and not (change.is_substitution or change.is_addition):
                word = normalize_word(change.original_word)
                if word:
                    deletions.setdefault(word, None)
            else:
                word = normalize_word(change.new_word)
                if word:
                    additions.setdefault(word, None)

    result = list(additions)
    result.extend(f"{DELETION_MARKER}{word}" for word in deletions if word not in additions)
    logger.debug("Collected distinct changed words", additions=len(additions), deletions=len(deletions))
    return result


def price_for_word_count(count: int) -> int:
    """Price tier in USD for a number of distinct changed words."""
    for threshold, price in PRICE_TIERS:
        if count >= threshold:
            return price
    return 0


def line_change_summaries(document: Iterable[LyricLine]) -> List[str]:
    """One 'Line N: "original" -> "modified"' entry per line with a real change."""
    summaries = []
    for line in document:
        if not line.has_changes:
            continue
        plain = strip_html_and_symbols(line.marked_text or line.modified)
        summaries.append(f'Line {line.id}: "{line.original}" -> "{plain}"')
    return summaries
