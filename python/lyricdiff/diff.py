import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

import structlog
from diff_match_patch import diff_match_patch

from lyricdiff.models import Granularity, WordChange

logger = structlog.get_logger(__name__)

_TOKEN_PATTERN = r"(\s+|\w+|[^\w\s])"
_SENTENCE_PUNCT_RE = re.compile(r"[.,!?;:]")


@dataclass(frozen=True)
class DiffRun:
    value: str
    added: bool = False
    removed: bool = False


def strip_sentence_punctuation(text: str) -> str:
    return _SENTENCE_PUNCT_RE.sub("", text)


def diff_text(original: str, modified: str, granularity: Optional[Granularity] = None) -> List[DiffRun]:
    """
    Diffs two strings into ordered equal/added/removed runs.

    CHAR granularity compares code points. WORD granularity compares tokens
    (whitespace runs, word runs and single punctuation characters), so the
    runs always break on token boundaries.
    """
    if granularity is None:
        granularity = Granularity.for_text(original)
    return list(_diff_runs(original, modified, granularity))


@lru_cache(maxsize=2048)
def _diff_runs(original: str, modified: str, granularity: Granularity) -> Tuple[DiffRun, ...]:
    dmp = diff_match_patch()
    # No timeout: the diff must be optimal, and therefore reproducible.
    dmp.Diff_Timeout = 0

    if granularity is Granularity.CHAR:
        diffs = dmp.diff_main(original, modified, False)
    else:
        chars1, chars2, token_array = _words_to_chars(original, modified)
        diffs = dmp.diff_main(chars1, chars2, False)
        dmp.diff_charsToLines(diffs, token_array)

    return tuple(
        DiffRun(value=text, added=op == dmp.DIFF_INSERT, removed=op == dmp.DIFF_DELETE) for op, text in diffs if text
    )


def _words_to_chars(text1: str, text2: str) -> Tuple[str, str, List[str]]:
    """
    Splits text into words/tokens and encodes them as unique Unicode characters.
    """
    token_array: List[str] = []
    token_hash: Dict[str, int] = {}

    def encode_text(text: str) -> str:
        tokens = [t for t in re.split(_TOKEN_PATTERN, text) if t]
        encoded_chars = []
        for token in tokens:
            if token not in token_hash:
                token_hash[token] = len(token_array)
                token_array.append(token)
            encoded_chars.append(chr(token_hash[token]))
        return "".join(encoded_chars)

    chars1 = encode_text(text1)
    chars2 = encode_text(text2)
    return chars1, chars2, token_array


def calculate_word_changes(
    original: str, modified: str, granularity: Optional[Granularity] = None
) -> List[WordChange]:
    """
    Classifies the diff between original and modified into WordChange records.

    Consecutive removed/added runs are grouped until the next equal run:
    removals and additions together form a substitution, lone removals become
    deletions and lone additions become additions. Equal runs yield one
    unchanged record per unit.
    """
    if granularity is None:
        granularity = Granularity.for_text(original)
    runs = _diff_runs(original, modified, granularity)
    if granularity is Granularity.CHAR:
        return _classify_chars(runs)
    return _classify_words(runs)


def _classify_words(runs: Tuple[DiffRun, ...]) -> List[WordChange]:
    changes: List[WordChange] = []
    removals: List[str] = []
    additions: List[str] = []
    original_index = 0
    new_index = 0

    def flush():
        nonlocal original_index, new_index
        if removals and additions:
            orig_combined = " ".join(removals)
            new_combined = " ".join(additions)
            # A difference in punctuation only is not a content change.
            same_words = strip_sentence_punctuation(orig_combined) == strip_sentence_punctuation(new_combined)
            changes.append(
                WordChange(
                    original_word=orig_combined,
                    new_word=new_combined,
                    original_index=original_index,
                    new_index=new_index,
                    has_changed=not same_words,
                    is_substitution=True,
                )
            )
            original_index += 1
            new_index += 1
        elif removals:
            for word in removals:
                changes.append(
                    WordChange(
                        original_word=word,
                        new_word="",
                        original_index=original_index,
                        new_index=-1,
                        has_changed=strip_sentence_punctuation(word) != "",
                        is_deletion=True,
                    )
                )
                original_index += 1
        elif additions:
            for word in additions:
                changes.append(
                    WordChange(
                        original_word="",
                        new_word=word,
                        original_index=-1,
                        new_index=new_index,
                        has_changed=strip_sentence_punctuation(word) != "",
                        is_addition=True,
                    )
                )
                new_index += 1
        removals.clear()
        additions.clear()

    for run in runs:
        words = run.value.split()
        if run.added:
            additions.extend(words)
        elif run.removed:
            removals.extend(words)
        else:
            if removals or additions:
                flush()
            for word in words:
                changes.append(
                    WordChange(
                        original_word=word,
                        new_word=word,
                        original_index=original_index,
                        new_index=new_index,
                        has_changed=False,
                    )
                )
                original_index += 1
                new_index += 1

    if removals or additions:
        flush()
    return changes


@dataclass
class _CharGroup:
    start_original_index: int
    start_new_index: int
    additions: str = ""
    deletions: str = ""


def _classify_chars(runs: Tuple[DiffRun, ...]) -> List[WordChange]:
    changes: List[WordChange] = []
    groups: List[_CharGroup] = []
    current: Optional[_CharGroup] = None
    original_index = 0
    new_index = 0

    for run in runs:
        if run.added or run.removed:
            if current is None:
                current = _CharGroup(original_index, new_index)
                groups.append(current)
            if run.added:
                current.additions += run.value
                new_index += len(run.value)
            else:
                current.deletions += run.value
                original_index += len(run.value)
            continue

        current = None
        for ch in run.value:
            changes.append(
                WordChange(
                    original_word=ch,
                    new_word=ch,
                    original_index=original_index,
                    new_index=new_index,
                    has_changed=False,
                )
            )
            original_index += 1
            new_index += 1

    for group in groups:
        if group.deletions and group.additions:
            changes.append(
                WordChange(
                    original_word=group.deletions,
                    new_word=group.additions,
                    original_index=group.start_original_index,
                    new_index=group.start_new_index,
                    has_changed=True,
                    is_substitution=True,
                )
            )
        elif group.deletions:
            changes.append(
                WordChange(
                    original_word=group.deletions,
                    original_index=group.start_original_index,
                    new_index=-1,
                    has_changed=True,
                    is_deletion=True,
                )
            )
        elif group.additions:
            changes.append(
                WordChange(
                    new_word=group.additions,
                    original_index=-1,
                    new_index=group.start_new_index,
                    has_changed=True,
                    is_addition=True,
                )
            )

    # Stable sort: ties keep the unchanged records ahead of the group records.
    changes.sort(key=lambda c: c.original_index if c.original_index != -1 else c.new_index)
    return changes


def _is_plain_deletion(change: WordChange) -> bool:
    return change.is_deletion and not change.is_substitution


def merge_adjacent_deletions(changes: List[WordChange]) -> List[WordChange]:
    """
    Folds runs of deletions with consecutive original indices into a single
    deletion record, so "three words removed in a row" counts as one event.

    Two explicit deletions (from clearing a whole line) are never folded
    together: each original word keeps its own deletion marker.
    """
    merged: List[WordChange] = []
    last_index = None

    for change in changes:
        prev = merged[-1] if merged else None
        if (
            prev is not None
            and _is_plain_deletion(prev)
            and _is_plain_deletion(change)
            and last_index is not None
            and change.original_index == last_index + 1
            and not (prev.is_explicit_deletion and change.is_explicit_deletion)
        ):
            merged[-1] = WordChange(
                original_word=f"{prev.original_word} {change.original_word}",
                new_word=f"{prev.new_word} {change.new_word}",
                original_index=prev.original_index,
                new_index=prev.new_index,
                has_changed=True,
                is_deletion=True,
            )
        else:
            merged.append(change)
        last_index = change.original_index

    if len(merged) != len(changes):
        logger.debug("Merged adjacent deletions", before=len(changes), after=len(merged))
    return merged
