"""
Line mutation API over a lyrics document.

A document is a list of LyricLine. Every operation returns a new list in which
only the affected lines are replaced; untouched lines are the same objects as
in the input. Change state is always recomputed from a line's original text,
so the result of an edit never depends on the edits that came before it.
"""

import re
from typing import List, Optional, Protocol, Sequence, Tuple

import structlog

from lyricdiff.diff import calculate_word_changes, diff_text, merge_adjacent_deletions
from lyricdiff.markup import generate_marked_text, render_explicit_deletions, strip_html_and_symbols
from lyricdiff.models import DELETION_MARKER, Granularity, LyricLine, WordChange

logger = structlog.get_logger(__name__)

_MULTI_SPACE_RE = re.compile(r"\s{2,}")
_LETTER_RUN_RE = re.compile(r"[^\W\d_]+")
_MID_PUNCT_RE = re.compile(r"([,;:])\s*([!?.])")
_FINAL_PUNCT_RE = re.compile(r"([,;:])?\s*([!?.])$")
_MARKER_TOKEN_RE = re.compile(f"({DELETION_MARKER})([.,!?;:]*)")
_TERM_RE = re.compile(r"^(.+?)([.,!?;:]*)$", re.DOTALL)
_TRAILING_PUNCT_RE = re.compile(r"[.,!?;:]+$")

_BRACKET_PAIRS = {"<": ">", "(": ")", "[": "]"}


class Notifier(Protocol):
    """User-facing notices raised by document operations."""

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...


class NullNotifier:
    def success(self, message: str) -> None:
        pass

    def error(self, message: str) -> None:
        pass

    def info(self, message: str) -> None:
        pass


class LoggingNotifier:
    """Forwards notices to the structured log."""

    def __init__(self, name: str = "lyricdiff.notice"):
        self._logger = structlog.get_logger(name)

    def success(self, message: str) -> None:
        self._logger.info(message, notice="success")

    def error(self, message: str) -> None:
        self._logger.error(message, notice="error")

    def info(self, message: str) -> None:
        self._logger.info(message, notice="info")


def generate_lyrics_data(text: str) -> List[LyricLine]:
    """Builds a fresh document: one line per non-blank input line, ids 1..N."""
    cleaned = text.strip("\r\n").replace("\r\n", "\n").replace("\r", "\n")
    lines = [raw.strip() for raw in cleaned.split("\n") if raw.strip()]

    document = [
        LyricLine(id=i + 1, original=line, modified=line, marked_text=line, word_changes=[])
        for i, line in enumerate(lines)
    ]
    logger.info("Created lyrics document", lines=len(document))
    return document


def _explicit_deletion(line: LyricLine) -> LyricLine:
    words = line.original.split()
    changes = [
        WordChange(
            original_word=word,
            new_word="",
            original_index=idx,
            new_index=-1,
            has_changed=True,
            is_deletion=True,
            is_explicit_deletion=True,
        )
        for idx, word in enumerate(words)
    ]
    return line.model_copy(
        update={
            "modified": " ".join(DELETION_MARKER for _ in words),
            "marked_text": render_explicit_deletions(len(words)),
            "word_changes": changes,
        }
    )


def _insert_deletion_marker(effective: str, text: str, granularity: Granularity) -> str:
    """
    Places a deletion marker next to the sentence punctuation of a line that
    lost words, so that removing the last word before "!" stays visible.
    """
    with_marker = _MID_PUNCT_RE.sub(f"\\1 {DELETION_MARKER}\\2", text)
    if with_marker != text:
        return with_marker

    if not any(run.removed for run in diff_text(effective, text, granularity)):
        return text

    match = _FINAL_PUNCT_RE.search(text)
    if match is None:
        return text
    if match.group(1):
        split_at = match.end(1)
    else:
        split_at = text.rfind(match.group(2))
    return f"{text[:split_at].rstrip()} {DELETION_MARKER}{text[split_at:]}"


def _positional_changes(effective: str, text: str) -> List[WordChange]:
    original_parts = effective.split()
    changes = []
    for i, part in enumerate(text.split()):
        original_word = original_parts[i] if i < len(original_parts) else ""
        if DELETION_MARKER in part:
            match = _MARKER_TOKEN_RE.search(part)
            changes.append(
                WordChange(
                    original_word=original_word,
                    new_word=match.group(1) + match.group(2) if match else part,
                    original_index=i,
                    new_index=i,
                    has_changed=True,
                    is_deletion=True,
                )
            )
        else:
            changes.append(
                WordChange(
                    original_word=original_word or part,
                    new_word=part,
                    original_index=i,
                    new_index=i,
                    has_changed=False,
                )
            )
    return changes


def _carry_transformations(changes: List[WordChange], previous: Sequence[WordChange]) -> List[WordChange]:
    transformed = {
        prev.original_word for prev in previous if prev.is_transformation and prev.new_word != prev.original_word
    }
    if not transformed:
        return changes
    return [
        change.model_copy(update={"is_transformation": True}) if change.original_word in transformed else change
        for change in changes
    ]


def _apply_edit(line: LyricLine, new_text: str) -> LyricLine:
    sanitized = strip_html_and_symbols(new_text)
    if not sanitized.strip():
        logger.debug("Line cleared, marking every word deleted", line_id=line.id)
        return _explicit_deletion(line)

    granularity = Granularity.for_text(line.original)
    effective = strip_html_and_symbols(line.original)
    normalized = _MULTI_SPACE_RE.sub(" ", sanitized).strip()

    if len(_LETTER_RUN_RE.findall(effective)) > len(_LETTER_RUN_RE.findall(normalized)):
        normalized = _insert_deletion_marker(effective, normalized, granularity)

    if DELETION_MARKER in normalized:
        changes = _positional_changes(effective, normalized)
    else:
        changes = calculate_word_changes(effective, normalized, granularity)
        changes = _carry_transformations(changes, line.word_changes)
        if granularity is Granularity.WORD:
            changes = merge_adjacent_deletions(changes)

    logger.debug("Recomputed line", line_id=line.id, granularity=granularity.value, changes=len(changes))
    return line.model_copy(
        update={
            "modified": normalized,
            "marked_text": generate_marked_text(effective, normalized, changes, granularity),
            "word_changes": changes,
        }
    )


def edit_line(
    line_id: int, new_text: str, document: Sequence[LyricLine], notifier: Optional[Notifier] = None
) -> List[LyricLine]:
    """
    Replaces the text of one line and recomputes its change state against the
    line's original text.

    new_text may carry markup or deletion markers (for instance the marked
    text of a previous edit); both are stripped before diffing. Blank text
    marks every original word as deleted.
    """
    found = False
    updated = []
    for line in document:
        if line.id == line_id:
            found = True
            updated.append(_apply_edit(line, new_text))
        else:
            updated.append(line)

    if not found:
        logger.debug("Edit ignored, no such line", line_id=line_id)
        return updated

    if notifier is not None:
        notifier.success("Lyric updated successfully")
    return updated


def reset_line(line_id: int, document: Sequence[LyricLine]) -> List[LyricLine]:
    """
    Restores one line to its original text. Its word_changes become one
    unchanged record per original word rather than an empty list.
    """
    updated = []
    for line in document:
        if line.id != line_id:
            updated.append(line)
            continue
        changes = [
            WordChange(original_word=word, new_word=word, original_index=idx, new_index=idx, has_changed=False)
            for idx, word in enumerate(line.original.split())
        ]
        updated.append(
            line.model_copy(update={"modified": line.original, "marked_text": line.original, "word_changes": changes})
        )
    return updated


def reset_all(document: Sequence[LyricLine], notifier: Optional[Notifier] = None) -> List[LyricLine]:
    updated = [
        line.model_copy(update={"modified": line.original, "marked_text": line.original, "word_changes": []})
        for line in document
    ]
    if notifier is not None:
        notifier.success("Lyrics reset to original version")
    return updated


def should_ignore_line(text: str) -> bool:
    """
    True for annotation lines such as "(Chorus)", "[Verse 2]" or "<ad-lib>":
    the whole trimmed text is wrapped in one matching bracket pair.
    """
    trimmed = text.strip()
    if len(trimmed) < 2:
        return False
    return _BRACKET_PAIRS.get(trimmed[0]) == trimmed[-1]


def _replace_in_text(
    text: str, term: str, term_word: str, term_punct: str, replacement: str, granularity: Granularity
) -> Tuple[str, int]:
    count = 0

    # Occurrences that carry the term's own punctuation go first.
    if term_punct:
        text, exact = re.subn(re.escape(term), lambda m: replacement + term_punct, text)
        count += exact

    if granularity is Granularity.CHAR:
        pattern = re.compile(re.escape(term_word))
    else:
        lookahead = f"(?!{re.escape(term_punct)})" if term_punct else ""
        pattern = re.compile(rf"\b{re.escape(term_word)}\b{lookahead}", re.IGNORECASE)

    def substitute(match):
        if granularity is Granularity.CHAR:
            return replacement
        punct = _TRAILING_PUNCT_RE.search(match.group(0))
        punct = punct.group(0) if punct else ""
        return replacement if punct == term_punct else replacement + punct

    text, loose = pattern.subn(substitute, text)
    count += loose

    if replacement == "":
        text = _MULTI_SPACE_RE.sub(" ", text).strip()
    return text, count


def replace_all(
    term: str, replacement: str, document: Sequence[LyricLine], notifier: Optional[Notifier] = None
) -> Tuple[List[LyricLine], int]:
    """
    Replaces every whole-word, case-insensitive occurrence of term across the
    document and returns the new document with the number of replacements.

    If term ends in sentence punctuation ("horny,"), occurrences carrying that
    punctuation are replaced first and keep it; the bare word is then replaced
    wherever it is not followed by it. Annotation lines are returned as they
    are; every other line is recomputed from its original text, whether or
    not it contained the term.
    """
    if notifier is None:
        notifier = NullNotifier()

    if not term.strip():
        notifier.error("Please enter a term to replace")
        return list(document), 0

    term_match = _TERM_RE.match(term)
    term_word, term_punct = term_match.group(1), term_match.group(2)

    total = 0
    updated = []
    for line in document:
        if should_ignore_line(line.modified):
            logger.debug("Skipping annotation line", line_id=line.id)
            updated.append(line)
            continue

        granularity = Granularity.for_text(line.original)
        new_modified, count = _replace_in_text(line.modified, term, term_word, term_punct, replacement, granularity)
        total += count
        changes = calculate_word_changes(line.original, new_modified, granularity)
        if granularity is Granularity.WORD:
            changes = merge_adjacent_deletions(changes)
        updated.append(
            line.model_copy(
                update={
                    "modified": new_modified,
                    "marked_text": generate_marked_text(line.original, new_modified, changes, granularity),
                    "word_changes": changes,
                }
            )
        )
        logger.debug("Recomputed line after replace", line_id=line.id, replacements=count)

    logger.info("Replace all finished", term=term, replacement=replacement, total=total)
    if total > 0:
        notifier.success(f'Replaced {total} instance(s) of "{term}" with "{replacement}"')
    else:
        notifier.info(f'"{term}" not found')
    return updated, total


def reconstruct_from_checkout(original_lyrics: str, modified_lyrics: str) -> List[LyricLine]:
    """
    Rebuilds a document from the original and modified lyrics of a checkout
    snapshot, pairing lines by position. A side that runs out of lines
    contributes empty text.
    """
    original_lines = original_lyrics.split("\n")
    modified_lines = modified_lyrics.split("\n")

    document = []
    for i in range(max(len(original_lines), len(modified_lines))):
        original = original_lines[i].strip() if i < len(original_lines) else ""
        modified = modified_lines[i].strip() if i < len(modified_lines) else ""
        granularity = Granularity.for_text(original)
        changes = calculate_word_changes(original, modified, granularity)
        document.append(
            LyricLine(
                id=i + 1,
                original=original,
                modified=modified,
                marked_text=generate_marked_text(original, modified, changes, granularity),
                word_changes=changes,
            )
        )

    logger.info("Reconstructed lyrics from checkout", lines=len(document))
    return document
