import logging
import sys
from pathlib import Path
from typing import List

import structlog
from mcp.server.fastmcp import FastMCP

from lyricdiff.counting import distinct_changed_words, line_change_summaries, price_for_word_count
from lyricdiff.editor import generate_lyrics_data, reconstruct_from_checkout, replace_all
from lyricdiff.models import LyricLine
from lyricdiff.snapshot import load_checkout_document

# --- LOGGING CONFIGURATION ---
# MCP talks JSON-RPC over stdout, so every log line goes to stderr.
logging.basicConfig(stream=sys.stderr, level=logging.INFO, force=True)

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
)

mcp = FastMCP("Lyric Diff Service")


class _CollectingNotifier:
    def __init__(self):
        self.messages: List[str] = []
        self.failed = False

    def success(self, message: str) -> None:
        self.messages.append(message)

    def error(self, message: str) -> None:
        self.failed = True
        self.messages.append(message)

    def info(self, message: str) -> None:
        self.messages.append(message)


def _summarize(document: List[LyricLine]) -> str:
    summaries = line_change_summaries(document)
    changed = distinct_changed_words(document)

    output = list(summaries) if summaries else ["No changes detected"]
    output.append("")
    output.append(f"Changed Words ({len(changed)}): {', '.join(changed)}")
    output.append(f"Price: ${price_for_word_count(len(changed))}")
    return "\n".join(output)


@mcp.tool()
def diff_lyrics(original_lyrics: str, modified_lyrics: str) -> str:
    """
    Compares original and modified lyrics line by line and reports what changed.

    Args:
        original_lyrics: The untouched lyrics, one line per lyric line.
        modified_lyrics: The edited lyrics. Lines are paired with the original by position,
                         after blank lines are dropped from both sides.

    Returns:
        One 'Line N: "original" -> "modified"' entry per changed line, followed by the
        distinct changed words and the price tier they fall into.
    """
    try:
        original = "\n".join(line.original for line in generate_lyrics_data(original_lyrics))
        modified = "\n".join(line.original for line in generate_lyrics_data(modified_lyrics))
        return _summarize(reconstruct_from_checkout(original, modified))
    except Exception as e:
        return f"Error computing diff: {str(e)}"


@mcp.tool()
def replace_in_lyrics(lyrics: str, term: str, replacement: str) -> str:
    """
    Replaces a word everywhere in the lyrics and returns the new lyrics.

    Matching is whole-word and case-insensitive. If `term` ends in punctuation (e.g. "baby,")
    only occurrences followed by that punctuation are replaced first, keeping it.
    Annotation lines such as "(Chorus)" or "[Verse 1]" are left alone.

    Args:
        lyrics: The lyrics text.
        term: Word to replace.
        replacement: Replacement text; an empty string removes the word.
    """
    try:
        notifier = _CollectingNotifier()
        updated, count = replace_all(term, replacement, generate_lyrics_data(lyrics), notifier=notifier)
        if notifier.failed:
            return f"Error: {'; '.join(notifier.messages)}"

        output = ["\n".join(line.modified for line in updated), ""]
        output.extend(notifier.messages)
        output.append(_summarize(updated))
        return "\n".join(output)
    except Exception as e:
        return f"Error replacing text: {str(e)}"


@mcp.tool()
def summarize_checkout(snapshot_path: str) -> str:
    """
    Loads a checkout snapshot file and summarizes the lyric changes it records.

    Args:
        snapshot_path: Absolute path to the snapshot text file.
    """
    try:
        p = Path(snapshot_path)
        if not p.exists():
            return f"Error: File not found: {snapshot_path}"
        with open(p, "r", encoding="utf-8") as f:
            data, document = load_checkout_document(f.read())

        header = [
            f"Title: {data.title or 'N/A'}",
            f"Artist: {data.artist or 'N/A'}",
            f"Special Requests: {data.special_requests or 'None'}",
            "",
        ]
        return "\n".join(header) + _summarize(document)
    except Exception as e:
        return f"Error reading checkout: {str(e)}"


def main():
    mcp.run()


if __name__ == "__main__":
    main()
