"""
Checkout snapshot: a plain-text file holding song details, the distinct changed
words, a line-by-line change summary and both versions of the lyrics. It is
written at checkout and read back to resume editing later.
"""

import datetime
import re
from typing import List, Optional, Sequence, Tuple

import structlog

from lyricdiff.counting import distinct_changed_words, line_change_summaries, price_for_word_count
from lyricdiff.editor import reconstruct_from_checkout
from lyricdiff.markup import strip_html_and_symbols
from lyricdiff.models import CheckoutData, LyricLine

logger = structlog.get_logger(__name__)

NOT_AVAILABLE = "N/A"
NO_REQUESTS = "None"
NO_CHANGES = "No changes detected"

_BANNER = [
    "/*******************************************************************",
    " *                                                                 *",
    " *  WARNING:  This file is auto-generated, do not edit it because  *",
    " *  that would make the file unusable and you may have to start    *",
    " *  the order process all over again.                              *",
    " *                                                                 *",
    " *******************************************************************/",
    "",
    "/*******************************************************************",
    " *                                                                 *",
    " *  USAGE: To continue with your last checkout, load this file     *",
    " *  from the \"Load Checkout\" tab.                                  *",
    " *                                                                 *",
    " *******************************************************************/",
    "",
    "SONG MODIFICATION PROGRESS",
]

_BLOCK_RE = re.compile(
    r"^ORIGINAL LYRICS:\n(?P<original>.*?)\n\nMODIFIED LYRICS:\n(?P<modified>.*?)\n\n"
    r"(?:SPECIAL REQUESTS:\n(?P<requests>.*?)\n\n)?END-OF-FILE",
    re.DOTALL | re.MULTILINE,
)
_FIELD_RES = {
    "generated_on": re.compile(r"^Generated on: (.*)$", re.MULTILINE),
    "title": re.compile(r"^Title: (.*)$", re.MULTILINE),
    "artist": re.compile(r"^Artist: (.*)$", re.MULTILINE),
    "image": re.compile(r"^Image URL: (.*)$", re.MULTILINE),
    "url": re.compile(r"^URL: (.*)$", re.MULTILINE),
    "delivery_preference": re.compile(r"^Delivery: (.*)$", re.MULTILINE),
    "total_cost": re.compile(r"^Total Cost: (.*)$", re.MULTILINE),
}
_CHANGED_WORDS_RE = re.compile(r"^Changed Words: ?(.*)$", re.MULTILINE)


class SnapshotError(ValueError):
    """Raised when a checkout snapshot cannot be read."""


def _now() -> str:
    stamp = datetime.datetime.now(datetime.timezone.utc).strftime("%d/%m/%Y, %H:%M:%S")
    return f"{stamp} (GMT+0)"


def _plain_modified(line: LyricLine) -> str:
    if line.marked_text and line.marked_text != line.modified:
        return strip_html_and_symbols(line.marked_text)
    return line.modified


def build_checkout_data(
    document: Sequence[LyricLine],
    title: str = "",
    artist: str = "",
    url: str = "",
    image: str = "",
    special_requests: str = "",
    delivery_preference: str = "",
    generated_on: Optional[str] = None,
) -> CheckoutData:
    changed = distinct_changed_words(document)
    return CheckoutData(
        title=title,
        artist=artist,
        url=url,
        image=image,
        changed_words=changed,
        original_lyrics="\n".join(line.original for line in document),
        modified_lyrics="\n".join(_plain_modified(line) for line in document),
        special_requests=special_requests,
        delivery_preference=delivery_preference,
        total_cost=f"${price_for_word_count(len(changed))}",
        generated_on=generated_on or _now(),
    )


def render_checkout_text(data: CheckoutData, document: Sequence[LyricLine]) -> str:
    """
    Formats a checkout snapshot. The document supplies the line-by-line
    change summary; everything else comes from data.
    """
    summaries = line_change_summaries(document)
    content = list(_BANNER)
    content += [
        f"Generated on: {data.generated_on or _now()}",
        "",
        "SONG INFORMATION:",
        f"Title: {data.title or NOT_AVAILABLE}",
        f"Artist: {data.artist or NOT_AVAILABLE}",
        f"Image URL: {data.image or NOT_AVAILABLE}",
        f"URL: {data.url or NOT_AVAILABLE}",
        f"Delivery: {data.delivery_preference or NOT_AVAILABLE}",
        f"Total Cost: {data.total_cost or NOT_AVAILABLE}",
        "",
        f"LYRICS CHANGES ({len(data.changed_words)} words modified):",
        f"Changed Words: {', '.join(data.changed_words)}",
        "",
        "LINE-BY-LINE CHANGES:",
        "\n".join(summaries) if summaries else NO_CHANGES,
        "",
        "ORIGINAL LYRICS:",
        data.original_lyrics,
        "",
        "MODIFIED LYRICS:",
        data.modified_lyrics,
        "",
        "SPECIAL REQUESTS:",
        data.special_requests or NO_REQUESTS,
        "",
        "END-OF-FILE",
        "",
    ]
    return "\n".join(content)


def _field(name: str, text: str) -> str:
    match = _FIELD_RES[name].search(text)
    if not match:
        return ""
    value = match.group(1).strip()
    return "" if value == NOT_AVAILABLE else value


def parse_checkout_text(text: str) -> CheckoutData:
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    for header in ("ORIGINAL LYRICS:", "MODIFIED LYRICS:", "END-OF-FILE"):
        if header not in text:
            raise SnapshotError(f"Snapshot is missing the '{header}' section")

    block = _BLOCK_RE.search(text)
    if block is None:
        raise SnapshotError("Snapshot lyrics sections are out of order or malformed")

    # Only look for song fields ahead of the lyrics, where they are written.
    head = text[: block.start()]

    changed_match = _CHANGED_WORDS_RE.search(head)
    changed_words: List[str] = []
    if changed_match and changed_match.group(1).strip():
        changed_words = [w.strip() for w in changed_match.group(1).split(",") if w.strip()]

    requests = (block.group("requests") or "").strip()
    if requests == NO_REQUESTS:
        requests = ""

    data = CheckoutData(
        title=_field("title", head),
        artist=_field("artist", head),
        url=_field("url", head),
        image=_field("image", head),
        changed_words=changed_words,
        original_lyrics=block.group("original"),
        modified_lyrics=block.group("modified"),
        special_requests=requests,
        delivery_preference=_field("delivery_preference", head),
        total_cost=_field("total_cost", head),
        generated_on=_field("generated_on", head),
    )
    logger.debug("Parsed checkout snapshot", title=data.title, changed_words=len(changed_words))
    return data


def load_checkout_document(text: str) -> Tuple[CheckoutData, List[LyricLine]]:
    """Parses a snapshot and rebuilds the document it was written from."""
    data = parse_checkout_text(text)
    return data, reconstruct_from_checkout(data.original_lyrics, data.modified_lyrics)
