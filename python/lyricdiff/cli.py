import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from lyricdiff import __version__
from lyricdiff.counting import distinct_changed_words, line_change_summaries, price_for_word_count
from lyricdiff.editor import generate_lyrics_data, reconstruct_from_checkout, replace_all
from lyricdiff.models import LyricLine
from lyricdiff.snapshot import SnapshotError, build_checkout_data, load_checkout_document, render_checkout_text

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _configure_logging(level_name: str):
    level = getattr(logging, level_name.upper(), logging.WARNING)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


class _ConsoleNotifier:
    """Prints notices to stderr and remembers whether an error was raised."""

    def __init__(self):
        self.failed = False

    def success(self, message: str) -> None:
        print(f"✅ {message}", file=sys.stderr)

    def error(self, message: str) -> None:
        self.failed = True
        print(f"Error: {message}", file=sys.stderr)

    def info(self, message: str) -> None:
        print(message, file=sys.stderr)


def _read_text(path: Path) -> str:
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _write_or_print(text: str, output: Optional[Path]):
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"✅ Saved to {output}", file=sys.stderr)
    else:
        print(text)


def _pair_documents(original_text: str, modified_text: str) -> List[LyricLine]:
    # Blank lines are dropped from both sides before pairing by position.
    original = "\n".join(line.original for line in generate_lyrics_data(original_text))
    modified = "\n".join(line.original for line in generate_lyrics_data(modified_text))
    return reconstruct_from_checkout(original, modified)


def _document_payload(document: List[LyricLine]) -> dict:
    changed = distinct_changed_words(document)
    return {
        "lines": [line.model_dump(by_alias=True) for line in document],
        "changedWords": changed,
        "price": price_for_word_count(len(changed)),
    }


def _print_summary(document: List[LyricLine]):
    summaries = line_change_summaries(document)
    changed = distinct_changed_words(document)

    print(f"Found {len(summaries)} changed lines:", file=sys.stderr)
    for summary in summaries:
        print(summary)
    print(f"Changed Words ({len(changed)}): {', '.join(changed)}")
    print(f"Price: ${price_for_word_count(len(changed))}")


def handle_diff(args):
    document = _pair_documents(_read_text(args.original), _read_text(args.modified))
    if args.json:
        print(json.dumps(_document_payload(document), indent=2, ensure_ascii=False))
    else:
        _print_summary(document)


def handle_replace(args):
    document = generate_lyrics_data(_read_text(args.lyrics))
    notifier = _ConsoleNotifier()
    updated, count = replace_all(args.term, args.replacement, document, notifier=notifier)
    if notifier.failed:
        sys.exit(1)

    _write_or_print("\n".join(line.modified for line in updated), args.output)
    print(f"Stats: {count} replacements.", file=sys.stderr)


def handle_snapshot(args):
    document = _pair_documents(_read_text(args.original), _read_text(args.modified))
    data = build_checkout_data(
        document,
        title=args.title,
        artist=args.artist,
        url=args.url,
        image=args.image,
        special_requests=args.requests,
        delivery_preference=args.delivery,
    )
    _write_or_print(render_checkout_text(data, document), args.output)


def handle_resume(args):
    try:
        data, document = load_checkout_document(_read_text(args.snapshot))
    except SnapshotError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        payload = _document_payload(document)
        payload["checkout"] = data.model_dump(by_alias=True)
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    print(f"Resuming '{data.title or 'Untitled'}' by {data.artist or 'unknown artist'}", file=sys.stderr)
    _print_summary(document)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lyricdiff", description="Lyric change tracking and pricing")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        type=str.upper,
        help="Log level for diagnostics on stderr (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Subcommands")

    p_diff = subparsers.add_parser("diff", help="Compare original and modified lyrics line by line")
    p_diff.add_argument("original", type=Path, help="Original lyrics text file")
    p_diff.add_argument("modified", type=Path, help="Modified lyrics text file")
    p_diff.add_argument("--json", action="store_true", help="Output the document as JSON")
    p_diff.set_defaults(func=handle_diff)

    p_replace = subparsers.add_parser("replace", help="Replace a word everywhere in a lyrics file")
    p_replace.add_argument("lyrics", type=Path, help="Lyrics text file")
    p_replace.add_argument("term", help="Word to replace; trailing punctuation only matches that punctuation")
    p_replace.add_argument("replacement", help="Replacement text (may be empty)")
    p_replace.add_argument("-o", "--output", type=Path, help="Output file (default: stdout)")
    p_replace.set_defaults(func=handle_replace)

    p_snapshot = subparsers.add_parser("snapshot", help="Write a checkout snapshot file")
    p_snapshot.add_argument("original", type=Path, help="Original lyrics text file")
    p_snapshot.add_argument("modified", type=Path, help="Modified lyrics text file")
    p_snapshot.add_argument("--title", default="", help="Song title")
    p_snapshot.add_argument("--artist", default="", help="Song artist")
    p_snapshot.add_argument("--url", default="", help="Song URL")
    p_snapshot.add_argument("--image", default="", help="Cover image URL")
    p_snapshot.add_argument("--requests", default="", help="Special requests")
    p_snapshot.add_argument("--delivery", default="", help="Delivery preference")
    p_snapshot.add_argument("-o", "--output", type=Path, help="Output file (default: stdout)")
    p_snapshot.set_defaults(func=handle_snapshot)

    p_resume = subparsers.add_parser("resume", help="Load a checkout snapshot and summarize its changes")
    p_resume.add_argument("snapshot", type=Path, help="Checkout snapshot text file")
    p_resume.add_argument("--json", action="store_true", help="Output the document and checkout data as JSON")
    p_resume.set_defaults(func=handle_resume)

    return parser


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)
    _configure_logging(args.log_level)
    args.func(args)


if __name__ == "__main__":
    main()
