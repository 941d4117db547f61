from importlib.metadata import PackageNotFoundError, version

from lyricdiff.counting import count_changed_words, distinct_changed_words, price_for_word_count
from lyricdiff.diff import calculate_word_changes, diff_text, merge_adjacent_deletions
from lyricdiff.editor import (
    edit_line,
    generate_lyrics_data,
    reconstruct_from_checkout,
    replace_all,
    reset_all,
    reset_line,
)
from lyricdiff.markup import generate_marked_text, strip_html_and_symbols
from lyricdiff.models import DELETION_MARKER, CheckoutData, Granularity, LyricLine, WordChange, is_cjk

try:
    __version__ = version("lyricdiff")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

__all__ = [
    "DELETION_MARKER",
    "CheckoutData",
    "Granularity",
    "LyricLine",
    "WordChange",
    "is_cjk",
    "diff_text",
    "calculate_word_changes",
    "merge_adjacent_deletions",
    "generate_marked_text",
    "strip_html_and_symbols",
    "count_changed_words",
    "distinct_changed_words",
    "price_for_word_count",
    "generate_lyrics_data",
    "edit_line",
    "reset_line",
    "reset_all",
    "replace_all",
    "reconstruct_from_checkout",
    "__version__",
]
