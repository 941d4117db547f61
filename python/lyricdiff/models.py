from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Reserved sentinel for "this word was removed". U+1F5D9 is not expected in
# lyric input; a genuine occurrence is passed through like any other glyph.
DELETION_MARKER = "\U0001F5D9"

_CJK_RANGES = (
    (0x3000, 0x303F),  # CJK symbols and punctuation
    (0x3400, 0x4DBF),  # CJK unified ideographs extension A
    (0x4E00, 0x9FFF),  # CJK unified ideographs
    (0xF900, 0xFAFF),  # CJK compatibility ideographs
    (0xFF00, 0xFFEF),  # Halfwidth and fullwidth forms
)


def is_cjk(text: str) -> bool:
    """True if any character of text falls in a CJK block."""
    for ch in text:
        cp = ord(ch)
        for lo, hi in _CJK_RANGES:
            if lo <= cp <= hi:
                return True
    return False


class Granularity(str, Enum):
    """
    Diff strategy for one line. Chosen once from the line's original text and
    used for diffing, merging, rendering and counting alike.
    """

    CHAR = "char"
    WORD = "word"

    @classmethod
    def for_text(cls, text: str) -> "Granularity":
        return cls.CHAR if is_cjk(text) else cls.WORD


class _LyricModel(BaseModel):
    # camelCase aliases keep the JSON shape used by the web front end.
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class WordChange(_LyricModel):
    """
    One classified diff unit between a line's original and modified text.
    Indices are positions in the token (or character) stream of each side,
    -1 where the side does not apply.
    """

    original_word: str = ""
    new_word: str = ""
    original_index: int = -1
    new_index: int = -1
    has_changed: bool = False
    is_substitution: bool = False
    is_addition: bool = False
    is_deletion: bool = False
    is_explicit_deletion: bool = Field(
        False,
        description="Produced by clearing a whole line. Never merged with a neighbouring explicit deletion.",
    )
    is_transformation: bool = False


class LyricLine(_LyricModel):
    id: int
    original: str
    modified: str
    marked_text: str = ""
    word_changes: List[WordChange] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return any(change.has_changed for change in self.word_changes)


class CheckoutData(_LyricModel):
    """Song and lyric state exchanged with the checkout snapshot file."""

    title: str = ""
    artist: str = ""
    url: str = ""
    image: str = ""
    changed_words: List[str] = Field(default_factory=list)
    modified_lyrics: str = ""
    original_lyrics: str = ""
    special_requests: str = ""
    delivery_preference: str = ""
    total_cost: str = ""
    generated_on: str = ""
