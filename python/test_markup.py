"""
Tests for marked-text rendering and HTML sanitizing.

Run: python3 test_markup.py
From: python/
"""

from lyricdiff.diff import calculate_word_changes
from lyricdiff.markup import (
    escape_angle_brackets,
    generate_marked_text,
    highlight,
    is_punctuation_only,
    render_explicit_deletions,
    strip_html_and_symbols,
)
from lyricdiff.models import DELETION_MARKER, WordChange

SPAN = '<span class="text-red-600">{}</span>'


def _render(original, modified):
    return generate_marked_text(original, modified, calculate_word_changes(original, modified))


def test_highlight_substitution():
    marked = _render("I take it easy, babe, I", "I take it steady, babe, I")
    assert marked == "I take it " + SPAN.format("steady") + ", babe, I"
    print("PASS: highlight substitution")


def test_highlight_addition():
    marked = _render("I love you", "I really love you")
    assert marked == "I " + SPAN.format("really") + " love you"
    print("PASS: highlight addition")


def test_punctuation_only_addition_is_not_wrapped():
    assert _render("Hello world", "Hello world!") == "Hello world!"
    print("PASS: punctuation-only addition is not wrapped")


def test_unchanged_line_renders_as_is():
    assert _render("Hello, world!", "Hello, world!") == "Hello, world!"
    print("PASS: unchanged line renders as is")


def test_deletion_renders_marker():
    marked = _render("I really love you", "I love you")
    assert marked == "I " + SPAN.format(DELETION_MARKER) + " love you"
    print("PASS: deletion renders marker")


def test_marker_keeps_trailing_punctuation():
    changes = [
        WordChange(original_word="Hello,", new_word="Hi,", original_index=0, new_index=0),
        WordChange(
            original_word="world!",
            new_word=DELETION_MARKER + "!",
            original_index=1,
            new_index=1,
            has_changed=True,
            is_deletion=True,
        ),
    ]
    marked = generate_marked_text("Hello, world!", "Hi, " + DELETION_MARKER + "!", changes)
    assert marked == "Hi, " + SPAN.format(DELETION_MARKER) + "!"
    print("PASS: marker keeps trailing punctuation")


def test_cjk_returns_modified_verbatim():
    original = "我种下一颗种子 终于长出了果实"
    modified = "我种下一颗幼苗 终于长出了果实"
    assert _render(original, modified) == modified
    print("PASS: CJK marked text is the modified text")


def test_angle_brackets_are_escaped():
    marked = _render("I love you", "I love you <3")
    assert "<3" not in marked
    assert SPAN.format("&lt;3") in marked
    assert escape_angle_brackets("<b>") == "&lt;b&gt;"
    print("PASS: angle brackets are escaped")


def test_explicit_deletions_render_one_marker_each():
    assert render_explicit_deletions(3) == " ".join([SPAN.format(DELETION_MARKER)] * 3)
    assert render_explicit_deletions(0) == ""
    print("PASS: explicit deletions render one marker each")


def test_is_punctuation_only():
    assert is_punctuation_only("!")
    assert is_punctuation_only(", ")
    assert is_punctuation_only("…")
    assert not is_punctuation_only("a!")
    assert not is_punctuation_only("")
    print("PASS: punctuation-only detection")


def test_strip_html_and_symbols():
    assert strip_html_and_symbols(highlight("steady") + ", babe") == "steady, babe"
    assert strip_html_and_symbols("Hi, " + highlight(DELETION_MARKER) + "!") == "Hi, !"
    assert strip_html_and_symbols("rock &amp; roll") == "rock & roll"
    assert strip_html_and_symbols("Tom & Jerry") == "Tom & Jerry"
    assert strip_html_and_symbols(" ".join([highlight(DELETION_MARKER)] * 3)) == ""
    assert strip_html_and_symbols("  plain   text ") == "plain text"
    assert strip_html_and_symbols("") == ""
    assert strip_html_and_symbols("   ") == ""
    print("PASS: strip html and symbols")


if __name__ == "__main__":
    tests = [
        test_highlight_substitution,
        test_highlight_addition,
        test_punctuation_only_addition_is_not_wrapped,
        test_unchanged_line_renders_as_is,
        test_deletion_renders_marker,
        test_marker_keeps_trailing_punctuation,
        test_cjk_returns_modified_verbatim,
        test_angle_brackets_are_escaped,
        test_explicit_deletions_render_one_marker_each,
        test_is_punctuation_only,
        test_strip_html_and_symbols,
    ]

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"FAIL: {test.__name__}: {e}")
            import traceback
            traceback.print_exc()
            failed += 1

    print(f"\n{'='*60}")
    print(f"Results: {passed} passed, {failed} failed out of {len(tests)} tests")
    if failed == 0:
        print("ALL TESTS PASSED")
    else:
        print("SOME TESTS FAILED")
