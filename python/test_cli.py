"""
Tests for the lyricdiff command line and the MCP tool functions.

Run: python3 test_cli.py
From: python/
"""

import io
import json
import tempfile
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from lyricdiff.cli import main

ORIGINAL = "I take it easy, babe, I\n\nHello, world!\n"
MODIFIED = "I take it steady, babe, I\nHello, world!\n"


def _run(argv):
    out, err = io.StringIO(), io.StringIO()
    code = 0
    with redirect_stdout(out), redirect_stderr(err):
        try:
            main(argv)
        except SystemExit as e:
            code = e.code
    return code, out.getvalue(), err.getvalue()


def _write(directory, name, text):
    path = Path(directory) / name
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_cli_diff():
    with tempfile.TemporaryDirectory() as tmp:
        code, out, _ = _run(["diff", _write(tmp, "a.txt", ORIGINAL), _write(tmp, "b.txt", MODIFIED)])

    assert code == 0
    assert 'Line 1: "I take it easy, babe, I" -> "I take it steady, babe, I"' in out
    assert "Changed Words (1): steady" in out
    assert "Price: $45" in out
    print("PASS: cli diff")


def test_cli_diff_json():
    with tempfile.TemporaryDirectory() as tmp:
        code, out, _ = _run(["diff", _write(tmp, "a.txt", ORIGINAL), _write(tmp, "b.txt", MODIFIED), "--json"])

    payload = json.loads(out)
    assert code == 0
    assert payload["changedWords"] == ["steady"]
    assert payload["price"] == 45
    assert payload["lines"][0]["markedText"] == 'I take it <span class="text-red-600">steady</span>, babe, I'
    assert len(payload["lines"]) == 2
    print("PASS: cli diff --json")


def test_cli_missing_file():
    code, _, err = _run(["diff", "/nonexistent/a.txt", "/nonexistent/b.txt"])
    assert code == 1
    assert "Error: File not found" in err
    print("PASS: cli missing file")


def test_cli_replace():
    with tempfile.TemporaryDirectory() as tmp:
        lyrics = _write(tmp, "lyrics.txt", "I'm stayin' hungry, I'm stayin' hungry\n(Chorus hungry)\n")
        output = Path(tmp) / "out.txt"
        code, _, err = _run(["replace", lyrics, "hungry", "horny", "-o", str(output)])
        written = output.read_text(encoding="utf-8")

    assert code == 0
    assert written == "I'm stayin' horny, I'm stayin' horny\n(Chorus hungry)"
    assert 'Replaced 2 instance(s) of "hungry" with "horny"' in err
    print("PASS: cli replace")


def test_cli_replace_blank_term():
    with tempfile.TemporaryDirectory() as tmp:
        code, out, err = _run(["replace", _write(tmp, "lyrics.txt", "one\n"), " ", "x"])

    assert code == 1
    assert out == ""
    assert "Please enter a term to replace" in err
    print("PASS: cli replace blank term")


def test_cli_snapshot_and_resume():
    with tempfile.TemporaryDirectory() as tmp:
        snapshot = Path(tmp) / "checkout.txt"
        code, _, _ = _run(
            [
                "snapshot",
                _write(tmp, "a.txt", ORIGINAL),
                _write(tmp, "b.txt", MODIFIED),
                "--title",
                "Easy",
                "-o",
                str(snapshot),
            ]
        )
        assert code == 0
        text = snapshot.read_text(encoding="utf-8")
        assert "Title: Easy" in text
        assert "LYRICS CHANGES (1 words modified):" in text

        code, out, err = _run(["resume", str(snapshot)])
        assert code == 0
        assert "Resuming 'Easy'" in err
        assert "Changed Words (1): steady" in out

        code, out, _ = _run(["resume", str(snapshot), "--json"])
        payload = json.loads(out)
        assert payload["checkout"]["title"] == "Easy"
        assert payload["changedWords"] == ["steady"]
    print("PASS: cli snapshot and resume")


def test_cli_resume_rejects_bad_snapshot():
    with tempfile.TemporaryDirectory() as tmp:
        code, _, err = _run(["resume", _write(tmp, "bad.txt", "not a snapshot")])

    assert code == 1
    assert "Error: Snapshot is missing" in err
    print("PASS: cli resume rejects bad snapshot")


def test_cli_log_level_is_case_insensitive():
    with tempfile.TemporaryDirectory() as tmp:
        code, _, _ = _run(
            ["--log-level", "debug", "diff", _write(tmp, "a.txt", ORIGINAL), _write(tmp, "b.txt", MODIFIED)]
        )
    assert code == 0
    print("PASS: cli log level")


def test_server_tools():
    from lyricdiff.server import diff_lyrics, replace_in_lyrics, summarize_checkout

    summary = diff_lyrics(ORIGINAL, MODIFIED)
    assert "Changed Words (1): steady" in summary
    assert "Price: $45" in summary

    replaced = replace_in_lyrics("so hungry\nstill hungry", "hungry", "thirsty")
    assert replaced.startswith("so thirsty\nstill thirsty")
    assert 'Replaced 2 instance(s) of "hungry" with "thirsty"' in replaced

    assert replace_in_lyrics("so hungry", "  ", "x").startswith("Error")
    assert summarize_checkout("/nonexistent/checkout.txt").startswith("Error")
    print("PASS: server tools")


if __name__ == "__main__":
    tests = [
        test_cli_diff,
        test_cli_diff_json,
        test_cli_missing_file,
        test_cli_replace,
        test_cli_replace_blank_term,
        test_cli_snapshot_and_resume,
        test_cli_resume_rejects_bad_snapshot,
        test_cli_log_level_is_case_insensitive,
        test_server_tools,
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
