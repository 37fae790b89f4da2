"""Tests for UX helpers module."""

from __future__ import annotations

import io

import pytest

from trackersync.ux import (
    Colors,
    colorize,
    print_error,
    print_success,
    print_summary_box,
    print_warning,
)


def test_colorize_with_tty_support(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test colorize adds colors when TTY is supported."""
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("TERM", "xterm-256color")

    stream = io.StringIO()
    # Make it look like a TTY
    stream.isatty = lambda: True  # type: ignore[method-assign]

    result = colorize("test", Colors.RED, bold=True, stream=stream)
    assert Colors.RED in result
    assert Colors.BOLD in result
    assert Colors.RESET in result
    assert "test" in result


def test_colorize_respects_no_color(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test colorize respects NO_COLOR environment variable."""
    monkeypatch.setenv("NO_COLOR", "1")

    result = colorize("test", Colors.RED, bold=True)
    assert result == "test"


def test_colorize_dumb_terminal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("TERM", "dumb")
    stream = io.StringIO()
    stream.isatty = lambda: True  # type: ignore[method-assign]

    assert colorize("plain", Colors.GREEN, stream=stream) == "plain"


def test_print_helpers_choose_streams(capsys: pytest.CaptureFixture[str]) -> None:
    print_success("done")
    print_warning("careful")
    print_error("broken")

    captured = capsys.readouterr()
    assert "✓ done" in captured.out
    assert "⚠ careful" in captured.out
    assert "✗ broken" in captured.err


def test_print_summary_box_aligns_keys() -> None:
    stream = io.StringIO()

    print_summary_box("Sync github:a/b -> gitlab:c/d", [("Created", 2), ("Failed", 0)], stream=stream)

    lines = stream.getvalue().splitlines()
    assert "Sync github:a/b -> gitlab:c/d" in lines
    assert "  Created  2" in lines
    assert "  Failed   0" in lines


def test_print_summary_box_empty_items() -> None:
    stream = io.StringIO()

    print_summary_box("Empty", [], stream=stream)

    assert "Empty" in stream.getvalue()


def test_print_summary_box_highlights_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("TERM", "xterm-256color")
    stream = io.StringIO()
    stream.isatty = lambda: True  # type: ignore[method-assign]

    print_summary_box("Sync", [("Created", 3), ("Failed", 2), ("Skipped", 0)], stream=stream)

    lines = stream.getvalue().splitlines()
    created = next(line for line in lines if "Created" in line)
    failed = next(line for line in lines if "Failed" in line)
    skipped = next(line for line in lines if "Skipped" in line)
    assert Colors.GREEN in created
    assert Colors.RED in failed
    assert Colors.RESET not in skipped
