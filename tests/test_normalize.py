import pytest

from bizgenius.services.normalize import (
    collapse_blank_lines,
    normalize_bullets,
    normalize_text,
    strip_emphasis,
    strip_header_markers,
    strip_line_indent,
)


def test_strip_emphasis_removes_bold_and_italic_markers():
    assert strip_emphasis("**Bold** and *italic* text") == "Bold and italic text"


def test_strip_emphasis_keeps_star_bullets_as_bullets():
    assert strip_emphasis("* first\n  * second") == "• first\n• second"


def test_strip_header_markers_only_at_line_start():
    text = "## Market Analysis\n### 2. Company Description\nWe use C# daily"
    assert strip_header_markers(text) == "Market Analysis\n2. Company Description\nWe use C# daily"


def test_strip_header_markers_repeated_markers():
    assert strip_header_markers("# # Title") == "Title"


def test_normalize_bullets_variants():
    assert normalize_bullets("- a\n  + b\n• c\n-d") == "• a\n• b\n• c\n-d"


def test_strip_line_indent():
    assert strip_line_indent("  a\n\tb\nc") == "a\nb\nc"


def test_collapse_blank_lines():
    assert collapse_blank_lines("a\n\n\n\nb\n\nc") == "a\n\nb\n\nc"


def test_normalize_text_full_pipeline():
    raw = (
        "\r\n## **Executive Summary**\r\n"
        "   We **sell** widgets.\r\n\r\n\r\n\r\n"
        "   - cheap\n"
        "   * durable\n"
        "  \n \n\n"
        "Done.  \n"
    )
    assert normalize_text(raw) == "Executive Summary\nWe sell widgets.\n\n• cheap\n• durable\n\nDone."


def test_normalize_text_empty():
    assert normalize_text("") == ""
    assert normalize_text("   \n\n  ") == ""


@pytest.mark.parametrize(
    "raw",
    [
        "plain text",
        "**1. Executive Summary**\n\n\n\nText",
        "# # Title\n- - nested dash\n* * starred",
        "*# odd\n*- odder\n  +\tplus",
        "line one\n   \n\t\n\n\nline two\n",
        "•  double space bullet\n####### seven hashes",
        "\u00a0- cheap widgets",
        "\u2003## Executive Summary",
        "intro\n\u00a0 - nbsp bullet\n\u2003* em-space star\n\u00a0\n\n\nend",
    ],
)
def test_normalize_text_is_idempotent(raw):
    once = normalize_text(raw)
    assert normalize_text(once) == once


def test_unicode_indent_is_treated_like_spaces():
    assert normalize_text("a\n\u00a0 - b") == "a\n\u2022 b"
    assert normalize_text("\u00a0- cheap widgets") == "\u2022 cheap widgets"
    assert normalize_text("\u2003## Executive Summary") == "Executive Summary"
    assert strip_line_indent("a\n\u00a0\u2003b") == "a\nb"
