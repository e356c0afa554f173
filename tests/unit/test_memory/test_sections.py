"""Unit tests for agentctx.memory.sections module."""

from agentctx.memory.sections import (
    EMPTY_SECTION_CONTENT,
    condense_previous_summary,
    parse_sections,
)


def titles(sections) -> list[str]:
    return [s.title for s in sections]


class TestParseSections:
    """Tests for parse_sections."""

    def test_numbered_with_colon(self):
        summary = "1. Primary Request: Fix the build.\n2. Current Work: Editing app.py."
        sections = parse_sections(summary)
        assert titles(sections) == ["1. Primary Request", "2. Current Work"]
        assert sections[0].content == "Fix the build."
        assert sections[1].content == "Editing app.py."

    def test_multiline_bodies(self):
        summary = "1. Files: \n- a.py\n- b.py\n2. Errors and fixes: none"
        sections = parse_sections(summary)
        assert sections[0].content == "- a.py\n- b.py"

    def test_parenthesis_format(self):
        sections = parse_sections("1) Goal: ship it\n2) Status: done")
        assert titles(sections) == ["1. Goal", "2. Status"]

    def test_dash_format(self):
        sections = parse_sections("1 - Goal: ship it\n2 - Status: done")
        assert titles(sections) == ["1. Goal", "2. Status"]

    def test_title_on_own_line(self):
        sections = parse_sections("1. Goal\nship it\n2. Status\ndone")
        assert titles(sections) == ["1. Goal", "2. Status"]
        assert sections[1].content == "done"

    def test_lettered_format(self):
        sections = parse_sections("a. Goal: ship it\nb. Status: done")
        assert titles(sections) == ["a. Goal", "b. Status"]

    def test_empty_body_gets_placeholder(self):
        sections = parse_sections("1. Pending Tasks:\n2. Current Work: coding")
        assert sections[0].content == EMPTY_SECTION_CONTENT

    def test_analysis_block_is_own_section(self):
        summary = (
            "<analysis>\n1. Looked at logs\n2. Found bug\n</analysis>\n"
            "1. Primary Request: Fix bug.\n2. Current Work: Testing."
        )
        sections = parse_sections(summary)
        assert titles(sections) == ["Analysis", "1. Primary Request", "2. Current Work"]
        assert sections[0].content == "1. Looked at logs\n2. Found bug"

    def test_unstructured_summary_falls_back(self):
        sections = parse_sections("<analysis>thinking</analysis>\nWe fixed the bug in app.py.")
        assert titles(sections) == ["Analysis", "Summary"]
        assert sections[1].content == "We fixed the bug in app.py."

    def test_empty_summary(self):
        assert parse_sections("") == []

    def test_inline_numbers_are_not_sections(self):
        sections = parse_sections("Version 2. Release notes: none")
        assert titles(sections) == ["Summary"]


class TestCondensePreviousSummary:
    """Tests for condense_previous_summary."""

    def test_short_summary_unchanged(self):
        assert condense_previous_summary("short", max_chars=100) == "short"

    def test_keeps_important_sections(self):
        filler = "x" * 200
        summary = (
            f"1. Primary Request: {filler}\n"
            f"4. Errors and fixes: fixed import\n"
            f"7. Pending Tasks: write tests\n"
            f"8. Current Work: {'y' * 1000}"
        )
        condensed = condense_previous_summary(summary, max_chars=100)
        assert condensed.startswith("Pending Tasks: write tests\n\n")
        assert "Errors and fixes: fixed import" in condensed
        assert f"Current Work: {'y' * 500}\n\n" in condensed
        assert "y" * 501 not in condensed
        assert filler not in condensed

    def test_truncates_without_known_sections(self):
        summary = "z" * 50
        assert condense_previous_summary(summary, max_chars=10) == "z" * 10 + "..."
