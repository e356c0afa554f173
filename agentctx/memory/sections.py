"""Parsing and condensing of generated summaries."""

from __future__ import annotations

import logging
import re

from .types import Section

logger = logging.getLogger(__name__)

_ANALYSIS_RE = re.compile(r"<analysis>(.*?)</analysis>", re.DOTALL)

# Tried in order; the first format with any match wins.
_SECTION_PATTERNS = [
    # "1. Title: body"
    re.compile(r"^(\d+)\.[ \t]+([^:\n]+):(.*?)(?=\n\d+\.|\Z)", re.MULTILINE | re.DOTALL),
    # "1) Title: body"
    re.compile(r"^(\d+)\)[ \t]+([^:\n]+):(.*?)(?=\n\d+\)|\Z)", re.MULTILINE | re.DOTALL),
    # "1 - Title: body"
    re.compile(r"^(\d+)[ \t]+-[ \t]+([^:\n]+):(.*?)(?=\n\d+[ \t]+-|\Z)", re.MULTILINE | re.DOTALL),
    # "1. Title\nbody"
    re.compile(r"^(\d+)\.[ \t]+([^\n]+)\n(.*?)(?=\n\d+\.|\Z)", re.MULTILINE | re.DOTALL),
    # "a. Title: body"
    re.compile(r"^([a-z])\.[ \t]+([^:\n]+):(.*?)(?=\n[a-z]\.[ \t]|\Z)", re.MULTILINE | re.DOTALL),
    # "a) Title: body"
    re.compile(r"^([a-z])\)[ \t]+([^:\n]+):(.*?)(?=\n[a-z]\)|\Z)", re.MULTILINE | re.DOTALL),
]

EMPTY_SECTION_CONTENT = "No content provided"

# Sections of an older summary worth carrying into the next one.
CONDENSED_SECTION_TITLES = ("Pending Tasks", "Current Work", "Errors and fixes")
CONDENSED_SECTION_MAX_CHARS = 500


def strip_analysis(summary: str) -> str:
    return _ANALYSIS_RE.sub("", summary, count=1).strip()


def parse_sections(summary: str) -> list[Section]:
    """Split a generated summary into display sections.

    An ``<analysis>`` block becomes an "Analysis" section. Numbered or lettered
    items become one section each. Unstructured text becomes a single
    "Summary" section. Never raises.
    """
    sections: list[Section] = []

    analysis = _ANALYSIS_RE.search(summary)
    if analysis and analysis.group(1).strip():
        sections.append(Section(title="Analysis", content=analysis.group(1).strip()))

    body = strip_analysis(summary)
    for pattern in _SECTION_PATTERNS:
        matches = list(pattern.finditer(body))
        if not matches:
            continue
        for match in matches:
            label, title, content = match.group(1), match.group(2).strip(), match.group(3)
            if not title:
                continue
            sections.append(
                Section(
                    title=f"{label}. {title}",
                    content=content.strip() or EMPTY_SECTION_CONTENT,
                )
            )
        return sections

    if body:
        logger.warning("Could not parse structured sections, using full summary")
        sections.append(Section(title="Summary", content=body))
    return sections


def condense_previous_summary(summary: str, max_chars: int = 8000) -> str:
    """Shrink an older summary before it is folded into a new one.

    Short summaries are returned unchanged. Longer ones keep only the pending
    tasks, current work and errors sections, each capped, or are truncated
    when none of those sections can be found.
    """
    if len(summary) <= max_chars:
        return summary

    condensed = ""
    for title in CONDENSED_SECTION_TITLES:
        pattern = re.compile(
            rf"\d+\.\s*{re.escape(title)}[:\s](.*?)(?=\n\d+\.|\Z)", re.IGNORECASE | re.DOTALL
        )
        match = pattern.search(summary)
        if match and match.group(1).strip():
            content = match.group(1).strip()[:CONDENSED_SECTION_MAX_CHARS]
            condensed += f"{title}: {content}\n\n"

    if condensed:
        logger.info(
            "Condensed previous summary from %d to %d chars", len(summary), len(condensed)
        )
        return condensed

    return f"{summary[:max_chars]}..."
