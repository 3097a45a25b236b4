"""Canonical cleanup of extracted résumé text."""

from __future__ import annotations

import re

_BLANK_LINES = re.compile(r"\n{3,}")
_WHITESPACE_RUNS = re.compile(r"\s{2,}")
# Keep tab, newline and printable ASCII.
_NON_PRINTABLE = re.compile(r"[^\t\n\x20-\x7e]")


def normalize_text(text: str) -> str:
    """Normalize extracted text.

    The steps run in order: CRLF to LF, runs of three or more newlines
    to two, runs of two or more whitespace characters to one space,
    removal of anything outside printable ASCII, and a final strip.
    Non-Latin scripts are removed entirely by the ASCII step.
    """
    text = text.replace("\r\n", "\n")
    text = _BLANK_LINES.sub("\n\n", text)
    text = _WHITESPACE_RUNS.sub(" ", text)
    text = _NON_PRINTABLE.sub("", text)
    return text.strip()
