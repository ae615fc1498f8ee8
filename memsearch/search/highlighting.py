"""Search result highlighting and snippet generation."""

from __future__ import annotations

import re

from memsearch.core.models import MemorialDocument
from memsearch.search.models import Highlight


class Highlighter:
    """Generates marked snippets for the name and narrative fields."""

    def __init__(
        self,
        snippet_length: int = 150,
        highlight_tag: str = "mark",
        context: int = 50,
    ):
        """Initialize highlighter.

        Args:
            snippet_length: Maximum raw characters in a narrative snippet
            highlight_tag: HTML tag wrapped around matches
            context: Characters kept before the first match
        """
        self.snippet_length = snippet_length
        self.highlight_tag = highlight_tag
        self.context = min(context, snippet_length)

    def highlight(self, document: MemorialDocument, terms: list[str]) -> list[Highlight]:
        """Build at most one highlight per matching field."""
        pattern = self._compile(terms)
        if pattern is None:
            return []

        highlights = []

        if pattern.search(document.full_name):
            highlights.append(Highlight("name", self._mark(document.full_name, pattern)))

        for field_name in ("biography", "life_story"):
            text = getattr(document, field_name)
            if text and pattern.search(text):
                highlights.append(Highlight(field_name, self.snippet(text, pattern)))

        return highlights

    def snippet(self, text: str, pattern: re.Pattern[str]) -> str:
        """Cut a window around the first match and mark every match in it."""
        if len(text) <= self.snippet_length:
            return self._mark(text, pattern)

        first = pattern.search(text)
        if first is None:
            return text[: self.snippet_length] + "..."

        start = max(0, first.start() - self.context)
        end = min(len(text), first.start() + self.snippet_length - self.context)

        # Never cut a match in half at the right edge
        for match in pattern.finditer(text, start):
            if match.start() >= end:
                break
            end = max(end, match.end())

        snippet = self._mark(text[start:end], pattern)
        if start > 0:
            snippet = "..." + snippet
        if end < len(text):
            snippet = snippet + "..."
        return snippet

    def _mark(self, text: str, pattern: re.Pattern[str]) -> str:
        tag = self.highlight_tag
        return pattern.sub(lambda m: f"<{tag}>{m.group(0)}</{tag}>", text)

    @staticmethod
    def _compile(terms: list[str]) -> re.Pattern[str] | None:
        """Single alternation, longest terms first so overlaps mark once."""
        unique = sorted({t for t in terms if t}, key=len, reverse=True)
        if not unique:
            return None
        return re.compile("|".join(re.escape(t) for t in unique), re.IGNORECASE)
