"""Natural-language query understanding.

Turns phrases such as "memorials from last year" or "people from Austin,
Texas" into structured filters, appends domain synonyms, and optionally
corrects misspelled terms against a vocabulary of indexed words.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date

from rapidfuzz import fuzz, process

from memsearch.search.models import (
    DateRange,
    LocationFilter,
    SearchFilters,
    SearchOptions,
)

logger = logging.getLogger(__name__)

# Domain synonyms, appended to the query and never substituted
SYNONYMS = {
    "died": ["passed away", "deceased", "departed", "lost"],
    "born": ["birth", "birthday"],
    "family": ["relatives", "loved ones", "kin"],
    "memorial": ["tribute", "remembrance", "commemoration"],
    "funeral": ["service", "ceremony", "celebration of life"],
}

_LAST_YEAR = re.compile(r"\blast\s+year\b", re.IGNORECASE)
_THIS_YEAR = re.compile(r"\bthis\s+year\b", re.IGNORECASE)
_YEAR_TOKEN = re.compile(r"\b(\d{4})\b")
_RELATIVE_PHRASE = re.compile(
    r"\b(?:(?:from|in|during)\s+)?(?:last|this)\s+year\b", re.IGNORECASE
)

_LOCATION_KEYWORD = re.compile(r"\b(?:in|from|at)\s+", re.IGNORECASE)
_PLACE_WORD = re.compile(r"[^\W\d_][\w'.-]*")
_WORD_GAP = re.compile(r"[ \t]+")
_STATE_SEPARATOR = re.compile(r"\s*,\s*")

# Words that follow "in", "from" or "at" without naming a place
NON_PLACE_WORDS = frozenset(
    """
    a an the and or by with who my our his her their this that all any some
    peace memory memoriam loving life love time heaven
    hospital hospice home care church service school college war childhood
    spring summer autumn fall winter morning evening night
    january february march april may june july august
    september october november december
    """.split()
)

EARLIEST_YEAR = 1900


@dataclass
class ProcessedQuery:
    """Residual text query plus the filters extracted from it."""

    query: str
    filters: SearchFilters = field(default_factory=SearchFilters)
    original: str = ""
    corrections: list[tuple[str, str]] = field(default_factory=list)


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


class NaturalLanguageProcessor:
    """Extracts date and location filters from free text."""

    def __init__(
        self,
        synonyms: dict[str, list[str]] | None = None,
        fuzzy_threshold: float = 80.0,
        today: Callable[[], date] = date.today,
    ):
        """Initialize processor.

        Args:
            synonyms: Synonym dictionary (default: memorial domain terms)
            fuzzy_threshold: Minimum rapidfuzz ratio for a spelling correction
            today: Clock used to resolve relative years
        """
        self.synonyms = synonyms if synonyms is not None else SYNONYMS
        self.fuzzy_threshold = fuzzy_threshold
        self.today = today

    def process(
        self,
        raw_query: str,
        options: SearchOptions,
        vocabulary: Iterable[str] | None = None,
    ) -> ProcessedQuery:
        """Rewrite a raw query according to the enabled options.

        Dates are extracted first, then locations, each working on the text
        left over by the previous step. Spelling correction and synonym
        expansion run last on the residual text.
        """
        query = raw_query
        date_range = None
        location = None
        corrections: list[tuple[str, str]] = []

        if options.date_nlp:
            date_range = self.extract_date_range(query)
            if date_range:
                query = self.strip_date_phrases(query, date_range)

        if options.location_nlp:
            location, query = self.extract_location(query)

        if options.fuzzy_match and vocabulary:
            query, corrections = self.correct_spelling(query, vocabulary)

        if options.synonyms:
            query = self.expand_synonyms(query)

        filters = SearchFilters(date_range=date_range, location=location)
        processed = ProcessedQuery(
            query=_collapse(query),
            filters=filters,
            original=raw_query,
            corrections=corrections,
        )
        logger.debug(
            "Processed query %r -> %r (%s)",
            raw_query,
            processed.query,
            filters.to_dict(),
        )
        return processed

    def extract_date_range(self, query: str) -> DateRange | None:
        """Map "last year", "this year" or a year token to a calendar year."""
        current_year = self.today().year

        if _LAST_YEAR.search(query):
            return self._year_range(current_year - 1)

        if _THIS_YEAR.search(query):
            return self._year_range(current_year)

        for match in _YEAR_TOKEN.finditer(query):
            year = int(match.group(1))
            if EARLIEST_YEAR <= year <= current_year:
                return self._year_range(year)

        return None

    def strip_date_phrases(self, query: str, date_range: DateRange) -> str:
        """Remove relative year phrases and the recognised year token."""
        query = _RELATIVE_PHRASE.sub("", query)
        if date_range.start:
            year = date_range.start[:4]
            query = re.sub(
                rf"\b(?:(?:from|in|during)\s+)?{year}\b", "", query, flags=re.IGNORECASE
            )
        return _collapse(query)

    def extract_location(self, query: str) -> tuple[LocationFilter | None, str]:
        """Find "in/from/at <Place>[, <Region>]" and strip it from the query.

        A capitalised place name may span several words ("New York"). A
        lowercase one is a single word. Words in ``NON_PLACE_WORDS`` never
        start a place, so "died in hospital" stays a text query.
        """
        for keyword in _LOCATION_KEYWORD.finditer(query):
            city, end = self._read_place(query, keyword.end())
            if not city:
                continue

            state = None
            separator = _STATE_SEPARATOR.match(query, end)
            if separator:
                state, state_end = self._read_place(query, separator.end())
                if state:
                    end = state_end

            residual = _collapse(query[: keyword.start()] + " " + query[end:])
            return LocationFilter(city=city, state=state), residual

        return None, query

    def expand_synonyms(self, query: str) -> str:
        """Append the synonyms of every dictionary word present in the query."""
        expanded = query
        for word, synonyms in self.synonyms.items():
            if re.search(rf"\b{re.escape(word)}\b", query, re.IGNORECASE):
                expanded += " " + " ".join(synonyms)
        return _collapse(expanded)

    def correct_spelling(
        self, query: str, vocabulary: Iterable[str]
    ) -> tuple[str, list[tuple[str, str]]]:
        """Replace unknown words with their closest vocabulary word."""
        known = {word.lower() for word in vocabulary if word}
        if not known:
            return query, []

        words = []
        corrections = []
        for word in query.split():
            lowered = word.lower()
            if lowered in known or len(lowered) < 3 or not lowered.isalpha():
                words.append(word)
                continue

            match = process.extractOne(
                lowered, known, scorer=fuzz.ratio, score_cutoff=self.fuzzy_threshold
            )
            if match:
                corrections.append((word, match[0]))
                words.append(match[0])
            else:
                words.append(word)

        return " ".join(words), corrections

    def _read_place(self, text: str, pos: int) -> tuple[str | None, int]:
        """Read a place name starting at ``pos``."""
        words = []
        end = pos
        while True:
            match = _PLACE_WORD.match(text, pos)
            if not match:
                break
            word = match.group()
            if not words and word.lower() in NON_PLACE_WORDS:
                break
            if words and not (words[0][0].isupper() and word[0].isupper()):
                break
            words.append(match.group().rstrip(".'-"))
            end = pos + len(words[-1])
            gap = _WORD_GAP.match(text, end)
            if not gap:
                break
            pos = gap.end()

        if not words:
            return None, end
        return " ".join(words), end

    @staticmethod
    def _year_range(year: int) -> DateRange:
        return DateRange(start=f"{year}-01-01", end=f"{year}-12-31")
