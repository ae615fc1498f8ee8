"""Relevance scoring for memorial search results.

Scores are a plain sum of per-field, per-term weights. Names dominate,
tags come next, narrative text and timeline events add smaller amounts.
"""

from __future__ import annotations

from dataclasses import dataclass

from memsearch.core.models import MemorialDocument


@dataclass(frozen=True)
class FieldWeights:
    """Per-field weights used by the relevance scorer."""

    exact_name: float = 10.0
    partial_name: float = 5.0
    biography: float = 2.0
    life_story: float = 2.0
    tag: float = 3.0
    timeline_title: float = 1.0
    timeline_description: float = 1.0


class RelevanceScorer:
    """Weighted term-match scorer."""

    def __init__(self, weights: FieldWeights | None = None):
        self.weights = weights or FieldWeights()

    def score(self, document: MemorialDocument, terms: list[str]) -> float:
        """Calculate the relevance of a document for lowercase terms.

        Args:
            document: Candidate document
            terms: Query terms, already lowercased

        Returns:
            Relevance score, 1.0 when there are no terms
        """
        if not terms:
            return 1.0

        w = self.weights
        name = document.full_name.lower()
        biography = document.biography.lower()
        life_story = document.life_story.lower()
        tags = [tag.lower() for tag in document.tags]
        titles = [event.title.lower() for event in document.timeline]
        descriptions = [event.description.lower() for event in document.timeline]

        total = 0.0
        for term in terms:
            if name == term:
                total += w.exact_name
            elif term in name:
                total += w.partial_name

            if term in biography:
                total += w.biography
            if term in life_story:
                total += w.life_story

            total += w.tag * sum(1 for tag in tags if term in tag)
            total += w.timeline_title * sum(1 for t in titles if term in t)
            total += w.timeline_description * sum(1 for d in descriptions if term in d)

        return total

    def rank(
        self, documents: list[MemorialDocument], terms: list[str]
    ) -> list[tuple[MemorialDocument, float]]:
        """Score documents and order them by descending score.

        Documents with equal scores keep their input order.
        """
        scored = [(doc, self.score(doc, terms)) for doc in documents]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored
