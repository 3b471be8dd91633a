"""Relevance scoring for indexed documents.

For each query term the scorer adds:
- a fixed bonus when the term is a substring of the document content
- the best fuzzy contribution over the content words (when enabled)
- the configured boost of every scoring field whose value contains the term

Term scores are summed and multiplied by the document's static boost.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from keeper_search.domain.search import IndexConfig
from keeper_search.search.analyzers import stringify_value
from keeper_search.search.fuzzy import DEFAULT_FUZZY_THRESHOLD, DEFAULT_FUZZY_WEIGHT, fuzzy_score
from keeper_search.search.models import IndexedDocument


@dataclass(frozen=True)
class ScoringOptions:
    """Tunable constants of the scorer."""

    exact_match_bonus: float = 2.0
    fuzzy_enabled: bool = True
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD
    fuzzy_weight: float = DEFAULT_FUZZY_WEIGHT


class Scorer:
    """Computes the relevance score of a document for a list of query terms."""

    def __init__(self, config: IndexConfig, options: ScoringOptions | None = None) -> None:
        self.config = config
        self.options = options or ScoringOptions()

    def score(self, document: IndexedDocument, terms: Sequence[str]) -> float:
        """Return the boosted score; an empty term list scores zero."""
        if not terms:
            return 0.0
        field_texts = self.field_texts(document)
        total = sum(self.term_score(document.content, term, field_texts) for term in terms)
        return total * document.boost

    def term_score(self, content: str, term: str, field_texts: dict[str, str]) -> float:
        score = 0.0

        if term in content:
            score += self.options.exact_match_bonus

        if self.options.fuzzy_enabled:
            score += fuzzy_score(
                content,
                term,
                threshold=self.options.fuzzy_threshold,
                weight=self.options.fuzzy_weight,
            )

        for scoring_field in self.config.fields:
            if term in field_texts[scoring_field.name]:
                score += scoring_field.boost

        return score

    def field_texts(self, document: IndexedDocument) -> dict[str, str]:
        """Lowercased text of each scoring field, as matched against terms."""
        return {
            scoring_field.name: stringify_value(document.fields.get(scoring_field.name)).lower()
            for scoring_field in self.config.fields
        }

