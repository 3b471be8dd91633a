"""Unit tests for relevance scoring."""

import pytest

from keeper_search.domain.search import AnalyzerName, IndexConfig, ScoringField
from keeper_search.search.models import IndexedDocument
from keeper_search.search.scoring import Scorer, ScoringOptions


CONFIG = IndexConfig(
    fields=(
        ScoringField(name="title", boost=3.0),
        ScoringField(name="tags", boost=2.0, analyzer=AnalyzerName.KEYWORD),
    )
)


def _document(title: str, *, tags=(), boost: float = 1.0, extra: str = "") -> IndexedDocument:
    content = " ".join([title, " ".join(tags), extra])
    return IndexedDocument(id=title, content=content, fields={"title": title, "tags": list(tags)}, boost=boost)


@pytest.mark.unit
class TestScorer:
    def test_empty_terms_score_zero(self):
        assert Scorer(CONFIG).score(_document("Write tests"), []) == 0.0

    def test_exact_fuzzy_and_field_contributions_add_up(self):
        scorer = Scorer(CONFIG)
        # exact 2.0 + fuzzy 1.0 * 0.5 + title 3.0
        assert scorer.score(_document("Write tests"), ["tests"]) == pytest.approx(5.5)

    def test_without_fuzzy(self):
        scorer = Scorer(CONFIG, ScoringOptions(fuzzy_enabled=False))
        assert scorer.score(_document("Write tests"), ["tests"]) == pytest.approx(5.0)

    def test_field_values_are_lowercased_in_case_sensitive_config(self):
        config = CONFIG.model_copy(update={"case_sensitive": True})
        scorer = Scorer(config, ScoringOptions(fuzzy_enabled=False))
        # exact 2.0 + title 3.0
        assert scorer.score(_document("Alpha Report"), ["alpha"]) == pytest.approx(5.0)

    def test_static_boost_multiplies_total(self):
        scorer = Scorer(CONFIG, ScoringOptions(fuzzy_enabled=False))
        assert scorer.score(_document("Write tests", boost=1.2), ["tests"]) == pytest.approx(6.0)

    def test_keyword_field_matches_substring_of_joined_tags(self):
        scorer = Scorer(CONFIG, ScoringOptions(fuzzy_enabled=False))
        document = _document("Plan", tags=("Backend", "API"))
        # exact hit in content 2.0 + tags field 2.0
        assert scorer.score(document, ["backend"]) == pytest.approx(4.0)

    def test_term_scores_sum_across_terms(self):
        scorer = Scorer(CONFIG, ScoringOptions(fuzzy_enabled=False))
        document = _document("Write unit tests")
        assert scorer.score(document, ["unit", "tests"]) == pytest.approx(10.0)

    def test_fuzzy_only_match_scores_above_zero(self):
        scorer = Scorer(CONFIG)
        assert scorer.score(_document("tests"), ["tesst"]) == pytest.approx(0.4)

    def test_fuzzy_disabled_excludes_typo(self):
        scorer = Scorer(CONFIG, ScoringOptions(fuzzy_enabled=False))
        assert scorer.score(_document("tests"), ["tesst"]) == 0.0

    def test_additional_exact_hit_never_lowers_score(self):
        scorer = Scorer(CONFIG)
        terms = ["budget", "review"]
        without_hit = scorer.score(_document("Quarterly budget"), terms)
        with_hit = scorer.score(_document("Quarterly budget", extra="review"), terms)
        assert with_hit >= without_hit

    def test_custom_exact_bonus(self):
        scorer = Scorer(IndexConfig(fields=()), ScoringOptions(exact_match_bonus=5.0, fuzzy_enabled=False))
        assert scorer.score(_document("alpha"), ["alp"]) == pytest.approx(5.0)

    def test_field_texts_are_normalized(self):
        texts = Scorer(CONFIG).field_texts(_document("Big PLAN", tags=("Ops",)))
        assert texts == {"title": "big plan", "tags": "ops"}
