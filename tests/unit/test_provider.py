"""Unit tests for the search provider query pipeline."""

from types import SimpleNamespace

import pytest

from keeper_search.adapters.tasks import build_tasks_provider
from keeper_search.domain.search import ProviderFeatures, SearchFilter, SearchQuery, SearchSort
from keeper_search.exceptions import IndexUnavailableError, InvalidFilterOperatorError, MalformedRegexError
from keeper_search.observability.context import get_trace_context


TESTS_RECORDS = [
    {"id": "unit", "title": "Write unit tests", "boost": 1.0},
    {"id": "integration", "title": "Write integration tests", "boost": 1.2},
]


@pytest.mark.unit
class TestTextSearch:
    @pytest.mark.asyncio
    async def test_higher_boost_ranks_first_on_equal_hits(self, make_provider):
        provider = make_provider(TESTS_RECORDS)
        results = await provider.search(SearchQuery(text="tests"))
        assert [item.item["id"] for item in results.items] == ["integration", "unit"]
        assert results.items[0].score > results.items[1].score > 0

    @pytest.mark.asyncio
    async def test_typo_matches_only_with_fuzzy_enabled(self, make_provider):
        records = [{"id": "1", "title": "tests"}]
        fuzzy = await make_provider(records).search(SearchQuery(text="tesst"))
        strict = await make_provider(records, fuzzy=False).search(SearchQuery(text="tesst"))
        assert fuzzy.total_count == 1
        assert fuzzy.items[0].score > 0
        assert strict.total_count == 0

    @pytest.mark.asyncio
    async def test_fuzzy_feature_flag_disables_fuzzy_scoring(self, make_provider):
        provider = make_provider([{"id": "1", "title": "tests"}], features=ProviderFeatures(fuzzy_search=False))
        results = await provider.search(SearchQuery(text="tesst"))
        assert results.total_count == 0

    @pytest.mark.asyncio
    async def test_stop_word_only_query_matches_nothing(self, make_provider):
        provider = make_provider(TESTS_RECORDS)
        results = await provider.search(SearchQuery(text="the and of"))
        assert results.items == ()
        assert results.total_count == 0

    @pytest.mark.asyncio
    async def test_highlights_and_matched_fields(self, make_provider):
        provider = make_provider(TESTS_RECORDS)
        results = await provider.search(SearchQuery(text="integration"))
        item = results.items[0]
        assert item.matched_fields == ("title",)
        assert item.highlights[0].fragments == ("Write <mark>integration</mark> tests",)

    @pytest.mark.asyncio
    async def test_highlighting_feature_off(self, make_provider):
        provider = make_provider(TESTS_RECORDS, features=ProviderFeatures(highlighting=False))
        results = await provider.search(SearchQuery(text="integration"))
        assert results.items[0].highlights == ()

    @pytest.mark.asyncio
    async def test_equal_scores_keep_enumeration_order(self, make_provider):
        records = [{"id": str(i), "title": "same title"} for i in range(5)]
        results = await make_provider(records).search(SearchQuery(text="title"))
        assert [item.item["id"] for item in results.items] == ["0", "1", "2", "3", "4"]

    @pytest.mark.asyncio
    async def test_repeated_searches_are_deterministic(self, make_provider):
        provider = make_provider(TESTS_RECORDS + [{"id": "x", "title": "Testing notes"}])
        query = SearchQuery(text="write tests")
        first = await provider.search(query)
        second = await provider.search(query)
        assert [(item.item["id"], item.score) for item in first.items] == [
            (item.item["id"], item.score) for item in second.items
        ]

    @pytest.mark.asyncio
    async def test_record_missing_from_source_is_skipped(self, make_provider):
        provider = make_provider(TESTS_RECORDS)
        await provider.build_index()
        provider.adapter._by_id.pop("unit")
        results = await provider.search(SearchQuery(text="tests"))
        assert [item.item["id"] for item in results.items] == ["integration"]

    @pytest.mark.asyncio
    async def test_search_binds_provider_to_log_context(self, make_provider):
        provider = make_provider(TESTS_RECORDS)
        seen = []
        original = provider.adapter.find_original

        def find_original(doc_id):
            seen.append(get_trace_context().get("provider"))
            return original(doc_id)

        provider.adapter.find_original = find_original
        await provider.search(SearchQuery(text="tests"))
        assert seen and set(seen) == {"records"}


@pytest.mark.unit
class TestFilterOnlyMode:
    records = [
        {"id": "a", "title": "Alpha", "status": "pending"},
        {"id": "b", "title": "Beta", "status": "completed"},
        {"id": "c", "title": "Gamma", "status": "completed"},
    ]

    @pytest.mark.asyncio
    async def test_empty_text_enumerates_with_uniform_score(self, make_provider):
        results = await make_provider(self.records).search(SearchQuery())
        assert [item.item["id"] for item in results.items] == ["a", "b", "c"]
        assert {item.score for item in results.items} == {1.0}
        assert all(item.highlights == () for item in results.items)

    @pytest.mark.asyncio
    async def test_whitespace_text_is_filter_only(self, make_provider):
        results = await make_provider(self.records).search(SearchQuery(text="   "))
        assert results.total_count == 3

    @pytest.mark.asyncio
    async def test_negated_filter_keeps_pending(self, make_provider):
        query = SearchQuery(filters=(SearchFilter(field="status", operator="equals", value="completed", negate=True),))
        results = await make_provider(self.records).search(query)
        assert [item.item["id"] for item in results.items] == ["a"]

    @pytest.mark.asyncio
    async def test_sort_then_paginate(self, make_provider):
        query = SearchQuery(sort=SearchSort(field="title", direction="desc"), limit=2, offset=0)
        results = await make_provider(self.records).search(query)
        assert [item.item["id"] for item in results.items] == ["c", "b"]
        assert results.total_count == 3
        assert results.total_pages == 2
        assert results.has_more is True

    @pytest.mark.asyncio
    async def test_envelope_echoes_query_and_timing(self, make_provider):
        query = SearchQuery(limit=10, offset=20)
        records = [{"id": str(i), "title": f"Item {i}"} for i in range(25)]
        results = await make_provider(records).search(query)
        assert len(results.items) == 5
        assert results.current_page == 3
        assert results.total_pages == 3
        assert results.has_more is False
        assert results.query == query
        assert results.took >= 0


@pytest.mark.unit
class TestIndexLifecycle:
    @pytest.mark.asyncio
    async def test_index_is_built_lazily_once(self, make_provider):
        provider = make_provider(TESTS_RECORDS)
        assert provider.index_size == 0
        await provider.search(SearchQuery(text="tests"))
        await provider.search(SearchQuery(text="tests"))
        assert provider.index_size == 2
        assert provider.adapter.enumerations == 1
        assert provider.last_built_at is not None

    @pytest.mark.asyncio
    async def test_refresh_picks_up_source_changes(self, make_provider):
        provider = make_provider(list(TESTS_RECORDS))
        await provider.build_index()
        provider.adapter.records.append({"id": "new", "title": "Fresh tests"})
        assert await provider.refresh() == 3
        results = await provider.search(SearchQuery(text="fresh"))
        assert [item.item["id"] for item in results.items] == ["new"]

    @pytest.mark.asyncio
    async def test_enumeration_failure_keeps_last_good_index(self, make_provider):
        provider = make_provider(TESTS_RECORDS)
        await provider.build_index()

        def broken():
            raise ConnectionError("store offline")

        provider.adapter.enumerate = broken
        with pytest.raises(IndexUnavailableError) as exc_info:
            await provider.build_index()
        assert exc_info.value.provider_id == "records"
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert provider.index_size == 2

    @pytest.mark.asyncio
    async def test_async_enumeration_is_awaited(self, make_provider):
        provider = make_provider(TESTS_RECORDS)
        original = provider.adapter.enumerate

        async def fetch():
            return original()

        provider.adapter.enumerate = fetch
        assert await provider.build_index() == 2

    @pytest.mark.asyncio
    async def test_projection_error_propagates(self, make_provider):
        provider = make_provider([{"id": "x", "title": "bad boost", "boost": "high"}])
        with pytest.raises(ValueError):
            await provider.build_index()

    @pytest.mark.asyncio
    async def test_failed_rebuild_keeps_index_and_records_together(self, make_task):
        collection = [make_task("t1", title="alpha report")]
        provider = build_tasks_provider(lambda: collection)
        await provider.build_index()

        collection = [make_task("t1", title="beta memo"), SimpleNamespace(id="t2")]
        with pytest.raises(AttributeError):
            await provider.build_index()

        results = await provider.search(SearchQuery(text="alpha"))
        assert [item.item.title for item in results.items] == ["alpha report"]
        assert provider.adapter.find_original("t2") is None


@pytest.mark.unit
class TestQueryErrors:
    @pytest.mark.asyncio
    async def test_unknown_operator_fails_query(self, make_provider):
        query = SearchQuery(filters=(SearchFilter(field="title", operator="near", value="x"),))
        with pytest.raises(InvalidFilterOperatorError):
            await make_provider(TESTS_RECORDS).search(query)

    @pytest.mark.asyncio
    async def test_malformed_regex_fails_query(self, make_provider):
        query = SearchQuery(filters=(SearchFilter(field="title", operator="regex", value="[a-"),))
        with pytest.raises(MalformedRegexError):
            await make_provider(TESTS_RECORDS).search(query)


@pytest.mark.unit
class TestSuggestAndStats:
    @pytest.mark.asyncio
    async def test_suggest_returns_distinct_prefix_tokens(self, make_provider):
        provider = make_provider(TESTS_RECORDS)
        await provider.build_index()
        assert await provider.suggest("wr") == ["write"]
        assert await provider.suggest("IN") == ["integration"]
        assert await provider.suggest("  ") == []

    @pytest.mark.asyncio
    async def test_suggest_is_capped(self, make_provider):
        records = [{"id": str(i), "title": f"term{i}"} for i in range(20)]
        provider = make_provider(records)
        await provider.build_index()
        assert len(await provider.suggest("term")) == 10

    @pytest.mark.asyncio
    async def test_stats(self, make_provider):
        provider = make_provider(TESTS_RECORDS)
        await provider.build_index()
        stats = provider.stats()
        assert stats["id"] == "records"
        assert stats["index_size"] == 2
        assert stats["features"] == ["Full Text", "Facets", "Highlighting", "Fuzzy Search"]
        assert stats["field_count"] == 0
