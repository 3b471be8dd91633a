"""Search provider: one adapter bound to a private, swappable document index.

The provider owns every engine stage (analysis, scoring, highlighting and the
structured pipeline) and consults its adapter only to enumerate records,
project them into indexed documents, map hits back to live records and
format result items.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
import logging
import time
from typing import Any

from keeper_search.adapters.base import SearchAdapter, maybe_await
from keeper_search.domain.search import (
    FieldDescriptor,
    IndexConfig,
    ProviderFeatures,
    SearchQuery,
    SearchResultItem,
    SearchResults,
)
from keeper_search.exceptions import IndexUnavailableError
from keeper_search.observability.metrics import (
    INDEX_BUILD_LATENCY,
    INDEX_DOC_COUNT,
    SEARCH_COUNT,
    SEARCH_LATENCY,
    track_latency,
)
from keeper_search.observability.tracing import create_span
from keeper_search.search.analyzers import TextAnalyzer
from keeper_search.search.document_index import DocumentIndex
from keeper_search.search.highlight import Highlighter, HighlightOptions
from keeper_search.search.pipeline import apply_filters, paginate, sort_results
from keeper_search.search.scoring import Scorer, ScoringOptions


logger = logging.getLogger(__name__)


class SearchProvider:
    """Uniform handle over one entity kind's searchable collection."""

    def __init__(
        self,
        *,
        id: str,
        name: str,
        description: str,
        fields: Sequence[FieldDescriptor],
        adapter: SearchAdapter,
        index_config: IndexConfig | None = None,
        features: ProviderFeatures | None = None,
        scoring_options: ScoringOptions | None = None,
        highlight_options: HighlightOptions | None = None,
        default_page_size: int = 20,
        suggestion_limit: int = 10,
    ) -> None:
        self.id = id
        self.name = name
        self.description = description
        self.fields: tuple[FieldDescriptor, ...] = tuple(fields)
        self.adapter = adapter
        self.index_config = index_config or IndexConfig()
        self.features = features or ProviderFeatures()
        self.default_page_size = default_page_size
        self.suggestion_limit = suggestion_limit

        options = scoring_options or ScoringOptions()
        if not self.features.fuzzy_search:
            options = ScoringOptions(
                exact_match_bonus=options.exact_match_bonus,
                fuzzy_enabled=False,
                fuzzy_threshold=options.fuzzy_threshold,
                fuzzy_weight=options.fuzzy_weight,
            )
        self.scoring_options = options

        self._analyzer = TextAnalyzer(
            stopwords=self.index_config.stop_words,
            case_sensitive=self.index_config.case_sensitive,
        )
        self._scorer = Scorer(self.index_config, self.scoring_options)
        self._highlighter = Highlighter(self.index_config, highlight_options)
        self._index = DocumentIndex(name=id)

    def __repr__(self) -> str:
        return f"SearchProvider(id={self.id!r}, documents={len(self._index)})"

    @property
    def index_size(self) -> int:
        return len(self._index)

    @property
    def last_built_at(self) -> datetime | None:
        return self._index.built_at

    def tokenize(self, text: str) -> list[str]:
        """Query terms for ``text`` under this provider's analyzer."""
        return self._analyzer.terms(text)

    async def build_index(self) -> int:
        """Rebuild the index from the adapter's current collection.

        Enumeration failures raise ``IndexUnavailableError`` and keep the
        last good index. Projection errors propagate unchanged. The adapter
        only sees the new records once the new snapshot is published, so
        index and record lookups always belong to the same build.
        """
        try:
            records = list(await maybe_await(self.adapter.enumerate()))
        except Exception as exc:
            logger.warning("Enumeration failed for provider %s: %s", self.id, exc)
            raise IndexUnavailableError(self.id, str(exc)) from exc

        with track_latency(INDEX_BUILD_LATENCY, provider=self.id):
            count = self._index.build(records, self.adapter.project)
        # no await between publishing the snapshot and the records
        self.adapter.commit(records)
        INDEX_DOC_COUNT.labels(provider=self.id).set(count)
        return count

    async def refresh(self) -> int:
        return await self.build_index()

    async def search(self, query: SearchQuery) -> SearchResults:
        """Run ``query`` through dispatch, filter, sort and paginate."""
        mode = "text" if query.has_text else "filter"
        start = time.perf_counter()
        with create_span(
            "search.query",
            attributes={"search.provider": self.id, "search.mode": mode},
            provider=self.id,
        ) as span:
            try:
                with track_latency(SEARCH_LATENCY, provider=self.id, mode=mode):
                    results = await self._execute(query, start)
            except Exception:
                SEARCH_COUNT.labels(provider=self.id, status="error").inc()
                raise
            span.set_attribute("search.total_count", results.total_count)
        SEARCH_COUNT.labels(provider=self.id, status="success").inc()
        logger.debug(
            "Provider %s answered %s query with %d/%d items in %.1fms",
            self.id,
            mode,
            len(results.items),
            results.total_count,
            results.took,
        )
        return results

    async def _execute(self, query: SearchQuery, start: float) -> SearchResults:
        if not len(self._index):
            await self.build_index()

        if query.has_text:
            candidates = self._text_search(query.text or "")
        else:
            candidates = self._enumerate_all()

        accessors = self.adapter.field_accessors()
        filtered = apply_filters(
            candidates,
            query.filters,
            accessors,
            fuzzy_threshold=self.scoring_options.fuzzy_threshold,
        )
        if query.sort is not None:
            filtered = sort_results(filtered, query.sort, accessors)

        page = paginate(filtered, query.limit, query.offset, default_page_size=self.default_page_size)
        return SearchResults(
            items=tuple(page.items),
            total_count=page.total_count,
            total_pages=page.total_pages,
            current_page=page.current_page,
            has_more=page.has_more,
            took=(time.perf_counter() - start) * 1000,
            query=query,
        )

    def _text_search(self, text: str) -> list[SearchResultItem]:
        terms = self.tokenize(text)
        ranked: list[SearchResultItem] = []
        for document in self._index.snapshot().values():
            score = self._scorer.score(document, terms)
            if score <= 0:
                continue
            record = self.adapter.find_original(document.id)
            if record is None:
                continue
            highlights = self._highlighter.highlight(document, terms) if self.features.highlighting else []
            ranked.append(self.adapter.format(record, score, highlights))

        # list.sort is stable, so equal scores keep enumeration order
        ranked.sort(key=lambda result: result.score, reverse=True)
        return ranked

    def _enumerate_all(self) -> list[SearchResultItem]:
        items: list[SearchResultItem] = []
        for document in self._index.snapshot().values():
            record = self.adapter.find_original(document.id)
            if record is None:
                continue
            items.append(self.adapter.format(record, 1.0, []))
        return items

    async def suggest(self, prefix: str) -> list[str]:
        """Distinct indexed tokens starting with ``prefix``, in index order."""
        needle = self._analyzer.normalize(prefix.strip())
        if not needle:
            return []

        suggestions: list[str] = []
        seen: set[str] = set()
        for document in self._index.snapshot().values():
            for word in self.tokenize(document.content):
                if word.startswith(needle) and word not in seen:
                    seen.add(word)
                    suggestions.append(word)
                    if len(suggestions) >= self.suggestion_limit:
                        return suggestions
        return suggestions

    def stats(self) -> dict[str, Any]:
        built_at = self.last_built_at
        return {
            "id": self.id,
            "name": self.name,
            "index_size": self.index_size,
            "last_built_at": built_at.isoformat() if built_at else None,
            "features": self.features.labels(),
            "field_count": len(self.fields),
        }
