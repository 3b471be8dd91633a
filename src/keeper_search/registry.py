"""Provider registry: routing, fan-out and aggregation over search providers."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any

from keeper_search.domain.search import FieldDescriptor, SearchFilter, SearchQuery, SearchResults, SearchSort
from keeper_search.exceptions import ProviderNotFoundError
from keeper_search.observability.metrics import PROVIDER_FAILURES


if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from keeper_search.provider import SearchProvider

logger = logging.getLogger(__name__)

FEATURE_NAMES = ("full_text", "facets", "highlighting", "fuzzy_search")


@dataclass(frozen=True)
class ProviderStats:
    """Summary of one registered provider."""

    provider_id: str
    name: str
    index_size: int
    features: list[str] = field(default_factory=list)
    field_count: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "provider_id": self.provider_id,
            "name": self.name,
            "index_size": self.index_size,
            "features": self.features,
            "field_count": self.field_count,
        }


@dataclass(frozen=True)
class ScopedFilter:
    """A filter addressed to a single provider of a unified query."""

    provider_id: str
    search_filter: SearchFilter


@dataclass(frozen=True)
class ScopedSort:
    provider_id: str
    sort: SearchSort


class SearchProviderRegistry:
    """Central registry of search providers.

    Usage:
        registry = SearchProviderRegistry()
        registry.register(build_tasks_provider(load_tasks))
        registry.register(build_notebooks_provider(load_notebooks))

        results = await registry.search(SearchQuery(text="report"))
        per_provider = await registry.search_multiple(SearchQuery(text="report"))
    """

    def __init__(self, *, default_provider_id: str | None = None, suggestion_limit: int = 15) -> None:
        self._providers: dict[str, SearchProvider] = {}
        self._default_provider_id = default_provider_id
        self.suggestion_limit = suggestion_limit

    def register(self, provider: SearchProvider) -> None:
        """Register ``provider``, replacing any provider with the same id."""
        self._providers[provider.id] = provider
        logger.info("Registered search provider: %s (%s)", provider.name, provider.id)

    def unregister(self, provider_id: str) -> bool:
        removed = self._providers.pop(provider_id, None) is not None
        if removed:
            logger.info("Unregistered search provider: %s", provider_id)
        return removed

    def get_provider(self, provider_id: str) -> SearchProvider | None:
        return self._providers.get(provider_id)

    def list_providers(self) -> list[SearchProvider]:
        return list(self._providers.values())

    def provider_ids(self) -> list[str]:
        return list(self._providers)

    @property
    def default_provider_id(self) -> str | None:
        return self._default_provider_id

    def default_provider(self) -> SearchProvider | None:
        if self._default_provider_id is None:
            return None
        return self._providers.get(self._default_provider_id)

    def set_default_provider(self, provider_id: str) -> bool:
        if provider_id not in self._providers:
            return False
        self._default_provider_id = provider_id
        return True

    def resolve(self, provider_id: str | None = None) -> SearchProvider:
        """Return the named provider (or the default one) or raise ``ProviderNotFoundError``."""
        provider = self.get_provider(provider_id) if provider_id else self.default_provider()
        if provider is None:
            raise ProviderNotFoundError(provider_id)
        return provider

    async def search(self, query: SearchQuery, provider_id: str | None = None) -> SearchResults:
        return await self.resolve(provider_id).search(query)

    async def search_multiple(
        self, query: SearchQuery, provider_ids: Sequence[str] | None = None
    ) -> dict[str, SearchResults]:
        """Query several providers concurrently.

        Unknown ids are dropped. A provider whose search raises contributes
        an empty result envelope instead of failing the whole fan-out.
        """
        targets = [pid for pid in provider_ids if pid in self._providers] if provider_ids else self.provider_ids()

        async def run(provider_id: str) -> SearchResults:
            try:
                return await self._providers[provider_id].search(query)
            except Exception as exc:
                logger.error("Search failed for provider %s: %s", provider_id, exc, exc_info=True)
                PROVIDER_FAILURES.labels(provider=provider_id, operation="search").inc()
                return SearchResults.empty(query)

        results = await asyncio.gather(*(run(provider_id) for provider_id in targets))
        return dict(zip(targets, results))

    async def suggest(self, text: str, provider_id: str | None = None) -> list[str]:
        """Suggestions from one provider, or deduplicated across every provider."""
        if provider_id:
            provider = self.get_provider(provider_id)
            return await provider.suggest(text) if provider else []

        async def run(provider: SearchProvider) -> list[str]:
            try:
                return await provider.suggest(text)
            except Exception as exc:
                logger.error("Suggestions failed for provider %s: %s", provider.id, exc)
                PROVIDER_FAILURES.labels(provider=provider.id, operation="suggest").inc()
                return []

        batches = await asyncio.gather(*(run(provider) for provider in self._providers.values()))
        merged = list(dict.fromkeys(suggestion for batch in batches for suggestion in batch))
        return merged[: self.suggestion_limit]

    def all_fields(self) -> list[FieldDescriptor]:
        """Every provider's fields keyed ``provider.key``, first of each key/type pair only."""
        fields: list[FieldDescriptor] = []
        seen: set[tuple[str, str]] = set()
        for provider in self._providers.values():
            for descriptor in provider.fields:
                signature = (descriptor.key, descriptor.type.value)
                if signature in seen:
                    continue
                seen.add(signature)
                fields.append(descriptor.model_copy(update={"key": f"{provider.id}.{descriptor.key}"}))
        return fields

    def provider_fields(self, provider_id: str) -> list[FieldDescriptor]:
        provider = self.get_provider(provider_id)
        return list(provider.fields) if provider else []

    def provider_supports(self, provider_id: str, feature: str) -> bool:
        provider = self.get_provider(provider_id)
        if provider is None or feature not in FEATURE_NAMES:
            return False
        return bool(getattr(provider.features, feature))

    async def refresh_all(self) -> dict[str, bool]:
        """Rebuild every index concurrently; returns success per provider."""

        async def run(provider: SearchProvider) -> bool:
            try:
                await provider.refresh()
            except Exception as exc:
                logger.error("Failed to refresh provider %s: %s", provider.id, exc)
                PROVIDER_FAILURES.labels(provider=provider.id, operation="refresh").inc()
                return False
            return True

        providers = self.list_providers()
        outcomes = await asyncio.gather(*(run(provider) for provider in providers))
        return {provider.id: ok for provider, ok in zip(providers, outcomes)}

    def stats(self) -> list[ProviderStats]:
        return [
            ProviderStats(
                provider_id=provider.id,
                name=provider.name,
                index_size=provider.index_size,
                features=provider.features.labels(),
                field_count=len(provider.fields),
            )
            for provider in self._providers.values()
        ]

    def create_unified_query(
        self,
        text: str | None = None,
        filters: Iterable[ScopedFilter] = (),
        sort: ScopedSort | None = None,
    ) -> dict[str, SearchQuery]:
        """Split a cross-provider request into one query per registered provider."""
        scoped = list(filters)
        queries: dict[str, SearchQuery] = {}
        for provider_id in self._providers:
            queries[provider_id] = SearchQuery(
                text=text,
                filters=tuple(item.search_filter for item in scoped if item.provider_id == provider_id),
                sort=sort.sort if sort is not None and sort.provider_id == provider_id else None,
            )
        return queries
