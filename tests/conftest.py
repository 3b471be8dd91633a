"""Shared test fixtures."""

from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta, timezone
from operator import itemgetter
from typing import Any

import pytest

from keeper_search.domain.records import Notebook, Task
from keeper_search.domain.search import Highlight, IndexConfig, ProviderFeatures, SearchResultItem
from keeper_search.provider import SearchProvider
from keeper_search.search.models import IndexedDocument
from keeper_search.search.scoring import ScoringOptions


FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class DictAdapter:
    """Minimal adapter over plain dict records keyed by ``id``."""

    def __init__(self, records: Sequence[dict[str, Any]]) -> None:
        self.records = list(records)
        self.enumerations = 0
        self._by_id: dict[str, dict[str, Any]] = {}

    def enumerate(self) -> list[dict[str, Any]]:
        self.enumerations += 1
        return list(self.records)

    def commit(self, records: Sequence[dict[str, Any]]) -> None:
        self._by_id = {record["id"]: record for record in records}

    def project(self, record: dict[str, Any]) -> IndexedDocument:
        fields = {key: value for key, value in record.items() if key not in {"id", "boost"}}
        content = " ".join(str(record.get(key, "")) for key in ("title", "content"))
        return IndexedDocument(
            id=record["id"],
            content=content,
            fields=fields,
            boost=record.get("boost", 1.0),
            type="record",
        )

    def format(self, record: dict[str, Any], score: float, highlights: Sequence[Highlight]) -> SearchResultItem:
        return SearchResultItem(
            item=record,
            score=score,
            highlights=tuple(highlights),
            snippet=record.get("title"),
            matched_fields=tuple(highlight.field for highlight in highlights),
        )

    def find_original(self, doc_id: str) -> dict[str, Any] | None:
        return self._by_id.get(doc_id)

    def field_accessors(self) -> Mapping[str, Any]:
        return {"id": itemgetter("id")}


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def make_provider():
    """Build a provider over dict records with the default index config."""

    def _make(
        records: Sequence[dict[str, Any]],
        *,
        fuzzy: bool = True,
        index_config: IndexConfig | None = None,
        features: ProviderFeatures | None = None,
    ) -> SearchProvider:
        return SearchProvider(
            id="records",
            name="Records",
            description="Plain dict records",
            fields=(),
            adapter=DictAdapter(records),
            index_config=index_config,
            features=features,
            scoring_options=ScoringOptions(fuzzy_enabled=fuzzy),
        )

    return _make


@pytest.fixture
def make_task():
    def _make(task_id: str = "t1", **overrides: Any) -> Task:
        values: dict[str, Any] = {
            "id": task_id,
            "title": "Write report",
            "created_at": FIXED_NOW - timedelta(days=30),
            "updated_at": FIXED_NOW - timedelta(days=30),
        }
        values.update(overrides)
        return Task(**values)

    return _make


@pytest.fixture
def make_notebook():
    def _make(notebook_id: str = "n1", **overrides: Any) -> Notebook:
        values: dict[str, Any] = {
            "id": notebook_id,
            "title": "Research",
            "created_at": FIXED_NOW - timedelta(days=30),
            "updated_at": FIXED_NOW - timedelta(days=30),
        }
        values.update(overrides)
        return Notebook(**values)

    return _make
