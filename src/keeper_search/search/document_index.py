"""Document store with atomic rebuilds.

A rebuild never mutates the live mapping: documents are projected into a
fresh dict that replaces the published snapshot in a single assignment.
Readers that grabbed the previous snapshot keep a consistent view.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from datetime import datetime, timezone
import logging
import time
from types import MappingProxyType
from typing import Any

from keeper_search.search.models import IndexedDocument


logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, IndexedDocument] = MappingProxyType({})


class DocumentIndex:
    """Mapping from document id to indexed document, rebuilt wholesale."""

    def __init__(self, name: str = "index") -> None:
        self.name = name
        self._documents: Mapping[str, IndexedDocument] = _EMPTY
        self._built_at: datetime | None = None

    def build(self, records: Iterable[Any], project: Callable[[Any], IndexedDocument]) -> int:
        """Project every record and publish the result as the new snapshot.

        Exceptions raised by ``project`` propagate and leave the previous
        snapshot in place. Returns the number of indexed documents.
        """
        start = time.perf_counter()
        documents: dict[str, IndexedDocument] = {}
        for record in records:
            document = project(record)
            documents[document.id] = document

        self._documents = MappingProxyType(documents)
        self._built_at = datetime.now(timezone.utc)
        logger.info(
            "Built %s index with %d entries in %.1fms",
            self.name,
            len(documents),
            (time.perf_counter() - start) * 1000,
        )
        return len(documents)

    def snapshot(self) -> Mapping[str, IndexedDocument]:
        """Return the current read-only snapshot."""
        return self._documents

    def get(self, doc_id: str) -> IndexedDocument | None:
        return self._documents.get(doc_id)

    def clear(self) -> None:
        self._documents = _EMPTY
        self._built_at = None

    @property
    def built_at(self) -> datetime | None:
        return self._built_at

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[IndexedDocument]:
        return iter(self._documents.values())

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._documents
