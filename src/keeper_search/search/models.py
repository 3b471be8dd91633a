"""Search data models."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any


MIN_BOOST = 0.1


def clamp_boost(boost: float) -> float:
    """Apply the minimum boost floor so no document can score zero by boost alone."""
    return max(boost, MIN_BOOST)


@dataclass(frozen=True)
class IndexedDocument:
    """The engine-internal representation of one source record.

    ``content`` is the lowercase concatenation of every searchable value and
    ``fields`` keeps the raw values keyed by field name.
    """

    id: str
    content: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    boost: float = 1.0
    type: str = "document"
    last_indexed: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        object.__setattr__(self, "content", self.content.lower())
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        object.__setattr__(self, "boost", clamp_boost(float(self.boost)))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for inspection and comparison."""
        return {
            "id": self.id,
            "content": self.content,
            "fields": dict(self.fields),
            "boost": self.boost,
            "type": self.type,
            "last_indexed": self.last_indexed.isoformat(),
        }
