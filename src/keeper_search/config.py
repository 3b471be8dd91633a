"""Centralized configuration for keeper-search using Pydantic Settings."""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from keeper_search.search.highlight import HighlightOptions
from keeper_search.search.scoring import ScoringOptions


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Values are read from ``KEEPER_SEARCH_*`` variables (or a local ``.env``)
    and validated once at startup. Scoring and highlighting options are
    derived from here when providers are constructed and stay immutable for
    the lifetime of a provider.
    """

    model_config = SettingsConfigDict(
        env_prefix="KEEPER_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    json_logs: bool = Field(default=True, description="Emit structured JSON logs")

    # Paging
    default_page_size: int = Field(default=20, ge=1, description="Page size used when a query sets no limit")

    # Scoring
    exact_match_bonus: float = Field(default=2.0, gt=0.0, description="Score added per exact substring hit")
    fuzzy_enabled: bool = Field(default=True, description="Enable edit-distance fuzzy matching")
    fuzzy_threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Similarity a word must exceed before it counts as a fuzzy match",
    )
    fuzzy_weight: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Multiplier applied to fuzzy similarity relative to an exact hit",
    )

    # Highlighting
    max_fragments: int = Field(default=3, ge=1, description="Maximum highlight fragments per field")
    fallback_fragment_chars: int = Field(
        default=150, ge=1, description="Characters kept when a marked field yields no usable fragment"
    )
    highlight_open: str = Field(default="<mark>", description="Opening highlight marker")
    highlight_close: str = Field(default="</mark>", description="Closing highlight marker")

    # Suggestions
    suggestion_limit: int = Field(default=10, ge=1, description="Suggestions returned by a single provider")
    registry_suggestion_limit: int = Field(
        default=15, ge=1, description="Suggestions returned when aggregating every provider"
    )

    # Routing
    default_provider: str = Field(default="tasks", description="Provider used when a query names none")

    # Server settings
    host: str = Field(default="127.0.0.1", description="HTTP server host")
    port: int = Field(default=8085, ge=1, le=65535, description="HTTP server port")

    @model_validator(mode="after")
    def _check_markers(self) -> "Settings":
        if not self.highlight_open or not self.highlight_close:
            raise ValueError("KEEPER_SEARCH_HIGHLIGHT_OPEN and KEEPER_SEARCH_HIGHLIGHT_CLOSE must be non-empty.")
        if self.highlight_open == self.highlight_close:
            raise ValueError("Highlight open and close markers must differ.")
        return self

    def scoring_options(self) -> ScoringOptions:
        """Build the scorer options for a new provider."""
        return ScoringOptions(
            exact_match_bonus=self.exact_match_bonus,
            fuzzy_enabled=self.fuzzy_enabled,
            fuzzy_threshold=self.fuzzy_threshold,
            fuzzy_weight=self.fuzzy_weight,
        )

    def highlight_options(self) -> HighlightOptions:
        """Build the highlighter options for a new provider."""
        return HighlightOptions(
            open_marker=self.highlight_open,
            close_marker=self.highlight_close,
            max_fragments=self.max_fragments,
            fallback_chars=self.fallback_fragment_chars,
        )
