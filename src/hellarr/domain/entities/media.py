"""Domain entities for stream resolution.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

SEARCH_VIDEO_KIND = "GWSearchVideo"


class MediaKind(str, Enum):
    """Kind of media a request refers to."""

    MOVIE = "movie"
    SERIES = "series"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class EpisodeRef:
    """Season/episode pair of a series request."""

    season: int
    number: int

    @property
    def season_padded(self) -> str:
        return f"{self.season:02d}"

    @property
    def number_padded(self) -> str:
        return f"{self.number:02d}"


@dataclass(frozen=True)
class MediaRequest:
    """A caller's request for streams.

    Created from a Stremio path id: ``tt1234567`` (movie) or
    ``tt1234567:1:5`` (series, season 1, episode 5).
    """

    external_id: str
    kind: MediaKind = MediaKind.UNKNOWN
    display_name: str | None = None
    episode: EpisodeRef | None = None
    year: int | None = None

    @classmethod
    def from_compound_id(
        cls,
        compound_id: str,
        *,
        kind: MediaKind = MediaKind.UNKNOWN,
        display_name: str | None = None,
        year: int | None = None,
    ) -> MediaRequest:
        """Split ``id[:season:episode]`` into a request.

        A compound id with a valid episode suffix implies ``series``
        when *kind* is unknown.

        Raises:
            ValueError: If season/episode parts are not integers.
        """
        parts = compound_id.strip().split(":")
        base_id = parts[0]
        episode: EpisodeRef | None = None
        if len(parts) >= 3:
            episode = EpisodeRef(season=int(parts[1]), number=int(parts[2]))
            if kind is MediaKind.UNKNOWN:
                kind = MediaKind.SERIES
        return cls(
            external_id=base_id,
            kind=kind,
            display_name=display_name,
            episode=episode,
            year=year,
        )

    @property
    def is_series(self) -> bool:
        return self.kind is MediaKind.SERIES or self.episode is not None


@dataclass(frozen=True)
class TitleInfo:
    """Resolved title metadata.

    Different sources fill different subsets; see :meth:`merged_with`.
    """

    localized_title: str | None = None
    original_language_title: str | None = None  # English label
    original_title: str | None = None
    year: int | None = None
    kind: MediaKind | None = None
    external_metadata_id: int | None = None

    @property
    def display_title(self) -> str | None:
        return (
            self.localized_title
            or self.original_language_title
            or self.original_title
        )

    def merged_with(self, other: TitleInfo | None) -> TitleInfo:
        """Return a new TitleInfo filling gaps from *other* (self wins)."""
        if other is None:
            return self
        return TitleInfo(
            localized_title=self.localized_title or other.localized_title,
            original_language_title=(
                self.original_language_title or other.original_language_title
            ),
            original_title=self.original_title or other.original_title,
            year=self.year if self.year is not None else other.year,
            kind=self.kind if self.kind is not None else other.kind,
            external_metadata_id=(
                self.external_metadata_id
                if self.external_metadata_id is not None
                else other.external_metadata_id
            ),
        )


@dataclass(frozen=True)
class EpisodeInfo:
    """Episode metadata from the primary metadata provider."""

    name: str
    season: int
    number: int
    air_date: str | None = None


@dataclass(frozen=True)
class SearchResultItem:
    """Raw item returned by the content-search provider."""

    search_provider_id: str
    file_hash: str
    title: str
    size_bytes: int = 0
    item_kind: str = SEARCH_VIDEO_KIND


@dataclass(frozen=True)
class VideoDetail:
    """Detail response for a single search result."""

    title: str
    duration_seconds: int = 0
    qualities: dict[str, str] = field(default_factory=dict)  # "720" -> url
    direct_url: str | None = None


@dataclass(frozen=True)
class StreamDescriptor:
    """A playable stream returned to the caller."""

    url: str
    quality_label: str  # "720p", "1080p", "original"
    source_title: str
    size_bytes: int = 0


@dataclass(frozen=True)
class Admission:
    """Outcome of a fairness-queue admission attempt."""

    admitted: bool
    queue_position: int = 0  # 0 while processing
    eta_seconds: float = 0.0


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class HellarrError(Exception):
    """Base error for the stream resolution domain."""


class ProviderError(HellarrError):
    """An upstream provider call failed."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderUnavailableError(ProviderError):
    """Network failure or timeout talking to a provider."""


class ProviderResponseError(ProviderError):
    """Non-2xx status or malformed body."""

    def __init__(
        self, provider: str, message: str, *, status_code: int | None = None
    ) -> None:
        super().__init__(provider, message)
        self.status_code = status_code


class ProviderThrottledError(ProviderResponseError):
    """Provider kept answering 429 after all retries."""
