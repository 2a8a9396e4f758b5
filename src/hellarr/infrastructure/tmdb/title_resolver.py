"""Title resolution: TMDB first (when configured), Wikidata as fallback."""

from __future__ import annotations

import structlog

from hellarr.domain.entities.media import EpisodeInfo, EpisodeRef, TitleInfo
from hellarr.domain.ports.metadata import FallbackMetadataPort, PrimaryMetadataPort

log = structlog.get_logger(__name__)


class TitleResolver:
    """Resolves an external ID into a ``TitleInfo``.

    The fallback is only consulted when the primary source is absent or
    yields nothing.  Source failures are logged and count as a miss.

    Args:
        primary: TMDB client, ``None`` when no API key is configured.
        fallback: Keyless source (Wikidata).
    """

    def __init__(
        self,
        *,
        primary: PrimaryMetadataPort | None,
        fallback: FallbackMetadataPort | None,
    ) -> None:
        self._primary = primary
        self._fallback = fallback

    @property
    def has_primary(self) -> bool:
        return self._primary is not None

    async def resolve(self, external_id: str) -> TitleInfo | None:
        """Return title metadata, or None when no source knows the ID."""
        info: TitleInfo | None = None
        if self._primary is not None:
            info = await self._lookup(self._primary, "primary", external_id)
        if info is None and self._fallback is not None:
            info = await self._lookup(self._fallback, "fallback", external_id)

        if info is None:
            log.info("title_unresolved", external_id=external_id)
        return info

    async def episode_info(
        self, title: TitleInfo, episode: EpisodeRef
    ) -> EpisodeInfo | None:
        """Episode name lookup; needs the primary source and its TMDB id."""
        if self._primary is None or title.external_metadata_id is None:
            return None
        try:
            return await self._primary.episode_info(
                title.external_metadata_id, episode.season, episode.number
            )
        except Exception:  # noqa: BLE001
            log.warning(
                "episode_info_failed",
                tmdb_id=title.external_metadata_id,
                exc_info=True,
            )
            return None

    @staticmethod
    async def _lookup(
        source: PrimaryMetadataPort | FallbackMetadataPort,
        label: str,
        external_id: str,
    ) -> TitleInfo | None:
        try:
            info = await source.find_by_external_id(external_id)
        except Exception:  # noqa: BLE001
            log.warning(
                "title_source_failed",
                source=label,
                external_id=external_id,
                exc_info=True,
            )
            return None
        if info is None or info.display_title is None:
            return None
        log.debug(
            "title_resolved",
            source=label,
            external_id=external_id,
            title=info.display_title,
        )
        return info
