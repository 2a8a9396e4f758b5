from .media import (
    SEARCH_VIDEO_KIND,
    Admission,
    EpisodeInfo,
    EpisodeRef,
    HellarrError,
    MediaKind,
    MediaRequest,
    ProviderError,
    ProviderResponseError,
    ProviderThrottledError,
    ProviderUnavailableError,
    SearchResultItem,
    StreamDescriptor,
    TitleInfo,
    VideoDetail,
)

__all__ = [
    "SEARCH_VIDEO_KIND",
    "Admission",
    "EpisodeInfo",
    "EpisodeRef",
    "HellarrError",
    "MediaKind",
    "MediaRequest",
    "ProviderError",
    "ProviderResponseError",
    "ProviderThrottledError",
    "ProviderUnavailableError",
    "SearchResultItem",
    "StreamDescriptor",
    "TitleInfo",
    "VideoDetail",
]
