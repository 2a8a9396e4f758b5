from .cache import CachePort
from .content_search import ContentSearchPort
from .metadata import (
    FallbackMetadataPort,
    PrimaryMetadataPort,
    TitleVariationSourcePort,
)

__all__ = [
    "CachePort",
    "ContentSearchPort",
    "FallbackMetadataPort",
    "PrimaryMetadataPort",
    "TitleVariationSourcePort",
]
