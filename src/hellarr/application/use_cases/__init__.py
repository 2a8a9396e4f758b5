from .resolve_streams import ResolveStreamsUseCase

__all__ = ["ResolveStreamsUseCase"]
