"""Model artifact storage for MarketLens"""

from .artifact_store import ArtifactStore, InMemoryArtifactStore, LocalArtifactStore, artifact_key

__all__ = [
    "ArtifactStore",
    "InMemoryArtifactStore",
    "LocalArtifactStore",
    "artifact_key",
]
