"""Recording download, transcoding and temporary file handling."""

from .artifacts import ArtifactPaths, artifact_paths
from .fetcher import ArtifactFetcher
from .transcoder import MediaTranscoder

__all__ = ["ArtifactFetcher", "ArtifactPaths", "MediaTranscoder", "artifact_paths"]
