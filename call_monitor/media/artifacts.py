from __future__ import annotations

import tempfile
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ArtifactPaths:
    audio: Path
    video: Path

    def all(self) -> tuple[Path, Path]:
        return (self.audio, self.video)


def _safe_fragment(value: str) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in value)[:64] or "call"


def remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Failed to remove temporary file", path=str(path), error=str(e))


@contextmanager
def artifact_paths(event_id: str, directory: str | Path | None = None) -> Iterator[ArtifactPaths]:
    """Reserve unique temporary mp3/mp4 paths for one event.

    Both files are removed on exit, whatever happened inside the block.
    """
    base = Path(directory) if directory else Path(tempfile.gettempdir())
    base.mkdir(parents=True, exist_ok=True)
    stem = f"call_{_safe_fragment(event_id)}_{uuid.uuid4().hex[:12]}"
    paths = ArtifactPaths(audio=base / f"{stem}.mp3", video=base / f"{stem}.mp4")
    try:
        yield paths
    finally:
        for path in paths.all():
            remove_quietly(path)
