"""Optional conversion of call recordings into small videos."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from ..errors import TranscodeError

logger = structlog.get_logger(__name__)

VIDEO_SIZE = 360
AUDIO_BITRATE = "192k"
PROBE_TIMEOUT_SECONDS = 15.0


class MediaTranscoder:
    """Wraps ffmpeg to put a still image behind a recording."""

    def __init__(self, binary: str = "ffmpeg", background_image: str | Path = "phone.png", timeout_seconds: float = 120.0):
        self.binary = binary
        self.background_image = Path(background_image)
        self.timeout_seconds = timeout_seconds

    async def available(self) -> bool:
        """Probe for a working ffmpeg binary and the background image.

        Meant to be called once at startup.
        """
        if not self.background_image.exists():
            logger.warning("Background image not found", path=str(self.background_image))
            return False

        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                "-version",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning("ffmpeg not available", binary=self.binary, error=str(e))
            return False

        try:
            code = await asyncio.wait_for(proc.wait(), timeout=PROBE_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("ffmpeg probe timed out", binary=self.binary, timeout=PROBE_TIMEOUT_SECONDS)
            return False
        if code != 0:
            logger.warning("ffmpeg probe failed", binary=self.binary, returncode=code)
            return False
        return True

    def build_command(self, input_path: Path, output_path: Path) -> list[str]:
        scale = f"scale={VIDEO_SIZE}:{VIDEO_SIZE}, pad={VIDEO_SIZE}:{VIDEO_SIZE}:(ow-iw)/2:(oh-ih)/2"
        return [
            self.binary,
            "-y",
            "-loop", "1",
            "-i", str(self.background_image),
            "-i", str(input_path),
            "-filter_complex", scale,
            "-c:v", "libx264",
            "-tune", "stillimage",
            "-c:a", "aac",
            "-b:a", AUDIO_BITRATE,
            "-shortest",
            "-pix_fmt", "yuv420p",
            str(output_path),
        ]

    async def transcode(self, input_path: Path, output_path: Path) -> Path:
        """Render ``input_path`` into an mp4 at ``output_path``.

        Raises:
            TranscodeError: ffmpeg is missing, failed, timed out or wrote nothing.
        """
        if not self.background_image.exists():
            raise TranscodeError(f"Background image not found: {self.background_image}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *self.build_command(input_path, output_path),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TranscodeError(f"Could not start {self.binary}: {e}") from e

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise TranscodeError(f"ffmpeg timed out after {self.timeout_seconds}s") from e

        if proc.returncode != 0:
            tail = (stderr or b"").decode("utf-8", errors="replace").strip()[-500:]
            raise TranscodeError(f"ffmpeg exited with {proc.returncode}: {tail}")
        if not output_path.exists():
            raise TranscodeError(f"ffmpeg produced no output at {output_path}")

        logger.info("Transcode succeeded", output=output_path.name)
        return output_path
