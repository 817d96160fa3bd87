from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from call_monitor.errors import TranscodeError
from call_monitor.media.transcoder import MediaTranscoder


def test_command_renders_still_image_video(tmp_path: Path) -> None:
    transcoder = MediaTranscoder(binary="ffmpeg", background_image=tmp_path / "phone.png")
    cmd = transcoder.build_command(tmp_path / "in.mp3", tmp_path / "out.mp4")

    assert cmd[0] == "ffmpeg"
    assert cmd[cmd.index("-loop") + 1] == "1"
    assert cmd.count("-i") == 2
    assert str(tmp_path / "phone.png") in cmd
    assert str(tmp_path / "in.mp3") in cmd
    assert "scale=360:360" in cmd[cmd.index("-filter_complex") + 1]
    assert cmd[cmd.index("-c:v") + 1] == "libx264"
    assert cmd[cmd.index("-b:a") + 1] == "192k"
    assert "-shortest" in cmd
    assert cmd[-1] == str(tmp_path / "out.mp4")



@pytest.mark.asyncio
async def test_missing_binary_is_reported_unavailable(tmp_path: Path) -> None:
    background = tmp_path / "phone.png"
    background.write_bytes(b"png")
    transcoder = MediaTranscoder(binary="definitely-not-ffmpeg-binary", background_image=background)
    assert await transcoder.available() is False


@pytest.mark.asyncio
async def test_missing_background_disables_transcoding_at_startup(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    spawned: list[tuple] = []

    async def fake_exec(*args, **kwargs):
        spawned.append(args)
        return _ProbeProcess()

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
    transcoder = MediaTranscoder(background_image=tmp_path / "missing.png")

    assert await transcoder.available() is False
    assert spawned == []


class _ProbeProcess:
    def __init__(self, returncode: int = 0, hang: bool = False) -> None:
        self.returncode = returncode
        self.hang = hang
        self.killed = False
        self._exited = asyncio.Event()

    async def wait(self) -> int:
        if self.hang and not self.killed:
            await self._exited.wait()
        return self.returncode

    def kill(self) -> None:
        self.killed = True
        self._exited.set()


@pytest.mark.asyncio
async def test_probe_succeeds_with_binary_and_background(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    background = tmp_path / "phone.png"
    background.write_bytes(b"png")

    async def fake_exec(*args, **kwargs):
        assert args[1] == "-version"
        return _ProbeProcess()

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
    assert await MediaTranscoder(background_image=background).available() is True


@pytest.mark.asyncio
async def test_hung_probe_is_killed(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    background = tmp_path / "phone.png"
    background.write_bytes(b"png")
    proc = _ProbeProcess(hang=True)

    async def fake_exec(*args, **kwargs):
        return proc

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
    monkeypatch.setattr("call_monitor.media.transcoder.PROBE_TIMEOUT_SECONDS", 0.01)

    assert await MediaTranscoder(background_image=background).available() is False
    assert proc.killed is True


@pytest.mark.asyncio
async def test_missing_background_raises(tmp_path: Path) -> None:
    transcoder = MediaTranscoder(background_image=tmp_path / "missing.png")
    with pytest.raises(TranscodeError):
        await transcoder.transcode(tmp_path / "in.mp3", tmp_path / "out.mp4")


class _FakeProcess:
    def __init__(self, returncode: int, stderr: bytes = b"") -> None:
        self.returncode = returncode
        self._stderr = stderr

    async def communicate(self):
        return b"", self._stderr


@pytest.mark.asyncio
async def test_nonzero_exit_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    background = tmp_path / "phone.png"
    background.write_bytes(b"png")

    async def fake_exec(*args, **kwargs):
        return _FakeProcess(1, b"Invalid data found when processing input")

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
    transcoder = MediaTranscoder(background_image=background)

    with pytest.raises(TranscodeError, match="Invalid data"):
        await transcoder.transcode(tmp_path / "in.mp3", tmp_path / "out.mp4")


@pytest.mark.asyncio
async def test_successful_run_returns_output(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    background = tmp_path / "phone.png"
    background.write_bytes(b"png")
    output = tmp_path / "out.mp4"

    async def fake_exec(*args, **kwargs):
        Path(args[-1]).write_bytes(b"mp4")
        return _FakeProcess(0)

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
    transcoder = MediaTranscoder(background_image=background)

    assert await transcoder.transcode(tmp_path / "in.mp3", output) == output


@pytest.mark.asyncio
async def test_start_failure_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    background = tmp_path / "phone.png"
    background.write_bytes(b"png")

    async def fake_exec(*args, **kwargs):
        raise FileNotFoundError("ffmpeg")

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
    with pytest.raises(TranscodeError):
        await MediaTranscoder(background_image=background).transcode(tmp_path / "in.mp3", tmp_path / "out.mp4")
