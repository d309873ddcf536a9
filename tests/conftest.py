"""Shared fixtures for the BDAA authoring tests."""

from pathlib import Path

import pytest

from bdaa.config.user_config import UserConfig
from bdaa.domain.models import AudioItem
from bdaa.services.tool_resolver import ResolvedTools


class FakeRunner:
    """
    Stands in for `ToolRunner`: records every command and creates the file the
    command would have produced (its last argument) so later stages find it.
    """

    def __init__(self, output_bytes: int = 1000):
        self.commands = []
        self.output_bytes = output_bytes

    def run(self, cmd_list, tool):
        self.commands.append((tool, list(cmd_list)))
        target = Path(cmd_list[-1])
        if tool == "tsMuxeR":
            stream_dir = target / "BDMV" / "STREAM"
            stream_dir.mkdir(parents=True, exist_ok=True)
            (stream_dir / "00000.m2ts").write_bytes(b"\0" * self.output_bytes)
        elif target.suffix and target.parent.is_dir():
            target.write_bytes(b"\0" * self.output_bytes)
        return ""

    def tools_used(self):
        return [tool for tool, _ in self.commands]


class FakeResolver:
    def __init__(self, on_resolve=None):
        self.on_resolve = on_resolve
        self.calls = 0

    def resolve_all(self):
        self.calls += 1
        if self.on_resolve:
            self.on_resolve()
        return ResolvedTools(ffmpeg="ffmpeg", ffprobe="ffprobe", tsmuxer="tsMuxeR")


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def user_config(tmp_path):
    return UserConfig(tmp_path / "config" / "config.user.yaml")


@pytest.fixture
def make_item(tmp_path):
    """Creates a small placeholder source file and an already-probed item for it."""

    def _make(name="01 Intro.flac", duration=10.0, sample_rate=48000, channels=2, bit_depth=24, codec="flac"):
        path = tmp_path / "src" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"not really audio")
        return AudioItem(
            path=path,
            display_name=path.stem,
            duration=duration,
            sample_rate=sample_rate,
            bit_depth=bit_depth,
            channels=channels,
            codec_name=codec,
        )

    return _make
