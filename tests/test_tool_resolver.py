import os
import subprocess

import pytest

from bdaa.domain.exceptions import ToolMissingError
from bdaa.services import tool_resolver
from bdaa.services.tool_resolver import ToolResolver


def _write_tool(path, executable=True):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755 if executable else 0o644)
    return path


def _completed(returncode, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def test_preferred_path_comes_first(user_config):
    user_config.tool_paths["ffmpeg"] = "/custom/ffmpeg"
    candidates = ToolResolver(user_config).candidates("ffmpeg")
    assert candidates[0] == "/custom/ffmpeg"
    assert candidates[-1] == "ffmpeg"


def test_resolve_path_skips_missing_candidates(tmp_path, user_config):
    tool = _write_tool(tmp_path / "bin" / "ffmpeg")
    resolver = ToolResolver(user_config)
    assert resolver.resolve_path([str(tmp_path / "nope" / "ffmpeg"), str(tool)]) == str(tool)
    assert resolver.resolve_path([str(tmp_path / "nope" / "ffmpeg")]) is None


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_resolve_path_makes_file_executable(tmp_path, user_config):
    tool = _write_tool(tmp_path / "bin" / "tsMuxeR", executable=False)
    assert ToolResolver(user_config).resolve_path([str(tool)]) == str(tool)
    assert os.access(tool, os.X_OK)


def test_resolve_path_app_bundle(tmp_path, user_config):
    inner = _write_tool(tmp_path / "tsMuxeR.app" / "Contents" / "MacOS" / "tsMuxeR")
    assert ToolResolver(user_config).resolve_path([str(tmp_path / "tsMuxeR.app")]) == str(inner)


def test_resolve_path_lowercase_tsmuxer_falls_back(tmp_path, user_config):
    actual = _write_tool(tmp_path / "bin" / "tsMuxeR")
    if (tmp_path / "bin" / "tsmuxer").exists():
        pytest.skip("case-insensitive filesystem")
    assert ToolResolver(user_config).resolve_path([str(tmp_path / "bin" / "tsmuxer")]) == str(actual)


@pytest.mark.parametrize(
    "result",
    [_completed(1, "Usage: tsMuxeR <media file name> <out name>"), _completed(132), _completed(7, "tsMuxeR version 2.6.16")],
)
def test_tsmuxer_check_accepts_benign_runs(monkeypatch, user_config, result):
    monkeypatch.setattr(tool_resolver, "run_cmd", lambda cmd, **kwargs: result)
    ToolResolver(user_config).check("/bin/tsMuxeR", "tsmuxer")


def test_tsmuxer_check_rejects_unknown_failure(monkeypatch, user_config):
    monkeypatch.setattr(tool_resolver, "run_cmd", lambda cmd, **kwargs: _completed(3, "", "cannot execute binary file"))
    with pytest.raises(ToolMissingError) as excinfo:
        ToolResolver(user_config).check("/bin/tsMuxeR", "tsmuxer")
    assert excinfo.value.name == "tsMuxeR"
    assert "Exit code: 3" in excinfo.value.details


def test_ffmpeg_check_requires_success(monkeypatch, user_config):
    commands = []

    def fake_run_cmd(cmd, **kwargs):
        commands.append(cmd)
        return _completed(0 if cmd[0] == "good" else 1, "ffmpeg version 7.0")

    monkeypatch.setattr(tool_resolver, "run_cmd", fake_run_cmd)
    resolver = ToolResolver(user_config)
    resolver.check("good", "ffmpeg")
    with pytest.raises(ToolMissingError):
        resolver.check("bad", "ffprobe")
    assert commands[0] == ["good", "-version"]


def test_check_tool_that_cannot_start(monkeypatch, user_config):
    monkeypatch.setattr(tool_resolver, "run_cmd", lambda cmd, **kwargs: None)
    with pytest.raises(ToolMissingError) as excinfo:
        ToolResolver(user_config).check("/missing/ffmpeg", "ffmpeg")
    assert "not started" in excinfo.value.details


def test_resolve_all_persists_paths(tmp_path, monkeypatch, user_config):
    for key in ("ffmpeg", "ffprobe", "tsmuxer"):
        user_config.tool_paths[key] = str(_write_tool(tmp_path / "bin" / key))
    monkeypatch.setattr(tool_resolver, "default_candidates", lambda key: [])

    tools = ToolResolver(user_config, validate=False).resolve_all()

    assert tools.tsmuxer == str(tmp_path / "bin" / "tsmuxer")
    assert user_config.path.is_file()
    assert str(tmp_path / "bin" / "ffprobe") in user_config.path.read_text(encoding="utf-8")


def test_resolve_missing_tool(monkeypatch, user_config):
    monkeypatch.setattr(tool_resolver, "default_candidates", lambda key: [])
    with pytest.raises(ToolMissingError) as excinfo:
        ToolResolver(user_config).resolve("tsmuxer")
    assert str(excinfo.value) == "Required tool not found: tsMuxeR."
