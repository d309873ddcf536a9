import pytest
import yaml

from bdaa.config.audio import LPCMFormat, OutputCodec
from bdaa.domain.exceptions import (
    BuildCancelledError,
    BuildInProgressError,
    ExpectedTrueHDError,
    NoItemsError,
)
from bdaa.domain.models import BuildOptions
from bdaa.domain.session import BuildSession
from bdaa.pipeline.build_pipeline import BuildPipeline
from bdaa.services.workspace import Workspace
from conftest import FakeResolver, FakeRunner


@pytest.fixture
def workspaces(tmp_path):
    base = tmp_path / "tmp"
    base.mkdir()
    created = []

    def factory():
        workspace = Workspace(base)
        created.append(workspace)
        return workspace

    factory.created = created
    return factory


def _pipeline(session, user_config, runner, workspaces, resolver=None):
    return BuildPipeline(
        session,
        user_config,
        tool_resolver=resolver or FakeResolver(),
        runner_factory=lambda supervisor, workspace: runner,
        workspace_factory=workspaces,
    )


def _options(tmp_path, **overrides):
    values = dict(
        output_dir=tmp_path / "out",
        output_codec=OutputCodec.LPCM,
        lpcm_format=LPCMFormat.FORMAT_24_48,
        use_custom_video=False,
    )
    values.update(overrides)
    return BuildOptions(**values)


def test_lpcm_build_with_black_video(tmp_path, make_item, user_config, workspaces):
    runner = FakeRunner()
    session = BuildSession()
    progress = []
    session.subscribe(lambda snap: progress.append(snap.progress))
    items = [make_item("01 A.flac", duration=100.0), make_item("02 B.flac", duration=200.4)]

    result = _pipeline(session, user_config, runner, workspaces).run(items, _options(tmp_path))

    assert runner.tools_used() == ["ffmpeg", "ffmpeg", "ffmpeg", "ffmpeg", "tsMuxeR"]
    assert result.output_dir.parent == tmp_path / "out"
    assert result.output_dir.name.startswith("BDMV_OUT_")
    assert (result.output_dir / "BDMV").is_dir()
    assert (result.output_dir / "CERTIFICATE").is_dir()
    assert result.size_bytes == 1000
    assert result.total_duration == pytest.approx(300.4)
    assert runner.commands[-1][1][2] == str(result.output_dir)

    snap = session.snapshot()
    assert not snap.working
    assert snap.progress == 1.0
    assert snap.status == "Done"
    assert snap.estimated_size_bytes == 1000
    assert progress == sorted(progress)
    assert "Blu-ray folder created" in snap.log_text

    # Successful builds remove their workspace and remember the output directory.
    assert not result.workspace.exists()
    assert user_config.output_dir == tmp_path / "out"
    assert user_config.path.is_file()
    report = yaml.safe_load((tmp_path / "out" / "build_log.yaml").read_text(encoding="utf-8"))
    assert report[0]["index"] == 1
    assert report[0]["track_count"] == 2
    assert report[0]["lpcm_format"] == "24/48"


def test_custom_video_build_writes_descriptor(tmp_path, make_item, user_config, workspaces):
    runner = FakeRunner()
    items = [make_item("01 A.flac", duration=65.5), make_item("02 B.flac", duration=30.0)]
    options = _options(tmp_path, use_custom_video=True, resolution="320x180", keep_workspace=True)

    result = _pipeline(BuildSession(), user_config, runner, workspaces).run(items, options)

    workspace = result.workspace
    assert workspace.is_dir()
    assert (workspace / "chapters.txt").read_text(encoding="utf-8") == (
        "00:00:00.000 Chapter 01\n00:01:05.500 Chapter 02"
    )
    meta_path = workspace / "author.meta"
    assert runner.commands[-1][1][1] == str(meta_path)
    assert meta_path.read_text(encoding="utf-8") == (
        "MUXOPT --blu-ray --vbr 20000 --auto-chapters=0 --custom-chapters=00:00:00;00:01:06\n"
        f"V_MPEG4/ISO/AVC, {workspace / 'custom_final.h264'}, fps=23.976, level=4.1\n"
        f"A_LPCM, {workspace / 'program_lpcm.wav'}, bitDepth=24, lang=eng\n"
    )


def test_empty_list_fails_before_tools(tmp_path, user_config, workspaces):
    resolver = FakeResolver()
    session = BuildSession()

    with pytest.raises(NoItemsError):
        _pipeline(session, user_config, FakeRunner(), workspaces, resolver).run([], _options(tmp_path))

    assert resolver.calls == 0
    assert session.snapshot().status == "Failed"


def test_cancel_between_stages_spawns_nothing(tmp_path, make_item, user_config, workspaces):
    runner = FakeRunner()
    session = BuildSession()
    pipeline = None

    def cancel_during_tool_check():
        pipeline.cancel()

    pipeline = _pipeline(session, user_config, runner, workspaces, FakeResolver(cancel_during_tool_check))

    with pytest.raises(BuildCancelledError):
        pipeline.run([make_item()], _options(tmp_path))

    assert runner.commands == []
    assert workspaces.created == []
    snap = session.snapshot()
    assert not snap.working
    assert snap.progress == 0.0
    assert snap.status == "Failed"
    assert "BUILD FAILED:" in snap.log_text
    assert not (tmp_path / "out").exists()


def test_cancel_during_audio_stops_after_current_track(tmp_path, make_item, user_config, workspaces):
    session = BuildSession()
    pipeline = None

    class CancellingRunner(FakeRunner):
        def run(self, cmd_list, tool):
            output = super().run(cmd_list, tool)
            pipeline.cancel()
            return output

    runner = CancellingRunner()
    pipeline = _pipeline(session, user_config, runner, workspaces)
    items = [make_item("01 A.flac"), make_item("02 B.flac"), make_item("03 C.flac")]

    with pytest.raises(BuildCancelledError):
        pipeline.run(items, _options(tmp_path))

    assert len(runner.commands) == 1
    workspace = workspaces.created[0].root
    assert workspace.is_dir()
    assert "BUILD FAILED:" in (workspace / "error.txt").read_text(encoding="utf-8")


def test_failed_build_keeps_workspace(tmp_path, make_item, user_config, workspaces):
    session = BuildSession()
    options = _options(tmp_path, output_codec=OutputCodec.TRUEHD_PASSTHROUGH)

    with pytest.raises(ExpectedTrueHDError):
        _pipeline(session, user_config, FakeRunner(), workspaces).run([make_item(codec="flac")], options)

    workspace = workspaces.created[0].root
    assert "ExpectedTrueHDError" in (workspace / "error.txt").read_text(encoding="utf-8")
    assert session.snapshot().progress == 0.0
    assert not (tmp_path / "out" / "build_log.yaml").exists()


def test_second_build_is_rejected_while_one_runs(tmp_path, make_item, user_config, workspaces):
    running = BuildSession()
    running.begin()
    try:
        with pytest.raises(BuildInProgressError):
            _pipeline(BuildSession(), user_config, FakeRunner(), workspaces).run([make_item()], _options(tmp_path))
    finally:
        running.end()
    assert workspaces.created == []


def test_start_runs_on_worker(tmp_path, make_item, user_config, workspaces):
    runner = FakeRunner()
    pipeline = _pipeline(BuildSession(), user_config, runner, workspaces)
    try:
        future = pipeline.start([make_item(duration=5.0)], _options(tmp_path))
        result = future.result(timeout=30)
    finally:
        pipeline.shutdown()

    assert (result.output_dir / "BDMV").is_dir()
    assert pipeline.cancel() is False
