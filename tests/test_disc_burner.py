import subprocess

import pytest

from bdaa.config.disc import DiscCapacity
from bdaa.domain.exceptions import BurnError, DiscCapacityExceededError
from bdaa.domain.session import BuildSession
from bdaa.pipeline import build_pipeline
from bdaa.pipeline.build_pipeline import BurnPipeline
from bdaa.services import disc_burner
from bdaa.services.disc_burner import DiscBurner, burn_cmd, image_cmd


@pytest.fixture
def bd_folder(tmp_path):
    folder = tmp_path / "BDMV_OUT_20240101_000000"
    (folder / "BDMV" / "STREAM").mkdir(parents=True)
    (folder / "CERTIFICATE").mkdir()
    (folder / "BDMV" / "STREAM" / "00000.m2ts").write_bytes(b"\0" * 100)
    return folder


def test_image_and_burn_commands(tmp_path):
    iso = tmp_path / "out.iso"
    assert image_cmd(tmp_path, iso, "darwin") == [
        "/usr/bin/hdiutil", "makehybrid", "-udf", "-udf-volume-name", "BDMV", "-o", str(iso), str(tmp_path)
    ]
    assert image_cmd(tmp_path, iso, "linux")[:4] == ["mkisofs", "-udf", "-V", "BDMV"]
    assert burn_cmd(iso, platform="darwin") == ["/usr/sbin/drutil", "burn", str(iso)]
    assert burn_cmd(iso, "/dev/sr1", "linux") == ["growisofs", "-dvd-compat", "-Z", f"/dev/sr1={iso}"]


def test_burn_requires_bdmv(tmp_path):
    with pytest.raises(BurnError, match="does not contain BDMV"):
        DiscBurner(platform="linux").burn(tmp_path)


def test_burn_runs_image_then_burn(monkeypatch, bd_folder):
    commands = []

    def fake_run_cmd(cmd, **kwargs):
        commands.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, "", "")

    monkeypatch.setattr(disc_burner, "run_cmd", fake_run_cmd)
    iso = DiscBurner(device="/dev/sr0", platform="linux").burn(bd_folder)

    assert iso == bd_folder.parent / f"{bd_folder.name}.iso"
    assert [cmd[0] for cmd in commands] == ["mkisofs", "growisofs"]


def test_burn_command_failure(monkeypatch, bd_folder):
    monkeypatch.setattr(disc_burner, "run_cmd", lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 2, "", "no disc"))
    with pytest.raises(BurnError, match="Creating ISO failed with exit code 2: no disc"):
        DiscBurner(platform="linux").burn(bd_folder)


def test_burn_pipeline_refuses_oversized_folder(monkeypatch, bd_folder):
    class NeverBurner:
        def burn(self, folder):
            raise AssertionError("must not burn")

    def oversized(folder, disc):
        raise DiscCapacityExceededError(26_000_000_000, disc.bytes, disc.label)

    monkeypatch.setattr(build_pipeline, "preflight", oversized)
    session = BuildSession()

    with pytest.raises(DiscCapacityExceededError):
        BurnPipeline(session, NeverBurner()).run(bd_folder, DiscCapacity.BD25)

    snap = session.snapshot()
    assert not snap.working
    assert snap.status == "Too large for target disc"
    assert snap.progress == 0.0


def test_burn_pipeline_success(bd_folder):
    class RecordingBurner:
        def __init__(self):
            self.folders = []

        def burn(self, folder):
            self.folders.append(folder)
            return folder.with_suffix(".iso")

    burner = RecordingBurner()
    session = BuildSession()
    iso = BurnPipeline(session, burner).run(bd_folder, DiscCapacity.BD25)

    assert burner.folders == [bd_folder]
    assert iso.suffix == ".iso"
    assert session.snapshot().status == "Burn command sent"
    assert session.snapshot().progress == 1.0
