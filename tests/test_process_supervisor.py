import sys

import pytest

from bdaa.domain.exceptions import BuildCancelledError, ExternalProcessError, ToolMissingError
from bdaa.domain.session import CancellationToken
from bdaa.services.process_supervisor import ProcessSupervisor
from bdaa.utils.ffmpeg_utils import ToolRunner

SLEEPER = [sys.executable, "-c", "import time; time.sleep(30)"]


def test_run_returns_combined_output():
    supervisor = ProcessSupervisor()
    returncode, output = supervisor.run(
        [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr)"]
    )
    assert returncode == 0
    assert "out" in output
    assert "err" in output
    assert supervisor.active_count == 0


def test_cancel_kills_running_process():
    supervisor = ProcessSupervisor()
    proc = supervisor.spawn(SLEEPER)
    assert supervisor.active_count == 1

    supervisor.cancel().join(timeout=10)

    proc.wait(timeout=10)
    assert proc.returncode != 0
    assert supervisor.active_count == 0
    assert supervisor.token.cancelled


def test_no_spawn_after_cancel():
    supervisor = ProcessSupervisor()
    supervisor.cancel().join(timeout=10)
    with pytest.raises(BuildCancelledError):
        supervisor.spawn(SLEEPER)
    assert supervisor.active_count == 0


def test_spawn_missing_executable_raises_oserror(tmp_path):
    supervisor = ProcessSupervisor()
    with pytest.raises(OSError):
        supervisor.spawn([str(tmp_path / "no-such-tool")])
    assert supervisor.active_count == 0


class StubSupervisor:
    def __init__(self, returncode=0, output="", error=None):
        self.token = CancellationToken()
        self.returncode = returncode
        self.output = output
        self.error = error
        self.commands = []

    def run(self, cmd, env=None):
        self.commands.append(cmd)
        if self.error:
            raise self.error
        return self.returncode, self.output


def test_tool_runner_logs_commands(tmp_path):
    cmd_log = tmp_path / "cmd.txt"
    runner = ToolRunner(StubSupervisor(output="ok"), cmd_log_file_path=cmd_log)

    assert runner.run(["ffmpeg", "-i", "my file.wav"], "ffmpeg") == "ok"
    assert cmd_log.read_text(encoding="utf-8") == "ffmpeg -i 'my file.wav'\n"


def test_tool_runner_failure_writes_error_log(tmp_path):
    runner = ToolRunner(StubSupervisor(returncode=1, output="Invalid data found"), error_log_dir=tmp_path)

    with pytest.raises(ExternalProcessError) as excinfo:
        runner.run(["tsMuxeR", "a.meta", "out"], "tsMuxeR")

    assert excinfo.value.returncode == 1
    assert "Invalid data found" in str(excinfo.value)
    error_text = (tmp_path / "error.txt").read_text(encoding="utf-8")
    assert "tsMuxeR failed with exit code 1" in error_text
    assert "Invalid data found" in error_text


def test_tool_runner_failure_after_cancel_is_cancellation(tmp_path):
    supervisor = StubSupervisor(returncode=-15)
    supervisor.token.cancel()
    with pytest.raises(BuildCancelledError):
        ToolRunner(supervisor, error_log_dir=tmp_path).run(["ffmpeg"], "ffmpeg")
    assert not (tmp_path / "error.txt").exists()


def test_tool_runner_missing_tool():
    runner = ToolRunner(StubSupervisor(error=FileNotFoundError("ffmpeg")))
    with pytest.raises(ToolMissingError) as excinfo:
        runner.run(["ffmpeg", "-version"], "ffmpeg")
    assert excinfo.value.name == "ffmpeg"
