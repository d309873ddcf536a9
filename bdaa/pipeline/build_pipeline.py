"""
The end-to-end build: tool resolution, audio, video, chapters, descriptor,
multiplexing and folder finalization.

Stages run strictly one after another on a single worker thread. Before each
stage the cancellation token is checked, so a cancellation requested between
stages starts no further external process. A cancellation during a stage kills
the running process through the `ProcessSupervisor` and surfaces as
`BuildCancelledError`.

Progress only moves forward through fixed milestones. Any failure logs a
`BUILD FAILED:` line, resets the session to a failed state and is re-raised;
the workspace is then left in place for diagnosis.
"""

import concurrent.futures
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Sequence

from loguru import logger

from ..config.audio import OutputCodec
from ..config.common import (
    BURN_FAILED_MARKER,
    BUILD_FAILED_MARKER,
    PROGRESS_AUDIO_END,
    PROGRESS_AUDIO_START,
    PROGRESS_CHAPTERS,
    PROGRESS_DONE,
    PROGRESS_FINALIZE,
    PROGRESS_META,
    PROGRESS_MUX,
    PROGRESS_START,
    PROGRESS_TOOLS,
    PROGRESS_VIDEO_END,
    PROGRESS_WORKSPACE,
)
from ..config.disc import DiscCapacity
from ..config.user_config import UserConfig
from ..domain.exceptions import BuildCancelledError, DiscCapacityExceededError, NoItemsError
from ..domain.models import AudioItem, BuildOptions, PreparedAudioResult
from ..domain.session import BuildSession
from ..services.audio_preparer import AudioPreparer, resolve_lpcm_format
from ..services.capacity import CapacityEstimator, preflight
from ..services.chapter_writer import write_chapters
from ..services.disc_burner import DiscBurner
from ..services.logging_service import BuildReport, ErrorLog
from ..services.mux_descriptor import write_meta
from ..services.muxer import MuxOrchestrator, create_output_dir, ensure_certificate_dir
from ..services.process_supervisor import ProcessSupervisor
from ..services.tool_resolver import ResolvedTools, ToolResolver
from ..services.video_synthesizer import VideoSynthesizer
from ..services.workspace import Workspace
from ..utils.ffmpeg_utils import ToolRunner
from ..utils.format_utils import format_gb, format_seconds, format_timedelta, formatted_size

RunnerFactory = Callable[[ProcessSupervisor, Workspace], ToolRunner]


def default_runner_factory(supervisor: ProcessSupervisor, workspace: Workspace) -> ToolRunner:
    return ToolRunner(supervisor, cmd_log_file_path=workspace.cmd_log_path, error_log_dir=workspace.root)


@dataclass(frozen=True)
class BuildResult:
    output_dir: Path
    size_bytes: int
    total_duration: float
    workspace: Path


class BuildPipeline:
    """
    Builds one Blu-ray audio folder per `run`/`start` call.

    Attributes:
        session (BuildSession): Receives progress, status, estimates and log lines.
        user_config (UserConfig): Tool paths and estimator settings; updated on success.
        tool_resolver (ToolResolver): Finds and validates the tools.
        runner_factory (RunnerFactory): Creates the command runner for a build.
    """

    def __init__(
        self,
        session: BuildSession,
        user_config: UserConfig,
        tool_resolver: Optional[ToolResolver] = None,
        runner_factory: RunnerFactory = default_runner_factory,
        workspace_factory: Callable[[], Workspace] = Workspace,
    ):
        self.session = session
        self.user_config = user_config
        self.tool_resolver = tool_resolver or ToolResolver(user_config)
        self.runner_factory = runner_factory
        self.workspace_factory = workspace_factory
        self.estimator = CapacityEstimator(user_config.video_mbps, user_config.mux_overhead)
        self._supervisor: Optional[ProcessSupervisor] = None
        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = None

    # --- entry points ---

    def run(self, items: Sequence[AudioItem], options: BuildOptions) -> BuildResult:
        """Runs the build on the calling thread."""
        self.session.begin()
        return self._execute(tuple(items), options)

    def start(self, items: Sequence[AudioItem], options: BuildOptions) -> concurrent.futures.Future:
        """
        Starts the build on a background worker and returns its future.

        Raises:
            BuildInProgressError: Immediately, if another build or burn is running.
        """
        self.session.begin()
        if self._executor is None:
            self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="bdaa-build")
        return self._executor.submit(self._execute, tuple(items), options)

    def cancel(self) -> bool:
        """Requests cancellation and kills running tools. Returns False if idle."""
        if not self.session.request_cancel():
            return False
        if self._supervisor is not None:
            self._supervisor.cancel()
        return True

    def shutdown(self):
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # --- stages ---

    def _execute(self, items: tuple[AudioItem, ...], options: BuildOptions) -> BuildResult:
        started = datetime.now()
        workspace: Optional[Workspace] = None
        try:
            token = self.session.token
            self._supervisor = ProcessSupervisor(token)

            self.session.set_progress(PROGRESS_START, "Starting build...")
            logger.info("Starting build...")
            if not items:
                raise NoItemsError()

            token.raise_if_cancelled()
            self.session.set_progress(PROGRESS_TOOLS, "Validating tools...")
            tools = self._resolve_tools()

            token.raise_if_cancelled()
            self.session.set_progress(PROGRESS_WORKSPACE, "Preparing workspace...")
            workspace = self.workspace_factory()
            runner = self.runner_factory(self._supervisor, workspace)
            self._update_estimate(self.estimator.rough(items, options.output_codec, options.lpcm_format), "rough")

            token.raise_if_cancelled()
            self.session.set_progress(PROGRESS_AUDIO_START, "Preparing audio...")
            prepared = self._prepare_audio(runner, tools, workspace, items, options)
            self._update_estimate(self.estimator.after_audio(prepared.audio_path, prepared.total_duration), "after audio")

            token.raise_if_cancelled()
            self.session.set_progress(PROGRESS_AUDIO_END, "Generating video...")
            video_path = self._make_video(runner, tools, workspace, items, prepared, options)
            self._update_estimate(self.estimator.after_video(prepared.audio_path, video_path), "after video")

            token.raise_if_cancelled()
            self.session.set_progress(PROGRESS_CHAPTERS, "Writing chapters...")
            chapters_path = write_chapters(prepared.segment_durations, workspace.root)

            token.raise_if_cancelled()
            self.session.set_progress(PROGRESS_META, "Creating meta...")
            meta_path = write_meta(video_path, prepared.audio_path, prepared.mux_audio_type, options.fps, chapters_path)

            token.raise_if_cancelled()
            self.session.set_progress(PROGRESS_MUX, "Multiplexing (tsMuxeR)...")
            output_dir = create_output_dir(options.output_dir)
            MuxOrchestrator(runner, tools.tsmuxer).mux(meta_path, output_dir)

            token.raise_if_cancelled()
            self.session.set_progress(PROGRESS_FINALIZE, "Finalizing folder...")
            ensure_certificate_dir(output_dir)
            final_size = self.estimator.final(output_dir)
            self._update_estimate(final_size, "final")

            self.session.set_progress(PROGRESS_DONE, "Done")
            logger.info(f"Blu-ray folder created: {output_dir}")
        except Exception as e:
            if isinstance(e, BuildCancelledError):
                logger.warning(f"{BUILD_FAILED_MARKER} {e}")
            else:
                logger.error(f"{BUILD_FAILED_MARKER} {e}")
            if workspace is not None:
                ErrorLog(workspace.root).write(f"{BUILD_FAILED_MARKER} {type(e).__name__}: {e}")
                logger.info(f"Workspace kept for diagnosis: {workspace.root}")
            self.session.fail()
            raise
        finally:
            self.session.end()

        result = BuildResult(output_dir, final_size, prepared.total_duration, workspace.root)
        self._record_success(result, items, options, prepared, started)
        if not options.keep_workspace:
            workspace.cleanup()
        return result

    def _resolve_tools(self) -> ResolvedTools:
        return self.tool_resolver.resolve_all()

    def _prepare_audio(self, runner, tools, workspace, items, options) -> PreparedAudioResult:
        span = PROGRESS_AUDIO_END - PROGRESS_AUDIO_START

        def on_track(done: int, total: int):
            self.session.set_progress(PROGRESS_AUDIO_START + span * done / total, f"Preparing audio ({done}/{total})...")

        preparer = AudioPreparer(runner, tools.ffmpeg, workspace.root, self.session.token)
        prepared = preparer.prepare(items, options.output_codec, options.lpcm_format, progress=on_track)
        logger.info(
            f"Audio ready: {prepared.audio_path.name} ({prepared.mux_audio_type.meta_token}, "
            f"{format_seconds(prepared.total_duration)})"
        )
        return prepared

    def _make_video(self, runner, tools, workspace, items, prepared, options) -> Path:
        synthesizer = VideoSynthesizer(runner, tools.ffmpeg, workspace.root, options.fps, options.resolution, self.session.token)
        if not options.use_custom_video:
            return synthesizer.make_black(prepared.total_duration)

        span = PROGRESS_VIDEO_END - PROGRESS_AUDIO_END

        def on_video(fraction: float, status: str):
            self.session.set_progress(PROGRESS_AUDIO_END + span * fraction, status)

        return synthesizer.make_custom(items, prepared.segment_durations, options.frame_style, progress=on_video)

    def _update_estimate(self, size_bytes: int, stage: str):
        self.session.set_estimate(size_bytes)
        logger.info(f"Estimated size ({stage}): {formatted_size(size_bytes)}")

    def _record_success(self, result, items, options, prepared, started):
        ended = datetime.now()
        entry = {
            "started_datetime": started.isoformat(timespec="seconds"),
            "ended_datetime": ended.isoformat(timespec="seconds"),
            "elapsed": format_timedelta(ended - started),
            "output_dir": str(result.output_dir),
            "codec": options.output_codec.value,
            "track_count": len(items),
            "tracks": [item.path.name for item in items],
            "segment_durations": [round(d, 3) for d in prepared.segment_durations],
            "total_duration": round(prepared.total_duration, 3),
            "video_mode": "custom" if options.use_custom_video else "black",
            "fps": options.fps,
            "resolution": options.resolution,
            "final_size_bytes": result.size_bytes,
            "final_size": formatted_size(result.size_bytes),
        }
        if options.output_codec is OutputCodec.LPCM:
            entry["lpcm_format"] = resolve_lpcm_format(items, options.lpcm_format).value
        BuildReport(options.output_dir).write(entry)

        self.user_config.output_dir = options.output_dir
        self.user_config.save()


class BurnPipeline:
    """Preflights a finished folder against the disc capacity, then burns it."""

    def __init__(self, session: BuildSession, burner: Optional[DiscBurner] = None):
        self.session = session
        self.burner = burner or DiscBurner()

    def run(self, folder: Path, disc: DiscCapacity) -> Path:
        self.session.begin()
        try:
            self.session.set_progress(0.05, "Preflight...")
            try:
                check = preflight(folder, disc)
            except DiscCapacityExceededError as e:
                logger.error(f"{BURN_FAILED_MARKER} {e}")
                self.session.fail("Too large for target disc")
                raise
            logger.info(f"Folder size {format_gb(check.size_bytes)} fits {disc.label}.")

            self.session.set_progress(0.10, "Creating ISO...")
            iso = self.burner.burn(folder)
            self.session.set_progress(1.0, "Burn command sent")
            logger.info("Burn started (ISO created and sent to drive).")
            return iso
        except DiscCapacityExceededError:
            raise
        except Exception as e:
            logger.error(f"{BURN_FAILED_MARKER} {e}")
            self.session.fail()
            raise
        finally:
            self.session.end()
