"""Launches an application and waits until it has really finished."""

import os
import subprocess
import time
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Set

import psutil

from dropsync.logging_setup import get_logger

logger = get_logger()

POLL_INTERVAL = 1.0
QUIESCENCE_WINDOW = 5.0
# Process start times are coarse on some platforms
CREATE_TIME_SLACK = 1.0

ActivityProbe = Callable[[], bool]


class LaunchError(Exception):
    """Raised when the configured executable cannot be started."""

    pass


class PlayState(Enum):
    """Lifecycle of a single play invocation."""

    NOT_STARTED = 0
    RUNNING = 1
    WAITING_FOR_QUIESCENCE = 2
    FINISHED = 3


def is_under(path: Path, root: Path) -> bool:
    """Check if path is root or lies inside it."""
    try:
        Path(path).resolve().relative_to(Path(root).resolve())
    except ValueError:
        return False
    return True


class ProcessActivityProbe:
    """Reports activity while any process runs from, or inside, a directory tree.

    dropsync itself and the processes it was started from (usually a shell
    whose cwd is the game folder) never count. When ``started_after`` is set,
    processes created before the launch are ignored too.
    """

    def __init__(self, root: Path, started_after: Optional[float] = None):
        self.root = Path(root)
        self.started_after = started_after
        self.ignored_pids = {os.getpid()} | self._ancestor_pids()

    @staticmethod
    def _ancestor_pids() -> Set[int]:
        try:
            return {parent.pid for parent in psutil.Process().parents()}
        except psutil.Error as e:
            logger.debug(f"Could not list parent processes: {e}")
            return set()

    def _predates_launch(self, create_time: Optional[float]) -> bool:
        if self.started_after is None or create_time is None:
            return False
        return create_time < self.started_after - CREATE_TIME_SLACK

    def __call__(self) -> bool:
        for proc in psutil.process_iter(attrs=["pid", "name", "exe", "cwd", "create_time"]):
            try:
                info = proc.info
                if info.get("pid") in self.ignored_pids:
                    continue
                if self._predates_launch(info.get("create_time")):
                    continue
                for candidate in (info.get("exe"), info.get("cwd")):
                    if candidate and is_under(Path(candidate), self.root):
                        logger.debug(f"Process {info.get('name')} ({info.get('pid')}) still active")
                        return True
            except (psutil.Error, OSError):
                continue
        return False


class FileActivityProbe:
    """Reports activity when any file under a directory was modified since the last poll."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.last_seen = self._latest_mtime()

    def _latest_mtime(self) -> float:
        latest = 0.0
        for dirpath, _, filenames in os.walk(self.root):
            for filename in filenames:
                try:
                    latest = max(latest, os.stat(os.path.join(dirpath, filename)).st_mtime)
                except OSError:
                    continue
        return latest

    def __call__(self) -> bool:
        latest = self._latest_mtime()
        active = latest > self.last_seen
        self.last_seen = max(latest, self.last_seen)
        return active


class RunAndWatch:
    """Runs an executable and blocks until it, and whatever it spawned, is done.

    State machine: NOT_STARTED -> RUNNING -> (WAITING_FOR_QUIESCENCE) -> FINISHED.
    An instance handles exactly one invocation.
    """

    def __init__(
        self,
        poll_interval: float = POLL_INTERVAL,
        quiescence_window: float = QUIESCENCE_WINDOW,
        probes: Optional[List[ActivityProbe]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        """Initialize the orchestrator.

        Args:
            poll_interval: Seconds between activity checks
            quiescence_window: Seconds without activity before declaring the app finished
            probes: Activity probes to use instead of the default process/file probes
            clock: Monotonic clock
            sleep: Sleep function
            popen: Process launcher
        """
        self.poll_interval = poll_interval
        self.quiescence_window = quiescence_window
        self.probes = probes
        self.clock = clock
        self.sleep = sleep
        self.popen = popen
        self.state = PlayState.NOT_STARTED
        self.launched_at: Optional[float] = None

    def _transition(self, new_state: PlayState) -> None:
        if new_state.value <= self.state.value:
            raise RuntimeError(f"Invalid transition {self.state.name} -> {new_state.name}")
        logger.debug(f"Play state: {self.state.name} -> {new_state.name}")
        self.state = new_state

    def _default_probes(
        self, play_root_path: Path, local_root: Optional[Path]
    ) -> List[ActivityProbe]:
        probes: List[ActivityProbe] = [
            ProcessActivityProbe(play_root_path, started_after=self.launched_at)
        ]
        if local_root is not None:
            probes.append(FileActivityProbe(local_root))
        return probes

    def launch(self, play_path: Path, play_root_path: Optional[Path]) -> subprocess.Popen:
        """Start the executable.

        Raises:
            LaunchError: If the executable is missing or cannot be run
        """
        # Popen resolves a relative executable against the new cwd, not ours
        play_path = Path(play_path).absolute()
        cwd = Path(play_root_path).absolute() if play_root_path is not None else play_path.parent
        logger.info(f"Launching {play_path}")
        self.launched_at = time.time()
        try:
            return self.popen([str(play_path)], cwd=str(cwd))
        except OSError as e:
            raise LaunchError(f"Could not launch {play_path}: {e}") from e

    def wait_for_quiescence(self, probes: List[ActivityProbe]) -> None:
        """Poll the probes until none reports activity for a full quiescence window."""
        quiet_since = self.clock()
        while True:
            # Every probe is polled so stateful probes stay current
            active = [probe() for probe in probes]
            now = self.clock()
            if any(active):
                quiet_since = now
            elif now - quiet_since >= self.quiescence_window:
                return
            self.sleep(self.poll_interval)

    def run_and_wait(
        self,
        play_path: Path,
        play_root_path: Optional[Path] = None,
        local_root: Optional[Path] = None,
    ) -> PlayState:
        """Launch the app and return once it is finished.

        Args:
            play_path: Executable to run
            play_root_path: If set, keep waiting after the launched process
                exits until nothing under this tree has been active for a
                quiescence window
            local_root: Local data root; file changes there count as activity

        Returns:
            PlayState.FINISHED

        Raises:
            LaunchError: If the executable could not be started
        """
        if self.state is not PlayState.NOT_STARTED:
            raise RuntimeError("RunAndWatch instances cannot be reused")

        process = self.launch(play_path, play_root_path)
        self._transition(PlayState.RUNNING)

        returncode = process.wait()
        logger.info(f"{Path(play_path).name} exited with code {returncode}")

        if play_root_path is not None:
            self._transition(PlayState.WAITING_FOR_QUIESCENCE)
            logger.info(f"Waiting for activity under {play_root_path} to stop")
            probes = self.probes
            if probes is None:
                probes = self._default_probes(play_root_path, local_root)
            self.wait_for_quiescence(probes)

        self._transition(PlayState.FINISHED)
        logger.info("Application finished")
        return self.state
