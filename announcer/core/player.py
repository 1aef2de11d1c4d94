"""Audio output for announcement clips.

Only one clip plays at a time. ``play`` returns once the clip has started
and reports completion through ``on_finished(error)`` from a watcher thread,
where ``error`` is None on a clean finish.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import threading
from typing import Callable, Optional, Sequence, Union

_logger = logging.getLogger("player")

FinishedCallback = Callable[[Optional[str]], None]

DEFAULT_PLAYER_COMMAND = ("ffplay", "-nodisp", "-autoexit", "-loglevel", "error")


class PlaybackError(Exception):
    """Raised when a clip cannot be started."""


class AudioPlayer:
    """Interface of the single audio output handle."""

    def play(self, url: str, on_finished: FinishedCallback) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    @property
    def is_playing(self) -> bool:
        return False


class CommandPlayer(AudioPlayer):
    """Plays clips through an external command such as ``ffplay`` or ``mpg123``.

    The clip URL is appended as the last argument.
    """

    def __init__(self, command: Union[str, Sequence[str], None] = None, stop_timeout: float = 3.0):
        if command is None:
            command = DEFAULT_PLAYER_COMMAND
        if isinstance(command, str):
            command = shlex.split(command)
        if not command:
            raise ValueError("player command must not be empty")
        self.command = list(command)
        self.stop_timeout = stop_timeout
        self._lock = threading.Lock()
        self._process: Optional[subprocess.Popen] = None

    @property
    def is_playing(self) -> bool:
        with self._lock:
            return self._process is not None and self._process.poll() is None

    def play(self, url: str, on_finished: FinishedCallback) -> None:
        self.stop()
        cmd = [*self.command, url]
        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise PlaybackError(f"Audio player '{self.command[0]}' is not installed") from exc
        except OSError as exc:
            raise PlaybackError(f"Audio player failed to start: {exc}") from exc

        with self._lock:
            self._process = process
        _logger.info("🔊 Playing %s", url)

        watcher = threading.Thread(
            target=self._watch,
            args=(process, on_finished),
            name="AudioPlayerWatcher",
            daemon=True,
        )
        watcher.start()

    def _watch(self, process: subprocess.Popen, on_finished: FinishedCallback) -> None:
        _, stderr = process.communicate()
        with self._lock:
            stopped = self._process is not process
            if not stopped:
                self._process = None
        if stopped:
            return

        if process.returncode == 0:
            on_finished(None)
            return
        detail = (stderr or b"").decode("utf-8", errors="ignore").strip().splitlines()
        reason = detail[-1] if detail else f"player exited with code {process.returncode}"
        _logger.warning("Audio player exited with %s: %s", process.returncode, reason)
        on_finished(reason)

    def stop(self) -> None:
        with self._lock:
            process = self._process
            self._process = None
        if process is None or process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=self.stop_timeout)
        except subprocess.TimeoutExpired:
            _logger.warning("Audio player did not exit, killing it")
            process.kill()
