import asyncio
import logging
import os
import time
from dataclasses import dataclass, field

from mpv_controller.domain.errors import SpawnError, TerminationError
from mpv_controller.domain.events import ProcessExited
from mpv_controller.ports.process import ExitCallback

logger = logging.getLogger(__name__)

DEFAULT_LOG_FILE = "/tmp/mpv_debug.log"
DEFAULT_USER_AGENT = "Tivimate"


def build_mpv_args(
    url: str,
    endpoint_path: str,
    *,
    log_file: str = DEFAULT_LOG_FILE,
    user_agent: str = DEFAULT_USER_AGENT,
    network_timeout: int = 30,
) -> list[str]:
    return [
        "--no-config",
        "--terminal=no",
        "--msg-level=all=debug",
        f"--log-file={log_file}",
        "--audio-channels=stereo",
        "--ao=pulse,alsa,coreaudio",
        "--volume=100",
        "--audio-device=auto",
        "--vo=gpu",
        "--cache=yes",
        "--cache-secs=60",
        "--demuxer-max-bytes=500M",
        "--demuxer-max-back-bytes=100M",
        "--no-ytdl",
        "--ytdl=no",
        "--force-seekable=yes",
        f"--network-timeout={network_timeout}",
        f"--user-agent={user_agent}",
        "--stream-lavf-o=reconnect=1",
        "--stream-lavf-o=reconnect_at_eof=1",
        "--stream-lavf-o=reconnect_streamed=1",
        "--stream-lavf-o=reconnect_delay_max=5",
        "--hls-bitrate=max",
        f"--input-ipc-server={endpoint_path}",
        url,
    ]


def read_log_tail(path: str, max_bytes: int) -> str:
    try:
        with open(path, "rb") as f:
            f.seek(0, os.SEEK_END)
            size = f.tell()
            f.seek(max(0, size - max_bytes))
            return f.read().decode(errors="replace")
    except OSError:
        return ""


@dataclass
class _RunningProcess:
    process: asyncio.subprocess.Process
    generation: int
    started_at: float
    exited: asyncio.Event = field(default_factory=asyncio.Event)
    requested: bool = False
    tasks: list[asyncio.Task] = field(default_factory=list)


class MpvProcessSupervisor:
    """Owns the mpv subprocess: spawn, exit watching and termination."""

    def __init__(
        self,
        binary: str = "mpv",
        log_file: str = DEFAULT_LOG_FILE,
        user_agent: str = DEFAULT_USER_AGENT,
        network_timeout: int = 30,
        terminate_grace: float = 2.0,
        kill_wait: float = 0.5,
        log_tail_bytes: int = 500,
    ) -> None:
        self._binary = binary
        self._log_file = log_file
        self._user_agent = user_agent
        self._network_timeout = network_timeout
        self._terminate_grace = terminate_grace
        self._kill_wait = kill_wait
        self._log_tail_bytes = log_tail_bytes
        self._on_exit: ExitCallback | None = None
        self._current: _RunningProcess | None = None
        self._generation = 0

    @property
    def pid(self) -> int | None:
        if self._current is None:
            return None
        return self._current.process.pid

    @property
    def generation(self) -> int:
        return self._generation

    def set_exit_callback(self, callback: ExitCallback) -> None:
        self._on_exit = callback

    async def start(self, url: str, endpoint_path: str) -> int:
        if self.is_alive():
            raise SpawnError(f"mpv is already running (PID: {self.pid})")

        args = build_mpv_args(
            url,
            endpoint_path,
            log_file=self._log_file,
            user_agent=self._user_agent,
            network_timeout=self._network_timeout,
        )
        logger.info("Starting mpv with URL: %s", url)
        logger.info("Debug logs will be saved to: %s", self._log_file)
        logger.debug("mpv command: %s %s", self._binary, " ".join(args))

        try:
            process = await asyncio.create_subprocess_exec(
                self._binary,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.error("Error starting mpv: %s", exc)
            raise SpawnError(f"could not start mpv: {exc}") from exc

        self._generation += 1
        running = _RunningProcess(
            process=process,
            generation=self._generation,
            started_at=time.monotonic(),
        )
        self._current = running
        running.tasks = [
            asyncio.create_task(self._log_stderr(running)),
            asyncio.create_task(self._watch_exit(running)),
        ]
        logger.info("mpv started with PID: %d", process.pid)
        return running.generation

    def is_alive(self) -> bool:
        running = self._current
        if running is None or running.process.returncode is not None:
            return False
        try:
            os.kill(running.process.pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            return True
        return True

    async def terminate(self) -> None:
        running = self._current
        if running is None or running.exited.is_set():
            logger.info("No active mpv process to stop")
            return

        running.requested = True
        process = running.process
        logger.info("Sending SIGTERM to mpv process (PID: %d)", process.pid)
        try:
            process.terminate()
        except ProcessLookupError:
            pass
        except OSError as exc:
            logger.warning("Error sending SIGTERM to mpv: %s, trying SIGKILL", exc)
            self._kill(running)

        if await self._wait_exited(running, self._terminate_grace):
            return

        logger.warning("Forcing kill of mpv process after %.1fs", self._terminate_grace)
        self._kill(running)
        if await self._wait_exited(running, self._kill_wait):
            return

        logger.error("mpv process (PID: %d) still alive after SIGKILL", process.pid)
        raise TerminationError(f"mpv process {process.pid} survived SIGKILL")

    def _kill(self, running: _RunningProcess) -> None:
        try:
            running.process.kill()
        except ProcessLookupError:
            pass
        except OSError as exc:
            logger.error("Error killing mpv process: %s", exc)
            raise TerminationError(f"could not kill mpv process: {exc}") from exc

    async def _wait_exited(self, running: _RunningProcess, timeout: float) -> bool:
        try:
            await asyncio.wait_for(running.exited.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def _log_stderr(self, running: _RunningProcess) -> None:
        stream = running.process.stderr
        if stream is None:
            return
        try:
            async for line in stream:
                logger.info("mpv stderr: %s", line.decode(errors="replace").rstrip())
        except (OSError, ValueError) as exc:
            logger.warning("Error reading from mpv stderr: %s", exc)

    async def _watch_exit(self, running: _RunningProcess) -> None:
        returncode = await running.process.wait()
        if returncode == 0:
            logger.info("mpv process ended normally")
        else:
            logger.info("mpv process ended with code %d", returncode)
        running.exited.set()

        event = ProcessExited(
            generation=running.generation,
            pid=running.process.pid,
            returncode=returncode,
            requested=running.requested,
            uptime=time.monotonic() - running.started_at,
        )

        tail = read_log_tail(self._log_file, self._log_tail_bytes)
        if tail:
            logger.info("mpv log file contents (last %d bytes):\n%s", self._log_tail_bytes, tail)

        if self._on_exit is not None:
            await self._on_exit(event)
