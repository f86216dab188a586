import asyncio
import json
import logging
from dataclasses import asdict, dataclass

from mpv_controller.domain.errors import (
    ControlProtocolError,
    PlayerError,
    PlayerNotActiveError,
    SpawnError,
)
from mpv_controller.domain.events import DomainEvent, ProcessExited, RestartScheduled
from mpv_controller.domain.restart import RestartPolicy
from mpv_controller.domain.serializer import CommandSerializer
from mpv_controller.domain.session import PlayerSession
from mpv_controller.domain.state import SessionState
from mpv_controller.domain.transport_chain import TransportChain
from mpv_controller.ports.process import ProcessSupervisorPort
from mpv_controller.ports.transport import ControlMessage

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class PlayerStatus:
    state: str
    active: bool
    url: str
    process_alive: bool
    restart_attempts: int
    restart_exhausted: bool

    def to_dict(self) -> dict:
        return asdict(self)


class PlayerController:
    """Public surface for one mpv session.

    ``play`` and ``stop`` run on the serializer's consumer task; every write to
    the session happens there. Process exits arrive on the serializer's state
    stream and may schedule an automatic restart.
    """

    def __init__(
        self,
        supervisor: ProcessSupervisorPort,
        transport: TransportChain,
        session: PlayerSession | None = None,
        restart_policy: RestartPolicy | None = None,
        auto_restart: bool = True,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT_SECONDS,
        max_pending_commands: int = 10,
        max_state_updates: int = 16,
    ) -> None:
        self._supervisor = supervisor
        self._transport = transport
        self._session = session or PlayerSession.create(auto_restart=auto_restart)
        self._restart_policy = restart_policy or RestartPolicy()
        self._command_timeout = command_timeout
        self._serializer = CommandSerializer(
            apply_state=self._apply_state,
            max_pending=max_pending_commands,
            max_state_updates=max_state_updates,
        )
        self._supervisor.set_exit_callback(self._serializer.post_state)
        self._restart_task: asyncio.Task | None = None
        self._last_restart: RestartScheduled | None = None
        self._cleaned_up = False

    @property
    def session(self) -> PlayerSession:
        return self._session

    @property
    def restart_policy(self) -> RestartPolicy:
        return self._restart_policy

    @property
    def last_restart(self) -> RestartScheduled | None:
        return self._last_restart

    def start(self) -> None:
        self._serializer.start()

    async def __aenter__(self) -> "PlayerController":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.cleanup()

    async def play(self, url: str) -> None:
        await self._serializer.call(
            lambda: self._do_play(url), name="play", timeout=self._command_timeout
        )

    async def stop(self) -> None:
        await self._serializer.call(self._do_stop, name="stop", timeout=self._command_timeout)

    def is_active(self) -> bool:
        return self._session.active

    def is_process_alive(self) -> bool:
        return self._supervisor.is_alive()

    async def get_media_title(self) -> str:
        if not self._session.active:
            raise PlayerNotActiveError()

        response = await self._transport.send(
            self._session.endpoint_path, ControlMessage.of("get_property", "media-title")
        )
        if not response.parsed:
            raise ControlProtocolError("failed to parse media title response")

        data = response.data
        if data is None:
            return ""
        if isinstance(data, str):
            return data
        if isinstance(data, dict) and isinstance(data.get("data"), str):
            return data["data"]
        return json.dumps(data)

    def status(self) -> PlayerStatus:
        alive = self._supervisor.is_alive()
        return PlayerStatus(
            state=self._session.state.name.lower(),
            active=self._session.active and alive,
            url=self._session.current_url,
            process_alive=alive,
            restart_attempts=self._restart_policy.attempts,
            restart_exhausted=self._restart_policy.exhausted,
        )

    async def cleanup(self) -> None:
        if self._cleaned_up:
            return
        self._cleaned_up = True
        self._cancel_pending_restart()

        needs_stop = self._session.state is not SessionState.INACTIVE or self._supervisor.is_alive()
        if self._serializer.running and needs_stop:
            try:
                await self.stop()
            except PlayerError as exc:
                logger.warning("Error stopping player during cleanup: %s", exc)

        await self._serializer.close()
        try:
            if self._supervisor.is_alive():
                await self._supervisor.terminate()
        finally:
            self._session.remove_socket_dir()
            logger.info("Player cleaned up")

    async def _do_play(self, url: str) -> None:
        session = self._session
        session.current_url = url
        session.manual_stop = False
        self._restart_policy.reset()
        self._cancel_pending_restart()

        if session.state is SessionState.ACTIVE and self._supervisor.is_alive():
            logger.info("mpv already running, trying to change URL with loadfile command")
            try:
                await self._transport.send(
                    session.endpoint_path, ControlMessage.of("loadfile", url, "replace")
                )
            except PlayerError as exc:
                logger.warning("Failed to change URL with loadfile, will restart mpv: %s", exc)
            else:
                session.transition_to(SessionState.ACTIVE)
                logger.info("Successfully changed URL to: %s", url)
                return

        if session.state is not SessionState.INACTIVE or self._supervisor.is_alive():
            logger.info("Stopping existing player before starting new one")
            await self._stop_process()

        await self._spawn(url)

    async def _do_stop(self) -> None:
        session = self._session
        session.manual_stop = True
        self._cancel_pending_restart()

        if session.state is SessionState.INACTIVE and not self._supervisor.is_alive():
            logger.info("No active mpv process to stop")
            return
        await self._stop_process()

    async def _do_restart(self, url: str) -> None:
        session = self._session
        if session.manual_stop or session.current_url != url:
            logger.info("Skipping auto-restart, playback changed since the exit")
            return
        if session.state is not SessionState.INACTIVE or self._supervisor.is_alive():
            logger.info("Skipping auto-restart, player is already running")
            return
        await self._spawn(url)

    async def _spawn(self, url: str) -> None:
        session = self._session
        session.transition_to(SessionState.STARTING)
        try:
            generation = await self._supervisor.start(url, session.endpoint_path)
        except SpawnError:
            session.transition_to(SessionState.INACTIVE)
            raise
        session.mark_spawned(generation)
        session.transition_to(SessionState.ACTIVE)

    async def _stop_process(self) -> None:
        session = self._session
        if session.state in (SessionState.ACTIVE, SessionState.STARTING):
            session.transition_to(SessionState.STOPPING)
        try:
            await self._supervisor.terminate()
        finally:
            if session.state is not SessionState.INACTIVE:
                session.transition_to(SessionState.INACTIVE)

    def _apply_state(self, event: DomainEvent) -> None:
        if isinstance(event, ProcessExited):
            self._handle_exit(event)

    def _handle_exit(self, event: ProcessExited) -> None:
        session = self._session
        if event.generation != session.generation:
            logger.debug("Ignoring exit of stale mpv generation %d", event.generation)
            return
        if session.state is not SessionState.INACTIVE:
            session.transition_to(SessionState.INACTIVE)

        if event.requested or session.manual_stop:
            return
        if not (session.auto_restart and self._restart_policy.enabled) or not session.current_url:
            logger.info("mpv exited unexpectedly, auto-restart disabled")
            return

        delay = self._restart_policy.next_delay(event.uptime)
        if delay is None:
            return
        self._schedule_restart(session.current_url, delay)

    def _schedule_restart(self, url: str, delay: float) -> None:
        self._cancel_pending_restart()
        self._last_restart = RestartScheduled(
            url=url, attempt=self._restart_policy.attempts, delay=delay
        )
        logger.info(
            "Auto-restarting mpv with URL: %s in %.1fs (attempt %d)",
            url,
            delay,
            self._restart_policy.attempts,
        )
        self._restart_task = asyncio.create_task(self._restart_after(url, delay))

    async def _restart_after(self, url: str, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            await self._serializer.call(
                lambda: self._do_restart(url), name="restart", timeout=self._command_timeout
            )
        except PlayerError as exc:
            logger.error("Auto-restart failed: %s", exc)

    def _cancel_pending_restart(self) -> None:
        task = self._restart_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._restart_task = None
