import asyncio
import os
import stat
from collections.abc import Callable
from pathlib import Path

import pytest

from mpv_controller.domain.controller import PlayerController
from mpv_controller.domain.errors import SpawnError, TerminationError, TransportError
from mpv_controller.domain.events import ProcessExited
from mpv_controller.domain.restart import RestartPolicy
from mpv_controller.domain.session import PlayerSession
from mpv_controller.ports.process import ExitCallback
from mpv_controller.ports.transport import ControlMessage, ControlResponse


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


def write_script(directory: Path, name: str, body: str) -> str:
    path = directory / name
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


class ConcurrencyProbe:
    def __init__(self) -> None:
        self.current = 0
        self.max_seen = 0

    def enter(self) -> None:
        self.current += 1
        self.max_seen = max(self.max_seen, self.current)

    def leave(self) -> None:
        self.current -= 1


class FakeSupervisor:
    def __init__(
        self,
        fail_spawn: bool = False,
        start_delay: float = 0.0,
        emit_exit_on_terminate: bool = True,
        unkillable: bool = False,
        probe: ConcurrencyProbe | None = None,
    ) -> None:
        self.unkillable = unkillable
        self.fail_spawn = fail_spawn
        self.start_delay = start_delay
        self.emit_exit_on_terminate = emit_exit_on_terminate
        self.probe = probe or ConcurrencyProbe()
        self.started_urls: list[str] = []
        self.endpoints: list[str] = []
        self.terminate_calls = 0
        self.events: list[tuple] = []
        self._alive = False
        self._generation = 0
        self._on_exit: ExitCallback | None = None

    @property
    def pid(self) -> int | None:
        return 4000 + self._generation if self._alive else None

    @property
    def generation(self) -> int:
        return self._generation

    def set_exit_callback(self, callback: ExitCallback) -> None:
        self._on_exit = callback

    async def start(self, url: str, endpoint_path: str) -> int:
        self.probe.enter()
        try:
            if self.start_delay:
                await asyncio.sleep(self.start_delay)
            if self.fail_spawn:
                raise SpawnError("could not start mpv: [Errno 2] No such file or directory")
            self._generation += 1
            self._alive = True
            self.started_urls.append(url)
            self.endpoints.append(endpoint_path)
            self.events.append(("start", url))
            return self._generation
        finally:
            self.probe.leave()

    async def terminate(self) -> None:
        if not self._alive:
            return
        self.probe.enter()
        try:
            self.terminate_calls += 1
            self.events.append(("terminate", self._generation))
            if self.unkillable:
                raise TerminationError(f"mpv process {self.pid} survived SIGKILL")
            self._alive = False
            if self.emit_exit_on_terminate:
                await self.emit_exit(requested=True)
        finally:
            self.probe.leave()

    def is_alive(self) -> bool:
        return self._alive

    async def crash(self, returncode: int = 1, uptime: float = 0.0) -> None:
        self._alive = False
        await self.emit_exit(requested=False, returncode=returncode, uptime=uptime)

    async def emit_exit(
        self,
        requested: bool,
        returncode: int = 0,
        uptime: float = 0.0,
        generation: int | None = None,
    ) -> None:
        if self._on_exit is None:
            return
        await self._on_exit(
            ProcessExited(
                generation=self._generation if generation is None else generation,
                pid=4000 + self._generation,
                returncode=returncode,
                requested=requested,
                uptime=uptime,
            )
        )


class FakeTransport:
    def __init__(
        self,
        response: ControlResponse | None = None,
        error: Exception | None = None,
        probe: ConcurrencyProbe | None = None,
    ) -> None:
        self.response = response or ControlResponse(error="success")
        self.error = error
        self.probe = probe or ConcurrencyProbe()
        self.sent: list[tuple[str, ControlMessage]] = []

    async def send(self, endpoint_path: str, message: ControlMessage) -> ControlResponse:
        self.probe.enter()
        try:
            await asyncio.sleep(0)
            self.sent.append((endpoint_path, message))
            if self.error is not None:
                raise self.error
            return self.response
        finally:
            self.probe.leave()

    @property
    def commands(self) -> list[tuple]:
        return [message.command for _, message in self.sent]


@pytest.fixture
def probe():
    return ConcurrencyProbe()


@pytest.fixture
def fake_supervisor(probe):
    return FakeSupervisor(probe=probe)


@pytest.fixture
def fake_transport(probe):
    return FakeTransport(probe=probe)


@pytest.fixture
def session(tmp_path):
    socket_dir = tmp_path / "mpv-socket"
    socket_dir.mkdir()
    return PlayerSession(
        socket_dir=str(socket_dir),
        endpoint_path=os.path.join(str(socket_dir), "mpvsocket_test"),
    )


@pytest.fixture
def fast_restart_policy():
    return RestartPolicy(base_delay=0.01, max_delay=0.05, max_attempts=5, stable_after=30.0)


@pytest.fixture
def controller(fake_supervisor, fake_transport, session, fast_restart_policy):
    return PlayerController(
        supervisor=fake_supervisor,
        transport=fake_transport,
        session=session,
        restart_policy=fast_restart_policy,
        command_timeout=1.0,
    )


@pytest.fixture
def failing_transport(probe):
    return FakeTransport(error=TransportError("all transports failed"), probe=probe)
