from collections.abc import Awaitable, Callable
from typing import Protocol

from mpv_controller.domain.events import ProcessExited

ExitCallback = Callable[[ProcessExited], Awaitable[None]]


class ProcessSupervisorPort(Protocol):
    @property
    def pid(self) -> int | None: ...

    @property
    def generation(self) -> int: ...

    def set_exit_callback(self, callback: ExitCallback) -> None: ...
    async def start(self, url: str, endpoint_path: str) -> int: ...
    async def terminate(self) -> None: ...
    def is_alive(self) -> bool: ...
