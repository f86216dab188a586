import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from mpv_controller.domain.errors import QueueBlockedError, SerializerClosedError
from mpv_controller.domain.events import DomainEvent

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[Any]]


@dataclass
class PendingCommand:
    op: Operation
    name: str
    future: asyncio.Future


class CommandSerializer:
    """Runs queued operations one at a time on a single consumer task.

    A second, low-volume queue carries state updates (process exits) which the
    consumer hands to ``apply_state`` between operations.
    """

    def __init__(
        self,
        apply_state: Callable[[DomainEvent], None],
        max_pending: int = 10,
        max_state_updates: int = 16,
    ) -> None:
        self._apply_state = apply_state
        self._commands: asyncio.Queue[PendingCommand] = asyncio.Queue(maxsize=max_pending)
        self._state_updates: asyncio.Queue[DomainEvent] = asyncio.Queue(maxsize=max_state_updates)
        self._consumer: asyncio.Task | None = None
        self._closed = False

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        if self._closed:
            raise SerializerClosedError("command serializer is closed")
        if self.running:
            return
        self._consumer = asyncio.create_task(self._consume(), name="command-serializer")

    def submit(self, op: Operation, name: str = "command") -> asyncio.Future:
        if self._closed:
            raise SerializerClosedError(f"cannot run {name}: command serializer is closed")
        future = asyncio.get_running_loop().create_future()
        try:
            self._commands.put_nowait(PendingCommand(op=op, name=name, future=future))
        except asyncio.QueueFull:
            raise QueueBlockedError(f"cannot run {name}: command queue is full") from None
        return future

    async def call(self, op: Operation, name: str = "command", timeout: float = 5.0) -> Any:
        future = self.submit(op, name)
        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout=timeout)
        except asyncio.TimeoutError:
            future.add_done_callback(_log_late_result(name))
            raise QueueBlockedError(
                f"timeout waiting for {name}, command queue might be blocked"
            ) from None

    async def post_state(self, event: DomainEvent) -> None:
        if self._closed:
            logger.debug("Dropping state update after shutdown: %s", event)
            return
        await self._state_updates.put(event)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
        while not self._commands.empty():
            pending = self._commands.get_nowait()
            if not pending.future.done():
                pending.future.set_exception(
                    SerializerClosedError(f"{pending.name} dropped: command serializer closed")
                )
        logger.info("Command serializer stopped")

    async def _consume(self) -> None:
        command_get: asyncio.Future | None = None
        state_get: asyncio.Future | None = None
        try:
            while True:
                if command_get is None:
                    command_get = asyncio.ensure_future(self._commands.get())
                if state_get is None:
                    state_get = asyncio.ensure_future(self._state_updates.get())

                done, _ = await asyncio.wait(
                    {command_get, state_get}, return_when=asyncio.FIRST_COMPLETED
                )

                if state_get in done:
                    event = state_get.result()
                    state_get = None
                    self._dispatch_state(event)
                    continue

                pending = command_get.result()
                command_get = None
                await self._execute(pending)
        finally:
            if command_get is not None and command_get.done() and not command_get.cancelled():
                dequeued = command_get.result()
                if not dequeued.future.done():
                    dequeued.future.set_exception(
                        SerializerClosedError(f"{dequeued.name} dropped: command serializer closed")
                    )
            for getter in (command_get, state_get):
                if getter is not None:
                    getter.cancel()

    def _dispatch_state(self, event: DomainEvent) -> None:
        try:
            self._apply_state(event)
        except Exception:
            logger.exception("Error applying state update %s", event)

    async def _execute(self, pending: PendingCommand) -> None:
        if pending.future.done():
            return
        logger.debug("Running %s", pending.name)
        try:
            result = await pending.op()
        except asyncio.CancelledError:
            if not pending.future.done():
                pending.future.set_exception(
                    SerializerClosedError(f"{pending.name} interrupted: command serializer closed")
                )
            raise
        except Exception as exc:
            if not pending.future.done():
                pending.future.set_exception(exc)
        else:
            if not pending.future.done():
                pending.future.set_result(result)


def _log_late_result(name: str) -> Callable[[asyncio.Future], None]:
    def callback(future: asyncio.Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning("%s failed after its caller gave up: %s", name, exc)
        else:
            logger.info("%s completed after its caller gave up", name)

    return callback
