import asyncio
import logging

from mpv_controller.domain.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_HELPER_TIMEOUT_SECONDS = 3.0


class HelperProcessTransport:
    """Pipes a control message into an external tool connected to the socket."""

    name = "helper"

    def __init__(self, binary: str, args: list[str], timeout: float = DEFAULT_HELPER_TIMEOUT_SECONDS) -> None:
        self._binary = binary
        self._args = args
        self._timeout = timeout

    def build_argv(self, endpoint_path: str) -> list[str]:
        return [self._binary, *self._args, endpoint_path]

    async def deliver(self, endpoint_path: str, payload: bytes) -> bytes:
        argv = self.build_argv(endpoint_path)
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            raise TransportError(f"could not run {self._binary}: {exc}") from exc

        try:
            output, _ = await asyncio.wait_for(
                process.communicate(payload), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
            raise TransportError(f"{self.name} timed out after {self._timeout:.1f}s") from None

        if process.returncode != 0:
            detail = output.decode(errors="replace").strip()
            raise TransportError(f"{self.name} exited with code {process.returncode}: {detail}")
        return output


class SocatTransport(HelperProcessTransport):
    name = "socat"

    def __init__(self, binary: str = "socat", timeout: float = DEFAULT_HELPER_TIMEOUT_SECONDS) -> None:
        super().__init__(binary, ["-"], timeout)


class NetcatTransport(HelperProcessTransport):
    name = "nc"

    def __init__(self, binary: str = "nc", timeout: float = DEFAULT_HELPER_TIMEOUT_SECONDS) -> None:
        super().__init__(binary, ["-U"], timeout)
