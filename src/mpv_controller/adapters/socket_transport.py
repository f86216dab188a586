import asyncio

from mpv_controller.domain.errors import TransportError


READ_BUFFER_SIZE = 4096


class DirectSocketTransport:
    name = "direct"

    def __init__(self, read_timeout: float = 2.0, connect_timeout: float = 2.0) -> None:
        self._read_timeout = read_timeout
        self._connect_timeout = connect_timeout

    async def deliver(self, endpoint_path: str, payload: bytes) -> bytes:
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_unix_connection(endpoint_path),
                timeout=self._connect_timeout,
            )
        except asyncio.TimeoutError:
            raise TransportError(f"timed out connecting to {endpoint_path}") from None
        except OSError as exc:
            raise TransportError(f"failed to connect to socket: {exc}") from exc

        try:
            writer.write(payload)
            await writer.drain()
            data = await asyncio.wait_for(
                reader.read(READ_BUFFER_SIZE), timeout=self._read_timeout
            )
        except asyncio.TimeoutError:
            raise TransportError(
                f"no response from socket within {self._read_timeout:.1f}s"
            ) from None
        except OSError as exc:
            raise TransportError(f"socket exchange failed: {exc}") from exc
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

        if not data:
            raise TransportError("socket closed without a response")
        return data
