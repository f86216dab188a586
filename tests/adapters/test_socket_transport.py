import asyncio

import pytest

from mpv_controller.adapters.socket_transport import DirectSocketTransport
from mpv_controller.domain.errors import TransportError
from mpv_controller.domain.transport_chain import TransportChain
from mpv_controller.ports.transport import ControlMessage


async def _start_fake_mpv(socket_path: str, reply: bytes | None, received: list[bytes]):
    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        received.append(await reader.readline())
        if reply is not None:
            writer.write(reply)
            await writer.drain()
        else:
            await asyncio.sleep(1.0)
        writer.close()

    return await asyncio.start_unix_server(handle, path=socket_path)


class TestDirectSocketTransport:
    @pytest.mark.asyncio
    async def test_single_exchange(self, tmp_path):
        socket_path = str(tmp_path / "mpv.sock")
        received: list[bytes] = []
        server = await _start_fake_mpv(
            socket_path, b'{"data": "Title", "error": "success"}\n', received
        )
        try:
            transport = DirectSocketTransport(read_timeout=1.0)
            payload = ControlMessage.of("get_property", "media-title").encode()
            output = await transport.deliver(socket_path, payload)
        finally:
            server.close()
            await server.wait_closed()

        assert received == [payload]
        assert b'"Title"' in output

    @pytest.mark.asyncio
    async def test_silent_peer_times_out(self, tmp_path):
        socket_path = str(tmp_path / "mpv.sock")
        server = await _start_fake_mpv(socket_path, None, [])
        try:
            transport = DirectSocketTransport(read_timeout=0.1)
            with pytest.raises(TransportError, match="no response"):
                await transport.deliver(socket_path, b'{"command": ["stop"]}\n')
        finally:
            server.close()
            await server.wait_closed()

    @pytest.mark.asyncio
    async def test_nothing_listening(self, tmp_path):
        transport = DirectSocketTransport()
        with pytest.raises(TransportError):
            await transport.deliver(str(tmp_path / "missing.sock"), b"{}\n")

    @pytest.mark.asyncio
    async def test_as_last_link_of_chain(self, tmp_path):
        socket_path = str(tmp_path / "mpv.sock")
        server = await _start_fake_mpv(socket_path, b'{"error": "success"}\n', [])
        try:
            chain = TransportChain([DirectSocketTransport(read_timeout=1.0)])
            response = await chain.send(
                socket_path, ControlMessage.of("loadfile", "http://host/b.m3u8", "replace")
            )
        finally:
            server.close()
            await server.wait_closed()

        assert response.ok
        assert response.parsed
