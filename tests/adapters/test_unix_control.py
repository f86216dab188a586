import asyncio
import pytest

from mpv_controller.adapters.unix_control import (
    UnixSocketControlServer,
    UnixSocketControlClient,
)


class TestUnixSocketControl:
    @pytest.mark.asyncio
    async def test_server_start_stop(self, tmp_path):
        socket_path = str(tmp_path / "test.sock")
        server = UnixSocketControlServer(socket_path=socket_path)
        await server.start()
        assert (tmp_path / "test.sock").exists()
        await server.stop()
        assert not (tmp_path / "test.sock").exists()

    @pytest.mark.asyncio
    async def test_client_server_status(self, tmp_path):
        socket_path = str(tmp_path / "test.sock")
        server = UnixSocketControlServer(socket_path=socket_path)
        await server.start()

        async def consume_commands():
            async for cmd in server.commands():
                assert cmd.action == "status"
                cmd.respond({"status": "ok", "action": cmd.action, "active": False})
                break

        consumer = asyncio.create_task(consume_commands())

        client = UnixSocketControlClient(socket_path=socket_path)
        result = await client.send_command("status")
        assert result == {"status": "ok", "action": "status", "active": False}

        await asyncio.wait_for(consumer, timeout=2.0)
        await server.stop()

    @pytest.mark.asyncio
    async def test_client_server_play_payload(self, tmp_path):
        socket_path = str(tmp_path / "test.sock")
        server = UnixSocketControlServer(socket_path=socket_path)
        await server.start()

        async def consume_commands():
            async for cmd in server.commands():
                assert cmd.action == "play"
                assert cmd.payload == {"url": "http://host/a.m3u8"}
                cmd.respond({"status": "ok", "action": "play"})
                break

        consumer = asyncio.create_task(consume_commands())

        client = UnixSocketControlClient(socket_path=socket_path)
        result = await client.send_command("play", {"url": "http://host/a.m3u8"})
        assert result["status"] == "ok"

        await asyncio.wait_for(consumer, timeout=2.0)
        await server.stop()

    @pytest.mark.asyncio
    async def test_unanswered_command_times_out(self, tmp_path):
        socket_path = str(tmp_path / "test.sock")
        server = UnixSocketControlServer(socket_path=socket_path, response_timeout=0.1)
        await server.start()

        client = UnixSocketControlClient(socket_path=socket_path)
        result = await client.send_command("stop")
        assert result["status"] == "error"
        assert result["error"] == "timed out"

        await server.stop()

    @pytest.mark.asyncio
    async def test_client_connection_refused(self, tmp_path):
        client = UnixSocketControlClient(socket_path=str(tmp_path / "nonexistent.sock"))
        with pytest.raises((ConnectionRefusedError, FileNotFoundError)):
            await client.send_command("status")
