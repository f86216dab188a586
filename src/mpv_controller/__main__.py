import argparse
import asyncio
import logging
import signal
import sys

from mpv_controller.config import MpvControllerConfig
from mpv_controller.domain.controller import PlayerController
from mpv_controller.domain.errors import PlayerError
from mpv_controller.ports.control import ControlCommand

CLIENT_COMMANDS = ("play", "stop", "status", "title")


def main() -> None:
    parser = argparse.ArgumentParser(description="mpv playback controller")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument("--socket", help="Control socket path")

    subparsers = parser.add_subparsers(dest="command")

    play_parser = subparsers.add_parser("play", help="Play a URL (live swap if already playing)")
    play_parser.add_argument("url", help="Stream URL")

    subparsers.add_parser("stop", help="Stop playback")
    subparsers.add_parser("status", help="Query player status")
    subparsers.add_parser("title", help="Print the current media title")

    args = parser.parse_args()

    config = MpvControllerConfig()
    if args.socket:
        config.control_socket_path = args.socket

    _configure_logging(config, verbose=args.verbose)

    if args.command in CLIENT_COMMANDS:
        asyncio.run(_run_client_command(args, config))
    else:
        asyncio.run(_run_daemon(config))


def _configure_logging(config: MpvControllerConfig, verbose: bool) -> None:
    from mpv_controller.log_format import ColoredFormatter

    log_level = logging.DEBUG if verbose else logging.INFO
    console = logging.StreamHandler()
    if sys.stderr.isatty():
        console.setFormatter(ColoredFormatter(datefmt="%H:%M:%S"))
    else:
        console.setFormatter(
            logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s", datefmt="%H:%M:%S")
        )
    handlers: list[logging.Handler] = [console]

    if config.log_file:
        file_handler = logging.FileHandler(config.log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers)


async def _run_client_command(args: argparse.Namespace, config: MpvControllerConfig) -> None:
    from mpv_controller.adapters.unix_control import UnixSocketControlClient

    client = UnixSocketControlClient(socket_path=config.control_socket_path)

    try:
        if args.command == "play":
            result = await client.send_command("play", {"url": args.url})
        elif args.command in ("stop", "status", "title"):
            result = await client.send_command(args.command)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            sys.exit(1)

        print(f"{result}")
        if result.get("status") != "ok":
            sys.exit(1)
    except ConnectionRefusedError:
        print("mpv controller is not running", file=sys.stderr)
        sys.exit(1)
    except FileNotFoundError:
        print("mpv controller is not running", file=sys.stderr)
        sys.exit(1)


async def dispatch_command(controller: PlayerController, cmd: ControlCommand) -> dict:
    if cmd.payload is not None and not isinstance(cmd.payload, dict):
        return {"status": "error", "action": cmd.action, "error": "invalid payload"}
    try:
        if cmd.action == "play":
            url = (cmd.payload or {}).get("url", "")
            if not isinstance(url, str) or not url:
                return {"status": "error", "action": cmd.action, "error": "missing url"}
            await controller.play(url)
            return {"status": "ok", "action": cmd.action, "url": url}
        if cmd.action == "stop":
            await controller.stop()
            return {"status": "ok", "action": cmd.action}
        if cmd.action == "status":
            return {"status": "ok", "action": cmd.action, **controller.status().to_dict()}
        if cmd.action == "title":
            title = await controller.get_media_title()
            return {"status": "ok", "action": cmd.action, "title": title}
    except PlayerError as exc:
        logging.warning("%s failed: %s", cmd.action, exc)
        return {"status": "error", "action": cmd.action, "error": str(exc)}
    return {"status": "error", "action": cmd.action, "error": f"unknown action: {cmd.action}"}


async def safe_dispatch(controller: PlayerController, cmd: ControlCommand) -> dict:
    try:
        return await dispatch_command(controller, cmd)
    except Exception as exc:
        logging.exception("Unhandled error dispatching %s", cmd.action)
        return {"status": "error", "action": cmd.action, "error": f"internal error: {exc}"}


async def _run_daemon(config: MpvControllerConfig) -> None:
    from mpv_controller.health import run_startup_checks, has_critical_failures
    from mpv_controller.factory import create_daemon

    results = run_startup_checks(config)
    if has_critical_failures(results):
        logging.error("Critical health check failures, aborting startup")
        sys.exit(1)

    controller, control = create_daemon(config)

    shutdown_event = asyncio.Event()
    shutdown_triggered = False

    def handle_signal() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            logging.warning("Forced exit")
            sys.exit(1)
        shutdown_triggered = True
        logging.info("Shutting down...")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    controller.start()
    await control.start()

    async def control_loop() -> None:
        async for cmd in control.commands():
            cmd.respond(await safe_dispatch(controller, cmd))

    control_task = asyncio.create_task(control_loop())

    try:
        await shutdown_event.wait()
    finally:
        control_task.cancel()
        try:
            await asyncio.wait_for(control_task, timeout=1.0)
        except (asyncio.CancelledError, asyncio.TimeoutError):
            pass
        await control.stop()
        try:
            await controller.cleanup()
        except PlayerError:
            logging.exception("Cleanup failed")


if __name__ == "__main__":
    main()
