import logging

from mpv_controller.config import MpvControllerConfig
from mpv_controller.adapters.helper_transport import NetcatTransport, SocatTransport
from mpv_controller.adapters.mpv_process import MpvProcessSupervisor
from mpv_controller.adapters.socket_transport import DirectSocketTransport
from mpv_controller.adapters.unix_control import UnixSocketControlServer
from mpv_controller.domain.controller import PlayerController
from mpv_controller.domain.restart import RestartPolicy
from mpv_controller.domain.session import PlayerSession
from mpv_controller.domain.transport_chain import TransportChain
from mpv_controller.ports.control import ControlPort
from mpv_controller.ports.transport import TransportStrategy

logger = logging.getLogger(__name__)


def create_transport(name: str, config: MpvControllerConfig) -> TransportStrategy:
    if name == "socat":
        return SocatTransport(timeout=config.helper_timeout)
    if name == "nc":
        return NetcatTransport(timeout=config.helper_timeout)
    if name == "direct":
        return DirectSocketTransport(read_timeout=config.socket_read_timeout)
    raise ValueError(f"Unknown transport: {name}")


def create_transport_chain(config: MpvControllerConfig) -> TransportChain:
    strategies = [create_transport(name, config) for name in config.transports]
    logger.debug("Transport chain: %s", ", ".join(s.name for s in strategies))
    return TransportChain(strategies)


def create_supervisor(config: MpvControllerConfig) -> MpvProcessSupervisor:
    return MpvProcessSupervisor(
        binary=config.mpv_binary,
        log_file=config.mpv_log_file,
        user_agent=config.user_agent,
        network_timeout=config.network_timeout,
        terminate_grace=config.terminate_grace,
        kill_wait=config.kill_wait,
        log_tail_bytes=config.log_tail_bytes,
    )


def create_restart_policy(config: MpvControllerConfig) -> RestartPolicy:
    return RestartPolicy(
        enabled=config.auto_restart,
        base_delay=config.restart_base_delay,
        max_delay=config.restart_max_delay,
        max_attempts=config.restart_max_attempts,
        stable_after=config.restart_stable_after,
    )


def create_controller(config: MpvControllerConfig) -> PlayerController:
    session = PlayerSession.create(
        prefix=config.socket_dir_prefix, auto_restart=config.auto_restart
    )
    logger.info("mpv control endpoint: %s", session.endpoint_path)
    return PlayerController(
        supervisor=create_supervisor(config),
        transport=create_transport_chain(config),
        session=session,
        restart_policy=create_restart_policy(config),
        command_timeout=config.command_timeout,
        max_pending_commands=config.command_queue_size,
        max_state_updates=config.state_queue_size,
    )


def create_daemon(
    config: MpvControllerConfig,
) -> tuple[PlayerController, ControlPort]:
    controller = create_controller(config)
    control = UnixSocketControlServer(socket_path=config.control_socket_path)
    return controller, control
