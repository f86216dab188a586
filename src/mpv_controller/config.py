from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class MpvControllerConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MPV_CONTROLLER_")

    mpv_binary: str = "mpv"
    mpv_log_file: str = "/tmp/mpv_debug.log"
    user_agent: str = "Tivimate"
    network_timeout: int = 30
    socket_dir_prefix: str = "mpv-socket-"

    command_timeout: float = 5.0
    terminate_grace: float = 2.0
    kill_wait: float = 0.5
    log_tail_bytes: int = 500

    transports: list[Literal["socat", "nc", "direct"]] = ["socat", "nc", "direct"]
    helper_timeout: float = 3.0
    socket_read_timeout: float = 2.0

    auto_restart: bool = True
    restart_base_delay: float = 1.0
    restart_max_delay: float = 30.0
    restart_max_attempts: int = 5
    restart_stable_after: float = 30.0

    command_queue_size: int = 10
    state_queue_size: int = 16

    control_socket_path: str = "/tmp/mpv-controller.sock"
    log_file: str = ""
