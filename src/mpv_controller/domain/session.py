import logging
import os
import shutil
import tempfile
import time
from dataclasses import dataclass

from mpv_controller.domain.state import SessionState, validate_transition

logger = logging.getLogger(__name__)


@dataclass
class PlayerSession:
    """Mutable state of the one player this controller owns.

    Only the serializer's consumer task writes to these fields.
    """

    socket_dir: str
    endpoint_path: str
    state: SessionState = SessionState.INACTIVE
    current_url: str = ""
    auto_restart: bool = True
    manual_stop: bool = False
    generation: int = 0
    started_at: float = 0.0

    @classmethod
    def create(cls, prefix: str = "mpv-socket-", auto_restart: bool = True) -> "PlayerSession":
        socket_dir = tempfile.mkdtemp(prefix=prefix)
        endpoint_path = os.path.join(socket_dir, f"mpvsocket_{time.time_ns()}")
        return cls(socket_dir=socket_dir, endpoint_path=endpoint_path, auto_restart=auto_restart)

    @property
    def active(self) -> bool:
        return self.state is SessionState.ACTIVE

    def transition_to(self, target: SessionState) -> None:
        validate_transition(self.state, target)
        if target is not self.state:
            logger.info("State: %s -> %s", self.state.name, target.name)
        self.state = target

    def mark_spawned(self, generation: int) -> None:
        self.generation = generation
        self.started_at = time.monotonic()

    def uptime(self) -> float:
        if not self.started_at:
            return 0.0
        return time.monotonic() - self.started_at

    def remove_socket_dir(self) -> None:
        shutil.rmtree(self.socket_dir, ignore_errors=True)
