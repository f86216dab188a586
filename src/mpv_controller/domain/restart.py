import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class RestartPolicy:
    """Bounded exponential backoff for restarting after an unexpected exit.

    ``enabled`` is the on/off switch. ``max_attempts == 0`` disables the
    budget. A process that stayed up for ``stable_after`` seconds before
    exiting starts a fresh budget.
    """

    enabled: bool = True
    base_delay: float = 1.0
    max_delay: float = 30.0
    max_attempts: int = 5
    stable_after: float = 30.0
    attempts: int = 0
    exhausted: bool = False

    def reset(self) -> None:
        self.attempts = 0
        self.exhausted = False

    def next_delay(self, uptime: float) -> float | None:
        if not self.enabled:
            return None
        if uptime >= self.stable_after:
            self.reset()
        if self.max_attempts and self.attempts >= self.max_attempts:
            if not self.exhausted:
                logger.error("Giving up after %d restart attempts", self.attempts)
            self.exhausted = True
            return None
        delay = min(self.base_delay * (2**self.attempts), self.max_delay)
        self.attempts += 1
        return delay
