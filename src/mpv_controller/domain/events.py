from dataclasses import dataclass, field
from time import time


@dataclass(frozen=True)
class DomainEvent:
    timestamp: float = field(default_factory=time)


@dataclass(frozen=True)
class ProcessExited(DomainEvent):
    generation: int = 0
    pid: int | None = None
    returncode: int | None = None
    requested: bool = False
    uptime: float = 0.0


@dataclass(frozen=True)
class RestartScheduled(DomainEvent):
    url: str = ""
    attempt: int = 0
    delay: float = 0.0
