from enum import Enum, auto


class SessionState(Enum):
    INACTIVE = auto()
    STARTING = auto()
    ACTIVE = auto()
    STOPPING = auto()


VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.INACTIVE: {SessionState.STARTING},
    SessionState.STARTING: {SessionState.ACTIVE, SessionState.STOPPING, SessionState.INACTIVE},
    SessionState.ACTIVE: {SessionState.ACTIVE, SessionState.STOPPING, SessionState.INACTIVE},
    SessionState.STOPPING: {SessionState.INACTIVE},
}


class InvalidTransitionError(Exception):
    pass


def validate_transition(current: SessionState, target: SessionState) -> None:
    if target not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Cannot transition from {current.name} to {target.name}")
