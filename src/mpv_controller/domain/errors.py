class PlayerError(Exception):
    pass


class SpawnError(PlayerError):
    pass


class TransportError(PlayerError):
    pass


class EndpointUnavailableError(TransportError):
    pass


class ProcessReportedError(PlayerError):
    def __init__(self, error: str) -> None:
        super().__init__(f"mpv error: {error}")
        self.error = error


class ControlProtocolError(PlayerError):
    pass


class PlayerNotActiveError(PlayerError):
    def __init__(self) -> None:
        super().__init__("player is not active")


class QueueBlockedError(PlayerError):
    pass


class SerializerClosedError(PlayerError):
    pass


class TerminationError(PlayerError):
    pass
