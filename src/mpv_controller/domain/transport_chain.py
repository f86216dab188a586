import logging
import os
from collections.abc import Sequence

from mpv_controller.domain.errors import (
    EndpointUnavailableError,
    ProcessReportedError,
    TransportError,
)
from mpv_controller.ports.transport import ControlMessage, ControlResponse, TransportStrategy

logger = logging.getLogger(__name__)

# A non-empty reply that cannot be parsed still means mpv read the command.
LENIENT_UNPARSED_RESPONSES = True


class TransportChain:
    """Delivers a control message by trying each strategy in order."""

    def __init__(self, strategies: Sequence[TransportStrategy]) -> None:
        if not strategies:
            raise ValueError("at least one transport strategy is required")
        self._strategies = list(strategies)

    @property
    def strategy_names(self) -> list[str]:
        return [s.name for s in self._strategies]

    async def send(self, endpoint_path: str, message: ControlMessage) -> ControlResponse:
        if not os.path.exists(endpoint_path):
            raise EndpointUnavailableError(f"IPC socket not available: {endpoint_path}")

        payload = message.encode()
        logger.debug("Sending mpv command: %s", message.to_json())

        raw = await self._deliver(endpoint_path, payload)
        logger.debug("Command response: %s", raw.decode(errors="replace").strip())

        response = ControlResponse.decode(raw)
        if not response.parsed:
            if not LENIENT_UNPARSED_RESPONSES:
                raise TransportError("unparsable response from mpv")
            if raw.strip():
                logger.warning("Could not parse mpv response, assuming command was accepted")
            return response

        if not response.ok:
            raise ProcessReportedError(response.error)
        return response

    async def _deliver(self, endpoint_path: str, payload: bytes) -> bytes:
        failures: list[str] = []
        for strategy in self._strategies:
            try:
                return await strategy.deliver(endpoint_path, payload)
            except TransportError as exc:
                logger.info("Transport %s failed: %s", strategy.name, exc)
                failures.append(f"{strategy.name}: {exc}")
        raise TransportError("all transports failed (" + "; ".join(failures) + ")")
