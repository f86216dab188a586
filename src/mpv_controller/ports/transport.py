import json
from dataclasses import dataclass
from typing import Any, Protocol

SUCCESS = "success"


@dataclass(frozen=True)
class ControlMessage:
    command: tuple[Any, ...]

    @classmethod
    def of(cls, *args: Any) -> "ControlMessage":
        return cls(command=tuple(args))

    def to_json(self) -> str:
        return json.dumps({"command": list(self.command)})

    def encode(self) -> bytes:
        return (self.to_json() + "\n").encode()


@dataclass(frozen=True)
class ControlResponse:
    data: Any = None
    error: str = ""
    parsed: bool = True

    @property
    def ok(self) -> bool:
        return self.error in ("", SUCCESS)

    @classmethod
    def decode(cls, raw: bytes) -> "ControlResponse":
        """Parse mpv's newline-delimited JSON reply.

        Event lines (``{"event": ...}``) that mpv interleaves with replies are
        skipped. Empty or unparsable input yields ``parsed=False``.
        """
        text = raw.decode(errors="replace")
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(obj, dict):
                continue
            if "event" in obj:
                continue
            error = obj.get("error") or ""
            return cls(data=obj.get("data"), error=str(error))
        return cls(parsed=False)


class TransportStrategy(Protocol):
    name: str

    async def deliver(self, endpoint_path: str, payload: bytes) -> bytes: ...
