"""Instruction encoding and response envelope decoding."""

import json
import logging
from dataclasses import dataclass
from dataclasses import field

from nodebridge.errors import ProtocolError
from nodebridge.instruction import Instruction
from nodebridge.log import NOTICE
from nodebridge.serialization import ValueSerializer

LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "notice": NOTICE,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "alert": logging.CRITICAL,
    "emergency": logging.CRITICAL,
}


@dataclass(frozen=True)
class LogEntry:
    """One log line emitted by the child while handling an instruction."""

    origin: str
    level: int
    message: str


@dataclass(frozen=True)
class ResponseEnvelope:
    """Decoded response: child logs plus the raw instruction value."""

    logs: list[LogEntry] = field(default_factory=list)
    value: object = None


def map_log_level(level_name: object) -> int:
    """Map a wire log level name to a :mod:`logging` level.

    :param level_name: Level name sent by the child.
    :returns: ``logging`` level number.
    :raises ProtocolError: If the level is unknown.
    """
    if isinstance(level_name, str) is False:
        raise ProtocolError(f"Log level must be a string, got {level_name!r}")
    level: int | None = LOG_LEVELS.get(level_name.lower())
    if level is None:
        raise ProtocolError(f"Unknown log level: {level_name!r}")
    return level


def encode_instruction(instruction: Instruction, serializer: ValueSerializer) -> str:
    """Encode ``instruction`` as canonical JSON.

    :param instruction: Instruction to send.
    :param serializer: Serializer for argument values.
    :returns: JSON document.
    """
    return json.dumps(
        instruction.to_wire(serializer),
        sort_keys=True,
        separators=(",", ":"),
        allow_nan=False,
    )


def _decode_log_entry(entry: object) -> LogEntry:
    if isinstance(entry, dict) is False:
        raise ProtocolError("Log entries must be objects")
    origin: object = entry.get("origin")
    message: object = entry.get("message")
    if isinstance(origin, str) is False:
        raise ProtocolError("Log entry origin must be a string")
    if isinstance(message, str) is False:
        raise ProtocolError("Log entry message must be a string")
    return LogEntry(origin, map_log_level(entry.get("level")), message)


def decode_payload(payload: str) -> ResponseEnvelope:
    """Decode one response body.

    :param payload: Raw response body.
    :returns: Response envelope; an empty body yields no logs and a ``None`` value.
    :raises json.JSONDecodeError: If the body is not valid JSON.
    :raises ProtocolError: If the document does not have the envelope shape.
    """
    if len(payload) == 0:
        return ResponseEnvelope()

    data: object = json.loads(payload)
    if data is None:
        return ResponseEnvelope()
    if isinstance(data, dict) is False:
        raise ProtocolError("Response body must be a JSON object")

    raw_logs: object = data.get("logs")
    if raw_logs is None:
        raw_logs = []
    if isinstance(raw_logs, list) is False:
        raise ProtocolError("Response logs must be a list")

    logs: list[LogEntry] = [_decode_log_entry(entry) for entry in raw_logs]
    return ResponseEnvelope(logs, data.get("value"))
