"""Turn decoded responses into caller-visible results."""

from collections.abc import Iterable
from dataclasses import dataclass

from nodebridge.codec import LogEntry
from nodebridge.errors import NodeRemoteError
from nodebridge.log import ContextLogger
from nodebridge.serialization import ValueSerializer


@dataclass(frozen=True)
class Resolved:
    """Instruction returned normally."""

    value: object


@dataclass(frozen=True)
class RemoteFailure:
    """Instruction raised inside the child application logic."""

    error: NodeRemoteError


Resolution = Resolved | RemoteFailure


def format_log_template(entry: LogEntry) -> str:
    """Build the message template for one child log entry.

    :param entry: Child log entry.
    :returns: Template with a ``{log}`` placeholder.
    """
    body: str = "{log}"
    if "\n" in entry.message:
        body = "\n{log}\n"
    return f"Received a {entry.origin} log: {body}"


def forward_logs(logs: Iterable[LogEntry], logger: ContextLogger, pid: int | None, port: int | None) -> None:
    """Forward child log entries in the order they were received.

    :param logs: Decoded log entries.
    :param logger: Target logger.
    :param pid: Child process identifier.
    :param port: Child server port.
    """
    for entry in logs:
        logger.log(
            entry.level,
            format_log_template(entry),
            {"pid": pid, "port": port, "log": entry.message},
        )


def resolve_value(value: object, serializer: ValueSerializer) -> Resolution:
    """Unserialize a raw response value and tag the outcome.

    :param value: Raw ``value`` field of the response envelope.
    :param serializer: Value serializer bound to the supervisor.
    :returns: ``Resolved`` for ordinary values, ``RemoteFailure`` for remote errors.
    """
    unserialized: object = serializer.unserialize(value)
    if isinstance(unserialized, NodeRemoteError) is True:
        return RemoteFailure(unserialized)
    return Resolved(unserialized)
