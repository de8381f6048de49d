"""Classify child process failures from stderr content and exit state."""

import json
from typing import Protocol

from nodebridge.errors import IdleTimeoutError
from nodebridge.errors import NodeBridgeError
from nodebridge.errors import NodeFatalError
from nodebridge.errors import ProcessFailedError
from nodebridge.errors import ProcessUnexpectedlyTerminatedError
from nodebridge.serialization import WIRE_ERROR_TAG

IDLE_TIMEOUT_MESSAGE: str = "The idle timeout has been reached."


class ProcessState(Protocol):
    """Process view needed for classification."""

    @property
    def command_line(self) -> str: ...

    @property
    def error_output(self) -> str: ...

    @property
    def is_terminated(self) -> bool: ...

    @property
    def is_successful(self) -> bool: ...

    @property
    def exit_code(self) -> int | None: ...


def _decode_error_output(error_output: str) -> dict[str, object] | None:
    """Find the serialized error object in stderr content.

    The child writes the object as JSON; anything around it is ignored.

    :param error_output: Cumulative stderr content.
    :returns: Error mapping, ``None`` when none can be decoded.
    """
    try:
        decoded: object = json.loads(error_output)
    except ValueError:
        decoded = None
    if isinstance(decoded, dict) is True:
        return decoded

    for line in reversed(error_output.splitlines()):
        if WIRE_ERROR_TAG not in line:
            continue
        start: int = line.find("{")
        if start < 0:
            continue
        try:
            decoded = json.loads(line[start:])
        except ValueError:
            continue
        if isinstance(decoded, dict) is True:
            return decoded
    return None


def fatal_error_applies(error_output: str) -> bool:
    """Report whether stderr carries an uncaught child error.

    :param error_output: Cumulative stderr content.
    :returns: ``True`` when the fatal signature is present.
    """
    return WIRE_ERROR_TAG in error_output


def idle_timeout_applies(error_output: str) -> bool:
    """Report whether stderr carries the idle shutdown error.

    :param error_output: Cumulative stderr content.
    :returns: ``True`` when the child stopped itself for inactivity.
    """
    if fatal_error_applies(error_output) is False:
        return False
    error: dict[str, object] | None = _decode_error_output(error_output)
    if error is None:
        return False
    return error.get("message") == IDLE_TIMEOUT_MESSAGE


def build_fatal_error(
    error_output: str,
    debug: bool,
    previous_cause: BaseException | None = None,
) -> NodeFatalError:
    """Build a fatal error from stderr content.

    :param error_output: Cumulative stderr content.
    :param debug: Append the remote stack trace to the message.
    :param previous_cause: Error that triggered the status check, if any.
    :returns: Fatal error.
    """
    error: dict[str, object] | None = _decode_error_output(error_output)
    message: str = error_output.strip()
    stack: str = ""
    if error is not None:
        raw_message: object = error.get("message")
        raw_stack: object = error.get("stack")
        if isinstance(raw_message, str) is True:
            message = raw_message
        if isinstance(raw_stack, str) is True:
            stack = raw_stack
    return NodeFatalError(message, stack, append_stack=debug, previous_cause=previous_cause)


def classify_process_failure(
    process: ProcessState,
    idle_timeout: float | None,
    debug: bool,
    previous_cause: BaseException | None = None,
) -> NodeBridgeError | None:
    """Decide whether the child has failed and how.

    Checks run in priority order: idle shutdown, uncaught error,
    unsuccessful exit with stderr output, then any termination.

    :param process: Process state, streams already drained.
    :param idle_timeout: Configured idle timeout, reported by the idle error.
    :param debug: Append remote stack traces to messages.
    :param previous_cause: Error that triggered the check, if any.
    :returns: Error to raise, ``None`` when the process looks healthy.
    """
    error_output: str = process.error_output
    is_terminated: bool = process.is_terminated

    if len(error_output) > 0:
        if idle_timeout_applies(error_output) is True:
            return IdleTimeoutError(idle_timeout, build_fatal_error(error_output, debug, previous_cause))
        if fatal_error_applies(error_output) is True:
            return build_fatal_error(error_output, debug, previous_cause)
        if is_terminated is True and process.is_successful is False:
            return ProcessFailedError(process.command_line, process.exit_code, error_output)

    if is_terminated is True:
        return ProcessUnexpectedlyTerminatedError(process.command_line, process.exit_code, error_output)
    return None
