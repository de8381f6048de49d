"""Custom error types for nodebridge."""


class NodeBridgeError(Exception):
    """Base class for all nodebridge errors."""


class BridgeUsageError(NodeBridgeError):
    """Raised when the bridge is driven in a way that can never succeed."""


class ProtocolError(NodeBridgeError):
    """Raised for malformed data on the supervisor/child channel."""


class NodeError(NodeBridgeError):
    """Raised for errors serialized by the child runtime."""

    remote_message: str
    remote_stack: str

    def __init__(self, remote_message: str, remote_stack: str = "", append_stack: bool = False) -> None:
        """Initialize a child error wrapper.

        :param remote_message: Original remote error message.
        :param remote_stack: Original remote stack trace.
        :param append_stack: Append the stack trace to the message (debug mode).
        """
        self.remote_message = remote_message
        self.remote_stack = remote_stack
        formatted: str = remote_message
        if append_stack is True and len(remote_stack) > 0:
            formatted = f"{remote_message}\n\n{remote_stack}"
        super().__init__(formatted)


class NodeRemoteError(NodeError):
    """Raised when an instruction fails inside the child application logic."""


class NodeFatalError(NodeError):
    """Raised when the child runtime died from an uncaught error."""

    previous_cause: BaseException | None

    def __init__(
        self,
        remote_message: str,
        remote_stack: str = "",
        append_stack: bool = False,
        previous_cause: BaseException | None = None,
    ) -> None:
        """Initialize a fatal child error.

        :param remote_message: Original remote error message.
        :param remote_stack: Original remote stack trace.
        :param append_stack: Append the stack trace to the message (debug mode).
        :param previous_cause: Error that triggered the status check, if any.
        """
        super().__init__(remote_message, remote_stack, append_stack)
        self.previous_cause = previous_cause
        self.__cause__ = previous_cause


class IdleTimeoutError(NodeBridgeError):
    """Raised when the child stopped itself after staying idle too long."""

    idle_timeout: float | None
    fatal_error: NodeFatalError

    def __init__(self, idle_timeout: float | None, fatal_error: NodeFatalError) -> None:
        """Initialize an idle timeout error.

        :param idle_timeout: Configured idle timeout in seconds.
        :param fatal_error: Fatal error reported by the child on shutdown.
        """
        self.idle_timeout = idle_timeout
        self.fatal_error = fatal_error
        super().__init__(f"The idle timeout ({idle_timeout} seconds) has been reached.")
        self.__cause__ = fatal_error


class ReadSocketTimeoutError(NodeBridgeError):
    """Raised when an instruction round trip exceeds the read timeout."""

    read_timeout: float | None

    def __init__(self, read_timeout: float | None) -> None:
        """Initialize a read timeout error.

        :param read_timeout: Configured read timeout in seconds.
        """
        self.read_timeout = read_timeout
        super().__init__(f"The timeout ({read_timeout} seconds) has been reached.")


class ProcessFailedError(NodeBridgeError):
    """Raised when the child process exited unsuccessfully."""

    command_line: str
    exit_code: int | None
    error_output: str

    def __init__(self, command_line: str, exit_code: int | None, error_output: str, message: str | None = None) -> None:
        """Initialize a process failure error.

        :param command_line: Command line used to spawn the child.
        :param exit_code: Child exit code, ``None`` when unknown.
        :param error_output: Cumulative child stderr content.
        :param message: Optional message overriding the default summary.
        """
        self.command_line = command_line
        self.exit_code = exit_code
        self.error_output = error_output
        if message is None:
            message = f'The command "{command_line}" failed.\n\nExit Code: {exit_code}'
            if len(error_output) > 0:
                message += f"\n\nError Output:\n================\n{error_output}"
        super().__init__(message)


class ProcessUnexpectedlyTerminatedError(ProcessFailedError):
    """Raised when the child terminated without explaining why."""

    def __init__(self, command_line: str, exit_code: int | None, error_output: str = "") -> None:
        """Initialize an unexpected termination error.

        :param command_line: Command line used to spawn the child.
        :param exit_code: Child exit code, ``None`` when unknown.
        :param error_output: Cumulative child stderr content.
        """
        super().__init__(
            command_line,
            exit_code,
            error_output,
            message="The process has been unexpectedly terminated.",
        )
