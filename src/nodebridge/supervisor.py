"""Supervisor for one child runtime process."""

import atexit
import json
import logging
import os
import time
import weakref
from collections.abc import Mapping

import httpx

from nodebridge.classifier import classify_process_failure
from nodebridge.codec import ResponseEnvelope
from nodebridge.codec import decode_payload
from nodebridge.codec import encode_instruction
from nodebridge.errors import NodeBridgeError
from nodebridge.errors import ProtocolError
from nodebridge.errors import ReadSocketTimeoutError
from nodebridge.instruction import Instruction
from nodebridge.log import ContextLogger
from nodebridge.options import Options
from nodebridge.options import ScriptLocator
from nodebridge.options import resolve_options
from nodebridge.process import ProcessHandle
from nodebridge.resolver import RemoteFailure
from nodebridge.resolver import Resolution
from nodebridge.resolver import forward_logs
from nodebridge.resolver import resolve_value
from nodebridge.resources import BasicResource
from nodebridge.resources import ResourceIdentity
from nodebridge.serialization import ProcessDelegate
from nodebridge.serialization import ValueSerializer
from nodebridge.transport import HttpTransport
from nodebridge.transport import Transport

SERVER_HOST: str = "127.0.0.1"

# Delay granted to the child to finish a self-initiated shutdown (seconds)
PROCESS_TERMINATION_DELAY: float = 0.1


class ProcessSupervisor:
    """Spawn a child runtime and execute instructions against it.

    One instruction is in flight at a time. Every instruction starts with a
    health check, since the child may have died while the supervisor was idle.
    """

    _options: Options
    _logger: ContextLogger
    _delegate: ProcessDelegate
    _process: ProcessHandle
    _process_pid: int
    _serializer: ValueSerializer
    _client: Transport
    _server_port: int | None
    _resources: "weakref.WeakValueDictionary[ResourceIdentity, BasicResource]"
    _is_closed: bool

    def __init__(
        self,
        connection_delegate_path: str,
        process_delegate: ProcessDelegate | None = None,
        options: Options | Mapping[str, object] | None = None,
        script_locator: ScriptLocator | None = None,
        transport: Transport | None = None,
    ) -> None:
        """Spawn the child and connect to it.

        :param connection_delegate_path: Script handling instructions inside the child.
        :param process_delegate: Optional delegate for resource classes and lifecycle events.
        :param options: Options or override mapping merged onto the defaults.
        :param script_locator: Locator of the child entry script.
        :param transport: Transport used to reach the child, HTTP by default.
        :raises FileNotFoundError: If the connection delegate path does not exist.
        :raises NodeBridgeError: If the child fails during startup.
        """
        self._is_closed = False
        self._server_port = None
        self._resources = weakref.WeakValueDictionary()

        logger_override: object = None
        if isinstance(options, Mapping) is True:
            logger_override = options.get("logger")
        elif isinstance(options, Options) is True:
            logger_override = options.logger
        if isinstance(logger_override, logging.Logger) is False:
            logger_override = None
        self._logger = ContextLogger(logger_override)  # type: ignore[arg-type]
        self._options = self._apply_options(options)
        self._logger = ContextLogger(self._options.logger)

        if process_delegate is None:
            process_delegate = ProcessDelegate()
        self._delegate = process_delegate
        self._serializer = ValueSerializer(self, process_delegate, debug=self._options.debug)

        if script_locator is None:
            script_locator = ScriptLocator()
        self._process = self._create_new_process(connection_delegate_path, script_locator)
        self._process_pid = self._start_process(self._process)
        self._delegate.process_started(self._process_pid)

        if transport is None:
            transport = HttpTransport()
        self._client = transport
        try:
            self._client.connect(f"http://{SERVER_HOST}:{self.server_port}", self._options.read_timeout)
        except BaseException:
            self._process.stop(0)
            self._delegate.process_stopped(self._process_pid)
            raise

        if self._options.debug is True:
            # Drop the diagnostics printed by the --inspect flag
            self._process.clear_error_output()

        atexit.register(self.close)

    @property
    def options(self) -> Options:
        """Return the resolved options.

        :returns: Resolved options.
        """
        return self._options

    @property
    def pid(self) -> int:
        """Return the child process identifier.

        :returns: Process identifier.
        """
        return self._process_pid

    @property
    def process(self) -> ProcessHandle:
        """Return the child process handle.

        :returns: Process handle.
        """
        return self._process

    @property
    def is_closed(self) -> bool:
        """Report whether teardown already ran.

        :returns: ``True`` once closed.
        """
        return self._is_closed

    def _apply_options(self, options: Options | Mapping[str, object] | None) -> Options:
        self._logger.info("Applying options...", {"options": options})
        resolved: Options = resolve_options(options)
        self._logger.debug("Options applied and merged with defaults", {"options": resolved})
        return resolved

    def _create_new_process(self, connection_delegate_path: str, script_locator: ScriptLocator) -> ProcessHandle:
        """Build the child command line.

        :param connection_delegate_path: Connection delegate script path.
        :param script_locator: Locator of the child entry script.
        :returns: Unstarted process handle.
        :raises FileNotFoundError: If the connection delegate path does not exist.
        """
        real_delegate_path: str = os.path.realpath(connection_delegate_path)
        if os.path.exists(real_delegate_path) is False:
            raise FileNotFoundError(f"Cannot find file or directory '{connection_delegate_path}'.")

        executable_path: str = self._options.executable_path
        command: list[str] = [executable_path]
        if self._options.debug is True:
            command.append("--inspect")
        command.append(script_locator.locate(executable_path))
        command.append(real_delegate_path)
        command.append(self._options.encoded_process_options())
        return ProcessHandle(command)

    def _start_process(self, process: ProcessHandle) -> int:
        self._logger.info("Starting process with command line: {commandline}", {"commandline": process.command_line})
        pid: int = process.start()
        self._logger.info("Process started with PID {pid}", {"pid": pid})
        return pid

    @property
    def server_port(self) -> int:
        """Return the child server port, read once from the first stdout line.

        :returns: Server port.
        :raises NodeBridgeError: If the child failed before writing its port.
        :raises ProtocolError: If the handshake line is not a port number.
        """
        if self._server_port is not None:
            return self._server_port

        first_line: str | None = self._process.read_first_line()
        if first_line is None:
            # stdout closed without a port, the process must have failed
            self.check_process_status()
            raise ProtocolError("The process closed its output before writing its server port")

        try:
            port: int = int(first_line.strip())
        except ValueError as exc:
            self.check_process_status(exc)
            raise ProtocolError(f"Expected a server port on the first output line, got {first_line!r}") from exc

        self._server_port = port
        return port

    def _log_context(self, **extra: object) -> dict[str, object]:
        context: dict[str, object] = {"pid": self._process_pid, "port": self._server_port}
        context.update(extra)
        return context

    def _log_process_standard_streams(self) -> None:
        """Log stdout and stderr content received since the last check."""
        output: str = self._process.get_incremental_output()
        if len(output) > 0:
            self._logger.notice(
                "Received data on stdout: {output}",
                {"pid": self._process_pid, "stream": "stdout", "output": output},
            )

        error_output: str = self._process.get_incremental_error_output()
        if len(error_output) > 0:
            self._logger.error(
                "Received data on stderr: {output}",
                {"pid": self._process_pid, "stream": "stderr", "output": error_output},
            )

    def check_process_status(self, previous_cause: BaseException | None = None) -> None:
        """Raise if the child process has failed.

        :param previous_cause: Error that triggered this check, if any.
        :raises IdleTimeoutError: If the child stopped itself for inactivity.
        :raises NodeFatalError: If the child died from an uncaught error.
        :raises ProcessFailedError: If the child exited unsuccessfully.
        """
        if previous_cause is not None:
            # A transport anomaly often means the process is exiting right now
            self._process.wait(PROCESS_TERMINATION_DELAY)

        self._log_process_standard_streams()

        failure: NodeBridgeError | None = classify_process_failure(
            self._process,
            self._options.idle_timeout,
            self._options.debug,
            previous_cause,
        )
        if failure is not None:
            raise failure

    def execute_instruction(self, instruction: Instruction, should_log: bool = True) -> object:
        """Send one instruction to the child and return its resolved value.

        :param instruction: Instruction to execute.
        :param should_log: Log the instruction and its result at debug level.
        :returns: Resolved value.
        :raises NodeRemoteError: If the instruction raised inside the child.
        :raises ReadSocketTimeoutError: If the child answered too slowly but looks healthy.
        """
        self.check_process_status()

        serialized_instruction: str = encode_instruction(instruction, self._serializer)

        if should_log is True:
            self._logger.debug(
                "Sending an instruction to the port {port}...",
                self._log_context(instruction=json.loads(serialized_instruction)),
            )

        try:
            payload: str = self._client.send(serialized_instruction)
        except httpx.TimeoutException as exc:
            self.check_process_status(exc)
            raise ReadSocketTimeoutError(self._options.read_timeout) from exc
        except httpx.HTTPError as exc:
            self.check_process_status(exc)
            raise

        return self._process_client_payload(payload, should_log)

    def _process_client_payload(self, payload: str, should_log: bool = True) -> object:
        """Decode a response body, forward its logs and resolve its value.

        :param payload: Raw response body.
        :param should_log: Log the resolved value at debug level.
        :returns: Resolved value.
        """
        try:
            envelope: ResponseEnvelope = decode_payload(payload)
        except json.JSONDecodeError:
            self.check_process_status()
            raise

        forward_logs(envelope.logs, self._logger, self._process_pid, self._server_port)

        resolution: Resolution = resolve_value(envelope.value, self._serializer)

        if should_log is True:
            data: object = resolution.error if isinstance(resolution, RemoteFailure) else resolution.value
            self._logger.debug("Received data from the port {port}...", self._log_context(data=data))

        if isinstance(resolution, RemoteFailure) is True:
            raise resolution.error
        return resolution.value

    def get_or_create_resource(
        self,
        identity: ResourceIdentity,
        resource_type: type[BasicResource] = BasicResource,
    ) -> BasicResource:
        """Return the proxy for a remote object, reusing live proxies.

        :param identity: Remote object identity.
        :param resource_type: Proxy class for new proxies.
        :returns: Resource proxy bound to this supervisor.
        """
        cached: BasicResource | None = self._resources.get(identity)
        if cached is not None and type(cached) is resource_type:
            return cached

        created: BasicResource = resource_type(self, identity)
        self._resources[identity] = created
        return created

    def _wait_for_process_termination(self) -> None:
        time.sleep(PROCESS_TERMINATION_DELAY)

    def close(self) -> None:
        """Flush remaining child logs and stop the child process.

        Never raises; teardown errors are logged.
        """
        if self._is_closed is True:
            return
        self._is_closed = True
        atexit.unregister(self.close)

        log_context: dict[str, object] = {"pid": self._process_pid}
        try:
            self._wait_for_process_termination()

            if self._process.is_running is True:
                try:
                    # Fetch the remote logs not sent yet
                    self.execute_instruction(Instruction.noop(), should_log=False)
                finally:
                    self._logger.info("Stopping process with PID {pid}...", log_context)
                    self._process.stop(self._options.stop_timeout)
                    self._logger.info("Stopped process with PID {pid}", log_context)
            else:
                self._logger.warning("The process cannot be stopped because it's no longer running", log_context)
        except Exception:
            self._logger.exception("Failed to stop the process with PID {pid}", log_context)
        finally:
            self._shutdown_resources()

    def _shutdown_resources(self) -> None:
        """Release the transport and notify the delegate."""
        try:
            self._client.close()
        except Exception:
            self._logger.exception("Failed to close the transport of process with PID {pid}", {"pid": self._process_pid})
        if self._process.is_running is True:
            self._process.stop(0)
        try:
            self._delegate.process_stopped(self._process_pid)
        except Exception:
            self._logger.exception("Process delegate failed on stop for PID {pid}", {"pid": self._process_pid})

    def __enter__(self) -> "ProcessSupervisor":
        return self

    def __exit__(self, exc_type: object, exc_value: object, exc_traceback: object) -> None:
        self.close()
