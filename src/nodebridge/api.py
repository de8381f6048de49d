"""User-facing entry point for nodebridge."""

from collections.abc import Mapping

from nodebridge.instruction import Instruction
from nodebridge.options import Options
from nodebridge.options import ScriptLocator
from nodebridge.serialization import ProcessDelegate
from nodebridge.supervisor import ProcessSupervisor


class _RootFunction:
    """Call wrapper for one function exposed by the connection delegate."""

    _supervisor: ProcessSupervisor
    _name: str

    def __init__(self, supervisor: ProcessSupervisor, name: str) -> None:
        """Initialize a root function wrapper.

        :param supervisor: Supervisor executing the call.
        :param name: Remote function name.
        """
        self._supervisor = supervisor
        self._name = name

    def __call__(self, *args: object) -> object:
        """Invoke the remote function.

        :param args: Positional arguments.
        :returns: Resolved remote result.
        """
        return self._supervisor.execute_instruction(Instruction.call(self._name, *args))


class NodeBridge:
    """Expose the connection delegate of a child runtime as a local object.

    ``bridge.launch(options)`` sends a ``call`` instruction for ``launch``;
    returned remote objects come back as resource proxies.
    """

    _supervisor: ProcessSupervisor

    def __init__(
        self,
        connection_delegate_path: str,
        process_delegate: ProcessDelegate | None = None,
        options: Options | Mapping[str, object] | None = None,
        script_locator: ScriptLocator | None = None,
    ) -> None:
        """Start a supervised child runtime.

        :param connection_delegate_path: Script handling instructions inside the child.
        :param process_delegate: Optional delegate for resource classes and lifecycle events.
        :param options: Options or override mapping merged onto the defaults.
        :param script_locator: Locator of the child entry script.
        """
        self._supervisor = ProcessSupervisor(
            connection_delegate_path,
            process_delegate=process_delegate,
            options=options,
            script_locator=script_locator,
        )

    @property
    def supervisor(self) -> ProcessSupervisor:
        """Return the underlying supervisor.

        :returns: Process supervisor.
        """
        return self._supervisor

    def get_property(self, name: str) -> object:
        """Read a property of the connection delegate.

        :param name: Property name.
        :returns: Resolved property value.
        """
        return self._supervisor.execute_instruction(Instruction.get(name))

    def set_property(self, name: str, value: object) -> None:
        """Write a property of the connection delegate.

        :param name: Property name.
        :param value: New value.
        """
        self._supervisor.execute_instruction(Instruction.set(name, value))

    def close(self) -> None:
        """Stop the child runtime."""
        self._supervisor.close()

    def __getattr__(self, name: str) -> _RootFunction:
        """Return a wrapper calling the remote function ``name``.

        :param name: Remote function name.
        :returns: Callable wrapper.
        """
        if name.startswith("_"):
            raise AttributeError(name)
        return _RootFunction(self._supervisor, name)

    def __enter__(self) -> "NodeBridge":
        return self

    def __exit__(self, exc_type: object, exc_value: object, exc_traceback: object) -> None:
        self.close()
