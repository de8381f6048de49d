"""Local proxies for objects living inside the child runtime."""

import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING

from nodebridge.errors import BridgeUsageError
from nodebridge.instruction import Instruction

if TYPE_CHECKING:
    from nodebridge.supervisor import ProcessSupervisor


@dataclass(frozen=True)
class ResourceIdentity:
    """Identify one remote object by its original class name and unique id."""

    class_name: str
    unique_identifier: str

    def to_wire(self) -> dict[str, str]:
        """Return the JSON-compatible form of this identity.

        :returns: Wire mapping.
        """
        return {"class_name": self.class_name, "id": self.unique_identifier}


class _ResourceMethod:
    """Call wrapper for one remote method."""

    _resource: "BasicResource"
    _name: str

    def __init__(self, resource: "BasicResource", name: str) -> None:
        """Initialize a method wrapper.

        :param resource: Owning resource proxy.
        :param name: Remote method name.
        """
        self._resource = resource
        self._name = name

    def __call__(self, *args: object) -> object:
        """Invoke the remote method.

        :param args: Positional arguments.
        :returns: Resolved remote result.
        """
        return self._resource.execute(Instruction.call(self._name, *args))

    def __repr__(self) -> str:
        return f"<remote method {self._name!r} of {self._resource!r}>"


class BasicResource:
    """Proxy for a remote object, bound weakly to its supervisor."""

    _supervisor_ref: "weakref.ReferenceType[ProcessSupervisor]"
    _identity: ResourceIdentity

    def __init__(self, supervisor: "ProcessSupervisor", identity: ResourceIdentity) -> None:
        """Bind the proxy to a supervisor and a remote identity.

        :param supervisor: Supervisor owning the remote object.
        :param identity: Remote object identity.
        """
        object.__setattr__(self, "_supervisor_ref", weakref.ref(supervisor))
        object.__setattr__(self, "_identity", identity)

    @property
    def identity(self) -> ResourceIdentity:
        """Return the remote identity.

        :returns: Remote identity.
        """
        return self._identity

    def execute(self, instruction: Instruction) -> object:
        """Run ``instruction`` against this remote object.

        :param instruction: Unlinked instruction.
        :returns: Resolved remote result.
        :raises BridgeUsageError: If the owning supervisor no longer exists.
        """
        supervisor: ProcessSupervisor | None = self._supervisor_ref()
        if supervisor is None:
            raise BridgeUsageError(
                f"The supervisor owning resource {self._identity.class_name}#"
                + f"{self._identity.unique_identifier} no longer exists"
            )
        return supervisor.execute_instruction(instruction.link_to_resource(self._identity))

    def get_property(self, name: str) -> object:
        """Read a remote property.

        :param name: Property name.
        :returns: Resolved property value.
        """
        return self.execute(Instruction.get(name))

    def set_property(self, name: str, value: object) -> None:
        """Write a remote property.

        :param name: Property name.
        :param value: New value.
        """
        self.execute(Instruction.set(name, value))

    def __getattr__(self, name: str) -> _ResourceMethod:
        """Return a wrapper calling the remote method ``name``.

        :param name: Remote method name.
        :returns: Callable wrapper.
        """
        if name.startswith("_"):
            raise AttributeError(name)
        return _ResourceMethod(self, name)

    def __setattr__(self, name: str, value: object) -> None:
        raise BridgeUsageError("Use set_property() to write remote properties")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._identity.class_name}#{self._identity.unique_identifier}>"
