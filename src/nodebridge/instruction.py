"""Instruction descriptors sent to the child runtime."""

from dataclasses import dataclass
from dataclasses import replace
from typing import TYPE_CHECKING
from typing import Literal

if TYPE_CHECKING:
    from nodebridge.resources import ResourceIdentity
    from nodebridge.serialization import ValueSerializer

InstructionType = Literal["call", "get", "set", "noop"]
TYPE_CALL: InstructionType = "call"
TYPE_GET: InstructionType = "get"
TYPE_SET: InstructionType = "set"
TYPE_NOOP: InstructionType = "noop"


@dataclass(frozen=True)
class Instruction:
    """One remote operation: call a function, read or write a property, or nothing."""

    type: InstructionType
    name: str | None = None
    value: object = None
    resource: "ResourceIdentity | None" = None

    @classmethod
    def call(cls, name: str, *args: object) -> "Instruction":
        """Build a function call instruction.

        :param name: Function name.
        :param args: Positional arguments.
        :returns: Call instruction.
        """
        return cls(TYPE_CALL, name, list(args))

    @classmethod
    def get(cls, name: str) -> "Instruction":
        """Build a property read instruction.

        :param name: Property name.
        :returns: Get instruction.
        """
        return cls(TYPE_GET, name)

    @classmethod
    def set(cls, name: str, value: object) -> "Instruction":
        """Build a property write instruction.

        :param name: Property name.
        :param value: New property value.
        :returns: Set instruction.
        """
        return cls(TYPE_SET, name, value)

    @classmethod
    def noop(cls) -> "Instruction":
        """Build an instruction that only forces a round trip.

        :returns: No-op instruction.
        """
        return cls(TYPE_NOOP)

    def link_to_resource(self, resource: "ResourceIdentity | None") -> "Instruction":
        """Return a copy of this instruction targeting ``resource``.

        :param resource: Remote resource identity, ``None`` for the root object.
        :returns: Linked instruction.
        """
        return replace(self, resource=resource)

    def to_wire(self, serializer: "ValueSerializer") -> dict[str, object]:
        """Return the JSON-compatible form of this instruction.

        :param serializer: Serializer for argument values.
        :returns: Wire mapping.
        """
        resource: dict[str, str] | None = None
        if self.resource is not None:
            resource = self.resource.to_wire()
        return {
            "type": self.type,
            "name": self.name,
            "value": serializer.serialize(self.value),
            "resource": resource,
        }
