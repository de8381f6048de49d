"""Value (un)serialization between the supervisor and the child runtime."""

import weakref
from typing import TYPE_CHECKING

from nodebridge.errors import BridgeUsageError
from nodebridge.errors import NodeRemoteError
from nodebridge.errors import ProtocolError
from nodebridge.resources import BasicResource
from nodebridge.resources import ResourceIdentity

if TYPE_CHECKING:
    from nodebridge.supervisor import ProcessSupervisor

WIRE_ERROR_TAG: str = "__nodebridge_error__"
WIRE_RESOURCE_TAG: str = "__nodebridge_resource__"


class ProcessDelegate:
    """Customize resource classes and observe the child process lifecycle."""

    def resource_from_original_class_name(self, class_name: str) -> type[BasicResource] | None:
        """Return the proxy class for a remote class name.

        :param class_name: Remote class name.
        :returns: Proxy class, ``None`` to use :meth:`default_resource`.
        """
        _ = class_name
        return None

    def default_resource(self) -> type[BasicResource]:
        """Return the proxy class used for unmapped remote classes.

        :returns: Proxy class.
        """
        return BasicResource

    def process_started(self, pid: int) -> None:
        """Called once the child process has been spawned.

        :param pid: Child process identifier.
        """

    def process_stopped(self, pid: int | None) -> None:
        """Called once the supervisor has torn the child process down.

        :param pid: Child process identifier.
        """


class ValueSerializer:
    """Convert values to and from their JSON wire form."""

    _supervisor_ref: "weakref.ReferenceType[ProcessSupervisor]"
    _delegate: ProcessDelegate
    _debug: bool

    def __init__(
        self,
        supervisor: "ProcessSupervisor",
        delegate: ProcessDelegate | None = None,
        debug: bool = False,
    ) -> None:
        """Initialize a serializer bound to ``supervisor``.

        :param supervisor: Supervisor that owns unserialized resources.
        :param delegate: Process delegate choosing resource classes.
        :param debug: Append remote stack traces to error messages.
        """
        self._supervisor_ref = weakref.ref(supervisor)
        if delegate is None:
            delegate = ProcessDelegate()
        self._delegate = delegate
        self._debug = debug

    def serialize(self, value: object) -> object:
        """Encode one value for the wire.

        :param value: Runtime value.
        :returns: JSON-compatible value.
        :raises TypeError: If the value cannot cross the wire.
        """
        if value is None or isinstance(value, (bool, int, float, str)) is True:
            return value
        if isinstance(value, BasicResource) is True:
            identity: ResourceIdentity = value.identity
            return {
                WIRE_RESOURCE_TAG: True,
                "class_name": identity.class_name,
                "id": identity.unique_identifier,
            }
        if isinstance(value, (list, tuple)) is True:
            return [self.serialize(item) for item in value]
        if isinstance(value, dict) is True:
            encoded: dict[str, object] = {}
            for key, item in value.items():
                if isinstance(key, str) is False:
                    raise TypeError("Only string keys can be sent to the child runtime")
                encoded[key] = self.serialize(item)
            return encoded
        raise TypeError(f"Values of type {type(value).__name__} cannot be sent to the child runtime")

    def unserialize(self, value: object) -> object:
        """Decode one wire value.

        Remote errors are returned, not raised.

        :param value: Decoded JSON value.
        :returns: Runtime value, resource proxy, or :class:`NodeRemoteError`.
        :raises ProtocolError: If a tagged value is malformed.
        """
        if isinstance(value, list) is True:
            return [self.unserialize(item) for item in value]
        if isinstance(value, dict) is False:
            return value

        if value.get(WIRE_ERROR_TAG) is True:
            return self._unserialize_error(value)
        if value.get(WIRE_RESOURCE_TAG) is True:
            return self._unserialize_resource(value)
        return {key: self.unserialize(item) for key, item in value.items()}

    def _unserialize_error(self, value: dict[str, object]) -> NodeRemoteError:
        message: object = value.get("message", "")
        stack: object = value.get("stack", "")
        if isinstance(message, str) is False:
            raise ProtocolError("Remote error message must be a string")
        if stack is None:
            stack = ""
        if isinstance(stack, str) is False:
            raise ProtocolError("Remote error stack must be a string")
        return NodeRemoteError(message, stack, append_stack=self._debug)

    def _unserialize_resource(self, value: dict[str, object]) -> BasicResource:
        class_name: object = value.get("class_name")
        unique_identifier: object = value.get("id")
        if isinstance(class_name, str) is False:
            raise ProtocolError("Resource class_name must be a string")
        if isinstance(unique_identifier, (str, int)) is False or isinstance(unique_identifier, bool) is True:
            raise ProtocolError("Resource id must be a string or an integer")

        supervisor: ProcessSupervisor | None = self._supervisor_ref()
        if supervisor is None:
            raise BridgeUsageError("Cannot bind a resource without a live supervisor")

        resource_type: type[BasicResource] | None = self._delegate.resource_from_original_class_name(class_name)
        if resource_type is None:
            resource_type = self._delegate.default_resource()
        identity = ResourceIdentity(class_name, str(unique_identifier))
        return supervisor.get_or_create_resource(identity, resource_type)
