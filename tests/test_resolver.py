"""Tests for value resolution, serialization and log forwarding."""

import logging

import pytest

from nodebridge import BasicResource
from nodebridge import BridgeUsageError
from nodebridge import NodeRemoteError
from nodebridge import ProcessDelegate
from nodebridge import ResourceIdentity
from nodebridge.codec import LogEntry
from nodebridge.log import NOTICE
from nodebridge.log import ContextLogger
from nodebridge.log import interpolate
from nodebridge.resolver import RemoteFailure
from nodebridge.resolver import Resolved
from nodebridge.resolver import forward_logs
from nodebridge.resolver import resolve_value
from nodebridge.serialization import WIRE_ERROR_TAG
from nodebridge.serialization import WIRE_RESOURCE_TAG
from nodebridge.serialization import ValueSerializer


class PageResource(BasicResource):
    """Custom proxy class chosen by the delegate."""


class PageDelegate(ProcessDelegate):
    """Delegate mapping remote ``Page`` objects to ``PageResource``."""

    def resource_from_original_class_name(self, class_name: str) -> type[BasicResource] | None:
        if class_name == "Page":
            return PageResource
        return None


class StubSupervisor:
    """Supervisor stand-in recording bound resources."""

    resources: dict[ResourceIdentity, BasicResource]

    def __init__(self) -> None:
        self.resources = {}

    def get_or_create_resource(self, identity: ResourceIdentity, resource_type: type[BasicResource]) -> BasicResource:
        cached: BasicResource | None = self.resources.get(identity)
        if cached is None:
            cached = resource_type(self, identity)  # type: ignore[arg-type]
            self.resources[identity] = cached
        return cached


@pytest.fixture
def supervisor() -> StubSupervisor:
    return StubSupervisor()


@pytest.fixture
def serializer(supervisor: StubSupervisor) -> ValueSerializer:
    return ValueSerializer(supervisor, PageDelegate())  # type: ignore[arg-type]


def test_scalars_and_collections_resolve_unchanged(serializer: ValueSerializer) -> None:
    """Verify plain JSON values pass through."""
    value: object = {"a": [1, 2.5, "x", None, True], "b": {"c": False}}
    resolution = resolve_value(value, serializer)
    assert resolution == Resolved(value)


def test_remote_error_resolves_to_failure(serializer: ValueSerializer) -> None:
    """Verify the error marker becomes a tagged remote failure."""
    resolution = resolve_value({WIRE_ERROR_TAG: True, "message": "nope", "stack": "at x"}, serializer)
    assert isinstance(resolution, RemoteFailure)
    assert isinstance(resolution.error, NodeRemoteError)
    assert resolution.error.remote_message == "nope"
    assert str(resolution.error) == "nope"


def test_debug_mode_appends_remote_stack(supervisor: StubSupervisor) -> None:
    """Verify the stack trace joins the message in debug mode."""
    serializer = ValueSerializer(supervisor, debug=True)  # type: ignore[arg-type]
    unserialized: object = serializer.unserialize({WIRE_ERROR_TAG: True, "message": "nope", "stack": "at x"})
    assert str(unserialized) == "nope\n\nat x"


def test_resources_are_bound_with_delegate_classes(serializer: ValueSerializer, supervisor: StubSupervisor) -> None:
    """Verify resource markers become proxies of the delegate's class."""
    resolution = resolve_value(
        [
            {WIRE_RESOURCE_TAG: True, "class_name": "Page", "id": "1"},
            {WIRE_RESOURCE_TAG: True, "class_name": "Browser", "id": 2},
        ],
        serializer,
    )
    assert isinstance(resolution, Resolved)
    page, browser = resolution.value  # type: ignore[misc]
    assert type(page) is PageResource
    assert type(browser) is BasicResource
    assert browser.identity == ResourceIdentity("Browser", "2")
    assert supervisor.resources[ResourceIdentity("Page", "1")] is page


def test_resources_serialize_back_to_markers(serializer: ValueSerializer, supervisor: StubSupervisor) -> None:
    """Verify proxies sent as arguments are encoded as resource markers."""
    resource = BasicResource(supervisor, ResourceIdentity("Page", "1"))  # type: ignore[arg-type]
    encoded: object = serializer.serialize({"target": resource, "items": (1, "two")})
    assert encoded == {
        "target": {WIRE_RESOURCE_TAG: True, "class_name": "Page", "id": "1"},
        "items": [1, "two"],
    }


def test_unsupported_values_cannot_be_serialized(serializer: ValueSerializer) -> None:
    """Verify values without a wire form are rejected."""
    with pytest.raises(TypeError):
        serializer.serialize(object())
    with pytest.raises(TypeError):
        serializer.serialize({1: "int key"})


def test_resource_proxy_outliving_its_supervisor() -> None:
    """Verify a proxy refuses to work once its supervisor is gone."""
    supervisor = StubSupervisor()
    resource = BasicResource(supervisor, ResourceIdentity("Page", "1"))  # type: ignore[arg-type]
    del supervisor
    with pytest.raises(BridgeUsageError):
        resource.title()


def test_logs_are_forwarded_in_order(caplog: pytest.LogCaptureFixture) -> None:
    """Verify child logs reach the logger in order, at their level."""
    logger = logging.getLogger("nodebridge.tests.forward")
    caplog.set_level(logging.DEBUG, logger="nodebridge.tests.forward")
    forward_logs(
        [
            LogEntry("console", logging.INFO, "first"),
            LogEntry("runtime", NOTICE, "second\nline"),
            LogEntry("runtime", logging.ERROR, "third"),
        ],
        ContextLogger(logger),
        pid=123,
        port=54321,
    )
    messages: list[str] = [record.getMessage() for record in caplog.records]
    assert messages == [
        "Received a console log: first",
        "Received a runtime log: \nsecond\nline\n",
        "Received a runtime log: third",
    ]
    assert [record.levelno for record in caplog.records] == [logging.INFO, NOTICE, logging.ERROR]
    assert caplog.records[0].context == {"pid": 123, "port": 54321, "log": "first"}  # type: ignore[attr-defined]


def test_interpolate_leaves_unknown_placeholders() -> None:
    """Verify templates only render known keys."""
    assert interpolate("PID {pid} on {port}", {"pid": 7}) == "PID 7 on {port}"
