"""Public package API for nodebridge."""

import logging

from nodebridge.api import NodeBridge
from nodebridge.errors import BridgeUsageError
from nodebridge.errors import IdleTimeoutError
from nodebridge.errors import NodeBridgeError
from nodebridge.errors import NodeError
from nodebridge.errors import NodeFatalError
from nodebridge.errors import NodeRemoteError
from nodebridge.errors import ProcessFailedError
from nodebridge.errors import ProcessUnexpectedlyTerminatedError
from nodebridge.errors import ProtocolError
from nodebridge.errors import ReadSocketTimeoutError
from nodebridge.instruction import Instruction
from nodebridge.options import Options
from nodebridge.options import ScriptLocator
from nodebridge.resources import BasicResource
from nodebridge.resources import ResourceIdentity
from nodebridge.serialization import ProcessDelegate
from nodebridge.supervisor import ProcessSupervisor
from nodebridge.transport import HttpTransport
from nodebridge.transport import Transport

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__: list[str] = [
    "NodeBridge",
    "BasicResource",
    "BridgeUsageError",
    "HttpTransport",
    "IdleTimeoutError",
    "Instruction",
    "NodeBridgeError",
    "NodeError",
    "NodeFatalError",
    "NodeRemoteError",
    "Options",
    "ProcessDelegate",
    "ProcessFailedError",
    "ProcessSupervisor",
    "ProcessUnexpectedlyTerminatedError",
    "ProtocolError",
    "ReadSocketTimeoutError",
    "ResourceIdentity",
    "ScriptLocator",
    "Transport",
]
