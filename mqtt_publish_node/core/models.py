"""
Pipeline-facing data types for the MQTT publish node.
"""
import uuid
from concurrent.futures import Executor
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional, Protocol

ERROR_KEY = "error"


@dataclass(frozen=True)
class Message:
    """A pipeline message: opaque text payload plus string metadata."""
    data: str
    metadata: Mapping[str, str] = field(default_factory=dict)
    type: str = "POST_TELEMETRY_REQUEST"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        # Read-only view over a private copy so callers can't mutate it later
        object.__setattr__(self, 'metadata', MappingProxyType(dict(self.metadata)))

    def with_metadata(self, metadata: Mapping[str, str]) -> 'Message':
        """Return a copy of this message with different metadata."""
        return replace(self, metadata=metadata)

    def with_error(self, cause: BaseException) -> 'Message':
        """Return a copy with an 'error' metadata entry describing cause."""
        metadata = dict(self.metadata)
        metadata[ERROR_KEY] = describe_error(cause)
        return self.with_metadata(metadata)

    def copy(self) -> 'Message':
        """Return a copy of this message under a new id."""
        return replace(self, id=str(uuid.uuid4()))


def describe_error(cause: BaseException) -> str:
    """Human readable '<kind>: <message>' string for an exception."""
    message = str(cause) or repr(cause)
    return f"{type(cause).__name__}: {message}"


@dataclass(frozen=True)
class PublishOutcome:
    """Result of a single publish attempt."""
    message: Message
    cause: Optional[BaseException] = None

    @property
    def success(self) -> bool:
        return self.cause is None

    @classmethod
    def succeeded(cls, message: Message) -> 'PublishOutcome':
        return cls(message)

    @classmethod
    def failed(cls, message: Message, cause: BaseException) -> 'PublishOutcome':
        return cls(message, cause)


class NodeContext(Protocol):
    """What the surrounding pipeline provides to a node."""
    tenant_id: str
    node_id: str
    service_id: str
    callback_executor: Optional[Executor]
    force_ack: bool

    def ack(self, message: Message) -> None:
        ...

    def tell_success(self, message: Message) -> None:
        ...

    def tell_failure(self, message: Message, cause: BaseException) -> None:
        ...
