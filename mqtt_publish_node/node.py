"""
MQTT publish node: the lifecycle the pipeline drives.
"""
import logging
import threading
from concurrent.futures import Future
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .core.config import NodeConfig
from .core.connection import ConnectionHandle, ConnectionManager
from .core.credentials import resolve_credentials
from .core.models import Message, NodeContext
from .core.publisher import PublishDispatcher
from .utils.exceptions import MQTTError, NodeInitError, NodeStateError
from .utils.migration import migrate
from .utils.text import parse_json_string_to_plain_text, process_pattern

logger = logging.getLogger(__name__)


class NodeState(Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    READY = "ready"
    INIT_FAILED = "init_failed"
    DESTROYED = "destroyed"


def get_owner_id(context: NodeContext) -> str:
    return f"Tenant[{context.tenant_id}]RuleNode[{context.node_id}]"


class MqttPublishNode:
    """Publishes every inbound message to an MQTT broker at QoS 1.

    init() connects once and blocks for at most connectTimeoutSec.
    on_message() returns immediately; exactly one of tell_success or
    tell_failure is called on the context when the broker acknowledges or
    the publish fails. destroy() closes the connection.
    """

    def __init__(self, connection_manager: Optional[ConnectionManager] = None):
        self.connection_manager = connection_manager or ConnectionManager()
        self.config: Optional[NodeConfig] = None
        self.dispatcher: Optional[PublishDispatcher] = None
        self._handle: Optional[ConnectionHandle] = None
        self._state = NodeState.UNINITIALIZED
        self._state_lock = threading.Lock()

    @property
    def state(self) -> NodeState:
        return self._state

    def init(self, context: NodeContext, configuration: Dict[str, Any]):
        """Parse configuration and connect. Raises NodeInitError on any failure."""
        with self._state_lock:
            if self._state != NodeState.UNINITIALIZED:
                raise NodeStateError(f"Cannot init node in state {self._state.value}")
            self._state = NodeState.CONNECTING

        owner_id = get_owner_id(context)
        try:
            self.config = NodeConfig.from_dict(configuration)
            credentials = resolve_credentials(self.config.credentials, self.config.ssl)
            handle = self.connection_manager.connect(
                self.config, credentials, owner_id, service_id=context.service_id
            )
        except MQTTError as e:
            with self._state_lock:
                if self._state == NodeState.CONNECTING:
                    self._state = NodeState.INIT_FAILED
            logger.error(f"[{owner_id}] Failed to initialize MQTT node: {e}")
            raise NodeInitError(str(e)) from e

        with self._state_lock:
            if self._state != NodeState.CONNECTING:
                # destroy() ran while we were connecting
                destroyed = True
            else:
                destroyed = False
                self._handle = handle
                self.dispatcher = PublishDispatcher(context.callback_executor)
                self._state = NodeState.READY
        if destroyed:
            self.connection_manager.close(handle)
            raise NodeInitError(f"Node destroyed while connecting to {self.config.host_port}")
        logger.info(f"[{owner_id}] MQTT node ready, publishing to {self.config.host_port}")

    def on_message(self, context: NodeContext, message: Message) -> Future:
        """
        Publish message and return at once.

        Returns a future with the PublishOutcome, for callers that want to
        wait; the pipeline is notified through the context either way.
        """
        handle = self._handle
        if self._state != NodeState.READY or handle is None:
            raise NodeStateError(f"Node is not ready (state: {self._state.value})")

        topic = process_pattern(self.config.topic_pattern, message.metadata, message.data)
        if context.force_ack:
            context.ack(message)
            message = message.copy()

        return self.dispatcher.publish(
            handle,
            message,
            topic,
            self._payload(message),
            self.config.retained_message,
            on_success=context.tell_success,
            on_failure=context.tell_failure,
            qos=self.config.qos
        )

    def _payload(self, message: Message) -> bytes:
        data = message.data
        if self.config.parse_to_plain_text:
            data = parse_json_string_to_plain_text(data)
        return data.encode('utf-8')

    def destroy(self):
        """Disconnect from the broker. Idempotent, never raises."""
        with self._state_lock:
            if self._state in (NodeState.UNINITIALIZED, NodeState.DESTROYED):
                return
            self._state = NodeState.DESTROYED
            handle, self._handle = self._handle, None
        try:
            self.connection_manager.close(handle)
        except Exception as e:
            logger.warning(f"Error while closing MQTT connection suppressed: {e}")

    def upgrade(self, from_version: int, configuration: Any) -> Tuple[bool, Any]:
        """Bring a stored configuration up to the current version."""
        return migrate(from_version, configuration)
