"""
Connection manager for the MQTT publish node.
"""
import logging
import threading
from concurrent.futures import CancelledError, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Callable, Optional

from .config import NodeConfig
from .credentials import ResolvedCredentials
from ..mqtt_operations import MqttTransport
from ..utils.exceptions import ConnectRejectedError, ConnectTimeoutError, MQTTConnectionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionHandle:
    """One live broker session.

    The handle itself never changes; the transport it wraps is internally
    synchronized and shared by every publish.
    """
    transport: MqttTransport
    host: str
    port: int
    client_id: Optional[str] = None

    @property
    def alive(self) -> bool:
        return not self.transport.closed


def build_client_id(config: NodeConfig, service_id: Optional[str]) -> Optional[str]:
    """Configured client id, suffixed with the service id when requested.

    None means the transport or broker picks one.
    """
    if not config.client_id:
        return None
    if config.append_client_id_suffix and service_id:
        return f"{config.client_id}_{service_id}"
    return config.client_id


class ConnectionManager:
    """Creates, connects and tears down the node's single broker session."""

    def __init__(self, transport_factory: Callable[..., MqttTransport] = MqttTransport):
        self.transport_factory = transport_factory
        self._lock = threading.Lock()
        self._transport: Optional[MqttTransport] = None
        self._closed = False

    def connect(self, config: NodeConfig, credentials: ResolvedCredentials, owner_id: str,
                service_id: Optional[str] = None, timeout: Optional[float] = None) -> ConnectionHandle:
        """
        Connect to config.host:config.port, waiting at most timeout seconds.

        Args:
            config: Node configuration
            credentials: Resolved username/password and SSL context
            owner_id: Identity used to tag log lines of this session
            service_id: Deployment-unique id used as client id suffix
            timeout: Seconds to wait; defaults to config.connect_timeout_sec

        Returns:
            ConnectionHandle: the live session

        Raises:
            ConnectTimeoutError: no CONNACK within timeout
            ConnectRejectedError: broker refused the connection
            MQTTConnectionError: the attempt could not start or was cancelled by close()
        """
        if timeout is None:
            timeout = config.connect_timeout_sec
        host, port = config.host, config.port
        client_id = build_client_id(config, service_id)

        try:
            transport = self.transport_factory(
                client_id=client_id,
                clean_session=config.clean_session,
                owner_id=owner_id,
                username=credentials.username,
                password=credentials.password,
                ssl_context=credentials.ssl_context,
                connect_timeout=timeout
            )
        except ValueError as e:
            raise MQTTConnectionError(f"Cannot create MQTT client for {host}:{port}: {e}", host, port) from e

        with self._lock:
            if self._closed:
                raise MQTTConnectionError(f"Connection to {host}:{port} cancelled", host, port)
            if self._transport is not None:
                raise MQTTConnectionError("Connection already established", host, port)
            self._transport = transport

        logger.info(f"[{owner_id}] Connecting to MQTT broker at {host}:{port} (client id: {client_id or '<generated>'})")
        try:
            future = transport.connect(host, port)
            result = future.result(timeout=timeout)
        except FutureTimeoutError:
            future.cancel()
            self._abandon(transport)
            logger.error(f"[{owner_id}] Timed out after {timeout}s connecting to {host}:{port}")
            raise ConnectTimeoutError(host, port) from None
        except CancelledError:
            self._abandon(transport)
            raise MQTTConnectionError(f"Connection to {host}:{port} cancelled", host, port) from None
        except (OSError, ValueError) as e:
            self._abandon(transport)
            raise MQTTConnectionError(f"Failed to connect to MQTT broker at {host}:{port}: {e}", host, port) from e

        if not result.success:
            self._abandon(transport)
            logger.error(f"[{owner_id}] Broker at {host}:{port} refused connection: {result.return_code}")
            raise ConnectRejectedError(host, port, result.return_code)

        logger.info(f"[{owner_id}] Connected to MQTT broker at {host}:{port}")
        return ConnectionHandle(transport=transport, host=host, port=port, client_id=client_id)

    def _abandon(self, transport: MqttTransport):
        with self._lock:
            if self._transport is transport:
                self._transport = None
        disconnect_transport(transport)

    def close(self, handle: Optional[ConnectionHandle] = None):
        """Tear down the session, including an attempt still in progress.

        Idempotent and never raises. No connect() is accepted afterwards.
        """
        with self._lock:
            self._closed = True
            transport, self._transport = self._transport, None
        if handle is not None:
            disconnect(handle)
        if transport is not None and (handle is None or handle.transport is not transport):
            disconnect_transport(transport)


def disconnect_transport(transport: MqttTransport):
    try:
        transport.disconnect()
    except Exception as e:
        logger.debug(f"Disconnect error suppressed: {e}")


def disconnect(handle: Optional[ConnectionHandle]):
    """Disconnect a handle. Safe on None, closed or never-connected handles."""
    if handle is None:
        return
    disconnect_transport(handle.transport)
    logger.info(f"Disconnected from MQTT broker at {handle.host}:{handle.port}")
