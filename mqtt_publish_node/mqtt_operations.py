"""
MQTT transport built on paho-mqtt.

Wraps a paho client so that connect and publish return
concurrent.futures.Future objects completed from paho's network thread.
"""
import logging
import threading
from concurrent.futures import Future, InvalidStateError
from dataclasses import dataclass
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .utils.exceptions import MQTTConnectionError, PublishError

KEEPALIVE = 60
_NO_ACK = object()


@dataclass(frozen=True)
class ConnectResult:
    """Outcome of a CONNECT handshake."""
    success: bool
    return_code: Any = None


def _resolve(future: Future, result=None, exception: BaseException = None) -> bool:
    """Complete future unless it is already done or cancelled."""
    if future.done():
        return False
    try:
        if exception is not None:
            future.set_exception(exception)
        else:
            future.set_result(result)
    except InvalidStateError:
        # Lost a race with cancel()
        return False
    return True


class MqttTransport:
    """Thread-safe MQTT session over one paho client.

    One instance is one broker session: connect() may be called once, then
    publish() from any number of threads, then disconnect(). Publish
    futures are correlated to PUBACKs by paho message id.
    """

    def __init__(self, client_id: Optional[str] = None, clean_session: bool = True,
                 owner_id: str = "", username: Optional[str] = None, password: Optional[str] = None,
                 ssl_context=None, connect_timeout: float = 5.0, keepalive: int = KEEPALIVE):
        self.owner_id = owner_id
        self.keepalive = keepalive
        self.logger = logging.getLogger(__name__)

        self.client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id or "",
            clean_session=clean_session,
            protocol=mqtt.MQTTv311
        )
        self.client.enable_logger(logging.getLogger("mqtt_publish_node.paho"))
        self.client.connect_timeout = connect_timeout
        if username is not None:
            self.client.username_pw_set(username, password)
        if ssl_context is not None:
            self.client.tls_set_context(ssl_context)

        self.client.on_connect = self._on_connect
        self.client.on_publish = self._on_publish
        self.client.on_disconnect = self._on_disconnect

        # Guards the fields below. Never held while calling into paho:
        # paho holds its own locks while running on_publish.
        self._lock = threading.Lock()
        self._connect_future: Optional[Future] = None
        self._pending: Dict[int, Future] = {}
        self._early_acks: Dict[int, Any] = {}
        self._publishing = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def is_connected(self) -> bool:
        return not self._closed and self.client.is_connected()

    def connect(self, host: str, port: int) -> Future:
        """Start connecting in the background. The future yields a ConnectResult."""
        future = Future()
        with self._lock:
            if self._closed:
                raise MQTTConnectionError("Transport already closed", host, port)
            if self._connect_future is not None:
                raise MQTTConnectionError("Connect already requested", host, port)
            self._connect_future = future

        self.logger.debug(f"[{self.owner_id}] Connecting to {host}:{port}")
        self.client.connect_async(host, port, keepalive=self.keepalive)
        self.client.loop_start()
        return future

    def publish(self, topic: str, payload: bytes, qos: int = 1, retain: bool = False) -> Future:
        """Send a PUBLISH. The future completes with None on PUBACK or fails with PublishError."""
        future = Future()
        if self._closed:
            _resolve(future, exception=PublishError("Connection closed"))
            return future

        with self._lock:
            self._publishing += 1
        mid, error, early = None, None, _NO_ACK
        try:
            info = self.client.publish(topic, payload, qos=qos, retain=retain)
            if info.rc == mqtt.MQTT_ERR_SUCCESS:
                mid = info.mid
            elif info.rc == mqtt.MQTT_ERR_NO_CONN and qos > 0:
                # paho keeps the message and sends it after reconnecting
                self.logger.debug(f"[{self.owner_id}] Message {info.mid} queued until reconnect")
                mid = info.mid
            else:
                error = PublishError(f"Publish failed: {mqtt.error_string(info.rc)}", info.rc)
        except (ValueError, TypeError) as e:
            error = PublishError(f"Publish rejected: {e}")
        finally:
            with self._lock:
                self._publishing -= 1
                if mid is not None:
                    early = self._early_acks.pop(mid, _NO_ACK)
                    if early is _NO_ACK:
                        if self._closed:
                            # disconnect() ran while we were publishing
                            error = PublishError("Connection closed")
                        else:
                            self._pending[mid] = future
                if not self._publishing:
                    # Acks left over now belong to no caller
                    self._early_acks.clear()

        if error is not None:
            _resolve(future, exception=error)
        elif early is not _NO_ACK:
            self._complete_publish(future, mid, early)
        return future

    def disconnect(self):
        """Close the session. Idempotent; never raises."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            connect_future = self._connect_future
            pending = list(self._pending.values())
            self._pending.clear()
            self._early_acks.clear()

        if connect_future is not None:
            connect_future.cancel()

        try:
            self.client.disconnect()
        except Exception as e:
            self.logger.debug(f"[{self.owner_id}] Disconnect error suppressed: {e}")
        try:
            self.client.loop_stop()
        except Exception as e:
            self.logger.debug(f"[{self.owner_id}] Error stopping network loop suppressed: {e}")

        for future in pending:
            _resolve(future, exception=PublishError("Connection closed"))
        if pending:
            self.logger.warning(f"[{self.owner_id}] {len(pending)} publish(es) unacknowledged at disconnect")

    def _complete_publish(self, future: Future, mid: int, reason_code):
        if getattr(reason_code, 'is_failure', False):
            _resolve(future, exception=PublishError(
                f"Broker rejected message {mid}: {reason_code}", reason_code))
        else:
            _resolve(future, None)

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        with self._lock:
            future = self._connect_future
        failed = getattr(reason_code, 'is_failure', reason_code != 0)
        if future is None or future.done():
            if failed:
                self.logger.warning(f"[{self.owner_id}] Reconnect refused: {reason_code}")
            else:
                self.logger.info(f"[{self.owner_id}] Reconnected to broker")
            return
        _resolve(future, ConnectResult(not failed, reason_code))

    def _on_publish(self, client, userdata, mid, reason_code, properties):
        with self._lock:
            future = self._pending.pop(mid, None)
            if future is None:
                if self._closed:
                    return
                if self._publishing:
                    # PUBACK may have arrived before publish() registered the mid
                    self._early_acks[mid] = reason_code
                else:
                    self.logger.debug(f"[{self.owner_id}] Ignoring PUBACK for unknown message {mid}")
                return
        self._complete_publish(future, mid, reason_code)

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        if self._closed:
            self.logger.debug(f"[{self.owner_id}] Disconnected")
        else:
            # paho reconnects and resends in-flight QoS 1 messages
            self.logger.warning(f"[{self.owner_id}] Connection lost: {reason_code}")
