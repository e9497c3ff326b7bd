"""Shared fixtures: an in-memory transport standing in for paho and a recording pipeline context."""

import threading
from concurrent.futures import Future

import pytest

from mqtt_publish_node.core.connection import ConnectionManager
from mqtt_publish_node.mqtt_operations import ConnectResult
from mqtt_publish_node.utils.exceptions import PublishError


class FakeTransport:
    """Transport double. connect/publish behaviour is picked per test."""

    def __init__(self, connect_mode="accept", publish_mode="ack", return_code=0, **kwargs):
        self.kwargs = kwargs
        self.connect_mode = connect_mode
        self.publish_mode = publish_mode
        self.return_code = return_code
        self.connect_calls = []
        self.connect_future = None
        self.published = []
        self.disconnect_calls = 0
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self):
        return self._closed

    def connect(self, host, port):
        self.connect_calls.append((host, port))
        self.connect_future = Future()
        if self.connect_mode == "accept":
            self.connect_future.set_result(ConnectResult(True, 0))
        elif self.connect_mode == "reject":
            self.connect_future.set_result(ConnectResult(False, self.return_code))
        return self.connect_future

    def publish(self, topic, payload, qos=1, retain=False):
        future = Future()
        with self._lock:
            self.published.append((topic, payload, qos, retain, future))
        if self._closed:
            future.set_exception(PublishError("Connection closed"))
        elif self.publish_mode == "ack":
            future.set_result(None)
        elif self.publish_mode == "fail":
            future.set_exception(PublishError("Connection reset by peer"))
        return future

    def disconnect(self):
        self.disconnect_calls += 1
        if self._closed:
            return
        self._closed = True
        if self.connect_future is not None:
            self.connect_future.cancel()
        with self._lock:
            pending = [entry[4] for entry in self.published if not entry[4].done()]
        for future in pending:
            future.set_exception(PublishError("Connection closed"))


class TransportFactory:
    """Callable handed to ConnectionManager; remembers what it built."""

    def __init__(self, **behaviour):
        self.behaviour = behaviour
        self.created = []

    def __call__(self, **kwargs):
        transport = FakeTransport(**self.behaviour, **kwargs)
        self.created.append(transport)
        return transport

    @property
    def last(self):
        return self.created[-1]


class RecordingContext:
    """Pipeline context that records every success/failure report."""

    def __init__(self, service_id="svc-1", force_ack=False, callback_executor=None):
        self.tenant_id = "tenant-1"
        self.node_id = "node-1"
        self.service_id = service_id
        self.callback_executor = callback_executor
        self.force_ack = force_ack
        self.acked = []
        self.successes = []
        self.failures = []
        self._lock = threading.Lock()

    def ack(self, message):
        self.acked.append(message)

    def tell_success(self, message):
        with self._lock:
            self.successes.append(message)

    def tell_failure(self, message, cause):
        with self._lock:
            self.failures.append((message, cause))


@pytest.fixture
def transport_factory():
    return TransportFactory()


@pytest.fixture
def connection_manager(transport_factory):
    return ConnectionManager(transport_factory)


@pytest.fixture
def context():
    return RecordingContext()


@pytest.fixture
def base_config():
    return {
        'topicPattern': "devices/${deviceName}/telemetry",
        'host': "broker.local",
        'port': 1883,
        'connectTimeoutSec': 5,
        'cleanSession': True,
        'ssl': False,
        'retainedMessage': False,
        'parseToPlainText': False,
        'credentials': {'type': 'anonymous'},
    }
