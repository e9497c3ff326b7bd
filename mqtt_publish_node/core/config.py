"""
Node configuration parsed from the pipeline's configuration surface.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .credentials import AnonymousCredentials, Credentials, credentials_from_dict
from ..utils.exceptions import ConfigurationError
from ..utils.validators import (
    validate_flag, validate_host, validate_port, validate_qos, validate_timeout,
    validate_topic_pattern
)

# MQTT QoS 1
AT_LEAST_ONCE = 1


@dataclass(frozen=True)
class NodeConfig:
    """Immutable MQTT node configuration."""
    host: str
    topic_pattern: str = "my-topic"
    port: int = 1883
    client_id: Optional[str] = None
    append_client_id_suffix: bool = False
    clean_session: bool = True
    connect_timeout_sec: int = 10
    retained_message: bool = False
    parse_to_plain_text: bool = False
    ssl: bool = False
    credentials: Credentials = field(default_factory=AnonymousCredentials)
    qos: int = AT_LEAST_ONCE

    def __post_init__(self):
        validate_host(self.host)
        validate_port(self.port)
        validate_timeout(self.connect_timeout_sec)
        validate_topic_pattern(self.topic_pattern)
        validate_qos(self.qos)
        for name in ("append_client_id_suffix", "clean_session", "retained_message",
                     "parse_to_plain_text", "ssl"):
            validate_flag(name, getattr(self, name))

    @property
    def host_port(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NodeConfig':
        """Build a config from the camelCase JSON configuration object."""
        if not isinstance(data, dict):
            raise ConfigurationError("Node configuration must be a JSON object")

        try:
            return cls(
                host=data.get('host'),
                topic_pattern=data.get('topicPattern', "my-topic"),
                port=data.get('port', 1883),
                client_id=data.get('clientId') or None,
                append_client_id_suffix=data.get('appendClientIdSuffix', False),
                clean_session=data.get('cleanSession', True),
                connect_timeout_sec=data.get('connectTimeoutSec', 10),
                retained_message=data.get('retainedMessage', False),
                parse_to_plain_text=data.get('parseToPlainText', False),
                ssl=data.get('ssl', False),
                credentials=credentials_from_dict(data.get('credentials')),
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid node configuration: {e}") from e

    @staticmethod
    def default_configuration() -> Dict[str, Any]:
        """Configuration a freshly created node starts with."""
        return {
            'topicPattern': "my-topic",
            'port': 1883,
            'connectTimeoutSec': 10,
            'cleanSession': True,
            'ssl': False,
            'retainedMessage': False,
            'parseToPlainText': False,
            'credentials': {'type': 'anonymous'},
        }
