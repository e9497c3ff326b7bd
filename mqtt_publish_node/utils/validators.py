"""
Validation utilities for node configuration.
"""
from .exceptions import ConfigurationError

def validate_host(host: str) -> None:
    """Validate broker host."""
    if not host or not str(host).strip():
        raise ConfigurationError("Host cannot be empty")

def validate_port(port: int) -> None:
    """Validate broker port."""
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port <= 65535:
        raise ConfigurationError(f"Port must be an integer between 1 and 65535, got {port!r}")

def validate_topic_pattern(pattern: str) -> None:
    """Validate topic pattern format."""
    if not pattern:
        raise ConfigurationError("Topic pattern cannot be empty")

    # Wildcards are only meaningful for subscriptions
    if '#' in pattern or '+' in pattern:
        raise ConfigurationError("Topic pattern must not contain MQTT wildcards '#' or '+'")

    if len(pattern.encode('utf-8')) > 65535:
        raise ConfigurationError("Topic pattern length exceeds maximum allowed (65,535 bytes)")

def validate_timeout(timeout: int) -> None:
    """Validate connect timeout value."""
    if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
        raise ConfigurationError(f"Connect timeout must be a positive integer, got {timeout!r}")

def validate_qos(qos: int) -> None:
    """Validate QoS level. Only 'at least once' is supported."""
    if qos != 1:
        raise ConfigurationError("QoS must be 1 (at least once)")

def validate_flag(name: str, value: bool) -> None:
    """Validate an on/off option. Strings such as "false" are rejected."""
    if not isinstance(value, bool):
        raise ConfigurationError(f"{name} must be true or false, got {value!r}")
