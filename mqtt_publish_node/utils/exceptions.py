"""
Custom exceptions for the MQTT publish node.
"""

class MQTTError(Exception):
    """Base exception for MQTT publish node errors."""
    pass

class ConfigurationError(MQTTError):
    """Exception raised for invalid node configuration."""
    pass

class CredentialResolutionError(MQTTError):
    """Exception raised when stored credentials cannot be turned into connection parameters."""
    pass

class TlsConfigurationError(CredentialResolutionError):
    """Exception raised for missing or unusable TLS material."""
    pass

class MQTTConnectionError(MQTTError):
    """Exception raised for MQTT connection errors."""

    def __init__(self, message: str, host: str = None, port: int = None):
        super().__init__(message)
        self.host = host
        self.port = port

class ConnectTimeoutError(MQTTConnectionError):
    """Exception raised when the broker does not answer within the connect timeout."""

    def __init__(self, host: str, port: int):
        super().__init__(f"Failed to connect to MQTT broker at {host}:{port}.", host, port)

class ConnectRejectedError(MQTTConnectionError):
    """Exception raised when the broker refuses the CONNECT."""

    def __init__(self, host: str, port: int, return_code):
        super().__init__(
            f"Failed to connect to MQTT broker at {host}:{port}. Result code is: {return_code}",
            host, port
        )
        self.return_code = return_code

class PublishError(MQTTError):
    """Exception raised for transport-level publish failures."""

    def __init__(self, message: str, return_code=None):
        super().__init__(message)
        self.return_code = return_code

class NodeInitError(MQTTError):
    """Exception raised when the node cannot be initialized."""
    pass

class NodeStateError(MQTTError):
    """Exception raised when a node operation is called in the wrong lifecycle state."""
    pass
