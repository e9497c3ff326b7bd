"""
Core functionality for the MQTT publish node.
"""
from .config import NodeConfig
from .connection import ConnectionHandle, ConnectionManager, disconnect
from .credentials import (
    AnonymousCredentials, BasicCredentials, CertPemCredentials,
    ResolvedCredentials, resolve_credentials
)
from .models import Message, NodeContext, PublishOutcome
from .publisher import PublishDispatcher

__all__ = [
    'NodeConfig',
    'ConnectionHandle',
    'ConnectionManager',
    'disconnect',
    'AnonymousCredentials',
    'BasicCredentials',
    'CertPemCredentials',
    'ResolvedCredentials',
    'resolve_credentials',
    'Message',
    'NodeContext',
    'PublishOutcome',
    'PublishDispatcher'
]
