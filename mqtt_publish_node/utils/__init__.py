"""
Utility functions for the MQTT publish node.
"""
from .exceptions import MQTTError
from .migration import migrate
from .text import parse_json_string_to_plain_text, process_pattern

__all__ = [
    'MQTTError',
    'migrate',
    'parse_json_string_to_plain_text',
    'process_pattern'
]
