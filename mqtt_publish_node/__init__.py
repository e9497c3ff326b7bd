"""
MQTT Publish Node - publishes pipeline messages to an MQTT broker.
"""

import logging

__version__ = "1.0.0"

# Get logger for this package
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

__all__ = ['__version__']
