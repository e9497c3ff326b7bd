#!/usr/bin/env python3
"""
MQTT Node CLI - publish messages through the MQTT publish node.

Loads a versioned node configuration file, connects once and publishes
each given payload, reporting per-message success or failure.
"""

import click
import json
import logging
import socket
import sys
import threading
from concurrent.futures import wait
from typing import Dict, List, Optional, Tuple

from . import __version__
from .core.models import Message
from .node import MqttPublishNode
from .utils.config_manager import ConfigManager
from .utils.exceptions import MQTTError
from .utils.logger import setup_logging

# Get logger
logger = logging.getLogger(__name__)


class CliContext:
    """Minimal pipeline context collecting outcomes for the CLI."""

    def __init__(self, tenant_id: str = "cli", node_id: str = "mqtt-node", service_id: Optional[str] = None):
        self.tenant_id = tenant_id
        self.node_id = node_id
        self.service_id = service_id or socket.gethostname()
        self.callback_executor = None
        self.force_ack = False
        self.succeeded: List[Message] = []
        self.failed: List[Tuple[Message, BaseException]] = []
        self._lock = threading.Lock()

    def ack(self, message: Message):
        pass

    def tell_success(self, message: Message):
        with self._lock:
            self.succeeded.append(message)

    def tell_failure(self, message: Message, cause: BaseException):
        with self._lock:
            self.failed.append((message, cause))


def parse_metadata(items: Tuple[str, ...]) -> Dict[str, str]:
    """Parse key=value pairs given on the command line."""
    metadata = {}
    for item in items:
        key, sep, value = item.partition('=')
        if not sep or not key:
            raise click.BadParameter(f"Expected key=value, got '{item}'", param_hint='--metadata')
        metadata[key] = value
    return metadata


@click.group()
@click.version_option(__version__, prog_name='mqtt-node')
@click.option('--log-dir', default=None, type=click.Path(file_okay=False),
              help='Directory for mqtt-node.log (console only if omitted)')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def cli(log_dir: Optional[str], debug: bool):
    """
    MQTT Node CLI - publish messages to an MQTT broker

    Examples:
        mqtt-node publish --config node.json --payload '{"temperature": 21}'
        mqtt-node upgrade-config node.json
    """
    setup_logging(log_dir, "DEBUG" if debug else "INFO")


@cli.command('publish')
@click.option('--config', 'config_file', required=True, type=click.Path(dir_okay=False),
              help='Node configuration file')
@click.option('--payload', 'payloads', multiple=True, required=True,
              help='Message payload (repeat to publish several messages)')
@click.option('--metadata', 'metadata_items', multiple=True,
              help='Message metadata as key=value, used by ${key} topic placeholders')
@click.option('--service-id', default=None, help='Client id suffix (defaults to host name)')
@click.option('--timeout', default=30.0, type=float, show_default=True,
              help='Seconds to wait for all acknowledgements')
def publish(config_file: str, payloads: Tuple[str, ...], metadata_items: Tuple[str, ...],
            service_id: Optional[str], timeout: float):
    """Connect to the configured broker and publish each payload."""
    metadata = parse_metadata(metadata_items)
    context = CliContext(service_id=service_id)
    node = MqttPublishNode()

    try:
        configuration = ConfigManager(config_file).load()
        node.init(context, configuration)
        click.echo(click.style(f"✓ Connected to {node.config.host_port}", fg='green'))

        futures = [node.on_message(context, Message(data=payload, metadata=metadata)) for payload in payloads]
        wait(futures, timeout=timeout)
    except MQTTError as e:
        click.echo(click.style(f"✗ Error: {str(e)}", fg='red'), err=True)
        sys.exit(1)
    finally:
        node.destroy()

    # destroy() fails whatever was still unacknowledged
    not_done = [f for f in futures if not f.done()]
    for message in context.succeeded:
        click.echo(click.style(f"✓ Published message {message.id}", fg='green'))
    for message, cause in context.failed:
        click.echo(click.style(f"✗ Message {message.id} failed: {message.metadata.get('error')}", fg='red'), err=True)
    if not_done:
        click.echo(click.style(f"✗ {len(not_done)} message(s) not acknowledged within {timeout}s", fg='red'), err=True)

    if context.failed or not_done:
        sys.exit(1)


@cli.command('upgrade-config')
@click.argument('config_file', type=click.Path(exists=True, dir_okay=False))
def upgrade_config(config_file: str):
    """Upgrade a stored node configuration file to the current version."""
    manager = ConfigManager(config_file)
    try:
        changed = manager.upgrade()
    except MQTTError as e:
        click.echo(click.style(f"✗ Error: {str(e)}", fg='red'), err=True)
        sys.exit(1)

    if changed:
        click.echo(click.style(f"✓ Upgraded {config_file} to version {manager.version}", fg='green'))
    else:
        click.echo(f"{config_file} is already at version {manager.version}")
    logger.debug(f"Configuration: {json.dumps(manager.config)}")


def main():
    cli()


if __name__ == '__main__':
    main()
