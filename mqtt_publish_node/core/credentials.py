"""
Broker credentials and their resolution into connection parameters.
"""
import logging
import os
import ssl
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..utils.exceptions import ConfigurationError, CredentialResolutionError, TlsConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnonymousCredentials:
    """No username or client certificate."""
    type = "anonymous"


@dataclass(frozen=True)
class BasicCredentials:
    """Username/password login. Empty strings are passed through as is."""
    username: str
    password: Optional[str] = None
    type = "basic"

    def __repr__(self):
        return f"BasicCredentials(username={self.username!r}, password=***)"


@dataclass(frozen=True)
class CertPemCredentials:
    """PEM TLS material.

    Each field holds either PEM text or a path to a PEM file. The client
    certificate and key are optional; without them only the server is
    verified against ca_cert.
    """
    ca_cert: Optional[str] = None
    cert: Optional[str] = None
    private_key: Optional[str] = None
    password: Optional[str] = None
    type = "cert.PEM"

    def __repr__(self):
        return (f"CertPemCredentials(ca_cert={'set' if self.ca_cert else None}, "
                f"cert={'set' if self.cert else None}, "
                f"private_key={'***' if self.private_key else None})")


Credentials = Union[AnonymousCredentials, BasicCredentials, CertPemCredentials]


@dataclass(frozen=True)
class ResolvedCredentials:
    """Connection-level parameters derived from stored credentials."""
    username: Optional[str] = None
    password: Optional[str] = None
    ssl_context: Optional[ssl.SSLContext] = None


def credentials_from_dict(data: Optional[Dict[str, Any]]) -> Credentials:
    """Parse the 'credentials' object of a node configuration."""
    if not data:
        return AnonymousCredentials()

    cred_type = str(data.get('type', 'anonymous'))
    if cred_type.lower() in ('anonymous', 'none'):
        return AnonymousCredentials()
    if cred_type.lower() == 'basic':
        username = data.get('username')
        if username is None:
            raise ConfigurationError("Basic credentials require a username")
        return BasicCredentials(username=username, password=data.get('password'))
    if cred_type.lower() == 'cert.pem':
        return CertPemCredentials(
            ca_cert=data.get('caCert'),
            cert=data.get('cert'),
            private_key=data.get('privateKey'),
            password=data.get('password')
        )
    raise ConfigurationError(f"Unsupported credentials type: {cred_type}")


def _is_pem_text(value: str) -> bool:
    return '-----BEGIN' in value


def _read_pem(value: str, what: str) -> str:
    """Return PEM text, reading it from disk when value is a path."""
    if _is_pem_text(value):
        return value
    path = Path(value).expanduser()
    try:
        text = path.read_text()
    except OSError as e:
        raise TlsConfigurationError(f"Cannot read {what} file {path}: {e}") from e
    if not _is_pem_text(text):
        raise TlsConfigurationError(f"{what} file {path} does not contain PEM data")
    return text


def _pem_file(value: str, what: str, temp_files: List[str]) -> str:
    """Path of a PEM file for value, spilling PEM text to a temporary file."""
    if not _is_pem_text(value):
        path = Path(value).expanduser()
        if not path.exists():
            raise TlsConfigurationError(f"{what} file not found: {path}")
        return str(path)
    # ssl only loads client chains from files
    fd, path = tempfile.mkstemp(suffix='.pem')
    temp_files.append(path)
    with os.fdopen(fd, 'w') as f:
        f.write(value)
    return path


def _load_cert_chain(context: ssl.SSLContext, creds: CertPemCredentials):
    temp_files: List[str] = []
    try:
        cert_file = _pem_file(creds.cert, "Client certificate", temp_files)
        key_file = _pem_file(creds.private_key, "Private key", temp_files)
        context.load_cert_chain(cert_file, key_file, password=creds.password or None)
    except (ssl.SSLError, OSError) as e:
        raise TlsConfigurationError(f"Invalid client certificate or key: {e}") from e
    finally:
        for path in temp_files:
            try:
                os.unlink(path)
            except OSError as e:
                logger.debug(f"Could not remove temporary PEM file {path}: {e}")


def _build_cert_pem_context(creds: CertPemCredentials) -> ssl.SSLContext:
    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    if creds.ca_cert:
        try:
            context.load_verify_locations(cadata=_read_pem(creds.ca_cert, "CA certificate"))
        except (ssl.SSLError, ValueError) as e:
            raise TlsConfigurationError(f"Invalid CA certificate: {e}") from e

    if creds.cert or creds.private_key:
        if not (creds.cert and creds.private_key):
            raise TlsConfigurationError("Client certificate and private key must be provided together")
        _load_cert_chain(context, creds)
    return context


def resolve_credentials(credentials: Credentials, use_tls: bool) -> ResolvedCredentials:
    """
    Turn stored credentials into username/password and an optional SSL context.

    Raises:
        TlsConfigurationError: use_tls is set and no usable context can be built
    """
    ssl_context = None
    if isinstance(credentials, AnonymousCredentials):
        if use_tls:
            ssl_context = ssl.create_default_context()
        return ResolvedCredentials(ssl_context=ssl_context)

    if isinstance(credentials, BasicCredentials):
        if use_tls:
            ssl_context = ssl.create_default_context()
        return ResolvedCredentials(
            username=credentials.username,
            password=credentials.password,
            ssl_context=ssl_context
        )

    if isinstance(credentials, CertPemCredentials):
        if use_tls:
            ssl_context = _build_cert_pem_context(credentials)
        else:
            logger.warning("Certificate credentials configured but TLS is disabled; certificates are ignored")
        return ResolvedCredentials(ssl_context=ssl_context)

    raise CredentialResolutionError(f"Unknown credentials type: {type(credentials).__name__}")
