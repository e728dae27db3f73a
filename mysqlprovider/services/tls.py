"""
TLS material loading and the per-provider TLS registry.

Certificates and keys are accepted either as inline PEM or as filesystem
paths. Material is parsed with cryptography and composed into an
ssl.SSLContext, which is registered under a name the connection factory
looks up when it builds driver arguments.
"""

import logging
import os
import ssl
import tempfile
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from mysqlprovider.errors import ConfigError
from mysqlprovider.models.enums import TLSMode
from mysqlprovider.schemas.provider import CustomTLSBlock

logger = logging.getLogger(__name__)

PEM_MARKER = "-----BEGIN"
CUSTOM_KEY_PREFIX = "custom"


@dataclass(frozen=True)
class TLSMaterial:
    """Resolved certificate and key bytes."""
    ca_cert: Optional[bytes] = None
    client_cert: Optional[bytes] = None
    client_key: Optional[bytes] = field(default=None, repr=False)


@dataclass(frozen=True)
class TLSConfig:
    """
    A named TLS configuration.

    Attributes:
        key: Registry name
        mode: TLS mode this configuration implements
        context: SSL context handed to the driver (None when TLS is off)
        material: Source material for custom configurations
    """
    key: str
    mode: TLSMode
    context: Optional[ssl.SSLContext] = None
    material: Optional[TLSMaterial] = None


class TLSRegistry:
    """
    Named TLS configurations owned by one provider instance.

    Created when the provider is constructed and cleared when it is closed.
    """

    def __init__(self):
        self._configs: Dict[str, TLSConfig] = {}
        self._lock = threading.Lock()
        self._closed = False

    def register(self, config: TLSConfig) -> TLSConfig:
        with self._lock:
            if self._closed:
                raise RuntimeError("TLS registry is closed")
            if config.key in self._configs:
                logger.debug(f"Replacing TLS configuration '{config.key}'")
            self._configs[config.key] = config
        return config

    def get(self, key: str) -> TLSConfig:
        """
        Look up a configuration by name.

        Raises:
            ConfigError: If no configuration is registered under key
        """
        with self._lock:
            config = self._configs.get(key)
        if config is None:
            raise ConfigError(f"TLS configuration '{key}' is not registered")
        return config

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._configs

    def __len__(self) -> int:
        with self._lock:
            return len(self._configs)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        with self._lock:
            self._configs.clear()
            self._closed = True


def read_material(value: str, field_name: str) -> bytes:
    """
    Return PEM bytes for an inline value or a file path.

    Values starting with the PEM header are used as-is and never touch the
    filesystem.

    Raises:
        ConfigError: If the path cannot be read
    """
    if value.lstrip().startswith(PEM_MARKER):
        return value.encode("utf-8")

    path = os.path.expanduser(value)
    try:
        with open(path, "rb") as fh:
            return fh.read()
    except OSError as e:
        raise ConfigError(f"custom_tls.{field_name}: cannot read '{path}'", original_error=e) from e


def _public_key_der(key) -> bytes:
    return key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def validate_material(material: TLSMaterial) -> None:
    """
    Parse the PEM material and check that the client key matches its certificate.

    Raises:
        ConfigError: On unparseable PEM, a lone cert or key, or a mismatched pair
    """
    if material.ca_cert is not None:
        try:
            x509.load_pem_x509_certificates(material.ca_cert)
        except ValueError as e:
            raise ConfigError("custom_tls.ca_cert is not a valid PEM certificate bundle", original_error=e) from e

    if bool(material.client_cert) != bool(material.client_key):
        raise ConfigError("custom_tls: client_cert and client_key must be set together")
    if not material.client_cert:
        return

    try:
        certificate = x509.load_pem_x509_certificate(material.client_cert)
    except ValueError as e:
        raise ConfigError("custom_tls.client_cert is not a valid PEM certificate", original_error=e) from e
    try:
        private_key = serialization.load_pem_private_key(material.client_key, password=None)
    except (ValueError, TypeError):
        # the error text may echo key material, so it is not attached
        raise ConfigError("custom_tls.client_key is not a valid unencrypted PEM private key") from None

    if _public_key_der(certificate.public_key()) != _public_key_der(private_key.public_key()):
        raise ConfigError("custom_tls: client_key does not match client_cert")


def _load_cert_chain(context: ssl.SSLContext, cert: bytes, key: bytes) -> None:
    # ssl only loads chains from files; the directory is removed on every path
    with tempfile.TemporaryDirectory(prefix="mysqlprovider-tls-") as tmpdir:
        cert_path = os.path.join(tmpdir, "client.crt")
        key_path = os.path.join(tmpdir, "client.key")
        with open(cert_path, "wb") as fh:
            fh.write(cert)
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "wb") as fh:
            fh.write(key)
        try:
            context.load_cert_chain(certfile=cert_path, keyfile=key_path)
        except ssl.SSLError as e:
            raise ConfigError("custom_tls: client certificate and key were rejected", original_error=e) from e


def build_custom_context(material: TLSMaterial) -> ssl.SSLContext:
    """Compose an SSL context from validated material."""
    try:
        if material.ca_cert:
            context = ssl.create_default_context(cadata=material.ca_cert.decode("utf-8"))
        else:
            context = ssl.create_default_context()
    except (ssl.SSLError, UnicodeDecodeError) as e:
        raise ConfigError("custom_tls.ca_cert could not be loaded", original_error=e) from e

    if material.client_cert and material.client_key:
        _load_cert_chain(context, material.client_cert, material.client_key)
    return context


def load_custom_tls(block: CustomTLSBlock, registry: TLSRegistry) -> TLSConfig:
    """
    Load custom TLS material and register it.

    Args:
        block: custom_tls block
        registry: Registry owned by the provider instance

    Returns:
        The registered TLSConfig

    Raises:
        ConfigError: On unreadable files, bad PEM, or a mismatched key pair
    """
    material = TLSMaterial(
        ca_cert=read_material(block.ca_cert, "ca_cert") if block.ca_cert else None,
        client_cert=read_material(block.client_cert, "client_cert") if block.client_cert else None,
        client_key=read_material(block.client_key, "client_key") if block.client_key else None,
    )
    validate_material(material)
    context = build_custom_context(material)

    key = block.config_key or f"{CUSTOM_KEY_PREFIX}-{uuid.uuid4().hex[:12]}"
    config = registry.register(TLSConfig(key=key, mode=TLSMode.CUSTOM, context=context, material=material))
    logger.info(f"Registered custom TLS configuration '{key}'")
    return config


def _builtin_config(mode: TLSMode) -> TLSConfig:
    if mode is TLSMode.OFF:
        return TLSConfig(key=mode.value, mode=mode)
    context = ssl.create_default_context()
    if mode is TLSMode.SKIP_VERIFY:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return TLSConfig(key=mode.value, mode=mode, context=context)


def resolve_tls(
    tls: Optional[str],
    custom_tls: Optional[CustomTLSBlock],
    registry: TLSRegistry,
) -> TLSConfig:
    """
    Resolve the tls setting into a registered TLSConfig.

    A custom_tls block always wins. Otherwise "false", "true" and
    "skip-verify" select the built-in modes; any other value must name a
    configuration already present in the registry.

    Raises:
        ConfigError: If the value names an unknown configuration
    """
    if custom_tls is not None:
        if tls and tls.lower() not in (TLSMode.OFF.value, TLSMode.CUSTOM.value, custom_tls.config_key or ""):
            logger.warning(f"tls='{tls}' is overridden by the custom_tls block")
        return load_custom_tls(custom_tls, registry)

    value = (tls or TLSMode.OFF.value).strip()
    lowered = value.lower()
    for mode in (TLSMode.OFF, TLSMode.ON, TLSMode.SKIP_VERIFY):
        if lowered == mode.value:
            return registry.register(_builtin_config(mode))
    if lowered == TLSMode.CUSTOM.value:
        raise ConfigError("tls='custom' requires a custom_tls block")
    return registry.get(value)
