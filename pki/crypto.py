"""
RSA private-key generation and PEM encoding of the run's two artifacts.

Boundary: this module owns the key material and the PEM wrappers.
Subject, extensions and signing live in pki/request.py.
"""
from __future__ import annotations

import logging

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from pki.errors import KeyGenerationError

logger = logging.getLogger(__name__)

PUBLIC_EXPONENT = 65537


def generate_rsa_key(key_size: int = 4096) -> rsa.RSAPrivateKey:
    """
    Generate a fresh RSA private key from the OS random source.

    *key_size* is passed through unchecked; sizes the backend refuses
    (below 1024 bits, for instance) surface as KeyGenerationError.
    """
    from cryptography.hazmat.backends import default_backend

    logger.info("Generating %d-bit RSA key", key_size)
    try:
        return rsa.generate_private_key(
            public_exponent=PUBLIC_EXPONENT,
            key_size=key_size,
            backend=default_backend(),
        )
    except (ValueError, TypeError) as exc:
        raise KeyGenerationError(f"{key_size}-bit RSA key", exc) from exc


def private_key_to_pem(key: rsa.RSAPrivateKey) -> bytes:
    """Serialize a private key to an unencrypted PKCS#1 "RSA PRIVATE KEY" PEM block."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def csr_to_pem(csr_der: bytes) -> bytes:
    """Wrap a DER-encoded CSR in a "CERTIFICATE REQUEST" PEM block."""
    from cryptography.hazmat.backends import default_backend

    csr = x509.load_der_x509_csr(csr_der, default_backend())
    return csr.public_bytes(serialization.Encoding.PEM)
