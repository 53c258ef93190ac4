"""
PKCS#10 request construction: subject, SubjectAlternativeName, basic constraints.

The request carries exactly two extensions:
  subjectAltName    [cn, *alt_dns] as DNS names, order preserved, not deduplicated
  basicConstraints  ca=False with no path length (DER: empty SEQUENCE)

keyUsage, subjectKeyIdentifier and authorityKeyIdentifier are deliberately
not requested.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, TypedDict

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtensionOID, NameOID

from pki.errors import RequestBuildError

if TYPE_CHECKING:
    from pki.options import CsrOptions

logger = logging.getLogger(__name__)

HASH_ALGORITHMS: dict[str, type[hashes.HashAlgorithm]] = {
    "sha224": hashes.SHA224,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}

BASIC_CONSTRAINTS_OID = ExtensionOID.BASIC_CONSTRAINTS  # 2.5.29.19


class CsrSummary(TypedDict):
    common_name: str
    dns_names: list[str]
    is_ca: bool
    path_length: Optional[int]
    signature_hash: str
    signature_valid: bool
    key_size: int


def build_subject(options: CsrOptions) -> x509.Name:
    """Map the subject options onto an X.509 name, one value per attribute."""
    return x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, options.country),
        x509.NameAttribute(NameOID.STATE_OR_PROVINCE_NAME, options.state),
        x509.NameAttribute(NameOID.LOCALITY_NAME, options.locality),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, options.organization),
        x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, options.section),
        x509.NameAttribute(NameOID.COMMON_NAME, options.cn),
    ])


def dns_names(options: CsrOptions) -> list[str]:
    """Common name first, then every --alt-dns value in command-line order."""
    return [options.cn, *options.alt_dns]


def basic_constraints() -> x509.BasicConstraints:
    """Non-CA basic constraints; an absent path length means unlimited (-1)."""
    return x509.BasicConstraints(ca=False, path_length=None)


def signature_hash(name: str) -> hashes.HashAlgorithm:
    try:
        return HASH_ALGORITHMS[name.lower()]()
    except KeyError:
        raise RequestBuildError(
            f"unsupported hash algorithm {name!r} (choose from {', '.join(sorted(HASH_ALGORITHMS))})"
        ) from None


def create_csr(private_key: rsa.RSAPrivateKey, options: CsrOptions) -> bytes:
    """
    Build and sign a DER-encoded CSR for *options* with *private_key*.

    The signature is RSA PKCS#1 v1.5 over the digest named by
    ``options.hash_algorithm`` (SHA-256 unless told otherwise).
    """
    algorithm = signature_hash(options.hash_algorithm)
    names = dns_names(options)
    logger.info("Building CSR for %s (SAN: %s)", options.cn, ", ".join(names))

    try:
        builder = (
            x509.CertificateSigningRequestBuilder()
            .subject_name(build_subject(options))
            .add_extension(
                x509.SubjectAlternativeName([x509.DNSName(d) for d in names]),
                critical=False,
            )
            .add_extension(basic_constraints(), critical=False)
        )
        csr = builder.sign(private_key, algorithm)
    except (ValueError, TypeError) as exc:
        raise RequestBuildError(f"CSR for {options.cn!r}", exc) from exc

    logger.debug("Signed CSR with %s", algorithm.name)
    return csr.public_bytes(serialization.Encoding.DER)


def describe_csr(csr_der: bytes) -> CsrSummary:
    """Decode a DER CSR into the fields a reviewer checks before submitting it."""
    from cryptography.hazmat.backends import default_backend

    csr = x509.load_der_x509_csr(csr_der, default_backend())
    cn = csr.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    san = csr.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    bc = csr.extensions.get_extension_for_oid(BASIC_CONSTRAINTS_OID).value

    return CsrSummary(
        common_name=cn[0].value if cn else "",
        dns_names=san.value.get_values_for_type(x509.DNSName),
        is_ca=bc.ca,
        path_length=bc.path_length,
        signature_hash=csr.signature_hash_algorithm.name if csr.signature_hash_algorithm else "",
        signature_valid=csr.is_signature_valid,
        key_size=csr.public_key().key_size,
    )
