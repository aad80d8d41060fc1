"""Certificate decoding and description helpers."""

import base64
import binascii
import logging
from functools import lru_cache
from typing import Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from asn_verifier.exceptions import MalformedCertificate
from asn_verifier.models import CertificateInfo

logger = logging.getLogger(__name__)

PEM_MARKER = b"-----BEGIN CERTIFICATE-----"


def as_bytes(entry: Union[bytes, str]) -> bytes:
    """Normalize a base64 chain entry (x5c values arrive as str) to bytes."""
    if isinstance(entry, str):
        return entry.encode("ascii")
    return bytes(entry)


def encode_certificate(der: bytes) -> bytes:
    """Return the base64 text form used for all identity comparisons."""
    return base64.b64encode(der)


def to_der(data: bytes) -> bytes:
    """
    Return DER bytes for a certificate file or response body.

    PEM input is converted to DER; anything else is passed through unchanged
    so that byte-for-byte identity with the source is kept.
    """
    if data.lstrip().startswith(PEM_MARKER):
        try:
            cert = x509.load_pem_x509_certificate(data)
        except ValueError as e:
            raise MalformedCertificate(f"Invalid PEM certificate: {e}") from e
        return cert.public_bytes(serialization.Encoding.DER)
    return data


@lru_cache(maxsize=128)
def _load_cert_with_cache(der: bytes) -> x509.Certificate:
    return x509.load_der_x509_certificate(der)


def load_certificate(encoded: Union[bytes, str], index: int = 0) -> x509.Certificate:
    """
    Decode a base64 chain entry and parse it as a DER certificate.

    Args:
        encoded: Standard (padded) base64 text of a DER certificate
        index: Position in the chain, reported on failure

    Returns:
        Parsed certificate

    Raises:
        MalformedCertificate: If decoding or parsing fails
    """
    try:
        der = base64.b64decode(as_bytes(encoded), validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedCertificate(f"Chain entry {index} is not valid base64: {e}", index=index) from e
    try:
        return _load_cert_with_cache(der)
    except ValueError as e:
        raise MalformedCertificate(f"Chain entry {index} is not a valid certificate: {e}", index=index) from e


def public_key_bytes(key) -> bytes:
    """SubjectPublicKeyInfo DER of a public key, for byte-level comparison."""
    return key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def _public_key_algorithm(key) -> str:
    if isinstance(key, ec.EllipticCurvePublicKey):
        return f"EC ({key.curve.name})"
    if isinstance(key, rsa.RSAPublicKey):
        return f"RSA ({key.key_size} bits)"
    if isinstance(key, ed25519.Ed25519PublicKey):
        return "Ed25519"
    return "Unknown"


def describe_certificate(cert: x509.Certificate) -> CertificateInfo:
    """Summarize a certificate for logs and reports."""
    hash_algorithm = cert.signature_hash_algorithm
    if hash_algorithm is not None:
        signature_algorithm = hash_algorithm.name
    else:
        signature_algorithm = cert.signature_algorithm_oid.dotted_string
    return CertificateInfo(
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        serial_number=format(cert.serial_number, "x"),
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        signature_algorithm=signature_algorithm,
        public_key_algorithm=_public_key_algorithm(cert.public_key()),
        fingerprint_sha256=cert.fingerprint(hashes.SHA256()).hex(),
    )
