"""Data models for chain classification and verification results."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from cryptography import x509


@dataclass
class CertificateInfo:
    """Information about a single certificate."""

    subject: str
    issuer: str
    serial_number: str
    not_before: datetime
    not_after: datetime
    signature_algorithm: str
    public_key_algorithm: str
    fingerprint_sha256: str


@dataclass
class ClassifiedChain:
    """
    An x5c chain split into its roles.

    Every non-leaf entry lands in exactly one of ``roots`` or ``intermediates``.
    """

    leaf: x509.Certificate
    leaf_encoded: bytes  # base64 text form, as it appeared in the chain
    roots: List[x509.Certificate] = field(default_factory=list)
    intermediates: List[x509.Certificate] = field(default_factory=list)

    @property
    def has_trusted_root(self) -> bool:
        return bool(self.roots)


@dataclass(frozen=True)
class TrustedEntry:
    """The last leaf certificate that passed full chain validation."""

    name: bytes  # base64 text form of the leaf
    pubkey: Any


@dataclass
class VerificationResult:
    """Result of verifying one signed notification."""

    is_valid: bool
    timestamp: datetime
    algorithm: Optional[str] = None
    signer: Optional[CertificateInfo] = None
    chain_length: int = 0
    payload: Optional[dict] = None
    error: Optional[str] = None
    error_type: Optional[str] = None  # exception class name, e.g. "UntrustedIssuer"
