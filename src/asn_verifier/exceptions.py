"""Structured exception taxonomy for notification verification."""

from typing import List, Optional


class AsnVerifierError(Exception):
    """Base exception for all asn-verifier errors."""

    pass


class NoRootSourceError(AsnVerifierError, ValueError):
    """A root certificate source was constructed without any url, path or certificate."""

    pass


class SourceFetchFailed(AsnVerifierError):
    """Root certificates could not be obtained from their source."""

    def __init__(self, message: str, source: Optional[str] = None, partial: Optional[List[bytes]] = None):
        super().__init__(message)
        self.source = source
        # Roots collected before the failure; diagnostics only, never complete
        self.partial = partial or []


class FetchCancelled(SourceFetchFailed):
    """The caller's context was cancelled or its deadline passed."""

    pass


class CertificateError(AsnVerifierError):
    """Certificate chain errors."""

    pass


class MalformedCertificate(CertificateError):
    """A chain entry could not be base64-decoded or parsed as DER."""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class UntrustedIssuer(CertificateError):
    """No ancestor certificate matched a configured trusted root."""

    pass


class ChainValidationFailed(CertificateError):
    """X.509 path validation of the leaf certificate failed."""

    pass


class SignatureVerificationError(AsnVerifierError):
    """The signed notification is malformed or its signature does not verify."""

    pass


class MalformedPayload(AsnVerifierError):
    """The verified payload is not a JSON object."""

    pass
