"""Certificate chain classification and path validation."""

import logging
from datetime import datetime
from typing import List, Optional, Sequence, Union

from cryptography import x509
from cryptography.x509.verification import Criticality, ExtensionPolicy, PolicyBuilder, Store, VerificationError

from asn_verifier.certificate import as_bytes, describe_certificate, load_certificate
from asn_verifier.context import Context, background
from asn_verifier.exceptions import ChainValidationFailed, MalformedCertificate, UntrustedIssuer
from asn_verifier.fetcher import RootCAFetcher
from asn_verifier.models import ClassifiedChain

logger = logging.getLogger(__name__)


class ChainClassifier:
    """
    Sort x5c chain entries into leaf, roots and intermediates.

    Entries must be added in chain order: index 0 is the leaf (end-entity)
    certificate and must be added before any ancestor. Every ancestor is
    looked up in the root source; a byte-equal match on the base64 text
    makes it a root, anything else is an intermediate.
    """

    def __init__(self, fetcher: RootCAFetcher, context: Optional[Context] = None):
        self.fetcher = fetcher
        self.context = context or background()
        self._leaf: Optional[x509.Certificate] = None
        self._leaf_encoded: Optional[bytes] = None
        self._roots: List[x509.Certificate] = []
        self._intermediates: List[x509.Certificate] = []

    def add(self, index: int, entry: Union[bytes, str]) -> None:
        encoded = as_bytes(entry)
        cert = load_certificate(encoded, index=index)

        if index == 0:
            self._leaf = cert
            self._leaf_encoded = encoded
            logger.debug(f"Leaf certificate: {cert.subject.rfc4514_string()}")
            return

        if self._leaf is None:
            raise ValueError("The leaf certificate (index 0) must be added before its ancestors")

        if self._is_trusted_root(encoded):
            logger.debug(f"Chain entry {index} is a trusted root: {cert.subject.rfc4514_string()}")
            self._roots.append(cert)
        else:
            logger.debug(f"Chain entry {index} is an intermediate: {cert.subject.rfc4514_string()}")
            self._intermediates.append(cert)

    def result(self) -> ClassifiedChain:
        """
        Return the classified chain.

        Raises:
            MalformedCertificate: No leaf was added
            UntrustedIssuer: No ancestor matched a trusted root
        """
        if self._leaf is None or self._leaf_encoded is None:
            raise MalformedCertificate("Certificate chain is empty")
        if not self._roots:
            logger.warning(
                f"Certificate '{self._leaf.subject.rfc4514_string()}' is not from a recognized authority"
            )
            raise UntrustedIssuer("certificate is not from a recognized authority")
        return ClassifiedChain(
            leaf=self._leaf,
            leaf_encoded=self._leaf_encoded,
            roots=list(self._roots),
            intermediates=list(self._intermediates),
        )

    def _is_trusted_root(self, encoded: bytes) -> bool:
        # Source errors propagate unchanged
        roots = self.fetcher.fetch(self.context)
        return any(root == encoded for root in roots)


def classify_chain(
    chain: Sequence[Union[bytes, str]],
    fetcher: RootCAFetcher,
    context: Optional[Context] = None,
) -> ClassifiedChain:
    """
    Classify a whole chain without any trust-cache shortcut.

    Args:
        chain: base64 certificates, leaf first
        fetcher: Source of trusted roots
        context: Cancellation/deadline token for root fetches

    Returns:
        ClassifiedChain
    """
    classifier = ChainClassifier(fetcher, context)
    for index, entry in enumerate(chain):
        classifier.add(index, entry)
    return classifier.result()


def _signing_leaf_policy() -> ExtensionPolicy:
    # Signing leaves name no host and carry no TLS usage: SAN and EKU are optional
    return (
        ExtensionPolicy.webpki_defaults_ee()
        .may_be_present(x509.SubjectAlternativeName, Criticality.AGNOSTIC, None)
        .may_be_present(x509.ExtendedKeyUsage, Criticality.AGNOSTIC, None)
    )


def validate_chain(
    classified: ClassifiedChain,
    validation_time: Optional[datetime] = None,
    max_chain_depth: Optional[int] = None,
) -> List[x509.Certificate]:
    """
    Run X.509 path validation of the leaf against the classified pools.

    The trusted roots form the trust store, the remaining ancestors are
    offered as intermediates. Validity periods, signatures, basic
    constraints and key usage are checked by cryptography's RFC 5280
    verifier. The leaf may omit SubjectAltName and ExtendedKeyUsage, as
    notification signing certificates do.

    Args:
        classified: Output of the classifier; must contain at least one root
        validation_time: Time to validate at (default: now)
        max_chain_depth: Maximum number of intermediates (default: library default)

    Returns:
        The validated path, leaf first

    Raises:
        ChainValidationFailed: The leaf does not chain to a trusted root
    """
    if not classified.has_trusted_root:
        raise UntrustedIssuer("certificate is not from a recognized authority")

    builder = (
        PolicyBuilder()
        .store(Store(classified.roots))
        .extension_policies(ca_policy=ExtensionPolicy.webpki_defaults_ca(), ee_policy=_signing_leaf_policy())
    )
    if validation_time is not None:
        builder = builder.time(validation_time)
    if max_chain_depth is not None:
        builder = builder.max_chain_depth(max_chain_depth)
    verifier = builder.build_client_verifier()

    try:
        verified = verifier.verify(classified.leaf, classified.intermediates)
    except VerificationError as e:
        leaf_info = describe_certificate(classified.leaf)
        logger.warning(f"Chain validation failed for '{leaf_info.subject}': {e}")
        raise ChainValidationFailed(f"Chain validation failed: {e}") from e

    logger.debug(f"Chain validated ({len(verified.chain)} certificate(s))")
    return list(verified.chain)
