"""Resolve the signing key of an x5c chain, with trust memoization."""

import logging
from datetime import datetime
from typing import Any, Callable, Optional, Sequence, Union

from asn_verifier.cache import TrustCache
from asn_verifier.certificate import as_bytes
from asn_verifier.chain import ChainClassifier, validate_chain
from asn_verifier.context import Context, background
from asn_verifier.exceptions import MalformedCertificate
from asn_verifier.fetcher import RootCAFetcher

logger = logging.getLogger(__name__)

# Trust-cache shortcut scopes
SHORTCUT_CHAIN = "chain"  # any chain entry equal to the cached leaf short-circuits
SHORTCUT_LEAF = "leaf"  # only the leaf (index 0) is compared

KeySink = Callable[[str, Any], None]


class KeyProvider:
    """
    Resolve and memoize the public key of a certificate chain.

    Walks the chain leaf first, classifies ancestors against the root
    source, validates the path and remembers the last validated leaf so
    that the next notification from the same signer skips validation.
    Safe to share between threads.
    """

    def __init__(
        self,
        fetcher: RootCAFetcher,
        trusted: Optional[TrustCache] = None,
        shortcut_scope: str = SHORTCUT_CHAIN,
        validation_time: Optional[datetime] = None,
        max_chain_depth: Optional[int] = None,
    ):
        if shortcut_scope not in (SHORTCUT_CHAIN, SHORTCUT_LEAF):
            raise ValueError(f"Unknown shortcut scope: {shortcut_scope!r}")
        self.fetcher = fetcher
        self.trusted = trusted if trusted is not None else TrustCache()
        self.shortcut_scope = shortcut_scope
        self.validation_time = validation_time
        self.max_chain_depth = max_chain_depth

    def resolve(self, chain: Sequence[Union[bytes, str]], context: Optional[Context] = None) -> Any:
        """
        Return the validated public key of the chain's leaf certificate.

        Args:
            chain: base64 DER certificates; index 0 must be the leaf
            context: Cancellation/deadline token for root fetches

        Returns:
            The leaf's public key (cryptography key object)

        Raises:
            MalformedCertificate: Empty chain or an undecodable entry
            UntrustedIssuer: No ancestor matched a trusted root
            ChainValidationFailed: Path validation failed
            SourceFetchFailed: Root source failed (FetchCancelled on cancellation)
        """
        if not chain:
            raise MalformedCertificate("Certificate chain is empty")
        context = context or background()

        classifier = ChainClassifier(self.fetcher, context)
        for index, entry in enumerate(chain):
            encoded = as_bytes(entry)
            if index == 0 or self.shortcut_scope == SHORTCUT_CHAIN:
                pubkey = self.trusted.lookup(encoded)
                if pubkey is not None:
                    logger.debug(f"Trusted certificate found at chain index {index}")
                    return pubkey
            classifier.add(index, encoded)

        classified = classifier.result()
        validate_chain(classified, self.validation_time, self.max_chain_depth)

        pubkey = classified.leaf.public_key()
        self.trusted.store(classified.leaf_encoded, pubkey)
        logger.info(f"Certificate chain validated for '{classified.leaf.subject.rfc4514_string()}'")
        return pubkey

    def fetch_keys(
        self,
        sink: KeySink,
        algorithm: str,
        chain: Sequence[Union[bytes, str]],
        context: Optional[Context] = None,
    ) -> None:
        """
        Resolve the chain and deliver ``(algorithm, key)`` to ``sink``.

        Nothing is delivered when resolution fails; the error propagates.
        """
        pubkey = self.resolve(chain, context)
        sink(algorithm, pubkey)
