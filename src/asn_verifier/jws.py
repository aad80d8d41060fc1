"""Signed notification (compact JWS) verification using PyJWT."""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import jwt

from asn_verifier.context import Context
from asn_verifier.exceptions import MalformedPayload, SignatureVerificationError
from asn_verifier.key_provider import KeyProvider

logger = logging.getLogger(__name__)

# Asymmetric algorithms only; "none" and HMAC make no sense with an x5c chain
ALLOWED_ALGORITHMS = ("ES256", "ES384", "ES512", "RS256", "RS384", "RS512", "PS256", "PS384", "PS512")

_jws = jwt.PyJWS()


def read_header(token: str, algorithms: Sequence[str] = ALLOWED_ALGORITHMS) -> Tuple[str, List[str]]:
    """
    Return the declared algorithm and x5c chain from the unverified protected header.

    Raises:
        SignatureVerificationError: Token or header is malformed
    """
    try:
        header = _jws.get_unverified_header(token)
    except jwt.PyJWTError as e:
        raise SignatureVerificationError(f"Invalid signed payload: {e}") from e

    algorithm = header.get("alg")
    if algorithm not in algorithms:
        raise SignatureVerificationError(f"Unsupported signing algorithm: {algorithm!r}")

    chain = header.get("x5c")
    if not isinstance(chain, list) or not chain or not all(isinstance(c, str) for c in chain):
        raise SignatureVerificationError("Protected header has no x5c certificate chain")
    return algorithm, chain


def verify_notification(
    token: str,
    key_provider: KeyProvider,
    context: Optional[Context] = None,
    algorithms: Sequence[str] = ALLOWED_ALGORITHMS,
) -> bytes:
    """
    Verify a compact JWS whose signing key is carried in its x5c header.

    Args:
        token: Compact serialized JWS (header.payload.signature)
        key_provider: Resolves the x5c chain to a trusted public key
        context: Cancellation/deadline token for root fetches
        algorithms: Accepted ``alg`` values

    Returns:
        The verified payload bytes

    Raises:
        SignatureVerificationError: Malformed token or bad signature
        CertificateError / SourceFetchFailed: From chain resolution, unchanged
    """
    algorithm, chain = read_header(token, algorithms)

    keys: Dict[str, Any] = {}

    def sink(alg: str, key: Any) -> None:
        keys[alg] = key

    key_provider.fetch_keys(sink, algorithm, chain, context)

    try:
        payload = _jws.decode(token, key=keys[algorithm], algorithms=[algorithm])
    except jwt.PyJWTError as e:
        logger.warning(f"Signature verification failed: {e}")
        raise SignatureVerificationError(f"Signature verification failed: {e}") from e

    logger.debug(f"Signature verified ({algorithm}, {len(payload)} byte payload)")
    return payload


def decode_notification(
    token: str,
    key_provider: KeyProvider,
    context: Optional[Context] = None,
    algorithms: Sequence[str] = ALLOWED_ALGORITHMS,
) -> Dict[str, Any]:
    """Verify a signed notification and return its JSON payload as a dict."""
    payload = verify_notification(token, key_provider, context, algorithms)
    try:
        data = json.loads(payload)
    except ValueError as e:
        raise MalformedPayload(f"Payload is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedPayload("Payload is not a JSON object")
    return data
