"""Shared fixtures: certificate chains generated on the fly."""

import base64
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID


def make_name(common_name: str) -> x509.Name:
    return x509.Name([
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, "Example Certification Authority"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Example Inc."),
        x509.NameAttribute(NameOID.COUNTRY_NAME, "US"),
    ])


def make_certificate(
    common_name: str,
    issuer_cert: Optional[x509.Certificate] = None,
    issuer_key: Optional[ec.EllipticCurvePrivateKey] = None,
    ca: bool = False,
    not_before: Optional[datetime] = None,
    not_after: Optional[datetime] = None,
    issuer_name: Optional[x509.Name] = None,
    san: bool = True,
) -> tuple[x509.Certificate, ec.EllipticCurvePrivateKey]:
    """
    Create an ECDSA P-256 certificate.

    Without ``issuer_cert`` the certificate is a self-signed root.
    ``issuer_name`` overrides the issuer DN (used to forge a leaf that names
    a real issuer but is signed by another key). Leaves carry a DNS SAN unless
    ``san`` is false.
    """
    key = ec.generate_private_key(ec.SECP256R1())
    now = datetime.now(timezone.utc)
    subject = make_name(common_name)
    if issuer_name is None:
        issuer_name = issuer_cert.subject if issuer_cert is not None else subject

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=365))
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
    )
    if issuer_cert is not None:
        ski = issuer_cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier).value
        builder = builder.add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski),
            critical=False,
        )

    if ca:
        builder = builder.add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        builder = builder.add_extension(
            x509.KeyUsage(
                digital_signature=False,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
    else:
        builder = builder.add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        builder = builder.add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        if san:
            builder = builder.add_extension(
                x509.SubjectAlternativeName([x509.DNSName("signer.example.com")]),
                critical=False,
            )

    cert = builder.sign(issuer_key or key, hashes.SHA256())
    return cert, key


def to_der(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.DER)


def encode(cert: x509.Certificate) -> bytes:
    """base64 text form, as carried in an x5c header."""
    return base64.b64encode(to_der(cert))


@dataclass
class Pki:
    """Root -> intermediate -> leaf hierarchy."""

    root: x509.Certificate
    root_key: ec.EllipticCurvePrivateKey
    intermediate: x509.Certificate
    intermediate_key: ec.EllipticCurvePrivateKey
    leaf: x509.Certificate
    leaf_key: ec.EllipticCurvePrivateKey

    @property
    def chain(self) -> List[bytes]:
        return [encode(self.leaf), encode(self.intermediate), encode(self.root)]

    def issue_leaf(self, common_name: str = "Signing Certificate 2", **kwargs) -> tuple[x509.Certificate, ec.EllipticCurvePrivateKey]:
        return make_certificate(
            common_name,
            issuer_cert=self.intermediate,
            issuer_key=self.intermediate_key,
            **kwargs,
        )

    def sign(self, payload: bytes, headers: Optional[dict] = None, key=None) -> str:
        """Sign ``payload`` as a compact ES256 JWS carrying this chain in x5c."""
        all_headers = {"x5c": [c.decode("ascii") for c in self.chain]}
        all_headers.update(headers or {})
        return jwt.PyJWS().encode(payload, key or self.leaf_key, algorithm="ES256", headers=all_headers)


def build_pki() -> Pki:
    root, root_key = make_certificate("Example Root CA - G3", ca=True)
    intermediate, intermediate_key = make_certificate(
        "Example Worldwide Developer Relations CA", issuer_cert=root, issuer_key=root_key, ca=True
    )
    leaf, leaf_key = make_certificate(
        "Prod ECC Mac App Store and iTunes Store Receipt Signing",
        issuer_cert=intermediate,
        issuer_key=intermediate_key,
    )
    return Pki(root, root_key, intermediate, intermediate_key, leaf, leaf_key)


@pytest.fixture
def pki() -> Pki:
    """A fresh, valid three-certificate hierarchy."""
    return build_pki()


@pytest.fixture
def other_pki() -> Pki:
    """An unrelated hierarchy, not trusted by anything."""
    return build_pki()


@pytest.fixture
def notification_payload() -> bytes:
    return (
        b'{"notificationType":"DID_CHANGE_RENEWAL_PREF","subtype":"DOWNGRADE",'
        b'"notificationUUID":"c92e001c-96d2-4ab5-9e2f-32a5f90d6a78","notificationVersion":"2.0",'
        b'"data":{"appAppleId":982253034,"bundleId":"com.example.app","environment":"Production"}}'
    )
