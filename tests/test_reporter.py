"""Tests for report generation."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from asn_verifier.models import CertificateInfo, VerificationResult
from asn_verifier.reporter import generate_json_report, generate_text_report, set_color_output


@pytest.fixture(autouse=True)
def no_color():
    set_color_output(False)
    yield
    set_color_output(True)


@pytest.fixture
def valid_result():
    now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
    signer = CertificateInfo(
        subject="CN=Prod ECC Mac App Store and iTunes Store Receipt Signing,O=Example Inc.,C=US",
        issuer="CN=Example Worldwide Developer Relations CA,O=Example Inc.,C=US",
        serial_number="7a1b",
        not_before=now - timedelta(days=1),
        not_after=now + timedelta(days=365),
        signature_algorithm="sha256",
        public_key_algorithm="EC (secp256r1)",
        fingerprint_sha256="ab12cd34",
    )
    return VerificationResult(
        is_valid=True,
        timestamp=now,
        algorithm="ES256",
        signer=signer,
        chain_length=3,
        payload={"notificationType": "DID_CHANGE_RENEWAL_PREF", "subtype": "DOWNGRADE"},
    )


@pytest.fixture
def failed_result():
    return VerificationResult(
        is_valid=False,
        timestamp=datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc),
        algorithm="ES256",
        chain_length=2,
        error="certificate is not from a recognized authority",
        error_type="UntrustedIssuer",
    )


def test_text_report_valid(valid_result):
    report = generate_text_report(valid_result)

    assert "Signed Notification Verification Report" in report
    assert "Timestamp: 2024-05-01 12:00:00 UTC" in report
    assert "Status: VALID ✓" in report
    assert "Algorithm: ES256" in report
    assert "Chain Length: 3" in report
    assert "Signer Certificate:" in report
    assert "Public Key: EC (secp256r1)" in report
    assert "SHA-256 Fingerprint: ab12cd34" in report
    assert '"notificationType": "DID_CHANGE_RENEWAL_PREF"' in report
    assert "Error" not in report


def test_text_report_failure(failed_result):
    report = generate_text_report(failed_result)

    assert "Status: INVALID ✗" in report
    assert "Error (UntrustedIssuer):" in report
    assert "not from a recognized authority" in report
    assert "Signer Certificate:" not in report
    assert "Payload:" not in report


def test_text_report_payload_keys_sorted(valid_result):
    report = generate_text_report(valid_result)

    assert report.index('"notificationType"') < report.index('"subtype"')


def test_colored_status_uses_ansi(valid_result):
    set_color_output(True)

    report = generate_text_report(valid_result)

    assert "\x1b[" in report
    assert "VALID ✓" in report


def test_json_report(valid_result):
    data = json.loads(generate_json_report(valid_result))

    assert data["is_valid"] is True
    assert data["timestamp"] == "2024-05-01T12:00:00+00:00"
    assert data["signer"]["not_after"] == "2025-05-01T12:00:00+00:00"
    assert data["payload"]["subtype"] == "DOWNGRADE"
    assert data["error"] is None


def test_json_report_failure(failed_result):
    data = json.loads(generate_json_report(failed_result))

    assert data["is_valid"] is False
    assert data["error_type"] == "UntrustedIssuer"
    assert data["signer"] is None
