"""Report generation (text and JSON)."""

import json
from dataclasses import asdict
from datetime import datetime
from io import StringIO
from typing import Any

from rich.console import Console

from asn_verifier.models import VerificationResult

# Global flag for colored output
_use_color = True


def set_color_output(enabled: bool) -> None:
    """Enable or disable colored output."""
    global _use_color
    _use_color = enabled


def _format_status(is_valid: bool) -> str:
    """Format verification status with visual indicator."""
    text = "VALID ✓" if is_valid else "INVALID ✗"
    if not _use_color:
        return text
    output = StringIO()
    console = Console(file=output, force_terminal=True, width=1000)
    color = "green" if is_valid else "red"
    console.print(f"[{color}]{text}[/{color}]", end="")
    return output.getvalue().strip()


def generate_text_report(result: VerificationResult) -> str:
    """
    Generate human-readable text report.

    Args:
        result: VerificationResult to report

    Returns:
        Formatted text report
    """
    lines = []
    lines.append("=" * 70)
    lines.append("Signed Notification Verification Report")
    lines.append("=" * 70)
    lines.append(f"Timestamp: {result.timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}")
    lines.append(f"Status: {_format_status(result.is_valid)}")
    if result.algorithm:
        lines.append(f"Algorithm: {result.algorithm}")
    lines.append(f"Chain Length: {result.chain_length}")

    if result.signer:
        lines.append("")
        lines.append("Signer Certificate:")
        lines.append(f"  Subject: {result.signer.subject}")
        lines.append(f"  Issuer: {result.signer.issuer}")
        lines.append(f"  Serial Number: {result.signer.serial_number}")
        lines.append(f"  Valid From: {result.signer.not_before.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        lines.append(f"  Valid Until: {result.signer.not_after.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        lines.append(f"  Public Key: {result.signer.public_key_algorithm}")
        lines.append(f"  SHA-256 Fingerprint: {result.signer.fingerprint_sha256}")

    if result.error:
        lines.append("")
        lines.append(f"Error ({result.error_type}):")
        lines.append(f"  {result.error}")

    if result.payload is not None:
        lines.append("")
        lines.append("Payload:")
        for line in json.dumps(result.payload, indent=2, sort_keys=True).splitlines():
            lines.append(f"  {line}")

    lines.append("=" * 70)
    return "\n".join(lines)


def generate_json_report(result: VerificationResult) -> str:
    """
    Generate JSON report.

    Args:
        result: VerificationResult to report

    Returns:
        JSON string
    """
    def serialize_datetime(obj: Any) -> str:
        if isinstance(obj, datetime):
            return obj.isoformat()
        raise TypeError(f"Type {type(obj)} not serializable")

    data = asdict(result)
    return json.dumps(data, indent=2, default=serialize_datetime)
