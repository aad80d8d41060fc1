"""CLI entry point using Typer."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import typer

from asn_verifier.certificate import describe_certificate, load_certificate
from asn_verifier.context import Context
from asn_verifier.exceptions import AsnVerifierError
from asn_verifier.fetcher import APPLE_ROOT_CA_G3_URL, FileRootCAFetcher, HTTPRootCAFetcher, RootCAFetcher
from asn_verifier.jws import decode_notification, read_header
from asn_verifier.key_provider import SHORTCUT_CHAIN, SHORTCUT_LEAF, KeyProvider
from asn_verifier.models import VerificationResult
from asn_verifier.reporter import generate_json_report, generate_text_report, set_color_output

app = typer.Typer(help="App Store server notification verifier")

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
)

logger = logging.getLogger(__name__)


def build_fetcher(
    root_files: Optional[List[Path]] = None,
    root_urls: Optional[List[str]] = None,
    apple_root: bool = False,
    timeout: float = 10.0,
    proxy: Optional[str] = None,
) -> RootCAFetcher:
    """
    Build the root certificate source from CLI options.

    Files and URLs are mutually exclusive; ``apple_root`` adds the published
    Apple Root CA - G3 location to the URL list.

    Raises:
        ValueError: No source configured, or both files and URLs given
    """
    urls = list(root_urls or [])
    if apple_root:
        urls.append(APPLE_ROOT_CA_G3_URL)

    if root_files and urls:
        raise ValueError("Use either --root-file or --root-url/--apple-root, not both")
    if root_files:
        return FileRootCAFetcher(*root_files)
    if urls:
        return HTTPRootCAFetcher(*urls, timeout=timeout, proxy=proxy)
    raise ValueError("No trusted root configured (use --root-file, --root-url or --apple-root)")


def perform_verification(
    token: str,
    key_provider: KeyProvider,
    timeout: Optional[float] = None,
) -> VerificationResult:
    """
    Verify one signed notification and collect the outcome.

    Verification errors are captured in the result rather than raised.

    Returns:
        VerificationResult
    """
    result = VerificationResult(is_valid=False, timestamp=datetime.now(timezone.utc))
    context = Context(timeout=timeout)
    try:
        algorithm, chain = read_header(token.strip())
        result.algorithm = algorithm
        result.chain_length = len(chain)
        result.payload = decode_notification(token.strip(), key_provider, context)
        result.signer = describe_certificate(load_certificate(chain[0]))
        result.is_valid = True
    except AsnVerifierError as e:
        logger.error(f"Verification failed: {e}")
        result.error = str(e)
        result.error_type = type(e).__name__
    return result


def _set_verbose(verbose: bool) -> None:
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.getLogger("asn_verifier").setLevel(logging.DEBUG)


@app.command()
def verify(
    token_file: Path = typer.Argument(..., help="File containing the signed notification (compact JWS)"),
    root_file: Optional[List[Path]] = typer.Option(
        None, "--root-file", "-r", envvar="ASN_ROOT_FILES", help="Trusted root CA file (DER or PEM), repeatable"
    ),
    root_url: Optional[List[str]] = typer.Option(
        None, "--root-url", "-u", envvar="ASN_ROOT_URLS", help="URL serving a trusted root CA, repeatable"
    ),
    apple_root: bool = typer.Option(False, "--apple-root", help=f"Trust the root served at {APPLE_ROOT_CA_G3_URL}"),
    timeout: float = typer.Option(10.0, "--timeout", "-t", help="Timeout in seconds"),
    proxy: Optional[str] = typer.Option(None, "--proxy", help="Proxy URL (e.g., http://proxy:8080)"),
    leaf_only_shortcut: bool = typer.Option(
        False, "--leaf-only-shortcut", help="Only compare the leaf certificate against the trust cache"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    color: bool = typer.Option(True, "--color/--no-color", help="Enable/disable colored output"),
):
    """
    Verify a signed App Store server notification.
    """
    _set_verbose(verbose)
    set_color_output(color)

    try:
        fetcher = build_fetcher(root_file, root_url, apple_root, timeout, proxy)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(2)

    try:
        token = token_file.read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Could not read {token_file}: {e}")
        sys.exit(2)

    key_provider = KeyProvider(
        fetcher,
        shortcut_scope=SHORTCUT_LEAF if leaf_only_shortcut else SHORTCUT_CHAIN,
    )
    result = perform_verification(token, key_provider, timeout=timeout)

    if json_output:
        print(generate_json_report(result))
    else:
        print(generate_text_report(result))

    sys.exit(0 if result.is_valid else 1)


@app.command()
def roots(
    root_file: Optional[List[Path]] = typer.Option(
        None, "--root-file", "-r", envvar="ASN_ROOT_FILES", help="Trusted root CA file (DER or PEM), repeatable"
    ),
    root_url: Optional[List[str]] = typer.Option(
        None, "--root-url", "-u", envvar="ASN_ROOT_URLS", help="URL serving a trusted root CA, repeatable"
    ),
    apple_root: bool = typer.Option(False, "--apple-root", help=f"Trust the root served at {APPLE_ROOT_CA_G3_URL}"),
    timeout: float = typer.Option(10.0, "--timeout", "-t", help="Timeout in seconds"),
    proxy: Optional[str] = typer.Option(None, "--proxy", help="Proxy URL (e.g., http://proxy:8080)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """
    Fetch the configured trusted roots and list them.
    """
    _set_verbose(verbose)

    try:
        fetcher = build_fetcher(root_file, root_url, apple_root, timeout, proxy)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(2)

    try:
        root_cas = fetcher.fetch(Context(timeout=timeout))
        certs = [load_certificate(root, index=i) for i, root in enumerate(root_cas)]
    except AsnVerifierError as e:
        logger.error(f"Could not load trusted roots: {e}")
        sys.exit(1)

    for cert in certs:
        info = describe_certificate(cert)
        print(info.subject)
        print(f"  SHA-256: {info.fingerprint_sha256}")
        print(f"  Valid Until: {info.not_after.strftime('%Y-%m-%d %H:%M:%S UTC')}")
    sys.exit(0)


if __name__ == "__main__":
    app()
