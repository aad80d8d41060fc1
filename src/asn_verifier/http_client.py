"""HTTP client factory."""

from typing import Optional

import httpx

from asn_verifier import __version__

USER_AGENT = f"asn-verifier/{__version__}"


def create_http_client(
    proxy: Optional[str] = None,
    timeout: float = 10.0,
    follow_redirects: bool = True,
) -> httpx.Client:
    """
    Create an httpx client for fetching root certificates.

    Args:
        proxy: Proxy URL (e.g., http://proxy:8080)
        timeout: Default request timeout in seconds
        follow_redirects: Follow HTTP redirects

    Returns:
        Configured httpx.Client (caller closes it)
    """
    return httpx.Client(
        proxy=proxy,
        timeout=timeout,
        follow_redirects=follow_redirects,
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "application/pkix-cert,application/x-x509-ca-cert,*/*",
        },
    )
