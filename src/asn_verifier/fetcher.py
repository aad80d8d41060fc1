"""Trusted root certificate sources."""

import logging
import threading
from pathlib import Path
from typing import List, Optional, Protocol, Union

import httpx

from asn_verifier.certificate import as_bytes, encode_certificate, to_der
from asn_verifier.context import Context, background
from asn_verifier.exceptions import FetchCancelled, MalformedCertificate, NoRootSourceError, SourceFetchFailed
from asn_verifier.http_client import create_http_client

logger = logging.getLogger(__name__)

# Published location of Apple Root CA - G3 (DER)
APPLE_ROOT_CA_G3_URL = "https://www.apple.com/certificateauthority/AppleRootCA-G3.cer"


class RootCAFetcher(Protocol):
    """Anything that can return trusted root certificates."""

    def fetch(self, context: Optional[Context] = None) -> List[bytes]:
        """
        Return the trusted root certificates as base64 text.

        Raises:
            SourceFetchFailed: The roots could not be obtained; ``partial``
                holds whatever was collected before the failure
        """
        ...


class HTTPRootCAFetcher:
    """
    Fetch root certificates over HTTP on every call.

    Nothing is cached so that externally rotated roots are picked up.

    The context is checked before each request. A request already in
    flight is bounded by the timeout and the context deadline only;
    ``Context.cancel()`` from another thread takes effect at the next URL.
    """

    def __init__(
        self,
        *urls: str,
        client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
        proxy: Optional[str] = None,
    ):
        if not urls:
            raise NoRootSourceError("At least one root CA url must be set")
        self.urls = list(urls)
        self.timeout = timeout
        self.proxy = proxy
        self._client = client

    def fetch(self, context: Optional[Context] = None) -> List[bytes]:
        context = context or background()
        root_cas: List[bytes] = []
        if self._client is not None:
            self._fetch_all(self._client, context, root_cas)
        else:
            with create_http_client(proxy=self.proxy, timeout=self.timeout) as client:
                self._fetch_all(client, context, root_cas)
        logger.debug(f"Fetched {len(root_cas)} root certificate(s) via HTTP")
        return root_cas

    def _fetch_all(self, client: httpx.Client, context: Context, root_cas: List[bytes]) -> None:
        for url in self.urls:
            body = self._fetch_one(client, url, context, root_cas)
            try:
                der = to_der(body)
            except MalformedCertificate as e:
                logger.warning(f"Invalid root certificate from {url}: {e}")
                raise SourceFetchFailed(f"url: {url}, error: {e}", source=url, partial=list(root_cas)) from e
            root_cas.append(encode_certificate(der))

    def _fetch_one(self, client: httpx.Client, url: str, context: Context, partial: List[bytes]) -> bytes:
        context.check(partial=list(partial))
        remaining = context.remaining()
        timeout = self.timeout if remaining is None else min(self.timeout, remaining)

        logger.debug(f"Fetching root certificate from {url}")
        try:
            response = client.get(url, timeout=timeout)
        except httpx.TimeoutException as e:
            if context.expired:
                raise FetchCancelled(f"context deadline exceeded fetching {url}", source=url, partial=list(partial)) from e
            logger.warning(f"Timeout fetching root certificate from {url}")
            raise SourceFetchFailed(f"url: {url}, timeout: {e}", source=url, partial=list(partial)) from e
        except httpx.HTTPError as e:
            logger.warning(f"Request error fetching root certificate from {url}: {e}")
            raise SourceFetchFailed(f"url: {url}, error: {e}", source=url, partial=list(partial)) from e

        if not response.is_success:
            logger.warning(f"Failed to fetch root certificate from {url}: HTTP {response.status_code}")
            raise SourceFetchFailed(f"url: {url}, code: {response.status_code}", source=url, partial=list(partial))
        return response.content


class FileRootCAFetcher:
    """
    Read root certificates from files.

    The first successful fetch is cached for the lifetime of the instance.
    A failed read leaves the cache empty so a later call starts over.
    """

    def __init__(self, *paths: Union[str, Path]):
        if not paths:
            raise NoRootSourceError("At least one root CA file path must be set")
        self.paths = [Path(p) for p in paths]
        self._root_cas: Optional[List[bytes]] = None
        self._lock = threading.Lock()

    def fetch(self, context: Optional[Context] = None) -> List[bytes]:
        cached = self._root_cas
        if cached is not None:
            return list(cached)

        context = context or background()
        with self._lock:
            # Another thread may have populated the cache while we waited
            if self._root_cas is not None:
                return list(self._root_cas)

            collected: List[bytes] = []
            for path in self.paths:
                context.check(partial=list(collected))
                try:
                    data = path.read_bytes()
                except OSError as e:
                    logger.warning(f"Could not read root certificate file {path}: {e}")
                    raise SourceFetchFailed(f"path: {path}, error: {e}", source=str(path), partial=collected) from e
                try:
                    der = to_der(data)
                except MalformedCertificate as e:
                    logger.warning(f"Invalid root certificate file {path}: {e}")
                    raise SourceFetchFailed(f"path: {path}, error: {e}", source=str(path), partial=collected) from e
                collected.append(encode_certificate(der))

            self._root_cas = collected
            logger.info(f"Loaded {len(collected)} root certificate(s) from file")
            return list(collected)


class RawRootCAFetcher:
    """Serve root certificates supplied as base64 text."""

    def __init__(self, *root_cas: Union[bytes, str]):
        if not root_cas:
            raise NoRootSourceError("At least one root CA must be set")
        self._root_cas = tuple(as_bytes(r) for r in root_cas)

    def fetch(self, context: Optional[Context] = None) -> List[bytes]:
        return list(self._root_cas)
