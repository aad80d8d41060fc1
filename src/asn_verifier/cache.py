"""Single-slot memo of the last validated leaf certificate."""

import logging
import threading
from typing import Any, Optional

from asn_verifier.models import TrustedEntry

logger = logging.getLogger(__name__)


class TrustCache:
    """
    Holds at most one TrustedEntry.

    Entries are immutable and swapped under a lock, so readers see either
    the old entry or the new one. A disabled cache always misses and never
    stores; results must not depend on whether the cache is enabled.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._entry: Optional[TrustedEntry] = None
        self._lock = threading.Lock()

    @property
    def entry(self) -> Optional[TrustedEntry]:
        with self._lock:
            return self._entry

    def lookup(self, name: bytes) -> Optional[Any]:
        """Return the cached public key if ``name`` is byte-equal to the cached leaf."""
        if not self.enabled:
            return None
        entry = self.entry
        if entry is not None and entry.name == name:
            logger.debug("Trusted leaf certificate matched, skipping chain validation")
            return entry.pubkey
        return None

    def store(self, name: bytes, pubkey: Any) -> None:
        if not self.enabled:
            return
        entry = TrustedEntry(name=bytes(name), pubkey=pubkey)
        with self._lock:
            self._entry = entry
