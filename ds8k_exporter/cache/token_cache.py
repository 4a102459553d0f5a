import logging
import threading
from typing import Dict, Optional


class TokenCache:
    """
    Thread-safe cache of DS8K session tokens keyed by target address

    Provides:
    - Lookup, store and invalidate of one token per address
    - No expiration: a token stays until it is explicitly invalidated
    """

    def __init__(self):
        self._tokens: Dict[str, str] = {}
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def lookup(self, address: str) -> Optional[str]:
        """
        Retrieve the cached token for an address

        Args:
            address: Target network address

        Returns:
            The token or None if nothing is cached
        """
        with self._lock:
            return self._tokens.get(address)

    def store(self, address: str, token: str) -> None:
        """
        Store a token, replacing any token already cached for the address

        Args:
            address: Target network address
            token: Session token returned by the target
        """
        with self._lock:
            self._tokens[address] = token
        self.logger.debug(f"Cached auth token for {address}")

    def invalidate(self, address: str) -> None:
        """
        Drop the cached token for an address; a no-op when none is cached

        Args:
            address: Target network address
        """
        with self._lock:
            removed = self._tokens.pop(address, None)
        if removed is not None:
            self.logger.debug(f"Invalidated auth token for {address}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def __contains__(self, address: str) -> bool:
        with self._lock:
            return address in self._tokens


# Process-wide token cache shared by every orchestrator
TOKEN_CACHE = TokenCache()
