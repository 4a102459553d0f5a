# -----------------------------------------------------------------------------
# Copyright (c) 2025 DS8K Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

import json
import logging
import ssl
from typing import Any, Dict, Optional, Tuple

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3 import PoolManager
from urllib3.util.ssl_ import create_urllib3_context

from ds8k_exporter.exceptions import TransportError

LOG = logging.getLogger(__name__)
urllib3.disable_warnings()

DEFAULT_TIMEOUT = 45.0
DEFAULT_CONNECT_TIMEOUT = 30.0
TLS_MODES = ('strict', 'normal', 'none')


class SSLAdapter(HTTPAdapter):
    """An HTTPS Transport Adapter that uses an explicit SSL context."""
    def __init__(self, verify_flags=ssl.VERIFY_X509_STRICT, **kwargs):
        self.verify_flags = verify_flags
        super().__init__(**kwargs)
    def init_poolmanager(self, connections, maxsize, block=False, **pool_kwargs):
        context = create_urllib3_context()
        context.verify_flags = self.verify_flags
        self.poolmanager = PoolManager(num_pools=connections, maxsize=maxsize,
                                       block=block, ssl_context=context, **pool_kwargs)


class Transport:
    """
    Performs single HTTPS calls against DS8K management endpoints.

    The transport never retries: one call, one answer. Any connection error,
    timeout or status other than 200 is raised as TransportError so callers
    decide what a failure means for them.
    """

    def __init__(self, tls_validation: str = 'none', tls_ca: Optional[str] = None,
                 timeout: float = DEFAULT_TIMEOUT, connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
                 pool_size: int = 32):
        """
        Args:
            tls_validation: 'strict', 'normal', or 'none'
            tls_ca: Path to a CA bundle used when validation is enabled
            timeout: Overall read timeout per request in seconds
            connect_timeout: Connection/handshake timeout in seconds
            pool_size: Connection pool size, one slot per concurrently scraped target
        """
        if tls_validation not in TLS_MODES:
            raise ValueError(f"Unknown TLS validation mode: {tls_validation}")
        self.tls_validation = tls_validation
        self.timeout = (connect_timeout, timeout)
        self.session = self._build_session(tls_validation, tls_ca, pool_size)

    @staticmethod
    def _build_session(tls_validation: str, tls_ca: Optional[str], pool_size: int) -> requests.Session:
        session = requests.Session()
        if tls_validation == 'none':
            session.verify = False
            session.mount("https://", HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size))
            LOG.debug("TLS validation is disabled for DS8K API connections")
        else:
            verify_flags = ssl.VERIFY_X509_STRICT if tls_validation == 'strict' else ssl.VERIFY_DEFAULT
            session.mount("https://", SSLAdapter(verify_flags=verify_flags,
                                                 pool_connections=pool_size, pool_maxsize=pool_size))
            if tls_ca:
                session.verify = tls_ca

        session.headers.update({
            "Accept": "application/json",
            "Content-Type": "application/json"
        })
        return session

    def request(self, method: str, url: str, headers: Optional[Dict[str, str]] = None,
                body: Optional[Any] = None) -> Tuple[str, int]:
        """
        Perform one HTTPS call.

        Args:
            method: HTTP method, e.g. 'GET' or 'POST'
            url: Absolute URL
            headers: Extra headers merged over the session defaults
            body: JSON-serialisable request body, or None

        Returns:
            Tuple of (response text, status code)

        Raises:
            TransportError: on connection failure, timeout or a non-200 status
        """
        data = json.dumps(body) if body is not None else None
        try:
            resp = self.session.request(method, url, headers=headers, data=data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Error doing http request URL[{url}] Error: {e}", url=url) from e

        LOG.debug(f"{method} {url} returned HTTP {resp.status_code}")
        if resp.status_code != 200:
            raise TransportError(
                f"Got error code: {resp.status_code} when accessing URL: {url}",
                url=url,
                status_code=resp.status_code
            )
        return resp.text, resp.status_code

    def close(self) -> None:
        self.session.close()
