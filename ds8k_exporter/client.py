# -----------------------------------------------------------------------------
# Copyright (c) 2025 DS8K Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Authenticated client handle for the DS8K REST API.

A DS8kClient binds one configured target to its session token for the
duration of a single scrape. It is never shared between scrape tasks.
"""

import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from ds8k_exporter.config import Target
from ds8k_exporter.connection import Transport
from ds8k_exporter.exceptions import AuthenticationError, TransportError, ValidationFailure

LOG = logging.getLogger(__name__)

DS8K_API_PORT = 8452
TOKEN_HEADER = "X-Auth-Token"
VALIDATION_PATH = "/systems"


class DS8kClient:

    def __init__(self, target: Target, transport: Transport, location: Optional[str] = None,
                 token: Optional[str] = None):
        self.target = target
        self.transport = transport
        self.location = target.locale or location
        self.token = token

    @property
    def address(self) -> str:
        return self.target.address

    @property
    def base_url(self) -> str:
        host = self.target.address
        if ':' not in host.split(']')[-1]:
            host = f"{host}:{DS8K_API_PORT}"
        return f"https://{host}/api/v1"

    def retrieve_auth_token(self) -> str:
        """
        Request a new session token from the target.

        Returns:
            The token string

        Raises:
            AuthenticationError: if the token endpoint fails or answers without a token
        """
        url = f"{self.base_url}/tokens"
        payload = {
            "request": {
                "params": {
                    "username": self.target.username,
                    "password": self.target.password
                }
            }
        }
        try:
            body, _ = self.transport.request("POST", url, body=payload)
        except TransportError as e:
            raise AuthenticationError(str(e), url=e.url, status_code=e.status_code) from e

        try:
            token = (json.loads(body).get("token") or {}).get("token")
        except (ValueError, AttributeError) as e:
            raise AuthenticationError(f"Unreadable token response from {url}: {e}", url=url) from e

        if not token:
            raise AuthenticationError(f"Token response from {url} did not contain a token", url=url)
        return token

    def validate(self) -> None:
        """
        Check that the current token is accepted by the target.

        Raises:
            ValidationFailure: if the lightweight validation request fails
        """
        url = f"{self.base_url}{VALIDATION_PATH}"
        try:
            self.transport.request("GET", url, headers=self._auth_headers())
        except TransportError as e:
            raise ValidationFailure(str(e), url=e.url, status_code=e.status_code) from e

    def get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Issue an authenticated GET and decode the JSON document.

        Args:
            path: API path relative to /api/v1, e.g. '/pools'
            params: Optional query parameters

        Returns:
            The decoded JSON object

        Raises:
            TransportError: on request failure or a body that is not a JSON object
        """
        url = f"{self.base_url}{path}"
        if params:
            url = f"{url}?{urlencode(params)}"
        body, _ = self.transport.request("GET", url, headers=self._auth_headers())
        LOG.debug(f"Response of '{path}': {body}")
        try:
            document = json.loads(body)
        except ValueError as e:
            raise TransportError(f"Invalid JSON returned by {url}: {e}", url=url) from e
        if not isinstance(document, dict):
            raise TransportError(f"Unexpected JSON document returned by {url}", url=url)
        return document

    def get_resources(self, path: str, key: str, params: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
        """Return the objects found under data.<key> of the response to path; other entries are dropped."""
        document = self.get(path, params=params)
        data = document.get("data")
        if not isinstance(data, dict):
            LOG.warning(f"Response of '{path}' from {self.address} has no data envelope")
            return []
        items = data.get(key)
        if items is None:
            return []
        if not isinstance(items, list):
            LOG.warning(f"Response of '{path}' from {self.address} has a non-list '{key}' entry")
            return []

        resources = [item for item in items if isinstance(item, dict)]
        if len(resources) != len(items):
            LOG.warning(f"Skipping {len(items) - len(resources)} malformed '{key}' entries "
                        f"in response of '{path}' from {self.address}")
        return resources

    def _auth_headers(self) -> Dict[str, str]:
        return {TOKEN_HEADER: self.token or ""}
