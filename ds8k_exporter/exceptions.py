# -----------------------------------------------------------------------------
# Copyright (c) 2025 DS8K Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Exception hierarchy for the DS8K exporter.
"""

from typing import Optional


class ExporterError(Exception):
    """Base class for all exporter errors."""


class TransportError(ExporterError):
    """A single HTTPS call failed: connection, timeout or non-200 status."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class AuthenticationError(TransportError):
    """The token endpoint was unreachable or rejected the credentials."""


class ValidationFailure(TransportError):
    """A cached or freshly issued token was rejected when used."""


class RegistrationError(ExporterError):
    """A resource collector factory failed while building the orchestrator."""


class ConfigError(ExporterError):
    """Configuration could not be loaded or does not match a request."""
