"""Network Error Handler for Firebase admin API clients.

Classifies httpx transport failures into the TransportError family and
attaches console guidance to each. Nothing here retries: a classified
error is raised straight back to the caller.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, cast

import httpx

from .exceptions import (
    DNSResolutionError,
    NetworkConnectionError,
    NetworkTimeoutError,
    SSLCertificateError,
    TransportError,
)

logger = logging.getLogger(__name__)


@dataclass
class UserGuidance:
    """User guidance information for network errors."""

    error_type: str
    troubleshooting_steps: List[str]
    additional_notes: List[str] = field(default_factory=list)

    def format_for_console(self) -> str:
        """Format guidance for rich console output."""
        content = []
        content.append(f"[bold red]Error Type:[/bold red] {self.error_type}")
        content.append("")
        content.append("[bold yellow]Troubleshooting Steps:[/bold yellow]")

        for i, step in enumerate(self.troubleshooting_steps, 1):
            content.append(f"{i}. {step}")

        if self.additional_notes:
            content.append("")
            content.append("[bold blue]Additional Notes:[/bold blue]")
            for note in self.additional_notes:
                content.append(f"• {note}")

        return "\n".join(content)


class UserGuidanceProvider:
    """Provides user guidance for different network error scenarios."""

    def __init__(self):
        self._guidance_mapping = {
            NetworkConnectionError: self._get_connection_error_guidance,
            DNSResolutionError: self._get_dns_resolution_guidance,
            SSLCertificateError: self._get_ssl_certificate_guidance,
            NetworkTimeoutError: self._get_timeout_guidance,
        }

    def get_guidance(self, error: Exception) -> UserGuidance:
        """Get user guidance for a specific error."""
        guidance_func = self._guidance_mapping.get(
            type(error), self._get_generic_guidance
        )
        return cast(UserGuidance, guidance_func(error))

    def _get_connection_error_guidance(self, error: Exception) -> UserGuidance:
        return UserGuidance(
            error_type="Connection Failed",
            troubleshooting_steps=[
                "Check your internet connection",
                "Verify the admin and database hosts in your configuration",
                "Check whether a proxy or firewall blocks outbound HTTPS",
            ],
        )

    def _get_dns_resolution_guidance(self, error: Exception) -> UserGuidance:
        return UserGuidance(
            error_type="DNS Resolution Failed",
            troubleshooting_steps=[
                "Check the spelling of the database name",
                "Verify your DNS settings",
            ],
            additional_notes=[
                "Each database is served from its own subdomain, so a "
                "misspelled name fails at DNS lookup"
            ],
        )

    def _get_ssl_certificate_guidance(self, error: Exception) -> UserGuidance:
        return UserGuidance(
            error_type="SSL Certificate Error",
            troubleshooting_steps=[
                "Check your system clock",
                "Check whether a corporate proxy rewrites certificates",
            ],
        )

    def _get_timeout_guidance(self, error: Exception) -> UserGuidance:
        return UserGuidance(
            error_type="Request Timed Out",
            troubleshooting_steps=[
                "Retry the command",
                "Raise --timeout if the network is slow",
            ],
        )

    def _get_generic_guidance(self, error: Exception) -> UserGuidance:
        return UserGuidance(
            error_type="Network Error",
            troubleshooting_steps=["Check your network connection and retry"],
        )


class NetworkErrorHandler:
    """Handles network error classification."""

    def __init__(self):
        self.guidance_provider = UserGuidanceProvider()
        self._dns_error_patterns = [
            r"name.*resolution.*failed",
            r"name.*or.*service.*not.*known",
            r"nodename.*nor.*servname.*provided",
            r"temporary.*failure.*in.*name.*resolution",
            r"getaddrinfo.*failed",
        ]
        self._ssl_error_patterns = [
            r"ssl.*certificate.*verification.*failed",
            r"certificate.*verify.*failed",
            r"ssl.*handshake.*failed",
            r"bad.*certificate",
        ]

    def classify_network_error(self, error: Exception) -> TransportError:
        """Classify an httpx exception into a TransportError.

        Args:
            error: The original httpx exception

        Returns:
            The TransportError subclass matching the failure, with guidance
            attached. The caller raises it.
        """
        error_message = str(error).lower()

        if isinstance(error, httpx.ConnectError):
            classified = self._classify_connect_error(error, error_message)
        elif isinstance(error, httpx.TimeoutException):
            if isinstance(error, httpx.ConnectTimeout):
                classified = NetworkTimeoutError("Connection timed out.")
            else:
                classified = NetworkTimeoutError("Request timed out.")
        elif isinstance(error, httpx.NetworkError):
            classified = NetworkConnectionError(f"Network error: {error}")
        else:
            classified = TransportError(f"Transport error: {error}")

        guidance = self.guidance_provider.get_guidance(classified)
        classified.user_guidance = guidance.format_for_console()
        logger.debug(f"Classified {type(error).__name__} as {type(classified).__name__}")
        return classified

    def _classify_connect_error(
        self, error: httpx.ConnectError, error_message: str
    ) -> TransportError:
        if any(re.search(p, error_message) for p in self._dns_error_patterns):
            return DNSResolutionError(
                "Cannot resolve server address. Check the host and database name."
            )

        if any(re.search(p, error_message) for p in self._ssl_error_patterns):
            return SSLCertificateError(
                "SSL certificate verification failed. Server may be using invalid certificate."
            )

        return NetworkConnectionError(f"Connection failed: {error}")

    @staticmethod
    def guidance_for(error: Exception) -> Optional[str]:
        """Return the guidance text attached to a classified error, if any."""
        guidance = getattr(error, "user_guidance", "")
        return guidance or None
