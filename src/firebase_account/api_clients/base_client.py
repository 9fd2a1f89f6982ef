"""Base Firebase API Client.

Provides the shared HTTP session and transport error mapping used by the
account and instance clients.
"""

import logging
from typing import Optional
from urllib.parse import urlsplit

import httpx

from ..config import FirebaseConfig
from .exceptions import (
    APIClientError,
    AlreadyDeletedError,
    AuthenticationError,
    CredentialOrServerError,
    DeletedInstanceError,
    HttpStatusError,
    MalformedResponseError,
    MissingTokenError,
    RemoteError,
    TransportError,
    UnknownTokenError,
)
from .network_error_handler import NetworkErrorHandler

logger = logging.getLogger(__name__)

__all__ = [
    "FirebaseAPIClient",
    "APIClientError",
    "AlreadyDeletedError",
    "AuthenticationError",
    "CredentialOrServerError",
    "DeletedInstanceError",
    "HttpStatusError",
    "MalformedResponseError",
    "MissingTokenError",
    "RemoteError",
    "TransportError",
    "UnknownTokenError",
]


class FirebaseAPIClient:
    """Base API client with a lazily created, optionally shared HTTP session."""

    def __init__(
        self,
        config: Optional[FirebaseConfig] = None,
        session: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize base API client.

        Args:
            config: Hosts and HTTP settings, defaults to FirebaseConfig()
            session: Existing session to share; a client never closes a
                session it did not create
        """
        self.config = config or FirebaseConfig()
        self._session = session
        self._owns_session = session is None
        self._network_error_handler = NetworkErrorHandler()

    @property
    def session(self) -> httpx.AsyncClient:
        """Get or create HTTP session.

        Raises:
            TransportError: If the session was borrowed and its owner has
                closed it
        """
        if (
            self._session is not None
            and self._session.is_closed
            and not self._owns_session
        ):
            raise TransportError(
                "HTTP session was closed by its owner; this client cannot "
                "be used after the account that created it is closed."
            )
        if self._session is None or self._session.is_closed:
            self._session = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout),
                follow_redirects=True,
                verify=self.config.verify_ssl,
            )
            self._owns_session = True
        return self._session

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Issue one HTTP request and map transport failures.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            url: Absolute URL
            **kwargs: Additional arguments for httpx request

        Returns:
            HTTP response object, whatever its status

        Raises:
            TransportError: If no response was received
        """
        # Query strings carry tokens, so only the path is logged
        logger.debug(f"{method} {urlsplit(url).netloc}{urlsplit(url).path}")
        try:
            return await self.session.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise self._network_error_handler.classify_network_error(e) from e

    async def close(self) -> None:
        """Close HTTP session if this client created it."""
        if self._owns_session and self._session and not self._session.is_closed:
            await self._session.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
