"""
Account API Client for Firebase administration.

A FirebaseAccount holds an admin token and provisions, looks up and deletes
databases. It keeps a registry of the FirebaseInstance objects it has
handed out, keyed by database name, and drops entries on deletion.
"""

import copy
import logging
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import httpx

from ..config import FirebaseConfig
from .base_client import FirebaseAPIClient
from .exceptions import (
    AlreadyDeletedError,
    APIClientError,
    AuthenticationError,
    MissingTokenError,
)
from .instance import FirebaseInstance
from .responses import check_admin_response

logger = logging.getLogger(__name__)


DEFAULT_AUTH_CONFIG: Dict[str, Any] = {
    "domains": ["localhost", "127.0.0.1"],
    "sessionLengthSeconds": 86400,
    "anonymous": {"enabled": False},
    "facebook": {"enabled": False, "key": "", "secret": ""},
    "twitter": {"enabled": False, "key": "", "secret": ""},
    "github": {"enabled": False, "key": "", "secret": ""},
    "google": {"enabled": False, "key": "", "secret": ""},
    "password": {"enabled": False, "emails": {}},
}


def default_auth_config() -> Dict[str, Any]:
    """Return a fresh copy of the service's default auth provider settings."""
    return copy.deepcopy(DEFAULT_AUTH_CONFIG)


class FirebaseAccount(FirebaseAPIClient):
    """Client for account-level operations: login and database lifecycle."""

    DEFAULT_AUTH_CONFIG = DEFAULT_AUTH_CONFIG

    def __init__(
        self,
        admin_token: str,
        config: Optional[FirebaseConfig] = None,
        session: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize account client.

        Prefer from_token or from_credentials.

        Args:
            admin_token: Admin token authorizing provisioning calls
            config: Hosts and HTTP settings
            session: Existing HTTP session to use
        """
        super().__init__(config=config, session=session)
        self._admin_token = admin_token
        self._databases: Dict[str, FirebaseInstance] = {}

    @property
    def admin_token(self) -> str:
        return self._admin_token

    @classmethod
    def from_token(
        cls,
        token: str,
        config: Optional[FirebaseConfig] = None,
        session: Optional[httpx.AsyncClient] = None,
    ) -> "FirebaseAccount":
        """Create an account from an admin token without contacting the server.

        The token is assumed valid until its first use.
        """
        return cls(token, config=config, session=session)

    @classmethod
    async def from_credentials(
        cls,
        email: str,
        password: str,
        config: Optional[FirebaseConfig] = None,
        session: Optional[httpx.AsyncClient] = None,
    ) -> "FirebaseAccount":
        """Log in with email and password and return a ready account.

        Args:
            email: Email address associated with the account
            password: Password for the account

        Returns:
            FirebaseAccount carrying the admin token issued by the server

        Raises:
            AuthenticationError: If login fails for any reason; the
                underlying error is chained as ``__cause__``
        """
        account = cls("", config=config, session=session)
        try:
            response = await account._request(
                "GET",
                f"{account.config.admin_url}/account/login",
                params={"email": email, "password": password},
            )
            body = check_admin_response(response)
            token = body.get("adminToken")
            if not token or not isinstance(token, str):
                raise MissingTokenError("adminToken was not present.")
        except APIClientError as e:
            await account.close()
            logger.debug(f"Login failed for {email}: {e}")
            raise AuthenticationError(
                f"Authentication failed: {e}", status_code=e.status_code
            ) from e

        account._admin_token = token
        logger.debug(f"Logged in as {email}")
        return account

    # Registry

    @property
    def databases(self) -> Mapping[str, FirebaseInstance]:
        """Read-only view of the instances known to this account."""
        return MappingProxyType(self._databases)

    def is_registered(self, name: str) -> bool:
        return name in self._databases

    def registered_instance(self, name: str) -> Optional[FirebaseInstance]:
        return self._databases.get(name)

    def _new_instance(self, name: str) -> FirebaseInstance:
        return FirebaseInstance(
            name, self._admin_token, config=self.config, session=self.session
        )

    # Database lifecycle

    async def create_database(self, name: str) -> FirebaseInstance:
        """Create a new database under the account.

        The returned instance has started, but not necessarily finished, its
        token exchange; its methods wait for it, or await ``instance.ready()``.
        A name that is already taken is rejected by the server.

        Args:
            name: Name of the new database

        Returns:
            FirebaseInstance registered under ``name``

        Raises:
            TransportError: If the request could not be sent
            HttpStatusError: If the server answered with a status other than 200
            RemoteError: If the server reported an error
            CredentialOrServerError: If the server answered ``success: false``
        """
        response = await self._request(
            "POST",
            f"{self.config.admin_url}/firebase/{name}",
            data={"token": self._admin_token, "appName": name},
        )
        check_admin_response(response)

        instance = self._new_instance(name)
        instance.start()
        self._databases[name] = instance
        logger.info(f"Created database {name}")
        return instance

    async def get_database(self, name: str) -> FirebaseInstance:
        """Get an existing database, from the registry when possible.

        Args:
            name: Name of the database

        Returns:
            A ready FirebaseInstance

        Raises:
            APIClientError: If the token exchange fails, for instance
                because no such database exists
        """
        cached = self._databases.get(name)
        if cached is not None:
            return cached

        instance = self._new_instance(name)
        await instance.ready()
        self._databases[name] = instance
        return instance

    async def delete_database(self, instance: FirebaseInstance) -> None:
        """Delete a database from the account.

        Args:
            instance: The database to delete

        Raises:
            AlreadyDeletedError: If the instance is already marked deleted;
                checked locally before any request
            APIClientError: If the delete request fails
        """
        if instance.deleted:
            raise AlreadyDeletedError(
                f"Cannot delete already-deleted database {instance}"
            )

        response = await self._request(
            "POST",
            f"{self.config.admin_url}/firebase/{instance.name}",
            data={
                "token": self._admin_token,
                "namespace": instance.name,
                "_method": "DELETE",
            },
        )
        check_admin_response(response)

        instance.deleted = True
        self._databases.pop(instance.name, None)
        logger.info(f"Deleted database {instance.name}")

    @staticmethod
    async def bootstrap_instance(
        token: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
        config: Optional[FirebaseConfig] = None,
    ) -> FirebaseInstance:
        """Create a throwaway database; see bootstrap.bootstrap_instance."""
        from .bootstrap import bootstrap_instance

        return await bootstrap_instance(
            token=token, email=email, password=password, config=config
        )
