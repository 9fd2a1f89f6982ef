"""
Instance API Client for a single Firebase database.

A FirebaseInstance mirrors one remote database. It exchanges the account's
admin token for instance-scoped tokens once, then exposes security rules,
auth secrets, auth provider configuration and the Simple Login user
directory. Instances are handed out by FirebaseAccount; do not construct
them directly.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from ..config import FirebaseConfig
from .base_client import FirebaseAPIClient
from .exceptions import (
    DeletedInstanceError,
    MalformedResponseError,
    MissingTokenError,
    UnknownTokenError,
)
from .responses import (
    check_admin_response,
    check_auth_response,
    check_settings_response,
)

logger = logging.getLogger(__name__)


class FirebaseInstance(FirebaseAPIClient):
    """Client for one Firebase database owned by a FirebaseAccount.

    Lifecycle: not ready until the token exchange started by ``start()``
    succeeds; ``deleted`` becomes True once the owning account confirms
    remote deletion and never reverts.
    """

    def __init__(
        self,
        name: str,
        admin_token: str,
        config: Optional[FirebaseConfig] = None,
        session: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize instance client.

        Args:
            name: Database name, used to derive every URL
            admin_token: Admin token of the owning account
            config: Hosts and HTTP settings
            session: HTTP session shared with the owning account
        """
        super().__init__(config=config, session=session)
        self.name = name
        self.admin_token = admin_token
        self.personal_token: Optional[str] = None
        self.instance_token: Optional[str] = None
        self.deleted = False
        self._auth_tokens: Optional[List[str]] = None
        self._ready_task: Optional["asyncio.Future[FirebaseInstance]"] = None

    def __str__(self) -> str:
        return self.url

    def __repr__(self) -> str:
        return f"FirebaseInstance(name={self.name!r}, deleted={self.deleted})"

    @property
    def url(self) -> str:
        """Public endpoint of the database."""
        return self.config.database_url(self.name)

    @property
    def auth_tokens(self) -> Optional[List[str]]:
        """Copy of the cached auth secrets, or None before the first fetch."""
        if self._auth_tokens is None:
            return None
        return list(self._auth_tokens)

    def _settings_url(self, path: str) -> str:
        return f"{self.url}.settings/{path}"

    def _check_deleted(self, operation: str) -> None:
        if self.deleted:
            raise DeletedInstanceError(
                f"Cannot {operation} on deleted database {self}"
            )

    # Readiness

    def start(self) -> "asyncio.Future[FirebaseInstance]":
        """Begin the token exchange if it has not been started yet.

        Must be called from a running event loop.
        """
        if self._ready_task is None:
            self._ready_task = asyncio.ensure_future(self._exchange_tokens())
            self._ready_task.add_done_callback(self._log_readiness)
        return self._ready_task

    async def ready(self) -> "FirebaseInstance":
        """Wait for the token exchange and return this instance.

        Raises:
            MissingTokenError: If the exchange response lacks a token
            APIClientError: If the exchange request fails
        """
        return await self.start()

    @property
    def is_ready(self) -> bool:
        return self.personal_token is not None and self.instance_token is not None

    async def _exchange_tokens(self) -> "FirebaseInstance":
        response = await self._request(
            "GET",
            f"{self.config.admin_url}/firebase/{self.name}/token",
            params={"token": self.admin_token, "namespace": self.name},
        )
        body = check_admin_response(response)

        if not body.get("personalToken"):
            raise MissingTokenError("personalToken was not present.")
        if not body.get("firebaseToken"):
            raise MissingTokenError("firebaseToken was not present.")

        self.personal_token = body["personalToken"]
        self.instance_token = body["firebaseToken"]
        return self

    def _log_readiness(self, task: "asyncio.Future[FirebaseInstance]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug(f"Token exchange for {self.name} failed: {error}")
        else:
            logger.debug(f"Database {self.name} is ready")

    # Auth secrets

    async def get_auth_tokens(self) -> List[str]:
        """Get the database's currently valid auth secrets.

        The list is fetched once and then served from the local cache,
        which add_auth_token and remove_auth_token keep current.

        Returns:
            List of secrets

        Raises:
            DeletedInstanceError: If the database has been deleted
            APIClientError: If the request fails
        """
        self._check_deleted("get_auth_tokens")

        if self._auth_tokens is not None:
            return list(self._auth_tokens)

        await self.ready()
        response = await self._request(
            "GET",
            self._settings_url("secrets.json"),
            params={"auth": self.personal_token},
        )
        body = check_settings_response(response, require_200=True)
        if not isinstance(body, list):
            raise MalformedResponseError("Expected a list of auth secrets")

        self._auth_tokens = [str(token) for token in body]
        return list(self._auth_tokens)

    async def add_auth_token(self) -> str:
        """Create a new auth secret and return it.

        Raises:
            DeletedInstanceError: If the database has been deleted
            APIClientError: If the request fails
        """
        self._check_deleted("add_auth_token")
        await self.ready()

        response = await self._request(
            "POST",
            self._settings_url("secrets.json"),
            params={"auth": self.personal_token},
        )
        token = check_settings_response(response, require_200=True)
        if not isinstance(token, str):
            raise MalformedResponseError("Expected the new auth secret as a string")

        if self._auth_tokens is None:
            self._auth_tokens = []
        self._auth_tokens.append(token)
        logger.debug(f"Added auth secret to {self.name}")
        return token

    async def remove_auth_token(self, token: str) -> None:
        """Revoke an existing auth secret.

        The token list is loaded first and the token must be in it. Another
        client changing the secrets between that check and the delete can
        leave the local cache out of step with the server.

        Raises:
            DeletedInstanceError: If the database has been deleted
            UnknownTokenError: If the token is not one of the database's secrets
            APIClientError: If the request fails
        """
        self._check_deleted("remove_auth_token")

        tokens = await self.get_auth_tokens()
        if token not in tokens:
            raise UnknownTokenError(f"No such token exists on firebase {self}")

        response = await self._request(
            "DELETE",
            self._settings_url(f"secrets/{token}.json"),
            params={"auth": self.personal_token},
        )
        check_settings_response(response)

        if self._auth_tokens is not None and token in self._auth_tokens:
            self._auth_tokens.remove(token)
        logger.debug(f"Removed auth secret from {self.name}")

    # Security rules

    async def get_rules(self) -> Any:
        """Get the current security rules with the top-level ``rules`` key stripped.

        Raises:
            DeletedInstanceError: If the database has been deleted
            APIClientError: If the request fails
        """
        self._check_deleted("get_rules")
        await self.ready()

        response = await self._request(
            "GET",
            self._settings_url("rules.json"),
            params={"auth": self.personal_token},
        )
        body = check_settings_response(response)
        if not isinstance(body, dict):
            raise MalformedResponseError("Expected a rules document")
        return body.get("rules")

    async def set_rules(self, rules: Dict[str, Any]) -> None:
        """Replace the security rules.

        Args:
            rules: Either the bare rules map or a document already wrapped
                as ``{"rules": {...}}``; both are sent identically. Rule
                expressions are not validated locally, the server rejects
                invalid ones.

        Raises:
            DeletedInstanceError: If the database has been deleted
            RemoteError: If the server rejects the rules
            APIClientError: If the request fails
        """
        self._check_deleted("set_rules")
        await self.ready()

        response = await self._request(
            "PUT",
            self._settings_url("rules.json"),
            params={"auth": self.personal_token},
            json=normalize_rules(rules),
        )
        check_settings_response(response, require_ok_status=True)
        logger.debug(f"Updated security rules for {self.name}")

    # Auth provider configuration

    async def get_auth_config(self) -> Optional[Dict[str, Any]]:
        """Get the auth provider configuration.

        Returns:
            The configuration, or None if it has never been set

        Raises:
            DeletedInstanceError: If the database has been deleted
            MalformedResponseError: If the settings carry no usable authConfig
            APIClientError: If the request fails
        """
        self._check_deleted("get_auth_config")
        await self.ready()

        response = await self._request(
            "GET",
            self._settings_url(".json"),
            params={"auth": self.personal_token},
        )
        body = check_settings_response(response)
        if not isinstance(body, dict) or "authConfig" not in body:
            raise MalformedResponseError("Settings did not include authConfig")

        auth_config = body["authConfig"]
        if isinstance(auth_config, str):
            if not auth_config:
                return None
            try:
                return json.loads(auth_config)
            except ValueError as e:
                raise MalformedResponseError(f"authConfig was not valid JSON: {e}")
        return auth_config

    async def set_auth_config(self, config: Dict[str, Any]) -> None:
        """Replace the auth provider configuration.

        Raises:
            DeletedInstanceError: If the database has been deleted
            APIClientError: If the request fails
        """
        self._check_deleted("set_auth_config")
        await self.ready()

        response = await self._request(
            "POST",
            f"{self.config.admin_url}/firebase/{self.name}/authConfig",
            json={
                "token": self.admin_token,
                "authConfig": json.dumps(config),
                "_method": "put",
            },
        )
        check_settings_response(response)
        logger.debug(f"Updated auth config for {self.name}")

    # Simple Login user directory

    def _users_url(self, email: Optional[str] = None) -> str:
        url = f"{self.config.auth_url}/v2/{self.name}/users"
        if email is not None:
            url = f"{url}/{quote(email, safe='@')}"
        return url

    async def create_user(self, email: str, password: str) -> Dict[str, Any]:
        """Create a Simple Login email/password user.

        Returns:
            The created user's identity fields (uid, email, token, ...)

        Raises:
            DeletedInstanceError: If the database has been deleted
            RemoteError: If the auth server rejects the request
        """
        self._check_deleted("create_user")
        await self.ready()

        response = await self._request(
            "GET",
            f"{self.config.auth_url}/auth/firebase/create",
            params={"email": email, "password": password, "firebase": self.name},
        )
        return _auth_object(response)

    async def remove_user(self, email: str) -> Dict[str, Any]:
        """Remove a Simple Login user."""
        self._check_deleted("remove_user")
        await self.ready()

        response = await self._request(
            "DELETE",
            self._users_url(email),
            params={"token": self.admin_token},
        )
        return _auth_object(response)

    async def change_user_password(
        self, email: str, new_password: str
    ) -> Dict[str, Any]:
        """Set a new password for a Simple Login user."""
        self._check_deleted("change_user_password")
        await self.ready()

        response = await self._request(
            "GET",
            f"{self.config.auth_url}/auth/firebase/reset_password",
            params={
                "token": self.admin_token,
                "firebase": self.name,
                "email": email,
                "newPassword": new_password,
            },
        )
        return _auth_object(response)

    async def list_users(self) -> List[Dict[str, Any]]:
        """List all Simple Login users.

        Raises:
            DeletedInstanceError: If the database has been deleted
            MalformedResponseError: If the response has no ``users`` field
            RemoteError: If the auth server rejects the request
        """
        self._check_deleted("list_users")
        await self.ready()

        response = await self._request(
            "GET",
            self._users_url(),
            params={"token": self.admin_token, "firebase": self.name},
        )
        body = check_auth_response(response)
        if not isinstance(body, dict) or body.get("users") is None:
            raise MalformedResponseError("No user body")
        return list(body["users"])

    async def send_reset_email(self, email: str) -> Dict[str, Any]:
        """Ask the auth server to email a password reset link to a user."""
        self._check_deleted("send_reset_email")
        await self.ready()

        response = await self._request(
            "GET",
            f"{self.config.auth_url}/auth/firebase/reset_password",
            params={"token": self.admin_token, "firebase": self.name, "email": email},
        )
        return _auth_object(response)


def normalize_rules(rules: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap a rules map under ``rules`` unless it already is wrapped."""
    if len(rules) == 1 and rules.get("rules"):
        return rules
    return {"rules": rules}


def _auth_object(response: httpx.Response) -> Dict[str, Any]:
    body = check_auth_response(response)
    if not isinstance(body, dict):
        raise MalformedResponseError("Expected a JSON object from the auth server")
    return body
