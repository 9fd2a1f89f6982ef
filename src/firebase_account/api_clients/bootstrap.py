"""Throwaway database helper, mainly for test fixtures."""

import logging
import secrets
import string
from typing import Optional

from ..config import FirebaseConfig
from .account import FirebaseAccount
from .instance import FirebaseInstance

logger = logging.getLogger(__name__)

_NAME_ALPHABET = string.ascii_lowercase + string.digits


def random_database_name(length: int = 11) -> str:
    """Generate a random lowercase base-36 database name."""
    return "".join(secrets.choice(_NAME_ALPHABET) for _ in range(length))


async def bootstrap_instance(
    token: Optional[str] = None,
    email: Optional[str] = None,
    password: Optional[str] = None,
    config: Optional[FirebaseConfig] = None,
) -> FirebaseInstance:
    """Create a database under a random name with a teardown handle.

    The returned instance carries an async ``tear_down()`` that deletes the
    database through the account that created it.

    Args:
        token: Admin token; used in preference to email/password
        email: Account email address
        password: Account password
        config: Hosts and HTTP settings

    Raises:
        ValueError: If neither a token nor email and password are given
        AuthenticationError: If login fails
        APIClientError: If creating the database fails
    """
    if token:
        account = FirebaseAccount.from_token(token, config=config)
    elif email and password:
        account = await FirebaseAccount.from_credentials(email, password, config=config)
    else:
        raise ValueError("bootstrap_instance needs a token or an email and password")

    name = random_database_name()
    instance = await account.create_database(name)
    logger.debug(f"Bootstrapped database {name}")

    async def tear_down() -> None:
        await account.delete_database(instance)

    instance.tear_down = tear_down  # type: ignore[attr-defined]
    instance.account = account  # type: ignore[attr-defined]
    return instance
