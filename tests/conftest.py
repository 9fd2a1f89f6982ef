"""
Shared pytest fixtures for Firebase Account tests.

Provides an in-process fake of the Firebase admin service and accounts
wired to it.
"""

import pytest

from firebase_account.api_clients.account import FirebaseAccount
from tests.infrastructure.fake_firebase_server import (
    TEST_ADMIN_TOKEN,
    FakeFirebaseServer,
)


@pytest.fixture
def fake_server() -> FakeFirebaseServer:
    """Fresh fake service with one known account and no databases."""
    return FakeFirebaseServer()


@pytest.fixture
def account(fake_server: FakeFirebaseServer) -> FirebaseAccount:
    """Account holding the fake service's admin token."""
    return FirebaseAccount.from_token(TEST_ADMIN_TOKEN, session=fake_server.session())


@pytest.fixture
def existing_database(fake_server: FakeFirebaseServer):
    """A database that exists remotely but is not yet in any registry."""
    return fake_server.add_database("existing-db")
