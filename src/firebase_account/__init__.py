"""
Firebase Account - async client and CLI for the Firebase administrative API.

Authenticate as an account holder, create and delete databases, manage
auth secrets, security rules, auth provider settings and Simple Login users.
"""

__version__ = "0.4.0"

from .api_clients import (  # noqa: E402
    APIClientError,
    FirebaseAccount,
    FirebaseInstance,
    bootstrap_instance,
)

__all__ = [
    "__version__",
    "APIClientError",
    "FirebaseAccount",
    "FirebaseInstance",
    "bootstrap_instance",
]
