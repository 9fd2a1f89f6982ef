"""API Client Abstractions for Firebase administration.

All HTTP functionality is contained within the account and instance
client classes.
"""

from .account import DEFAULT_AUTH_CONFIG, FirebaseAccount, default_auth_config
from .base_client import FirebaseAPIClient
from .bootstrap import bootstrap_instance, random_database_name
from .exceptions import (
    APIClientError,
    AlreadyDeletedError,
    AuthenticationError,
    CredentialOrServerError,
    DeletedInstanceError,
    DNSResolutionError,
    HttpStatusError,
    MalformedResponseError,
    MissingTokenError,
    NetworkConnectionError,
    NetworkTimeoutError,
    RemoteError,
    SSLCertificateError,
    TransportError,
    UnknownTokenError,
)
from .instance import FirebaseInstance, normalize_rules

__all__ = [
    # Clients
    "FirebaseAPIClient",
    "FirebaseAccount",
    "FirebaseInstance",
    "DEFAULT_AUTH_CONFIG",
    "default_auth_config",
    "normalize_rules",
    # Bootstrap
    "bootstrap_instance",
    "random_database_name",
    # Errors
    "APIClientError",
    "AlreadyDeletedError",
    "AuthenticationError",
    "CredentialOrServerError",
    "DeletedInstanceError",
    "DNSResolutionError",
    "HttpStatusError",
    "MalformedResponseError",
    "MissingTokenError",
    "NetworkConnectionError",
    "NetworkTimeoutError",
    "RemoteError",
    "SSLCertificateError",
    "TransportError",
    "UnknownTokenError",
]
