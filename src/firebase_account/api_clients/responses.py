"""Response classification for the three Firebase endpoint families.

Each check applies a fixed precedence: HTTP status, then a structured
``error`` field, then the family's boolean or status flag. Transport
failures never reach these functions; the base client raises them first.
"""

from typing import Any

import httpx

from .exceptions import (
    CredentialOrServerError,
    HttpStatusError,
    MalformedResponseError,
    RemoteError,
)


def parse_json_body(response: httpx.Response) -> Any:
    """Decode a JSON body, treating an empty body as ``None``."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise MalformedResponseError(
            f"Response was not valid JSON: {e}", status_code=response.status_code
        )


def check_admin_response(response: httpx.Response) -> Any:
    """Classify a response from the admin host (login, provisioning, tokens).

    Raises:
        HttpStatusError: status other than 200
        MalformedResponseError: body is not a JSON object
        RemoteError: body carries an ``error`` field
        CredentialOrServerError: body says ``success: false``
    """
    if response.status_code != 200:
        raise HttpStatusError(response.status_code)

    body = parse_json_body(response)
    if not isinstance(body, dict):
        raise MalformedResponseError("Expected a JSON object from the admin API")

    if body.get("error"):
        raise RemoteError(str(body["error"]), status_code=response.status_code)

    if body.get("success") is False:
        raise CredentialOrServerError()

    return body


def check_settings_response(
    response: httpx.Response,
    require_ok_status: bool = False,
    require_200: bool = False,
) -> Any:
    """Classify a response from a database ``.settings`` endpoint.

    Args:
        response: The HTTP response
        require_ok_status: Treat any non-empty body whose ``status`` is not
            ``"ok"`` as a rejection (used by rules updates)
        require_200: Reject every status other than 200 rather than only
            those above 299 (used by the secrets list and create calls)
    """
    if response.status_code > 299 or (require_200 and response.status_code != 200):
        raise HttpStatusError(response.status_code)

    body = parse_json_body(response)

    if isinstance(body, dict) and body.get("error"):
        raise RemoteError(str(body["error"]), status_code=response.status_code)

    # An empty body is success; an empty object is not
    if require_ok_status and body is not None:
        status = body.get("status") if isinstance(body, dict) else None
        if status != "ok":
            raise RemoteError(str(status), status_code=response.status_code)

    return body


def check_auth_response(response: httpx.Response) -> Any:
    """Classify a response from the Simple Login user directory.

    Errors here arrive as ``{"error": {"message": ..., "code": ...}}`` and
    are unpacked into the raised RemoteError.
    """
    if response.status_code > 299:
        raise HttpStatusError(response.status_code)

    body = parse_json_body(response)
    if body is None:
        return {}

    if isinstance(body, dict) and body.get("error"):
        error = body["error"]
        if isinstance(error, dict):
            raise RemoteError(
                str(error.get("message", "Unknown error")),
                code=error.get("code"),
                status_code=response.status_code,
            )
        raise RemoteError(str(error), status_code=response.status_code)

    if isinstance(body, dict) and body.get("status") and body["status"] != "ok":
        raise RemoteError(str(body["status"]), status_code=response.status_code)

    return body
