"""Tests for transport failure classification and console guidance."""

import httpx
import pytest

from firebase_account.api_clients.exceptions import (
    DNSResolutionError,
    NetworkConnectionError,
    NetworkTimeoutError,
    SSLCertificateError,
    TransportError,
)
from firebase_account.api_clients.network_error_handler import (
    NetworkErrorHandler,
    UserGuidance,
)


@pytest.fixture
def handler():
    return NetworkErrorHandler()


class TestClassifyNetworkError:
    @pytest.mark.parametrize(
        "message",
        [
            "[Errno -2] Name or service not known",
            "[Errno -3] Temporary failure in name resolution",
            "[Errno 8] nodename nor servname provided, or not known",
        ],
    )
    def test_dns_failures(self, handler, message):
        error = handler.classify_network_error(httpx.ConnectError(message))

        assert isinstance(error, DNSResolutionError)

    def test_ssl_failure(self, handler):
        message = "[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed"

        error = handler.classify_network_error(httpx.ConnectError(message))

        assert isinstance(error, SSLCertificateError)

    def test_plain_connect_failure(self, handler):
        error = handler.classify_network_error(
            httpx.ConnectError("[Errno 111] Connection refused")
        )

        assert type(error) is NetworkConnectionError
        assert "Connection refused" in str(error)

    def test_connect_timeout(self, handler):
        error = handler.classify_network_error(httpx.ConnectTimeout("timed out"))

        assert isinstance(error, NetworkTimeoutError)
        assert "Connection timed out" in str(error)

    def test_read_timeout(self, handler):
        error = handler.classify_network_error(httpx.ReadTimeout("timed out"))

        assert isinstance(error, NetworkTimeoutError)

    def test_other_network_error(self, handler):
        error = handler.classify_network_error(httpx.ReadError("reset by peer"))

        assert type(error) is NetworkConnectionError

    def test_unknown_transport_error(self, handler):
        error = handler.classify_network_error(httpx.UnsupportedProtocol("ftp://"))

        assert type(error) is TransportError

    def test_guidance_attached(self, handler):
        error = handler.classify_network_error(httpx.ReadTimeout("timed out"))

        assert "Request Timed Out" in error.user_guidance
        assert NetworkErrorHandler.guidance_for(error) == error.user_guidance

    def test_no_guidance_on_plain_exception(self):
        assert NetworkErrorHandler.guidance_for(ValueError("x")) is None


def test_guidance_formatting_numbers_steps():
    guidance = UserGuidance(
        error_type="Connection Failed",
        troubleshooting_steps=["first", "second"],
        additional_notes=["note"],
    )

    text = guidance.format_for_console()

    assert "1. first" in text
    assert "2. second" in text
    assert "• note" in text
