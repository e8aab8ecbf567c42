"""Tests for the Resend-backed confirmation email."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from openletter.core.config import settings
from openletter.services.email_service import (
    RESEND_API_URL,
    EmailService,
    build_confirmation_url,
)

CONFIRM_URL = "http://localhost:8000/api/v1/signatures/confirm?token=abc"


def _mock_http_client(
    response: MagicMock | None = None,
    error: Exception | None = None,
) -> MagicMock:
    client = MagicMock()
    client.post = AsyncMock(return_value=response, side_effect=error)
    client_cls = MagicMock()
    client_cls.return_value.__aenter__.return_value = client
    return client_cls


def _response(status_code: int, body: dict[str, Any] | None = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    response.json.return_value = body or {}
    response.text = str(body)
    return response


async def _send() -> str | None:
    return await EmailService().send_signature_confirmation(
        to_email="jane@example.com",
        name="Jane",
        letter_title="Stop X",
        confirm_url=CONFIRM_URL,
        locale="en",
    )


def test_build_confirmation_url() -> None:
    url = build_confirmation_url("abc.def")
    assert url == f"{settings.api_url}{settings.api_v1_prefix}/signatures/confirm?token=abc.def"


class TestSendSignatureConfirmation:
    async def test_sends_via_resend(self) -> None:
        client_cls = _mock_http_client(_response(200, {"id": "email_123"}))

        with (
            patch.object(settings, "resend_api_key", "re_test"),
            patch("openletter.services.email_service.httpx.AsyncClient", client_cls),
        ):
            email_id = await _send()

        assert email_id == "email_123"
        client = client_cls.return_value.__aenter__.return_value
        args, kwargs = client.post.call_args
        assert args[0] == RESEND_API_URL
        assert kwargs["headers"]["Authorization"] == "Bearer re_test"
        payload = kwargs["json"]
        assert payload["to"] == ["jane@example.com"]
        assert "Stop X" in payload["subject"]
        assert CONFIRM_URL in payload["html"]
        assert "Jane" in payload["html"]

    async def test_without_api_key_nothing_is_sent(self) -> None:
        client_cls = _mock_http_client(_response(200, {"id": "email_123"}))

        with (
            patch.object(settings, "resend_api_key", ""),
            patch("openletter.services.email_service.httpx.AsyncClient", client_cls),
        ):
            email_id = await _send()

        assert email_id is None
        client_cls.assert_not_called()

    async def test_api_error_returns_none(self) -> None:
        client_cls = _mock_http_client(_response(422, {"message": "invalid from"}))

        with (
            patch.object(settings, "resend_api_key", "re_test"),
            patch("openletter.services.email_service.httpx.AsyncClient", client_cls),
        ):
            assert await _send() is None

    async def test_network_error_returns_none(self) -> None:
        client_cls = _mock_http_client(error=httpx.ConnectError("boom"))

        with (
            patch.object(settings, "resend_api_key", "re_test"),
            patch("openletter.services.email_service.httpx.AsyncClient", client_cls),
        ):
            assert await _send() is None
