"""Unit tests for the reCAPTCHA verifier (mocked HTTP transport)."""

import httpx
import pytest

from search_backend.domain.exceptions import AccessDeniedError
from search_backend.infrastructure.security import RecaptchaVerifier


# ── Helpers ──


def _make_mock_transport(data: dict | None = None, *, error: Exception | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if error is not None:
            raise error
        assert b"secret=s3cret" in request.content
        return httpx.Response(200, json=data)

    return httpx.MockTransport(handler)


def _verifier(transport: httpx.MockTransport, **kwargs) -> RecaptchaVerifier:
    kwargs.setdefault("allowed_actions", ["keywords", "generate_answer"])
    return RecaptchaVerifier(
        "s3cret", http_client=httpx.AsyncClient(transport=transport), **kwargs
    )


# ── Tests ──


@pytest.mark.asyncio
async def test_disabled_without_secret():
    verifier = RecaptchaVerifier("")
    assert verifier.enabled is False
    assert await verifier.verify(None) is None


@pytest.mark.asyncio
async def test_missing_token_is_bad_request():
    verifier = _verifier(_make_mock_transport({"success": True}))
    with pytest.raises(AccessDeniedError) as exc_info:
        await verifier.verify(None)
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_valid_token_passes():
    verifier = _verifier(
        _make_mock_transport(
            {"success": True, "score": 0.9, "action": "keywords", "hostname": "docs.example.com"}
        )
    )

    assessment = await verifier.verify("token")

    assert assessment.score == 0.9
    assert assessment.action == "keywords"
    assert assessment.hostname == "docs.example.com"


@pytest.mark.asyncio
async def test_failed_verification_is_forbidden():
    verifier = _verifier(_make_mock_transport({"success": False, "error-codes": ["invalid-input-response"]}))
    with pytest.raises(AccessDeniedError) as exc_info:
        await verifier.verify("token")
    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "reCAPTCHA verification failed"


@pytest.mark.asyncio
async def test_low_score_is_forbidden():
    verifier = _verifier(_make_mock_transport({"success": True, "score": 0.2, "action": "keywords"}))
    with pytest.raises(AccessDeniedError) as exc_info:
        await verifier.verify("token")
    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "Request blocked due to suspicious activity"


@pytest.mark.asyncio
async def test_unexpected_action_is_forbidden():
    verifier = _verifier(_make_mock_transport({"success": True, "score": 0.9, "action": "login"}))
    with pytest.raises(AccessDeniedError) as exc_info:
        await verifier.verify("token")
    assert exc_info.value.message == "Invalid reCAPTCHA action"


@pytest.mark.asyncio
async def test_unreachable_verifier_is_server_error():
    verifier = _verifier(_make_mock_transport(error=httpx.ConnectError("boom")))
    with pytest.raises(AccessDeniedError) as exc_info:
        await verifier.verify("token")
    assert exc_info.value.status_code == 500
