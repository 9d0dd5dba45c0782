"""Tests for gig invitation endpoints.

- POST /api/v1/offers/{offer_id}/invitations/{model_id} (brand only)
- GET /api/v1/gigs/accept (public, signed token)
"""

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlsplit

import pytest
from httpx import AsyncClient
from pydantic import SecretStr

from modelhub.core.config import settings
from modelhub.core.deep_link import DeepLinkSigner
from modelhub.repositories.offer_repository import AcceptOutcome
from modelhub.services.coin_gateway import ActorContext
from tests.conftest import TEST_DEEP_LINK_SECRET

_BRAND_ID = uuid.UUID("00000000-0000-0000-0000-00000000b001")
_OFFER_ID = uuid.UUID("00000000-0000-0000-0000-0000000f0002")
_MODEL_ID = uuid.UUID("00000000-0000-0000-0000-00000000e004")
_INVITE_URL = f"/api/v1/offers/{_OFFER_ID}/invitations/{_MODEL_ID}"
_ACCEPT_URL = "/api/v1/gigs/accept"

_REPO = "modelhub.api.v1.gigs.OfferRepository"
_SEND_EMAIL = "modelhub.api.v1.gigs.send_gig_invitation_email"


def _offer(brand_id: uuid.UUID = _BRAND_ID) -> SimpleNamespace:
    return SimpleNamespace(id=_OFFER_ID, brand_id=brand_id, title="Spring shoot")


def _model(email: str | None = "ava@example.com") -> SimpleNamespace:
    return SimpleNamespace(id=_MODEL_ID, email=email, display_name="Ava")


@pytest.fixture
def no_deep_link_secret():
    original = settings.deep_link_secret
    settings.deep_link_secret = SecretStr("")
    yield
    settings.deep_link_secret = original


# =============================================================================
# Invitation links
# =============================================================================


class TestCreateInvitationLink:
    """POST /api/v1/offers/{offer_id}/invitations/{model_id}."""

    @pytest.fixture
    def current_actor(self) -> ActorContext:
        return ActorContext(actor_id=_BRAND_ID, actor_type="brand")

    async def test_issues_link_and_queues_email(
        self, api_client: AsyncClient, deep_link_secret
    ):
        send = AsyncMock()
        with (
            patch(f"{_REPO}.get_offer", new=AsyncMock(return_value=_offer())),
            patch(f"{_REPO}.get_model", new=AsyncMock(return_value=_model())),
            patch(f"{_REPO}.get_response", new=AsyncMock(return_value=object())),
            patch(_SEND_EMAIL, new=send),
        ):
            response = await api_client.post(_INVITE_URL)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email_queued"] is True
        token = parse_qs(urlsplit(data["accept_url"]).query)["token"][0]
        claims = DeepLinkSigner(deep_link_secret).verify(token)
        assert claims is not None
        assert (claims.subject_id, claims.object_id) == (str(_MODEL_ID), str(_OFFER_ID))
        send.assert_awaited_once()
        assert send.call_args.kwargs["to_email"] == "ava@example.com"
        assert send.call_args.kwargs["accept_url"] == data["accept_url"]

    async def test_model_without_email_gets_link_only(
        self, api_client: AsyncClient, deep_link_secret
    ):
        send = AsyncMock()
        with (
            patch(f"{_REPO}.get_offer", new=AsyncMock(return_value=_offer())),
            patch(f"{_REPO}.get_model", new=AsyncMock(return_value=_model(None))),
            patch(f"{_REPO}.get_response", new=AsyncMock(return_value=object())),
            patch(_SEND_EMAIL, new=send),
        ):
            response = await api_client.post(_INVITE_URL)

        assert response.json()["data"]["email_queued"] is False
        send.assert_not_awaited()

    async def test_other_brands_offer_forbidden(
        self, api_client: AsyncClient, deep_link_secret
    ):
        with patch(
            f"{_REPO}.get_offer",
            new=AsyncMock(return_value=_offer(brand_id=uuid.uuid4())),
        ):
            response = await api_client.post(_INVITE_URL)

        assert response.status_code == 403

    async def test_unknown_offer_is_404(
        self, api_client: AsyncClient, deep_link_secret
    ):
        with patch(f"{_REPO}.get_offer", new=AsyncMock(return_value=None)):
            response = await api_client.post(_INVITE_URL)

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Offer not found"

    async def test_uninvited_model_forbidden(
        self, api_client: AsyncClient, deep_link_secret
    ):
        with (
            patch(f"{_REPO}.get_offer", new=AsyncMock(return_value=_offer())),
            patch(f"{_REPO}.get_model", new=AsyncMock(return_value=_model())),
            patch(f"{_REPO}.get_response", new=AsyncMock(return_value=None)),
        ):
            response = await api_client.post(_INVITE_URL)

        assert response.status_code == 403
        assert (
            response.json()["error"]["message"] == "Model is not invited to this offer"
        )

    async def test_missing_secret_is_503(
        self, api_client: AsyncClient, no_deep_link_secret
    ):
        response = await api_client.post(_INVITE_URL)

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SERVICE_MISCONFIGURED"


class TestCreateInvitationLinkAsFan:
    """Only brands may invite."""

    async def test_forbidden(self, api_client: AsyncClient, deep_link_secret):
        response = await api_client.post(_INVITE_URL)
        assert response.status_code == 403


# =============================================================================
# Public accept endpoint
# =============================================================================


class TestAcceptGig:
    """GET /api/v1/gigs/accept."""

    async def test_valid_token_accepts_and_redirects(
        self, api_client: AsyncClient, deep_link_secret
    ):
        token = DeepLinkSigner(deep_link_secret).issue(str(_MODEL_ID), str(_OFFER_ID))
        with patch(
            f"{_REPO}.accept_invitation",
            new=AsyncMock(return_value=AcceptOutcome.ACCEPTED),
        ):
            response = await api_client.get(_ACCEPT_URL, params={"token": token})

        assert response.status_code == 303
        assert response.headers["location"] == (
            f"{settings.frontend_url}/gigs/{_OFFER_ID}?status=accepted"
        )
        assert response.headers["Referrer-Policy"] == "no-referrer"

    async def test_full_offer_redirects_with_error(
        self, api_client: AsyncClient, deep_link_secret
    ):
        token = DeepLinkSigner(deep_link_secret).issue(str(_MODEL_ID), str(_OFFER_ID))
        with patch(
            f"{_REPO}.accept_invitation",
            new=AsyncMock(return_value=AcceptOutcome.FULL),
        ):
            response = await api_client.get(_ACCEPT_URL, params={"token": token})

        assert response.headers["location"].endswith("?error=offer_full")

    @pytest.mark.parametrize("token", ["", "garbage", "a.b", "x" * 2000])
    async def test_invalid_tokens_share_one_page(
        self, api_client: AsyncClient, deep_link_secret, token
    ):
        mock_accept = AsyncMock()
        with patch(f"{_REPO}.accept_invitation", new=mock_accept):
            response = await api_client.get(_ACCEPT_URL, params={"token": token})

        assert response.status_code == 303
        assert response.headers["location"] == (
            f"{settings.frontend_url}/gigs/link-invalid"
        )
        assert response.headers["Referrer-Policy"] == "no-referrer"
        mock_accept.assert_not_awaited()

    async def test_missing_token_is_invalid_link(
        self, api_client: AsyncClient, deep_link_secret
    ):
        response = await api_client.get(_ACCEPT_URL)

        assert response.status_code == 303
        assert response.headers["location"].endswith("/gigs/link-invalid")

    async def test_needs_no_session(
        self, unauthenticated_client: AsyncClient, deep_link_secret
    ):
        response = await unauthenticated_client.get(
            _ACCEPT_URL, params={"token": "garbage"}
        )
        assert response.status_code == 303

    async def test_missing_secret_is_503(
        self, api_client: AsyncClient, no_deep_link_secret
    ):
        response = await api_client.get(_ACCEPT_URL, params={"token": "garbage"})
        assert response.status_code == 503


class TestSignerOverride:
    """Routes take the signer from the dependency, not module state."""

    async def test_accept_uses_injected_signer(self, api_client: AsyncClient):
        from modelhub.api.deps import get_deep_link_signer
        from modelhub.main import app

        signer = DeepLinkSigner(TEST_DEEP_LINK_SECRET)
        app.dependency_overrides[get_deep_link_signer] = lambda: signer
        token = signer.issue(str(_MODEL_ID), str(_OFFER_ID))
        with patch(
            f"{_REPO}.accept_invitation",
            new=AsyncMock(return_value=AcceptOutcome.ALREADY_ACCEPTED),
        ):
            response = await api_client.get(_ACCEPT_URL, params={"token": token})

        assert response.headers["location"].endswith("?status=accepted")
