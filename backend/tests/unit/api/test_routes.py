"""Unit tests for the HTTP surface.

Services are replaced through FastAPI dependency overrides; no database
or bucket is contacted.

Run with: pytest tests/unit/api/test_routes.py -v
"""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from laudos.api.auth import create_access_token
from laudos.processes.manager import ProcessAccessDenied, get_process_manager
from laudos.processes.sharing import LinkedUserNotFoundError, get_sharing_service
from laudos.scheduling.email import TRACKING_PIXEL, get_schedule_mailer
from main import app


@pytest.fixture
def manager():
    manager = MagicMock()
    manager.get_process = AsyncMock()
    return manager


@pytest.fixture
def mailer():
    mailer = MagicMock()
    mailer.mark_opened = AsyncMock()
    mailer.mark_confirmed = AsyncMock()
    return mailer


@pytest.fixture
def sharing():
    sharing = MagicMock()
    sharing.create_linked_user = AsyncMock()
    sharing.set_status = AsyncMock()
    sharing.revoke = AsyncMock()
    return sharing


@pytest.fixture
def client(manager, mailer, sharing):
    app.dependency_overrides[get_process_manager] = lambda: manager
    app.dependency_overrides[get_schedule_mailer] = lambda: mailer
    app.dependency_overrides[get_sharing_service] = lambda: sharing
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token('user-1')}"}


class TestHealth:
    """Tests for health endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_live(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_request_id_and_headers(self, client):
        """Test that a client request ID is echoed and security headers are set."""
        response = client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_generated_request_id(self, client):
        assert len(client.get("/health/live").headers["X-Request-ID"]) == 36


class TestProcessRoutes:
    """Tests for authentication and error mapping."""

    def test_missing_token(self, client):
        """Test that requests without a token report an expired session."""
        response = client.get(f"/api/v1/processes/{uuid4()}")

        assert response.status_code == 401
        assert response.json()["error"] == "Sessão expirada"
        assert response.headers["X-Error-Code"] == "AUTHENTICATION_REQUIRED"

    def test_access_denied(self, client, manager, auth_headers):
        """Test that a denied process maps to 403."""
        manager.get_process.side_effect = ProcessAccessDenied("Sem permissão para acessar este processo")

        response = client.get(f"/api/v1/processes/{uuid4()}", headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["error"] == "Sem permissão para acessar este processo"

    def test_get_process(self, client, manager, auth_headers, minimal_process):
        manager.get_process.return_value = minimal_process

        response = client.get(f"/api/v1/processes/{minimal_process.id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["claimant_name"] == "Maria Souza"
        manager.get_process.assert_awaited_once_with(minimal_process.id, "user-1", None)


class TestSchedulingRoutes:
    """Tests for schedule links and e-mail tracking."""

    def test_links_with_invalid_phone(self, client, manager, auth_headers, full_process):
        """Test that a bad phone number is a validation error."""
        manager.get_process.return_value = full_process

        response = client.get(
            f"/api/v1/scheduling/{full_process.id}/links",
            params={"phone": "123"},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["error"].startswith("Telefone inválido")

    def test_links(self, client, manager, auth_headers, full_process):
        manager.get_process.return_value = full_process

        response = client.get(
            f"/api/v1/scheduling/{full_process.id}/links",
            params={"phone": "11999999999", "contact_name": "Ana"},
            headers=auth_headers,
        )

        body = response.json()
        assert body["message"].startswith("Olá, Ana!")
        assert body["whatsapp_url"].startswith("https://wa.me/5511999999999?text=")
        assert "dates=20240315T173000Z" in body["google_calendar_url"]

    def test_open_pixel_without_token(self, client, mailer):
        """Test that the tracking pixel needs no authentication."""
        response = client.get("/api/v1/scheduling/email-track/open", params={"id": "abc"})

        assert response.status_code == 200
        assert response.content == TRACKING_PIXEL
        assert response.headers["content-type"] == "image/gif"
        assert "no-store" in response.headers["cache-control"]
        mailer.mark_opened.assert_awaited_once_with("abc")

    def test_tracking_without_id(self, client, mailer):
        response = client.get("/api/v1/scheduling/email-track/confirm")

        assert response.status_code == 400
        mailer.mark_confirmed.assert_not_awaited()

    def test_confirm(self, client, mailer):
        response = client.get("/api/v1/scheduling/email-track/confirm", params={"id": "abc"})

        assert response.text == "Recebimento confirmado."


class TestExtractionRoutes:
    """Tests for uploaded-file extraction."""

    def test_corrupt_pdf(self, client, auth_headers):
        """Test that an unreadable PDF is a validation error, not a server error."""
        response = client.post(
            "/api/v1/extraction/file",
            files={"file": ("peticao.pdf", b"not really a document", "application/pdf")},
            data={"categories": "insalubridade"},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["error"].startswith("Arquivo corrompido ou ilegível")


class TestLinkedUserRoutes:
    """Tests for linked-user management errors."""

    def test_invalid_cpf(self, client, sharing, auth_headers):
        sharing.create_linked_user.side_effect = ValueError("CPF inválido")

        response = client.post(
            "/api/v1/linked-users",
            json={"cpf": "111.111.111-11", "name": "Ana"},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["error"] == "CPF inválido"

    def test_deactivate_unknown(self, client, sharing, auth_headers):
        """Test that a link of another owner maps to 404."""
        sharing.set_status.side_effect = LinkedUserNotFoundError("x")

        response = client.post(f"/api/v1/linked-users/{uuid4()}/deactivate", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "Usuário vinculado não encontrado"
        sharing.set_status.assert_awaited_once()
        assert sharing.set_status.await_args.args[1:] == (False, "user-1")

    def test_revoke_missing_grant(self, client, sharing, auth_headers):
        sharing.revoke.return_value = False

        response = client.delete(
            f"/api/v1/linked-users/{uuid4()}/access/{uuid4()}", headers=auth_headers
        )

        assert response.status_code == 404
