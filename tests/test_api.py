"""
HTTP API tests - submission, approval, listing and error mapping.
"""

import re
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api.main import create_app
from src.core.config import Settings
from src.core.errors import StoreUnavailable
from src.core.store import GitHubLogStore, InMemoryLogStore, LocalLogStore

SECRET = "s3cret-admin"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        admin_secret=SECRET,
        log_store_provider="memory",
        local_log_path=str(tmp_path / "COMMITS.md"),
    )


@pytest.fixture
def store():
    return InMemoryLogStore()


@pytest.fixture
def client(settings, store):
    app = create_app(settings, store=store)
    with TestClient(app) as test_client:
        yield test_client


def _failing_store():
    store = MagicMock()
    store.name = "github"
    store.read.side_effect = StoreUnavailable()
    return store


class TestSubmitCommit:
    """POST /api/commit"""

    def test_submit_success(self, client):
        response = client.post("/api/commit", json={"message": "Feliz año!", "alias": "ana", "beer": "ipa"})

        assert response.status_code == 200
        data = response.json()
        assert data["tap"] == "ipa"
        assert data["status"] == "pending"
        assert data["message"] == "Feliz año!"
        assert data["alias"] == "ana"
        assert re.fullmatch(r"[A-Za-z0-9]{7}", data["hash"])
        assert data["caption"] == "🍺 ipa // ana: Feliz año!"
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", data["createdAt"])

    def test_empty_message(self, client, store):
        response = client.post("/api/commit", json={"message": ""})

        assert response.status_code == 400
        assert response.json() == {"error": "El mensaje del commit es requerido."}
        assert store.content is None

    def test_missing_message(self, client, store):
        response = client.post("/api/commit", json={"alias": "ana"})

        assert response.status_code == 400
        assert response.json() == {"error": "El mensaje del commit es requerido."}

    def test_invalid_json(self, client, store):
        response = client.post(
            "/api/commit",
            content="not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Payload inválido. Envía un JSON con mensaje."}
        assert store.content is None

    def test_non_string_fields_coerced(self, client):
        response = client.post("/api/commit", json={"message": 42, "alias": True})

        assert response.status_code == 200
        assert response.json()["message"] == "42"
        assert response.json()["alias"] == "True"

    def test_store_failure_still_returns_record(self, settings):
        app = create_app(settings, store=_failing_store())
        with TestClient(app) as client:
            response = client.post("/api/commit", json={"message": "hola"})

        assert response.status_code == 200
        assert response.json()["status"] == "pending"

    def test_no_store_configured(self, tmp_path):
        settings = Settings(log_store_provider="github", local_log_path=str(tmp_path / "x.md"))
        with TestClient(create_app(settings)) as client:
            response = client.post("/api/commit", json={"message": "hola"})

        assert response.status_code == 200
        assert response.json()["status"] == "pending"


class TestListCommits:
    """GET /api/commit and /api/commit/status"""

    def test_newest_first(self, client):
        first = client.post("/api/commit", json={"message": "uno"}).json()
        second = client.post("/api/commit", json={"message": "dos"}).json()

        listing = client.get("/api/commit").json()

        assert [c["hash"] for c in listing] == [second["hash"], first["hash"]]
        assert set(listing[0].keys()) == {"hash", "tap", "alias", "message", "createdAt", "status"}

    def test_empty_list(self, client):
        response = client.get("/api/commit")
        assert response.status_code == 200
        assert response.json() == []

    def test_failing_store_lists_empty(self, settings):
        with TestClient(create_app(settings, store=_failing_store())) as client:
            response = client.get("/api/commit")

        assert response.status_code == 200
        assert response.json() == []

    def test_failing_store_uses_local_copy(self, settings, tmp_path):
        path = tmp_path / "COMMITS.md"
        path.write_text('- **ccccccc** [lager] local: "copia" _(2024-06-01T00:00:00.000Z)_\n', encoding="utf-8")
        app = create_app(settings, store=_failing_store(), fallback=LocalLogStore(str(path), read_only=True))

        with TestClient(app) as client:
            listing = client.get("/api/commit").json()

        assert [c["hash"] for c in listing] == ["ccccccc"]
        assert listing[0]["status"] == "approved"

    def test_status_summary(self, client):
        created = client.post("/api/commit", json={"message": "uno", "alias": "ana"}).json()

        summary = client.get("/api/commit/status").json()

        assert summary["total"] == 1
        assert summary["pending"] == 1
        assert summary["approved"] == 0
        assert summary["latest"]["hash"] == created["hash"]


class TestApproveCommit:
    """POST /api/approve"""

    def test_approve_then_listed_as_approved(self, client):
        created = client.post("/api/commit", json={"message": "Salud!", "alias": "ana"}).json()

        response = client.post("/api/approve", json={"hash": created["hash"], "secret": SECRET})

        assert response.status_code == 200
        assert response.json() == {"success": True, "hash": created["hash"]}
        listing = client.get("/api/commit").json()
        assert listing[0]["hash"] == created["hash"]
        assert listing[0]["status"] == "approved"

    def test_missing_fields(self, client):
        response = client.post("/api/approve", json={"hash": "abc1234"})

        assert response.status_code == 400
        assert response.json() == {"error": "Hash y secret requeridos."}

    def test_invalid_payload(self, client):
        response = client.post("/api/approve", content="[", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json() == {"error": "Payload inválido."}

    def test_wrong_secret(self, client, store):
        created = client.post("/api/commit", json={"message": "hola"}).json()
        before = store.content

        response = client.post("/api/approve", json={"hash": created["hash"], "secret": "nope"})

        assert response.status_code == 403
        assert response.json() == {"error": "Secret inválido."}
        assert store.content == before

    def test_unknown_hash(self, client, store):
        client.post("/api/commit", json={"message": "hola"})
        before = store.content

        response = client.post("/api/approve", json={"hash": "zzzzzzz", "secret": SECRET})

        assert response.status_code == 404
        assert response.json() == {"error": "Commit no encontrado o ya aprobado."}
        assert store.content == before

    def test_store_not_configured(self, tmp_path):
        settings = Settings(admin_secret=SECRET, log_store_provider="github", local_log_path=str(tmp_path / "x.md"))
        with TestClient(create_app(settings)) as client:
            response = client.post("/api/approve", json={"hash": "abc1234", "secret": SECRET})

        assert response.status_code == 500
        assert response.json() == {"error": "GitHub no configurado."}

    def test_store_failure(self, settings):
        with TestClient(create_app(settings, store=_failing_store())) as client:
            response = client.post("/api/approve", json={"hash": "abc1234", "secret": SECRET})

        assert response.status_code == 500
        assert response.json() == {"error": "Error interno al aprobar."}


class TestHealth:
    """GET /health"""

    def test_health(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["provider"] == "memory"
        assert data["store_configured"] is True

    def test_health_without_store(self, tmp_path):
        settings = Settings(log_store_provider="github", local_log_path=str(tmp_path / "x.md"))
        with TestClient(create_app(settings)) as client:
            data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["provider"] == "none"
        assert any("GITHUB_TOKEN" in issue for issue in data["issues"])


class TestMalformedGitHubResponses:
    """Unreadable GitHub bodies surface as store failures, not crashes."""

    def _github_app(self, settings, response):
        session = MagicMock()
        session.get.return_value = response
        store = GitHubLogStore(token="ghp_test", owner="o", repo="r", session=session)
        return create_app(settings, store=store), session

    def test_non_json_read_commit_masked(self, settings):
        response = MagicMock(status_code=200, ok=True)
        response.json.side_effect = ValueError("Expecting value")
        app, session = self._github_app(settings, response)

        with TestClient(app) as client:
            result = client.post("/api/commit", json={"message": "hola"})

        assert result.status_code == 200
        assert result.json()["status"] == "pending"
        session.put.assert_not_called()

    def test_bad_base64_approve_is_internal_error(self, settings):
        response = MagicMock(status_code=200, ok=True)
        response.json.return_value = {"content": "!!not base64!!x", "sha": "s", "encoding": "base64"}
        app, session = self._github_app(settings, response)

        with TestClient(app) as client:
            result = client.post("/api/approve", json={"hash": "abc1234", "secret": SECRET})

        assert result.status_code == 500
        assert result.json() == {"error": "Error interno al aprobar."}
        session.put.assert_not_called()
