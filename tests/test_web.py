"""Tests for the import wizard API."""

import pytest

XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class FakeAccountStore:
    def __init__(self, accounts):
        self.accounts = accounts
        self.user_ids = []

    def list_accounts(self, user_id=None):
        self.user_ids.append(user_id)
        return self.accounts


@pytest.fixture
def client(fake_store):
    """TestClient with storage swapped for in-memory fakes."""
    from fastapi.testclient import TestClient

    from app.journal.entities import Account
    from app.web.dependencies import clear_import_sessions, get_account_store, get_trade_store
    from app.web.server import app

    accounts = FakeAccountStore([Account(id="acct-1", name="Main", currency="USD")])
    app.dependency_overrides[get_trade_store] = lambda: fake_store
    app.dependency_overrides[get_account_store] = lambda: accounts
    yield TestClient(app)
    app.dependency_overrides.clear()
    clear_import_sessions()


def _metatrader_session(client):
    response = client.post("/api/import/sessions", json={"data_source": "metatrader"})
    assert response.status_code == 201
    return response.json()["id"]


def _upload(client, session_id, filename, content, content_type=XLSX_TYPE):
    return client.post(
        f"/api/import/sessions/{session_id}/upload",
        files={"file": (filename, content, content_type)},
    )


class TestReferenceData:
    """Tests for sources, timezones and health."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "healthy"

    def test_sources(self, client):
        sources = {s["value"]: s for s in client.get("/api/import/sources").json()["sources"]}

        assert set(sources) == {"metatrader", "ninjatrader", "tradovate"}
        assert sources["metatrader"]["default_timezone"] == "Europe/Helsinki"
        assert ".pdf" in sources["tradovate"]["extensions"]

    def test_timezones(self, client):
        values = [tz["value"] for tz in client.get("/api/import/timezones").json()["timezones"]]

        assert "Europe/Helsinki" in values
        assert "America/New_York" in values

    def test_accounts(self, client):
        response = client.get("/api/accounts", params={"user_id": "user-1"})

        assert response.status_code == 200
        assert response.json() == {"accounts": [{"id": "acct-1", "name": "Main", "currency": "USD"}]}


class TestImportWizard:
    """Tests for the session lifecycle over HTTP."""

    def test_full_import(self, client, fake_store, metatrader_xlsx):
        session_id = _metatrader_session(client)

        uploaded = _upload(client, session_id, "history.xlsx", metatrader_xlsx())
        assert uploaded.status_code == 200
        assert uploaded.json()["step"] == "mapping"
        assert uploaded.json()["row_count"] == 2

        options = client.patch(
            f"/api/import/sessions/{session_id}/options",
            json={"account_id": "acct-1", "mode": "append"},
        )
        assert options.status_code == 200
        assert options.json()["account_id"] == "acct-1"

        response = client.post(f"/api/import/sessions/{session_id}/run")
        assert response.status_code == 200
        body = response.json()
        assert body["stats"] == {"total": 2, "success": 2, "skipped": 0, "failed": 0}
        assert body["session"]["step"] == "complete"
        assert len(fake_store.trades) == 2

    def test_create_then_select_source(self, client):
        session_id = client.post("/api/import/sessions").json()["id"]

        response = client.post(f"/api/import/sessions/{session_id}/source", json={"data_source": "tradovate"})

        assert response.status_code == 200
        assert response.json()["step"] == "upload"
        assert response.json()["broker_timezone"] == "America/New_York"

    def test_select_source_twice_conflicts(self, client):
        session_id = _metatrader_session(client)

        response = client.post(f"/api/import/sessions/{session_id}/source", json={"data_source": "tradovate"})

        assert response.status_code == 409
        assert response.json()["session"]["data_source"] == "metatrader"

    def test_metatrader_csv_rejected(self, client):
        session_id = _metatrader_session(client)

        response = _upload(client, session_id, "history.csv", b"a,b,c\n1,2,3\n", "text/csv")

        assert response.status_code == 400
        assert "CSV" in response.json()["error"]
        assert response.json()["session"]["step"] == "upload"

    def test_upload_too_large(self, client, monkeypatch):
        monkeypatch.setenv("MAX_UPLOAD_MB", "0.0001")
        session_id = _metatrader_session(client)

        response = _upload(client, session_id, "history.xlsx", b"x" * 1024)

        assert response.status_code == 413

    def test_upload_before_source_conflicts(self, client, metatrader_xlsx):
        session_id = client.post("/api/import/sessions").json()["id"]

        response = _upload(client, session_id, "history.xlsx", metatrader_xlsx())

        assert response.status_code == 409

    def test_mapping_override(self, client, metatrader_xlsx):
        session_id = _metatrader_session(client)
        _upload(client, session_id, "history.xlsx", metatrader_xlsx())

        response = client.patch(
            f"/api/import/sessions/{session_id}/mapping", json={"mapping": {"swap": ""}}
        )

        assert response.status_code == 200
        assert response.json()["mapping"]["swap"] == ""

    def test_mapping_errors(self, client, metatrader_xlsx):
        session_id = _metatrader_session(client)
        _upload(client, session_id, "history.xlsx", metatrader_xlsx())
        url = f"/api/import/sessions/{session_id}/mapping"

        unknown_field = client.patch(url, json={"mapping": {"ticker": "Symbol"}})
        unknown_header = client.patch(url, json={"mapping": {"symbol": "Ticker"}})

        assert unknown_field.status_code == 400
        assert "ticker" in unknown_field.json()["error"]
        assert unknown_header.status_code == 400

    def test_bad_timezone(self, client):
        session_id = _metatrader_session(client)

        response = client.patch(
            f"/api/import/sessions/{session_id}/options", json={"broker_timezone": "Mars/Base"}
        )

        assert response.status_code == 400

    def test_run_without_account(self, client, fake_store, metatrader_xlsx):
        session_id = _metatrader_session(client)
        _upload(client, session_id, "history.xlsx", metatrader_xlsx())

        response = client.post(f"/api/import/sessions/{session_id}/run")

        assert response.status_code == 409
        assert response.json()["session"]["step"] == "mapping"
        assert fake_store.save_calls == 0

    def test_run_storage_failure(self, client, fake_store, metatrader_xlsx):
        fake_store.raise_on_save = RuntimeError("connection reset")
        session_id = _metatrader_session(client)
        _upload(client, session_id, "history.xlsx", metatrader_xlsx())
        client.patch(f"/api/import/sessions/{session_id}/options", json={"account_id": "acct-1"})

        response = client.post(f"/api/import/sessions/{session_id}/run")

        assert response.status_code == 500
        assert response.json()["error"] == "connection reset"
        assert response.json()["session"]["step"] == "mapping"

    def test_reset_and_delete(self, client, metatrader_xlsx):
        session_id = _metatrader_session(client)
        _upload(client, session_id, "history.xlsx", metatrader_xlsx())

        reset = client.post(f"/api/import/sessions/{session_id}/reset")
        assert reset.json()["step"] == "source_selection"

        assert client.delete(f"/api/import/sessions/{session_id}").status_code == 200
        assert client.get(f"/api/import/sessions/{session_id}").status_code == 404

    def test_unknown_session(self, client):
        assert client.get("/api/import/sessions/does-not-exist").status_code == 404

    def test_idle_sessions_evicted(self, client):
        """Sessions untouched past the TTL disappear; recently used ones stay."""
        import time

        from app.config import settings
        from app.web.dependencies import prune_import_sessions

        stale_id = _metatrader_session(client)
        later = time.monotonic() + settings.import_session_ttl_seconds + 1

        assert prune_import_sessions(now=later) == 1
        assert client.get(f"/api/import/sessions/{stale_id}").status_code == 404

        fresh_id = _metatrader_session(client)
        assert prune_import_sessions() == 0
        assert client.get(f"/api/import/sessions/{fresh_id}").status_code == 200
