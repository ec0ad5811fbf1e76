import json

import pytest

from app import create_app
from quotedoc.settings import RenderConfig, ServiceConfig

QUOTE = {
    "id": "q-100",
    "company_id": "acme",
    "created_by": "seller-01",
    "created_at": "2026-09-30T15:20:00Z",
    "client_name": "Maria Lopez",
    "client_company": "Distribuidora Central",
    "plan_name": "STARTER",
    "plan_annual_cost": 1200,
    "implementation_cost": 150,
    "payment_mode": "annual",
    "total_annual": 1506,
    "upfront_amount": 150,
    "tax_rate_pct": 13,
}


class RecordingStore:
    def __init__(self):
        self.uploads = []

    def upload(self, data, filename, content_type):
        self.uploads.append((filename, content_type, len(data)))
        return f"https://files.example/{filename}"


def _seed(root, collection, record_id, payload):
    folder = root / collection
    folder.mkdir(parents=True, exist_ok=True)
    (folder / f"{record_id}.json").write_text(json.dumps(payload), encoding="utf-8")


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def client(tmp_path, store):
    data = tmp_path / "data"
    _seed(data, "quotes", "q-100", QUOTE)
    _seed(data, "quotes", "q-bad", dict(QUOTE, id="q-bad", installment_count=0))
    _seed(data, "companies", "acme", {"name": "Acme Billing Solutions", "terms_text": "One.\n\nTwo."})
    _seed(data, "profiles", "seller-01", {"full_name": "Carlos Rivera", "email": "carlos@acme.example"})
    cfg = ServiceConfig(data_dir=str(data), local_storage_path=str(tmp_path / "files"), log_enabled=False)
    app = create_app(cfg, RenderConfig(), blob_store=store, logo_fetcher=lambda url, timeout: None)
    app.config["TESTING"] = True
    return app.test_client()


class TestHealth:
    def test_ping(self, client):
        r = client.get("/ping")
        assert r.status_code == 200
        assert r.get_data(as_text=True) == "pong"

    def test_version(self, client):
        assert client.get("/__version").get_json()["ok"] is True


class TestCreateProposal:
    def test_renders_and_uploads(self, client, store):
        r = client.post("/api/quotes/q-100/proposal", json={"lead": {"company_name": "Override SA"}})
        assert r.status_code == 200
        body = r.get_json()
        assert body["error"] is None
        assert body["url"].startswith("https://files.example/Quote_Maria_Lopez_")
        assert body["page_count"] == 2
        assert store.uploads[0][1] == "application/pdf"

    def test_unknown_quote_is_404(self, client, store):
        r = client.post("/api/quotes/nope/proposal")
        assert r.status_code == 404
        assert r.get_json()["url"] is None
        assert store.uploads == []

    def test_invalid_quote_is_422(self, client):
        r = client.post("/api/quotes/q-bad/proposal", json={})
        assert r.status_code == 422
        assert "installment_count" in r.get_json()["error"]


class TestDownload:
    def test_pdf_attachment(self, client, store):
        r = client.get("/api/quotes/q-100/proposal.pdf?company=Override")
        assert r.status_code == 200
        assert r.headers["Content-Type"] == "application/pdf"
        assert r.headers["X-Page-Count"] == "2"
        assert 'filename="Quote_Maria_Lopez_' in r.headers["Content-Disposition"]
        assert r.data.startswith(b"%PDF")
        assert store.uploads == []

    def test_unknown_quote(self, client):
        assert client.get("/api/quotes/nope/proposal.pdf").status_code == 404


class TestFinancials:
    def test_breakdown_json(self, client):
        r = client.get("/api/quotes/q-100/financials")
        assert r.status_code == 200
        body = r.get_json()
        assert body["quote_id"] == "q-100"
        assert body["recurring_base_subtotal"] == 1200.0
        assert body["tax_amount"] == 156.0
        assert body["installment_amount"] == 1356.0

    def test_not_found(self, client):
        assert client.get("/api/quotes/nope/financials").status_code == 404

    def test_invalid(self, client):
        assert client.get("/api/quotes/q-bad/financials").status_code == 422
