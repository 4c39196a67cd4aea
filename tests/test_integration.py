import csv
import io
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from rota.api.routes import customers as customers_routes
from rota.main import create_app
from rota.models.domain import Customer
from rota.persistence.customers import CustomerStore
from rota.schemas.customers import ExtractedCustomer
from rota.services.extraction import ExtractionError
from rota.services.geocoding import Geocoder, RateLimiter
from rota.services.routing import service as routing_service
from rota.services.routing.distance import DistanceOracle
from rota.services.routing.optimizer import RouteOptimizer


class DummyGemini:
    def parse_text(self, text):
        return [
            ExtractedCustomer(name="Maria Souza", address="Rua B, 20", phone="84 97777-0000"),
            ExtractedCustomer(name="Ana Lima", address="Rua C, 30", neighborhood="Tirol"),
            ExtractedCustomer(address="sem nome"),
        ]

    def parse_file(self, data, mime_type):
        raise ExtractionError("unreadable document")


class DummyLocator:
    def geocode(self, query, exactly_one=True, timeout=None):
        if query.startswith("Rua A"):
            return SimpleNamespace(latitude=-5.81, longitude=-35.21)
        return None


@pytest.fixture
def api_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    customers_path = tmp_path / "customers.json"
    monkeypatch.setattr(customers_routes, "CustomerStore", lambda: CustomerStore(path=customers_path))
    monkeypatch.setattr(customers_routes, "GeminiClient", lambda: DummyGemini())
    monkeypatch.setattr(
        customers_routes,
        "Geocoder",
        lambda: Geocoder(primary=DummyLocator(), fallback=None, rate_limiter=RateLimiter(0)),
    )
    monkeypatch.setattr(routing_service, "CustomerStore", lambda: CustomerStore(path=customers_path))
    monkeypatch.setattr(routing_service, "RouteOptimizer", lambda: RouteOptimizer(DistanceOracle(None)))
    return TestClient(create_app())


def _create(client: TestClient, **fields) -> dict:
    body = {"name": "Maria Souza", "address": "Rua A, 10", "neighborhood": "Tirol", "phones": ["(84) 98888-0000"]}
    body.update(fields)
    response = client.post("/api/customers", json=body)
    assert response.status_code == 201
    return response.json()


def test_health(api_client: TestClient):
    assert api_client.get("/api/health").json() == {"status": "ok"}
    assert api_client.get("/").json()["status"] == "running"


def test_routing_health_without_api_key(api_client: TestClient, monkeypatch: pytest.MonkeyPatch):
    from rota.api.routes import health as health_routes

    monkeypatch.setattr(health_routes.settings, "routing_api_key", None)

    assert api_client.get("/api/health/routing").json() == {
        "service": "routing",
        "configured": False,
        "healthy": False,
    }


def test_customer_crud(api_client: TestClient):
    created = _create(api_client)
    cid = created["id"]

    assert api_client.get(f"/api/customers/{cid}").json()["name"] == "Maria Souza"
    assert [c["id"] for c in api_client.get("/api/customers", params={"q": "98888"}).json()] == [cid]
    assert api_client.get("/api/customers", params={"q": "nada"}).json() == []

    updated = api_client.put(f"/api/customers/{cid}", json={"name": "Maria S.", "address": "Rua A, 10"})
    assert updated.status_code == 200
    assert updated.json()["name"] == "Maria S."

    assert api_client.delete(f"/api/customers/{cid}").status_code == 204
    assert api_client.get(f"/api/customers/{cid}").status_code == 404
    assert api_client.delete(f"/api/customers/{cid}").status_code == 404


def test_create_customer_validation(api_client: TestClient):
    response = api_client.post("/api/customers", json={"name": "", "address": "Rua A"})

    assert response.status_code == 422


def test_contact_links(api_client: TestClient):
    cid = _create(api_client)["id"]

    links = api_client.get(f"/api/customers/{cid}/contact").json()

    assert links["whatsapp"] == ["https://wa.me/5584988880000"]
    assert links["phone"] == ["tel:84988880000"]


def test_text_import_merges_into_book(api_client: TestClient):
    _create(api_client)

    response = api_client.post("/api/customers/import/text", json={"text": "lista de clientes"})

    assert response.status_code == 200
    assert response.json() == {"received": 3, "created": 1, "merged": 1, "skipped": 1, "total_customers": 2}
    maria = api_client.get("/api/customers", params={"q": "maria"}).json()[0]
    assert maria["secondary_addresses"] == ["Rua B, 20"]


def test_file_import_extraction_failure_is_bad_gateway(api_client: TestClient):
    response = api_client.post(
        "/api/customers/import/file",
        files={"file": ("foto.jpg", b"\xff\xd8\xff", "image/jpeg")},
    )

    assert response.status_code == 502


def test_spreadsheet_import(api_client: TestClient):
    payload = "Nome,Endereço,Bairro\nAna,Rua C,Tirol\nBeto,Rua D,Lagoa Nova\n".encode("utf-8")

    response = api_client.post(
        "/api/customers/import/spreadsheet",
        files={"file": ("clientes.csv", payload, "text/csv")},
    )
    rejected = api_client.post(
        "/api/customers/import/spreadsheet",
        files={"file": ("clientes.txt", payload, "text/plain")},
    )

    assert response.status_code == 200
    assert response.json()["created"] == 2
    assert rejected.status_code == 400


def test_geocode_endpoint(api_client: TestClient):
    located = _create(api_client)
    _create(api_client, name="Sem Mapa", address="Rua Perdida", phones=[])

    response = api_client.post("/api/customers/geocode")

    assert response.json() == {"processed": 2, "succeeded": 1, "failed": 1}
    refreshed = api_client.get(f"/api/customers/{located['id']}").json()
    assert (refreshed["latitude"], refreshed["longitude"]) == (-5.81, -35.21)

    unknown = api_client.post("/api/customers/geocode", json={"customer_ids": ["ghost"]})
    assert unknown.status_code == 404


def test_geocode_keeps_customers_created_during_the_batch(
    api_client: TestClient, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
):
    _create(api_client, name="Maria")

    class BusyLocator:
        def geocode(self, query, exactly_one=True, timeout=None):
            CustomerStore(path=tmp_path / "customers.json").create(
                Customer(id="", name="Nova", address="Rua Nova")
            )
            return SimpleNamespace(latitude=-5.81, longitude=-35.21)

    monkeypatch.setattr(
        customers_routes,
        "Geocoder",
        lambda: Geocoder(primary=BusyLocator(), fallback=None, rate_limiter=RateLimiter(0)),
    )

    response = api_client.post("/api/customers/geocode")

    assert response.json()["succeeded"] == 1
    names = sorted(customer["name"] for customer in api_client.get("/api/customers").json())
    assert names == ["Maria", "Nova"]


def test_route_plan_endpoints(api_client: TestClient):
    far = _create(api_client, name="Longe", latitude=-5.90, longitude=-35.20)["id"]
    near = _create(api_client, name="Perto", latitude=-5.80, longitude=-35.20)["id"]
    lost = _create(api_client, name="Sem Mapa", address="Rua Perdida")["id"]
    body = {"customer_ids": [lost, far, near], "origin": {"lat": -5.79, "lng": -35.20}}

    response = api_client.post("/api/routes/plan", json=body)

    assert response.status_code == 200
    data = response.json()
    assert [stop["customer_id"] for stop in data["stops"]] == [near, far, lost]
    assert data["metadata"]["unlocatable_stops"] == 1

    csv_response = api_client.post("/api/routes/plan.csv", json=body)
    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    rows = list(csv.DictReader(io.StringIO(csv_response.text)))
    assert [row["customer_id"] for row in rows] == [near, far, lost]


def test_route_plan_errors(api_client: TestClient):
    assert api_client.post("/api/routes/plan", json={"customer_ids": ["ghost"]}).status_code == 404
    assert api_client.post("/api/routes/plan", json={"customer_ids": []}).status_code == 422
