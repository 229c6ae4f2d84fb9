"""
HTTP API tests using FastAPI's TestClient.

Collaborators are replaced through dependency overrides: an in-memory
store, the offline region geocoder and a static listing source.
"""

import asyncio
import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi.testclient import TestClient

from core.geocoder import StaticRegionGeocoder, get_geocoder
from core.jobs import ImportJobRegistry, get_job_registry
from core.models import PropertyRecord
from core.store import InMemoryPropertyStore, get_property_store
from core.valuation import Category
from scraper import ListingSource, get_listing_source
from utils.config import Config
from web.app import create_app
from web.valuation_routes import get_config


class StaticSource(ListingSource):
    name = "static"

    async def fetch_listings(self, location, radius_miles):
        return [{"address": "Lot 9, Sousse", "price": 42000, "area": "400 m2"}]


def make_record(i: int, category=Category.RESIDENTIAL) -> PropertyRecord:
    return PropertyRecord(
        id=f"p-{i}",
        latitude=36.80 + 0.005 * (i + 1),
        longitude=10.18,
        price=10_000.0 * (i + 1),
        area=1000.0 * (i + 1),
        category=category,
        address=f"{i} Rue de Marseille",
        city="Tunis",
        state="Tunis",
    )


@pytest.fixture
def store():
    store = InMemoryPropertyStore()
    for i in range(6):
        asyncio.run(store.add(make_record(i)))
    return store


@pytest.fixture
def registry():
    return ImportJobRegistry()


@pytest.fixture
def config():
    return Config(seed_on_start=False, allowed_origins=[])


@pytest.fixture
def client(store, registry, config):
    app = create_app(config)
    app.dependency_overrides[get_property_store] = lambda: store
    app.dependency_overrides[get_geocoder] = lambda: StaticRegionGeocoder()
    app.dependency_overrides[get_job_registry] = lambda: registry
    app.dependency_overrides[get_listing_source] = lambda: StaticSource()
    app.dependency_overrides[get_config] = lambda: config
    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# Test: Health
# =============================================================================

class TestHealth:

    @pytest.mark.parametrize("path", ["/", "/health", "/api/health"])
    def test_health_endpoints(self, client, path):
        response = client.get(path)

        assert response.status_code == 200
        assert response.json()["status"] in ("ok", "healthy")

    def test_unknown_route_uses_error_body(self, client):
        response = client.get("/api/nope")

        assert response.status_code == 404
        assert response.json()["success"] is False
        assert response.json()["error"]["type"] == "NotFoundError"


# =============================================================================
# Test: Valuation
# =============================================================================

class TestValuationEndpoint:

    def test_estimate(self, client):
        response = client.post("/api/valuation/estimate", json={
            "lat": 36.80,
            "lng": 10.18,
            "area": 2000,
            "zoning": "residential",
            "features": {"nearWater": True, "roadAccess": True, "utilities": True},
        })

        assert response.status_code == 200
        body = response.json()
        assert body["valuation"]["estimatedValue"] == pytest.approx(10 * 2000 * 1.15 * 1.03)
        assert [f["factor"] for f in body["valuation"]["adjustmentFactors"]] == [
            "Water Proximity",
            "Market Trend Adjustment",
        ]
        assert body["valuation"]["adjustmentFactors"][0]["adjustment"] == "+15%"
        assert len(body["comparablesUsed"]) == 6
        assert body["location"]["address"] == "Tunis"
        assert body["selection"]["stages"] == ["nearby_same_category"]

    def test_fallback_is_200(self, client, store):
        store._records.clear()
        store._by_id.clear()

        response = client.post("/api/valuation/estimate", json={"lat": 36.8, "lng": 10.18, "area": 1000})

        assert response.status_code == 200
        assert response.json()["valuation"]["fallbackUsed"] is True
        assert response.json()["valuation"]["lowConfidence"] is True

    @pytest.mark.parametrize("payload,fragment", [
        ({"lat": 36.8, "lng": 10.18, "area": 0}, "area"),
        ({"lat": 95, "lng": 10.18, "area": 100}, "lat"),
        ({"lat": 36.8, "lng": 10.18, "area": 100, "category": "castle"}, "category"),
        ({"lat": 36.8, "lng": 10.18, "area": 100, "features": "all"}, "features"),
    ])
    def test_validation_errors(self, client, payload, fragment):
        response = client.post("/api/valuation/estimate", json=payload)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["type"] == "ValidationError"
        assert error["code"] == 400
        assert fragment in error["message"]

    def test_non_object_body(self, client):
        response = client.post("/api/valuation/estimate", json=[1, 2, 3])

        assert response.status_code == 400

    def test_no_comparables_is_404(self, client, store, config):
        store._records.clear()
        store._by_id.clear()
        config.allow_placeholder_comparable = False

        response = client.post("/api/valuation/estimate", json={"lat": 36.8, "lng": 10.18, "area": 1000})

        assert response.status_code == 404
        assert response.json()["error"]["type"] == "NoComparablesError"


# =============================================================================
# Test: Properties
# =============================================================================

class TestPropertyEndpoints:

    def test_nearby(self, client):
        response = client.get("/api/properties/nearby", params={"lat": 36.8, "lng": 10.18, "radius": 2000})

        assert response.status_code == 200
        ids = [p["id"] for p in response.json()]
        assert ids == ["p-0", "p-1", "p-2"]

    def test_nearby_invalid_radius(self, client):
        response = client.get("/api/properties/nearby", params={"lat": 36.8, "lng": 10.18, "radius": 0})

        assert response.status_code == 400

    def test_nearby_missing_coordinates(self, client):
        response = client.get("/api/properties/nearby")

        assert response.status_code == 400

    def test_search(self, client):
        response = client.get("/api/properties/search", params={"address": "Medina, Tunis"})

        assert response.status_code == 200
        assert response.json()["geocodedLocation"]["address"] == "Medina, Tunis"
        assert len(response.json()["properties"]) == 6

    def test_search_requires_address(self, client):
        assert client.get("/api/properties/search").status_code == 400

    def test_search_unknown_address(self, client):
        assert client.get("/api/properties/search", params={"address": "Atlantis"}).status_code == 404

    def test_stats(self, client):
        response = client.get("/api/properties/stats/by-region")

        assert response.json()["success"] is True
        assert response.json()["stats"][0]["count"] == 6

    def test_get_by_id(self, client):
        assert client.get("/api/properties/p-3").json()["id"] == "p-3"

    def test_get_missing(self, client):
        response = client.get("/api/properties/missing")

        assert response.status_code == 404
        assert response.json()["error"]["type"] == "NotFoundError"


# =============================================================================
# Test: Scrape Jobs
# =============================================================================

class TestScrapeEndpoints:

    def test_queue_and_complete(self, client, store):
        response = client.post("/api/scrape/listings", json={"location": "Sousse", "radius": 25})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["statusEndpoint"] == f"/api/scrape/status/{body['jobId']}"

        # TestClient runs background tasks before returning
        status = client.get(body["statusEndpoint"]).json()
        assert status["status"] == "completed"
        assert status["imported"] == 1
        assert asyncio.run(store.count()) == 7

    @pytest.mark.parametrize("radius", [0, 101])
    def test_radius_bounds(self, client, radius):
        response = client.post("/api/scrape/listings", json={"location": "Sousse", "radius": radius})

        assert response.status_code == 400

    def test_location_required(self, client):
        response = client.post("/api/scrape/listings", json={"location": "  "})

        assert response.status_code == 400

    def test_unknown_job(self, client):
        body = client.get("/api/scrape/status/job_missing").json()

        assert body["status"] == "unknown"
