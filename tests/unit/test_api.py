# ============================================================================
# tests/unit/test_api.py
# ============================================================================
"""
Tests for the HTTP routes, error handler and middleware
"""

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from medireader.api.auth import router as auth_router
from medireader.api.devices import router as devices_router
from medireader.api.enterprise import router as enterprise_router
from medireader.api.extract import router as extract_router
from medireader.api.middleware import RateLimitMiddleware, RequestIdMiddleware
from medireader.api_server import app as server_app
from medireader.api_server import processing_error_handler
from medireader.devices.catalog import PROFILES
from medireader.errors import ProcessingError
from medireader.services.auth_service import AuthService
from medireader.services.device_detector import DeviceDetector
from medireader.services.device_registry import DeviceRegistry
from medireader.services.enterprise_service import EnterpriseService
from medireader.services.extraction_service import ExtractionService
from medireader.services.vision_client import VisionClient
from tests.conftest import FakeVisionClient, json_transport
from tests.unit.test_auth_service import GATEWAY_USER
from tests.unit.test_enterprise_service import ENTERPRISE_PAYLOAD

JPEG = b"\xff\xd8\xff\xe0 fake jpeg body"


def populate_state(app, settings, vision, gateway_handler=None):
    detector = DeviceDetector(vision, settings)
    registry = DeviceRegistry(PROFILES, vision, detector=detector)
    transport = json_transport(gateway_handler or (lambda r: (500, "down")))

    app.state.settings = settings
    app.state.detector = detector
    app.state.registry = registry
    app.state.extraction_service = ExtractionService(registry, settings)
    app.state.auth_service = AuthService(settings, transport=transport)
    app.state.enterprise_service = EnterpriseService(settings, transport=transport, backoff_base=0)


@pytest.fixture
def vision():
    return FakeVisionClient()


@pytest.fixture
def gateway():
    """Mutable gateway handler so tests can swap replies."""
    routes = {}

    def handler(request):
        for suffix, reply in routes.items():
            if request.url.path.endswith(suffix):
                return reply
        return 500, "down"

    handler.routes = routes
    return handler


@pytest.fixture
def client(settings, vision, gateway):
    app = FastAPI()
    app.add_exception_handler(ProcessingError, processing_error_handler)
    app.include_router(extract_router)
    app.include_router(devices_router)
    app.include_router(auth_router)
    app.include_router(enterprise_router)
    populate_state(app, settings, vision, gateway)
    return TestClient(app)


class TestExtractRoute:
    """Test POST /api/extract"""

    def test_success(self, client, vision):
        """Test readings come back in camelCase"""
        vision.replies.append(json.dumps([
            {"label": "TMP", "value": "80", "unit": "mmHg", "confidence": 0.9},
        ]))

        response = client.post(
            "/api/extract",
            files={"image": ("display.jpg", JPEG, "image/jpeg")},
            data={"deviceOverride": "fresenius-4008s", "patientId": "P001"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["patientId"] == "P001"
        assert body["deviceMasterId"] == "unknown"
        assert body["modelUsed"] == "gpt-4o-fresenius-4008s"
        assert body["data"][0]["deviceModel"] == "Fresenius 4008 S"
        assert body["data"][0]["confidence"] == pytest.approx(0.95)
        assert "validated" not in body

    def test_validation_disabled(self, client, vision):
        """Test form flags reach the pipeline"""
        vision.replies.append(json.dumps([{"label": "TMP", "value": "80", "confidence": 0.9}]))

        response = client.post(
            "/api/extract",
            files={"image": ("display.jpg", JPEG, "image/jpeg")},
            data={"deviceOverride": "fresenius-4008s", "validateResults": "false"},
        )

        assert response.json()["data"][0]["confidence"] == 0.9

    def test_empty_image(self, client):
        """Test empty uploads are rejected"""
        response = client.post("/api/extract", files={"image": ("empty.jpg", b"", "image/jpeg")})
        assert response.status_code == 400

    def test_missing_image(self, client):
        """Test the image part is required"""
        assert client.post("/api/extract", data={"deviceOverride": "x"}).status_code == 422

    def test_too_large(self, client, settings):
        """Test uploads above the limit are rejected"""
        settings.max_upload_bytes = 1024
        response = client.post(
            "/api/extract", files={"image": ("big.jpg", b"x" * 2048, "image/jpeg")}
        )
        assert response.status_code == 413

    def test_unsupported_device(self, client):
        """Test processing errors use the structured error body"""
        response = client.post(
            "/api/extract",
            files={"image": ("display.jpg", JPEG, "image/jpeg")},
            data={"deviceOverride": "acme-9000"},
        )

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Device model acme-9000 is not supported",
            "code": "DEVICE_NOT_SUPPORTED",
            "details": {"deviceKey": "acme-9000"},
        }

    def test_refusal(self, client, vision):
        """Test refusals map to 422"""
        vision.replies.append("I'm sorry, I can't analyze the image.")

        response = client.post(
            "/api/extract",
            files={"image": ("display.jpg", JPEG, "image/jpeg")},
            data={"deviceOverride": "fresenius-4008s"},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "OPENAI_REFUSAL"

    def test_missing_api_key(self, client, settings):
        """Test a missing OpenAI key maps to 503"""
        settings.openai_api_key = ""
        populate_state(client.app, settings, VisionClient(settings))

        response = client.post(
            "/api/extract",
            files={"image": ("display.jpg", JPEG, "image/jpeg")},
            data={"deviceOverride": "fresenius-4008s"},
        )

        assert response.status_code == 503
        assert response.json()["code"] == "API_KEY_MISSING"


class TestDeviceRoutes:
    """Test the device catalogue"""

    def test_list(self, client):
        """Test every device is listed with stats"""
        body = client.get("/api/devices").json()
        assert [d["key"] for d in body["devices"]] == [p.key for p in PROFILES]
        assert body["devices"][0]["model"]["displayName"] == "Nipro Surdial 55 Plus"
        assert body["stats"]["totalDevices"] == 5

    def test_detail(self, client):
        """Test one device's configuration"""
        body = client.get("/api/devices/fresenius-4008s").json()
        assert body["key"] == "fresenius-4008s"
        assert body["units"]["TMP"] == ["mmHg"]
        assert body["categories"]["UF VOLUME"] == "ultrafiltration"
        assert "UF Volume" in body["synonyms"]["UF VOLUME"]
        assert len(body["model"]["supportedDataPoints"]) == 33

    def test_unknown(self, client):
        """Test unknown keys are 404"""
        assert client.get("/api/devices/acme-9000").status_code == 404

    def test_detect(self, client, vision):
        """Test detection on an uploaded photo"""
        vision.replies.extend(["nikkisodbb27", "NIKKISO DBB-27", "nikkisodbb27"])

        response = client.post(
            "/api/devices/detect", files={"image": ("display.jpg", JPEG, "image/jpeg")}
        )

        body = response.json()
        assert body["deviceKey"] == "nikkiso-dbb27"
        assert body["displayName"] == "Nikkiso DBB-27"
        assert body["detection"]["cacheEnabled"] is False


class TestAuthRoutes:
    """Test login and token routes"""

    def login(self, client, gateway):
        gateway.routes["/auth/login"] = (200, GATEWAY_USER)
        return client.post("/api/auth/login", json={"username": "joy", "password": "secret"})

    def test_login(self, client, gateway):
        """Test a successful login"""
        body = self.login(client, gateway).json()
        assert body["success"] is True
        assert body["user"]["firstName"] == "nurse.joy"
        assert body["user"]["role"] == "nurse"
        assert "authToken" not in body["user"]
        assert body["token"] and body["refreshToken"]

    def test_login_rejected(self, client, gateway):
        """Test bad credentials give 401 with the structured body"""
        gateway.routes["/auth/login"] = (401, {"message": "bad"})
        response = client.post("/api/auth/login", json={"username": "joy", "password": "x"})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid username or password"

    def test_login_gateway_down(self, client):
        """Test gateway failures give 502"""
        response = client.post("/api/auth/login", json={"username": "joy", "password": "x"})
        assert response.status_code == 502
        assert response.json()["code"] == "GATEWAY_UNAVAILABLE"

    def test_validate_and_profile(self, client, gateway):
        """Test bearer tokens on validate and profile"""
        token = self.login(client, gateway).json()["token"]
        headers = {"Authorization": f"Bearer {token}"}

        assert client.get("/api/auth/validate", headers=headers).json() == {"valid": True, "userId": "42"}
        profile = client.get("/api/auth/profile", headers=headers).json()
        assert profile["user"]["id"] == "42"

    def test_profile_requires_token(self, client):
        """Test missing and bad tokens"""
        assert client.get("/api/auth/profile").status_code == 401
        bad = client.get("/api/auth/profile", headers={"Authorization": "Bearer nope"})
        assert bad.status_code == 403
        assert client.get("/api/auth/validate").json()["valid"] is False

    def test_refresh_and_logout(self, client, gateway):
        """Test refresh rotation and logout"""
        refresh_token = self.login(client, gateway).json()["refreshToken"]

        refreshed = client.post("/api/auth/refresh", json={"refreshToken": refresh_token})
        assert refreshed.status_code == 200
        new_refresh = refreshed.json()["refreshToken"]

        stale = client.post("/api/auth/refresh", json={"refreshToken": refresh_token})
        assert stale.status_code == 401

        logout = client.post("/api/auth/logout", json={"refreshToken": new_refresh})
        assert logout.json()["message"] == "Logged out successfully"
        assert client.post("/api/auth/refresh", json={"refreshToken": new_refresh}).status_code == 401


class TestEnterpriseRoute:
    """Test GET /api/enterprise"""

    def test_success(self, client, gateway):
        """Test patients lookup"""
        gateway.routes["/enterprise/7"] = (200, ENTERPRISE_PAYLOAD)

        response = client.get("/api/enterprise", params={"enterpriseId": "7", "dataModel": "Patients"})

        body = response.json()
        assert response.status_code == 200
        assert body["enterpriseId"] == "7"
        assert body["dataModel"] == "Patients"
        assert body["data"]["patients"][0]["PatientId"] == "P005"
        assert "devices" not in body["data"]
        assert body["responseTime"] >= 0

    @pytest.mark.parametrize("params", [
        {"enterpriseId": "7"},
        {"enterpriseId": "7", "dataModel": "everything"},
        {"dataModel": "both"},
    ])
    def test_bad_params(self, client, params):
        """Test missing or invalid parameters are 400"""
        assert client.get("/api/enterprise", params=params).status_code == 400

    def test_gateway_down(self, client):
        """Test exhausted retries give 502"""
        response = client.get("/api/enterprise", params={"enterpriseId": "7", "dataModel": "both"})
        assert response.status_code == 502
        assert response.json()["error"] == "HDIMS adapter service unavailable"


class TestServerApp:
    """Test system routes on the real application"""

    def test_root_and_health(self, settings, vision):
        """Test banner and health endpoints"""
        populate_state(server_app, settings, vision)
        client = TestClient(server_app)

        assert client.get("/").json()["docs"] == "/docs"
        assert client.get("/health").json()["status"] == "ok"
        health = client.get("/api/health")
        assert health.json()["registeredDevices"] == 5
        assert health.json()["inFlightRequests"] == 0
        assert "X-Request-ID" in health.headers


class TestMiddleware:
    """Test request ids and rate limiting"""

    def make_app(self, max_requests):
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware, max_requests=max_requests, window_seconds=60)
        app.add_middleware(RequestIdMiddleware)

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        return app

    def test_request_id_echoed(self):
        """Test a caller-supplied request id is echoed back"""
        client = TestClient(self.make_app(10))
        response = client.get("/ping", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
        assert "X-Response-Time-Ms" in response.headers

    def test_rate_limit(self):
        """Test requests beyond the window limit get 429"""
        client = TestClient(self.make_app(2))
        assert client.get("/ping").status_code == 200
        assert client.get("/ping").status_code == 200

        limited = client.get("/ping")
        assert limited.status_code == 429
        assert limited.json() == {"success": False, "error": "Rate limit exceeded"}
        assert limited.headers["Retry-After"] == "60"
