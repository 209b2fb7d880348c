import asyncio

import pytest
from fakes import Clock, FlagStore, Roster, Settings, character
from fastapi.testclient import TestClient

from herokeeper.heropoints import HandlerContext, HeroPointTimer
from herokeeper.models import HeroPointSettings
from herokeeper_api.app import create_app
from herokeeper_api.core.config import get_settings
from herokeeper_api.core.dependencies import get_hero_point_service
from herokeeper_api.services import AuthService, HeroPointService

SECRET = "test-secret"


class SettingsStore(Settings):
    async def update(self, campaign_id, *, default_timeout_minutes=None, max_hero_points=None):
        if default_timeout_minutes is not None:
            if default_timeout_minutes < 0:
                raise ValueError("default_timeout_minutes must be >= 0")
            self.default_timeout_minutes = default_timeout_minutes
        if max_hero_points is not None:
            self.max_hero_points = max_hero_points
        return HeroPointSettings(
            campaign_id, self.default_timeout_minutes, self.max_hero_points
        )


@pytest.fixture
def service():
    service = HeroPointService(object())
    service.characters = Roster(
        character("kyra", user_id="u1", hero_points=2),
        character("pet", traits=["minion"]),
    )
    service.settings = SettingsStore(default_timeout_minutes=60, max_hero_points=3)
    service.clock = Clock()
    service.flags = FlagStore()
    service.timer = HeroPointTimer(
        service.flags, service.settings, clock=service.clock, scheduler=lambda d, cb: None
    )
    return service


@pytest.fixture
def client(monkeypatch, service):
    monkeypatch.setenv("JWT_SECRET_KEY", SECRET)
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/test")
    monkeypatch.setenv("ENVIRONMENT", "test")
    get_settings.cache_clear()

    app = create_app()
    app.dependency_overrides[get_hero_point_service] = lambda: service
    client = TestClient(app)
    client.cookies.set(
        "auth_token", AuthService(SECRET).create_access_token("gm", campaigns=["guild"])
    )
    yield client
    get_settings.cache_clear()


class TestAuth:
    def test_missing_cookie_is_401(self, client):
        client.cookies.clear()
        assert client.get("/api/hero-points/guild/settings").status_code == 401

    def test_bad_token_is_401(self, client):
        client.cookies.set("auth_token", "garbage")
        assert client.get("/api/hero-points/guild/settings").status_code == 401

    def test_foreign_campaign_is_403(self, client):
        assert client.get("/api/hero-points/elsewhere/settings").status_code == 403

    def test_token_round_trip(self):
        auth = AuthService(SECRET)
        payload = auth.verify_token(auth.create_access_token("gm", ["a", "b"]))
        assert payload["sub"] == "gm"
        assert AuthService.can_manage(payload, "b")
        assert not AuthService.can_manage(payload, "c")

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            AuthService("")


class TestSettingsEndpoints:
    def test_get(self, client):
        response = client.get("/api/hero-points/guild/settings")

        assert response.status_code == 200
        assert response.json()["default_timeout_minutes"] == 60
        assert response.json()["max_hero_points"] == 3

    def test_put_partial_update(self, client):
        response = client.put(
            "/api/hero-points/guild/settings", json={"default_timeout_minutes": 30}
        )

        assert response.status_code == 200
        assert response.json()["default_timeout_minutes"] == 30
        assert response.json()["max_hero_points"] == 3

    def test_put_validates(self, client):
        response = client.put("/api/hero-points/guild/settings", json={"max_hero_points": -1})
        assert response.status_code == 422


class TestRosterEndpoint:
    def test_marks_heroes(self, client):
        response = client.get("/api/hero-points/guild/roster")

        assert response.status_code == 200
        roster = {c["id"]: c for c in response.json()}
        assert roster["kyra"]["earns_hero_points"] is True
        assert roster["kyra"]["hero_points"] == 2
        assert roster["pet"]["earns_hero_points"] is False


class TestTimerEndpoint:
    def test_no_timer(self, client):
        body = client.get("/api/hero-points/guild/timers/gm").json()

        assert body["running"] is False
        assert body["remaining_minutes"] == 0
        assert body["start_time"] is None

    def test_running_timer(self, client, service):
        asyncio.run(service.timer.start(HandlerContext("guild", "gm"), 40))
        service.clock.advance_minutes(15)

        body = client.get("/api/hero-points/guild/timers/gm").json()

        assert body["running"] is True
        assert body["remaining_minutes"] == 25
        assert body["budget_minutes"] == 40


class TestServiceEndpoints:
    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_ping(self, client):
        assert client.get("/ping").text == "pong"
