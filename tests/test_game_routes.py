import pytest

pytest.importorskip("httpx", reason="httpx requis pour les tests client FastAPI")

from fastapi.testclient import TestClient

from blamegame.config.settings import settings
from blamegame.main import app
from blamegame.services.session_store import drop_flow, session_store_path


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DATA_DIR", str(tmp_path))
    monkeypatch.setattr(settings, "MIN_LOADING_SECONDS", 0.0)
    monkeypatch.setattr(settings, "CONTENT_BASE_URL", None)
    with TestClient(app) as c:
        yield c


def _create(client, sid):
    response = client.post("/game", json={"session_id": sid})
    assert response.status_code == 200
    return response.json()


def test_health_and_root(client):
    assert client.get("/").json()["ok"] is True
    health = client.get("/health").json()
    assert health == {"ok": True, "service": settings.APP_NAME}
    assert client.get("/health/content").json()["source"] == "files"


def test_unknown_session_is_404(client):
    assert client.get("/game/does-not-exist/state").status_code == 404
    assert client.post("/game/does-not-exist/start").status_code == 404


def test_classic_round_over_http(client):
    sid = "routes-classic"
    try:
        created = _create(client, sid)
        assert created["state"]["step"] == "intro"
        slots = created["state"]["players"]

        for slot, name in zip(slots, ("Ana", "Ben")):
            renamed = client.patch(f"/game/{sid}/players/{slot['id']}", json={"name": name})
            assert renamed.json()["ok"] is True

        updated = client.patch(
            f"/game/{sid}/settings",
            json={"category_count": 2, "prompts_per_category": 2, "language": "en"},
        )
        assert updated.json()["state"]["settings"]["language"] == "en"
        assert client.patch(f"/game/{sid}/settings", json={"category_count": 0}).status_code == 422

        categories = client.get(f"/game/{sid}/categories").json()["categories"]
        assert {c["id"] for c in categories} == {"party", "travel", "food", "work"}

        started = client.post(f"/game/{sid}/start", params={"wait": "true"}).json()
        assert started["state"]["step"] == "playing"
        assert started["state"]["round"]["total"] == 4

        result = None
        for _ in range(4):
            result = client.post(f"/game/{sid}/advance").json()
        assert result["state"]["step"] == "summary"
        assert result["state"]["summary"]["total_prompts"] == 4

        restarted = client.post(f"/game/{sid}/restart").json()
        assert restarted["state"]["step"] == "intro"
        assert session_store_path(sid).exists()
    finally:
        drop_flow(sid)


def test_name_blame_over_http(client):
    sid = "routes-blame"
    try:
        created = _create(client, sid)
        slots = created["state"]["players"]
        client.patch(f"/game/{sid}/players/{slots[0]['id']}", json={"name": "Ana"})
        client.patch(f"/game/{sid}/players/{slots[1]['id']}", json={"name": "Ben"})
        client.patch(
            f"/game/{sid}/settings",
            json={"game_mode": "nameBlame", "category_count": 1, "prompts_per_category": 2},
        )

        assert client.post(f"/game/{sid}/start").json()["state"]["step"] == "playerSetup"
        refused = client.post(f"/game/{sid}/confirm").json()
        assert refused["error"] == "invalid_setup"

        added = client.post(f"/game/{sid}/players", json={"name": "Cleo"}).json()
        assert added["ok"] is True
        confirmed = client.post(f"/game/{sid}/confirm", params={"wait": "true"}).json()
        assert confirmed["state"]["step"] == "playing"
        assert confirmed["state"]["current_player"] == "Ana"

        blamed = client.post(f"/game/{sid}/blame", json={"target": "Ben"}).json()
        assert blamed["state"]["blame_round"]["phase"] == "reveal"
        acked = client.post(f"/game/{sid}/reveal/ack").json()
        assert acked["state"]["current_player"] == "Ben"

        back = client.post(f"/game/{sid}/back").json()
        assert back["state"]["round"]["cursor"] == 0

        title = client.post(f"/game/{sid}/title").json()
        assert title["state"]["step"] == "intro"
    finally:
        drop_flow(sid)


def test_created_session_is_written_to_disk(client):
    sid = "routes-created"
    try:
        _create(client, sid)
        assert session_store_path(sid).exists()

        drop_flow(sid)
        reloaded = client.get(f"/game/{sid}/state")
        assert reloaded.status_code == 200
        assert reloaded.json()["step"] == "intro"
    finally:
        drop_flow(sid)


def test_malformed_session_id_is_rejected(client):
    assert client.post("/game", json={"session_id": "../escape"}).status_code == 422
    assert client.post("/game", json={"session_id": "bad.id"}).status_code == 422
    assert client.get("/game/bad.id/state").status_code == 422
    assert client.post("/game/bad.id/start").status_code == 422

    with pytest.raises(ValueError):
        session_store_path("../escape")


def test_reset_clears_session_data(client):
    sid = "routes-reset"
    try:
        created = _create(client, sid)
        slot = created["state"]["players"][0]
        client.patch(f"/game/{sid}/players/{slot['id']}", json={"name": "Ana"})
        client.patch(f"/game/{sid}/settings", json={"game_mode": "nameBlame", "category_count": 2})

        reset = client.post(f"/game/{sid}/reset").json()

        assert reset["ok"] is True
        assert reset["state"]["step"] == "intro"
        assert [p["name"] for p in reset["state"]["players"]] == ["", ""]
        assert reset["state"]["settings"]["game_mode"] == "classic"
        assert reset["state"]["settings"]["category_count"] == settings.DEFAULT_CATEGORY_COUNT
    finally:
        drop_flow(sid)
