"""HTTP surface tests via FastAPI's TestClient."""

import base64

import pytest
from fastapi.testclient import TestClient

from backend.app import create_app
from conftest import read_log
from story_relay.config import RelayConfig

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


@pytest.fixture
def client(story_root):
    app = create_app(RelayConfig(root_dir=story_root, worker_mode="echo"))
    with TestClient(app) as c:
        yield c


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_settings_hide_engine_path(story_root):
    config = RelayConfig(root_dir=story_root, worker_mode="echo", engine_path="/secret/codex")
    with TestClient(create_app(config)) as c:
        body = c.get("/api/settings").json()
    assert body["worker_mode"] == "echo"
    assert "engine_path" not in body


def test_prompt_success(client):
    resp = client.post("/api/prompt", json={"storyId": "harbor", "text": "Hoist the sail"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "updated": True}
    assert [e["speaker"] for e in read_log("harbor")] == ["Player", "Narrator"]


@pytest.mark.parametrize("payload", [
    {},
    {"storyId": "harbor"},
    {"text": "hello"},
    {"storyId": "harbor", "text": "   "},
])
def test_prompt_missing_input(client, payload):
    resp = client.post("/api/prompt", json=payload)
    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "Missing storyId or text."}


@pytest.mark.parametrize("payload", [
    {"storyId": None, "text": "hi"},
    {"storyId": "harbor", "text": None},
    {"storyId": False, "text": "hi"},
    {"storyId": "harbor", "text": ["a", "list"]},
])
def test_prompt_null_or_odd_fields_are_missing_input(client, payload):
    resp = client.post("/api/prompt", json=payload)
    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "Missing storyId or text."}
    assert read_log("harbor") == []


def test_prompt_numeric_text_is_coerced(client):
    resp = client.post("/api/prompt", json={"storyId": "harbor", "text": 42})
    assert resp.status_code == 200
    assert read_log("harbor")[0]["text"] == "42"


def test_prompt_unparseable_body_keeps_turn_shape(client):
    resp = client.post("/api/prompt", content=b"{not json", headers={"content-type": "application/json"})
    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "Missing storyId or text."}


def test_prompt_unknown_story(client):
    resp = client.post("/api/prompt", json={"storyId": "cellar", "text": "hello"})
    assert resp.status_code == 400
    assert resp.json()["ok"] is False
    assert read_log("harbor") == []


def test_prompt_engine_unavailable_is_500(story_root, monkeypatch):
    monkeypatch.setenv("PATH", str(story_root / "empty"))
    config = RelayConfig(root_dir=story_root, worker_mode="ephemeral", engine_command="story-engine-test")
    with TestClient(create_app(config)) as c:
        resp = c.post("/api/prompt", json={"storyId": "harbor", "text": "hello"})
    assert resp.status_code == 500
    body = resp.json()
    assert body["ok"] is False
    assert "not found" in body["error"]


def test_list_stories(client):
    resp = client.get("/api/stories")
    assert [s["id"] for s in resp.json()] == ["harbor", "tower"]


def test_story_log(client):
    client.post("/api/prompt", json={"storyId": "tower", "text": "Climb"})
    log = client.get("/api/stories/tower/log").json()
    assert log[0]["text"] == "Climb"


def test_story_log_unknown(client):
    assert client.get("/api/stories/cellar/log").status_code == 404


def test_sessions_listing(client):
    client.post("/api/prompt", json={"storyId": "harbor", "text": "Hi"})
    sessions = client.get("/api/sessions").json()
    assert sessions[0]["story_id"] == "harbor"
    assert sessions[0]["worker_state"] == "absent"
    assert sessions[0]["busy"] is False


def test_upload_image(client, story_root):
    data_url = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()
    resp = client.post("/api/upload", json={"dataUrl": data_url, "filename": "my map.png"})
    assert resp.status_code == 200
    path = resp.json()["path"]
    assert path.startswith("/assets/uploads/mymap-")
    assert path.endswith(".png")
    stored = story_root / path.lstrip("/")
    assert stored.read_bytes() == PNG_BYTES


@pytest.mark.parametrize("payload", [
    {},
    {"dataUrl": "not a data url"},
    {"dataUrl": "data:text/plain;base64,aGk="},
])
def test_upload_rejects_bad_data(client, payload):
    assert client.post("/api/upload", json=payload).status_code == 400


def test_static_data_served(story_root):
    with TestClient(create_app(RelayConfig(root_dir=story_root, worker_mode="echo"))) as c:
        resp = c.get("/data/index.json")
    assert resp.status_code == 200
    assert resp.json()["stories"][0]["id"] == "harbor"
