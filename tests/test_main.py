import time
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from slidesmith.main import app, get_workspace
from slidesmith.workflow import Workspace


@pytest.fixture
def client(settings, fake_clients):
    workspace = Workspace(settings, clients=fake_clients)
    app.dependency_overrides[get_workspace] = lambda: workspace
    # one event loop for the whole test so dialog tasks outlive their request
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def _wait_for_refine(client):
    for _ in range(100):
        dialog = client.get("/api/refine").json()
        if dialog["result"] is not None or dialog["error"] is not None:
            return dialog
        time.sleep(0.05)
    raise AssertionError("refine dialog never finished")


def _open_deck(client):
    client.put("/api/settings/api-key", data={"provider": "gemini", "api_key": "g-key"})
    r = client.post("/api/document", files={"document": ("report.txt", b"Q1 revenue grew 20%", "text/plain")},
                    data={"language": "EN"})
    assert r.status_code == 200
    assert r.json()["state"] == "REVIEWING_OUTLINE"
    assert client.post("/api/outline/confirm").status_code == 200
    r = client.post("/api/presentation", data={"template_id": "forest-green"})
    assert r.status_code == 200
    return r.json()


def test_healthz(client):
    assert client.get("/healthz").json()["ok"] is True


def test_settings_never_return_keys(client):
    r = client.put("/api/settings/api-key", data={"provider": "gemini", "api_key": "g-secret"})
    assert r.status_code == 200
    assert "g-secret" not in r.text
    assert r.json()["configured_keys"] == ["gemini"]
    assert client.put("/api/settings/provider", data={"provider": "llama"}).status_code == 400


def test_upload_without_key(client):
    r = client.post("/api/document", files={"document": ("report.txt", b"text", "text/plain")})
    assert r.status_code == 400
    assert r.json()["detail"] == "API Key for gemini is missing."
    assert client.get("/api/workspace").json()["error"] == "Please enter a valid API Key above to begin."


def test_editor_endpoints(client):
    state = _open_deck(client)
    assert len(state["presentation"]["slides"]) == 2

    state = client.post("/api/slides").json()
    assert state["selected_index"] == 2
    state = client.post("/api/slides/reorder", data={"from_index": 2, "to_index": 0}).json()
    assert state["presentation"]["slides"][0]["title"] == "New Slide"
    assert state["selected_index"] == 0

    state = client.patch("/api/slides/1", json={"title": "Cover"}).json()
    assert state["presentation"]["slides"][1]["title"] == "Cover"
    assert client.put("/api/slides/1/transition", data={"transition": "spin"}).status_code == 400

    state = client.delete("/api/slides/0").json()
    assert len(state["presentation"]["slides"]) == 2


def test_refine_and_accept(client, fake_clients):
    _open_deck(client)
    fake_clients.release.clear()
    r = client.post("/api/refine", data={"slide_index": 1, "content_index": 0})
    assert r.status_code == 200
    assert r.json()["original"] == "Q1 revenue grew 20%"
    assert client.post("/api/refine/accept").status_code == 409

    fake_clients.release.set()
    assert _wait_for_refine(client)["preview"] == "Refined text"
    r = client.post("/api/refine/accept")
    assert r.status_code == 200
    assert r.json()["presentation"]["slides"][1]["content"][0] == "Refined text"
    assert client.get("/api/refine").status_code == 404


def test_closed_refine_leaves_slide(client, fake_clients):
    _open_deck(client)
    fake_clients.release.clear()
    client.post("/api/refine", data={"slide_index": 0, "content_index": -1})
    state = client.delete("/api/refine").json()
    fake_clients.release.set()
    assert state["presentation"]["slides"][0]["title"] == "Quarterly Results"
    assert client.post("/api/refine/accept").status_code == 404
    assert client.get("/api/presentation").json()["presentation"]["slides"][0]["title"] == "Quarterly Results"


def test_image_round_trip(client, fake_clients):
    _open_deck(client)
    r = client.post("/api/image/open", data={"slide_index": 1})
    assert r.json()["open"] is True
    r = client.post("/api/image/generate", data={"prompt": "a bar chart"})
    assert r.status_code == 200
    assert r.json()["image_url"] == fake_clients.image
    assert r.json()["presentation"]["slides"][1]["image_url"] == fake_clients.image
    assert client.post("/api/image/generate", data={"prompt": "again"}).status_code == 409


def test_unknown_column_is_rejected(client):
    _open_deck(client)
    r = client.put("/api/slides/1/bullets/0", data={"text": "x", "column": "middle"})
    assert r.status_code == 400
    assert client.delete("/api/slides/1/bullets/0", params={"column": "middle"}).status_code == 400
    state = client.get("/api/presentation").json()
    assert state["presentation"]["slides"][1]["content"][0] == "Q1 revenue grew 20%"
    r = client.put("/api/slides/1/bullets/0", data={"text": "Q3 rebound", "column": "right"})
    assert r.json()["presentation"]["slides"][1]["content"][2] == "Q3 rebound"


def test_export(client):
    _open_deck(client)
    r = client.get("/api/export/pptx")
    assert r.status_code == 200
    assert 'filename="My_AI_Presentation.pptx"' in r.headers["content-disposition"]
    assert client.get("/api/export/gif").status_code == 400


def test_export_non_ascii_title(client):
    _open_deck(client)
    client.put("/api/presentation/title", data={"title": '季度報告 "Q1"'})
    r = client.get("/api/export/pdf")
    assert r.status_code == 200
    disposition = r.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="')
    assert "filename*=UTF-8''" + quote('季度報告_"Q1".pdf', safe="") in disposition
    assert r.content[:4] == b"%PDF"


def test_playback(client):
    _open_deck(client)
    assert client.post("/api/playback").json()["position"] == "1 / 2"
    assert client.post("/api/playback/key", data={"key": "ArrowRight"}).json()["index"] == 1
    assert client.post("/api/playback/key", data={"key": "Escape"}).json()["active"] is False
    assert client.get("/api/playback").status_code == 409


def test_editor_needs_presentation(client):
    assert client.get("/api/presentation").status_code == 409
