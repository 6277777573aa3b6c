import base64
from io import BytesIO

import numpy as np
import pytest
from PIL import Image as PILImage

from unsharp_studio import api_server


def png_bytes(pixels):
    buffer = BytesIO()
    PILImage.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


def decode_data_url(url):
    prefix = "data:image/png;base64,"
    assert url.startswith(prefix)
    return np.array(PILImage.open(BytesIO(base64.b64decode(url[len(prefix):]))).convert("RGBA"))


@pytest.fixture
def client():
    api_server.app.config["TESTING"] = True
    with api_server.app.test_client() as c:
        yield c
    for session in list(api_server.sessions.values()):
        session.close()
    api_server.sessions.clear()


@pytest.fixture
def loaded(client, block_image):
    response = client.post(
        "/api/load-image",
        data={"image": (BytesIO(png_bytes(block_image.pixels)), "block.png")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 200
    return response.get_json()["session_id"]


def test_health(client):
    body = client.get("/api/health").get_json()
    assert body["status"] == "healthy"
    assert body["active_sessions"] == 0


def test_load_image_returns_state(client, block_image):
    response = client.post(
        "/api/load-image",
        data={"image": (BytesIO(png_bytes(block_image.pixels)), "block.png")},
        content_type="multipart/form-data",
    )
    body = response.get_json()
    assert body["success"] is True
    assert (body["width"], body["height"]) == (4, 4)
    assert body["history"] == []
    np.testing.assert_array_equal(decode_data_url(body["image"]), block_image.pixels)


def test_load_image_requires_a_file(client):
    response = client.post("/api/load-image", data={}, content_type="multipart/form-data")
    assert response.status_code == 400


def test_load_image_rejects_extension(client, block_image):
    response = client.post(
        "/api/load-image",
        data={"image": (BytesIO(png_bytes(block_image.pixels)), "block.txt")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400


def test_load_image_rejects_garbage(client):
    response = client.post(
        "/api/load-image",
        data={"image": (BytesIO(b"not a png"), "broken.png")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
    assert response.get_json()["success"] is False


def test_filter_steps_build_history(client, loaded):
    for step in ("contrast", "grayscale", "threshold"):
        response = client.post(f"/api/{step}", json={"session_id": loaded})
        assert response.status_code == 200
    body = response.get_json()
    assert body["history"] == ["contrast", "grayscale", "threshold"]


def test_unsharp_step_accepts_parameters(client, loaded):
    response = client.post("/api/unsharp", json={"session_id": loaded, "amount": 1, "sigma": 1, "iterations": 1})
    assert response.status_code == 200
    assert response.get_json()["history"] == ["unsharp"]


def test_render_changes_display_but_not_history(client, loaded):
    body = client.post("/api/render", json={
        "session_id": loaded, "stroke_size": 1, "stroke_color": "#FF0000",
    }).get_json()
    assert body["history"] == []
    shown = decode_data_url(body["image"])
    assert shown[0, 0].tolist() == [255, 0, 0, 255]
    assert shown[1, 1].tolist() == [255, 255, 255, 255]

    # the stroke settings stay on the session for later steps
    body = client.post("/api/grayscale", json={"session_id": loaded}).get_json()
    assert decode_data_url(body["image"])[0, 0].tolist() == [255, 0, 0, 255]


def test_reset_clears_history(client, loaded):
    client.post("/api/threshold", json={"session_id": loaded})
    body = client.post("/api/reset", json={"session_id": loaded}).get_json()
    assert body["history"] == []


def test_invalid_session_is_rejected(client):
    response = client.post("/api/grayscale", json={"session_id": "missing"})
    assert response.status_code == 400
    assert response.get_json()["message"] == "Invalid session"


@pytest.mark.parametrize("payload", [
    {"stroke_color": "#12"},
    {"contrast_amount": 259},
    {"stroke_size": 100},
])
def test_bad_parameters_are_rejected(client, loaded, payload):
    response = client.post("/api/contrast", json=dict(payload, session_id=loaded))
    assert response.status_code == 400
    assert response.get_json()["success"] is False
    # a rejected step leaves the session untouched
    body = client.post("/api/render", json={"session_id": loaded}).get_json()
    assert body["history"] == []


def test_clear_session(client, loaded):
    assert client.post("/api/clear-session", json={"session_id": loaded}).get_json()["success"] is True
    assert loaded not in api_server.sessions
    again = client.post("/api/clear-session", json={"session_id": loaded})
    assert again.status_code == 400
    assert again.get_json()["success"] is False


@pytest.mark.parametrize("upload", [
    None,
    (b"not a png", "broken.png"),
    (b"irrelevant", "notes.txt"),
])
def test_rejected_uploads_open_no_session(client, upload):
    data = {} if upload is None else {"image": (BytesIO(upload[0]), upload[1])}
    response = client.post("/api/load-image", data=data, content_type="multipart/form-data")
    assert response.status_code == 400
    assert api_server.sessions == {}
