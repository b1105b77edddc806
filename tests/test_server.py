"""Tests for the FastAPI page."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from conftest import FakeClassifier, image_bytes
from oncolite.constants import REPORT_FILENAME
from oncolite.errors import ModelLoadError
from oncolite.server import create_app
from oncolite.session import Session
from oncolite.taxonomy import CLASS_LABELS

PATIENT = {"name": "Jane Doe", "patient_id": "P-0042", "age": "57", "gender": "F"}


@pytest.fixture
def session(config):
    session = Session(config=config, loader=lambda cfg: FakeClassifier())
    asyncio.run(session.initialize())
    return session


@pytest.fixture
def client(session):
    return TestClient(create_app(session=session))


def upload(client, data=None, name="slide.png", content_type="image/png"):
    return client.post("/upload", files={"file": (name, data or image_bytes(), content_type)})


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["model_status"] == "ready"
    assert body["labels"] == list(CLASS_LABELS)


def test_labels(client):
    assert client.get("/labels").json() == {"labels": list(CLASS_LABELS)}


def test_page_has_named_controls(client):
    response = client.get("/")
    assert response.status_code == 200
    for element in ("image-upload", "predict-button", "result", "zoom-in", "zoom-out",
                    "rotate-left", "rotate-right", "download-pdf", "demographics-form",
                    "patient_id", "generate-pdf"):
        assert f'id="{element}"' in response.text


def test_page_hides_export_controls_when_disabled(config):
    session = Session(config=config.with_overrides(enable_export=False), loader=lambda cfg: FakeClassifier())
    asyncio.run(session.initialize())
    client = TestClient(create_app(session=session))

    text = client.get("/").text

    assert 'id="download-pdf"' not in text
    assert 'id="demographics-form"' not in text


def test_upload_then_predict(client):
    assert upload(client).json()["can_predict"] is True

    response = client.post("/predict")

    assert response.status_code == 200
    state = response.json()
    assert state["result"] == "Prediction: Brain Glioma (Confidence: 60.0%)"
    assert len(state["top"]) == 3
    assert state["download_visible"] is True
    assert "Brain Glioma (60.0%)" in client.get("/").text


def test_browser_posts_redirect_to_page(client):
    response = upload(client)
    response = client.post("/zoom-in", headers={"accept": "text/html"}, follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/"


def test_upload_rejects_non_image(client):
    response = upload(client, data=b"hello", name="notes.txt", content_type="text/plain")
    assert response.status_code == 400
    assert response.json()["error"] == "ImageDecodeError"


def test_upload_rejects_corrupt_image(client):
    response = upload(client, data=b"\x89PNG broken")
    assert response.status_code == 400


def test_predict_without_image(client):
    response = client.post("/predict")
    assert response.status_code == 409


def test_predict_when_model_failed(config):
    def loader(cfg):
        raise ModelLoadError("no such file")

    session = Session(config=config, loader=loader)
    asyncio.run(session.initialize())
    client = TestClient(create_app(session=session))
    upload(client)

    response = client.post("/predict")

    assert response.status_code == 503
    assert "no such file" in response.json()["detail"]
    page = client.get("/").text
    assert "Model failed to load" in page
    assert 'id="predict-button" type="submit" disabled' in page


def test_view_endpoints(client):
    client.post("/zoom-in")
    client.post("/rotate-left")
    state = client.post("/rotate-left").json()

    assert state["view"]["scale"] == 1.1
    assert state["view"]["rotation"] == -180


def test_image_endpoint(client):
    assert client.get("/image").status_code == 409

    upload(client, data=image_bytes(size=(40, 20)))
    client.post("/rotate-right")

    plain = client.get("/image")
    rotated = client.get("/image", params={"transformed": True})

    assert plain.headers["content-type"] == "image/png"
    assert rotated.status_code == 200
    assert plain.content != rotated.content


def test_generate_pdf(client):
    upload(client)
    client.post("/predict")
    assert client.post("/download-pdf").json()["form_visible"] is True

    response = client.post("/generate-pdf", data=PATIENT)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert REPORT_FILENAME in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")
    assert client.get("/state").json()["form_visible"] is False


@pytest.mark.parametrize("field", ["name", "patient_id", "age", "gender"])
def test_generate_pdf_with_missing_field_aborts(client, field):
    upload(client)
    client.post("/predict")
    client.post("/download-pdf")

    response = client.post("/generate-pdf", data=dict(PATIENT, **{field: ""}))

    assert response.status_code == 422
    assert response.headers["content-type"].startswith("application/json")
    assert response.json()["detail"] == "Please fill out all demographic fields."
    assert response.json()["missing"] == [field]
    assert client.get("/state").json()["form_visible"] is True


def test_generate_pdf_before_predict(client):
    upload(client)
    response = client.post("/generate-pdf", data=PATIENT)
    assert response.status_code == 409


def test_browser_error_is_shown_on_page(client):
    response = client.post("/predict", headers={"accept": "text/html"}, follow_redirects=False)
    assert response.status_code == 303

    page = client.get(response.headers["location"]).text
    assert 'id="error"' in page
    assert "Upload an image before predicting" in page


def test_upload_refused_while_predicting(client, session):
    assert upload(client, name="first.png").status_code == 200
    session.predicting = True

    response = upload(client, data=image_bytes(color=(0, 0, 255)), name="second.png")

    assert response.status_code == 409
    assert response.json()["error"] == "PredictionInProgressError"
    session.predicting = False
    assert client.get("/state").json()["filename"] == "first.png"
