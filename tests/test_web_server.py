"""
Tests for web_server.py

These tests ensure that:
1. The screenshot -> reaction flow works end to end over HTTP
2. Bad requests get 400 and JSON error bodies
3. Engine and source failures map to 503 and 502
"""

import io

import pytest
from fakes import FakeReader, png_bytes

from confirmation_tracker import ConfirmationTracker
from score_identifier import ScoreIdentifier, ScoreSourceError
from score_ocr import OcrEngineInitError
from web_server import WebServerConfig, create_flask_app


def make_client(source, reader):
    identifier = ScoreIdentifier(source, reader, ConfirmationTracker(ttl_seconds=None))
    flask_app = create_flask_app(WebServerConfig(host="127.0.0.1", port=5178), identifier)
    flask_app.config["TESTING"] = True
    return flask_app.test_client()


def post_screenshot(client, **form):
    data = {"image": (io.BytesIO(png_bytes(64, 36)), "shot.png")}
    data.update(form)
    return client.post("/api/screenshot", data=data, content_type="multipart/form-data")


@pytest.fixture
def client(sample_store, game_time_reading):
    return make_client(sample_store, FakeReader([game_time_reading]))


def test_status_reports_tracker_counts(client):
    response = client.get("/api/status")
    assert response.status_code == 200
    assert response.get_json() == {
        "ok": True,
        "confirmation": {"capacity": 512, "tracked": 0, "pending": 0, "revealed": 0},
    }
    assert response.headers["Cache-Control"] == "no-store"


def test_screenshot_then_reactions_reveal_the_report(client, sample_records):
    response = post_screenshot(client, message_id="m1", author_id="a1")
    assert response.status_code == 200
    identified = response.get_json()["identified"]
    assert identified["scorekey"] == sample_records[0].scorekey
    assert identified["message_id"] == "m1"

    first = client.post("/api/reaction", json={"message_id": "m1", "reactor_id": "a1"})
    assert first.get_json() == {"ok": True, "report": None}

    second = client.post("/api/reaction", json={"message_id": "m1", "reactor_id": "f1"})
    report = second.get_json()["report"]
    assert report["scorekey"] == sample_records[0].scorekey
    assert report["rate"] == 1.0
    assert report["card"]["fields"][0]["title"] == "Score comparisons"
    assert report["analysis"]["reference_comparison"]["judge"]["name"] == "J4"

    assert client.get("/api/status").get_json()["confirmation"]["revealed"] == 1


def test_numeric_ids_are_accepted(client):
    post_screenshot(client, message_id="42", author_id="7")
    client.post("/api/reaction", json={"message_id": 42, "reactor_id": 7})
    response = client.post("/api/reaction", json={"message_id": 42, "reactor_id": 8})
    assert response.get_json()["report"] is not None


def test_screenshot_requires_image_and_ids(client):
    assert client.post("/api/screenshot", data={"message_id": "m1"}).status_code == 400
    assert post_screenshot(client, message_id="m1").status_code == 400
    assert post_screenshot(client, message_id="m1").get_json()["ok"] is False


def test_reaction_requires_ids(client):
    response = client.post("/api/reaction", json={"message_id": "m1"})
    assert response.status_code == 400
    assert response.get_json()["ok"] is False


def test_scorecard_endpoint(client, sample_records):
    response = client.post("/api/scorecard", json={"scorekey": sample_records[2].scorekey, "text": "j7"})
    assert response.status_code == 200
    assert response.get_json()["report"]["alternative_judge"] == "J7"

    missing = client.post("/api/scorecard", json={"scorekey": "Smissing"})
    assert missing.status_code == 404

    assert client.post("/api/scorecard", json={}).status_code == 400


def test_engine_failure_is_503(sample_store):
    client = make_client(sample_store, FakeReader(error=OcrEngineInitError("no tesseract")))
    response = post_screenshot(client, message_id="m1", author_id="a1")
    assert response.status_code == 503
    assert "no tesseract" in response.get_json()["error"]


def test_source_failure_is_502(game_time_reading):
    class FailingSource:
        def user_id_for(self, username):
            raise ScoreSourceError("history unavailable")

        def recent_scores(self, user_id, limit):
            return []

        def score_details(self, scorekey):
            raise ScoreSourceError("history unavailable")

    client = make_client(FailingSource(), FakeReader([game_time_reading]))
    assert post_screenshot(client, message_id="m1", author_id="a1").status_code == 502
    assert client.post("/api/scorecard", json={"scorekey": "S1"}).status_code == 502


def test_unknown_route_is_json_404(client):
    response = client.get("/nope")
    assert response.status_code == 404
    assert response.get_json() == {"ok": False, "error": "Not found"}


def test_recent_score_endpoint(client, sample_records):
    response = client.post("/api/recent_score", json={"username": "sample_player", "text": "J7"})
    assert response.status_code == 200
    report = response.get_json()["report"]
    assert report["scorekey"] == sample_records[0].scorekey
    assert report["alternative_judge"] == "J7"
    assert report["card"]["footer"] == "Played by sample_player"
    assert "```nim" in report["card"]["description"]

    assert client.post("/api/recent_score", json={"username": "nobody"}).status_code == 404
    assert client.post("/api/recent_score", json={}).status_code == 400
