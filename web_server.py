# -*- coding: utf-8 -*-
from __future__ import annotations

########################
# web_server.py
########################
# Purpose:
# - Local Flask web server that lets a chat host (or a browser) drive score identification.
# - Accepts screenshots and reactions, and serves score cards and tracker status as JSON.
#
# Design notes:
# - All state lives in the ScoreIdentifier passed to the app factory; handlers are thin.
# - Every response is JSON with an "ok" flag. Errors carry an "error" text and a 4xx/5xx code.
# - Message, author and reactor ids are opaque strings.
#
########################
# Interfaces:
# Public dataclasses:
# - WebServerConfig(host: str, port: int, debug: bool, max_upload_bytes: int)
#
# Public functions:
# - create_flask_app(config: WebServerConfig, identifier: ScoreIdentifier) -> flask.Flask
# - report_payload(report: ScoreReport) -> dict[str, Any]
#
# Inputs:
# - HTTP requests:
#   - /api/status (GET)
#   - /api/screenshot (POST, multipart: image file + message_id, author_id, poster_username)
#   - /api/reaction (POST, JSON: message_id, reactor_id)
#   - /api/scorecard (POST, JSON: scorekey, text, expected_username)
#   - /api/recent_score (POST, JSON: username, text)
#
# Outputs:
# - JSON responses built from score_identifier.py dataclasses.
#
########################
# Tests:
#   - python scorescope.py --host 127.0.0.1 --port 5178
########################

import dataclasses
import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional

from flask import Flask, Response, jsonify, request

from score_identifier import ScoreIdentifier, ScoreReport, ScoreSourceError
from score_ocr import OcrEngineInitError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebServerConfig:
    host: str
    port: int
    debug: bool = False
    max_upload_bytes: int = 16 * 1024 * 1024


def _serialize_dataclass(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        result: dict[str, Any] = {}
        for field in dataclasses.fields(value):
            result[field.name] = _serialize_dataclass(getattr(value, field.name))
        return result
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_serialize_dataclass(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _serialize_dataclass(subvalue) for key, subvalue in value.items()}
    return value


def _id_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    cleaned = str(value).strip()
    return cleaned or None


def report_payload(report: ScoreReport) -> dict[str, Any]:
    record = report.record
    return {
        "scorekey": record.scorekey,
        "user_id": record.user_id,
        "username": record.username,
        "song": record.song,
        "artist": record.artist,
        "pack": record.pack,
        "rate": record.rate.as_float() if record.rate is not None else None,
        "wifescore": record.wifescore,
        "alternative_judge": report.alternative_judge.name if report.alternative_judge is not None else None,
        "card": _serialize_dataclass(report.card),
        "analysis": _serialize_dataclass(report.analysis),
    }


def create_flask_app(config: WebServerConfig, identifier: ScoreIdentifier) -> Flask:
    flask_app = Flask(__name__, static_folder=None)
    flask_app.config["MAX_CONTENT_LENGTH"] = int(config.max_upload_bytes)

    flask_app.extensions["scorescope_identifier"] = identifier

    @flask_app.after_request
    def add_no_cache_headers(response: Response) -> Response:
        response.headers["Cache-Control"] = "no-store"
        return response

    @flask_app.errorhandler(404)
    def not_found(_error: Any) -> Response:
        return jsonify({"ok": False, "error": "Not found"}), 404

    @flask_app.errorhandler(413)
    def too_large(_error: Any) -> Response:
        return jsonify({"ok": False, "error": "Upload too large"}), 413

    def bad_request(error_text: str) -> Response:
        return jsonify({"ok": False, "error": error_text}), 400

    # API

    @flask_app.get("/api/status")
    def api_status() -> Response:
        return jsonify({"ok": True, "confirmation": identifier.tracker.snapshot()})

    @flask_app.post("/api/screenshot")
    def api_screenshot() -> Response:
        image_file = request.files.get("image")
        if image_file is None:
            return bad_request("Missing image file")

        message_id = _id_text(request.form.get("message_id"))
        author_id = _id_text(request.form.get("author_id"))
        if message_id is None or author_id is None:
            return bad_request("message_id and author_id are required")
        poster_username = (request.form.get("poster_username") or "").strip() or None

        image_bytes = image_file.read()
        if not image_bytes:
            return bad_request("Empty image file")

        try:
            identified = identifier.process_screenshot(message_id, author_id, image_bytes, poster_username)
        except OcrEngineInitError as exception:
            logger.error("OCR engine unavailable: %s", exception)
            return jsonify({"ok": False, "error": str(exception)}), 503
        except ScoreSourceError as exception:
            logger.warning("Score source failed for message %s: %s", message_id, exception)
            return jsonify({"ok": False, "error": str(exception)}), 502

        return jsonify({"ok": True, "identified": _serialize_dataclass(identified)})

    @flask_app.post("/api/reaction")
    def api_reaction() -> Response:
        payload = request.get_json(silent=True) or {}

        message_id = _id_text(payload.get("message_id"))
        reactor_id = _id_text(payload.get("reactor_id"))
        if message_id is None or reactor_id is None:
            return bad_request("message_id and reactor_id are required")

        try:
            report = identifier.process_reaction(message_id, reactor_id)
        except ScoreSourceError as exception:
            logger.warning("Score source failed for message %s: %s", message_id, exception)
            return jsonify({"ok": False, "error": str(exception)}), 502

        return jsonify({"ok": True, "report": report_payload(report) if report is not None else None})

    @flask_app.post("/api/scorecard")
    def api_scorecard() -> Response:
        payload = request.get_json(silent=True) or {}

        scorekey = str(payload.get("scorekey") or "").strip()
        if not scorekey:
            return bad_request("scorekey is required")
        text_value = payload.get("text")
        expected_username_value = payload.get("expected_username")

        try:
            report = identifier.score_report(
                scorekey,
                text=str(text_value) if isinstance(text_value, str) else None,
                expected_username=str(expected_username_value).strip() if isinstance(expected_username_value, str) else None,
            )
        except ScoreSourceError as exception:
            return jsonify({"ok": False, "error": str(exception)}), 502

        if report is None:
            return jsonify({"ok": False, "error": f"Score not found: {scorekey}"}), 404
        return jsonify({"ok": True, "report": report_payload(report)})

    @flask_app.post("/api/recent_score")
    def api_recent_score() -> Response:
        payload = request.get_json(silent=True) or {}

        username = str(payload.get("username") or "").strip()
        if not username:
            return bad_request("username is required")
        text_value = payload.get("text")

        try:
            report = identifier.recent_score_report(
                username,
                text=str(text_value) if isinstance(text_value, str) else None,
            )
        except ScoreSourceError as exception:
            return jsonify({"ok": False, "error": str(exception)}), 502

        if report is None:
            return jsonify({"ok": False, "error": f"No recent score for {username}"}), 404
        return jsonify({"ok": True, "report": report_payload(report)})

    return flask_app
