"""
scorescope.py

Real entrypoint that launches the score identification server.

Integration
- Loads config and paths
- Configures logging
- Loads the JSON score store and starts the Tesseract-backed screen reader
- Builds the ScoreIdentifier and serves it with the Flask app from web_server.py

Sample data
- --write-sample-store PATH writes a small deterministic store (see sample_replay.py) and exits.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

import paths
from config import AppConfig, get_config
from sample_replay import build_sample_records
from score_identifier import ScoreIdentifier
from score_ocr import ScreenReader, TesseractRecognizer
from score_store import ScoreStore
from web_server import WebServerConfig, create_flask_app

logger = logging.getLogger("scorescope")


def configure_logging(level_name: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level_name).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def write_sample_store(store_path: Path) -> Path:
    username = "sample_player"
    store = ScoreStore({username: 1}, build_sample_records(user_id=1, username=username))
    store.save(store_path)
    return store_path


def build_identifier(app_config: AppConfig, *, store_path: Path, bot_user_id: Optional[str] = None) -> ScoreIdentifier:
    store = ScoreStore.load(store_path, missing_ok=True)

    ocr_config = app_config.ocr
    recognizer = TesseractRecognizer(
        tessdata_dir=paths.resolve_app_path(ocr_config.tessdata_dir, paths.ocr_data_dir()),
        tesseract_cmd=ocr_config.tesseract_cmd,
        text_language=ocr_config.text_language,
        digits_language=ocr_config.digits_language,
    )

    return ScoreIdentifier.from_app_config(
        app_config,
        store,
        ScreenReader(recognizer),
        bot_user_id=bot_user_id,
    )


def main() -> int:
    argument_parser = argparse.ArgumentParser(description="scorescope score identification server")
    argument_parser.add_argument("--host", default=None, help="Bind host. Defaults to web_server.host from config.")
    argument_parser.add_argument("--port", type=int, default=None, help="Bind port. Defaults to web_server.port from config.")
    argument_parser.add_argument("--store", default=None, help="JSON score store. Defaults to web_server.score_store_path.")
    argument_parser.add_argument("--bot-user-id", default=None, help="Reactions from this id are ignored.")
    argument_parser.add_argument("--write-sample-store", default=None, metavar="PATH", help="Write sample scores and exit.")
    argument_parser.add_argument("--web-debug", action="store_true", help="Enable Flask debug mode.")
    parsed_args = argument_parser.parse_args()

    app_config, config_path = get_config()
    configure_logging(app_config.logging.level)
    logger.info("Using config %s", config_path)

    if parsed_args.write_sample_store:
        written_path = write_sample_store(Path(parsed_args.write_sample_store))
        logger.info("Wrote sample score store to %s", written_path)
        return 0

    store_path = paths.resolve_app_path(
        parsed_args.store or app_config.web_server.score_store_path,
        paths.default_score_store_path(),
    )
    identifier = build_identifier(app_config, store_path=store_path, bot_user_id=parsed_args.bot_user_id)

    web_server_config = WebServerConfig(
        host=str(parsed_args.host or app_config.web_server.host),
        port=int(parsed_args.port or app_config.web_server.port),
        debug=bool(parsed_args.web_debug),
    )
    flask_app = create_flask_app(web_server_config, identifier)

    flask_app.run(
        host=web_server_config.host,
        port=web_server_config.port,
        debug=web_server_config.debug,
        use_reloader=False,
        threaded=True,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
