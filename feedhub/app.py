from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import Mapping

from flask import Flask, jsonify
from flask_cors import CORS

from feedhub.aggregation.ordering import OrderReconciler
from feedhub.aggregation.session import FeedSession
from feedhub.api.auth import issue_token
from feedhub.api.routes import api
from feedhub.config.logging import setup_logging
from feedhub.config.settings import Settings, load_settings, require_secret_key
from feedhub.favorites.store import FavoritesStore
from feedhub.sources.base import SourceAdapter
from feedhub.sources.factory import build_adapters
from feedhub.storage.backends import ApiBackend, LocalBackend
from feedhub.storage.database import Database

logger = logging.getLogger(__name__)


def create_flask_app(
    settings: Settings,
    database: Database,
    adapters: Mapping[str, SourceAdapter],
) -> Flask:
    app = Flask(__name__)
    CORS(
        app,
        resources={r"/api/*": {"origins": settings.cors_origins}},
        supports_credentials=True,
    )

    app.config["SETTINGS"] = settings
    app.config["SECRET_KEY"] = require_secret_key(settings)
    app.config["DATABASE"] = database
    app.config["ADAPTERS"] = dict(adapters)

    app.register_blueprint(api)

    @app.errorhandler(404)
    def _not_found(_error: Exception) -> tuple:
        return jsonify({"error": "Route not found"}), 404

    return app


def open_session(
    settings: Settings,
    user_id: str = "local",
    database: Database | None = None,
) -> FeedSession:
    """Build a feed session, persisting through the API when one is configured."""
    if settings.api_url and settings.api_token:
        backend = ApiBackend(
            settings.api_url, settings.api_token, timeout=settings.request_timeout_seconds
        )
        logger.info("Persisting favorites and order through %s", settings.api_url)
    else:
        backend = LocalBackend(database or Database(settings.db_path), user_id)
        logger.info("Persisting favorites and order locally for user %s", user_id)

    return FeedSession(
        build_adapters(settings),
        FavoritesStore(backend),
        OrderReconciler(backend),
        settings,
    )


async def run_flask(app: Flask, host: str, port: int) -> None:
    from wsgiref.simple_server import make_server

    server = make_server(host, port, app)
    logger.info("Flask server starting on http://%s:%d", host, port)
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, server.serve_forever)


async def serve(settings: Settings) -> None:
    database = Database(settings.db_path)
    app = create_flask_app(settings, database, build_adapters(settings))

    def _shutdown(sig: int, _frame: object) -> None:
        logger.info("Received signal %s, shutting down...", sig)
        database.close()
        sys.exit(0)

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    try:
        await run_flask(app, settings.host, settings.port)
    except Exception as exc:
        logger.error("Server error: %s", exc)
        raise
    finally:
        database.close()


async def show_feed(settings: Settings, user_id: str, query: str, pages: int) -> None:
    session = open_session(settings, user_id)
    try:
        await session.start()
        if query:
            session.set_query(query)
            await session.settle()
        while session.page < pages and await session.load_more():
            pass
        for item in session.items:
            marker = "*" if session.is_favorite(item.id) else " "
            print(f"{marker} [{item.kind:<6}] {item.title[:70]}")
        if session.failures:
            for kind, reason in session.failures.items():
                logger.warning("%s contributed no items: %s", kind, reason)
        print(f"{len(session.items)} items, more available: {session.has_more}")
    finally:
        await session.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="feedhub")
    parser.add_argument("--log-level", default=None, help="override the configured log level")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("serve", help="run the HTTP API")
    token_cmd = sub.add_parser("token", help="issue an API token for a user")
    token_cmd.add_argument("user_id")
    feed_cmd = sub.add_parser("feed", help="print the merged feed")
    feed_cmd.add_argument("--user", default="local")
    feed_cmd.add_argument("--query", default="")
    feed_cmd.add_argument("--pages", type=int, default=1)
    args = parser.parse_args(argv)

    settings = load_settings()
    setup_logging(args.log_level or settings.log_level, settings.log_file)

    if args.command == "token":
        print(issue_token(require_secret_key(settings), args.user_id))
    elif args.command == "feed":
        asyncio.run(show_feed(settings, args.user, args.query, args.pages))
    else:
        logger.info("Starting feedhub API...")
        asyncio.run(serve(settings))


if __name__ == "__main__":
    main()
