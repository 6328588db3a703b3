from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, g, jsonify, request

from feedhub.aggregation.fetch import aggregate_page
from feedhub.api.auth import require_auth
from feedhub.errors import AlreadyFavorited, AuthRejected, InvalidPage, NotFound, SourceUnavailable
from feedhub.models.types import MOVIE, NEWS, SOCIAL, PageParams, PageResult
from feedhub.storage.backends import LocalBackend

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

api = Blueprint("api", __name__, url_prefix="/api")


def _get_database():
    return current_app.config["DATABASE"]


def _get_adapters():
    return current_app.config["ADAPTERS"]


def _get_settings():
    return current_app.config["SETTINGS"]


def _backend() -> LocalBackend:
    return LocalBackend(_get_database(), g.user_id)


def _page_arg() -> int:
    raw = request.args.get("page", "1")
    try:
        page = int(raw)
    except ValueError:
        raise InvalidPage(raw) from None
    if page < 1:
        raise InvalidPage(page)
    return page


def _page_response(result: PageResult, page: int) -> dict:
    return {
        "kind": result.kind,
        "page": page,
        "items": [item.to_snapshot() for item in result.items],
        "hasMore": result.has_more,
    }


def _fetch_kind(kind: str, filter_value: str | None, query: str) -> tuple:
    try:
        page = _page_arg()
        adapter = _get_adapters()[kind]
        result = adapter.fetch_page(PageParams(page=page, filter=filter_value, query=query))
        return jsonify(_page_response(result, page)), 200
    except InvalidPage as exc:
        return jsonify({"error": str(exc)}), 400
    except AuthRejected as exc:
        return jsonify({"error": str(exc), "code": "provider_auth_rejected"}), 502
    except SourceUnavailable as exc:
        return jsonify({"error": str(exc), "code": "source_unavailable"}), 502
    except Exception as exc:
        logger.exception("Error fetching %s: %s", kind, exc)
        return jsonify({"error": f"Failed to fetch {kind}"}), 500


@api.route("/health", methods=["GET"])
def health() -> tuple:
    return jsonify({
        "status": "OK",
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        "server": "feedhub API",
        "version": API_VERSION,
    }), 200


@api.route("/news", methods=["GET"])
@require_auth
def get_news() -> tuple:
    return _fetch_kind(NEWS, request.args.get("category"), request.args.get("q", ""))


@api.route("/movies", methods=["GET"])
@require_auth
def get_movies() -> tuple:
    return _fetch_kind(MOVIE, request.args.get("type"), request.args.get("query", ""))


@api.route("/social", methods=["GET"])
@require_auth
def get_social() -> tuple:
    return _fetch_kind(SOCIAL, request.args.get("hashtag"), "")


@api.route("/feed", methods=["GET"])
@require_auth
def get_feed() -> tuple:
    try:
        page = _page_arg()
        query = request.args.get("q", "").strip()
        settings = _get_settings()
        params = {
            NEWS: PageParams(page, request.args.get("category"), query),
            MOVIE: PageParams(page, request.args.get("type"), query),
            SOCIAL: PageParams(page, request.args.get("hashtag"), ""),
        }
        order = _backend().get_content_order()
        result, outcome = asyncio.run(
            aggregate_page(
                _get_adapters(), params, order, query, page=page, max_pages=settings.max_pages
            )
        )
        return jsonify({
            "page": page,
            "items": [item.to_snapshot() for item in result.items],
            "hasMore": result.has_more,
            "failures": result.failures,
            "authRejected": outcome.auth_error is not None,
        }), 200
    except InvalidPage as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception as exc:
        logger.exception("Error building feed: %s", exc)
        return jsonify({"error": "Failed to build feed"}), 500


@api.route("/user/favorites", methods=["GET"])
@require_auth
def list_favorites() -> tuple:
    try:
        return jsonify(_backend().list_favorites()), 200
    except Exception as exc:
        logger.exception("Favorites fetch error: %s", exc)
        return jsonify({"error": "Internal server error"}), 500


@api.route("/user/favorites", methods=["POST"])
@require_auth
def add_favorite() -> tuple:
    data = request.get_json(silent=True)
    try:
        row = _backend().add_favorite(data)
        return jsonify(row), 201
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
    except AlreadyFavorited:
        return jsonify({"error": "Content already in favorites"}), 409
    except Exception as exc:
        logger.exception("Add favorite error: %s", exc)
        return jsonify({"error": "Internal server error"}), 500


@api.route("/user/favorites/<favorite_id>", methods=["DELETE"])
@require_auth
def remove_favorite(favorite_id: str) -> tuple:
    try:
        _backend().remove_favorite(favorite_id)
        return jsonify({"message": "Removed from favorites successfully"}), 200
    except NotFound:
        return jsonify({"error": "Favorite not found"}), 404
    except Exception as exc:
        logger.exception("Remove favorite error %s: %s", favorite_id, exc)
        return jsonify({"error": "Internal server error"}), 500


@api.route("/user/content-order", methods=["GET"])
@require_auth
def get_content_order() -> tuple:
    try:
        return jsonify({"contentOrder": _backend().get_content_order()}), 200
    except Exception as exc:
        logger.exception("Content order fetch error: %s", exc)
        return jsonify({"error": "Internal server error"}), 500


@api.route("/user/content-order", methods=["PUT"])
@require_auth
def update_content_order() -> tuple:
    data = request.get_json(silent=True) or {}
    content_order = data.get("contentOrder") if isinstance(data, dict) else None
    if not isinstance(content_order, list) or not all(isinstance(i, str) for i in content_order):
        return jsonify({"error": "Content order must be an array of strings"}), 400
    try:
        _backend().save_content_order(content_order)
        return jsonify({"message": "Content order updated successfully"}), 200
    except Exception as exc:
        logger.exception("Content order update error: %s", exc)
        return jsonify({"error": "Internal server error"}), 500
