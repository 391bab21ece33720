from __future__ import annotations

from flask import current_app, g, jsonify, request

from markwise.api import api_bp
from markwise.errors import MarkwiseError, ValidationError
from markwise.extensions import db
from markwise.models import ApiToken, User
from markwise.services.common import parse_tags
from markwise.services.enrichment import get_workflow
from markwise.services.query import UNCATEGORIZED, BookmarkQuery, QueryComposer
from markwise.services.repository import BookmarkChanges, BookmarkRepository
from markwise.services.security import api_auth_required


UPDATABLE_TEXT_FIELDS = ("url", "title", "description", "summary")


def _to_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _repository() -> BookmarkRepository:
    return BookmarkRepository(db.session)


def _payload() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _changes_from_payload(payload: dict) -> BookmarkChanges:
    changes = BookmarkChanges()
    for field in UPDATABLE_TEXT_FIELDS:
        if field in payload:
            setattr(changes, field, str(payload.get(field) or ""))
    if "folder_id" in payload:
        changes.folder_id = payload.get("folder_id")
    if "tags" in payload:
        changes.tags = parse_tags(payload.get("tags") or [])
    return changes


def _expected_version(payload: dict) -> int | None:
    raw = payload.get("version")
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError("version must be an integer") from exc


@api_bp.errorhandler(MarkwiseError)
def handle_markwise_error(exc: MarkwiseError):
    if exc.status_code >= 500:
        current_app.logger.warning("api request failed: %s", exc.message)
    return jsonify({"error": exc.message}), exc.status_code


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok"})


@api_bp.route("/auth/token", methods=["POST"])
def create_token_with_credentials():
    payload = _payload()
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""
    user = User.query.filter_by(email=email).first()
    if not user or not user.is_active or not user.check_password(password):
        return jsonify({"error": "invalid credentials"}), 401

    token, token_hash = ApiToken.issue_token()
    name = (payload.get("token_name") or "api").strip() or "api"
    db.session.add(ApiToken(user_id=user.id, name=name, token_hash=token_hash))
    db.session.commit()
    return jsonify({"token": token, "token_name": name})


@api_bp.route("/bookmarks", methods=["GET"])
@api_auth_required
def bookmarks_list_api():
    query = BookmarkQuery.from_args(request.args)
    listing = QueryComposer(_repository()).listing(g.api_user.id, query)
    return jsonify(listing.as_dict())


@api_bp.route("/bookmarks", methods=["POST"])
@api_auth_required
def bookmarks_create_api():
    payload = _payload()
    bookmark = get_workflow().create_bookmark(
        g.api_user.id,
        payload.get("url"),
        folder_id=payload.get("folder_id"),
        tags=parse_tags(payload.get("tags") or []),
        auto_summary=_to_bool(
            payload.get("auto_summary"), default=current_app.config["AUTO_SUMMARY"]
        ),
    )
    return jsonify(bookmark.as_dict()), 201


@api_bp.route("/bookmarks/<int:bookmark_id>", methods=["GET"])
@api_auth_required
def bookmarks_get_api(bookmark_id: int):
    return jsonify(_repository().get(bookmark_id, g.api_user.id).as_dict())


@api_bp.route("/bookmarks/<int:bookmark_id>", methods=["PATCH"])
@api_auth_required
def bookmarks_update_api(bookmark_id: int):
    payload = _payload()
    bookmark = _repository().update(
        bookmark_id,
        g.api_user.id,
        _changes_from_payload(payload),
        expected_version=_expected_version(payload),
    )
    return jsonify(bookmark.as_dict())


@api_bp.route("/bookmarks/<int:bookmark_id>", methods=["DELETE"])
@api_auth_required
def bookmarks_delete_api(bookmark_id: int):
    _repository().delete(bookmark_id, g.api_user.id)
    return jsonify({"status": "deleted"})


@api_bp.route("/bookmarks/<int:bookmark_id>/summary", methods=["POST"])
@api_auth_required
def bookmarks_summary_api(bookmark_id: int):
    update = get_workflow().generate_summary(bookmark_id, g.api_user.id)
    return jsonify(update.as_dict())


@api_bp.route("/bookmarks/<int:bookmark_id>/speech", methods=["POST"])
@api_auth_required
def bookmarks_speech_api(bookmark_id: int):
    result = get_workflow().synthesize_speech(bookmark_id, g.api_user.id)
    return jsonify({"audio_url": result.audio_url})


@api_bp.route("/folders", methods=["GET"])
@api_auth_required
def folders_list():
    repository = _repository()
    counts = repository.folder_counts(g.api_user.id)
    return jsonify(
        {
            "items": [
                {**folder.as_dict(), "count": counts.get(folder.id, 0)}
                for folder in repository.folders(g.api_user.id)
            ],
            "uncategorized_count": counts.get(UNCATEGORIZED, 0),
        }
    )


@api_bp.route("/folders", methods=["POST"])
@api_auth_required
def folders_create():
    folder = _repository().create_folder(g.api_user.id, _payload().get("name"))
    return jsonify(folder.as_dict()), 201


@api_bp.route("/tags", methods=["GET"])
@api_auth_required
def tags_list():
    return jsonify({"items": _repository().tag_names(g.api_user.id)})
