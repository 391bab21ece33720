from __future__ import annotations

from flask import (
    current_app,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user, login_required

from markwise.errors import (
    ConflictError,
    MarkwiseError,
    NotFound,
    ValidationError,
)
from markwise.extensions import db
from markwise.services.actions import (
    DeleteBookmark,
    apply_edit_action,
    parse_edit_action,
)
from markwise.services.common import parse_tags
from markwise.services.enrichment import get_workflow
from markwise.services.query import BookmarkQuery, QueryComposer
from markwise.services.repository import BookmarkRepository
from markwise.web import web_bp


def _repository() -> BookmarkRepository:
    return BookmarkRepository(db.session)


def _json_error(message: str, status_code: int = 400):
    return jsonify({"error": message}), status_code


def _request_folder_id() -> int | None:
    return request.form.get("folder_id", type=int)


@web_bp.errorhandler(NotFound)
def handle_not_found(exc: NotFound):
    return render_template("not_found.html", message=exc.message), 404


@web_bp.route("/")
@login_required
def index():
    query = BookmarkQuery.from_args(request.args)
    listing = QueryComposer(_repository()).listing(current_user.id, query)
    return render_template("bookmarks.html", listing=listing, query=query)


@web_bp.route("/folders", methods=["POST"])
@login_required
def folders_create():
    try:
        folder = _repository().create_folder(current_user.id, request.form.get("name"))
    except ValidationError as exc:
        flash(exc.message, "error")
        return redirect(url_for("web.index"))
    except MarkwiseError:
        flash("A folder with that name already exists.", "error")
        return redirect(url_for("web.index"))
    flash(f"Folder {folder.name} created.", "success")
    return redirect(url_for("web.index", folder=folder.id))


@web_bp.route("/bookmarks/new", methods=["GET", "POST"])
@login_required
def bookmarks_new():
    folders = _repository().folders(current_user.id)
    if request.method == "POST":
        try:
            get_workflow().create_bookmark(
                current_user.id,
                request.form.get("url"),
                folder_id=_request_folder_id(),
                tags=parse_tags(request.form.get("tags") or ""),
                auto_summary=current_app.config["AUTO_SUMMARY"],
            )
        except (ValidationError, NotFound) as exc:
            flash(exc.message, "error")
            return render_template("bookmark_new.html", folders=folders), 400
        except MarkwiseError as exc:
            current_app.logger.warning("bookmark create failed: %s", exc.message)
            flash(exc.message, "error")
            return render_template("bookmark_new.html", folders=folders), 500
        flash("Bookmark saved.", "success")
        return redirect(url_for("web.index"))

    return render_template("bookmark_new.html", folders=folders)


@web_bp.route("/bookmarks/<int:bookmark_id>", methods=["GET", "POST"])
@login_required
def bookmarks_edit(bookmark_id: int):
    repository = _repository()
    item = repository.get(bookmark_id, current_user.id)
    folders = repository.folders(current_user.id)

    if request.method == "POST":
        status_code = 400
        try:
            action = parse_edit_action(request.form)
            apply_edit_action(repository, bookmark_id, current_user.id, action)
        except NotFound:
            raise
        except ValidationError as exc:
            flash(exc.message, "error")
        except ConflictError as exc:
            flash(exc.message, "error")
            status_code = 409
        except MarkwiseError as exc:
            current_app.logger.warning("bookmark update failed: %s", exc.message)
            flash(exc.message, "error")
            status_code = exc.status_code
        else:
            if isinstance(action, DeleteBookmark):
                flash("Bookmark deleted.", "success")
            else:
                flash("Bookmark updated.", "success")
            return redirect(url_for("web.index"))

        item = repository.get(bookmark_id, current_user.id)
        return (
            render_template("bookmark_edit.html", item=item, folders=folders),
            status_code,
        )

    return render_template("bookmark_edit.html", item=item, folders=folders)


@web_bp.route("/bookmarks/<int:bookmark_id>/generate-summary", methods=["POST"])
@login_required
def bookmarks_generate_summary(bookmark_id: int):
    try:
        update = get_workflow().generate_summary(bookmark_id, current_user.id)
    except MarkwiseError as exc:
        if exc.status_code >= 500:
            current_app.logger.warning("summary generation failed: %s", exc.message)
        return _json_error(exc.message, exc.status_code)
    return jsonify(update.as_dict())


@web_bp.route("/bookmarks/<int:bookmark_id>/text-to-speech", methods=["POST"])
@login_required
def bookmarks_text_to_speech(bookmark_id: int):
    try:
        result = get_workflow().synthesize_speech(bookmark_id, current_user.id)
    except MarkwiseError as exc:
        if exc.status_code >= 500:
            current_app.logger.warning("speech synthesis failed: %s", exc.message)
        return _json_error(exc.message, exc.status_code)
    return jsonify({"audio_url": result.audio_url})
