"""Closed set of actions the bookmark edit form can submit."""

from __future__ import annotations

from dataclasses import dataclass

from markwise.errors import ValidationError
from markwise.services.common import parse_tags
from markwise.services.repository import BookmarkChanges


INTENT_SAVE = "save"
INTENT_DELETE = "delete"


@dataclass(frozen=True)
class SaveBookmark:
    changes: BookmarkChanges
    expected_version: int | None = None


@dataclass(frozen=True)
class DeleteBookmark:
    pass


EditAction = SaveBookmark | DeleteBookmark


def _optional_int(raw) -> int | None:
    value = (raw or "").strip() if isinstance(raw, str) else raw
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Invalid form value.") from exc


def parse_edit_action(form) -> EditAction:
    intent = (form.get("intent") or INTENT_SAVE).strip().lower()
    if intent == INTENT_DELETE:
        return DeleteBookmark()
    if intent != INTENT_SAVE:
        raise ValidationError(f"Unknown action: {intent}")

    changes = BookmarkChanges(
        url=form.get("url") or "",
        title=form.get("title") or "",
        description=form.get("description") or "",
        summary=form.get("summary") or "",
        tags=parse_tags(form.get("tags") or ""),
    )
    if "folder_id" in form:
        changes.folder_id = _optional_int(form.get("folder_id"))
    return SaveBookmark(
        changes=changes, expected_version=_optional_int(form.get("version"))
    )


def apply_edit_action(repository, bookmark_id: int, owner_id: int, action: EditAction):
    if isinstance(action, DeleteBookmark):
        repository.delete(bookmark_id, owner_id)
        return None
    if isinstance(action, SaveBookmark):
        return repository.update(
            bookmark_id,
            owner_id,
            action.changes,
            expected_version=action.expected_version,
        )
    raise TypeError(f"unhandled edit action: {action!r}")
