from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import delete, insert
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from markwise.errors import ConflictError, ConstraintError, NotFound, ValidationError
from markwise.models import (
    TAG_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Bookmark,
    Folder,
    Tag,
    bookmark_tags,
    utcnow,
)
from markwise.services.common import clean_text, parse_tags
from markwise.services.query import UNCATEGORIZED, BookmarkQuery, compose


_UNSET = object()


def _check_title_length(title: str) -> None:
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters")


def _check_tag_lengths(names: list[str]) -> None:
    too_long = [name for name in names if len(name) > TAG_MAX_LENGTH]
    if too_long:
        raise ValidationError(
            f"Tags must be at most {TAG_MAX_LENGTH} characters: {too_long[0]}"
        )


@dataclass
class BookmarkChanges:
    """Partial update; fields left as ``None`` are untouched.

    ``description`` and ``summary`` are cleared by passing an empty string.
    ``folder_id`` uses a sentinel so ``None`` can move a bookmark out of its
    folder.
    """

    url: str | None = None
    title: str | None = None
    description: str | None = None
    summary: str | None = None
    folder_id: object = _UNSET
    tags: list[str] | None = None


class BookmarkRepository:
    def __init__(self, session: Session):
        self.session = session

    def _commit(self) -> None:
        try:
            self.session.commit()
        except (IntegrityError, DataError) as exc:
            self.session.rollback()
            raise ConstraintError("Could not save changes.") from exc
        except StaleDataError as exc:
            self.session.rollback()
            raise ConflictError() from exc

    def _owned_folder_id(self, owner_id: int, folder_id) -> int | None:
        if folder_id is None or folder_id == "":
            return None
        try:
            folder_id = int(folder_id)
        except (TypeError, ValueError) as exc:
            raise ValidationError("Invalid folder.") from exc
        folder = (
            self.session.query(Folder)
            .filter_by(id=folder_id, user_id=owner_id)
            .first()
        )
        if folder is None:
            raise NotFound("Folder not found")
        return folder.id

    def create(
        self,
        owner_id: int,
        url: str | None,
        title: str | None,
        description: str | None = None,
        summary: str | None = None,
        favicon: str | None = None,
        folder_id: int | None = None,
        tags: Iterable[str] | None = None,
    ) -> Bookmark:
        url = clean_text(url)
        title = clean_text(title)
        if not url:
            raise ValidationError("URL is required")
        if not title:
            raise ValidationError("Title is required")
        _check_title_length(title)
        names = parse_tags(list(tags or []))
        _check_tag_lengths(names)

        bookmark = Bookmark(
            user_id=owner_id,
            url=url,
            title=title,
            description=clean_text(description),
            summary=clean_text(summary),
            favicon=clean_text(favicon),
            folder_id=self._owned_folder_id(owner_id, folder_id),
        )
        self.session.add(bookmark)
        try:
            self.session.flush()
        except (IntegrityError, DataError) as exc:
            self.session.rollback()
            raise ConstraintError("Could not save bookmark.") from exc

        if names:
            resolved = self.resolve_or_create_tags(owner_id, names)
            self.replace_bookmark_tags(bookmark.id, [tag.id for tag in resolved])
        self._commit()
        return bookmark

    def get(self, bookmark_id: int, owner_id: int) -> Bookmark:
        bookmark = (
            self.session.query(Bookmark)
            .filter_by(id=bookmark_id, user_id=owner_id)
            .first()
        )
        if bookmark is None:
            raise NotFound()
        return bookmark

    def update(
        self,
        bookmark_id: int,
        owner_id: int,
        changes: BookmarkChanges,
        expected_version: int | None = None,
    ) -> Bookmark:
        bookmark = self.get(bookmark_id, owner_id)
        if expected_version is not None and expected_version != bookmark.version:
            raise ConflictError()

        url = clean_text(changes.url) if changes.url is not None else bookmark.url
        title = clean_text(changes.title) if changes.title is not None else bookmark.title
        if not url or not title:
            raise ValidationError("Title and URL are required")
        _check_title_length(title)
        folder_id = bookmark.folder_id
        if changes.tags is not None:
            _check_tag_lengths(parse_tags(changes.tags))
        if changes.folder_id is not _UNSET:
            folder_id = self._owned_folder_id(owner_id, changes.folder_id)

        bookmark.url = url
        bookmark.title = title
        if changes.description is not None:
            bookmark.description = clean_text(changes.description)
        if changes.summary is not None:
            bookmark.summary = clean_text(changes.summary)
        bookmark.folder_id = folder_id

        if changes.tags is not None:
            resolved = self.resolve_or_create_tags(owner_id, changes.tags)
            self.replace_bookmark_tags(bookmark.id, [tag.id for tag in resolved])
            # association rows changed underneath the ORM; bump the row too
            self.session.expire(bookmark, ["tags"])
            bookmark.updated_at = utcnow()

        self._commit()
        return bookmark

    def set_summary(self, bookmark_id: int, owner_id: int, summary: str) -> Bookmark:
        bookmark = self.get(bookmark_id, owner_id)
        bookmark.summary = clean_text(summary)
        self._commit()
        return bookmark

    def delete(self, bookmark_id: int, owner_id: int) -> None:
        bookmark = self.get(bookmark_id, owner_id)
        self.session.execute(
            delete(bookmark_tags).where(bookmark_tags.c.bookmark_id == bookmark.id)
        )
        self.session.expire(bookmark, ["tags"])
        self.session.delete(bookmark)
        self._commit()

    def list(self, owner_id: int, query: BookmarkQuery | None = None) -> list[Bookmark]:
        return compose(self.session, owner_id, query or BookmarkQuery()).all()

    def resolve_or_create_tags(self, owner_id: int, names: Iterable[str]) -> list[Tag]:
        wanted = parse_tags(list(names))
        if not wanted:
            return []
        _check_tag_lengths(wanted)

        existing = {
            tag.name: tag
            for tag in self.session.query(Tag)
            .filter(Tag.user_id == owner_id, Tag.name.in_(wanted))
            .all()
        }
        resolved: list[Tag] = []
        for name in wanted:
            tag = existing.get(name)
            if tag is None:
                tag = Tag(user_id=owner_id, name=name)
                self.session.add(tag)
                existing[name] = tag
            resolved.append(tag)
        try:
            self.session.flush()
        except (IntegrityError, DataError) as exc:
            self.session.rollback()
            raise ConstraintError("Could not save tags.") from exc
        return resolved

    def replace_bookmark_tags(self, bookmark_id: int, tag_ids: Iterable[int]) -> None:
        unique_ids = list(dict.fromkeys(tag_ids))
        self.session.execute(
            delete(bookmark_tags).where(bookmark_tags.c.bookmark_id == bookmark_id)
        )
        if unique_ids:
            self.session.execute(
                insert(bookmark_tags),
                [{"bookmark_id": bookmark_id, "tag_id": tag_id} for tag_id in unique_ids],
            )

    def folder_counts(self, owner_id: int) -> dict[int | str, int]:
        known = {
            folder_id
            for (folder_id,) in self.session.query(Folder.id)
            .filter(Folder.user_id == owner_id)
            .all()
        }
        rows = (
            self.session.query(Bookmark.folder_id)
            .filter(Bookmark.user_id == owner_id)
            .all()
        )
        counts: Counter = Counter()
        for (folder_id,) in rows:
            counts[folder_id if folder_id in known else UNCATEGORIZED] += 1
        return dict(counts)

    def folders(self, owner_id: int) -> list[Folder]:
        return (
            self.session.query(Folder)
            .filter_by(user_id=owner_id)
            .order_by(Folder.name.asc())
            .all()
        )

    def create_folder(self, owner_id: int, name: str | None) -> Folder:
        name = clean_text(name)
        if not name:
            raise ValidationError("Folder name is required")
        folder = Folder(user_id=owner_id, name=name)
        self.session.add(folder)
        self._commit()
        return folder

    def tag_names(self, owner_id: int) -> list[str]:
        rows = (
            self.session.query(Tag.name)
            .filter_by(user_id=owner_id)
            .order_by(Tag.name.asc())
            .all()
        )
        return [name for (name,) in rows]
