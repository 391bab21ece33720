"""Turns list-view parameters into one filtered, sorted bookmark query.

Filters are AND-composed and an absent filter means "no constraint":

* ``folder`` matches the folder id exactly, or bookmarks without a usable
  folder when it is ``"uncategorized"``.
* ``text`` is a case-insensitive substring match on title OR description.
* ``tag`` matches an associated tag name exactly.

Sorting is ``newest`` (default and fallback), ``oldest`` or ``title``. The id
is always the tie-breaker so ``newest`` and ``oldest`` are exact inverses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session, joinedload

from markwise.models import Bookmark, Folder, Tag
from markwise.services.common import clean_text


UNCATEGORIZED = "uncategorized"


class SortMode(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    TITLE = "title"

    @classmethod
    def parse(cls, raw: str | None) -> "SortMode":
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.NEWEST


def _parse_folder(raw) -> int | str | None:
    if raw is None:
        return None
    if isinstance(raw, int):
        return raw
    value = str(raw).strip()
    if not value:
        return None
    if value.lower() == UNCATEGORIZED:
        return UNCATEGORIZED
    try:
        return int(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class BookmarkQuery:
    text: str | None = None
    tag: str | None = None
    folder: int | str | None = None
    sort: SortMode = SortMode.NEWEST

    @classmethod
    def from_args(cls, args) -> "BookmarkQuery":
        return cls(
            text=clean_text(args.get("q")),
            tag=clean_text(args.get("tag")),
            folder=_parse_folder(args.get("folder")),
            sort=SortMode.parse(args.get("sort")),
        )

    def as_args(self) -> dict:
        args = {"sort": self.sort.value}
        if self.text:
            args["q"] = self.text
        if self.tag:
            args["tag"] = self.tag
        if self.folder is not None:
            args["folder"] = self.folder
        return args


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def compose(session: Session, owner_id: int, query: BookmarkQuery) -> Query:
    statement = (
        session.query(Bookmark)
        .options(joinedload(Bookmark.tags), joinedload(Bookmark.folder))
        .filter(Bookmark.user_id == owner_id)
    )

    if query.folder == UNCATEGORIZED:
        statement = statement.filter(
            or_(Bookmark.folder_id.is_(None), ~Bookmark.folder.has())
        )
    elif query.folder is not None:
        statement = statement.filter(Bookmark.folder_id == query.folder)

    if query.text:
        pattern = _like_pattern(query.text)
        statement = statement.filter(
            or_(
                Bookmark.title.ilike(pattern, escape="\\"),
                Bookmark.description.ilike(pattern, escape="\\"),
            )
        )

    if query.tag:
        statement = statement.filter(Bookmark.tags.any(Tag.name == query.tag))

    if query.sort is SortMode.OLDEST:
        order = (Bookmark.created_at.asc(), Bookmark.id.asc())
    elif query.sort is SortMode.TITLE:
        order = (Bookmark.title.asc(), Bookmark.id.asc())
    else:
        order = (Bookmark.created_at.desc(), Bookmark.id.desc())
    return statement.order_by(*order)


@dataclass
class Listing:
    query: BookmarkQuery
    bookmarks: list[Bookmark]
    folders: list[Folder]
    folder_counts: dict[int | str, int]
    tags: list[str]
    total: int = field(default=0)

    def as_dict(self):
        return {
            "items": [bookmark.as_dict() for bookmark in self.bookmarks],
            "folders": [
                {**folder.as_dict(), "count": self.folder_counts.get(folder.id, 0)}
                for folder in self.folders
            ],
            "uncategorized_count": self.folder_counts.get(UNCATEGORIZED, 0),
            "total": self.total,
            "tags": self.tags,
            "query": self.query.as_args(),
        }


class QueryComposer:
    """Builds everything the list view needs for one owner and one query."""

    def __init__(self, repository):
        self.repository = repository

    def listing(self, owner_id: int, query: BookmarkQuery) -> Listing:
        counts = self.repository.folder_counts(owner_id)
        return Listing(
            query=query,
            bookmarks=self.repository.list(owner_id, query),
            folders=self.repository.folders(owner_id),
            folder_counts=counts,
            tags=self.repository.tag_names(owner_id),
            total=sum(counts.values()),
        )
