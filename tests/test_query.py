from datetime import datetime, timedelta, timezone

import pytest
from werkzeug.datastructures import MultiDict

from conftest import create_user
from markwise.extensions import db
from markwise.services.query import (
    UNCATEGORIZED,
    BookmarkQuery,
    QueryComposer,
    SortMode,
)


@pytest.fixture
def seeded(repo):
    owner = create_user("query@example.com")
    other = create_user("query-other@example.com")
    reading = repo.create_folder(owner.id, "Reading")
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)

    rows = [
        ("https://flask.example", "Flask Guide", "Web apps with foo", reading.id, ["python", "web"]),
        ("https://rust.example", "rust book", None, reading.id, ["rust"]),
        ("https://foo.example", "FOO fighters", "Band", None, ["music"]),
        ("https://zen.example", "Zen of Python", "python FOO zen", None, ["python"]),
        ("https://pct.example", "100% coverage", "tests", reading.id, []),
    ]
    bookmarks = []
    for index, (url, title, description, folder_id, tags) in enumerate(rows):
        bookmark = repo.create(
            owner.id,
            url=url,
            title=title,
            description=description,
            folder_id=folder_id,
            tags=tags,
        )
        bookmark.created_at = start + timedelta(days=index)
        bookmarks.append(bookmark)
    repo.create(other.id, url="https://other.example", title="foo other", tags=["python"])
    db.session.commit()
    return {"owner": owner, "folder": reading, "bookmarks": bookmarks}


def _titles(rows):
    return [row.title for row in rows]


def test_sort_mode_parse_falls_back_to_newest():
    assert SortMode.parse("oldest") is SortMode.OLDEST
    assert SortMode.parse(" TITLE ") is SortMode.TITLE
    assert SortMode.parse(None) is SortMode.NEWEST
    assert SortMode.parse("random") is SortMode.NEWEST


def test_query_from_args_treats_blank_values_as_absent():
    query = BookmarkQuery.from_args(
        MultiDict({"q": "  ", "tag": "", "folder": "", "sort": "bogus"})
    )

    assert query == BookmarkQuery()

    query = BookmarkQuery.from_args(MultiDict({"folder": "12", "tag": "python"}))
    assert query.folder == 12
    assert query.tag == "python"

    assert BookmarkQuery.from_args({"folder": "Uncategorized"}).folder == UNCATEGORIZED


def test_unfiltered_list_is_newest_first(repo, seeded):
    rows = repo.list(seeded["owner"].id, BookmarkQuery())

    assert _titles(rows) == [
        "100% coverage",
        "Zen of Python",
        "FOO fighters",
        "rust book",
        "Flask Guide",
    ]


def test_newest_and_oldest_are_exact_inverses(repo, seeded):
    owner_id = seeded["owner"].id
    for base in (BookmarkQuery(), BookmarkQuery(tag="python"), BookmarkQuery(text="o")):
        newest = repo.list(owner_id, BookmarkQuery(base.text, base.tag, base.folder, SortMode.NEWEST))
        oldest = repo.list(owner_id, BookmarkQuery(base.text, base.tag, base.folder, SortMode.OLDEST))
        assert [row.id for row in newest] == [row.id for row in reversed(oldest)]


def test_newest_and_oldest_break_timestamp_ties_by_id(repo, seeded):
    owner_id = seeded["owner"].id
    same_time = datetime(2024, 6, 1, tzinfo=timezone.utc)
    for bookmark in seeded["bookmarks"]:
        bookmark.created_at = same_time
    db.session.commit()

    newest = repo.list(owner_id, BookmarkQuery(sort=SortMode.NEWEST))
    oldest = repo.list(owner_id, BookmarkQuery(sort=SortMode.OLDEST))

    assert [row.id for row in newest] == [row.id for row in reversed(oldest)]


def test_title_sort_is_non_decreasing(repo, seeded):
    rows = repo.list(seeded["owner"].id, BookmarkQuery(sort=SortMode.TITLE))
    titles = _titles(rows)

    assert titles == sorted(titles)


def test_tag_filter_is_subset_of_unfiltered(repo, seeded):
    owner_id = seeded["owner"].id
    everything = repo.list(owner_id, BookmarkQuery())
    tagged = repo.list(owner_id, BookmarkQuery(tag="python"))

    expected = [row.id for row in everything if "python" in row.tag_names]
    assert [row.id for row in tagged] == expected
    assert _titles(tagged) == ["Zen of Python", "Flask Guide"]


def test_tag_filter_is_exact(repo, seeded):
    owner_id = seeded["owner"].id

    assert repo.list(owner_id, BookmarkQuery(tag="Python")) == []
    assert repo.list(owner_id, BookmarkQuery(tag="pyth")) == []


def test_tag_filter_keeps_all_tags_on_matches(repo, seeded):
    rows = repo.list(seeded["owner"].id, BookmarkQuery(tag="web"))

    assert len(rows) == 1
    assert rows[0].tag_names == ["python", "web"]


def test_text_filter_matches_title_or_description_case_insensitively(repo, seeded):
    rows = repo.list(seeded["owner"].id, BookmarkQuery(text="foo"))

    assert sorted(_titles(rows)) == ["FOO fighters", "Flask Guide", "Zen of Python"]


def test_text_filter_escapes_like_wildcards(repo, seeded):
    owner_id = seeded["owner"].id

    assert _titles(repo.list(owner_id, BookmarkQuery(text="100%"))) == ["100% coverage"]
    assert repo.list(owner_id, BookmarkQuery(text="_")) == []


def test_filters_compose_as_and(repo, seeded):
    owner_id = seeded["owner"].id
    folder_id = seeded["folder"].id

    rows = repo.list(owner_id, BookmarkQuery(text="foo", folder=folder_id))
    assert _titles(rows) == ["Flask Guide"]

    rows = repo.list(owner_id, BookmarkQuery(text="zen", tag="python"))
    assert _titles(rows) == ["Zen of Python"]

    rows = repo.list(owner_id, BookmarkQuery(text="foo", tag="rust", folder=folder_id))
    assert rows == []


def test_uncategorized_folder_filter(repo, seeded):
    rows = repo.list(
        seeded["owner"].id, BookmarkQuery(folder=UNCATEGORIZED, sort=SortMode.TITLE)
    )

    assert _titles(rows) == ["FOO fighters", "Zen of Python"]


def test_listing_bundles_counts_and_vocabulary(repo, seeded):
    owner_id = seeded["owner"].id
    folder_id = seeded["folder"].id

    listing = QueryComposer(repo).listing(owner_id, BookmarkQuery(folder=folder_id))

    assert len(listing.bookmarks) == 3
    assert listing.folder_counts == {folder_id: 3, UNCATEGORIZED: 2}
    assert listing.total == 5
    assert listing.tags == ["music", "python", "rust", "web"]
    assert [folder.name for folder in listing.folders] == ["Reading"]

    payload = listing.as_dict()
    assert payload["folders"][0]["count"] == 3
    assert payload["uncategorized_count"] == 2
    assert payload["query"] == {"sort": "newest", "folder": folder_id}
