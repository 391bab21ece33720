from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import current_app

from markwise.errors import MarkwiseError, ValidationError
from markwise.extensions import db
from markwise.models import TITLE_MAX_LENGTH, Bookmark
from markwise.services.common import clean_text
from markwise.services.metadata import MetadataFetcher
from markwise.services.repository import BookmarkRepository
from markwise.services.speech import SpeechResult, SpeechSynthesizer
from markwise.services.summary import (
    DEFAULT_MAX_WORDS,
    SOURCE_AUTO,
    SOURCE_MANUAL,
    SummaryGenerator,
    SummaryResult,
)


logger = logging.getLogger(__name__)


@dataclass
class SummaryUpdate:
    """A stored summary plus the bookmark version it produced.

    Editors holding the old version need the new one to keep saving.
    """

    bookmark: Bookmark
    result: SummaryResult

    def as_dict(self):
        return {**self.result.as_dict(), "version": self.bookmark.version}


@dataclass
class BookmarkWorkflow:
    """Creation and enrichment flows layered over the repository.

    Every collaborator is passed in; nothing here reaches for process-wide
    clients.
    """

    repository: BookmarkRepository
    fetcher: MetadataFetcher
    summarizer: SummaryGenerator
    synthesizer: SpeechSynthesizer
    max_words: int = DEFAULT_MAX_WORDS

    def create_bookmark(
        self,
        owner_id: int,
        url: str | None,
        folder_id: int | None = None,
        tags=None,
        auto_summary: bool = True,
    ) -> Bookmark:
        url = clean_text(url)
        if not url:
            raise ValidationError("URL is required")

        metadata = self.fetcher.fetch(url)
        summary = None
        if auto_summary and metadata.summary_source:
            try:
                summary = self.summarizer.generate(
                    metadata.summary_source, self.max_words, SOURCE_AUTO
                ).summary
            except MarkwiseError as exc:
                logger.warning("auto summary failed for %s: %s", url, exc.message)

        return self.repository.create(
            owner_id,
            url=url,
            title=metadata.title[:TITLE_MAX_LENGTH],
            description=metadata.description,
            summary=summary,
            favicon=metadata.favicon,
            folder_id=folder_id,
            tags=tags,
        )

    def generate_summary(self, bookmark_id: int, owner_id: int) -> SummaryUpdate:
        bookmark = self.repository.get(bookmark_id, owner_id)
        metadata = self.fetcher.fetch(bookmark.url)
        content = metadata.summary_source
        if not content:
            raise ValidationError("No content available to summarize")

        result = self.summarizer.generate(content, self.max_words, SOURCE_MANUAL)
        bookmark = self.repository.set_summary(bookmark.id, owner_id, result.summary)
        return SummaryUpdate(bookmark=bookmark, result=result)

    def synthesize_speech(self, bookmark_id: int, owner_id: int) -> SpeechResult:
        bookmark = self.repository.get(bookmark_id, owner_id)
        if not bookmark.summary:
            raise ValidationError("No summary available")
        return self.synthesizer.synthesize(bookmark.summary)


def get_workflow() -> BookmarkWorkflow:
    """Workflow bound to the request's session and the app's shared clients."""
    services = current_app.extensions["markwise"]
    return BookmarkWorkflow(
        repository=BookmarkRepository(db.session),
        fetcher=services["fetcher"],
        summarizer=services["summarizer"],
        synthesizer=services["synthesizer"],
        max_words=current_app.config["SUMMARY_MAX_WORDS"],
    )
