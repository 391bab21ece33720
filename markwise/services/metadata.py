from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from markwise.services.common import clean_text


logger = logging.getLogger(__name__)

OUTCOME_OK = "ok"
OUTCOME_PARTIAL = "partial"
OUTCOME_FAILED = "failed"


@dataclass
class PageMetadata:
    title: str
    description: str | None = None
    favicon: str | None = None
    outcome: str = OUTCOME_OK
    error: str | None = None

    @classmethod
    def degraded(cls, url: str, error: str) -> "PageMetadata":
        return cls(title=url, outcome=OUTCOME_FAILED, error=error)

    @property
    def summary_source(self) -> str | None:
        return self.description or self.title


def _normalize_error(exc: Exception) -> str:
    message = str(exc).strip()
    if message:
        return message
    return exc.__class__.__name__


def _build_soup(html: str) -> BeautifulSoup:
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)
        return BeautifulSoup(html, "lxml")


def _meta_content(soup: BeautifulSoup, **attrs) -> str | None:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = tag.get("content")
    return clean_text(content if isinstance(content, str) else None)


def _icon_href(soup: BeautifulSoup, rel_value: str) -> str | None:
    wanted = rel_value.split()
    for link in soup.find_all("link", href=True):
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if [part.lower() for part in rel] == wanted:
            href = clean_text(link.get("href"))
            if href:
                return href
    return None


def extract_metadata(html: str, url: str) -> PageMetadata:
    soup = _build_soup(html)

    page_title = None
    if soup.title is not None:
        page_title = clean_text(soup.title.get_text())
    title = page_title or _meta_content(soup, property="og:title")

    description = _meta_content(soup, name="description") or _meta_content(
        soup, property="og:description"
    )

    icon = _icon_href(soup, "icon") or _icon_href(soup, "shortcut icon")
    favicon = urljoin(url, icon) if icon else urljoin(url, "/favicon.ico")

    outcome = OUTCOME_OK if title and description else OUTCOME_PARTIAL
    return PageMetadata(
        title=title or url,
        description=description,
        favicon=clean_text(favicon),
        outcome=outcome,
    )


class MetadataFetcher:
    """Fetches a page and pulls its title, description and favicon.

    ``fetch`` never raises: network errors, non-2xx answers and unparsable
    bodies all collapse into ``PageMetadata.degraded`` with the URL as title.
    """

    def __init__(self, client: httpx.Client):
        self.client = client

    def fetch(self, url: str) -> PageMetadata:
        try:
            response = self.client.get(url, follow_redirects=True)
            response.raise_for_status()
            return extract_metadata(response.text, str(response.url))
        except Exception as exc:
            error = _normalize_error(exc)
            logger.warning("metadata fetch failed for %s: %s", url, error)
            return PageMetadata.degraded(url, error)
