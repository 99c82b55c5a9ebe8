"""Article fetching for the card-generation workflow."""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from urllib.parse import urlparse

import requests

logger = logging.getLogger(__name__)

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
_META_RE = re.compile(
    r"<meta\s+[^>]*(?:name|property)=[\"'](?P<name>[^\"']+)[\"'][^>]*content=[\"'](?P<content>[^\"']*)[\"']",
    re.IGNORECASE,
)
_DROP_BLOCKS_RE = re.compile(
    r"<(script|style|noscript|nav|header|footer|aside)[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL
)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")

MAX_CONTENT_CHARS = 20_000


@dataclass(frozen=True, slots=True)
class ScrapedContent:
    url: str
    title: str
    content: str
    author: str | None = None
    description: str | None = None

    def to_json(self) -> dict[str, object]:
        return {
            "url": self.url,
            "title": self.title,
            "content": self.content,
            "author": self.author,
            "description": self.description,
        }


def validate_url(url: str) -> str:
    url = (url or "").strip()
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"Invalid article URL: {url!r}")
    return url


def extract_article(url: str, page: str) -> ScrapedContent:
    """Pull title, author, description and readable text out of an HTML page."""

    meta: dict[str, str] = {}
    for match in _META_RE.finditer(page):
        meta.setdefault(match.group("name").lower(), html.unescape(match.group("content")).strip())

    title_match = _TITLE_RE.search(page)
    title = meta.get("og:title") or (
        _WS_RE.sub(" ", html.unescape(title_match.group(1))).strip() if title_match else ""
    )

    body = _DROP_BLOCKS_RE.sub(" ", page)
    text = _WS_RE.sub(" ", html.unescape(_TAG_RE.sub(" ", body))).strip()

    return ScrapedContent(
        url=url,
        title=title or urlparse(url).netloc,
        content=text[:MAX_CONTENT_CHARS],
        author=meta.get("author") or meta.get("article:author"),
        description=meta.get("description") or meta.get("og:description"),
    )


class ContentFetcher:
    """Small wrapper around a requests session for downloading articles."""

    def __init__(self, *, timeout_seconds: float = 15.0, session: requests.Session | None = None):
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": "card-agent-orchestrator"})

    def fetch(self, url: str) -> ScrapedContent:
        url = validate_url(url)
        resp = self._session.get(url, timeout=self._timeout)
        resp.raise_for_status()
        content = extract_article(url, resp.text)
        logger.info(
            "Fetched article", extra={"url": url, "characters": len(content.content)}
        )
        if not content.content:
            raise ValueError(f"No readable content at {url}")
        return content

    def close(self) -> None:
        self._session.close()
