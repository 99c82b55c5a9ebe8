"""Unit tests for article extraction and the card-generation workflow."""

from __future__ import annotations

from unittest.mock import Mock

import pytest
import requests

from card_agent_orchestrator.errors import StepExecutionError
from card_agent_orchestrator.workflow.cards import (
    CARD_WORKFLOW_ID,
    PLACEHOLDER_IMAGE_URL,
    estimate_difficulty,
    extract_tags,
)
from card_agent_orchestrator.workflow.fetcher import ContentFetcher, extract_article, validate_url

PAGE = """
<html>
  <head>
    <title>Fallback title</title>
    <meta property="og:title" content="Memory &amp; Learning">
    <meta name="author" content="Jo Writer">
    <meta name="description" content="How memory works.">
    <script>var tracking = true;</script>
    <style>body { color: red; }</style>
  </head>
  <body>
    <nav>Home | About</nav>
    <p>Memory improves with <b>retrieval practice</b>.</p>
    <footer>Copyright</footer>
  </body>
</html>
"""


def test_extract_article_reads_meta_and_strips_chrome() -> None:
    article = extract_article("https://example.com/post", PAGE)

    assert article.title == "Memory & Learning"
    assert article.author == "Jo Writer"
    assert article.description == "How memory works."
    assert "retrieval practice" in article.content
    assert "tracking" not in article.content
    assert "Home | About" not in article.content
    assert "Copyright" not in article.content


def test_extract_article_falls_back_to_title_tag_and_host() -> None:
    assert extract_article("https://example.com/a", "<title> Plain </title><p>x</p>").title == "Plain"
    assert extract_article("https://example.com/a", "<p>x</p>").title == "example.com"


@pytest.mark.parametrize("url", ["ftp://example.com/file", "not a url", ""])
def test_validate_url_rejects_non_http(url: str) -> None:
    with pytest.raises(ValueError):
        validate_url(url)


def test_fetcher_uses_session_and_raises_for_status() -> None:
    session = Mock(spec=requests.Session)
    session.headers = {}
    session.get.return_value.text = PAGE

    article = ContentFetcher(timeout_seconds=3, session=session).fetch("https://example.com/post")

    session.get.assert_called_once_with("https://example.com/post", timeout=3)
    session.get.return_value.raise_for_status.assert_called_once_with()
    assert article.title == "Memory & Learning"


def test_fetcher_rejects_empty_pages() -> None:
    session = Mock(spec=requests.Session)
    session.headers = {}
    session.get.return_value.text = "<html><body><script>x()</script>   </body></html>"

    with pytest.raises(ValueError):
        ContentFetcher(session=session).fetch("https://example.com/empty")


def test_tags_and_difficulty_heuristics() -> None:
    text = "Memory memory memory retrieval retrieval practice. The cat sat."
    assert extract_tags(text)[:2] == ["memory", "retrieval"]
    assert estimate_difficulty("") == "beginner"
    assert estimate_difficulty("The cat sat on the mat. It was fun.") == "beginner"


async def test_card_workflow_builds_card(orchestrator, fake_fetcher) -> None:
    outcome = await orchestrator.service.execute(
        CARD_WORKFLOW_ID, {"url": "https://example.com/spaced", "imageMode": "premium"}
    )

    card = outcome.result
    assert card["id"].startswith("card-")
    assert card["title"] == "Why spaced repetition works"
    assert card["sourceUrl"] == "https://example.com/spaced"
    assert card["author"] == "A. Reader"
    assert card["imageUrl"] == PLACEHOLDER_IMAGE_URL
    assert card["readingTime"] >= 1
    assert "spaced" in card["tags"]
    assert card["connections"]
    assert card["metadata"]["steps"] == [
        "scrape-content",
        "analyze-content",
        "generate-image",
        "connect-knowledge",
    ]
    fake_fetcher.fetch.assert_called_once_with("https://example.com/spaced")

    again = await orchestrator.service.execute(
        CARD_WORKFLOW_ID, {"imageMode": "premium", "url": "https://example.com/spaced"}
    )
    assert again.cached is True


async def test_card_workflow_requires_url(orchestrator) -> None:
    with pytest.raises(StepExecutionError) as excinfo:
        await orchestrator.service.execute(CARD_WORKFLOW_ID, {"imageMode": "standard"})

    assert excinfo.value.step == "scrape-content"
    assert str(excinfo.value) == "url is required"
