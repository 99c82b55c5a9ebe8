"""Card generation: scrape an article and turn it into a knowledge card.

Steps: scrape-content -> analyze-content -> generate-image -> connect-knowledge.
Analysis is heuristic; when an LLM provider is configured it writes the
summary and refines the image prompt.
"""

from __future__ import annotations

import asyncio
import hashlib
import math
import re
from collections import Counter
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from card_agent_orchestrator.llm.provider import LLMProvider
from card_agent_orchestrator.workflow.fetcher import ContentFetcher
from card_agent_orchestrator.workflow.templates import (
    StepContext,
    StepHandler,
    WorkflowStep,
    WorkflowTemplate,
)

CARD_WORKFLOW_ID = "card-generation"
PLACEHOLDER_IMAGE_URL = "/api/placeholder/300/200"
WORDS_PER_MINUTE = 200

_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")
_WORD_RE = re.compile(r"[A-Za-z][A-Za-z'-]+")
_STOPWORDS = frozenset(
    """
    about above after again against also among another because been before being
    between both could does doing down during each every from further have having
    here into itself just more most much must only other over same should since
    some such than that their them then there these they this those through under
    until very were what when where which while will with within would your
    """.split()
)


def _sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_RE.split(text) if len(s.strip()) > 20]


def extract_tags(text: str, *, limit: int = 5) -> list[str]:
    words = [w.lower() for w in _WORD_RE.findall(text)]
    counts = Counter(w for w in words if len(w) >= 4 and w not in _STOPWORDS)
    return [word for word, _ in counts.most_common(limit)]


def estimate_difficulty(text: str) -> str:
    words = _WORD_RE.findall(text)
    if not words:
        return "beginner"
    avg_len = sum(len(w) for w in words) / len(words)
    sentences = _sentences(text) or [text]
    avg_sentence = len(words) / len(sentences)
    if avg_len > 5.5 or avg_sentence > 25:
        return "advanced"
    if avg_len > 4.6 or avg_sentence > 15:
        return "intermediate"
    return "beginner"


def _require_previous(ctx: StepContext, step: str) -> Mapping[str, Any]:
    output = ctx.outputs.get(step)
    if not isinstance(output, Mapping):
        raise ValueError(f"Missing output of step {step!r}")
    return output


def scrape_content(fetcher: ContentFetcher) -> StepHandler:
    async def handler(ctx: StepContext) -> dict[str, Any]:
        url = ctx.input.get("url") if isinstance(ctx.input, Mapping) else None
        if not isinstance(url, str) or not url.strip():
            raise ValueError("url is required")
        content = await asyncio.to_thread(fetcher.fetch, url)
        return content.to_json()

    return handler


def analyze_content(llm: LLMProvider | None) -> StepHandler:
    async def handler(ctx: StepContext) -> dict[str, Any]:
        scraped = _require_previous(ctx, "scrape-content")
        text = str(scraped.get("content") or "")
        title = str(scraped.get("title") or "")
        sentences = _sentences(text)

        summary = str(scraped.get("description") or " ".join(sentences[:2]))[:280]
        if llm is not None:
            summary = (
                await asyncio.to_thread(
                    llm.generate,
                    f"Title: {title}\n\n{text[:6000]}\n\nSummarize this article in two sentences.",
                    system="You are a precise content analyst writing knowledge-card summaries.",
                )
            ).strip() or summary

        word_count = len(_WORD_RE.findall(text))
        return {
            "title": title,
            "summary": summary,
            "keyPoints": sentences[:3],
            "tags": extract_tags(f"{title} {text}"),
            "category": "article",
            "difficulty": estimate_difficulty(text),
            "readingTime": max(1, math.ceil(word_count / WORDS_PER_MINUTE)),
            "wordCount": word_count,
        }

    return handler


def generate_image(llm: LLMProvider | None) -> StepHandler:
    async def handler(ctx: StepContext) -> dict[str, Any]:
        analysis = _require_previous(ctx, "analyze-content")
        mode = ctx.input.get("imageMode", "standard") if isinstance(ctx.input, Mapping) else "standard"
        tags = ", ".join(analysis.get("tags") or [])
        prompt = f"Minimal hand-drawn sketch illustrating '{analysis.get('title', '')}'"
        if tags:
            prompt += f", themes: {tags}"
        if llm is not None:
            prompt = (
                await asyncio.to_thread(
                    llm.generate,
                    f"Write one short image prompt for a {mode} sketch illustration.\n\n{prompt}",
                    system="You are an illustrator writing concise image prompts.",
                )
            ).strip() or prompt
        return {"imagePrompt": prompt, "imageUrl": PLACEHOLDER_IMAGE_URL, "style": mode}

    return handler


async def connect_knowledge(ctx: StepContext) -> dict[str, Any]:
    analysis = _require_previous(ctx, "analyze-content")
    tags = list(analysis.get("tags") or [])
    connections = [
        {"concept": tag, "relation": "topic", "strength": round(1.0 - i / (len(tags) + 1), 2)}
        for i, tag in enumerate(tags)
    ]
    related = [{"from": a, "to": b} for a, b in zip(tags, tags[1:])]
    return {"connections": connections, "relatedConcepts": related}


def assemble_card(workflow_id: str, _input: Any, outputs: Mapping[str, Any]) -> dict[str, Any]:
    scraped = outputs["scrape-content"]
    analysis = outputs["analyze-content"]
    image = outputs.get("generate-image") or {}
    knowledge = outputs.get("connect-knowledge") or {}
    now = datetime.now(tz=UTC).isoformat()
    return {
        "id": "card-" + hashlib.sha1(scraped["url"].encode("utf-8")).hexdigest()[:12],
        "title": analysis["title"],
        "summary": analysis["summary"],
        "content": scraped["content"][:2000],
        "sourceUrl": scraped["url"],
        "sourceTitle": scraped["title"],
        "author": scraped.get("author") or "AI generated",
        "tags": analysis["tags"],
        "keyPoints": analysis["keyPoints"],
        "category": analysis["category"],
        "difficulty": analysis["difficulty"],
        "readingTime": analysis["readingTime"],
        "imageUrl": image.get("imageUrl", PLACEHOLDER_IMAGE_URL),
        "imagePrompt": image.get("imagePrompt"),
        "connections": knowledge.get("connections", []),
        "createdAt": now,
        "updatedAt": now,
        "metadata": {"workflow": workflow_id, "steps": list(outputs)},
    }


def build_card_template(*, fetcher: ContentFetcher, llm: LLMProvider | None) -> WorkflowTemplate:
    return WorkflowTemplate(
        id=CARD_WORKFLOW_ID,
        name="Knowledge card generation",
        description="Generate a knowledge card from an article URL",
        steps=(
            WorkflowStep("scrape-content", scrape_content(fetcher), "Fetch and extract the article"),
            WorkflowStep("analyze-content", analyze_content(llm), "Summarize and tag the article"),
            WorkflowStep("generate-image", generate_image(llm), "Produce an illustration prompt"),
            WorkflowStep("connect-knowledge", connect_knowledge, "Link the card to related concepts"),
        ),
        assemble=assemble_card,
    )
