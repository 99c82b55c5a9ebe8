"""Agent-backed workflow templates.

Each step is played by one agent role. Without an LLM provider the agent
returns a templated report describing what it did with its inputs; with a
provider configured the agent's instruction, the workflow input and the prior
step outputs become the prompt.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from card_agent_orchestrator.llm.provider import LLMProvider
from card_agent_orchestrator.workflow.templates import StepContext, WorkflowStep, WorkflowTemplate

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Agent:
    id: str
    role: str
    goal: str


@dataclass(frozen=True, slots=True)
class AgentTask:
    step: str
    description: str
    agent: Agent


@dataclass(frozen=True, slots=True)
class AgentWorkflowSpec:
    id: str
    name: str
    description: str
    tasks: tuple[AgentTask, ...]


def _subject(input: Any) -> str:
    if isinstance(input, Mapping):
        for key in ("userId", "user_id", "query"):
            value = input.get(key)
            if value:
                return f"{key}={value}"
    return "all content"


class AgentStep:
    """Callable step handler that runs one agent task."""

    def __init__(self, task: AgentTask, llm: LLMProvider | None) -> None:
        self._task = task
        self._llm = llm

    async def __call__(self, ctx: StepContext) -> dict[str, Any]:
        agent = self._task.agent
        base: dict[str, Any] = {
            "agent": agent.id,
            "role": agent.role,
            "task": self._task.step,
            "basedOn": list(ctx.outputs),
        }
        if self._llm is None:
            return {
                **base,
                "mode": "templated",
                "summary": f"{agent.role} completed '{self._task.description}' for {_subject(ctx.input)}",
                "inputFields": sorted(ctx.input) if isinstance(ctx.input, Mapping) else [],
            }

        prompt = (
            f"Task: {self._task.description}\n\n"
            f"Input:\n{json.dumps(ctx.input, ensure_ascii=False, indent=2, default=str)}\n\n"
            f"Previous results:\n{json.dumps(dict(ctx.outputs), ensure_ascii=False, default=str)}\n\n"
            "Complete the task according to your role."
        )
        text = await asyncio.to_thread(
            self._llm.generate, prompt, system=f"You are the {agent.role}. Goal: {agent.goal}"
        )
        return {**base, "mode": "llm", "summary": text.strip()}


def _task(step: str, description: str, agent_id: str, role: str, goal: str) -> AgentTask:
    return AgentTask(step=step, description=description, agent=Agent(agent_id, role, goal))


AGENT_WORKFLOWS: tuple[AgentWorkflowSpec, ...] = (
    AgentWorkflowSpec(
        id="content-recommendation",
        name="Content recommendation",
        description="Recommend content from user preferences and behaviour",
        tasks=(
            _task("analyze-user-behavior", "Analyse the user's history and preferences",
                  "user-behavior-analyst", "User Behaviour Analyst", "Understand what the user reads"),
            _task("match-content", "Match content to the user's preferences",
                  "content-matcher", "Content Matcher", "Find the most relevant content"),
            _task("incorporate-trends", "Adjust recommendations with current trends",
                  "trend-incorporator", "Trend Incorporator", "Blend in what is popular now"),
        ),
    ),
    AgentWorkflowSpec(
        id="content-search",
        name="Content search",
        description="Understand a query, search content and rank the results",
        tasks=(
            _task("process-query", "Normalise and expand the search query",
                  "query-processor", "Query Processor", "Understand the search intent"),
            _task("search-content", "Search the content library",
                  "content-searcher", "Content Searcher", "Retrieve matching content"),
            _task("rank-results", "Rank and trim the search results",
                  "result-ranker", "Result Ranker", "Order results by usefulness"),
        ),
    ),
    AgentWorkflowSpec(
        id="user-achievement",
        name="User achievements",
        description="Check progress and grant achievements",
        tasks=(
            _task("track-progress", "Track the user's current progress",
                  "progress-tracker", "Progress Tracker", "Measure reading progress"),
            _task("evaluate-achievements", "Evaluate which achievements are reached",
                  "achievement-evaluator", "Achievement Evaluator", "Decide on unlocked achievements"),
            _task("distribute-rewards", "Distribute rewards and notifications",
                  "reward-distributor", "Reward Distributor", "Grant rewards fairly"),
        ),
    ),
    AgentWorkflowSpec(
        id="user-analytics",
        name="User analytics",
        description="Analyse behaviour data and produce insights",
        tasks=(
            _task("analyze-behavior-patterns", "Analyse behaviour patterns and habits",
                  "behavior-analyst", "Behaviour Data Analyst", "Find usage patterns"),
            _task("evaluate-engagement", "Evaluate engagement and activity level",
                  "engagement-analyst", "Engagement Analyst", "Score engagement"),
            _task("generate-insights", "Generate actionable insights",
                  "insight-generator", "Insight Generator", "Turn data into advice"),
        ),
    ),
    AgentWorkflowSpec(
        id="user-engagement",
        name="User engagement",
        description="Manage reading streaks and engagement",
        tasks=(
            _task("track-reading-habits", "Track reading habits and streaks",
                  "habit-tracker", "Habit Tracker", "Keep streaks accurate"),
            _task("design-motivation", "Design personalised motivation",
                  "motivation-designer", "Motivation Designer", "Keep the user motivated"),
            _task("optimize-retention", "Optimise the retention strategy",
                  "retention-optimizer", "Retention Optimizer", "Reduce churn"),
        ),
    ),
    AgentWorkflowSpec(
        id="trend-analysis",
        name="Trend analysis",
        description="Analyse content trends and popular tags",
        tasks=(
            _task("analyze-content-trends", "Analyse current content trends and topics",
                  "content-trend-analyst", "Content Trend Analyst", "Spot rising topics"),
            _task("analyze-tag-popularity", "Analyse tag popularity and usage",
                  "tag-popularity-analyst", "Tag Popularity Analyst", "Rank tags by heat"),
            _task("predict-future-trends", "Predict emerging trends",
                  "trend-predictor", "Trend Predictor", "Forecast what comes next"),
        ),
    ),
)


def build_agent_templates(llm: LLMProvider | None) -> list[WorkflowTemplate]:
    return [
        WorkflowTemplate(
            id=spec.id,
            name=spec.name,
            description=spec.description,
            steps=tuple(
                WorkflowStep(task.step, AgentStep(task, llm), task.description) for task in spec.tasks
            ),
        )
        for spec in AGENT_WORKFLOWS
    ]
