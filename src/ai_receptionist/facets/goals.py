"""What the agent aims to achieve, plus a bounded progress log."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from ..models import AgentRequest, AgentResponse, GoalType

MAX_PROGRESS_LOG = 100
CONTRIBUTION_CONFIDENCE = 0.7


class GoalConfig(BaseModel):
    """Goal section of the agent configuration."""

    primary: str
    secondary: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    metrics: dict[str, str] = Field(default_factory=dict)


class Goal(BaseModel):
    name: str
    description: str
    type: GoalType
    priority: int
    constraints: list[str] = Field(default_factory=list)
    metric: str | None = None


class ProgressEntry(BaseModel):
    timestamp: datetime
    request_id: str
    goal_progress: dict[str, dict[str, Any]]


class GoalSystem:
    """Goals facet of the agent."""

    def __init__(self, goals: list[Goal] | None = None) -> None:
        self._goals: list[Goal] = list(goals or [])
        self._progress_log: list[ProgressEntry] = []

    @classmethod
    def from_config(cls, config: GoalConfig) -> "GoalSystem":
        goals = [
            Goal(
                name="Primary Goal",
                description=config.primary,
                type=GoalType.PRIMARY,
                priority=1,
                constraints=list(config.constraints),
            )
        ]
        for index, description in enumerate(config.secondary):
            goals.append(
                Goal(
                    name=f"Secondary Goal {index + 1}",
                    description=description,
                    type=GoalType.SECONDARY,
                    priority=index + 2,
                )
            )
        # A metric attaches to the first goal whose description mentions it
        for metric_name, metric in config.metrics.items():
            for goal in goals:
                if metric_name.lower() in goal.description.lower():
                    goal.metric = metric
                    break
        return cls(goals)

    def get_current(self) -> list[Goal]:
        return list(self._goals)

    def get_primary(self) -> Goal | None:
        return next((g for g in self._goals if g.type == GoalType.PRIMARY), None)

    def get_secondary(self) -> list[Goal]:
        return [g for g in self._goals if g.type == GoalType.SECONDARY]

    def track_progress(self, request: AgentRequest, response: AgentResponse) -> None:
        """Record whether a response likely contributed to each goal.

        A response counts as contributing when its reported confidence is
        above 0.7. Only the last 100 interactions are kept.
        """
        confidence = response.metadata.get("confidence")
        if confidence is None:
            confidence = 0.5
        now = datetime.now(timezone.utc)
        progress = {
            goal.name: {
                "contributed": confidence > CONTRIBUTION_CONFIDENCE,
                "confidence": confidence,
            }
            for goal in self._goals
        }
        self._progress_log.append(
            ProgressEntry(timestamp=now, request_id=request.id, goal_progress=progress)
        )
        if len(self._progress_log) > MAX_PROGRESS_LOG:
            self._progress_log = self._progress_log[-MAX_PROGRESS_LOG:]
        logger.debug(f"[GoalSystem] Tracked progress for request {request.id}")

    def get_progress_stats(self) -> dict[str, Any]:
        contributions = {
            goal.name: sum(
                1
                for entry in self._progress_log
                if entry.goal_progress.get(goal.name, {}).get("contributed")
            )
            for goal in self._goals
        }
        return {
            "total_interactions": len(self._progress_log),
            "goal_contributions": contributions,
        }

    def add_goal(self, goal: Goal) -> None:
        self._goals.append(goal)

    def remove_goal(self, name: str) -> bool:
        before = len(self._goals)
        self._goals = [g for g in self._goals if g.name != name]
        return len(self._goals) < before

    def update_goal(self, name: str, **updates: Any) -> bool:
        for index, goal in enumerate(self._goals):
            if goal.name == name:
                self._goals[index] = goal.model_copy(update=updates)
                return True
        return False

    def get_description(self) -> str:
        lines = ["## Goals & Objectives", ""]

        primary = self.get_primary()
        if primary:
            lines += ["### Primary Goal", primary.description, ""]
            if primary.metric:
                lines += [f"**Success Metric:** {primary.metric}", ""]

        secondary = self.get_secondary()
        if secondary:
            lines.append("### Secondary Goals")
            for goal in secondary:
                line = f"{goal.priority}. {goal.description}"
                if goal.metric:
                    line += f" (Metric: {goal.metric})"
                lines.append(line)
            lines.append("")

        constraints = [c for g in self._goals for c in g.constraints]
        if constraints:
            lines += ["### Constraints", "You must adhere to these constraints:"]
            lines.extend(f"- {c}" for c in constraints)
            lines.append("")

        if len(self._goals) > 1:
            lines += [
                "### Priority Order",
                "When conflicts arise, prioritize goals in this order:",
            ]
            ordered = sorted(self._goals, key=lambda g: g.priority)
            lines.extend(f"{i + 1}. {g.description}" for i, g in enumerate(ordered))

        return "\n".join(lines).strip()
