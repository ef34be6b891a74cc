"""Savings goal progress helpers."""

from __future__ import annotations

from dataclasses import dataclass

from ..models import Goal


@dataclass(slots=True)
class GoalProgress:
    goal: Goal

    @property
    def percent(self) -> float:
        if self.goal.target_amount <= 0:
            return 0.0
        return max(0.0, min(self.goal.current_amount / self.goal.target_amount * 100, 100.0))

    @property
    def is_completed(self) -> bool:
        """True once current reaches target, including exact equality."""
        return self.goal.target_amount > 0 and self.goal.current_amount >= self.goal.target_amount

    @property
    def remaining(self) -> float:
        return max(self.goal.target_amount - self.goal.current_amount, 0.0)


def goal_progress(goal: Goal) -> GoalProgress:
    return GoalProgress(goal=goal)
