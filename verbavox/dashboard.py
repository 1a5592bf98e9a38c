"""Summary statistics for the dashboard and progress views."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Sequence

from .models import AttemptResult, DashboardStats, RecentExercise
from .scoring import average_accuracy, compute_level, compute_score
from .streak import current_streak, to_date


def compute_stats(results: Sequence[AttemptResult], today: Optional[date] = None) -> DashboardStats:
    if not results:
        return DashboardStats()
    exercises = len(results)
    accuracy = average_accuracy(results)
    return DashboardStats(
        exercises_completed=exercises,
        average_accuracy=accuracy,
        streak=current_streak((result.completed_at for result in results), today=today),
        level=compute_level(exercises),
        score=compute_score(exercises, accuracy),
    )


def time_ago(day: date, today: date) -> str:
    days = (today - day).days
    if days <= 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    return f"{days // 30} months ago"


def recent_exercises(
    results: Sequence[AttemptResult],
    limit: int = 3,
    now: Optional[datetime] = None,
) -> List[RecentExercise]:
    today = (now or datetime.now()).date()
    recent = []
    for result in results[:limit]:
        day = to_date(result.completed_at)
        recent.append(
            RecentExercise(
                exercise_id=result.exercise_id,
                title=result.exercise_title or f"Exercise #{result.exercise_id}",
                difficulty=result.exercise_difficulty or "Unknown",
                category=result.exercise_category or "Unknown",
                accuracy=result.accuracy,
                date=day.isoformat(),
                time_ago=time_ago(day, today),
            )
        )
    return recent
