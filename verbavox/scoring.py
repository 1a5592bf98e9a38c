"""Points, levels and leaderboard ranking derived from attempt history."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .models import AttemptResult, LeaderboardEntry
from .streak import parse_timestamp

POINTS_PER_EXERCISE = 10

# (exclusive lower bound on average accuracy, bonus points per exercise)
ACCURACY_TIERS = ((95, 20), (85, 15), (70, 10), (50, 5))

PERIOD_DAYS = {"weekly": 7, "monthly": 30, "all_time": None}


def accuracy_multiplier(average_accuracy: float) -> int:
    for threshold, bonus in ACCURACY_TIERS:
        if average_accuracy > threshold:
            return bonus
    return 0


def compute_score(exercises: int, average_accuracy: float) -> int:
    """Score a user who completed ``exercises`` at the given mean accuracy."""

    return exercises * POINTS_PER_EXERCISE + exercises * accuracy_multiplier(average_accuracy)


def average_accuracy(results: Sequence[AttemptResult]) -> int:
    if not results:
        return 0
    total = sum(result.accuracy for result in results)
    # Half-up, like the per-attempt accuracy.
    return (2 * total + len(results)) // (2 * len(results))


def compute_level(exercises: int) -> int:
    return exercises // 10 + 1


def _local_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


def results_in_period(
    results: Iterable[AttemptResult],
    period: str,
    now: Optional[datetime] = None,
) -> List[AttemptResult]:
    if period not in PERIOD_DAYS:
        raise ValueError(f"Unknown leaderboard period: {period}")
    days = PERIOD_DAYS[period]
    if days is None:
        return list(results)
    cutoff = _local_naive(now or datetime.now()) - timedelta(days=days)
    return [result for result in results if _local_naive(parse_timestamp(result.completed_at)) >= cutoff]


def build_leaderboard(
    histories: Mapping[str, Iterable[AttemptResult]],
    period: str = "weekly",
    query: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[LeaderboardEntry]:
    """Rank users by score within ``period``.

    Users with no attempts in the period are left out. Ranks are assigned
    before the ``query`` filter is applied, so a search keeps each user's
    overall position.
    """

    entries: List[LeaderboardEntry] = []
    for username, history in histories.items():
        window = results_in_period(history, period, now=now)
        if not window:
            continue
        accuracy = average_accuracy(window)
        entries.append(
            LeaderboardEntry(
                username=username,
                score=compute_score(len(window), accuracy),
                exercises=len(window),
                accuracy=accuracy,
            )
        )

    entries.sort(key=lambda entry: (-entry.score, entry.username))
    for position, entry in enumerate(entries, start=1):
        entry.rank = position

    if query:
        needle = query.lower()
        entries = [entry for entry in entries if needle in entry.username.lower()]
    return entries


def group_by_user(results: Iterable[AttemptResult]) -> Dict[str, List[AttemptResult]]:
    grouped: Dict[str, List[AttemptResult]] = {}
    for result in results:
        grouped.setdefault(result.user_id, []).append(result)
    return grouped
