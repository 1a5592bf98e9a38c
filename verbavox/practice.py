"""Submitting a transcription attempt."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .comparator import compare_transcripts
from .models import ANONYMOUS_USER, AttemptResult, Comparison, Exercise, SaveOutcome, SaveReport
from .results import ResultStore


class ValidationError(ValueError):
    """Raised when a submission is rejected before scoring."""


@dataclass(slots=True)
class Submission:
    comparison: Comparison
    result: AttemptResult
    report: SaveReport


def submit_attempt(
    exercise: Exercise,
    user_text: str,
    store: ResultStore,
    user_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Submission:
    if not user_text.strip():
        raise ValidationError("Please type what you heard before submitting.")

    comparison = compare_transcripts(exercise.text, user_text)
    completed_at = (now or datetime.now(timezone.utc)).isoformat()
    result = AttemptResult(
        user_id=user_id or ANONYMOUS_USER,
        exercise_id=exercise.id,
        user_text=user_text,
        accuracy=comparison.accuracy,
        mistakes=comparison.mistakes,
        total_words=comparison.total_words,
        completed_at=completed_at,
        exercise_title=exercise.title,
        exercise_difficulty=exercise.difficulty.value,
        exercise_category=exercise.category,
    )
    report = store.save(result)
    return Submission(comparison=comparison, result=result, report=report)


def feedback_message(submission: Submission) -> str:
    accuracy = submission.comparison.accuracy
    outcome = submission.report.outcome
    if outcome is SaveOutcome.PRIMARY:
        return f"You scored {accuracy}% accuracy. Results saved."
    if outcome is SaveOutcome.FALLBACK:
        return f"You scored {accuracy}% accuracy. Results saved on this device."
    return f"You scored {accuracy}% accuracy. Results could not be saved."
