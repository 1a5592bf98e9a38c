"""Dataclasses describing exercises, attempts and view records for verbavox."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from .streak import parse_timestamp

ANONYMOUS_USER = "anonymous"

ExerciseId = Union[str, int]


class Difficulty(str, Enum):
    SIMPLE = "Simple"
    MEDIUM = "Medium"
    ADVANCED = "Advanced"


@dataclass(slots=True)
class Exercise:
    """A reference listening passage."""

    id: ExerciseId
    title: str
    difficulty: Difficulty
    category: str
    duration: str
    text: str
    description: Optional[str] = None
    audio_url: Optional[str] = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "Exercise":
        return cls(
            id=row["id"],
            title=row["title"],
            difficulty=Difficulty(row["difficulty"]),
            category=row.get("category") or "Unknown",
            duration=row.get("duration") or "",
            text=row.get("text") or "",
            description=row.get("description"),
            audio_url=row.get("audio_url"),
        )


@dataclass(slots=True)
class Comparison:
    accuracy: int
    mistakes: int
    total_words: int

    @property
    def correct_words(self) -> int:
        return self.total_words - self.mistakes


_REQUIRED_RESULT_FIELDS = ("exercise_id", "accuracy", "mistakes", "completed_at")


@dataclass(slots=True)
class AttemptResult:
    """The outcome of one transcription attempt."""

    user_id: str
    exercise_id: ExerciseId
    user_text: str
    accuracy: int
    mistakes: int
    total_words: int
    completed_at: str
    exercise_title: Optional[str] = None
    exercise_difficulty: Optional[str] = None
    exercise_category: Optional[str] = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "AttemptResult":
        """Coerce a stored row into a record.

        Raises ``ValueError`` for missing fields and unparseable timestamps.
        """

        missing = [name for name in _REQUIRED_RESULT_FIELDS if row.get(name) is None]
        if missing:
            raise ValueError(f"Attempt record is missing fields: {', '.join(missing)}")
        accuracy = int(row["accuracy"])
        mistakes = int(row["mistakes"])
        total_words = row.get("total_words")
        return cls(
            user_id=str(row.get("user_id") or ANONYMOUS_USER),
            exercise_id=row["exercise_id"],
            user_text=str(row.get("user_text") or ""),
            accuracy=accuracy,
            mistakes=mistakes,
            # Rows written by older clients carry no word count.
            total_words=int(total_words) if total_words is not None else 0,
            completed_at=parse_timestamp(str(row["completed_at"])).isoformat(),
            exercise_title=row.get("exercise_title"),
            exercise_difficulty=row.get("exercise_difficulty"),
            exercise_category=row.get("exercise_category"),
        )

    def to_mapping(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class SaveOutcome(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
    FAILED = "failed"


@dataclass(slots=True)
class SaveReport:
    outcome: SaveOutcome
    saved_to_primary: bool = False
    saved_to_fallback: bool = False
    error: Optional[str] = None


@dataclass(slots=True)
class DashboardStats:
    exercises_completed: int = 0
    average_accuracy: int = 0
    streak: int = 0
    level: int = 1
    score: int = 0


@dataclass(slots=True)
class RecentExercise:
    exercise_id: ExerciseId
    title: str
    difficulty: str
    category: str
    accuracy: int
    date: str
    time_ago: str


@dataclass(slots=True)
class LeaderboardEntry:
    username: str
    score: int
    exercises: int
    accuracy: int
    rank: int = 0


@dataclass(slots=True)
class Config:
    """User configuration stored on disk."""

    user_id: str = ANONYMOUS_USER
    namespace: str = "englishbyear"
    user_history_cap: int = 50
    global_history_cap: int = 200
    server_url: Optional[str] = None
    server_token: Optional[str] = None
    verify_ssl: bool = True
    api_timeout: float = 10.0
    fallback_path: Optional[str] = None
    podcast_path: Optional[str] = None


@dataclass(slots=True)
class Episode:
    """One podcast episode."""

    id: str
    title: str
    description: str
    url: str
    meta_description: str
    cover_image: str
    audio_url: str
    date_published: str
    duration: str

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "Episode":
        return cls(
            id=str(row["id"]),
            title=row["title"],
            description=row.get("description") or "",
            url=row.get("url") or "",
            meta_description=row.get("metaWork") or row.get("meta_description") or "",
            cover_image=row.get("coverImage") or row.get("cover_image") or "",
            audio_url=row.get("audioUrl") or row.get("audio_url") or "",
            date_published=row.get("datePublished") or row.get("date_published") or "",
            duration=row.get("duration") or "",
        )
