"""FastAPI application exposing exercises, scoring and progress."""

from __future__ import annotations

import threading
from typing import List, Optional, Union

from fastapi import FastAPI, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from ..config import load_config
from ..dashboard import compute_stats, recent_exercises
from ..events import EventBus
from ..exercises import ExerciseCatalog, ExerciseNotFound
from ..models import AttemptResult, Episode, Exercise
from ..practice import ValidationError, feedback_message, submit_attempt
from ..primary import RestPrimaryStore
from ..podcasts import EpisodeNotFound, PodcastCatalog, open_catalog, page_metadata, series_jsonld
from ..results import ResultStore, open_result_store
from ..scoring import PERIOD_DAYS, build_leaderboard, group_by_user

app = FastAPI(
    title="verbavox API",
    description="Listening practice: score typed transcripts and track progress.",
    version="0.1.0",
)

events = EventBus()
_init_lock = threading.Lock()
_store: Optional[ResultStore] = None
_catalog: Optional[ExerciseCatalog] = None
_podcasts: Optional[PodcastCatalog] = None


def _initialise() -> None:
    global _store, _catalog, _podcasts
    if _store is not None and _catalog is not None and _podcasts is not None:
        return
    with _init_lock:
        config = load_config()
        if _store is None:
            _store = open_result_store(config, events=events)
        if _catalog is None:
            _catalog = ExerciseCatalog(RestPrimaryStore.from_config(config))
        if _podcasts is None:
            _podcasts = open_catalog(config.podcast_path)


def _get_store() -> ResultStore:
    _initialise()
    return _store


def _get_catalog() -> ExerciseCatalog:
    _initialise()
    return _catalog


def _get_podcasts() -> PodcastCatalog:
    _initialise()
    return _podcasts


class HealthResponse(BaseModel):
    status: str = "ok"
    primary_store: bool


class ExercisePayload(BaseModel):
    id: Union[int, str]
    title: str
    difficulty: str
    category: str
    duration: str
    description: Optional[str] = None
    audio_url: Optional[str] = None


class ExerciseDetail(ExercisePayload):
    text: str


class AttemptRequest(BaseModel):
    user_text: str
    user_id: Optional[str] = None


class AttemptResponse(BaseModel):
    exercise_id: Union[int, str]
    accuracy: int
    mistakes: int
    total_words: int
    completed_at: str
    outcome: str
    saved_to_database: bool
    saved_to_fallback: bool
    message: str
    reference_text: str


class ResultPayload(BaseModel):
    exercise_id: Union[int, str]
    title: str
    difficulty: str
    category: str
    accuracy: int
    date: str
    time_ago: str


class StatsResponse(BaseModel):
    exercises_completed: int
    average_accuracy: int
    streak: int
    level: int
    score: int


class LeaderboardRow(BaseModel):
    rank: int
    username: str
    score: int
    exercises: int
    accuracy: int


class EpisodePayload(BaseModel):
    id: str
    title: str
    description: str
    url: str
    cover_image: str
    audio_url: str
    date_published: str
    duration: str


class EpisodeDetail(EpisodePayload):
    page_title: str
    meta_description: str


def _exercise_payload(exercise: Exercise) -> ExercisePayload:
    return ExercisePayload(
        id=exercise.id,
        title=exercise.title,
        difficulty=exercise.difficulty.value,
        category=exercise.category,
        duration=exercise.duration,
        description=exercise.description,
        audio_url=exercise.audio_url,
    )


def _get_exercise(exercise_id: str) -> Exercise:
    try:
        return _get_catalog().get(exercise_id)
    except ExerciseNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


def _history(user_id: str) -> List[AttemptResult]:
    return _get_store().history(user_id)


@app.get("/health", response_model=HealthResponse)
async def healthcheck() -> HealthResponse:
    return HealthResponse(primary_store=_get_store().primary is not None)


@app.get("/exercises", response_model=list[ExercisePayload])
async def list_exercises(
    difficulty: Optional[str] = None,
    search: Optional[str] = None,
) -> list[ExercisePayload]:
    rows = await run_in_threadpool(_get_catalog().search, search or "")
    if difficulty:
        rows = [exercise for exercise in rows if exercise.difficulty.value.lower() == difficulty.lower()]
    return [_exercise_payload(exercise) for exercise in rows]


@app.get("/exercises/{exercise_id}", response_model=ExerciseDetail)
async def get_exercise(exercise_id: str) -> ExerciseDetail:
    exercise = await run_in_threadpool(_get_exercise, exercise_id)
    return ExerciseDetail(**_exercise_payload(exercise).model_dump(), text=exercise.text)


@app.post(
    "/exercises/{exercise_id}/attempts",
    response_model=AttemptResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_attempt(exercise_id: str, payload: AttemptRequest) -> AttemptResponse:
    exercise = await run_in_threadpool(_get_exercise, exercise_id)
    try:
        submission = await run_in_threadpool(
            submit_attempt, exercise, payload.user_text, _get_store(), payload.user_id
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    result = submission.result
    report = submission.report
    return AttemptResponse(
        exercise_id=result.exercise_id,
        accuracy=result.accuracy,
        mistakes=result.mistakes,
        total_words=result.total_words,
        completed_at=result.completed_at,
        outcome=report.outcome.value,
        saved_to_database=report.saved_to_primary,
        saved_to_fallback=report.saved_to_fallback,
        message=feedback_message(submission),
        reference_text=exercise.text,
    )


@app.get("/users/{user_id}/results", response_model=list[ResultPayload])
async def list_results(user_id: str, limit: int = Query(10, ge=1, le=50)) -> list[ResultPayload]:
    results = await run_in_threadpool(_history, user_id)
    return [
        ResultPayload(
            exercise_id=item.exercise_id,
            title=item.title,
            difficulty=item.difficulty,
            category=item.category,
            accuracy=item.accuracy,
            date=item.date,
            time_ago=item.time_ago,
        )
        for item in recent_exercises(results, limit=limit)
    ]


@app.get("/users/{user_id}/stats", response_model=StatsResponse)
async def user_stats(user_id: str) -> StatsResponse:
    results = await run_in_threadpool(_history, user_id)
    summary = compute_stats(results)
    return StatsResponse(
        exercises_completed=summary.exercises_completed,
        average_accuracy=summary.average_accuracy,
        streak=summary.streak,
        level=summary.level,
        score=summary.score,
    )


@app.get("/leaderboard", response_model=list[LeaderboardRow])
async def get_leaderboard(period: str = "weekly", search: Optional[str] = None) -> list[LeaderboardRow]:
    if period not in PERIOD_DAYS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown period {period!r}; expected one of {', '.join(PERIOD_DAYS)}",
        )
    results = await run_in_threadpool(_get_store().all_results)
    entries = build_leaderboard(group_by_user(results), period=period, query=search)
    return [
        LeaderboardRow(
            rank=entry.rank,
            username=entry.username,
            score=entry.score,
            exercises=entry.exercises,
            accuracy=entry.accuracy,
        )
        for entry in entries
    ]


def _episode_payload(episode: Episode) -> EpisodePayload:
    return EpisodePayload(
        id=episode.id,
        title=episode.title,
        description=episode.description,
        url=episode.url,
        cover_image=episode.cover_image,
        audio_url=episode.audio_url,
        date_published=episode.date_published,
        duration=episode.duration,
    )


@app.get("/podcasts", response_model=list[EpisodePayload])
async def list_podcasts() -> list[EpisodePayload]:
    return [_episode_payload(episode) for episode in _get_podcasts().all()]


@app.get("/podcasts/series.jsonld")
async def podcast_series() -> dict:
    return series_jsonld(_get_podcasts().all())


@app.get("/podcasts/{episode_id}", response_model=EpisodeDetail)
async def get_podcast(episode_id: str) -> EpisodeDetail:
    try:
        episode = _get_podcasts().get(episode_id)
    except EpisodeNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    metadata = page_metadata(episode)
    return EpisodeDetail(
        **_episode_payload(episode).model_dump(),
        page_title=metadata["title"],
        meta_description=metadata["description"],
    )
