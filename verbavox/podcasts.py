"""The English By Ear podcast: episode catalogue and page metadata."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import Episode

DEFAULT_PAGE_TITLE = "English By Ear Podcast"
SERIES_NAME = "The English Learning Podcast"
SERIES_DESCRIPTION = (
    "A weekly show that helps English learners improve vocabulary, pronunciation, "
    "and cultural understanding."
)
SITE_URL = "https://www.EnglishByEar.com"


class EpisodeNotFound(LookupError):
    """Raised when no episode matches the requested id."""


BUILTIN_EPISODES: List[Episode] = [
    Episode(
        id="episode-1",
        title="Episode 1: Mastering Small Talk in English",
        description="Learn how to start and keep a conversation going in English.",
        url=f"{SITE_URL}/episode-1",
        meta_description="Small talk phrases and conversation starters for English learners.",
        cover_image=f"{SITE_URL}/images/podcast-cover.jpg",
        audio_url="https://cdn.EnglishByEar.com/audio/episode-1.mp3",
        date_published="2025-08-05",
        duration="PT22M",
    ),
    Episode(
        id="episode-2",
        title="Episode 2: 10 Common Mistakes English Learners Make",
        description="We discuss the most frequent grammar and pronunciation mistakes and how to avoid them.",
        url=f"{SITE_URL}/episode-2",
        meta_description="The grammar and pronunciation mistakes English learners make most often.",
        cover_image=f"{SITE_URL}/images/podcast-cover.jpg",
        audio_url="https://cdn.EnglishByEar.com/audio/episode-2.mp3",
        date_published="2025-08-12",
        duration="PT25M",
    ),
]


class PodcastCatalog:
    def __init__(self, episodes: Optional[List[Episode]] = None) -> None:
        self._episodes = list(BUILTIN_EPISODES if episodes is None else episodes)

    @classmethod
    def from_file(cls, path: Path) -> "PodcastCatalog":
        """Load episodes from a JSON array of episode objects."""

        try:
            rows = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise ValueError(f"Failed to read episodes from {path}: {exc}") from exc
        if not isinstance(rows, list):
            raise ValueError(f"Expected a list of episodes in {path}")
        try:
            return cls([Episode.from_mapping(row) for row in rows])
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Malformed episode in {path}: {exc}") from exc

    def all(self) -> List[Episode]:
        return list(self._episodes)

    def ids(self) -> List[str]:
        return [episode.id for episode in self._episodes]

    def get(self, episode_id: str) -> Episode:
        for episode in self._episodes:
            if episode.id == episode_id:
                return episode
        raise EpisodeNotFound(f"Episode with id {episode_id} not found")


def page_metadata(episode: Episode) -> Dict[str, str]:
    return {
        "title": episode.title or DEFAULT_PAGE_TITLE,
        "description": episode.meta_description,
    }


def series_jsonld(episodes: List[Episode]) -> Dict[str, Any]:
    """schema.org ``PodcastSeries`` document for the podcast landing page."""

    return {
        "@context": "https://schema.org",
        "@type": "PodcastSeries",
        "name": SERIES_NAME,
        "description": SERIES_DESCRIPTION,
        "url": f"{SITE_URL}/podcast",
        "inLanguage": "en",
        "hasPart": [
            {
                "@type": "PodcastEpisode",
                "name": episode.title,
                "description": episode.description,
                "url": episode.url,
                "datePublished": episode.date_published,
                "timeRequired": episode.duration,
                "episodeNumber": number,
                "inLanguage": "en",
                "associatedMedia": {
                    "@type": "MediaObject",
                    "contentUrl": episode.audio_url,
                    "encodingFormat": "audio/mpeg",
                },
            }
            for number, episode in enumerate(episodes, start=1)
        ],
    }


def open_catalog(path: Optional[str] = None) -> PodcastCatalog:
    if path:
        return PodcastCatalog.from_file(Path(path).expanduser())
    return PodcastCatalog()
