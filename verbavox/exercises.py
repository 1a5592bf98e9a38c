"""Exercise catalogue backed by the primary store with a built-in fallback."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .models import Difficulty, Exercise, ExerciseId
from .primary import PrimaryStore

EXERCISES_TABLE = "exercises"


class ExerciseNotFound(LookupError):
    """Raised when no exercise matches the requested id."""


BUILTIN_EXERCISES: List[Exercise] = [
    Exercise(
        id=1,
        title="Daily Routines",
        difficulty=Difficulty.SIMPLE,
        category="Lifestyle",
        duration="2-3 min",
        description="Practice listening to descriptions of everyday activities",
        text=(
            "I usually wake up at seven o'clock. I make a cup of coffee and read the news "
            "before I take a shower. Then I walk to the station and catch the train to work. "
            "In the evening I cook dinner and go to bed around eleven."
        ),
    ),
    Exercise(
        id=2,
        title="Travel Vocabulary",
        difficulty=Difficulty.SIMPLE,
        category="Travel",
        duration="3-4 min",
        description="Learn common phrases used when traveling",
        text=(
            "I'm planning a trip to Japan next month. I've already booked my flight and hotel. "
            "I'll be staying in Tokyo for a week, and then I'll visit Kyoto for three days. "
            "I'm really excited about trying the local food and visiting some temples. "
            "I need to pack light because I'll be using public transportation a lot. "
            "Do you have any recommendations for places to visit in Japan?"
        ),
    ),
    Exercise(
        id=3,
        title="Food and Restaurants",
        difficulty=Difficulty.SIMPLE,
        category="Food",
        duration="2-3 min",
        description="Practice ordering food and discussing preferences",
        text=(
            "Could we have a table for two, please? I would like the vegetable soup to start "
            "and the grilled chicken for my main course. My friend doesn't eat meat, so she "
            "will have the pasta. Can we also see the dessert menu later?"
        ),
    ),
    Exercise(
        id=4,
        title="News Headlines",
        difficulty=Difficulty.MEDIUM,
        category="News",
        duration="4-5 min",
        description="Listen to current news stories and identify key information",
        text=(
            "The city council approved a new plan on Tuesday to expand the public bus network. "
            "Officials say the changes will reduce traffic in the downtown area and cut travel "
            "times for commuters. Construction of the new routes is expected to begin next spring."
        ),
    ),
    Exercise(
        id=5,
        title="Job Interviews",
        difficulty=Difficulty.MEDIUM,
        category="Business",
        duration="5-6 min",
        description="Practice understanding common interview questions and responses",
        text=(
            "Thank you for coming in today. Could you tell me a little about your previous "
            "experience? In my last position I managed a small team and was responsible for "
            "customer accounts. I enjoy solving problems and I work well under pressure."
        ),
    ),
    Exercise(
        id=6,
        title="Movie Reviews",
        difficulty=Difficulty.MEDIUM,
        category="Entertainment",
        duration="4-5 min",
        description="Listen to people discussing films and their opinions",
        text=(
            "I thought the acting was brilliant, but the story was far too predictable. "
            "The first hour kept me on the edge of my seat, although the ending felt rushed. "
            "Overall I would still recommend it to anyone who enjoys a good thriller."
        ),
    ),
    Exercise(
        id=7,
        title="Scientific Discussions",
        difficulty=Difficulty.ADVANCED,
        category="Science",
        duration="6-8 min",
        description="Complex vocabulary and concepts from scientific fields",
        text=(
            "Researchers have observed that coral reefs exposed to persistently elevated water "
            "temperatures expel the symbiotic algae that supply most of their energy. This "
            "phenomenon, known as bleaching, leaves the colonies vulnerable to disease and, if "
            "conditions do not improve, can ultimately lead to widespread mortality."
        ),
    ),
    Exercise(
        id=8,
        title="Business Negotiations",
        difficulty=Difficulty.ADVANCED,
        category="Business",
        duration="7-9 min",
        description="Advanced business terminology and persuasive language",
        text=(
            "We appreciate the flexibility you've shown on delivery schedules, however the "
            "proposed pricing still exceeds our budget for the coming fiscal year. If you could "
            "accommodate a volume discount, we would be prepared to commit to a three-year "
            "agreement with guaranteed minimum orders."
        ),
    ),
    Exercise(
        id=9,
        title="Literary Analysis",
        difficulty=Difficulty.ADVANCED,
        category="Literature",
        duration="6-8 min",
        description="Discussions about books, themes, and literary techniques",
        text=(
            "Throughout the novel the author employs recurring imagery of water to suggest both "
            "renewal and loss. The narrator's unreliable account forces readers to question "
            "which memories are genuine, and the fragmented structure mirrors the protagonist's "
            "gradual disillusionment."
        ),
    ),
]


class ExerciseCatalog:
    """Exercises from the primary store, or the built-in set when it is unavailable."""

    def __init__(self, primary: Optional[PrimaryStore] = None) -> None:
        self.primary = primary
        self._exercises: Optional[List[Exercise]] = None

    def all(self) -> List[Exercise]:
        if self._exercises is None:
            self._exercises = self._load()
        return list(self._exercises)

    def _load(self) -> List[Exercise]:
        if self.primary is None:
            return list(BUILTIN_EXERCISES)
        try:
            rows = self.primary.select(EXERCISES_TABLE, order="id asc")
            exercises = [Exercise.from_mapping(row) for row in rows]
        except Exception as exc:
            logging.warning("Falling back to built-in exercises: %s", exc)
            return list(BUILTIN_EXERCISES)
        return exercises or list(BUILTIN_EXERCISES)

    def get(self, exercise_id: ExerciseId) -> Exercise:
        wanted = str(exercise_id)
        for exercise in self.all():
            if str(exercise.id) == wanted:
                return exercise
        raise ExerciseNotFound(f"Exercise with id {exercise_id} not found")

    def by_difficulty(self) -> Dict[Difficulty, List[Exercise]]:
        grouped: Dict[Difficulty, List[Exercise]] = {level: [] for level in Difficulty}
        for exercise in self.all():
            grouped[exercise.difficulty].append(exercise)
        return grouped

    def search(self, query: str) -> List[Exercise]:
        needle = query.strip().lower()
        if not needle:
            return self.all()
        return [
            exercise
            for exercise in self.all()
            if needle in exercise.title.lower()
            or (exercise.description and needle in exercise.description.lower())
            or needle in exercise.category.lower()
        ]
