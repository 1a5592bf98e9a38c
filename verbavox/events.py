"""In-process publish/subscribe notifications."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

EXERCISE_COMPLETED = "exercise_completed"

Handler = Callable[[Dict[str, Any]], None]


class EventBus:
    def __init__(self) -> None:
        self._subs: Dict[str, List[Handler]] = {}

    def subscribe(self, event: str, handler: Handler) -> None:
        self._subs.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: Handler) -> None:
        handlers = self._subs.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        for handler in list(self._subs.get(event, [])):
            try:
                handler(payload)
            except Exception:
                logging.exception("Handler for %s failed", event)
