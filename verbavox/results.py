"""Saving and loading attempt history across the primary and fallback stores."""

from __future__ import annotations

import logging
from typing import List, Optional

from .config import fallback_db_path
from .events import EXERCISE_COMPLETED, EventBus
from .models import ANONYMOUS_USER, AttemptResult, Config, SaveOutcome, SaveReport
from .primary import ErrorKind, PrimaryStore, PrimaryStoreError, RestPrimaryStore, classify_error
from .storage import FallbackStore, SQLiteKeyValueStore

RESULTS_TABLE = "exercise_results"
# Columns the hosted results table accepts.
_PRIMARY_COLUMNS = ("user_id", "exercise_id", "user_text", "accuracy", "mistakes", "completed_at")


class ResultStore:
    """Persist attempts to the primary store when possible, and always locally.

    ``save`` never raises: every failure is logged and folded into the
    returned :class:`SaveReport`.
    """

    def __init__(
        self,
        fallback: FallbackStore,
        primary: Optional[PrimaryStore] = None,
        events: Optional[EventBus] = None,
    ) -> None:
        self.fallback = fallback
        self.primary = primary
        self.events = events

    def save(self, result: AttemptResult) -> SaveReport:
        saved_to_primary = self._save_primary(result)
        error: Optional[str] = None

        try:
            self.fallback.append(result)
        except Exception as exc:
            logging.exception("Failed to save result to the fallback store")
            saved_to_fallback = False
            error = str(exc)
        else:
            saved_to_fallback = True

        if saved_to_primary:
            outcome = SaveOutcome.PRIMARY
        elif saved_to_fallback:
            outcome = SaveOutcome.FALLBACK
        else:
            outcome = SaveOutcome.FAILED

        report = SaveReport(
            outcome=outcome,
            saved_to_primary=saved_to_primary,
            saved_to_fallback=saved_to_fallback,
            error=error,
        )
        if outcome is not SaveOutcome.FAILED and self.events is not None:
            self.events.emit(
                EXERCISE_COMPLETED,
                {
                    "exercise_id": result.exercise_id,
                    "accuracy": result.accuracy,
                    "saved_to_database": saved_to_primary,
                    "saved_to_fallback": saved_to_fallback,
                    "user_id": result.user_id,
                },
            )
        return report

    def _save_primary(self, result: AttemptResult) -> bool:
        if self.primary is None or result.user_id == ANONYMOUS_USER:
            return False
        record = {key: value for key, value in result.to_mapping().items() if key in _PRIMARY_COLUMNS}
        try:
            self.primary.insert(RESULTS_TABLE, record)
        except PrimaryStoreError as exc:
            kind = classify_error(exc)
            if kind is ErrorKind.UNKNOWN:
                logging.error("Saving result to the primary store failed: %s", exc)
            else:
                logging.info("Primary store unavailable (%s); using fallback store", kind.value)
            return False
        except Exception:
            logging.exception("Unexpected error while saving result to the primary store")
            return False
        return True

    def history(self, user_id: Optional[str], limit: int = 50) -> List[AttemptResult]:
        """Return attempts for ``user_id``, newest first.

        Falls back to the local lists when the primary store is missing,
        failing or empty for this user.
        """

        results = self._primary_history(user_id, limit)
        if results:
            return results

        user_id = user_id or ANONYMOUS_USER
        local = self.fallback.list_results(user_id)
        if user_id != ANONYMOUS_USER:
            local.extend(self.fallback.list_results(ANONYMOUS_USER))
        local.sort(key=lambda result: result.completed_at, reverse=True)
        return local[:limit]

    def _primary_history(self, user_id: Optional[str], limit: int) -> List[AttemptResult]:
        if self.primary is None or not user_id or user_id == ANONYMOUS_USER:
            return []
        try:
            rows = self.primary.select(
                RESULTS_TABLE,
                {"user_id": user_id},
                order="completed_at desc",
                limit=limit,
            )
        except PrimaryStoreError as exc:
            if classify_error(exc) is ErrorKind.UNKNOWN:
                logging.error("Loading results from the primary store failed: %s", exc)
            else:
                logging.debug("Results table unavailable: %s", exc)
            return []
        except Exception:
            logging.exception("Unexpected error while loading results from the primary store")
            return []

        results = []
        for row in rows:
            try:
                results.append(AttemptResult.from_mapping(row))
            except (TypeError, ValueError) as exc:
                logging.warning("Skipping malformed result row: %s", exc)
        return results

    def all_results(self) -> List[AttemptResult]:
        """Every attempt in the shared local list, across users."""

        return self.fallback.list_results()


def open_result_store(config: Config, events: Optional[EventBus] = None) -> ResultStore:
    """Build a :class:`ResultStore` from persisted configuration."""

    fallback = FallbackStore(
        SQLiteKeyValueStore(fallback_db_path(config)),
        namespace=config.namespace,
        user_cap=config.user_history_cap,
        global_cap=config.global_history_cap,
    )
    return ResultStore(fallback, primary=RestPrimaryStore.from_config(config), events=events)
