from datetime import date, datetime, timedelta, timezone

from verbavox.streak import current_streak, to_date

TODAY = date(2025, 3, 20)


def _days_ago(n):
    return TODAY - timedelta(days=n)


def test_three_consecutive_days():
    assert current_streak([_days_ago(0), _days_ago(1), _days_ago(2)], today=TODAY) == 3


def test_gap_stops_the_count():
    assert current_streak([_days_ago(0), _days_ago(3)], today=TODAY) == 1


def test_empty_history():
    assert current_streak([], today=TODAY) == 0


def test_stale_history_has_no_streak():
    assert current_streak([_days_ago(2)], today=TODAY) == 0


def test_streak_may_end_yesterday():
    assert current_streak([_days_ago(1), _days_ago(2), _days_ago(3), _days_ago(5)], today=TODAY) == 3


def test_duplicates_and_order_do_not_matter():
    stamps = [
        datetime(2025, 3, 18, 9, 0).isoformat(),
        datetime(2025, 3, 20, 8, 0).isoformat(),
        datetime(2025, 3, 19, 23, 0).isoformat(),
        datetime(2025, 3, 20, 21, 30).isoformat(),
        datetime(2025, 3, 19, 7, 0).isoformat(),
    ]
    assert current_streak(stamps, today=TODAY) == 3


def test_to_date_accepts_strings_and_aware_datetimes():
    assert to_date("2025-03-20T10:15:00") == date(2025, 3, 20)
    assert to_date(date(2025, 3, 20)) == date(2025, 3, 20)
    aware = datetime(2025, 3, 20, 12, 0, tzinfo=timezone.utc)
    assert to_date(aware) == aware.astimezone().date()
    assert to_date("2025-03-20T12:00:00Z") == aware.astimezone().date()
