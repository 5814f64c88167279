import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from checkpoints import checkpoint_target, get_closest_reading
from normalizer import Reading

UTC = timezone.utc
DAY = "2024-08-12"


def ms(hour: int, minute: int, second: int = 0) -> int:
    return int(datetime(2024, 8, 12, hour, minute, second, tzinfo=UTC).timestamp() * 1000)


def reading(hour: int, minute: int, value: float, second: int = 0) -> Reading:
    return Reading(timestamp=ms(hour, minute, second), value=value, is_offline=False)


def test_checkpoint_target() -> None:
    assert checkpoint_target(DAY, "12:00", UTC) == ms(12, 0)
    assert checkpoint_target(DAY, "bad", UTC) is None


def test_picks_reading_nearest_to_checkpoint() -> None:
    bucket = [reading(8, 0, 1.0), reading(11, 40, 2.0), reading(12, 15, 3.0), reading(17, 0, 4.0)]

    closest = get_closest_reading(bucket, "12:00", DAY, 30, UTC)

    assert closest == reading(12, 15, 3.0)


def test_ties_go_to_first_reading_in_bucket_order() -> None:
    early, late = reading(11, 50, 1.0), reading(12, 10, 2.0)

    assert get_closest_reading([early, late], "12:00", DAY, 30, UTC) == early
    assert get_closest_reading([late, early], "12:00", DAY, 30, UTC) == late


def test_reading_beyond_window_keeps_value_but_is_offline() -> None:
    bucket = [reading(12, 45, 3.5)]

    closest = get_closest_reading(bucket, "12:00", DAY, 30, UTC)

    assert closest == Reading(timestamp=ms(12, 45), value=3.5, is_offline=True)
    assert bucket[0].is_offline is False


def test_distance_is_floored_to_whole_minutes() -> None:
    inside = get_closest_reading([reading(12, 30, 1.0, second=59)], "12:00", DAY, 30, UTC)
    outside = get_closest_reading([reading(12, 31, 1.0)], "12:00", DAY, 30, UTC)
    before = get_closest_reading([reading(11, 29, 1.0)], "12:00", DAY, 30, UTC)

    assert inside is not None and inside.is_offline is False
    assert outside is not None and outside.is_offline is True
    assert before is not None and before.is_offline is True


def test_zero_window_accepts_same_minute_only() -> None:
    assert get_closest_reading([reading(12, 0, 1.0, second=30)], "12:00", DAY, 0, UTC).is_offline is False
    assert get_closest_reading([reading(12, 1, 1.0)], "12:00", DAY, 0, UTC).is_offline is True


def test_no_reading_for_empty_bucket_or_bad_checkpoint() -> None:
    assert get_closest_reading([], "12:00", DAY, 30, UTC) is None
    assert get_closest_reading([reading(12, 0, 1.0)], "25:00", DAY, 30, UTC) is None
