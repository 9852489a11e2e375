import pytest

from irismod.util.durations import format_duration, is_valid_duration, parse_duration, retention_days


@pytest.mark.parametrize(
    "duration, expected",
    [("30s", 30_000), ("10m", 600_000), ("2h", 7_200_000), ("1d", 86_400_000), ("10M", 600_000)],
)
def test_parse_duration_converts_to_milliseconds(duration: str, expected: int) -> None:
    assert parse_duration(duration) == expected


@pytest.mark.parametrize("duration", ["", "10", "m10", "1w", "1.5h", "-5m", "10 m", None, 10])
def test_invalid_durations_are_rejected(duration) -> None:
    assert is_valid_duration(duration) is False
    with pytest.raises(ValueError):
        parse_duration(duration)


def test_retention_days_rounds_up_and_caps_to_a_week() -> None:
    assert retention_days(None) == 0
    assert retention_days("1h") == 1
    assert retention_days("36h") == 2
    assert retention_days("7d") == 7
    assert retention_days("8d") == 0


def test_format_duration() -> None:
    assert format_duration(0) == "Permanent"
    assert format_duration(45_000) == "45s"
    assert format_duration(600_000) == "10m 0s"
    assert format_duration(90 * 60_000) == "1h 30m"
    assert format_duration(2 * 86_400_000) == "2d 0h"
