from datetime import datetime
from datetime import timedelta

import pytest

from reviewlib import date_ranges
from reviewlib.errors import InvalidDate


#============================================
def test_parse_calendar_date_is_local_midnight() -> None:
	"""
	Parsed dates keep their calendar day and sit at local midnight.
	"""
	value = date_ranges.parse_calendar_date("2026-03-01")
	assert value == datetime(2026, 3, 1, 0, 0, 0)
	assert value.tzinfo is None
	assert value.strftime("%Y-%m-%d") == "2026-03-01"


#============================================
@pytest.mark.parametrize("text", ["2024-02-29", "2026-12-31", "1999-01-01"])
def test_parse_calendar_date_round_trips(text: str) -> None:
	"""
	Reformatting the parsed value gives back the same date text.
	"""
	assert date_ranges.parse_calendar_date(text).strftime("%Y-%m-%d") == text


#============================================
@pytest.mark.parametrize(
	"text",
	["", "2026-13-01", "2026-02-30", "2025-02-29", "2026-1-5", "abcd-ef-gh", "2026/03/01", "2026-03-01T00:00"],
)
def test_parse_calendar_date_rejects_bad_input(text: str) -> None:
	"""
	Malformed text and impossible calendar dates raise InvalidDate.
	"""
	with pytest.raises(InvalidDate):
		date_ranges.parse_calendar_date(text)


#============================================
def test_invalid_date_is_a_value_error() -> None:
	with pytest.raises(ValueError):
		date_ranges.parse_calendar_date("not-a-date")


#============================================
def test_past_n_days_boundaries() -> None:
	"""
	Start is N days back at midnight; end carries a one-day buffer.
	"""
	now = datetime(2026, 10, 17, 14, 30, 5)
	result = date_ranges.past_n_days(7, now=now)
	assert result.start == datetime(2026, 10, 10, 0, 0, 0, 0)
	assert result.display_end == datetime(2026, 10, 17, 23, 59, 59, 999000)
	assert result.end == datetime(2026, 10, 18, 23, 59, 59, 999000)


#============================================
def test_past_n_days_zero_covers_today() -> None:
	now = datetime(2026, 10, 17, 9, 0, 0)
	result = date_ranges.past_n_days(0, now=now)
	assert result.start == datetime(2026, 10, 17)
	assert result.start <= result.display_end <= result.end


#============================================
def test_past_n_days_negative_raises() -> None:
	with pytest.raises(InvalidDate):
		date_ranges.past_n_days(-1, now=datetime(2026, 10, 17))


#============================================
def test_current_week_midweek() -> None:
	"""
	A Saturday maps to the Monday before it and the following Sunday.
	"""
	now = datetime(2026, 10, 17, 8, 0, 0)
	result = date_ranges.current_week_monday_to_sunday(now=now)
	assert result.start == datetime(2026, 10, 12)
	assert result.start.weekday() == 0
	assert result.display_end == datetime(2026, 10, 18, 23, 59, 59, 999000)
	assert result.end - result.display_end == timedelta(days=1)


#============================================
def test_current_week_on_sunday_uses_offset_six() -> None:
	now = datetime(2026, 10, 18, 22, 0, 0)
	result = date_ranges.current_week_monday_to_sunday(now=now)
	assert result.start == datetime(2026, 10, 12)
	assert result.display_end.date() == now.date()


#============================================
def test_current_week_on_monday_starts_today() -> None:
	now = datetime(2026, 10, 12, 0, 0, 1)
	result = date_ranges.current_week_monday_to_sunday(now=now)
	assert result.start == datetime(2026, 10, 12)


#============================================
def test_ranges_are_deterministic_for_same_now() -> None:
	now = datetime(2026, 1, 1, 12, 0, 0)
	assert date_ranges.past_n_days(3, now=now) == date_ranges.past_n_days(3, now=now)
	assert (
		date_ranges.current_week_monday_to_sunday(now=now)
		== date_ranges.current_week_monday_to_sunday(now=now)
	)


#============================================
def test_explicit_range_has_no_buffer() -> None:
	result = date_ranges.explicit_range("2026-01-01", "2026-03-31")
	assert result.start == datetime(2026, 1, 1)
	assert result.end == result.display_end == datetime(2026, 3, 31, 23, 59, 59, 999000)


#============================================
def test_explicit_range_end_before_start_raises() -> None:
	with pytest.raises(InvalidDate):
		date_ranges.explicit_range("2026-03-01", "2026-02-01")


#============================================
def test_labels_use_display_end() -> None:
	"""
	Labels never show the buffered query end.
	"""
	week = date_ranges.current_week_monday_to_sunday(now=datetime(2026, 10, 17))
	assert date_ranges.day_span_label(week) == "Oct 12 - Oct 18, 2026"
	months = date_ranges.explicit_range("2026-01-05", "2026-03-20")
	assert date_ranges.month_span_label(months) == "Jan 2026 - Mar 2026"


#============================================
def test_day_span_label_across_years() -> None:
	week = date_ranges.current_week_monday_to_sunday(now=datetime(2026, 1, 1))
	assert date_ranges.day_span_label(week) == "Dec 29, 2025 - Jan 4, 2026"


#============================================
def test_search_date_text_and_query_iso() -> None:
	value = datetime(2026, 5, 4, 0, 0, 0)
	assert date_ranges.search_date_text(value) == "2026-05-04"
	iso_text = date_ranges.to_query_iso(value)
	assert iso_text.startswith("2026-05-04T00:00:00")
	assert datetime.fromisoformat(iso_text).tzinfo is not None
