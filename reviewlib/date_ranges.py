import re
from datetime import datetime
from datetime import timedelta

from reviewlib.errors import InvalidDate
from reviewlib.models import DateRange


CALENDAR_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
# one extra day on query ends absorbs completions stamped in a timezone ahead of local
QUERY_END_BUFFER = timedelta(days=1)


#============================================
def start_of_day(value: datetime) -> datetime:
	"""
	Return local midnight for the given datetime's date.
	"""
	return value.replace(hour=0, minute=0, second=0, microsecond=0)


#============================================
def end_of_day(value: datetime) -> datetime:
	"""
	Return 23:59:59.999 local for the given datetime's date.
	"""
	return value.replace(hour=23, minute=59, second=59, microsecond=999000)


#============================================
def parse_calendar_date(text: str) -> datetime:
	"""
	Parse YYYY-MM-DD as a naive local-midnight datetime.

	Args:
		text: date string such as '2026-03-01'.

	Returns:
		datetime at 00:00 local time on that calendar day.

	Raises:
		InvalidDate: when the text is not a real calendar date.
	"""
	value = (text or "").strip()
	match = CALENDAR_DATE_RE.match(value)
	if match is None:
		raise InvalidDate(f"Invalid date format: {text!r}. Use YYYY-MM-DD")
	year, month, day = (int(part) for part in match.groups())
	try:
		return datetime(year, month, day)
	except ValueError as error:
		raise InvalidDate(f"Invalid calendar date: {text!r} ({error})") from error


#============================================
def past_n_days(days: int, now: datetime | None = None) -> DateRange:
	"""
	Trailing window from N days ago through today.
	"""
	if days < 0:
		raise InvalidDate(f"days must be >= 0, got {days}")
	today = now or datetime.now()
	start = start_of_day(today - timedelta(days=days))
	display_end = end_of_day(today)
	return DateRange(
		start=start,
		end=display_end + QUERY_END_BUFFER,
		display_end=display_end,
	)


#============================================
def current_week_monday_to_sunday(now: datetime | None = None) -> DateRange:
	"""
	Monday through Sunday of the week containing today.
	"""
	today = now or datetime.now()
	# weekday() is 0 for Monday and 6 for Sunday
	offset = today.weekday()
	monday = start_of_day(today - timedelta(days=offset))
	sunday_end = end_of_day(monday + timedelta(days=6))
	return DateRange(
		start=monday,
		end=sunday_end + QUERY_END_BUFFER,
		display_end=sunday_end,
	)


#============================================
def explicit_range(start_text: str, end_text: str) -> DateRange:
	"""
	Inclusive range between two YYYY-MM-DD dates, without a query buffer.
	"""
	start = parse_calendar_date(start_text)
	end = end_of_day(parse_calendar_date(end_text))
	if end < start:
		raise InvalidDate(f"End date {end_text} is before start date {start_text}")
	return DateRange(start=start, end=end, display_end=end)


#============================================
def format_short_day(value: datetime) -> str:
	return f"{value.strftime('%b')} {value.day}"


#============================================
def month_span_label(date_range: DateRange) -> str:
	"""
	Label such as 'Jan 2026 - Mar 2026'.
	"""
	start_text = date_range.start.strftime("%b %Y")
	end_text = date_range.display_end.strftime("%b %Y")
	return f"{start_text} - {end_text}"


#============================================
def day_span_label(date_range: DateRange) -> str:
	"""
	Label such as 'Oct 12 - Oct 18, 2026'.
	"""
	start = date_range.start
	end = date_range.display_end
	if start.year == end.year:
		return f"{format_short_day(start)} - {format_short_day(end)}, {end.year}"
	return f"{format_short_day(start)}, {start.year} - {format_short_day(end)}, {end.year}"


#============================================
def search_date_text(value: datetime) -> str:
	"""
	Calendar date text for GitHub search qualifiers.
	"""
	return value.strftime("%Y-%m-%d")


#============================================
def to_query_iso(value: datetime) -> str:
	"""
	ISO-8601 instant with the local UTC offset attached.
	"""
	if value.tzinfo is None:
		value = value.astimezone()
	return value.isoformat()
