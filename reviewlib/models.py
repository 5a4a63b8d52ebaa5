from dataclasses import dataclass
from dataclasses import replace
from datetime import datetime


#============================================
@dataclass(frozen=True)
class Ticket:
	"""
	One completed Linear issue assigned to the user.
	"""
	id: str
	title: str
	url: str
	state: str
	labels: tuple[str, ...] = ()
	description: str | None = None
	completed_at: datetime | None = None

	@property
	def primary_label(self) -> str:
		if not self.labels:
			return ""
		return self.labels[0]


#============================================
@dataclass(frozen=True)
class PullRequest:
	"""
	One GitHub pull request authored by the user.
	"""
	title: str
	url: str
	repo: str
	additions: int = 0
	deletions: int = 0
	created_at: datetime | None = None
	merged_at: datetime | None = None
	body: str | None = None
	is_open: bool = False

	@property
	def owner(self) -> str:
		return self.repo.split("/", 1)[0]


#============================================
@dataclass(frozen=True)
class DateRange:
	"""
	Query window plus the user-facing end boundary.

	end may run one day past display_end so that completions stamped in a
	timezone ahead of local time still match; labels use display_end.
	"""
	start: datetime
	end: datetime
	display_end: datetime


#============================================
@dataclass(frozen=True)
class ReportSummary:
	tickets_completed: int
	prs_merged: int
	period: str
	total_additions: int
	total_deletions: int
	prs_open: int | None = None


#============================================
@dataclass(frozen=True)
class Report:
	"""
	Aggregated tickets and pull requests for one run.
	"""
	summary: ReportSummary
	tickets: tuple[Ticket, ...]
	prs: tuple[PullRequest, ...]
	open_prs: tuple[PullRequest, ...] | None = None
	narrative: str | None = None

	def with_narrative(self, narrative: str) -> "Report":
		return replace(self, narrative=narrative)


#============================================
def sort_keeping_missing(records, key_fn, reverse: bool = False) -> list:
	"""
	Stable sort on an optional key; records whose key is None keep their slots.
	"""
	records = list(records)
	slots = [index for index, record in enumerate(records) if key_fn(record) is not None]
	ordered = sorted((records[index] for index in slots), key=key_fn, reverse=reverse)
	for index, record in zip(slots, ordered):
		records[index] = record
	return records
