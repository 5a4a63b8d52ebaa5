from reviewlib import report_builder
from reviewlib.models import PullRequest
from reviewlib.models import Ticket


#============================================
def make_prs() -> list[PullRequest]:
	return [
		PullRequest("A", "https://github.com/acme/api/pull/1", "acme/api", additions=1200, deletions=30),
		PullRequest("B", "https://github.com/acme/web/pull/2", "acme/web", additions=5, deletions=1),
	]


#============================================
def test_build_report_counts_and_sums() -> None:
	tickets = [Ticket("ENG-1", "t", "u", "Done")]
	report = report_builder.build_report(tickets, make_prs(), "Jan 2026 - Mar 2026")
	summary = report.summary
	assert summary.tickets_completed == 1
	assert summary.prs_merged == 2
	assert summary.total_additions == 1205
	assert summary.total_deletions == 31
	assert summary.prs_open is None
	assert report.open_prs is None
	assert report.narrative is None


#============================================
def test_open_prs_never_count_toward_line_totals() -> None:
	open_prs = [PullRequest("open", "https://github.com/acme/api/pull/9", "acme/api", additions=900, deletions=900, is_open=True)]
	report = report_builder.build_report([], make_prs(), "Oct 12 - Oct 18, 2026", open_prs=open_prs)
	assert report.summary.prs_open == 1
	assert report.summary.total_additions == 1205
	assert report.summary.total_deletions == 31
	assert len(report.open_prs) == 1


#============================================
def test_empty_report() -> None:
	report = report_builder.build_report([], [], "Jan 2026 - Jan 2026", open_prs=[])
	assert report.summary.total_additions == 0
	assert report.summary.prs_open == 0
	assert report.tickets == ()


#============================================
def test_format_console_summary() -> None:
	report = report_builder.build_report([], make_prs(), "p", open_prs=[])
	lines = report_builder.format_console_summary(report)
	assert lines == [
		"0 Linear tickets completed",
		"2 GitHub PRs merged",
		"0 GitHub PRs open",
		"+1,205 / -31 lines changed",
	]


#============================================
def test_with_narrative_returns_new_report() -> None:
	report = report_builder.build_report([], [], "p")
	updated = report.with_narrative("Shipped things.")
	assert updated.narrative == "Shipped things."
	assert report.narrative is None
