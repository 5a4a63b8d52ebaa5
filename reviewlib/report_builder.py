from reviewlib.models import PullRequest
from reviewlib.models import Report
from reviewlib.models import ReportSummary
from reviewlib.models import Ticket


#============================================
def build_report(
	tickets: list[Ticket],
	prs: list[PullRequest],
	period: str,
	open_prs: list[PullRequest] | None = None,
) -> Report:
	"""
	Combine adapter outputs and totals into one Report.

	Line totals cover merged PRs only, never open ones.
	"""
	summary = ReportSummary(
		tickets_completed=len(tickets),
		prs_merged=len(prs),
		period=period,
		total_additions=sum(pr.additions for pr in prs),
		total_deletions=sum(pr.deletions for pr in prs),
		prs_open=None if open_prs is None else len(open_prs),
	)
	return Report(
		summary=summary,
		tickets=tuple(tickets),
		prs=tuple(prs),
		open_prs=None if open_prs is None else tuple(open_prs),
	)


#============================================
def format_console_summary(report: Report) -> list[str]:
	"""
	Closing recap lines for the console.
	"""
	summary = report.summary
	lines = [
		f"{summary.tickets_completed} Linear tickets completed",
		f"{summary.prs_merged} GitHub PRs merged",
	]
	if summary.prs_open is not None:
		lines.append(f"{summary.prs_open} GitHub PRs open")
	lines.append(
		f"+{summary.total_additions:,} / -{summary.total_deletions:,} lines changed"
	)
	return lines
