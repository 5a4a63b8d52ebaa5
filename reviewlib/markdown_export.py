import os
import re
from datetime import datetime

from reviewlib.errors import NarrativeAlreadyPresent
from reviewlib.errors import RenderTargetError
from reviewlib.models import PullRequest
from reviewlib.models import Report
from reviewlib.models import Ticket


NARRATIVE_HEADING = "## ✨ AI-Generated Accomplishments"
SYNC_SUMMARY_HEADING = "## ✨ Summary"
SECTION_RULE = "---"
OTHER_LABEL = "Other"


#============================================
def group_by_repo(prs) -> dict[str, list[PullRequest]]:
	"""
	Group PRs by repo, keeping first-seen repo order.
	"""
	groups: dict[str, list[PullRequest]] = {}
	for pr in prs:
		groups.setdefault(pr.repo, []).append(pr)
	return groups


#============================================
def group_tickets_by_label(tickets) -> dict[str, list[Ticket]] | None:
	"""
	Group tickets by primary label when the grouping is meaningful.

	Returns None when only one group exists or some ticket has no label.
	"""
	groups: dict[str, list[Ticket]] = {}
	for ticket in tickets:
		groups.setdefault(ticket.primary_label or OTHER_LABEL, []).append(ticket)
	if len(groups) > 1 and OTHER_LABEL not in groups:
		return groups
	return None


#============================================
def format_generated_on(value: datetime) -> str:
	return f"{value.strftime('%A, %B')} {value.day}, {value.year}"


#============================================
def format_pr_stats(pr: PullRequest) -> str:
	if not (pr.additions or pr.deletions):
		return ""
	return f" _(+{pr.additions}/-{pr.deletions})_"


#============================================
def render_review_markdown(report: Report, generated_on: datetime | None = None) -> str:
	"""
	Full performance-review document.
	"""
	summary = report.summary
	generated_on = generated_on or datetime.now()
	lines = [
		f"# 📊 Performance Review - {summary.period}",
		"",
		f"> Generated on {format_generated_on(generated_on)}",
		"",
		"## 🎯 Summary",
		"",
		"| Metric | Value |",
		"|--------|-------|",
		f"| Tickets Completed | {summary.tickets_completed} |",
		f"| PRs Merged | {summary.prs_merged} |",
		f"| Lines Added | +{summary.total_additions:,} |",
		f"| Lines Removed | -{summary.total_deletions:,} |",
		"",
	]

	if report.narrative:
		lines.extend([SECTION_RULE, "", NARRATIVE_HEADING, "", report.narrative, ""])

	lines.extend([SECTION_RULE, "", "## 🎫 Linear Tickets Completed", ""])
	if not report.tickets:
		lines.append("_No tickets found for this period._")
	else:
		label_groups = group_tickets_by_label(report.tickets)
		if label_groups is not None:
			for label, tickets in label_groups.items():
				lines.extend([f"### {label}", ""])
				for ticket in tickets:
					lines.append(f"- **[{ticket.id}]({ticket.url})**: {ticket.title}")
				lines.append("")
		else:
			for ticket in report.tickets:
				labels = f" _({', '.join(ticket.labels)})_" if ticket.labels else ""
				lines.append(f"- **[{ticket.id}]({ticket.url})**: {ticket.title}{labels}")
	lines.append("")

	lines.extend([SECTION_RULE, "", "## 🔀 GitHub PRs Merged", ""])
	if not report.prs:
		lines.append("_No PRs found for this period._")
	else:
		for repo, prs in group_by_repo(report.prs).items():
			lines.extend([f"### {repo}", ""])
			for pr in prs:
				lines.append(f"- [{pr.title}]({pr.url}){format_pr_stats(pr)}")
			lines.append("")

	# manual notes scaffold only when no narrative was generated
	if not report.narrative:
		lines.extend([
			SECTION_RULE,
			"",
			"## ✍️ Notes",
			"",
			"_Add your own notes and highlights here..._",
			"",
		])
		for heading in ("Key Accomplishments", "Challenges Overcome", "Areas of Growth"):
			lines.extend([f"### {heading}", "", "- ", ""])

	return "\n".join(lines)


#============================================
def render_sync_markdown(report: Report) -> str:
	"""
	Terse team-sync document.
	"""
	summary = report.summary
	counts = f"**{summary.tickets_completed} tickets** completed · **{summary.prs_merged} PRs** merged"
	if summary.prs_open:
		counts += f" · **{summary.prs_open} PRs** open"
	lines = [f"# 📋 Team Sync Update - {summary.period}", "", counts, ""]

	if report.narrative:
		lines.extend([SYNC_SUMMARY_HEADING, "", report.narrative, "", SECTION_RULE, ""])

	if report.tickets:
		lines.extend(["## ✅ Completed", ""])
		for ticket in report.tickets:
			lines.append(f"- [{ticket.id}]({ticket.url}) {ticket.title}")
		lines.append("")

	if report.prs:
		lines.extend(["## 🔀 PRs Merged", ""])
		for repo, prs in group_by_repo(report.prs).items():
			lines.append(f"**{repo}**")
			for pr in prs:
				lines.append(f"- [{pr.title}]({pr.url})")
			lines.append("")

	if report.open_prs:
		lines.extend(["## 🚧 PRs Open", ""])
		for repo, prs in group_by_repo(report.open_prs).items():
			lines.append(f"**{repo}**")
			for pr in prs:
				lines.append(f"- [{pr.title}]({pr.url})")
			lines.append("")

	return "\n".join(lines)


#============================================
def default_review_filename(period: str) -> str:
	"""
	Filename such as perf-review-jan-2026---mar-2026.md.
	"""
	slug = re.sub(r"\s+", "-", period.strip()).lower()
	return f"perf-review-{slug}.md"


#============================================
def default_sync_filename(now: datetime | None = None) -> str:
	value = now or datetime.now()
	return f"sync-{value.strftime('%Y-%m-%d')}.md"


#============================================
def write_markdown(path: str, text: str) -> str:
	"""
	Write document text and return the absolute path.
	"""
	output_path = os.path.abspath(path)
	try:
		directory = os.path.dirname(output_path)
		if directory:
			os.makedirs(directory, exist_ok=True)
		with open(output_path, "w", encoding="utf-8") as handle:
			handle.write(text)
	except OSError as error:
		raise RenderTargetError(f"Could not write {output_path}: {error}") from error
	return output_path


#============================================
def read_markdown(path: str) -> str:
	try:
		with open(path, "r", encoding="utf-8") as handle:
			return handle.read()
	except OSError as error:
		raise RenderTargetError(f"Could not read {path}: {error}") from error


#============================================
def insert_narrative(markdown_text: str, narrative: str) -> str:
	"""
	Insert a narrative section before the first horizontal rule line.

	Raises:
		NarrativeAlreadyPresent: when the document already has one.
		RenderTargetError: when the document has no rule line.
	"""
	if NARRATIVE_HEADING in markdown_text:
		raise NarrativeAlreadyPresent(
			"File already has an AI summary. Remove it first to regenerate."
		)
	match = re.search(r"^---[ \t]*$", markdown_text, flags=re.MULTILINE)
	if match is None:
		raise RenderTargetError("Could not find insertion point in markdown")
	insert_at = match.start()
	section = f"{SECTION_RULE}\n\n{NARRATIVE_HEADING}\n\n{narrative.strip()}\n\n"
	return markdown_text[:insert_at] + section + markdown_text[insert_at:]


#============================================
def has_narrative(markdown_text: str) -> bool:
	return NARRATIVE_HEADING in markdown_text
