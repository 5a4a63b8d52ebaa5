from datetime import datetime

import pytest

from reviewlib import markdown_export
from reviewlib import report_builder
from reviewlib.errors import NarrativeAlreadyPresent
from reviewlib.errors import RenderTargetError
from reviewlib.models import PullRequest
from reviewlib.models import Ticket


GENERATED_ON = datetime(2026, 4, 2, 9, 0, 0)


#============================================
def make_report(narrative: str | None = None):
	"""
	Two tickets (one unlabeled) and three PRs across two repos.
	"""
	tickets = [
		Ticket("ENG-1", "Fix login redirect", "https://linear.app/acme/issue/ENG-1", "Done"),
		Ticket("ENG-2", "Cache search results", "https://linear.app/acme/issue/ENG-2", "Done", labels=("backend",)),
	]
	prs = [
		PullRequest("Add cache layer", "https://github.com/acme/api/pull/1", "acme/api", additions=10, deletions=2),
		PullRequest("Fix header", "https://github.com/acme/web/pull/2", "acme/web", additions=5, deletions=1),
		PullRequest("Bump deps", "https://github.com/acme/api/pull/3", "acme/api"),
	]
	report = report_builder.build_report(tickets, prs, "Jan 2026 - Mar 2026")
	if narrative:
		report = report.with_narrative(narrative)
	return report


#============================================
def test_review_markdown_summary_table() -> None:
	text = markdown_export.render_review_markdown(make_report(), generated_on=GENERATED_ON)
	assert text.startswith("# 📊 Performance Review - Jan 2026 - Mar 2026")
	assert "> Generated on Thursday, April 2, 2026" in text
	assert "| Tickets Completed | 2 |" in text
	assert "| PRs Merged | 3 |" in text
	assert "| Lines Added | +15 |" in text
	assert "| Lines Removed | -3 |" in text


#============================================
def test_review_markdown_unlabeled_ticket_gives_flat_list() -> None:
	text = markdown_export.render_review_markdown(make_report(), generated_on=GENERATED_ON)
	assert "### backend" not in text
	assert "- **[ENG-1](https://linear.app/acme/issue/ENG-1)**: Fix login redirect" in text
	assert "- **[ENG-2](https://linear.app/acme/issue/ENG-2)**: Cache search results _(backend)_" in text


#============================================
def test_review_markdown_groups_prs_by_repo_in_first_seen_order() -> None:
	text = markdown_export.render_review_markdown(make_report(), generated_on=GENERATED_ON)
	assert text.count("### acme/api") == 1
	assert text.count("### acme/web") == 1
	assert text.index("### acme/api") < text.index("### acme/web")
	api_section = text[text.index("### acme/api"):text.index("### acme/web")]
	assert "[Add cache layer](https://github.com/acme/api/pull/1) _(+10/-2)_" in api_section
	assert "- [Bump deps](https://github.com/acme/api/pull/3)\n" in api_section


#============================================
def test_review_markdown_notes_only_without_narrative() -> None:
	plain = markdown_export.render_review_markdown(make_report(), generated_on=GENERATED_ON)
	assert "## ✍️ Notes" in plain
	assert markdown_export.NARRATIVE_HEADING not in plain
	with_ai = markdown_export.render_review_markdown(make_report("Led the cache work."), generated_on=GENERATED_ON)
	assert "## ✍️ Notes" not in with_ai
	assert with_ai.index(markdown_export.NARRATIVE_HEADING) < with_ai.index("## 🎫 Linear Tickets Completed")


#============================================
def test_review_markdown_groups_when_every_ticket_labeled() -> None:
	tickets = [
		Ticket("ENG-1", "a", "u1", "Done", labels=("frontend",)),
		Ticket("ENG-2", "b", "u2", "Done", labels=("backend", "perf")),
		Ticket("ENG-3", "c", "u3", "Done", labels=("frontend",)),
	]
	report = report_builder.build_report(tickets, [], "p")
	text = markdown_export.render_review_markdown(report, generated_on=GENERATED_ON)
	assert text.index("### frontend") < text.index("### backend")
	assert "_No PRs found for this period._" in text


#============================================
def test_group_tickets_single_label_is_not_grouped() -> None:
	tickets = [Ticket("A", "a", "u", "Done", labels=("x",)), Ticket("B", "b", "u", "Done", labels=("x",))]
	assert markdown_export.group_tickets_by_label(tickets) is None


#============================================
def test_empty_review_shows_placeholders() -> None:
	report = report_builder.build_report([], [], "Jan 2026 - Jan 2026")
	text = markdown_export.render_review_markdown(report, generated_on=GENERATED_ON)
	assert "_No tickets found for this period._" in text
	assert "_No PRs found for this period._" in text
	assert "| Lines Added | +0 |" in text


#============================================
def test_large_totals_use_thousands_separator() -> None:
	prs = [PullRequest("big", "u", "acme/api", additions=12345, deletions=6789)]
	report = report_builder.build_report([], prs, "p")
	text = markdown_export.render_review_markdown(report, generated_on=GENERATED_ON)
	assert "| Lines Added | +12,345 |" in text
	assert "| Lines Removed | -6,789 |" in text


#============================================
def test_sync_markdown_sections() -> None:
	open_prs = [PullRequest("WIP search", "https://github.com/acme/api/pull/9", "acme/api", is_open=True)]
	report = report_builder.build_report(
		list(make_report().tickets),
		list(make_report().prs),
		"Oct 12 - Oct 18, 2026",
		open_prs=open_prs,
	).with_narrative("Busy week.")
	text = markdown_export.render_sync_markdown(report)
	assert text.startswith("# 📋 Team Sync Update - Oct 12 - Oct 18, 2026")
	assert "**2 tickets** completed · **3 PRs** merged · **1 PRs** open" in text
	assert "## ✨ Summary\n\nBusy week." in text
	assert "- [ENG-1](https://linear.app/acme/issue/ENG-1) Fix login redirect" in text
	assert "**acme/api**" in text
	assert text.index("## 🔀 PRs Merged") < text.index("## 🚧 PRs Open")


#============================================
def test_sync_markdown_omits_empty_sections() -> None:
	report = report_builder.build_report([], [], "p", open_prs=[])
	text = markdown_export.render_sync_markdown(report)
	assert "## ✅ Completed" not in text
	assert "## 🔀 PRs Merged" not in text
	assert "## 🚧 PRs Open" not in text
	assert "PRs** open" not in text


#============================================
def test_default_filenames() -> None:
	assert markdown_export.default_review_filename("Jan 2026 - Mar 2026") == "perf-review-jan-2026---mar-2026.md"
	assert markdown_export.default_sync_filename(datetime(2026, 10, 17)) == "sync-2026-10-17.md"


#============================================
def test_insert_narrative_lands_before_first_rule() -> None:
	"""
	The table separator row is not mistaken for the rule line.
	"""
	original = markdown_export.render_review_markdown(make_report(), generated_on=GENERATED_ON)
	updated = markdown_export.insert_narrative(original, "  Drove the cache rollout.\n")
	assert markdown_export.has_narrative(updated)
	heading_at = updated.index(markdown_export.NARRATIVE_HEADING)
	assert updated.index("| Lines Removed | -3 |") < heading_at < updated.index("## 🎫 Linear Tickets Completed")
	assert "Drove the cache rollout.\n\n---" in updated
	assert updated.replace(
		f"---\n\n{markdown_export.NARRATIVE_HEADING}\n\nDrove the cache rollout.\n\n", "", 1
	) == original


#============================================
def test_insert_narrative_refuses_second_narrative() -> None:
	text = markdown_export.render_review_markdown(make_report("Existing."), generated_on=GENERATED_ON)
	with pytest.raises(NarrativeAlreadyPresent):
		markdown_export.insert_narrative(text, "Another.")


#============================================
def test_insert_narrative_without_rule_raises() -> None:
	with pytest.raises(RenderTargetError):
		markdown_export.insert_narrative("# Title\n\nno rules here\n", "text")


#============================================
def test_write_and_read_markdown(tmp_path) -> None:
	path = tmp_path / "nested" / "review.md"
	written = markdown_export.write_markdown(str(path), "# hi\n")
	assert written == str(path)
	assert markdown_export.read_markdown(written) == "# hi\n"


#============================================
def test_write_markdown_failure_raises_render_error(tmp_path) -> None:
	blocker = tmp_path / "file.txt"
	blocker.write_text("x", encoding="utf-8")
	with pytest.raises(RenderTargetError):
		markdown_export.write_markdown(str(blocker / "review.md"), "text")


#============================================
def test_read_missing_file_raises(tmp_path) -> None:
	with pytest.raises(RenderTargetError):
		markdown_export.read_markdown(str(tmp_path / "missing.md"))
