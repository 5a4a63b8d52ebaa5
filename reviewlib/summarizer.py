"""Narrative summaries of a Report or an already rendered document.

Every failure from the transport surfaces as SummaryUnavailable so the
caller decides whether a missing narrative aborts the run.
"""

from reviewlib import prompt_loader
from reviewlib.errors import SummaryUnavailable
from reviewlib.llm_transports import TransportUnavailableError
from reviewlib.models import PullRequest
from reviewlib.models import Report
from reviewlib.models import Ticket


DEFAULT_MAX_TOKENS = 2000
NONE_TEXT = "None"


#============================================
def format_ticket_lines(tickets: tuple[Ticket, ...]) -> str:
	lines = []
	for ticket in tickets:
		labels = f" [{', '.join(ticket.labels)}]" if ticket.labels else ""
		lines.append(f"- {ticket.id}: {ticket.title}{labels}")
	return "\n".join(lines) or NONE_TEXT


#============================================
def format_pr_lines(prs: tuple[PullRequest, ...] | None) -> str:
	lines = [f"- {pr.repo}: {pr.title}" for pr in (prs or ())]
	return "\n".join(lines) or NONE_TEXT


#============================================
def build_report_prompt(report: Report, style: str = "review") -> str:
	"""
	Render the prompt for a review or sync narrative.
	"""
	values = {
		"period": report.summary.period,
		"ticket_count": str(report.summary.tickets_completed),
		"ticket_list": format_ticket_lines(report.tickets),
		"pr_count": str(report.summary.prs_merged),
		"pr_list": format_pr_lines(report.prs),
	}
	if style == "sync":
		values["open_pr_list"] = format_pr_lines(report.open_prs)
		template = prompt_loader.load_prompt("sync_summary.txt")
	elif style == "review":
		values["instructions"] = prompt_loader.load_prompt("review_instructions.txt").strip()
		template = prompt_loader.load_prompt("review_summary.txt")
	else:
		raise ValueError(f"Unknown summary style: {style}")
	return prompt_loader.render_prompt(template, values)


#============================================
def build_markdown_prompt(markdown_text: str) -> str:
	template = prompt_loader.load_prompt("review_from_markdown.txt")
	return prompt_loader.render_prompt(
		template,
		{
			"document": markdown_text,
			"instructions": prompt_loader.load_prompt("review_instructions.txt").strip(),
		},
	)


#============================================
def run_generation(transport, prompt: str, purpose: str, max_tokens: int) -> str:
	"""
	Call the transport and normalize every failure to SummaryUnavailable.
	"""
	if transport is None:
		raise SummaryUnavailable("No text-generation transport configured")
	try:
		text = transport.generate(prompt=prompt, purpose=purpose, max_tokens=max_tokens)
	except (TransportUnavailableError, RuntimeError, ValueError) as error:
		raise SummaryUnavailable(f"AI summary generation failed: {error}") from error
	text = (text or "").strip()
	if not text:
		raise SummaryUnavailable("AI summary generation returned no text")
	return text


#============================================
def summarize_report(
	transport,
	report: Report,
	style: str = "review",
	max_tokens: int = DEFAULT_MAX_TOKENS,
) -> str:
	"""
	Generate a narrative for an aggregated report.

	Args:
		transport: object exposing generate(prompt, *, purpose, max_tokens).
		report: aggregated Report.
		style: 'review' for themed accomplishments, 'sync' for short bullets.
		max_tokens: output token budget.

	Returns:
		Narrative markdown text.
	"""
	prompt = build_report_prompt(report, style=style)
	return run_generation(transport, prompt, f"{style} summary", max_tokens)


#============================================
def summarize_markdown(transport, markdown_text: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> str:
	"""
	Generate a review narrative from an existing rendered document.
	"""
	prompt = build_markdown_prompt(markdown_text)
	return run_generation(transport, prompt, "summary from markdown", max_tokens)
