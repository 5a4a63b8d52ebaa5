"""Notion block variants and the builders that turn a Report into them.

Blocks are a closed set of frozen dataclasses. block_to_payload is the only
place that knows the Notion JSON shape and rejects anything outside the set.
"""

from dataclasses import dataclass

from reviewlib.markdown_export import group_by_repo
from reviewlib.models import Report
from reviewlib.models import sort_keeping_missing


NOTION_BLOCK_LIMIT = 100
NOTION_TEXT_LIMIT = 2000


#============================================
@dataclass(frozen=True)
class TextSpan:
	content: str
	url: str | None = None
	bold: bool = False
	italic: bool = False
	color: str | None = None


#============================================
@dataclass(frozen=True)
class Paragraph:
	spans: tuple[TextSpan, ...]


#============================================
@dataclass(frozen=True)
class Heading:
	level: int
	spans: tuple[TextSpan, ...]

	def __post_init__(self):
		if self.level not in (2, 3):
			raise ValueError(f"Unsupported heading level: {self.level}")


#============================================
@dataclass(frozen=True)
class BulletedItem:
	spans: tuple[TextSpan, ...]


#============================================
@dataclass(frozen=True)
class Toggle:
	spans: tuple[TextSpan, ...]
	children: tuple = ()


#============================================
@dataclass(frozen=True)
class Callout:
	spans: tuple[TextSpan, ...]
	icon: str = ""


#============================================
@dataclass(frozen=True)
class Divider:
	pass


#============================================
def text(content: str, **kwargs) -> tuple[TextSpan, ...]:
	"""
	Shorthand for a single-span tuple.
	"""
	return (TextSpan(content, **kwargs),)


#============================================
def span_to_payload(span: TextSpan) -> list[dict]:
	"""
	Convert one span, splitting content over the Notion per-object limit.
	"""
	pieces = [
		span.content[start:start + NOTION_TEXT_LIMIT]
		for start in range(0, len(span.content), NOTION_TEXT_LIMIT)
	] or [""]
	annotations = {}
	if span.bold:
		annotations["bold"] = True
	if span.italic:
		annotations["italic"] = True
	if span.color:
		annotations["color"] = span.color
	payloads = []
	for piece in pieces:
		text_value: dict = {"content": piece}
		if span.url:
			text_value["link"] = {"url": span.url}
		payload: dict = {"type": "text", "text": text_value}
		if annotations:
			payload["annotations"] = dict(annotations)
		payloads.append(payload)
	return payloads


#============================================
def rich_text(spans: tuple[TextSpan, ...]) -> list[dict]:
	items = []
	for span in spans:
		items.extend(span_to_payload(span))
	return items


#============================================
def block_to_payload(block) -> dict:
	"""
	Convert one block variant to its Notion API JSON.
	"""
	if isinstance(block, Paragraph):
		return {"object": "block", "type": "paragraph", "paragraph": {"rich_text": rich_text(block.spans)}}
	if isinstance(block, Heading):
		block_type = f"heading_{block.level}"
		return {"object": "block", "type": block_type, block_type: {"rich_text": rich_text(block.spans)}}
	if isinstance(block, BulletedItem):
		return {
			"object": "block",
			"type": "bulleted_list_item",
			"bulleted_list_item": {"rich_text": rich_text(block.spans)},
		}
	if isinstance(block, Toggle):
		body: dict = {"rich_text": rich_text(block.spans)}
		if block.children:
			body["children"] = [block_to_payload(child) for child in block.children]
		return {"object": "block", "type": "toggle", "toggle": body}
	if isinstance(block, Callout):
		body = {"rich_text": rich_text(block.spans)}
		if block.icon:
			body["icon"] = {"type": "emoji", "emoji": block.icon}
		return {"object": "block", "type": "callout", "callout": body}
	if isinstance(block, Divider):
		return {"object": "block", "type": "divider", "divider": {}}
	raise TypeError(f"Unsupported block type: {type(block).__name__}")


#============================================
def chunk_blocks(blocks: list, limit: int = NOTION_BLOCK_LIMIT) -> list[list]:
	"""
	Split blocks into batches of at most limit blocks.
	"""
	if limit < 1:
		raise ValueError("limit must be >= 1")
	return [blocks[start:start + limit] for start in range(0, len(blocks), limit)]


#============================================
def markdown_to_blocks(markdown_text: str) -> list:
	"""
	Map narrative markdown lines onto headings, bullets and paragraphs.
	"""
	blocks = []
	for line in markdown_text.split("\n"):
		stripped = line.strip()
		if not stripped:
			continue
		if stripped.startswith("#### "):
			blocks.append(Heading(3, text(stripped[len("#### "):])))
		elif stripped.startswith("### "):
			blocks.append(Heading(2, text(stripped[len("### "):])))
		elif stripped.startswith("- "):
			blocks.append(BulletedItem(text(stripped[len("- "):])))
		else:
			blocks.append(Paragraph(text(stripped)))
	return blocks


#============================================
def format_block_stats(additions: int, deletions: int, separator: str = "-") -> str:
	if not (additions or deletions):
		return ""
	return f"+{additions}/{separator}{deletions}"


#============================================
def build_sync_blocks(report: Report) -> list:
	"""
	Children of the weekly sync toggle.
	"""
	blocks = []
	if report.narrative:
		for line in report.narrative.split("\n"):
			if line.strip():
				blocks.append(Paragraph(text(line, italic=True)))

	if report.tickets:
		blocks.append(Paragraph(text("Linear Tickets", bold=True)))
		for ticket in report.tickets:
			blocks.append(BulletedItem((
				TextSpan(ticket.id, url=ticket.url),
				TextSpan(f" {ticket.title}"),
			)))

	all_prs = sort_keeping_missing(
		list(report.prs) + list(report.open_prs or ()),
		lambda pr: pr.created_at,
	)
	if all_prs:
		blocks.append(Paragraph(text("PRs", bold=True)))
		for pr in all_prs:
			stats = format_block_stats(pr.additions, pr.deletions, separator="−")
			suffix = f" {stats}" if stats else ""
			if pr.is_open:
				suffix += " (open)"
			spans = [TextSpan(f"[{pr.repo}] "), TextSpan(pr.title, url=pr.url)]
			if suffix:
				spans.append(TextSpan(suffix))
			blocks.append(BulletedItem(tuple(spans)))
	return blocks


#============================================
def build_review_blocks(report: Report) -> list:
	"""
	Body of a performance-review page.
	"""
	summary = report.summary
	blocks = [
		Callout(
			text(
				f"📊 {summary.tickets_completed} tickets · {summary.prs_merged} PRs · "
				+ f"+{summary.total_additions:,}/-{summary.total_deletions:,} lines"
			),
			icon="🎯",
		)
	]
	if report.narrative:
		blocks.extend(markdown_to_blocks(report.narrative))
		blocks.append(Divider())

	blocks.append(Heading(2, text("Linear Tickets Completed")))
	if not report.tickets:
		blocks.append(Paragraph(text("No tickets found for this period.", italic=True)))
	for ticket in report.tickets:
		labels = f" ({', '.join(ticket.labels)})" if ticket.labels else ""
		blocks.append(BulletedItem((
			TextSpan(ticket.id, url=ticket.url, bold=True),
			TextSpan(f": {ticket.title}{labels}"),
		)))
	blocks.append(Divider())

	blocks.append(Heading(2, text("GitHub PRs Merged")))
	if not report.prs:
		blocks.append(Paragraph(text("No PRs found for this period.", italic=True)))
	for repo, prs in group_by_repo(report.prs).items():
		blocks.append(Heading(3, text(repo)))
		for pr in prs:
			spans = [TextSpan(pr.title, url=pr.url)]
			stats = format_block_stats(pr.additions, pr.deletions)
			if stats:
				spans.append(TextSpan(f" ({stats})", color="gray"))
			blocks.append(BulletedItem(tuple(spans)))
	return blocks
