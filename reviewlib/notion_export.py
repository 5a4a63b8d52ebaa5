from dataclasses import dataclass
from datetime import datetime

import requests

from reviewlib import notion_blocks
from reviewlib.errors import RenderTargetError
from reviewlib.models import Report


NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
REQUEST_TIMEOUT_SECONDS = 30
HEADING_TYPES = ("heading_1", "heading_2", "heading_3")


#============================================
@dataclass(frozen=True)
class YearBlock:
	id: str
	kind: str

	@property
	def can_hold_children(self) -> bool:
		return self.kind in ("toggle", "bullet")


#============================================
class NotionClient:
	"""
	Minimal Notion REST client for block listing, appends and page creation.
	"""

	def __init__(self, api_key: str, log_fn=None, base_url: str = NOTION_API_URL):
		self.api_key = api_key
		self.log_fn = log_fn
		self.base_url = base_url.rstrip("/")

	#============================================
	def log(self, message: str) -> None:
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	def headers(self) -> dict[str, str]:
		return {
			"Authorization": f"Bearer {self.api_key}",
			"Notion-Version": NOTION_VERSION,
			"Content-Type": "application/json",
		}

	#============================================
	def request(self, method: str, path: str, payload: dict | None = None, params: dict | None = None) -> dict:
		"""
		Send one API request and return the JSON body.
		"""
		url = f"{self.base_url}/{path.lstrip('/')}"
		try:
			response = requests.request(
				method,
				url,
				headers=self.headers(),
				json=payload,
				params=params,
				timeout=REQUEST_TIMEOUT_SECONDS,
			)
		except requests.RequestException as error:
			raise RenderTargetError(f"Notion request failed ({method} {path}): {error}") from error
		if response.status_code >= 400:
			raise RenderTargetError(
				f"Notion request failed ({method} {path}, {response.status_code}): {response.text[:300]}"
			)
		return response.json()

	#============================================
	def list_children(self, block_id: str, page_size: int = 100) -> list[dict]:
		data = self.request("GET", f"blocks/{block_id}/children", params={"page_size": page_size})
		return data.get("results") or []

	#============================================
	def append_children(self, block_id: str, children: list[dict]) -> dict:
		if len(children) > notion_blocks.NOTION_BLOCK_LIMIT:
			raise ValueError(f"Cannot append more than {notion_blocks.NOTION_BLOCK_LIMIT} blocks at once")
		return self.request("PATCH", f"blocks/{block_id}/children", {"children": children})

	#============================================
	def append_in_batches(self, block_id: str, children: list[dict]) -> int:
		"""
		Append children in sequential batches; return the batch count.
		"""
		batches = notion_blocks.chunk_blocks(children)
		for batch in batches:
			self.append_children(block_id, batch)
		return len(batches)

	#============================================
	def create_page(self, parent_page_id: str, title: str, children: list[dict]) -> dict:
		if len(children) > notion_blocks.NOTION_BLOCK_LIMIT:
			raise ValueError(f"Cannot create a page with more than {notion_blocks.NOTION_BLOCK_LIMIT} blocks")
		payload = {
			"parent": {"page_id": parent_page_id},
			"properties": {
				"title": {"title": [{"text": {"content": title}}]},
			},
			"children": children,
		}
		return self.request("POST", "pages", payload)


#============================================
def block_plain_text(block: dict) -> str:
	"""
	Plain text of the first rich text item of a listed block.
	"""
	block_type = block.get("type", "")
	items = (block.get(block_type) or {}).get("rich_text") or []
	if not items:
		return ""
	return items[0].get("plain_text") or ""


#============================================
def find_year_block(client: NotionClient, page_id: str, year: str) -> YearBlock | None:
	"""
	Locate the section for a year on the page.

	Preference order: toggle containing the year, heading containing it,
	bulleted item whose text is exactly the year.
	"""
	blocks = client.list_children(page_id)
	for block in blocks:
		if block.get("type") == "toggle" and year in block_plain_text(block):
			client.log(f"Found toggle: \"{block_plain_text(block)}\"")
			return YearBlock(block["id"], "toggle")
	for block in blocks:
		if block.get("type") in HEADING_TYPES and year in block_plain_text(block):
			client.log(f"Found heading: \"{block_plain_text(block)}\"")
			return YearBlock(block["id"], "heading")
	for block in blocks:
		if block.get("type") == "bulleted_list_item" and block_plain_text(block).strip() == year:
			client.log(f"Found bullet: \"{block_plain_text(block)}\"")
			return YearBlock(block["id"], "bullet")
	return None


#============================================
def page_url_from_id(page_id: str) -> str:
	return f"https://notion.so/{page_id.replace('-', '')}"


#============================================
def export_sync_to_notion(
	client: NotionClient,
	report: Report,
	page_id: str,
	year: str | None = None,
) -> str:
	"""
	Append a toggle titled with the period under this year's section.

	The toggle is created carrying the first batch of children; any
	remaining children are appended to it in follow-up batches.
	"""
	client.log("Exporting to Notion...")
	year = year or str(datetime.now().year)
	year_block = find_year_block(client, page_id, year)
	parent_id = page_id
	if year_block is not None and year_block.can_hold_children:
		parent_id = year_block.id

	blocks = notion_blocks.build_sync_blocks(report)
	first_batch = blocks[:notion_blocks.NOTION_BLOCK_LIMIT]
	remaining = blocks[notion_blocks.NOTION_BLOCK_LIMIT:]
	toggle = notion_blocks.Toggle(notion_blocks.text(report.summary.period), children=tuple(first_batch))
	response = client.append_children(parent_id, [notion_blocks.block_to_payload(toggle)])
	if remaining:
		results = response.get("results") or []
		if not results:
			raise RenderTargetError("Notion did not return the created toggle block")
		client.append_in_batches(
			results[0]["id"],
			[notion_blocks.block_to_payload(block) for block in remaining],
		)

	if year_block is None:
		client.log(f"Added toggle to page (no {year} section found)")
	elif year_block.can_hold_children:
		client.log(f"Added toggle inside {year} section")
	else:
		client.log(f"Added toggle to page ({year} is a heading, not a toggle)")
	return page_url_from_id(page_id)


#============================================
def export_review_to_notion(client: NotionClient, report: Report, page_id: str) -> str:
	"""
	Create a performance-review child page and return its URL.
	"""
	client.log("Exporting performance review to Notion...")
	payloads = [notion_blocks.block_to_payload(block) for block in notion_blocks.build_review_blocks(report)]
	first_batch = payloads[:notion_blocks.NOTION_BLOCK_LIMIT]
	remaining = payloads[notion_blocks.NOTION_BLOCK_LIMIT:]
	response = client.create_page(
		page_id,
		f"Performance Review - {report.summary.period}",
		first_batch,
	)
	if remaining:
		client.append_in_batches(response["id"], remaining)
	client.log(f"Created Notion page ({len(payloads)} blocks)")
	return response.get("url") or page_url_from_id(response.get("id", page_id))
