import concurrent.futures
import textwrap
from datetime import datetime

import requests

from reviewlib import date_ranges
from reviewlib.errors import LinearAPIError
from reviewlib.errors import UpstreamItemError
from reviewlib.models import DateRange
from reviewlib.models import Ticket


LINEAR_GRAPHQL_URL = "https://api.linear.app/graphql"
TICKET_PAGE_SIZE = 250
DETAIL_WORKERS = 8
REQUEST_TIMEOUT_SECONDS = 30
UNKNOWN_STATE = "Unknown"

VIEWER_QUERY = textwrap.dedent(
	"""
	query {
	  viewer { id name email }
	}
	"""
).strip()

COMPLETED_ISSUES_QUERY = textwrap.dedent(
	"""
	query($start: DateTimeOrDuration!, $end: DateTimeOrDuration!, $first: Int!) {
	  viewer {
	    assignedIssues(
	      filter: { completedAt: { gte: $start, lte: $end } },
	      first: $first
	    ) {
	      nodes { id identifier title description completedAt url }
	      pageInfo { hasNextPage }
	    }
	  }
	}
	"""
).strip()

ISSUE_DETAIL_QUERY = textwrap.dedent(
	"""
	query($id: String!) {
	  issue(id: $id) {
	    state { name }
	    labels { nodes { name } }
	  }
	}
	"""
).strip()


#============================================
class LinearClient:
	"""
	Minimal Linear GraphQL client for completed-ticket lookups.
	"""

	def __init__(self, api_key: str, log_fn=None, url: str = LINEAR_GRAPHQL_URL):
		self.api_key = api_key
		self.log_fn = log_fn
		self.url = url

	#============================================
	def log(self, message: str) -> None:
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	def headers(self) -> dict[str, str]:
		return {
			"Authorization": self.api_key,
			"Content-Type": "application/json",
			"Accept": "application/json",
		}

	#============================================
	def call_graphql(self, query: str, variables: dict | None = None) -> dict:
		"""
		POST one GraphQL query and return its data payload.
		"""
		try:
			response = requests.post(
				self.url,
				headers=self.headers(),
				json={"query": query, "variables": variables or {}},
				timeout=REQUEST_TIMEOUT_SECONDS,
			)
		except requests.RequestException as error:
			raise LinearAPIError(f"Linear request failed: {error}") from error
		if response.status_code >= 400:
			raise LinearAPIError(
				f"Linear request failed ({response.status_code}): {response.text}"
			)
		try:
			payload = response.json()
		except ValueError as error:
			raise LinearAPIError(f"Linear response was not valid JSON: {error}") from error
		if not isinstance(payload, dict):
			raise LinearAPIError("Linear response was not a JSON object")
		errors = payload.get("errors")
		if errors:
			messages = "; ".join(format_graphql_error(error) for error in errors)
			raise LinearAPIError(f"Linear GraphQL errors: {messages}")
		data = payload.get("data")
		if not isinstance(data, dict):
			raise LinearAPIError("Linear response has no data")
		return data

	#============================================
	def fetch_viewer(self) -> dict:
		"""
		Resolve the user that owns the API key.
		"""
		data = self.call_graphql(VIEWER_QUERY)
		return data.get("viewer") or {}

	#============================================
	def fetch_issue_details(self, issue_id: str) -> tuple[str, tuple[str, ...]]:
		"""
		Return (state name, label names) for one issue.
		"""
		try:
			data = self.call_graphql(ISSUE_DETAIL_QUERY, {"id": issue_id})
		except LinearAPIError as error:
			raise UpstreamItemError(f"Could not load details for {issue_id}: {error}") from error
		issue = data.get("issue") or {}
		state = (issue.get("state") or {}).get("name") or UNKNOWN_STATE
		label_nodes = (issue.get("labels") or {}).get("nodes") or []
		labels = tuple(node.get("name", "") for node in label_nodes if node.get("name"))
		return state, labels

	#============================================
	def fetch_completed_tickets(self, date_range: DateRange) -> list[Ticket]:
		"""
		Issues assigned to the viewer and completed inside the range.

		State and labels come from one detail lookup per issue; a failed
		lookup leaves that ticket with an unknown state and no labels.
		"""
		self.log("Fetching Linear tickets...")
		variables = {
			"start": date_ranges.to_query_iso(date_range.start),
			"end": date_ranges.to_query_iso(date_range.end),
			"first": TICKET_PAGE_SIZE,
		}
		data = self.call_graphql(COMPLETED_ISSUES_QUERY, variables)
		connection = (data.get("viewer") or {}).get("assignedIssues") or {}
		nodes = connection.get("nodes") or []
		if (connection.get("pageInfo") or {}).get("hasNextPage"):
			self.log(
				f"Warning: Linear results capped at {TICKET_PAGE_SIZE} tickets; "
				+ "narrow the date range to see the rest."
			)
		tickets = self.resolve_tickets(nodes)
		self.log(f"Found {len(tickets)} completed tickets")
		return tickets

	#============================================
	def resolve_tickets(self, nodes: list[dict]) -> list[Ticket]:
		"""
		Fan out detail lookups and build Tickets in upstream order.
		"""
		if not nodes:
			return []
		workers = min(DETAIL_WORKERS, len(nodes))
		tickets = []
		with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
			futures = [executor.submit(self.fetch_issue_details, node.get("id", "")) for node in nodes]
			for node, future in zip(nodes, futures):
				try:
					state, labels = future.result()
				except UpstreamItemError as error:
					self.log(f"Warning: {error}; using unknown state and no labels.")
					state, labels = UNKNOWN_STATE, ()
				tickets.append(build_ticket(node, state, labels))
		return tickets


#============================================
def format_graphql_error(error) -> str:
	if isinstance(error, dict):
		return str(error.get("message", error))
	return str(error)


#============================================
def parse_linear_timestamp(value) -> datetime | None:
	if not value:
		return None
	return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


#============================================
def build_ticket(node: dict, state: str, labels: tuple[str, ...]) -> Ticket:
	"""
	Normalize one issue node into a Ticket.
	"""
	return Ticket(
		id=node.get("identifier") or "",
		title=node.get("title") or "",
		url=node.get("url") or "",
		state=state,
		labels=tuple(labels),
		description=node.get("description") or None,
		completed_at=parse_linear_timestamp(node.get("completedAt")),
	)
