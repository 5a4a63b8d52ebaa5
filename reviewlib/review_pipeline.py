import concurrent.futures
from dataclasses import dataclass

from reviewlib import llm_transports
from reviewlib import pr_fetch
from reviewlib import report_builder
from reviewlib import summarizer
from reviewlib.errors import ConfigurationError
from reviewlib.errors import SummaryUnavailable
from reviewlib.github_client import GitHubClient
from reviewlib.linear_client import LinearClient
from reviewlib.models import DateRange
from reviewlib.models import Report
from reviewlib.review_settings import ReviewConfig


#============================================
@dataclass
class SourceClients:
	linear: object = None
	github: object = None
	personal_github: object = None


#============================================
def build_source_clients(
	config: ReviewConfig,
	include_tickets: bool = True,
	include_prs: bool = True,
	log_fn=None,
) -> SourceClients:
	"""
	Create the API clients a run needs from the resolved config.
	"""
	clients = SourceClients()
	if include_tickets:
		clients.linear = LinearClient(config.linear_api_key, log_fn=log_fn)
	if include_prs:
		clients.github = GitHubClient(config.github_token, log_fn=log_fn)
		personal_token = config.personal_github_token
		if personal_token and personal_token != config.github_token:
			clients.personal_github = GitHubClient(personal_token, log_fn=log_fn)
	return clients


#============================================
def fetch_tickets(client, date_range: DateRange, log_fn=None) -> list:
	viewer = client.fetch_viewer()
	if log_fn is not None and viewer:
		log_fn(f"Using Linear user: {viewer.get('name') or viewer.get('email') or viewer.get('id')}")
	return client.fetch_completed_tickets(date_range)


#============================================
def log_github_usage(clients: SourceClients, log_fn=None) -> None:
	"""
	Report outbound GitHub API calls per token.
	"""
	if log_fn is None:
		return
	for label, client in (("primary", clients.github), ("personal", clients.personal_github)):
		if client is None:
			continue
		usage = client.api_usage_snapshot()
		log_fn(f"GitHub API usage ({label}): calls={usage.get('api_call_count', 0)}")


#============================================
def collect_report(
	config: ReviewConfig,
	date_range: DateRange,
	period: str,
	include_tickets: bool = True,
	include_prs: bool = True,
	include_open_prs: bool = False,
	clients: SourceClients | None = None,
	log_fn=None,
) -> Report:
	"""
	Fetch tickets and PRs concurrently and aggregate them.

	Any failure of a primary fetch propagates and aborts the run.
	"""
	if clients is None:
		clients = build_source_clients(config, include_tickets, include_prs, log_fn=log_fn)
	with concurrent.futures.ThreadPoolExecutor(max_workers=3) as executor:
		tickets_future = None
		prs_future = None
		open_future = None
		if include_tickets:
			tickets_future = executor.submit(fetch_tickets, clients.linear, date_range, log_fn)
		if include_prs:
			prs_future = executor.submit(
				pr_fetch.fetch_merged_prs,
				clients.github,
				config.github_username,
				date_range,
				secondary_client=clients.personal_github,
				sso_orgs=config.sso_orgs,
				log_fn=log_fn,
			)
			if include_open_prs:
				open_future = executor.submit(
					pr_fetch.fetch_open_prs,
					clients.github,
					config.github_username,
					log_fn=log_fn,
				)
		tickets = tickets_future.result() if tickets_future is not None else []
		prs = prs_future.result() if prs_future is not None else []
		open_prs = open_future.result() if open_future is not None else None
	if include_prs:
		log_github_usage(clients, log_fn)
	return report_builder.build_report(tickets, prs, period, open_prs=open_prs)


#============================================
def attach_narrative(
	report: Report,
	config: ReviewConfig,
	style: str = "review",
	fatal: bool = False,
	transport=None,
	log_fn=None,
) -> Report:
	"""
	Add a generated narrative, or keep the report unchanged on failure.

	Raises:
		SummaryUnavailable: only when fatal is true.
	"""
	if log_fn is not None:
		log_fn(f"Generating AI summary with {llm_transports.describe_transport(config)}...")
	try:
		if transport is None:
			transport = llm_transports.create_transport(config)
		narrative = summarizer.summarize_report(
			transport,
			report,
			style=style,
			max_tokens=config.llm_max_tokens,
		)
	except (SummaryUnavailable, ConfigurationError) as error:
		if fatal:
			if isinstance(error, SummaryUnavailable):
				raise
			raise SummaryUnavailable(str(error)) from error
		if log_fn is not None:
			log_fn(f"Warning: {error}; continuing without AI summary.")
		return report
	if log_fn is not None:
		log_fn("AI summary generated")
	return report.with_narrative(narrative)
