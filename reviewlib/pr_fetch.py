"""Merged and open pull request collection from GitHub search.

Search pages are read one at a time. Each page's hits are enriched with
line-change stats through per-PR detail lookups that fan out on a thread
pool, and the whole page is collected before the next page is requested.
When a secondary token is configured, its results are merged after the
primary pass, skipping SSO-restricted organizations.
"""

import concurrent.futures
from datetime import datetime

from reviewlib import date_ranges
from reviewlib.errors import UpstreamItemError
from reviewlib.models import DateRange
from reviewlib.models import PullRequest
from reviewlib.models import sort_keeping_missing


PAGE_SIZE = 100
# GitHub search never returns results past the first 1000 hits
SEARCH_RESULT_CAP = 1000
DETAIL_WORKERS = 8


#============================================
def build_merged_query(username: str, date_range: DateRange) -> str:
	"""
	Search qualifiers for PRs authored by the user and merged in range.
	"""
	start_text = date_ranges.search_date_text(date_range.start)
	end_text = date_ranges.search_date_text(date_range.end)
	return f"is:pr author:{username} is:merged merged:{start_text}..{end_text}"


#============================================
def build_open_query(username: str) -> str:
	return f"is:pr author:{username} is:open"


#============================================
def parse_timestamp(value) -> datetime | None:
	"""
	Parse GitHub ISO timestamps; pass datetimes through.
	"""
	if value is None or value == "":
		return None
	if isinstance(value, datetime):
		return value
	return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


#============================================
def split_repository_url(repository_url: str) -> tuple[str, str]:
	"""
	Return (owner, repo) from an API repository_url.
	"""
	parts = repository_url.rstrip("/").split("/")
	return parts[-2], parts[-1]


#============================================
def item_owner(item: dict) -> str:
	owner, _ = split_repository_url(item.get("repository_url", ""))
	return owner


#============================================
def fetch_item_stats(client, repo_full_name: str, number: int) -> dict:
	"""
	Detail lookup for one search hit, wrapped as an item-level failure.
	"""
	try:
		return client.get_pull_stats(repo_full_name, number)
	except Exception as error:
		raise UpstreamItemError(
			f"Could not load stats for {repo_full_name}#{number}: {error}"
		) from error


#============================================
def build_pull_request(item: dict, stats: dict | None, is_open: bool) -> PullRequest:
	"""
	Normalize one search hit plus optional stats into a PullRequest.
	"""
	owner, repo = split_repository_url(item.get("repository_url", ""))
	stats = stats or {}
	merged_at = None
	if not is_open:
		merged_at = parse_timestamp(stats.get("merged_at")) or parse_timestamp(item.get("closed_at"))
	return PullRequest(
		title=item.get("title") or "",
		url=item.get("html_url") or "",
		repo=f"{owner}/{repo}",
		additions=int(stats.get("additions", 0) or 0),
		deletions=int(stats.get("deletions", 0) or 0),
		created_at=parse_timestamp(item.get("created_at")),
		merged_at=merged_at,
		body=item.get("body") or None,
		is_open=is_open,
	)


#============================================
def enrich_page(client, items: list[dict], is_open: bool, log_fn=None) -> list[PullRequest]:
	"""
	Look up stats for every hit on one page and wait for all of them.

	A failed lookup degrades that record to zero additions and deletions.
	"""
	if not items:
		return []
	workers = min(DETAIL_WORKERS, len(items))
	prs = []
	with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
		futures = []
		for item in items:
			owner, repo = split_repository_url(item.get("repository_url", ""))
			futures.append(
				executor.submit(fetch_item_stats, client, f"{owner}/{repo}", item.get("number"))
			)
		for item, future in zip(items, futures):
			try:
				stats = future.result()
			except UpstreamItemError as error:
				if log_fn is not None:
					log_fn(f"Warning: {error}; counting 0 lines for this PR.")
				stats = None
			prs.append(build_pull_request(item, stats, is_open))
	return prs


#============================================
def should_fetch_next_page(page: int, page_item_count: int, total_count: int) -> bool:
	"""
	Continue only after a full page while fetched count is below the total.
	"""
	return page_item_count == PAGE_SIZE and page * PAGE_SIZE < total_count


#============================================
def fetch_search_results(
	client,
	query: str,
	sort: str = "updated",
	skip_orgs=(),
	is_open: bool = False,
	log_fn=None,
) -> list[PullRequest]:
	"""
	Page through one search query and return enriched PullRequests.

	Args:
		client: GitHubClient-like object.
		query: search qualifier string.
		sort: search sort field.
		skip_orgs: owners whose hits are dropped before enrichment.
		is_open: mark records as open PRs.
		log_fn: optional progress logger.

	Returns:
		PullRequest list in search order.
	"""
	skip_set = {org.lower() for org in skip_orgs}
	prs: list[PullRequest] = []
	total_count = None
	page = 1
	has_more = True
	while has_more:
		data = client.search_pull_requests(query, page, PAGE_SIZE, sort=sort, order="desc")
		items = data.get("items") or []
		if total_count is None:
			# the first page's total is kept for the rest of the scan
			reported_total = int(data.get("total_count", 0) or 0)
			total_count = min(reported_total, SEARCH_RESULT_CAP)
			if reported_total > SEARCH_RESULT_CAP and log_fn is not None:
				log_fn(
					f"Warning: search reported {reported_total} results; "
					+ f"results capped at the first {SEARCH_RESULT_CAP}."
				)
		kept_items = []
		for item in items:
			if item_owner(item).lower() in skip_set:
				continue
			kept_items.append(item)
		skipped = len(items) - len(kept_items)
		if skipped and log_fn is not None:
			log_fn(f"Skipping {skipped} PR(s) from SSO-restricted organizations.")
		prs.extend(enrich_page(client, kept_items, is_open, log_fn=log_fn))
		has_more = should_fetch_next_page(page, len(items), total_count)
		page += 1
	return prs


#============================================
def merge_pull_requests(primary: list[PullRequest], secondary: list[PullRequest]) -> list[PullRequest]:
	"""
	Union two result sets by url, keeping the primary record on conflict.
	"""
	merged: list[PullRequest] = []
	seen_urls: set[str] = set()
	for pr in list(primary) + list(secondary):
		if pr.url in seen_urls:
			continue
		seen_urls.add(pr.url)
		merged.append(pr)
	return merged


#============================================
def sort_by_merged_desc(prs: list[PullRequest]) -> list[PullRequest]:
	"""
	Order by merge time, newest first.

	Records without merged_at keep their positions; timestamped records are
	stably sorted among the remaining slots.
	"""
	return sort_keeping_missing(prs, lambda pr: pr.merged_at, reverse=True)


#============================================
def fetch_merged_prs(
	primary_client,
	username: str,
	date_range: DateRange,
	secondary_client=None,
	sso_orgs=(),
	log_fn=None,
) -> list[PullRequest]:
	"""
	Merged PRs for the range, combining primary and secondary tokens.

	The primary token is queried without restriction first. A secondary
	token that differs from the primary one is queried next, skipping the
	SSO-restricted organizations, and only adds urls not already seen.
	"""
	if log_fn is not None:
		log_fn("Fetching GitHub PRs...")
	query = build_merged_query(username, date_range)
	prs = fetch_search_results(primary_client, query, sort="updated", log_fn=log_fn)
	use_secondary = (
		secondary_client is not None
		and secondary_client.token
		and secondary_client.token != primary_client.token
	)
	if use_secondary:
		if log_fn is not None:
			log_fn("Fetching GitHub PRs with personal token...")
		secondary_prs = fetch_search_results(
			secondary_client,
			query,
			sort="updated",
			skip_orgs=sso_orgs,
			log_fn=log_fn,
		)
		prs = merge_pull_requests(prs, secondary_prs)
	else:
		prs = merge_pull_requests(prs, [])
	prs = sort_by_merged_desc(prs)
	if log_fn is not None:
		log_fn(f"Found {len(prs)} merged PRs")
	return prs


#============================================
def fetch_open_prs(client, username: str, log_fn=None) -> list[PullRequest]:
	"""
	Currently open PRs authored by the user.
	"""
	if log_fn is not None:
		log_fn("Fetching open GitHub PRs...")
	prs = fetch_search_results(
		client,
		build_open_query(username),
		sort="created",
		is_open=True,
		log_fn=log_fn,
	)
	if log_fn is not None:
		log_fn(f"Found {len(prs)} open PRs")
	return prs
