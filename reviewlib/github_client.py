import random
import threading
import time
from datetime import datetime
from datetime import timezone

from reviewlib.errors import RateLimitError


SEARCH_ISSUES_PATH = "/search/issues"


#============================================
class GitHubClient:
	"""
	Thin PyGithub wrapper for pull request search and detail lookups.
	"""

	def __init__(self, token: str, log_fn=None, jitter_seconds: float = 0.25):
		self.token = token
		self.log_fn = log_fn
		self.jitter_seconds = jitter_seconds
		self._rate_check_count = 0
		self._low_remaining_threshold = 5
		self._max_proactive_sleep_seconds = 10
		self._api_call_count = 0
		self._api_calls_by_context: dict[str, int] = {}
		self._counter_lock = threading.Lock()
		try:
			from github import Auth
			from github import Github
			from github.GithubException import GithubException
		except ModuleNotFoundError as error:
			raise RuntimeError(
				"Missing dependency: PyGithub. Install it with pip install PyGithub."
			) from error
		self._github_exception_class = GithubException
		self.client = Github(auth=Auth.Token(token), retry=None)

	#============================================
	def log(self, message: str) -> None:
		"""
		Emit one log line when logger is configured.
		"""
		if self.log_fn is not None:
			self.log_fn(message)

	#============================================
	def record_api_call(self, context: str) -> None:
		"""
		Track one outbound GitHub API call.
		"""
		with self._counter_lock:
			self._api_call_count += 1
			if context not in self._api_calls_by_context:
				self._api_calls_by_context[context] = 0
			self._api_calls_by_context[context] += 1

	#============================================
	def api_usage_snapshot(self) -> dict:
		"""
		Return API call counters for reporting.
		"""
		with self._counter_lock:
			return {
				"api_call_count": self._api_call_count,
				"api_calls_by_context": dict(self._api_calls_by_context),
			}

	#============================================
	def parse_rate_limit_reset(self, reset_value) -> datetime:
		"""
		Normalize PyGithub reset values to timezone-aware UTC datetime.
		"""
		if isinstance(reset_value, datetime):
			if reset_value.tzinfo is None:
				return reset_value.replace(tzinfo=timezone.utc)
			return reset_value.astimezone(timezone.utc)
		if isinstance(reset_value, (int, float)):
			return datetime.fromtimestamp(float(reset_value), tz=timezone.utc)
		if isinstance(reset_value, str):
			return datetime.fromisoformat(reset_value.replace("Z", "+00:00"))
		raise RuntimeError(f"Unsupported rate-limit reset value: {reset_value!r}")

	#============================================
	def get_search_rate_limit_snapshot(self) -> tuple[int, datetime]:
		"""
		Read search rate-limit remaining/reset across PyGithub versions.
		"""
		self.record_api_call("GET /rate_limit")
		overview = self.client.get_rate_limit()
		rate_limit = getattr(overview, "search", None)
		if rate_limit is None:
			resources = getattr(overview, "resources", None)
			if isinstance(resources, dict):
				rate_limit = resources.get("search")
			elif resources is not None:
				rate_limit = getattr(resources, "search", None)
		if rate_limit is None:
			raise RuntimeError("Rate limit data does not expose search resource fields.")
		remaining = int(getattr(rate_limit, "remaining"))
		reset_time = self.parse_rate_limit_reset(getattr(rate_limit, "reset"))
		return remaining, reset_time

	#============================================
	def maybe_wait_for_rate_limit(self, context: str, force: bool = False) -> None:
		"""
		Sleep until reset when the search rate limit is very low.
		"""
		with self._counter_lock:
			self._rate_check_count += 1
			check_count = self._rate_check_count
		if (not force) and (check_count % 5 != 0):
			return
		try:
			remaining, reset_time = self.get_search_rate_limit_snapshot()
		except (RuntimeError, self._github_exception_class) as error:
			self.log(f"Rate limit check ({context}) unavailable: {error}")
			return
		if remaining > self._low_remaining_threshold:
			return
		sleep_seconds = int((reset_time - datetime.now(timezone.utc)).total_seconds()) + 1
		if sleep_seconds <= 0:
			return
		if sleep_seconds > self._max_proactive_sleep_seconds:
			self.log(
				"Rate limit is low, but proactive wait exceeds cap "
				+ f"({sleep_seconds}s > {self._max_proactive_sleep_seconds}s); continuing."
			)
			return
		self.log(f"Rate limit is low ({remaining}); sleeping {sleep_seconds}s until reset.")
		time.sleep(sleep_seconds)

	#============================================
	def sleep_request_jitter(self) -> None:
		"""
		Add small random jitter before API calls.
		"""
		if self.jitter_seconds <= 0:
			return
		time.sleep(random.random() * self.jitter_seconds)

	#============================================
	def call_api(self, context: str, call_fn):
		"""
		Run one API call with jitter and rate-limit error translation.
		"""
		self.sleep_request_jitter()
		try:
			self.record_api_call(context)
			return call_fn()
		except self._github_exception_class as error:
			self.raise_from_github_error(error, context)

	#============================================
	def raise_from_github_error(self, error: Exception, context: str) -> None:
		"""
		Raise a human-readable rate-limit error or re-raise original.
		"""
		status = getattr(error, "status", None)
		message = str(getattr(error, "data", "") or error).lower()
		if status not in (403, 429) or "rate limit" not in message:
			raise error
		raise RateLimitError(
			f"GitHub API rate limit exceeded while {context}. "
			+ "Wait for the limit to reset and rerun."
		) from error

	#============================================
	def search_pull_requests(
		self,
		query: str,
		page: int,
		per_page: int,
		sort: str = "updated",
		order: str = "desc",
	) -> dict:
		"""
		Fetch one page of issue search results.

		Args:
			query: GitHub search qualifier string.
			page: 1-based page number.
			per_page: page size (GitHub caps this at 100).
			sort: search sort field.
			order: asc or desc.

		Returns:
			Raw payload dict with total_count and items.
		"""
		self.maybe_wait_for_rate_limit(f"search page {page}", force=(page == 1))
		parameters = {
			"q": query,
			"page": page,
			"per_page": per_page,
			"sort": sort,
			"order": order,
		}
		_, data = self.call_api(
			f"GET {SEARCH_ISSUES_PATH}",
			lambda: self.client.requester.requestJsonAndCheck(
				"GET",
				SEARCH_ISSUES_PATH,
				parameters=parameters,
			),
		)
		if not isinstance(data, dict):
			raise RuntimeError(f"Unexpected search payload for query: {query}")
		return data

	#============================================
	def get_pull_stats(self, repo_full_name: str, number: int) -> dict:
		"""
		Fetch line-change statistics for one pull request.
		"""
		pull = self.call_api(
			f"GET /repos/{repo_full_name}/pulls",
			lambda: self.client.get_repo(repo_full_name, lazy=True).get_pull(number),
		)
		return {
			"additions": int(pull.additions or 0),
			"deletions": int(pull.deletions or 0),
			"merged_at": pull.merged_at,
		}
