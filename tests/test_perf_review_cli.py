import os

import pytest
import requests

import perf_review
from reviewlib import markdown_export
from reviewlib import report_builder
from reviewlib import review_pipeline
from reviewlib.models import PullRequest
from reviewlib.models import Ticket


ENV_NAMES = (
	"LINEAR_API_KEY",
	"GITHUB_TOKEN",
	"GITHUB_USERNAME",
	"PERSONAL_GITHUB_TOKEN",
	"GITHUB_SSO_ORGS",
	"AI_GATEWAY_API_KEY",
	"NOTION_API_KEY",
	"NOTION_PAGE_ID",
)


#============================================
@pytest.fixture
def clean_env(tmp_path, monkeypatch):
	"""
	Run each CLI test in an empty directory with no credentials set.
	"""
	for name in ENV_NAMES:
		monkeypatch.delenv(name, raising=False)
	monkeypatch.chdir(tmp_path)
	return tmp_path


#============================================
class FakeTransport:
	def __init__(self):
		self.prompts = []

	def generate(self, prompt, *, purpose, max_tokens):
		self.prompts.append(prompt)
		return "### Key Themes\n- Shipped the cache"


#============================================
def make_report(period: str):
	tickets = [Ticket("ENG-1", "Fix login", "https://linear.app/acme/issue/ENG-1", "Done")]
	prs = [PullRequest("Add cache", "https://github.com/acme/api/pull/1", "acme/api", additions=10, deletions=2)]
	return report_builder.build_report(tickets, prs, period)


#============================================
def test_parse_args_sync_defaults() -> None:
	args = perf_review.parse_args(["sync"])
	assert args.days is None
	assert args.file is False
	assert args.ai is True
	assert args.notion is False


#============================================
def test_parse_args_sync_toggles() -> None:
	args = perf_review.parse_args(["sync", "-d", "14", "--file", "--no-ai"])
	assert args.days == 14
	assert args.file is True
	assert args.ai is False


#============================================
def test_parse_args_source_flags_are_exclusive() -> None:
	with pytest.raises(SystemExit):
		perf_review.parse_args(["generate", "-s", "2026-01-01", "-e", "2026-03-31", "--linear-only", "--github-only"])


#============================================
def test_generate_requires_dates() -> None:
	with pytest.raises(SystemExit):
		perf_review.parse_args(["generate", "-s", "2026-01-01"])


#============================================
def test_missing_credentials_exit_nonzero(clean_env) -> None:
	assert perf_review.main(["sync"]) == 1
	assert perf_review.main(["generate", "-s", "2026-01-01", "-e", "2026-03-31"]) == 1


#============================================
def test_invalid_date_exits_nonzero(clean_env, monkeypatch) -> None:
	monkeypatch.setenv("LINEAR_API_KEY", "lin")
	assert perf_review.main(["generate", "-s", "2026-13-01", "-e", "2026-03-31", "--linear-only"]) == 1


#============================================
def test_generate_writes_markdown(clean_env, monkeypatch) -> None:
	monkeypatch.setenv("LINEAR_API_KEY", "lin")
	monkeypatch.setenv("GITHUB_TOKEN", "ghp")
	monkeypatch.setenv("GITHUB_USERNAME", "octocat")
	seen = {}

	def fake_collect(config, date_range, period, **kwargs):
		seen["period"] = period
		seen["kwargs"] = kwargs
		return make_report(period)

	monkeypatch.setattr(review_pipeline, "collect_report", fake_collect)
	assert perf_review.main(["generate", "-s", "2026-01-01", "-e", "2026-03-31"]) == 0
	assert seen["period"] == "Jan 2026 - Mar 2026"
	assert seen["kwargs"]["include_tickets"] and seen["kwargs"]["include_prs"]
	output = clean_env / "perf-review-jan-2026---mar-2026.md"
	text = output.read_text(encoding="utf-8")
	assert "| Lines Added | +10 |" in text
	assert markdown_export.NARRATIVE_HEADING not in text


#============================================
def test_add_ai_missing_file(clean_env) -> None:
	assert perf_review.main(["add-ai", "nope.md"]) == 1


#============================================
def test_add_ai_refuses_existing_narrative(clean_env, monkeypatch) -> None:
	monkeypatch.setenv("AI_GATEWAY_API_KEY", "gw")
	path = clean_env / "review.md"
	original = markdown_export.render_review_markdown(make_report("p").with_narrative("Already here."))
	path.write_text(original, encoding="utf-8")
	calls = []
	monkeypatch.setattr(perf_review.llm_transports, "create_transport", lambda config: calls.append(config))
	assert perf_review.main(["add-ai", str(path)]) == 1
	assert calls == []
	assert path.read_text(encoding="utf-8") == original


#============================================
def test_add_ai_inserts_narrative(clean_env, monkeypatch) -> None:
	monkeypatch.setenv("AI_GATEWAY_API_KEY", "gw")
	path = clean_env / "review.md"
	path.write_text(markdown_export.render_review_markdown(make_report("p")), encoding="utf-8")
	transport = FakeTransport()
	monkeypatch.setattr(perf_review.llm_transports, "create_transport", lambda config: transport)
	assert perf_review.main(["add-ai", str(path)]) == 0
	text = path.read_text(encoding="utf-8")
	assert markdown_export.NARRATIVE_HEADING in text
	assert "- Shipped the cache" in text
	assert "[Add cache](https://github.com/acme/api/pull/1)" in transport.prompts[0]


#============================================
def test_sync_to_file_without_ai(clean_env, monkeypatch) -> None:
	monkeypatch.setenv("LINEAR_API_KEY", "lin")
	monkeypatch.setenv("GITHUB_TOKEN", "ghp")
	monkeypatch.setenv("GITHUB_USERNAME", "octocat")
	monkeypatch.setattr(
		review_pipeline,
		"collect_report",
		lambda config, date_range, period, **kwargs: make_report(period),
	)

	def fail_attach(*args, **kwargs):
		raise AssertionError("narrative should not be requested")

	monkeypatch.setattr(review_pipeline, "attach_narrative", fail_attach)
	assert perf_review.main(["sync", "-d", "7", "--file", "--no-ai", "-o", "week.md"]) == 0
	text = (clean_env / "week.md").read_text(encoding="utf-8")
	assert text.startswith("# 📋 Team Sync Update - ")
	assert os.path.isfile(clean_env / "week.md")


#============================================
def test_network_outage_on_primary_fetch_exits_nonzero(clean_env, monkeypatch) -> None:
	"""
	A transport failure on the primary fetch ends the run with exit code 1.
	"""
	monkeypatch.setenv("LINEAR_API_KEY", "lin")
	monkeypatch.setenv("GITHUB_TOKEN", "ghp")
	monkeypatch.setenv("GITHUB_USERNAME", "octocat")

	def outage(*args, **kwargs):
		raise requests.exceptions.ConnectionError("Failed to establish a new connection")

	monkeypatch.setattr(review_pipeline, "collect_report", outage)
	assert perf_review.main(["generate", "-s", "2026-01-01", "-e", "2026-01-31"]) == 1
	assert not os.path.exists(clean_env / "perf-review-jan-2026---jan-2026.md")
