#!/usr/bin/env python3
import argparse
import os
import sys

import requests
from github import GithubException

from reviewlib import date_ranges
from reviewlib import llm_transports
from reviewlib import markdown_export
from reviewlib import notion_export
from reviewlib import report_builder
from reviewlib import review_pipeline
from reviewlib import review_settings
from reviewlib import summarizer
from reviewlib.console_log import log_step
from reviewlib.console_log import print_document
from reviewlib.errors import ReviewError


#============================================
def add_settings_argument(parser: argparse.ArgumentParser) -> None:
	parser.add_argument(
		"--settings",
		default="settings.yaml",
		help="YAML settings path (environment and .env values take precedence).",
	)


#============================================
def add_toggle_argument(parser: argparse.ArgumentParser, name: str, default: bool, help_on: str, help_off: str) -> None:
	"""
	Add a --name / --no-name flag pair sharing one destination.
	"""
	dest = name.replace("-", "_")
	group = parser.add_mutually_exclusive_group()
	group.add_argument(f"--{name}", dest=dest, action="store_true", help=help_on)
	group.add_argument(f"--no-{name}", dest=dest, action="store_false", help=help_off)
	parser.set_defaults(**{dest: default})


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(
		prog="perf-review",
		description="Aggregate Linear tickets & GitHub PRs for performance reviews.",
	)
	subparsers = parser.add_subparsers(dest="command", required=True)

	generate = subparsers.add_parser(
		"generate",
		help="Fetch data and generate a performance review document.",
	)
	generate.add_argument("-s", "--start", required=True, help="Start date (YYYY-MM-DD).")
	generate.add_argument("-e", "--end", required=True, help="End date (YYYY-MM-DD).")
	generate.add_argument(
		"-o",
		"--output",
		default="",
		help="Output filename (default: perf-review-<period>.md).",
	)
	source_group = generate.add_mutually_exclusive_group()
	source_group.add_argument("--linear-only", action="store_true", help="Only fetch Linear tickets.")
	source_group.add_argument("--github-only", action="store_true", help="Only fetch GitHub PRs.")
	generate.add_argument(
		"--notion",
		action="store_true",
		help="Create a Notion page instead of a markdown file.",
	)
	generate.add_argument(
		"--ai",
		action="store_true",
		help="Include an AI-generated accomplishments section.",
	)
	add_settings_argument(generate)

	add_ai = subparsers.add_parser(
		"add-ai",
		help="Add an AI-generated summary to an existing markdown file.",
	)
	add_ai.add_argument("file", help="Markdown file produced by generate.")
	add_settings_argument(add_ai)

	sync = subparsers.add_parser(
		"sync",
		help="Summarize recent work for a team sync (default: this Monday-Sunday week).",
	)
	sync.add_argument(
		"-d",
		"--days",
		type=int,
		default=None,
		help="Cover the past N days instead of the current week.",
	)
	sync.add_argument(
		"-o",
		"--output",
		default="",
		help="Output filename when writing a file (default: sync-<date>.md).",
	)
	add_toggle_argument(sync, "file", False, "Write the update to a file.", "Print the update to the console (default).")
	add_toggle_argument(sync, "ai", True, "Add an AI summary (default).", "Skip the AI summary.")
	sync.add_argument(
		"--notion",
		action="store_true",
		help="Append the update as a toggle under this year's section in Notion.",
	)
	add_settings_argument(sync)

	args = parser.parse_args(argv)
	return args


#============================================
def log_recap(report, output_label: str) -> None:
	log_step("Summary:")
	for line in report_builder.format_console_summary(report):
		log_step(f"  • {line}")
	log_step(f"Output: {output_label}")


#============================================
def run_generate(args: argparse.Namespace, config: review_settings.ReviewConfig) -> int:
	"""
	Fetch the explicit range and write a review document.
	"""
	include_tickets = not args.github_only
	include_prs = not args.linear_only
	if include_tickets:
		review_settings.require_linear(config)
	if include_prs:
		review_settings.require_github(config)
	if args.notion:
		review_settings.require_notion(config)
	date_range = date_ranges.explicit_range(args.start, args.end)
	period = date_ranges.month_span_label(date_range)
	log_step(
		f"Period: {date_range.start.strftime('%Y-%m-%d')} - {date_range.display_end.strftime('%Y-%m-%d')}"
	)

	report = review_pipeline.collect_report(
		config,
		date_range,
		period,
		include_tickets=include_tickets,
		include_prs=include_prs,
		log_fn=log_step,
	)
	if args.ai:
		report = review_pipeline.attach_narrative(report, config, style="review", log_fn=log_step)

	if args.notion:
		client = notion_export.NotionClient(config.notion_api_key, log_fn=log_step)
		output_label = notion_export.export_review_to_notion(client, report, config.notion_page_id)
	else:
		output_path = args.output or markdown_export.default_review_filename(period)
		output_label = markdown_export.write_markdown(
			output_path,
			markdown_export.render_review_markdown(report),
		)
		log_step(f"Wrote {output_label}")
	log_recap(report, output_label)
	return 0


#============================================
def run_add_ai(args: argparse.Namespace, config: review_settings.ReviewConfig) -> int:
	"""
	Insert a narrative into an existing review document.
	"""
	if not os.path.isfile(args.file):
		log_step(f"File not found: {args.file}")
		return 1
	review_settings.require_llm(config)
	log_step(f"Reading {args.file}...")
	content = markdown_export.read_markdown(args.file)
	if markdown_export.has_narrative(content):
		log_step("Warning: file already has an AI summary. Remove it first to regenerate.")
		return 1
	log_step(f"Generating AI summary from existing file with {llm_transports.describe_transport(config)}...")
	transport = llm_transports.create_transport(config)
	narrative = summarizer.summarize_markdown(transport, content, max_tokens=config.llm_max_tokens)
	updated = markdown_export.insert_narrative(content, narrative)
	markdown_export.write_markdown(args.file, updated)
	log_step(f"Added AI summary to {args.file}")
	return 0


#============================================
def run_sync(args: argparse.Namespace, config: review_settings.ReviewConfig) -> int:
	"""
	Collect the sync window and print, write, or export the update.
	"""
	review_settings.require_linear(config)
	review_settings.require_github(config)
	if args.notion:
		review_settings.require_notion(config)
	if args.days is not None:
		date_range = date_ranges.past_n_days(args.days)
	else:
		date_range = date_ranges.current_week_monday_to_sunday()
	period = date_ranges.day_span_label(date_range)
	log_step(f"Period: {period}")

	report = review_pipeline.collect_report(
		config,
		date_range,
		period,
		include_open_prs=True,
		log_fn=log_step,
	)
	if args.ai:
		report = review_pipeline.attach_narrative(report, config, style="sync", log_fn=log_step)

	if args.notion:
		client = notion_export.NotionClient(config.notion_api_key, log_fn=log_step)
		output_label = notion_export.export_sync_to_notion(client, report, config.notion_page_id)
	elif args.file:
		output_path = args.output or markdown_export.default_sync_filename()
		output_label = markdown_export.write_markdown(output_path, markdown_export.render_sync_markdown(report))
		log_step(f"Wrote {output_label}")
	else:
		print_document(markdown_export.render_sync_markdown(report))
		output_label = "console"
	log_recap(report, output_label)
	return 0


COMMANDS = {
	"generate": run_generate,
	"add-ai": run_add_ai,
	"sync": run_sync,
}


#============================================
def main(argv: list[str] | None = None) -> int:
	"""
	Run one perf-review command and return the process exit code.
	"""
	args = parse_args(argv)
	try:
		config = review_settings.load_review_config(args.settings)
		return COMMANDS[args.command](args, config)
	except ReviewError as error:
		log_step(f"Error: {error}")
		return 1
	except GithubException as error:
		log_step(f"GitHub request failed: {error}")
		return 1
	except requests.RequestException as error:
		log_step(f"Network request failed: {error}")
		return 1


if __name__ == "__main__":
	sys.exit(main())
