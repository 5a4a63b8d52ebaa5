from datetime import datetime

import rich.console


RICH_CONSOLE = rich.console.Console()
LOG_PREFIX = "perf_review"


#============================================
def pick_style(message: str) -> str:
	"""
	Choose a console style from message keywords.
	"""
	lower = message.lower()
	if ("failed" in lower) or ("error" in lower) or ("missing" in lower):
		return "bold red"
	if ("warning" in lower) or ("skipping" in lower) or ("capped" in lower) or ("rate limit" in lower):
		return "yellow"
	if ("wrote " in lower) or ("found " in lower) or ("created " in lower) or ("added " in lower):
		return "green"
	return "cyan"


#============================================
def log_step(message: str) -> None:
	"""
	Print one timestamped progress line.
	"""
	now_text = datetime.now().strftime("%H:%M:%S")
	line = f"[{LOG_PREFIX} {now_text}] {message}"
	RICH_CONSOLE.print(line, style=pick_style(message), markup=False, highlight=False)


#============================================
def print_document(text: str) -> None:
	"""
	Print rendered document text without rich markup processing.
	"""
	RICH_CONSOLE.print(text, markup=False, highlight=False)
