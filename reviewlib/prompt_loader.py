import os
import re


_PROMPT_CACHE = {}
PROMPT_TOKEN_RE = re.compile(r"\{\{(\w+)\}\}")


#============================================
def get_prompt_root() -> str:
	"""
	Directory holding prompt templates next to this module.
	"""
	module_dir = os.path.dirname(os.path.abspath(__file__))
	return os.path.join(module_dir, "prompts")


#============================================
def load_prompt(prompt_name: str) -> str:
	"""
	Load a prompt template from reviewlib/prompts/.
	"""
	if not prompt_name:
		raise ValueError("prompt_name is required")
	path = os.path.join(get_prompt_root(), prompt_name)
	if path in _PROMPT_CACHE:
		return _PROMPT_CACHE[path]
	if not os.path.exists(path):
		raise FileNotFoundError(f"Prompt file not found: {path}")
	with open(path, "r", encoding="utf-8") as handle:
		text = handle.read()
	_PROMPT_CACHE[path] = text
	return text


#============================================
def render_prompt(template: str, values: dict[str, str]) -> str:
	"""
	Replace {{token}} placeholders with supplied values.
	"""
	if not template:
		return ""

	def replace_token(match) -> str:
		key = match.group(1)
		if key not in values:
			return match.group(0)
		value = values[key]
		return value if value is not None else ""

	# one pass over the template so substituted text is never re-expanded
	return PROMPT_TOKEN_RE.sub(replace_token, template)
