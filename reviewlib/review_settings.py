import os
from dataclasses import dataclass

import dotenv
import yaml

from reviewlib.errors import ConfigurationError


DEFAULT_LLM_PROVIDER = "gateway"
DEFAULT_GATEWAY_MODEL = "openai/gpt-4o"
DEFAULT_GATEWAY_BASE_URL = "https://ai-gateway.vercel.sh/v1"
DEFAULT_OLLAMA_MODEL = "llama3.1"
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_MAX_TOKENS = 2000
SUPPORTED_LLM_PROVIDERS = ("gateway", "ollama")


#============================================
@dataclass(frozen=True)
class ReviewConfig:
	"""
	Credentials and defaults resolved once at startup.
	"""
	linear_api_key: str = ""
	github_token: str = ""
	github_username: str = ""
	personal_github_token: str = ""
	sso_orgs: tuple[str, ...] = ()
	llm_provider: str = DEFAULT_LLM_PROVIDER
	llm_model: str = DEFAULT_GATEWAY_MODEL
	llm_base_url: str = DEFAULT_GATEWAY_BASE_URL
	llm_api_key: str = ""
	llm_max_tokens: int = DEFAULT_MAX_TOKENS
	notion_api_key: str = ""
	notion_page_id: str = ""
	settings_path: str = ""


#============================================
def get_repo_root() -> str:
	"""
	Return repository root based on this module location.
	"""
	module_dir = os.path.dirname(os.path.abspath(__file__))
	repo_root = os.path.dirname(module_dir)
	return repo_root


#============================================
def resolve_settings_path(path_text: str) -> str:
	"""
	Resolve settings path against cwd first, then repo root.
	"""
	if os.path.isabs(path_text):
		return path_text
	cwd_candidate = os.path.abspath(path_text)
	if os.path.isfile(cwd_candidate):
		return cwd_candidate
	repo_root = get_repo_root()
	repo_candidate = os.path.join(repo_root, path_text)
	return os.path.abspath(repo_candidate)


#============================================
def load_settings(path_text: str) -> tuple[dict, str]:
	"""
	Load YAML settings dict and return it with resolved path.
	"""
	resolved_path = resolve_settings_path(path_text)
	if not os.path.isfile(resolved_path):
		return {}, resolved_path
	with open(resolved_path, "r", encoding="utf-8") as handle:
		data = yaml.safe_load(handle.read())
	if data is None:
		return {}, resolved_path
	if not isinstance(data, dict):
		raise ConfigurationError(f"Settings file must contain a mapping: {resolved_path}")
	return data, resolved_path


#============================================
def get_nested_value(settings: dict, keys: list[str], default_value):
	"""
	Read nested mapping value by key path.
	"""
	current = settings
	for key in keys:
		if not isinstance(current, dict):
			return default_value
		if key not in current:
			return default_value
		current = current[key]
	return current


#============================================
def get_setting_str(settings: dict, keys: list[str], default_value: str) -> str:
	"""
	Read a string setting from nested path with fallback.
	"""
	value = get_nested_value(settings, keys, default_value)
	if value is None:
		return default_value
	return str(value).strip()


#============================================
def get_setting_int(settings: dict, keys: list[str], default_value: int) -> int:
	"""
	Read an integer setting from nested path with fallback.
	"""
	value = get_nested_value(settings, keys, default_value)
	if value is None:
		return default_value
	try:
		return int(value)
	except ValueError as error:
		raise ConfigurationError(
			f"Invalid integer for setting path {'.'.join(keys)}: {value}"
		) from error


#============================================
def get_setting_bool(settings: dict, keys: list[str], default_value: bool) -> bool:
	"""
	Read a boolean setting from nested path with fallback.
	"""
	value = get_nested_value(settings, keys, default_value)
	if isinstance(value, bool):
		return value
	if isinstance(value, str):
		text = value.strip().lower()
		if text in {"1", "true", "yes", "on"}:
			return True
		if text in {"0", "false", "no", "off"}:
			return False
		raise ConfigurationError(f"Invalid boolean for setting path {'.'.join(keys)}: {value}")
	if isinstance(value, int):
		return value != 0
	if value is None:
		return default_value
	raise ConfigurationError(f"Invalid boolean for setting path {'.'.join(keys)}: {value}")


#============================================
def get_setting_list(settings: dict, keys: list[str]) -> list[str]:
	"""
	Read a list of strings, accepting a comma-separated string too.
	"""
	value = get_nested_value(settings, keys, [])
	if value is None:
		return []
	if isinstance(value, str):
		return split_csv(value)
	if not isinstance(value, list):
		raise ConfigurationError(f"Invalid list for setting path {'.'.join(keys)}: {value}")
	return [str(item).strip() for item in value if str(item).strip()]


#============================================
def split_csv(text: str) -> list[str]:
	return [part.strip() for part in text.split(",") if part.strip()]


#============================================
def env_or_setting(env: dict, env_name: str, settings: dict, keys: list[str]) -> str:
	"""
	Environment value wins over the YAML value when set.
	"""
	value = (env.get(env_name, "") or "").strip()
	if value:
		return value
	return get_setting_str(settings, keys, "")


#============================================
def get_enabled_llm_provider(settings: dict) -> str:
	"""
	Resolve exactly one enabled LLM provider from settings.
	"""
	providers = get_nested_value(settings, ["llm", "providers"], {})
	if not isinstance(providers, dict):
		raise ConfigurationError("Invalid settings: llm.providers must be a mapping.")

	enabled = []
	for provider_name, provider_config in providers.items():
		if not isinstance(provider_config, dict):
			continue
		enabled_flag = get_setting_bool(provider_config, ["enabled"], False)
		if enabled_flag:
			enabled.append(provider_name)

	if len(enabled) > 1:
		raise ConfigurationError(
			"Only one LLM provider may be enabled in settings.yaml. "
			+ f"Enabled providers: {', '.join(enabled)}"
		)
	if not enabled:
		return DEFAULT_LLM_PROVIDER
	provider = enabled[0]
	if provider not in SUPPORTED_LLM_PROVIDERS:
		raise ConfigurationError(f"Unsupported LLM provider in settings: {provider}")
	return provider


#============================================
def get_llm_provider_model(settings: dict, provider_name: str) -> str:
	"""
	Read model for one provider from settings with per-provider default.
	"""
	model_value = get_setting_str(settings, ["llm", "providers", provider_name, "model"], "")
	if model_value:
		return model_value
	model_value = get_setting_str(settings, ["llm", "model"], "")
	if model_value:
		return model_value
	if provider_name == "ollama":
		return DEFAULT_OLLAMA_MODEL
	return DEFAULT_GATEWAY_MODEL


#============================================
def get_llm_base_url(settings: dict, provider_name: str) -> str:
	default_value = DEFAULT_GATEWAY_BASE_URL
	if provider_name == "ollama":
		default_value = DEFAULT_OLLAMA_BASE_URL
	value = get_setting_str(settings, ["llm", "providers", provider_name, "base_url"], "")
	return value or default_value


#============================================
def build_review_config(settings: dict, env: dict, settings_path: str = "") -> ReviewConfig:
	"""
	Combine YAML settings and environment values into one ReviewConfig.
	"""
	provider = get_enabled_llm_provider(settings)
	sso_text = (env.get("GITHUB_SSO_ORGS", "") or "").strip()
	if sso_text:
		sso_orgs = split_csv(sso_text)
	else:
		sso_orgs = get_setting_list(settings, ["github", "sso_orgs"])
	max_tokens = get_setting_int(settings, ["llm", "max_tokens"], DEFAULT_MAX_TOKENS)
	if max_tokens < 1:
		raise ConfigurationError("llm.max_tokens must be >= 1")
	llm_api_key = ""
	if provider == "gateway":
		llm_api_key = env_or_setting(
			env, "AI_GATEWAY_API_KEY", settings, ["llm", "providers", "gateway", "api_key"],
		)
	return ReviewConfig(
		linear_api_key=env_or_setting(env, "LINEAR_API_KEY", settings, ["linear", "api_key"]),
		github_token=env_or_setting(env, "GITHUB_TOKEN", settings, ["github", "token"]),
		github_username=env_or_setting(env, "GITHUB_USERNAME", settings, ["github", "username"]),
		personal_github_token=env_or_setting(
			env, "PERSONAL_GITHUB_TOKEN", settings, ["github", "personal_token"],
		),
		sso_orgs=tuple(org.lower() for org in sso_orgs),
		llm_provider=provider,
		llm_model=get_llm_provider_model(settings, provider),
		llm_base_url=get_llm_base_url(settings, provider),
		llm_api_key=llm_api_key,
		llm_max_tokens=max_tokens,
		notion_api_key=env_or_setting(env, "NOTION_API_KEY", settings, ["notion", "api_key"]),
		notion_page_id=env_or_setting(env, "NOTION_PAGE_ID", settings, ["notion", "page_id"]),
		settings_path=settings_path,
	)


#============================================
def load_review_config(settings_path_text: str, env_file: str = ".env") -> ReviewConfig:
	"""
	Load .env into the environment, read settings.yaml, build the config.
	"""
	dotenv.load_dotenv(env_file)
	settings, settings_path = load_settings(settings_path_text)
	return build_review_config(settings, dict(os.environ), settings_path=settings_path)


#============================================
def require_linear(config: ReviewConfig) -> None:
	if not config.linear_api_key:
		raise ConfigurationError("Missing LINEAR_API_KEY in .env file")


#============================================
def require_github(config: ReviewConfig) -> None:
	if not config.github_token:
		raise ConfigurationError("Missing GITHUB_TOKEN in .env file")
	if not config.github_username:
		raise ConfigurationError("Missing GITHUB_USERNAME in .env file")


#============================================
def require_llm(config: ReviewConfig) -> None:
	if config.llm_provider == "gateway" and not config.llm_api_key:
		raise ConfigurationError("Missing AI_GATEWAY_API_KEY in .env file")


#============================================
def require_notion(config: ReviewConfig) -> None:
	if not config.notion_api_key:
		raise ConfigurationError("Missing NOTION_API_KEY in .env file")
	if not config.notion_page_id:
		raise ConfigurationError("Missing NOTION_PAGE_ID in .env file")
