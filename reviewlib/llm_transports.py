"""
Text-generation transports for narrative summaries.
"""

import requests

from reviewlib.errors import ConfigurationError
from reviewlib.review_settings import ReviewConfig


REQUEST_TIMEOUT_SECONDS = 120


#============================================
class TransportUnavailableError(RuntimeError):
	"""
	Raised when a transport cannot reach its service or returns nothing.
	"""


#============================================
def post_json(url: str, payload: dict, headers: dict[str, str], service_name: str) -> dict:
	"""
	POST a JSON payload and return the decoded JSON object.
	"""
	try:
		response = requests.post(url, json=payload, headers=headers, timeout=REQUEST_TIMEOUT_SECONDS)
	except requests.RequestException as error:
		raise TransportUnavailableError(f"{service_name} is unreachable: {error}") from error
	if response.status_code >= 400:
		raise TransportUnavailableError(
			f"{service_name} error: status {response.status_code}: {response.text[:300]}"
		)
	try:
		parsed = response.json()
	except ValueError as error:
		raise TransportUnavailableError(f"{service_name} returned invalid JSON") from error
	if not isinstance(parsed, dict):
		raise TransportUnavailableError(f"{service_name} returned an unexpected payload")
	return parsed


#============================================
class GatewayTransport:
	"""
	Hosted OpenAI-compatible chat completions endpoint.
	"""
	name = "AI Gateway"

	def __init__(self, api_key: str, model: str, base_url: str, system_message: str = "") -> None:
		self.api_key = api_key
		self.model = model
		self.base_url = base_url.rstrip("/")
		self.system_message = system_message

	def _build_messages(self, prompt: str) -> list[dict[str, str]]:
		messages: list[dict[str, str]] = []
		if self.system_message:
			messages.append({"role": "system", "content": self.system_message})
		messages.append({"role": "user", "content": prompt})
		return messages

	def generate(self, prompt: str, *, purpose: str, max_tokens: int) -> str:
		payload = {
			"model": self.model,
			"messages": self._build_messages(prompt),
			"max_tokens": max_tokens,
		}
		headers = {
			"Authorization": f"Bearer {self.api_key}",
			"Content-Type": "application/json",
		}
		parsed = post_json(f"{self.base_url}/chat/completions", payload, headers, self.name)
		choices = parsed.get("choices") or []
		if not choices:
			raise TransportUnavailableError(f"{self.name} returned no choices for {purpose}")
		text = ((choices[0] or {}).get("message") or {}).get("content") or ""
		if not text.strip():
			raise TransportUnavailableError(f"{self.name} returned empty content for {purpose}")
		return text


#============================================
class OllamaTransport:
	"""
	Local Ollama chat endpoint.
	"""
	name = "Ollama"

	def __init__(self, model: str, base_url: str = "http://localhost:11434", system_message: str = "") -> None:
		self.model = model
		self.base_url = base_url.rstrip("/")
		self.system_message = system_message

	def _build_messages(self, prompt: str) -> list[dict[str, str]]:
		messages: list[dict[str, str]] = []
		if self.system_message:
			messages.append({"role": "system", "content": self.system_message})
		messages.append({"role": "user", "content": prompt})
		return messages

	def generate(self, prompt: str, *, purpose: str, max_tokens: int) -> str:
		payload: dict[str, object] = {
			"model": self.model,
			"messages": self._build_messages(prompt),
			"stream": False,
			"options": {"num_predict": max_tokens},
		}
		headers = {"Content-Type": "application/json"}
		parsed = post_json(f"{self.base_url}/api/chat", payload, headers, self.name)
		assistant_message = (parsed.get("message") or {}).get("content", "")
		if not assistant_message:
			raise TransportUnavailableError(f"Ollama chat returned empty content for {purpose}")
		return assistant_message


#============================================
def describe_transport(config: ReviewConfig) -> str:
	if config.llm_provider == "ollama":
		return f"ollama(model={config.llm_model})"
	return f"gateway(model={config.llm_model})"


#============================================
def create_transport(config: ReviewConfig):
	"""
	Build the transport for the configured provider.
	"""
	if config.llm_provider == "ollama":
		return OllamaTransport(model=config.llm_model, base_url=config.llm_base_url)
	if config.llm_provider == "gateway":
		if not config.llm_api_key:
			raise ConfigurationError("AI_GATEWAY_API_KEY must be set")
		return GatewayTransport(
			api_key=config.llm_api_key,
			model=config.llm_model,
			base_url=config.llm_base_url,
		)
	raise ConfigurationError(f"Unsupported llm provider: {config.llm_provider}")
