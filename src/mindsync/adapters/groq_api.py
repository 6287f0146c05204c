"""Groq API adapter - HTTP client for OpenAI-compatible chat completions."""

import json
import logging
from typing import Iterator

import requests

from mindsync.config import API_KEY_ENV, Config, load_config

logger = logging.getLogger(__name__)

SSE_PREFIX = "data:"
SSE_DONE = "[DONE]"


class BackendError(RuntimeError):
    """Raised when the backend call fails or returns an unusable reply."""

    pass


class ConfigurationError(RuntimeError):
    """Raised when the backend cannot be called with the current config."""

    pass


class GroqChatService:
    """
    Chat completions adapter.

    Implements LLMService protocol. Talks to any OpenAI-compatible
    ``/chat/completions`` endpoint; Groq is the default. No business logic -
    just I/O.
    """

    def __init__(self, config: Config | None = None, session: requests.Session | None = None):
        self.config = config or load_config()
        self._session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.config.llm_base_url.rstrip('/')}/chat/completions"

    def _headers(self) -> dict:
        if not self.config.llm_api_key:
            raise ConfigurationError(
                f"No API key. Set LLM_API_KEY in config/mindsync.conf or export {API_KEY_ENV}."
            )
        return {
            "Authorization": f"Bearer {self.config.llm_api_key}",
            "Content-Type": "application/json",
        }

    def _body(self, prompt: str, system_prompt: str | None, stream: bool) -> dict:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return {
            "model": self.config.llm_model,
            "messages": messages,
            "max_tokens": self.config.llm_max_tokens,
            "temperature": self.config.llm_temperature,
            "stream": stream,
        }

    def _post(self, body: dict, stream: bool) -> requests.Response:
        headers = self._headers()
        try:
            resp = self._session.post(
                self.endpoint,
                headers=headers,
                json=body,
                timeout=self.config.llm_timeout,
                stream=stream,
            )
        except requests.RequestException as e:
            logger.error(f"Backend request failed: {e}")
            raise BackendError(f"Backend request failed: {e}") from e

        if resp.status_code != 200:
            logger.error(f"Backend returned {resp.status_code}: {resp.text}")
            raise BackendError(f"Backend returned {resp.status_code}: {resp.text}")
        return resp

    def generate(self, prompt: str, system_prompt: str | None = None) -> str:
        """Generate a complete reply."""
        resp = self._post(self._body(prompt, system_prompt, stream=False), stream=False)
        try:
            return resp.json()["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError) as e:
            raise BackendError(f"Unexpected backend reply: {e}") from e

    def stream(self, prompt: str, system_prompt: str | None = None) -> Iterator[str]:
        """Yield reply chunks from the server-sent event stream."""
        resp = self._post(self._body(prompt, system_prompt, stream=True), stream=True)
        try:
            for line in resp.iter_lines(decode_unicode=True):
                if not line or not line.startswith(SSE_PREFIX):
                    continue
                data = line[len(SSE_PREFIX):].strip()
                if data == SSE_DONE:
                    return
                chunk = _delta_content(data)
                if chunk:
                    yield chunk
        except requests.RequestException as e:
            logger.error(f"Backend stream interrupted: {e}")
            raise BackendError(f"Backend stream interrupted: {e}") from e
        finally:
            resp.close()


def _delta_content(data: str) -> str:
    """Extract the text delta from one SSE event payload."""
    try:
        event = json.loads(data)
    except json.JSONDecodeError:
        logger.warning(f"Skipping malformed stream event: {data[:80]}")
        return ""
    choices = event.get("choices") or []
    if not choices:
        return ""
    return (choices[0].get("delta") or {}).get("content") or ""
