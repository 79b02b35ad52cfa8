"""HTTP client for hosted chat-completion models used by the AI layer.

Any server speaking the OpenAI ``chat/completions`` protocol works: OpenAI
itself, Azure, Groq, Together, Mistral, Gemini's compatibility endpoint or a
self-hosted vLLM / Ollama instance.

How failures are treated:
  - HTTP 429 means the provider is throttling us; the request is repeated
    after ``backoff_base ** attempt`` seconds until retries run out.
  - A spent quota (HTTP 402, or a 429 whose body mentions quota/billing)
    raises ``QuotaExceededError`` on the first response.
  - A timeout raises ``RemoteLLMTimeout`` straight away so the AI detector
    can fall back to its lighter strategy.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Optional

import httpx

from redactor.config import config

logger = logging.getLogger(__name__)

# Used until configure() is given an explicit value.
_FALLBACK_TIMEOUT = 30.0

_QUOTA_MARKERS = ("insufficient_quota", "quota", "resource_exhausted", "billing")


class RemoteLLMError(RuntimeError):
    """The remote service could not produce a completion."""


class RateLimitError(RemoteLLMError):
    """Rate limited and out of retries."""


class QuotaExceededError(RemoteLLMError):
    """Quota or billing exhausted; retrying is pointless."""


class RemoteLLMTimeout(RemoteLLMError):
    """The request did not complete within its timeout."""


def _is_quota_error(status: int, body: str) -> bool:
    if status == 402:
        return True
    if status == 429:
        lowered = body.lower()
        return any(marker in lowered for marker in _QUOTA_MARKERS)
    return False


def _completion_text(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise RemoteLLMError(f"Completion response missing choices[0].message.content: {e}") from e
    return (content or "").strip()


class RemoteLLMEngine:
    """Thread-safe client for one chat-completion deployment.

    A single ``httpx.Client`` is kept open between calls and rebuilt only
    when the endpoint or the key changes::

        with RemoteLLMEngine() as llm:
            llm.configure("https://api.groq.com/openai/v1", key, "llama-3.1-8b-instant")
            reply = llm.generate(system_prompt=rules, user_prompt=page, timeout=10)

    *transport* is handed to ``httpx.Client`` untouched; tests pass an
    ``httpx.MockTransport`` here.
    """

    def __init__(
        self,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = ""
        self._api_key = ""
        self._model = ""
        self._timeout = _FALLBACK_TIMEOUT
        self._max_retries = max_retries if max_retries is not None else config.ai_max_retries
        self._backoff_base = backoff_base if backoff_base is not None else config.ai_retry_backoff_base
        self._transport = transport
        self._client: Optional[httpx.Client] = None
        # One request in flight per engine.
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _open_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self._timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
        )

    def configure(
        self,
        api_url: str,
        api_key: str,
        model: str,
        timeout: float = _FALLBACK_TIMEOUT,
    ) -> None:
        """Point the engine at *api_url* using *api_key* and *model*.

        Calling it again with a different endpoint or key swaps the pooled
        client; changing only the model or timeout keeps the connections.
        """
        base_url = api_url.rstrip("/")
        with self._lock:
            stale = (
                self._client is None
                or base_url != self._base_url
                or api_key != self._api_key
            )
            self._base_url, self._api_key = base_url, api_key
            self._model, self._timeout = model, timeout
            if stale:
                if self._client is not None:
                    self._client.close()
                self._client = self._open_client()

        logger.info(
            "AI endpoint set to %s (model %s, %ss timeout)",
            self._base_url, self._model, self._timeout,
        )

    def configure_from_settings(self) -> bool:
        """Configure from the global ``config``; return whether it is usable."""
        if all((config.llm_api_url, config.llm_api_key, config.llm_api_model)):
            self.configure(
                config.llm_api_url,
                config.llm_api_key,
                config.llm_api_model,
                timeout=config.ai_word_id_timeout,
            )
        return self.is_loaded()

    def is_loaded(self) -> bool:
        """True once an endpoint, a key and a model have all been set."""
        return all((self._base_url, self._api_key, self._model))

    @property
    def model_name(self) -> str:
        return self._model

    def close(self) -> None:
        """Drop pooled connections; ``configure()`` opens new ones."""
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            client.close()

    def __enter__(self) -> RemoteLLMEngine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def generate(
        self,
        system_prompt: str = "",
        user_prompt: str = "",
        max_tokens: int = 2048,
        temperature: float = 0.0,
        top_p: float = 0.95,
        stop: Optional[list[str]] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Return the model's reply to *user_prompt*, stripped of whitespace.

        *system_prompt* is sent first when non-empty.  *timeout* applies to
        this request only; by default the configured one is used.
        """
        if not self.is_loaded():
            raise RemoteLLMError("AI endpoint, key and model must be configured before generate()")

        messages = [{"role": "user", "content": user_prompt}]
        if system_prompt:
            messages.insert(0, {"role": "system", "content": system_prompt})

        payload: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "top_p": top_p,
        }
        if stop:
            payload["stop"] = stop

        with self._lock:
            return self._post_with_retries(payload, timeout or self._timeout)

    def _post_with_retries(self, payload: dict[str, Any], timeout: float) -> str:
        client = self._client
        if client is None:
            raise RemoteLLMError("AI engine has been closed; configure() it again")

        endpoint = f"{self._base_url}/chat/completions"
        for attempt in range(self._max_retries):
            try:
                response = client.post(endpoint, json=payload, timeout=timeout)
                response.raise_for_status()
                return _completion_text(response.json())
            except httpx.HTTPStatusError as e:
                if not self._should_retry(e.response, attempt):
                    raise self._status_error(e.response) from e
            except httpx.TimeoutException as e:
                logger.warning("AI request exceeded %ss", timeout)
                raise RemoteLLMTimeout(f"AI request exceeded {timeout}s") from e
            except httpx.HTTPError as e:
                logger.error("AI request could not be sent: %s", e)
                raise RemoteLLMError(f"AI request could not be sent: {e}") from e
            except ValueError as e:
                raise RemoteLLMError(f"AI response is not JSON: {e}") from e

        raise RateLimitError(f"AI endpoint still rate limiting after {self._max_retries} attempts")

    def _should_retry(self, response: httpx.Response, attempt: int) -> bool:
        """Sleep and return True for a retryable throttle response."""
        if response.status_code != 429 or _is_quota_error(429, response.text):
            return False
        if attempt + 1 >= self._max_retries:
            return False
        delay = self._backoff_base ** attempt
        logger.warning(
            "AI endpoint throttled (try %d of %d); waiting %.1fs",
            attempt + 1, self._max_retries, delay,
        )
        time.sleep(delay)
        return True

    def _status_error(self, response: httpx.Response) -> RemoteLLMError:
        status = response.status_code
        body = response.text[:500]
        if _is_quota_error(status, body):
            logger.error("AI quota used up (HTTP %s)", status)
            return QuotaExceededError(f"AI quota used up: {body}")
        if status == 429:
            return RateLimitError(f"AI endpoint still rate limiting after {self._max_retries} attempts")
        logger.error("AI endpoint answered HTTP %s: %s", status, body)
        return RemoteLLMError(f"AI endpoint answered HTTP {status}: {body}")


# Shared instance used by the CLI.
remote_llm_engine = RemoteLLMEngine()
