"""LLM package — remote (OpenAI-compatible) engine."""
from redactor.llm.remote_engine import (  # noqa: F401
    QuotaExceededError,
    RateLimitError,
    RemoteLLMEngine,
    RemoteLLMError,
    RemoteLLMTimeout,
    remote_llm_engine,
)
