"""OpenAI chat-completion client with model rotation and bounded retries."""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import openai

from taskpilot.core.config import Settings, get_settings
from taskpilot.observability.metrics import log_metric
from taskpilot.observability.tracing import annotate, trace
from taskpilot.services.generation_types import CompletionResult, Message

logger = logging.getLogger(__name__)

DEFAULT_LIGHTWEIGHT_MODEL = "gpt-4o-mini"
DEFAULT_FALLBACK_MODEL = "gpt-4o"
DEFAULT_MAX_ATTEMPTS = 4
DEFAULT_BASE_DELAY = 0.5

JSON_OBJECT_FORMAT: Dict[str, str] = {"type": "json_object"}

_QUOTA_PATTERN = re.compile(r"quota", re.IGNORECASE)
_RATE_LIMIT_PATTERN = re.compile(r"rate[ _-]?limit", re.IGNORECASE)
_TRANSPORT_PATTERN = re.compile(
    r"timeout|timed out|etimedout|econnreset|econnrefused|eai_again|connection (?:reset|error|aborted)",
    re.IGNORECASE,
)


class ConfigurationError(RuntimeError):
    """Raised when the completion service cannot be used because credentials are missing."""


class FailureKind(str, Enum):
    CONFIGURATION = "configuration"
    QUOTA_EXHAUSTED = "quota_exhausted"
    TRANSIENT = "transient"
    FATAL = "fatal"


def _status_code(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if value is None:
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    return None


def _mentions_quota(exc: BaseException, message: str) -> bool:
    if _QUOTA_PATTERN.search(message):
        return True
    code = getattr(exc, "code", None)
    return isinstance(code, str) and "quota" in code.lower()


def classify_failure(exc: BaseException) -> FailureKind:
    """Map a completion error onto the retry taxonomy.

    Only ``TRANSIENT`` failures are retried. A 429 that mentions quota is an
    account limit, not a burst limit, and is terminal.
    """
    if isinstance(exc, ConfigurationError):
        return FailureKind.CONFIGURATION
    message = str(exc)
    if isinstance(exc, (openai.APIConnectionError, asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return FailureKind.TRANSIENT

    status = _status_code(exc)
    if status is not None and status >= 500:
        return FailureKind.TRANSIENT
    if status == 429:
        if _mentions_quota(exc, message):
            return FailureKind.QUOTA_EXHAUSTED
        return FailureKind.TRANSIENT

    if _RATE_LIMIT_PATTERN.search(message):
        return FailureKind.QUOTA_EXHAUSTED if _mentions_quota(exc, message) else FailureKind.TRANSIENT
    if _TRANSPORT_PATTERN.search(message):
        return FailureKind.TRANSIENT
    return FailureKind.FATAL


def is_retryable(exc: BaseException) -> bool:
    return classify_failure(exc) is FailureKind.TRANSIENT


@dataclass(frozen=True)
class CompletionOptions:
    temperature: float = 0.3
    response_format: Optional[Dict[str, Any]] = None
    preferred_model: Optional[str] = None
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY


class CompletionClient:
    """Wraps ``openai.AsyncOpenAI`` with the assistant's retry and model-rotation policy.

    The SDK handle is created on first use, at most once per client, so the
    application can start (and fall back deterministically) without a key.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        sdk_factory: Callable[[], Any] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._settings = settings or get_settings()
        self._sdk_factory = sdk_factory or self._build_sdk
        self._sdk: Any = None
        self._sleep = sleep

    def _build_sdk(self) -> openai.AsyncOpenAI:
        api_key = self._settings.openai_api_key
        if not api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY in environment")
        return openai.AsyncOpenAI(
            api_key=api_key,
            base_url=self._settings.openai_api_base or None,
            organization=self._settings.openai_org_id or None,
            project=self._settings.openai_project_id or None,
            timeout=self._settings.openai_timeout_seconds,
            # retries are driven by complete() so models can rotate between attempts
            max_retries=0,
        )

    @property
    def sdk(self) -> Any:
        if self._sdk is None:
            self._sdk = self._sdk_factory()
        return self._sdk

    def candidate_models(self, preferred_model: Optional[str] = None) -> List[str]:
        primary = preferred_model or self._settings.openai_model or DEFAULT_LIGHTWEIGHT_MODEL
        fallback = self._settings.openai_fallback_model or DEFAULT_FALLBACK_MODEL
        return list(dict.fromkeys(model for model in (primary, DEFAULT_LIGHTWEIGHT_MODEL, fallback) if model))

    async def complete(
        self,
        messages: Sequence[Message],
        options: CompletionOptions | None = None,
    ) -> CompletionResult:
        """Run one chat completion, retrying transient failures on the next candidate model."""
        options = options or CompletionOptions()
        sdk = self.sdk
        models = self.candidate_models(options.preferred_model)
        max_attempts = max(1, options.max_attempts)

        for attempt in range(max_attempts):
            model = models[min(attempt, len(models) - 1)]
            try:
                text = await self._create(sdk, model, messages, options, attempt)
            except Exception as exc:
                kind = classify_failure(exc)
                if kind is FailureKind.TRANSIENT and attempt < max_attempts - 1:
                    delay = options.base_delay * (2**attempt)
                    logger.warning(
                        "Completion attempt %s/%s on %s failed (%s); retrying in %.2fs",
                        attempt + 1,
                        max_attempts,
                        model,
                        exc,
                        delay,
                    )
                    await self._sleep(delay)
                    continue
                logger.error(
                    "Completion failed after %s attempt(s) on %s: %s (%s)",
                    attempt + 1,
                    model,
                    exc,
                    kind.value,
                )
                log_metric("completion.failed", 1, {"model": model, "failure": kind.value, "attempts": attempt + 1})
                raise
            log_metric("completion.attempts", attempt + 1, {"model": model})
            logger.info("Completion succeeded on %s after %s attempt(s)", model, attempt + 1)
            return CompletionResult(text=text, model=model)

        raise AssertionError("retry loop exited without a result")  # pragma: no cover

    async def _create(
        self,
        sdk: Any,
        model: str,
        messages: Sequence[Message],
        options: CompletionOptions,
        attempt: int,
    ) -> str:
        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": [message.to_openai() for message in messages],
            "temperature": options.temperature,
        }
        if options.response_format is not None:
            kwargs["response_format"] = options.response_format

        with trace("completion.attempt", metadata={"model": model, "attempt": attempt + 1}) as span:
            response = await sdk.chat.completions.create(**kwargs)
            choices = getattr(response, "choices", None) or []
            content = choices[0].message.content if choices else None
            finish_reason = getattr(choices[0], "finish_reason", None) if choices else None
            annotate(span, model=getattr(response, "model", model), finish_reason=finish_reason)
        return (content or "").strip()
