"""LLM Client - OpenAI chat completions and moderation with a shared retry contract."""

import json
import time
from typing import Any, Callable, Optional

from openai import APITimeoutError, OpenAI

from scriptboard.core.config import Settings
from scriptboard.core.errors import InputValidationError, LLMResponseError, ProviderError, ProviderTimeout
from scriptboard.utils.retry import RetryPolicy, call_with_retry


def strip_code_fence(text: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_json_response(text: str) -> Any:
    """
    Parse a JSON reply that may be wrapped in a markdown code fence.

    Raises:
        LLMResponseError: If the stripped text is not valid JSON
    """
    cleaned = strip_code_fence(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise LLMResponseError(f"Could not parse JSON from model reply: {e}", provider="openai") from e


class LLMClient:
    """Centralized OpenAI client for completions and moderation."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        client: Optional[Any] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize LLM client.

        Args:
            settings: Application settings
            logger: Logger instance
            client: Pre-built OpenAI client (created from settings when omitted)
            sleep: Sleep function used between retries (injectable for tests)
        """
        self.settings = settings
        self.logger = logger
        self._client = client
        self._sleep = sleep
        self.retry_policy = RetryPolicy(
            max_attempts=settings.llm_max_retries,
            initial_delay=settings.llm_retry_base_delay,
            multiplier=2.0,
        )

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.settings.openai_api_key:
                raise InputValidationError("OpenAI API key not configured")
            self._client = OpenAI(api_key=self.settings.openai_api_key)
        return self._client

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 2000,
        temperature: Optional[float] = None,
    ) -> str:
        """
        Run one chat completion under the retry contract.

        Args:
            system_prompt: System message
            user_prompt: User message
            max_tokens: Completion token cap
            temperature: Sampling temperature (defaults to settings.llm_temperature)

        Returns:
            Reply text

        Raises:
            RetryExhausted: After the last failed attempt, carrying its error
        """
        temperature = self.settings.llm_temperature if temperature is None else temperature

        def attempt() -> str:
            try:
                response = self.client.chat.completions.create(
                    model=self.settings.openai_model,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                )
            except APITimeoutError as e:
                raise ProviderTimeout(f"LLM request timed out: {e}", provider="openai") from e

            content = response.choices[0].message.content if response.choices else None
            if not content:
                raise ProviderError("Empty response from LLM", provider="openai")

            usage = getattr(response, "usage", None)
            if usage is not None:
                self.logger.debug(
                    f"[LLM] Tokens used: prompt={usage.prompt_tokens}, completion={usage.completion_tokens}"
                )
            return content

        return call_with_retry(attempt, self.retry_policy, self.logger, "[LLM] completion", sleep=self._sleep)

    def complete_json(self, system_prompt: str, user_prompt: str, max_tokens: int = 2000) -> Any:
        """Completion whose reply must be JSON (fenced or not)."""
        return parse_json_response(self.complete(system_prompt, user_prompt, max_tokens=max_tokens))

    def moderation_scores(self, text: str) -> dict[str, float]:
        """
        Per-category moderation scores in [0, 1], keyed like 'self-harm/intent'.

        Raises:
            ProviderError: If the moderation endpoint fails
        """
        try:
            response = self.client.moderations.create(input=text)
        except InputValidationError:
            raise
        except Exception as e:
            raise ProviderError(f"Moderation request failed: {e}", provider="openai") from e

        scores = response.results[0].category_scores
        if hasattr(scores, "model_dump"):
            scores = scores.model_dump(by_alias=True)
        return {k: float(v) for k, v in dict(scores).items() if v is not None}
