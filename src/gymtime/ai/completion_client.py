"""Single request/response exchange with a hosted chat-completion endpoint."""
import logging
from typing import Any
from urllib.parse import urlparse

import openai

from gymtime.ai.client_factory import AIClientFactory, AIRequestContext
from gymtime.config import settings


logger = logging.getLogger(__name__)

COMPLETION_TEMPERATURE = 0.7


class CompletionError(Exception):
    """Base class for completion endpoint failures."""

    code = "completion_error"


class CompletionConfigError(CompletionError):
    """The endpoint URL or credentials are not usable."""

    code = "invalid_configuration"


class CompletionAPIError(CompletionError):
    """The endpoint answered with a non-2xx status."""

    code = "api_error"

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Completion API returned {status_code}: {body}")


class CompletionNetworkError(CompletionError):
    """The request never produced an HTTP response."""

    code = "network_error"


class CompletionDecodingError(CompletionError):
    """The response envelope could not be decoded."""

    code = "decoding_error"


def _validate_base_url(base_url: str | None) -> str:
    parsed = urlparse(base_url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise CompletionConfigError(f"Invalid completion endpoint URL: {base_url!r}")
    return base_url  # type: ignore[return-value]


class CompletionClient:
    """Thin wrapper over an OpenAI-compatible async client.

    One POST per call, no retries, no streaming, no caching. The caller
    decides what to do with a failure.
    """

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def from_settings(
        cls,
        context: AIRequestContext | None = None,
    ) -> "CompletionClient":
        """Build a client from ``settings``, validating the endpoint first."""
        _validate_base_url(settings.COMPLETION_BASE_URL)
        try:
            client = AIClientFactory.create_async_openai_client(
                context=context,
                timeout=settings.COMPLETION_TIMEOUT,
            )
        except ValueError as e:
            raise CompletionConfigError(str(e)) from e
        return cls(client)

    async def complete(
        self,
        user_text: str,
        model: str,
        system_prompt: str,
        context: AIRequestContext | None = None,
    ) -> str:
        """
        Send ``system_prompt`` and ``user_text`` to ``model`` and return the reply.

        Args:
            user_text: Content to analyze (a transcript or a workout description)
            model: Hosted model identifier
            system_prompt: Instruction template controlling the output shape
            context: Optional tracking context, sent as headers when Helicone is on

        Returns:
            The first choice's message content, verbatim ("" if there is none)

        Raises:
            CompletionAPIError: Non-2xx status; ``body`` holds the raw response text
            CompletionNetworkError: Transport failure or timeout
            CompletionDecodingError: The response envelope could not be decoded
        """
        request_kwargs: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_text},
            ],
            "temperature": COMPLETION_TEMPERATURE,
        }
        if context and settings.HELICONE_ENABLED:
            request_kwargs["extra_headers"] = context.to_tracking_headers()

        try:
            response = await self._client.chat.completions.create(**request_kwargs)
        except openai.APIStatusError as e:
            logger.warning(f"Completion API returned {e.status_code} for model {model}")
            raise CompletionAPIError(e.status_code, e.response.text) from e
        except openai.APIConnectionError as e:
            logger.warning(f"Completion request failed: {e}")
            raise CompletionNetworkError(str(e)) from e
        except openai.APIResponseValidationError as e:
            raise CompletionDecodingError(str(e)) from e

        try:
            choices = response.choices or []
            if not choices:
                return ""
            return choices[0].message.content or ""
        except (AttributeError, TypeError) as e:
            raise CompletionDecodingError(f"Unexpected completion response: {e}") from e
