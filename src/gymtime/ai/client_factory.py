"""Completion client factory with Helicone integration support."""
import logging
from dataclasses import dataclass, field
from typing import Any

import openai

from gymtime.config import settings


logger = logging.getLogger(__name__)

# Default client timeout
DEFAULT_TIMEOUT = 60.0


@dataclass
class AIRequestContext:
    """Context for AI requests, used for tracking and observability."""

    user_id: str | None = None
    session_id: str | None = None
    feature_name: str | None = None
    request_id: str | None = None
    custom_properties: dict[str, str] = field(default_factory=dict)

    def to_tracking_headers(self) -> dict[str, str]:
        """Convert context to provider-specific tracking headers.

        Currently generates Helicone headers. The public API is
        provider-agnostic so callers do not change if the observability
        provider does.
        """
        headers: dict[str, str] = {}

        if self.user_id:
            headers["Helicone-User-Id"] = self.user_id

        if self.session_id:
            headers["Helicone-Session-Id"] = self.session_id

        if self.feature_name:
            headers["Helicone-Property-Feature"] = self.feature_name

        if self.request_id:
            headers["Helicone-Request-Id"] = self.request_id

        # Add environment for filtering in Helicone dashboard
        headers["Helicone-Property-Environment"] = settings.ENVIRONMENT

        for key, value in self.custom_properties.items():
            header_key = f"Helicone-Property-{key.replace('_', '-').title()}"
            headers[header_key] = str(value)

        return headers


class AIClientFactory:
    """Factory for creating completion clients with optional Helicone integration."""

    @staticmethod
    def create_async_openai_client(
        context: AIRequestContext | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> Any:
        """
        Create an async OpenAI-compatible client, optionally proxied through Helicone.

        The client never retries on its own; a failed completion is surfaced
        to the caller as-is.

        Args:
            context: Request context for tracking and observability
            timeout: Client timeout in seconds

        Returns:
            openai.AsyncOpenAI instance

        Raises:
            ValueError: If the completion API key is not configured
        """
        api_key = settings.COMPLETION_API_KEY
        if not api_key:
            raise ValueError(
                "Completion API key not configured. Set GROQ_API_KEY or OPENAI_API_KEY environment variable."
            )

        client_kwargs: dict[str, Any] = {
            "api_key": api_key,
            "base_url": settings.COMPLETION_BASE_URL,
            "timeout": timeout,
            "max_retries": 0,
        }

        # If Helicone is enabled and configured, proxy through it
        if settings.HELICONE_ENABLED:
            if not settings.HELICONE_API_KEY:
                logger.warning(
                    "HELICONE_ENABLED=true but HELICONE_API_KEY not set. "
                    "Falling back to direct completion API calls."
                )
            else:
                client_kwargs["base_url"] = settings.HELICONE_BASE_URL

                default_headers = {
                    "Helicone-Auth": f"Bearer {settings.HELICONE_API_KEY}",
                }
                if context:
                    default_headers.update(context.to_tracking_headers())

                client_kwargs["default_headers"] = default_headers

                logger.debug("Creating completion client with Helicone proxy")
                return openai.AsyncOpenAI(**client_kwargs)

        logger.debug("Creating completion client (direct)")

        return openai.AsyncOpenAI(**client_kwargs)
