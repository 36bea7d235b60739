"""
Structured generation client.

Wraps exactly one call to the text-generation backend:
``(system instructions, user content) -> raw text``.  There is no business
logic here and no JSON handling; shape validation lives in
``app.services.output_parser`` so every stage has one narrow seam to mock.

Public API
----------
GenerationClient                        — protocol every stage depends on
AnthropicGenerationClient.generate(...) — Anthropic Messages API over httpx
get_generation_client()                 — FastAPI dependency
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from app.config import settings
from app.services.exceptions import AuthError, EmptyResponseError, TransportError

logger = logging.getLogger(__name__)


_STRUCTURED_SUFFIX = """\

OUTPUT FORMAT:
Respond ONLY with valid JSON matching the requested shape.
No explanation, no markdown, no code fences.\
"""


class GenerationClient(Protocol):
    """Anything that can turn (instructions, input) into text."""

    async def generate(
        self,
        system_instructions: str,
        user_content: str,
        expect_structured: bool = False,
    ) -> str:
        ...


class AnthropicGenerationClient:
    """
    Generation client for the Anthropic Messages API.

    Each call opens its own ``httpx.AsyncClient`` so concurrent calls share
    nothing but the semaphore that caps them at LLM_MAX_CONCURRENT.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = settings.ANTHROPIC_API_KEY if api_key is None else api_key
        self.base_url = settings.ANTHROPIC_BASE_URL.rstrip("/")
        self.model = settings.ANTHROPIC_MODEL
        self.max_tokens = settings.LLM_MAX_TOKENS
        self.timeout = httpx.Timeout(float(settings.LLM_TIMEOUT), connect=10.0)
        self._transport = transport
        self._semaphore = asyncio.Semaphore(settings.LLM_MAX_CONCURRENT)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    async def generate(
        self,
        system_instructions: str,
        user_content: str,
        expect_structured: bool = False,
    ) -> str:
        """
        POST one message to ``/v1/messages`` and return the response text.

        Raises:
            AuthError: no credential configured, or HTTP 401/403.
            TransportError: timeout, connection failure, any other non-2xx.
            EmptyResponseError: no non-empty text block in the response.
        """
        if not self.is_configured:
            raise AuthError("Missing ANTHROPIC_API_KEY — generation is unavailable")

        system = system_instructions.strip()
        if expect_structured:
            system += _STRUCTURED_SUFFIX

        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": user_content}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": settings.ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

        async with self._semaphore:
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    resp = await client.post(
                        f"{self.base_url}/v1/messages",
                        json=payload,
                        headers=headers,
                    )
            except httpx.TimeoutException as exc:
                logger.error("generate: request timed out after %s s", settings.LLM_TIMEOUT)
                raise TransportError("Generation backend timed out") from exc
            except httpx.HTTPError as exc:
                logger.error("generate: transport error — %s", exc)
                raise TransportError(f"Generation backend unreachable: {exc}") from exc

        if resp.status_code in (401, 403):
            logger.error("generate: credential rejected (HTTP %d)", resp.status_code)
            raise AuthError(f"Generation backend rejected the credential (HTTP {resp.status_code})")

        if resp.status_code >= 300:
            logger.error(
                "generate: backend returned HTTP %d: %s",
                resp.status_code,
                resp.text[:300],
            )
            raise TransportError(
                f"Generation backend returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise TransportError("Generation backend returned a non-JSON envelope") from exc

        text = _extract_text(data)
        if not text.strip():
            logger.warning("generate: backend returned no text payload")
            raise EmptyResponseError("Generation backend returned no text")

        logger.debug("generate: %d chars returned", len(text))
        return text


def _extract_text(data: Any) -> str:
    """Concatenate the text blocks of a Messages API response."""
    if not isinstance(data, dict):
        return ""
    blocks = data.get("content") or []
    parts = [
        str(block.get("text", ""))
        for block in blocks
        if isinstance(block, dict) and block.get("type") == "text"
    ]
    return "".join(parts)


_default_client: Optional[AnthropicGenerationClient] = None


def get_generation_client() -> GenerationClient:
    """FastAPI dependency returning the process-wide generation client."""
    global _default_client
    if _default_client is None:
        _default_client = AnthropicGenerationClient()
    return _default_client
