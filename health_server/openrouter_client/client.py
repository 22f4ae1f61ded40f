"""OpenRouter API client for LLM requests."""

import asyncio
import json
from typing import Any, Dict, List, Optional

import httpx

from ..config import get_settings
from ..errors import ExternalServiceError
from ..logging_config import get_logger

logger = get_logger(__name__)

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"


async def request_chat_completion(
    model: str,
    messages: List[Dict[str, Any]],
    api_key: str,
    system: Optional[str] = None,
    max_tokens: Optional[int] = None,
    temperature: float = 0.7,
    timeout: float = 60.0,
    max_retries: int = 3,
    base_delay: float = 1.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Make a chat completion request to OpenRouter."""

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "HTTP-Referer": "https://github.com/health-reminders",
        "X-Title": "Health Reminders",
    }

    payload: Dict[str, Any] = {
        "model": model,
        "messages": messages,
        "temperature": temperature,
    }

    if system:
        payload["messages"] = [{"role": "system", "content": system}] + messages

    if max_tokens:
        payload["max_tokens"] = max_tokens

    logger.debug(f"Making OpenRouter request to {model}")

    for attempt in range(max_retries + 1):
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            try:
                response = await client.post(OPENROUTER_URL, headers=headers, json=payload)

                if response.status_code == 429 and attempt < max_retries:
                    delay = base_delay * (2 ** attempt)
                    logger.warning(f"Rate limited, retrying in {delay}s (attempt {attempt + 1}/{max_retries + 1})")
                    await asyncio.sleep(delay)
                    continue

                response.raise_for_status()
                return response.json()

            except httpx.HTTPError as e:
                if attempt == max_retries:
                    logger.error(f"OpenRouter API error after {max_retries + 1} attempts: {e}")
                    raise
                logger.warning(f"Request failed (attempt {attempt + 1}), retrying: {e}")
                await asyncio.sleep(base_delay)
            except json.JSONDecodeError as e:
                logger.error(f"Failed to parse OpenRouter response: {e}")
                raise

    raise ExternalServiceError("OpenRouter request exhausted retries")


class OpenRouterTextGenerator:
    """Text-generation collaborator backed by an OpenRouter chat model."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 10,
        timeout: Optional[float] = None,
        max_retries: int = 1,
        retry_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.openrouter_api_key
        self.model = model or settings.suggestion_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout if timeout is not None else settings.suggestion_timeout_seconds
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.transport = transport

    @property
    def attempt_timeout(self) -> float:
        """Per-request timeout that keeps every attempt and back-off inside ``timeout``."""
        backoff = sum(self.retry_delay * (2 ** attempt) for attempt in range(self.max_retries))
        return max(0.5, (self.timeout - backoff) / (self.max_retries + 1))

    async def generate(self, prompt: str) -> str:
        """Return the model's raw text reply for a single user prompt."""

        if not self.api_key:
            raise ExternalServiceError("OpenRouter API key not configured")

        response = await request_chat_completion(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            api_key=self.api_key,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            timeout=self.attempt_timeout,
            max_retries=self.max_retries,
            base_delay=self.retry_delay,
            transport=self.transport,
        )

        content = (response.get("choices") or [{}])[0].get("message", {}).get("content") or ""
        if not content:
            raise ExternalServiceError("Empty response from LLM")
        return content
