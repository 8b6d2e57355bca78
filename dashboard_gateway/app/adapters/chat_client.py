"""
Gemini chat completion client.
"""

from __future__ import annotations

from typing import Any, Dict, Tuple
from urllib.parse import quote

from shared.errors import PayloadTooLargeError, ValidationError

from .market_clients import MarketDataClient
from .upstream_client import UpstreamClient


MAX_MESSAGE_LENGTH = 4000


def validate_message(payload: Any) -> str:
    """Return the trimmed chat message or raise a client error."""
    message = payload.get("message") if isinstance(payload, dict) else None
    message = message.strip() if isinstance(message, str) else ""
    if not message:
        raise ValidationError("Missing message")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise PayloadTooLargeError("Message too long")
    return message


def extract_text(payload: Any) -> str:
    """Concatenate the text parts of the first candidate, or ''."""
    try:
        parts = payload["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    if not isinstance(parts, list):
        return ""
    return "".join(
        str(part["text"])
        for part in parts
        if isinstance(part, dict) and part.get("text")
    )


def extract_error_detail(payload: Any) -> Any:
    """Pick the most specific error description an upstream returned."""
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    if error:
        return error
    return payload


class GeminiClient(MarketDataClient):
    """Google Generative Language API, ``generateContent`` endpoint."""

    name = "gemini"
    key_env = "GEMINI_API_KEY"

    def __init__(self, upstream: UpstreamClient, api_key: str, base_url: str, model: str) -> None:
        super().__init__(upstream, api_key, base_url)
        self.model = model

    async def generate(self, message: str) -> Tuple[int, Dict[str, Any]]:
        """Send one user message and return ``(status_code, body)`` for the caller."""
        url = f"{self.base_url}/v1beta/models/{quote(self.model, safe='')}:generateContent"
        result = await self.upstream.post_json(
            url,
            {"contents": [{"parts": [{"text": message}]}]},
            headers={"X-goog-api-key": self.api_key},
            upstream=self.name,
        )

        if not result.ok:
            detail = extract_error_detail(result.body)
            self.logger.warning("Chat upstream error", status_code=result.status_code)
            return result.status_code, {"error": "Upstream error", "detail": detail}

        return 200, {"text": extract_text(result.body)}
