"""Transcript summarization through a hosted DashScope chat model."""

from __future__ import annotations

import logging
import os
from typing import Optional

from errors import (
    AUTH_FAILED,
    EMPTY_TRANSCRIPT,
    NETWORK_ERROR,
    NOT_CONFIGURED,
    RATE_LIMITED,
    SUMMARY_FAILED,
    TIMEOUT,
    SummarizeError,
)

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

logger = logging.getLogger(__name__)

PLACEHOLDER_KEY = "your_api_key_here"

SYSTEM_PROMPT = """You are a helpful assistant that creates concise, well-organized summaries.

Given a transcript, create:
1. A crisp bullet-point summary (3-5 key points)
2. 3 actionable items based on the content

Format your response as:

## Summary
• [Key point 1]
• [Key point 2]
• [Key point 3]

## Action Items
1. [Action 1]
2. [Action 2]
3. [Action 3]

Keep the summary concise and focused on the most important information."""


class DashscopeSummarizer:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "qwen-plus",
        request_timeout_s: float = 60.0,
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> None:
        self._api_key = api_key if api_key is not None else os.getenv("DASHSCOPE_API_KEY", "")
        self._model = model
        self._request_timeout_s = request_timeout_s
        self._temperature = temperature
        self._max_tokens = max_tokens

    @property
    def is_configured(self) -> bool:
        key = (self._api_key or "").strip()
        return bool(key) and key != PLACEHOLDER_KEY

    def replace_api_key(self, api_key: str) -> None:
        self._api_key = api_key

    def summarize(self, transcript: str) -> str:
        """Return a markdown summary with bullet points and three action items."""
        if not self.is_configured:
            raise SummarizeError(NOT_CONFIGURED)
        if not transcript.strip():
            raise SummarizeError(EMPTY_TRANSCRIPT)
        if dashscope is None:
            raise SummarizeError(SUMMARY_FAILED, "dashscope is not installed")

        try:
            response = dashscope.Generation.call(
                api_key=self._api_key,
                model=self._model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": f"Please summarize the following transcript:\n\n{transcript}",
                    },
                ],
                result_format="message",
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                timeout=self._request_timeout_s,
            )
        except Exception as exc:
            raise self._to_error(exc) from exc

        status_code = _field(response, "status_code")
        if status_code == 401:
            raise SummarizeError(AUTH_FAILED)
        if status_code == 429:
            raise SummarizeError(RATE_LIMITED)
        if status_code != 200:
            detail = _field(response, "message") or _field(response, "code")
            raise SummarizeError(
                SUMMARY_FAILED,
                f"API request failed with status: {status_code} {detail or ''}".strip(),
            )

        content = self._extract_content(response)
        if not content:
            raise SummarizeError(SUMMARY_FAILED, "Empty response from summarization API")
        logger.info("summary generated (%d chars)", len(content))
        return content

    def _extract_content(self, response: object) -> str:
        output = _field(response, "output") or {}
        choices = output.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        return str(message.get("content") or "").strip()

    def _to_error(self, exc: Exception) -> SummarizeError:
        message = str(exc)
        low = message.lower()
        if "401" in low or "api key" in low:
            return SummarizeError(AUTH_FAILED)
        if "429" in low or "rate limit" in low:
            return SummarizeError(RATE_LIMITED)
        if "timeout" in low or "timed out" in low:
            return SummarizeError(TIMEOUT)
        if "network" in low or "connection" in low:
            return SummarizeError(NETWORK_ERROR)
        return SummarizeError(SUMMARY_FAILED, f"Failed to generate summary: {message}")


def _field(response: object, name: str):
    if isinstance(response, dict):
        return response.get(name)
    return getattr(response, name, None)
