from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass

import httpx

from markwise.errors import RequestTimeoutError, UpstreamError, ValidationError


logger = logging.getLogger(__name__)

SOURCE_AUTO = "auto"
SOURCE_MANUAL = "manual"
SUMMARY_SOURCES = {SOURCE_AUTO, SOURCE_MANUAL}

DEFAULT_MAX_WORDS = 150
TEMPERATURE = 0.8
MAX_TOKENS = 1024
TIMEOUT_MESSAGE = "Summary generation timed out. Please try again."


@dataclass
class SummaryMetadata:
    original_length: int
    processing_time_ms: int
    source: str


@dataclass
class SummaryResult:
    summary: str
    metadata: SummaryMetadata

    def as_dict(self):
        return {
            "summary": self.summary,
            "metadata": {
                "original_length": self.metadata.original_length,
                "processing_time_ms": self.metadata.processing_time_ms,
                "source": self.metadata.source,
            },
        }


def _read_until(response: httpx.Response, deadline: float) -> bytes:
    # httpx timeouts apply per read; the deadline covers the whole body
    chunks = []
    for chunk in response.iter_bytes():
        if time.monotonic() > deadline:
            raise RequestTimeoutError(TIMEOUT_MESSAGE)
        chunks.append(chunk)
    if time.monotonic() > deadline:
        raise RequestTimeoutError(TIMEOUT_MESSAGE)
    return b"".join(chunks)


def _json_or_none(body: bytes):
    try:
        return json.loads(body)
    except ValueError:
        return None


def _provider_message(payload) -> str | None:
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None


def _completion_text(payload) -> str | None:
    if not isinstance(payload, dict):
        return None
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, str) or not content.strip():
        return None
    return content.strip()


class SummaryGenerator:
    """Single-shot summaries from an OpenAI-compatible chat completion API.

    One request per call with a hard deadline and no retry; the caller decides
    whether to try again.
    """

    def __init__(
        self,
        client: httpx.Client,
        api_key: str,
        base_url: str,
        model: str,
        timeout: float = 10.0,
    ):
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    def _request_body(self, content: str, max_words: int) -> dict:
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "system",
                    "content": (
                        "You are a precise summarizer. Create a concise summary "
                        f"of the provided content in {max_words} words or less. "
                        "Focus on key points and maintain professional language."
                    ),
                },
                {"role": "user", "content": content},
            ],
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
            "top_p": 1,
        }

    def generate(
        self,
        content: str | None,
        max_words: int = DEFAULT_MAX_WORDS,
        source: str = SOURCE_MANUAL,
    ) -> SummaryResult:
        if not content or not content.strip():
            raise ValidationError("Content is required")
        if source not in SUMMARY_SOURCES:
            raise ValidationError(f"Unknown summary source: {source}")
        if not self.api_key:
            raise UpstreamError("Summary service is not configured.")

        started = time.monotonic()
        deadline = started + self.timeout
        try:
            with self.client.stream(
                "POST",
                f"{self.base_url}/chat/completions",
                json=self._request_body(content, max_words),
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            ) as response:
                body = _read_until(response, deadline)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(TIMEOUT_MESSAGE) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Summary request failed: {exc}") from exc

        payload = _json_or_none(body)
        if not response.is_success:
            logger.warning(
                "summary request failed with status %s", response.status_code
            )
            raise UpstreamError(
                _provider_message(payload)
                or f"API request failed: {response.reason_phrase}"
            )

        summary = _completion_text(payload)
        if summary is None:
            raise UpstreamError("Invalid response from summary service")

        return SummaryResult(
            summary=summary,
            metadata=SummaryMetadata(
                original_length=len(content),
                processing_time_ms=int((time.monotonic() - started) * 1000),
                source=source,
            ),
        )
