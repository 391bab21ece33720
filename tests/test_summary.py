import json
import time

import httpx
import pytest

from markwise.errors import RequestTimeoutError, UpstreamError, ValidationError
from markwise.services.summary import SOURCE_AUTO, SummaryGenerator

API = "https://groq.test/openai/v1"


def _generator(upstream, api_key="key"):
    client = httpx.Client(transport=httpx.MockTransport(upstream))
    return SummaryGenerator(client, api_key=api_key, base_url=API, model="test-model")


def _completion(text):
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


@pytest.mark.parametrize("content", ["", "   \n\t", None])
def test_empty_content_fails_before_any_request(upstream, content):
    with pytest.raises(ValidationError):
        _generator(upstream).generate(content)

    assert upstream.requests == []


def test_generate_returns_trimmed_summary_and_metadata(upstream):
    upstream.on(f"{API}/chat/completions", json=_completion("  A short summary.  "))

    result = _generator(upstream).generate("Some long article text", 50, SOURCE_AUTO)

    assert result.summary == "A short summary."
    assert result.metadata.original_length == len("Some long article text")
    assert result.metadata.source == "auto"
    assert result.metadata.processing_time_ms >= 0

    request = upstream.requests[0]
    body = json.loads(request.content)
    assert request.headers["Authorization"] == "Bearer key"
    assert body["model"] == "test-model"
    assert body["temperature"] == 0.8
    assert body["max_tokens"] == 1024
    assert "50 words or less" in body["messages"][0]["content"]
    assert body["messages"][1] == {"role": "user", "content": "Some long article text"}


def test_timeout_surfaces_as_request_timeout(upstream):
    upstream.on(f"{API}/chat/completions", exc=httpx.ReadTimeout)

    with pytest.raises(RequestTimeoutError) as excinfo:
        _generator(upstream).generate("content")

    assert "try again" in excinfo.value.message
    assert len(upstream.requests) == 1


def test_error_status_carries_provider_message(upstream):
    upstream.on(
        f"{API}/chat/completions",
        status=429,
        json={"error": {"message": "Rate limit reached"}},
    )

    with pytest.raises(UpstreamError) as excinfo:
        _generator(upstream).generate("content")

    assert excinfo.value.message == "Rate limit reached"
    assert len(upstream.requests) == 1


def test_error_status_without_body_uses_generic_message(upstream):
    upstream.on(f"{API}/chat/completions", status=503, content=b"down")

    with pytest.raises(UpstreamError) as excinfo:
        _generator(upstream).generate("content")

    assert excinfo.value.message.startswith("API request failed")


@pytest.mark.parametrize(
    "payload",
    [{}, {"choices": []}, _completion("   "), {"choices": [{"message": None}]}],
)
def test_malformed_completion_is_upstream_error(upstream, payload):
    upstream.on(f"{API}/chat/completions", json=payload)

    with pytest.raises(UpstreamError) as excinfo:
        _generator(upstream).generate("content")

    assert "Invalid response" in excinfo.value.message


def test_missing_api_key_is_reported_without_request(upstream):
    with pytest.raises(UpstreamError):
        _generator(upstream, api_key="").generate("content")

    assert upstream.requests == []


class TrickleBody(httpx.SyncByteStream):
    """Sends a valid completion a few bytes at a time."""

    def __init__(self, payload: bytes, delay: float):
        self.payload = payload
        self.delay = delay
        self.sent = 0

    def __iter__(self):
        for start in range(0, len(self.payload), 4):
            time.sleep(self.delay)
            self.sent += 1
            yield self.payload[start:start + 4]


def test_slow_body_is_cut_off_at_the_overall_deadline():
    body = TrickleBody(json.dumps(_completion("Too late.")).encode(), delay=0.05)
    client = httpx.Client(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, stream=body))
    )
    generator = SummaryGenerator(
        client, api_key="key", base_url=API, model="test-model", timeout=0.2
    )

    started = time.monotonic()
    with pytest.raises(RequestTimeoutError) as excinfo:
        generator.generate("content")

    assert "try again" in excinfo.value.message
    assert time.monotonic() - started < 1.0
    assert body.sent < len(body.payload) // 4
