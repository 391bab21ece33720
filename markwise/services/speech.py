from __future__ import annotations

import base64
import logging
from dataclasses import dataclass

import httpx

from markwise.errors import RequestTimeoutError, UpstreamError, ValidationError


logger = logging.getLogger(__name__)

DEFAULT_VOICE_ID = "I6FCyzfC1FISEENiALlo"
MODEL_ID = "eleven_multilingual_v2"
VOICE_SETTINGS = {"stability": 0.5, "similarity_boost": 0.5}
AUDIO_MIME_TYPE = "audio/mpeg"


@dataclass
class SpeechResult:
    audio_url: str


def _provider_message(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    detail = payload.get("detail")
    if isinstance(detail, dict):
        message = detail.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None


def audio_data_uri(audio: bytes, mime_type: str = AUDIO_MIME_TYPE) -> str:
    encoded = base64.b64encode(audio).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class SpeechSynthesizer:
    def __init__(
        self,
        client: httpx.Client,
        api_key: str,
        base_url: str,
        voice_id: str = DEFAULT_VOICE_ID,
    ):
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.voice_id = voice_id or DEFAULT_VOICE_ID

    def synthesize(self, text: str | None, voice_id: str | None = None) -> SpeechResult:
        if not text or not text.strip():
            raise ValidationError("No summary available")
        if not self.api_key:
            raise UpstreamError("Speech service is not configured.")

        voice = voice_id or self.voice_id
        try:
            response = self.client.post(
                f"{self.base_url}/text-to-speech/{voice}",
                json={
                    "text": text,
                    "model_id": MODEL_ID,
                    "voice_settings": dict(VOICE_SETTINGS),
                },
                headers={"xi-api-key": self.api_key},
            )
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(
                "Speech synthesis timed out. Please try again."
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Speech request failed: {exc}") from exc

        if not response.is_success:
            logger.warning(
                "speech request failed with status %s", response.status_code
            )
            raise UpstreamError(
                _provider_message(response)
                or f"API request failed: {response.reason_phrase}"
            )

        return SpeechResult(audio_url=audio_data_uri(response.content))
