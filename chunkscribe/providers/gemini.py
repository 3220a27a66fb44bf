"""
Google Gemini API provider for cloud transcription via OpenRouter.
"""

import base64
import time
from typing import Optional

import httpx

from . import Provider
from .openai_compatible import post_request
from ..debug import debug
from ..errors import UnexpectedResponseError
from ..types import PER_CALL_TIMEOUT


OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"

# OpenRouter input_audio formats by upload content type
AUDIO_FORMATS = {
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/flac": "flac",
    "audio/ogg": "ogg",
    "audio/mp4": "m4a",
    "audio/webm": "webm",
}


class GeminiProvider(Provider):
    """
    Cloud transcription using Google Gemini via OpenRouter.

    Multimodal model that can handle audio transcription.
    Uses OpenRouter API for access.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        prompt: str = "Transcribe this speech exactly as spoken. Output only the transcript.",
        client: Optional[httpx.AsyncClient] = None,
    ):
        model = model or "google/gemini-2.5-flash"
        self.api_key = api_key  # OpenRouter API key
        self.model = model if "/" in model else f"google/{model}"
        self.prompt = prompt
        self.client = client
        self._owns_client = client is None

    def initialize(self) -> None:
        """Create the pooled HTTP client."""
        if self.client is None:
            self.client = httpx.AsyncClient()
            self._owns_client = True
            print(f"[{self.name}] Initialized (model: {self.model})")

    def _build_prompt(self, language: Optional[str]) -> str:
        if language:
            return f"{self.prompt} The speech is in language '{language}'."
        return self.prompt

    async def transcribe(
        self,
        audio: bytes,
        language: Optional[str] = None,
        timeout: float = PER_CALL_TIMEOUT,
        filename: str = "audio.wav",
        mime_type: str = "audio/wav",
    ) -> str:
        """
        Transcribe audio using Gemini via OpenRouter.

        Args:
            audio: Encoded audio bytes
            language: ISO-639-1 hint, added to the prompt
            timeout: Request timeout in seconds
            filename: Unused, the format comes from mime_type
            mime_type: Upload content type

        Returns:
            Transcribed text
        """
        self.initialize()

        base64_audio = base64.b64encode(audio).decode("utf-8")
        audio_format = AUDIO_FORMATS.get(mime_type.split(";")[0].strip(), "wav")

        data = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self._build_prompt(language)},
                        {
                            "type": "input_audio",
                            "input_audio": {"data": base64_audio, "format": audio_format},
                        },
                    ],
                }
            ],
            "temperature": 0.0,
        }

        start = time.time()
        response = await post_request(
            self.client,
            self.name,
            OPENROUTER_URL,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json=data,
            timeout=timeout,
        )

        try:
            result = response.json()
            text = result["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise UnexpectedResponseError(f"Malformed completion payload: {e}", self.name) from e
        if not isinstance(text, str):
            raise UnexpectedResponseError("Completion content is not text", self.name)

        debug(f"[{self.name}] {len(audio)} bytes in {time.time() - start:.2f}s")
        return text.strip()

    async def shutdown(self) -> None:
        """Close client."""
        if self.client is not None and self._owns_client:
            await self.client.aclose()
        self.client = None
        print(f"[{self.name}] Shutdown")
