"""
Groq Whisper API provider for cloud transcription.
"""

import time
from typing import Optional

import httpx

from . import Provider
from ..debug import debug
from ..errors import (
    AuthError, RateLimitedError, ProviderTimeoutError,
    TransportError, UnexpectedResponseError,
)
from ..types import PER_CALL_TIMEOUT


class GroqProvider(Provider):
    """
    Cloud transcription using Groq's Whisper API.

    Fast cloud-based transcription with low latency. SDK retries are
    disabled: a rate-limited chunk is reported, not silently retried.
    """

    name = "groq"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model or "whisper-large-v3"
        self.http_client = http_client
        self.client = None

    def initialize(self) -> None:
        """Create Groq client."""
        if self.client is not None:
            return

        from groq import AsyncGroq

        self.client = AsyncGroq(
            api_key=self.api_key,
            max_retries=0,
            http_client=self.http_client,
        )
        print(f"[{self.name}] Initialized (model: {self.model})")

    async def transcribe(
        self,
        audio: bytes,
        language: Optional[str] = None,
        timeout: float = PER_CALL_TIMEOUT,
        filename: str = "audio.wav",
        mime_type: str = "audio/wav",
    ) -> str:
        """
        Transcribe audio using Groq Whisper API.

        Args:
            audio: Encoded audio bytes
            language: ISO-639-1 hint
            timeout: Request timeout in seconds
            filename: Upload file name
            mime_type: Upload content type

        Returns:
            Transcribed text
        """
        import groq

        self.initialize()

        kwargs = {}
        if language:
            kwargs["language"] = language

        start = time.time()
        try:
            response = await self.client.audio.transcriptions.create(
                file=(filename, audio, mime_type),
                model=self.model,
                temperature=0.0,
                timeout=timeout,
                **kwargs,
            )
        except (groq.AuthenticationError, groq.PermissionDeniedError) as e:
            raise AuthError(str(e), self.name) from e
        except groq.RateLimitError as e:
            retry_after = e.response.headers.get("retry-after")
            raise RateLimitedError(
                str(e), self.name,
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
            ) from e
        except groq.APITimeoutError as e:
            raise ProviderTimeoutError(str(e), self.name) from e
        except groq.APIConnectionError as e:
            raise TransportError(str(e), self.name) from e
        except groq.InternalServerError as e:
            raise TransportError(str(e), self.name) from e
        except groq.APIError as e:
            raise UnexpectedResponseError(str(e), self.name) from e

        text = getattr(response, "text", None)
        if not isinstance(text, str):
            raise UnexpectedResponseError("Response has no text", self.name)

        debug(f"[{self.name}] {len(audio)} bytes in {time.time() - start:.2f}s")
        return text.strip()

    async def shutdown(self) -> None:
        """Close client."""
        if self.client is not None:
            await self.client.close()
        self.client = None
        print(f"[{self.name}] Shutdown")
