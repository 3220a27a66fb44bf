"""
Shared implementation for OpenAI-compatible transcription APIs.

OpenAI Whisper, Mistral Voxtral and self-hosted whisper servers all accept
the same request:
- Multipart form upload with `model` and `file` fields (optional `language`)
- Authorization via `Bearer` token
- JSON response with a `text` field
"""

import time
from typing import Optional

import httpx

from . import Provider
from ..debug import debug
from ..errors import (
    AuthError, RateLimitedError, ProviderTimeoutError,
    TransportError, UnexpectedResponseError, ProviderError,
)
from ..types import PER_CALL_TIMEOUT


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def error_for_response(response: httpx.Response, provider: str) -> ProviderError:
    """Map a non-2xx HTTP response onto the provider error taxonomy."""
    status = response.status_code
    body = response.text[:200].strip() if response.content else ""
    message = f"API error ({status}): {body}" if body else f"API error ({status})"

    if status in (401, 403):
        return AuthError(message, provider)
    if status == 429:
        return RateLimitedError(message, provider, retry_after=_retry_after(response))
    if status in (408, 504):
        return ProviderTimeoutError(message, provider)
    if status >= 500:
        return TransportError(message, provider)
    return UnexpectedResponseError(message, provider)


def extract_text(response: httpx.Response, provider: str) -> str:
    """Pull `text` out of a transcription response body."""
    try:
        payload = response.json()
    except ValueError as e:
        raise UnexpectedResponseError(f"Response is not JSON: {e}", provider) from e

    text = payload.get("text") if isinstance(payload, dict) else None
    if not isinstance(text, str):
        raise UnexpectedResponseError("Response has no 'text' field", provider)
    return text.strip()


async def post_request(client: httpx.AsyncClient, provider: str, url: str, **kwargs) -> httpx.Response:
    """
    POST and translate httpx failures and error statuses into ProviderErrors.

    Returns:
        The successful (2xx) response
    """
    try:
        response = await client.post(url, **kwargs)
    except httpx.TimeoutException as e:
        raise ProviderTimeoutError(f"Request timed out: {e}", provider) from e
    except httpx.HTTPError as e:
        raise TransportError(f"Failed to send request: {e}", provider) from e

    if not response.is_success:
        raise error_for_response(response, provider)
    return response


class OpenAICompatibleProvider(Provider):
    """
    Provider for any endpoint speaking the OpenAI transcription format.

    Subclasses set `name`, `api_url` and `default_model`.
    """

    name = "openai-compatible"
    api_url = ""
    default_model = ""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model or self.default_model
        self.client = client
        self._owns_client = client is None

    def initialize(self) -> None:
        """Create the pooled HTTP client."""
        if self.client is None:
            self.client = httpx.AsyncClient()
            self._owns_client = True
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
        Upload one chunk to the transcription endpoint.

        Args:
            audio: Encoded audio bytes
            language: ISO-639-1 hint
            timeout: Request timeout in seconds
            filename: Upload file name
            mime_type: Upload content type

        Returns:
            Transcribed text
        """
        self.initialize()

        data = {"model": self.model}
        if language:
            data["language"] = language

        start = time.time()
        response = await post_request(
            self.client,
            self.name,
            self.api_url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            data=data,
            files={"file": (filename, audio, mime_type)},
            timeout=timeout,
        )
        text = extract_text(response, self.name)

        debug(f"[{self.name}] {len(audio)} bytes in {time.time() - start:.2f}s")
        return text

    async def shutdown(self) -> None:
        """Close client."""
        if self.client is not None and self._owns_client:
            await self.client.aclose()
        self.client = None
        print(f"[{self.name}] Shutdown")
