"""
Remote whisper server provider for self-hosted transcription.

Connects to any OpenAI-compatible whisper server (e.g. faster-whisper-server)
for privacy or offline use. Most such servers don't check credentials, but
the API format expects a bearer token, so a placeholder is sent.
"""

from typing import Optional

import httpx

from .openai_compatible import OpenAICompatibleProvider
from ..errors import ConfigError


DEFAULT_MODEL = "Systran/faster-whisper-small"


def build_api_url(server_url: str) -> str:
    """
    Validate a server base URL and append the transcriptions endpoint.

    Examples:
        "http://localhost:8765/" -> "http://localhost:8765/v1/audio/transcriptions"

    Raises:
        ConfigError: Empty URL, wrong scheme or missing host
    """
    trimmed = (server_url or "").strip()
    if not trimmed:
        raise ConfigError(
            "Remote whisper server URL not configured. "
            "Set REMOTE_WHISPER_URL, e.g. http://localhost:8765"
        )

    if not trimmed.startswith(("http://", "https://")):
        raise ConfigError(
            f"Invalid remote whisper URL: must start with http:// or https:// (got: {trimmed})"
        )

    after_scheme = trimmed.split("://", 1)[1]
    if not after_scheme or after_scheme.startswith("/"):
        raise ConfigError(f"Invalid remote whisper URL: missing host (got: {trimmed})")

    return f"{trimmed.rstrip('/')}/v1/audio/transcriptions"


class RemoteWhisperProvider(OpenAICompatibleProvider):
    """Transcription against a self-hosted whisper server."""

    name = "remote-whisper"
    default_model = DEFAULT_MODEL

    def __init__(
        self,
        server_url: str,
        model: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__("no-auth", model=model, client=client)
        self.server_url = server_url
        self.api_url = build_api_url(server_url)
