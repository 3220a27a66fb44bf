"""
Transcription providers.

Each provider wraps one backend behind the same async interface so the
dispatcher never branches on which service it is talking to. A provider
holds only its pooled HTTP client; every transcribe() call is independent
and safe to run concurrently with others.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from ..errors import ConfigError
from ..types import PipelineSettings, PER_CALL_TIMEOUT


class Provider(ABC):
    """
    Base class for transcription providers.

    Subclasses must implement:
    - transcribe(): Send one chunk, return its text or raise ProviderError

    and may override:
    - initialize(): Create HTTP client
    - shutdown(): Close HTTP client
    """

    name: str = "base"

    def initialize(self) -> None:
        """Create clients. Called lazily on first transcribe() if not called before."""
        pass

    @abstractmethod
    async def transcribe(
        self,
        audio: bytes,
        language: Optional[str] = None,
        timeout: float = PER_CALL_TIMEOUT,
        filename: str = "audio.wav",
        mime_type: str = "audio/wav",
    ) -> str:
        """
        Transcribe one encoded audio chunk.

        Args:
            audio: Encoded audio bytes
            language: ISO-639-1 hint, None to let the service detect
            timeout: Request timeout in seconds
            filename: Upload file name (services sniff the format from it)
            mime_type: Upload content type

        Returns:
            Transcribed text

        Raises:
            ProviderError: AuthError, RateLimitedError, ProviderTimeoutError,
                TransportError or UnexpectedResponseError
        """
        pass

    async def shutdown(self) -> None:
        """Free resources."""
        pass


# provider name -> env var holding its credential (URL for remote-whisper)
PROVIDERS: Dict[str, str] = {
    "groq": "GROQ_API_KEY",
    "openai": "OPENAI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "gemini": "OPENROUTER_API_KEY",
    "remote-whisper": "REMOTE_WHISPER_URL",
}

ALIASES = {
    "remotewhisper": "remote-whisper",
    "whisper-server": "remote-whisper",
    "openrouter": "gemini",
}


def resolve_name(name: str) -> str:
    """Normalize a provider name, raising ConfigError for unknown ones."""
    key = (name or "").strip().lower()
    key = ALIASES.get(key, key)
    if key not in PROVIDERS:
        raise ConfigError(
            f"Unknown provider: {name}. Available: {', '.join(PROVIDERS)}"
        )
    return key


def create_provider(settings: PipelineSettings) -> Provider:
    """
    Build the provider selected in settings.

    Raises:
        ConfigError: Unknown provider or missing credential
    """
    name = resolve_name(settings.provider)

    if name == "remote-whisper":
        from .remote_whisper import RemoteWhisperProvider
        server_url = settings.remote_whisper_url or settings.api_key
        return RemoteWhisperProvider(server_url, model=settings.model or None)

    if not settings.api_key:
        env_var = PROVIDERS[name]
        raise ConfigError(f"No API key for {name}. Set {env_var} or add it to settings.")

    model = settings.model or None
    if name == "groq":
        from .groq import GroqProvider
        return GroqProvider(settings.api_key, model=model)
    if name == "openai":
        from .openai import OpenAIProvider
        return OpenAIProvider(settings.api_key, model=model)
    if name == "mistral":
        from .openai import MistralProvider
        return MistralProvider(settings.api_key, model=model)

    from .gemini import GeminiProvider
    return GeminiProvider(settings.api_key, model=model)
