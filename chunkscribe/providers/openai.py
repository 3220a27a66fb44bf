"""
OpenAI Whisper and Mistral Voxtral providers.
"""

from .openai_compatible import OpenAICompatibleProvider


class OpenAIProvider(OpenAICompatibleProvider):
    """Cloud transcription using OpenAI's Whisper API."""

    name = "openai"
    api_url = "https://api.openai.com/v1/audio/transcriptions"
    default_model = "whisper-1"


class MistralProvider(OpenAICompatibleProvider):
    """Cloud transcription using Mistral's Voxtral API."""

    name = "mistral"
    api_url = "https://api.mistral.ai/v1/audio/transcriptions"
    default_model = "voxtral-mini-latest"
