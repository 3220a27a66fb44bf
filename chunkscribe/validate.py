"""
Credential validation.

check_key_format() is an offline sanity check run before saving a key.
validate_key() makes one cheap authenticated request and measures latency.
"""

import time
from dataclasses import dataclass
from typing import Optional

import requests

from .errors import ConfigError
from .providers import resolve_name
from .providers.remote_whisper import build_api_url


@dataclass
class ValidationResult:
    """Result of an API key validation test."""
    valid: bool
    latency_ms: Optional[int] = None
    error: Optional[str] = None


# Models endpoints used for live checks
MODELS_URLS = {
    "groq": "https://api.groq.com/openai/v1/models",
    "openai": "https://api.openai.com/v1/models",
    "mistral": "https://api.mistral.ai/v1/models",
    "gemini": "https://openrouter.ai/api/v1/auth/key",
}

# Shared session for connection reuse
_session = requests.Session()


def check_key_format(provider: str, key: str) -> Optional[str]:
    """
    Check a credential's shape without any network access.

    Empty keys are accepted (the environment variable is used instead).

    Returns:
        None if the key looks valid, otherwise an error message
    """
    name = resolve_name(provider)
    key = (key or "").strip()
    if not key:
        return None

    if name == "openai" and not key.startswith("sk-"):
        return "Invalid key format. OpenAI keys start with 'sk-'"
    if name == "groq" and not key.startswith("gsk_"):
        return "Invalid key format. Groq keys start with 'gsk_'"
    if name in ("mistral", "gemini") and len(key) < 20:
        return f"Invalid {name} API key: key appears too short"
    if name == "remote-whisper":
        try:
            build_api_url(key)
        except ConfigError as e:
            return str(e)
    return None


def validate_key(provider: str, key: str, timeout: float = 10) -> ValidationResult:
    """
    Validate a credential with a minimal live request.

    For remote-whisper the "key" is the server URL and the check is that
    the server answers at all.
    """
    name = resolve_name(provider)
    problem = check_key_format(name, key)
    if problem:
        return ValidationResult(valid=False, error=problem)
    if not key:
        return ValidationResult(valid=False, error="No key provided")

    if name == "remote-whisper":
        url = key.strip().rstrip("/") + "/v1/models"
        headers = {}
    else:
        url = MODELS_URLS[name]
        headers = {"Authorization": f"Bearer {key}"}

    try:
        start = time.perf_counter()
        response = _session.get(url, headers=headers, timeout=timeout)
        latency = int((time.perf_counter() - start) * 1000)
    except requests.Timeout:
        return ValidationResult(valid=False, error="Timeout")
    except requests.RequestException as e:
        return ValidationResult(valid=False, error=str(e)[:50])

    if response.status_code == 200:
        return ValidationResult(valid=True, latency_ms=latency)
    if response.status_code in (401, 403):
        return ValidationResult(valid=False, latency_ms=latency, error="Invalid key")
    return ValidationResult(valid=False, latency_ms=latency, error=f"HTTP {response.status_code}")
