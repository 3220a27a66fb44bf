"""
Configuration management with immutable snapshots.

Loads from: environment variables > settings.json > defaults
Provides immutable snapshots so one transcription call never sees a
config change halfway through.
"""

from pathlib import Path
from typing import Dict, Optional
import json
import os

from .debug import set_debug
from .errors import ConfigError
from .providers import PROVIDERS, resolve_name
from .types import (
    PipelineSettings,
    SIZE_THRESHOLD, CHUNK_DURATION, OVERLAP, MAX_PARALLEL,
    PER_CALL_TIMEOUT, MERGE_WINDOW, MIN_CHUNK,
)


# Defaults
DEFAULT_CONFIG = {
    # Provider selection
    "provider": "groq",
    "language": "",
    "model": "",

    # Dispatch
    "max_parallel": MAX_PARALLEL,
    "per_call_timeout": PER_CALL_TIMEOUT,

    # Chunking
    "size_threshold": SIZE_THRESHOLD,
    "chunk_duration": CHUNK_DURATION,
    "overlap": OVERLAP,
    "min_chunk": MIN_CHUNK,
    "merge_window": MERGE_WINDOW,

    # Diagnostics
    "debug_mode": False,
    "metrics_enabled": True,
}

# Env var -> provider whose credential it holds
ENV_KEYS: Dict[str, str] = {env_var: name for name, env_var in PROVIDERS.items()}


def _coerce(default, value):
    """Convert a settings value to the type of its default."""
    if value is None:
        return default
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    return type(default)(value)


class Config:
    """
    Single source of truth for all settings.

    Usage:
        config = Config.load()
        snapshot = config.snapshot()  # Immutable copy for one call
    """

    def __init__(self, data_dir: Optional[Path] = None):
        # Provider selection
        self.provider: str = DEFAULT_CONFIG["provider"]
        self.language: str = ""
        self.model: str = ""

        # Dispatch
        self.max_parallel: int = MAX_PARALLEL
        self.per_call_timeout: float = PER_CALL_TIMEOUT

        # Chunking
        self.size_threshold: int = SIZE_THRESHOLD
        self.chunk_duration: float = CHUNK_DURATION
        self.overlap: float = OVERLAP
        self.min_chunk: float = MIN_CHUNK
        self.merge_window: int = MERGE_WINDOW

        # Diagnostics
        self.debug_mode: bool = False
        self.metrics_enabled: bool = True

        # Credentials, keyed by provider name (URL for remote-whisper)
        self.credentials: Dict[str, str] = {name: "" for name in PROVIDERS}

        # Paths
        self.data_dir: Path = Path(data_dir) if data_dir else Path.home() / ".chunkscribe"
        self.metrics_file: Path = self.data_dir / "metrics.jsonl"
        self.settings_file: Path = self.data_dir / "settings.json"
        self.env_file: Path = self.data_dir / ".env"

    @classmethod
    def load(cls, data_dir: Optional[Path] = None) -> "Config":
        """Load configuration from all sources."""
        config = cls(data_dir)
        config._load_settings()
        config._load_env()
        set_debug(config.debug_mode)
        return config

    def _load_env(self) -> None:
        """Load credentials from .env files, then let the environment override."""
        for env_file in (Path(".env"), self.env_file):
            if env_file.exists():
                self._parse_env_file(env_file)

        for env_var, name in ENV_KEYS.items():
            self.credentials[name] = os.getenv(env_var, self.credentials[name])

        self.provider = os.getenv("CHUNKSCRIBE_PROVIDER", self.provider)
        self.language = os.getenv("CHUNKSCRIBE_LANGUAGE", self.language)
        if os.getenv("CHUNKSCRIBE_DEBUG"):
            self.debug_mode = _coerce(False, os.environ["CHUNKSCRIBE_DEBUG"])

    def _parse_env_file(self, env_file: Path) -> None:
        """Parse a .env file and extract credentials."""
        try:
            with open(env_file) as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#") or "=" not in line:
                        continue
                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip().strip("'\"")

                    if key in ENV_KEYS:
                        self.credentials[ENV_KEYS[key]] = value
        except OSError as e:
            print(f"Error loading {env_file}: {e}")

    def _load_settings(self) -> None:
        """Load project ./settings.json, then ~/.chunkscribe/settings.json (overrides)."""
        for settings_file in (Path("settings.json"), self.settings_file):
            if settings_file.exists():
                self._apply_settings_file(settings_file)

    def _apply_settings_file(self, settings_file: Path) -> None:
        """Apply settings from a JSON file."""
        try:
            with open(settings_file) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            print(f"Error loading {settings_file}: {e}")
            return

        for key, default in DEFAULT_CONFIG.items():
            if key not in data:
                continue
            try:
                setattr(self, key, _coerce(default, data[key]))
            except (TypeError, ValueError):
                print(f"Ignoring invalid value for {key} in {settings_file}: {data[key]!r}")

        for name, value in (data.get("credentials") or {}).items():
            if name in self.credentials and isinstance(value, str):
                self.credentials[name] = value

    def save_settings(self) -> None:
        """Save current settings (not credentials) to settings.json."""
        data = {key: getattr(self, key) for key in DEFAULT_CONFIG}

        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.settings_file, "w") as f:
            json.dump(data, f, indent=2)

    def credential_for(self, provider: str) -> str:
        return self.credentials.get(resolve_name(provider), "")

    def check_ranges(self) -> None:
        """Raise ConfigError for values the planner or dispatcher can't run with."""
        if self.max_parallel < 1:
            raise ConfigError(f"max_parallel must be at least 1 (got {self.max_parallel})")
        if self.per_call_timeout <= 0:
            raise ConfigError(f"per_call_timeout must be positive (got {self.per_call_timeout:g})")
        if self.size_threshold < 1:
            raise ConfigError(f"size_threshold must be positive (got {self.size_threshold})")
        if self.overlap < 0 or self.min_chunk < 0:
            raise ConfigError("overlap and min_chunk can't be negative")
        if self.chunk_duration <= self.overlap:
            raise ConfigError(
                f"chunk_duration ({self.chunk_duration:g}s) must be longer than overlap ({self.overlap:g}s)"
            )
        if self.merge_window < 1:
            raise ConfigError(f"merge_window must be at least 1 (got {self.merge_window})")

    def snapshot(self, provider: Optional[str] = None) -> PipelineSettings:
        """
        Return immutable settings for one call.

        Raises:
            ConfigError: Unknown provider name or out-of-range value
        """
        self.check_ranges()
        name = resolve_name(provider or self.provider)
        credential = self.credentials.get(name, "")

        return PipelineSettings(
            provider=name,
            api_key="" if name == "remote-whisper" else credential,
            language=self.language or None,
            max_parallel=self.max_parallel,
            per_call_timeout=self.per_call_timeout,
            size_threshold=self.size_threshold,
            chunk_duration=self.chunk_duration,
            overlap=self.overlap,
            min_chunk=self.min_chunk,
            merge_window=self.merge_window,
            model=self.model,
            remote_whisper_url=credential if name == "remote-whisper" else "",
        )
