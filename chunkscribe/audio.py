"""
Audio helpers at the pipeline boundary.

Builds AudioBuffers from files or raw samples and cuts time windows out of an
encoded buffer for the chunk planner. Decoding goes through libsndfile
(soundfile); containers it cannot read are cut proportionally by bytes.
"""

import io
import os
from dataclasses import dataclass
from typing import Optional

import numpy as np
import soundfile as sf

from .types import AudioBuffer


MIME_TYPES = {
    ".wav": "audio/wav",
    ".flac": "audio/flac",
    ".ogg": "audio/ogg",
    ".oga": "audio/ogg",
    ".opus": "audio/ogg",
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".webm": "audio/webm",
}


@dataclass
class DecodedAudio:
    """PCM samples plus the container info needed to re-encode a window."""
    samples: np.ndarray
    sample_rate: int
    format: str
    subtype: Optional[str]

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate if self.sample_rate else 0.0


def _to_mono(audio: np.ndarray) -> np.ndarray:
    if audio.ndim > 1:
        audio = np.mean(audio, axis=1)
    return audio.astype(np.float32)


def samples_to_wav_bytes(audio: np.ndarray, sample_rate: int = 16000) -> bytes:
    """Convert numpy audio array to WAV bytes."""
    audio_int16 = (np.clip(audio, -1.0, 1.0) * 32767).astype(np.int16)
    buffer = io.BytesIO()
    sf.write(buffer, audio_int16, sample_rate, format="WAV", subtype="PCM_16")
    buffer.seek(0)
    return buffer.getvalue()


def buffer_from_samples(audio: np.ndarray, sample_rate: int = 16000) -> AudioBuffer:
    """
    Wrap captured samples as an encoded mono WAV buffer.

    Args:
        audio: float samples in [-1, 1], mono or (frames, channels)
        sample_rate: Sample rate of `audio`

    Returns:
        AudioBuffer with WAV bytes and the exact duration
    """
    mono = _to_mono(np.asarray(audio))
    return AudioBuffer(
        data=samples_to_wav_bytes(mono, sample_rate),
        duration=len(mono) / sample_rate,
        sample_rate=sample_rate,
        mime_type="audio/wav",
        filename="audio.wav",
    )


def load_audio_file(path: str) -> AudioBuffer:
    """
    Read an encoded audio file into an AudioBuffer without re-encoding it.

    Raises:
        FileNotFoundError: If the file does not exist
        soundfile.LibsndfileError: If libsndfile cannot read the header
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Audio file not found: {path}")

    with open(path, "rb") as f:
        data = f.read()

    info = sf.info(io.BytesIO(data))
    ext = os.path.splitext(path)[1].lower()

    return AudioBuffer(
        data=data,
        duration=float(info.duration),
        sample_rate=int(info.samplerate),
        mime_type=MIME_TYPES.get(ext, "application/octet-stream"),
        filename=os.path.basename(path),
    )


def decode(buffer: AudioBuffer) -> Optional[DecodedAudio]:
    """Decode a buffer to mono float32 samples, or None if libsndfile can't read it."""
    try:
        info = sf.info(io.BytesIO(buffer.data))
        samples, sample_rate = sf.read(io.BytesIO(buffer.data), dtype="float32")
    except (RuntimeError, TypeError):
        return None

    return DecodedAudio(
        samples=_to_mono(samples),
        sample_rate=int(sample_rate),
        format=info.format,
        subtype=info.subtype,
    )


def encode_window(decoded: DecodedAudio, start: float, end: float) -> bytes:
    """Re-encode samples between `start` and `end` seconds in the source container."""
    first = max(0, int(round(start * decoded.sample_rate)))
    last = min(len(decoded.samples), int(round(end * decoded.sample_rate)))

    buffer = io.BytesIO()
    sf.write(
        buffer,
        decoded.samples[first:last],
        decoded.sample_rate,
        format=decoded.format,
        subtype=decoded.subtype,
    )
    return buffer.getvalue()


def slice_bytes(buffer: AudioBuffer, start: float, end: float) -> bytes:
    """Cut a window proportionally by bytes (constant-bitrate assumption)."""
    if buffer.duration <= 0:
        return b""
    bytes_per_second = buffer.size / buffer.duration
    first = max(0, int(start * bytes_per_second))
    last = min(buffer.size, int(end * bytes_per_second))
    return buffer.data[first:last]


def slice_audio(
    buffer: AudioBuffer,
    start: float,
    end: float,
    decoded: Optional[DecodedAudio] = None,
) -> bytes:
    """
    Extract the audio between `start` and `end` seconds as a standalone buffer.

    Args:
        buffer: Source recording
        start: Window start in seconds
        end: Window end in seconds
        decoded: Result of decode(buffer), reused across windows when given

    Returns:
        Encoded bytes for the window
    """
    if decoded is None:
        decoded = decode(buffer)
    if decoded is None:
        return slice_bytes(buffer, start, end)

    try:
        return encode_window(decoded, start, end)
    except (RuntimeError, ValueError, TypeError):
        # libsndfile can read some containers it cannot write
        return slice_bytes(buffer, start, end)
