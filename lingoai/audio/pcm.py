from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from lingoai.contracts import PCMBlob

PCM16_SCALE = 32768.0
CAPTURE_SAMPLE_RATE = 16000
PLAYBACK_SAMPLE_RATE = 24000

_RATE_RE = re.compile(r"rate=(\d+)")

Samples = Union[Sequence[float], np.ndarray]


class DecodeError(ValueError):
    pass


class MalformedAudioError(ValueError):
    pass


@dataclass(frozen=True)
class PCMBuffer:
    """Mono float32 samples in [-1, 1] ready for an output device."""
    samples: np.ndarray
    sample_rate: int

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / float(self.sample_rate)


def float_to_pcm16(samples: Samples) -> bytes:
    """
    Map float samples to little-endian int16 bytes via round(s * 32768).

    Values outside [-1, 1] are clamped to the int16 range instead of wrapping,
    so 1.0 becomes 32767.
    """
    x = np.asarray(samples, dtype=np.float64)
    if x.size == 0:
        return b""
    scaled = np.rint(x * PCM16_SCALE)
    clipped = np.clip(scaled, -32768, 32767)
    return clipped.astype("<i2").tobytes()


def pcm16_to_float(data: bytes, sample_rate: int = PLAYBACK_SAMPLE_RATE) -> PCMBuffer:
    if len(data) % 2 != 0:
        raise MalformedAudioError(f"PCM16 payload has odd length: {len(data)} bytes")
    if sample_rate <= 0:
        raise MalformedAudioError("sample_rate must be > 0")
    ints = np.frombuffer(data, dtype="<i2")
    samples = (ints.astype(np.float32) / np.float32(PCM16_SCALE)).astype(np.float32)
    return PCMBuffer(samples=samples, sample_rate=int(sample_rate))


def bytes_to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def base64_to_bytes(text: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"invalid base64 payload: {e}") from e


def pcm_mime_type(sample_rate: int) -> str:
    return f"audio/pcm;rate={int(sample_rate)}"


def parse_pcm_rate(mime_type: str) -> int:
    m = _RATE_RE.search(mime_type or "")
    if m is None:
        raise MalformedAudioError(f"mime type carries no sample rate: {mime_type!r}")
    return int(m.group(1))


def make_pcm_blob(samples: Samples, sample_rate: int = CAPTURE_SAMPLE_RATE) -> PCMBlob:
    return PCMBlob(
        data=bytes_to_base64(float_to_pcm16(samples)),
        mime_type=pcm_mime_type(sample_rate),
    )


def resample_linear(samples: Samples, src_rate: int, dst_rate: int) -> np.ndarray:
    x = np.asarray(samples, dtype=np.float32)
    if src_rate == dst_rate or x.size == 0:
        return x
    n_out = int(round(x.size * float(dst_rate) / float(src_rate)))
    if n_out <= 0:
        return np.zeros(0, dtype=np.float32)
    src_t = np.arange(x.size, dtype=np.float64) / float(src_rate)
    dst_t = np.arange(n_out, dtype=np.float64) / float(dst_rate)
    return np.interp(dst_t, src_t, x).astype(np.float32)
