"""Short "send" and "receive" chirps rendered to WAV bytes."""
from __future__ import annotations

import io
import wave
from typing import Callable, Collection, Dict, Tuple

import numpy as np

from .types import CueKind

SAMPLE_RATE = 44100
DURATION_SECONDS = 0.1
START_GAIN = 0.3
END_GAIN = 0.01

# (start Hz, end Hz) of the exponential sweep.
SWEEPS: Dict[str, Tuple[float, float]] = {
    "send": (800.0, 400.0),
    "receive": (400.0, 600.0),
}


def _exponential_ramp(start: float, end: float, t: np.ndarray) -> np.ndarray:
    return start * (end / start) ** (t / DURATION_SECONDS)


def synthesize_cue(kind: CueKind, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Return a mono 16-bit WAV file for the given cue."""
    if kind not in SWEEPS:
        raise ValueError(f"Unknown cue: {kind}")
    start_hz, end_hz = SWEEPS[kind]
    samples = int(sample_rate * DURATION_SECONDS)
    t = np.arange(samples, dtype=np.float64) / sample_rate

    # Phase is the integral of the swept frequency.
    ratio = end_hz / start_hz
    phase = 2 * np.pi * start_hz * DURATION_SECONDS * (ratio ** (t / DURATION_SECONDS) - 1) / np.log(ratio)
    signal = np.sin(phase) * _exponential_ramp(START_GAIN, END_GAIN, t)
    pcm = np.clip(signal * 32767, -32768, 32767).astype("<i2")

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm.tobytes())
    return buffer.getvalue()


def cue_router(
    play: Callable[[CueKind], None],
    defer: Callable[[CueKind], None],
    immediate: Collection[str] = ("send",),
) -> Callable[[CueKind], None]:
    """Play ``immediate`` cues now and hand the rest to ``defer``.

    Streamlit reruns the script once an answer lands, so a cue emitted after
    that point has to wait for the next run to be heard.
    """

    def route(kind: CueKind) -> None:
        if kind in immediate:
            play(kind)
        else:
            defer(kind)

    return route
