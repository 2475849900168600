"""
Audio / haptic feedback for battle events.

Cues are synthesized with numpy and packed as mono 16-bit 44100Hz WAV,
so clients only need to play a file.
"""

import io
import wave
import numpy as np

from physics import Bounced, Fired, Hit, GameEnded, Winner

SAMPLE_RATE = 44100
TONE_DURATION = 0.5          # s, oscillator stop time
START_GAIN = 0.1
END_GAIN = 0.0001

# cue -> (waveform, frequency Hz, gain ramp seconds)
SOUND_CUES = {
    "shoot":  ("triangle", 880.0,  0.1),
    "hit":    ("square",   220.0,  0.2),
    "bounce": ("sine",     110.0,  0.1),
    "win":    ("sawtooth", 523.25, 0.5),   # C5
    "start":  ("sine",     440.0,  0.1),   # A4
}

# vibration patterns in ms (on, off, on, ...)
HAPTIC_HIT = [100]
HAPTIC_WIN = [200, 50, 200]


def cues_for_event(event, settings) -> tuple[list[str], list[list[int]]]:
    """Return (sound cues, haptic patterns) for one engine event."""
    sounds: list[str] = []
    haptics: list[list[int]] = []

    if isinstance(event, Bounced):
        sounds.append("bounce")
    elif isinstance(event, Fired):
        sounds.append("shoot")
    elif isinstance(event, Hit):
        sounds.append("hit")
        haptics.append(list(HAPTIC_HIT))
    elif isinstance(event, GameEnded) and isinstance(event.outcome, Winner):
        sounds.append("win")
        haptics.append(list(HAPTIC_WIN))

    if not settings.enable_sfx:
        sounds = []
    if not settings.enable_haptics:
        haptics = []
    return sounds, haptics


# ──────────────────────────────────────────
# Synthesis
# ──────────────────────────────────────────

def _oscillator(waveform: str, freq: float, t: np.ndarray) -> np.ndarray:
    phase = (freq * t) % 1.0
    if waveform == "sine":
        return np.sin(2 * np.pi * freq * t)
    if waveform == "square":
        return np.where(phase < 0.5, 1.0, -1.0)
    if waveform == "sawtooth":
        return 2.0 * phase - 1.0
    if waveform == "triangle":
        return 1.0 - 4.0 * np.abs(phase - 0.5)
    raise ValueError(f"unknown waveform '{waveform}'")


def synth_cue(cue: str) -> np.ndarray:
    """Float samples in [-1, 1] for a named cue."""
    if cue not in SOUND_CUES:
        raise ValueError(f"unknown sound cue '{cue}'")
    waveform, freq, ramp = SOUND_CUES[cue]
    t = np.linspace(0, TONE_DURATION, int(SAMPLE_RATE * TONE_DURATION), endpoint=False)
    # exponential ramp START_GAIN -> END_GAIN over `ramp`, then hold
    k = np.log(END_GAIN / START_GAIN) / ramp
    env = START_GAIN * np.exp(k * np.minimum(t, ramp))
    return env * _oscillator(waveform, freq, t)


def wav_bytes(cue: str) -> bytes:
    data = np.clip(synth_cue(cue), -1.0, 1.0)
    data_int = (data * 32767).astype(np.int16)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(SAMPLE_RATE)
        wf.writeframes(data_int.tobytes())
    return buf.getvalue()
