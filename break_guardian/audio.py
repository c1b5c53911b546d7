import os
import math
import struct
import logging
import platform
import subprocess
import tempfile
import threading

from .broadcast import SOUND_END_PLAY, SOUND_START_PLAY
from .config import SAMPLE_RATE
from .logging_setup import get_logger
from .settings import SOUND_BLIP, SOUND_BLOOP, SOUND_GONG, SOUND_NONE, SOUND_PING, SOUND_SCIFI

IS_WIN = platform.system() == "Windows"
IS_MAC = platform.system() == "Darwin"

# (frequency Hz, duration sec) per note; end sounds play the notes reversed
SOUND_NOTES = {
    SOUND_GONG: [(196.00, 0.9)],
    SOUND_BLIP: [(880.00, 0.08), (1318.51, 0.08)],
    SOUND_BLOOP: [(392.00, 0.12), (261.63, 0.18)],
    SOUND_PING: [(1567.98, 0.25)],
    SOUND_SCIFI: [(523.25, 0.07), (659.25, 0.07), (784.00, 0.07), (1046.50, 0.14)],
}


def _wrap_wav_header(pcm_data: bytes, sample_rate: int) -> bytes:
    data_size = len(pcm_data)
    riff_size = 36 + data_size
    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        riff_size,
        b"WAVE",
        b"fmt ",
        16,
        1,
        1,
        sample_rate,
        sample_rate * 2,
        2,
        16,
        b"data",
        data_size,
    )
    return header + pcm_data


def generate_notes_wav_bytes(
    notes: list[tuple[float, float]],
    volume: float = 1.0,
    sample_rate: int = SAMPLE_RATE,
) -> bytes:
    volume = max(0.0, min(1.0, float(volume)))
    max_amp = int(32767 * volume * 0.6)

    frames = bytearray()
    for freq, duration_sec in notes:
        n_samples = max(1, int(sample_rate * duration_sec))
        for i in range(n_samples):
            t = i / sample_rate
            envelope = 1.0 - (i / n_samples)
            sample = int(max_amp * envelope * math.sin(2.0 * math.pi * freq * t))
            frames += struct.pack("<h", sample)

    return _wrap_wav_header(bytes(frames), sample_rate)


def sound_wav_bytes(sound_type: str, volume: float, ending: bool = False) -> bytes | None:
    notes = SOUND_NOTES.get(sound_type)
    if not notes:
        return None
    if ending:
        notes = list(reversed(notes))
    return generate_notes_wav_bytes(notes, volume)


def _play_wav_file(path: str) -> None:
    if IS_WIN:
        import winsound
        winsound.PlaySound(path, winsound.SND_FILENAME)
        return
    if IS_MAC:
        subprocess.run(["afplay", path], check=False)
        return
    for cmd in (["paplay", path], ["aplay", "-q", path]):
        try:
            result = subprocess.run(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=False)
        except FileNotFoundError:
            continue
        if result.returncode == 0:
            return


class SoundPlayer:
    """Plays the break start/end sounds announced on the broadcast channel."""

    def __init__(self, logger: logging.Logger | None = None, player=_play_wav_file):
        self._logger = logger or get_logger()
        self._player = player

    def __call__(self, channel: str, payload: dict) -> None:
        if channel == SOUND_START_PLAY:
            self.play(payload.get("type"), payload.get("volume", 1.0), ending=False)
        elif channel == SOUND_END_PLAY:
            self.play(payload.get("type"), payload.get("volume", 1.0), ending=True)

    def play(self, sound_type: str | None, volume: float = 1.0, ending: bool = False) -> bool:
        if not sound_type or sound_type == SOUND_NONE:
            return False
        wav = sound_wav_bytes(sound_type, volume, ending)
        if wav is None:
            self._logger.warning(f"Unknown sound type [type={sound_type}]")
            return False
        threading.Thread(target=self._play_bytes, args=(wav,), daemon=True).start()
        return True

    def _play_bytes(self, wav: bytes) -> None:
        fd, path = tempfile.mkstemp(suffix=".wav", prefix="break_guardian_")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(wav)
            self._player(path)
        except Exception:
            self._logger.exception("Sound playback failed")
        finally:
            try:
                os.remove(path)
            except OSError:
                pass
