"""Audio playback of recorded notes."""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import soundfile as sf

from lumen.services.recorder import _sounddevice

logger = logging.getLogger("lumen")

END_TOLERANCE_SECONDS = 0.1


@dataclass
class PlaybackStatus:
    """Position readout for the player."""

    is_playing: bool
    current_time: float
    duration: float
    error_message: str | None = None


class PlaybackController:
    """Plays one audio file at a time through a sounddevice output stream."""

    def __init__(self) -> None:
        self._control_lock = threading.Lock()
        self._position_lock = threading.Lock()
        self._stream = None
        self._data: np.ndarray | None = None
        self._samplerate = 0
        self._position = 0
        self._finished = threading.Event()

        self.path: str | None = None
        self.is_playing = False
        self.duration = 0.0
        self.error_message: str | None = None
        self._readout = 0.0

    def play(self, path: str | Path) -> bool:
        """Stop anything playing, load ``path`` and play it from the start."""
        self.stop()
        with self._control_lock:
            try:
                data, samplerate = sf.read(str(path), dtype="float32", always_2d=True)
                sd = _sounddevice()
                self._data = data
                self._samplerate = samplerate
                with self._position_lock:
                    self._position = 0
                self._finished.clear()
                self._stream = sd.OutputStream(
                    samplerate=samplerate,
                    channels=data.shape[1],
                    dtype="float32",
                    callback=self._on_output,
                    finished_callback=self._finished.set,
                )
                self._stream.start()
            except Exception as e:
                logger.error("Audio playback error: %s", e)
                self._release_stream()
                self._data = None
                self._samplerate = 0
                self.is_playing = False
                self.error_message = f"Error playing audio: {e}"
                return False

            self.path = str(path)
            self.duration = len(data) / samplerate if samplerate else 0.0
            self.is_playing = True
            self.error_message = None
            self._readout = 0.0
        return True

    def _on_output(self, outdata, frames, time_info, status) -> None:
        if status:
            logger.debug("Audio output status: %s", status)
        with self._position_lock:
            start = self._position
            chunk = self._data[start : start + frames] if self._data is not None else np.zeros((0, 1))
            self._position = start + len(chunk)
        outdata[: len(chunk)] = chunk
        if len(chunk) < frames:
            outdata[len(chunk) :] = 0
            raise _sounddevice().CallbackStop

    def pause(self) -> bool:
        """Pause playback, keeping the position."""
        with self._control_lock:
            if not self.is_playing or self._stream is None:
                return False
            self._stream.stop()
            self.is_playing = False
            self._readout = self._current_time()
        return True

    def resume(self) -> bool:
        """Continue a paused track from its position."""
        with self._control_lock:
            if self.is_playing or self._stream is None:
                return False
            self._finished.clear()
            self._stream.start()
            self.is_playing = True
        return True

    def stop(self) -> None:
        """Stop playback, release the stream and rewind to 0."""
        with self._control_lock:
            self._release_stream()
            self._data = None
            self._samplerate = 0
            self.path = None
            self.duration = 0.0
            with self._position_lock:
                self._position = 0
            self.is_playing = False
            self._readout = 0.0

    def seek(self, seconds: float) -> float:
        """Move to ``seconds``, clamped to the track. Returns the new position.

        Does nothing when no track is loaded.
        """
        with self._control_lock:
            if self._data is None or not self._samplerate:
                return self._readout
            target = min(max(seconds, 0.0), self.duration)
            with self._position_lock:
                self._position = min(int(target * self._samplerate), len(self._data))
            if not self.is_playing:
                self._readout = target
        return target

    def poll(self) -> PlaybackStatus:
        """Current readout. Stops automatically at the end of the track."""
        if self.is_playing:
            current = self._current_time()
            if self._finished.is_set() or current >= self.duration - END_TOLERANCE_SECONDS:
                self.stop()
            else:
                self._readout = current
        return PlaybackStatus(
            is_playing=self.is_playing,
            current_time=round(self._readout, 2),
            duration=round(self.duration, 2),
            error_message=self.error_message,
        )

    def _current_time(self) -> float:
        if not self._samplerate:
            return 0.0
        with self._position_lock:
            return self._position / self._samplerate

    def _release_stream(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        except _sounddevice().PortAudioError as e:
            logger.warning("Error closing playback stream: %s", e)
        finally:
            self._stream = None


_playback_controller: PlaybackController | None = None


def get_playback_controller() -> PlaybackController:
    """Get singleton playback controller instance."""
    global _playback_controller
    if _playback_controller is None:
        _playback_controller = PlaybackController()
    return _playback_controller
