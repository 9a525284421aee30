"""Microphone recorder with live partial transcription."""

import logging
import threading
import time
from pathlib import Path

import numpy as np
import soundfile as sf

from lumen.config import get_settings
from lumen.services.notes import RecordingResult
from lumen.services.transcription import TranscriptionService, get_transcription_service

logger = logging.getLogger("lumen")

CHANNELS = 1
SUBTYPE = "PCM_16"
LEVEL_SCALE = 20.0


def _sounddevice():
    """Import sounddevice on first use; importing it requires the PortAudio library."""
    import sounddevice

    return sounddevice


def format_time(seconds: float) -> str:
    """Format seconds as MM:SS."""
    total = int(seconds)
    return f"{total // 60:02d}:{total % 60:02d}"


class Recorder:
    """Captures the microphone to a WAV file while keeping a live transcript.

    Audio blocks arrive on the sounddevice callback thread; a separate thread
    re-transcribes the buffer every ``partial_interval`` seconds.
    """

    def __init__(
        self,
        output_dir: str | Path | None = None,
        transcriber: TranscriptionService | None = None,
        sample_rate: int | None = None,
        partial_interval: float | None = None,
    ) -> None:
        settings = get_settings()
        self.output_dir = Path(output_dir or settings.RECORDINGS_DIR)
        self.transcriber = transcriber or get_transcription_service()
        self.sample_rate = sample_rate or settings.SAMPLE_RATE
        self.partial_interval = partial_interval or settings.PARTIAL_INTERVAL_SECONDS

        # The callback only ever takes _buffer_lock. Stopping a stream waits for a
        # running callback, so _control_lock must never be needed inside it.
        self._control_lock = threading.Lock()
        self._buffer_lock = threading.Lock()
        self._stream = None
        self._sndfile: sf.SoundFile | None = None
        self._file_path: Path | None = None
        self._blocks: list[np.ndarray] = []
        self._frames = 0
        self._partial_thread: threading.Thread | None = None
        self._stop_partials = threading.Event()

        self.is_recording = False
        self.is_paused = False
        self.live_transcription = ""
        self.audio_level = 0.0
        self._started_at: float | None = None
        self._paused_at: float | None = None
        self._paused_total = 0.0

    # -- capture --

    def start(self) -> bool:
        """Begin capture. Returns False if recording could not be started."""
        with self._control_lock:
            if self.is_recording:
                logger.info("Already recording.")
                return False

            self.output_dir.mkdir(parents=True, exist_ok=True)
            file_path = self.output_dir / f"recording-{time.time():.3f}.wav"
            try:
                sndfile = sf.SoundFile(
                    file_path,
                    mode="w",
                    samplerate=self.sample_rate,
                    channels=CHANNELS,
                    subtype=SUBTYPE,
                )
            except (sf.LibsndfileError, OSError) as e:
                logger.error("Could not create audio file for writing: %s", e)
                return False

            with self._buffer_lock:
                self._sndfile = sndfile
                self._file_path = file_path
                self._blocks = []
                self._frames = 0
            self.live_transcription = ""
            self.audio_level = 0.0

            try:
                sd = _sounddevice()
            except OSError as e:
                logger.error("Audio input unavailable: %s", e)
                self._abort_start()
                return False

            try:
                self._stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=CHANNELS,
                    dtype="float32",
                    callback=self._on_audio,
                    blocksize=0,
                )
                self._stream.start()
            except (sd.PortAudioError, ValueError) as e:
                logger.error("Could not start audio engine: %s", e)
                self._release_stream()
                self._abort_start()
                return False

            self.is_recording = True
            self.is_paused = False
            self._started_at = time.monotonic()
            self._paused_at = None
            self._paused_total = 0.0
            self._stop_partials.clear()
            self._partial_thread = threading.Thread(target=self._partial_loop, daemon=True)
            self._partial_thread.start()
            logger.info("Started recording to: %s", file_path)
            return True

    def _abort_start(self) -> None:
        file_path = self._close_file()
        if file_path is not None:
            file_path.unlink(missing_ok=True)

    def _on_audio(self, indata, frames, time_info, status) -> None:
        if status:
            logger.debug("Audio input status: %s", status)
        block = np.asarray(indata, dtype=np.float32).reshape(-1).copy()
        with self._buffer_lock:
            if self._sndfile is None:
                return
            self._sndfile.write(block)
            self._blocks.append(block)
            self._frames += block.size
        if block.size:
            self.audio_level = float(np.mean(np.abs(block))) * LEVEL_SCALE

    def _buffer(self) -> np.ndarray:
        with self._buffer_lock:
            if not self._blocks:
                return np.zeros(0, dtype=np.float32)
            return np.concatenate(self._blocks)

    def _partial_loop(self) -> None:
        transcribed_frames = 0
        while not self._stop_partials.wait(self.partial_interval):
            if self.is_paused or self._frames == transcribed_frames:
                continue
            transcribed_frames = self._frames
            try:
                text = self.transcriber.transcribe(self._buffer())
            except RuntimeError as e:
                logger.warning("Speech recognition error: %s", e)
                continue
            if text and not self._stop_partials.is_set():
                self.live_transcription = text

    # -- pause / resume --

    def pause(self) -> bool:
        """Suspend capture without resetting the file or transcript."""
        with self._control_lock:
            if not self.is_recording or self.is_paused or self._stream is None:
                logger.info("Audio engine is not running or not initialized.")
                return False
            self._stream.stop()
            self.is_paused = True
            self._paused_at = time.monotonic()
            self.audio_level = 0.0
        logger.info("Audio engine paused.")
        return True

    def resume(self) -> bool:
        """Resume a paused capture."""
        with self._control_lock:
            if not self.is_recording or not self.is_paused or self._stream is None:
                logger.info("Audio engine is not paused. Cannot resume.")
                return False
            try:
                self._stream.start()
            except _sounddevice().PortAudioError as e:
                logger.error("Error resuming audio engine: %s", e)
                return False
            self.is_paused = False
            if self._paused_at is not None:
                self._paused_total += time.monotonic() - self._paused_at
            self._paused_at = None
        logger.info("Audio engine resumed.")
        return True

    # -- stop --

    def stop(self) -> RecordingResult | None:
        """Halt capture and return the audio file with the final transcript.

        Returns None when nothing was recording; only one caller gets the result.
        """
        with self._control_lock:
            if not self.is_recording:
                logger.info("Not recording.")
                return None

            self._release_stream()
            self._stop_partials.set()
            if self._partial_thread is not None:
                self._partial_thread.join(timeout=30)
                self._partial_thread = None

            audio = self._buffer()
            with self._buffer_lock:
                frames = self._frames
            file_path = self._close_file()

            transcription = self.live_transcription
            if audio.size:
                try:
                    transcription = self.transcriber.transcribe(audio) or transcription
                except RuntimeError as e:
                    logger.warning("Final transcription failed, keeping partial result: %s", e)

            audio_path: str | None = str(file_path) if file_path else None
            if frames == 0 and file_path is not None:
                file_path.unlink(missing_ok=True)
                audio_path = None

            with self._buffer_lock:
                self._blocks = []
                self._frames = 0
            self.is_recording = False
            self.is_paused = False
            self.audio_level = 0.0
            self.live_transcription = ""

        logger.info("Stopped recording. File at: %s", audio_path or "No path")
        return RecordingResult(audio_path=audio_path, transcription=transcription)

    def _release_stream(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        except _sounddevice().PortAudioError as e:
            logger.warning("Error closing audio stream: %s", e)
        finally:
            self._stream = None

    def _close_file(self) -> Path | None:
        with self._buffer_lock:
            sndfile, file_path = self._sndfile, self._file_path
            self._sndfile = None
            self._file_path = None
        if sndfile is not None:
            sndfile.flush()
            sndfile.close()
        return file_path

    # -- status --

    @property
    def elapsed_seconds(self) -> float:
        if self._started_at is None or not self.is_recording:
            return 0.0
        paused = self._paused_total
        if self._paused_at is not None:
            paused += time.monotonic() - self._paused_at
        return max(0.0, time.monotonic() - self._started_at - paused)

    def status(self) -> dict:
        elapsed = self.elapsed_seconds
        return {
            "is_recording": self.is_recording,
            "is_paused": self.is_paused,
            "elapsed_seconds": round(elapsed, 1),
            "elapsed": format_time(elapsed),
            "partial_transcript": self.live_transcription,
            "level": round(self.audio_level, 3),
        }

    def terminate(self) -> None:
        """Stop any running capture on shutdown."""
        if self.is_recording:
            self.stop()


_recorder: Recorder | None = None


def get_recorder() -> Recorder:
    """Get singleton recorder instance."""
    global _recorder
    if _recorder is None:
        _recorder = Recorder()
    return _recorder
