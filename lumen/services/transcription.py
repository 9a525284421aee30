"""Transcription service using faster-whisper."""

import logging
import threading
import time
from pathlib import Path

import numpy as np

from lumen.config import get_settings

logger = logging.getLogger("lumen")


class TranscriptionService:
    """Handles on-device speech-to-text using faster-whisper."""

    def __init__(self) -> None:
        self._model = None
        self._lock = threading.Lock()

    def _get_model(self):
        """Lazy-load the whisper model."""
        if self._model is None:
            from faster_whisper import WhisperModel

            settings = get_settings()
            logger.info("Loading Whisper model '%s'...", settings.WHISPER_MODEL_SIZE)
            self._model = WhisperModel(settings.WHISPER_MODEL_SIZE, device="cpu", compute_type="int8")
        return self._model

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def transcribe(self, audio: np.ndarray | str | Path) -> str:
        """Transcribe a 16 kHz mono float32 buffer or an audio file path to plain text."""
        if isinstance(audio, np.ndarray):
            if audio.size == 0:
                return ""
            source = np.ascontiguousarray(audio.reshape(-1), dtype=np.float32)
        else:
            source = str(audio)

        settings = get_settings()
        try:
            start_time = time.time()
            # One model, one decode at a time: the recorder's partial thread and
            # request handlers share it.
            with self._lock:
                model = self._get_model()
                segments_iter, _info = model.transcribe(
                    source,
                    beam_size=5,
                    language=settings.WHISPER_LANGUAGE,
                    vad_filter=True,
                )
                segments_list = list(segments_iter)
            processing_time = time.time() - start_time
        except Exception as e:
            raise RuntimeError(f"Transcription failed: {e}") from e

        text = " ".join(seg.text.strip() for seg in segments_list if seg.text.strip())
        logger.debug("Transcribed %d segments in %.2fs", len(segments_list), processing_time)
        return text


_transcription_service: TranscriptionService | None = None


def get_transcription_service() -> TranscriptionService:
    """Get singleton transcription service instance."""
    global _transcription_service
    if _transcription_service is None:
        _transcription_service = TranscriptionService()
    return _transcription_service
