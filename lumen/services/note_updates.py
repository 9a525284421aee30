"""Asynchronous note updates.

Completion calls run on a worker pool and never touch the database. Each worker posts a
``TitleResolved`` event; one owner thread drains the queue and is the only place where
background results are written to notes.
"""

import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from lumen.database import SessionLocal
from lumen.services.completion import CompletionClient, get_completion_client
from lumen.services.notes import get_note_service

logger = logging.getLogger("lumen")

# Tests point this at their own session.
_session_factory = None

_STOP = object()


@dataclass(frozen=True)
class TitleResolved:
    """A generated (or fallback) title ready to be applied to a note."""

    note_id: str
    title: str


class NoteUpdater:
    """Single owner of asynchronous note mutations."""

    def __init__(self, max_workers: int = 2) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="lumen-title")
        self._events: queue.Queue = queue.Queue()
        self._futures: list[Future] = []
        self._futures_lock = threading.Lock()
        self._owner = threading.Thread(target=self._run_owner, name="lumen-note-owner", daemon=True)
        self._owner.start()
        self._closed = False

    def request_title(
        self,
        note_id: str,
        text: str,
        fallback: str,
        completion: CompletionClient | None = None,
    ) -> Future:
        """Generate a title for ``note_id`` in the background."""
        if self._closed:
            raise RuntimeError("Note updater is shut down")
        client = completion or get_completion_client()
        future = self._executor.submit(self._resolve_title, note_id, text, fallback, client)
        with self._futures_lock:
            self._futures = [f for f in self._futures if not f.done()]
            self._futures.append(future)
        return future

    def _resolve_title(self, note_id: str, text: str, fallback: str, completion: CompletionClient) -> None:
        try:
            title = completion.generate_title(text)
        except Exception as e:
            logger.warning("Title generation failed for note %s: %s", note_id, e)
            title = ""
        self._events.put(TitleResolved(note_id=note_id, title=title or fallback))

    def _run_owner(self) -> None:
        while True:
            event = self._events.get()
            try:
                if event is _STOP:
                    return
                self._apply(event)
            except Exception:
                logger.exception("Failed to apply %r", event)
            finally:
                self._events.task_done()

    def _apply(self, event: TitleResolved) -> None:
        db = _session_factory() if _session_factory else SessionLocal()
        try:
            service = get_note_service()
            note = service.get_note(db, event.note_id)
            if note is None:
                logger.info("Note %s was deleted before its title arrived; dropping update", event.note_id)
                return
            service.update_note(db, note, title=event.title)
            logger.info("Note %s titled %r", event.note_id, event.title)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to save title for note %s: %s", event.note_id, e)
        finally:
            if _session_factory is None:
                db.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def join(self, timeout: float | None = None) -> None:
        """Block until every requested update has been applied."""
        with self._futures_lock:
            pending = list(self._futures)
        wait(pending, timeout=timeout)
        self._events.join()

    def shutdown(self) -> None:
        """Finish outstanding work, then stop the pool and the owner thread."""
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        self._events.put(_STOP)
        self._owner.join(timeout=10)


_note_updater: NoteUpdater | None = None


def get_note_updater() -> NoteUpdater:
    """Get singleton note updater instance."""
    global _note_updater
    if _note_updater is None or _note_updater.closed:
        _note_updater = NoteUpdater()
    return _note_updater
