"""API routers."""

from lumen.routers.chat import router as chat_router
from lumen.routers.documents import router as documents_router
from lumen.routers.notes import router as notes_router
from lumen.routers.playback import router as playback_router
from lumen.routers.profile import router as profile_router
from lumen.routers.recording import router as recording_router

__all__ = [
    "profile_router",
    "notes_router",
    "recording_router",
    "chat_router",
    "documents_router",
    "playback_router",
]
