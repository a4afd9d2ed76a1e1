from wagui.db.models import AppRow, Base, CopSessionRow, MessageRow, TranscriptOffsetRow
from wagui.db.session import init_db, make_engine, make_session_factory

__all__ = [
    "AppRow",
    "Base",
    "CopSessionRow",
    "MessageRow",
    "TranscriptOffsetRow",
    "init_db",
    "make_engine",
    "make_session_factory",
]
