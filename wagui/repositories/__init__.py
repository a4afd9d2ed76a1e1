"""Repository layer: Protocol interfaces and SQLAlchemy implementations."""

from wagui.repositories.app_repo import AppRepository, SQLAlchemyAppRepository
from wagui.repositories.cop_repo import CopSessionRepository, SQLAlchemyCopSessionRepository
from wagui.repositories.message_repo import MessageRepository, SQLAlchemyMessageRepository
from wagui.repositories.transcript_repo import SQLAlchemyTranscriptOffsetRepository, TranscriptOffsetRepository

__all__ = [
    "AppRepository", "SQLAlchemyAppRepository",
    "CopSessionRepository", "SQLAlchemyCopSessionRepository",
    "MessageRepository", "SQLAlchemyMessageRepository",
    "TranscriptOffsetRepository", "SQLAlchemyTranscriptOffsetRepository",
]
