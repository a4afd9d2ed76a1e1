"""SQLAlchemy ORM models: messages, apps, transcript offsets, cop sessions."""

from __future__ import annotations

from sqlalchemy import JSON, BigInteger, Boolean, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# 1. messages
# ---------------------------------------------------------------------------
class MessageRow(Base):
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # header snapshot, flattened
    mode: Mapped[str | None] = mapped_column(String(8), nullable=True)
    app: Mapped[str] = mapped_column(Text, nullable=False)
    branch: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON(), nullable=True)

    __table_args__ = (Index("idx_messages_timestamp", "timestamp"),)


# ---------------------------------------------------------------------------
# 2. apps
# ---------------------------------------------------------------------------
class AppRow(Base):
    __tablename__ = "apps"

    name: Mapped[str] = mapped_column(Text, primary_key=True)
    app_root: Mapped[str] = mapped_column(Text, nullable=False)
    repo_root: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_used: Mapped[int] = mapped_column(BigInteger, nullable=False)


# ---------------------------------------------------------------------------
# 3. transcript_offsets
# ---------------------------------------------------------------------------
class TranscriptOffsetRow(Base):
    __tablename__ = "transcript_offsets"

    app: Mapped[str] = mapped_column(Text, primary_key=True)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    byte_offset: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


# ---------------------------------------------------------------------------
# 4. cop_sessions
# ---------------------------------------------------------------------------
class CopSessionRow(Base):
    __tablename__ = "cop_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    app: Mapped[str] = mapped_column(Text, nullable=False)
    pbi: Mapped[str] = mapped_column(Text, nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    failures: Mapped[list | None] = mapped_column(JSON(), nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (Index("idx_cop_sessions_app_pbi", "app", "pbi"),)
