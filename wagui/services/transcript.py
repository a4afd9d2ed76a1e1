"""Tail the assistant's JSONL transcript of the active app into the message log.

Transcript files live in ``<transcripts_root>/<encoded app root>/*.jsonl``
and are appended to by another process while we read them. Each tick
reads only the bytes added since the stored offset.

Offset policy: the stored offset always advances to the file size that was
read, even when the last line was still being written and failed to parse.
A line whose tail arrives after that read is lost.
"""

from __future__ import annotations

import asyncio
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from wagui.core.eventbus import Broadcaster
from wagui.core.logging import get_logger
from wagui.schemas import DEFAULT_BRANCH, TRANSCRIPT_CONTEXT, Header, Message, MessageMetadata
from wagui.services.store import MessageStore

logger = get_logger(__name__)

TRANSCRIPT_SUFFIX = ".jsonl"
STOP_GRACE_SECONDS = 5.0

_ROLE_BY_ENTRY_TYPE = {"user": "user", "assistant": "dev"}

_PATH_MARKER_RE = re.compile(r"[/\\.]")


def get_transcript_dir(app_root: str, transcripts_root: str | Path) -> Path:
    """Directory the assistant host writes ``app_root``'s transcripts to.

    Path separators and dots become ``-``, the host's own naming scheme.
    """
    encoded = _PATH_MARKER_RE.sub("-", app_root)
    return Path(transcripts_root) / encoded


def find_latest_transcript(directory: str | Path) -> Path | None:
    directory = Path(directory)
    if not directory.is_dir():
        return None
    candidates = []
    for entry in directory.iterdir():
        if entry.name.endswith(TRANSCRIPT_SUFFIX) and entry.is_file():
            try:
                candidates.append((entry.stat().st_mtime_ns, entry))
            except FileNotFoundError:
                continue
    if not candidates:
        return None
    return max(candidates, key=lambda c: c[0])[1]


def _extract_text(content: Any) -> str | None:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        blocks = [b for b in content if isinstance(b, dict) and b.get("type") == "text"]
        if not blocks:
            return None
        return "\n".join(str(b.get("text") or "") for b in blocks)
    return None


def _parse_timestamp_ms(value: Any) -> int | None:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        # Transcript timestamps are UTC.
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def parse_transcript_entry(entry: dict[str, Any], app: str) -> Message | None:
    """Message for a user/assistant entry with text content, else None."""
    role = _ROLE_BY_ENTRY_TYPE.get(entry.get("type"))
    if role is None:
        return None

    message = entry.get("message")
    if not isinstance(message, dict) or not message.get("content"):
        return None

    text = _extract_text(message["content"])
    if not text:
        return None

    entry_id = entry.get("uuid")
    timestamp = _parse_timestamp_ms(entry.get("timestamp"))
    if not entry_id or timestamp is None:
        return None

    return Message(
        id=str(entry_id),
        timestamp=timestamp,
        header=Header(mode=None, app=app, branch=DEFAULT_BRANCH, context=TRANSCRIPT_CONTEXT),
        role=role,
        type="chat",
        content=text,
        metadata=MessageMetadata(source="transcript"),
    )


def read_new_entries(file_path: str | Path, offset: int) -> tuple[list[dict[str, Any]], int]:
    """JSON objects in bytes ``[offset, size)`` and the new offset (``size``).

    Lines that do not parse as a JSON object are skipped.
    """
    try:
        handle = open(file_path, "rb")
    except OSError:
        return [], offset

    with handle:
        size = handle.seek(0, 2)
        if size <= offset:
            return [], offset
        handle.seek(offset)
        chunk = handle.read(size - offset)

    entries: list[dict[str, Any]] = []
    for line in chunk.decode("utf-8", errors="replace").split("\n"):
        if not line.strip():
            continue
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError:
            # Partial or corrupt line
            continue
        if isinstance(parsed, dict):
            entries.append(parsed)

    return entries, offset + len(chunk)


class TranscriptFollower:
    """Polls one app's newest transcript; at most one app is followed at a time."""

    def __init__(
        self,
        store: MessageStore,
        broadcaster: Broadcaster,
        transcripts_root: str | Path,
        interval_seconds: float = 0.5,
    ):
        self._store = store
        self._broadcaster = broadcaster
        self._transcripts_root = Path(transcripts_root)
        self._interval = interval_seconds
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self._app: str | None = None
        self._app_root: str | None = None

    @property
    def current_app(self) -> str | None:
        return self._app

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, app: str, app_root: str) -> None:
        await self.stop()
        self._app = app
        self._app_root = app_root
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_loop(), name=f"transcript-follower:{app}")
        logger.info(
            "Transcript follower started",
            data={"app": app, "dir": str(get_transcript_dir(app_root, self._transcripts_root))},
        )

    async def stop(self) -> None:
        task, self._task = self._task, None
        app = self._app
        self._app = None
        self._app_root = None
        if task is None:
            return
        self._stop_event.set()
        # Let an in-flight tick finish its store writes; cancel only if it hangs.
        try:
            await asyncio.wait_for(task, timeout=STOP_GRACE_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("Transcript follower cancelled after grace period", data={"app": app})
        logger.info("Transcript follower stopped", data={"app": app})

    async def _run_loop(self) -> None:
        app, app_root = self._app, self._app_root
        while not self._stop_event.is_set():
            try:
                await self.poll_once(app, app_root)
            except Exception as exc:
                logger.error("Transcript poll failed", data={"app": app, "error": str(exc)}, exc_info=True)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                continue

    async def poll_once(self, app: str, app_root: str) -> int:
        """One tick. Returns how many new messages were forwarded."""
        file_path = find_latest_transcript(get_transcript_dir(app_root, self._transcripts_root))
        if file_path is None:
            return 0

        stored = await self._store.get_transcript_offset(app)
        if stored is not None and stored.file_path == str(file_path):
            current_offset = stored.byte_offset
        else:
            current_offset = 0
            if stored is not None:
                logger.info(
                    "Transcript rotated",
                    data={"app": app, "from": stored.file_path, "to": str(file_path)},
                )
                await self._store.set_transcript_offset(app, str(file_path), 0)

        entries, new_offset = read_new_entries(file_path, current_offset)

        forwarded = 0
        for entry in entries:
            message = parse_transcript_entry(entry, app)
            if message is None:
                continue
            if await self._store.get_by_id(message.id) is not None:
                continue
            await self._store.append(message)
            self._broadcaster.publish("message", message.to_wire())
            forwarded += 1

        if stored is None or new_offset != current_offset or stored.file_path != str(file_path):
            await self._store.set_transcript_offset(app, str(file_path), new_offset)

        if forwarded:
            logger.debug("Transcript messages forwarded", data={"app": app, "count": forwarded})
        return forwarded
