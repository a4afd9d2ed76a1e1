"""Transcript tail-follower: parsing, offsets, rotation and duplicates."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

import pytest

from wagui.core.eventbus import Broadcaster
from wagui.services.transcript import (
    TranscriptFollower,
    find_latest_transcript,
    get_transcript_dir,
    parse_transcript_entry,
    read_new_entries,
)

APP = "shop"
APP_ROOT = "/home/dev/src/shop.web"


def _entry(uuid: str, text: str = "hi", type: str = "user", timestamp: str = "2024-05-01T10:00:00.000Z") -> dict:
    return {"type": type, "uuid": uuid, "timestamp": timestamp, "message": {"content": text}}


def _append(path: Path, *lines: str) -> None:
    with path.open("a", encoding="utf-8") as fh:
        for line in lines:
            fh.write(line)


@pytest.fixture
def transcript_dir(transcripts_root: Path) -> Path:
    directory = get_transcript_dir(APP_ROOT, transcripts_root)
    directory.mkdir(parents=True)
    return directory


class TestHelpers:
    def test_dir_encoding_replaces_separators_and_dots(self, tmp_path):
        assert get_transcript_dir("/home/dev/src/shop.web", tmp_path) == tmp_path / "-home-dev-src-shop-web"

    def test_latest_transcript_by_mtime(self, tmp_path):
        older, newer = tmp_path / "a.jsonl", tmp_path / "b.jsonl"
        older.write_text("")
        newer.write_text("")
        (tmp_path / "notes.txt").write_text("")
        os.utime(older, (2_000_000_000, 2_000_000_000))
        os.utime(newer, (1_000_000_000, 1_000_000_000))

        assert find_latest_transcript(tmp_path) == older
        assert find_latest_transcript(tmp_path / "missing") is None

    def test_parse_string_and_block_content(self):
        msg = parse_transcript_entry(_entry("u1", "hello"), APP)
        assert msg.role == "user"
        assert msg.type == "chat"
        assert msg.timestamp == 1714557600000
        assert msg.header.context == "From transcript"
        assert msg.header.mode is None
        assert msg.metadata.source == "transcript"

        blocks = _entry("u2", type="assistant")
        blocks["message"]["content"] = [
            {"type": "text", "text": "one"},
            {"type": "tool_use", "name": "Bash"},
            {"type": "text", "text": "two"},
        ]
        msg = parse_transcript_entry(blocks, APP)
        assert msg.role == "dev"
        assert msg.content == "one\ntwo"

    @pytest.mark.parametrize(
        "entry",
        [
            {"type": "summary", "uuid": "x", "timestamp": "2024-05-01T10:00:00Z", "message": {"content": "s"}},
            {"type": "user", "uuid": "x", "timestamp": "2024-05-01T10:00:00Z"},
            {"type": "user", "uuid": "x", "timestamp": "2024-05-01T10:00:00Z", "message": {"content": ""}},
            {"type": "assistant", "uuid": "x", "timestamp": "2024-05-01T10:00:00Z",
             "message": {"content": [{"type": "tool_use"}]}},
            {"type": "user", "timestamp": "2024-05-01T10:00:00Z", "message": {"content": "no id"}},
            {"type": "user", "uuid": "x", "timestamp": "yesterday", "message": {"content": "bad time"}},
        ],
    )
    def test_parse_skips_unusable_entries(self, entry):
        assert parse_transcript_entry(entry, APP) is None

    def test_read_new_entries_skips_garbage_and_advances_to_size(self, tmp_path):
        path = tmp_path / "t.jsonl"
        content = json.dumps(_entry("a")) + "\nnot json\n[1, 2]\n" + '{"type": "user", "uu'
        path.write_text(content, encoding="utf-8")

        entries, offset = read_new_entries(path, 0)
        assert [e["uuid"] for e in entries] == ["a"]
        assert offset == len(content.encode("utf-8"))

        assert read_new_entries(path, offset) == ([], offset)
        assert read_new_entries(tmp_path / "gone.jsonl", 7) == ([], 7)


@pytest.mark.asyncio
class TestFollower:
    async def test_ingests_new_lines_once(self, store, transcripts_root, transcript_dir):
        bus = Broadcaster()
        sub = bus.subscribe()
        follower = TranscriptFollower(store, bus, transcripts_root)
        path = transcript_dir / "session.jsonl"
        _append(path, json.dumps(_entry("u1", "first")) + "\n")

        assert await follower.poll_once(APP, APP_ROOT) == 1
        first_offset = (await store.get_transcript_offset(APP)).byte_offset
        assert first_offset == path.stat().st_size

        _append(path, json.dumps(_entry("u2", "second", type="assistant")) + "\n")
        assert await follower.poll_once(APP, APP_ROOT) == 1
        assert await follower.poll_once(APP, APP_ROOT) == 0

        offset = await store.get_transcript_offset(APP)
        assert offset.byte_offset > first_offset
        assert [m.content for m in await store.list()] == ["first", "second"]
        assert (await sub.get(timeout=1)).data["id"] == "u1"
        assert (await sub.get(timeout=1)).data["id"] == "u2"

    async def test_reingestion_after_offset_loss_is_idempotent(self, store, transcripts_root, transcript_dir):
        follower = TranscriptFollower(store, Broadcaster(), transcripts_root)
        path = transcript_dir / "session.jsonl"
        _append(path, json.dumps(_entry("u1")) + "\n", json.dumps(_entry("u2")) + "\n")
        await follower.poll_once(APP, APP_ROOT)

        await store.set_transcript_offset(APP, str(path), 0)
        assert await follower.poll_once(APP, APP_ROOT) == 0
        assert len(await store.list()) == 2

    async def test_rotation_resets_offset(self, store, transcripts_root, transcript_dir):
        follower = TranscriptFollower(store, Broadcaster(), transcripts_root)
        old = transcript_dir / "old.jsonl"
        _append(old, json.dumps(_entry("u1")) + "\n" + json.dumps(_entry("u2")) + "\n")
        os.utime(old, (1_000_000_000, 1_000_000_000))
        await follower.poll_once(APP, APP_ROOT)

        new = transcript_dir / "new.jsonl"
        _append(new, json.dumps(_entry("u3")) + "\n")
        assert await follower.poll_once(APP, APP_ROOT) == 1

        offset = await store.get_transcript_offset(APP)
        assert offset.file_path == str(new)
        assert offset.byte_offset == new.stat().st_size

    async def test_no_transcript_directory_is_a_quiet_tick(self, store, transcripts_root):
        follower = TranscriptFollower(store, Broadcaster(), transcripts_root)
        assert await follower.poll_once(APP, "/nowhere") == 0
        assert await store.get_transcript_offset(APP) is None

    async def test_start_follows_and_stop_is_idempotent(self, store, transcripts_root, transcript_dir):
        bus = Broadcaster()
        sub = bus.subscribe()
        follower = TranscriptFollower(store, bus, transcripts_root, interval_seconds=0.01)
        _append(transcript_dir / "s.jsonl", json.dumps(_entry("u1")) + "\n")

        await follower.start(APP, APP_ROOT)
        assert follower.current_app == APP
        event = await sub.get(timeout=5)
        assert event is not None and event.data["id"] == "u1"

        await follower.stop()
        assert await store.get_by_id("u1") is not None
        await follower.stop()
        assert follower.current_app is None
        assert not follower.running

    async def test_start_replaces_previous_app(self, store, transcripts_root):
        follower = TranscriptFollower(store, Broadcaster(), transcripts_root, interval_seconds=0.01)
        await follower.start("one", "/src/one")
        await follower.start("two", "/src/two")
        assert follower.current_app == "two"
        assert follower.running
        await follower.stop()

    async def test_tick_errors_do_not_stop_the_loop(self, store, transcripts_root, monkeypatch):
        follower = TranscriptFollower(store, Broadcaster(), transcripts_root, interval_seconds=0.01)
        calls = 0

        async def flaky(app, app_root):
            nonlocal calls
            calls += 1
            raise RuntimeError("disk went away")

        monkeypatch.setattr(follower, "poll_once", flaky)
        await follower.start(APP, APP_ROOT)
        for _ in range(200):
            if calls >= 3:
                break
            await asyncio.sleep(0.01)
        assert follower.running
        await follower.stop()
        assert calls >= 3

    async def test_cancelling_the_caller_of_stop_propagates(self, store, transcripts_root, monkeypatch):
        follower = TranscriptFollower(store, Broadcaster(), transcripts_root, interval_seconds=0.01)
        in_tick = asyncio.Event()

        async def hang(app, app_root):
            in_tick.set()
            await asyncio.Event().wait()

        monkeypatch.setattr(follower, "poll_once", hang)
        await follower.start(APP, APP_ROOT)
        loop_task = follower._task
        await asyncio.wait_for(in_tick.wait(), timeout=5)

        stopper = asyncio.create_task(follower.stop())
        await asyncio.sleep(0.01)
        stopper.cancel()
        with pytest.raises(asyncio.CancelledError):
            await stopper
        assert loop_task.cancelled()
