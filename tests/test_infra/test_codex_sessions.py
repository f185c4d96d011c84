"""Tests for the local Codex session index."""

import json

import pytest

from agentrelay.infra import codex_sessions
from agentrelay.infra.codex_sessions import (
    get_last_message,
    is_valid_session_id,
    list_local_sessions,
    normalize_limit,
)

OLD_ID = "019a0000-1111-7222-8333-444455556666"
NEW_ID = "019b0000-aaaa-7bbb-8ccc-ddddeeeeffff"


def _write_rollout(root, day, session_id, cwd, messages):
    folder = root / "2025" / "01" / day
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / f"rollout-2025-01-{day}T10-00-00-{session_id}.jsonl"
    records = [{
        "type": "session_meta",
        "payload": {"id": session_id, "timestamp": f"2025-01-{day}T10:00:00Z", "cwd": cwd},
    }]
    for text in messages:
        records.append({
            "type": "response_item",
            "payload": {"type": "message", "content": [{"type": "input_text", "text": text}]},
        })
    path.write_text("\n".join(json.dumps(r) for r in records) + "\n")
    return path


@pytest.fixture
def sessions_dir(tmp_path):
    root = tmp_path / "sessions"
    _write_rollout(root, "01", OLD_ID, "/work/alpha", ["first question", "old answer"])
    _write_rollout(root, "02", NEW_ID, "/work/beta/sub", ["fix   the\nbuild", "done"])
    return root


class TestSessionIds:
    def test_valid(self):
        assert is_valid_session_id(NEW_ID)
        assert is_valid_session_id(NEW_ID.upper())

    def test_invalid(self):
        assert not is_valid_session_id("")
        assert not is_valid_session_id("abc")
        assert not is_valid_session_id("../../etc/passwd")

    def test_normalize_limit(self):
        assert normalize_limit(None) == codex_sessions.DEFAULT_LIMIT
        assert normalize_limit("x") == codex_sessions.DEFAULT_LIMIT
        assert normalize_limit(-3) == codex_sessions.DEFAULT_LIMIT
        assert normalize_limit(5) == 5
        assert normalize_limit(10_000) == codex_sessions.MAX_LIMIT


class TestListLocalSessions:
    def test_newest_first(self, sessions_dir):
        sessions = list_local_sessions(sessions_dir)
        assert [s.id for s in sessions] == [NEW_ID, OLD_ID]
        assert sessions[0].cwd == "/work/beta/sub"
        assert sessions[0].timestamp == "2025-01-02T10:00:00Z"
        assert sessions[0].display_name == "fix the build"

    def test_limit(self, sessions_dir):
        assert len(list_local_sessions(sessions_dir, limit=1)) == 1

    def test_cwd_filter_matches_subdirectories(self, sessions_dir):
        sessions = list_local_sessions(sessions_dir, cwd="/work/beta")
        assert [s.id for s in sessions] == [NEW_ID]
        assert list_local_sessions(sessions_dir, cwd="/work/bet") == []

    def test_missing_dir(self, tmp_path):
        assert list_local_sessions(tmp_path / "nope") == []

    def test_malformed_file_falls_back_to_filename(self, tmp_path):
        root = tmp_path / "sessions"
        root.mkdir()
        (root / f"rollout-2025-02-01T00-00-00-{NEW_ID}.jsonl").write_text("garbage\n")
        (root / "notes.jsonl").write_text("garbage\n")
        sessions = list_local_sessions(root)
        assert [s.id for s in sessions] == [NEW_ID]
        assert sessions[0].cwd == ""


class TestGetLastMessage:
    def test_by_id(self, sessions_dir):
        assert get_last_message(OLD_ID, sessions_dir) == "old answer"

    def test_by_path(self, sessions_dir):
        path = next(sessions_dir.rglob(f"*{NEW_ID}.jsonl"))
        assert get_last_message(NEW_ID, file_path=str(path)) == "done"

    def test_unknown(self, sessions_dir):
        assert get_last_message("019c0000-0000-0000-0000-000000000000", sessions_dir) == ""
        assert get_last_message("bad id", sessions_dir) == ""
