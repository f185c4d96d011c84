"""Index of local Codex sessions stored as JSONL rollouts under ~/.codex/sessions."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SESSIONS_DIR = Path.home() / ".codex" / "sessions"
DEFAULT_LIMIT = 10
MAX_LIMIT = 500
HEAD_BYTES = 24 * 1024
TAIL_BYTES = 64 * 1024
DISPLAY_NAME_MAX = 96

_SESSION_ID = re.compile(r"^[0-9a-f][0-9a-f-]{15,}$", re.IGNORECASE)
_FILE_ID = re.compile(r"([0-9a-f]{8,}-[0-9a-f-]{10,})\.jsonl$", re.IGNORECASE)


@dataclass(frozen=True)
class CodexSession:
    """A session discovered on disk."""

    id: str
    timestamp: str
    cwd: str
    display_name: str
    file_path: str


def is_valid_session_id(value: object) -> bool:
    if not value:
        return False
    return bool(_SESSION_ID.match(str(value).strip()))


def normalize_limit(value: object) -> int:
    try:
        limit = int(str(value or DEFAULT_LIMIT))
    except ValueError:
        return DEFAULT_LIMIT
    if limit <= 0:
        return DEFAULT_LIMIT
    return min(limit, MAX_LIMIT)


def _normalize_cwd(value: object) -> str:
    if not value:
        return ""
    return os.path.abspath(str(value))


def _cwd_matches(session_cwd: str, target_cwd: str) -> bool:
    if not target_cwd:
        return True
    normalized = _normalize_cwd(session_cwd)
    if not normalized:
        return False
    return normalized == target_cwd or normalized.startswith(target_cwd + os.sep)


def _read_head(path: Path, size: int = HEAD_BYTES) -> str:
    with open(path, "rb") as f:
        return f.read(size).decode(errors="replace")


def _read_tail(path: Path, size: int = TAIL_BYTES) -> str:
    with open(path, "rb") as f:
        f.seek(0, os.SEEK_END)
        end = f.tell()
        f.seek(max(0, end - size))
        return f.read().decode(errors="replace")


def _iter_records(content: str) -> list[dict[str, Any]]:
    records = []
    for line in content.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(record, dict):
            records.append(record)
    return records


def _text_from_content(value: Any) -> str:
    if not value:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        parts = [_text_from_content(item) for item in value]
        return " ".join(p for p in parts if p).strip()
    if not isinstance(value, dict):
        return ""
    for key in ("text", "output_text"):
        text = value.get(key)
        if isinstance(text, str) and text.strip():
            return text.strip()
    if value.get("content"):
        return _text_from_content(value["content"])
    return ""


def _message_text(record: dict[str, Any]) -> str:
    if str(record.get("type") or "").lower() == "session_meta":
        return ""
    for candidate in (record.get("item"), record.get("payload"), record.get("data"), record):
        text = _text_from_content(candidate)
        if text:
            return text
    return ""


def _display_name(records: list[dict[str, Any]]) -> str:
    for record in records:
        compact = " ".join(_message_text(record).split())
        if not compact:
            continue
        if len(compact) <= DISPLAY_NAME_MAX:
            return compact
        return compact[: DISPLAY_NAME_MAX - 3] + "..."
    return ""


def _session_from_head(path: Path, head: str, fallback_timestamp: str) -> CodexSession | None:
    records = _iter_records(head)
    meta: dict[str, Any] = {}
    for record in records:
        if record.get("type") == "session_meta" and isinstance(record.get("payload"), dict):
            meta = record["payload"]
            break

    session_id = str(meta.get("id") or "")
    if not session_id:
        match = _FILE_ID.search(path.name)
        session_id = match.group(1) if match else ""
    if not is_valid_session_id(session_id):
        return None

    return CodexSession(
        id=session_id,
        timestamp=str(meta.get("timestamp") or fallback_timestamp),
        cwd=str(meta.get("cwd") or ""),
        display_name=_display_name(records),
        file_path=str(path),
    )


def list_local_sessions(
    sessions_dir: Path | str | None = None,
    limit: int = DEFAULT_LIMIT,
    cwd: str = "",
) -> list[CodexSession]:
    """List local Codex sessions, newest first.

    Rollout paths embed the date, so a reverse path sort is newest-first.
    Unreadable or malformed files are skipped.
    """
    root = Path(sessions_dir) if sessions_dir else DEFAULT_SESSIONS_DIR
    limit = normalize_limit(limit)
    target_cwd = _normalize_cwd(cwd)
    if not root.is_dir():
        return []

    files = sorted((str(p) for p in root.rglob("*.jsonl") if p.is_file()), reverse=True)
    sessions: list[CodexSession] = []
    for file_path in files:
        if len(sessions) >= limit:
            break
        path = Path(file_path)
        try:
            mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            session = _session_from_head(path, _read_head(path), mtime.isoformat())
        except OSError:
            logger.debug("Skipping unreadable session file %s", path)
            continue
        if session is None or not _cwd_matches(session.cwd, target_cwd):
            continue
        sessions.append(session)
    return sessions


def get_last_message(
    session_id: str,
    sessions_dir: Path | str | None = None,
    file_path: str = "",
) -> str:
    """Return the latest message text recorded for a session, or ''."""
    session_id = str(session_id or "").strip()
    if not is_valid_session_id(session_id):
        return ""

    if not file_path:
        found = next(
            (
                s
                for s in list_local_sessions(sessions_dir, limit=MAX_LIMIT)
                if s.id == session_id
            ),
            None,
        )
        file_path = found.file_path if found else ""
    if not file_path:
        return ""

    try:
        tail = _read_tail(Path(file_path))
    except OSError:
        logger.debug("Could not read tail of %s", file_path)
        return ""
    for record in reversed(_iter_records(tail)):
        text = _message_text(record)
        if text:
            return text
    return ""
