"""Prompt assembly: timestamps, attachments, script context, file instructions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TIME_ZONE = "UTC"


def _zone(time_zone: str) -> tzinfo:
    try:
        return ZoneInfo(time_zone or DEFAULT_TIME_ZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown time zone %r, using UTC", time_zone)
        return timezone.utc


def prefix_text_with_timestamp(
    text: str, time_zone: str = DEFAULT_TIME_ZONE, now: datetime | None = None
) -> str:
    """Prefix text with the current wall-clock time in ``time_zone``."""
    moment = (now or datetime.now(timezone.utc)).astimezone(_zone(time_zone))
    stamp = f"[{moment:%Y-%m-%d %H:%M:%S} {time_zone or DEFAULT_TIME_ZONE}]"
    return f"{stamp} {text}" if text else stamp


def file_instructions(image_dir: str, document_dir: str) -> str:
    return "\n".join(
        [
            "File handling:",
            f"- Images sent by the user are saved in {image_dir}.",
            f"- Documents sent by the user are saved in {document_dir}.",
            f"- To send an image back, save it under {image_dir} and include "
            "[[image:/absolute/path]] in your reply.",
            f"- To send a document back, save it under {document_dir} and include "
            "[[document:/absolute/path]] in your reply.",
            "- Only files inside those directories can be delivered.",
        ]
    )


def _attachment_block(title: str, paths: list[str] | tuple[str, ...]) -> str:
    lines = [title]
    lines.extend(f"- {path}" for path in paths)
    return "\n".join(lines)


def build_prompt(
    prompt: str,
    image_paths: list[str] | tuple[str, ...] = (),
    image_dir: str = "",
    script_context: str = "",
    document_paths: list[str] | tuple[str, ...] = (),
    document_dir: str = "",
    include_file_instructions: bool = False,
) -> str:
    """Combine the prompt with attachment references and auxiliary context."""
    blocks = [prompt.strip()] if prompt and prompt.strip() else []
    if image_paths:
        blocks.append(_attachment_block("The user attached these images:", image_paths))
    if document_paths:
        blocks.append(_attachment_block("The user attached these documents:", document_paths))
    if script_context and script_context.strip():
        blocks.append(f"Script output context:\n{script_context.strip()}")
    if include_file_instructions:
        blocks.append(file_instructions(image_dir, document_dir))
    return "\n\n".join(blocks)


def join_blocks(*blocks: str) -> str:
    """Join non-empty blocks with blank lines."""
    return "\n\n".join(b for b in blocks if b)
