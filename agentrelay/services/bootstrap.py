"""Bootstrap context: the preamble sent on the first turn of a new session."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

SOUL_FILE = "soul.md"
TOOLS_FILE = "tools.md"
MEMORY_FILE = "memory.md"


class BootstrapService:
    """Builds the bootstrap block from markdown files in the state directory.

    Missing or unreadable files are simply left out; the header listing the
    file locations is always present so the agent knows where to look.
    """

    def __init__(self, state_dir: Path | str, config_path: Path | str = "") -> None:
        self._state_dir = Path(state_dir).expanduser()
        self._config_path = str(config_path)

    @property
    def soul_path(self) -> Path:
        return self._state_dir / SOUL_FILE

    @property
    def tools_path(self) -> Path:
        return self._state_dir / TOOLS_FILE

    @property
    def memory_path(self) -> Path:
        return self._state_dir / MEMORY_FILE

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return ""
        except OSError:
            logger.warning("Failed to read %s", path, exc_info=True)
            return ""

    async def build_bootstrap_context(self, thread_key: str = "") -> str:
        lines = ["Bootstrap config:"]
        if self._config_path:
            lines.append(f"Config file: {self._config_path}")
        lines.extend(
            [
                f"Soul file: {self.soul_path}",
                f"Tools file: {self.tools_path}",
                f"Memory file: {self.memory_path}",
            ]
        )
        sections = (
            ("Soul", self.soul_path),
            ("Tools", self.tools_path),
            ("Memory", self.memory_path),
        )
        for title, path in sections:
            content = self._read(path)
            if content:
                lines.append(f"{title} ({path.name}):")
                lines.append(content)
                lines.append(f"End of {title.lower()}.")
        if thread_key:
            lines.append(f"Conversation: {thread_key}")
        return "\n".join(lines)
