"""Configuration loading: TOML file + environment variable overlay."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[no-redef]

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "agentrelay"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"


DEFAULT_CONFIG_TOML = """\
[general]
default_agent = "codex"
time_zone = "UTC"
state_dir = "~/.config/agentrelay"

[agents]
# seconds
timeout = 600
max_buffer = 10485760
file_instructions_every = 10
memory_retrieval_limit = 5
thinking = ""

[agents.models]
# codex = "gpt-5-codex"
# opencode = "opencode/gpt-5-nano"

[files]
image_dir = "~/.config/agentrelay/images"
document_dir = "~/.config/agentrelay/documents"

[mongodb]
enabled = false
uri = "mongodb://localhost:27017"
database = "agentrelay"
"""


@dataclass
class AgentsConfig:
    timeout: float = 600.0
    max_buffer: int = 10 * 1024 * 1024
    file_instructions_every: int = 10
    memory_retrieval_limit: int = 5
    thinking: str = ""
    models: dict[str, str] = field(default_factory=dict)


@dataclass
class FilesConfig:
    image_dir: str = "~/.config/agentrelay/images"
    document_dir: str = "~/.config/agentrelay/documents"

    @property
    def resolved_image_dir(self) -> str:
        return str(Path(self.image_dir).expanduser())

    @property
    def resolved_document_dir(self) -> str:
        return str(Path(self.document_dir).expanduser())


@dataclass
class MongoConfig:
    enabled: bool = False
    uri: str = "mongodb://localhost:27017"
    database: str = "agentrelay"


@dataclass
class AppConfig:
    default_agent: str = "codex"
    time_zone: str = "UTC"
    state_dir: str = "~/.config/agentrelay"
    agents: AgentsConfig = field(default_factory=AgentsConfig)
    files: FilesConfig = field(default_factory=FilesConfig)
    mongodb: MongoConfig = field(default_factory=MongoConfig)
    config_path: Path = DEFAULT_CONFIG_PATH

    @property
    def resolved_state_dir(self) -> Path:
        return Path(self.state_dir).expanduser()


def _env_overlay(config: AppConfig) -> None:
    """Override config values with environment variables where applicable."""
    if uri := os.environ.get("MONGODB_URI"):
        config.mongodb.uri = uri
        config.mongodb.enabled = True
    if db := os.environ.get("AGENTRELAY_DB"):
        config.mongodb.database = db
    if agent := os.environ.get("AGENTRELAY_AGENT"):
        config.default_agent = agent.strip().lower()
    if timeout := os.environ.get("AGENTRELAY_TIMEOUT"):
        try:
            config.agents.timeout = float(timeout)
        except ValueError:
            logger.warning("Ignoring invalid AGENTRELAY_TIMEOUT=%r", timeout)


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file with env var overlay."""
    path = config_path or DEFAULT_CONFIG_PATH

    if path.exists():
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    else:
        raw = tomllib.loads(DEFAULT_CONFIG_TOML)

    general = raw.get("general", {})
    agents_raw = raw.get("agents", {})
    files_raw = raw.get("files", {})
    mongo_raw = raw.get("mongodb", {})

    config = AppConfig(
        default_agent=general.get("default_agent", "codex"),
        time_zone=general.get("time_zone", "UTC"),
        state_dir=general.get("state_dir", "~/.config/agentrelay"),
        agents=AgentsConfig(
            timeout=float(agents_raw.get("timeout", 600)),
            max_buffer=int(agents_raw.get("max_buffer", 10 * 1024 * 1024)),
            file_instructions_every=max(1, int(agents_raw.get("file_instructions_every", 10))),
            memory_retrieval_limit=int(agents_raw.get("memory_retrieval_limit", 5)),
            thinking=agents_raw.get("thinking", ""),
            models={
                str(k): str(v) for k, v in agents_raw.get("models", {}).items() if v
            },
        ),
        files=FilesConfig(
            image_dir=files_raw.get("image_dir", "~/.config/agentrelay/images"),
            document_dir=files_raw.get("document_dir", "~/.config/agentrelay/documents"),
        ),
        mongodb=MongoConfig(
            enabled=mongo_raw.get("enabled", False),
            uri=mongo_raw.get("uri", "mongodb://localhost:27017"),
            database=mongo_raw.get("database", "agentrelay"),
        ),
        config_path=path,
    )

    _env_overlay(config)
    return config


def init_config(config_path: Path | None = None) -> Path:
    """Create default config file."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG_TOML)
    return path
