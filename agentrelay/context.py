"""AppContext: wires config, persistence and the agent runner together."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from agentrelay.config import AppConfig, load_config
from agentrelay.models.conversation import ConversationState

if TYPE_CHECKING:
    from pathlib import Path

    from agentrelay.infra.db.client import MongoClient
    from agentrelay.infra.db.threads import AgentOverrideRepo, ThreadRepo
    from agentrelay.services.agent_runner import AgentRunner
    from agentrelay.services.bootstrap import BootstrapService

logger = logging.getLogger(__name__)


class AppContext:
    """Central wiring for all application dependencies.

    Lazily builds services on first access. Call ``initialize()`` to connect
    to MongoDB (when enabled) and load persisted threads and overrides into
    the shared ConversationState.
    """

    def __init__(self, config: AppConfig | None = None, config_path: Path | None = None) -> None:
        self.config = config or load_config(config_path)
        self.state = ConversationState()
        self._mongo: MongoClient | None = None
        self._thread_repo: ThreadRepo | None = None
        self._override_repo: AgentOverrideRepo | None = None
        self._bootstrap_service: BootstrapService | None = None
        self._agent_runner: AgentRunner | None = None

    async def initialize(self) -> None:
        """Connect persistence and hydrate conversation state."""
        if self.config.mongodb.enabled:
            from agentrelay.infra.db.client import MongoClient

            self._mongo = MongoClient(
                uri=self.config.mongodb.uri,
                database=self.config.mongodb.database,
            )
            if not await self._mongo.ping():
                self._mongo.close()
                self._mongo = None
                raise ConnectionError(f"MongoDB is unreachable at {self.config.mongodb.uri}")
            self.state.threads.update(await self.thread_repo.load_all())
            self.state.agent_overrides.update(await self.override_repo.load_all())
            logger.info(
                "Loaded %d threads and %d agent overrides",
                len(self.state.threads), len(self.state.agent_overrides),
            )
        logger.info("AppContext initialized")

    async def close(self) -> None:
        """Flush pending persistence and close connections."""
        if self._agent_runner is not None:
            await self._agent_runner.drain()
        if self._mongo:
            self._mongo.close()
        logger.info("AppContext closed")

    @property
    def mongo(self) -> MongoClient:
        if self._mongo is None:
            raise RuntimeError("MongoDB not connected. Enable [mongodb] and call initialize().")
        return self._mongo

    @property
    def thread_repo(self) -> ThreadRepo:
        if self._thread_repo is None:
            from agentrelay.infra.db.threads import ThreadRepo

            self._thread_repo = ThreadRepo(self.mongo.db)
        return self._thread_repo

    @property
    def override_repo(self) -> AgentOverrideRepo:
        if self._override_repo is None:
            from agentrelay.infra.db.threads import AgentOverrideRepo

            self._override_repo = AgentOverrideRepo(self.mongo.db)
        return self._override_repo

    @property
    def bootstrap_service(self) -> BootstrapService:
        if self._bootstrap_service is None:
            from agentrelay.services.bootstrap import BootstrapService

            self._bootstrap_service = BootstrapService(
                state_dir=self.config.resolved_state_dir,
                config_path=self.config.config_path,
            )
        return self._bootstrap_service

    @property
    def agent_runner(self) -> AgentRunner:
        if self._agent_runner is None:
            from agentrelay.services.agent_runner import AgentRunner

            persist_threads = None
            persist_overrides = None
            if self._mongo is not None:
                persist_threads = self.thread_repo.save_all
                persist_overrides = self.override_repo.save_all

            self._agent_runner = AgentRunner(
                config=self.config,
                state=self.state,
                build_bootstrap_context=self.bootstrap_service.build_bootstrap_context,
                persist_threads=persist_threads,
                persist_agent_overrides=persist_overrides,
            )
        return self._agent_runner
