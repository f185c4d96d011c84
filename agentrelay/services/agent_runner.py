"""Agent runner: one conversational turn against an agent CLI."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Awaitable, Callable

from agentrelay.config import AppConfig
from agentrelay.infra import process
from agentrelay.infra.agents.base import (
    AgentAdapter,
    sanitize_session_id,
    supports_model_listing,
    supports_session_listing,
)
from agentrelay.infra.agents.registry import get_agent
from agentrelay.infra.process import (
    CommandExecutionError,
    CommandTimeoutError,
    prepare_agent_command,
)
from agentrelay.models.agent import CommandRequest, ParsedAgentOutput
from agentrelay.models.conversation import ConversationScope, ConversationState, TurnOptions
from agentrelay.services.prompt import build_prompt, join_blocks, prefix_text_with_timestamp
from agentrelay.services.queue import KeyedQueue
from agentrelay.services.thread_store import clear_thread, resolve_thread, set_thread

logger = logging.getLogger(__name__)

PROMPT_ENV = "AGENT_PROMPT"
PROMPT_EXPRESSION = f'"${PROMPT_ENV}"'
MODEL_LIST_TIMEOUT = 30.0

ExecLocal = Callable[..., Awaitable[str]]
ContextBuilder = Callable[..., Awaitable[str]]
Persist = Callable[[dict[str, str]], Awaitable[None]]


class AgentRunner:
    """Runs chat turns against agent CLIs and keeps their sessions.

    The runner owns the ConversationState it is given and mutates it only
    for the conversation key it is currently running, so turns must go
    through ``submit_turn`` (or the caller's own per-key serialization) to
    stay ordered. Thread map and override changes are handed to the persist
    callbacks as fire-and-forget tasks; failures there are logged and never
    reach the reply.
    """

    def __init__(
        self,
        config: AppConfig,
        state: ConversationState | None = None,
        *,
        exec_local: ExecLocal | None = None,
        build_bootstrap_context: ContextBuilder | None = None,
        build_memory_retrieval_context: ContextBuilder | None = None,
        persist_threads: Persist | None = None,
        persist_agent_overrides: Persist | None = None,
        queue: KeyedQueue | None = None,
    ) -> None:
        self._config = config
        self.state = state or ConversationState()
        self._exec_local = exec_local or process.exec_local
        self._build_bootstrap_context = build_bootstrap_context
        self._build_memory_retrieval_context = build_memory_retrieval_context
        self._persist_threads = persist_threads
        self._persist_agent_overrides = persist_agent_overrides
        self._queue = queue or KeyedQueue()
        self._persist_lock = asyncio.Lock()
        self._persist_tasks: set[asyncio.Task] = set()

    @property
    def queue(self) -> KeyedQueue:
        return self._queue

    # --- Agent selection ---

    def resolve_agent_id(self, scope: ConversationScope, override: str = "") -> str:
        """Explicit override, then the conversation's choice, then the default."""
        candidate = (
            override
            or self.state.agent_overrides.get(scope.topic_key)
            or self._config.default_agent
        )
        return get_agent(candidate).descriptor.id

    async def set_agent_override(self, scope: ConversationScope, agent_id: str) -> str:
        normalized = get_agent(agent_id).descriptor.id
        self.state.agent_overrides[scope.topic_key] = normalized
        self._schedule_persist("agent overrides", self._persist_agent_overrides,
                               self.state.agent_overrides)
        return normalized

    async def clear_agent_override(self, scope: ConversationScope) -> bool:
        removed = self.state.agent_overrides.pop(scope.topic_key, None) is not None
        if removed:
            self._schedule_persist("agent overrides", self._persist_agent_overrides,
                                   self.state.agent_overrides)
        return removed

    # --- Turns ---

    async def submit_turn(
        self,
        scope: ConversationScope,
        prompt: str,
        options: TurnOptions | None = None,
    ) -> str:
        """Queue a turn behind any in-flight work for the same conversation."""
        options = options or TurnOptions()
        agent_id = self.resolve_agent_id(scope, options.agent_id)
        pinned = replace(options, agent_id=agent_id)
        key = scope.thread_key(agent_id)
        if self._queue.is_busy(key):
            logger.debug("Queueing turn for %s behind %d job(s)", key, self._queue.pending(key) + 1)
        return await self._queue.enqueue(key, lambda: self.run_turn(scope, prompt, pinned))

    async def run_turn(
        self,
        scope: ConversationScope,
        prompt: str,
        options: TurnOptions | None = None,
    ) -> str:
        """Run one turn and return the agent's reply text.

        Raises UnknownAgentError for an unknown agent, CommandTimeoutError
        when the agent runs too long and CommandExecutionError when it fails
        without producing a usable reply.
        """
        options = options or TurnOptions()
        agents_cfg = self._config.agents
        agent_id = self.resolve_agent_id(scope, options.agent_id)
        agent = get_agent(agent_id)

        resolution = resolve_thread(self.state.threads, scope, agent_id)
        turn = self.state.next_turn(resolution.key)
        include_file_instructions = (
            not resolution.session_id or turn % agents_cfg.file_instructions_every == 0
        )
        if resolution.migrated:
            self._schedule_persist("threads", self._persist_threads, self.state.threads)

        prompt_text = prompt
        if agent.descriptor.prefix_timestamp:
            prompt_text = prefix_text_with_timestamp(prompt_text, self._config.time_zone)

        bootstrap = ""
        if not resolution.session_id and self._build_bootstrap_context:
            bootstrap = await self._build_bootstrap_context(thread_key=resolution.key)

        retrieval = ""
        if self._build_memory_retrieval_context:
            retrieval = await self._build_memory_retrieval_context(
                query=prompt,
                chat_id=scope.chat_id,
                topic_id=scope.topic_id,
                agent_id=agent_id,
                limit=agents_cfg.memory_retrieval_limit,
            )

        final_prompt = build_prompt(
            join_blocks(bootstrap, prompt_text, retrieval),
            image_paths=options.image_paths,
            image_dir=self._config.files.resolved_image_dir,
            script_context=options.script_context,
            document_paths=options.document_paths,
            document_dir=self._config.files.resolved_document_dir,
            include_file_instructions=include_file_instructions,
        )
        request = CommandRequest(
            prompt=final_prompt,
            prompt_expression=PROMPT_EXPRESSION,
            session_id=resolution.session_id,
            model=agents_cfg.models.get(agent_id, ""),
            thinking=agents_cfg.thinking,
        )

        topic = scope.topic_id or "root"
        logger.info(
            "Agent start chat=%s topic=%s agent=%s thread=%s turn=%d",
            scope.chat_id, topic, agent_id, resolution.session_id or "new", turn,
        )
        parsed, output, soft_failed = await self._execute(
            agent, request, f"chat={scope.chat_id} topic={topic}"
        )

        if not parsed.session_id:
            recovered = await self._recover_session_id(agent)
            if recovered:
                parsed = parsed.with_session_id(recovered)

        if parsed.session_id:
            self.state.threads[resolution.key] = parsed.session_id
            self._schedule_persist("threads", self._persist_threads, self.state.threads)

        if soft_failed:
            return parsed.text
        return parsed.text or output

    async def run_one_shot(self, prompt: str) -> str:
        """Run a stateless prompt on the default agent: no session, no context."""
        agent = get_agent(self._config.default_agent)
        prompt_text = str(prompt or "")
        if agent.descriptor.prefix_timestamp:
            prompt_text = prefix_text_with_timestamp(prompt_text, self._config.time_zone)
        request = CommandRequest(
            prompt=prompt_text,
            prompt_expression=PROMPT_EXPRESSION,
            thinking=self._config.agents.thinking,
        )
        logger.info("Agent one-shot start agent=%s", agent.descriptor.id)
        parsed, output, soft_failed = await self._execute(agent, request, "one-shot")
        if soft_failed:
            return parsed.text
        return parsed.text or output

    # --- Session management ---

    async def reset(self, scope: ConversationScope, agent_id: str = "") -> bool:
        """Forget the conversation's session so the next turn starts fresh."""
        agent_id = self.resolve_agent_id(scope, agent_id)
        removed = clear_thread(self.state.threads, scope, agent_id)
        self.state.turns.pop(scope.thread_key(agent_id), None)
        self._schedule_persist("threads", self._persist_threads, self.state.threads)
        logger.info("Reset %s (had session: %s)", scope.thread_key(agent_id), removed)
        return removed

    async def attach_session(
        self, scope: ConversationScope, session_id: str, agent_id: str = ""
    ) -> str:
        """Point a conversation at an existing agent session."""
        session_id = sanitize_session_id(session_id)
        if not session_id:
            raise ValueError("Session id must not be empty")
        agent_id = self.resolve_agent_id(scope, agent_id)
        key = set_thread(self.state.threads, scope, agent_id, session_id)
        self.state.turns.pop(key, None)
        self._schedule_persist("threads", self._persist_threads, self.state.threads)
        return key

    async def list_models(self, agent_id: str) -> str:
        """List models through the agent CLI, or '' when unsupported."""
        agent = get_agent(agent_id)
        if not supports_model_listing(agent):
            return ""
        command = prepare_agent_command(
            agent.list_models_command(), needs_pty=agent.descriptor.needs_pty
        )
        output = await self._exec_local(
            "bash",
            ["-lc", command],
            timeout=MODEL_LIST_TIMEOUT,
            max_buffer=self._config.agents.max_buffer,
        )
        parse = getattr(agent, "parse_model_list", None)
        return parse(output) if callable(parse) else output.strip()

    async def drain(self) -> None:
        """Wait for outstanding persistence tasks."""
        while self._persist_tasks:
            await asyncio.gather(*list(self._persist_tasks))

    # --- Internals ---

    async def _execute(
        self, agent: AgentAdapter, request: CommandRequest, log_context: str
    ) -> tuple[ParsedAgentOutput, str, bool]:
        """Run the agent command. Returns (parsed, raw stdout, soft_failed)."""
        descriptor = agent.descriptor
        command = prepare_agent_command(
            agent.build_command(request),
            needs_pty=descriptor.needs_pty,
            merge_stderr=descriptor.merge_stderr,
        )
        logger.debug("Agent command (%s): %s", descriptor.id, command)

        started = time.monotonic()
        exec_error: CommandExecutionError | None = None
        try:
            output = await self._exec_local(
                "bash",
                ["-lc", command],
                timeout=self._config.agents.timeout,
                max_buffer=self._config.agents.max_buffer,
                env={PROMPT_ENV: request.prompt},
            )
        except CommandTimeoutError:
            raise
        except CommandExecutionError as e:
            if not e.stdout.strip():
                raise
            exec_error = e
            output = e.stdout
        finally:
            elapsed_ms = int((time.monotonic() - started) * 1000)
            logger.info("Agent finished %s duration_ms=%d", log_context, elapsed_ms)

        parsed = agent.parse_output(output)
        if exec_error is not None:
            if not parsed.is_usable:
                raise exec_error
            logger.warning(
                "Agent exited non-zero; returning stdout %s code=%s",
                log_context, exec_error.returncode,
            )
        return parsed, output, exec_error is not None

    async def _recover_session_id(self, agent: AgentAdapter) -> str:
        if not supports_session_listing(agent):
            return ""
        descriptor = agent.descriptor
        try:
            command = prepare_agent_command(
                agent.list_sessions_command(),
                needs_pty=descriptor.needs_pty,
                merge_stderr=descriptor.merge_stderr,
            )
            output = await self._exec_local(
                "bash",
                ["-lc", command],
                timeout=self._config.agents.timeout,
                max_buffer=self._config.agents.max_buffer,
            )
            return sanitize_session_id(agent.parse_session_list(output))
        except Exception as e:
            logger.warning("Failed to resolve %s session id: %s", descriptor.id, e)
            return ""

    def _schedule_persist(
        self, name: str, persist: Persist | None, mapping: dict[str, str]
    ) -> None:
        if persist is None:
            return
        task = asyncio.get_running_loop().create_task(
            self._persist(name, persist, dict(mapping))
        )
        self._persist_tasks.add(task)
        task.add_done_callback(self._persist_tasks.discard)

    async def _persist(self, name: str, persist: Persist, snapshot: dict[str, str]) -> None:
        # Saves run one at a time, in submission order
        async with self._persist_lock:
            try:
                await persist(snapshot)
            except Exception as e:
                logger.warning("Failed to persist %s: %s", name, e)
