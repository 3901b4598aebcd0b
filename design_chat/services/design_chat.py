"""
Design chat: a task-scoped conversation with the Claude CLI.

Each turn resolves the task's session, builds the prompt, runs one CLI
process and turns its stream-json output into :data:`ChatStreamEvent`s.
The final assistant text is saved to the message log once, after the
process has exited.
"""
import logging
from typing import AsyncIterator, Optional

from design_chat.core.config import Settings, settings as default_settings
from design_chat.database.repository import DesignStore
from design_chat.models.message import DesignMessageRead, DesignMessageRole
from design_chat.models.schemas import (
    AssistantComplete,
    ChatError,
    ChatStreamEvent,
    DesignChatResponse,
    UserMessageSaved,
)
from design_chat.models.task import TaskContext
from design_chat.services.agent_process import (
    AgentProcess,
    AgentProcessError,
    SessionMode,
    build_cli_args,
)
from design_chat.services.message_log import MessageLog
from design_chat.services.prompt_builder import PromptBuilder
from design_chat.services.protocol_decoder import ProtocolDecoder
from design_chat.services.session_resolver import ResolvedSession, SessionResolver

logger = logging.getLogger(__name__)

NO_RESPONSE_MESSAGE = "No response received from Claude CLI"


class DesignChatService:

    def __init__(
        self,
        store: DesignStore,
        prompt_builder: Optional[PromptBuilder] = None,
        settings: Settings = default_settings,
    ):
        self.store = store
        self.settings = settings
        self.message_log = MessageLog(store)
        self.resolver = SessionResolver(store, self.message_log)
        self.prompt_builder = prompt_builder or PromptBuilder()

    def _session_mode(self, resolved: ResolvedSession, skip_history: bool) -> SessionMode:
        if resolved.can_resume:
            return SessionMode.RESUME
        if skip_history:
            return SessionMode.EPHEMERAL
        return SessionMode.NEW

    async def stream_chat(
        self,
        task: TaskContext,
        message: str,
        skip_history: bool = False,
    ) -> AsyncIterator[ChatStreamEvent]:
        """
        Run one chat turn and yield its events in order.

        The stream ends after ``AssistantComplete`` or after the first
        ``Error``; with ``skip_history`` a successful turn ends after the
        last chunk. Closing the generator early (client disconnect) kills
        the CLI process.
        """
        logger.info(f"[DESIGN_CHAT] Chat turn for task {task.id} (skip_history={skip_history})")

        try:
            resolved = await self.resolver.resolve(task, check_resume=not skip_history)
        except Exception as e:
            logger.error(f"[DESIGN_CHAT] Failed to resolve design session for task {task.id}: {e}")
            yield ChatError(message=f"Failed to resolve design session: {e}")
            return

        if not skip_history:
            try:
                user_message = await self.message_log.append(
                    resolved.session_id, DesignMessageRole.USER, message
                )
            except Exception as e:
                logger.error(f"[DESIGN_CHAT] Failed to save user message: {e}")
                yield ChatError(message=f"Failed to save message: {e}")
                return
            yield UserMessageSaved(message=user_message)

        prompt = self.prompt_builder.build_prompt(
            message,
            can_resume=resolved.can_resume,
            task_title=task.title,
            task_description=task.description,
        )
        args = build_cli_args(
            resolved.session_id,
            self._session_mode(resolved, skip_history),
            streaming=True,
            settings=self.settings,
        )
        logger.debug(f"[DESIGN_CHAT] Calling Claude CLI for session {resolved.session_id} (resume={resolved.can_resume})")

        decoder = ProtocolDecoder()
        try:
            async with AgentProcess(args, settings=self.settings) as agent:
                await agent.send_prompt(prompt)
                lines = agent.lines()
                try:
                    async for line in lines:
                        for event in decoder.feed(line):
                            yield event
                        if decoder.finished:
                            break
                finally:
                    await lines.aclose()
                await agent.wait()
        except AgentProcessError as e:
            yield ChatError(message=str(e))
            return

        response_text = decoder.resolved_text()
        if not response_text:
            logger.warning(f"[DESIGN_CHAT] {NO_RESPONSE_MESSAGE}")
            yield ChatError(message=NO_RESPONSE_MESSAGE)
            return

        if skip_history:
            # Content already reached the client as chunks
            return

        try:
            assistant_message = await self.message_log.append(
                resolved.session_id, DesignMessageRole.ASSISTANT, response_text
            )
        except Exception as e:
            logger.error(f"[DESIGN_CHAT] Failed to save assistant message: {e}")
            yield ChatError(message=f"Failed to save response: {e}")
            return

        yield AssistantComplete(message=assistant_message)

    async def chat(self, task: TaskContext, message: str) -> DesignChatResponse:
        """
        Run one chat turn without streaming.

        Raises:
            AgentProcessError: The CLI failed, timed out or exited non-zero
        """
        resolved = await self.resolver.resolve(task)
        user_message = await self.message_log.append(
            resolved.session_id, DesignMessageRole.USER, message
        )

        prompt = self.prompt_builder.build_prompt(
            message,
            can_resume=resolved.can_resume,
            task_title=task.title,
            task_description=task.description,
        )
        args = build_cli_args(
            resolved.session_id,
            self._session_mode(resolved, skip_history=False),
            streaming=False,
            settings=self.settings,
        )
        logger.debug(f"[DESIGN_CHAT] Calling Claude CLI for design chat (resume={resolved.can_resume})")

        async with AgentProcess(args, settings=self.settings) as agent:
            response = await agent.run_to_completion(prompt, timeout=self.settings.CHAT_TIMEOUT_SECONDS)
        if not response:
            raise AgentProcessError(NO_RESPONSE_MESSAGE)

        assistant_message = await self.message_log.append(
            resolved.session_id, DesignMessageRole.ASSISTANT, response
        )
        return DesignChatResponse(user_message=user_message, assistant_message=assistant_message)

    async def add_message(
        self,
        task: TaskContext,
        role: DesignMessageRole,
        content: str,
    ) -> DesignMessageRead:
        """Append a message directly, creating the session if needed."""
        session, _ = await self.resolver.get_or_create(task)
        return await self.message_log.append(session.id, role, content)
