import json
import logging
from typing import AsyncIterator, List

from fastapi import APIRouter, Depends, HTTPException
from sse_starlette.sse import EventSourceResponse, ServerSentEvent

from design_chat.database.repository import BeanieDesignStore, DesignStore
from design_chat.models.message import CreateDesignMessage, DesignMessageRead
from design_chat.models.schemas import (
    ChatError,
    ChatStreamEvent,
    DesignChatRequest,
    DesignChatResponse,
    DesignSessionWithMessages,
)
from design_chat.models.session import DesignSessionRead
from design_chat.models.task import TaskContext
from design_chat.services.agent_process import AgentProcessError
from design_chat.services.design_chat import DesignChatService

logger = logging.getLogger(__name__)

router = APIRouter()

_design_store = BeanieDesignStore()


def get_design_store() -> DesignStore:
    return _design_store


def get_chat_service(store: DesignStore = Depends(get_design_store)) -> DesignChatService:
    return DesignChatService(store)


async def load_task(task_id: str, store: DesignStore = Depends(get_design_store)) -> TaskContext:
    task = await store.get_task(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


async def _generate_sse_events(events: AsyncIterator[ChatStreamEvent]) -> AsyncIterator[dict]:
    """Convert chat events to SSE format."""
    try:
        async for event in events:
            yield {
                "event": event.type,
                "data": json.dumps(event.to_payload()),
            }
    except Exception as e:
        logger.error(f"[DESIGN_CHAT] Error streaming design chat: {e}")
        error = ChatError(message=str(e))
        yield {
            "event": error.type,
            "data": json.dumps(error.to_payload()),
        }
    finally:
        # Tears down the CLI process if the client went away mid-stream
        await events.aclose()


def _keep_alive() -> ServerSentEvent:
    return ServerSentEvent(comment="keep-alive")


@router.get("/design-session", response_model=DesignSessionRead)
async def get_or_create_design_session(
    task: TaskContext = Depends(load_task),
    service: DesignChatService = Depends(get_chat_service),
):
    """Get or create the design session for a task."""
    session, _ = await service.resolver.get_or_create(task)
    return session


@router.get("/design-session/full", response_model=DesignSessionWithMessages)
async def get_design_session_with_messages(
    task: TaskContext = Depends(load_task),
    service: DesignChatService = Depends(get_chat_service),
):
    """Get the design session with all of its messages."""
    session, created = await service.resolver.get_or_create(task)
    messages = [] if created else await service.message_log.history(session.id)
    return DesignSessionWithMessages(session=session, messages=messages)


@router.get("/design-session/messages", response_model=List[DesignMessageRead])
async def get_design_messages(
    task: TaskContext = Depends(load_task),
    service: DesignChatService = Depends(get_chat_service),
):
    """List all messages of the task's design session."""
    if not task.design_session_id:
        raise HTTPException(status_code=400, detail="Design session not found for this task")
    return await service.message_log.history(task.design_session_id)


@router.post("/design-session/messages", response_model=DesignMessageRead)
async def add_design_message(
    payload: CreateDesignMessage,
    task: TaskContext = Depends(load_task),
    service: DesignChatService = Depends(get_chat_service),
):
    """Append a message to the design session, creating the session if needed."""
    return await service.add_message(task, payload.role, payload.content)


@router.post("/design-session/chat", response_model=DesignChatResponse)
async def design_chat(
    payload: DesignChatRequest,
    task: TaskContext = Depends(load_task),
    service: DesignChatService = Depends(get_chat_service),
):
    """Send a message to the design chat and wait for the full reply."""
    try:
        return await service.chat(task, payload.message)
    except AgentProcessError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/design-session/chat/stream")
async def design_chat_stream(
    payload: DesignChatRequest,
    task: TaskContext = Depends(load_task),
    service: DesignChatService = Depends(get_chat_service),
):
    """
    Send a message and stream the reply via SSE.

    Events emitted (``data`` is ``{"type": ..., "data": {...}}``):
    - UserMessageSaved: the user's message was persisted (not with skip_history)
    - AssistantChunk: text delta from the assistant
    - ToolUse / ToolResult: tool activity of the agent
    - AssistantComplete: the reply was persisted; last event
    - Error: the turn failed; last event

    Keep-alive comments are sent while the agent is quiet.
    """
    events = service.stream_chat(task, payload.message, skip_history=bool(payload.skip_history))
    return EventSourceResponse(
        _generate_sse_events(events),
        ping=service.settings.SSE_KEEPALIVE_SECONDS,
        ping_message_factory=_keep_alive,
    )
