"""
Append-only log of a design conversation.

Whether the Claude CLI can resume a session is derived from this log (an
assistant reply exists) instead of being stored next to it.
"""
import logging
from typing import List

from design_chat.database.repository import DesignStore
from design_chat.models.message import DesignMessageRead, DesignMessageRole

logger = logging.getLogger(__name__)


class MessageLog:

    def __init__(self, store: DesignStore):
        self.store = store

    async def append(
        self,
        session_id: str,
        role: DesignMessageRole,
        content: str,
    ) -> DesignMessageRead:
        message = await self.store.append_message(session_id, role, content)
        logger.debug(f"[MESSAGE_LOG] Appended {role.value} message {message.id} to session {session_id}")
        return message

    async def history(self, session_id: str) -> List[DesignMessageRead]:
        return await self.store.find_messages(session_id)

    async def can_resume(self, session_id: str) -> bool:
        """True once the session holds at least one assistant reply."""
        messages = await self.history(session_id)
        return any(m.role == DesignMessageRole.ASSISTANT for m in messages)
