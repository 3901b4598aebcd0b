"""
Storage boundary for design conversations.

Services talk to a :class:`DesignStore`; :class:`BeanieDesignStore` is the
MongoDB implementation. Everything crossing the boundary is a read schema,
never a live document.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from design_chat.models.message import DesignMessage, DesignMessageRead, DesignMessageRole
from design_chat.models.session import DesignSession, DesignSessionRead
from design_chat.models.task import Task, TaskContext

logger = logging.getLogger(__name__)


class DesignStore(ABC):
    """Storage operations the design chat relies on."""

    @abstractmethod
    async def get_task(self, task_id: str) -> Optional[TaskContext]:
        pass

    @abstractmethod
    async def link_task_session(self, task_id: str, session_id: Optional[str]) -> None:
        pass

    @abstractmethod
    async def create_session(self, workspace_id: Optional[str] = None) -> DesignSessionRead:
        pass

    @abstractmethod
    async def find_session(self, session_id: str) -> Optional[DesignSessionRead]:
        pass

    @abstractmethod
    async def append_message(
        self,
        session_id: str,
        role: DesignMessageRole,
        content: str,
    ) -> DesignMessageRead:
        pass

    @abstractmethod
    async def find_messages(self, session_id: str) -> List[DesignMessageRead]:
        """All messages of a session, oldest first."""
        pass


class BeanieDesignStore(DesignStore):
    """DesignStore backed by Beanie documents."""

    async def get_task(self, task_id: str) -> Optional[TaskContext]:
        task = await Task.get(task_id)
        if not task:
            return None
        return TaskContext.model_validate(task)

    async def link_task_session(self, task_id: str, session_id: Optional[str]) -> None:
        task = await Task.get(task_id)
        if not task:
            raise LookupError(f"Task {task_id} not found")
        task.design_session_id = session_id
        task.touch()
        await task.save()

    async def create_session(self, workspace_id: Optional[str] = None) -> DesignSessionRead:
        session = DesignSession(workspace_id=workspace_id)
        await session.insert()
        logger.debug(f"[MONGO] Created session {session.id}")
        return DesignSessionRead.model_validate(session)

    async def find_session(self, session_id: str) -> Optional[DesignSessionRead]:
        session = await DesignSession.get(session_id)
        if not session:
            return None
        return DesignSessionRead.model_validate(session)

    async def append_message(
        self,
        session_id: str,
        role: DesignMessageRole,
        content: str,
    ) -> DesignMessageRead:
        message = DesignMessage(session_id=session_id, role=role, content=content)
        await message.insert()
        return DesignMessageRead.model_validate(message)

    async def find_messages(self, session_id: str) -> List[DesignMessageRead]:
        messages = await (
            DesignMessage.find({"session_id": session_id})
            .sort([("created_at", 1)])
            .to_list()
        )
        return [DesignMessageRead.model_validate(msg) for msg in messages]
