import logging
from dataclasses import dataclass
from typing import Tuple

from design_chat.database.repository import DesignStore
from design_chat.models.session import DesignSessionRead
from design_chat.models.task import TaskContext
from design_chat.services.message_log import MessageLog

logger = logging.getLogger(__name__)


@dataclass
class ResolvedSession:
    session_id: str
    can_resume: bool
    created: bool = False


class SessionResolver:
    """
    Finds the design session of a task, creating it on first use.

    Lookup and creation are not atomic: two concurrent first requests for
    the same task may each create a session, and the last link written to
    the task wins. The losing session is left without messages.
    """

    def __init__(self, store: DesignStore, message_log: MessageLog):
        self.store = store
        self.message_log = message_log

    async def get_or_create(self, task: TaskContext) -> Tuple[DesignSessionRead, bool]:
        """Return the task's session and whether it was just created."""
        if task.design_session_id:
            session = await self.store.find_session(task.design_session_id)
            if session:
                return session, False
            logger.warning(
                f"[SESSION_RESOLVER] Task {task.id} references missing session "
                f"{task.design_session_id}, creating a new one"
            )

        session = await self.store.create_session(workspace_id=None)
        await self.store.link_task_session(task.id, session.id)
        task.design_session_id = session.id
        logger.info(f"[SESSION_RESOLVER] Created design session {session.id} for task {task.id}")
        return session, True

    async def resolve(self, task: TaskContext, check_resume: bool = True) -> ResolvedSession:
        """Get or create the session; with ``check_resume=False`` the message log is not read."""
        session, created = await self.get_or_create(task)
        if created or not check_resume:
            return ResolvedSession(session_id=session.id, can_resume=False, created=created)
        can_resume = await self.message_log.can_resume(session.id)
        return ResolvedSession(session_id=session.id, can_resume=can_resume)
