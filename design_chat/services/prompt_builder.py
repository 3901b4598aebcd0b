"""
Prompt builder for design conversations.

A fresh CLI session knows nothing about the task, so the first turn carries
the system preamble and task details. Resumed sessions already hold that
context and only receive the new message.
"""
from typing import Optional


DESIGN_SYSTEM_PROMPT = (
    "You are a helpful assistant for software design discussions. "
    "Help the user plan and design their implementation. "
    "Be concise but thorough. Respond in the same language as the user."
)

NO_DESCRIPTION = "(no description)"


class PromptBuilder:
    """Builds the stdin prompt for one design chat turn."""

    def __init__(self, system_prompt: str = DESIGN_SYSTEM_PROMPT):
        self.system_prompt = system_prompt

    def build_prompt(
        self,
        user_text: str,
        can_resume: bool,
        task_title: str,
        task_description: Optional[str] = None,
    ) -> str:
        """
        Compose the text written to the CLI.

        Args:
            user_text: The user's message
            can_resume: Whether the CLI resumes an existing session
            task_title: Title of the task under discussion
            task_description: Task description, if any

        Returns:
            The message alone when resuming, otherwise the full context prompt
        """
        if can_resume:
            return user_text

        description = task_description or NO_DESCRIPTION
        return (
            f"{self.system_prompt}\n\n"
            f"Task Title: {task_title}\n"
            f"Task Description: {description}\n\n"
            f"User: {user_text}"
        )
