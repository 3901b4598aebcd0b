from pydantic import BaseModel
from typing import Any, Dict, List, Literal, Optional, Union

from design_chat.models.message import DesignMessageRead
from design_chat.models.session import DesignSessionRead


class DesignChatRequest(BaseModel):
    """Request to send a message to the design chat."""
    message: str
    # When true, nothing is read from or saved to the message log and the
    # CLI session is not resumed; the caller sends all context inline.
    skip_history: Optional[bool] = False


class DesignChatResponse(BaseModel):
    """Response from a non-streaming design chat turn."""
    user_message: DesignMessageRead
    assistant_message: DesignMessageRead


class DesignSessionWithMessages(BaseModel):
    """Design session together with its full message log."""
    session: DesignSessionRead
    messages: List[DesignMessageRead]


# ---------------------------------------------------------------------------
# Stream events
#
# Serialized on the wire as {"type": "<EventName>", "data": {...}}.
# ---------------------------------------------------------------------------

class _StreamEvent(BaseModel):
    type: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "data": self.model_dump(mode="json", exclude={"type"}),
        }


class UserMessageSaved(_StreamEvent):
    """User message was saved."""
    type: Literal["UserMessageSaved"] = "UserMessageSaved"
    message: DesignMessageRead


class AssistantChunk(_StreamEvent):
    """Chunk of the assistant response."""
    type: Literal["AssistantChunk"] = "AssistantChunk"
    text: str


class ToolUse(_StreamEvent):
    """Tool use started."""
    type: Literal["ToolUse"] = "ToolUse"
    tool_name: str
    tool_input: Any = None


class ToolResult(_StreamEvent):
    """Tool result received."""
    type: Literal["ToolResult"] = "ToolResult"
    tool_name: str
    output: str


class AssistantComplete(_StreamEvent):
    """Assistant response complete and saved."""
    type: Literal["AssistantComplete"] = "AssistantComplete"
    message: DesignMessageRead


class ChatError(_StreamEvent):
    """Error occurred; always the last event of a stream."""
    type: Literal["Error"] = "Error"
    message: str


ChatStreamEvent = Union[
    UserMessageSaved,
    AssistantChunk,
    ToolUse,
    ToolResult,
    AssistantComplete,
    ChatError,
]
