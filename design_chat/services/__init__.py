# Services module
from design_chat.services.agent_process import AgentProcess, AgentProcessError, SessionMode, build_cli_args
from design_chat.services.design_chat import DesignChatService
from design_chat.services.message_log import MessageLog
from design_chat.services.prompt_builder import PromptBuilder
from design_chat.services.protocol_decoder import DecoderState, ProtocolDecoder, decode_line
from design_chat.services.session_resolver import ResolvedSession, SessionResolver

__all__ = [
    "AgentProcess",
    "AgentProcessError",
    "SessionMode",
    "build_cli_args",
    "DesignChatService",
    "MessageLog",
    "PromptBuilder",
    "DecoderState",
    "ProtocolDecoder",
    "decode_line",
    "ResolvedSession",
    "SessionResolver",
]
