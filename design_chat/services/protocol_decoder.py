"""
Decoder for the Claude CLI ``stream-json`` output protocol.

Each stdout line is one JSON envelope with a ``type`` discriminator. The
decoder is a pure transition ``(state, line) -> (state', events)`` so it can
be driven by any line source, including plain lists in tests.

Text arrives token-by-token through ``stream_event`` envelopes only; the
complete ``assistant`` messages repeat that text and are used for tool calls
alone. The terminal ``result`` envelope carries the authoritative final text.
"""
import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from design_chat.models.schemas import AssistantChunk, ChatStreamEvent, ToolResult, ToolUse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecoderState:
    """Per-request decoding state."""
    streamed_text: str = ""
    final_result_text: str = ""
    emitted_tool_ids: FrozenSet[str] = frozenset()
    tool_names: Mapping[str, str] = field(default_factory=dict)
    finished: bool = False

    def resolved_text(self) -> str:
        """Final text to persist: the result envelope wins over streamed deltas."""
        final = self.final_result_text.strip()
        if final:
            return final
        return self.streamed_text.strip()


def parse_envelope(line: str) -> Optional[Dict[str, Any]]:
    """Parse one stdout line; None for blank lines and non-JSON noise."""
    trimmed = line.strip()
    if not trimmed:
        return None
    try:
        envelope = json.loads(trimmed)
    except ValueError:
        logger.debug(f"[DECODER] Skipping non-JSON line: {trimmed[:200]}")
        return None
    if not isinstance(envelope, dict) or not isinstance(envelope.get("type"), str):
        logger.debug(f"[DECODER] Skipping line without envelope type: {trimmed[:200]}")
        return None
    return envelope


def decode_line(state: DecoderState, line: str) -> Tuple[DecoderState, List[ChatStreamEvent]]:
    envelope = parse_envelope(line)
    if envelope is None:
        return state, []
    return decode_envelope(state, envelope)


def decode_envelope(
    state: DecoderState,
    envelope: Dict[str, Any],
) -> Tuple[DecoderState, List[ChatStreamEvent]]:
    """Apply one envelope to the state and return the events it produces."""
    envelope_type = envelope.get("type")

    if envelope_type == "assistant":
        return _decode_assistant(state, envelope)
    if envelope_type == "user":
        return _decode_user(state, envelope)
    if envelope_type == "stream_event":
        return _decode_stream_event(state, envelope)
    if envelope_type == "result":
        result = envelope.get("result")
        logger.debug("[DECODER] Got result envelope, CLI complete")
        return replace(
            state,
            final_result_text=result if isinstance(result, str) else state.final_result_text,
            finished=True,
        ), []

    logger.debug(f"[DECODER] Unhandled CLI event type: {envelope_type}")
    return state, []


def _content_blocks(envelope: Dict[str, Any]) -> List[Dict[str, Any]]:
    message = envelope.get("message")
    if not isinstance(message, dict):
        return []
    content = message.get("content")
    if not isinstance(content, list):
        return []
    return [block for block in content if isinstance(block, dict)]


def _decode_assistant(state: DecoderState, envelope: Dict[str, Any]):
    events: List[ChatStreamEvent] = []
    emitted = set(state.emitted_tool_ids)
    tool_names = dict(state.tool_names)

    for block in _content_blocks(envelope):
        if block.get("type") != "tool_use":
            continue
        # Partial messages repeat the same tool call; only emit it once,
        # and only once its input is complete.
        if block.get("input") is None:
            continue
        tool_id = block.get("id") if isinstance(block.get("id"), str) else ""
        if tool_id and tool_id in emitted:
            continue

        tool_name = block.get("name") if isinstance(block.get("name"), str) else "unknown"
        if tool_id:
            emitted.add(tool_id)
            tool_names[tool_id] = tool_name
        events.append(ToolUse(tool_name=tool_name, tool_input=block["input"]))

    if not events:
        return state, events
    return replace(state, emitted_tool_ids=frozenset(emitted), tool_names=tool_names), events


def _tool_result_output(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = [
            item["text"]
            for item in content
            if isinstance(item, dict) and item.get("type") == "text" and isinstance(item.get("text"), str)
        ]
        return "\n".join(texts)
    return ""


def _decode_user(state: DecoderState, envelope: Dict[str, Any]):
    events: List[ChatStreamEvent] = []
    for block in _content_blocks(envelope):
        if block.get("type") != "tool_result":
            continue
        tool_use_id = block.get("tool_use_id") if isinstance(block.get("tool_use_id"), str) else "unknown"
        events.append(ToolResult(
            tool_name=state.tool_names.get(tool_use_id, tool_use_id),
            output=_tool_result_output(block.get("content")),
        ))
    return state, events


def _decode_stream_event(state: DecoderState, envelope: Dict[str, Any]):
    event = envelope.get("event")
    if not isinstance(event, dict) or event.get("type") != "content_block_delta":
        return state, []
    delta = event.get("delta")
    text = delta.get("text") if isinstance(delta, dict) else None
    if not isinstance(text, str) or not text:
        return state, []
    return replace(state, streamed_text=state.streamed_text + text), [AssistantChunk(text=text)]


class ProtocolDecoder:
    """Stateful wrapper around :func:`decode_line` for one request."""

    def __init__(self) -> None:
        self.state = DecoderState()

    @property
    def finished(self) -> bool:
        return self.state.finished

    def feed(self, line: str) -> List[ChatStreamEvent]:
        self.state, events = decode_line(self.state, line)
        return events

    def resolved_text(self) -> str:
        return self.state.resolved_text()
