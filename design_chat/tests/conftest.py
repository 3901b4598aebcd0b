import json
import shlex
import sys
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from design_chat.core.config import Settings
from design_chat.database.repository import DesignStore
from design_chat.models.message import DesignMessageRead, DesignMessageRole
from design_chat.models.session import DesignSessionRead
from design_chat.models.task import TaskContext


# Stand-in for the Claude CLI. Reads a scenario file, records what it was
# called with, then replays stdout/stderr lines with optional pauses.
FAKE_CLI_SOURCE = '''
import json
import os
import sys
import time

with open(sys.argv[1]) as f:
    scenario = json.load(f)

prompt = sys.stdin.read()
with open(scenario["record"], "w") as f:
    json.dump({"argv": sys.argv[2:], "prompt": prompt, "pid": os.getpid()}, f)

for step in scenario["steps"]:
    if "sleep" in step:
        time.sleep(step["sleep"])
    if "stderr" in step:
        sys.stderr.write(step["stderr"] + "\\n")
        sys.stderr.flush()
    if "stderr_bulk" in step:
        sys.stderr.write("x" * step["stderr_bulk"] + "\\n")
        sys.stderr.flush()
    if "line" in step:
        sys.stdout.write(step["line"] + "\\n")
        sys.stdout.flush()
    if "text" in step:
        sys.stdout.write(step["text"])
        sys.stdout.flush()

sys.exit(scenario.get("exit_code", 0))
'''


class InMemoryDesignStore(DesignStore):
    """DesignStore kept in dicts, with switches to simulate failures."""

    def __init__(self):
        self.tasks: Dict[str, TaskContext] = {}
        self.sessions: Dict[str, DesignSessionRead] = {}
        self.messages: List[DesignMessageRead] = []
        self.fail_create_session = False
        self.fail_append_roles: set = set()
        self._clock = datetime(2026, 2, 1, 12, 0, 0)

    def _now(self) -> datetime:
        self._clock += timedelta(milliseconds=1)
        return self._clock

    def add_task(self, title: str = "Add CSV export", description: Optional[str] = "Export report tables") -> TaskContext:
        task = TaskContext(id=str(uuid.uuid4()), project_id="project-1", title=title, description=description)
        self.tasks[task.id] = task
        return task

    async def get_task(self, task_id):
        task = self.tasks.get(task_id)
        return task.model_copy() if task else None

    async def link_task_session(self, task_id, session_id):
        self.tasks[task_id].design_session_id = session_id

    async def create_session(self, workspace_id=None):
        if self.fail_create_session:
            raise RuntimeError("database unavailable")
        now = self._now()
        session = DesignSessionRead(id=str(uuid.uuid4()), workspace_id=workspace_id, created_at=now, updated_at=now)
        self.sessions[session.id] = session
        return session

    async def find_session(self, session_id):
        return self.sessions.get(session_id)

    async def append_message(self, session_id, role, content):
        if role in self.fail_append_roles:
            raise RuntimeError("write failed")
        message = DesignMessageRead(
            id=str(uuid.uuid4()),
            session_id=session_id,
            role=role,
            content=content,
            created_at=self._now(),
        )
        self.messages.append(message)
        return message

    async def find_messages(self, session_id):
        return sorted(
            (m for m in self.messages if m.session_id == session_id),
            key=lambda m: m.created_at,
        )

    def messages_for(self, session_id: str, role: Optional[DesignMessageRole] = None) -> List[DesignMessageRead]:
        return [
            m for m in self.messages
            if m.session_id == session_id and (role is None or m.role == role)
        ]


class FakeCli:
    """Writes the fake CLI script and scenarios; builds matching Settings."""

    def __init__(self, tmp_path: Path):
        self.tmp_path = tmp_path
        self.script = tmp_path / "fake_claude.py"
        self.script.write_text(FAKE_CLI_SOURCE)
        self.scenario_file = tmp_path / "scenario.json"
        self.record_file = tmp_path / "record.json"

    def scenario(self, steps: List[Dict[str, Any]], exit_code: int = 0) -> None:
        self.scenario_file.write_text(json.dumps({
            "record": str(self.record_file),
            "steps": steps,
            "exit_code": exit_code,
        }))

    def settings(self, **overrides) -> Settings:
        command = " ".join(shlex.quote(part) for part in [sys.executable, str(self.script), str(self.scenario_file)])
        values = {
            "CLAUDE_CLI_COMMAND": command,
            "AGENT_WORKING_DIRECTORY": str(self.tmp_path),
            "LINE_READ_TIMEOUT_SECONDS": 10.0,
            "CHAT_TIMEOUT_SECONDS": 10.0,
        }
        values.update(overrides)
        return Settings(**values)

    def record(self) -> Dict[str, Any]:
        return json.loads(self.record_file.read_text())


def chunk(text: str) -> Dict[str, str]:
    return {"line": json.dumps({
        "type": "stream_event",
        "event": {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": text}},
    })}


def result(text: str) -> Dict[str, str]:
    return {"line": json.dumps({"type": "result", "subtype": "success", "is_error": False, "result": text})}


def tool_use(tool_id: str, name: str, tool_input: Any) -> Dict[str, str]:
    return {"line": json.dumps({
        "type": "assistant",
        "message": {"content": [{"type": "tool_use", "id": tool_id, "name": name, "input": tool_input}]},
    })}


def tool_result(tool_id: str, content: Any) -> Dict[str, str]:
    return {"line": json.dumps({
        "type": "user",
        "message": {"content": [{"type": "tool_result", "tool_use_id": tool_id, "content": content}]},
    })}


@pytest.fixture
def store() -> InMemoryDesignStore:
    return InMemoryDesignStore()


@pytest.fixture
def task(store: InMemoryDesignStore) -> TaskContext:
    return store.add_task()


@pytest.fixture
def fake_cli(tmp_path: Path) -> FakeCli:
    return FakeCli(tmp_path)


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """sse-starlette keeps a module-level exit event bound to the first loop."""
    from sse_starlette.sse import AppStatus
    AppStatus.should_exit_event = None
    yield
    AppStatus.should_exit_event = None
