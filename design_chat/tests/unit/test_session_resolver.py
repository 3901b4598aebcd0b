import pytest

from design_chat.models.message import DesignMessageRole
from design_chat.services.message_log import MessageLog
from design_chat.services.session_resolver import SessionResolver


@pytest.fixture
def resolver(store):
    return SessionResolver(store, MessageLog(store))


@pytest.mark.asyncio
async def test_first_resolve_creates_and_links_session(store, task, resolver):
    resolved = await resolver.resolve(task)

    assert resolved.created is True
    assert resolved.can_resume is False
    assert task.design_session_id == resolved.session_id
    assert store.tasks[task.id].design_session_id == resolved.session_id
    assert resolved.session_id in store.sessions


@pytest.mark.asyncio
async def test_existing_session_is_reused(store, task, resolver):
    first = await resolver.resolve(task)
    reloaded = await store.get_task(task.id)

    second = await resolver.resolve(reloaded)

    assert second.created is False
    assert second.session_id == first.session_id
    assert len(store.sessions) == 1


@pytest.mark.asyncio
async def test_can_resume_requires_an_assistant_reply(store, task, resolver):
    """Test resumability over zero, one and several completed turns"""
    log = resolver.message_log
    session_id = (await resolver.resolve(task)).session_id

    await log.append(session_id, DesignMessageRole.USER, "first question")
    assert (await resolver.resolve(task)).can_resume is False

    await log.append(session_id, DesignMessageRole.ASSISTANT, "first answer")
    assert (await resolver.resolve(task)).can_resume is True

    await log.append(session_id, DesignMessageRole.USER, "second question")
    await log.append(session_id, DesignMessageRole.ASSISTANT, "second answer")
    assert (await resolver.resolve(task)).can_resume is True


@pytest.mark.asyncio
async def test_orphaned_session_reference_gets_a_new_session(store, task, resolver):
    task.design_session_id = "does-not-exist"
    store.tasks[task.id].design_session_id = "does-not-exist"

    resolved = await resolver.resolve(task)

    assert resolved.created is True
    assert resolved.session_id != "does-not-exist"
    assert store.tasks[task.id].design_session_id == resolved.session_id


@pytest.mark.asyncio
async def test_creation_failure_propagates(store, task, resolver):
    store.fail_create_session = True

    with pytest.raises(RuntimeError):
        await resolver.resolve(task)
    assert store.tasks[task.id].design_session_id is None


@pytest.mark.asyncio
async def test_history_is_in_insertion_order(store, task, resolver):
    log = resolver.message_log
    session_id = (await resolver.resolve(task)).session_id
    for i in range(4):
        role = DesignMessageRole.USER if i % 2 == 0 else DesignMessageRole.ASSISTANT
        await log.append(session_id, role, f"message {i}")

    history = await log.history(session_id)

    assert [m.content for m in history] == [f"message {i}" for i in range(4)]


@pytest.mark.asyncio
async def test_resolve_without_resume_check_skips_history(store, task, resolver):
    session_id = (await resolver.resolve(task)).session_id
    await resolver.message_log.append(session_id, DesignMessageRole.ASSISTANT, "answer")

    reads = []
    find_messages = store.find_messages

    async def counting_find_messages(sid):
        reads.append(sid)
        return await find_messages(sid)

    store.find_messages = counting_find_messages
    resolved = await resolver.resolve(task, check_resume=False)

    assert resolved.session_id == session_id
    assert resolved.can_resume is False
    assert resolved.created is False
    assert reads == []
