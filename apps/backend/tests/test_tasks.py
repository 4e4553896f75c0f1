import asyncio

import pytest

from edureach.services.tasks import TaskDispatcher


@pytest.mark.asyncio
async def test_dispatch_does_not_block_caller():
    dispatcher = TaskDispatcher()
    gate = asyncio.Event()
    done = []

    async def job():
        await gate.wait()
        done.append(True)

    task = dispatcher.dispatch(job(), name="job:1")

    assert task.get_name() == "job:1"
    assert dispatcher.pending == {task}
    assert done == []

    gate.set()
    await dispatcher.drain()

    assert done == [True]
    assert dispatcher.pending == set()


@pytest.mark.asyncio
async def test_failing_task_is_contained():
    dispatcher = TaskDispatcher()

    async def broken():
        raise RuntimeError("smtp down")

    async def fine():
        return "ok"

    failing = dispatcher.dispatch(broken(), name="broken")
    ok = dispatcher.dispatch(fine(), name="fine")
    await dispatcher.drain()

    assert isinstance(failing.exception(), RuntimeError)
    assert ok.result() == "ok"
    assert dispatcher.pending == set()


@pytest.mark.asyncio
async def test_drain_waits_for_tasks_queued_by_tasks():
    dispatcher = TaskDispatcher()
    order = []

    async def child():
        order.append("child")

    async def parent():
        order.append("parent")
        dispatcher.dispatch(child(), name="child")

    dispatcher.dispatch(parent(), name="parent")
    await dispatcher.drain()

    assert order == ["parent", "child"]


@pytest.mark.asyncio
async def test_drain_with_nothing_pending():
    await TaskDispatcher().drain()
