# tests/test_commands.py

from __future__ import annotations

import pytest

from veloce.cli.bootstrap import create_initial_state, open_task
from veloce.cli.commands import CommandRegistry, registry
from veloce.detail.controller import TaskDetailController
from veloce.tasks.task_models import TaskPriority, TaskType


@pytest.mark.asyncio
async def test_command_registry_routes_sync_and_async(state) -> None:
    reg = CommandRegistry()
    called = {"sync": 0, "async": 0}

    def h_sync(state, args):
        called["sync"] += 1
        return "sync:" + ",".join(args)

    async def h_async(state, args):
        called["async"] += 1
        return "async"

    reg.register("a", h_sync, "a", aliases=["aa"])
    reg.register("b", h_async, "b")

    assert await reg.handle(state, "/a x y") == "sync:x,y"
    assert await reg.handle(state, "/AA") == "sync:"
    assert await reg.handle(state, "/b") == "async"
    assert called == {"sync": 2, "async": 1}
    assert "/a - a" in reg.build_help()


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_add_toggle_and_show(state) -> None:
    assert await registry.handle(state, "/add Collect data") == "Added: Collect data"
    assert await registry.handle(state, "/add") == "Usage: /add <title>"

    out = await registry.handle(state, "/toggle 1")
    assert out is not None
    assert "1. [x] Collect data" in out
    assert "100% done" in out

    assert await registry.handle(state, "/toggle 9") == "Usage: /toggle <number>"


@pytest.mark.asyncio
async def test_cycle_and_prompt(state) -> None:
    assert await registry.handle(state, "/cycle") == "Duration: 45 min"
    out = await registry.handle(state, "/prompt")
    assert out is not None
    assert 'Help me complete: "Draft proposal"' in out
    assert "https://chat.openai.com/?q=" in out


@pytest.mark.asyncio
async def test_insights_then_accept_all(state, task) -> None:
    state.controller = TaskDetailController(state.ai, fallback_delay=0.0)
    state.controller.setup(task)

    out = await registry.handle(state, "/insights")
    assert out is not None
    assert "Advice (offline)" in out
    assert "Suggested steps" in out

    out = await registry.handle(state, "/accept")
    assert out is not None
    assert out.startswith("Added 3 suggested sub-task(s).")
    assert len(state.controller.task.subtasks) == 3


@pytest.mark.asyncio
async def test_estimate_uses_task_type_without_ai(state) -> None:
    out = await registry.handle(state, "/estimate")
    assert out is not None
    assert out.startswith("Estimate: 1h 30m (medium confidence)")


def test_open_task_creates_then_reuses(settings) -> None:
    state = create_initial_state(settings=settings)

    task = open_task(state, "*** Ship release", task_type=TaskType.CREATE, estimated_minutes=60)
    assert task.title == "Ship release"
    assert task.priority == TaskPriority.HIGH
    assert state.controller.estimated_minutes == 60

    again = open_task(state, "ship release")
    assert again.id == task.id
    assert state.store.get_task(task.id) is not None

    with pytest.raises(ValueError):
        open_task(state, "  ***  ")
