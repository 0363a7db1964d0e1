# src/veloce/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable

from ..ai.errors import AIServiceError
from ..core.state import AppState
from ..detail.fallback import fallback_duration_estimate
from ..detail.prompt import format_duration
from ..tasks.task_models import SubTaskStatus

CommandResult = str | Awaitable[str]
CommandHandler = Callable[[AppState, list[str]], CommandResult]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        result = handler(state, args)
        if inspect.isawaitable(result):
            return await result
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _pick_sub_task_id(state: AppState, args: list[str]) -> str | None:
    """1-based position in the current list -> sub-task id."""
    if not args:
        return None
    try:
        pos = int(args[0])
    except ValueError:
        return None
    subs = state.controller.sub_tasks
    if 1 <= pos <= len(subs):
        return subs[pos - 1].id
    return None


def render_task(state: AppState) -> str:
    ctl = state.controller
    task = ctl.task
    if task is None:
        return "No task open."

    lines = [
        f"{'*' * task.star_rating} {task.title}  [{task.task_type.display_name}]",
        f"  Duration: {format_duration(ctl.estimated_minutes)}",
    ]
    if ctl.editable_notes:
        lines.append(f"  Notes: {ctl.editable_notes}")
    if task.scheduled_time is not None:
        lines.append(f"  Scheduled: {task.scheduled_time.astimezone():%Y-%m-%d %H:%M}")
    if task.is_recurring:
        days = task.recurring_days_formatted
        lines.append(f"  Repeats: {task.recurring_type.value}" + (f" ({days})" if days else ""))

    if ctl.sub_tasks:
        lines.append(f"  Sub-tasks ({ctl.sub_task_progress:.0%} done):")
        for i, st in enumerate(ctl.sub_tasks, start=1):
            mark = "x" if st.status == SubTaskStatus.COMPLETED else " "
            est = f" ({st.estimated_minutes}m)" if st.estimated_minutes else ""
            ai = " *ai" if st.is_ai_generated else ""
            lines.append(f"    {i}. [{mark}] {st.title}{est}{ai}")
    else:
        lines.append("  No sub-tasks yet. Use /add <title>.")
    return "\n".join(lines)


def render_insights(state: AppState) -> str:
    ctl = state.controller
    snap = ctl.insights
    if not snap.has_insights:
        return "No insights yet. Use /insights."

    lines = []
    if ctl.ai_error:
        lines.append(f"[AI] {ctl.ai_error} (use /retry)")
    source = "offline" if ctl.insights_source == "fallback" else "AI"
    lines.append(f"Advice ({source}): {snap.advice}")
    if snap.thought_process:
        lines.append(f"Reasoning: {snap.thought_process}")
    lines.append(f"Estimate: {ctl.estimated_time_display} ({snap.estimate_confidence} confidence)")
    lines.append(f"Best time: {ctl.best_time_display}")
    if snap.best_time_reason:
        lines.append(f"  {snap.best_time_reason}")
    if snap.suggested_sub_tasks:
        lines.append("Suggested steps (/accept or /accept N):")
        for i, s in enumerate(snap.suggested_sub_tasks, start=1):
            lines.append(f"  {i}. {s.title} ({s.estimated_minutes}m) - {s.reasoning}")
    for v in snap.video_resources:
        lines.append(f"Video: {v.search_query} -> {v.search_url}")
    for w in snap.web_sources:
        lines.append(f"{w.title} [{w.source}]: {w.url}")
    return "\n".join(lines)


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_show(state: AppState, args: list[str]) -> str:
    return render_task(state)


def cmd_add(state: AppState, args: list[str]) -> str:
    sub_task = state.controller.add_sub_task(" ".join(args))
    if sub_task is None:
        return "Usage: /add <title>"
    return f"Added: {sub_task.title}"


def cmd_toggle(state: AppState, args: list[str]) -> str:
    sub_task_id = _pick_sub_task_id(state, args)
    if sub_task_id is None or not state.controller.toggle_sub_task(sub_task_id):
        return "Usage: /toggle <number>"
    return render_task(state)


def cmd_delete(state: AppState, args: list[str]) -> str:
    sub_task_id = _pick_sub_task_id(state, args)
    if sub_task_id is None or not state.controller.delete_sub_task(sub_task_id):
        return "Usage: /delete <number>"
    return render_task(state)


def cmd_move(state: AppState, args: list[str]) -> str:
    try:
        src, dst = int(args[0]), int(args[1])
    except (IndexError, ValueError):
        return "Usage: /move <from> <to>"
    state.controller.reorder_sub_tasks(src - 1, dst - 1)
    return render_task(state)


def cmd_cycle(state: AppState, args: list[str]) -> str:
    minutes = state.controller.cycle_duration()
    return f"Duration: {format_duration(minutes)}"


def cmd_title(state: AppState, args: list[str]) -> str:
    if not state.controller.update_title(" ".join(args)):
        return "Usage: /title <new title>"
    return render_task(state)


def cmd_notes(state: AppState, args: list[str]) -> str:
    state.controller.update_notes(" ".join(args))
    return "Notes updated." if args else "Notes cleared."


def cmd_context(state: AppState, args: list[str]) -> str:
    state.controller.set_ai_context(" ".join(args))
    return "AI context set." if args else "AI context cleared."


async def cmd_insights(state: AppState, args: list[str]) -> str:
    await state.controller.load_ai_insights()
    return render_insights(state)


async def cmd_retry(state: AppState, args: list[str]) -> str:
    await state.controller.retry_ai_insights()
    return render_insights(state)


async def cmd_accept(state: AppState, args: list[str]) -> str:
    ctl = state.controller
    if not args:
        added = await ctl.generate_ai_sub_tasks()
        return f"Added {len(added)} suggested sub-task(s).\n" + render_task(state)

    suggestions = ctl.insights.suggested_sub_tasks
    try:
        pos = int(args[0])
    except ValueError:
        return "Usage: /accept [number]"
    if not 1 <= pos <= len(suggestions):
        return "No such suggestion. Use /insights first."
    sub_task = ctl.add_single_ai_suggested_sub_task(suggestions[pos - 1])
    return f"Added: {sub_task.title}"


async def cmd_estimate(state: AppState, args: list[str]) -> str:
    task = state.controller.task
    if task is None:
        return "No task open."

    estimate = getattr(state.ai, "estimate_duration", None)
    if state.ai.is_ready and estimate is not None:
        try:
            minutes, confidence, reasoning = await estimate(task)
        except AIServiceError as e:
            logger.info("Duration estimate unavailable: %s", e)
            minutes, confidence, reasoning = fallback_duration_estimate(task.task_type)
    else:
        minutes, confidence, reasoning = fallback_duration_estimate(task.task_type)
    return f"Estimate: {format_duration(minutes)} ({confidence} confidence)\n  {reasoning}"


def cmd_prompt(state: AppState, args: list[str]) -> str:
    ctl = state.controller
    return f"{ctl.ai_prompt}\n\nOpen in ChatGPT: {ctl.chatgpt_url()}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("show", cmd_show, help_text="Show the task and its sub-tasks.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a sub-task: /add <title>.")
registry.register("toggle", cmd_toggle, help_text="Complete/reopen a sub-task: /toggle <n>.")
registry.register("delete", cmd_delete, help_text="Delete a sub-task: /delete <n>.", aliases=["rm"])
registry.register("move", cmd_move, help_text="Reorder sub-tasks: /move <from> <to>.")
registry.register("cycle", cmd_cycle, help_text="Cycle the duration estimate.")
registry.register("title", cmd_title, help_text="Rename the task: /title <text>.")
registry.register("notes", cmd_notes, help_text="Set task notes: /notes <text>.")
registry.register("context", cmd_context, help_text="Extra context for the AI: /context <text>.")
registry.register("insights", cmd_insights, help_text="Fetch AI insights (offline fallback).")
registry.register("retry", cmd_retry, help_text="Retry AI insights after an error.")
registry.register(
    "accept", cmd_accept, help_text="Add suggested sub-tasks: /accept (all) | /accept <n>."
)
registry.register("estimate", cmd_estimate, help_text="Estimate duration with confidence.")
registry.register("prompt", cmd_prompt, help_text="Show a copy-paste prompt for a chat assistant.")
