# src/veloce/detail/prompt.py

from __future__ import annotations

from urllib.parse import quote

from ..tasks.task_models import Task

CHATGPT_URL = "https://chat.openai.com/?q="


def generate_ai_prompt(task: Task, context: str = "") -> str:
    """Copy-paste prompt for an external chat assistant."""
    notes_section = f"\nNotes: {task.notes}" if task.notes else ""
    context_section = f"\nAdditional context: {context}" if context else ""

    return (
        f'Help me complete: "{task.title}"\n'
        f"{notes_section}{context_section}\n"
        "\n"
        "Please provide:\n"
        "1. A step-by-step approach to complete this efficiently\n"
        "2. Potential challenges I might face and how to overcome them\n"
        "3. Time-saving tips specific to this type of task\n"
        "4. Resources or tools that could help"
    )


def chatgpt_url(prompt: str) -> str:
    return CHATGPT_URL + quote(prompt, safe="")


def format_duration(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} min"
    if minutes % 60 == 0:
        return f"{minutes // 60}h"
    return f"{minutes // 60}h {minutes % 60}m"
