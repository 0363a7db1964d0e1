# src/veloce/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..detail.controller import TaskDetailController
from .ports import AIAnalysisClient, TaskRepo


@dataclass
class AppState:
    """Everything one console session needs, wired by cli/bootstrap.py."""

    settings: Any
    store: TaskRepo
    ai: AIAnalysisClient
    controller: TaskDetailController

    def save(self) -> None:
        task = self.controller.task
        if task is not None:
            self.store.save_task(task)
