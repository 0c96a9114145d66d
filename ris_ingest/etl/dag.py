"""
Lightweight DAG engine for ingestion workflows.

Demonstrates:
- Topological execution of named steps with explicit dependencies
- Context passing: each step sees the merged results of its upstream steps
- Partial-failure handling: a crashed step is recorded, its dependents are
  skipped, and the caller decides what a failure means
- Per-step observability (status and duration)
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

StepFn = Callable[[dict[str, Any]], dict[str, Any]]


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class TaskNode:
    """A single unit of work inside a DAG."""

    name: str
    execute_fn: StepFn
    depends_on: list[str] = field(default_factory=list)
    status: TaskStatus = TaskStatus.PENDING
    result: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    duration_ms: float = 0.0

    def summary(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "duration_ms": round(self.duration_ms, 2),
            "error": self.error,
        }


class DAG:
    """
    A directed acyclic graph of TaskNodes.

    Usage:
        dag = DAG("hl7_ingestion")
        dag.add_task("check_patient", check_fn)
        dag.add_task("create_patient", create_fn, depends_on=["check_patient"])
        summary = dag.run(initial_context={"order": order})

    A DAG instance holds run state, so build a fresh one per run.
    """

    def __init__(self, name: str):
        self.name = name
        self.tasks: dict[str, TaskNode] = {}

    def add_task(
        self,
        name: str,
        execute_fn: StepFn,
        depends_on: list[str] | None = None,
    ) -> DAG:
        if name in self.tasks:
            raise ValueError(f"Duplicate task name: {name}")
        self.tasks[name] = TaskNode(
            name=name, execute_fn=execute_fn, depends_on=list(depends_on or [])
        )
        return self  # allow chaining

    def _topological_sort(self) -> list[str]:
        """Kahn's algorithm; ties keep insertion order."""
        dependents: dict[str, list[str]] = {name: [] for name in self.tasks}
        in_degree: dict[str, int] = {}
        for task in self.tasks.values():
            for dep in task.depends_on:
                if dep not in self.tasks:
                    raise ValueError(
                        f"Task '{task.name}' depends on unknown task '{dep}'"
                    )
                dependents[dep].append(task.name)
            in_degree[task.name] = len(task.depends_on)

        ready = deque(name for name, degree in in_degree.items() if degree == 0)
        order: list[str] = []
        while ready:
            current = ready.popleft()
            order.append(current)
            for name in dependents[current]:
                in_degree[name] -= 1
                if in_degree[name] == 0:
                    ready.append(name)

        if len(order) != len(self.tasks):
            raise ValueError("Cycle detected in DAG")
        return order

    def run(self, initial_context: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Execute all tasks in topological order and return a run summary:
        ``{"pipeline": name, "status": "completed" | "failed", "tasks": {...}}``.
        """
        execution_order = self._topological_sort()
        context = dict(initial_context or {})
        summary: dict[str, Any] = {"pipeline": self.name, "tasks": {}}

        logger.info("Starting pipeline '%s' with %d tasks", self.name, len(self.tasks))

        for task_name in execution_order:
            task = self.tasks[task_name]

            blocked_by = [
                dep
                for dep in task.depends_on
                if self.tasks[dep].status in (TaskStatus.FAILED, TaskStatus.SKIPPED)
            ]
            if blocked_by:
                task.status = TaskStatus.SKIPPED
                task.error = f"upstream failed: {', '.join(blocked_by)}"
                logger.warning("Skipping '%s' – %s", task_name, task.error)
                summary["tasks"][task_name] = task.summary()
                continue

            for dep in task.depends_on:
                context.update(self.tasks[dep].result)

            task.status = TaskStatus.RUNNING
            logger.debug("Running task '%s'", task_name)
            start = time.perf_counter()
            try:
                task.result = task.execute_fn(context) or {}
                task.status = TaskStatus.SUCCESS
            except Exception as exc:
                task.status = TaskStatus.FAILED
                task.error = f"{type(exc).__name__}: {exc}"
                logger.exception("Task '%s' failed", task_name)
            finally:
                task.duration_ms = (time.perf_counter() - start) * 1000

            summary["tasks"][task_name] = task.summary()

        summary["status"] = "failed" if self.failed_tasks() else "completed"
        logger.info("Pipeline '%s' finished – %s", self.name, summary["status"])
        return summary

    def failed_tasks(self) -> list[TaskNode]:
        return [t for t in self.tasks.values() if t.status == TaskStatus.FAILED]
