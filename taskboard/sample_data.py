from __future__ import annotations

from datetime import datetime
from typing import List

from taskboard.domain.common.time import truncate_ms
from taskboard.domain.tasks.models import TagColor, Task, TaskPriority, TaskStatus, TaskTag

# (id, title, description, status, priority, tags, points, assignee, order)
_SAMPLES = [
    (
        "task-sample-1",
        "Design Login Flow Mockups",
        "Create wireframes and high-fidelity mockups for the login flow",
        TaskStatus.TODO,
        TaskPriority.HIGH,
        (("UI Design", TagColor.PURPLE), ("High-Effort", TagColor.ORANGE)),
        3,
        "Alice",
        0,
    ),
    (
        "task-sample-2",
        "Setup Database Schema",
        "Define and implement the database schema for user data",
        TaskStatus.TODO,
        TaskPriority.MEDIUM,
        (("Backend", TagColor.BLUE),),
        2,
        "Bob",
        1,
    ),
    (
        "task-sample-3",
        "Develop Authentication API",
        "Implement JWT-based authentication endpoints",
        TaskStatus.IN_PROGRESS,
        TaskPriority.HIGH,
        (("Backend", TagColor.BLUE), ("High-Effort", TagColor.ORANGE)),
        5,
        "Charlie",
        0,
    ),
    (
        "task-sample-4",
        "Onboarding Flow User Research",
        "Conduct user interviews and analyze onboarding patterns",
        TaskStatus.BACKLOG,
        TaskPriority.LOW,
        (("Research", TagColor.GREEN),),
        2,
        None,
        0,
    ),
    (
        "task-sample-5",
        "Landing Page Copywriting",
        "Write compelling copy for the marketing landing page",
        TaskStatus.IN_REVIEW,
        TaskPriority.MEDIUM,
        (("Marketing", TagColor.PURPLE),),
        1,
        "Diana",
        0,
    ),
    (
        "task-sample-6",
        "Update Brand Guidelines",
        "Refresh brand colors and typography guidelines",
        TaskStatus.DONE,
        TaskPriority.LOW,
        (("Design", TagColor.PURPLE),),
        None,
        None,
        0,
    ),
]


def sample_tasks(now: datetime) -> List[Task]:
    """Starter board used when the store is empty on first launch."""
    now = truncate_ms(now)
    tasks = []
    for task_id, title, description, status, priority, tags, points, assignee, order in _SAMPLES:
        done = status is TaskStatus.DONE
        tasks.append(
            Task(
                id=task_id,
                title=title,
                description=description,
                status=status,
                priority=priority,
                tags=tuple(TaskTag(label, color) for label, color in tags),
                points=points,
                assignee=assignee,
                order=order,
                completed=done,
                completed_at=now if done else None,
                created_at=now,
                updated_at=now,
            )
        )
    return tasks
