"""Task context service: renders a space snapshot into bounded prompt text."""

from src.core.config import constants, settings
from src.domain.task import SpaceContext, Task, TaskStatus


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def _format_task_line(index: int, task: Task) -> list[str]:
    due_str = f" | Due: {task.due_date}" if task.due_date else ""
    priority_str = f" | Priority: {task.priority}" if task.priority else ""
    lines = [f'{index}. [{task.status.upper()}] "{task.title}" (ID: {task.id}){priority_str}{due_str}']
    if task.description:
        lines.append(f"   Description: {_truncate(task.description, constants.CONTEXT_DESCRIPTION_LENGTH)}")
    return lines


def build_task_context(context: SpaceContext, *, max_tasks: int | None = None) -> str:
    """Format a space snapshot for inclusion in the classifier prompt.

    Args:
        context: Space name, tasks and recent activity
        max_tasks: Maximum number of tasks listed (defaults to settings.max_context_tasks)

    Returns:
        Multi-line context string
    """
    tasks = context.tasks
    if not tasks:
        return f'Space "{context.space_name}" has no tasks yet.'

    limit = settings.max_context_tasks if max_tasks is None else max_tasks
    counts = {status: sum(1 for task in tasks if task.status == status) for status in TaskStatus}

    lines = [
        f'Space: "{context.space_name}"',
        (
            f"Total tasks: {len(tasks)} ({counts[TaskStatus.TODO]} todo, "
            f"{counts[TaskStatus.IN_PROGRESS]} in-progress, {counts[TaskStatus.DONE]} done)"
        ),
        "",
        "=== ALL TASKS ===",
    ]

    for index, task in enumerate(tasks[:limit], start=1):
        lines.extend(_format_task_line(index, task))

    omitted = len(tasks) - limit
    if omitted > 0:
        lines.append(f"... and {omitted} more tasks not shown")

    activity = context.recent_activity
    if activity:
        lines.extend(["", "=== RECENT ACTIVITY ==="])
        if activity.last_created_task:
            lines.append(f'Last created: "{activity.last_created_task.title}"')
        if activity.last_updated_task:
            lines.append(f'Last updated: "{activity.last_updated_task.title}"')
        if activity.last_completed_task:
            lines.append(f'Last completed: "{activity.last_completed_task.title}"')

    return "\n".join(lines)


def build_update_task_list(tasks: list[Task]) -> str:
    """Format all tasks as a compact numbered list for the update resolver prompt."""
    if not tasks:
        return "No existing tasks."

    lines = []
    for index, task in enumerate(tasks, start=1):
        description = f" - {task.description[: constants.UPDATER_DESCRIPTION_LENGTH]}" if task.description else ""
        lines.append(f'{index}. [ID: {task.id}] "{task.title}"{description} [Status: {task.status}]')
    return "\n".join(lines)
