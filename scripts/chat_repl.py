"""Interactive driver for the dialogue service.

Keeps an in-memory task list, sends each line typed at the prompt through
`DialogueService.handle_message`, and applies the resulting create, update
or delete to the list so follow-up messages can refer to earlier tasks.

Usage:
    OPENROUTER_API_KEY=... python scripts/chat_repl.py [--space "Sprint 12"]
"""

import argparse
import asyncio
import json
import logging
import sys
import time
import uuid
from pathlib import Path


# Add src to pythonpath
sys.path.append(str(Path.cwd()))

from src.agents.description_agent import enhance_description, generate_polished_description
from src.core.logging import configure_logfire, instrument_pydantic_ai
from src.domain.conversation import DialogueAction, DialogueTurn
from src.domain.task import RecentActivity, Task, TaskStatus, TaskUpdate, TaskUpdateType
from src.services.dialogue_service import DialogueService
from src.services.pending_task_store import PendingTaskStore


logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

CONVERSATION_ID = "repl"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _apply_turn(turn: DialogueTurn, tasks: list[Task], activity: RecentActivity) -> Task | None:
    """Apply a turn's outcome to the in-memory task list and return the affected task."""
    if turn.action == DialogueAction.CREATE and turn.task is not None:
        now = _now_ms()
        task = Task(
            id=uuid.uuid4().hex[:8],
            title=turn.task.title,
            description=turn.task.description,
            due_date=turn.task.due_date,
            priority=turn.task.priority,
            created_at=now,
            updated_at=now,
            updates=[TaskUpdate(id=uuid.uuid4().hex[:8], type=TaskUpdateType.CREATION, content="Task created", timestamp=now)],
            suggested_improvements=turn.task.suggested_improvements or [],
        )
        tasks.append(task)
        activity.last_created_task = task
        return task

    if turn.action == DialogueAction.UPDATE and turn.update is not None and turn.update.task_id:
        index = next((i for i, task in enumerate(tasks) if task.id == turn.update.task_id), None)
        if index is None:
            return None
        changes = {k: v for k, v in turn.update.updates.changed_fields().items() if k != "tags"}
        updates = list(tasks[index].updates)
        if turn.update.timeline is not None:
            entry = turn.update.timeline
            updates.append(
                TaskUpdate(
                    id=uuid.uuid4().hex[:8],
                    type=entry.type,
                    content=entry.content,
                    timestamp=entry.timestamp,
                    field=entry.field,
                    old_value=entry.old_value,
                    new_value=entry.new_value,
                )
            )
        task = Task.model_validate(
            {**tasks[index].model_dump(), **changes, "updates": updates, "updated_at": _now_ms()}
        )
        tasks[index] = task
        activity.last_updated_task = task
        if task.status == TaskStatus.DONE:
            activity.last_completed_task = task
        return task

    if turn.action == DialogueAction.DELETE and turn.task_id:
        tasks[:] = [task for task in tasks if task.id != turn.task_id]
    return None


def _print_turn(turn: DialogueTurn) -> None:
    if turn.question:
        print(f"? {turn.question}")
    if turn.message:
        print(turn.message)
    if turn.action == DialogueAction.CREATE and turn.task is not None:
        print(f"+ created: {turn.task.model_dump_json(exclude_none=True)}")
    elif turn.action == DialogueAction.UPDATE and turn.update is not None:
        if turn.update.missing_info:
            print(f"! {turn.update.missing_info}")
        print(f"~ updated {turn.update.task_id}: {json.dumps(turn.update.updates.changed_fields())}")
        if turn.update.timeline is not None:
            print(f"  timeline: {turn.update.timeline.type} - {turn.update.timeline.content}")
    elif turn.action == DialogueAction.DELETE:
        print(f"- delete {turn.task_id} ({turn.task_title})")
    for question in turn.follow_up_questions:
        print(f"  ({question})")


def _print_tasks(tasks: list[Task]) -> None:
    if not tasks:
        print("(no tasks)")
    for task in tasks:
        print(f"[{task.id}] {task.title} | {task.status} | {task.priority or 'unset'} | due {task.due_date or '-'}")
        for question in task.suggested_improvements:
            print(f"    ? {question}")


async def _answer_improvement(command: str, tasks: list[Task]) -> None:
    """Handle `/improve <task id> <answer>`: answer the task's next suggested question."""
    parts = command.split(maxsplit=2)
    if len(parts) < 3:
        print("usage: /improve <task id> <answer>")
        return
    _, task_id, answer = parts
    index = next((i for i, task in enumerate(tasks) if task.id == task_id), None)
    if index is None or not tasks[index].suggested_improvements:
        print(f"! no open questions for {task_id}")
        return

    task = tasks[index]
    question, *remaining = task.suggested_improvements
    description = await enhance_description(task.title, task.description, question, answer)
    tasks[index] = task.model_copy(
        update={"description": description, "suggested_improvements": remaining, "updated_at": _now_ms()}
    )
    print(f"  description: {description}")


async def run_repl(space_name: str, describe: bool) -> None:
    """Read lines from stdin until EOF or /quit."""
    configure_logfire()
    instrument_pydantic_ai()

    service = DialogueService()
    store = PendingTaskStore()
    tasks: list[Task] = []
    activity = RecentActivity()

    print("Type a message. /tasks lists tasks, /improve <id> <answer> answers a suggested question, /quit exits.")
    while True:
        try:
            line = await asyncio.to_thread(input, "> ")
        except EOFError:
            break
        line = line.strip()
        if not line:
            continue
        if line == "/quit":
            break
        if line == "/tasks":
            _print_tasks(tasks)
            continue
        if line.startswith("/improve"):
            await _answer_improvement(line, tasks)
            continue

        turn = await service.handle_message(
            line,
            tasks,
            pending=store.pop(CONVERSATION_ID),
            space_name=space_name,
            recent_activity=activity,
        )
        store.put(CONVERSATION_ID, turn.pending_task)
        _print_turn(turn)

        task = _apply_turn(turn, tasks, activity)
        if describe and task is not None:
            print(f"  description: {await generate_polished_description(task)}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with the task dialogue engine")
    parser.add_argument("--space", default="Current Space", help="Space name shown to the classifier")
    parser.add_argument("--describe", action="store_true", help="Generate a description after each change")
    parser.add_argument("--verbose", action="store_true", help="Log engine events at INFO level")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger("src").setLevel(logging.INFO)

    asyncio.run(run_repl(args.space, args.describe))


if __name__ == "__main__":
    main()
