"""Dialogue service: decides per turn whether to ask, create, update or delete.

The conversation state is a `PendingTask` owned by the caller. A turn with
no pending task starts from Idle; a turn with one is the user's answer to
the previous clarifying question. The service itself keeps no state between
calls.
"""

import logging
import re
from datetime import date

from src.agents.completion import CompletionService
from src.agents.updater_agent import resolve_update
from src.core.config import constants, settings
from src.core.due_dates import fallback_due_date
from src.core.logging import span
from src.domain.classification import IntentType, OrchestrationResult, TaskDetails
from src.domain.conversation import DialogueAction, DialogueTurn, PendingTask
from src.domain.create_models import NewTask
from src.domain.task import RecentActivity, Task, TaskPriority, find_task
from src.services.follow_up_service import DATE_QUESTION, MORE_DETAIL_QUESTION, split_date_questions
from src.services.orchestrator_service import orchestrate


logger = logging.getLogger(__name__)

DEFAULT_VAGUENESS_SCORE = 50
COMBINED_DATE_QUESTION = "what's the deadline?"
QUERY_MESSAGE = "Query support coming soon! For now I can create and update tasks."
QUERY_FOLLOW_UP = "Would you like me to create a task instead?"
DELETE_CLARIFY_QUESTION = "Which task would you like to delete?"
UPDATE_FALLBACK_FOLLOW_UP = "I couldn't find the task you're referring to. Want me to create a new task instead?"

_TRAILING_QUESTION_MARK = re.compile(r"\?\s*$")


def _strip_question_mark(question: str) -> str:
    return _TRAILING_QUESTION_MARK.sub("", question.strip())


def _lower_first(text: str) -> str:
    return text[:1].lower() + text[1:]


def combine_questions(questions: list[str]) -> str:
    """Join clarifying questions into one natural question.

    One question is used verbatim; two become "Q1 and q2"; three or more
    become "Q1, Q2, and q3". Trailing question marks are dropped from all
    but the last question.
    """
    cleaned = [q.strip() for q in questions if q and q.strip()]
    if not cleaned:
        return ""
    if len(cleaned) == 1:
        return cleaned[0]
    if len(cleaned) == 2:
        return f"{_strip_question_mark(cleaned[0])} and {_lower_first(cleaned[1])}"
    head = ", ".join(_strip_question_mark(q) for q in cleaned[:-1])
    return f"{head}, and {_lower_first(cleaned[-1])}"


class DialogueService:
    """Turn-level dialogue policy on top of the orchestrator and update resolver."""

    def __init__(
        self,
        completion: CompletionService | None = None,
        *,
        vagueness_threshold: int | None = None,
    ) -> None:
        self.completion = completion
        self.vagueness_threshold = (
            settings.vagueness_threshold if vagueness_threshold is None else vagueness_threshold
        )

    async def handle_message(
        self,
        utterance: str,
        tasks: list[Task],
        *,
        pending: PendingTask | None = None,
        space_name: str | None = None,
        recent_activity: RecentActivity | None = None,
        today: date | None = None,
    ) -> DialogueTurn:
        """Handle one user message.

        Args:
            utterance: Raw user input, or the answer to the previous question
            tasks: Current tasks of the space (read-only)
            pending: Pending task from the previous clarifying turn, if any
            space_name: Display name of the space
            recent_activity: Last created/updated/completed tasks
            today: Reference date for relative and fallback due dates

        Returns:
            DialogueTurn; ``pending_task`` is set only when the caller should keep waiting for an answer
        """
        with span("dialogue.handle_message"):
            if pending is not None:
                return await self._handle_answer(
                    utterance,
                    tasks,
                    pending,
                    space_name=space_name,
                    recent_activity=recent_activity,
                    today=today,
                )

            orchestration = await orchestrate(
                utterance,
                tasks,
                space_name,
                recent_activity,
                completion=self.completion,
                today=today,
            )
            return await self._route(utterance, tasks, orchestration)

    async def _route(self, utterance: str, tasks: list[Task], orchestration: OrchestrationResult) -> DialogueTurn:
        intent = orchestration.intent
        logger.info("dialogue_route", extra={"intent": intent.value, "confidence": orchestration.confidence})

        if intent == IntentType.CLARIFY:
            return DialogueTurn(
                action=DialogueAction.CLARIFY,
                question=orchestration.clarifying_question or "Which task do you mean?",
                follow_up_questions=orchestration.follow_up_questions,
                confidence=orchestration.confidence,
                reasoning=orchestration.reasoning,
            )
        if intent == IntentType.UPDATE:
            return await self._handle_update(utterance, tasks, orchestration)
        if intent == IntentType.DELETE:
            return self._handle_delete(tasks, orchestration)
        if intent == IntentType.QUERY:
            return DialogueTurn(
                action=DialogueAction.QUERY,
                message=QUERY_MESSAGE,
                follow_up_questions=[QUERY_FOLLOW_UP],
                confidence=orchestration.confidence,
                reasoning=orchestration.reasoning,
            )
        return self._handle_create(utterance, orchestration)

    def _handle_create(self, utterance: str, orchestration: OrchestrationResult) -> DialogueTurn:
        details = orchestration.task_details or TaskDetails(title=utterance.strip())
        title = details.title or utterance.strip()
        priority = details.priority or TaskPriority.MEDIUM
        vagueness = orchestration.classification.vagueness_score
        vagueness = DEFAULT_VAGUENESS_SCORE if vagueness is None else vagueness

        date_questions, context_questions = split_date_questions(orchestration.follow_up_questions)
        suggestions = context_questions or None

        if vagueness > self.vagueness_threshold and context_questions:
            questions = list(context_questions)
            if not details.due_date:
                questions.append(date_questions[0] if date_questions else COMBINED_DATE_QUESTION)
            logger.info("dialogue_ask_combined", extra={"vagueness_score": vagueness, "questions": len(questions)})
            return DialogueTurn(
                action=DialogueAction.CLARIFY,
                question=combine_questions(questions),
                pending_task=PendingTask(
                    title=title,
                    description=details.description,
                    priority=priority,
                    due_date=details.due_date,
                    accumulated_context=utterance,
                ),
                vagueness_score=vagueness,
                confidence=orchestration.confidence,
                reasoning=orchestration.classification.vague_reason or "Need more context to understand the task",
            )

        if not details.due_date:
            logger.info("dialogue_ask_due_date", extra={"vagueness_score": vagueness})
            return DialogueTurn(
                action=DialogueAction.CLARIFY,
                question=date_questions[0] if date_questions else DATE_QUESTION,
                pending_task=PendingTask(
                    title=title,
                    description=details.description,
                    priority=priority,
                    accumulated_context=utterance,
                    suggested_improvements=suggestions,
                ),
                vagueness_score=vagueness,
                confidence=orchestration.confidence,
                reasoning="Due date is required to create a task",
            )

        return DialogueTurn(
            action=DialogueAction.CREATE,
            task=NewTask(
                title=title,
                description=details.description,
                priority=priority,
                due_date=details.due_date,
                tags=details.tags,
                suggested_improvements=suggestions,
            ),
            vagueness_score=vagueness,
            confidence=orchestration.confidence,
            reasoning=orchestration.reasoning,
        )

    async def _handle_answer(
        self,
        answer: str,
        tasks: list[Task],
        pending: PendingTask,
        *,
        space_name: str | None,
        recent_activity: RecentActivity | None,
        today: date | None,
    ) -> DialogueTurn:
        combined = f"{pending.title}: {answer.strip()}"
        accumulated = f"{pending.accumulated_context}\n{answer.strip()}".strip()
        orchestration = await orchestrate(
            combined,
            tasks,
            space_name,
            recent_activity,
            completion=self.completion,
            history=[line for line in pending.accumulated_context.splitlines() if line.strip()],
            today=today,
        )

        # Answers only ever refine the pending task.
        details = orchestration.task_details or TaskDetails()
        vagueness = orchestration.classification.vagueness_score
        vagueness = DEFAULT_VAGUENESS_SCORE if vagueness is None else vagueness
        date_questions, context_questions = split_date_questions(orchestration.follow_up_questions)

        title = details.title or pending.title
        description = details.description or pending.description
        priority = details.priority if details.priority and details.priority != TaskPriority.MEDIUM else pending.priority
        known_due_date = details.due_date or pending.due_date

        can_ask_again = pending.rounds_used < constants.MAX_EXTRA_CLARIFICATION_ROUNDS
        if vagueness > self.vagueness_threshold and can_ask_again:
            questions = list(context_questions)
            if not known_due_date:
                questions.append(date_questions[0] if date_questions else COMBINED_DATE_QUESTION)
            if not questions:
                questions.append(MORE_DETAIL_QUESTION)
            logger.info(
                "dialogue_ask_again",
                extra={"vagueness_score": vagueness, "rounds_used": pending.rounds_used + 1},
            )
            return DialogueTurn(
                action=DialogueAction.CLARIFY,
                question=combine_questions(questions),
                pending_task=PendingTask(
                    title=title,
                    description=description,
                    priority=priority,
                    due_date=known_due_date,
                    accumulated_context=accumulated,
                    rounds_used=pending.rounds_used + 1,
                    suggested_improvements=pending.suggested_improvements,
                ),
                vagueness_score=vagueness,
                confidence=orchestration.confidence,
                reasoning=orchestration.classification.vague_reason or "Still need more context",
            )

        due_date = known_due_date or fallback_due_date(today)
        if not known_due_date:
            logger.info("dialogue_due_date_fallback", extra={"due_date": due_date})

        logger.info("dialogue_create_after_clarification", extra={"rounds_used": pending.rounds_used})
        return DialogueTurn(
            action=DialogueAction.CREATE,
            task=NewTask(
                title=title,
                description=description,
                priority=priority,
                due_date=due_date,
                tags=details.tags,
                suggested_improvements=pending.suggested_improvements,
            ),
            vagueness_score=vagueness,
            confidence=orchestration.confidence,
            reasoning=orchestration.reasoning,
        )

    async def _handle_update(
        self,
        utterance: str,
        tasks: list[Task],
        orchestration: OrchestrationResult,
    ) -> DialogueTurn:
        target_id = orchestration.suggested_task_id
        if not target_id or find_task(tasks, target_id) is None:
            logger.info("dialogue_update_without_target", extra={"target_task_id": target_id})
            return DialogueTurn(
                action=DialogueAction.CREATE,
                task=NewTask(title=utterance.strip()),
                follow_up_questions=[UPDATE_FALLBACK_FOLLOW_UP],
                confidence=50,
                reasoning="Could not identify target task for update",
            )

        update = await resolve_update(
            utterance,
            tasks,
            target_id,
            proposed_updates=orchestration.updates,
            completion=self.completion,
        )
        return DialogueTurn(
            action=DialogueAction.UPDATE,
            update=update,
            task_id=update.task_id,
            follow_up_questions=orchestration.follow_up_questions,
            confidence=orchestration.confidence,
            reasoning=orchestration.reasoning,
        )

    def _handle_delete(self, tasks: list[Task], orchestration: OrchestrationResult) -> DialogueTurn:
        target = find_task(tasks, orchestration.suggested_task_id)
        if target is None:
            return DialogueTurn(action=DialogueAction.CLARIFY, question=DELETE_CLARIFY_QUESTION, confidence=50)

        return DialogueTurn(
            action=DialogueAction.DELETE,
            task_id=target.id,
            task_title=target.title,
            confidence=orchestration.confidence,
            reasoning=orchestration.reasoning,
        )
