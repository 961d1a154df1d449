"""Unit tests for orchestrator_service module."""

from datetime import date

import pytest

from src.domain.classification import IntentType
from src.domain.task import TaskPriority, TaskStatus
from src.services.follow_up_service import COMPLETION_DATE_QUESTION
from src.services.orchestrator_service import orchestrate, quick_intent_hint
from tests.unit.mocks import FakeCompletionService


TODAY = date(2026, 10, 17)


@pytest.mark.unit
class TestOrchestrate:
    """Test normalising classifier output."""

    @pytest.mark.asyncio
    async def test_complete_folded_into_update(self, sample_tasks):
        """Returns update with status done for a complete intent."""
        completion = FakeCompletionService(
            {
                "intent": "complete",
                "confidence": 90,
                "reasoning": "Login bug is finished",
                "targetTask": {"id": "t1", "title": "Fix login bug"},
            }
        )

        result = await orchestrate("I finished the login bug", sample_tasks, completion=completion, today=TODAY)

        assert result.intent == IntentType.UPDATE
        assert result.classification.intent == IntentType.COMPLETE
        assert result.suggested_task_id == "t1"
        assert result.updates.status == TaskStatus.DONE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("intent", ["update", "complete", "delete"])
    async def test_unknown_target_becomes_create(self, sample_tasks, intent):
        """Never returns a targeted intent for a task outside the snapshot."""
        completion = FakeCompletionService(
            {
                "intent": intent,
                "confidence": 95,
                "reasoning": "Matches a task",
                "targetTask": {"id": "t99", "title": "Ghost task"},
                "updates": {"status": "done"},
            }
        )

        result = await orchestrate("finish the ghost task", sample_tasks, completion=completion, today=TODAY)

        assert result.intent == IntentType.CREATE
        assert result.suggested_task_id is None
        assert result.updates is None
        assert result.task_details is not None

    @pytest.mark.asyncio
    async def test_update_keeps_classifier_diff(self, sample_tasks):
        """Passes the classifier's proposed fields through."""
        completion = FakeCompletionService(
            {
                "intent": "update",
                "confidence": 85,
                "reasoning": "Raise priority",
                "targetTask": {"id": "t2", "title": "Write API docs"},
                "updates": {"priority": "high"},
            }
        )

        result = await orchestrate("make the API docs high priority", sample_tasks, completion=completion)

        assert result.intent == IntentType.UPDATE
        assert result.suggested_task_id == "t2"
        assert result.updates.priority == TaskPriority.HIGH

    @pytest.mark.asyncio
    async def test_create_merges_follow_ups(self, sample_tasks):
        """Merges classifier and deterministic follow-ups, capped at three."""
        completion = FakeCompletionService(
            {
                "intent": "create",
                "confidence": 60,
                "reasoning": "New work",
                "taskDetails": {"title": "Deploy", "priority": "medium"},
                "vaguenessScore": 85,
                "followUpQuestions": ["Which service are you deploying?"],
            }
        )

        result = await orchestrate("deploy", sample_tasks, completion=completion, today=TODAY)

        assert result.intent == IntentType.CREATE
        assert result.suggested_task_id is None
        assert result.follow_up_questions == [
            "Which service are you deploying?",
            COMPLETION_DATE_QUESTION,
            "Are there any dependencies or blockers for this deployment?",
        ]

    @pytest.mark.asyncio
    async def test_delete_sets_suggested_task(self, sample_tasks):
        """Suggests the validated target for delete."""
        completion = FakeCompletionService(
            {"intent": "delete", "reasoning": "Remove demo", "targetTask": {"id": "t4", "title": "Prepare demo"}}
        )

        result = await orchestrate("delete the demo task", sample_tasks, completion=completion)

        assert result.intent == IntentType.DELETE
        assert result.suggested_task_id == "t4"

    @pytest.mark.asyncio
    async def test_clarify_copies_question(self, sample_tasks):
        """Copies the classifier's clarifying question."""
        completion = FakeCompletionService(
            {"intent": "clarify", "reasoning": "Ambiguous", "clarifyingQuestion": "Which task is done?"}
        )

        result = await orchestrate("that's done", sample_tasks, completion=completion)

        assert result.intent == IntentType.CLARIFY
        assert result.clarifying_question == "Which task is done?"

    @pytest.mark.asyncio
    async def test_space_name_and_activity_reach_prompt(self, sample_tasks, recent_activity):
        """Renders the space name and recent activity into the prompt."""
        completion = FakeCompletionService({"intent": "query", "reasoning": "list", "queryType": "list"})

        await orchestrate("what's due?", sample_tasks, "Sprint 12", recent_activity, completion=completion)

        assert 'Space: "Sprint 12"' in completion.prompts[0]
        assert 'Last completed: "Prepare demo"' in completion.prompts[0]


@pytest.mark.unit
@pytest.mark.parametrize(
    ("text", "intent"),
    [
        ("delete the login task", IntentType.DELETE),
        ("Remove the demo", IntentType.DELETE),
        ("show my tasks", IntentType.QUERY),
        ("how many tasks are open", IntentType.QUERY),
        ("mark login bug as done", IntentType.UPDATE),
        ("buy milk", IntentType.CREATE),
    ],
)
def test_quick_intent_hint(text, intent):
    """Test pattern-based hints."""
    assert quick_intent_hint(text) == intent
