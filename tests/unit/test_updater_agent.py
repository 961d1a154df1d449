"""Unit tests for the update resolver."""

import pytest

from src.agents.updater_agent import (
    TARGET_NOT_FOUND_MESSAGE,
    UNPARSEABLE_MESSAGE,
    asserts_whole_task_completion,
    minimize_diff,
    note_from_utterance,
    resolve_update,
)
from src.domain.classification import TaskFieldDiff
from src.domain.task import Task, TaskPriority, TaskStatus, TaskUpdateType
from tests.unit.mocks import FakeCompletionService


NOW_MS = 1760700000000


@pytest.mark.unit
class TestWholeTaskCompletion:
    """Tests for the deterministic done guard."""

    @pytest.mark.parametrize(
        "utterance",
        [
            "mark it as done",
            "that's done",
            "done!",
            "I finished the login bug fix",
            "finished it",
        ],
    )
    def test_whole_task(self, login_task, utterance):
        """Test explicit whole-task completion is recognised."""
        assert asserts_whole_task_completion(utterance, login_task) is True

    @pytest.mark.parametrize(
        "utterance",
        [
            "completed the initial schema setup",
            "finished the first part of the login bug",
            "need to finish the docs",
            "the login bug is tricky",
        ],
    )
    def test_not_whole_task(self, login_task, utterance):
        """Test sub-parts and unrelated work do not complete the task."""
        assert asserts_whole_task_completion(utterance, login_task) is False

    @pytest.mark.parametrize(
        "utterance",
        [
            "completed the RAG pipeline embedding setup",
            "finished the rag pipeline config migration",
            "the RAG pipeline eval harness is done",
        ],
    )
    def test_subpart_named_with_title_words(self, utterance):
        """Test a sub-part that repeats the title words does not complete the task."""
        task = Task(id="t3", title="Build RAG pipeline")

        assert asserts_whole_task_completion(utterance, task) is False

    @pytest.mark.parametrize(
        "utterance",
        [
            "finally finished the RAG pipeline today",
            "the RAG pipeline is done",
            "I wrapped up the RAG pipeline build",
        ],
    )
    def test_title_only_completion(self, utterance):
        """Test naming just the task title still completes it."""
        task = Task(id="t3", title="Build RAG pipeline")

        assert asserts_whole_task_completion(utterance, task) is True


@pytest.mark.unit
class TestMinimizeDiff:
    """Tests for diff minimisation."""

    def test_drops_unchanged_values(self, login_task):
        """Test fields equal to the current value are removed."""
        diff = TaskFieldDiff(priority=TaskPriority.MEDIUM, due_date="2026-10-25", status=TaskStatus.TODO)

        minimized = minimize_diff(diff, login_task, "move it to the 25th")

        assert minimized.changed_fields() == {"due_date": "2026-10-25"}

    def test_drops_description_unless_asked(self, login_task):
        """Test progress notes do not rewrite the description."""
        diff = TaskFieldDiff(description="Waiting on QA")

        assert minimize_diff(diff, login_task, "waiting on QA now").is_empty()
        assert minimize_diff(diff, login_task, "change the description to waiting on QA").description == (
            "Waiting on QA"
        )

    def test_drops_title_unless_asked(self, login_task):
        """Test the title only changes on an explicit rename."""
        diff = TaskFieldDiff(title="Fix auth bug")

        assert minimize_diff(diff, login_task, "it's really an auth bug").is_empty()
        assert minimize_diff(diff, login_task, "rename it to Fix auth bug").title == "Fix auth bug"

    def test_keeps_clear_due_date_only_when_set(self, login_task, sample_tasks):
        """Test clearing a due date is dropped for tasks without one."""
        diff = TaskFieldDiff(clear_due_date=True)

        assert minimize_diff(diff, login_task, "remove the due date").changed_fields() == {"due_date": None}
        assert minimize_diff(diff, sample_tasks[1], "remove the due date").is_empty()


@pytest.mark.unit
def test_note_from_utterance():
    """Test progress reports become timeline notes."""
    assert note_from_utterance("I completed the initial schema setup.") == "Completed the initial schema setup"
    assert note_from_utterance("") == "Progress noted"


@pytest.mark.unit
class TestResolveUpdate:
    """Tests for resolve_update."""

    @pytest.mark.asyncio
    async def test_unknown_target_makes_no_call(self, sample_tasks):
        """Test an unknown target yields missing info without calling the service."""
        completion = FakeCompletionService({"updates": {}})

        result = await resolve_update("mark it done", sample_tasks, "t99", completion=completion)

        assert completion.call_count == 0
        assert result.task_id is None
        assert result.missing_info == TARGET_NOT_FOUND_MESSAGE
        assert result.timeline is None

    @pytest.mark.asyncio
    async def test_whole_task_completion(self, sample_tasks):
        """Test an explicit completion sets status done with a status_change entry."""
        completion = FakeCompletionService(
            {
                "taskId": "t1",
                "updates": {"status": "done"},
                "timeline": {"type": "status_change", "content": "Marked as complete"},
            }
        )

        result = await resolve_update(
            "mark the login bug as done", sample_tasks, "t1", completion=completion, now_ms=NOW_MS
        )

        assert result.task_id == "t1"
        assert result.updates.changed_fields() == {"status": "done"}
        assert result.timeline.type == TaskUpdateType.STATUS_CHANGE
        assert result.timeline.content == "Marked as complete"
        assert result.timeline.field == "status"
        assert result.timeline.old_value == "todo"
        assert result.timeline.new_value == "done"
        assert result.timeline.timestamp == NOW_MS

    @pytest.mark.asyncio
    async def test_subpart_completion_becomes_note(self, sample_tasks):
        """Test finishing a sub-part never marks the whole task done."""
        completion = FakeCompletionService(
            {
                "updates": {"status": "done"},
                "timeline": {"type": "status_change", "content": "Marked as complete"},
            }
        )

        result = await resolve_update(
            "I completed the initial embedding setup", sample_tasks, "t3", completion=completion, now_ms=NOW_MS
        )

        assert result.updates.is_empty()
        assert result.timeline.type == TaskUpdateType.NOTE
        assert result.timeline.content == "Completed the initial embedding setup"

    @pytest.mark.asyncio
    async def test_progress_note_keeps_description(self, sample_tasks):
        """Test a progress report adds a note and leaves the description alone."""
        completion = FakeCompletionService(
            {
                "updates": {"description": "Waiting on QA"},
                "timeline": {"type": "note", "content": "Halfway through, waiting on QA"},
            }
        )

        result = await resolve_update(
            "Halfway through the login bug, waiting on QA", sample_tasks, "t1", completion=completion, now_ms=NOW_MS
        )

        assert result.updates.is_empty()
        assert result.timeline.type == TaskUpdateType.NOTE
        assert result.timeline.content == "Halfway through, waiting on QA"

    @pytest.mark.asyncio
    async def test_due_date_change(self, sample_tasks):
        """Test a single field change records the old and new value."""
        completion = FakeCompletionService(
            {
                "updates": {"dueDate": "2026-10-25", "priority": "medium"},
                "timeline": {"type": "field_update", "content": "Due date moved to Oct 25"},
            }
        )

        result = await resolve_update("push it to October 25th", sample_tasks, "t1", completion=completion)

        assert result.updates.changed_fields() == {"due_date": "2026-10-25"}
        assert result.timeline.type == TaskUpdateType.FIELD_UPDATE
        assert result.timeline.field == "dueDate"
        assert result.timeline.old_value == "2026-10-20"
        assert result.timeline.new_value == "2026-10-25"

    @pytest.mark.asyncio
    async def test_clear_due_date(self, sample_tasks):
        """Test an explicit null due date clears it."""
        completion = FakeCompletionService(
            {"updates": {"dueDate": None}, "timeline": {"type": "field_update", "content": "Removed due date"}}
        )

        result = await resolve_update("remove the due date", sample_tasks, "t1", completion=completion)

        assert result.updates.clear_due_date is True
        assert result.updates.changed_fields() == {"due_date": None}
        assert result.timeline.old_value == "2026-10-20"
        assert result.timeline.new_value is None

    @pytest.mark.asyncio
    async def test_classifier_updates_are_merged(self, sample_tasks):
        """Test fields proposed by the classifier are applied even when the resolver omits them."""
        completion = FakeCompletionService({"updates": {}, "timeline": {}})

        result = await resolve_update(
            "make the login bug high priority",
            sample_tasks,
            "t1",
            proposed_updates=TaskFieldDiff(priority=TaskPriority.HIGH),
            completion=completion,
        )

        assert result.updates.priority == TaskPriority.HIGH
        assert result.timeline.content == "Priority changed to high"
        assert result.timeline.old_value == "medium"

    @pytest.mark.asyncio
    async def test_multiple_fields_summarised(self, sample_tasks):
        """Test several changed fields produce one summary entry."""
        completion = FakeCompletionService({"updates": {"priority": "high", "dueDate": "2026-10-25"}})

        result = await resolve_update(
            "bump the priority to high and move it to Oct 25", sample_tasks, "t1", completion=completion
        )

        assert result.timeline.type == TaskUpdateType.FIELD_UPDATE
        assert result.timeline.content == "Updated priority and due date"
        assert result.timeline.field is None

    @pytest.mark.asyncio
    async def test_missing_info_passed_through(self, sample_tasks):
        """Test the resolver's question for the user is kept."""
        completion = FakeCompletionService({"updates": {}, "missingInfo": "Which date should I use?"})

        result = await resolve_update("move it", sample_tasks, "t1", completion=completion)

        assert result.missing_info == "Which date should I use?"
        assert result.timeline.type == TaskUpdateType.NOTE

    @pytest.mark.asyncio
    async def test_unparseable_response(self, sample_tasks):
        """Test prose instead of JSON yields missing info."""
        completion = FakeCompletionService("Sorry, I can't help with that.")

        result = await resolve_update("move it", sample_tasks, "t1", completion=completion)

        assert result.task_id == "t1"
        assert result.missing_info == UNPARSEABLE_MESSAGE
        assert result.timeline is None

    @pytest.mark.asyncio
    async def test_service_failure(self, sample_tasks):
        """Test a failed completion call yields a friendly message and no changes."""
        completion = FakeCompletionService(Exception("Invalid API key"))

        result = await resolve_update("move it", sample_tasks, "t1", completion=completion)

        assert completion.call_count == 1
        assert result.updates.is_empty()
        assert result.timeline is None
        assert result.missing_info == "AI service configuration error. Please contact support."
