"""Unit tests for the description agent."""

import pytest

from src.agents.description_agent import enhance_description, generate_polished_description
from tests.unit.mocks import FakeCompletionService


@pytest.mark.unit
class TestGeneratePolishedDescription:
    """Tests for generate_polished_description."""

    @pytest.mark.asyncio
    async def test_one_sentence_for_new_task(self, login_task):
        """Test a task without history gets a single-sentence prompt."""
        completion = FakeCompletionService("  Fix the 500 error users hit on the auth page.  ")

        description = await generate_polished_description(login_task, completion=completion)

        assert description == "Fix the 500 error users hit on the auth page."
        assert "Write ONE sentence" in completion.prompts[0]
        assert "Context: Users get a 500 on the /auth page" in completion.prompts[0]

    @pytest.mark.asyncio
    async def test_living_description_for_task_with_history(self, sample_tasks):
        """Test a task with timeline entries gets the living-summary prompt."""
        completion = FakeCompletionService("Building the retrieval pipeline for search.")

        await generate_polished_description(sample_tasks[2], completion=completion)

        assert "ACTIVITY HISTORY" in completion.prompts[0]
        assert "- Task created (creation)" in completion.prompts[0]

    @pytest.mark.asyncio
    async def test_empty_response_falls_back(self, login_task):
        """Test an empty response is retried and then replaced by the title."""
        completion = FakeCompletionService("   ")

        description = await generate_polished_description(login_task, completion=completion)

        assert description == "Task: Fix login bug"
        assert completion.call_count == 3

    @pytest.mark.asyncio
    async def test_service_failure_falls_back(self, login_task):
        """Test a non-retryable failure falls back immediately."""
        completion = FakeCompletionService(Exception("Invalid API key"))

        description = await generate_polished_description(login_task, completion=completion)

        assert description == "Task: Fix login bug"
        assert completion.call_count == 1


@pytest.mark.unit
class TestEnhanceDescription:
    """Tests for enhance_description."""

    @pytest.mark.asyncio
    async def test_answer_folded_into_description(self):
        """Test the question, answer and current description all reach the prompt."""
        completion = FakeCompletionService("Users get a 500 on /auth. Blocks the Friday release.")

        enhanced = await enhance_description(
            "Fix login bug",
            "Users get a 500 on /auth",
            "What's the impact of this bug? Is it blocking anything?",
            "it blocks the friday release",
            completion=completion,
        )

        assert enhanced == "Users get a 500 on /auth. Blocks the Friday release."
        prompt = completion.prompts[0]
        assert "Fix login bug" in prompt
        assert "Users get a 500 on /auth" in prompt
        assert 'Question asked: "What\'s the impact of this bug? Is it blocking anything?"' in prompt
        assert 'User\'s answer: "it blocks the friday release"' in prompt

    @pytest.mark.asyncio
    async def test_missing_description_placeholder(self):
        """Test a task without a description gets the placeholder."""
        completion = FakeCompletionService("Deploy the API to staging.")

        await enhance_description("Deploy", None, "Which environment?", "staging", completion=completion)

        assert "(No description yet)" in completion.prompts[0]

    @pytest.mark.asyncio
    async def test_failure_keeps_current_description(self):
        """Test a failed call keeps the existing description."""
        completion = FakeCompletionService(Exception("Invalid API key"))

        enhanced = await enhance_description(
            "Fix login bug", "Users get a 500 on /auth", "Impact?", "blocks release", completion=completion
        )

        assert enhanced == "Users get a 500 on /auth"
        assert completion.call_count == 1

    @pytest.mark.asyncio
    async def test_empty_response_without_description_uses_answer(self):
        """Test repeated empty responses fall back to the answer when there is no description."""
        completion = FakeCompletionService("  ")

        enhanced = await enhance_description("Deploy", None, "Which environment?", " staging ", completion=completion)

        assert enhanced == "staging"
        assert completion.call_count == 3

    @pytest.mark.asyncio
    async def test_blank_answer_skips_completion(self):
        """Test a blank answer leaves the description untouched without a call."""
        completion = FakeCompletionService("unused")

        enhanced = await enhance_description("Deploy", "Ship v2", "Which environment?", "  ", completion=completion)

        assert enhanced == "Ship v2"
        assert completion.call_count == 0
