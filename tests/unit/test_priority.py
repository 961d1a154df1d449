"""Unit tests for keyword priority inference and title extraction."""

import pytest

from src.core.priority import extract_title, infer_priority
from src.domain.task import TaskPriority


@pytest.mark.unit
class TestInferPriority:
    """Tests for infer_priority."""

    @pytest.mark.parametrize(
        "text",
        ["URGENT: fix the login page", "deploy the hotfix asap", "this is blocking the release", "finish by EOD"],
    )
    def test_high_priority_keywords(self, text):
        """Test urgency keywords mean high priority."""
        assert infer_priority(text) == TaskPriority.HIGH

    @pytest.mark.parametrize("text", ["someday clean up the wiki", "no rush on the newsletter", "nice to have: dark mode"])
    def test_low_priority_keywords(self, text):
        """Test deferral keywords mean low priority."""
        assert infer_priority(text) == TaskPriority.LOW

    def test_high_wins_over_low(self):
        """Test high keywords beat low keywords."""
        assert infer_priority("urgent, but no rush on the polish") == TaskPriority.HIGH

    def test_default_is_medium(self):
        """Test plain requests get medium priority."""
        assert infer_priority("write the release notes") == TaskPriority.MEDIUM


@pytest.mark.unit
class TestExtractTitle:
    """Tests for extract_title."""

    def test_strips_conversational_prefix(self):
        """Test "I need to" is removed and the title is capitalised."""
        assert extract_title("I need to buy milk") == "Buy milk"

    def test_strips_create_task_prefix(self):
        """Test "Create a task for" is removed."""
        assert extract_title("Create a task for the quarterly report") == "The quarterly report"

    def test_truncates_long_titles(self):
        """Test titles are capped at 100 characters."""
        title = extract_title("x" * 150)

        assert len(title) == 100
        assert title.endswith("...")

    def test_keeps_text_when_only_prefix(self):
        """Test input that is all prefix is kept as-is."""
        assert extract_title("please") == "Please"


@pytest.mark.unit
@pytest.mark.parametrize(
    ("text", "priority"),
    [
        ("URGENT: fix it", TaskPriority.HIGH),
        ("someday, no rush", TaskPriority.LOW),
        ("do the thing", TaskPriority.MEDIUM),
    ],
)
def test_infer_priority_is_deterministic(text, priority):
    """Test the reference examples."""
    assert infer_priority(text) == priority
