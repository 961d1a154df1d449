"""Prompt builders for the classifier, update resolver and description agents."""

from src.core.config import constants
from src.core.priority import HIGH_PRIORITY_KEYWORDS, LOW_PRIORITY_KEYWORDS
from src.domain.task import Task


def _history_section(history: list[str] | None) -> str:
    if not history:
        return ""
    recent = history[-constants.CONVERSATION_HISTORY_LIMIT :]
    return "## CONVERSATION HISTORY (most recent last)\n" + "\n".join(recent) + "\n"


def build_classifier_prompt(
    *,
    utterance: str,
    task_context: str,
    today: str,
    history: list[str] | None = None,
) -> str:
    """Build the intent classification prompt.

    Args:
        utterance: Raw user input
        task_context: Output of build_task_context
        today: Current date (YYYY-MM-DD)
        history: Optional earlier conversation lines

    Returns:
        Prompt text
    """
    high_keywords = ", ".join(f'"{kw}"' for kw in HIGH_PRIORITY_KEYWORDS)
    low_keywords = ", ".join(f'"{kw}"' for kw in LOW_PRIORITY_KEYWORDS)

    return f"""You are a task management assistant that classifies what the user wants to do with their tasks.

## CONTEXT
{task_context}

{_history_section(history)}
## USER INPUT
"{utterance}"

## INTENTS
When in doubt, prefer CREATE over UPDATE/COMPLETE/DELETE. Creating a duplicate is recoverable; changing the wrong task is not.

1. create - The user describes new work ("fix", "write", "review", "I need to", "remind me to").
   Task titles often contain completion words: "Complete the UAT testing by friday" is a NEW task.
2. update - The user explicitly references a task from the list above AND wants to change it
   ("change", "set", "move", "reschedule"). "Update the documentation" with no such task is CREATE.
3. complete - The user explicitly references a task from the list above AND says the ENTIRE task is finished
   ("I finished X", "mark X as done", "X is done"). "Completed setting up the database" with no such task is CREATE.
4. delete - The user explicitly references a task from the list above with "delete", "remove", "cancel", "get rid of".
5. query - Read-only questions: "what", "which", "how many", "show", "list".
6. clarify - Only when it is impossible to tell which existing task is meant ("update it", "that's done").

For update/complete/delete, targetTask.id MUST be copied exactly from the task list above.

## FOLLOW-UP QUESTIONS
Ask 2-3 specific questions that would make a vague task actionable. Be specific to what the user said:
- "Deploy" -> "Which service are you deploying, and to which environment?"
- "Fix bug" -> "Which bug? Can you describe the symptoms or error?"
- "Review PR" -> "Which PR number or branch?"
Never ask generic questions. No emojis.

## PRIORITY
- high: {high_keywords}
- low: {low_keywords}
- medium otherwise. Always set a priority.

## DUE DATES
Today is {today}. Convert dates to YYYY-MM-DD ("tomorrow", "by friday", "next week" = 7 days from today).
Use null when the user gave no date.

## VAGUENESS SCORE (0-100, ALWAYS include for create)
- 0-30: clear target and deliverable ("Fix the login button on /auth page", "Review PR #423").
- 31-60: understandable, only missing a deadline ("Write integration tests for payment module").
- 61-100: cannot start without more context ("Deploy", "Fix stuff", "Handle it").
Urgency words, a deadline or a specific noun all lower the score.

## TITLE AND DESCRIPTION
Title: 3-7 words, starts with a verb. Description: everything else (who, what, where, how, why).

## RESPONSE FORMAT
Respond with ONLY a JSON object:
{{
  "intent": "create" | "update" | "complete" | "delete" | "query" | "clarify",
  "confidence": 0-100,
  "reasoning": "why this intent",
  "taskDetails": {{
    "title": "short title",
    "description": "details",
    "priority": "low" | "medium" | "high",
    "dueDate": "YYYY-MM-DD" | null,
    "tags": ["tag"] | null
  }},
  "vaguenessScore": 0-100,
  "vagueReason": "what is missing",
  "targetTask": {{"id": "exact id from the list", "title": "exact title", "matchReason": "why"}},
  "updates": {{"status": "todo" | "in-progress" | "done", "priority": "...", "dueDate": "YYYY-MM-DD"}},
  "queryType": "status" | "list" | "search" | "summary",
  "clarifyingQuestion": "question for clarify",
  "missingInfo": ["missing piece"],
  "followUpQuestions": ["specific question?"]
}}
Omit targetTask and updates unless the intent is update, complete or delete."""


def build_updater_prompt(
    *,
    utterance: str,
    task_list: str,
    target: Task,
    current_date: str,
    timestamp: int,
) -> str:
    """Build the update resolution prompt for one target task."""
    return f"""You are the update agent of a task management system.

## CONTEXT
Current date: {current_date}

All tasks in the space:
{task_list}

TARGET TASK:
- ID: {target.id}
- Title: "{target.title}"
- Status: {target.status}
- Priority: {target.priority or "unset"}
- Due date: {target.due_date or "none"}

## USER INPUT
"{utterance}"

## RULES
1. status "done" ONLY when the user says the ENTIRE target task is finished:
   "The API integration is done", "I finished the login bug fix", "Mark it as done".
   Finishing a PART of the task is a note, never a status change:
   "Completed the database schema", "Finished setting up the environment", "Done with initial testing".
2. status "in-progress" for "started working on", "beginning"; status "todo" for "reopen", "need to redo".
3. priority only when explicitly requested ("make it urgent" -> high, "lower the priority" -> low).
4. dueDate only on explicit rescheduling ("move it to tomorrow", "push the deadline to Friday"), as YYYY-MM-DD.
   "No deadline" -> dueDate null.
5. The "updates" object contains ONLY fields that change. Never include unchanged or null fields otherwise.
6. Always produce exactly one timeline entry, one sentence:
   - "it is done" -> type "status_change", content "Marked as complete"
   - "completed the embedding setup" -> type "note", content "Completed the embedding setup"
   - "make it high priority" -> type "field_update", field "priority", content "Priority changed to high"
7. If the request cannot be applied, explain in "missingInfo" conversationally. No emojis.

## RESPONSE FORMAT
Respond with ONLY a JSON object:
{{
  "taskId": "{target.id}",
  "updates": {{
    "status": "todo" | "in-progress" | "done",
    "priority": "low" | "medium" | "high",
    "dueDate": "YYYY-MM-DD" | null,
    "dueTime": "HH:MM",
    "title": "new title",
    "description": "new description"
  }},
  "timeline": {{
    "timestamp": {timestamp},
    "type": "status_change" | "note" | "field_update",
    "content": "one sentence",
    "field": "optional field name",
    "oldValue": "optional",
    "newValue": "optional"
  }},
  "missingInfo": null
}}"""


def build_description_prompt(task: Task) -> str:
    """Build the description prompt: a living summary when the task has history, one sentence otherwise."""
    if task.updates:
        timeline_lines = "\n".join(f"- {update.content} ({update.type})" for update in task.updates)
        return f"""You maintain a concise living description for a task.

TASK:
- Title: {task.title}
- Status: {task.status}
- Priority: {task.priority or "unset"}
- Due date: {task.due_date or "Not set"}

ACTIVITY HISTORY:
{timeline_lines}

Write a short summary of what the task is about and where it stands.
Do not add status, priority or history sections (they are shown elsewhere).
No emojis. Plain markdown. Add a "## Key Notes" section only for important details."""

    context_line = f"Context: {task.description}\n" if task.description else ""
    return f"""Write ONE sentence (max 15 words) describing this task. No markdown, no emojis.
Do not add details that are not in the title.

Task: {task.title}
{context_line}"""


def build_enhance_description_prompt(
    title: str,
    current_description: str | None,
    question: str,
    answer: str,
) -> str:
    """Build the prompt that folds an answer to a suggested-improvement question into a description."""
    return f"""You are enhancing a task description with new information provided by the user.

## Task Title
{title}

## Current Description
{current_description or "(No description yet)"}

## New Information
Question asked: "{question}"
User's answer: "{answer}"

Integrate the new information into the description instead of appending it.

Rules:
1. If there is an existing description, enhance it with the new context
2. If there is no description, write a clear one from the new information
3. Keep the tone professional and actionable
4. Use markdown (headers, bullets) only if it helps
5. Do not mention the question or the answer format
6. Keep it concise

Return ONLY the enhanced description text."""
