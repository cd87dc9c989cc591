"""Task complexity estimation from title/description keywords and estimated duration."""

from schedule_engine.models import Level, TaskCandidate

HIGH_COMPLEXITY_WORDS = ("design", "architect", "analyze", "research", "strategy", "plan", "review", "debug")
LOW_COMPLEXITY_WORDS = ("update", "fix", "typo", "rename", "move", "delete", "simple", "quick")


def estimate_task_complexity(task: TaskCandidate) -> Level:
    """
    Estimate how demanding a task is.

    Keywords win over duration; high-complexity keywords win over low ones.
    Matching is by substring, so "planning" counts as "plan".
    """
    text = f"{task.title} {task.description or ''}".lower()

    if any(word in text for word in HIGH_COMPLEXITY_WORDS):
        return Level.HIGH
    if any(word in text for word in LOW_COMPLEXITY_WORDS):
        return Level.LOW

    if task.estimated_minutes:
        if task.estimated_minutes >= 90:
            return Level.HIGH
        if task.estimated_minutes <= 20:
            return Level.LOW
    return Level.MEDIUM
