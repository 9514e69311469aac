from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from visual_story.schemas.schema import QuizItem


class QuizAttempt(BaseModel):
    """User answers for the current quiz. A fresh attempt is the pristine state."""
    selections: Dict[int, int] = Field(default_factory=dict)
    submitted: bool = False
    score: Optional[int] = None


def reset_attempt() -> QuizAttempt:
    return QuizAttempt()


def select_answer(attempt: QuizAttempt, quiz: List[QuizItem], question: int, option: int) -> QuizAttempt:
    """Record a selection. Ignored once submitted or when out of range."""
    if attempt.submitted:
        return attempt
    if not 0 <= question < len(quiz):
        return attempt
    if not 0 <= option < len(quiz[question].options):
        return attempt
    selections = dict(attempt.selections)
    selections[question] = option
    return attempt.model_copy(update={"selections": selections})


def can_submit(attempt: QuizAttempt, quiz: List[QuizItem]) -> bool:
    """Submission needs a selection for every question."""
    if attempt.submitted or not quiz:
        return False
    return all(index in attempt.selections for index in range(len(quiz)))


def score_quiz(selections: Dict[int, int], quiz: List[QuizItem]) -> int:
    return sum(
        1 for index, item in enumerate(quiz)
        if selections.get(index) == item.correct_answer_index
    )


def submit(attempt: QuizAttempt, quiz: List[QuizItem]) -> QuizAttempt:
    if not can_submit(attempt, quiz):
        return attempt
    return attempt.model_copy(update={
        "submitted": True,
        "score": score_quiz(attempt.selections, quiz),
    })
