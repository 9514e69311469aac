from typing import Any, List

from pydantic import ValidationError

from visual_story.agents.context_loader import load_context, wrap_tag
from visual_story.core.groq_client import complete_json
from visual_story.core.logger import log_agent_action
from visual_story.schemas.schema import QuizItem, StoryResult

# Load system prompt from context file
SYSTEM_PROMPT = load_context("quiz")

QUESTION_COUNT = 3


def build_quiz_context(result: StoryResult) -> str:
    """Learning material of the displayed story: dialogue plus takeaways."""
    return f"Story: {result.story}\n\nKey Takeaways: {', '.join(result.key_takeaways)}"


def validate_quiz(raw: Any) -> List[QuizItem]:
    """
    Accept only a list of exactly 3 items, each with a question, 4 options
    and an integer answer index.

    Raises:
        ValueError: If the quiz has an invalid format.
    """
    items = raw.get("questions") if isinstance(raw, dict) else raw
    if not isinstance(items, list) or len(items) != QUESTION_COUNT:
        raise ValueError("Generated quiz has an invalid format.")
    try:
        return [QuizItem.model_validate(item) for item in items]
    except ValidationError:
        raise ValueError("Generated quiz has an invalid format.")


def generate_quiz(context: str) -> List[QuizItem]:
    """
    Generates a 3-question multiple choice quiz from the story context.

    Raises:
        RuntimeError: If the service fails or the quiz is malformed.
    """
    prompt = f"""
{wrap_tag("context", context)}

Create the quiz for the material above.
"""
    try:
        raw = complete_json(SYSTEM_PROMPT, prompt, temperature=0.7)
        quiz = validate_quiz(raw)
    except Exception as e:
        log_agent_action("quiz", "generate_quiz", str(e), success=False)
        raise RuntimeError(f"Failed to generate quiz. {str(e)}")

    log_agent_action("quiz", "generate_quiz", f"{len(quiz)} questions")
    return quiz
