from pydantic import ValidationError

from visual_story.agents.context_loader import load_context, wrap_user_input
from visual_story.core.groq_client import complete_json
from visual_story.core.logger import log_agent_action
from visual_story.schemas.schema import GeneratedStory

# Load system prompt from context file
SYSTEM_PROMPT = load_context("writer")

IMAGE_STYLE_PREFIX = "Charming educational cartoon style."


def build_story_prompt(student_text: str) -> str:
    return f"""
{wrap_user_input(student_text)}

Create the learning package for the material above.
Return ONLY the JSON object described in your instructions.
"""


def enforce_style(image_prompt: str) -> str:
    """The image prompt must open with the fixed visual style."""
    image_prompt = image_prompt.strip()
    if image_prompt.startswith(IMAGE_STYLE_PREFIX):
        return image_prompt
    return f"{IMAGE_STYLE_PREFIX} {image_prompt}"


def generate_story(student_text: str) -> GeneratedStory:
    """
    Generates the dialogue, mind map, image prompt and key takeaways
    for a topic.

    Raises:
        RuntimeError: If the service fails or returns an invalid package.
    """
    try:
        raw = complete_json(SYSTEM_PROMPT, build_story_prompt(student_text), temperature=0.5)
        draft = GeneratedStory.model_validate(raw)
    except ValidationError as e:
        log_agent_action("writer", "generate_story", f"invalid response: {e.error_count()} error(s)", success=False)
        raise RuntimeError("Failed to generate visual story. The generated story has an invalid format.")
    except Exception as e:
        raise RuntimeError(f"Failed to generate visual story. API Error: {str(e)}")

    log_agent_action(
        "writer", "generate_story",
        f"{len(draft.mind_map.nodes)} nodes, {len(draft.key_takeaways)} takeaways"
    )
    return draft.model_copy(update={"image_prompt": enforce_style(draft.image_prompt)})
