import json
from typing import Dict

from pydantic import ValidationError

from visual_story.agents.context_loader import load_context, wrap_tag
from visual_story.core.dialogue import speaker_prefixes
from visual_story.core.groq_client import complete_json
from visual_story.core.logger import get_logger, log_agent_action
from visual_story.core.mindmap import compile_mind_map
from visual_story.schemas.schema import MindMapData, MindMapNode, StoryResult, TranslatedContent

logger = get_logger("agent.translator")

# Load system prompt from context file
SYSTEM_PROMPT = load_context("translator")

# Supported languages
SUPPORTED_LANGUAGES = {
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "ja": "Japanese",
    "zh": "Mandarin Chinese",
    "hi": "Hindi",
    "ta": "Tamil",
    "te": "Telugu",
    "ml": "Malayalam",
    "kn": "Kannada",
    "bn": "Bengali",
    "mr": "Marathi",
    "gu": "Gujarati",
    "pa": "Punjabi",
}

DEFAULT_LANGUAGE = "es"


def get_language_name(lang_code: str) -> str:
    """Get full language name from code"""
    return SUPPORTED_LANGUAGES.get(lang_code, lang_code.title())


def content_to_translate(result: StoryResult) -> TranslatedContent:
    return TranslatedContent(
        story=result.story,
        key_takeaways=list(result.key_takeaways),
        mind_map_nodes=list(result.mind_map_data.nodes),
    )


def build_translation_prompt(content: TranslatedContent, language_name: str) -> str:
    source = json.dumps(content.model_dump(by_alias=True), ensure_ascii=False, indent=2)
    return f"""
{wrap_tag("source_json", source)}

<target_language>{language_name}</target_language>

Translate the JSON above into {language_name}.
Return ONLY the translated JSON object.
"""


def merge_translation(original: StoryResult, translated: TranslatedContent) -> StoryResult:
    """
    Rebuild a story result from translated text. Node ids, connections and the
    image come from the original; only labels, story and takeaways change.

    Raises:
        ValueError: If the translated nodes do not carry exactly the original ids.
    """
    original_ids = [node.id for node in original.mind_map_data.nodes]
    labels: Dict[str, str] = {node.id: node.text for node in translated.mind_map_nodes}
    if set(labels) != set(original_ids) or len(translated.mind_map_nodes) != len(original_ids):
        raise ValueError("translated mind map nodes do not match the original node ids")

    mind_map_data = MindMapData(
        nodes=[MindMapNode(id=node_id, text=labels[node_id]) for node_id in original_ids],
        connections=list(original.mind_map_data.connections),
    )

    return original.model_copy(update={
        "story": translated.story,
        "key_takeaways": list(translated.key_takeaways),
        "mind_map_data": mind_map_data,
        "mind_map": compile_mind_map(mind_map_data),
    })


def check_speakers(original_story: str, translated_story: str) -> bool:
    """Speaker names must survive translation untouched; drift is only logged."""
    before = speaker_prefixes(original_story)
    after = speaker_prefixes(translated_story)
    if before != after:
        logger.warning(f"Speaker prefixes changed during translation: {before[:3]} -> {after[:3]}")
        return False
    return True


def translate_story(result: StoryResult, lang_code: str) -> StoryResult:
    """
    Translate the displayed story result to the target language.

    Args:
        result: Story result currently on screen (original or translated)
        lang_code: Target language code (e.g., 'es', 'hi')

    Returns:
        New story result with translated story, takeaways and node labels

    Raises:
        RuntimeError: If the service fails or the translation is unusable
    """
    language_name = get_language_name(lang_code)
    prompt = build_translation_prompt(content_to_translate(result), language_name)

    try:
        raw = complete_json(SYSTEM_PROMPT, prompt, temperature=0.2)
        translated = TranslatedContent.model_validate(raw)
        merged = merge_translation(result, translated)
    except (ValidationError, ValueError) as e:
        log_agent_action("translator", f"translate to {language_name}", str(e), success=False)
        raise RuntimeError("Failed to translate. The translation has an invalid format.")
    except Exception as e:
        raise RuntimeError(f"Failed to translate. API Error: {str(e)}")

    check_speakers(result.story, merged.story)
    log_agent_action("translator", f"translate to {language_name}", f"{len(merged.mind_map_data.nodes)} nodes")
    return merged
