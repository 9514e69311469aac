"""
Context Loader Utility for Visual Story Studio agents

This module loads the system prompt of each agent from its context file and
provides the helpers used to isolate user-supplied text inside prompts.
"""

from pathlib import Path
from functools import lru_cache


# Base directory for agents
AGENTS_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=10)
def load_context(agent_name: str) -> str:
    """
    Load context file for a specific agent.

    Args:
        agent_name: Name of the agent (writer, translator, quiz, reader)

    Returns:
        Content of the context file as string

    Raises:
        ValueError: If the agent is unknown
        FileNotFoundError: If context file doesn't exist
    """
    context_paths = {
        "writer": AGENTS_DIR / "narrative" / "context_writer.txt",
        "translator": AGENTS_DIR / "translator" / "context_translator.txt",
        "quiz": AGENTS_DIR / "quiz" / "context_quiz.txt",
        "reader": AGENTS_DIR / "document" / "context_reader.txt",
    }

    if agent_name not in context_paths:
        raise ValueError(f"Unknown agent: {agent_name}. Available: {list(context_paths.keys())}")

    context_path = context_paths[agent_name]

    if not context_path.exists():
        raise FileNotFoundError(f"Context file not found: {context_path}")

    return context_path.read_text(encoding="utf-8")


def wrap_tag(tag: str, text: str) -> str:
    """
    Wrap user-supplied text in an XML tag for input isolation.
    Existing tags are escaped so the text cannot close the wrapper.
    """
    sanitized = text.replace("<", "&lt;").replace(">", "&gt;")
    return f"<{tag}>\n{sanitized}\n</{tag}>"


def wrap_user_input(user_input: str) -> str:
    return wrap_tag("user_input", user_input)


# User-friendly error messages (not exposing internal details)
ERROR_MESSAGES = {
    "STORY_ERROR": "An unexpected error occurred while generating the visual story.",
    "TRANSLATION_ERROR": "An unexpected error occurred during translation.",
    "QUIZ_ERROR": "An unexpected error occurred while generating the quiz.",
    "ANSWER_ERROR": "An unexpected error occurred while answering the question.",
    "DOCUMENT_ERROR": "Failed to parse PDF.",
    "SPEECH_ERROR": "Read-aloud is unavailable right now.",
    "GENERATION_ERROR": "An unknown error occurred. Please try again.",
}


def get_user_friendly_error(error_type: str) -> str:
    """
    Get user-friendly error message without exposing internal details.

    Args:
        error_type: Internal error type identifier

    Returns:
        User-friendly error message
    """
    return ERROR_MESSAGES.get(error_type, ERROR_MESSAGES["GENERATION_ERROR"])
