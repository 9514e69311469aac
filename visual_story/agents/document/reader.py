from visual_story.agents.context_loader import load_context, wrap_tag
from visual_story.core.groq_client import complete_text
from visual_story.core.logger import log_agent_action

# Load system prompt from context file
SYSTEM_PROMPT = load_context("reader")

# Characters of extracted text sent along with the question
MAX_CONTEXT_CHARS = 20000


def build_answer_prompt(document_text: str, question: str) -> str:
    return f"""
CONTEXT FROM PDF (first {MAX_CONTEXT_CHARS:,} characters):
{wrap_tag("document", document_text[:MAX_CONTEXT_CHARS])}

USER'S QUESTION:
{wrap_tag("question", question)}

ANSWER:
"""


def answer_from_document(document_text: str, question: str) -> str:
    """
    Answers a question using only the extracted document text.

    Raises:
        RuntimeError: If the service fails.
    """
    try:
        answer = complete_text(SYSTEM_PROMPT, build_answer_prompt(document_text, question))
    except Exception as e:
        log_agent_action("reader", "answer_from_document", str(e), success=False)
        raise RuntimeError(f"Failed to get answer. API Error: {str(e)}")

    log_agent_action("reader", "answer_from_document", f"{len(answer)} characters")
    return answer
