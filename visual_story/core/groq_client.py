# core/groq_client.py

import json
import re
from functools import lru_cache

from groq import Groq

from visual_story.core.config import settings


@lru_cache(maxsize=1)
def get_client() -> Groq:
    """Shared Groq client for all agents, created on first use."""
    if not settings.GROQ_API_KEY:
        raise RuntimeError("GROQ_API_KEY is missing in .env file")
    return Groq(api_key=settings.GROQ_API_KEY)


def extract_json(raw):
    """
    Extracts clean JSON (an object or an array) from an LLM response.
    Strips markdown fences and invisible RTL characters that some
    languages leak into the output.
    """
    if raw is None:
        raise ValueError("Empty response from the model.")

    raw = raw.replace("```json", "").replace("```", "")

    rtl_chars = ["\u202b", "\u202e", "\u202a", "\u200f", "\u200e"]
    for c in rtl_chars:
        raw = raw.replace(c, "")

    raw = raw.strip()

    # Whichever of an object or an array starts first
    match = re.search(r"\{.*\}|\[.*\]", raw, re.DOTALL)
    if not match:
        raise ValueError("No JSON object found in the model response.")

    return json.loads(match.group(0))


def complete_json(system_prompt: str, user_prompt: str, temperature: float = 0.7):
    """Runs a JSON-mode chat completion and returns the decoded object."""
    completion = get_client().chat.completions.create(
        model=settings.TEXT_MODEL,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt}
        ],
        temperature=temperature,
        response_format={"type": "json_object"}
    )
    return extract_json(completion.choices[0].message.content)


def complete_text(system_prompt: str, user_prompt: str, temperature: float = 0.3) -> str:
    """Runs a plain chat completion and returns the message text."""
    completion = get_client().chat.completions.create(
        model=settings.TEXT_MODEL,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt}
        ],
        temperature=temperature,
        max_tokens=2048
    )
    return completion.choices[0].message.content or ""
