import re
from typing import List, Optional

from visual_story.schemas.schema import DialogueTurn

# "Professor Hoot: ..." or "**Professor Hoot:** ..."
SPEAKER_LINE = re.compile(r"^\s*([^:\n]{1,60}?)\s*:\s*(.*)$")
EMPHASIS = "*_ "


def parse_line(line: str) -> DialogueTurn:
    match = SPEAKER_LINE.match(line)
    if match:
        speaker = match.group(1).strip(EMPHASIS)
        if speaker:
            return DialogueTurn(speaker=speaker, text=match.group(2).lstrip(EMPHASIS).strip())
    return DialogueTurn(speaker=None, text=line.strip())


def parse_dialogue(story: str) -> List[DialogueTurn]:
    """
    Split a speaker-tagged script into turns.

    Blank lines are dropped; lines without a "Speaker:" prefix are kept
    as prose turns with no speaker.
    """
    if not story:
        return []
    return [parse_line(line) for line in story.splitlines() if line.strip()]


def speaker_prefixes(story: str) -> List[Optional[str]]:
    """Speaker of each non-blank line, in order (None for prose lines)."""
    return [turn.speaker for turn in parse_dialogue(story)]


def speech_text(turns: List[DialogueTurn]) -> str:
    """Utterance read aloud for a dialogue: one sentence group per turn."""
    parts = []
    for turn in turns:
        if turn.speaker:
            parts.append(f"{turn.speaker}: {turn.text}")
        else:
            parts.append(turn.text)
    return "\n".join(parts)
