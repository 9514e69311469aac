from elevenlabs import ElevenLabs

from visual_story.core.config import settings
from visual_story.core.logger import log_agent_action


def synthesize_speech(text: str) -> bytes:
    """
    Converts an utterance to MP3 audio using ElevenLabs.

    Args:
        text: The text to read aloud

    Returns:
        MP3 bytes.

    Raises:
        RuntimeError: If no API key is configured or synthesis fails.
    """
    if not text or not text.strip():
        raise ValueError("Nothing to read aloud.")

    if not settings.ELEVENLABS_API_KEY:
        raise RuntimeError("Read-aloud is not configured: ELEVENLABS_API_KEY is missing.")

    client = ElevenLabs(api_key=settings.ELEVENLABS_API_KEY)

    try:
        audio_generator = client.text_to_speech.convert(
            text=text,
            voice_id=settings.ELEVENLABS_VOICE_ID,
            model_id=settings.TTS_MODEL
        )
        audio = b"".join(audio_generator)
    except Exception as e:
        log_agent_action("narrator", "synthesize_speech", str(e), success=False)
        raise RuntimeError(f"Speech synthesis failed: {str(e)}")

    log_agent_action("narrator", "synthesize_speech", f"{len(text)} characters -> {len(audio)} bytes")
    return audio
